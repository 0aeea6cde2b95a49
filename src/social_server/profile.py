"""Service role configuration and parsing.

A deployment runs one or more service roles per process. The active roles
decide which routers are mounted, which handler registries subscribe to
the broker, and which tables ``init-db`` creates.
"""

from social_server.constants import ALL_PROFILES


def parse_profile(config: str | None) -> set[str]:
    """Parse the service role configuration.

    Args:
        config: Comma-separated role names (case-insensitive), None, or empty string.
               None or empty string enables all roles.

    Returns:
        Set of enabled roles in lowercase (post, search, media)

    Raises:
        ValueError: If an unknown role is given

    Examples:
        >>> sorted(parse_profile(None))
        ['media', 'post', 'search']
        >>> parse_profile("SEARCH")
        {'search'}
        >>> sorted(parse_profile("post, media"))
        ['media', 'post']
    """
    # Empty, None, or whitespace-only means all roles enabled
    if not config or not config.strip():
        return set(ALL_PROFILES)

    profiles = {p.strip().lower() for p in config.split(",") if p.strip()}

    invalid = profiles - ALL_PROFILES
    if invalid:
        raise ValueError(f"Invalid profile components: {invalid}. Valid: {', '.join(sorted(ALL_PROFILES))}")

    return profiles


__all__ = ["parse_profile"]
