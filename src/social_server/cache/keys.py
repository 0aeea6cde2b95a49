"""Cache store key grammar.

Three key shapes share the store:

- ``<family>:version`` and ``<family>:v<version>:<discriminator>`` for versioned families
- ``<resource>:<id>`` for direct-key items
- ``<scope>:<actorId>`` for rate buckets

The first segment alone tells them apart: family names, resource names and
rate scopes are declared in ``social_server.constants`` and never overlap,
and none of them may contain ``:``.
"""

from social_server.constants import CACHE_FAMILIES, CACHE_RESOURCES, RATE_SCOPES

VERSION_SUFFIX = "version"


def _check_segment(kind: str, name: str, allowed: frozenset[str]) -> None:
    if name not in allowed:
        raise ValueError(f"Unknown cache {kind} '{name}'. Known: {', '.join(sorted(allowed))}")


def version_key(family: str) -> str:
    """Key of the version counter of a family."""
    _check_segment("family", family, CACHE_FAMILIES)
    return f"{family}:{VERSION_SUFFIX}"


def entry_key(family: str, version: int, discriminator: str) -> str:
    """Key of a family entry computed under ``version``."""
    _check_segment("family", family, CACHE_FAMILIES)
    return f"{family}:v{version}:{discriminator}"


def item_key(resource: str, item_id: str) -> str:
    """Key of a single directly addressed item."""
    _check_segment("resource", resource, CACHE_RESOURCES)
    return f"{resource}:{item_id}"


def bucket_key(scope: str, actor_id: str) -> str:
    """Key of the rate bucket of one actor in one scope."""
    _check_segment("rate scope", scope, RATE_SCOPES)
    return f"{scope}:{actor_id}"
