"""Global constants for the social server.

This module defines the names shared between services: profile names,
event topics, and the first segment of every cache-store key. Keeping
them in one place makes it easy to see that the three key grammars
(versioned families, direct-key items and rate buckets) never overlap.
"""

# Service roles, selectable via the ``profiles`` setting
PROFILE_POST = "post"
PROFILE_SEARCH = "search"
PROFILE_MEDIA = "media"
ALL_PROFILES = frozenset({PROFILE_POST, PROFILE_SEARCH, PROFILE_MEDIA})

# Event topics (``<resource>.<verb>``)
TOPIC_CONTENT_CREATED = "content.created"
TOPIC_CONTENT_DELETED = "content.deleted"

# Versioned cache families: ``<family>:v<version>:<discriminator>``
FAMILY_POST_LIST = "post-list"
FAMILY_SEARCH = "search"
CACHE_FAMILIES = frozenset({FAMILY_POST_LIST, FAMILY_SEARCH})

# Direct-key resources: ``<resource>:<id>``
RESOURCE_POST = "post"
CACHE_RESOURCES = frozenset({RESOURCE_POST})

# Rate bucket scopes: ``<scope>:<actorId>``
SCOPE_GLOBAL = "rl-global"
SCOPE_POST_CREATE = "rl-post-create"
SCOPE_MEDIA_UPLOAD = "rl-media-upload"
SCOPE_REGISTRATION = "rl-register"
RATE_SCOPES = frozenset({SCOPE_GLOBAL, SCOPE_POST_CREATE, SCOPE_MEDIA_UPLOAD, SCOPE_REGISTRATION})

# Header set by the gateway on authenticated requests
ACTOR_HEADER = "X-User-Id"
