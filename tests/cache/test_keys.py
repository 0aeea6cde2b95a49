"""Tests for the cache store key grammar."""

import pytest

from social_server.cache.keys import bucket_key, entry_key, item_key, version_key
from social_server.constants import CACHE_FAMILIES, CACHE_RESOURCES, RATE_SCOPES


def test_key_shapes():
    assert version_key("post-list") == "post-list:version"
    assert entry_key("post-list", 3, "1:10") == "post-list:v3:1:10"
    assert item_key("post", "p1") == "post:p1"
    assert bucket_key("rl-post-create", "u1") == "rl-post-create:u1"


@pytest.mark.parametrize(
    "build",
    [
        lambda: version_key("posts"),
        lambda: entry_key("unknown", 1, "x"),
        lambda: item_key("post-list", "p1"),
        lambda: bucket_key("post", "u1"),
    ],
)
def test_unknown_names_rejected(build):
    with pytest.raises(ValueError, match="Unknown cache"):
        build()


def test_namespaces_are_disjoint():
    first_segments = [*CACHE_FAMILIES, *CACHE_RESOURCES, *RATE_SCOPES]
    assert len(first_segments) == len(set(first_segments))
    assert all(":" not in name for name in first_segments)
