"""Unit tests for core/cache.py"""

import pytest

from blockgen.core import meta
from blockgen.core.cache import GLOBAL_GROUP, USAGE_GROUP, CacheInvalidator
from blockgen.crud.tables import ContentType


def test_object_cache_groups_and_ttl(cache, ticker):
    cache.set("k", "v", group="g", ttl=10)
    cache.set("k", "other", group="h")
    assert cache.get("k", "g") == "v"
    ticker.t += 10
    assert cache.get("k", "g") is None
    assert cache.get("k", "h") == "other"


def test_object_cache_contains_and_default(cache):
    cache.set("none", None)
    assert cache.contains("none")
    assert not cache.contains("missing")
    assert cache.get("missing", default=5) == 5


def test_flush_group_only_clears_that_group(cache):
    cache.set(1, "a", group="posts")
    cache.set(1, "b", group="other")
    cache.flush_group("posts")
    assert cache.get(1, "posts") is None
    assert cache.get(1, "other") == "b"


@pytest.mark.parametrize("content_type,cleared", [
    (ContentType.block, {USAGE_GROUP}),
    (ContentType.scss_partial, {GLOBAL_GROUP}),
    (ContentType.symbol, set()),
    (None, {USAGE_GROUP, GLOBAL_GROUP}),
])
def test_invalidate_clears_the_groups_a_post_feeds(cache, content_type, cleared):
    for group in (USAGE_GROUP, GLOBAL_GROUP, "other"):
        cache.set("k", group, group=group)
    CacheInvalidator(cache).invalidate(5, content_type)
    assert {g for g in (USAGE_GROUP, GLOBAL_GROUP, "other") if not cache.contains("k", g)} == cleared


def test_invalidating_a_block_refreshes_the_usage_scan(services, store, make_partial, make_block):
    partial = make_partial("vars")
    block = make_block("hero", selected=[partial.id])
    assert services.usage.get_blocks_using_partial(partial.id) == [block.id]
    store.set_meta(block.id, meta.BLOCK_SELECTED_PARTIALS, [])
    assert services.usage.get_blocks_using_partial(partial.id) == [block.id]

    services.invalidator.invalidate(block.id, ContentType.block)
    assert services.usage.get_blocks_using_partial(partial.id) == []


def test_invalidating_a_partial_refreshes_only_the_global_list(services, store, make_partial, make_block):
    base = make_partial("base", is_global="1")
    vars_ = make_partial("vars")
    block = make_block("hero", selected=[vars_.id])
    assert [p.id for p in services.resolver.get_global_partials()] == [base.id]
    assert services.usage.get_blocks_using_partial(vars_.id) == [block.id]
    store.set_meta(base.id, meta.SCSS_IS_GLOBAL, "0")
    store.set_meta(block.id, meta.BLOCK_SELECTED_PARTIALS, [])

    services.invalidator.invalidate(base.id, ContentType.scss_partial)
    assert services.resolver.get_global_partials() == []
    assert services.usage.get_blocks_using_partial(vars_.id) == [block.id]
