"""Dependency resolution between SCSS partials and the blocks that consume them.

Two kinds of edge exist. A *selected* partial is listed explicitly in a
block's per-slot list. A *global* partial is injected into every block's
compiled output, so a change to one affects every block whether or not the
block lists it.
"""

from __future__ import annotations

import logging

from blockgen.core import meta
from blockgen.core.cache import GLOBAL_GROUP, ObjectCache
from blockgen.core.models import Slot
from blockgen.core.usage import PartialsUsageIndex
from blockgen.crud.store import PostStore
from blockgen.crud.tables import ContentType, Post, PostStatus


logger = logging.getLogger(__name__)

GLOBAL_PARTIALS_KEY = "global_partials"


def _post_summary(post: Post) -> dict:
    return {"id": post.id, "title": post.title, "slug": post.slug}


class DependencyResolver:
    def __init__(self, store: PostStore, usage: PartialsUsageIndex, cache: ObjectCache, ttl: int = 600):
        self.store = store
        self.usage = usage
        self.cache = cache
        self.ttl = ttl

    def invalidate(self) -> None:
        self.cache.flush_group(GLOBAL_GROUP)

    def is_partial_global(self, partial_id: int) -> bool:
        return self.store.get_bool(partial_id, meta.SCSS_IS_GLOBAL)

    def detect_global_impact(self, post_id: int) -> bool:
        """True iff post_id is an SCSS partial flagged global."""
        post = self.store.get_post(post_id)
        if post is None or post.type != ContentType.scss_partial:
            return False
        return self.is_partial_global(post_id)

    def get_global_partials(self) -> list[Post]:
        """Published global partials in ascending globalOrder (ties by id). Cached."""
        if self.ttl > 0:
            cached = self.cache.get(GLOBAL_PARTIALS_KEY, GLOBAL_GROUP)
            if cached is not None:
                return cached

        partials = [
            p for p in self.store.query_posts(ContentType.scss_partial, PostStatus.publish)
            if self.is_partial_global(p.id)
        ]
        partials.sort(key=lambda p: (self.store.get_int(p.id, meta.SCSS_GLOBAL_ORDER, default=1), p.id))

        if self.ttl > 0:
            self.cache.set(GLOBAL_PARTIALS_KEY, partials, GLOBAL_GROUP, ttl=self.ttl)
        return partials

    def post_uses_global_partials(self, post_id: int) -> bool:
        """Whether the block explicitly lists any global partial in either slot."""
        selected = self.usage.get_partials_used_by_block(post_id)
        return any(self.is_partial_global(pid) for ids in selected.values() for pid in ids)

    def find_posts_using_global_partials(self) -> list[Post]:
        """Published blocks with an explicit edge to a global partial. For reporting, not for fan-out."""
        return [
            block for block in self.store.query_posts(ContentType.block, PostStatus.publish)
            if self.post_uses_global_partials(block.id)
        ]

    def affected_blocks(self, partial_id: int) -> list[int]:
        """Blocks whose compiled styles depend on partial_id: all published blocks for a global partial."""
        if self.is_partial_global(partial_id):
            return [b.id for b in self.store.query_posts(ContentType.block, PostStatus.publish)]
        return self.usage.get_blocks_using_partial(partial_id)

    def get_global_impact_stats(self) -> dict:
        global_partials = self.get_global_partials()
        affected = self.find_posts_using_global_partials()
        return {
            "global_partials_count": len(global_partials),
            "affected_posts_count": len(affected),
            "global_partials": [_post_summary(p) for p in global_partials],
            "affected_posts": [_post_summary(p) for p in affected],
        }

    def ordered_partials_for(self, block_id: int, slot: Slot) -> list[int]:
        """Compile-time include order: globals first, then the block's selected list as stored."""
        globals_ = [p.id for p in self.get_global_partials()]
        selected = self.usage.get_partials_used_by_block(block_id)[slot]
        return globals_ + [pid for pid in selected if pid not in globals_]
