"""Partial usage index: which blocks use partial P in slot S.

There is no persisted junction table. The index is rebuilt from every
published block's selected-partials lists and the scan is cached for a short
TTL; any write to a selected-partials list goes through this module so the
cached scan can be dropped.
"""

from __future__ import annotations

import logging

from blockgen.core.cache import USAGE_GROUP, ObjectCache
from blockgen.core.models import PartialUsageEntry, Slot
from blockgen.crud.store import PostStore
from blockgen.crud.tables import ContentType, PostStatus


logger = logging.getLogger(__name__)

SCAN_KEY = "all_blocks"

BlockUsage = dict[int, dict[Slot, list[int]]]


def _validate_id(post_id: int) -> int:
    if isinstance(post_id, bool) or not isinstance(post_id, int) or post_id <= 0:
        raise ValueError(f"Post ID must be a positive integer, got: {post_id!r}")
    return post_id


def _clean_ids(ids) -> list[int]:
    out: list[int] = []
    for raw in ids or []:
        try:
            pid = int(raw)
        except (TypeError, ValueError):
            continue
        if pid > 0 and pid not in out:
            out.append(pid)
    return out


class PartialsUsageIndex:
    def __init__(self, store: PostStore, cache: ObjectCache, ttl: int = 600):
        self.store = store
        self.cache = cache
        self.ttl = ttl

    def invalidate(self) -> None:
        """Drop the cached scan; the next query rescans every block."""
        self.cache.flush_group(USAGE_GROUP)

    def _scan(self) -> BlockUsage:
        if self.ttl > 0:
            cached = self.cache.get(SCAN_KEY, USAGE_GROUP)
            if cached is not None:
                return cached

        usage: BlockUsage = {}
        for block in self.store.query_posts(ContentType.block, PostStatus.publish):
            usage[block.id] = {
                slot: self.store.get_id_list(block.id, slot.selected_key) for slot in Slot
            }
        logger.debug("Scanned partial usage for %d published blocks", len(usage))

        if self.ttl > 0:
            self.cache.set(SCAN_KEY, usage, USAGE_GROUP, ttl=self.ttl)
        return usage

    def usage_entries(self) -> list[PartialUsageEntry]:
        """Every (partial, block, slot) edge, in block id then stored-list order."""
        return [
            PartialUsageEntry(partial_id=pid, block_id=block_id, slot=slot, position=i)
            for block_id, slots in self._scan().items()
            for slot, ids in slots.items()
            for i, pid in enumerate(ids)
        ]

    def get_blocks_using_partial(self, partial_id: int, slot: Slot | None = None) -> list[int]:
        """Published block ids referencing partial_id in slot (either slot when None), ascending."""
        _validate_id(partial_id)
        slots = [slot] if slot is not None else list(Slot)
        return [
            block_id for block_id, lists in self._scan().items()
            if any(partial_id in lists[s] for s in slots)
        ]

    def get_partials_used_by_block(self, block_id: int) -> dict[Slot, list[int]]:
        """Selected partials per slot in stored order. Read fresh from the store."""
        _validate_id(block_id)
        return {slot: self.store.get_id_list(block_id, slot.selected_key) for slot in Slot}

    def get_partial_usage_stats(self, partial_id: int) -> dict[str, int]:
        style = len(self.get_blocks_using_partial(partial_id, Slot.style))
        editor = len(self.get_blocks_using_partial(partial_id, Slot.editor_style))
        return {Slot.style.value: style, Slot.editor_style.value: editor, "total": style + editor}

    def sync_block_partials(self, block_id: int, style: list | None = None, editor_style: list | None = None) -> None:
        """Replace a block's selected lists. Order is kept; non-positive and duplicate ids are dropped."""
        _validate_id(block_id)
        self.store.set_meta(block_id, Slot.style.selected_key, _clean_ids(style))
        self.store.set_meta(block_id, Slot.editor_style.selected_key, _clean_ids(editor_style))
        self.invalidate()

    def delete_block_usage(self, block_id: int) -> None:
        _validate_id(block_id)
        for slot in Slot:
            self.store.delete_meta(block_id, slot.selected_key)
        self.invalidate()

    def delete_partial_usage(self, partial_id: int) -> int:
        """Remove partial_id from every block's lists, any status. Returns the number of blocks changed."""
        _validate_id(partial_id)
        changed = 0
        for block in self.store.query_posts(ContentType.block, status=None):
            touched = False
            for slot in Slot:
                ids = self.store.get_id_list(block.id, slot.selected_key)
                if partial_id in ids:
                    self.store.set_meta(block.id, slot.selected_key, [i for i in ids if i != partial_id])
                    touched = True
            changed += touched
        if changed:
            logger.info("Removed partial %s from %d block(s)", partial_id, changed)
        self.invalidate()
        return changed
