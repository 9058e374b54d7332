"""Style recompilation scheduling.

SCSS is compiled outside this process. When a partial changes, the scheduler
clears the compiled CSS of every dependent block, raises the block's recompile
flag and leaves a short-lived work item for the compiler to notice. The
compiler later posts results back through complete_compilation, which is the
only thing that lowers the flag.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from blockgen.core import meta
from blockgen.core.cache import CacheInvalidator
from blockgen.core.dependencies import DependencyResolver
from blockgen.core.errors import CompilationError, NotFoundError, StoreWriteError
from blockgen.core.models import (
    BlockRecompileResult,
    CompilationPayload,
    CompilerInput,
    PendingRecompileWorkItem,
    RecompileFlag,
    RecompileSummary,
    Slot,
)
from blockgen.core.usage import PartialsUsageIndex
from blockgen.crud.store import PostStore
from blockgen.crud.tables import ContentType, PostStatus
from blockgen.crud.transients import TransientStore


logger = logging.getLogger(__name__)

PENDING_RECOMPILE_KEY = "blockgen_blocks_need_recompile"


class RecompilationScheduler:
    def __init__(
        self,
        store: PostStore,
        usage: PartialsUsageIndex,
        resolver: DependencyResolver,
        invalidator: CacheInvalidator,
        transients: TransientStore,
        pending_ttl: int = 300,
        clock: Callable[[], datetime] = datetime.now,
        ):
        self.store = store
        self.usage = usage
        self.resolver = resolver
        self.invalidator = invalidator
        self.transients = transients
        self.pending_ttl = pending_ttl
        self.clock = clock

    # --- triggers ---

    def recompile(self, partial_id: int) -> RecompileSummary:
        """Flag every block that explicitly selects partial_id in either slot."""
        try:
            block_ids = self.usage.get_blocks_using_partial(partial_id, Slot.style)
            for block_id in self.usage.get_blocks_using_partial(partial_id, Slot.editor_style):
                if block_id not in block_ids:
                    block_ids.append(block_id)
            return self._fan_out(partial_id, block_ids)
        except StoreWriteError as e:
            logger.error("Recompilation failed for partial %s: %s", partial_id, e)
            return RecompileSummary(success=False, partial_id=partial_id, error=str(e))

    def recompile_global(self, partial_id: int) -> RecompileSummary:
        """Flag every published block; used when a global partial changes."""
        try:
            block_ids = [b.id for b in self.store.query_posts(ContentType.block, PostStatus.publish)]
            return self._fan_out(partial_id, block_ids)
        except StoreWriteError as e:
            logger.error("Global recompilation failed for partial %s: %s", partial_id, e)
            return RecompileSummary(success=False, partial_id=partial_id, error=str(e))

    def recompile_affected(self, partial_id: int, was_global: bool | None = None) -> RecompileSummary:
        """Global fan-out for global partials, explicit-usage fan-out otherwise.

        was_global lets callers pass a flag captured before the partial was
        deleted or un-flagged.
        """
        is_global = self.resolver.is_partial_global(partial_id) if was_global is None else was_global
        if is_global:
            return self.recompile_global(partial_id)
        return self.recompile(partial_id)

    # --- internals ---

    def _fan_out(self, partial_id: int, block_ids: list[int]) -> RecompileSummary:
        if not block_ids:
            logger.info("Partial %s: no blocks affected", partial_id)
            return RecompileSummary(success=True, partial_id=partial_id, message="No blocks use this partial")

        payloads = self.build_compilation_payloads(block_ids)
        if not payloads:
            return RecompileSummary(
                success=True, partial_id=partial_id, blocks_affected=len(block_ids),
                message="No blocks have SCSS content to compile",
            )

        timestamp = self.clock()
        results = [self._mark_block(p, timestamp) for p in payloads]
        flagged = [r.post_id for r in results if r.success]
        failed = len(results) - len(flagged)

        if flagged:
            self._store_pending(partial_id, flagged, timestamp)

        logger.info(
            "Partial %s: %d block(s) affected, %d flagged for recompile, %d failed",
            partial_id, len(block_ids), len(flagged), failed,
        )
        return RecompileSummary(
            success=True,
            partial_id=partial_id,
            blocks_affected=len(block_ids),
            compilations_triggered=len(flagged),
            message="CSS cleared, marked for recompilation" + (f" ({failed} failed)" if failed else ""),
            results=results,
        )

    def build_compilation_payloads(self, block_ids: list[int]) -> list[CompilationPayload]:
        """One payload per published block that has SCSS in at least one slot."""
        payloads = []
        for block_id in block_ids:
            post = self.store.get_post(block_id)
            if post is None or post.status != PostStatus.publish:
                logger.debug("Skipping block %s: missing or not published", block_id)
                continue
            payload = CompilationPayload(
                post_id=block_id,
                scss_content=self.store.get_text(block_id, meta.BLOCK_SCSS) or None,
                editor_scss_content=self.store.get_text(block_id, meta.BLOCK_EDITOR_SCSS) or None,
            )
            if payload.slots():
                payloads.append(payload)
        return payloads

    def _mark_block(self, payload: CompilationPayload, timestamp: datetime) -> BlockRecompileResult:
        post_id = payload.post_id
        slots = payload.slots()
        try:
            for slot in slots:
                self.store.delete_meta(post_id, slot.css_key)
            self.store.set_meta(post_id, meta.SCSS_NEEDS_RECOMPILE, "1")
            self.store.set_meta(post_id, meta.SCSS_RECOMPILE_TIMESTAMP, timestamp.isoformat())
            self.invalidator.invalidate(post_id, ContentType.block)
        except StoreWriteError as e:
            logger.error("Error marking block %s for recompilation: %s", post_id, e)
            return BlockRecompileResult(post_id=post_id, success=False, error=str(e))
        return BlockRecompileResult(
            post_id=post_id,
            success=True,
            scss_cleared=Slot.style in slots,
            editor_scss_cleared=Slot.editor_style in slots,
        )

    def _store_pending(self, partial_id: int, block_ids: list[int], timestamp: datetime) -> None:
        item = PendingRecompileWorkItem(
            partial_id=partial_id,
            block_ids=list(dict.fromkeys(block_ids)),
            enqueued_at=timestamp,
        )
        self.transients.set(PENDING_RECOMPILE_KEY, item.model_dump(mode="json"), self.pending_ttl)

    # --- compiler-facing ---

    def pending_work_item(self) -> PendingRecompileWorkItem | None:
        raw = self.transients.get(PENDING_RECOMPILE_KEY)
        if raw is None:
            return None
        return PendingRecompileWorkItem.model_validate(raw)

    def needs_recompile(self, block_id: int) -> RecompileFlag | None:
        if not self.store.get_bool(block_id, meta.SCSS_NEEDS_RECOMPILE):
            return None
        raw = self.store.get_text(block_id, meta.SCSS_RECOMPILE_TIMESTAMP)
        try:
            timestamp = datetime.fromisoformat(raw)
        except ValueError:
            logger.warning("Block %s has an unreadable recompile timestamp %r", block_id, raw)
            timestamp = self.clock()
        return RecompileFlag(needs_recompile=True, timestamp=timestamp)

    def flagged_blocks(self) -> list[int]:
        """Published blocks whose recompile flag is raised. This, not the work item, is authoritative."""
        return [
            b.id for b in self.store.query_posts(ContentType.block, PostStatus.publish)
            if self.store.get_bool(b.id, meta.SCSS_NEEDS_RECOMPILE)
        ]

    def compilation_input(self, block_id: int, slot: Slot) -> CompilerInput:
        """SCSS source plus partial sources in include order. Missing partials contribute nothing."""
        if self.store.get_post(block_id) is None:
            raise NotFoundError(f"Block {block_id} not found")

        ordered, sources = [], []
        for pid in self.resolver.ordered_partials_for(block_id, slot):
            partial = self.store.get_post(pid)
            if partial is None or partial.type != ContentType.scss_partial or partial.status != PostStatus.publish:
                logger.debug("Block %s references unavailable partial %s", block_id, pid)
                continue
            ordered.append(pid)
            sources.append(self.store.get_text(pid, meta.SCSS_PARTIAL_SCSS))

        return CompilerInput(
            post_id=block_id,
            slot=slot,
            scss_source=self.store.get_text(block_id, slot.scss_key),
            ordered_partials=ordered,
            partial_sources=sources,
        )

    def complete_compilation(self, block_id: int, slot: Slot, css: str) -> RecompileFlag | None:
        """Store compiled CSS. The flag is deleted once no SCSS slot is still missing its CSS.

        Returns the remaining flag, or None when the block is fully compiled.
        """
        if self.store.get_post(block_id) is None:
            raise NotFoundError(f"Block {block_id} not found")

        self.store.set_meta(block_id, slot.css_key, css)
        self.store.set_meta(block_id, slot.compiled_at_key, self.clock().isoformat())
        self.store.delete_meta(block_id, meta.SCSS_COMPILE_ERROR)

        outstanding = [
            s for s in Slot
            if self.store.has_meta(block_id, s.scss_key) and not self.store.has_meta(block_id, s.css_key)
        ]
        if not outstanding:
            self.store.delete_meta(block_id, meta.SCSS_NEEDS_RECOMPILE)
            self.store.delete_meta(block_id, meta.SCSS_RECOMPILE_TIMESTAMP)
        self.invalidator.invalidate(block_id, ContentType.block)
        return self.needs_recompile(block_id)

    def record_compilation_error(self, error: CompilationError) -> None:
        """Keep the failure visible and leave the block flagged so the next trigger retries it."""
        if self.store.get_post(error.post_id) is None:
            raise NotFoundError(f"Block {error.post_id} not found")
        logger.error("SCSS compilation failed: %s", error.describe())
        self.store.set_meta(error.post_id, meta.SCSS_COMPILE_ERROR, error.to_dict())
        if not self.store.get_bool(error.post_id, meta.SCSS_NEEDS_RECOMPILE):
            self.store.set_meta(error.post_id, meta.SCSS_NEEDS_RECOMPILE, "1")
            self.store.set_meta(error.post_id, meta.SCSS_RECOMPILE_TIMESTAMP, self.clock().isoformat())
        self.invalidator.invalidate(error.post_id, ContentType.block)

    def last_compilation_error(self, block_id: int) -> dict | None:
        return self.store.get_json_object(block_id, meta.SCSS_COMPILE_ERROR) or None
