"""Generation coordinator: reacts to post save, rename and delete events.

Each event is evaluated as a small decision tree. A save regenerates the one
post (and, for partials, fans out to the dependent blocks). A rename or a
delete wipes the generated-files root and rebuilds everything, since output
directories are keyed by slug and a stale one would otherwise be orphaned.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from sqlmodel import Session

from blockgen.config import Settings
from blockgen.core import meta
from blockgen.core.cache import CacheInvalidator, ObjectCache
from blockgen.core.dependencies import DependencyResolver
from blockgen.core.directories import DirectoryManager
from blockgen.core.errors import NotFoundError, ReentrantGenerationError
from blockgen.core.generators.base import GenerationContext, GeneratorRegistry, remove_file
from blockgen.core.models import GenerationReport, SaveOutcome
from blockgen.core.processor import MANAGED_TYPES, ContentTypeProcessor
from blockgen.core.recompile import RecompilationScheduler
from blockgen.core.usage import PartialsUsageIndex
from blockgen.crud.store import PostStore, SQLPostStore
from blockgen.crud.tables import ContentType, Post, PostStatus
from blockgen.crud.transients import SQLTransientStore, TransientStore


logger = logging.getLogger(__name__)


class GenerationCoordinator:
    def __init__(
        self,
        store: PostStore,
        processor: ContentTypeProcessor,
        usage: PartialsUsageIndex,
        resolver: DependencyResolver,
        scheduler: RecompilationScheduler,
        ):
        self.store = store
        self.processor = processor
        self.directories = processor.directories
        self.usage = usage
        self.resolver = resolver
        self.scheduler = scheduler
        self.invalidator = scheduler.invalidator
        self._generating = False

    # --- re-entrancy ---

    @property
    def generating(self) -> bool:
        return self._generating

    @contextmanager
    def generation_guard(self) -> Iterator[None]:
        """Hold the generation-in-progress flag; nesting raises ReentrantGenerationError."""
        if self._generating:
            raise ReentrantGenerationError("A generation pass is already running")
        self._generating = True
        try:
            yield
        finally:
            self._generating = False

    def _managed_post(self, post_id: int) -> Post | None:
        post = self.store.get_post(post_id)
        if post is None:
            logger.warning("Post %s not found; nothing to generate", post_id)
            return None
        if post.type not in MANAGED_TYPES:
            logger.debug("Ignoring unmanaged post %s of type %s", post_id, post.type)
            return None
        return post

    def _global_transition(self, partial_id: int) -> bool:
        """True when the partial is global now or was at its last save.

        A partial that just lost its global flag still has to reach every
        block that included it implicitly. The current flag is recorded for
        the next save.
        """
        is_global = self.resolver.is_partial_global(partial_id)
        was_global = self.store.get_bool(partial_id, meta.SCSS_WAS_GLOBAL)
        if is_global != was_global:
            if is_global:
                self.store.set_meta(partial_id, meta.SCSS_WAS_GLOBAL, "1")
            else:
                self.store.delete_meta(partial_id, meta.SCSS_WAS_GLOBAL)
        return is_global or was_global

    # --- events ---

    def handle_post_save(self, post_id: int) -> SaveOutcome:
        """Single-post generation, then the partial fan-out when the post is a partial.

        Events raised while a pass is already running (a generator writing
        metadata, say) are skipped rather than nested.
        """
        outcome = SaveOutcome(post_id=post_id)
        if self._generating:
            logger.debug("Skipping save of post %s: generation already in progress", post_id)
            outcome.skipped = True
            return outcome
        post = self._managed_post(post_id)
        if post is None:
            outcome.skipped = True
            return outcome

        with self.generation_guard():
            self.invalidator.invalidate(post.id, post.type)

            if post.status != PostStatus.publish:
                self.cleanup_files_for_single_post(post)
            else:
                outcome.reports.append(self.processor.process_content_type(post))

            if post.type == ContentType.scss_partial:
                outcome.recompile = self.scheduler.recompile_affected(post.id, was_global=self._global_transition(post.id))
                outcome.reports.extend(self._regenerate_blocks(
                    [r.post_id for r in outcome.recompile.results if r.success]
                ))
        return outcome

    def handle_post_rename(self, post_id: int, old_slug: str) -> SaveOutcome:
        """Full regeneration when the slug actually changed, a plain save otherwise."""
        post = self._managed_post(post_id)
        if post is None:
            return SaveOutcome(post_id=post_id, skipped=True)
        if post.slug == old_slug:
            return self.handle_post_save(post_id)
        if self._generating:
            logger.debug("Skipping rename of post %s: generation already in progress", post_id)
            return SaveOutcome(post_id=post_id, skipped=True)

        logger.info("Post %s renamed from '%s' to '%s'; regenerating everything", post_id, old_slug, post.slug)
        with self.generation_guard():
            reports = self._regenerate_all()
        return SaveOutcome(post_id=post_id, reports=reports, full_regeneration=True)

    def handle_post_deletion(self, post_id: int, purge: bool = True) -> SaveOutcome:
        """Remove (or trash) a post, fan out if it was a partial, then rebuild everything.

        A deleted partial's contribution disappears from every block it fed, so
        the dependents are flagged before the partial is scrubbed from their
        usage lists.
        """
        post = self._managed_post(post_id)
        if post is None:
            raise NotFoundError(f"Post {post_id} not found")
        if self._generating:
            logger.debug("Skipping deletion of post %s: generation already in progress", post_id)
            return SaveOutcome(post_id=post_id, skipped=True)

        outcome = SaveOutcome(post_id=post_id, full_regeneration=True)
        with self.generation_guard():
            if post.type == ContentType.scss_partial:
                was_global = self._global_transition(post_id)
                outcome.recompile = self.scheduler.recompile_affected(post_id, was_global=was_global)
                self.usage.delete_partial_usage(post_id)
            elif post.type == ContentType.block:
                self.usage.delete_block_usage(post_id)

            if purge:
                self.store.delete_post(post_id)
            else:
                self.store.update_post(post_id, status=PostStatus.trash)
            self.invalidator.invalidate(post_id, post.type)

            outcome.reports = self._regenerate_all()
        return outcome

    def regenerate_all(self) -> list[GenerationReport]:
        with self.generation_guard():
            return self._regenerate_all()

    # --- internals ---

    def _regenerate_all(self) -> list[GenerationReport]:
        """Wipe the root, recreate it, and generate every published managed post."""
        self.directories.cleanup_all()
        self.directories.ensure_base_directory()
        posts = [p for p in self.store.query_posts(status=PostStatus.publish) if p.type in MANAGED_TYPES]
        reports = [self.processor.process_content_type(p) for p in posts]
        failed = sum(1 for r in reports if not r.ok)
        logger.info("Full regeneration: %d post(s), %d with failures", len(reports), failed)
        return reports

    def _regenerate_blocks(self, block_ids: list[int]) -> list[GenerationReport]:
        reports = []
        for post in self.store.query_posts(ContentType.block, PostStatus.publish, ids=block_ids):
            reports.append(self.processor.process_content_type(post))
        return reports

    def cleanup_files_for_single_post(self, post: Post) -> bool:
        """Remove what generation wrote for one post. True when nothing is left behind."""
        try:
            if post.type == ContentType.block:
                return self.directories.delete_directory(self.directories.block_path(post.slug))
            paths = self.processor.output_files(post)
        except ValueError as e:
            logger.error("Cannot clean up post %s: %s", post.id, e)
            return False
        return all(remove_file(path) for path in paths)


@dataclass
class Services:
    """Everything wired together over one store. Built per session."""
    store: PostStore
    transients: TransientStore
    cache: ObjectCache
    invalidator: CacheInvalidator
    usage: PartialsUsageIndex
    resolver: DependencyResolver
    scheduler: RecompilationScheduler
    processor: ContentTypeProcessor
    coordinator: GenerationCoordinator


def build_services(
    settings: Settings,
    store: PostStore,
    transients: TransientStore,
    cache: ObjectCache | None = None,
    registry: GeneratorRegistry | None = None,
    ) -> Services:
    cache = cache if cache is not None else ObjectCache()
    invalidator = CacheInvalidator(cache)
    usage = PartialsUsageIndex(store, cache, ttl=settings.usage_cache_ttl)
    resolver = DependencyResolver(store, usage, cache, ttl=settings.usage_cache_ttl)
    scheduler = RecompilationScheduler(
        store, usage, resolver, invalidator, transients, pending_ttl=settings.pending_ttl,
    )
    processor = ContentTypeProcessor(
        registry or GeneratorRegistry.default(),
        DirectoryManager(Path(settings.output_dir)),
        GenerationContext(store=store, namespace=settings.namespace),
    )
    coordinator = GenerationCoordinator(store, processor, usage, resolver, scheduler)
    return Services(store, transients, cache, invalidator, usage, resolver, scheduler, processor, coordinator)


def build_sql_services(settings: Settings, session: Session, cache: ObjectCache | None = None) -> Services:
    return build_services(settings, SQLPostStore(session), SQLTransientStore(session), cache=cache)
