"""Single-post generation: run a post's generators into its output directory"""

from __future__ import annotations

import logging
from pathlib import Path

from blockgen.core.directories import SCSS_DIR, SYMBOLS_DIR, DirectoryManager
from blockgen.core.generators.base import GenerationContext, Generator, GeneratorRegistry
from blockgen.core.models import GenerationReport
from blockgen.crud.tables import ContentType, Post, PostStatus


logger = logging.getLogger(__name__)

MANAGED_TYPES = frozenset(ContentType)


class ContentTypeProcessor:
    def __init__(self, registry: GeneratorRegistry, directories: DirectoryManager, ctx: GenerationContext):
        self.registry = registry
        self.directories = directories
        self.ctx = ctx

    def _type_directory(self, post: Post) -> str:
        return SYMBOLS_DIR if post.type == ContentType.symbol else SCSS_DIR

    def output_path(self, post: Post) -> Path:
        """Blocks get their own directory; symbols and partials share one per type.

        Raises ValueError for a slug that cannot name a file inside the root.
        """
        if post.type == ContentType.block:
            return self.directories.block_directory(post.slug)
        self.directories.check_slug(post.slug)
        return self.directories.ensure_subdirectory(self._type_directory(post))

    def output_files(self, post: Post) -> list[Path]:
        """Every path the post's generators could write, without touching the filesystem."""
        if post.type == ContentType.block:
            base = self.directories.block_path(post.slug)
        else:
            self.directories.check_slug(post.slug)
            base = self.directories.base_dir / self._type_directory(post)
        paths = [base / g.file_name(post) for g in self.registry.for_content_type(post.type)]
        return [p for p in paths if self.directories.contains(p)]

    def _run(self, generator: Generator, post: Post, output_path: Path) -> str:
        """One generator for one post: 'generated', 'skipped' or 'failed'."""
        target = output_path / generator.file_name(post)
        if not self.directories.contains(target):
            logger.error("Generator %s refused to write %s: outside %s", generator.name, target, self.directories.base_dir)
            return "failed"
        try:
            if not generator.validate(post, self.ctx):
                logger.debug("Generator %s skipped post %s", generator.name, post.id)
                return "skipped"
            if generator.generate(post, output_path, self.ctx):
                return "generated"
        except Exception:
            logger.exception("Generator %s raised for post %s", generator.name, post.id)
            return "failed"
        logger.warning("Generator %s failed for post %s", generator.name, post.id)
        return "failed"

    def process_content_type(self, post: Post) -> GenerationReport:
        """Run every applicable generator in registry order.

        Generators that fail validation are skipped; one that fails to write,
        or raises, is recorded and the rest still run.
        """
        report = GenerationReport(post_id=post.id, content_type=post.type.value)
        if post.type not in MANAGED_TYPES or post.status != PostStatus.publish:
            logger.debug("Post %s (%s, %s) is not generated", post.id, post.type, post.status)
            return report

        try:
            output_path = self.output_path(post)
        except (ValueError, OSError) as e:
            logger.error("Cannot prepare output directory for post %s: %s", post.id, e)
            report.failed.append("directory")
            return report
        report.output_path = str(output_path)

        for generator in self.registry.for_content_type(post.type):
            getattr(report, self._run(generator, post, output_path)).append(generator.name)

        logger.info(
            "Post %s: %d generated, %d skipped, %d failed",
            post.id, len(report.generated), len(report.skipped), len(report.failed),
        )
        return report
