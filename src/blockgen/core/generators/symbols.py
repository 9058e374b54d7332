"""Single-file generators for symbols and SCSS partials"""

from __future__ import annotations

from pathlib import Path

from blockgen.core import meta
from blockgen.core.generators.base import GenerationContext, Generator, write_file
from blockgen.crud.tables import ContentType, Post


class SymbolGenerator(Generator):
    """symbols/<slug>.php"""
    name = "symbol"
    content_types = frozenset({ContentType.symbol})

    def validate(self, post: Post, ctx: GenerationContext) -> bool:
        return bool(ctx.store.get_text(post.id, meta.SYMBOL_PHP).strip())

    def file_name(self, post: Post) -> str:
        return f"{post.slug}.php"

    def generate(self, post: Post, output_path: Path, ctx: GenerationContext) -> bool:
        php = ctx.store.get_text(post.id, meta.SYMBOL_PHP)
        if not php.lstrip().startswith("<?php"):
            php = "<?php\n" + php
        return write_file(output_path / self.file_name(post), php)


class ScssPartialGenerator(Generator):
    """scss/_<slug>.scss, importable by name from other stylesheets."""
    name = "scss_partial"
    content_types = frozenset({ContentType.scss_partial})

    def file_name(self, post: Post) -> str:
        return f"_{post.slug}.scss"

    def generate(self, post: Post, output_path: Path, ctx: GenerationContext) -> bool:
        scss = ctx.store.get_text(post.id, meta.SCSS_PARTIAL_SCSS)
        return write_file(output_path / self.file_name(post), scss)
