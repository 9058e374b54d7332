"""Generator contract, explicit generation context, and the content-type registry"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from blockgen.crud.store import PostStore
from blockgen.crud.tables import ContentType, Post


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationContext:
    """Everything a generator may read, passed explicitly on each call."""
    store: PostStore
    namespace: str = "blockgen"


class Generator(ABC):
    """Produces one output file from a post's current metadata.

    Generators are pure functions of that metadata plus files written earlier
    in the same pass, so running one twice yields identical bytes.
    """
    name: str = ""
    content_types: frozenset[ContentType] = frozenset()

    def can_generate(self, content_type: ContentType) -> bool:
        return content_type in self.content_types

    def validate(self, post: Post, ctx: GenerationContext) -> bool:
        """False skips generation for this post."""
        return True

    @abstractmethod
    def file_name(self, post: Post) -> str:
        raise NotImplementedError

    @abstractmethod
    def generate(self, post: Post, output_path: Path, ctx: GenerationContext) -> bool:
        """Write (or remove) the file under output_path. False signals failure."""
        raise NotImplementedError


def _unchanged(path: Path, content: str) -> bool:
    try:
        return path.is_file() and path.read_text(encoding="utf-8") == content
    except (OSError, UnicodeDecodeError):
        return False


def write_file(path: Path, content: str) -> bool:
    """Write content unless the file already holds exactly that text."""
    try:
        if _unchanged(path, content):
            logger.debug("Unchanged %s", path)
            return True
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        logger.error("Failed to write %s: %s", path, e)
        return False
    logger.debug("Wrote %s (%d chars)", path, len(content))
    return True


def remove_file(path: Path) -> bool:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.error("Failed to remove %s: %s", path, e)
        return False
    return True


class GeneratorRegistry:
    """Maps each content type to its ordered generators; built once at startup."""

    def __init__(self, generators: list[Generator]):
        self.generators = list(generators)
        self._by_type: dict[ContentType, list[Generator]] = {
            ct: [g for g in self.generators if g.can_generate(ct)] for ct in ContentType
        }

    def for_content_type(self, content_type: ContentType) -> list[Generator]:
        return list(self._by_type.get(content_type, []))

    def mapping(self) -> dict[str, list[str]]:
        return {ct.value: [g.name for g in gens] for ct, gens in self._by_type.items()}

    @classmethod
    def default(cls) -> "GeneratorRegistry":
        from blockgen.core.generators.blocks import (
            BlockJsonGenerator, IndexAssetGenerator, IndexJsGenerator,
            RenderGenerator, StyleGenerator, ViewGenerator,
        )
        from blockgen.core.generators.symbols import ScssPartialGenerator, SymbolGenerator
        from blockgen.core.models import Slot

        # Order matters: block.json and index.js inspect render.php, index.asset.php hashes index.js.
        return cls([
            RenderGenerator(),
            ViewGenerator(),
            StyleGenerator(Slot.style),
            StyleGenerator(Slot.editor_style),
            BlockJsonGenerator(),
            IndexJsGenerator(),
            IndexAssetGenerator(),
            SymbolGenerator(),
            ScssPartialGenerator(),
        ])
