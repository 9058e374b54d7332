"""Value objects passed between the usage index, scheduler, and coordinator"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from blockgen.core import meta


class Slot(str, Enum):
    """The two independent compiled-CSS outputs a block can have"""
    style = "style"
    editor_style = "editorStyle"

    @property
    def scss_key(self) -> str:
        return meta.BLOCK_SCSS if self is Slot.style else meta.BLOCK_EDITOR_SCSS

    @property
    def css_key(self) -> str:
        return meta.CSS_CONTENT if self is Slot.style else meta.EDITOR_CSS_CONTENT

    @property
    def compiled_at_key(self) -> str:
        return meta.CSS_COMPILED_AT if self is Slot.style else meta.EDITOR_CSS_COMPILED_AT

    @property
    def selected_key(self) -> str:
        return meta.BLOCK_SELECTED_PARTIALS if self is Slot.style else meta.BLOCK_EDITOR_SELECTED_PARTIALS


class PartialUsageEntry(BaseModel):
    """One edge of the partial -> block usage graph. Derived, never persisted."""
    partial_id: int
    block_id: int
    slot: Slot
    position: int                   # index within the block's stored list


class RecompileFlag(BaseModel):
    needs_recompile: bool = True
    timestamp: datetime


class PendingRecompileWorkItem(BaseModel):
    """Hint for the browser compiler; the per-block RecompileFlag is authoritative."""
    partial_id: int
    block_ids: list[int]            # unique, in discovery order
    enqueued_at: datetime


class CompilationPayload(BaseModel):
    """Per-block compile job: whichever SCSS slots are non-empty."""
    post_id: int
    scss_content: Optional[str] = None
    editor_scss_content: Optional[str] = None

    def slots(self) -> list[Slot]:
        out = []
        if self.scss_content:
            out.append(Slot.style)
        if self.editor_scss_content:
            out.append(Slot.editor_style)
        return out


class BlockRecompileResult(BaseModel):
    post_id: int
    success: bool
    scss_cleared: bool = False
    editor_scss_cleared: bool = False
    error: Optional[str] = None


class RecompileSummary(BaseModel):
    success: bool
    partial_id: int
    blocks_affected: int = 0
    compilations_triggered: int = 0
    message: str = ""
    error: Optional[str] = None
    results: list[BlockRecompileResult] = Field(default_factory=list)

    def public(self) -> dict[str, Any]:
        """The response shape exposed to the admin UI."""
        return self.model_dump(mode="json", exclude={"results"})


class CompilerInput(BaseModel):
    """What the external compiler needs: the block's SCSS and partial sources in include order."""
    post_id: int
    slot: Slot
    scss_source: str
    ordered_partials: list[int]
    partial_sources: list[str]


@dataclass
class GenerationReport:
    """Outcome of running the generators for one post."""
    post_id: int
    content_type: str
    output_path: Optional[str] = None
    generated: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class RenderContext(BaseModel):
    """Variables a render.php template receives, passed explicitly rather than through globals."""
    attributes: dict[str, Any] = Field(default_factory=dict)
    content: str = ""
    block_instance: dict[str, Any] = Field(default_factory=dict)


@dataclass
class SaveOutcome:
    """What a save/rename/delete event caused."""
    post_id: int
    reports: list[GenerationReport] = field(default_factory=list)
    recompile: Optional[RecompileSummary] = None
    full_regeneration: bool = False
    skipped: bool = False
