"""HTTP surface for the admin UI and the browser-side SCSS compiler.

Routes
------
POST /recompile/{partial_id}              Flag every block depending on a partial
GET  /recompile/pending                   Pending work item + flagged blocks
POST /regenerate                          Wipe and rebuild every generated file
POST /compiled/{block_id}                 Compiler write-back (CSS or an error)
GET  /blocks/{block_id}/compile-input     SCSS and partial sources in include order
POST /blocks/{block_id}/render-context    Explicit render-time inputs for a block
GET  /stats/global                        Global-partial impact
GET  /partials/{partial_id}/usage         Per-slot usage counts for one partial
"""

from __future__ import annotations

from typing import Any, Iterator, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, model_validator
from sqlmodel import Session

from blockgen.core.coordinator import Services, build_sql_services
from blockgen.core.errors import CompilationError, NotFoundError
from blockgen.core.generators.blocks import render_context
from blockgen.core.models import Slot
from blockgen.crud.tables import ContentType


router = APIRouter()


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class CompiledResult(BaseModel):
    slot: Slot
    css: Optional[str] = None
    error: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None

    @model_validator(mode="after")
    def _css_or_error(self) -> "CompiledResult":
        if (self.css is None) == (self.error is None):
            raise ValueError("Provide exactly one of 'css' or 'error'")
        return self


class RenderRequest(BaseModel):
    attributes: dict[str, Any] = {}
    content: str = ""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def get_services(request: Request) -> Iterator[Services]:
    state = request.app.state
    with Session(state.engine) as session:
        yield build_sql_services(state.settings, session, cache=state.cache)


def _require(services: Services, post_id: int, content_type: ContentType):
    post = services.store.get_post(post_id)
    if post is None or post.type != content_type:
        raise HTTPException(status_code=404, detail=f"{content_type.value} not found: {post_id}")
    return post


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/recompile/{partial_id}")
def recompile(partial_id: int, services: Services = Depends(get_services)) -> dict[str, Any]:
    """Flag every block that depends on partial_id (all blocks when it is global)."""
    _require(services, partial_id, ContentType.scss_partial)
    summary = services.scheduler.recompile_affected(partial_id)
    if not summary.success:
        raise HTTPException(status_code=500, detail=summary.public())
    return summary.public()


@router.get("/recompile/pending")
def pending(services: Services = Depends(get_services)) -> dict[str, Any]:
    item = services.scheduler.pending_work_item()
    return {
        "work_item": item.model_dump(mode="json") if item else None,
        "flagged_blocks": services.scheduler.flagged_blocks(),
    }


@router.post("/regenerate")
def regenerate(services: Services = Depends(get_services)) -> dict[str, Any]:
    reports = services.coordinator.regenerate_all()
    failed = [r.post_id for r in reports if not r.ok]
    return {"success": not failed, "posts": len(reports), "failed": failed}


@router.post("/compiled/{block_id}")
def compiled(block_id: int, body: CompiledResult, services: Services = Depends(get_services)) -> dict[str, Any]:
    """Store the compiler's output for one slot and refresh the block's files."""
    _require(services, block_id, ContentType.block)
    scheduler = services.scheduler
    try:
        if body.error is not None:
            error = CompilationError(block_id, body.slot.value, body.error, body.line, body.column)
            scheduler.record_compilation_error(error)
            return {"success": False, "error": error.describe(), "needs_recompile": True}
        flag = scheduler.complete_compilation(block_id, body.slot, body.css)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e

    services.coordinator.handle_post_save(block_id)
    return {"success": True, "needs_recompile": flag is not None}


@router.get("/blocks/{block_id}/compile-input")
def compile_input(block_id: int, slot: Slot = Slot.style, services: Services = Depends(get_services)) -> dict[str, Any]:
    _require(services, block_id, ContentType.block)
    return services.scheduler.compilation_input(block_id, slot).model_dump(mode="json")


@router.post("/blocks/{block_id}/render-context")
def block_render_context(
    block_id: int,
    body: Optional[RenderRequest] = None,
    services: Services = Depends(get_services),
    ) -> dict[str, Any]:
    post = _require(services, block_id, ContentType.block)
    body = body or RenderRequest()
    ctx = services.processor.ctx
    return render_context(post, ctx, body.attributes, body.content).model_dump(mode="json")


@router.get("/stats/global")
def global_stats(services: Services = Depends(get_services)) -> dict[str, Any]:
    return services.resolver.get_global_impact_stats()


@router.get("/partials/{partial_id}/usage")
def partial_usage(partial_id: int, services: Services = Depends(get_services)) -> dict[str, int]:
    _require(services, partial_id, ContentType.scss_partial)
    return services.usage.get_partial_usage_stats(partial_id)
