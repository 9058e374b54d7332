"""Generators for the per-block file set"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from blockgen.core import meta
from blockgen.core.errors import MalformedDataError
from blockgen.core.generators.base import GenerationContext, Generator, remove_file, write_file
from blockgen.core.models import RenderContext, Slot
from blockgen.core.utils.hashing import sha256
from blockgen.crud.tables import ContentType, Post


logger = logging.getLogger(__name__)

BLOCK_SCHEMA = "https://schemas.wp.org/trunk/block.json"
API_VERSION = 3

ASSET_DEPENDENCIES = [
    "wp-block-editor",
    "wp-blocks",
    "wp-element",
    "wp-i18n",
    "wp-server-side-render",
    "blockgen-block-renderer",
]

# attribute control type -> block.json attribute type
ATTRIBUTE_TYPES = {
    "text": "string",
    "textarea": "string",
    "richtext": "string",
    "select": "string",
    "radio": "string",
    "color": "string",
    "date": "string",
    "number": "number",
    "range": "number",
    "toggle": "boolean",
    "checkbox": "boolean",
    "image": "object",
    "link": "object",
}

_BLOCKS = frozenset({ContentType.block})


def _settings(post: Post, ctx: GenerationContext) -> dict:
    return ctx.store.get_json_object(post.id, meta.BLOCK_SETTINGS)


def _names(settings: dict, key: str, post: Post) -> list[str]:
    """Non-empty strings from a list setting; anything that is not a list reads as empty."""
    value = settings.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        logger.warning("Block %s setting %r should be a list, got %s; ignoring it", post.id, key, type(value).__name__)
        return []
    return [v for v in value if isinstance(v, str) and v]


def _uses_inner_blocks(settings: dict, output_path: Path) -> bool:
    if meta.as_bool(settings.get("supports_inner_blocks")):
        return True
    render = output_path / RenderGenerator.FILE
    return render.exists() and "<innerblocks" in render.read_text(encoding="utf-8").lower()


def attribute_schema(post: Post, ctx: GenerationContext) -> dict[str, dict[str, Any]]:
    """block.json attributes from the stored attribute list (or name-keyed object)."""
    raw = ctx.store.get_meta(post.id, meta.BLOCK_ATTRIBUTES)
    if meta.is_empty(raw):
        return {}
    try:
        decoded = meta.decode_json(raw)
    except MalformedDataError as e:
        logger.warning("Ignoring malformed attributes on block %s: %s", post.id, e)
        return {}

    if isinstance(decoded, dict):
        items = [{"name": k, **(v if isinstance(v, dict) else {})} for k, v in decoded.items()]
    elif isinstance(decoded, list):
        items = [a for a in decoded if isinstance(a, dict)]
    else:
        return {}

    schema: dict[str, dict[str, Any]] = {}
    for attr in items:
        name = str(attr.get("name") or "").strip()
        if not name:
            continue
        entry: dict[str, Any] = {"type": ATTRIBUTE_TYPES.get(str(attr.get("type", "text")).lower(), "string")}
        if "default" in attr:
            entry["default"] = attr["default"]
        schema[name] = entry
    return schema


def render_context(post: Post, ctx: GenerationContext, attributes: dict | None = None,
                   content: str = "") -> RenderContext:
    """Explicit render-time inputs for a block: defaults overlaid with the given attributes."""
    values = {name: definition["default"] for name, definition in attribute_schema(post, ctx).items() if "default" in definition}
    values.update(attributes or {})
    return RenderContext(
        attributes=values,
        content=content,
        block_instance={"name": f"{ctx.namespace}/{post.slug}", "id": post.id},
    )


class RenderGenerator(Generator):
    """render.php: the block's PHP template behind a header naming its explicit inputs."""
    name = "render"
    content_types = _BLOCKS
    FILE = "render.php"

    HEADER = (
        "<?php\n"
        "/**\n"
        " * Render template for {name}.\n"
        " *\n"
        " * @var array    $attributes Block attributes.\n"
        " * @var string   $content    Inner block markup.\n"
        " * @var WP_Block $block      Block instance.\n"
        " */\n"
        "?>\n"
    )

    def file_name(self, post: Post) -> str:
        return self.FILE

    def generate(self, post: Post, output_path: Path, ctx: GenerationContext) -> bool:
        php = ctx.store.get_text(post.id, meta.BLOCK_PHP)
        path = output_path / self.file_name(post)
        if not php.strip():
            return remove_file(path)
        header = self.HEADER.format(name=f"{ctx.namespace}/{post.slug}")
        return write_file(path, header + php.rstrip("\n") + "\n")


class ViewGenerator(Generator):
    name = "view"
    content_types = _BLOCKS

    def file_name(self, post: Post) -> str:
        return "view.js"

    def generate(self, post: Post, output_path: Path, ctx: GenerationContext) -> bool:
        js = ctx.store.get_text(post.id, meta.BLOCK_JS)
        path = output_path / self.file_name(post)
        if not js.strip():
            return remove_file(path)
        return write_file(path, js)


class StyleGenerator(Generator):
    """style.css / editor.css plus a source map.

    Compiled CSS wins; while a block is waiting on the compiler its raw SCSS
    is written instead. Both files are removed when the slot has neither.
    """
    content_types = _BLOCKS

    def __init__(self, slot: Slot):
        self.slot = slot
        self.name = "css" if slot is Slot.style else "editor_css"

    def file_name(self, post: Post) -> str:
        return "style.css" if self.slot is Slot.style else "editor.css"

    def source_name(self) -> str:
        return "style.scss" if self.slot is Slot.style else "editor.scss"

    def generate(self, post: Post, output_path: Path, ctx: GenerationContext) -> bool:
        scss = ctx.store.get_text(post.id, self.slot.scss_key)
        css = ctx.store.get_text(post.id, self.slot.css_key) or scss
        css_path = output_path / self.file_name(post)
        map_path = output_path / f"{self.file_name(post)}.map"

        if not css.strip():
            return remove_file(css_path) and remove_file(map_path)

        source_map = {
            "version": 3,
            "file": css_path.name,
            "sources": [self.source_name()],
            "sourcesContent": [scss],
            "names": [],
            "mappings": ";".join("AAAA" if line.strip() else "" for line in css.split("\n")),
        }
        body = f"{css}\n/*# sourceMappingURL={map_path.name} */"
        return write_file(css_path, body) and write_file(map_path, json.dumps(source_map, indent=4))


class BlockJsonGenerator(Generator):
    name = "block_json"
    content_types = _BLOCKS

    EXCLUDED_SETTINGS = {
        "category", "icon", "description", "supports", "allowedBlocks", "innerBlocks",
        "supports_inner_blocks", "allowed_block_types", "template", "template_lock",
    }

    def file_name(self, post: Post) -> str:
        return "block.json"

    def _asset_refs(self, post: Post, output_path: Path, ctx: GenerationContext) -> dict[str, str]:
        store = ctx.store
        present = {
            "editorScript": ("index.js", True),
            "style": ("style.css", store.has_meta(post.id, meta.CSS_CONTENT) or store.has_meta(post.id, meta.BLOCK_SCSS)),
            "editorStyle": ("editor.css", store.has_meta(post.id, meta.EDITOR_CSS_CONTENT)
                            or store.has_meta(post.id, meta.BLOCK_EDITOR_SCSS)),
            "render": ("render.php", (output_path / RenderGenerator.FILE).exists()),
            "viewScriptModule": ("view.js", store.has_meta(post.id, meta.BLOCK_JS)),
        }
        return {prop: f"file:./{fname}" for prop, (fname, exists) in present.items() if exists}

    def build(self, post: Post, output_path: Path, ctx: GenerationContext) -> dict[str, Any]:
        settings = _settings(post, ctx)
        inner = _uses_inner_blocks(settings, output_path)

        data: dict[str, Any] = {
            "$schema": BLOCK_SCHEMA,
            "apiVersion": API_VERSION,
            "name": f"{ctx.namespace}/{post.slug}",
            "version": "1.0.0",
            "title": post.title,
            "category": str(settings.get("category") or "theme"),
            "icon": str(settings.get("icon") or "smiley"),
            "description": str(settings.get("description") or ""),
        }

        supports: dict[str, Any] = {"html": inner}
        if ctx.store.has_meta(post.id, meta.BLOCK_JS):
            supports["interactivity"] = True
        if isinstance(settings.get("supports"), dict):
            supports.update(settings["supports"])
        if inner:
            supports["html"] = True
            supports.setdefault("innerBlocks", True)
        data["supports"] = supports

        data["textdomain"] = ctx.namespace
        data.update(self._asset_refs(post, output_path, ctx))

        attributes = attribute_schema(post, ctx)
        if attributes:
            data["attributes"] = attributes

        for key, value in settings.items():
            if key not in self.EXCLUDED_SETTINGS and key not in data:
                data[key] = value
        return data

    def generate(self, post: Post, output_path: Path, ctx: GenerationContext) -> bool:
        data = self.build(post, output_path, ctx)
        return write_file(output_path / self.file_name(post), json.dumps(data, indent=4, ensure_ascii=False))


class IndexJsGenerator(Generator):
    """index.js: editor registration delegating rendering to the server."""
    name = "index"
    content_types = _BLOCKS

    def file_name(self, post: Post) -> str:
        return "index.js"

    def _parser_options(self, post: Post, settings: dict, inner: bool) -> str:
        if meta.as_bool(settings.get("supports_inner_blocks")):
            allowed = _names(settings, "allowed_block_types", post)
            allowed_js = json.dumps(allowed) if allowed else "null"
            template = [[b] for b in _names(settings, "template", post)]
            template_js = f"\n        template: {json.dumps(template)}," if template else ""
            lock = "true" if meta.as_bool(settings.get("template_lock")) else "false"
            return (
                "    // InnerBlocks options\n"
                "    const PARSER_OPTIONS = {\n"
                f"        allowedBlocks: {allowed_js},{template_js}\n"
                f"        templateLock: {lock}\n"
                "    };"
            )
        if inner:
            return (
                "    // InnerBlocks detected without explicit settings\n"
                "    const PARSER_OPTIONS = {\n"
                "        allowedBlocks: null\n"
                "    };"
            )
        return "    // No inner blocks\n    const PARSER_OPTIONS = {};"

    def build(self, post: Post, output_path: Path, ctx: GenerationContext) -> str:
        settings = _settings(post, ctx)
        inner = _uses_inner_blocks(settings, output_path)
        block_name = f"{ctx.namespace}/{post.slug}"
        save = "return wp.element.createElement(InnerBlocks.Content);" if inner else "return null; // Server-side rendering"
        has_attributes = "true" if attribute_schema(post, ctx) else "false"
        return (
            "(function () {\n"
            "    const { registerBlockType } = wp.blocks;\n"
            "    const { InnerBlocks } = wp.blockEditor;\n"
            "\n"
            f"{self._parser_options(post, settings, inner)}\n"
            "\n"
            "    wp.domReady(function () {\n"
            "        if (!window.BlockgenRenderer?.createServerRenderComponent) {\n"
            f"            console.error(\"BlockgenRenderer not available for block: {block_name}\");\n"
            "            return;\n"
            "        }\n"
            "\n"
            "        const Edit = window.BlockgenRenderer.createServerRenderComponent(\n"
            f"            \"{block_name}\",\n"
            "            PARSER_OPTIONS,\n"
            f"            {{ hasAttributePanel: {has_attributes} }}\n"
            "        );\n"
            "\n"
            f"        registerBlockType(\"{block_name}\", {{\n"
            "            edit: Edit,\n"
            "            save: function () {\n"
            f"                {save}\n"
            "            }\n"
            "        });\n"
            "    });\n"
            "})();\n"
        )

    def generate(self, post: Post, output_path: Path, ctx: GenerationContext) -> bool:
        return write_file(output_path / self.file_name(post), self.build(post, output_path, ctx))


class IndexAssetGenerator(Generator):
    """index.asset.php: script dependencies and a version derived from index.js content."""
    name = "index_asset"
    content_types = _BLOCKS

    def file_name(self, post: Post) -> str:
        return "index.asset.php"

    def generate(self, post: Post, output_path: Path, ctx: GenerationContext) -> bool:
        index_js = output_path / "index.js"
        if not index_js.exists():
            logger.error("Cannot version %s: index.js missing for block %s", self.file_name(post), post.id)
            return False
        version = sha256(index_js.read_text(encoding="utf-8"))[:20]
        deps = ", ".join(f"'{d}'" for d in ASSET_DEPENDENCIES)
        content = f"<?php return array( 'dependencies' => array( {deps} ), 'version' => '{version}' );\n"
        return write_file(output_path / self.file_name(post), content)
