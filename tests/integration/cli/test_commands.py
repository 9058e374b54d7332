"""Integration tests for the CLI commands against a SQLite file database"""

import json

import pytest
from typer.testing import CliRunner

from blockgen.cli.cli import app
from blockgen.core import meta


runner = CliRunner()


@pytest.fixture(name="workspace")
def workspace_fixture(tmp_path, monkeypatch):
    """Empty working directory with its own database and output root."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("BLOCKGEN_DB_URL", f"sqlite:///{tmp_path}/test.db")
    monkeypatch.setenv("BLOCKGEN_OUTPUT_DIR", str(tmp_path / "out"))
    monkeypatch.setenv("BLOCKGEN_NAMESPACE", "acme")
    result = runner.invoke(app, ["init"])
    assert result.exit_code == 0, result.output
    return tmp_path


def _ok(*args):
    result = runner.invoke(app, list(args))
    assert result.exit_code == 0, result.output
    return result.output


def test_init_reports_database(workspace):
    assert "Database initialized at: sqlite:///" in _ok("init", "--reset")


def test_create_derives_slug_from_title(workspace):
    assert "Created block 1: hero-banner" in _ok("create", "block", "Hero Banner")
    assert "Created scss_partial 2: colours" in _ok("create", "scss_partial", "Vars", "--slug", "colours")


def test_create_slugifies_explicit_slug(workspace):
    assert "Created symbol 1: pwn" in _ok("create", "symbol", "Icon", "--slug", "../../pwn")
    assert "Created symbol 2: my-icon" in _ok("create", "symbol", "Icon", "--slug", "My Icon")


def test_save_generates_block_files(workspace):
    _ok("create", "block", "Hero")
    _ok("meta", "1", meta.BLOCK_PHP, "<div>hero</div>")
    _ok("meta", "1", meta.BLOCK_SCSS, ".hero{}")
    output = _ok("save", "1")
    assert "post 1 (block)" in output
    block_json = json.loads((workspace / "out" / "hero" / "block.json").read_text())
    assert block_json["name"] == "acme/hero"
    assert (workspace / "out" / "hero" / "style.css").exists()


def test_partial_save_flags_dependents_and_shows_pending(workspace):
    """Saving a partial flags the block that selects it; pending lists the work."""
    _ok("create", "block", "Hero")
    _ok("create", "scss_partial", "Vars")
    _ok("meta", "1", meta.BLOCK_SCSS, ".hero{}")
    _ok("meta", "1", meta.BLOCK_SELECTED_PARTIALS, "[2]", "--json")
    _ok("meta", "2", meta.SCSS_PARTIAL_SCSS, "$c: red;")

    output = _ok("save", "2")
    assert "Recompile: 1 block(s) affected, 1 flagged" in output

    pending = _ok("pending")
    assert "Pending: partial 2 -> blocks [1]" in pending
    assert "Flagged blocks: [1]" in pending


def test_recompile_prints_summary(workspace):
    _ok("create", "scss_partial", "Vars")
    summary = json.loads(_ok("recompile", "1"))
    assert summary["success"] is True
    assert summary["blocks_affected"] == 0
    assert "results" not in summary


def test_rename_moves_generated_directory(workspace):
    _ok("create", "block", "Foo")
    _ok("save", "1")
    assert (workspace / "out" / "foo").is_dir()
    output = _ok("rename", "1", "Bar")
    assert "Full regeneration complete" in output
    assert not (workspace / "out" / "foo").exists()
    assert (workspace / "out" / "bar" / "block.json").exists()


def test_delete_and_regenerate(workspace):
    _ok("create", "block", "Foo")
    _ok("create", "block", "Keep")
    _ok("regenerate")
    _ok("delete", "1")
    assert not (workspace / "out" / "foo").exists()
    assert "Regenerated 1 post(s)" in _ok("regenerate")


def test_stats_global_and_per_partial(workspace):
    _ok("create", "scss_partial", "Base")
    _ok("meta", "1", meta.SCSS_IS_GLOBAL, "1")
    _ok("create", "block", "Hero")
    _ok("meta", "2", meta.BLOCK_SELECTED_PARTIALS, "[1]", "--json")
    stats = json.loads(_ok("stats"))
    assert stats["global_partials_count"] == 1
    assert stats["affected_posts_count"] == 1
    assert json.loads(_ok("stats", "--partial", "1")) == {"style": 1, "editorStyle": 0, "total": 1}


def test_unknown_post_exits_with_error(workspace):
    result = runner.invoke(app, ["delete", "99"])
    assert result.exit_code == 1
    assert "Error: Post 99 not found" in result.output


def test_meta_rejects_invalid_json(workspace):
    _ok("create", "block", "Hero")
    result = runner.invoke(app, ["meta", "1", meta.BLOCK_SETTINGS, "{oops", "--json"])
    assert result.exit_code == 1
    assert "not valid JSON" in result.output


def test_invalid_config_exits_with_error(workspace):
    (workspace / "config.yaml").write_text("key: [unclosed\n")
    result = runner.invoke(app, ["regenerate"])
    assert result.exit_code == 1
    assert "Invalid config.yaml" in result.output
