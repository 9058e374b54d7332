"""Unit tests for core/directories.py"""

import pytest

from blockgen.core.directories import DirectoryManager


def test_block_directory_created(tmp_path):
    dm = DirectoryManager(tmp_path / "root")
    path = dm.block_directory("hero")
    assert path.is_dir()
    assert path.parent == tmp_path / "root"


@pytest.mark.parametrize("slug", ["", "symbols", "scss", "a/b", ".hidden"])
def test_block_directory_rejects_unsafe_slugs(tmp_path, slug):
    with pytest.raises(ValueError):
        DirectoryManager(tmp_path).block_directory(slug)


def test_cleanup_all_then_recreate(tmp_path):
    dm = DirectoryManager(tmp_path / "root")
    (dm.block_directory("hero") / "x.txt").write_text("x")
    dm.cleanup_all()
    assert not dm.base_dir.exists()
    dm.cleanup_all()
    assert dm.ensure_base_directory().is_dir()


def test_delete_directory_refuses_outside_root(tmp_path):
    dm = DirectoryManager(tmp_path / "root")
    outside = tmp_path / "elsewhere"
    outside.mkdir()
    with pytest.raises(ValueError, match="outside"):
        dm.delete_directory(outside)
    assert dm.delete_directory(dm.block_directory("hero"))
    assert dm.delete_directory(tmp_path / "root" / "missing")


@pytest.mark.parametrize("slug", ["", "../x", "a\\b", ".."])
def test_check_slug_rejects_path_like_slugs(tmp_path, slug):
    with pytest.raises(ValueError):
        DirectoryManager(tmp_path).check_slug(slug)


def test_contains(tmp_path):
    dm = DirectoryManager(tmp_path / "root")
    assert dm.contains(tmp_path / "root" / "scss" / "_a.scss")
    assert not dm.contains(tmp_path / "root" / ".." / "a.php")
    assert not dm.contains(tmp_path / "root")
