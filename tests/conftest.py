"""Root test configuration: shared in-memory services and session-level cleanup"""

import shutil
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from blockgen.config import Settings
from blockgen.core import meta
from blockgen.core.coordinator import build_services
from blockgen.crud.store import MemoryPostStore
from blockgen.crud.tables import ContentType, PostStatus
from blockgen.crud.transients import MemoryTransientStore


_PROJECT_ROOT = Path(__file__).parent.parent

_CLEANUP_FILES = ["blockgen.db", "test.db"]
_CLEANUP_DIRS = ["generated-blocks"]


@pytest.fixture(scope="session", autouse=True)
def cleanup_artifacts():
    """Remove DB files and generated directories created during the test session."""
    yield
    for name in _CLEANUP_FILES:
        p = _PROJECT_ROOT / name
        if p.exists():
            p.unlink()
    for name in _CLEANUP_DIRS:
        p = _PROJECT_ROOT / name
        if p.exists():
            shutil.rmtree(p)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture(name="clock")
def clock_fixture():
    return FakeClock()


@pytest.fixture(name="store")
def store_fixture():
    return MemoryPostStore()


@pytest.fixture(name="transients")
def transients_fixture(clock):
    return MemoryTransientStore(clock=clock)


@pytest.fixture(name="settings")
def settings_fixture(tmp_path):
    return Settings(output_dir=str(tmp_path / "generated"), namespace="acme")


@pytest.fixture(name="services")
def services_fixture(settings, store, transients, clock):
    """Fully wired services over the in-memory stores, with the fake clock on the scheduler."""
    services = build_services(settings, store, transients)
    services.scheduler.clock = clock
    return services


@pytest.fixture(name="make_block")
def make_block_fixture(store):
    """Create a block with optional SCSS, editor SCSS, PHP and selected partials."""
    def _make(slug, scss="", editor_scss="", php=None, selected=None, editor_selected=None,
              status=PostStatus.publish, **extra_meta):
        post = store.create_post(ContentType.block, slug, slug.title(), status)
        if scss:
            store.set_meta(post.id, meta.BLOCK_SCSS, scss)
        if editor_scss:
            store.set_meta(post.id, meta.BLOCK_EDITOR_SCSS, editor_scss)
        if php is None:
            php = f"<div>{slug}</div>"
        if php:
            store.set_meta(post.id, meta.BLOCK_PHP, php)
        if selected is not None:
            store.set_meta(post.id, meta.BLOCK_SELECTED_PARTIALS, selected)
        if editor_selected is not None:
            store.set_meta(post.id, meta.BLOCK_EDITOR_SELECTED_PARTIALS, editor_selected)
        for key, value in extra_meta.items():
            store.set_meta(post.id, key, value)
        return post
    return _make


@pytest.fixture(name="make_partial")
def make_partial_fixture(store):
    """Create an SCSS partial, optionally global with a globalOrder."""
    def _make(slug, scss="$x: 1;", is_global=None, order=None, status=PostStatus.publish):
        post = store.create_post(ContentType.scss_partial, slug, slug, status)
        store.set_meta(post.id, meta.SCSS_PARTIAL_SCSS, scss)
        if is_global is not None:
            store.set_meta(post.id, meta.SCSS_IS_GLOBAL, is_global)
        if order is not None:
            store.set_meta(post.id, meta.SCSS_GLOBAL_ORDER, order)
        return post
    return _make
