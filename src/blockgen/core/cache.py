"""Request-local object cache and the single post invalidation entry point"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Hashable

from blockgen.crud.tables import ContentType


logger = logging.getLogger(__name__)

USAGE_GROUP = "blockgen_usage"
GLOBAL_GROUP = "blockgen_global"

_MISSING = object()


class ObjectCache:
    """Grouped in-process cache with optional per-entry TTL (seconds; 0 = no expiry)."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._groups: dict[str, dict[Hashable, tuple[Any, float | None]]] = {}

    def get(self, key: Hashable, group: str = "default", default: Any = None) -> Any:
        entry = self._groups.get(group, {}).get(key, _MISSING)
        if entry is _MISSING:
            return default
        value, expires = entry
        if expires is not None and expires <= self._clock():
            del self._groups[group][key]
            return default
        return value

    def contains(self, key: Hashable, group: str = "default") -> bool:
        return self.get(key, group, _MISSING) is not _MISSING

    def set(self, key: Hashable, value: Any, group: str = "default", ttl: int = 0) -> None:
        expires = self._clock() + ttl if ttl > 0 else None
        self._groups.setdefault(group, {})[key] = (value, expires)

    def delete(self, key: Hashable, group: str = "default") -> None:
        self._groups.get(group, {}).pop(key, None)

    def flush_group(self, group: str) -> None:
        self._groups.pop(group, None)


class CacheInvalidator:
    """The single invalidation entry point for a changed post.

    A block's selected-partials lists feed the usage scan; a partial's global
    flag and order feed the global-partials list. When the type of the post
    is not known both are dropped.
    """

    GROUPS: dict[ContentType, tuple[str, ...]] = {
        ContentType.block: (USAGE_GROUP,),
        ContentType.scss_partial: (GLOBAL_GROUP,),
        ContentType.symbol: (),
    }

    def __init__(self, object_cache: ObjectCache):
        self.object_cache = object_cache

    def groups_for(self, content_type: ContentType | None) -> tuple[str, ...]:
        if content_type is None:
            return (USAGE_GROUP, GLOBAL_GROUP)
        return self.GROUPS.get(content_type, ())

    def invalidate(self, post_id: int, content_type: ContentType | None = None) -> None:
        groups = self.groups_for(content_type)
        for group in groups:
            self.object_cache.flush_group(group)
        logger.debug("Invalidated %s for post %s", ", ".join(groups) or "nothing", post_id)
