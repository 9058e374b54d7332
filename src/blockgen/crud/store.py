"""Post and metadata storage: the PostStore contract plus SQL and in-memory implementations"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from blockgen.core import meta
from blockgen.core.errors import NotFoundError, StoreWriteError
from blockgen.crud.tables import ContentType, Post, PostMeta, PostStatus


logger = logging.getLogger(__name__)


class PostStore(ABC):
    """Key-value metadata keyed by (post_id, key) plus type/status filtered post queries."""

    @abstractmethod
    def get_post(self, post_id: int) -> Post | None:
        raise NotImplementedError

    @abstractmethod
    def query_posts(
        self,
        content_type: ContentType | None = None,
        status: PostStatus | None = PostStatus.publish,
        ids: Iterable[int] | None = None,
        ) -> list[Post]:
        """Posts matching every given filter, ordered by id. status=None matches any status."""
        raise NotImplementedError

    @abstractmethod
    def get_meta(self, post_id: int, key: str) -> Any:
        """Raw stored value, or None when absent."""
        raise NotImplementedError

    @abstractmethod
    def set_meta(self, post_id: int, key: str, value: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete_meta(self, post_id: int, key: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def create_post(self, content_type: ContentType, slug: str, title: str = "",
                    status: PostStatus = PostStatus.publish) -> Post:
        raise NotImplementedError

    @abstractmethod
    def update_post(self, post_id: int, **fields: Any) -> Post:
        """Update slug/title/status. Raises NotFoundError for unknown ids."""
        raise NotImplementedError

    @abstractmethod
    def delete_post(self, post_id: int) -> None:
        """Remove a post and all of its metadata."""
        raise NotImplementedError

    # --- normalised readers ---

    def get_text(self, post_id: int, key: str) -> str:
        value = self.get_meta(post_id, key)
        return "" if value is None else str(value)

    def get_bool(self, post_id: int, key: str) -> bool:
        return meta.as_bool(self.get_meta(post_id, key))

    def get_int(self, post_id: int, key: str, default: int = 0) -> int:
        return meta.as_int(self.get_meta(post_id, key), default)

    def get_id_list(self, post_id: int, key: str) -> list[int]:
        return meta.parse_id_list(self.get_meta(post_id, key), context=f"post {post_id} {key}")

    def get_json_object(self, post_id: int, key: str) -> dict:
        return meta.parse_json_object(self.get_meta(post_id, key), context=f"post {post_id} {key}")

    def has_meta(self, post_id: int, key: str) -> bool:
        return not meta.is_empty(self.get_meta(post_id, key))


_POST_FIELDS = {"slug", "title", "status", "type"}


class SQLPostStore(PostStore):
    """PostStore backed by the posts/post_meta tables. Each write commits immediately."""

    def __init__(self, session: Session):
        self.session = session

    def _commit(self, action: str) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreWriteError(f"Failed to {action}: {e}") from e

    def get_post(self, post_id: int) -> Post | None:
        return self.session.get(Post, post_id)

    def query_posts(self, content_type=None, status=PostStatus.publish, ids=None) -> list[Post]:
        stmt = select(Post)
        if content_type is not None:
            stmt = stmt.where(Post.type == content_type)
        if status is not None:
            stmt = stmt.where(Post.status == status)
        if ids is not None:
            ids = list(ids)
            if not ids:
                return []
            stmt = stmt.where(Post.id.in_(ids))
        return list(self.session.exec(stmt.order_by(Post.id)).all())

    def get_meta(self, post_id: int, key: str) -> Any:
        row = self.session.get(PostMeta, (post_id, key))
        return row.value if row is not None else None

    def set_meta(self, post_id: int, key: str, value: Any) -> None:
        row = self.session.get(PostMeta, (post_id, key))
        if row is None:
            row = PostMeta(post_id=post_id, key=key)
        row.value = meta.encode_value(value)
        self.session.add(row)
        self._commit(f"write {key} for post {post_id}")

    def delete_meta(self, post_id: int, key: str) -> None:
        row = self.session.get(PostMeta, (post_id, key))
        if row is None:
            return
        self.session.delete(row)
        self._commit(f"delete {key} for post {post_id}")

    def create_post(self, content_type, slug, title="", status=PostStatus.publish) -> Post:
        post = Post(type=content_type, slug=slug, title=title or slug, status=status)
        self.session.add(post)
        self._commit(f"create {content_type.value} '{slug}'")
        self.session.refresh(post)
        return post

    def update_post(self, post_id: int, **fields: Any) -> Post:
        post = self.get_post(post_id)
        if post is None:
            raise NotFoundError(f"Post {post_id} not found")
        for name, value in fields.items():
            if name not in _POST_FIELDS:
                raise ValueError(f"Unknown post field: {name}")
            setattr(post, name, value)
        post.updated_at = datetime.now()
        self.session.add(post)
        self._commit(f"update post {post_id}")
        self.session.refresh(post)
        return post

    def delete_post(self, post_id: int) -> None:
        for row in self.session.exec(select(PostMeta).where(PostMeta.post_id == post_id)).all():
            self.session.delete(row)
        post = self.get_post(post_id)
        if post is not None:
            self.session.delete(post)
        self._commit(f"delete post {post_id}")


@dataclass
class MemoryPostStore(PostStore):
    """Dict-backed PostStore. Values are kept exactly as written."""
    _posts: dict[int, Post] = field(default_factory=dict)
    _meta: dict[tuple[int, str], Any] = field(default_factory=dict)
    _next_id: int = 1

    def get_post(self, post_id: int) -> Post | None:
        return self._posts.get(post_id)

    def query_posts(self, content_type=None, status=PostStatus.publish, ids=None) -> list[Post]:
        wanted = set(ids) if ids is not None else None
        return [
            p for pid, p in sorted(self._posts.items())
            if (content_type is None or p.type == content_type)
            and (status is None or p.status == status)
            and (wanted is None or pid in wanted)
        ]

    def get_meta(self, post_id: int, key: str) -> Any:
        return self._meta.get((post_id, key))

    def set_meta(self, post_id: int, key: str, value: Any) -> None:
        self._meta[(post_id, key)] = value

    def delete_meta(self, post_id: int, key: str) -> None:
        self._meta.pop((post_id, key), None)

    def create_post(self, content_type, slug, title="", status=PostStatus.publish) -> Post:
        post = Post(id=self._next_id, type=content_type, slug=slug, title=title or slug, status=status)
        self._posts[post.id] = post
        self._next_id += 1
        return post

    def update_post(self, post_id: int, **fields: Any) -> Post:
        post = self._posts.get(post_id)
        if post is None:
            raise NotFoundError(f"Post {post_id} not found")
        for name, value in fields.items():
            if name not in _POST_FIELDS:
                raise ValueError(f"Unknown post field: {name}")
            setattr(post, name, value)
        post.updated_at = datetime.now()
        return post

    def delete_post(self, post_id: int) -> None:
        self._posts.pop(post_id, None)
        for key in [k for k in self._meta if k[0] == post_id]:
            del self._meta[key]
