"""Database table definitions for managed posts, their metadata, and short-lived transients"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from sqlalchemy import Column, DateTime, JSON, String, Text
from sqlmodel import Field, SQLModel


class ContentType(str, Enum):
    """The three kinds of content the generator manages"""
    block = "block"
    symbol = "symbol"
    scss_partial = "scss_partial"


class PostStatus(str, Enum):
    publish = "publish"
    draft = "draft"
    trash = "trash"


class Post(SQLModel, table=True):
    """A generic content unit; the core only looks at id, type, slug and status"""
    __tablename__ = "posts"
    id: Optional[int] = Field(default=None, primary_key=True)
    type: ContentType = Field(..., index=True, nullable=False)
    slug: str = Field(..., index=True, nullable=False)
    title: str = Field(default="", sa_column=Column(Text, nullable=False))
    status: PostStatus = Field(default=PostStatus.publish, index=True, nullable=False)
    created_at: datetime = Field(default_factory=datetime.now, sa_column=Column(DateTime(timezone=False), nullable=False))
    updated_at: datetime = Field(default_factory=datetime.now, sa_column=Column(DateTime(timezone=False), nullable=False))


class PostMeta(SQLModel, table=True):
    """Key-value metadata attached to a post; values are stored as text"""
    __tablename__ = "post_meta"
    post_id: int = Field(foreign_key="posts.id", primary_key=True)
    key: str = Field(sa_column=Column(String(191), primary_key=True))
    value: str = Field(default="", sa_column=Column(Text, nullable=False))


class Transient(SQLModel, table=True):
    """Short-lived keyed record; rows past expires_at read as absent"""
    __tablename__ = "transients"
    key: str = Field(sa_column=Column(String(191), primary_key=True))
    value: Any = Field(default=None, sa_column=Column(JSON, nullable=True))
    expires_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=False), nullable=True))
