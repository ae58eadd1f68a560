from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from forum.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops the offset on storage)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _enum_column(enum_cls: type[enum.Enum], name: str) -> Enum:
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=32,
        values_callable=lambda members: [m.value for m in members],
    )


class PrivateMessageStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    DELETED_FROM_INBOX = "DELETED_FROM_INBOX"
    DELETED_FROM_OUTBOX = "DELETED_FROM_OUTBOX"


class BannerPosition(str, enum.Enum):
    TOP = "TOP"
    BOTTOM = "BOTTOM"


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    __table_args__ = (
        # Unactivated-account sweep
        Index("ix_users_enabled_registration_date", "enabled", "registration_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(25), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    signature: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    language: Mapped[str] = mapped_column(String(10), default="en", nullable=False)
    page_size: Mapped[int] = mapped_column(Integer, default=20, nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    uuid: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    registration_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    last_login: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    mentioning_notifications_enabled: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )

    # Relationships: lazy="noload"; load explicitly in repositories
    topics: Mapped[List["Topic"]] = relationship(
        "Topic", back_populates="author", lazy="noload", passive_deletes=True
    )


# ---------------------------------------------------------------------------
# Topic / Post
# ---------------------------------------------------------------------------
class Topic(Base):
    __tablename__ = "topics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(120), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    author: Mapped["User"] = relationship("User", back_populates="topics", lazy="noload")
    posts: Mapped[List["Post"]] = relationship(
        "Post", back_populates="topic", lazy="noload", order_by="Post.id", passive_deletes=True
    )
    poll: Mapped[Optional["Poll"]] = relationship(
        "Poll", back_populates="topic", lazy="noload", uselist=False, passive_deletes=True
    )


class Post(Base):
    __tablename__ = "posts"

    __table_args__ = (
        Index("ix_posts_topic_id_created_at", "topic_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=utcnow, nullable=True
    )
    topic_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("topics.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    topic: Mapped["Topic"] = relationship("Topic", back_populates="posts", lazy="noload")
    author: Mapped["User"] = relationship("User", lazy="noload")


class PostMention(Base):
    """A user already mailed about being mentioned in a post."""

    __tablename__ = "post_mentions"

    __table_args__ = (
        UniqueConstraint("post_id", "user_id", name="uq_post_mentions_post_user"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    notified_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


# ---------------------------------------------------------------------------
# Poll / PollItem
# ---------------------------------------------------------------------------
class Poll(Base):
    __tablename__ = "polls"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(120), nullable=False)
    ending_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    topic_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("topics.id", ondelete="CASCADE"), unique=True, nullable=True
    )

    topic: Mapped[Optional["Topic"]] = relationship("Topic", back_populates="poll", lazy="noload")
    items: Mapped[List["PollItem"]] = relationship(
        "PollItem",
        back_populates="poll",
        lazy="noload",
        order_by="PollItem.id",
        cascade="all, delete-orphan",
    )

    def is_active(self, now: datetime | None = None) -> bool:
        """Votes are accepted until the ending date, or forever without one."""
        if self.ending_date is None:
            return True
        return (now or utcnow()) < as_utc(self.ending_date)


class PollItem(Base):
    __tablename__ = "poll_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    votes_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    poll_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("polls.id", ondelete="CASCADE"), nullable=False, index=True
    )

    poll: Mapped["Poll"] = relationship("Poll", back_populates="items", lazy="noload")


# ---------------------------------------------------------------------------
# PrivateMessage
# ---------------------------------------------------------------------------
class PrivateMessage(Base):
    __tablename__ = "private_messages"

    __table_args__ = (
        Index("ix_pm_recipient_id_status", "recipient_id", "status"),
        Index("ix_pm_author_id_status", "author_id", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[PrivateMessageStatus] = mapped_column(
        _enum_column(PrivateMessageStatus, "private_message_status"),
        default=PrivateMessageStatus.DRAFT,
        nullable=False,
    )
    creation_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    author_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    # Drafts may not have a recipient yet.
    recipient_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True
    )

    author: Mapped["User"] = relationship("User", foreign_keys=[author_id], lazy="noload")
    recipient: Mapped[Optional["User"]] = relationship(
        "User", foreign_keys=[recipient_id], lazy="noload"
    )


# ---------------------------------------------------------------------------
# Banner
# ---------------------------------------------------------------------------
class Banner(Base):
    __tablename__ = "banners"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    uuid: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    position: Mapped[BannerPosition] = mapped_column(
        _enum_column(BannerPosition, "banner_position"), unique=True, nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
