"""
Repositories: generic CRUD access to persisted entities.

Each repository wraps the caller's ``AsyncSession``; it flushes but never
commits, so the transaction boundary stays with ``get_db`` (or
``session_scope`` outside requests).  Lookups return ``None`` on a miss;
turning a miss into ``NotFoundError`` is the service layer's job.

Relationships are declared ``lazy="noload"`` on the models, so every
query that needs a related object names it through ``load_options``.
"""
from datetime import datetime
from typing import Generic, Sequence, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from forum.models import (
    Banner,
    BannerPosition,
    Poll,
    Post,
    PostMention,
    PrivateMessage,
    PrivateMessageStatus,
    Topic,
    User,
)

ModelT = TypeVar("ModelT")

INBOX_STATUSES = (PrivateMessageStatus.SENT, PrivateMessageStatus.DELETED_FROM_OUTBOX)
OUTBOX_STATUSES = (PrivateMessageStatus.SENT, PrivateMessageStatus.DELETED_FROM_INBOX)


class Repository(Generic[ModelT]):
    model: type[ModelT]
    load_options: tuple = ()

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get(self, entity_id: int) -> ModelT | None:
        return await self.db.get(self.model, entity_id, options=self.load_options)

    async def exists(self, entity_id: int) -> bool:
        q = select(func.count()).select_from(self.model).where(self.model.id == entity_id)
        return (await self.db.execute(q)).scalar_one() > 0

    async def list(self) -> Sequence[ModelT]:
        q = select(self.model).options(*self.load_options).order_by(self.model.id)
        return (await self.db.execute(q)).unique().scalars().all()

    async def count(self) -> int:
        return (await self.db.execute(select(func.count()).select_from(self.model))).scalar_one()

    async def add(self, entity: ModelT) -> ModelT:
        self.db.add(entity)
        await self.db.flush()
        return entity

    async def delete(self, entity: ModelT) -> None:
        await self.db.delete(entity)
        await self.db.flush()


class UserRepository(Repository[User]):
    model = User

    async def _one_by(self, column, value) -> User | None:
        result = await self.db.execute(select(User).where(column == value))
        return result.scalar_one_or_none()

    async def get_by_username(self, username: str) -> User | None:
        return await self._one_by(User.username, username)

    async def get_by_email(self, email: str) -> User | None:
        return await self._one_by(User.email, email)

    async def get_by_uuid(self, uuid: str) -> User | None:
        return await self._one_by(User.uuid, uuid)

    async def get_usernames(self, prefix: str, limit: int) -> list[str]:
        escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        q = (
            select(User.username)
            .where(User.username.ilike(f"{escaped}%", escape="\\"))
            .order_by(User.username)
            .limit(limit)
        )
        return list((await self.db.execute(q)).scalars().all())

    async def get_non_activated_before(self, cutoff: datetime) -> Sequence[User]:
        q = select(User).where(User.enabled.is_(False), User.registration_date < cutoff)
        return (await self.db.execute(q)).scalars().all()

    async def get_by_usernames(self, usernames: list[str]) -> Sequence[User]:
        if not usernames:
            return []
        q = select(User).where(User.username.in_(usernames)).order_by(User.id)
        return (await self.db.execute(q)).scalars().all()


class PrivateMessageRepository(Repository[PrivateMessage]):
    model = PrivateMessage
    load_options = (joinedload(PrivateMessage.author), joinedload(PrivateMessage.recipient))

    async def _mailbox(self, *criteria) -> Sequence[PrivateMessage]:
        q = (
            select(PrivateMessage)
            .where(*criteria)
            .options(*self.load_options)
            .order_by(PrivateMessage.creation_date.desc(), PrivateMessage.id.desc())
        )
        return (await self.db.execute(q)).unique().scalars().all()

    async def get_inbox(self, user: User) -> Sequence[PrivateMessage]:
        return await self._mailbox(
            PrivateMessage.recipient_id == user.id,
            PrivateMessage.status.in_(INBOX_STATUSES),
        )

    async def get_outbox(self, user: User) -> Sequence[PrivateMessage]:
        return await self._mailbox(
            PrivateMessage.author_id == user.id,
            PrivateMessage.status.in_(OUTBOX_STATUSES),
        )

    async def get_drafts(self, user: User) -> Sequence[PrivateMessage]:
        return await self._mailbox(
            PrivateMessage.author_id == user.id,
            PrivateMessage.status == PrivateMessageStatus.DRAFT,
        )

    async def count_unread_for(self, user: User) -> int:
        q = (
            select(func.count())
            .select_from(PrivateMessage)
            .where(
                PrivateMessage.recipient_id == user.id,
                PrivateMessage.status.in_(INBOX_STATUSES),
                PrivateMessage.read.is_(False),
            )
        )
        return (await self.db.execute(q)).scalar_one()


class PollRepository(Repository[Poll]):
    model = Poll
    load_options = (selectinload(Poll.items),)


class TopicRepository(Repository[Topic]):
    model = Topic
    load_options = (
        joinedload(Topic.author),
        selectinload(Topic.poll).selectinload(Poll.items),
    )

    async def list_page(self, offset: int, limit: int) -> Sequence[Topic]:
        q = (
            select(Topic)
            .options(joinedload(Topic.author))
            .order_by(Topic.created_at.desc(), Topic.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return (await self.db.execute(q)).unique().scalars().all()


class PostRepository(Repository[Post]):
    model = Post
    load_options = (joinedload(Post.author),)

    async def list_for_topic(self, topic_id: int, offset: int, limit: int) -> Sequence[Post]:
        q = (
            select(Post)
            .where(Post.topic_id == topic_id)
            .options(*self.load_options)
            .order_by(Post.id)
            .offset(offset)
            .limit(limit)
        )
        return (await self.db.execute(q)).unique().scalars().all()

    async def count_for_topic(self, topic_id: int) -> int:
        q = select(func.count()).select_from(Post).where(Post.topic_id == topic_id)
        return (await self.db.execute(q)).scalar_one()


class BannerRepository(Repository[Banner]):
    model = Banner

    async def get_by_position(self, position: BannerPosition) -> Banner | None:
        result = await self.db.execute(select(Banner).where(Banner.position == position))
        return result.scalar_one_or_none()


class PostMentionRepository(Repository[PostMention]):
    model = PostMention

    async def notified_user_ids(self, post_id: int) -> set[int]:
        q = select(PostMention.user_id).where(PostMention.post_id == post_id)
        return set((await self.db.execute(q)).scalars().all())
