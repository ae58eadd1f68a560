"""
Topic service: topics, their posts and the optional poll.

A topic is created together with its first post.  When the form carries a
poll title the poll is built from the already validated poll fields (see
``forum.validation``) and attached to the topic.

Every post written or edited goes through the mention check, which mails
users named with ``[user]name[/user]`` once per post.
"""
import logging
import math

from sqlalchemy.ext.asyncio import AsyncSession

from forum.exceptions import AccessDeniedError, NotFoundError
from forum.models import Post, Topic, User
from forum.repositories import PostRepository, TopicRepository
from forum.schemas import PaginatedResponse, TopicCreate
from forum.services import user_service
from forum.services.poll_service import build_poll, poll_to_dict
from forum.validation import parse_ending_date, parse_poll_items

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def post_to_dict(post: Post) -> dict:
    return {
        "id": post.id,
        "topic_id": post.topic_id,
        "author": post.author.username,
        "body": post.body,
        "created_at": post.created_at,
        "updated_at": post.updated_at,
    }


def topic_to_dict(topic: Topic) -> dict:
    return {
        "id": topic.id,
        "title": topic.title,
        "author": topic.author.username,
        "created_at": topic.created_at,
        "poll": poll_to_dict(topic.poll) if topic.poll else None,
    }


def _page(items: list, total: int, page: int, page_size: int) -> PaginatedResponse:
    return PaginatedResponse(
        items=items,
        total=total,
        page=page,
        page_size=page_size,
        pages=math.ceil(total / page_size) if total > 0 else 0,
    )


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def create_topic(db: AsyncSession, author: User, data: TopicCreate) -> Topic:
    topic = Topic(title=data.title, author=author)
    topic.posts.append(Post(body=data.body, author=author))

    if data.has_poll:
        ending_date = parse_ending_date(data.poll_ending_date) if data.poll_ending_date else None
        topic.poll = build_poll(data.poll_title, parse_poll_items(data.poll_items), ending_date)

    await TopicRepository(db).add(topic)
    await user_service.notify_and_mark_newly_mentioned_users(db, topic.posts[0])
    logger.info("Topic %s created by %s", topic.id, author.username)
    return topic


async def get_topic(db: AsyncSession, topic_id: int) -> Topic:
    topic = await TopicRepository(db).get(topic_id)
    if topic is None:
        raise NotFoundError("Topic", topic_id)
    return topic


async def list_topics(db: AsyncSession, page: int = 1, page_size: int = 20) -> PaginatedResponse:
    repo = TopicRepository(db)
    total = await repo.count()
    topics = await repo.list_page((page - 1) * page_size, page_size)
    items = [
        {"id": t.id, "title": t.title, "author": t.author.username, "created_at": t.created_at}
        for t in topics
    ]
    return _page(items, total, page, page_size)


async def add_post(db: AsyncSession, author: User, topic_id: int, body: str) -> Post:
    repo = TopicRepository(db)
    if not await repo.exists(topic_id):
        raise NotFoundError("Topic", topic_id)
    post = await PostRepository(db).add(Post(topic_id=topic_id, author=author, body=body))
    await user_service.notify_and_mark_newly_mentioned_users(db, post)
    return post


async def edit_post(db: AsyncSession, editor: User, topic_id: int, post_id: int, body: str) -> Post:
    """
    Replace the body of *post_id*.  Only its author may edit it.

    Users newly mentioned by the edit are notified; those already mailed
    about this post are not mailed again.
    """
    post = await PostRepository(db).get(post_id)
    if post is None or post.topic_id != topic_id:
        raise NotFoundError("Post", post_id)
    if post.user_id != editor.id:
        raise AccessDeniedError(f"Only the author may edit post [{post_id}]")

    post.body = body
    await db.flush()
    await user_service.notify_and_mark_newly_mentioned_users(db, post)
    return post


async def get_posts(
    db: AsyncSession, topic_id: int, page: int = 1, page_size: int = 20
) -> PaginatedResponse:
    if not await TopicRepository(db).exists(topic_id):
        raise NotFoundError("Topic", topic_id)
    repo = PostRepository(db)
    total = await repo.count_for_topic(topic_id)
    posts = await repo.list_for_topic(topic_id, (page - 1) * page_size, page_size)
    return _page([post_to_dict(p) for p in posts], total, page, page_size)
