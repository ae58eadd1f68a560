"""
Poll service: voting on topic polls.

There is no per-user vote tracking: every call adds one vote to each
named item.
"""
import logging
from datetime import datetime
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from forum.exceptions import NotFoundError
from forum.models import Poll, PollItem, utcnow
from forum.repositories import PollRepository

logger = logging.getLogger(__name__)


def poll_to_dict(poll: Poll, now: datetime | None = None) -> dict:
    return {
        "id": poll.id,
        "title": poll.title,
        "ending_date": poll.ending_date,
        "active": poll.is_active(now),
        "items": [
            {"id": item.id, "name": item.name, "votes_count": item.votes_count}
            for item in poll.items
        ],
    }


def build_poll(title: str, item_names: Iterable[str], ending_date: datetime | None = None) -> Poll:
    """Create an unsaved poll with zero-vote items in the given order."""
    poll = Poll(title=title.strip(), ending_date=ending_date)
    poll.items.extend(PollItem(name=name, votes_count=0) for name in item_names)
    return poll


async def get_poll(db: AsyncSession, poll_id: int) -> Poll:
    poll = await PollRepository(db).get(poll_id)
    if poll is None:
        raise NotFoundError("Poll", poll_id)
    return poll


async def vote(
    db: AsyncSession, poll_id: int, item_ids: Iterable[int], now: datetime | None = None
) -> Poll:
    """
    Add one vote to every item of *poll_id* named in *item_ids*.

    Votes on a poll past its ending date are dropped without error, as are
    ids that do not belong to the poll.  A repeated id counts once.
    """
    poll = await get_poll(db, poll_id)
    now = now or utcnow()
    if not poll.is_active(now):
        logger.debug("Poll %s ended at %s, vote ignored", poll_id, poll.ending_date)
        return poll

    chosen = set(item_ids)
    for item in poll.items:
        if item.id in chosen:
            item.votes_count += 1

    await db.flush()
    return poll
