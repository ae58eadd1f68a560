"""
Private message service: mailbox logic for the PrivateMessage aggregate.

Status lifecycle
----------------
``DRAFT`` -> ``SENT`` when the draft is sent.  Each party deletes a sent
message from their own mailbox only: the recipient moves it to
``DELETED_FROM_INBOX``, the author to ``DELETED_FROM_OUTBOX``.  Once both
parties have deleted it the row is purged.  Drafts, and messages sent to
oneself, are purged on their first deletion.

The unread counter for each recipient lives in the cache and is adjusted
on send, read and inbox deletion; on a cache miss it is recomputed from
the database.
"""
import logging
from typing import Iterable, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from forum.cache import cache
from forum.exceptions import AccessDeniedError, NotFoundError
from forum.mail import mail_service
from forum.models import PrivateMessage, PrivateMessageStatus, User
from forum.repositories import PrivateMessageRepository, UserRepository

logger = logging.getLogger(__name__)

DRAFTS = "drafts"
INBOX = "inbox"
OUTBOX = "outbox"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def message_to_dict(message: PrivateMessage) -> dict:
    return {
        "id": message.id,
        "title": message.title,
        "body": message.body,
        "read": message.read,
        "status": message.status,
        "creation_date": message.creation_date,
        "author": message.author.username,
        "recipient": message.recipient.username if message.recipient else None,
    }


def _is_author(message: PrivateMessage, user: User) -> bool:
    return message.author_id == user.id


def _is_recipient(message: PrivateMessage, user: User) -> bool:
    return message.recipient_id is not None and message.recipient_id == user.id


def has_access(message: PrivateMessage, user: User) -> bool:
    """
    True while *message* is still in one of *user*'s mailboxes.

    Drafts belong to their author only.  A message written to oneself is
    purged on its first deletion, so it never reaches a deleted status.
    """
    if message.status == PrivateMessageStatus.DRAFT:
        return _is_author(message, user)
    if not (_is_author(message, user) or _is_recipient(message, user)):
        return False
    if message.status == PrivateMessageStatus.DELETED_FROM_OUTBOX and _is_author(message, user):
        return False
    if message.status == PrivateMessageStatus.DELETED_FROM_INBOX and _is_recipient(message, user):
        return False
    return True


def _should_mark_as_read(message: PrivateMessage, user: User) -> bool:
    return (
        message.status != PrivateMessageStatus.DRAFT
        and _is_recipient(message, user)
        and not message.read
    )


async def _find_recipient(db: AsyncSession, username: str) -> User:
    recipient = await UserRepository(db).get_by_username(username)
    if recipient is None:
        raise NotFoundError("User", username)
    return recipient


async def _load(db: AsyncSession, current_user: User, pm_id: int) -> PrivateMessage:
    message = await PrivateMessageRepository(db).get(pm_id)
    if message is None:
        raise NotFoundError("PrivateMessage", pm_id)
    if not has_access(message, current_user):
        raise AccessDeniedError(f"No access to private message [{pm_id}]")
    return message


async def _deliver(db: AsyncSession, message: PrivateMessage, recipient: User) -> PrivateMessage:
    message.status = PrivateMessageStatus.SENT
    message.read = False
    await PrivateMessageRepository(db).add(message)
    await mail_service.send_received_private_message_notification(recipient, message)
    await cache.increment_new_pm_count(recipient.username)
    logger.info(
        "Private message %s sent from %s to %s",
        message.id, message.author.username, recipient.username,
    )
    return message


# ---------------------------------------------------------------------------
# Mailboxes
# ---------------------------------------------------------------------------

async def get_inbox(db: AsyncSession, user: User) -> Sequence[PrivateMessage]:
    return await PrivateMessageRepository(db).get_inbox(user)


async def get_outbox(db: AsyncSession, user: User) -> Sequence[PrivateMessage]:
    return await PrivateMessageRepository(db).get_outbox(user)


async def get_drafts(db: AsyncSession, user: User) -> Sequence[PrivateMessage]:
    return await PrivateMessageRepository(db).get_drafts(user)


async def current_user_new_pm_count(db: AsyncSession, user: User | None) -> int:
    """Unread messages in *user*'s inbox; 0 for anonymous callers."""
    if user is None:
        return 0
    cached = await cache.get_new_pm_count(user.username)
    if cached is not None:
        return cached
    count = await PrivateMessageRepository(db).count_unread_for(user)
    await cache.put_new_pm_count(user.username, count)
    return count


# ---------------------------------------------------------------------------
# Sending
# ---------------------------------------------------------------------------

async def send_message(
    db: AsyncSession, sender: User, title: str, body: str, recipient_username: str
) -> PrivateMessage:
    """Send a new message; raises NotFoundError for an unknown recipient."""
    recipient = await _find_recipient(db, recipient_username)
    message = PrivateMessage(author=sender, recipient=recipient, title=title, body=body)
    return await _deliver(db, message, recipient)


async def save_draft(
    db: AsyncSession,
    sender: User,
    title: str,
    body: str,
    recipient_username: str | None = None,
    pm_id: int | None = None,
) -> PrivateMessage:
    """
    Create a draft, or overwrite the sender's draft *pm_id*.

    The recipient is optional while drafting and only looked up when named.
    """
    recipient = None
    if recipient_username:
        recipient = await _find_recipient(db, recipient_username)

    if pm_id is None:
        message = PrivateMessage(author=sender, status=PrivateMessageStatus.DRAFT)
    else:
        message = await _load(db, sender, pm_id)
        if message.status != PrivateMessageStatus.DRAFT:
            raise AccessDeniedError(f"Private message [{pm_id}] is not a draft")

    message.title = title
    message.body = body
    message.recipient = recipient
    return await PrivateMessageRepository(db).add(message)


async def send_draft(
    db: AsyncSession,
    sender: User,
    pm_id: int,
    title: str,
    body: str,
    recipient_username: str,
) -> PrivateMessage:
    """Send the sender's draft *pm_id* with its final title, body and recipient."""
    message = await _load(db, sender, pm_id)
    if message.status != PrivateMessageStatus.DRAFT:
        raise AccessDeniedError(f"Private message [{pm_id}] is not a draft")

    recipient = await _find_recipient(db, recipient_username)
    message.title = title
    message.body = body
    message.recipient = recipient
    return await _deliver(db, message, recipient)


# ---------------------------------------------------------------------------
# Reading and deleting
# ---------------------------------------------------------------------------

async def get_message(db: AsyncSession, current_user: User, pm_id: int) -> PrivateMessage:
    """
    Return message *pm_id* for *current_user*.

    The first read by the recipient marks the message read and decrements
    their unread counter; later reads change nothing.
    """
    message = await _load(db, current_user, pm_id)
    if _should_mark_as_read(message, current_user):
        message.read = True
        await db.flush()
        await cache.decrement_new_pm_count(current_user.username)
    return message


async def delete_messages(
    db: AsyncSession, current_user: User, pm_ids: Iterable[int]
) -> str | None:
    """
    Delete *pm_ids* from *current_user*'s mailboxes.

    Returns the mailbox the user acted on (``drafts``, ``inbox`` or
    ``outbox``) for the last message processed.  Any missing or
    inaccessible id aborts the whole batch.
    """
    repo = PrivateMessageRepository(db)
    mailbox = None

    for pm_id in pm_ids:
        message = await _load(db, current_user, pm_id)

        if message.status == PrivateMessageStatus.DRAFT:
            await repo.delete(message)
            mailbox = DRAFTS
            continue

        if _is_recipient(message, current_user):
            mailbox = INBOX
            if not message.read:
                await cache.decrement_new_pm_count(current_user.username)
            # A message to oneself sits in both mailboxes at once
            if (
                _is_author(message, current_user)
                or message.status == PrivateMessageStatus.DELETED_FROM_OUTBOX
            ):
                await repo.delete(message)
            else:
                message.status = PrivateMessageStatus.DELETED_FROM_INBOX
        else:
            mailbox = OUTBOX
            if message.status == PrivateMessageStatus.DELETED_FROM_INBOX:
                await repo.delete(message)
            else:
                message.status = PrivateMessageStatus.DELETED_FROM_OUTBOX

    await db.flush()
    return mailbox
