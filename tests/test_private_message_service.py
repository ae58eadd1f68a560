"""
Private message lifecycle: sending, drafts, reading and per-mailbox
deletion, exercised directly against the service layer.
"""
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from forum.cache import cache
from forum.exceptions import AccessDeniedError, NotFoundError
from forum.models import PrivateMessageStatus
from forum.repositories import PrivateMessageRepository
from forum.services import private_message_service as pm_service


@pytest.fixture
def counter(monkeypatch):
    """Record unread-counter adjustments made through the cache."""
    increment = AsyncMock()
    decrement = AsyncMock()
    monkeypatch.setattr(cache, "increment_new_pm_count", increment)
    monkeypatch.setattr(cache, "decrement_new_pm_count", decrement)
    return increment, decrement


async def _exists(db: AsyncSession, pm_id: int) -> bool:
    return await PrivateMessageRepository(db).get(pm_id) is not None


# ---------------------------------------------------------------------------
# Sending
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_send_message(db_session: AsyncSession, make_user, counter):
    alice = await make_user("alice")
    bob = await make_user("bob")
    increment, _ = counter

    pm = await pm_service.send_message(db_session, alice, "Hi", "Hello Bob", "bob")

    assert pm.status == PrivateMessageStatus.SENT
    assert pm.read is False
    assert [m.id for m in await pm_service.get_inbox(db_session, bob)] == [pm.id]
    assert [m.id for m in await pm_service.get_outbox(db_session, alice)] == [pm.id]
    increment.assert_awaited_once_with("bob")


@pytest.mark.asyncio
async def test_send_message_to_unknown_user(db_session: AsyncSession, make_user):
    alice = await make_user("alice")

    with pytest.raises(NotFoundError):
        await pm_service.send_message(db_session, alice, "Hi", "Hello", "nobody")

    assert await pm_service.get_outbox(db_session, alice) == []
    assert not await _exists(db_session, pm.id)


@pytest.mark.asyncio
async def test_save_draft_without_recipient(db_session: AsyncSession, make_user):
    alice = await make_user("alice")

    draft = await pm_service.save_draft(db_session, alice, "Later", "unfinished")

    assert draft.status == PrivateMessageStatus.DRAFT
    assert draft.recipient is None
    assert [m.id for m in await pm_service.get_drafts(db_session, alice)] == [draft.id]
    assert await pm_service.get_outbox(db_session, alice) == []


@pytest.mark.asyncio
async def test_save_draft_updates_existing(db_session: AsyncSession, make_user):
    alice = await make_user("alice")
    await make_user("bob")
    draft = await pm_service.save_draft(db_session, alice, "v1", "first")

    updated = await pm_service.save_draft(db_session, alice, "v2", "second", "bob", pm_id=draft.id)

    assert updated.id == draft.id
    assert updated.title == "v2"
    assert updated.recipient.username == "bob"
    assert len(await pm_service.get_drafts(db_session, alice)) == 1


@pytest.mark.asyncio
async def test_send_draft(db_session: AsyncSession, make_user, counter):
    alice = await make_user("alice")
    bob = await make_user("bob")
    increment, _ = counter
    draft = await pm_service.save_draft(db_session, alice, "Draft", "body")

    sent = await pm_service.send_draft(db_session, alice, draft.id, "Final", "final body", "bob")

    assert sent.id == draft.id
    assert sent.status == PrivateMessageStatus.SENT
    assert sent.title == "Final"
    assert await pm_service.get_drafts(db_session, alice) == []
    assert [m.id for m in await pm_service.get_inbox(db_session, bob)] == [draft.id]
    increment.assert_awaited_once_with("bob")


@pytest.mark.asyncio
async def test_send_draft_rejects_sent_message(db_session: AsyncSession, make_user):
    alice = await make_user("alice")
    await make_user("bob")
    pm = await pm_service.send_message(db_session, alice, "Hi", "body", "bob")

    with pytest.raises(AccessDeniedError):
        await pm_service.send_draft(db_session, alice, pm.id, "Again", "body", "bob")


@pytest.mark.asyncio
async def test_other_users_draft_is_not_editable(db_session: AsyncSession, make_user):
    alice = await make_user("alice")
    mallory = await make_user("mallory")
    draft = await pm_service.save_draft(db_session, alice, "Mine", "body", "mallory")

    with pytest.raises(AccessDeniedError):
        await pm_service.save_draft(db_session, mallory, "Yours", "body", pm_id=draft.id)


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_reading_marks_read_once(db_session: AsyncSession, make_user, counter):
    alice = await make_user("alice")
    bob = await make_user("bob")
    _, decrement = counter
    pm = await pm_service.send_message(db_session, alice, "Hi", "body", "bob")

    first = await pm_service.get_message(db_session, bob, pm.id)
    assert first.read is True
    second = await pm_service.get_message(db_session, bob, pm.id)
    assert second.read is True

    decrement.assert_awaited_once_with("bob")


@pytest.mark.asyncio
async def test_author_reading_does_not_mark_read(db_session: AsyncSession, make_user, counter):
    alice = await make_user("alice")
    await make_user("bob")
    _, decrement = counter
    pm = await pm_service.send_message(db_session, alice, "Hi", "body", "bob")

    message = await pm_service.get_message(db_session, alice, pm.id)

    assert message.read is False
    decrement.assert_not_awaited()


@pytest.mark.asyncio
async def test_reading_draft_addressed_to_self_does_not_mark_read(
    db_session: AsyncSession, make_user, counter
):
    alice = await make_user("alice")
    _, decrement = counter
    draft = await pm_service.save_draft(db_session, alice, "Note", "to self", "alice")

    message = await pm_service.get_message(db_session, alice, draft.id)

    assert message.read is False
    decrement.assert_not_awaited()


@pytest.mark.asyncio
async def test_third_party_has_no_access(db_session: AsyncSession, make_user):
    alice = await make_user("alice")
    await make_user("bob")
    eve = await make_user("eve")
    pm = await pm_service.send_message(db_session, alice, "Hi", "body", "bob")

    with pytest.raises(AccessDeniedError):
        await pm_service.get_message(db_session, eve, pm.id)


@pytest.mark.asyncio
async def test_recipient_cannot_see_draft(db_session: AsyncSession, make_user):
    alice = await make_user("alice")
    bob = await make_user("bob")
    draft = await pm_service.save_draft(db_session, alice, "Draft", "body", "bob")

    assert pm_service.has_access(draft, alice)
    assert not pm_service.has_access(draft, bob)


@pytest.mark.asyncio
async def test_get_missing_message(db_session: AsyncSession, make_user):
    alice = await make_user("alice")

    with pytest.raises(NotFoundError):
        await pm_service.get_message(db_session, alice, 999)


@pytest.mark.asyncio
async def test_new_pm_count_from_database(db_session: AsyncSession, make_user):
    alice = await make_user("alice")
    bob = await make_user("bob")
    first = await pm_service.send_message(db_session, alice, "1", "body", "bob")
    await pm_service.send_message(db_session, alice, "2", "body", "bob")
    await pm_service.save_draft(db_session, alice, "3", "draft", "bob")

    assert await pm_service.current_user_new_pm_count(db_session, bob) == 2
    await pm_service.get_message(db_session, bob, first.id)
    assert await pm_service.current_user_new_pm_count(db_session, bob) == 1
    assert await pm_service.current_user_new_pm_count(db_session, None) == 0


@pytest.mark.asyncio
async def test_new_pm_count_prefers_cache(db_session: AsyncSession, make_user, monkeypatch):
    bob = await make_user("bob")
    monkeypatch.setattr(cache, "get_new_pm_count", AsyncMock(return_value=7))

    assert await pm_service.current_user_new_pm_count(db_session, bob) == 7


# ---------------------------------------------------------------------------
# Deleting
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_delete_draft_purges(db_session: AsyncSession, make_user):
    alice = await make_user("alice")
    first = await pm_service.save_draft(db_session, alice, "1", "a")
    second = await pm_service.save_draft(db_session, alice, "2", "b")

    mailbox = await pm_service.delete_messages(db_session, alice, [first.id, second.id])

    assert mailbox == pm_service.DRAFTS
    assert not await _exists(db_session, first.id)
    assert not await _exists(db_session, second.id)


@pytest.mark.asyncio
async def test_delete_from_inbox_keeps_outbox_copy(db_session: AsyncSession, make_user):
    alice = await make_user("alice")
    bob = await make_user("bob")
    pm = await pm_service.send_message(db_session, alice, "Hi", "body", "bob")

    mailbox = await pm_service.delete_messages(db_session, bob, [pm.id])

    assert mailbox == pm_service.INBOX
    assert pm.status == PrivateMessageStatus.DELETED_FROM_INBOX
    assert await pm_service.get_inbox(db_session, bob) == []
    assert [m.id for m in await pm_service.get_outbox(db_session, alice)] == [pm.id]
    with pytest.raises(AccessDeniedError):
        await pm_service.get_message(db_session, bob, pm.id)


@pytest.mark.asyncio
async def test_delete_from_outbox_keeps_inbox_copy(db_session: AsyncSession, make_user):
    alice = await make_user("alice")
    bob = await make_user("bob")
    pm = await pm_service.send_message(db_session, alice, "Hi", "body", "bob")

    mailbox = await pm_service.delete_messages(db_session, alice, [pm.id])

    assert mailbox == pm_service.OUTBOX
    assert pm.status == PrivateMessageStatus.DELETED_FROM_OUTBOX
    assert await pm_service.get_outbox(db_session, alice) == []
    assert [m.id for m in await pm_service.get_inbox(db_session, bob)] == [pm.id]


@pytest.mark.asyncio
async def test_delete_from_both_mailboxes_purges(db_session: AsyncSession, make_user):
    alice = await make_user("alice")
    bob = await make_user("bob")
    first = await pm_service.send_message(db_session, alice, "1", "body", "bob")
    second = await pm_service.send_message(db_session, alice, "2", "body", "bob")

    await pm_service.delete_messages(db_session, alice, [first.id])
    await pm_service.delete_messages(db_session, bob, [first.id])
    await pm_service.delete_messages(db_session, bob, [second.id])
    await pm_service.delete_messages(db_session, alice, [second.id])

    assert not await _exists(db_session, first.id)
    assert not await _exists(db_session, second.id)


@pytest.mark.asyncio
async def test_deleting_unread_inbox_message_decrements_counter(
    db_session: AsyncSession, make_user, counter
):
    alice = await make_user("alice")
    bob = await make_user("bob")
    _, decrement = counter
    pm = await pm_service.send_message(db_session, alice, "Hi", "body", "bob")

    await pm_service.delete_messages(db_session, bob, [pm.id])

    decrement.assert_awaited_once_with("bob")


@pytest.mark.asyncio
async def test_message_to_self_disappears_after_one_delete(db_session: AsyncSession, make_user):
    alice = await make_user("alice")
    pm = await pm_service.send_message(db_session, alice, "Note", "body", "alice")

    mailbox = await pm_service.delete_messages(db_session, alice, [pm.id])

    assert mailbox == pm_service.INBOX
    assert await pm_service.get_inbox(db_session, alice) == []
    assert await pm_service.get_outbox(db_session, alice) == []
    assert not await _exists(db_session, pm.id)


@pytest.mark.asyncio
async def test_unread_message_to_self_decrements_counter_on_delete(
    db_session: AsyncSession, make_user, counter
):
    alice = await make_user("alice")
    _, decrement = counter
    pm = await pm_service.send_message(db_session, alice, "Note", "body", "alice")

    await pm_service.delete_messages(db_session, alice, [pm.id])

    decrement.assert_awaited_once_with("alice")


@pytest.mark.asyncio
async def test_delete_with_missing_id_fails(db_session: AsyncSession, make_user):
    alice = await make_user("alice")
    draft = await pm_service.save_draft(db_session, alice, "1", "a")

    with pytest.raises(NotFoundError):
        await pm_service.delete_messages(db_session, alice, [draft.id, 1234])


@pytest.mark.asyncio
async def test_delete_someone_elses_message_fails(db_session: AsyncSession, make_user):
    alice = await make_user("alice")
    await make_user("bob")
    eve = await make_user("eve")
    pm = await pm_service.send_message(db_session, alice, "Hi", "body", "bob")

    with pytest.raises(AccessDeniedError):
        await pm_service.delete_messages(db_session, eve, [pm.id])
    assert pm.status == PrivateMessageStatus.SENT
