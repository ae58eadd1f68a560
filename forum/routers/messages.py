from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from forum.database import get_db
from forum.dependencies import get_current_user
from forum.models import User
from forum.schemas import (
    DraftSave,
    MessageDelete,
    MessageDeleteResponse,
    NewMessageCount,
    PrivateMessageCreate,
    PrivateMessageResponse,
)
from forum.services import private_message_service as pm_service

router = APIRouter(prefix="/api/v1/messages", tags=["messages"])


def _many(messages) -> list[dict]:
    return [pm_service.message_to_dict(m) for m in messages]


@router.get("/inbox", response_model=list[PrivateMessageResponse])
async def inbox(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return _many(await pm_service.get_inbox(db, user))


@router.get("/outbox", response_model=list[PrivateMessageResponse])
async def outbox(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return _many(await pm_service.get_outbox(db, user))


@router.get("/drafts", response_model=list[PrivateMessageResponse])
async def drafts(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return _many(await pm_service.get_drafts(db, user))


@router.get("/new/count", response_model=NewMessageCount)
async def new_count(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return {"count": await pm_service.current_user_new_pm_count(db, user)}


@router.post("", status_code=201, response_model=PrivateMessageResponse)
async def send(
    data: PrivateMessageCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    message = await pm_service.send_message(db, user, data.title, data.body, data.recipient)
    return pm_service.message_to_dict(message)


@router.post("/drafts", status_code=201, response_model=PrivateMessageResponse)
async def create_draft(
    data: DraftSave,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    message = await pm_service.save_draft(db, user, data.title, data.body, data.recipient)
    return pm_service.message_to_dict(message)


@router.put("/drafts/{pm_id}", response_model=PrivateMessageResponse)
async def update_draft(
    pm_id: int,
    data: DraftSave,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    message = await pm_service.save_draft(db, user, data.title, data.body, data.recipient, pm_id=pm_id)
    return pm_service.message_to_dict(message)


@router.post("/drafts/{pm_id}/send", response_model=PrivateMessageResponse)
async def send_draft(
    pm_id: int,
    data: PrivateMessageCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    message = await pm_service.send_draft(db, user, pm_id, data.title, data.body, data.recipient)
    return pm_service.message_to_dict(message)


@router.get("/{pm_id}", response_model=PrivateMessageResponse)
async def read(pm_id: int, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return pm_service.message_to_dict(await pm_service.get_message(db, user, pm_id))


@router.post("/delete", response_model=MessageDeleteResponse)
async def delete(
    data: MessageDelete,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return {"mailbox": await pm_service.delete_messages(db, user, data.ids)}
