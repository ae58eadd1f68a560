from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from forum.database import get_db
from forum.dependencies import get_current_user
from forum.models import User
from forum.schemas import PollResponse, VoteRequest
from forum.services import poll_service

router = APIRouter(prefix="/api/v1/polls", tags=["polls"])


@router.get("/{poll_id}", response_model=PollResponse)
async def get_poll(poll_id: int, db: AsyncSession = Depends(get_db)):
    return poll_service.poll_to_dict(await poll_service.get_poll(db, poll_id))


@router.post("/{poll_id}/votes", response_model=PollResponse)
async def vote(
    poll_id: int,
    data: VoteRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return poll_service.poll_to_dict(await poll_service.vote(db, poll_id, data.item_ids))
