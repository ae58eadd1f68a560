from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from forum.database import get_db
from forum.dependencies import PaginationParams, get_current_user
from forum.models import User
from forum.schemas import PaginatedResponse, PostCreate, PostResponse, TopicCreate, TopicResponse
from forum.services import topic_service

router = APIRouter(prefix="/api/v1/topics", tags=["topics"])


@router.get("", response_model=PaginatedResponse)
async def list_topics(pagination: PaginationParams = Depends(), db: AsyncSession = Depends(get_db)):
    return await topic_service.list_topics(db, pagination.page, pagination.page_size)


@router.post("", status_code=201, response_model=TopicResponse)
async def create_topic(
    data: TopicCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return topic_service.topic_to_dict(await topic_service.create_topic(db, user, data))


@router.get("/{topic_id}", response_model=TopicResponse)
async def get_topic(topic_id: int, db: AsyncSession = Depends(get_db)):
    return topic_service.topic_to_dict(await topic_service.get_topic(db, topic_id))


@router.get("/{topic_id}/posts", response_model=PaginatedResponse)
async def list_posts(
    topic_id: int,
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    return await topic_service.get_posts(db, topic_id, pagination.page, pagination.page_size)


@router.post("/{topic_id}/posts", status_code=201, response_model=PostResponse)
async def add_post(
    topic_id: int,
    data: PostCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return topic_service.post_to_dict(await topic_service.add_post(db, user, topic_id, data.body))


@router.put("/{topic_id}/posts/{post_id}", response_model=PostResponse)
async def edit_post(
    topic_id: int,
    post_id: int,
    data: PostCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    post = await topic_service.edit_post(db, user, topic_id, post_id, data.body)
    return topic_service.post_to_dict(post)
