from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from forum.database import get_db
from forum.dependencies import get_current_user
from forum.models import User
from forum.schemas import BannerResponse, BannerUpload
from forum.services import banner_service

router = APIRouter(prefix="/api/v1/banners", tags=["banners"])


@router.get("", response_model=dict[str, BannerResponse])
async def list_banners(db: AsyncSession = Depends(get_db)):
    return await banner_service.get_banners(db)


# Who may upload is decided by the permission layer in front of this service.
@router.put("", response_model=BannerResponse)
async def upload_banner(
    data: BannerUpload,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    banner = await banner_service.upload_banner(db, data.position, data.content)
    return banner_service.banner_to_dict(banner)
