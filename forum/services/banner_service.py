"""
Banner service: one raw HTML/JS banner per page position.

Banners are read on every page render and change rarely, so the full map
is served from the cache and dropped on every upload.
"""
import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from forum.cache import cache
from forum.models import Banner, BannerPosition
from forum.repositories import BannerRepository

logger = logging.getLogger(__name__)


def banner_to_dict(banner: Banner) -> dict:
    return {"uuid": banner.uuid, "position": banner.position.value, "content": banner.content}


async def upload_banner(db: AsyncSession, position: BannerPosition, content: str) -> Banner:
    """Replace the banner at *position*, creating it on first upload."""
    repo = BannerRepository(db)
    banner = await repo.get_by_position(position)
    if banner is None:
        banner = await repo.add(Banner(uuid=uuid.uuid4().hex, position=position, content=content))
    else:
        banner.content = content
        await db.flush()

    await cache.invalidate_banners()
    logger.info("Banner %s uploaded at position %s", banner.uuid, position.value)
    return banner


async def get_banners(db: AsyncSession) -> dict[str, dict]:
    """Return ``{position: banner_dict}`` for every position that has a banner."""
    cached = await cache.get_banners()
    if cached is not None:
        return cached

    banners = {b.position.value: banner_to_dict(b) for b in await BannerRepository(db).list()}
    await cache.put_banners(banners)
    return banners
