from fastapi import Depends, Header, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from forum.config import settings
from forum.database import get_db
from forum.models import User
from forum.repositories import UserRepository

IDENTITY_HEADER = "X-Forum-User"


class PaginationParams:
    """
    Reusable FastAPI dependency parsing ``page`` / ``page_size`` query
    parameters.

    ``page_size`` is clamped to ``settings.MAX_PAGE_SIZE`` regardless of the
    value supplied by the caller.
    """

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number (1-based)."),
        page_size: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            description="Number of items returned per page.",
        ),
    ) -> None:
        self.page = page
        self.page_size = min(page_size, settings.MAX_PAGE_SIZE)


async def get_current_user(
    username: str | None = Header(None, alias=IDENTITY_HEADER),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve the acting user from the identity header.

    Authentication happens in front of this service; the header carries the
    username it established.  Unknown or disabled users are rejected.
    """
    if not username:
        raise HTTPException(status_code=401, detail="Not authenticated")
    user = await UserRepository(db).get_by_username(username)
    if user is None or not user.enabled:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user
