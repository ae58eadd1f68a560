from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from forum.database import get_db
from forum.dependencies import get_current_user
from forum.models import User
from forum.schemas import LoginRequest, PasswordRestore, ProfileUpdate, UserRegister, UserResponse
from forum.services import user_service

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.post("", status_code=201, response_model=UserResponse)
async def register(data: UserRegister, db: AsyncSession = Depends(get_db)):
    try:
        user = await user_service.register_user(db, data)
    except IntegrityError:
        raise HTTPException(
            status_code=409,
            detail="A user with this username or email already exists",
        )
    return user_service.user_to_dict(user)


@router.get("/activate/{uuid}", response_model=UserResponse)
async def activate(uuid: str, db: AsyncSession = Depends(get_db)):
    return user_service.user_to_dict(await user_service.activate_account(db, uuid))


@router.post("/restore-password", status_code=204)
async def restore_password(data: PasswordRestore, db: AsyncSession = Depends(get_db)):
    await user_service.restore_password(db, data.email)


@router.post("/login", response_model=UserResponse)
async def login(data: LoginRequest, db: AsyncSession = Depends(get_db)):
    user = await user_service.login_user(db, data.username, data.password)
    if user is None:
        raise HTTPException(status_code=401, detail="Wrong username or password")
    return user_service.user_to_dict(user)


@router.get("/usernames", response_model=list[str])
async def suggest_usernames(prefix: str = Query(..., min_length=1), db: AsyncSession = Depends(get_db)):
    return await user_service.get_usernames(db, prefix)


@router.get("/{username}", response_model=UserResponse)
async def get_user(username: str, db: AsyncSession = Depends(get_db)):
    return user_service.user_to_dict(await user_service.get_by_username(db, username))


@router.put("/{user_id}/profile", response_model=UserResponse)
async def edit_profile(
    user_id: int,
    data: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if current_user.id != user_id:
        raise HTTPException(status_code=403, detail="Only the owner may edit this profile")
    try:
        user = await user_service.save_edited_profile(db, user_id, data)
    except IntegrityError:
        raise HTTPException(status_code=409, detail="This email is already in use")
    return user_service.user_to_dict(user)
