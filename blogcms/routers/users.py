import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from blogcms.cache import RevocationSet
from blogcms.database import get_db
from blogcms.dependencies import get_bearer_token, get_optional_user, get_revocations, require_self
from blogcms.models import User
from blogcms.sanitizers import sanitize_user, sanitize_user_minimal, sanitize_users
from blogcms.schemas import UserCreate, UserLogin, UserUpdate
from blogcms.security import remaining_lifetime
from blogcms.services import user_service

router = APIRouter(prefix="/users", tags=["users"])

@router.post("/register", status_code=201)
async def register(data: UserCreate, db: AsyncSession = Depends(get_db)):
    user, token = await user_service.register(db, data)
    return {"message": "User created successfully", "token": token, "user": sanitize_user(user)}

@router.post("/login")
async def login(data: UserLogin, db: AsyncSession = Depends(get_db)):
    user, token = await user_service.login(db, data)
    return {"message": "Login successful", "token": token, "user": sanitize_user(user)}

@router.post("/logout")
async def logout(
    token: str | None = Depends(get_bearer_token),
    revocations: RevocationSet = Depends(get_revocations),
):
    if token:
        await revocations.revoke(token, ttl=remaining_lifetime(token))
    return {"message": "Logout successful"}

@router.get("")
async def list_users(db: AsyncSession = Depends(get_db)):
    return sanitize_users(await user_service.get_users(db))

@router.get("/{user_id}")
async def get_user(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    user = await user_service.get_user(db, user_id)
    if viewer is not None and viewer.id == user.id:
        return sanitize_user(user)
    return sanitize_user_minimal(user)

@router.patch("/{user_id}")
async def update_user(
    data: UserUpdate,
    current_user: User = Depends(require_self),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.update_user(db, current_user, data)
    return {"message": "User updated successfully", "data": {"user": sanitize_user(user)}}

@router.delete("/{user_id}")
async def delete_user(
    current_user: User = Depends(require_self),
    db: AsyncSession = Depends(get_db),
):
    await user_service.delete_user(db, current_user)
    return {"message": "User deleted successfully"}
