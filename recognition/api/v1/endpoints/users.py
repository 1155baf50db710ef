import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query

from recognition.core.dependencies import get_user_directory
from recognition.core.security import Identity, get_current_identity
from recognition.schemas.usersSchema import TeamResponse, UserResponse
from recognition.services.UserDirectory import UserDirectory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_me(
    identity: Identity = Depends(get_current_identity),
    directory: UserDirectory = Depends(get_user_directory)
):
    """Return the current authenticated user."""
    user = await directory.get(identity.id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("", response_model=List[UserResponse])
async def list_users(
    limit: int = Query(20, ge=1, le=100),
    identity: Identity = Depends(get_current_identity),
    directory: UserDirectory = Depends(get_user_directory)
):
    """List users ordered by name."""
    return await directory.list_users(limit)


@router.get("/teams/{team_id}", response_model=TeamResponse)
async def get_team(
    team_id: str,
    identity: Identity = Depends(get_current_identity),
    directory: UserDirectory = Depends(get_user_directory)
):
    """Get a team with its members."""
    team = await directory.get_team(team_id)
    if not team:
        raise HTTPException(status_code=404, detail="Team not found")
    members = await directory.get_team_members(team_id)
    return TeamResponse(**team.model_dump(), members=[UserResponse(**m.model_dump()) for m in members])


@router.get("/teams/{team_id}/members", response_model=List[UserResponse])
async def get_team_members(
    team_id: str,
    identity: Identity = Depends(get_current_identity),
    directory: UserDirectory = Depends(get_user_directory)
):
    return await directory.get_team_members(team_id)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    identity: Identity = Depends(get_current_identity),
    directory: UserDirectory = Depends(get_user_directory)
):
    user = await directory.get(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user
