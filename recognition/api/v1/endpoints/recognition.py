"""Recognition router: send, browse, edit and delete recognitions."""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from recognition.constants.constants import Direction, Visibility
from recognition.core.dependencies import get_recognition_engine
from recognition.core.security import Identity, get_current_identity
from recognition.schemas.recognitionSchema import (
    CreateRecognitionRequest,
    RecognitionResponse,
    RecognitionStatsResponse,
    UpdateRecognitionRequest,
)
from recognition.services.RecognitionEngine import RecognitionEngine

router = APIRouter(
    prefix="/recognitions",
    tags=["recognitions"]
)


@router.post("", response_model=RecognitionResponse, status_code=201)
async def create_recognition(
    data: CreateRecognitionRequest,
    identity: Identity = Depends(get_current_identity),
    engine: RecognitionEngine = Depends(get_recognition_engine)
):
    """
    Send a recognition to a colleague.
    Live subscribers are notified; ANONYMOUS recognitions never reveal the sender.
    """
    return await engine.create_recognition(identity.id, data)


@router.get("", response_model=List[RecognitionResponse])
async def get_recognitions(
    limit: int = Query(20, description="Number of recognitions to return"),
    visibility: Optional[Visibility] = Query(None, description="Only return this visibility"),
    identity: Identity = Depends(get_current_identity),
    engine: RecognitionEngine = Depends(get_recognition_engine)
):
    """
    Get recognitions visible to the current user, newest first.
    """
    return await engine.get_recognitions(identity.id, limit=limit, visibility=visibility)


@router.get("/mine", response_model=List[RecognitionResponse])
async def get_my_recognitions(
    direction: Direction = Query(Direction.received, description="sent or received"),
    limit: int = Query(20, description="Number of recognitions to return"),
    identity: Identity = Depends(get_current_identity),
    engine: RecognitionEngine = Depends(get_recognition_engine)
):
    """Get recognitions the current user sent or received."""
    return await engine.get_my_recognitions(identity.id, direction=direction, limit=limit)


@router.get("/stats", response_model=RecognitionStatsResponse)
async def get_recognition_stats(
    identity: Identity = Depends(get_current_identity),
    engine: RecognitionEngine = Depends(get_recognition_engine)
):
    """Sent and received counts for the current user."""
    return await engine.get_recognition_stats(identity.id)


@router.get("/recent", response_model=List[RecognitionResponse])
async def get_recent_activity(
    days: int = Query(30, description="How many days back to look"),
    identity: Identity = Depends(get_current_identity),
    engine: RecognitionEngine = Depends(get_recognition_engine)
):
    return await engine.get_recent_activity(identity.id, days=days)


@router.get("/{recognition_id}", response_model=RecognitionResponse)
async def get_recognition(
    recognition_id: str,
    identity: Identity = Depends(get_current_identity),
    engine: RecognitionEngine = Depends(get_recognition_engine)
):
    """Get a single recognition. Returns 404 for anything the user may not see."""
    return await engine.get_recognition_by_id(recognition_id, identity.id)


@router.patch("/{recognition_id}", response_model=RecognitionResponse)
async def update_recognition(
    recognition_id: str,
    data: UpdateRecognitionRequest,
    identity: Identity = Depends(get_current_identity),
    engine: RecognitionEngine = Depends(get_recognition_engine)
):
    """Edit the message or visibility of a recognition you sent."""
    return await engine.update_recognition(identity.id, recognition_id, data)


@router.delete("/{recognition_id}")
async def delete_recognition(
    recognition_id: str,
    identity: Identity = Depends(get_current_identity),
    engine: RecognitionEngine = Depends(get_recognition_engine)
):
    """Soft-delete a recognition you sent."""
    deleted = await engine.delete_recognition(identity.id, recognition_id)
    return {"success": deleted}
