# recognition/services/RecognitionEngine.py
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Union

from recognition.constants.constants import Direction, Visibility
from recognition.core.config import settings
from recognition.core.exceptions import (
    NotFoundError,
    NotificationError,
    PermissionDeniedError,
    ValidationError,
)
from recognition.schemas.recognitionSchema import (
    CreateRecognitionRequest,
    RecognitionResponse,
    RecognitionStatsResponse,
    UpdateRecognitionRequest,
    UserSummary,
)
from recognition.schemas.records import NewRecognition, RecognitionRecord, UserRecord, soft_delete
from recognition.services.NotificationFanout import NotificationFanout
from recognition.services.RecognitionStore import RecognitionFilter, RecognitionStore
from recognition.services.UserDirectory import UserDirectory
from recognition.utils.access_policy import can_mutate, is_readable
from recognition.utils.keywords import extract_keywords
from recognition.utils.validation import (
    validate_limit,
    validate_message,
    validate_recipient,
    validate_visibility_for_create,
)

logger = logging.getLogger(__name__)


class RecognitionEngine:
    """
    Creates, reads, edits and soft-deletes recognitions.

    Every read goes through the readability predicate and excludes deleted
    recognitions. Notifications are best-effort: a failed publish never
    fails or undoes a creation.
    """

    def __init__(self, store: RecognitionStore, directory: UserDirectory, fanout: NotificationFanout):
        self.store = store
        self.directory = directory
        self.fanout = fanout

    # ------------------------------
    # Create
    # ------------------------------
    async def create_recognition(self, sender_id: str, data: CreateRecognitionRequest) -> RecognitionResponse:
        """
        Create a recognition and notify live subscribers.

        Args:
            sender_id: ID of the acting user.
            data: Recipient, message and visibility.

        Returns:
            RecognitionResponse: The stored recognition, sender hidden when anonymous.

        Raises:
            ConflictError: If the sender is the recipient.
            ValidationError: If the input is invalid or the recipient does not exist.
        """
        validate_recipient(data.recipient_id, sender_id)
        message = validate_message(data.message)
        visibility = validate_visibility_for_create(data.visibility)

        if not await self.directory.exists(data.recipient_id):
            raise ValidationError("Recipient not found")

        record = await self.store.insert(NewRecognition(
            sender_id=None if visibility == Visibility.anonymous else sender_id,
            recipient_id=data.recipient_id,
            message=message,
            visibility=visibility,
            keywords=extract_keywords(message),
        ))
        logger.info(f"Recognition {record.id} created ({visibility.value})")

        response = (await self._format([record]))[0]
        try:
            await self.fanout.publish_created(response)
        except NotificationError as e:
            logger.error(f"Notification sending failed for recognition {record.id}: {e}")
        return response

    # ------------------------------
    # Read
    # ------------------------------
    async def get_recognitions(
        self,
        viewer_id: str,
        limit: Optional[int] = None,
        visibility: Union[Visibility, str, None] = None,
    ) -> List[RecognitionResponse]:
        """Recognitions the viewer may read, newest first."""
        if visibility is not None:
            visibility = self._parse_visibility_filter(visibility)

        records = await self.store.query_by_predicate(
            RecognitionFilter(readable_by=viewer_id, visibility=visibility),
            validate_limit(limit),
        )
        return await self._format(records)

    async def get_my_recognitions(
        self,
        viewer_id: str,
        direction: Union[Direction, str] = Direction.received,
        limit: Optional[int] = None,
    ) -> List[RecognitionResponse]:
        """Recognitions the viewer sent or received, newest first."""
        try:
            direction = Direction(direction)
        except ValueError:
            raise ValidationError("Direction must be 'sent' or 'received'")

        if direction == Direction.sent:
            predicate = RecognitionFilter(sender_id=viewer_id)
        else:
            predicate = RecognitionFilter(recipient_id=viewer_id)

        records = await self.store.query_by_predicate(predicate, validate_limit(limit))
        return await self._format(records)

    async def get_recognition_by_id(self, recognition_id: str, viewer_id: str) -> RecognitionResponse:
        """
        Fetch one recognition.

        Raises:
            NotFoundError: If it does not exist, is deleted, or the viewer may not read it.
        """
        record = await self.store.fetch_by_id(recognition_id)
        if record is None or not is_readable(record, viewer_id) or record.is_deleted:
            raise NotFoundError("Recognition not found")
        return (await self._format([record]))[0]

    async def get_recognition_stats(self, user_id: str) -> RecognitionStatsResponse:
        return RecognitionStatsResponse(
            sent=await self.store.count(RecognitionFilter(sender_id=user_id)),
            received=await self.store.count(RecognitionFilter(recipient_id=user_id)),
            public_sent=await self.store.count(
                RecognitionFilter(sender_id=user_id, visibility=Visibility.public)
            ),
            public_received=await self.store.count(
                RecognitionFilter(recipient_id=user_id, visibility=Visibility.public)
            ),
        )

    async def get_recent_activity(self, user_id: str, days: int = 30) -> List[RecognitionResponse]:
        """Recognitions the user sent or received in the last `days` days."""
        if days < 1:
            raise ValidationError("Days must be at least 1")

        since = datetime.now(timezone.utc) - timedelta(days=days)
        records = await self.store.query_by_predicate(
            RecognitionFilter(involving=user_id, created_after=since),
            settings.RECENT_ACTIVITY_LIMIT,
        )
        return await self._format(records)

    # ------------------------------
    # Update / delete
    # ------------------------------
    async def update_recognition(
        self,
        viewer_id: str,
        recognition_id: str,
        data: UpdateRecognitionRequest,
    ) -> RecognitionResponse:
        """
        Edit message and/or visibility of a recognition the viewer sent.

        Keywords are recomputed only when the message changes.

        Raises:
            NotFoundError: If the recognition does not exist or is deleted.
            PermissionDeniedError: If the viewer is not the recorded sender.
            ValidationError: If nothing is supplied or a supplied value is invalid.
        """
        record = await self.store.fetch_by_id(recognition_id)
        if record is None or record.is_deleted:
            raise NotFoundError("Recognition not found")
        if not can_mutate(record, viewer_id):
            raise PermissionDeniedError("You can only update your own recognitions")
        if data.message is None and data.visibility is None:
            raise ValidationError("No fields to update")

        fields = {}
        if data.message is not None:
            message = validate_message(data.message)
            if message != record.message:
                fields["message"] = message
                fields["keywords"] = extract_keywords(message)
        if data.visibility is not None:
            visibility = validate_visibility_for_create(data.visibility)
            if visibility != record.visibility:
                fields["visibility"] = visibility

        if fields:
            record = await self.store.update_fields(recognition_id, fields)
            logger.info(f"Recognition {recognition_id} updated: {', '.join(sorted(fields))}")
        return (await self._format([record]))[0]

    async def delete_recognition(self, viewer_id: str, recognition_id: str) -> bool:
        """
        Soft-delete a recognition the viewer sent.

        Deleting an already deleted recognition succeeds without writing again.

        Raises:
            NotFoundError: If the recognition does not exist.
            PermissionDeniedError: If the viewer is not the recorded sender.
        """
        record = await self.store.fetch_by_id(recognition_id)
        if record is None:
            raise NotFoundError("Recognition not found")
        if not can_mutate(record, viewer_id):
            raise PermissionDeniedError("You can only delete your own recognitions")
        if record.is_deleted:
            logger.info(f"Recognition {recognition_id} already deleted")
            return True

        deleted = soft_delete(record)
        await self.store.update_fields(recognition_id, {"visibility": deleted.visibility})
        logger.info(f"Recognition {recognition_id} deleted")
        return True

    # ------------------------------
    # Helpers
    # ------------------------------
    def _parse_visibility_filter(self, visibility: Union[Visibility, str]) -> Visibility:
        try:
            return Visibility(visibility)
        except ValueError:
            raise ValidationError(f"Unknown visibility: {visibility}")

    async def _format(self, records: List[RecognitionRecord]) -> List[RecognitionResponse]:
        """Turn records into responses, resolving sender and recipient through the directory."""
        user_ids = set()
        for record in records:
            user_ids.add(record.recipient_id)
            if record.sender_id:
                user_ids.add(record.sender_id)
        users = await self.directory.get_many(user_ids) if user_ids else {}
        return [self._format_one(record, users) for record in records]

    def _format_one(self, record: RecognitionRecord, users: Dict[str, UserRecord]) -> RecognitionResponse:
        sender = None
        if record.sender_id is not None and record.visibility != Visibility.anonymous:
            sender = self._summary(record.sender_id, users)
        return RecognitionResponse(
            id=record.id,
            message=record.message,
            visibility=record.visibility,
            keywords=list(record.keywords),
            created_at=record.created_at,
            sender=sender,
            recipient=self._summary(record.recipient_id, users),
        )

    def _summary(self, user_id: str, users: Dict[str, UserRecord]) -> UserSummary:
        user = users.get(user_id)
        if user is None:
            return UserSummary(id=user_id)
        return UserSummary(id=user.id, name=user.name, email=user.email)
