"""FastAPI dependencies wiring the engine to a request's session and the app's message bus."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import HTTPConnection

from recognition.core.database import aget_db
from recognition.services.AnalyticsAggregator import AnalyticsAggregator
from recognition.services.NotificationFanout import MessageBus, NotificationFanout
from recognition.services.RecognitionEngine import RecognitionEngine
from recognition.services.RecognitionStore import RecognitionStore, SqlRecognitionStore
from recognition.services.UserDirectory import SqlUserDirectory, UserDirectory


def get_message_bus(connection: HTTPConnection) -> MessageBus:
    """The bus created in the app lifespan."""
    return connection.app.state.message_bus


def get_fanout(bus: MessageBus = Depends(get_message_bus)) -> NotificationFanout:
    return NotificationFanout(bus)


def get_recognition_store(db: AsyncSession = Depends(aget_db)) -> RecognitionStore:
    return SqlRecognitionStore(db)


def get_user_directory(db: AsyncSession = Depends(aget_db)) -> UserDirectory:
    return SqlUserDirectory(db)


def get_recognition_engine(
    store: RecognitionStore = Depends(get_recognition_store),
    directory: UserDirectory = Depends(get_user_directory),
    fanout: NotificationFanout = Depends(get_fanout),
) -> RecognitionEngine:
    return RecognitionEngine(store, directory, fanout)


def get_analytics(store: RecognitionStore = Depends(get_recognition_store)) -> AnalyticsAggregator:
    return AnalyticsAggregator(store)
