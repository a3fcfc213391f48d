# Shared module for configuration, models, storage and notifications
from .config import Settings, get_settings
from .database import (
    InMemorySessionStore,
    MongoSessionStore,
    SessionStore,
    create_session_store,
)
from .models import (
    CVData,
    CVScore,
    ComparisonMatrix,
    Document,
    DocumentStatus,
    JobOffer,
    Session,
    SessionStatus,
)
from .notifications import NotificationSink, Notifier, create_notifier

__all__ = [
    "Settings",
    "get_settings",
    "SessionStore",
    "InMemorySessionStore",
    "MongoSessionStore",
    "create_session_store",
    "CVData",
    "CVScore",
    "ComparisonMatrix",
    "Document",
    "DocumentStatus",
    "JobOffer",
    "Session",
    "SessionStatus",
    "NotificationSink",
    "Notifier",
    "create_notifier",
]
