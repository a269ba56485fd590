# Overview: SQLAlchemy models re-exported for `from sealtrack.models import ...`.

from .documents import StoredDocument
from .auth import Identity, SessionToken, PasswordResetToken
from .security import SecurityEvent

__all__ = [
    "StoredDocument",
    "Identity",
    "SessionToken",
    "PasswordResetToken",
    "SecurityEvent",
]
