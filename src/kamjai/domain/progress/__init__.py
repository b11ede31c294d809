# Domain Progress Package
from .models import (
    Rating,
    ReviewProgressRecord,
    ReviewSessionLog,
    RuntimeSettings,
    UserProfileProgress,
)

__all__ = [
    "Rating",
    "ReviewProgressRecord",
    "ReviewSessionLog",
    "RuntimeSettings",
    "UserProfileProgress",
]
