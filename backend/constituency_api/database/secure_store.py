"""
Secure key-value storage for session and PIN material.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from ..errors import DatabaseUnavailableError
from .database_config import secure_session
from .models import SecureItem

logger = logging.getLogger(__name__)

DEVICE_SALT_KEY = "deviceSalt"


def session_key(token: str) -> str:
    return f"userUid_{token}"


def pin_hash_key(user_id: str) -> str:
    return f"adminPinHash_{user_id}"


def lockout_key(user_id: str) -> str:
    return f"adminLockoutUntil_{user_id}"


class SecureStore:
    """Get/set/delete string values by key."""

    def get_item(self, key: str) -> Optional[str]:
        try:
            with secure_session() as session:
                item = session.get(SecureItem, key)
                return item.value if item else None
        except SQLAlchemyError as e:
            logger.error(f"Secure store read failed for {key}: {e}")
            raise DatabaseUnavailableError("Secure storage is unavailable") from e

    def set_item(self, key: str, value: str) -> None:
        try:
            with secure_session() as session:
                item = session.get(SecureItem, key)
                if item is None:
                    session.add(SecureItem(key=key, value=value))
                else:
                    item.value = value
        except SQLAlchemyError as e:
            logger.error(f"Secure store write failed for {key}: {e}")
            raise DatabaseUnavailableError("Secure storage is unavailable") from e

    def delete_item(self, key: str) -> None:
        try:
            with secure_session() as session:
                item = session.get(SecureItem, key)
                if item is not None:
                    session.delete(item)
        except SQLAlchemyError as e:
            logger.error(f"Secure store delete failed for {key}: {e}")
            raise DatabaseUnavailableError("Secure storage is unavailable") from e


# Global store instance
_secure_store = None


def get_secure_store() -> SecureStore:
    """Get or create the global secure store instance."""
    global _secure_store
    if _secure_store is None:
        _secure_store = SecureStore()
    return _secure_store
