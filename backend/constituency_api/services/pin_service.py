"""
PIN re-authentication for administrators.

Hashes are SHA-256 of pin + device salt + user id, kept in secure storage
next to the device salt. Each signed-in client holds an opaque session
token; the token maps to its user id in secure storage.
"""

import hmac
import uuid
import hashlib
import secrets
import logging
import datetime as dt
from enum import Enum
from typing import Dict, Any, Optional
from dataclasses import dataclass

from ..database.secure_store import (
    SecureStore,
    get_secure_store,
    DEVICE_SALT_KEY,
    session_key,
    pin_hash_key,
    lockout_key,
)
from ..errors import SessionExpiredError, ValidationError, PermissionDeniedError, NotFoundError

logger = logging.getLogger(__name__)

PIN_LENGTH = 6
MAX_PIN_ATTEMPTS = 5
LOCKOUT_DURATION = dt.timedelta(minutes=5)


def handle_pin_input(pin: str, digit: str) -> str:
    if len(pin) < PIN_LENGTH:
        return pin + digit
    return pin


def handle_pin_backspace(pin: str) -> str:
    return pin[:-1] if pin else pin


def is_well_formed(pin: str) -> bool:
    return len(pin) == PIN_LENGTH and pin.isdigit()


def hash_pin(pin: str, salt: str, user_id: str) -> str:
    return hashlib.sha256(f"{pin}{salt}{user_id}".encode("utf-8")).hexdigest()


class PinService:
    """Session, salt and PIN-hash handling on top of secure storage."""

    def __init__(self, store: Optional[SecureStore] = None):
        self.store = store or get_secure_store()
        self._attempts: Dict[str, int] = {}

    # Session

    def start_session(self, user_id: str) -> str:
        """Open a session for user_id and return its token."""
        token = secrets.token_urlsafe(32)
        self.store.set_item(session_key(token), user_id)
        logger.info(f"Session started for {user_id}")
        return token

    def end_session(self, token: Optional[str]) -> None:
        if token:
            self.store.delete_item(session_key(token))

    def session_user(self, token: Optional[str]) -> str:
        user_id = self.store.get_item(session_key(token)) if token else None
        if not user_id:
            raise SessionExpiredError("User session expired")
        return user_id

    # Salt and hashes

    def generate_device_salt(self) -> str:
        salt = self.store.get_item(DEVICE_SALT_KEY)
        if not salt:
            salt = secrets.token_hex(16)
            self.store.set_item(DEVICE_SALT_KEY, salt)
        return salt

    def has_pin(self, user_id: str) -> bool:
        return bool(self.store.get_item(pin_hash_key(user_id)))

    def _matches(self, pin: str, user_id: str) -> Optional[bool]:
        stored = self.store.get_item(pin_hash_key(user_id))
        if not stored:
            return None
        candidate = hash_pin(pin, self.generate_device_salt(), user_id)
        return hmac.compare_digest(candidate, stored)

    def _clear_lockout(self, user_id: str) -> None:
        self.store.delete_item(lockout_key(user_id))
        self._attempts.pop(user_id, None)

    def verify_current_pin(self, token: Optional[str], pin: str) -> bool:
        user_id = self.session_user(token)
        return bool(self._matches(pin, user_id))

    def update_pin(self, token: Optional[str], new_pin: str) -> None:
        if not is_well_formed(new_pin):
            raise ValidationError(f"PIN must be {PIN_LENGTH} digits")
        user_id = self.session_user(token)
        self.store.set_item(pin_hash_key(user_id), hash_pin(new_pin, self.generate_device_salt(), user_id))
        self._clear_lockout(user_id)
        logger.info(f"PIN updated for {user_id}")

    def setup_pin(self, token: Optional[str], pin: str) -> None:
        """First-time PIN. An existing PIN is only replaced through the change flow."""
        user_id = self.session_user(token)
        if self.has_pin(user_id):
            raise PermissionDeniedError("A PIN is already set. Use change PIN instead.")
        self.update_pin(token, pin)

    def reset_pin(self, token: Optional[str], current_pin: str, now: Optional[dt.datetime] = None) -> None:
        """Remove the PIN; the caller must prove the current one."""
        user_id = self.session_user(token)
        result = self.verify_admin_pin(token, current_pin, now)
        if not result["has_pin"]:
            raise NotFoundError("No admin PIN found")
        if not result["ok"]:
            raise PermissionDeniedError("The PIN you entered is incorrect",
                                        {"attempts_left": result["attempts_left"]})
        self.store.delete_item(pin_hash_key(user_id))
        self._clear_lockout(user_id)
        logger.info(f"PIN reset for {user_id}")

    # Admin unlock with lockout

    def lockout_until(self, user_id: str, now: Optional[dt.datetime] = None) -> Optional[dt.datetime]:
        raw = self.store.get_item(lockout_key(user_id))
        if not raw:
            return None
        until = dt.datetime.fromisoformat(raw)
        return until if until > (now or dt.datetime.utcnow()) else None

    def verify_admin_pin(self, token: Optional[str], pin: str, now: Optional[dt.datetime] = None) -> Dict[str, Any]:
        """Unlock the admin area. Five wrong PINs lock it for five minutes."""
        now = now or dt.datetime.utcnow()
        user_id = self.session_user(token)

        locked = self.lockout_until(user_id, now)
        if locked:
            raise PermissionDeniedError(
                "Too many failed attempts. Please try again later.",
                {"lockout_until": locked.isoformat()},
            )

        matched = self._matches(pin, user_id)
        if matched is None:
            return {"ok": False, "has_pin": False, "message": "No admin PIN found. Please setup a new PIN."}

        if matched:
            self._attempts.pop(user_id, None)
            self.store.delete_item(lockout_key(user_id))
            return {"ok": True, "has_pin": True}

        attempts = self._attempts.get(user_id, 0) + 1
        remaining = MAX_PIN_ATTEMPTS - attempts
        if remaining <= 0:
            until = now + LOCKOUT_DURATION
            self.store.set_item(lockout_key(user_id), until.isoformat())
            self._attempts.pop(user_id, None)
            logger.warning(f"Admin PIN locked for {user_id} until {until.isoformat()}")
            raise PermissionDeniedError(
                "Too many failed attempts. Please verify your identity to continue.",
                {"lockout_until": until.isoformat()},
            )

        self._attempts[user_id] = attempts
        return {
            "ok": False,
            "has_pin": True,
            "attempts_left": remaining,
            "message": f"You have {remaining} attempt{'s' if remaining > 1 else ''} remaining",
        }


class PinStep(Enum):
    """Steps of the change-PIN flow."""
    ENTER_CURRENT = 1
    ENTER_NEW = 2
    CONFIRM_NEW = 3
    DONE = 4


@dataclass
class PinChangeResult:
    step: PinStep
    ok: bool
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"step": self.step.value, "state": self.step.name.lower(), "ok": self.ok, "message": self.message}


class PinChangeFlow:
    """Enter current PIN, enter new PIN, confirm it, persist."""

    def __init__(self, pin_service: PinService, token: str):
        self.pin_service = pin_service
        self.token = token
        self.step = PinStep.ENTER_CURRENT
        self.new_pin = ""

    def submit(self, pin: str) -> PinChangeResult:
        if self.step is PinStep.ENTER_CURRENT:
            if self.pin_service.verify_current_pin(self.token, pin):
                self.step = PinStep.ENTER_NEW
                return PinChangeResult(self.step, True)
            return PinChangeResult(self.step, False, "The PIN you entered is incorrect")

        if self.step is PinStep.ENTER_NEW:
            if not is_well_formed(pin):
                return PinChangeResult(self.step, False, f"PIN must be {PIN_LENGTH} digits")
            self.new_pin = pin
            self.step = PinStep.CONFIRM_NEW
            return PinChangeResult(self.step, True)

        if self.step is PinStep.CONFIRM_NEW:
            if pin != self.new_pin:
                self.new_pin = ""
                self.step = PinStep.ENTER_NEW
                return PinChangeResult(self.step, False, "The PINs you entered don't match")
            self.pin_service.update_pin(self.token, self.new_pin)
            self.new_pin = ""
            self.step = PinStep.DONE
            return PinChangeResult(self.step, True, "PIN changed successfully")

        return PinChangeResult(self.step, False, "PIN change already completed")


class PinChangeSessions:
    """Open change-PIN flows keyed by flow id."""

    def __init__(self, pin_service: PinService):
        self.pin_service = pin_service
        self.flows: Dict[str, PinChangeFlow] = {}

    def start(self, token: Optional[str]) -> str:
        self.pin_service.session_user(token)
        flow_id = str(uuid.uuid4())
        self.flows[flow_id] = PinChangeFlow(self.pin_service, token)
        return flow_id

    def _flow(self, flow_id: str, token: Optional[str]) -> Optional[PinChangeFlow]:
        flow = self.flows.get(flow_id)
        if flow is None or not token or not hmac.compare_digest(flow.token, token):
            return None
        return flow

    def submit(self, flow_id: str, token: Optional[str], pin: str) -> PinChangeResult:
        flow = self._flow(flow_id, token)
        if flow is None:
            raise NotFoundError("PIN change session not found")
        result = flow.submit(pin)
        if result.step is PinStep.DONE:
            self.flows.pop(flow_id, None)
        return result

    def cancel(self, flow_id: str, token: Optional[str]) -> None:
        if self._flow(flow_id, token) is not None:
            self.flows.pop(flow_id, None)


# Global service instance
_pin_service = None
_pin_change_sessions = None


def get_pin_service() -> PinService:
    """Get or create the global PIN service instance."""
    global _pin_service
    if _pin_service is None:
        _pin_service = PinService()
    return _pin_service


def get_pin_change_sessions() -> PinChangeSessions:
    global _pin_change_sessions
    if _pin_change_sessions is None:
        _pin_change_sessions = PinChangeSessions(get_pin_service())
    return _pin_change_sessions
