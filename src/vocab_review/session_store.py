"""
Session Store module for the durable copy of the auth session.

This module keeps the session token and the cached user profile in an
HMAC-protected JSON file so a restarted client can resume the session,
and detects tampering with the stored token.
"""

import hashlib
import hmac
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .exceptions import PersistenceError, TamperingError
from .models import AuthUser, StoredSession


class SessionStore:
    """
    Persistent session storage with HMAC protection.

    Holds two durable entries, the session token and the user profile.
    Absence of either one reads back as logged-out.
    """

    VERSION = 1

    def __init__(self, file_path: Path, hmac_secret: str) -> None:
        """
        Initialize the session store.

        Args:
            file_path: Path to the session file (JSON format)
            hmac_secret: Secret key for HMAC computation
        """
        self._file_path = file_path
        self._hmac_secret = hmac_secret.encode("utf-8")

    def load(self) -> Optional[StoredSession]:
        """
        Load the stored session and validate its HMAC.

        Returns:
            StoredSession if a token and user are stored, None otherwise

        Raises:
            TamperingError: If HMAC validation fails
            PersistenceError: If the file cannot be read or parsed
        """
        if not self._file_path.exists():
            return None

        try:
            with open(self._file_path, "r", encoding="utf-8") as f:
                raw_data = json.load(f)
        except json.JSONDecodeError as e:
            raise PersistenceError(
                code="parse_error",
                message=f"Failed to parse session file: {e}",
                details={"file_path": str(self._file_path)},
            )
        except OSError as e:
            raise PersistenceError(
                code="io_error",
                message=f"Failed to read session file: {e}",
                details={"file_path": str(self._file_path)},
            )

        if not isinstance(raw_data, dict):
            raise PersistenceError(
                code="parse_error",
                message="Session file does not contain an object",
                details={"file_path": str(self._file_path)},
            )

        stored_hmac = str(raw_data.get("hmac") or "")
        computed_hmac = self.compute_hmac(self._signed_fields(raw_data))

        if not self.validate_hmac(stored_hmac, computed_hmac):
            raise TamperingError(
                code="hmac_mismatch",
                message="HMAC validation failed - session file may have been tampered with",
                details={"file_path": str(self._file_path)},
            )

        token = raw_data.get("token")
        user_data = raw_data.get("user")
        if not token or not user_data:
            return None

        try:
            user = AuthUser.from_dict(user_data)
        except (KeyError, TypeError) as e:
            raise PersistenceError(
                code="parse_error",
                message=f"Stored user profile is malformed: {e}",
                details={"file_path": str(self._file_path)},
            )

        return StoredSession(
            token=token,
            user=user,
            updated_at=raw_data.get("updated_at", ""),
        )

    def save(self, token: str, user: AuthUser) -> StoredSession:
        """
        Persist the session token and user profile.

        Args:
            token: Session token issued by the auth API
            user: Profile of the logged-in user

        Returns:
            The stored session

        Raises:
            PersistenceError: If the file cannot be written
        """
        now = datetime.now(timezone.utc).isoformat()
        self._write({
            "version": self.VERSION,
            "token": token,
            "user": user.to_dict(),
            "updated_at": now,
        })
        return StoredSession(token=token, user=user, updated_at=now)

    def clear(self) -> None:
        """
        Remove the stored token and user profile.

        Raises:
            PersistenceError: If the file cannot be written
        """
        self._write({
            "version": self.VERSION,
            "token": None,
            "user": None,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        })

    def _write(self, data: dict) -> None:
        output_data = dict(data)
        output_data["hmac"] = self.compute_hmac(self._signed_fields(data))

        self._file_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(self._file_path, "w", encoding="utf-8") as f:
                json.dump(output_data, f, indent=2, sort_keys=True)
        except OSError as e:
            raise PersistenceError(
                code="io_error",
                message=f"Failed to write session file: {e}",
                details={"file_path": str(self._file_path)},
            )

    @staticmethod
    def _signed_fields(data: dict) -> dict:
        return {
            "version": data.get("version"),
            "token": data.get("token"),
            "user": data.get("user"),
            "updated_at": data.get("updated_at"),
        }

    def compute_hmac(self, data: dict) -> str:
        """
        Compute HMAC-SHA256 over serialized data.

        Args:
            data: Dictionary to compute HMAC over

        Returns:
            Hexadecimal HMAC string
        """
        serialized = json.dumps(data, sort_keys=True, separators=(",", ":"))
        return hmac.new(
            self._hmac_secret,
            serialized.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

    def validate_hmac(self, stored_hmac: str, computed_hmac: str) -> bool:
        """Validate HMAC using constant-time comparison."""
        return hmac.compare_digest(stored_hmac.encode("utf-8"), computed_hmac.encode("utf-8"))

    @property
    def file_path(self) -> Path:
        """Get the session file path."""
        return self._file_path
