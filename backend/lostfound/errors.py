"""
Error taxonomy for the matching and verification engine.

Every error carries a human-readable ``message``, optional structured
``details`` and the HTTP status the API layer renders it with. Routes never
build error responses for these by hand; the v1 API registers one handler for
``LostFoundError``.

``DuplicateError`` and ``DependencyError`` are internal: the creation path
converts the first into a silent skip, and notification failures are logged
and dropped at the controller boundary.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class LostFoundError(Exception):
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body: Dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(LostFoundError):
    """Malformed or missing input (empty secret, missing id, bad payload)."""

    status_code = 400


class NotFoundError(LostFoundError):
    status_code = 404


class AuthorizationError(LostFoundError):
    """Requester is not the user allowed to act (not the lost item's owner)."""

    status_code = 403


class InvalidStateError(LostFoundError):
    """Action attempted on a match that already reached a terminal state."""

    status_code = 409

    def __init__(self, current_status: str, message: Optional[str] = None) -> None:
        super().__init__(
            message or f"This match is already {current_status}",
            {"status": current_status},
        )
        self.current_status = current_status


class IntegrityError(LostFoundError):
    """A denormalized reference no longer resolves. Upstream data problem, not user error."""

    status_code = 500


class DuplicateError(LostFoundError):
    status_code = 409

    def __init__(self, lost_item_id: int, found_item_id: int) -> None:
        super().__init__(
            "Match already exists for this lost/found pair",
            {"lostItemId": lost_item_id, "foundItemId": found_item_id},
        )
        self.lost_item_id = lost_item_id
        self.found_item_id = found_item_id


class DependencyError(LostFoundError):
    """A best-effort collaborator (notification delivery) failed."""

    status_code = 502


class AuthenticationRequired(LostFoundError):
    status_code = 401

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)
