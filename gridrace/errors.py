"""
Errors - Exceptions raised by session operations.

Each error carries the short human-readable message clients display
(and pattern-match on, e.g. "not found") plus its kind. The transport
layer turns them into unicast error messages; none of them ends a
session.

Silent rejects (stale register edits and the like) are not errors and
never raise.
"""

from __future__ import annotations
from enum import Enum


class ErrorKind(Enum):
    AUTHORIZATION = "authorization"  # non-host attempting a host-only action
    PRECONDITION = "precondition"  # not enough players, game full, ...
    NOT_FOUND = "not_found"  # unknown game code or player


class GameError(Exception):
    """Base exception for rejected session operations."""

    kind: ErrorKind = ErrorKind.PRECONDITION

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class AuthorizationError(GameError):
    kind = ErrorKind.AUTHORIZATION


class PreconditionError(GameError):
    kind = ErrorKind.PRECONDITION


class NotFoundError(GameError):
    """Clients drop any cached session when they receive this."""
    kind = ErrorKind.NOT_FOUND
