"""Explicit per-call execution context.

The authenticated actor, a deadline and a cancellation flag travel together
through every permission check and hierarchy traversal instead of living in
request globals.
"""

import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

from django.conf import settings

from .errors import Unauthenticated


class OperationCancelled(Exception):
    """Raised when a caller cancelled the operation mid-flight."""


class DeadlineExceeded(Exception):
    """Raised when an operation ran past its deadline."""


@dataclass
class ExecutionContext:
    actor_id: Optional[uuid.UUID] = None
    deadline: Optional[float] = None  # time.monotonic() value
    cancelled: threading.Event = field(default_factory=threading.Event)

    @classmethod
    def for_actor(cls, actor_id: Optional[uuid.UUID], timeout: Optional[float] = None) -> "ExecutionContext":
        """Build a context for ``actor_id`` that expires after ``timeout`` seconds."""
        if timeout is None:
            timeout = getattr(settings, "REQUEST_TIMEOUT_SECONDS", None)
        deadline = time.monotonic() + timeout if timeout else None
        return cls(actor_id=actor_id, deadline=deadline)

    @classmethod
    def from_request(cls, request) -> "ExecutionContext":
        user = getattr(request, "user", None)
        actor_id = None
        if user is not None and getattr(user, "is_authenticated", False):
            actor_id = user.id
        return cls.for_actor(actor_id)

    def cancel(self) -> None:
        self.cancelled.set()

    def check(self) -> None:
        """Raise if the operation was cancelled or its deadline has passed."""
        if self.cancelled.is_set():
            raise OperationCancelled("operation cancelled")
        if self.deadline is not None and time.monotonic() > self.deadline:
            raise DeadlineExceeded("operation deadline exceeded")

    def require_actor(self) -> uuid.UUID:
        if self.actor_id is None:
            raise Unauthenticated()
        return self.actor_id


__all__ = ["ExecutionContext", "OperationCancelled", "DeadlineExceeded"]
