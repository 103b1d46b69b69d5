"""
Authentication Gate

No remote call may be issued while the user is signed out. Every
remote-touching operation asks the gate first; when it says no, the
caller-supplied handler is invoked (typically: show the login flow).
"""

import inspect
from typing import Any, Callable, Optional

from trendsync.audit import AuditLogger
from trendsync.services.remote import RemoteAuthorityInterface


NotAuthenticatedHandler = Callable[[], Any]


class AuthGate:
    """Checks the authority's session and defers to the app when there is none."""

    def __init__(
        self,
        authority: RemoteAuthorityInterface,
        audit_logger: AuditLogger,
        on_not_authenticated: Optional[NotAuthenticatedHandler] = None,
    ):
        self._authority = authority
        self._audit = audit_logger
        self._handler = on_not_authenticated

    async def check(self, operation: str) -> bool:
        """True if the operation may talk to the authority."""
        if self._authority.is_authenticated():
            return True
        await self.reject(operation)
        return False

    async def reject(self, operation: str) -> None:
        """
        Record that an operation was refused and notify the app.

        Also used when the authority drops the session mid-call (401).
        The handler may be a plain function or a coroutine function.
        """
        await self._audit.log_not_authenticated(operation)
        if self._handler is None:
            return
        result = self._handler()
        if inspect.isawaitable(result):
            await result
