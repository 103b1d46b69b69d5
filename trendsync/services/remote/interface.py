"""
Abstract Remote Authority Interface

DESIGN DECISION: The sync layer only ever talks to this interface.
This allows us to:
1. Swap the Trend REST backend for another service
2. Use an in-memory authority for testing
3. Keep the optimistic mutation logic decoupled from transport

Payloads and records are passed as plain dicts in the backend's wire
shape. Parsing them into models is the caller's job, so an
implementation never has to know about the local model classes.
"""

from abc import ABC, abstractmethod


class RemoteAuthorityInterface(ABC):
    """
    The remote source of truth for transactions and categories.

    Any backend implementation must implement these methods. Timeouts
    and retries are the implementation's concern; callers treat every
    raised RemoteError as a failed call.
    """

    @abstractmethod
    def is_authenticated(self) -> bool:
        """
        Whether remote calls may be issued at all.

        Callers must check this before every remote call and must not
        call the remote methods when it returns False.
        """
        pass

    @abstractmethod
    async def fetch_transactions(self) -> list[dict]:
        """
        Fetch every transaction of the signed-in user.

        Raises:
            RemoteError: If the fetch fails
        """
        pass

    @abstractmethod
    async def fetch_transaction_by_id(self, transaction_id: str) -> dict:
        """
        Fetch the canonical copy of one transaction.

        Raises:
            NotFoundError: If the backend has no such transaction
            RemoteError: If the fetch fails
        """
        pass

    @abstractmethod
    async def create_transaction(self, payload: dict) -> dict:
        """
        Create a transaction.

        Args:
            payload: Transaction fields without id or timestamps.
                     May carry a clientReference the backend can echo.

        Returns:
            The created record with its permanent id and timestamps
        """
        pass

    @abstractmethod
    async def update_transaction(self, transaction_id: str, payload: dict) -> dict:
        """
        Update a transaction.

        Returns:
            The record as normalized by the backend

        Raises:
            NotFoundError: If the transaction doesn't exist
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: str) -> None:
        """
        Delete a transaction.

        Raises:
            NotFoundError: If the transaction doesn't exist
        """
        pass

    @abstractmethod
    async def fetch_categories(self) -> list[dict]:
        """
        Fetch the flat category list (subcategories carry a parentId).

        Raises:
            RemoteError: If the fetch fails
        """
        pass

    @abstractmethod
    async def create_category(self, payload: dict) -> dict:
        """
        Create a category (or, with a parentId, a subcategory).

        Returns:
            The created category with its backend id
        """
        pass

    @abstractmethod
    async def update_category(self, category_id: str, payload: dict) -> dict:
        """
        Update a category's name, icon or color.

        Raises:
            NotFoundError: If the category doesn't exist
        """
        pass

    @abstractmethod
    async def delete_category(self, category_id: str) -> None:
        """
        Delete a category.

        The backend refuses (RemoteError) while transactions still use it.

        Raises:
            NotFoundError: If the category doesn't exist
        """
        pass


class RemoteError(Exception):
    """Base exception for remote authority operations."""
    pass


class NotAuthenticatedError(RemoteError):
    """No valid session; the caller should redirect to login."""
    pass


class NotFoundError(RemoteError):
    """Entity not found on the backend."""
    pass


class AuthorityUnreachableError(RemoteError):
    """Network failure or timeout talking to the backend."""
    pass


class ServerError(RemoteError):
    """Backend answered with a 5xx status."""
    pass
