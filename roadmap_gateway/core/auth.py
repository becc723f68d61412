"""Caller identity.

Authentication is owned by an external provider. The server only reads the
already-authenticated user id from the ``X-User-Id`` header, and the client
keeps the active id in an ``AuthStateProvider`` that is passed explicitly to
whoever needs it.
"""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from roadmap_gateway.core.logging import get_logger

logger = get_logger(__name__)

USER_ID_HEADER = "X-User-Id"


def get_optional_user(request: Request) -> str | None:
    """User id of the caller, or ``None`` for anonymous requests."""
    user_id = request.headers.get(USER_ID_HEADER, "").strip()
    return user_id or None


def get_auth_user(user_id: Annotated[str | None, Depends(get_optional_user)]) -> str:
    """User id of the caller; rejects anonymous requests with 401."""
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return user_id


CurrentUserDep = Annotated[str, Depends(get_auth_user)]


AuthListener = Callable[[str | None], None]


class AuthStateProvider:
    """Holds the active user id and notifies subscribers when it changes.

    Example:
        auth = AuthStateProvider()
        unsubscribe = auth.subscribe(lambda uid: print("user:", uid))
        auth.set_user("user-123")
        unsubscribe()
    """

    def __init__(self, user_id: str | None = None) -> None:
        self._user_id = user_id
        self._listeners: list[AuthListener] = []

    @property
    def user_id(self) -> str | None:
        return self._user_id

    def set_user(self, user_id: str | None) -> None:
        if user_id == self._user_id:
            return
        self._user_id = user_id
        logger.info("Auth state changed", signed_in=user_id is not None)
        for listener in list(self._listeners):
            listener(user_id)

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """Register ``listener``; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
