# tutor_portal/client/session.py
"""
Client-side session state, mirroring the ``auth_token`` cookie.

``AuthSession`` talks to this site's own ``/api/auth/*`` routes through an
``httpx.AsyncClient`` that plays the browser: it holds the cookie jar, so the
HTTP-only token never has to be handled here directly. The cached user in
storage only avoids a flash of logged-out UI; it is re-checked against
``/api/auth/verify`` on every hydrate and never used to authorise anything.

State machine::

    UNKNOWN --hydrate()--> CHECKING --verify ok--> AUTHENTICATED
       |                       `----verify fails--> UNAUTHENTICATED
       `--(no cached user)----------------------> UNAUTHENTICATED

    AUTHENTICATED --logout() / failed verify--> UNAUTHENTICATED

Calls are not serialised against each other. Running ``login`` and ``logout``
concurrently leaves whichever finished last in charge of the state.
"""
import json
from enum import Enum
from typing import Any, Dict, Optional
import httpx
from tutor_portal.client.storage import MemoryStorage, Storage
from tutor_portal.core.security import (
    InvalidTokenError,
    decode_token_payload,
    extract_token,
    session_user_from_payload,
)
import logging

logger = logging.getLogger(__name__)

USER_STORAGE_KEY = "user"

class SessionState(str, Enum):
    UNKNOWN = "unknown"
    CHECKING = "checking"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"

class AuthSession:
    def __init__(self, client: httpx.AsyncClient, storage: Optional[Storage] = None):
        self.client = client
        self.storage = storage if storage is not None else MemoryStorage()
        self.user: Optional[Dict[str, Any]] = None
        self.token: Optional[str] = None
        self.state = SessionState.UNKNOWN

    @property
    def is_loading(self) -> bool:
        return self.state in (SessionState.UNKNOWN, SessionState.CHECKING)

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and self.state is not SessionState.UNKNOWN

    def get_auth_token(self) -> Optional[str]:
        return self.token

    def _clear(self) -> None:
        self.user = None
        self.token = None
        self.storage.remove_item(USER_STORAGE_KEY)
        self.state = SessionState.UNAUTHENTICATED

    async def hydrate(self) -> SessionState:
        stored = self.storage.get_item(USER_STORAGE_KEY)
        if not stored:
            self.state = SessionState.UNAUTHENTICATED
            return self.state

        try:
            user = json.loads(stored)
            if not isinstance(user, dict):
                raise ValueError("stored user is not an object")
        except ValueError as e:
            logger.error(f"Error parsing stored auth data: {e}")
            self._clear()
            return self.state

        self.user = user
        self.state = SessionState.CHECKING
        await self.verify()
        return self.state

    async def verify(self) -> bool:
        try:
            response = await self.client.get("/api/auth/verify")
        except httpx.HTTPError as e:
            logger.error(f"Error verifying authentication: {e}")
            self._clear()
            return False

        if not response.is_success:
            logger.info(f"Session verification failed with {response.status_code}")
            self._clear()
            return False

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        if data.get("token"):
            self.token = data["token"]
        if self.user is None and isinstance(data.get("user"), dict):
            self.user = data["user"]
        self.state = SessionState.AUTHENTICATED
        return True

    async def login(self, username: str, password: str) -> bool:
        try:
            response = await self.client.post(
                "/api/auth/login",
                json={"username": username, "password": password},
            )
        except httpx.HTTPError as e:
            logger.error(f"Authentication error: {e}")
            return False

        if not response.is_success:
            logger.error(f"Authentication failed: {response.status_code} {response.reason_phrase}")
            return False

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Login response was not JSON: {e}")
            return False

        token = extract_token(data)
        if not token:
            logger.error("No JWT token found in login response")
            return False

        # Display only; a payload we cannot read still counts as a successful login
        try:
            user = session_user_from_payload(decode_token_payload(token))
        except InvalidTokenError as e:
            logger.warning(f"Error decoding JWT, using minimal user: {e}")
            user = {"id": "1", "name": username or "User", "email": ""}

        self.user = user
        self.token = token
        self.storage.set_item(USER_STORAGE_KEY, json.dumps(user))
        self.state = SessionState.AUTHENTICATED
        return True

    async def logout(self) -> None:
        try:
            await self.client.post("/api/auth/logout")
        except httpx.HTTPError as e:
            logger.error(f"Error during logout: {e}")
        self._clear()
