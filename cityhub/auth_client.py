"""
Client for the platform's authentication REST API, plus an in-memory
stand-in for tests.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

import requests

logger = logging.getLogger(__name__)


class AuthServiceError(Exception):
    """The auth API failed in a way that is not an invalid credential."""


class SignUpError(Exception):
    pass


@dataclass
class AuthUser:
    id: str
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SignUpResult:
    user: Optional[AuthUser]
    access_token: Optional[str]


class AuthClient(Protocol):
    """Defines the operations the API needs from the auth subsystem."""

    def get_user(self, access_token: str) -> Optional[AuthUser]:
        ...

    def sign_up(
        self, email: str, password: str, metadata: Optional[dict] = None
    ) -> SignUpResult:
        ...


def _user_from_payload(payload: dict) -> Optional[AuthUser]:
    if not payload or not payload.get("id"):
        return None
    return AuthUser(
        id=str(payload["id"]),
        email=payload.get("email"),
        user_metadata=payload.get("user_metadata") or {},
    )


def _json_body(resp: requests.Response) -> Optional[dict]:
    """Decoded JSON object, or None for an empty or non-JSON body (e.g. a gateway error page)."""
    if not resp.content:
        return {}
    try:
        payload = resp.json()
    except ValueError:
        return None
    return payload if isinstance(payload, dict) else None


@dataclass
class GoTrueAuthClient:
    """Talks to ``<url>/auth/v1``.

    Sign-up goes out with the anon key. Session lookups on behalf of a caller
    carry the service key as ``apikey`` next to the caller's bearer token.
    """

    url: str
    anon_key: str
    service_key: Optional[str] = None
    timeout: float = 10.0

    def __post_init__(self):
        self._session = requests.Session()
        self._session.headers.update({"apikey": self.anon_key})

    def _endpoint(self, path: str) -> str:
        return f"{self.url.rstrip('/')}/auth/v1/{path}"

    def get_user(self, access_token: str) -> Optional[AuthUser]:
        try:
            resp = self._session.get(
                self._endpoint("user"),
                headers={
                    "apikey": self.service_key or self.anon_key,
                    "Authorization": f"Bearer {access_token}",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise AuthServiceError(str(exc)) from exc
        if resp.status_code in (401, 403):
            return None
        if resp.status_code >= 400:
            raise AuthServiceError(f"auth/v1/user returned {resp.status_code}")
        payload = _json_body(resp)
        if payload is None:
            raise AuthServiceError("auth/v1/user returned a non-JSON body")
        return _user_from_payload(payload)

    def sign_up(
        self, email: str, password: str, metadata: Optional[dict] = None
    ) -> SignUpResult:
        try:
            resp = self._session.post(
                self._endpoint("signup"),
                json={"email": email, "password": password, "data": metadata or {}},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise SignUpError(str(exc)) from exc
        payload = _json_body(resp)
        if payload is None:
            raise SignUpError(f"signup returned {resp.status_code}")
        if resp.status_code >= 400:
            message = (
                payload.get("msg")
                or payload.get("error_description")
                or payload.get("message")
                or f"signup returned {resp.status_code}"
            )
            raise SignUpError(message)
        # With auto-confirm the response is a session; otherwise just the user.
        user_payload = payload.get("user") if "access_token" in payload else payload
        return SignUpResult(
            user=_user_from_payload(user_payload or {}),
            access_token=payload.get("access_token"),
        )


class InMemoryAuthClient:
    """Test double for the auth subsystem."""

    def __init__(self):
        self.tokens: Dict[str, AuthUser] = {}
        self.accounts: Dict[str, str] = {}
        self.issue_sessions = True

    def add_user(self, email: str | None = None, user_id: str | None = None) -> tuple[AuthUser, str]:
        """Register a user and return it with a valid access token."""
        user = AuthUser(id=user_id or str(uuid.uuid4()), email=email)
        token = uuid.uuid4().hex
        self.tokens[token] = user
        return user, token

    def get_user(self, access_token: str) -> Optional[AuthUser]:
        return self.tokens.get(access_token)

    def sign_up(
        self, email: str, password: str, metadata: Optional[dict] = None
    ) -> SignUpResult:
        key = email.strip().lower()
        if key in self.accounts:
            raise SignUpError("User already registered")
        user, token = self.add_user(email=email)
        user.user_metadata = dict(metadata or {})
        self.accounts[key] = user.id
        return SignUpResult(user=user, access_token=token if self.issue_sessions else None)
