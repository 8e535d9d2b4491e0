"""Supabase Auth access for the sign-in form and the session hook."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict

import httpx
from supabase import AuthError, AuthRetryableError, ClientOptions, SupabaseException, create_client

import settings

logger = logging.getLogger(__name__)

SIGN_IN = "sign-in"
SIGN_UP = "sign-up"

SIGNED_IN_TEXT = "Signed in successfully!"
CHECK_EMAIL_TEXT = "Check your email for a magic link to sign in!"
UNAVAILABLE_TEXT = "Identity provider is unavailable"
NOT_CONFIGURED_TEXT = "Sign-in is not configured"
MISSING_FIELDS_TEXT = "Email and password are required"
FAILED_TEXT = "Authentication failed"


@dataclass(frozen=True)
class AuthResult:
    error: str | None = None
    session: Dict[str, Any] | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class AuthOutcome:
    ok: bool
    message: str
    session: Dict[str, Any] | None = None


def user_to_dict(user: Any) -> Dict[str, Any] | None:
    if user is None:
        return None
    return {"id": str(user.id), "email": getattr(user, "email", None) or ""}


def session_to_dict(session: Any) -> Dict[str, Any] | None:
    if session is None or not getattr(session, "access_token", None):
        return None
    return {
        "access_token": session.access_token,
        "refresh_token": getattr(session, "refresh_token", None),
        "expires_at": getattr(session, "expires_at", None),
        "user": user_to_dict(getattr(session, "user", None)),
    }


def error_text(exc: AuthError) -> str:
    if isinstance(exc, AuthRetryableError):
        return UNAVAILABLE_TEXT
    message = (getattr(exc, "message", None) or str(exc)).strip()
    return message or FAILED_TEXT


class SupabaseIdentity:
    """Runs each call on its own client so no session is held between users."""

    def __init__(self, url: str, anon_key: str, timeout: float | None = None) -> None:
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self.http_client = httpx.Client(timeout=timeout or settings.FETCH_TIMEOUT_SECONDS, follow_redirects=True)
        try:
            self._auth()
        except SupabaseException as exc:
            raise RuntimeError(f"Supabase is misconfigured: {exc.message}") from exc

    def _auth(self):
        options = ClientOptions(auto_refresh_token=False, persist_session=False, httpx_client=self.http_client)
        return create_client(self.url, self.anon_key, options=options).auth

    def sign_up(self, email: str, password: str, redirect_to: str) -> AuthResult:
        try:
            response = self._auth().sign_up(
                {"email": email, "password": password, "options": {"email_redirect_to": redirect_to}}
            )
        except AuthError as exc:
            logger.warning("Sign-up rejected: %s", exc)
            return AuthResult(error=error_text(exc))
        except httpx.HTTPError:
            logger.exception("Sign-up request failed")
            return AuthResult(error=UNAVAILABLE_TEXT)
        return AuthResult(session=session_to_dict(response.session))

    def sign_in_with_password(self, email: str, password: str) -> AuthResult:
        try:
            response = self._auth().sign_in_with_password({"email": email, "password": password})
        except AuthError as exc:
            logger.warning("Sign-in rejected: %s", exc)
            return AuthResult(error=error_text(exc))
        except httpx.HTTPError:
            logger.exception("Sign-in request failed")
            return AuthResult(error=UNAVAILABLE_TEXT)
        session = session_to_dict(response.session)
        if session is None:
            return AuthResult(error=FAILED_TEXT)
        return AuthResult(session=session)

    def get_session(self, access_token: str | None) -> Dict[str, Any] | None:
        if not access_token:
            return None
        try:
            response = self._auth().get_user(access_token)
        except AuthError as exc:
            logger.info("Session token rejected: %s", exc)
            return None
        except httpx.HTTPError:
            logger.exception("Session lookup failed")
            return None
        if response is None or response.user is None:
            return None
        return {"access_token": access_token, "user": user_to_dict(response.user)}


IDENTITY: SupabaseIdentity | None = None


def get_identity_provider() -> SupabaseIdentity:
    global IDENTITY
    if IDENTITY is None:
        IDENTITY = SupabaseIdentity(
            settings.required_env("SUPABASE_URL"),
            settings.required_env("SUPABASE_ANON_KEY"),
        )
    return IDENTITY


def toggle_mode(mode: str) -> str:
    return SIGN_UP if mode == SIGN_IN else SIGN_IN


def submit_credentials(
    provider: SupabaseIdentity,
    mode: str,
    email: str,
    password: str,
    redirect_to: str | None = None,
) -> AuthOutcome:
    email = (email or "").strip()
    if not email or not password:
        return AuthOutcome(ok=False, message=MISSING_FIELDS_TEXT)

    if mode == SIGN_UP:
        result = provider.sign_up(email, password, redirect_to or settings.AUTH_REDIRECT_URL)
        success_text = CHECK_EMAIL_TEXT
    else:
        result = provider.sign_in_with_password(email, password)
        success_text = SIGNED_IN_TEXT

    if not result.ok:
        return AuthOutcome(ok=False, message=result.error or "")
    return AuthOutcome(ok=True, message=success_text, session=result.session)
