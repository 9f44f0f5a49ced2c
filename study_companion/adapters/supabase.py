"""Supabase adapter: GoTrue auth and the PostgREST ``profiles`` table over httpx.

The signed-in session is kept in local storage under ``auth.session`` through
the corruption guard, so a damaged blob simply reads as "signed out".
"""

from __future__ import annotations

import re
import time
from http import HTTPStatus
from typing import Any, Callable, Dict, List, Mapping, Optional

import httpx
from pydantic import ValidationError

from study_companion.core.auth_models import AuthEvent, AuthSession, AuthUser, SignUpResult
from study_companion.core.config import config
from study_companion.core.exceptions import AuthError, ProfileConflictError, ProfileQueryError
from study_companion.core.identifiers import get_log_safe_user_id
from study_companion.core.logging import get_logger
from study_companion.core.models import PROFILE_COLUMNS
from study_companion.core.ports import AuthListener, AuthPort, ProfileBackendPort
from study_companion.services.local_guard import LocalCorruptionGuard

logger = get_logger(__name__)

SESSION_STORAGE_KEY = "auth.session"
PROFILES_TABLE = "profiles"
SINGLE_OBJECT = "application/vnd.pgrst.object+json"
NOT_FOUND_CODE = "PGRST116"
UNIQUE_VIOLATION_CODE = "23505"
DEFAULT_HTTP_TIMEOUT = 10.0

_CONSTRAINT_RE = re.compile(r'constraint "([^"]+)"')


def _json_or_empty(response: httpx.Response) -> Dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


def _auth_error_message(response: httpx.Response) -> str:
    payload = _json_or_empty(response)
    for field in ("msg", "error_description", "message", "error"):
        value = payload.get(field)
        if isinstance(value, str) and value:
            return value
    return f"Auth request failed with status {response.status_code}"


def _postgrest_error(response: httpx.Response) -> ProfileQueryError:
    payload = _json_or_empty(response)
    code = payload.get("code") if isinstance(payload.get("code"), str) else None
    message = payload.get("message") or f"Profile query failed with status {response.status_code}"
    if code == UNIQUE_VIOLATION_CODE or response.status_code == HTTPStatus.CONFLICT:
        match = _CONSTRAINT_RE.search(str(message))
        return ProfileConflictError(str(message), constraint=match.group(1) if match else None)
    return ProfileQueryError(str(message), code=code)


class SupabaseAdapter(AuthPort, ProfileBackendPort):
    """Auth and profile rows against one Supabase project."""

    def __init__(
        self,
        guard: LocalCorruptionGuard,
        *,
        url: Optional[str] = None,
        anon_key: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.url = (url or config.SUPABASE_URL).rstrip("/")
        self.anon_key = anon_key or config.SUPABASE_ANON_KEY
        self.timeout = timeout
        self._guard = guard
        self._client = client
        self._clock = clock
        self._listeners: List[AuthListener] = []

    # ----- transport -----

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, str]] = None,
        json: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        access_token: Optional[str] = None,
    ) -> httpx.Response:
        merged = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {access_token or self.anon_key}",
            **(headers or {}),
        }
        url = f"{self.url}{path}"
        if self._client is not None:
            return await self._client.request(method, url, params=params, json=json, headers=merged)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.request(method, url, params=params, json=json, headers=merged)

    async def _auth_request(
        self, path: str, *, params: Optional[Mapping[str, str]] = None, json: Any = None
    ) -> Dict[str, Any]:
        try:
            response = await self._request("POST", path, params=params, json=json)
        except httpx.HTTPError as exc:
            raise AuthError(f"Auth request failed: {exc}") from exc
        if not response.is_success:
            raise AuthError(_auth_error_message(response))
        return _json_or_empty(response)

    async def _rest_request(
        self,
        method: str,
        *,
        params: Mapping[str, str],
        json: Any = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> httpx.Response:
        try:
            return await self._request(
                method,
                f"/rest/v1/{PROFILES_TABLE}",
                params=params,
                json=json,
                headers=headers,
                access_token=self._stored_access_token(),
            )
        except httpx.HTTPError as exc:
            raise ProfileQueryError(f"Profile request failed: {exc}") from exc

    # ----- session persistence -----

    def _session_from_payload(self, payload: Mapping[str, Any]) -> AuthSession:
        expires_at = payload.get("expires_at")
        if not isinstance(expires_at, (int, float)):
            expires_in = payload.get("expires_in")
            expires_at = self._clock() + (expires_in if isinstance(expires_in, (int, float)) else 3600)
        try:
            return AuthSession(
                access_token=payload["access_token"],
                refresh_token=payload["refresh_token"],
                expires_at=float(expires_at),
                user=AuthUser.model_validate(payload["user"]),
            )
        except (KeyError, ValidationError) as exc:
            raise AuthError("Auth backend returned a malformed session") from exc

    def _stored_session(self) -> Optional[AuthSession]:
        raw = self._guard.safe_read(SESSION_STORAGE_KEY, None)
        if raw is None:
            return None
        try:
            return AuthSession.model_validate(raw)
        except ValidationError:
            logger.warning("[session] stored auth session has an unexpected shape; discarding")
            self._guard.remove(SESSION_STORAGE_KEY)
            return None

    def _stored_access_token(self) -> Optional[str]:
        session = self._stored_session()
        return session.access_token if session is not None else None

    def _persist(self, session: Optional[AuthSession]) -> None:
        if session is None:
            self._guard.remove(SESSION_STORAGE_KEY)
        else:
            self._guard.write(SESSION_STORAGE_KEY, session.model_dump())

    async def _emit(self, event: AuthEvent, session: Optional[AuthSession]) -> None:
        for listener in list(self._listeners):
            try:
                await listener(event, session)
            except Exception:  # pylint: disable=broad-except
                logger.error("[session] auth listener failed for event=%s", event.value, exc_info=True)

    # ----- AuthPort -----

    async def sign_up(
        self, email: str, password: str, profile_defaults: Mapping[str, Any]
    ) -> SignUpResult:
        payload = await self._auth_request(
            "/auth/v1/signup",
            json={"email": email, "password": password, "data": dict(profile_defaults)},
        )
        if "access_token" in payload:
            session = self._session_from_payload(payload)
            self._persist(session)
            logger.info("[session] signed up user=%s", get_log_safe_user_id(session.user.id))
            await self._emit(AuthEvent.SIGNED_IN, session)
            return SignUpResult(user=session.user, session=session)
        # Without auto-confirm the body is the bare user object.
        user_payload = payload.get("user", payload)
        user = None
        if isinstance(user_payload, dict) and user_payload.get("id"):
            user = AuthUser.model_validate(user_payload)
        logger.info("[session] signed up; awaiting e-mail confirmation")
        return SignUpResult(user=user, session=None)

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        payload = await self._auth_request(
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        session = self._session_from_payload(payload)
        self._persist(session)
        logger.info("[session] signed in user=%s", get_log_safe_user_id(session.user.id))
        await self._emit(AuthEvent.SIGNED_IN, session)
        return session

    async def sign_out(self) -> None:
        session = self._stored_session()
        if session is not None:
            try:
                response = await self._request(
                    "POST", "/auth/v1/logout", access_token=session.access_token
                )
                if not response.is_success:
                    logger.warning(
                        "[session] logout answered status=%d; clearing local session anyway",
                        response.status_code,
                    )
            except httpx.HTTPError as exc:
                logger.warning("[session] logout request failed: %s", exc)
        self._persist(None)
        await self._emit(AuthEvent.SIGNED_OUT, None)

    async def get_session(self) -> AuthSession | None:
        session = self._stored_session()
        if session is None or not session.is_expired(self._clock()):
            return session
        try:
            payload = await self._auth_request(
                "/auth/v1/token",
                params={"grant_type": "refresh_token"},
                json={"refresh_token": session.refresh_token},
            )
            refreshed = self._session_from_payload(payload)
        except AuthError as exc:
            logger.warning("[session] token refresh failed; treating as signed out: %s", exc)
            self._persist(None)
            return None
        self._persist(refreshed)
        logger.info("[session] refreshed token user=%s", get_log_safe_user_id(refreshed.user.id))
        await self._emit(AuthEvent.TOKEN_REFRESHED, refreshed)
        return refreshed

    def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ----- ProfileBackendPort -----

    async def select_profile_row(self, user_id: str) -> dict[str, Any] | None:
        response = await self._rest_request(
            "GET",
            params={"select": ",".join(PROFILE_COLUMNS), "id": f"eq.{user_id}"},
            headers={"Accept": SINGLE_OBJECT},
        )
        if response.is_success:
            return _json_or_empty(response)
        error = _postgrest_error(response)
        if error.code == NOT_FOUND_CODE:
            return None
        raise error

    async def insert_profile_row(self, row: Mapping[str, Any]) -> dict[str, Any]:
        response = await self._rest_request(
            "POST",
            params={"select": ",".join(PROFILE_COLUMNS)},
            json=dict(row),
            headers={"Accept": SINGLE_OBJECT, "Prefer": "return=representation"},
        )
        if response.is_success:
            return _json_or_empty(response)
        raise _postgrest_error(response)

    async def update_profile_row(self, user_id: str, patch: Mapping[str, Any]) -> None:
        response = await self._rest_request(
            "PATCH",
            params={"id": f"eq.{user_id}"},
            json=dict(patch),
            headers={"Prefer": "return=minimal"},
        )
        if not response.is_success:
            raise _postgrest_error(response)


__all__ = [
    "SupabaseAdapter",
    "SESSION_STORAGE_KEY",
    "NOT_FOUND_CODE",
    "UNIQUE_VIOLATION_CODE",
]
