"""Signed-in study session: auth lifecycle, profile snapshot and study actions.

``StudySession`` is what a UI layer talks to. It keeps the current ``UserData``
snapshot, recovers a missing profile row after sign-in, and routes every
mutation through a partial update followed by a fresh read.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence

from study_companion.core.auth_models import AuthEvent, AuthSession, AuthUser
from study_companion.core.config import config
from study_companion.core.exceptions import AuthError, ProfileFetchError, ProfileQueryError
from study_companion.core.identifiers import get_log_safe_user_id, log_safe_user_context
from study_companion.core.logging import correlation_id_context, get_logger
from study_companion.core.models import ChapterView, StudyMode, UserData, UserDataUpdate
from study_companion.core.ports import AuthPort, EnrichmentPort, ScripturePort
from study_companion.services import study_actions
from study_companion.services.chapter_orchestrator import ChapterDataOrchestrator
from study_companion.services.chat import ChatSession, initialize_chat
from study_companion.services.content_cache import ChapterContentCache
from study_companion.services.local_guard import LocalCorruptionGuard
from study_companion.services.passage_compare import PassageResult, compare_passage
from study_companion.services.profile_codec import initial_profile_defaults
from study_companion.services.profile_service import ProfileService

logger = get_logger(__name__)

REGISTRATION_CONFIRM_MESSAGE = (
    "Registration successful! Please check your email to confirm your account."
)
REGISTRATION_SUCCESS_MESSAGE = "Registration successful!"
LOGIN_SUCCESS_MESSAGE = "Login successful!"
INVALID_CREDENTIALS_MESSAGE = "Invalid login credentials."
PROFILE_CREATE_FAILED_MESSAGE = (
    "Failed to create your profile. Please try again or contact support."
)
LOGIN_ERROR_MESSAGE = "An error occurred during login. Please try again."
CORRUPTION_NOTICE = (
    "Corrupted cache was detected and reset. "
    "Please re-try your last action if something was missing."
)


@dataclass(slots=True)
class AuthOutcome:
    """Result of a register/login attempt as shown to the user."""

    success: bool
    message: str


class StudySession:  # pylint: disable=too-many-instance-attributes,too-many-public-methods
    """Owns the profile snapshot and wires auth, profiles, cache and content together."""

    def __init__(
        self,
        auth: AuthPort,
        profiles: ProfileService,
        guard: LocalCorruptionGuard,
        scripture: ScripturePort,
        enrichment: EnrichmentPort,
        *,
        bootstrap_timeout: Optional[float] = None,
        auth_handler_timeout: Optional[float] = None,
    ) -> None:
        self._auth = auth
        self._profiles = profiles
        self._scripture = scripture
        self._enrichment = enrichment
        self.bootstrap_timeout = bootstrap_timeout or config.SESSION_BOOTSTRAP_TIMEOUT_SECONDS
        self.auth_handler_timeout = auth_handler_timeout or config.AUTH_HANDLER_TIMEOUT_SECONDS
        self.cache = ChapterContentCache(guard, profiles, on_profile_change=self._on_cache_write)
        self.orchestrator = ChapterDataOrchestrator(scripture, enrichment, self.cache)
        self.user: Optional[UserData] = None
        self.profile_recovery_error: Optional[str] = None
        self.corruption_notice: Optional[str] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._pending_session: Optional["asyncio.Future[Optional[AuthSession]]"] = None
        guard.on_corrupt = self.notify_corruption

    # ----- snapshot -----

    def _adopt(self, user: Optional[UserData]) -> None:
        self.user = user
        self.cache.sync_from_profile(user)

    def _on_cache_write(self, user: UserData) -> None:
        self.user = user

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def notify_corruption(self, key: str) -> None:
        logger.warning("[session] corrupted local state reset key=%s", key)
        self.corruption_notice = CORRUPTION_NOTICE

    def dismiss_corruption_notice(self) -> None:
        self.corruption_notice = None

    # ----- auth lifecycle -----

    async def bootstrap(self) -> Optional[UserData]:
        """Restore a persisted session and load its profile.

        The session read races ``bootstrap_timeout``; on timeout the read keeps
        running in the background but the session starts unauthenticated.
        """
        with correlation_id_context(uuid.uuid4().hex):
            return await self._bootstrap()

    async def _bootstrap(self) -> Optional[UserData]:
        if self._unsubscribe is None:
            self._unsubscribe = self._auth.on_auth_state_change(self._on_auth_event)

        pending = asyncio.ensure_future(self._auth.get_session())
        pending.add_done_callback(_log_background_failure)
        self._pending_session = pending
        try:
            session = await asyncio.wait_for(asyncio.shield(pending), self.bootstrap_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "[session] session read still pending after %.1fs; starting signed out",
                self.bootstrap_timeout,
            )
            return None
        except Exception:  # pylint: disable=broad-except
            logger.error("[session] initial session check failed; signing out", exc_info=True)
            await self._safe_sign_out()
            return None

        if session is None:
            logger.info("[session] no persisted session")
            return None
        return await self.handle_auth_user(session.user)

    async def handle_auth_user(self, user: AuthUser) -> Optional[UserData]:
        """Load (or create) the profile of a signed-in account.

        On failure a recovery message is recorded and the account is signed out.
        """
        with log_safe_user_context(user.id):
            try:
                profile = await self._profiles.fetch_profile(user.id)
                if profile is None:
                    logger.info("[session] no profile yet; creating one")
                    profile = await self._profiles.create_profile_for_user(
                        user.id, user.email_local_part()
                    )
                    if profile is None:
                        self.profile_recovery_error = PROFILE_CREATE_FAILED_MESSAGE
                        await self._safe_sign_out()
                        return None
            except Exception:  # pylint: disable=broad-except
                logger.error("[session] profile load failed during sign-in", exc_info=True)
                self.profile_recovery_error = LOGIN_ERROR_MESSAGE
                await self._safe_sign_out()
                return None
            self.profile_recovery_error = None
            self._adopt(profile)
            logger.info("[session] profile ready user=%s", get_log_safe_user_id(user.id))
            return profile

    async def _on_auth_event(self, event: AuthEvent, session: Optional[AuthSession]) -> None:
        with correlation_id_context(uuid.uuid4().hex):
            await self._handle_auth_event(event, session)

    async def _handle_auth_event(
        self, event: AuthEvent, session: Optional[AuthSession]
    ) -> None:
        logger.info("[session] auth event %s", event.value)
        if session is None or event is AuthEvent.SIGNED_OUT:
            self._adopt(None)
            return
        if (
            event is AuthEvent.TOKEN_REFRESHED
            and self.user is not None
            and self.user.id == session.user.id
        ):
            return
        try:
            await asyncio.wait_for(self.handle_auth_user(session.user), self.auth_handler_timeout)
        except asyncio.TimeoutError:
            logger.error(
                "[session] auth change handling exceeded %.1fs; resetting",
                self.auth_handler_timeout,
            )
            self._adopt(None)
        except Exception:  # pylint: disable=broad-except
            logger.error("[session] auth change handling failed; resetting", exc_info=True)
            self._adopt(None)

    async def _safe_sign_out(self) -> None:
        try:
            await self._auth.sign_out()
        except AuthError:
            logger.error("[session] sign-out failed", exc_info=True)
        self._adopt(None)

    async def register(self, username: str, email: str, password: str) -> AuthOutcome:
        defaults = {"username": username, **initial_profile_defaults()}
        try:
            result = await self._auth.sign_up(email, password, defaults)
        except AuthError as exc:
            logger.info("[session] registration rejected: %s", exc)
            return AuthOutcome(False, str(exc))
        if result.user is not None and result.session is None:
            return AuthOutcome(True, REGISTRATION_CONFIRM_MESSAGE)
        return AuthOutcome(True, REGISTRATION_SUCCESS_MESSAGE)

    async def login(self, email: str, password: str) -> AuthOutcome:
        try:
            session = await self._auth.sign_in_with_password(email, password)
        except AuthError as exc:
            logger.info("[session] login rejected: %s", exc)
            return AuthOutcome(False, str(exc) or INVALID_CREDENTIALS_MESSAGE)
        if session.user.id and session.access_token:
            return AuthOutcome(True, LOGIN_SUCCESS_MESSAGE)
        return AuthOutcome(False, INVALID_CREDENTIALS_MESSAGE)

    async def logout(self) -> None:
        await self._safe_sign_out()

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # ----- profile mutations -----

    async def update_user_data(self, update: Optional[UserDataUpdate]) -> Optional[UserData]:
        """Patch the profile with ``update`` and replace the snapshot with a fresh read."""
        if self.user is None or update is None or update.is_empty():
            return self.user
        user_id = self.user.id
        with log_safe_user_context(user_id):
            try:
                await self._profiles.update_profile(user_id, update)
            except ProfileQueryError:
                logger.error("[session] profile update failed", exc_info=True)
            try:
                refreshed = await self._profiles.fetch_profile(user_id)
            except ProfileFetchError:
                logger.error("[session] profile re-read failed after update", exc_info=True)
                return self.user
        if refreshed is not None:
            self._adopt(refreshed)
        return self.user

    async def mark_chapter_complete(self) -> Optional[UserData]:
        if self.user is None:
            return None
        return await self.update_user_data(study_actions.mark_chapter_complete(self.user))

    async def next_chapter(self) -> Optional[UserData]:
        if self.user is None:
            return None
        return await self.update_user_data(study_actions.next_chapter(self.user))

    async def previous_chapter(self) -> Optional[UserData]:
        if self.user is None:
            return None
        return await self.update_user_data(study_actions.previous_chapter(self.user))

    async def random_chapter(self) -> Optional[UserData]:
        if self.user is None:
            return None
        return await self.update_user_data(study_actions.random_chapter(self.user))

    async def toggle_bookmark(self) -> Optional[UserData]:
        if self.user is None:
            return None
        return await self.update_user_data(study_actions.toggle_bookmark(self.user))

    async def set_note(self, note: str) -> Optional[UserData]:
        if self.user is None:
            return None
        return await self.update_user_data(study_actions.set_note(self.user, note))

    async def select_chapter(self, book: str, chapter: int) -> Optional[UserData]:
        return await self.update_user_data(study_actions.select_chapter(book, chapter))

    async def set_study_mode(self, mode: StudyMode) -> Optional[UserData]:
        return await self.update_user_data(study_actions.set_study_mode(mode))

    async def set_translation(self, translation: str) -> Optional[UserData]:
        return await self.update_user_data(study_actions.set_translation(translation))

    # ----- content -----

    async def load_current_chapter(self) -> Optional[ChapterView]:
        """Load the chapter the snapshot points at; ``None`` when there is none."""
        if self.user is None:
            return None
        chapter = study_actions.current_chapter(self.user)
        if chapter is None:
            return None
        return await self.orchestrator.load_chapter(chapter, self.user.translation)

    def start_chat(self) -> Optional[ChatSession]:
        if self.user is None:
            return None
        chapter = study_actions.current_chapter(self.user)
        if chapter is None:
            return None
        return initialize_chat(chapter, self._enrichment)

    async def compare_passage(
        self, reference: str, translations: Sequence[str]
    ) -> Dict[str, PassageResult]:
        return await compare_passage(self._scripture, reference, translations)


def _log_background_failure(task: "asyncio.Future[Optional[AuthSession]]") -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("[session] background session read failed: %s", exc)


__all__ = [
    "StudySession",
    "AuthOutcome",
    "REGISTRATION_CONFIRM_MESSAGE",
    "REGISTRATION_SUCCESS_MESSAGE",
    "LOGIN_SUCCESS_MESSAGE",
    "INVALID_CREDENTIALS_MESSAGE",
    "PROFILE_CREATE_FAILED_MESSAGE",
    "LOGIN_ERROR_MESSAGE",
    "CORRUPTION_NOTICE",
]
