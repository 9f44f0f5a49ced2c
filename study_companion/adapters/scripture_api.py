"""Scripture text adapter for the public bible-api.com service."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, Mapping, Optional

import httpx

from study_companion.core.config import config
from study_companion.core.exceptions import (
    PassageNotFoundError,
    QuotaExceededError,
    ScriptureApiError,
)
from study_companion.core.logging import get_logger
from study_companion.core.models import ChapterIdentifier
from study_companion.core.ports import ScripturePort

logger = get_logger(__name__)

EMPTY_VERSES_MESSAGE = "Passage not found or API returned empty/malformed verses."


def format_reference(reference: str) -> str:
    """Return ``reference`` as a URL path segment, whitespace runs replaced by ``+``."""
    return "+".join(reference.split())


def _error_message(response: httpx.Response) -> str:
    fallback = f"API request failed with status {response.status_code}"
    try:
        payload = response.json()
    except ValueError:
        return fallback
    if isinstance(payload, Mapping):
        error = payload.get("error")
        if isinstance(error, str) and error:
            return error
    return fallback


class ScriptureApiAdapter(ScripturePort):
    """Fetch passages over HTTP; one short-lived client per call unless one is injected."""

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = (base_url or config.SCRIPTURE_API_BASE_URL).rstrip("/")
        self.timeout = timeout or config.SCRIPTURE_API_TIMEOUT_SECONDS
        self._client = client

    async def _get(self, url: str, params: dict[str, str]) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(url, params=params)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.get(url, params=params)

    async def get_passage(self, reference: str, translation: str) -> Mapping[str, Any]:
        """Return the raw passage payload.

        Raises:
            PassageNotFoundError: the API does not know ``reference``.
            QuotaExceededError: the API is rate limiting us.
            ScriptureApiError: any other transport or HTTP failure.
        """
        url = f"{self.base_url}/{format_reference(reference)}"
        try:
            response = await self._get(url, {"translation": translation})
        except httpx.HTTPError as exc:
            logger.error(
                "[scripture-api] request failed reference=%s translation=%s: %s",
                reference,
                translation,
                exc,
            )
            raise ScriptureApiError(f"API request failed: {exc}") from exc

        if response.status_code == HTTPStatus.NOT_FOUND:
            logger.warning(
                "[scripture-api] not found reference=%s translation=%s", reference, translation
            )
            raise PassageNotFoundError(
                f"Passage not found in {translation.upper()}. Please check the reference.",
                status_code=response.status_code,
            )
        if response.status_code == HTTPStatus.TOO_MANY_REQUESTS:
            logger.warning("[scripture-api] rate limited reference=%s", reference)
            raise QuotaExceededError(_error_message(response))
        if not response.is_success:
            message = _error_message(response)
            logger.error(
                "[scripture-api] status=%d reference=%s: %s",
                response.status_code,
                reference,
                message,
            )
            raise ScriptureApiError(message, status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError as exc:
            raise ScriptureApiError("API returned a non-JSON body") from exc
        if not isinstance(payload, Mapping):
            raise ScriptureApiError("API returned an unexpected payload")
        logger.info("[scripture-api] fetched reference=%s translation=%s", reference, translation)
        return payload

    async def get_chapter_text(
        self, chapter: ChapterIdentifier, translation: str
    ) -> list[Mapping[str, Any]]:
        """Return the verses of a whole chapter with embedded newlines collapsed.

        Raises:
            ScriptureApiError: the payload carries no verses; the message is the
                API's ``text`` when present.
        """
        payload = await self.get_passage(chapter.label(), translation)
        verses = payload.get("verses")
        if not isinstance(verses, list) or not verses:
            text = payload.get("text")
            raise ScriptureApiError(text if isinstance(text, str) and text else EMPTY_VERSES_MESSAGE)
        cleaned: list[Mapping[str, Any]] = []
        for verse in verses:
            if isinstance(verse, Mapping) and isinstance(verse.get("text"), str):
                verse = {**verse, "text": verse["text"].replace("\n", " ").strip()}
            cleaned.append(verse)
        return cleaned


__all__ = ["ScriptureApiAdapter", "format_reference", "EMPTY_VERSES_MESSAGE"]
