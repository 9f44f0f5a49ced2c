"""Generative AI adapter producing study content and chat replies via OpenAI."""

from __future__ import annotations

from typing import Any, AsyncIterator, Mapping, Optional, Sequence, Type, TypeVar, cast

from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel

from study_companion.core.config import config
from study_companion.core.exceptions import EnrichmentError, QuotaExceededError, is_quota_error
from study_companion.core.logging import get_logger
from study_companion.core.models import (
    AllEnrichmentData,
    ChapterIdentifier,
    ChatMessage,
    DeepDiveData,
)
from study_companion.core.ports import EnrichmentPort

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

DEEP_DIVE_PROMPT = (
    "Generate a comprehensive, encouraging, and insightful study guide for the Christian "
    "Bible chapter of {book} {chapter}. Your tone should be kind and loving. Base all "
    "analysis on scholarly, historical, and literary context, avoiding denominational bias.\n"
    "Provide a summary of the chapter and its key themes, the historical and cultural "
    "context, an analysis of 2-3 key verses (quote the verse reference, e.g. 'Genesis 1:1', "
    "with a fact-based analysis of its significance), and open-ended reflection questions "
    "for personal application."
)

ENRICHMENTS_PROMPT = """Generate a complete set of study enrichments for the Christian Bible chapter of {book} {chapter}. Your tone should be scholarly, encouraging, and fact-based.
Provide the following information in a single JSON object:
1. 'crossReferences': List key cross-references. For each, explain the connection and include the verse number in the chapter it relates to.
2. 'wordStudies': Identify 2-3 key Hebrew/Greek words. For each, provide the original word, transliteration, Strong's number, meaning, contextual use, and the primary verse number.
3. 'historicalContext': Provide historical and geographical context including locations, customs, and political situations.
4. 'literaryAnalysis': Analyze the literary structure and main theological themes.
5. 'interpretations': If there are differing scholarly interpretations for passages, summarize 2-3 views neutrally and factually, including the verse number.

If no specific data is available for a category (e.g., no major interpretive differences), return an empty array for that category where applicable (like crossReferences, wordStudies, interpretations) or an object with empty strings for its properties (like historicalContext)."""


def _wrap_error(exc: Exception, what: str) -> Exception:
    if is_quota_error(exc):
        return QuotaExceededError(f"Daily AI quota exceeded while generating {what}: {exc}")
    return EnrichmentError(f"Failed to generate {what}: {exc}")


class OpenAIEnrichmentAdapter(EnrichmentPort):
    """Schema-constrained study content and streamed chat through one ``AsyncOpenAI`` client."""

    def __init__(
        self, client: Optional[AsyncOpenAI] = None, *, model: Optional[str] = None
    ) -> None:
        self._client = client
        self.model = model or config.OPENAI_MODEL

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=config.OPENAI_API_KEY)
        return self._client

    async def _parse(self, prompt: str, text_format: Type[ModelT], what: str) -> ModelT:
        try:
            response = await self.client.responses.parse(
                model=self.model,
                input=prompt,
                text_format=text_format,
                store=False,
            )
        except OpenAIError as exc:
            logger.error("[ai] %s request failed: %s", what, exc, exc_info=True)
            raise _wrap_error(exc, what) from exc
        parsed = response.output_parsed
        if parsed is None:
            logger.error("[ai] %s response had no parsed output", what)
            raise EnrichmentError(f"Failed to generate {what}: empty response")
        return cast(ModelT, parsed)

    async def get_chapter_deep_dive(self, chapter: ChapterIdentifier) -> Mapping[str, Any]:
        logger.info("[ai] generating deep dive for %s", chapter.label())
        prompt = DEEP_DIVE_PROMPT.format(book=chapter.book, chapter=chapter.chapter)
        parsed = await self._parse(prompt, DeepDiveData, "deep dive")
        return parsed.model_dump(by_alias=True)

    async def get_all_chapter_enrichments(
        self, chapter: ChapterIdentifier
    ) -> Mapping[str, Any]:
        logger.info("[ai] generating enrichments for %s", chapter.label())
        prompt = ENRICHMENTS_PROMPT.format(book=chapter.book, chapter=chapter.chapter)
        parsed = await self._parse(prompt, AllEnrichmentData, "enrichments")
        return parsed.model_dump(by_alias=True)

    async def stream_chat(
        self, system_instruction: str, history: Sequence[ChatMessage]
    ) -> AsyncIterator[str]:
        messages: list[dict[str, str]] = [{"role": "system", "content": system_instruction}]
        for message in history:
            role = "assistant" if message.role == "model" else "user"
            messages.append({"role": role, "content": message.content})
        try:
            stream = await self.client.chat.completions.create(
                model=self.model,
                messages=cast(Any, messages),
                stream=True,
            )
            async for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta
        except OpenAIError as exc:
            logger.error("[ai] chat stream failed: %s", exc, exc_info=True)
            raise _wrap_error(exc, "chat reply") from exc


__all__ = ["OpenAIEnrichmentAdapter", "DEEP_DIVE_PROMPT", "ENRICHMENTS_PROMPT"]
