"""AI summaries of ingested documents.

The summariser itself is any ``async (plain_text) -> markdown`` callable.
:class:`GeminiSummarizer` is the bundled implementation backed by the
``google-genai`` SDK; it reads ``GEMINI_API_KEY`` when no key is given.
"""

from __future__ import annotations

import logging
import os
from typing import Awaitable, Callable, List, Optional

from google import genai

from .config import DEFAULT_GEMINI_MODEL, SUMMARY_MAX_CHARS
from .content import html_to_text
from .document import Document

LOGGER = logging.getLogger(__name__)

Summarizer = Callable[[str], Awaitable[str]]

EMPTY_SUMMARY = "Could not generate summary."
FAILED_SUMMARY = (
    "Failed to generate AI summary. Please check your API key or try again later."
)

SUMMARY_PROMPT = (
    "You are an expert technical writer. Please provide a concise, bullet-point "
    "summary of the following documentation content. Focus on the key concepts, "
    "configuration steps, and purpose. Format using Markdown.\n\nContent: {content}"
)


def truncate_text(text: str, max_chars: int = SUMMARY_MAX_CHARS) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "..."


class GeminiSummarizer:
    """Summarise text with a Gemini model."""

    def __init__(self, api_key: Optional[str] = None, model: str = DEFAULT_GEMINI_MODEL):
        self.api_key = api_key or os.getenv("GEMINI_API_KEY")
        if not self.api_key:
            raise ValueError("Gemini API key is required (set GEMINI_API_KEY)")
        self.model = model
        self._client = None

    def _get_client(self):
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def __call__(self, text: str) -> str:
        client = self._get_client()
        response = await client.aio.models.generate_content(
            model=self.model,
            contents=SUMMARY_PROMPT.format(content=text),
        )
        return response.text or ""


async def summarize_text(
    text: str,
    summarizer: Summarizer,
    *,
    max_chars: int = SUMMARY_MAX_CHARS,
) -> str:
    """Run ``summarizer`` on truncated text; failures yield a placeholder."""
    try:
        summary = await summarizer(truncate_text(text, max_chars))
    except Exception as exc:
        LOGGER.error("Summariser error: %s", exc)
        return FAILED_SUMMARY
    return summary or EMPTY_SUMMARY


async def summarize_document(
    document: Document,
    summarizer: Summarizer,
    *,
    max_chars: int = SUMMARY_MAX_CHARS,
) -> Optional[str]:
    """Summarise a successful document in place and return the summary.

    Error documents have no content worth summarising and are left untouched.
    """
    if not document.ok:
        return None
    text = html_to_text(document.content)
    document.summary = await summarize_text(text, summarizer, max_chars=max_chars)
    LOGGER.debug("Summarised %s (%d chars of text)", document.url, len(text))
    return document.summary


async def summarize_documents(
    documents: List[Document],
    summarizer: Summarizer,
    *,
    max_chars: int = SUMMARY_MAX_CHARS,
) -> int:
    """Summarise documents one after another; returns how many were summarised."""
    count = 0
    for document in documents:
        if await summarize_document(document, summarizer, max_chars=max_chars):
            count += 1
    return count
