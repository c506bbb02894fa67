"""Async HTTP clients for API.Bible and bible-api.com.

WHY: Each upstream has its own auth, URL scheme, and payload shape. One
small client per upstream keeps those details out of the provider.

HOW: Both clients wrap httpx.AsyncClient and are async context managers,
like every HTTP client in this package. A transport can be injected so
tests run against httpx.MockTransport instead of the network.

RULES:
- Always use as: async with ApiBibleClient(key) as client: ...
- Non-2xx responses raise ScriptureAPIError (bible-api.com 404 is "not found")
- A 200 body that is not a JSON object also raises ScriptureAPIError
- Verse text returned to callers is plain text with single spaces
"""

from __future__ import annotations

import logging
import re
from urllib.parse import quote

import httpx

from recitation_coach.config import API_BIBLE_BASE_URL, FREE_BIBLE_BASE_URL
from recitation_coach.core.models import ReferenceText

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")
# A verse number glued to a capitalised word ("16For God...") marks where
# the verse body starts after any heading or cross-reference text.
_VERSE_START_RE = re.compile(r"\)?\s*(\d+)([A-Z][a-z])")
_LEADING_NUMBER_RE = re.compile(r"^\d+\s*")

_TIMEOUT = httpx.Timeout(30.0, connect=10.0)


class ScriptureAPIError(Exception):
    """Raised when a scripture API returns an error response.

    RULES:
    - Always include status_code and message
    """

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"Scripture API error {status_code}: {message}")


def clean_verse_html(content: str) -> str:
    """Reduce API.Bible verse HTML to the plain verse text.

    HOW: Strip tags, collapse whitespace, drop anything before the first
    "<number><Capital><lower>" verse start, then drop a leading verse
    number if one is still there.
    """
    text = _TAG_RE.sub("", content)
    text = _WHITESPACE_RE.sub(" ", text).strip()

    match = _VERSE_START_RE.search(text)
    if match:
        start = match.start()
        if text[start] == ")":
            start += 1
        while start < len(text) and text[start] == " ":
            start += 1
        start += len(match.group(1))
        text = text[start:]

    return _LEADING_NUMBER_RE.sub("", text).strip()


def _json_object(resp: httpx.Response) -> dict:
    """Decode a 200 body that must be a JSON object."""
    try:
        payload = resp.json()
    except ValueError:
        raise ScriptureAPIError(resp.status_code, "invalid JSON") from None
    if not isinstance(payload, dict):
        raise ScriptureAPIError(resp.status_code, "invalid JSON")
    return payload


class _BaseClient:
    def __init__(
        self,
        base_url: str,
        headers: dict | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._headers = headers or {}
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._headers,
            timeout=_TIMEOUT,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                f"{type(self).__name__} must be used as an async context manager"
            )
        return self._client


class ApiBibleClient(_BaseClient):
    """Client for API.Bible (https://api.bible), keyed by ``api-key`` header."""

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            base_url or API_BIBLE_BASE_URL,
            headers={"api-key": api_key},
            transport=transport,
        )

    async def get_bibles(self) -> list[dict]:
        """Return the raw list of Bibles the key can access."""
        client = self._ensure_client()
        resp = await client.get("/bibles")
        if resp.status_code != 200:
            raise ScriptureAPIError(resp.status_code, resp.text)
        data = _json_object(resp).get("data") or []
        if not isinstance(data, list):
            raise ScriptureAPIError(resp.status_code, "invalid JSON")
        return data

    async def get_verse(self, bible_id: str, verse_id: str) -> ReferenceText | None:
        """Fetch one verse, e.g. ``get_verse(bible_id, "JHN.3.16")``.

        Returns:
            ReferenceText with cleaned text, or None if the response has
            no content.
        """
        client = self._ensure_client()
        resp = await client.get(f"/bibles/{bible_id}/verses/{verse_id}")
        if resp.status_code != 200:
            raise ScriptureAPIError(resp.status_code, resp.text)

        data = _json_object(resp).get("data") or {}
        if not isinstance(data, dict):
            raise ScriptureAPIError(resp.status_code, "invalid JSON")
        content = data.get("content")
        if not content:
            return None

        text = clean_verse_html(content)
        logger.debug("Cleaned verse %s starts with: %.40s", verse_id, text)
        return ReferenceText(
            citation=data.get("reference") or verse_id,
            body=text,
            translation=data.get("bibleId") or bible_id,
        )


class FreeBibleClient(_BaseClient):
    """Client for bible-api.com; needs no key, serves the World English Bible."""

    def __init__(
        self,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(base_url or FREE_BIBLE_BASE_URL, transport=transport)

    async def get_verse(
        self,
        book_name: str,
        chapter: int,
        verse: int,
        translation: str = "World English Bible",
    ) -> ReferenceText | None:
        """Fetch one verse by English book name, e.g. ("John", 3, 16)."""
        client = self._ensure_client()
        citation = f"{book_name} {chapter}:{verse}"
        resp = await client.get("/" + quote(citation))
        if resp.status_code == 404:
            return None
        if resp.status_code != 200:
            raise ScriptureAPIError(resp.status_code, resp.text)

        data = _json_object(resp)
        text = data.get("text")
        if not text:
            return None
        return ReferenceText(
            citation=data.get("reference") or citation,
            body=_WHITESPACE_RE.sub(" ", text).strip(),
            translation=translation,
        )
