"""ScriptureProvider: passage lookup and translation listing with fallbacks.

WHY: A practice session must start even when API.Bible is unconfigured,
rate-limited, or down. Lookup therefore degrades in steps: keyed
API.Bible first, then the keyless bible-api.com, then "not found".
Translation listing degrades to a short built-in list.

HOW: ScriptureProvider opens the clients it needs per call. Errors from
an upstream are logged and the next option is tried. Only a malformed
passage id is raised to the caller, before any request is made.

RULES:
- PassageValidationError for a missing book, chapter, or verse; never retried
- API.Bible is used only when a real key is configured
- get_passage() returns None when every upstream misses
- list_translations() always returns a non-empty catalog
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from recitation_coach.config import DEFAULT_BIBLE_ID, DEFAULT_TRANSLATION_NAME, load_api_bible_key
from recitation_coach.core.models import ReferenceText
from recitation_coach.scripture.books import book_name, find_book
from recitation_coach.scripture.client import ApiBibleClient, FreeBibleClient, ScriptureAPIError
from recitation_coach.scripture.models import (
    FALLBACK_TRANSLATIONS,
    Translation,
    TranslationCatalog,
)

logger = logging.getLogger(__name__)


class PassageValidationError(ValueError):
    """Raised when a passage id is missing a required part or is out of range.

    RULES:
    - Message names the offending part
    - Raised before any network call is made
    """


@dataclass(frozen=True)
class PassageId:
    """Identifies one verse, optionally in a specific translation.

    RULES:
    - book: USFM book id, e.g. "JHN"
    - chapter, verse: positive integers
    - bible_id: API.Bible id; None means the configured default
    """

    book: str
    chapter: int
    verse: int
    bible_id: str | None = None

    @classmethod
    def create(
        cls,
        book: str | None,
        chapter: int | str | None,
        verse: int | str | None,
        bible_id: str | None = None,
    ) -> PassageId:
        """Validate raw parts and build a PassageId.

        Raises:
            PassageValidationError: If a part is missing, not a positive
                integer, or past the book's last chapter.
        """
        if not book or not str(book).strip():
            raise PassageValidationError("book is required")
        if chapter is None or str(chapter).strip() == "":
            raise PassageValidationError("chapter is required")
        if verse is None or str(verse).strip() == "":
            raise PassageValidationError("verse is required")

        book_id = str(book).strip().upper()
        chapter_num = _positive_int("chapter", chapter)
        verse_num = _positive_int("verse", verse)

        known = find_book(book_id)
        if known and chapter_num > known.chapters:
            raise PassageValidationError(
                f"{known.name} has {known.chapters} chapters, got chapter {chapter_num}"
            )
        return cls(book_id, chapter_num, verse_num, bible_id or None)

    @classmethod
    def parse(cls, verse_id: str, bible_id: str | None = None) -> PassageId:
        """Parse an API.Bible verse id such as "JHN.3.16"."""
        parts = (verse_id or "").strip().split(".")
        while len(parts) < 3:
            parts.append("")
        if len(parts) > 3:
            raise PassageValidationError(f"Invalid verse id: {verse_id!r}")
        return cls.create(parts[0], parts[1], parts[2], bible_id)

    @property
    def verse_id(self) -> str:
        return f"{self.book}.{self.chapter}.{self.verse}"

    @property
    def citation(self) -> str:
        return f"{book_name(self.book)} {self.chapter}:{self.verse}"


def _positive_int(name: str, value: int | str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise PassageValidationError(f"{name} must be a number, got {value!r}") from None
    if number < 1:
        raise PassageValidationError(f"{name} must be at least 1, got {number}")
    return number


class ScriptureProvider:
    """Looks up passages and lists translations across both upstreams.

    Args:
        api_key: API.Bible key. Defaults to load_api_bible_key().
        default_bible_id: Translation used when a PassageId has none.
        api_bible_base_url: Override for the API.Bible base URL.
        free_base_url: Override for the bible-api.com base URL.
        transport: httpx transport shared by both clients (tests).
    """

    def __init__(
        self,
        api_key: str | None = None,
        default_bible_id: str | None = None,
        api_bible_base_url: str | None = None,
        free_base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key or load_api_bible_key()
        self._default_bible_id = default_bible_id or DEFAULT_BIBLE_ID
        self._api_bible_base_url = api_bible_base_url
        self._free_base_url = free_base_url
        self._transport = transport

    @property
    def has_api_bible(self) -> bool:
        return self._api_key is not None

    async def get_passage(self, passage: PassageId) -> ReferenceText | None:
        """Fetch the text of ``passage``, or None if no upstream has it."""
        if self._api_key:
            bible_id = passage.bible_id or self._default_bible_id
            try:
                async with ApiBibleClient(
                    self._api_key, self._api_bible_base_url, self._transport
                ) as client:
                    verse = await client.get_verse(bible_id, passage.verse_id)
                if verse:
                    logger.info("Fetched %s from API.Bible", verse.citation)
                    return verse
            except (ScriptureAPIError, httpx.HTTPError) as exc:
                logger.warning("API.Bible error, trying fallback: %s", exc)

        logger.info("Fetching %s from bible-api.com", passage.citation)
        try:
            async with FreeBibleClient(self._free_base_url, self._transport) as client:
                verse = await client.get_verse(
                    book_name(passage.book),
                    passage.chapter,
                    passage.verse,
                    DEFAULT_TRANSLATION_NAME,
                )
        except (ScriptureAPIError, httpx.HTTPError) as exc:
            logger.warning("bible-api.com error for %s: %s", passage.citation, exc)
            return None

        if verse is None:
            logger.info("Passage %s not found", passage.citation)
        return verse

    async def list_translations(self) -> TranslationCatalog:
        """List translations, English first; falls back to a built-in list."""
        if not self._api_key:
            logger.warning("API_BIBLE_KEY not configured, using fallback translations")
            return TranslationCatalog(list(FALLBACK_TRANSLATIONS))

        try:
            async with ApiBibleClient(
                self._api_key, self._api_bible_base_url, self._transport
            ) as client:
                raw = await client.get_bibles()
        except (ScriptureAPIError, httpx.HTTPError) as exc:
            logger.error("API.Bible error listing translations: %s", exc)
            return TranslationCatalog(
                list(FALLBACK_TRANSLATIONS),
                warning="Using fallback translations. Please check your API_BIBLE_KEY in .env file.",
            )

        translations: list[Translation] = []
        for record in raw:
            if not record.get("id"):
                continue
            translations.append(Translation.from_api_dict(record))
        translations.sort(key=Translation.sort_key)

        if not translations:
            logger.warning("No translations returned, using fallback")
            return TranslationCatalog(list(FALLBACK_TRANSLATIONS))

        catalog = TranslationCatalog(translations)
        logger.info(
            "Found %d translations (%d English)", catalog.total, catalog.english_count
        )
        return catalog
