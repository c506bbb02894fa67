"""Translation metadata returned by the scripture provider.

WHY: API.Bible describes each Bible with nested language objects and
local/English name variants. The rest of the app only needs an id, a
display name, an abbreviation, and whether it is English.

HOW: Translation.from_api_dict() flattens one API.Bible record.
TranslationCatalog carries the sorted list plus an optional warning when
the built-in fallback list was served instead.

RULES:
- language may arrive as a plain code ("en") or an object ({id, name})
- English: code "en"/"eng", or language object id "eng" / name "English"
- Sort order: English first, then language name, then abbreviation
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass(frozen=True)
class Translation:
    id: str
    name: str
    abbreviation: str
    language: str
    is_english: bool = False

    @classmethod
    def from_api_dict(cls, data: dict) -> Translation:
        lang = data.get("language")
        return cls(
            id=data["id"],
            name=data.get("name") or data.get("nameLocal") or "",
            abbreviation=data.get("abbreviation") or data.get("abbreviationLocal") or "",
            language=_language_name(lang),
            is_english=_is_english(lang),
        )

    def sort_key(self) -> tuple:
        return (not self.is_english, self.language.casefold(), self.abbreviation.casefold())


def _language_name(lang: Any) -> str:
    if isinstance(lang, str):
        return lang
    if isinstance(lang, dict):
        return lang.get("name") or lang.get("id") or "Unknown"
    return "Unknown"


def _is_english(lang: Any) -> bool:
    if isinstance(lang, str):
        return lang in ("en", "eng")
    if isinstance(lang, dict):
        return lang.get("id") == "eng" or lang.get("name") == "English"
    return False


FALLBACK_TRANSLATIONS: tuple[Translation, ...] = (
    Translation("9879dbb7cfe39e4d-01", "World English Bible", "WEB", "en", True),
    Translation("06125adad2d5898a-01", "English Standard Version", "ESV", "en", True),
    Translation("de4e12af7f28f599-01", "New International Version", "NIV", "en", True),
    Translation("de4e12af7f28f599-02", "King James Version", "KJV", "en", True),
)


@dataclass
class TranslationCatalog:
    """Translations available for passage lookup.

    RULES:
    - warning is set when the fallback list is served because of an error
    """

    translations: List[Translation] = field(default_factory=list)
    warning: Optional[str] = None

    @property
    def total(self) -> int:
        return len(self.translations)

    @property
    def english_count(self) -> int:
        return sum(1 for t in self.translations if t.is_english)
