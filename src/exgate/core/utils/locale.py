"""Locale resolution and label collation.

`get_locale` turns an Accept-Language header into a `Locale`, falling back
to a default when the header is missing or unusable.

`collation_key` produces a primary-strength sort key: labels that differ
only in case or accents map to the same key. There are no per-language
tailoring tables here, so the key does not depend on the locale; the
parameter is kept so callers stay correct if tailoring is added.
"""

from __future__ import annotations

import re
import unicodedata
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

_LANGUAGE_RANGE = re.compile(r"^([A-Za-z]{1,8})(?:[-_]([A-Za-z0-9]{1,8}))*$")
_QUALITY = re.compile(r"^q=(0(?:\.\d{0,3})?|1(?:\.0{0,3})?)$", re.IGNORECASE)


class Locale(BaseModel):
    model_config = ConfigDict(frozen=True)

    language: str
    region: Optional[str] = None

    @property
    def tag(self) -> str:
        return f"{self.language}-{self.region}" if self.region else self.language

    def __str__(self) -> str:
        return self.tag

    @classmethod
    def from_tag(cls, tag: str) -> "Locale":
        """Parse 'de', 'de-DE' or 'de_DE'. Raises ValueError on malformed tags."""
        cleaned = tag.strip()
        if not _LANGUAGE_RANGE.match(cleaned):
            raise ValueError(f"Malformed language tag: {tag!r}")
        parts = re.split(r"[-_]", cleaned)
        language = parts[0].lower()
        region = None
        # second subtag is a region only when it looks like one (2 letters or 3 digits)
        if len(parts) > 1 and (
            (len(parts[1]) == 2 and parts[1].isalpha())
            or (len(parts[1]) == 3 and parts[1].isdigit())
        ):
            region = parts[1].upper()
        return cls(language=language, region=region)


def parse_accept_language(header: str) -> List[Tuple[Locale, float]]:
    """Parse an Accept-Language header into (locale, quality) pairs.

    Wildcards, malformed ranges, malformed or out-of-range q values and
    zero-quality entries are skipped. The result is ordered by descending
    quality, keeping header order on ties.
    """
    entries: List[Tuple[int, Locale, float]] = []
    for position, item in enumerate(header.split(",")):
        fields = [f.strip() for f in item.split(";")]
        language_range = fields[0]
        if not language_range or language_range == "*":
            continue
        quality: Optional[float] = 1.0
        for param in fields[1:]:
            param = param.replace(" ", "")
            if not param.lower().startswith("q="):
                continue
            match = _QUALITY.match(param)
            quality = float(match.group(1)) if match else None
            break
        if quality is None or quality <= 0:
            continue
        try:
            locale = Locale.from_tag(language_range)
        except ValueError:
            continue
        entries.append((position, locale, quality))
    entries.sort(key=lambda e: (-e[2], e[0]))
    return [(locale, quality) for _, locale, quality in entries]


def get_locale(accept_language: Optional[str], default: Locale | str) -> Locale:
    """Resolve the preferred locale of a request."""
    fallback = default if isinstance(default, Locale) else Locale.from_tag(default)
    if not accept_language:
        return fallback
    ranked = parse_accept_language(accept_language)
    if not ranked:
        return fallback
    return ranked[0][0]


def collation_key(text: str, locale: Optional[Locale] = None) -> str:
    """Primary-strength collation key: ignores case and accents."""
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()
