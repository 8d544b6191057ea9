"""Query normalization: alias mapping, script detection and cache keys."""

import re
import unicodedata
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..exceptions import ValidationError
from .models import Language, NormalizedQuery, SongQuery

# Dominant script must cover more than this share of the text
LANGUAGE_SHARE_THRESHOLD = 0.25

_SCRIPT_PATTERNS = {
    Language.KO: re.compile(r"[\uAC00-\uD7AF\u1100-\u11FF\u3130-\u318F]"),
    Language.JA: re.compile(r"[\u3040-\u309F\u30A0-\u30FF]"),
    Language.ZH: re.compile(r"[\u4E00-\u9FFF]"),
    Language.EN: re.compile(r"[A-Za-z]"),
}


@dataclass(frozen=True)
class Alias:
    """A known pair of native and romanized/translated names."""

    native: str
    latin: str
    language: Language = Language.KO
    mixed_script: bool = False


ARTIST_ALIASES: Tuple[Alias, ...] = (
    Alias("샘킴", "Sam Kim", mixed_script=True),
    Alias("아이유", "IU"),
    Alias("방탄소년단", "BTS", mixed_script=True),
    Alias("블랙핑크", "BLACKPINK", mixed_script=True),
    Alias("뉴진스", "NewJeans", mixed_script=True),
    Alias("세븐틴", "SEVENTEEN", mixed_script=True),
    Alias("잔나비", "JANNABI"),
)

TITLE_ALIASES: Tuple[Alias, ...] = (
    Alias("좋은날", "Good Day"),
    Alias("11월 비", "November Rain"),
)


def _fold(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip().casefold()


def _build_index(aliases: Tuple[Alias, ...]) -> Dict[str, Alias]:
    index: Dict[str, Alias] = {}
    for alias in aliases:
        index[_fold(alias.native)] = alias
        index[_fold(alias.latin)] = alias
    return index


_ARTIST_INDEX = _build_index(ARTIST_ALIASES)
_TITLE_INDEX = _build_index(TITLE_ALIASES)


def clean_text(text: str) -> str:
    """NFC-normalize and collapse whitespace."""
    return re.sub(r"\s+", " ", unicodedata.normalize("NFC", text or "")).strip()


def find_artist_alias(artist: str) -> Optional[Alias]:
    return _ARTIST_INDEX.get(_fold(clean_text(artist)))


def find_title_alias(title: str) -> Optional[Alias]:
    return _TITLE_INDEX.get(_fold(clean_text(title)))


def script_shares(text: str) -> Dict[Language, float]:
    """Share of each script's characters over the whole text length."""
    total = len(text) or 1
    return {
        lang: len(pattern.findall(text)) / total
        for lang, pattern in _SCRIPT_PATTERNS.items()
    }


def detect_dominant_language(text: str) -> Language:
    """Return the script with the largest share, or UNKNOWN below the threshold."""
    if not text:
        return Language.UNKNOWN
    shares = script_shares(text)
    # Stable sort keeps ko > ja > zh > en on equal shares
    lang, share = sorted(shares.items(), key=lambda kv: -kv[1])[0]
    if share <= LANGUAGE_SHARE_THRESHOLD:
        return Language.UNKNOWN
    # Japanese lyrics mix kanji with kana
    if lang == Language.ZH and shares[Language.JA] > 0.05:
        return Language.JA
    return lang


def canonical_artist(artist: str) -> str:
    alias = find_artist_alias(artist)
    return alias.native if alias else clean_text(artist)


def canonical_title(title: str) -> str:
    alias = find_title_alias(title)
    return alias.native if alias else clean_text(title)


def make_cache_key(artist: str, title: str) -> str:
    """Build the cache key shared by every alias spelling of a song."""
    return f"{_fold(canonical_artist(artist))}|{_fold(canonical_title(title))}"


def normalize_query(query: SongQuery) -> NormalizedQuery:
    """Canonicalize a query and infer the language its lyrics should be in."""
    artist = clean_text(query.artist)
    title = clean_text(query.title)
    if not artist or not title:
        raise ValidationError("Artist and title are required")

    expected = detect_dominant_language(f"{artist} {title}")
    alias = find_artist_alias(artist)
    if alias and expected in (Language.EN, Language.UNKNOWN):
        expected = alias.language

    return NormalizedQuery(
        artist=artist,
        title=title,
        expected_language=expected,
        cache_key=make_cache_key(artist, title),
        original=query,
        allow_mixed_script=bool(alias and alias.mixed_script),
    )


_DASH_PATTERN = re.compile(r"^(.+?)\s+[-–—]\s+(.+)$")


def parse_query(text: str) -> Tuple[str, str]:
    """
    Split a free-form search string into (artist, title).

    Understands "Artist - Title" and "Title by Artist"; otherwise the first
    word is taken as the artist. A single word is used for both.

    Raises:
        ValidationError: If the text is empty
    """
    normalized = clean_text(text)
    if not normalized:
        raise ValidationError("Query cannot be empty")

    match = _DASH_PATTERN.match(normalized)
    if match:
        return match.group(1).strip(), match.group(2).strip()

    parts = normalized.split(" ")
    lowered = [p.lower() for p in parts]
    if "by" in lowered:
        by_index = lowered.index("by")
        if 0 < by_index < len(parts) - 1:
            return " ".join(parts[by_index + 1:]), " ".join(parts[:by_index])

    if len(parts) >= 2:
        return parts[0], " ".join(parts[1:])
    return normalized, normalized


def query_variants(artist: str, title: str) -> List[Tuple[str, str]]:
    """Search variants for catalog sites, most literal first."""
    artist = clean_text(artist)
    title = clean_text(title)

    artists = [artist]
    alias = find_artist_alias(artist)
    if alias:
        artists += [alias.native, alias.latin]

    titles = [title]
    title_alias = find_title_alias(title)
    if title_alias:
        titles += [title_alias.native, title_alias.latin]
    oclock = re.sub(r"(\d+)\s*오클락", r"\1 o'clock", title)
    titles.append(oclock)
    titles.append(title.replace(" ", ""))

    variants: List[Tuple[str, str]] = []
    for a in artists:
        for t in titles:
            if a and t and (a, t) not in variants:
                variants.append((a, t))
    return variants
