"""Quality heuristics for candidate lyrics.

Scores are relative rankings in [0, 1], not probabilities. Every function
here is pure: the same (text, expected language, query) always yields the
same breakdown.
"""

import re
from collections import Counter
from typing import List, Optional, Union

from .lrc import has_timestamps, strip_timestamps
from .models import Language, NormalizedQuery, ScoreBreakdown, SongQuery
from .normalize import detect_dominant_language, script_shares

__all__ = [
    "HALLUCINATION_PHRASES",
    "NOT_FOUND_SENTINELS",
    "REFUSAL_MARKERS",
    "MIN_LENGTH",
    "evaluate_lyrics",
    "score_lyrics",
    "normalize_lyrics",
    "has_timestamps",
    "strip_timestamps",
]

MIN_LENGTH = 150
REFUSAL_WINDOW = 300
MAX_LENGTH = 15000
LONG_TEXT_CAP = 0.2

BASE_SCORE = 0.10

# Generic narrative phrases seen in generated "lyrics"
HALLUCINATION_PHRASES = (
    "in the autumn of my memories",
    "i'm left with just these memories",
    "i'll stand alone at gwanghwamun",
)

# Not-found sentinels, rejected wherever they appear
NOT_FOUND_SENTINELS = (
    "lyrics_not_found",
    "no_lyrics_found",
)

# Provider refusals that sometimes slip through as text. Only the opening
# of a text is checked; the same words are ordinary lyric lines mid-song.
REFUSAL_MARKERS = (
    "i cannot find",
    "no lyrics found",
    "i don't have access",
    "i cannot provide",
    "i apologize",
)

QueryLike = Union[NormalizedQuery, SongQuery, None]


def normalize_lyrics(text: str) -> str:
    """Normalize whitespace: CRLF, tabs, NBSP, runs of spaces and blank lines."""
    s = (text or "").replace("\r\n", "\n").replace("\r", "\n")
    s = s.replace("\t", " ").replace("\u00a0", " ")
    s = re.sub(r" {2,}", " ", s)
    s = "\n".join(line.rstrip() for line in s.split("\n"))
    s = re.sub(r"\n{3,}", "\n\n", s)
    return s.strip()


def _title_words(query: QueryLike) -> List[str]:
    if query is None:
        return []
    return [w for w in re.split(r"[\s\W_]+", query.title.lower()) if len(w) > 2]


def _allows_mixed_script(query: QueryLike) -> bool:
    return isinstance(query, NormalizedQuery) and query.allow_mixed_script


def _length_score(length: int) -> float:
    if 500 <= length <= 4000:
        return 0.25
    if 300 <= length < 500 or 4000 < length <= 8000:
        return 0.15
    return 0.05


def _structure_score(line_count: int) -> float:
    if 15 <= line_count <= 80:
        return 0.15
    if 8 <= line_count < 15 or 80 < line_count <= 120:
        return 0.07
    return 0.0


def _language_score(text: str, expected: Language, allow_mixed: bool) -> float:
    dominant = detect_dominant_language(text)
    if expected == Language.UNKNOWN:
        return 0.05 if dominant != Language.UNKNOWN else 0.0
    if dominant == expected:
        return 0.20
    if allow_mixed and script_shares(text)[expected] >= 0.10:
        return 0.15
    return -0.25


def _repetition_score(lines: List[str]) -> float:
    counts = Counter(line.strip().lower() for line in lines if len(line.strip()) >= 4)
    if not counts:
        return 0.0
    repeated = [c for c in counts.values() if c > 2]
    distinct_ratio = len(counts) / max(1, sum(counts.values()))
    if len(repeated) > 3 and distinct_ratio < 0.35:
        return -0.15
    return 0.10 if repeated else 0.0


def _has_prose_block(text: str) -> bool:
    """Detect a paragraph of English prose, as opposed to short lyric lines."""
    for paragraph in re.split(r"\n\s*\n", text):
        paragraph = paragraph.strip()
        if len(paragraph) < 120:
            continue
        letters = [c for c in paragraph if c.isalpha()]
        if not letters:
            continue
        latin = sum(1 for c in letters if "a" <= c.lower() <= "z")
        lines = [ln for ln in paragraph.split("\n") if ln.strip()]
        mean_line = len(paragraph) / max(1, len(lines))
        if latin / len(letters) > 0.9 and mean_line >= 60:
            return True
    return False


def _rejection_reason(text: str) -> Optional[str]:
    lower = text.lower()
    if len(text) < MIN_LENGTH:
        return "too_short"
    for phrase in HALLUCINATION_PHRASES:
        if phrase in lower:
            return f"hallucination_phrase: {phrase}"
    for sentinel in NOT_FOUND_SENTINELS:
        if sentinel in lower:
            return f"not_found_sentinel: {sentinel}"
    head = lower[:REFUSAL_WINDOW]
    for marker in REFUSAL_MARKERS:
        if marker in head:
            return f"refusal_marker: {marker}"
    return None


def evaluate_lyrics(
    text: str,
    expected_language: Language = Language.UNKNOWN,
    query: QueryLike = None,
) -> ScoreBreakdown:
    """Compute the named sub-scores for a candidate text."""
    raw = normalize_lyrics(text)
    timed = has_timestamps(raw)
    plain = normalize_lyrics(strip_timestamps(raw)) if timed else raw

    reason = _rejection_reason(plain)
    if reason:
        return ScoreBreakdown(rejected_reason=reason)

    lines = [line for line in plain.split("\n") if line.strip()]
    lower = plain.lower()

    title_words = _title_words(query)
    title_overlap = 0.0
    if title_words:
        found = sum(1 for w in title_words if w in lower)
        title_overlap = round(0.10 * found / len(title_words), 4)

    penalties = 0.0
    if expected_language.is_cjk and _has_prose_block(plain):
        penalties -= 0.30

    return ScoreBreakdown(
        base=BASE_SCORE,
        length=_length_score(len(plain)),
        structure=_structure_score(len(lines)),
        language=_language_score(plain, expected_language, _allows_mixed_script(query)),
        timing=0.15 if timed else 0.0,
        title_overlap=title_overlap,
        repetition=_repetition_score(lines),
        penalties=penalties,
        cap=LONG_TEXT_CAP if len(plain) > MAX_LENGTH else None,
    )


def score_lyrics(
    text: str,
    expected_language: Language = Language.UNKNOWN,
    query: QueryLike = None,
) -> float:
    """Score a candidate text in [0, 1]."""
    return round(evaluate_lyrics(text, expected_language, query).total, 4)
