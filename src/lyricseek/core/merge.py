"""
Lyrics merging utility: completeness scoring and merging of partial texts from two sources.
"""

import re
from difflib import SequenceMatcher
from typing import List, Optional, Tuple

from ..utils.logging import get_logger

logger = get_logger(__name__)

_VERSE1_MARKERS = ("Verse 1", "1절")
_VERSE2_MARKERS = ("Verse 2", "2절", "두 번째")
_CHORUS_MARKERS = ("Chorus", "후렴")
_BRIDGE_MARKERS = ("Bridge", "브릿지")
_SECTION_RE = re.compile(r"^\[.*\]$")


def _has_any(text: str, markers: Tuple[str, ...]) -> bool:
    return any(m in text for m in markers)


def _non_empty_lines(text: str) -> List[str]:
    return [line for line in text.split("\n") if line.strip()]


def _paragraphs(text: str, min_chars: int = 20) -> List[str]:
    return [p for p in text.split("\n\n") if len(p.strip()) > min_chars]


def completeness_score(lyrics: str) -> int:
    """
    Score how complete a lyrics text looks, 0-100.

    Length (up to 30), line count (up to 20), section markers (up to 30)
    and paragraph count (up to 20).
    """
    if not lyrics:
        return 0

    score = 0
    length = len(lyrics)
    if length > 1500:
        score += 30
    elif length > 1000:
        score += 25
    elif length > 700:
        score += 20
    elif length > 500:
        score += 15
    elif length > 300:
        score += 10
    else:
        score += 5

    line_count = len(_non_empty_lines(lyrics))
    if line_count > 40:
        score += 20
    elif line_count > 30:
        score += 15
    elif line_count > 20:
        score += 10
    elif line_count > 10:
        score += 5

    if _has_any(lyrics, _VERSE1_MARKERS):
        score += 10
    if _has_any(lyrics, _VERSE2_MARKERS):
        score += 10
    if _has_any(lyrics, _CHORUS_MARKERS):
        score += 7
    if _has_any(lyrics, _BRIDGE_MARKERS):
        score += 3

    paragraph_count = len(_paragraphs(lyrics))
    if paragraph_count > 5:
        score += 20
    elif paragraph_count > 4:
        score += 15
    elif paragraph_count > 3:
        score += 10
    elif paragraph_count > 2:
        score += 5

    return score


def _lines_match(a: str, b: str, min_ratio: float = 0.85) -> bool:
    a_norm = a.lower().strip()
    b_norm = b.lower().strip()
    if not a_norm or not b_norm:
        return False
    if a_norm in b_norm or b_norm in a_norm:
        return True
    return SequenceMatcher(None, a_norm, b_norm).ratio() >= min_ratio


def are_same_song(lyrics1: str, lyrics2: str) -> bool:
    """Two texts are the same song if at least 2 of their first 5 lines match."""
    if not lyrics1 or not lyrics2:
        return False

    head1 = _non_empty_lines(lyrics1)[:5]
    head2 = _non_empty_lines(lyrics2)[:5]
    matches = sum(1 for l1 in head1 if any(_lines_match(l1, l2) for l2 in head2))
    return matches >= 2


def _carry_markers(primary_lines: List[str], secondary_lines: List[str]) -> List[str]:
    """Copy secondary section markers in front of the primary lines they introduce."""
    primary_text = "\n".join(primary_lines)
    pending: List[Tuple[str, str]] = []
    for i, line in enumerate(secondary_lines):
        marker = line.strip()
        if not _SECTION_RE.match(marker) or marker in primary_text:
            continue
        following = next((s for s in secondary_lines[i + 1:] if s.strip()), None)
        if following and not _SECTION_RE.match(following.strip()):
            pending.append((marker, following))

    merged: List[str] = []
    for p_line in primary_lines:
        stripped = p_line.strip()
        after_marker = bool(merged) and bool(_SECTION_RE.match(merged[-1].strip()))
        if stripped and not _SECTION_RE.match(stripped) and not after_marker:
            for k, (marker, first_line) in enumerate(pending):
                if _lines_match(stripped, first_line):
                    merged.append(marker)
                    del pending[k]
                    break
        merged.append(p_line)
    return merged


def merge_lyrics(primary: str, secondary: str) -> str:
    """
    Merge two texts of the same song, primary first.

    Section markers missing from primary are carried over, and second-verse
    or bridge sections only present in secondary are inserted after the
    last first-verse/chorus section, in their original order. Texts of
    different songs are not merged; the longer one is returned.
    """
    if not primary:
        return secondary or ""
    if not secondary:
        return primary

    if not are_same_song(primary, secondary):
        return primary if len(primary) > len(secondary) else secondary

    secondary_lines = secondary.split("\n")
    merged = _carry_markers(primary.split("\n"), secondary_lines)
    merged_text = "\n".join(merged)

    insert_at: Optional[int] = None
    i = 0
    while i < len(secondary_lines):
        s_line = secondary_lines[i]
        if not _has_any(s_line, _VERSE2_MARKERS + _BRIDGE_MARKERS) or s_line.strip() in merged_text:
            i += 1
            continue

        # The section runs up to the next blank line
        j = i + 1
        while j < len(secondary_lines) and secondary_lines[j].strip():
            j += 1
        section = secondary_lines[i:j]

        if insert_at is None:
            anchor = _last_anchor_index(merged)
            insert_at = anchor + 1 if anchor is not None else len(merged)
        merged[insert_at:insert_at] = [""] + section
        insert_at += len(section) + 1
        i = j

    cleaned: List[str] = []
    last_line: Optional[str] = None
    for line in merged:
        if last_line is None or line.strip() != last_line.strip() or not line.strip():
            cleaned.append(line)
            last_line = line

    result = re.sub(r"\n{3,}", "\n\n", "\n".join(cleaned)).strip()
    logger.debug(f"Merged lyrics: {len(primary)} + {len(secondary)} -> {len(result)} chars")
    return result


def _last_anchor_index(lines: List[str]) -> Optional[int]:
    """Index of the end of the last verse-1/chorus section in merged lines."""
    for j in range(len(lines) - 1, -1, -1):
        if _has_any(lines[j], _VERSE1_MARKERS + _CHORUS_MARKERS):
            k = j + 1
            while k < len(lines) and lines[k].strip():
                k += 1
            return k - 1
    return None


def is_only_first_verse(lyrics: str) -> bool:
    """True when the text looks like a lone first verse rather than a full song."""
    if not lyrics:
        return True

    has_second_verse = _has_any(lyrics, _VERSE2_MARKERS)
    return (
        not has_second_verse
        and len(_paragraphs(lyrics)) <= 3
        and len(lyrics) < 500
        and len(_non_empty_lines(lyrics)) < 15
    )


def format_lyrics(lyrics: str) -> str:
    """Unify newlines, expand tabs and trim trailing space."""
    if not lyrics:
        return ""
    text = lyrics.replace("\r\n", "\n").replace("\t", "  ")
    text = re.sub(r"\n{3,}", "\n\n", text).strip()
    return "\n".join(line.rstrip() for line in text.split("\n"))
