"""LRC helpers: timestamp detection, stripping and plain-to-LRC conversion.

This module handles:
- Detecting line-level timestamps in provider text
- Stripping timestamps and LRC header tags for plain-text comparison
- Converting plain lyrics to a simple evenly spaced LRC document
"""

import re

# ----------------------
# LRC timestamp regex
# ----------------------
_LRC_TS_RE = re.compile(
    r"""
    \[                      # opening bracket
    (?P<min>\d+)            # minutes
    :
    (?P<sec>[0-5]?\d)       # seconds
    (?:[.:](?P<frac>\d{1,3}))?  # optional fractional seconds
    \]                      # closing bracket
    """,
    re.VERBOSE,
)

_LINE_TS_RE = re.compile(r"^\s*\[\d{1,2}:\d{2}(?:[.:]\d{1,3})?\]", re.MULTILINE)
_HEADER_TAG_RE = re.compile(r"^\s*\[(ti|ar|al|by|length|offset|re|ve|au):[^\]]*\]\s*$", re.I)

SECONDS_PER_LINE = 3


def has_timestamps(text: str) -> bool:
    """Check if text carries line-level LRC timestamps."""
    if not text:
        return False
    return bool(_LINE_TS_RE.search(text))


def strip_timestamps(text: str) -> str:
    """Remove timestamps and header tags, keeping line structure."""
    if not text:
        return ""
    out = []
    for line in text.splitlines():
        if _HEADER_TAG_RE.match(line):
            continue
        stripped = line.strip()
        while True:
            match = _LRC_TS_RE.match(stripped)
            if not match:
                break
            stripped = stripped[match.end():].lstrip()
        # Word-level stamps (<00:12.34>) from enhanced LRC
        stripped = re.sub(r"<\d+:\d{2}(?:[.:]\d{1,3})?>", "", stripped).strip()
        out.append(stripped)
    return "\n".join(out).strip()


def format_timestamp(seconds: float) -> str:
    minutes = int(seconds // 60)
    secs = seconds - minutes * 60
    return f"[{minutes:02d}:{secs:05.2f}]"


def to_simple_lrc(
    lyrics: str,
    title: str = "",
    artist: str = "",
    seconds_per_line: float = SECONDS_PER_LINE,
) -> str:
    """Convert plain lyrics to LRC with a fixed interval per non-empty line.

    Text that already carries timestamps is returned unchanged.
    """
    if has_timestamps(lyrics):
        return lyrics

    header = []
    if title:
        header.append(f"[ti:{title}]")
    if artist:
        header.append(f"[ar:{artist}]")

    lines = [line.strip() for line in (lyrics or "").splitlines() if line.strip()]
    body = [
        f"{format_timestamp(i * seconds_per_line)}{line}"
        for i, line in enumerate(lines)
    ]
    return "\n".join(header + body)
