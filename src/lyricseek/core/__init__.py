"""Core functionality modules.

Submodules are imported explicitly (``lyricseek.core.engine`` etc.); only the
data models are re-exported here so the cache layer can import them without
pulling in the providers.
"""

from .models import (
    CacheEntry,
    Language,
    LyricsResult,
    NormalizedQuery,
    ProviderCandidate,
    ScoreBreakdown,
    ScoredCandidate,
    SongQuery,
)

__all__ = [
    "CacheEntry",
    "Language",
    "LyricsResult",
    "NormalizedQuery",
    "ProviderCandidate",
    "ScoreBreakdown",
    "ScoredCandidate",
    "SongQuery",
]
