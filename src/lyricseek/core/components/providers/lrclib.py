"""Structured lyrics databases: LRCLIB (via lyriq) and syncedlyrics."""

from typing import List, Optional

from ....utils.logging import get_logger
from ...lrc import has_timestamps
from ...models import NormalizedQuery, ProviderCandidate
from .base import FAST_TIMEOUT, ProviderAdapter
from .http import as_transport_failure

logger = get_logger(__name__)

try:
    import syncedlyrics

    SYNCEDLYRICS_AVAILABLE = True
except ImportError:
    syncedlyrics = None
    SYNCEDLYRICS_AVAILABLE = False

try:
    from lyriq import get_lyrics as lyriq_get_lyrics

    LYRIQ_AVAILABLE = True
except ImportError:
    lyriq_get_lyrics = None
    LYRIQ_AVAILABLE = False

SYNCED_CONFIDENCE = 0.95
PLAIN_CONFIDENCE = 0.85

# Musixmatch: Best quality but has rate limits
# NetEase: Good coverage, especially for Asian music
# Megalobiz: Less reliable but can have unique content
SYNCEDLYRICS_PROVIDERS = ["Musixmatch", "NetEase", "Megalobiz"]


class LrclibProvider(ProviderAdapter):
    """LRCLIB community database. Free, often time-synced."""

    provider_id = "lrclib"
    priority = 10
    timeout = FAST_TIMEOUT

    def is_available(self) -> bool:
        return LYRIQ_AVAILABLE and super().is_available()

    def _search(self, query: NormalizedQuery) -> List[ProviderCandidate]:
        try:
            lyrics_obj = lyriq_get_lyrics(query.title, query.artist) if lyriq_get_lyrics else None
        except Exception as e:
            raise as_transport_failure(self.provider_id, e)

        if lyrics_obj is None:
            return []

        synced = getattr(lyrics_obj, "synced_lyrics", None)
        if synced and has_timestamps(synced):
            logger.debug("Found synced lyrics from LRCLIB")
            return [self.candidate(
                synced,
                has_synced_timing=True,
                base_confidence=SYNCED_CONFIDENCE,
                provider_metadata={"synced": True},
            )]

        plain = getattr(lyrics_obj, "plain_lyrics", None)
        if plain:
            logger.debug("Found plain lyrics from LRCLIB (no timestamps)")
            return [self.candidate(
                plain,
                base_confidence=PLAIN_CONFIDENCE,
                provider_metadata={"synced": False},
            )]
        return []


class SyncedLyricsProvider(ProviderAdapter):
    """Synced lyrics aggregated by the syncedlyrics library."""

    provider_id = "syncedlyrics"
    priority = 9
    timeout = 10.0

    def __init__(self, config=None, session=None, providers: Optional[List[str]] = None):
        super().__init__(config, session)
        self.providers = providers or list(SYNCEDLYRICS_PROVIDERS)

    def is_available(self) -> bool:
        return SYNCEDLYRICS_AVAILABLE and super().is_available()

    def _search(self, query: NormalizedQuery) -> List[ProviderCandidate]:
        search_term = f"{query.artist} {query.title}"
        try:
            # Library output goes through the "syncedlyrics" logger (see setup_logging)
            lrc = syncedlyrics.search(
                search_term,
                providers=self.providers,
                synced_only=True,
            )
        except Exception as e:
            raise as_transport_failure(self.provider_id, e)

        if not lrc or not has_timestamps(lrc):
            return []
        return [self.candidate(
            lrc,
            has_synced_timing=True,
            base_confidence=0.9,
            provider_metadata={"search_term": search_term},
        )]
