"""Lyrics acquisition engine.

Pipeline: normalize query -> cache read -> fan out to providers under a
global deadline -> score every candidate -> select -> cache write ->
result envelope.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from ..config import EngineConfig, SearchMode
from ..exceptions import CacheError, FailureKind, ProviderError, ValidationError
from ..utils.cache import CacheStore, JsonFileCacheStore, expiry_from_now
from ..utils.logging import get_logger
from .components.providers import ProviderAdapter, build_providers
from .lrc import has_timestamps
from .merge import format_lyrics
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
from .normalize import normalize_query
from .scoring import evaluate_lyrics
from .selector import SelectionPolicy, select

logger = get_logger(__name__)

CACHE_PROVIDER_ID = "cache"
NOT_FOUND_HINT = "No lyrics found. You can enter the lyrics manually."

Scorer = Callable[[str, Language, NormalizedQuery], ScoreBreakdown]


@dataclass
class Acquisition:
    """Everything one acquire pass produced."""

    query: NormalizedQuery
    candidates: List[ScoredCandidate] = field(default_factory=list)
    from_cache: bool = False
    timed_out: bool = False
    cache_source: Optional[str] = None


class LyricsEngine:
    """Fans a query out to providers and returns the best lyrics found."""

    def __init__(
        self,
        providers: Optional[Sequence[ProviderAdapter]] = None,
        cache: Optional[CacheStore] = None,
        config: Optional[EngineConfig] = None,
        scorer: Scorer = evaluate_lyrics,
        policy: Optional[SelectionPolicy] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or EngineConfig.from_env()
        self.providers = list(providers) if providers is not None else build_providers(self.config)
        self.cache = cache if cache is not None else JsonFileCacheStore(self.config.cache_dir)
        self.scorer = scorer
        self.policy = policy or SelectionPolicy(merge_partial=self.config.merge_partial)
        self._clock = clock

    # ------------------------------------------------------------------
    # Provider calls
    # ------------------------------------------------------------------
    def available_providers(self) -> List[ProviderAdapter]:
        available = []
        for adapter in self.providers:
            try:
                ok = adapter.is_available()
            except Exception as e:
                logger.warning(f"{adapter.provider_id}: availability check failed: {e}")
                ok = False
            if ok:
                available.append(adapter)
            else:
                logger.debug(f"{adapter.provider_id}: not available, skipped")
        return available

    async def _search_and_resolve(
        self, adapter: ProviderAdapter, query: NormalizedQuery
    ) -> List[ProviderCandidate]:
        candidates = await adapter.search(query)
        resolved: List[ProviderCandidate] = []
        for candidate in candidates:
            if not candidate.needs_fetch:
                resolved.append(candidate)
                continue
            try:
                text = await adapter.fetch(candidate.reference)
            except ProviderError as e:
                logger.debug(f"{adapter.provider_id}: fetch failed for {candidate.reference}: {e}")
                continue
            if text:
                resolved.append(candidate.with_text(text, has_timestamps(text)))
        return resolved

    async def _run_provider(
        self, adapter: ProviderAdapter, query: NormalizedQuery
    ) -> List[ProviderCandidate]:
        """Run one provider within its own budget; failures yield no candidates."""
        start = self._clock()
        try:
            candidates = await asyncio.wait_for(
                self._search_and_resolve(adapter, query), timeout=adapter.timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"{adapter.provider_id}: timed out after {adapter.timeout:.0f}s")
            return []
        except ProviderError as e:
            logger.warning(f"{adapter.provider_id}: {e}")
            return []
        except Exception as e:
            logger.warning(f"{adapter.provider_id}: unexpected error: {e}")
            return []

        elapsed_ms = int((self._clock() - start) * 1000)
        logger.debug(f"{adapter.provider_id}: {len(candidates)} candidate(s) in {elapsed_ms}ms")
        return candidates

    def _score(
        self,
        adapter: ProviderAdapter,
        candidates: Sequence[ProviderCandidate],
        query: NormalizedQuery,
    ) -> List[ScoredCandidate]:
        scored = []
        for candidate in candidates:
            breakdown = self.scorer(candidate.raw_text, query.expected_language, query)
            if breakdown.rejected:
                logger.debug(f"{candidate.provider_id}: rejected ({breakdown.rejected_reason})")
            scored.append(ScoredCandidate(
                candidate=candidate,
                final_score=round(breakdown.total, 4),
                score_breakdown=breakdown,
                expected_language=query.expected_language,
                priority=adapter.priority,
            ))
        return scored

    async def _fanout(
        self,
        adapters: Sequence[ProviderAdapter],
        query: NormalizedQuery,
        acquisition: Acquisition,
    ) -> None:
        tasks = [
            asyncio.create_task(self._run_provider(adapter, query), name=adapter.provider_id)
            for adapter in adapters
        ]
        done, pending = await asyncio.wait(tasks, timeout=self.config.search_deadline)

        if pending:
            acquisition.timed_out = True
            names = ", ".join(t.get_name() for t in pending)
            logger.warning(
                f"Search deadline ({self.config.search_deadline:.0f}s) reached; abandoning {names}"
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        # Registration order, not arrival order
        for adapter, task in zip(adapters, tasks):
            if task in done and not task.cancelled():
                acquisition.candidates.extend(self._score(adapter, task.result(), query))

    async def _sequential(
        self,
        adapters: Sequence[ProviderAdapter],
        query: NormalizedQuery,
        acquisition: Acquisition,
    ) -> None:
        ordered = sorted(adapters, key=lambda a: -a.priority)
        start = self._clock()
        for index, adapter in enumerate(ordered):
            remaining = self.config.search_deadline - (self._clock() - start)
            if remaining <= 0:
                acquisition.timed_out = True
                break
            try:
                candidates = await asyncio.wait_for(
                    self._run_provider(adapter, query), timeout=remaining
                )
            except asyncio.TimeoutError:
                acquisition.timed_out = True
                logger.warning(f"Search deadline reached while waiting for {adapter.provider_id}")
                break

            acquisition.candidates.extend(self._score(adapter, candidates, query))
            # Same decision acquire_lyrics makes over everything gathered
            if select(acquisition.candidates, self.policy) is not None:
                logger.debug(f"{adapter.provider_id}: acceptable result, stopping")
                break
            if index < len(ordered) - 1:
                # Small delay between providers to be nice to services
                await asyncio.sleep(self.config.sequential_step_delay)

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------
    async def _from_cache(self, query: NormalizedQuery) -> Optional[CacheEntry]:
        try:
            return await self.cache.get(query.cache_key)
        except (CacheError, OSError) as e:
            logger.warning(f"Cache read failed for {query.cache_key}: {e}")
            return None

    def _cached_candidate(self, entry: CacheEntry, query: NormalizedQuery) -> ScoredCandidate:
        candidate = ProviderCandidate(
            provider_id=CACHE_PROVIDER_ID,
            raw_text=entry.lyrics,
            has_synced_timing=entry.has_synced_timing,
            base_confidence=entry.confidence,
            provider_metadata={"source": entry.source, "hit_count": entry.hit_count},
        )
        return ScoredCandidate(
            candidate=candidate,
            final_score=entry.confidence,
            score_breakdown=ScoreBreakdown(),
            expected_language=query.expected_language,
            auto_accepted=True,
        )

    async def _store(self, query: NormalizedQuery, winner: ScoredCandidate, search_time_ms: int) -> None:
        if winner.final_score < self.config.min_cache_confidence:
            logger.debug(f"Not caching {query.cache_key}: confidence {winner.final_score:.2f}")
            return
        entry = CacheEntry(
            key=query.cache_key,
            lyrics=winner.raw_text,
            source=winner.provider_id,
            confidence=winner.final_score,
            search_time_ms=search_time_ms,
            expires_at=expiry_from_now(self.config.cache_ttl_days),
            artist=query.artist,
            title=query.title,
            has_synced_timing=winner.has_synced_timing,
        )
        try:
            await self.cache.upsert(entry)
        except (CacheError, OSError) as e:
            logger.warning(f"Cache write failed for {query.cache_key}: {e}")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def _acquire(self, query: NormalizedQuery) -> Acquisition:
        acquisition = Acquisition(query=query)

        entry = await self._from_cache(query)
        if entry is not None:
            logger.info(f"Cache hit for {query.cache_key} (source: {entry.source})")
            acquisition.from_cache = True
            acquisition.cache_source = entry.source
            acquisition.candidates.append(self._cached_candidate(entry, query))
            return acquisition

        adapters = self.available_providers()
        if not adapters:
            logger.warning("No lyrics providers available")
            return acquisition

        logger.info(
            f"Searching {len(adapters)} provider(s) for {query.artist} - {query.title} "
            f"(expected: {query.expected_language.value}, mode: {self.config.mode.value})"
        )
        if self.config.mode == SearchMode.SEQUENTIAL:
            await self._sequential(adapters, query, acquisition)
        else:
            await self._fanout(adapters, query, acquisition)
        return acquisition

    async def acquire(self, query: Union[SongQuery, NormalizedQuery]) -> List[ScoredCandidate]:
        """Scored candidates for a query; a cache hit yields one auto-accepted candidate."""
        normalized = query if isinstance(query, NormalizedQuery) else normalize_query(query)
        acquisition = await self._acquire(normalized)
        return acquisition.candidates

    async def acquire_lyrics(self, artist: str, title: str, **extra: Any) -> LyricsResult:
        """Find lyrics for (artist, title) and wrap the outcome in a LyricsResult."""
        start = self._clock()

        def elapsed_ms() -> int:
            return int((self._clock() - start) * 1000)

        try:
            query = normalize_query(SongQuery.create(artist, title, **extra))
        except ValidationError as e:
            return LyricsResult(
                success=False,
                error=FailureKind.INVALID_QUERY.value,
                search_time_ms=elapsed_ms(),
                hint=str(e),
            )

        acquisition = await self._acquire(query)
        winner = select(acquisition.candidates, self.policy)
        search_time_ms = elapsed_ms()

        if winner is None:
            kind = FailureKind.GLOBAL_TIMEOUT if acquisition.timed_out else FailureKind.NOT_FOUND
            logger.info(f"No acceptable lyrics for {query.artist} - {query.title} ({kind.value})")
            return LyricsResult(
                success=False,
                error=kind.value,
                search_time_ms=search_time_ms,
                language=query.expected_language.value,
                candidates_considered=len(acquisition.candidates),
                hint=NOT_FOUND_HINT,
            )

        if winner.auto_accepted:
            source = f"{CACHE_PROVIDER_ID}:{acquisition.cache_source}"
        else:
            source = winner.provider_id
            await self._store(query, winner, search_time_ms)

        logger.info(f"Selected lyrics from {source} (confidence {winner.final_score:.2f})")
        return LyricsResult(
            success=True,
            lyrics=format_lyrics(winner.raw_text),
            source=source,
            confidence=winner.final_score,
            search_time_ms=search_time_ms,
            has_synced_timing=winner.has_synced_timing,
            auto_accepted=winner.auto_accepted,
            language=query.expected_language.value,
            candidates_considered=len(acquisition.candidates),
        )

    def acquire_lyrics_sync(self, artist: str, title: str, **extra: Any) -> LyricsResult:
        """Blocking wrapper around acquire_lyrics."""
        return asyncio.run(self.acquire_lyrics(artist, title, **extra))


async def acquire_lyrics(
    artist: str,
    title: str,
    engine: Optional[LyricsEngine] = None,
) -> Dict[str, Any]:
    """
    Caller-facing entry point.

    Returns:
        Dict with success, searchTimeMs and either lyrics/source/confidence
        or error
    """
    engine = engine or LyricsEngine()
    result = await engine.acquire_lyrics(artist, title)
    return result.to_dict()
