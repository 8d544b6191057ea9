"""Data models for lyrics acquisition, scoring and caching."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from ..exceptions import ValidationError


class Language(str, Enum):
    """Dominant script/language of a piece of text."""

    KO = "ko"
    JA = "ja"
    ZH = "zh"
    EN = "en"
    UNKNOWN = "unknown"

    @property
    def is_cjk(self) -> bool:
        return self in (Language.KO, Language.JA, Language.ZH)


@dataclass(frozen=True)
class ExternalIds:
    """Identifiers of the track in other catalogs."""

    spotify: Optional[str] = None
    youtube: Optional[str] = None
    isrc: Optional[str] = None


@dataclass(frozen=True)
class SongQuery:
    """A single request for lyrics."""

    artist: str
    title: str
    album: Optional[str] = None
    duration_ms: Optional[int] = None
    external_ids: Optional[ExternalIds] = None

    def validate(self) -> None:
        if not self.artist or not self.artist.strip():
            raise ValidationError("Artist cannot be empty")
        if not self.title or not self.title.strip():
            raise ValidationError("Title cannot be empty")
        if self.duration_ms is not None and self.duration_ms < 0:
            raise ValidationError("Duration must be non-negative")

    @classmethod
    def create(cls, artist: str, title: str, **kwargs: Any) -> "SongQuery":
        """Build a query with trimmed fields, raising ValidationError if empty."""
        query = cls(
            artist=(artist or "").strip(),
            title=(title or "").strip(),
            **kwargs,
        )
        query.validate()
        return query


@dataclass(frozen=True)
class NormalizedQuery:
    """Canonical form of a SongQuery, as seen by providers and the scorer."""

    artist: str
    title: str
    expected_language: Language
    cache_key: str
    original: SongQuery
    allow_mixed_script: bool = False

    @property
    def search_term(self) -> str:
        return f"{self.artist} {self.title}"


@dataclass(frozen=True)
class ProviderCandidate:
    """One provider's proposed lyrics text for a query.

    ``reference`` is set when the provider only returned a pointer (URL or
    catalog id) and the text still has to be obtained through ``fetch``.
    """

    provider_id: str
    raw_text: str
    has_synced_timing: bool = False
    base_confidence: float = 0.5
    provider_metadata: Dict[str, Any] = field(default_factory=dict)
    reference: Optional[str] = None

    @property
    def needs_fetch(self) -> bool:
        return not self.raw_text and bool(self.reference)

    def with_text(self, raw_text: str, has_synced_timing: Optional[bool] = None) -> "ProviderCandidate":
        """Return a copy holding fetched text."""
        return replace(
            self,
            raw_text=raw_text,
            has_synced_timing=self.has_synced_timing if has_synced_timing is None else has_synced_timing,
        )


@dataclass(frozen=True)
class ScoreBreakdown:
    """Named sub-scores behind a final score."""

    base: float = 0.0
    length: float = 0.0
    structure: float = 0.0
    language: float = 0.0
    timing: float = 0.0
    title_overlap: float = 0.0
    repetition: float = 0.0
    penalties: float = 0.0
    cap: Optional[float] = None
    rejected_reason: Optional[str] = None

    @property
    def rejected(self) -> bool:
        return self.rejected_reason is not None

    @property
    def total(self) -> float:
        if self.rejected:
            return 0.0
        raw = (
            self.base
            + self.length
            + self.structure
            + self.language
            + self.timing
            + self.title_overlap
            + self.repetition
            + self.penalties
        )
        if self.cap is not None:
            raw = min(raw, self.cap)
        return max(0.0, min(1.0, raw))

    def as_dict(self) -> Dict[str, Any]:
        return {
            "base": self.base,
            "length": self.length,
            "structure": self.structure,
            "language": self.language,
            "timing": self.timing,
            "title_overlap": self.title_overlap,
            "repetition": self.repetition,
            "penalties": self.penalties,
            "rejected_reason": self.rejected_reason,
        }


@dataclass(frozen=True)
class ScoredCandidate:
    """A provider candidate together with its quality score."""

    candidate: ProviderCandidate
    final_score: float
    score_breakdown: ScoreBreakdown
    expected_language: Language = Language.UNKNOWN
    auto_accepted: bool = False
    priority: int = 0

    @property
    def provider_id(self) -> str:
        return self.candidate.provider_id

    @property
    def raw_text(self) -> str:
        return self.candidate.raw_text

    @property
    def has_synced_timing(self) -> bool:
        return self.candidate.has_synced_timing

    @property
    def rejected(self) -> bool:
        return self.score_breakdown.rejected


@dataclass
class CacheEntry:
    """A persisted lyrics result, keyed by normalized (artist, title)."""

    key: str
    lyrics: str
    source: str
    confidence: float
    search_time_ms: int
    expires_at: datetime
    hit_count: int = 0
    artist: str = ""
    title: str = ""
    has_synced_timing: bool = False

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "lyrics": self.lyrics,
            "source": self.source,
            "confidence": self.confidence,
            "search_time_ms": self.search_time_ms,
            "hit_count": self.hit_count,
            "expires_at": self.expires_at.isoformat(),
            "artist": self.artist,
            "title": self.title,
            "has_synced_timing": self.has_synced_timing,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheEntry":
        expires_at = datetime.fromisoformat(data["expires_at"])
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return cls(
            key=data["key"],
            lyrics=data["lyrics"],
            source=data["source"],
            confidence=float(data["confidence"]),
            search_time_ms=int(data.get("search_time_ms", 0)),
            hit_count=int(data.get("hit_count", 0)),
            expires_at=expires_at,
            artist=data.get("artist", ""),
            title=data.get("title", ""),
            has_synced_timing=bool(data.get("has_synced_timing", False)),
        )


@dataclass
class LyricsResult:
    """Caller-facing result envelope."""

    success: bool
    search_time_ms: int
    lyrics: Optional[str] = None
    source: Optional[str] = None
    confidence: Optional[float] = None
    error: Optional[str] = None
    has_synced_timing: bool = False
    auto_accepted: bool = False
    language: Optional[str] = None
    candidates_considered: int = 0
    hint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "success": self.success,
            "searchTimeMs": self.search_time_ms,
        }
        if self.success:
            data["lyrics"] = self.lyrics
            data["source"] = self.source
            data["confidence"] = self.confidence
            data["hasSyncedTiming"] = self.has_synced_timing
            data["autoAccepted"] = self.auto_accepted
        else:
            data["error"] = self.error
            if self.hint:
                data["hint"] = self.hint
        if self.language:
            data["language"] = self.language
        data["candidatesConsidered"] = self.candidates_considered
        return data
