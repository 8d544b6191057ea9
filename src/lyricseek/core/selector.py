"""Candidate selection: thresholds, completeness filter and fixed tie-break order."""

from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Tuple

from ..utils.logging import get_logger
from .lrc import strip_timestamps
from .merge import are_same_song, completeness_score, is_only_first_verse, merge_lyrics
from .models import ScoredCandidate

logger = get_logger(__name__)


@dataclass(frozen=True)
class SelectionPolicy:
    """Tunable selection thresholds."""

    strict_min_score: float = 0.45    # several candidates to choose from
    lenient_min_score: float = 0.30   # a single candidate
    score_band: float = 0.05
    merge_partial: bool = True
    merge_below_completeness: int = 70

    def min_score(self, candidate_count: int) -> float:
        return self.strict_min_score if candidate_count > 1 else self.lenient_min_score


DEFAULT_POLICY = SelectionPolicy()


def _plain_text(candidate: ScoredCandidate) -> str:
    text = candidate.raw_text
    return strip_timestamps(text) if candidate.has_synced_timing else text


def is_partial(candidate: ScoredCandidate) -> bool:
    """True if the candidate looks like only a first verse."""
    return is_only_first_verse(_plain_text(candidate))


def _group(candidate: ScoredCandidate) -> Tuple[bool, bool]:
    return is_partial(candidate), not candidate.has_synced_timing


def sort_key(
    candidate: ScoredCandidate,
    policy: SelectionPolicy = DEFAULT_POLICY,
    best: Optional[float] = None,
) -> Tuple:
    """
    Total order used to rank candidates.

    Complete before partial, synced before plain. Within that, candidates
    scoring within ``policy.score_band`` of ``best`` (the top score of their
    group) count as tied and go by provider priority; the rest go by score.
    Provider id comes last so that ties never depend on arrival order.
    """
    top = candidate.final_score if best is None else best
    in_band = top - candidate.final_score <= policy.score_band + 1e-9
    return (
        is_partial(candidate),
        not candidate.has_synced_timing,
        not in_band,
        -candidate.priority if in_band else 0,
        -candidate.final_score,
        -candidate.priority,
        candidate.provider_id,
    )


def rank(
    candidates: Sequence[ScoredCandidate],
    policy: SelectionPolicy = DEFAULT_POLICY,
) -> List[ScoredCandidate]:
    """Candidates above the acceptance threshold, best first."""
    eligible = [c for c in candidates if c.auto_accepted or not c.rejected]
    threshold = policy.min_score(len(eligible))
    accepted = [c for c in eligible if c.auto_accepted or c.final_score >= threshold]
    dropped = len(candidates) - len(accepted)
    if dropped:
        logger.debug(f"Dropped {dropped} candidate(s) below {threshold:.2f} or rejected")

    best: Dict[Tuple[bool, bool], float] = {}
    for c in accepted:
        group = _group(c)
        best[group] = max(best.get(group, 0.0), c.final_score)
    return sorted(accepted, key=lambda c: sort_key(c, policy, best[_group(c)]))


def _try_merge(
    winner: ScoredCandidate,
    others: Sequence[ScoredCandidate],
    policy: SelectionPolicy,
) -> Optional[ScoredCandidate]:
    base_score = completeness_score(winner.raw_text)
    if winner.has_synced_timing or base_score >= policy.merge_below_completeness:
        return None

    for other in others:
        if other.has_synced_timing or not are_same_song(winner.raw_text, other.raw_text):
            continue
        merged = merge_lyrics(winner.raw_text, other.raw_text)
        merged_score = completeness_score(merged)
        if merged_score <= base_score:
            continue
        source = f"{winner.provider_id}+{other.provider_id}"
        logger.info(f"Merged lyrics from {source} (completeness {base_score} -> {merged_score})")
        metadata = dict(winner.candidate.provider_metadata)
        metadata.update({
            "merged": True,
            "sources": [winner.provider_id, other.provider_id],
            "completeness": merged_score,
        })
        candidate = replace(
            winner.candidate,
            provider_id=source,
            raw_text=merged,
            provider_metadata=metadata,
        )
        return replace(
            winner,
            candidate=candidate,
            final_score=max(winner.final_score, other.final_score),
        )
    return None


def select(
    candidates: Sequence[ScoredCandidate],
    policy: Optional[SelectionPolicy] = None,
) -> Optional[ScoredCandidate]:
    """
    Pick the best candidate, or None when nothing acceptable remains.

    A plain-text winner that looks incomplete may be merged with another
    candidate of the same song; the merged result is reported under
    "winner+other".
    """
    policy = policy or DEFAULT_POLICY
    ranked = rank(candidates, policy)
    if not ranked:
        return None

    winner = ranked[0]
    if policy.merge_partial and not winner.auto_accepted and len(ranked) > 1:
        merged = _try_merge(winner, ranked[1:], policy)
        if merged is not None:
            return merged
    return winner
