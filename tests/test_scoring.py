"""Tests for the lyrics quality scorer."""

import pytest

from lyricseek.core.models import Language, SongQuery
from lyricseek.core.normalize import normalize_query
from lyricseek.core.scoring import (
    MAX_LENGTH,
    evaluate_lyrics,
    normalize_lyrics,
    score_lyrics,
)


@pytest.fixture
def korean_query():
    return normalize_query(SongQuery("아이유", "좋은날"))


@pytest.fixture
def sam_kim_query():
    return normalize_query(SongQuery("Sam Kim", "Make Up"))


class TestScoreProperties:
    """Properties every score must satisfy."""

    def test_deterministic(self, korean_lyrics, korean_query):
        first = score_lyrics(korean_lyrics, Language.KO, korean_query)
        second = score_lyrics(korean_lyrics, Language.KO, korean_query)
        assert first == second

    @pytest.mark.parametrize("lang", list(Language))
    def test_bounded(self, lang, korean_lyrics, english_lyrics, english_lrc, english_prose, short_text):
        for text in (korean_lyrics, english_lyrics, english_lrc, english_prose, short_text, ""):
            assert 0.0 <= score_lyrics(text, lang) <= 1.0

    def test_short_text_is_rejected(self, short_text):
        breakdown = evaluate_lyrics(short_text, Language.EN)
        assert breakdown.rejected_reason == "too_short"
        assert breakdown.total == 0.0

    def test_empty_text_is_rejected(self):
        assert score_lyrics("", Language.KO) == 0.0


class TestHardRejections:
    def test_hallucination_phrase(self, korean_lyrics):
        text = korean_lyrics + "\nIn the autumn of my memories"
        breakdown = evaluate_lyrics(text, Language.KO)
        assert breakdown.rejected
        assert breakdown.rejected_reason.startswith("hallucination_phrase")
        assert score_lyrics(text, Language.KO) == 0.0

    def test_refusal_marker(self, english_lyrics):
        text = "I apologize, but here is what I found:\n" + english_lyrics
        breakdown = evaluate_lyrics(text, Language.EN)
        assert breakdown.rejected_reason == "refusal_marker: i apologize"

    def test_refusal_words_inside_song_are_lyrics(self, english_lyrics):
        lines = english_lyrics.split("\n")
        lines[11] = "I apologize for every word I said"
        text = "\n".join(lines)
        assert text.lower().index("i apologize") > 300
        breakdown = evaluate_lyrics(text, Language.EN)
        assert not breakdown.rejected
        assert breakdown.total >= 0.45

    def test_not_found_sentinel(self, english_lyrics):
        text = english_lyrics + "\nLYRICS_NOT_FOUND"
        assert evaluate_lyrics(text, Language.EN).rejected_reason == "not_found_sentinel: lyrics_not_found"
        assert score_lyrics(text, Language.EN) == 0.0


class TestLanguage:
    """Script match between candidate text and expected language."""

    def test_latin_text_penalized_for_korean(self, english_lyrics):
        as_korean = score_lyrics(english_lyrics, Language.KO)
        as_english = score_lyrics(english_lyrics, Language.EN)
        assert as_korean < as_english

    def test_korean_match(self, korean_lyrics):
        assert evaluate_lyrics(korean_lyrics, Language.KO).language == 0.20

    def test_unknown_expected_is_neutral(self, korean_lyrics):
        assert evaluate_lyrics(korean_lyrics, Language.UNKNOWN).language == 0.05

    def test_mixed_script_allowed_for_artist(self, bilingual_lyrics, sam_kim_query):
        breakdown = evaluate_lyrics(bilingual_lyrics, Language.KO, sam_kim_query)
        assert breakdown.language == 0.15

    def test_mixed_script_not_allowed_otherwise(self, bilingual_lyrics):
        query = normalize_query(SongQuery("아이유", "Make Up"))
        breakdown = evaluate_lyrics(bilingual_lyrics, Language.KO, query)
        assert breakdown.language == -0.25

    def test_prose_penalty_for_cjk(self, english_prose):
        breakdown = evaluate_lyrics(english_prose, Language.KO)
        assert breakdown.penalties == -0.30
        assert breakdown.total == 0.0

    def test_no_prose_penalty_for_english(self, english_prose):
        assert evaluate_lyrics(english_prose, Language.EN).penalties == 0.0


class TestSubScores:
    def test_full_korean_song_scores_high(self, korean_lyrics, korean_query):
        assert score_lyrics(korean_lyrics, Language.KO, korean_query) >= 0.7

    def test_bilingual_song_scores_high(self, bilingual_lyrics, sam_kim_query):
        score = score_lyrics(bilingual_lyrics, Language.KO, sam_kim_query)
        assert score >= 0.6

    def test_title_overlap(self, korean_lyrics, korean_query):
        assert evaluate_lyrics(korean_lyrics, Language.KO, korean_query).title_overlap == 0.1

    def test_title_overlap_without_query(self, korean_lyrics):
        assert evaluate_lyrics(korean_lyrics, Language.KO).title_overlap == 0.0

    def test_timing_bonus(self, english_lrc, english_lyrics):
        assert evaluate_lyrics(english_lrc, Language.EN).timing == 0.15
        assert evaluate_lyrics(english_lyrics, Language.EN).timing == 0.0

    def test_chorus_repetition_bonus(self, english_lyrics):
        assert evaluate_lyrics(english_lyrics, Language.EN).repetition == 0.10

    def test_structure(self, english_lyrics):
        assert evaluate_lyrics(english_lyrics, Language.EN).structure == 0.15

    def test_very_long_text_capped(self, english_lyrics):
        text = "\n\n".join([english_lyrics] * 25)
        assert len(text) > MAX_LENGTH
        assert score_lyrics(text, Language.EN) <= 0.2

    def test_synced_beats_same_plain_text(self, english_lrc, english_lyrics):
        assert score_lyrics(english_lrc, Language.EN) > score_lyrics(english_lyrics, Language.EN)


class TestNormalizeLyrics:
    def test_whitespace(self):
        text = "a\r\nb\t c  d\n\n\n\ne  "
        assert normalize_lyrics(text) == "a\nb c d\n\ne"

    def test_none_safe(self):
        assert normalize_lyrics(None) == ""
