"""Tests for query normalization, language detection and cache keys."""

import pytest

from lyricseek.core.models import Language, SongQuery
from lyricseek.core.normalize import (
    canonical_artist,
    clean_text,
    detect_dominant_language,
    make_cache_key,
    normalize_query,
    parse_query,
    query_variants,
)
from lyricseek.exceptions import ValidationError


class TestDetectDominantLanguage:
    """Script share based language detection."""

    def test_korean(self):
        assert detect_dominant_language("오늘은 정말 좋은날") == Language.KO

    def test_english(self):
        assert detect_dominant_language("Walking down the empty road") == Language.EN

    def test_japanese_kana(self):
        assert detect_dominant_language("夜に駆ける") == Language.JA

    def test_kanji_with_kana_is_japanese(self):
        assert detect_dominant_language("東京の空") == Language.JA

    def test_chinese(self):
        assert detect_dominant_language("我爱你中国") == Language.ZH

    def test_digits_only_is_unknown(self):
        assert detect_dominant_language("1234 5678") == Language.UNKNOWN

    def test_empty_is_unknown(self):
        assert detect_dominant_language("") == Language.UNKNOWN


class TestNormalizeQuery:
    """normalize_query canonicalization."""

    def test_korean_query(self):
        q = normalize_query(SongQuery("아이유", "좋은날"))
        assert q.expected_language == Language.KO
        assert q.cache_key == "아이유|좋은날"
        assert q.allow_mixed_script is False

    def test_romanized_alias_shares_cache_key(self):
        native = normalize_query(SongQuery("아이유", "좋은날"))
        latin = normalize_query(SongQuery("IU", "Good Day"))
        assert latin.cache_key == native.cache_key
        assert latin.expected_language == Language.KO

    def test_mixed_script_artist(self):
        q = normalize_query(SongQuery("Sam Kim", "Make Up"))
        assert q.expected_language == Language.KO
        assert q.allow_mixed_script is True

    def test_english_query(self):
        q = normalize_query(SongQuery("Queen", "Bohemian Rhapsody"))
        assert q.expected_language == Language.EN
        assert q.cache_key == "queen|bohemian rhapsody"

    def test_whitespace_collapsed(self):
        q = normalize_query(SongQuery("  The   Beatles ", "Let  It Be"))
        assert q.artist == "The Beatles"
        assert q.title == "Let It Be"
        assert q.search_term == "The Beatles Let It Be"

    def test_blank_artist_rejected(self):
        with pytest.raises(ValidationError):
            normalize_query(SongQuery("   ", "Title"))

    def test_original_is_kept(self):
        original = SongQuery("IU", "Good Day")
        assert normalize_query(original).original is original


class TestCacheKey:
    def test_case_and_spacing_insensitive(self):
        assert make_cache_key("QUEEN", " Bohemian  Rhapsody") == make_cache_key("queen", "bohemian rhapsody")

    def test_canonical_artist_uses_native_name(self):
        assert canonical_artist("sam kim") == "샘킴"
        assert canonical_artist("Unknown Band") == "Unknown Band"

    def test_clean_text_nfc(self):
        decomposed = "\u1100\u1161"  # conjoining jamo
        assert clean_text(decomposed) == "\uac00"


class TestParseQuery:
    """Free-form query parsing."""

    def test_dash_separator(self):
        assert parse_query("IU - Good Day") == ("IU", "Good Day")

    def test_en_dash_separator(self):
        assert parse_query("아이유 – 좋은날") == ("아이유", "좋은날")

    def test_title_by_artist(self):
        assert parse_query("Yesterday by The Beatles") == ("The Beatles", "Yesterday")

    def test_first_word_is_artist(self):
        assert parse_query("Queen Bohemian Rhapsody") == ("Queen", "Bohemian Rhapsody")

    def test_single_word(self):
        assert parse_query("Hello") == ("Hello", "Hello")

    def test_empty_rejected(self):
        with pytest.raises(ValidationError):
            parse_query("   ")


class TestQueryVariants:
    def test_literal_first(self):
        variants = query_variants("Sam Kim", "Make Up")
        assert variants[0] == ("Sam Kim", "Make Up")

    def test_includes_native_artist(self):
        variants = query_variants("Sam Kim", "Make Up")
        assert ("샘킴", "Make Up") in variants
        assert ("Sam Kim", "MakeUp") in variants

    def test_no_duplicates(self):
        variants = query_variants("Sam Kim", "Make Up")
        assert len(variants) == len(set(variants))

    def test_oclock_rewrite(self):
        variants = query_variants("잔나비", "5오클락")
        assert ("잔나비", "5 o'clock") in variants
