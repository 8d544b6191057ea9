"""Tests for completeness scoring and lyrics merging."""

from lyricseek.core.merge import (
    are_same_song,
    completeness_score,
    format_lyrics,
    is_only_first_verse,
    merge_lyrics,
)


class TestCompleteness:
    def test_empty(self):
        assert completeness_score("") == 0

    def test_full_song_beats_first_verse(self, korean_lyrics, korean_first_verse):
        assert completeness_score(korean_lyrics) > completeness_score(korean_first_verse)

    def test_full_song_value(self, korean_lyrics):
        # 10 length + 10 lines + 30 markers + 20 paragraphs
        assert completeness_score(korean_lyrics) == 70

    def test_first_verse_value(self, korean_first_verse):
        # 5 length + 0 lines + 17 markers + 0 paragraphs
        assert completeness_score(korean_first_verse) == 22


class TestFirstVerseDetection:
    def test_first_verse_only(self, korean_first_verse):
        assert is_only_first_verse(korean_first_verse)

    def test_full_song(self, korean_lyrics):
        assert not is_only_first_verse(korean_lyrics)

    def test_many_lines_without_markers_is_complete(self, english_lyrics):
        assert not is_only_first_verse(english_lyrics)

    def test_empty_counts_as_partial(self):
        assert is_only_first_verse("")


class TestSameSong:
    def test_same(self, korean_lyrics, korean_first_verse):
        assert are_same_song(korean_lyrics, korean_first_verse)

    def test_different(self, korean_lyrics, english_lyrics):
        assert not are_same_song(korean_lyrics, english_lyrics)

    def test_empty(self, korean_lyrics):
        assert not are_same_song(korean_lyrics, "")


class TestMergeLyrics:
    def test_adds_second_verse_and_bridge_in_order(self, korean_first_verse, korean_lyrics):
        merged = merge_lyrics(korean_first_verse, korean_lyrics)
        assert merged.startswith(korean_first_verse)
        assert "[Verse 2]" in merged
        assert "바람이 불어와 머리를 쓸어 넘기고" in merged
        assert merged.index("[Verse 2]") < merged.index("[Bridge]")
        assert completeness_score(merged) > completeness_score(korean_first_verse)

    def test_carries_section_markers(self):
        primary = "Line one here\nLine two here\n\nChorus words here\nChorus second line"
        secondary = (
            "[Verse 1]\nLine one here\nLine two here\n\n"
            "[Chorus]\nChorus words here\nChorus second line"
        )
        assert merge_lyrics(primary, secondary) == secondary

    def test_different_songs_returns_longer(self, korean_lyrics, english_lyrics):
        merged = merge_lyrics(korean_lyrics, english_lyrics)
        assert merged == max(korean_lyrics, english_lyrics, key=len)

    def test_missing_side(self, korean_lyrics):
        assert merge_lyrics("", korean_lyrics) == korean_lyrics
        assert merge_lyrics(korean_lyrics, "") == korean_lyrics


def test_format_lyrics():
    assert format_lyrics("a  \r\nb\tc\n\n\n\nd\n") == "a\nb  c\n\nd"
    assert format_lyrics("") == ""
