import asyncio
import logging

from click.testing import CliRunner
import pytest

import lyricseek.cli as cli
from lyricseek import __version__
from lyricseek.config import CREDENTIAL_ENV_VARS
from lyricseek.core.models import CacheEntry
from lyricseek.utils.cache import JsonFileCacheStore, expiry_from_now


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, temp_dir):
    for var in CREDENTIAL_ENV_VARS.values():
        monkeypatch.delenv(var, raising=False)
    monkeypatch.delenv("LYRICSEEK_DISABLED_PROVIDERS", raising=False)
    monkeypatch.delenv("LYRICSEEK_SEARCH_MODE", raising=False)
    monkeypatch.setenv("LYRICSEEK_CACHE_DIR", str(temp_dir))
    yield
    # setup_logging binds a handler to the runner's stdout
    logging.getLogger("lyricseek").handlers.clear()


@pytest.fixture
def use_providers(monkeypatch):
    """Replace the provider registry with the given adapters."""
    def _use(*providers):
        seen = {}

        def fake_build(config, only=None):
            seen["config"] = config
            seen["only"] = only
            return list(providers)

        monkeypatch.setattr(cli, "build_providers", fake_build)
        return seen
    return _use


def test_version():
    result = CliRunner().invoke(cli.cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_search_prints_lyrics(use_providers, make_provider, korean_lyrics):
    use_providers(make_provider("bugs", [korean_lyrics]))
    result = CliRunner().invoke(cli.cli, ["search", "아이유", "좋은날", "--no-cache"])
    assert result.exit_code == 0
    assert "오늘은 정말 좋은날 너와 함께라서" in result.output
    assert "Lyrics from bugs" in result.output


def test_search_free_form_query(use_providers, make_provider, korean_lyrics):
    provider = make_provider("bugs", [korean_lyrics])
    use_providers(provider)
    result = CliRunner().invoke(cli.cli, ["search", "-q", "아이유 - 좋은날", "--no-cache"])
    assert result.exit_code == 0
    assert provider.queries[0].artist == "아이유"
    assert provider.queries[0].title == "좋은날"


def test_search_json(use_providers, make_provider, korean_lyrics):
    use_providers(make_provider("bugs", [korean_lyrics]))
    result = CliRunner().invoke(cli.cli, ["search", "아이유", "좋은날", "--no-cache", "--json"])
    assert result.exit_code == 0
    assert '"success": true' in result.output
    assert '"source": "bugs"' in result.output


def test_search_lrc(use_providers, make_provider, english_lyrics):
    use_providers(make_provider("genius", [english_lyrics]))
    result = CliRunner().invoke(
        cli.cli, ["search", "Test Artist", "Morning Light", "--no-cache", "--lrc"]
    )
    assert result.exit_code == 0
    assert "[ti:Morning Light]" in result.output
    assert "[00:00.00]Walking down the empty road tonight" in result.output


def test_search_not_found(use_providers, make_provider):
    use_providers(make_provider("bugs"))
    result = CliRunner().invoke(cli.cli, ["search", "아이유", "좋은날", "--no-cache"])
    assert result.exit_code == 1
    assert "Lyrics search failed: not_found" in result.output
    assert "enter the lyrics manually" in result.output


def test_search_options_reach_config(use_providers, make_provider, korean_lyrics, temp_dir):
    seen = use_providers(make_provider("bugs", [korean_lyrics]))
    result = CliRunner().invoke(
        cli.cli,
        [
            "search", "아이유", "좋은날",
            "--mode", "sequential",
            "--deadline", "5",
            "--providers", "bugs, genius",
            "--cache-dir", str(temp_dir / "custom"),
        ],
    )
    assert result.exit_code == 0
    assert seen["config"].mode.value == "sequential"
    assert seen["config"].search_deadline == 5.0
    assert seen["only"] == ["bugs", "genius"]
    assert (temp_dir / "custom" / "lyrics_cache.json").exists()


def test_search_requires_artist_and_title():
    result = CliRunner().invoke(cli.cli, ["search", "아이유"])
    assert result.exit_code == 2
    assert "ARTIST and TITLE" in result.output


def test_search_unknown_provider():
    result = CliRunner().invoke(cli.cli, ["search", "아이유", "좋은날", "--providers", "nope"])
    assert result.exit_code == 1
    assert "Unknown provider(s): nope" in result.output


def test_search_invalid_deadline():
    result = CliRunner().invoke(cli.cli, ["search", "아이유", "좋은날", "--deadline", "0"])
    assert result.exit_code == 1
    assert "Search deadline must be positive" in result.output


def test_providers_command():
    result = CliRunner().invoke(cli.cli, ["providers"])
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines[0].startswith("lrclib")
    tavily = next(line for line in lines if line.startswith("tavily"))
    assert "slow" in tavily
    assert tavily.endswith("unavailable")
    bugs = next(line for line in lines if line.startswith("bugs"))
    assert bugs.endswith(" available")


def test_cache_stats_and_clear(temp_dir):
    store = JsonFileCacheStore(temp_dir)
    asyncio.run(store.upsert(CacheEntry(
        key="아이유|좋은날",
        lyrics="오늘은 정말 좋은날",
        source="bugs",
        confidence=0.8,
        search_time_ms=1000,
        expires_at=expiry_from_now(7),
    )))
    runner = CliRunner()

    result = runner.invoke(cli.cli, ["cache", "stats", "--cache-dir", str(temp_dir)])
    assert result.exit_code == 0
    assert "Entries: 1" in result.output

    result = runner.invoke(cli.cli, ["cache", "clear", "--cache-dir", str(temp_dir), "--yes"])
    assert result.exit_code == 0
    assert "Cleared 1 cached entries" in result.output
    assert not store.path.exists()


def test_cache_clear_needs_confirmation(temp_dir):
    result = CliRunner().invoke(cli.cli, ["cache", "clear", "--cache-dir", str(temp_dir)], input="n\n")
    assert result.exit_code == 1
