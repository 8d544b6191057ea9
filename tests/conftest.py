"""Test configuration and fixtures.

Provides reusable fixtures for:
- Temporary files and directories
- Korean, English and bilingual lyrics texts
- Synced (LRC) lyrics
- Scripted provider adapters for engine tests
"""

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pytest

from lyricseek.config import EngineConfig
from lyricseek.core.components.providers.base import ProviderAdapter
from lyricseek.core.models import ProviderCandidate


def pytest_addoption(parser):
    parser.addoption(
        "--run-network",
        action="store_true",
        default=False,
        help="Run tests that require network access",
    )


def pytest_collection_modifyitems(config, items):
    run_network = config.getoption("--run-network") or os.getenv(
        "RUN_INTEGRATION_TESTS"
    ) == "1"
    if run_network:
        return

    skip_network = pytest.mark.skip(
        reason="requires network access (use --run-network or RUN_INTEGRATION_TESTS=1)"
    )
    for item in items:
        if "network" in item.keywords or "integration" in item.keywords:
            item.add_marker(skip_network)

# =============================================================================
# Basic Fixtures
# =============================================================================


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def engine_config(temp_dir):
    """Engine settings with short timings and no credentials."""
    return EngineConfig(
        search_deadline=2.0,
        cache_dir=temp_dir,
        sequential_step_delay=0.0,
        rate_limit_retry_delay=0.0,
    )


# =============================================================================
# Lyrics Fixtures
# =============================================================================


KOREAN_CHORUS = """[Chorus]
오늘은 정말 좋은날 너와 함께라서
하늘도 파랗게 웃는 좋은날
손을 잡고 노래해 우리 둘이서
잊지 못할 거야 이 좋은날"""


@pytest.fixture
def korean_lyrics():
    """Full Korean song: two verses, bridge and a repeated chorus."""
    return f"""[Verse 1]
눈을 뜨면 창가에 햇살이 가득해
오늘은 왠지 모든 게 잘 될 것 같아
너에게 전화를 걸어 웃으며 말해
우리 함께 걷던 그 길을 다시 걸어

{KOREAN_CHORUS}

[Verse 2]
바람이 불어와 머리를 쓸어 넘기고
작은 꽃잎들이 우리 곁에 내려와
시간이 멈춘 듯 조용한 오후에
너의 목소리만 내 귀에 들려와

{KOREAN_CHORUS}

[Bridge]
언젠가 이 순간이 추억이 되어도
나는 늘 오늘을 기억할 거야

{KOREAN_CHORUS}"""


@pytest.fixture
def korean_first_verse():
    """Only the opening of the Korean song."""
    return """[Verse 1]
눈을 뜨면 창가에 햇살이 가득해
오늘은 왠지 모든 게 잘 될 것 같아
너에게 전화를 걸어 웃으며 말해
우리 함께 걷던 그 길을 다시 걸어

[Chorus]
오늘은 정말 좋은날 너와 함께라서
하늘도 파랗게 웃는 좋은날
손을 잡고 노래해 우리 둘이서
잊지 못할 거야 이 좋은날"""


ENGLISH_LINES = [
    "Walking down the empty road tonight",
    "Counting every star that fades from sight",
    "I can hear the echo of your name",
    "Nothing ever stays the same",
    "Hold on, hold on to the morning light",
    "Hold on, hold on we will be alright",
    "Every river finds its way to sea",
    "Every road will lead you back to me",
    "Paper houses falling in the rain",
    "Little fires burning in my veins",
    "Tell me that you feel it too",
    "Tell me there is something true",
    "Hold on, hold on to the morning light",
    "Hold on, hold on we will be alright",
    "Every river finds its way to sea",
    "Every road will lead you back to me",
    "When the silence comes to call",
    "I will catch you when you fall",
    "Hold on, hold on to the morning light",
    "Hold on, hold on we will be alright",
    "Every river finds its way to sea",
    "Every road will lead you back to me",
]


@pytest.fixture
def english_lyrics():
    """Plain English song text in four-line stanzas."""
    stanzas = [ENGLISH_LINES[i:i + 4] for i in range(0, len(ENGLISH_LINES), 4)]
    return "\n\n".join("\n".join(stanza) for stanza in stanzas)


@pytest.fixture
def english_lrc():
    """Synced version of the English song."""
    header = "[ar:Test Artist]\n[ti:Morning Light]\n"
    body = "\n".join(
        f"[{i * 4 // 60:02d}:{i * 4 % 60:02d}.00]{line}"
        for i, line in enumerate(ENGLISH_LINES)
    )
    return header + body


@pytest.fixture
def bilingual_lyrics():
    """Korean and English lines mixed in one song, 20 lines."""
    return """I put on my make up every single morning
거울 속의 나를 보며 괜찮다고 말해요
Cover up the tired eyes and broken heart
아무도 모르게 웃는 연습을 해요

Make up a story that I tell myself at night
너 없는 하루가 또 시작되네요
Paint a smile so nobody can see the tears
이렇게라도 버텨야 하니까요

All the colors fading when you walk away
차가운 바람이 내 마음을 스쳐요
I keep on pretending everything is fine
사랑한다는 말은 아직 여기 있어요

Make up my mind to let you go tonight
그대의 이름을 조용히 불러봐요
Wash it all away before the morning comes
다시 웃을 수 있을 거라 믿어요

Make up, make up, I will be okay someday
내일은 조금 더 괜찮아질 거예요
Make up, make up, I will find my way back home
그때까지 나는 여기서 기다릴게요"""


@pytest.fixture
def english_prose():
    """A model answer describing a song instead of quoting it."""
    return (
        "This song is a tender ballad about remembering a perfect day spent with a loved one. "
        "The singer recalls walking together under a clear blue sky and promises never to forget "
        "the feeling of that afternoon, even when the moment becomes a distant memory.\n\n"
        "In the second verse the wind and falling petals become symbols of time slowing down, "
        "and the chorus returns again and again to the phrase about a good day shared together."
    )


@pytest.fixture
def short_text():
    return "Lyrics not available for this song."


# =============================================================================
# Provider Fixtures
# =============================================================================


class ScriptedProvider(ProviderAdapter):
    """Provider whose answers are fixed up front."""

    def __init__(
        self,
        provider_id: str,
        texts: Sequence[str] = (),
        *,
        priority: int = 5,
        timeout: float = 5.0,
        delay: float = 0.0,
        synced: bool = False,
        error: Optional[Exception] = None,
        available: bool = True,
        pages: Optional[Dict[str, str]] = None,
    ):
        super().__init__(EngineConfig())
        self.provider_id = provider_id
        self.texts = list(texts)
        self.priority = priority
        self.timeout = timeout
        self.delay = delay
        self.synced = synced
        self.error = error
        self.available = available
        self.pages = pages or {}
        self.queries: List = []
        self.fetched: List[str] = []
        self.finished = False

    def is_available(self) -> bool:
        return self.available

    async def search(self, query):
        self.queries.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.finished = True
        candidates = [
            self.candidate(text, has_synced_timing=self.synced, base_confidence=0.8)
            for text in self.texts
        ]
        candidates += [self.candidate(reference=ref) for ref in self.pages]
        return candidates

    async def fetch(self, candidate_id):
        self.fetched.append(candidate_id)
        return self.pages.get(candidate_id)

    def _search(self, query) -> List[ProviderCandidate]:
        return []


@pytest.fixture
def make_provider():
    """Factory for scripted providers."""
    return ScriptedProvider
