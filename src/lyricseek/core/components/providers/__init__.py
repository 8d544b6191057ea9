"""Provider adapters and their registry."""

from typing import Dict, Iterable, List, Optional, Type

from ....config import EngineConfig
from .base import ProviderAdapter
from .generative import ClaudeProvider, GeminiProvider, OpenAIProvider, PerplexityProvider
from .lrclib import LrclibProvider, SyncedLyricsProvider
from .scrapers import BugsScraper, GenieScraper, GeniusScraper, MelonScraper
from .web_search import TavilyProvider

# Registration order is also the order candidates are collected in
PROVIDER_CLASSES: Dict[str, Type[ProviderAdapter]] = {
    cls.provider_id: cls
    for cls in (
        LrclibProvider,
        SyncedLyricsProvider,
        BugsScraper,
        MelonScraper,
        GenieScraper,
        GeniusScraper,
        TavilyProvider,
        PerplexityProvider,
        OpenAIProvider,
        ClaudeProvider,
        GeminiProvider,
    )
}


def build_providers(
    config: Optional[EngineConfig] = None,
    only: Optional[Iterable[str]] = None,
    session=None,
) -> List[ProviderAdapter]:
    """
    Instantiate the registered providers, in registration order.

    Args:
        config: Engine settings (credentials, disabled providers)
        only: Restrict to these provider ids

    Raises:
        KeyError: If ``only`` names an unknown provider
    """
    config = config or EngineConfig.from_env()
    ids = list(PROVIDER_CLASSES)
    if only is not None:
        wanted = [p.strip().lower() for p in only]
        unknown = [p for p in wanted if p not in PROVIDER_CLASSES]
        if unknown:
            raise KeyError(f"Unknown provider(s): {', '.join(unknown)}")
        ids = [p for p in ids if p in wanted]
    return [PROVIDER_CLASSES[p](config, session=session) for p in ids]


__all__ = [
    "ProviderAdapter",
    "PROVIDER_CLASSES",
    "build_providers",
    "LrclibProvider",
    "SyncedLyricsProvider",
    "BugsScraper",
    "MelonScraper",
    "GenieScraper",
    "GeniusScraper",
    "TavilyProvider",
    "PerplexityProvider",
    "OpenAIProvider",
    "ClaudeProvider",
    "GeminiProvider",
]
