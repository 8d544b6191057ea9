"""Web-search-backed provider (Tavily)."""

from typing import Dict, List, Optional
from urllib.parse import urlparse

from ....utils.logging import ProviderTimer, get_logger
from ...models import Language, NormalizedQuery, ProviderCandidate
from .base import ProviderAdapter
from .html_extract import extract_lyrics, longest_line_block
from .http import get_text, post_json

logger = get_logger(__name__)

# Lyrics sites worth restricting the search to, by expected language
LYRICS_DOMAINS: Dict[Language, List[str]] = {
    Language.KO: [
        "klyrics.net", "colorcodedlyrics.com", "blog.naver.com", "tistory.com",
        "genius.com", "azlyrics.com", "lyrics.com", "musixmatch.com",
    ],
    Language.JA: ["uta-net.com", "utaten.com", "mojim.com", "genius.com", "lyrics.com"],
}
DEFAULT_DOMAINS = ["genius.com", "azlyrics.com", "lyrics.com", "musixmatch.com", "lyricstranslate.com"]

# Lyrics containers of the domains above, tried before the line heuristic
SITE_SELECTORS: Dict[str, List[str]] = {
    "genius.com": ['div[data-lyrics-container="true"]'],
    "azlyrics.com": ["div.ringtone ~ div:not([class])"],
    "musixmatch.com": ["span.lyrics__content__ok", "p.mxm-lyrics__content"],
    "colorcodedlyrics.com": ["div.entry-content"],
    "klyrics.net": ["div.entry-content"],
    "uta-net.com": ["div#kashi_area"],
    "utaten.com": ["div.hiragana", "div.lyricBody"],
}

MIN_SNIPPET_LINES = 6
MAX_REFERENCES = 3
SEARCH_CONFIDENCE = 0.6


def domains_for(language: Language) -> List[str]:
    return LYRICS_DOMAINS.get(language, DEFAULT_DOMAINS)


def selectors_for(url: str) -> List[str]:
    host = urlparse(url).netloc.lower()
    for domain, selectors in SITE_SELECTORS.items():
        if host == domain or host.endswith("." + domain):
            return selectors
    return []


def _is_search_page(url: str) -> bool:
    lowered = url.lower()
    return any(p in lowered for p in ("/search", "?q=", "/tag/", "/category/"))


class TavilyProvider(ProviderAdapter):
    """
    Searches lyrics sites through Tavily.

    A result whose returned content already holds a lyrics-shaped block
    becomes a candidate directly; otherwise its URL becomes a reference
    candidate, downloaded and extracted in ``fetch``.
    """

    provider_id = "tavily"
    priority = 8
    timeout = 20.0
    slow = True
    requires_credential = True
    url = "https://api.tavily.com/search"

    def _search(self, query: NormalizedQuery) -> List[ProviderCandidate]:
        timer = ProviderTimer(self.provider_id, logger)
        data = post_json(
            self.provider_id,
            self.url,
            {
                "api_key": self.require_credential(),
                "query": f"{query.artist} {query.title} lyrics",
                "search_depth": "advanced",
                "include_domains": domains_for(query.expected_language),
                "include_raw_content": True,
                "max_results": 10,
            },
            session=self.session,
            timeout=self.timeout,
        )

        candidates: List[ProviderCandidate] = []
        references: List[ProviderCandidate] = []
        for result in (data or {}).get("results", []):
            url = result.get("url") or ""
            if not url or _is_search_page(url):
                continue
            block = self._snippet_block(result)
            if block:
                candidates.append(self.candidate(
                    block,
                    base_confidence=SEARCH_CONFIDENCE,
                    provider_metadata={"url": url, "title": result.get("title", "")},
                ))
            elif len(references) < MAX_REFERENCES:
                references.append(self.candidate(
                    reference=url,
                    base_confidence=SEARCH_CONFIDENCE,
                    provider_metadata={"url": url, "title": result.get("title", "")},
                ))

        timer.success(f"{len(candidates)} snippets, {len(references)} pages")
        return candidates or references

    def _snippet_block(self, result: Dict) -> Optional[str]:
        for field in ("raw_content", "content"):
            text = result.get(field) or ""
            block = longest_line_block(text, min_lines=MIN_SNIPPET_LINES)
            if block:
                return block
        return None

    def _fetch(self, candidate_id: str) -> Optional[str]:
        html = get_text(self.provider_id, candidate_id, session=self.session, timeout=self.timeout)
        return extract_lyrics(html, selectors_for(candidate_id))
