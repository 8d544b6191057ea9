"""Site-specific catalog scrapers.

Each scraper finds the song page through the site's own search, returns a
reference candidate pointing at it, and extracts the lyrics container in
``fetch``. Markup never leaves this module.
"""

import re
from urllib.parse import quote
from difflib import SequenceMatcher
from typing import List, Optional, Sequence

from ....exceptions import ProviderTransportFailure
from ....utils.logging import get_logger
from ...models import NormalizedQuery, ProviderCandidate
from ...normalize import find_artist_alias, query_variants
from .base import ProviderAdapter
from .html_extract import extract_lyrics
from .http import get_json, get_text

logger = get_logger(__name__)

MAX_VARIANTS = 3


def clean_title_for_search(title: str) -> str:
    """Clean a title for catalog search by removing common suffixes and noise."""
    cleaned = re.split(r"\s*[|｜]\s*", title)[0]
    cleaned = re.sub(
        r"\s*[\(\[]?\s*(ft\.?|feat\.?|featuring).*?[\)\]]?\s*$", "", cleaned, flags=re.IGNORECASE
    )
    cleaned = re.sub(r"\s*[\(\[].*?[\)\]]\s*", "", cleaned).strip()

    for suffix in [" Lyrics", " Official Video", " Official Audio", " Official Music Video", " Audio", " Video"]:
        if cleaned.endswith(suffix):
            cleaned = cleaned[: -len(suffix)].strip()

    return cleaned or title


class CatalogScraper(ProviderAdapter):
    """
    Scraper for a catalog whose search page links songs by numeric id.

    Subclasses set the URL templates, the id patterns found on the search
    page and the CSS selectors of the lyrics container.
    """

    priority = 9
    timeout = 10.0
    search_url: str = ""
    song_url: str = ""
    id_patterns: Sequence[str] = ()
    selectors: Sequence[str] = ()
    base_confidence = 0.8

    def _search(self, query: NormalizedQuery) -> List[ProviderCandidate]:
        variants = query_variants(query.artist, clean_title_for_search(query.title))[:MAX_VARIANTS]
        failures = []
        for artist, title in variants:
            term = f"{artist} {title}"
            try:
                html = get_text(
                    self.provider_id,
                    self.search_url.format(query=quote(term)),
                    session=self.session,
                    timeout=self.timeout,
                )
            except ProviderTransportFailure as e:
                failures.append(e)
                continue

            song_id = self.find_song_id(html)
            if song_id:
                logger.debug(f"{self.provider_id}: found song {song_id} for {term!r}")
                return [self.candidate(
                    reference=self.song_url.format(id=song_id),
                    base_confidence=self.base_confidence,
                    provider_metadata={"song_id": song_id, "search_term": term},
                )]

        if failures and len(failures) == len(variants):
            # Every variant failed at the transport level
            raise failures[-1]
        return []

    def find_song_id(self, html: str) -> Optional[str]:
        for pattern in self.id_patterns:
            match = re.search(pattern, html)
            if match:
                return match.group(1)
        return None

    def _fetch(self, candidate_id: str) -> Optional[str]:
        html = get_text(self.provider_id, candidate_id, session=self.session, timeout=self.timeout)
        return extract_lyrics(html, self.selectors)


class BugsScraper(CatalogScraper):
    provider_id = "bugs"
    search_url = "https://music.bugs.co.kr/search/integrated?q={query}"
    song_url = "https://music.bugs.co.kr/track/{id}"
    id_patterns = (r"track/(\d+)",)
    selectors = ("div.lyricsContainer xmp", "div.lyricsContainer", "xmp")


class MelonScraper(CatalogScraper):
    provider_id = "melon"
    search_url = "https://www.melon.com/search/total/index.htm?q={query}"
    song_url = "https://www.melon.com/song/detail.htm?songId={id}"
    id_patterns = (r"goSongDetail\('(\d+)'\)", r"songId=(\d+)")
    selectors = ("div#d_video_summary", "div.lyric")


class GenieScraper(CatalogScraper):
    provider_id = "genie"
    search_url = "https://www.genie.co.kr/search/searchMain?query={query}"
    song_url = "https://www.genie.co.kr/detail/songInfo?xgnm={id}"
    id_patterns = (r"songInfo\('?(\d+)", r"xgnm=(\d+)", r'data-song-id="(\d+)"')
    selectors = ("pre#pLyrics", "#pLyrics")


class GeniusScraper(ProviderAdapter):
    """Genius: song search API, then the data-lyrics-container divs."""

    provider_id = "genius"
    priority = 8
    timeout = 10.0
    api_url = "https://genius.com/api/search/song"
    selectors = ('div[data-lyrics-container="true"]',)
    min_artist_similarity = 0.5

    def _search(self, query: NormalizedQuery) -> List[ProviderCandidate]:
        cleaned_title = clean_title_for_search(query.title)
        search_queries = [
            f"{query.artist} {cleaned_title}",
            f"{cleaned_title} {query.artist}",
        ]
        for term in search_queries:
            data = get_json(
                self.provider_id,
                self.api_url,
                params={"per_page": 5, "q": term},
                session=self.session,
                timeout=self.timeout,
            )
            song_url = self._pick_song_url(data, query.artist)
            if song_url:
                return [self.candidate(
                    reference=song_url,
                    base_confidence=0.8,
                    provider_metadata={"search_term": term},
                )]
        return []

    def _pick_song_url(self, data, artist: str) -> Optional[str]:
        sections = (data or {}).get("response", {}).get("sections", [])
        for section in sections:
            if section.get("type") != "song":
                continue
            for hit in section.get("hits", []):
                result = hit.get("result", {})
                url = result.get("url")
                if not url or not url.endswith("-lyrics") or "/artists/" in url:
                    continue
                # Skip translation pages and other artists' covers
                if "translation" in url.lower():
                    continue
                hit_artist = result.get("primary_artist", {}).get("name", "")
                if hit_artist and not self._artist_matches(artist, hit_artist):
                    continue
                return url
        return None

    def _artist_matches(self, wanted: str, found: str) -> bool:
        names = [wanted]
        alias = find_artist_alias(wanted)
        if alias:
            names += [alias.native, alias.latin]
        b = found.lower().strip()
        for name in names:
            a = name.lower().strip()
            if a in b or b in a:
                return True
            if SequenceMatcher(None, a, b).ratio() >= self.min_artist_similarity:
                return True
        return False

    def _fetch(self, candidate_id: str) -> Optional[str]:
        html = get_text(self.provider_id, candidate_id, session=self.session, timeout=self.timeout)
        return extract_lyrics(html, self.selectors)
