"""Provider adapter contract."""

import asyncio
from abc import ABC, abstractmethod
from typing import List, Optional

from ....config import EngineConfig
from ....exceptions import ProviderUnavailable
from ...models import NormalizedQuery, ProviderCandidate

FAST_TIMEOUT = 5.0
DEFAULT_TIMEOUT = 10.0
SLOW_TIMEOUT = 25.0


class ProviderAdapter(ABC):
    """
    One external lyrics source.

    Subclasses implement the blocking ``_search`` (and ``_fetch`` when search
    returns references); the async ``search``/``fetch`` run them in a worker
    thread so many providers can be in flight at once.

    Contract:
        is_available() never raises and never performs a search.
        search() returns [] for "no results" and raises only
        ProviderTransportFailure (or RateLimited) for transport failures and
        ProviderUnavailable when a required credential is missing.
    """

    provider_id: str = ""
    priority: int = 0
    timeout: float = DEFAULT_TIMEOUT
    slow: bool = False
    requires_credential: bool = False

    def __init__(self, config: Optional[EngineConfig] = None, session=None):
        self.config = config or EngineConfig()
        # Optional requests.Session; module-level requests is used when None
        self.session = session

    @property
    def credential(self) -> Optional[str]:
        return self.config.credential(self.provider_id)

    def require_credential(self) -> str:
        credential = self.credential
        if not credential:
            raise ProviderUnavailable(self.provider_id, "no credential configured")
        return credential

    def is_available(self) -> bool:
        if self.config.is_disabled(self.provider_id):
            return False
        if self.requires_credential and not self.credential:
            return False
        return True

    async def search(self, query: NormalizedQuery) -> List[ProviderCandidate]:
        return await asyncio.to_thread(self._search, query)

    async def fetch(self, candidate_id: str) -> Optional[str]:
        return await asyncio.to_thread(self._fetch, candidate_id)

    @abstractmethod
    def _search(self, query: NormalizedQuery) -> List[ProviderCandidate]:
        ...

    def _fetch(self, candidate_id: str) -> Optional[str]:
        return None

    def candidate(self, raw_text: str = "", **kwargs) -> ProviderCandidate:
        """Build a candidate attributed to this provider."""
        return ProviderCandidate(provider_id=self.provider_id, raw_text=raw_text, **kwargs)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(priority={self.priority}, timeout={self.timeout})"
