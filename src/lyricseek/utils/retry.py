"""Rate-limit fallback for provider calls.

A provider call runs against a primary model/endpoint. If upstream answers
with a rate-limit signal, the call is retried exactly once against a cheaper
fallback after a short fixed delay, then the chain gives up. Transitions are
computed by the pure ``next_state`` function so the policy can be tested
without any network mocking.
"""

import asyncio
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Tuple, TypeVar

from ..config import RATE_LIMIT_RETRY_DELAY
from ..exceptions import RateLimited
from ..utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class ChainState(str, Enum):
    PRIMARY = "primary"
    FALLBACK = "fallback"
    DONE = "done"
    GIVE_UP = "give_up"


class Outcome(str, Enum):
    SUCCESS = "success"
    RATE_LIMITED = "rate_limited"
    FAILED = "failed"


def next_state(state: ChainState, outcome: Outcome, has_fallback: bool = True) -> ChainState:
    """
    Transition function of the fallback chain.

    PRIMARY --rate_limited--> FALLBACK (or GIVE_UP without a fallback)
    FALLBACK --rate_limited--> GIVE_UP
    any --success--> DONE, any --failed--> GIVE_UP
    """
    if state in (ChainState.DONE, ChainState.GIVE_UP):
        return state
    if outcome == Outcome.SUCCESS:
        return ChainState.DONE
    if outcome == Outcome.RATE_LIMITED and state == ChainState.PRIMARY and has_fallback:
        return ChainState.FALLBACK
    return ChainState.GIVE_UP


class FallbackChain:
    """Runs a call against a primary target with one rate-limit fallback."""

    def __init__(
        self,
        primary: str,
        fallback: Optional[str] = None,
        delay: float = RATE_LIMIT_RETRY_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        name: str = "provider",
    ):
        self.primary = primary
        self.fallback = fallback if fallback and fallback != primary else None
        self.delay = delay
        self._sleep = sleep
        self.name = name
        self.state = ChainState.PRIMARY
        self.transitions: List[Tuple[ChainState, Outcome, ChainState]] = []

    def _advance(self, outcome: Outcome) -> ChainState:
        new_state = next_state(self.state, outcome, has_fallback=self.fallback is not None)
        self.transitions.append((self.state, outcome, new_state))
        self.state = new_state
        return new_state

    def _target(self) -> str:
        return self.fallback if self.state == ChainState.FALLBACK and self.fallback else self.primary

    async def run(self, call: Callable[[str], Awaitable[T]]) -> T:
        """
        Call ``call(target)`` until the chain finishes.

        Raises:
            RateLimited: If the fallback was rate limited too, or none exists
            Exception: Any non-rate-limit error from ``call``, unchanged
        """
        while True:
            target = self._target()
            try:
                result = await call(target)
            except RateLimited as e:
                if self._advance(Outcome.RATE_LIMITED) == ChainState.FALLBACK:
                    logger.info(
                        f"{self.name}: rate limited on {target}, retrying with "
                        f"{self.fallback} in {self.delay:.1f}s"
                    )
                    await self._sleep(self.delay)
                    continue
                logger.warning(f"{self.name}: rate limited on {target}, giving up")
                raise e
            except Exception:
                self._advance(Outcome.FAILED)
                raise
            self._advance(Outcome.SUCCESS)
            return result
