"""
User-agent rotation for outbound requests.

The fetch layer asks an ``IdentityStrategy`` for a fresh identity on every
attempt. Strategies are injected, so tests can pin the sequence while
production runs draw randomly from a browser pool.
"""

import itertools
import logging
import random
from typing import Iterable, List, Optional, Protocol, Sequence

from fake_useragent import UserAgent

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENTS: Sequence[str] = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/116.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/117.0.0.0 Safari/537.36 Edg/117.0.2045.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/117.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:109.0) Gecko/20100101 Firefox/117.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/16.6 Safari/605.1.15",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 13_5) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/115.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/117.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/116.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:109.0) Gecko/20100101 Firefox/117.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/117.0.0.0 Safari/537.36 Edg/117.0.2045.40",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/15.6.1 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/116.0.0.0 Safari/537.36 OPR/102.0.0.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/117.0.0.0 Safari/537.36 Edg/117.0.2045.31",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/16.5.1 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/109.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/16.4.1 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/116.0.0.0 Safari/537.36 Edg/116.0.1938.81",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/16.6.1 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/117.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64; rv:109.0) Gecko/20100101 Firefox/117.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/115.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; CrOS x86_64 14541.0.0) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/116.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 6.1; Win64; x64; rv:109.0) Gecko/20100101 Firefox/115.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/114.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:109.0) Gecko/20100101 Firefox/114.0",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/111.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/112.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:109.0) Gecko/20100101 Firefox/115.0",
    "Mozilla/5.0 (X11; Ubuntu; Linux x86_64; rv:109.0) Gecko/20100101 Firefox/117.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:102.0) Gecko/20100101 Firefox/102.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/115.0.0.0 Safari/537.36 Edg/115.0.1901.188",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:109.0) Gecko/20100101 Firefox/116.0",
    "Mozilla/5.0 (Windows NT 6.1; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/109.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/116.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/118.0.0.0 Safari/537.36 Edg/118.0.0.0",
)


class IdentityStrategy(Protocol):
    """Anything that can hand out a user-agent string per request attempt."""

    def choose(self) -> str:
        ...


def _validated_pool(agents: Iterable[str]) -> List[str]:
    pool = [agent for agent in agents if agent and agent.strip()]
    if not pool:
        raise ValueError("user-agent pool must contain at least one entry")
    return pool


class RandomUserAgentPool:
    """Uniform random choice from a fixed pool.

    Pass a seeded ``random.Random`` to make the sequence reproducible.
    """

    def __init__(
        self,
        agents: Iterable[str] = DEFAULT_USER_AGENTS,
        rng: Optional[random.Random] = None,
    ):
        self.agents = _validated_pool(agents)
        self._rng = rng or random.Random()

    def choose(self) -> str:
        return self._rng.choice(self.agents)


class CyclingUserAgentPool:
    """Round-robin over a fixed pool."""

    def __init__(self, agents: Iterable[str] = DEFAULT_USER_AGENTS):
        self.agents = _validated_pool(agents)
        self._cycle = itertools.cycle(self.agents)

    def choose(self) -> str:
        return next(self._cycle)


class FakeUserAgentIdentity:
    """Draws real-world browser strings from ``fake_useragent``.

    Falls back to the built-in pool when the library cannot load its data.
    """

    def __init__(self, fallback: Optional[IdentityStrategy] = None):
        self._fallback = fallback or RandomUserAgentPool()
        try:
            self._ua: Optional[UserAgent] = UserAgent()
        except Exception as e:  # noqa: BLE001
            logger.warning(f"Failed to initialize UserAgent: {e}")
            self._ua = None

    def choose(self) -> str:
        if self._ua is None:
            return self._fallback.choose()
        try:
            return self._ua.random
        except Exception as e:  # noqa: BLE001
            logger.debug("fake_useragent lookup failed, using fallback pool: %s", e)
            return self._fallback.choose()


def build_identity_strategy(name: str = "pool", seed: Optional[int] = None) -> IdentityStrategy:
    """Map a configuration value onto a strategy instance."""
    if name == "pool":
        return RandomUserAgentPool(rng=random.Random(seed))
    if name == "cycle":
        return CyclingUserAgentPool()
    if name == "fake":
        return FakeUserAgentIdentity(fallback=RandomUserAgentPool(rng=random.Random(seed)))
    raise ValueError(f"Unknown identity strategy: {name}")
