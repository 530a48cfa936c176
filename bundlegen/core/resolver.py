"""
Ranked candidate resolution.

Several generators fall back through progressively looser candidate pools
(category pool, then general pool, then everything). ``RankedResolver`` holds
that chain as an ordered list of named strategies and returns the first
non-empty result.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class PoolStrategy(Generic[T]):
    """A named way of producing candidates for a request."""
    name: str
    produce: Callable[[Any], Sequence[T]]

    def __call__(self, request: Any) -> Sequence[T]:
        return self.produce(request)


@dataclass
class Resolution(Generic[T]):
    """Candidates produced by the first strategy that yielded any."""
    strategy: str
    candidates: List[T]


class RankedResolver(Generic[T]):
    """
    Apply strategies in order until one yields candidates.

    Example:
        resolver = RankedResolver([
            PoolStrategy("category", lambda req: pools.get(req, [])),
            PoolStrategy("general", lambda req: pools["general"]),
        ])
        resolution = resolver.resolve("alchemy")
    """

    def __init__(self, strategies: Sequence[PoolStrategy[T]], label: str = "Resolver"):
        self.strategies = list(strategies)
        self.label = label

    def resolve(self, request: Any = None) -> Optional[Resolution[T]]:
        for index, strategy in enumerate(self.strategies):
            candidates = list(strategy(request) or ())
            if candidates:
                if index:
                    logger.debug(f"[{self.label}] Fell back to '{strategy.name}' for {request!r}")
                return Resolution(strategy=strategy.name, candidates=candidates)
        logger.debug(f"[{self.label}] No strategy produced candidates for {request!r}")
        return None

    @property
    def names(self) -> List[str]:
        return [strategy.name for strategy in self.strategies]
