# /tradebot/adapters/oracle.py
import time
from typing import Dict, Iterable, List

from tradebot.core.errors import InsufficientPriceData
from tradebot.core.logger import get_logger
from tradebot.core.state import PriceQuote

log = get_logger(__name__)


class Oracle:
    """
    Price source consumed by the engine. Implementations must report
    publish_time and confidence honestly; the engine trusts a feed no further
    than the PriceValidator checks.
    """

    def get_quote(self, feed_id: str) -> PriceQuote:
        raise NotImplementedError

    def get_history(self, feed_id: str, window: int, now: int | None = None) -> List[PriceQuote]:
        """Samples published within ``window`` seconds of ``now``, oldest first."""
        raise NotImplementedError


class SnapshotOracle(Oracle):
    """Serves a frozen snapshot of quotes taken by the caller before the run."""

    def __init__(self, quotes: Iterable[PriceQuote] = (), history: Iterable[PriceQuote] = (),
                 now: int | None = None):
        self.now = int(time.time()) if now is None else now
        self._quotes: Dict[str, PriceQuote] = {}
        self._history: Dict[str, List[PriceQuote]] = {}
        for quote in quotes:
            self._quotes[self._key(quote)] = quote
            self._history.setdefault(self._key(quote), []).append(quote)
        for sample in history:
            self._history.setdefault(self._key(sample), []).append(sample)
        log.debug("SNAPSHOT_ORACLE_LOADED", feeds=sorted(self._quotes))

    @staticmethod
    def _key(quote: PriceQuote) -> str:
        return quote.feed_id or quote.venue.value

    def get_quote(self, feed_id: str) -> PriceQuote:
        try:
            return self._quotes[feed_id]
        except KeyError:
            raise InsufficientPriceData(f"no quote for feed {feed_id}", feed_id=feed_id)

    def get_history(self, feed_id: str, window: int, now: int | None = None) -> List[PriceQuote]:
        now = self.now if now is None else now
        samples = [s for s in self._history.get(feed_id, []) if now - s.publish_time <= window]
        return sorted(samples, key=lambda s: s.publish_time)
