# /tradebot/core/pricing.py
import time
from typing import Iterable

from tradebot.core.amm import I128_MAX, I128_MIN, BPS_DENOMINATOR
from tradebot.core.config import settings
from tradebot.core.errors import (
    ExcessiveRelativeConfidence,
    InsufficientConfidence,
    InsufficientPriceData,
    LowConfidence,
    MarketDataError,
    Overflow,
    StalePrice,
)
from tradebot.core.logger import get_logger, QUOTES_REJECTED
from tradebot.core.state import PriceQuote, ValidatedPrice

log = get_logger(__name__)


class PriceValidator:
    """
    Gatekeeper between raw oracle quotes and every consumer of a price.
    A quote is usable only if it is fresh and its confidence interval is
    neither too wide (absolute or relative to price) nor implausibly tight.
    """

    def __init__(
        self,
        max_relative_confidence_bps: int | None = None,
        min_confidence: int | None = None,
    ):
        self.max_relative_confidence_bps = (
            settings.MAX_RELATIVE_CONFIDENCE_BPS
            if max_relative_confidence_bps is None
            else max_relative_confidence_bps
        )
        self.min_confidence = settings.MIN_CONFIDENCE if min_confidence is None else min_confidence

    def validate(
        self,
        quote: PriceQuote,
        max_staleness: int | None = None,
        max_confidence: int | None = None,
        now: int | None = None,
    ) -> ValidatedPrice:
        now = int(time.time()) if now is None else now
        max_staleness = settings.MAX_STALENESS_SECONDS if max_staleness is None else max_staleness
        max_confidence = settings.MAX_CONFIDENCE if max_confidence is None else max_confidence
        try:
            self._check(quote, max_staleness, max_confidence, now)
        except MarketDataError as e:
            QUOTES_REJECTED.labels(e.code).inc()
            log.warning("QUOTE_REJECTED", venue=quote.venue.value, feed_id=quote.feed_id,
                        code=e.code, price=quote.price, confidence=quote.confidence,
                        age=now - quote.publish_time)
            raise
        return ValidatedPrice(quote=quote, validated_at=now)

    def _check(self, quote: PriceQuote, max_staleness: int, max_confidence: int, now: int) -> None:
        age = now - quote.publish_time
        if age > max_staleness:
            raise StalePrice(f"quote is {age}s old, limit {max_staleness}s",
                             age=age, max_staleness=max_staleness)

        if quote.confidence > max_confidence:
            raise LowConfidence(f"confidence {quote.confidence} above {max_confidence}",
                                confidence=quote.confidence, max_confidence=max_confidence)

        # confidence / |price| > 1%  <=>  confidence * 10000 > |price| * 100
        price = abs(quote.price)
        if price == 0 or quote.confidence * BPS_DENOMINATOR > price * self.max_relative_confidence_bps:
            raise ExcessiveRelativeConfidence(
                "confidence interval too wide relative to price",
                confidence=quote.confidence, price=quote.price,
            )

        if quote.confidence < self.min_confidence:
            raise InsufficientConfidence(f"confidence {quote.confidence} below floor {self.min_confidence}",
                                         confidence=quote.confidence, floor=self.min_confidence)

    def validate_all(self, quotes: Iterable[PriceQuote], max_staleness: int | None = None,
                     max_confidence: int | None = None, now: int | None = None) -> dict:
        """Validate one quote per venue; the first failing quote aborts the batch."""
        return {q.venue: self.validate(q, max_staleness, max_confidence, now) for q in quotes}


def twap(history: Iterable[PriceQuote], period: int, now: int | None = None) -> int:
    """Mean price of every sample published within ``period`` seconds of ``now``.

    The sum is kept within a signed 128-bit range and the mean truncates.
    """
    now = int(time.time()) if now is None else now
    total = 0
    count = 0
    for sample in history:
        if now - sample.publish_time <= period:
            total += sample.price
            if total > I128_MAX or total < I128_MIN:
                raise Overflow("TWAP accumulator overflow", samples=count + 1)
            count += 1

    if count == 0:
        raise InsufficientPriceData(f"no samples within {period}s", period=period)
    # Prices are unsigned, so floor division truncates toward zero.
    return total // count
