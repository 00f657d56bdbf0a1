# /tradebot/adapters/venue.py
# The Venue capability and the single registration site mapping each
# VenueKind to its implementation.
from typing import Dict, Iterator, Tuple

from tradebot.core.errors import InvalidConfiguration
from tradebot.core.logger import get_logger
from tradebot.core.state import SwapFill, VenueKind

log = get_logger(__name__)


class Venue:
    """
    Interface every trading venue adapter must implement.
    Calls are atomic: they either return the filled amount or raise. Partial
    fills are not modelled.
    """
    kind: VenueKind

    def quote(self, pool: str, token_in: str, amount_in: int) -> int:
        """Expected output for ``amount_in`` of ``token_in`` without executing."""
        raise NotImplementedError

    def swap(self, pool: str, token_in: str, amount_in: int, minimum_out: int | None, slippage_bps: int) -> SwapFill:
        """Execute a swap; must raise SlippageExceeded rather than fill below ``minimum_out``.

        ``None`` derives the floor from the quote less ``slippage_bps``; 0 accepts any fill.
        """
        raise NotImplementedError

    def add_liquidity(self, pool: str, amount_a: int, amount_b: int | None = None) -> int:
        """Deposit into ``pool``; ``amount_b`` defaults to the proportional amount. Returns LP minted."""
        raise NotImplementedError

    def remove_liquidity(self, pool: str, amount_a: int) -> Tuple[int, int]:
        """Withdraw the position share worth ``amount_a`` of token A. Returns (token_a, token_b)."""
        raise NotImplementedError


class VenueRegistry:
    """Lookup table keyed on VenueKind; adding a venue touches only ``register``."""

    def __init__(self, venues: Dict[VenueKind, Venue] | None = None):
        self._venues: Dict[VenueKind, Venue] = {}
        for kind, venue in (venues or {}).items():
            self.register(kind, venue)

    def register(self, kind: VenueKind, venue: Venue) -> None:
        self._venues[VenueKind(kind)] = venue
        log.info("VENUE_REGISTERED", venue=VenueKind(kind).value, adapter=type(venue).__name__)

    def get(self, kind: VenueKind) -> Venue:
        try:
            return self._venues[VenueKind(kind)]
        except (KeyError, ValueError):
            raise InvalidConfiguration(f"no venue registered for {kind}", venue=str(kind))

    def __contains__(self, kind) -> bool:
        try:
            return VenueKind(kind) in self._venues
        except ValueError:
            return False

    def __iter__(self) -> Iterator[VenueKind]:
        return iter(self._venues)

    def __len__(self) -> int:
        return len(self._venues)
