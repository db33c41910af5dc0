"""Data types shared by the orderbook tracker and the opportunity stores."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class PriceLevel:
    """One price level of an orderbook side, as received on the wire."""

    price: str
    size: str


@dataclass
class OrderbookMessage:
    """An orderbook event received from the market data feed."""

    event_type: str
    asset_id: str
    market: str = ""
    bids: list[PriceLevel] = field(default_factory=list)
    asks: list[PriceLevel] = field(default_factory=list)
    timestamp: int = 0


@dataclass
class OrderbookSnapshot:
    """Top-of-book state for a single token."""

    market_id: str
    token_id: str
    best_bid_price: float = 0.0
    best_bid_size: float = 0.0
    best_ask_price: float = 0.0
    best_ask_size: float = 0.0
    last_updated: datetime = field(default_factory=datetime.now)

    def copy(self) -> OrderbookSnapshot:
        """Return an independent copy of this snapshot."""
        return dataclasses.replace(self)


@dataclass
class OpportunityOutcome:
    """One outcome leg of an arbitrage opportunity."""

    token_id: str
    outcome: str
    ask_price: float
    ask_size: float
    tick_size: float = 0.0
    min_size: float = 0.0


@dataclass
class Opportunity:
    """A detected arbitrage opportunity across all outcomes of a market."""

    id: str
    market_id: str
    market_slug: str
    market_question: str
    outcomes: list[OpportunityOutcome] = field(default_factory=list)
    detected_at: datetime = field(default_factory=datetime.now)
    total_price_sum: float = 0.0
    profit_margin: float = 0.0
    profit_bps: int = 0
    max_trade_size: float = 0.0
    estimated_profit: float = 0.0
    total_fees: float = 0.0
    net_profit: float = 0.0
    net_profit_bps: int = 0
    config_threshold: float = 0.0

    def copy(self) -> Opportunity:
        """Return a copy with its own outcome list."""
        return dataclasses.replace(self, outcomes=list(self.outcomes))