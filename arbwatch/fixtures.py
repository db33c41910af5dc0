"""Ready-made sample objects for exercising the tracker and stores."""

from __future__ import annotations

import time
from datetime import datetime

from .models import (
    Opportunity,
    OpportunityOutcome,
    OrderbookMessage,
    OrderbookSnapshot,
    PriceLevel,
)


def create_test_orderbook_message(event_type: str, asset_id: str, market_id: str) -> OrderbookMessage:
    """Build a two-level orderbook message of the given event type."""
    return OrderbookMessage(
        event_type=event_type,
        market=market_id,
        asset_id=asset_id,
        timestamp=int(time.time()),
        bids=[PriceLevel("0.52", "100.0"), PriceLevel("0.51", "50.0")],
        asks=[PriceLevel("0.53", "100.0"), PriceLevel("0.54", "50.0")],
    )


def create_test_book_message(asset_id: str, market_id: str) -> OrderbookMessage:
    """Build a full "book" snapshot message."""
    return create_test_orderbook_message("book", asset_id, market_id)


def create_test_price_change_message(asset_id: str, market_id: str) -> OrderbookMessage:
    """Build an incremental "price_change" message."""
    return create_test_orderbook_message("price_change", asset_id, market_id)


def create_test_opportunity(market_id: str, market_slug: str) -> Opportunity:
    """Build a binary-market arbitrage opportunity."""
    outcomes = [
        OpportunityOutcome(
            token_id="test-yes-token-" + market_id,
            outcome="YES",
            ask_price=0.48,
            ask_size=100.0,
            tick_size=0.01,
            min_size=5.0,
        ),
        OpportunityOutcome(
            token_id="test-no-token-" + market_id,
            outcome="NO",
            ask_price=0.51,
            ask_size=100.0,
            tick_size=0.01,
            min_size=5.0,
        ),
    ]
    return Opportunity(
        id="test-opp-" + market_id,
        market_id=market_id,
        market_slug=market_slug,
        market_question="Test market: " + market_slug,
        outcomes=outcomes,
        detected_at=datetime.now(),
        total_price_sum=0.99,
        profit_margin=0.01,
        profit_bps=100,
        max_trade_size=100.0,
        estimated_profit=1.0,
        total_fees=0.2,
        net_profit=0.8,
        net_profit_bps=80,
        config_threshold=0.995,
    )


def create_arbitrage_orderbooks(
    market_id: str, yes_token_id: str, no_token_id: str
) -> tuple[OrderbookSnapshot, OrderbookSnapshot]:
    """Build YES and NO snapshots whose ask prices sum below one."""
    now = datetime.now()
    yes_book = OrderbookSnapshot(
        market_id=market_id,
        token_id=yes_token_id,
        best_ask_price=0.48,
        best_ask_size=100.0,
        last_updated=now,
    )
    no_book = OrderbookSnapshot(
        market_id=market_id,
        token_id=no_token_id,
        best_ask_price=0.51,
        best_ask_size=100.0,
        last_updated=now,
    )
    return yes_book, no_book