"""Destinations for detected arbitrage opportunities."""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol, TextIO, runtime_checkable

from .models import Opportunity

_RULE = "━" * 72
_THIN_RULE = "  " + "─" * 31

_INSERT_QUERY = """
    INSERT INTO arbitrage_opportunities (
        id, market_id, market_slug, market_question, detected_at,
        yes_bid_price, yes_bid_size, no_bid_price, no_bid_size,
        price_sum, profit_margin, profit_bps, max_trade_size,
        estimated_profit, total_fees, net_profit, net_profit_bps,
        config_threshold
    ) VALUES (
        %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s
    )
"""


@runtime_checkable
class Storage(Protocol):
    """Anything that can record opportunities and be closed."""

    def store_opportunity(self, opp: Opportunity) -> None:
        """Record one opportunity."""

    def close(self) -> None:
        """Release any resources held by the store."""


class StorageError(RuntimeError):
    """Raised when an opportunity store fails."""


class ConsoleStorage:
    """Pretty-prints each opportunity to a text stream (stdout by default)."""

    def __init__(
        self, logger: logging.Logger | None = None, stream: TextIO | None = None
    ) -> None:
        self.logger = logger or logging.getLogger(__name__)
        self._stream = stream
        self.logger.info("console-storage-initialized")

    def _render(self, opp: Opportunity) -> list[str]:
        lines = [
            "",
            _RULE,
            "ARBITRAGE OPPORTUNITY DETECTED",
            _RULE,
            f"ID:       {opp.id[:8]}",
            f"Market:   {opp.market_slug}",
            f"Question: {opp.market_question}",
            f"Time:     {opp.detected_at.strftime('%Y-%m-%d %H:%M:%S')}",
            _RULE,
            f"OUTCOMES ({len(opp.outcomes)})",
        ]
        lines.extend(
            f"  {outcome.outcome + ':':<15} {outcome.ask_price:.4f} @ {outcome.ask_size:.2f} size"
            for outcome in opp.outcomes
        )
        lines += [
            _THIN_RULE,
            f"  Total Cost:     {opp.total_price_sum:.4f} < {opp.config_threshold:.4f} (threshold)",
            f"  Spread:         {1.0 - opp.total_price_sum:.4f} ({opp.profit_margin * 10000:.2f} bps)",
            _RULE,
            "PROFIT ANALYSIS",
            f"  Trade Size:      ${opp.max_trade_size:.2f}",
            f"  Gross Profit:    ${opp.estimated_profit:.2f} ({opp.profit_bps} bps)",
            f"  Fees ({len(opp.outcomes)} outcomes): ${opp.total_fees:.2f}",
            f"  Net Profit:      ${opp.net_profit:.2f} ({opp.net_profit_bps} bps)",
            "  ✓ PROFITABLE after fees!" if opp.net_profit > 0 else "  ✗ NOT profitable after fees",
            _RULE,
        ]
        return lines

    def store_opportunity(self, opp: Opportunity) -> None:
        """Print a formatted report of the opportunity."""
        stream = self._stream if self._stream is not None else sys.stdout
        print("\n".join(self._render(opp)), file=stream)

    def close(self) -> None:
        self.logger.info("closing-console-storage")


@dataclass
class PostgresConfig:
    """Connection settings for a PostgreSQL database."""

    host: str
    port: str
    user: str
    password: str
    database: str
    sslmode: str = "disable"
    logger: logging.Logger | None = field(default=None, repr=False, compare=False)

    def dsn(self) -> str:
        """Return the key=value connection string."""
        return (
            f"host={self.host} port={self.port} user={self.user} "
            f"password={self.password} dbname={self.database} sslmode={self.sslmode}"
        )


class PostgresStorage:
    """Inserts opportunities into the ``arbitrage_opportunities`` table.

    Works with any DB-API connection that uses ``%s`` placeholders. Only the
    first two outcomes are stored, in the binary-market columns.
    """

    def __init__(self, connection: Any, *, logger: logging.Logger | None = None) -> None:
        self._connection = connection
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def connect(
        cls,
        config: PostgresConfig,
        connector: Callable[[str], Any],
    ) -> PostgresStorage:
        """Open a connection with ``connector(dsn)`` and verify it answers."""
        log = config.logger or logging.getLogger(__name__)
        try:
            connection = connector(config.dsn())
        except Exception as exc:
            raise StorageError(f"open database: {exc}") from exc

        try:
            cursor = connection.cursor()
            try:
                cursor.execute("SELECT 1")
            finally:
                cursor.close()
        except Exception as exc:
            try:
                connection.close()
            except Exception:
                pass
            raise StorageError(f"ping database: {exc}") from exc

        log.info("postgres-storage-connected host=%s database=%s", config.host, config.database)
        return cls(connection, logger=log)

    @staticmethod
    def _parameters(opp: Opportunity) -> tuple[Any, ...]:
        first_price = first_size = second_price = second_size = 0.0
        if len(opp.outcomes) >= 2:
            first, second = opp.outcomes[0], opp.outcomes[1]
            first_price, first_size = first.ask_price, first.ask_size
            second_price, second_size = second.ask_price, second.ask_size
        return (
            opp.id,
            opp.market_id,
            opp.market_slug,
            opp.market_question,
            opp.detected_at,
            first_price,
            first_size,
            second_price,
            second_size,
            opp.total_price_sum,
            opp.profit_margin,
            opp.profit_bps,
            opp.max_trade_size,
            opp.estimated_profit,
            opp.total_fees,
            opp.net_profit,
            opp.net_profit_bps,
            opp.config_threshold,
        )

    def store_opportunity(self, opp: Opportunity) -> None:
        """Insert one row for the opportunity and commit it."""
        try:
            cursor = self._connection.cursor()
            try:
                cursor.execute(_INSERT_QUERY, self._parameters(opp))
            finally:
                cursor.close()
            self._connection.commit()
        except Exception as exc:
            raise StorageError(f"insert opportunity: {exc}") from exc

        self.logger.debug(
            "opportunity-stored opportunity-id=%s market-slug=%s outcome-count=%d",
            opp.id,
            opp.market_slug,
            len(opp.outcomes),
        )

    def close(self) -> None:
        """Close the database connection."""
        self.logger.info("closing-postgres-storage")
        try:
            self._connection.close()
        except Exception as exc:
            raise StorageError(f"close database: {exc}") from exc