import itertools
from datetime import datetime, timezone
from typing import Optional

from errors import InvalidPrice, InvalidSize, NotFound
from models import ClosedTrade, CloseReason, Position, Stats

def revalue(position: Position, price: float):
    position.current_price = price
    position.pnl_percent = (price - position.entry_price) / position.entry_price * 100
    position.pnl = position.size * position.pnl_percent / 100

class PositionBook:
    def __init__(self):
        self._open: dict[str, Position] = {}
        self._closed: dict[str, Position] = {}
        self._trades: list[ClosedTrade] = []
        self._ids = itertools.count(1)

    def open(self, ticker: str, entry_price: float, size: float, timestamp: Optional[datetime] = None) -> Position:
        if size is None or size <= 0:
            raise InvalidSize(size)
        if entry_price is None or entry_price <= 0:
            raise InvalidPrice(entry_price)

        position = Position(
            id=str(next(self._ids)),
            ticker=ticker.upper(),
            entry_price=entry_price,
            current_price=entry_price,
            size=size,
            pnl=0,
            pnl_percent=0,
            timestamp=timestamp or datetime.now(timezone.utc),
        )
        self._open[position.id] = position
        return position.model_copy()

    def apply_price_tick(self, ticker: str, price: float) -> list[Position]:
        if price is None or price <= 0:
            raise InvalidPrice(price)
        ticker = ticker.upper()
        updated = []
        for position in self._open.values():
            if position.ticker == ticker:
                revalue(position, price)
                updated.append(position.model_copy())
        return updated

    def close(self, position_id: str, reason: CloseReason, exit_price: Optional[float] = None,
              timestamp: Optional[datetime] = None) -> Optional[ClosedTrade]:
        if position_id in self._closed:
            return None
        position = self._open.pop(position_id, None)
        if position is None:
            raise NotFound("position", position_id)

        if exit_price is not None and exit_price > 0:
            revalue(position, exit_price)
        closed_at = timestamp or datetime.now(timezone.utc)
        position.closed_at = closed_at
        position.close_reason = CloseReason(reason)
        self._closed[position_id] = position

        trade = ClosedTrade(
            position_id=position.id,
            ticker=position.ticker,
            size=position.size,
            entry_price=position.entry_price,
            exit_price=position.current_price,
            pnl=position.pnl,
            pnl_percent=position.pnl_percent,
            hold_hours=round((closed_at - position.timestamp).total_seconds() / 3600, 2),
            reason=position.close_reason,
            opened_at=position.timestamp,
            closed_at=closed_at,
        )
        self._trades.append(trade)
        return trade.model_copy()

    def get(self, position_id: str) -> Position:
        position = self._open.get(position_id) or self._closed.get(position_id)
        if position is None:
            raise NotFound("position", position_id)
        return position.model_copy()

    def is_open(self, position_id: str) -> bool:
        return position_id in self._open

    def open_positions(self, ticker: Optional[str] = None) -> list[Position]:
        return [
            p.model_copy() for p in self._open.values()
            if ticker is None or p.ticker == ticker.upper()
        ]

    def tickers(self) -> list[str]:
        seen = []
        for position in self._open.values():
            if position.ticker not in seen:
                seen.append(position.ticker)
        return seen

    def closed_trades(self, limit: Optional[int] = None) -> list[ClosedTrade]:
        trades = [t.model_copy() for t in reversed(self._trades)]
        return trades[:limit] if limit is not None else trades

    def stats(self) -> Stats:
        realized = sum(t.pnl for t in self._trades)
        unrealized = sum(p.pnl for p in self._open.values())
        winners = [t for t in self._trades if t.pnl_percent > 0]

        return Stats(
            total_realized_pnl=round(realized, 2),
            total_unrealized_pnl=round(unrealized, 2),
            total_pnl=round(realized + unrealized, 2),
            win_rate=round(len(winners) / len(self._trades) * 100, 1) if self._trades else 0,
            total_trades=len(self._trades),
            open_positions=len(self._open),
        )

    def __len__(self) -> int:
        return len(self._open)
