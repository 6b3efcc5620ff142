"""
Profit/Loss Log.

Append-only plain-text log of realized P/L, one timestamped line per
message. Write-only: the bot never reads it back.
"""

from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

from fuzzygrid.core import get_logger

logger = get_logger(__name__)


class ProfitLossLogger:
    """
    Appends `<ISO-8601 UTC timestamp> - <message>` lines to a text file.

    Write failures are logged and swallowed.

    Example:
        >>> pnl = ProfitLossLogger("profit_loss_logs.txt")
        >>> pnl.log_close("DOGEUSDT", Decimal("1.25"))
        >>> pnl.log_totals(Decimal("1.25"), Decimal("0"))
    """

    def __init__(self, path: str | Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def log(self, message: str) -> None:
        """Append one timestamped line."""
        timestamp = datetime.now(timezone.utc).isoformat()
        line = f"{timestamp} - {message}\n"
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            logger.error(f"Failed to write P/L log {self._path}: {e}")

    def log_close(self, symbol: str, pnl: Decimal) -> None:
        """Record the P/L of a closed position."""
        label = "Profit" if pnl > 0 else "Loss"
        self.log(f"{label} from position on {symbol}: {abs(pnl):.2f} USDT")

    def log_totals(self, total_profit: Decimal, total_loss: Decimal) -> None:
        """Record running session totals."""
        self.log(f"Total Profit: {total_profit:.2f} USDT")
        self.log(f"Total Loss: {total_loss:.2f} USDT")
