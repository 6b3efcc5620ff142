"""
Unit tests for the profit/loss text log.
"""

import re
from decimal import Decimal

from fuzzygrid.monitoring import ProfitLossLogger

LINE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T[\d:.]+\+00:00 - (.+)$")


def read_messages(path) -> list[str]:
    lines = path.read_text(encoding="utf-8").splitlines()
    messages = []
    for line in lines:
        match = LINE_PATTERN.match(line)
        assert match, f"malformed line: {line!r}"
        messages.append(match.group(1))
    return messages


class TestProfitLossLogger:
    """Tests for ProfitLossLogger."""

    def test_log_appends_timestamped_lines(self, tmp_path):
        path = tmp_path / "pnl.txt"
        pnl = ProfitLossLogger(path)

        pnl.log("first")
        pnl.log("second")

        assert read_messages(path) == ["first", "second"]

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "logs" / "nested" / "pnl.txt"
        ProfitLossLogger(path).log("hello")
        assert path.exists()

    def test_log_close_profit(self, tmp_path):
        path = tmp_path / "pnl.txt"
        ProfitLossLogger(path).log_close("DOGEUSDT", Decimal("1.256"))
        assert read_messages(path) == ["Profit from position on DOGEUSDT: 1.26 USDT"]

    def test_log_close_loss_is_absolute(self, tmp_path):
        path = tmp_path / "pnl.txt"
        ProfitLossLogger(path).log_close("DOGEUSDT", Decimal("-0.5"))
        assert read_messages(path) == ["Loss from position on DOGEUSDT: 0.50 USDT"]

    def test_log_totals(self, tmp_path):
        path = tmp_path / "pnl.txt"
        ProfitLossLogger(path).log_totals(Decimal("3"), Decimal("1.5"))
        assert read_messages(path) == [
            "Total Profit: 3.00 USDT",
            "Total Loss: 1.50 USDT",
        ]

    def test_write_failure_is_swallowed(self, tmp_path):
        """Test that an unwritable path does not raise."""
        # a directory cannot be opened for appending
        ProfitLossLogger(tmp_path).log("ignored")
