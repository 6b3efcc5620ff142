# Monitoring module - profit/loss log
from .pnl_logger import ProfitLossLogger

__all__ = ["ProfitLossLogger"]
