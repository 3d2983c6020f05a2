from .market_data import Growth, Quote
from .refresh_result import RefreshResult, SymbolOutcome

__all__ = ["Growth", "Quote", "RefreshResult", "SymbolOutcome"]
