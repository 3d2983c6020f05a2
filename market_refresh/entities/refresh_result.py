"""
Entity classes for refresh run results.

SymbolOutcome is what one unit of work returns, RunTally accumulates them
on the aggregating thread, and RefreshResult is the immutable summary handed
to storage and to the caller once the run is over.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from data_layer import CompanyProfile, StockRecord

from ..constants import MAX_REPORTED_ERRORS
from ..exceptions import RefreshError

UNEXPECTED_ERROR_KIND = "unexpected error"


def format_symbol_error(symbol: str, error: BaseException) -> str:
    """'<SYMBOL>: <kind>: <message>' for a failed unit of work."""
    kind = error.kind if isinstance(error, RefreshError) else UNEXPECTED_ERROR_KIND
    message = str(error) or type(error).__name__
    return f"{symbol}: {kind}: {message}"


@dataclass(frozen=True)
class SymbolOutcome:
    """Result of refreshing a single symbol."""
    symbol: str
    record: Optional[StockRecord] = None
    profile: Optional[CompanyProfile] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def succeeded(cls, symbol: str, record: StockRecord,
                  profile: Optional[CompanyProfile] = None) -> 'SymbolOutcome':
        return cls(symbol=symbol, record=record, profile=profile)

    @classmethod
    def failed(cls, symbol: str, error: BaseException) -> 'SymbolOutcome':
        return cls(symbol=symbol, error=format_symbol_error(symbol, error))


class RunTally:
    """Container for the outcomes of one run; owned by the aggregating thread."""

    def __init__(self, total_symbols: int = 0):
        self.total_symbols = total_symbols
        self.records: List[StockRecord] = []
        self.profiles: List[CompanyProfile] = []
        self.errors: List[str] = []
        self._seen: Set[str] = set()

    @property
    def processed(self) -> int:
        return len(self.records)

    @property
    def failed(self) -> int:
        return len(self.errors)

    def add(self, outcome: SymbolOutcome) -> None:
        self._seen.add(outcome.symbol)
        if outcome.ok:
            self.records.append(outcome.record)
            if outcome.profile is not None:
                self.profiles.append(outcome.profile)
        else:
            self.errors.append(outcome.error)

    def fail_missing(self, symbols: Iterable[str], error: BaseException) -> int:
        """Record ``error`` for every symbol that has no outcome yet."""
        missing = [symbol for symbol in symbols if symbol not in self._seen]
        for symbol in missing:
            self.add(SymbolOutcome.failed(symbol, error))
        return len(missing)

    def get_stats(self) -> Dict[str, int]:
        """Get summary statistics."""
        return {
            'total_symbols': self.total_symbols,
            'processed': self.processed,
            'failed': self.failed,
            'pending': self.total_symbols - self.processed - self.failed,
            'new_profiles': len(self.profiles),
        }


@dataclass(frozen=True)
class RefreshResult:
    """
    Immutable summary of one refresh run.

    ``success`` reports run-level completion only: a run in which every
    symbol failed still succeeds. Run-level failures set ``fatal_error`` and
    never appear in ``errors``, so ``len(errors) == failed`` always holds.
    """
    label: str
    exchange: str
    total_symbols: int
    processed: int
    failed: int
    duration_ms: int
    started_at: datetime
    finished_at: datetime
    errors: Tuple[str, ...] = field(default_factory=tuple)
    fatal_error: Optional[str] = None

    def __post_init__(self):
        if self.processed + self.failed != self.total_symbols:
            raise ValueError(
                f"processed ({self.processed}) + failed ({self.failed}) "
                f"must equal total_symbols ({self.total_symbols})"
            )
        if len(self.errors) != self.failed:
            raise ValueError(f"Expected {self.failed} errors, got {len(self.errors)}")

    @property
    def success(self) -> bool:
        return self.fatal_error is None

    @property
    def duration(self) -> str:
        return f"{self.duration_ms / 1000:.1f}s"

    @property
    def failure_rate(self) -> float:
        """Failed share of the run's symbols in percent."""
        if not self.total_symbols:
            return 0.0
        return self.failed / self.total_symbols * 100

    @classmethod
    def from_tally(cls, label: str, exchange: str, tally: RunTally,
                   started_at: datetime, finished_at: datetime, duration_ms: int,
                   fatal_error: Optional[str] = None) -> 'RefreshResult':
        return cls(
            label=label,
            exchange=exchange,
            total_symbols=tally.total_symbols,
            processed=tally.processed,
            failed=tally.failed,
            duration_ms=duration_ms,
            started_at=started_at,
            finished_at=finished_at,
            errors=tuple(tally.errors),
            fatal_error=fatal_error,
        )

    def to_dict(self, max_errors: int = MAX_REPORTED_ERRORS) -> Dict[str, Any]:
        """
        Transport form of the result.

        The error list is capped at ``max_errors`` entries; ``errorCount``
        always carries the full count.
        """
        return {
            'success': self.success,
            'range': self.label,
            'exchange': self.exchange,
            'totalSymbols': self.total_symbols,
            'processed': self.processed,
            'failed': self.failed,
            'duration': self.duration,
            'durationMs': self.duration_ms,
            'errors': list(self.errors[:max_errors]),
            'errorCount': len(self.errors),
            'fatalError': self.fatal_error,
            'startedAt': self.started_at.isoformat(),
            'finishedAt': self.finished_at.isoformat(),
        }
