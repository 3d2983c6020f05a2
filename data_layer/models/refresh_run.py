"""
Refresh run model: one persisted row of run history.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any, List

from ..exceptions import ValidationError

# Runs keep only a sample of their per-symbol errors
ERROR_SAMPLE_SIZE = 20


@dataclass
class RefreshRun:
    """
    Represents the outcome of one refresh run as stored in ``refresh_runs``.

    Attributes:
        label: Range label ('A-K') or universe name ('TLV')
        exchange: Exchange the run refreshed
        success: Whether the run completed without a fatal error
        total_symbols: Symbols in the run
        processed: Symbols refreshed successfully
        failed: Symbols that failed
        duration_ms: Wall-clock duration in milliseconds
        started_at: When the run started (UTC)
        finished_at: When the run finished (UTC)
        error_sample: First per-symbol errors of the run
        fatal_error: Run-level fatal error message, if any
        id: Database identifier, set once stored
    """
    label: str
    exchange: str
    success: bool
    total_symbols: int
    processed: int
    failed: int
    duration_ms: int
    started_at: datetime
    finished_at: datetime
    error_sample: List[str] = field(default_factory=list)
    fatal_error: Optional[str] = None
    id: Optional[int] = None

    def __post_init__(self):
        self.validate()

    def validate(self):
        """
        Validate run counters.

        Raises:
            ValidationError: If validation fails
        """
        if not self.label:
            raise ValidationError("label", self.label, "Label cannot be empty")

        for name in ("total_symbols", "processed", "failed", "duration_ms"):
            if getattr(self, name) < 0:
                raise ValidationError(name, getattr(self, name), f"{name} cannot be negative")

        if self.processed + self.failed != self.total_symbols:
            raise ValidationError(
                "total_symbols",
                self.total_symbols,
                f"processed ({self.processed}) + failed ({self.failed}) must equal total_symbols"
            )

    @classmethod
    def from_result(cls, result: Any) -> 'RefreshRun':
        """
        Build a history row from a finished refresh result.

        Args:
            result: Object exposing the RefreshResult attributes

        Returns:
            RefreshRun ready to be inserted
        """
        return cls(
            label=result.label,
            exchange=result.exchange,
            success=result.success,
            total_symbols=result.total_symbols,
            processed=result.processed,
            failed=result.failed,
            duration_ms=result.duration_ms,
            started_at=result.started_at,
            finished_at=result.finished_at,
            error_sample=list(result.errors[:ERROR_SAMPLE_SIZE]),
            fatal_error=result.fatal_error,
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the run to its JSON-friendly form.

        Returns:
            Dictionary representation of the run
        """
        return {
            'id': self.id,
            'label': self.label,
            'exchange': self.exchange,
            'success': self.success,
            'totalSymbols': self.total_symbols,
            'processed': self.processed,
            'failed': self.failed,
            'durationMs': self.duration_ms,
            'startedAt': self.started_at.isoformat(),
            'finishedAt': self.finished_at.isoformat(),
            'errors': list(self.error_sample),
            'fatalError': self.fatal_error,
        }

    def __repr__(self) -> str:
        return (f"RefreshRun(label='{self.label}', success={self.success}, "
                f"processed={self.processed}, failed={self.failed})")
