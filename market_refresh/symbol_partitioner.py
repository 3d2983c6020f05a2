"""
Symbol partitioning for refresh runs.

A refresh run covers either a whole named universe or the alphabetical slice
of one, so that a single run of a large universe fits the scheduler's time
budget.
"""

import logging
from typing import Callable, Dict, Iterable, List, Tuple

from .exceptions import UnknownUniverseError

logger = logging.getLogger(__name__)


def _validate_letter(name: str, letter: str) -> str:
    if not isinstance(letter, str) or len(letter.strip()) != 1 or not letter.strip().isalpha():
        raise ValueError(f"{name} must be a single letter, got {letter!r}")
    return letter.strip().upper()


def normalize_range(start_letter: str, end_letter: str) -> Tuple[str, str]:
    """
    Validate and upper-case a letter range.

    Raises:
        ValueError: If either bound is not a single letter or start > end
    """
    start = _validate_letter("start_letter", start_letter)
    end = _validate_letter("end_letter", end_letter)
    if start > end:
        raise ValueError(f"Invalid range {start}-{end}: start letter must not come after end letter")
    return start, end


def range_label(start_letter: str, end_letter: str) -> str:
    start, end = normalize_range(start_letter, end_letter)
    return f"{start}-{end}"


def filter_symbols_by_range(symbols: Iterable[str], start_letter: str, end_letter: str) -> List[str]:
    """
    Keep the symbols whose first character falls in [start_letter, end_letter].

    Symbols are stripped and upper-cased; blanks are dropped and duplicates
    keep their first position, so the result is deterministic for a given
    input order.

    Args:
        symbols: Ordered universe of ticker symbols
        start_letter: First letter of the range (inclusive)
        end_letter: Last letter of the range (inclusive)

    Returns:
        Ordered list of matching symbols

    Raises:
        ValueError: If the range is invalid
    """
    start, end = normalize_range(start_letter, end_letter)

    seen = set()
    selected: List[str] = []
    for raw_symbol in symbols:
        symbol = (raw_symbol or "").strip().upper()
        if not symbol or symbol in seen:
            continue
        seen.add(symbol)
        if start <= symbol[0] <= end:
            selected.append(symbol)

    return selected


class SymbolPartitioner:
    """
    Resolves the symbol set of a run from named universes.

    Each universe is a zero-argument loader returning an ordered list of
    symbols. Loaders may hit the network; their errors propagate to the
    caller, which treats them as fatal for the run.
    """

    def __init__(self, universes: Dict[str, Callable[[], List[str]]]):
        self._universes = dict(universes)

    @property
    def universe_names(self) -> List[str]:
        return sorted(self._universes)

    def _load(self, universe: str) -> List[str]:
        try:
            loader = self._universes[universe]
        except KeyError:
            raise UnknownUniverseError(universe)
        return list(loader())

    def full_universe(self, universe: str) -> List[str]:
        """Return the whole universe, normalized and de-duplicated."""
        seen = set()
        symbols: List[str] = []
        for raw_symbol in self._load(universe):
            symbol = (raw_symbol or "").strip().upper()
            if symbol and symbol not in seen:
                seen.add(symbol)
                symbols.append(symbol)
        return symbols

    def symbols_in_range(self, universe: str, start_letter: str, end_letter: str) -> List[str]:
        """Return the slice of ``universe`` whose symbols start in the letter range."""
        # Validate before loading so a bad range never costs a provider call
        normalize_range(start_letter, end_letter)
        symbols = filter_symbols_by_range(self._load(universe), start_letter, end_letter)
        logger.info(f"Selected {len(symbols)} {universe} symbols in range "
                    f"{range_label(start_letter, end_letter)}")
        return symbols
