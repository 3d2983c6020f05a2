"""
Refresh status report: how fresh the stored market data is.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .constants import STALE_AFTER_HOURS

logger = logging.getLogger(__name__)

STATUS_HEALTHY = "healthy"
STATUS_STALE = "stale"
STATUS_ERROR = "error"


def build_refresh_status(store: Any,
                         now: Optional[datetime] = None,
                         stale_after_hours: float = STALE_AFTER_HOURS,
                         history_limit: int = 10) -> Dict[str, Any]:
    """
    Summarize the age of the stored data and the latest refresh runs.

    Args:
        store: MarketDataStore, or any object with the same read methods
        now: Reference time, defaults to the current UTC time
        stale_after_hours: Age after which data counts as stale
        history_limit: Number of recent runs to include

    Returns:
        Status document; ``status`` is 'healthy', 'stale' or 'error'
    """
    now = now or datetime.now(timezone.utc)

    try:
        last_updated = store.get_last_updated()
        stock_count = store.get_stock_count()
        recent_runs = store.get_run_history(limit=history_limit)
    except Exception as e:
        logger.error(f"Could not read refresh status: {e}")
        return {'status': STATUS_ERROR, 'error': str(e)}

    data_age_hours = None
    if last_updated is not None:
        if last_updated.tzinfo is None:
            last_updated = last_updated.replace(tzinfo=timezone.utc)
        data_age_hours = round((now - last_updated).total_seconds() / 3600, 1)

    is_stale = data_age_hours is None or data_age_hours > stale_after_hours

    return {
        'status': STATUS_STALE if is_stale else STATUS_HEALTHY,
        'data': {
            'lastUpdated': last_updated.isoformat() if last_updated else None,
            'dataAgeHours': data_age_hours,
            'stockCount': stock_count,
            'isStale': is_stale,
        },
        'recentRuns': [run.to_dict() for run in recent_runs],
    }
