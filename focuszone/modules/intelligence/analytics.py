"""
In-memory archive of ended sessions with summary statistics.
"""

import logging
from typing import List

from focuszone.core.types import SessionRecord

logger = logging.getLogger(__name__)


class SessionHistory:
    """Newest-first list of SessionRecords for the current process."""

    def __init__(self, max_records: int = 0):
        self._records = []
        self._max_records = max_records  # 0 = unbounded

    def archive(self, record: SessionRecord, **_):
        """Add a record. Also usable as a ``session_archived`` listener."""
        self._records.insert(0, record)
        if self._max_records and len(self._records) > self._max_records:
            del self._records[self._max_records:]
        logger.debug("Archived session #%d (%ds)", len(self._records), record.duration_seconds)

    @property
    def records(self) -> List[SessionRecord]:
        return list(self._records)

    def __len__(self):
        return len(self._records)

    def clear(self):
        self._records.clear()

    def get_summary(self) -> dict:
        """Aggregate statistics over all archived sessions."""
        count = len(self._records)
        total_duration = sum(r.duration_seconds for r in self._records)
        total_focused = sum(r.focused_seconds for r in self._records)
        total_distractions = sum(r.distractions for r in self._records)
        percentages = [r.focus_percentage for r in self._records]

        return {
            "total_sessions": count,
            "total_duration_s": total_duration,
            "total_focused_s": total_focused,
            "average_session_s": round(total_duration / count, 1) if count else 0.0,
            "average_focus_pct": round(sum(percentages) / count, 1) if count else 0.0,
            "best_focus_pct": round(max(percentages), 1) if count else 0.0,
            "total_distractions": total_distractions,
            "distractions_per_session": round(total_distractions / count, 2) if count else 0.0,
        }

    def print_summary(self):
        """Print formatted history summary."""
        summary = self.get_summary()
        logger.info("=" * 60)
        logger.info("SESSION HISTORY")
        logger.info("=" * 60)
        logger.info("Sessions:        %d", summary["total_sessions"])
        logger.info("Total Time:      %ds (%ds focused)",
                    summary["total_duration_s"], summary["total_focused_s"])
        logger.info("Avg Session:     %.1fs", summary["average_session_s"])
        logger.info("Avg Focus:       %.1f%%", summary["average_focus_pct"])
        logger.info("Best Focus:      %.1f%%", summary["best_focus_pct"])
        logger.info("Distractions:    %d (%.2f/session)",
                    summary["total_distractions"], summary["distractions_per_session"])
        logger.info("-" * 40)
        for index, record in enumerate(self._records[:10], 1):
            logger.info("  #%-3d %5ds  %5.1f%%  %3d distractions",
                        index, record.duration_seconds, record.focus_percentage,
                        record.distractions)
        logger.info("=" * 60)
