"""
Reporting over tests, assignments and attempts.
"""

import math
from typing import Any, Dict

from assessly.assessments.engine import AttemptEngine
from assessly.common.utils import safe_divide


class ReportService:
    """Aggregate statistics for report viewers."""

    def __init__(self, engine: AttemptEngine):
        self.engine = engine
        self.repositories = engine.repositories

    async def overview(self) -> Dict[str, Any]:
        """
        Summarize the assessment catalogue.

        ``avg_score_percent`` is the average score over the average maximum
        score of finished attempts, rounded half up; ``total_violations``
        counts violations on finished attempts.
        """
        await self.engine.expire_overdue()
        repos = self.repositories

        finished = await repos.attempts.list_terminal()
        avg_score = safe_divide(sum(a.score for a in finished), len(finished))
        avg_max_score = safe_divide(sum(a.max_score for a in finished), len(finished))
        percent = safe_divide(avg_score, avg_max_score) * 100

        return {
            'test_count': await repos.tests.count(),
            'assignment_count': await repos.assignments.count(),
            'attempt_count': await repos.attempts.count(),
            'avg_score_percent': int(math.floor(percent + 0.5)) if avg_max_score > 0 else 0,
            'total_violations': sum(len(a.violations) for a in finished),
        }
