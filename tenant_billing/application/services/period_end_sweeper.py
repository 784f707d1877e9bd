from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

from .subscription_lifecycle import SubscriptionLifecycle

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SweepReport:
    finalized: List[int] = field(default_factory=list)
    skipped: List[int] = field(default_factory=list)


class PeriodEndSweeper:
    """Finalizes subscriptions flagged to cancel once their period has elapsed."""

    def __init__(self, lifecycle: SubscriptionLifecycle, batch_limit: int = 500) -> None:
        self._lifecycle = lifecycle
        self._batch_limit = batch_limit

    def run(self) -> SweepReport:
        report = SweepReport()
        for due in self._lifecycle.list_due_for_period_end(self._batch_limit):
            if self._lifecycle.finalize_period_end(due.account_id) is None:
                report.skipped.append(due.account_id)
            else:
                report.finalized.append(due.account_id)
        if report.finalized:
            logger.info("Finalized %d period-end cancellation(s)", len(report.finalized))
        return report
