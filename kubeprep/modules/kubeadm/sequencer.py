"""Ordered, fail-fast execution of provisioning stages.

A run is a fixed list of named stages executed strictly in order. The first
stage that raises ends the run: its failure is recorded, nothing after it
executes and nothing before it is rolled back. Re-running the whole sequence
after fixing the cause is the recovery path, so every stage action must be
safe to execute more than once.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Sequence

from ...errors import BootstrapCancelled, StageFailed
from .models import BootstrapContext, SequenceReport, StageResult

logger = logging.getLogger("kubeprep.sequencer")

StageAction = Callable[[BootstrapContext], None]


@dataclass(frozen=True)
class Stage:
    """A named provisioning step."""
    name: str
    action: StageAction
    description: str = ''


class StageSequencer:
    """Runs stages in declared order and stops at the first failure."""

    def __init__(self, stages: Sequence[Stage]):
        names = [stage.name for stage in stages]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate stage names: {', '.join(duplicates)}")
        self._stages = tuple(stages)

    @property
    def stages(self) -> List[Stage]:
        return list(self._stages)

    def run(self, context: BootstrapContext) -> SequenceReport:
        """Execute every stage against ``context``.

        Returns:
            SequenceReport: One result per executed stage; if the run failed,
            the last result is the failure
        """
        report = SequenceReport(role=context.role)
        total = len(self._stages)

        for index, stage in enumerate(self._stages, 1):
            started_at = datetime.now()
            if context.cancelled:
                error = BootstrapCancelled(f"Run cancelled before stage '{stage.name}'")
                logger.error(f"🛑 {error}")
                report.add(StageResult.failed(stage.name, started_at, error))
                return report

            logger.info(f"▶️  [{index}/{total}] {stage.description or stage.name}")
            try:
                stage.action(context)
            except Exception as e:
                failure = e if isinstance(e, BootstrapCancelled) else StageFailed(stage.name, e)
                logger.error(f"❌ ERROR: {failure}")
                logger.debug("Stage %s traceback", stage.name, exc_info=True)
                report.add(StageResult.failed(stage.name, started_at, failure))
                return report

            result = StageResult.ok(stage.name, started_at)
            report.add(result)
            logger.info(f"✅ [{index}/{total}] {stage.name} completed in {result.duration:.1f}s")

        return report
