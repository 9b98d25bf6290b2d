"""Concurrent fan-out of one command over several independent remote calls.

``oceanctl compute droplet create web-1 web-2 web-3`` becomes three create
requests running in parallel. Each job renders its own result as soon as it
succeeds; failures are recorded per job and never cancel or roll back the
others. The caller receives a :class:`BatchReport` with every outcome and
decides how to turn it into an exit status, usually via
:meth:`BatchReport.raise_for_failures`.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Generic, Optional, Sequence, TypeVar

from oceanctl.exceptions import BatchError

logger = logging.getLogger(__name__)

J = TypeVar("J")
R = TypeVar("R")


@dataclass
class BatchOutcome(Generic[J, R]):
    """Result of one job: either ``result`` or ``error`` is set."""

    job: J
    result: Optional[R] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchReport(Generic[J, R]):
    """Outcomes of every job, in the order the jobs were submitted."""

    outcomes: list[BatchOutcome[J, R]] = field(default_factory=list)

    @property
    def successes(self) -> list[BatchOutcome[J, R]]:
        return [o for o in self.outcomes if o.ok]

    @property
    def failures(self) -> list[BatchOutcome[J, R]]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def first_error(self) -> Optional[BaseException]:
        failed = self.failures
        return failed[0].error if failed else None

    def raise_for_failures(self) -> None:
        """Raise a :class:`BatchError` naming every failed job, if any failed."""
        failed = self.failures
        if failed:
            raise BatchError(
                [(o.job, o.error) for o in failed if o.error is not None],
                total=len(self.outcomes),
            )


def run_batch(
    jobs: Sequence[J],
    operation: Callable[[J], R],
    on_success: Optional[Callable[[J, R], None]] = None,
) -> BatchReport[J, R]:
    """Run *operation* for every job concurrently and wait for all of them.

    Args:
        jobs: Job inputs, e.g. the resource names to create.
        operation: The remote call performed for one job.
        on_success: Called in the worker with ``(job, result)`` right after
            the job's operation succeeds, typically to display the result.
            An exception raised here counts as that job's failure.

    Returns:
        A report holding one outcome per job. Nothing is raised for failed
        jobs; see :meth:`BatchReport.raise_for_failures`.
    """
    if not jobs:
        return BatchReport()

    def _run(job: J) -> BatchOutcome[J, R]:
        try:
            result = operation(job)
            if on_success is not None:
                on_success(job, result)
        except Exception as exc:
            logger.debug("batch job %r failed: %s", job, exc)
            return BatchOutcome(job=job, error=exc)
        return BatchOutcome(job=job, result=result)

    with ThreadPoolExecutor(max_workers=len(jobs)) as pool:
        futures = [pool.submit(_run, job) for job in jobs]
        outcomes = [future.result() for future in futures]

    return BatchReport(outcomes=outcomes)
