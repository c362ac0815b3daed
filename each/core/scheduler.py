"""Apply an Action to every record on a bounded worker pool.

Each record moves through these states:

    PENDING -> RENDERED -> CONFIRMED -> EXECUTED
                        |           `-> FAILED
                        `-> SKIPPED (declined by the operator)
    PENDING -> RENDER_FAILED

SKIPPED is a non-error outcome (the operator said no); RENDER_FAILED and
FAILED carry the record's error. One record's failure never changes another
record's outcome.

Concurrency:
    - ``max_procs`` worker threads take records in input order.
    - When the action prompts, rendering the prompt, asking the operator and
      reading the answer happen under one lock, so only one prompt is open at
      a time. The process is launched after the lock is released.
    - run() waits for every record; the record with the lowest index among
      the failures provides the run-level error.
"""

import logging
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO

from each.core.action import Action
from each.core.exceptions import DataError, EachError, UsageError
from each.core.protocols import Record

logger = logging.getLogger(__name__)

Confirm = Callable[[str], bool]
"""Asks the operator a yes/no question; returns True to run the command."""


class RecordState(Enum):
    """Lifecycle states of one record."""

    PENDING = "pending"
    RENDERED = "rendered"
    CONFIRMED = "confirmed"
    EXECUTED = "executed"
    SKIPPED = "skipped"
    RENDER_FAILED = "render_failed"
    FAILED = "failed"


@dataclass
class Outcome:
    """Final state of one record."""

    index: int
    state: RecordState = RecordState.PENDING
    error: EachError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RunReport:
    """Outcomes of one scheduler run, in record order."""

    outcomes: list[Outcome] = field(default_factory=list)

    @property
    def first_error(self) -> EachError | None:
        """Error of the lowest-index failed record, or None."""
        for outcome in self.outcomes:
            if outcome.error is not None:
                return outcome.error
        return None

    def count(self, state: RecordState) -> int:
        return sum(1 for outcome in self.outcomes if outcome.state is state)


class Scheduler:
    """Runs an Action for each record with at most ``max_procs`` at a time."""

    def __init__(
        self,
        action: Action,
        max_procs: int = 1,
        confirm: Confirm | None = None,
        stdout: BinaryIO | None = None,
        stderr: BinaryIO | None = None,
    ) -> None:
        """Create a scheduler.

        Args:
            action: Compiled action applied to every record
            max_procs: Number of worker threads (1 means sequential)
            confirm: Callable asking the operator; required when the action prompts
            stdout: Binary sink for child stdout (default: our stdout)
            stderr: Binary sink for child stderr (default: our stderr)

        Raises:
            UsageError: If max_procs is below 1, or the action prompts and no
                       confirm callable was given
        """
        if max_procs < 1:
            raise UsageError(f"Invalid max-procs: {max_procs} (must be at least 1)", option="--max-procs")
        if action.prompt and confirm is None:
            raise UsageError("Interactive mode needs a way to ask for confirmation", option="--interactive")

        self.action = action
        self.max_procs = max_procs
        self._confirm = confirm
        self._stdout = stdout
        self._stderr = stderr
        self._prompt_lock = threading.Lock()

    def run(self, records: Sequence[Record]) -> RunReport:
        """Process every record and wait for all of them.

        Returns:
            RunReport with one Outcome per record, in record order
        """
        report = RunReport([Outcome(index) for index in range(len(records))])
        if not records:
            return report

        with ThreadPoolExecutor(max_workers=self.max_procs, thread_name_prefix="each") as pool:
            futures = [
                pool.submit(self._process, record, outcome)
                for record, outcome in zip(records, report.outcomes)
            ]
            for future in futures:
                # Per-record errors are kept in outcomes; a failed prompt propagates.
                future.result()

        logger.info(
            "Processed %d records: %d executed, %d skipped, %d failed",
            len(records),
            report.count(RecordState.EXECUTED),
            report.count(RecordState.SKIPPED),
            sum(1 for outcome in report.outcomes if not outcome.ok),
        )
        return report

    def _process(self, record: Record, outcome: Outcome) -> None:
        try:
            invocation = self.action.render(record, outcome.index)
        except DataError as e:
            outcome.state, outcome.error = RecordState.RENDER_FAILED, e
            logger.info("Record %d failed: %s", outcome.index, e)
            return
        outcome.state = RecordState.RENDERED

        if self.action.prompt:
            with self._prompt_lock:
                answer = self._confirm(self.action.describe_prompt(invocation))
            if not answer:
                logger.info("Record %d declined", outcome.index)
                outcome.state = RecordState.SKIPPED
                return
        outcome.state = RecordState.CONFIRMED

        try:
            self.action.execute(invocation, self._stdout, self._stderr, index=outcome.index)
        except DataError as e:
            outcome.state, outcome.error = RecordState.FAILED, e
            logger.info("Record %d failed: %s", outcome.index, e)
            return
        outcome.state = RecordState.EXECUTED
