"""
Analysis Driver - Classify name pairs one at a time, retrying until success.

Rows are processed strictly in input order with at most one classifier
call in flight. A failed call is never fatal: the row is retried with
exponential backoff until it succeeds or the run is cancelled, so no row
is ever silently skipped.

Cancellation is cooperative. It is checked before each row starts and
after each backoff sleep; an in-flight call or sleep always runs to
completion.
"""

import logging
import threading
import time
from typing import Callable, Optional, Sequence

from .classifier import EntityClassifier
from .config import DEFAULT_RETRY_POLICY, RetryPolicy
from .exceptions import ClassificationError
from .models import AnalysisResult, Citation, NamePair, ProgressState, RunState

logger = logging.getLogger(__name__)


class CancellationToken:
    """Single-writer stop flag shared between the user and the driver."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def format_retry_message(row_number: int, reason: str, delay_ms: int) -> str:
    """Transient status shown while a row is waiting to be retried."""
    return f"Row {row_number}: {reason}. Retrying in {delay_ms / 1000:g}s..."


class AnalysisRun:
    """
    One pass of the classifier over a list of name pairs.

    Results, citations, progress and the transient error message are
    updated in place as the run advances, so another thread can read
    them (via snapshot()) while run() is executing.
    """

    def __init__(
        self,
        records: Sequence[NamePair],
        classifier: EntityClassifier,
        policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        sleep: Optional[Callable[[float], None]] = None,
        token: Optional[CancellationToken] = None,
    ):
        """
        Args:
            records: Name pairs in file order
            classifier: Performs one classification attempt per call
            policy: Backoff and throttle timings
            sleep: Blocking sleep in seconds (defaults to time.sleep)
            token: Cancellation flag; a fresh one is created if omitted
        """
        self.records = list(records)
        self.classifier = classifier
        self.policy = policy
        self.token = token or CancellationToken()
        self._sleep = sleep or time.sleep

        self.state = RunState.IDLE
        self.results: list[AnalysisResult] = []
        self.citations: list[Citation] = []
        self.progress = ProgressState()
        self.error_message: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    @property
    def is_running(self) -> bool:
        return self.state == RunState.RUNNING

    def cancel(self):
        """Request a stop. Takes effect at the next checkpoint."""
        self.token.cancel()
        logger.info("Cancellation requested for name match run")

    def run(self) -> RunState:
        """
        Process every record, or as many as possible before cancellation.

        Returns:
            RunState.COMPLETED or RunState.STOPPED

        Raises:
            ValueError: No records to process, or run already started
        """
        if not self.records:
            raise ValueError("Cannot start analysis: no rows loaded")
        if self.state != RunState.IDLE:
            raise ValueError(f"Run already {self.state.value}")

        self.results = []
        self.citations = []
        self.error_message = None
        self.progress = ProgressState(completed=0, total=len(self.records))
        self.state = RunState.RUNNING

        logger.info(f"Starting name match analysis of {len(self.records)} rows")

        try:
            for index, pair in enumerate(self.records):
                if self.cancelled:
                    break

                self._process_row(index, pair)

                self.progress.completed += 1
                if self.cancelled:
                    break
                self._sleep(self.policy.row_pause_ms / 1000)
        except Exception as e:
            # Only non-classification failures get here (e.g. a broken sleep)
            self.state = RunState.STOPPED
            logger.error(f"Name match analysis aborted at row {self.progress.completed + 1}: {e}")
            raise

        self.error_message = None
        if self.cancelled:
            self.state = RunState.STOPPED
            logger.info(
                f"Name match analysis stopped after {self.progress.completed}/{self.progress.total} rows "
                f"({len(self.results)} classified)"
            )
        else:
            self.state = RunState.COMPLETED
            logger.info(f"Name match analysis completed: {len(self.results)} rows classified")

        return self.state

    def _process_row(self, index: int, pair: NamePair):
        """Retry one row until it is classified or the run is cancelled."""
        delays = self.policy.delays()
        attempts = 0

        while not self.cancelled:
            attempts += 1
            try:
                classification = self.classifier.classify(pair.original, pair.duplicate)
            except ClassificationError as e:
                delay_ms = next(delays)
                self.error_message = format_retry_message(index + 1, str(e), delay_ms)
                logger.warning(
                    f"Row {index + 1} attempt {attempts} failed: {e} - retrying in {delay_ms}ms"
                )
                self._sleep(delay_ms / 1000)
                continue

            self.results.append(AnalysisResult.from_classification(pair, classification))
            self.citations.extend(classification.citations)
            self.error_message = None
            logger.debug(f"Row {index + 1} classified as {classification.status.value}")
            return

    def snapshot(self) -> dict:
        """Point-in-time copy of the run's observable state."""
        return {
            "state": self.state,
            "results": list(self.results),
            "citations": list(self.citations),
            "progress": ProgressState(self.progress.completed, self.progress.total),
            "error_message": self.error_message,
            "row_count": len(self.records),
        }
