"""Batched, transactional writing of segments to a feature sink."""

from __future__ import annotations

import logging

from .errors import SinkError
from .models import Segment
from .sinks import FeatureSink

logger = logging.getLogger(__name__)


class SegmentWriter:
    """Groups segment writes into transactions of bounded size.

    With ``transaction_size == 0`` the whole run is a single transaction.
    Otherwise the transaction is committed and a new one started as soon as
    more than ``transaction_size`` segments were written to it. The counter
    spans the whole run, not single features.
    """

    def __init__(self, sink: FeatureSink, transaction_size: int = 1000):
        if transaction_size < 0:
            raise ValueError("transaction_size must be >= 0")
        self.sink = sink
        self.transaction_size = transaction_size
        self.transaction_count = 0
        self.in_transaction = False
        self.segments_written = 0
        self.commits = 0

    def write(self, segment: Segment) -> None:
        if not self.in_transaction:
            self._start()
        self.sink.write(segment)
        self.segments_written += 1
        if self.transaction_size == 0:
            return
        self.transaction_count += 1
        if self.transaction_count > self.transaction_size:
            self._commit()
            self._start()
            self.transaction_count = 0

    def finalize(self) -> None:
        """Commit whatever is still open and flush the sink."""
        if self.in_transaction:
            self._commit()
        self.sink.close()
        logger.debug("Wrote %d segments in %d commits", self.segments_written, self.commits)

    def _start(self) -> None:
        self.sink.start_transaction()
        self.in_transaction = True

    def _commit(self) -> None:
        try:
            self.sink.commit_transaction()
        except SinkError:
            raise
        except Exception as exc:
            raise SinkError(f"Commit of transaction failed: {exc}") from exc
        self.in_transaction = False
        self.commits += 1
