"""Tests for transaction batching of segment writes."""

import pytest

from linestring_splitter import Segment, SegmentWriter
from linestring_splitter.errors import SinkError

from conftest import MemorySink


def _segment(i=0):
    return Segment(coordinates=[(i, 0), (i + 1, 0)], attributes=[])


class TestTransactionBatching:
    def test_commit_after_counter_exceeds_size(self, memory_sink):
        writer = SegmentWriter(memory_sink, transaction_size=2)
        for i in range(5):
            writer.write(_segment(i))
        writer.finalize()
        assert memory_sink.events == [
            "start", "write", "write", "write", "commit",
            "start", "write", "write", "commit",
            "close",
        ]
        assert writer.commits == 2
        assert writer.segments_written == 5

    def test_zero_means_single_transaction(self, memory_sink):
        writer = SegmentWriter(memory_sink, transaction_size=0)
        for i in range(2500):
            writer.write(_segment(i))
        writer.finalize()
        assert memory_sink.events.count("start") == 1
        assert memory_sink.events.count("commit") == 1
        assert memory_sink.events[-2:] == ["commit", "close"]

    def test_no_writes_no_transaction(self, memory_sink):
        writer = SegmentWriter(memory_sink, transaction_size=10)
        writer.finalize()
        assert memory_sink.events == ["close"]
        assert writer.commits == 0

    def test_commit_exactly_at_boundary_leaves_empty_transaction(self, memory_sink):
        writer = SegmentWriter(memory_sink, transaction_size=1)
        writer.write(_segment())
        writer.write(_segment())
        writer.finalize()
        # the transaction reopened after the commit is committed empty at the end
        assert memory_sink.events == ["start", "write", "write", "commit", "start", "commit", "close"]

    def test_commit_failure_is_fatal(self):
        writer = SegmentWriter(MemorySink(fail_commit=True), transaction_size=0)
        writer.write(_segment())
        with pytest.raises(SinkError, match="disk full"):
            writer.finalize()

    def test_unexpected_commit_error_becomes_sink_error(self, memory_sink):
        def broken_commit():
            raise RuntimeError("lock lost")

        memory_sink.commit_transaction = broken_commit
        writer = SegmentWriter(memory_sink, transaction_size=1)
        writer.write(_segment())
        with pytest.raises(SinkError, match="lock lost"):
            writer.write(_segment())

    def test_negative_size_rejected(self, memory_sink):
        with pytest.raises(ValueError):
            SegmentWriter(memory_sink, transaction_size=-1)
