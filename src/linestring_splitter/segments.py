"""Cutting polylines into segments no longer than a maximum length."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import Any

from .distance import DistanceModel
from .models import Polyline, Segment

# Closed rings with more vertices than this are always kept.
RING_VERTEX_LIMIT = 5


def is_closed(polyline: Polyline) -> bool:
    return len(polyline) > 1 and tuple(polyline[0]) == tuple(polyline[-1])


def is_kept_ring(polyline: Polyline) -> bool:
    """A closed ring with enough vertices to be a real feature rather than an artifact."""
    return is_closed(polyline) and len(polyline) > RING_VERTEX_LIMIT


class LineSplitter:
    """Splits polylines at existing vertices once the walked length exceeds ``max_length``."""

    def __init__(self, distance: DistanceModel, min_length: float = 200, max_length: float = 2000):
        self.distance = distance
        self.min_length = min_length
        self.max_length = max_length

    def should_skip(self, polyline: Polyline) -> bool:
        """True for short lines and short closed rings with few vertices.

        A closed ring with more than five vertices is never skipped, whatever
        its length.
        """
        if is_kept_ring(polyline):
            return False
        return self.distance.length(polyline) < self.min_length

    def iter_segments(self, polyline: Polyline, attributes: Sequence[Any] = ()) -> Iterator[Segment]:
        """Yield the segments of ``polyline`` in order.

        A cut happens after the vertex that pushes the accumulated length over
        ``max_length``, so a segment may overshoot by at most its last edge.
        That vertex also starts the next segment.
        """
        if self.should_skip(polyline):
            return
        yield from self.walk(polyline, attributes)

    def walk(self, polyline: Polyline, attributes: Sequence[Any] = ()) -> Iterator[Segment]:
        """Cut ``polyline`` without the short line check. Kept rings come out whole."""
        if is_kept_ring(polyline):
            yield Segment(coordinates=polyline, attributes=list(attributes))
            return

        length = 0.0
        buffer: Polyline = []
        for i, vertex in enumerate(polyline):
            if i > 0:
                length += self.distance.distance(polyline[i - 1], vertex)
            buffer.append(vertex)
            if length > self.max_length:
                yield Segment(coordinates=buffer, attributes=list(attributes))
                buffer = [vertex]
                length = 0.0

        # a single leftover vertex is the end of the previous segment
        if len(buffer) > 1:
            yield Segment(coordinates=buffer, attributes=list(attributes))

    def split(self, polyline: Polyline, attributes: Sequence[Any] = ()) -> list[Segment]:
        return list(self.iter_segments(polyline, attributes))
