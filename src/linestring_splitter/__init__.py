"""Split line datasets into segments of bounded length."""

from .distance import EARTH_RADIUS_IN_METERS, DistanceModel
from .kml_reader import KmlSource
from .models import (
    Feature,
    FieldDef,
    LayerMetadata,
    LineGeometry,
    MultiLineGeometry,
    RunSummary,
    Segment,
    SplitterOptions,
)
from .pipeline import open_source, run, split_file
from .reader import ShapefileSource, detect_crs
from .segments import LineSplitter
from .sinks import FionaSink, ShapefileSink, create_sink
from .writer import SegmentWriter

__all__ = [
    "EARTH_RADIUS_IN_METERS",
    "DistanceModel",
    "Feature",
    "FieldDef",
    "FionaSink",
    "KmlSource",
    "LayerMetadata",
    "LineGeometry",
    "LineSplitter",
    "MultiLineGeometry",
    "RunSummary",
    "Segment",
    "SegmentWriter",
    "ShapefileSink",
    "ShapefileSource",
    "SplitterOptions",
    "create_sink",
    "detect_crs",
    "open_source",
    "run",
    "split_file",
]
