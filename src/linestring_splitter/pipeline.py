"""End-to-end splitting of a line layer into a new output layer."""

from __future__ import annotations

import logging
from pathlib import Path

from .distance import DistanceModel
from .errors import InputError
from .kml_reader import KmlSource
from .models import RunSummary, SplitterOptions
from .reader import FeatureSource, ShapefileSource
from .segments import LineSplitter
from .sinks import FeatureSink, create_sink
from .writer import SegmentWriter

logger = logging.getLogger(__name__)


def open_source(path: str | Path) -> FeatureSource:
    """Open the layer of the dataset at ``path``, chosen by file extension."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix in (".kml", ".kmz"):
        return KmlSource(path)
    if suffix in (".shp", ""):
        return ShapefileSource(path)
    raise InputError(f"Open of {path} failed: unsupported input format {suffix!r}")


def run(source: FeatureSource, sink: FeatureSink, options: SplitterOptions) -> RunSummary:
    """Split every feature of ``source`` and write the segments to ``sink``.

    The sink is finalized (last commit, flush) before returning.
    """
    metadata = source.metadata
    geographic = metadata.is_geographic or options.geographic
    if metadata.crs_wkt is None and not options.geographic:
        logger.warning("Input %s has no coordinate reference system, using planar distances", metadata.name)
    distance = DistanceModel(geographic=geographic)
    splitter = LineSplitter(distance, min_length=options.min_length, max_length=options.max_length)
    logger.info(
        "Splitting layer %s (%s, CRS %s) with %r, max length %s, min ring length %s",
        metadata.name,
        metadata.geometry_type,
        metadata.crs_name or "unknown",
        distance,
        options.max_length,
        options.min_length,
    )

    sink.declare_schema(metadata.fields)
    writer = SegmentWriter(sink, options.transaction_size)
    summary = RunSummary()

    for feature in source:
        summary.features_read += 1
        if feature.geometry is None or feature.geometry.is_empty():
            summary.empty_features += 1
            continue
        for polyline in feature.geometry.lines():
            summary.polylines += 1
            if splitter.should_skip(polyline):
                summary.rings_skipped += 1
                logger.debug("Skipping short line of %d vertices in feature %d", len(polyline), summary.features_read)
                continue
            for segment in splitter.walk(polyline, feature.attributes):
                writer.write(segment)

    writer.finalize()
    summary.segments_written = writer.segments_written
    summary.commits = writer.commits
    logger.info(
        "Read %d features, skipped %d short lines, wrote %d segments",
        summary.features_read,
        summary.rings_skipped,
        summary.segments_written,
    )
    return summary


def split_file(input_path: str | Path, output_path: str | Path, options: SplitterOptions | None = None) -> RunSummary:
    """Split the line layer at ``input_path`` into a new dataset at ``output_path``.

    If the run fails the partial output is removed, so a dataset is either
    complete or absent.
    """
    options = options or SplitterOptions()
    source = open_source(input_path)
    try:
        sink = create_sink(
            options.output_format,
            output_path,
            source.metadata,
            options.dataset_creation_options,
            options.layer_creation_options,
        )
        try:
            return run(source, sink, options)
        except BaseException:
            sink.abort()
            raise
    finally:
        source.close()
