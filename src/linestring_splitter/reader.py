"""Shapefile feature source with CRS auto-detection."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Protocol

import shapefile
from pyproj import CRS
from pyproj.exceptions import CRSError

from .errors import GeometryTypeError, InputError
from .models import Feature, FieldDef, LayerMetadata, LineGeometry, MultiLineGeometry

logger = logging.getLogger(__name__)

LINE_SHAPE_TYPES = {shapefile.POLYLINE, shapefile.POLYLINEZ, shapefile.POLYLINEM}


class FeatureSource(Protocol):
    """A layer of features read sequentially until exhausted."""

    metadata: LayerMetadata

    def __iter__(self) -> Iterator[Feature]: ...

    def close(self) -> None: ...


def detect_crs(prj_source: str | Path | None) -> CRS | None:
    """Parse a CRS from a .prj WKT string or file path, or None when absent or unparsable."""
    if prj_source is None:
        return None

    wkt = prj_source if isinstance(prj_source, str) else ""
    if isinstance(prj_source, Path):
        if not prj_source.exists():
            return None
        wkt = prj_source.read_text()

    if not wkt.strip():
        return None

    try:
        return CRS.from_wkt(wkt)
    except CRSError:
        logger.warning("Could not parse coordinate reference system, ignoring it")
        return None


def crs_fields(crs: CRS | None) -> dict:
    """LayerMetadata keyword arguments describing ``crs``."""
    if crs is None:
        return {}
    return {
        "crs_epsg": crs.to_epsg(),
        "crs_name": crs.name,
        "crs_wkt": crs.to_wkt("WKT1_ESRI") or crs.to_wkt(),
        "is_geographic": crs.is_geographic,
    }


class ShapefileSource:
    """Reads line and multi-line features from an ESRI shapefile."""

    def __init__(self, shp_path: str | Path):
        shp_path = Path(shp_path)
        base = shp_path.with_suffix("") if shp_path.suffix.lower() == ".shp" else shp_path
        try:
            self._reader = shapefile.Reader(str(base))
        except (shapefile.ShapefileException, OSError) as exc:
            raise InputError(f"Open of {shp_path} failed: {exc}") from exc

        if self._reader.shapeType not in LINE_SHAPE_TYPES:
            type_name = self._reader.shapeTypeName
            self._reader.close()
            raise GeometryTypeError(
                f"Cannot work with {type_name} shapes, only lines and multi-lines are supported"
            )

        prj_path = base.with_name(base.name + ".prj")
        crs = detect_crs(prj_path if prj_path.exists() else None)
        fields = [
            FieldDef(name=f[0], type=f[1], size=f[2], decimal=f[3])
            for f in self._reader.fields[1:]  # skip DeletionFlag
        ]
        self.metadata = LayerMetadata(
            name=base.name,
            geometry_type="line",
            fields=fields,
            **crs_fields(crs),
        )

    def __iter__(self) -> Iterator[Feature]:
        for shape_rec in self._reader.iterShapeRecords():
            yield Feature(
                geometry=_shape_geometry(shape_rec.shape),
                attributes=list(shape_rec.record),
            )

    def close(self) -> None:
        self._reader.close()

    def __enter__(self) -> ShapefileSource:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def _shape_geometry(shape: shapefile.Shape) -> LineGeometry | MultiLineGeometry | None:
    """Convert a pyshp polyline shape into a geometry, dropping Z/M values."""
    if shape.shapeType == shapefile.NULL or not shape.points:
        return None

    part_starts = list(shape.parts) or [0]
    parts = []
    for part_idx, start in enumerate(part_starts):
        end = part_starts[part_idx + 1] if part_idx + 1 < len(part_starts) else len(shape.points)
        parts.append([(x, y) for x, y, *_ in shape.points[start:end]])

    if len(parts) == 1:
        return LineGeometry(coordinates=parts[0])
    return MultiLineGeometry(parts=parts)

