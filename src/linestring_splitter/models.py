"""Pydantic data models for the linestring splitter."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, field_validator

Coordinate = tuple[float, float]
Polyline = list[Coordinate]


class LineGeometry(BaseModel):
    """A single line."""

    kind: Literal["line"] = "line"
    coordinates: Polyline

    def lines(self) -> list[Polyline]:
        return [self.coordinates]

    def is_empty(self) -> bool:
        return not self.coordinates


class MultiLineGeometry(BaseModel):
    """A set of sibling lines belonging to one feature."""

    kind: Literal["multi-line"] = "multi-line"
    parts: list[Polyline]

    def lines(self) -> list[Polyline]:
        return list(self.parts)

    def is_empty(self) -> bool:
        return not any(self.parts)


Geometry = Annotated[Union[LineGeometry, MultiLineGeometry], Field(discriminator="kind")]


class FieldDef(BaseModel):
    """An attribute field, described with dBase type codes (C, N, F, L, D, M)."""

    name: str
    type: str = "C"
    size: int = 50
    decimal: int = 0


class Feature(BaseModel):
    """A feature read from a source: geometry plus attribute values in schema order."""

    geometry: Geometry | None = None
    attributes: list[Any] = []


class Segment(BaseModel):
    """An output line cut from a feature's polyline."""

    coordinates: Polyline
    attributes: list[Any] = []

    @field_validator("coordinates")
    @classmethod
    def _at_least_two_vertices(cls, value: Polyline) -> Polyline:
        if len(value) < 2:
            raise ValueError("a segment needs at least 2 vertices")
        return value


class LayerMetadata(BaseModel):
    """Metadata about an input layer."""

    name: str
    geometry_type: Literal["line", "multi-line"]
    crs_epsg: int | None = None
    crs_name: str | None = None
    crs_wkt: str | None = None
    is_geographic: bool = False
    fields: list[FieldDef] = []


class SplitterOptions(BaseModel):
    """Run configuration."""

    output_format: str = "ESRI Shapefile"
    transaction_size: int = Field(default=1000, ge=0)
    geographic: bool = False
    min_length: float = Field(default=200, ge=0)
    max_length: float = Field(default=2000, gt=0)
    dataset_creation_options: list[tuple[str, str]] = []
    layer_creation_options: list[tuple[str, str]] = []

    @field_validator("output_format")
    @classmethod
    def _non_empty_format(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("output format must not be empty")
        return value


class RunSummary(BaseModel):
    """Counters collected over one run."""

    features_read: int = 0
    empty_features: int = 0
    polylines: int = 0
    rings_skipped: int = 0
    segments_written: int = 0
    commits: int = 0
