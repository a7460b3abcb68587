"""Feature sinks: output drivers with schema declaration and transactional writes."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

import fiona
import shapefile
from fiona.errors import FionaError

from .errors import DriverNotFoundError, SinkError
from .models import FieldDef, LayerMetadata, Segment

logger = logging.getLogger(__name__)

SHAPEFILE_DRIVER = "ESRI Shapefile"
SHAPEFILE_SUFFIXES = (".shp", ".shx", ".dbf", ".prj", ".cpg")


class FeatureSink(Protocol):
    """An output layer. The schema must be declared before the first write."""

    def declare_schema(self, fields: list[FieldDef]) -> None: ...

    def write(self, segment: Segment) -> None: ...

    def start_transaction(self) -> None: ...

    def commit_transaction(self) -> None: ...

    def close(self) -> None: ...

    def abort(self) -> None: ...


class BaseSink:
    """Schema and transaction bookkeeping shared by the file drivers.

    Segments are handed to the driver as soon as they are written; a commit
    flushes the driver. Neither pyshp nor the file formats written through
    fiona can roll back, so a failed run is cleaned up with ``abort()``,
    which removes the partial output.
    """

    def __init__(
        self,
        path: str | Path,
        metadata: LayerMetadata,
        dataset_options: list[tuple[str, str]] | None = None,
        layer_options: list[tuple[str, str]] | None = None,
    ):
        self.path = Path(path)
        self.metadata = metadata
        self.dataset_options = list(dataset_options or [])
        self.layer_options = list(layer_options or [])
        self.fields: list[FieldDef] | None = None
        self.in_transaction = False
        self.closed = False

    def declare_schema(self, fields: list[FieldDef]) -> None:
        if self.fields is not None:
            raise SinkError("Output schema was already declared")
        try:
            self._create_fields(fields)
        except SinkError:
            raise
        except Exception as exc:
            raise SinkError(f"Creating fields of {self.path} failed: {exc}") from exc
        self.fields = list(fields)

    def write(self, segment: Segment) -> None:
        if self.fields is None:
            raise SinkError("Output schema must be declared before writing features")
        if len(segment.attributes) != len(self.fields):
            raise SinkError(
                f"Feature has {len(segment.attributes)} attribute values, schema has {len(self.fields)} fields"
            )
        try:
            self._write(segment)
        except Exception as exc:
            raise SinkError(f"Writing feature failed: {exc}") from exc

    def start_transaction(self) -> None:
        if self.in_transaction:
            raise SinkError("A transaction is already open")
        self.in_transaction = True

    def commit_transaction(self) -> None:
        if not self.in_transaction:
            raise SinkError("No transaction open to commit")
        try:
            self._flush()
        except Exception as exc:
            raise SinkError(f"Commit of transaction failed: {exc}") from exc
        self.in_transaction = False

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self._close()
        except Exception as exc:
            raise SinkError(f"Writing {self.path} failed: {exc}") from exc

    def abort(self) -> None:
        """Release the driver and delete whatever was written so far."""
        if not self.closed:
            self.closed = True
            try:
                self._close()
            except Exception as exc:
                logger.debug("Ignoring error while closing aborted output %s: %s", self.path, exc)
        for path in self._output_files():
            if path.exists():
                path.unlink()
        logger.info("Removed incomplete output %s", self.path)

    def _create_fields(self, fields: list[FieldDef]) -> None:
        raise NotImplementedError

    def _write(self, segment: Segment) -> None:
        raise NotImplementedError

    def _flush(self) -> None:
        raise NotImplementedError

    def _close(self) -> None:
        raise NotImplementedError

    def _output_files(self) -> list[Path]:
        return [self.path]


class ShapefileSink(BaseSink):
    """Writes segments as POLYLINE records of an ESRI shapefile (pyshp).

    Layer option ``ENCODING`` sets the dbf encoding; other options are ignored.
    """

    def __init__(self, path, metadata, dataset_options=None, layer_options=None):
        super().__init__(path, metadata, dataset_options, layer_options)
        self.base = self.path.with_suffix("") if self.path.suffix.lower() == ".shp" else self.path
        encoding = "utf-8"
        for key, value in self.dataset_options + self.layer_options:
            if key.upper() == "ENCODING":
                encoding = value
            else:
                logger.warning("Ignoring unsupported creation option %s=%s", key, value)
        try:
            self._writer = shapefile.Writer(str(self.base), shapeType=shapefile.POLYLINE, encoding=encoding)
        except (shapefile.ShapefileException, OSError, LookupError) as exc:
            raise SinkError(f"Failed to create data source {self.path}: {exc}") from exc

    def _create_fields(self, fields: list[FieldDef]) -> None:
        for field_def in fields:
            try:
                self._writer.field(field_def.name, field_def.type, field_def.size, field_def.decimal)
            except Exception as exc:
                raise SinkError(f"Creating field {field_def.name} failed: {exc}") from exc

    def _write(self, segment: Segment) -> None:
        self._writer.line([[list(xy) for xy in segment.coordinates]])
        self._writer.record(*segment.attributes)

    def _flush(self) -> None:
        # records are already in the files; the header is finalized on close
        pass

    def _close(self) -> None:
        self._writer.close()
        if self.metadata.crs_wkt:
            self._sibling(".prj").write_text(self.metadata.crs_wkt)

    def _sibling(self, suffix: str) -> Path:
        return self.base.with_name(self.base.name + suffix)

    def _output_files(self) -> list[Path]:
        return [self._sibling(suffix) for suffix in SHAPEFILE_SUFFIXES]


def fiona_schema_type(field_def: FieldDef) -> str:
    """Map a dBase field description onto a fiona property type."""
    code = field_def.type.upper()
    if code == "N" and field_def.decimal == 0:
        return f"int:{field_def.size}"
    if code in ("N", "F"):
        return f"float:{field_def.size}.{field_def.decimal}"
    if code == "L":
        return "bool"
    if code == "D":
        return "date"
    if code == "M":
        return "str"
    return f"str:{field_def.size}"


class FionaSink(BaseSink):
    """Writes segments through any OGR driver fiona can write (GeoJSON, GPKG, ...).

    The collection is created once the schema is known. Dataset and layer
    creation options are passed to OGR as keyword options.
    """

    def __init__(self, path, metadata, dataset_options=None, layer_options=None, driver="GeoJSON"):
        super().__init__(path, metadata, dataset_options, layer_options)
        self.driver = driver
        self._collection = None

    def _create_fields(self, fields: list[FieldDef]) -> None:
        schema = {
            "geometry": "LineString",
            "properties": {f.name: fiona_schema_type(f) for f in fields},
        }
        crs = {}
        if self.metadata.crs_epsg is not None:
            crs["crs"] = f"EPSG:{self.metadata.crs_epsg}"
        elif self.metadata.crs_wkt:
            crs["crs_wkt"] = self.metadata.crs_wkt
        options = {key.upper(): value for key, value in self.dataset_options + self.layer_options}
        try:
            self._collection = fiona.open(
                str(self.path),
                "w",
                driver=self.driver,
                schema=schema,
                layer=self.metadata.name,
                **crs,
                **options,
            )
        except (FionaError, OSError, ValueError) as exc:
            raise SinkError(f"Failed to create data source {self.path}: {exc}") from exc
        self._names = [f.name for f in fields]

    def _write(self, segment: Segment) -> None:
        self._collection.write(
            {
                "geometry": {"type": "LineString", "coordinates": [tuple(xy) for xy in segment.coordinates]},
                "properties": dict(zip(self._names, segment.attributes)),
            }
        )

    def _flush(self) -> None:
        self._collection.flush()

    def _close(self) -> None:
        if self._collection is not None:
            self._collection.close()


def writable_drivers() -> dict[str, str]:
    """Lower-cased driver name to OGR driver name, for every driver that can write."""
    drivers = {
        name.lower(): name for name, modes in fiona.supported_drivers.items() if "w" in modes
    }
    drivers[SHAPEFILE_DRIVER.lower()] = SHAPEFILE_DRIVER
    return drivers


def create_sink(
    output_format: str,
    path: str | Path,
    metadata: LayerMetadata,
    dataset_options: list[tuple[str, str]] | None = None,
    layer_options: list[tuple[str, str]] | None = None,
) -> BaseSink:
    """Create an output layer with the driver registered under ``output_format``.

    Shapefiles are written with pyshp, every other format through fiona.
    """
    driver = writable_drivers().get(output_format.strip().lower())
    if driver is None:
        raise DriverNotFoundError(f"Failed to load driver for {output_format}")
    logger.debug("Creating %s output %s", driver, path)
    if driver == SHAPEFILE_DRIVER:
        return ShapefileSink(path, metadata, dataset_options, layer_options)
    return FionaSink(path, metadata, dataset_options, layer_options, driver=driver)
