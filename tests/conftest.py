from pathlib import Path

import pytest
import shapefile
from pyproj import CRS

from linestring_splitter.errors import SinkError
from linestring_splitter.models import FieldDef, LayerMetadata

FIELDS = [FieldDef(name="NAME", type="C", size=40), FieldDef(name="LANES", type="N", size=3)]


class MemorySource:
    """In-memory feature source."""

    def __init__(self, features, metadata=None):
        self.features = list(features)
        self.metadata = metadata or LayerMetadata(name="memory", geometry_type="line", fields=FIELDS)
        self.closed = False

    def __iter__(self):
        return iter(self.features)

    def close(self):
        self.closed = True


class MemorySink:
    """In-memory feature sink recording every call in ``events``."""

    def __init__(self, fail_commit=False):
        self.fields = None
        self.events = []
        self.written = []
        self.fail_commit = fail_commit

    def declare_schema(self, fields):
        self.fields = list(fields)
        self.events.append("schema")

    def write(self, segment):
        self.written.append(segment)
        self.events.append("write")

    def start_transaction(self):
        self.events.append("start")

    def commit_transaction(self):
        if self.fail_commit:
            raise SinkError("disk full")
        self.events.append("commit")

    def close(self):
        self.events.append("close")

    def abort(self):
        self.events.append("abort")


def write_shapefile(base: Path, records, shape_type=shapefile.POLYLINE, epsg: int | None = None) -> Path:
    """Write ``records`` of (parts, name, lanes) to a shapefile at ``base`` (no extension).

    ``parts`` is a list of coordinate lists, or None for a null shape. For
    POINT shapefiles it is a single (x, y).
    """
    with shapefile.Writer(str(base), shapeType=shape_type) as w:
        w.field("NAME", "C", 40)
        w.field("LANES", "N", 3, 0)
        for parts, name, lanes in records:
            if parts is None:
                w.null()
            elif shape_type == shapefile.POINT:
                w.point(*parts)
            else:
                w.line([[list(xy) for xy in part] for part in parts])
            w.record(name, lanes)
    if epsg is not None:
        base.with_name(base.name + ".prj").write_text(CRS.from_epsg(epsg).to_wkt("WKT1_GDAL"))
    return base.with_name(base.name + ".shp")


@pytest.fixture
def memory_sink():
    return MemorySink()


@pytest.fixture
def roads_shp(tmp_path):
    """A projected (UTM 33N) road layer: one long line, one multi-line, one stub, one null shape."""
    records = [
        ([[(0, 0), (1000, 0), (2100, 0), (2500, 0)]], "Main Street", 2),
        ([[(0, 100), (0, 600)], [(0, 1000), (0, 1500), (0, 4000)]], "Ring Road", 4),
        ([[(10, 10), (20, 10)]], "Stub", 1),
        (None, "Nothing", 0),
    ]
    return write_shapefile(tmp_path / "roads", records, epsg=32633)


@pytest.fixture
def kml_line_text():
    # 0.01 degrees of longitude on the equator is about 1112 m
    return """\
<?xml version="1.0" encoding="UTF-8"?>
<kml xmlns="http://www.opengis.net/kml/2.2">
  <Document>
    <Placemark>
      <name>Equator</name>
      <LineString>
        <coordinates>0,0,5 0.01,0,5 0.02,0,5 0.03,0,5 0.04,0,5</coordinates>
      </LineString>
    </Placemark>
    <Placemark><name>Marker</name><Point><coordinates>1.0,2.0</coordinates></Point></Placemark>
  </Document>
</kml>"""
