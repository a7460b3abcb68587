"""KMZ/KML feature source: reads LineString placemarks as line features.

KMZ is a ZIP archive containing KML. KML coordinates are always WGS84 (EPSG:4326)
in ``longitude,latitude,altitude`` format, so KML layers are geographic.
"""

from __future__ import annotations

import io
import logging
import zipfile
import xml.etree.ElementTree as ET
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO

from pyproj import CRS

from .errors import GeometryTypeError, InputError
from .models import Feature, FieldDef, LayerMetadata, LineGeometry, MultiLineGeometry, Polyline
from .reader import crs_fields

logger = logging.getLogger(__name__)

KML_NS = "{http://www.opengis.net/kml/2.2}"
NAME_FIELD = FieldDef(name="name", type="C", size=254)


class KmlSource:
    """Reads the line placemarks of a KMZ (or plain KML) document.

    Args:
        file: Path to a .kmz/.kml file, or a file-like object containing KMZ/KML bytes.
        name: Layer name; defaults to the file stem.
    """

    def __init__(self, file: str | Path | BinaryIO, name: str | None = None):
        try:
            self._features = _extract_features(ET.fromstring(_load_kml(file)))
        except (OSError, zipfile.BadZipFile, ET.ParseError, ValueError) as exc:
            raise InputError(f"Open of {file} failed: {exc}") from exc

        if not self._features:
            raise GeometryTypeError("No LineString geometry found in KML document")

        if name is None:
            name = Path(file).stem if isinstance(file, (str, Path)) else "kml"
        multi = any(isinstance(f.geometry, MultiLineGeometry) for f in self._features)
        self.metadata = LayerMetadata(
            name=name,
            geometry_type="multi-line" if multi else "line",
            fields=[NAME_FIELD],
            **crs_fields(CRS.from_epsg(4326)),
        )

    def __iter__(self) -> Iterator[Feature]:
        return iter(self._features)

    def close(self) -> None:
        self._features = []

    def __enter__(self) -> KmlSource:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def _load_kml(file: str | Path | BinaryIO) -> bytes:
    """Return the KML document of a .kml file or of a KMZ archive (doc.kml, else the first .kml entry)."""
    data = Path(file).read_bytes() if isinstance(file, (str, Path)) else file.read()
    archive = io.BytesIO(data)
    if not zipfile.is_zipfile(archive):
        return data
    with zipfile.ZipFile(archive) as zf:
        entries = sorted(
            (n for n in zf.namelist() if n.lower().endswith(".kml")),
            key=lambda n: n.lower() != "doc.kml",
        )
        if not entries:
            raise ValueError("No .kml file found in KMZ archive")
        return zf.read(entries[0])


def _extract_features(root: ET.Element) -> list[Feature]:
    """Turn every Placemark holding LineStrings into a feature.

    A Placemark with one LineString is a line, one with several (inside a
    MultiGeometry) is a multi-line. Placemarks without lines are ignored.
    """
    features: list[Feature] = []
    for placemark in root.iter(f"{KML_NS}Placemark"):
        lines: list[Polyline] = []
        for line in placemark.iter(f"{KML_NS}LineString"):
            coords_elem = line.find(f"{KML_NS}coordinates")
            if coords_elem is not None and coords_elem.text:
                lines.append(_parse_coordinates_text(coords_elem.text))
        if not lines:
            continue

        name_elem = placemark.find(f"{KML_NS}name")
        name = name_elem.text.strip() if name_elem is not None and name_elem.text else None

        if placemark.find(f"{KML_NS}MultiGeometry") is not None:
            geometry = MultiLineGeometry(parts=lines)
        else:
            geometry = LineGeometry(coordinates=lines[0])
        features.append(Feature(geometry=geometry, attributes=[name]))

    logger.debug("Found %d line placemarks", len(features))
    return features


def _parse_coordinates_text(text: str) -> Polyline:
    """Parse a KML ``<coordinates>`` text block.

    Format: ``lon,lat[,alt] lon,lat[,alt] ...`` (whitespace-separated tuples).
    Altitudes are dropped.
    """
    coords: Polyline = []
    for token in text.strip().split():
        parts = token.split(",")
        if len(parts) < 2:
            continue
        coords.append((float(parts[0]), float(parts[1])))
    return coords
