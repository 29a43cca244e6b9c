"""OpenNGC catalog source.

The NGC/IC database is published as a semicolon-delimited text file. Header
names are resolved once per fetch into a :class:`ColumnMap`; rows that cannot
be turned into a usable :class:`Target` are recorded as :class:`SkippedRow`
rather than silently dropped.
"""

import csv
import http.client
import io
import logging
import socket
import time
from dataclasses import dataclass, field
from pathlib import Path
from urllib.error import HTTPError, URLError
from urllib.parse import urlparse
from urllib.request import urlopen

from .base import CatalogProvider
from nightframe.config import DEFAULT_OPENNGC_URL
from nightframe.errors import UpstreamFetchError
from nightframe.recommender.astro import parse_dec_dms, parse_ra_hms
from nightframe.recommender.types import Target
from nightframe.util.format import deg_to_dms, hours_to_hms

logger = logging.getLogger(__name__)

DEFAULT_SIZE_DEG = 0.5
READ_CHUNK_BYTES = 64 * 1024

COLUMN_ALIASES = {
    "name": ("Name", "Object", "ID", "NGC"),
    "type": ("Type",),
    "ra": ("RA", "RAJ2000"),
    "dec": ("Dec", "DEJ2000", "DecJ2000"),
    "major_axis": ("MajAx", "MajAxis", "MajorAxis", "Size", "Dim"),
    "v_mag": ("V-Mag", "Vmag", "magV", "Mag"),
    "b_mag": ("B-Mag", "Bmag"),
    "messier": ("M",),
    "common_names": ("Common names", "CommonNames"),
}
REQUIRED_COLUMNS = ("name", "ra", "dec")

SKIPPED_TYPES = {"*", "**", "*ASS", "DUP", "NONEX", "NOVA", "OTHER"}

TYPE_NAMES = {
    "G": "Galaxy",
    "GPAIR": "Galaxy Pair",
    "GTRPL": "Galaxy Triplet",
    "GGROUP": "Group of Galaxies",
    "OCL": "Open Cluster",
    "GCL": "Globular Cluster",
    "CL+N": "Emission Nebula",
    "HII": "Emission Nebula",
    "EMN": "Emission Nebula",
    "NEB": "Emission Nebula",
    "RFN": "Reflection Nebula",
    "DRKN": "Dark Nebula",
    "PN": "Planetary Nebula",
    "SNR": "Supernova Remnant",
}


@dataclass(frozen=True)
class SkippedRow:
    line: int
    reason: str


@dataclass
class ParseResult:
    targets: list[Target] = field(default_factory=list)
    skipped: list[SkippedRow] = field(default_factory=list)


@dataclass(frozen=True)
class ColumnMap:
    name: int
    ra: int
    dec: int
    type: int | None = None
    major_axis: int | None = None
    v_mag: int | None = None
    b_mag: int | None = None
    messier: int | None = None
    common_names: int | None = None

    @classmethod
    def from_header(cls, header: list[str]) -> "ColumnMap":
        lookup = {h.strip().lower(): idx for idx, h in enumerate(header)}
        resolved: dict[str, int | None] = {}
        for fld, aliases in COLUMN_ALIASES.items():
            resolved[fld] = next((lookup[a.lower()] for a in aliases if a.lower() in lookup), None)
        missing = [fld for fld in REQUIRED_COLUMNS if resolved[fld] is None]
        if missing:
            raise UpstreamFetchError(f"OpenNGC header missing required columns: {', '.join(missing)}")
        return cls(**resolved)


class OpenNgcProvider(CatalogProvider):
    name = "openngc"

    def __init__(self, source: str = DEFAULT_OPENNGC_URL, timeout_s: float = 10.0) -> None:
        self.source = source
        self.timeout_s = timeout_s

    def list_targets(self) -> list[Target]:
        return self.fetch().targets

    def fetch(self) -> ParseResult:
        logger.info("Fetching OpenNGC catalog from %s", self.source)
        text = self._read_source()
        result = parse_openngc_text(text)
        logger.info(
            "OpenNGC catalog parsed: %d targets, %d rows skipped",
            len(result.targets),
            len(result.skipped),
        )
        return result

    def _read_source(self) -> str:
        parsed = urlparse(self.source)
        if parsed.scheme in ("http", "https"):
            try:
                data = self._download()
            except HTTPError as e:
                raise UpstreamFetchError(f"OpenNGC fetch failed {e.code}") from e
            except (URLError, socket.timeout, OSError, http.client.HTTPException, ValueError) as e:
                raise UpstreamFetchError(f"OpenNGC fetch failed: {e}") from e
            return data.decode("utf-8", errors="ignore")
        path = Path(self.source).expanduser()
        if not path.exists():
            raise UpstreamFetchError(f"OpenNGC source not found: {self.source}")
        return path.read_text(encoding="utf-8", errors="ignore")

    def _download(self) -> bytes:
        # urlopen's timeout is per socket call; the deadline bounds the whole body.
        deadline = time.monotonic() + self.timeout_s
        chunks: list[bytes] = []
        with urlopen(self.source, timeout=self.timeout_s) as resp:
            while True:
                chunk = resp.read(READ_CHUNK_BYTES)
                if not chunk:
                    break
                chunks.append(chunk)
                if time.monotonic() > deadline:
                    raise UpstreamFetchError(f"OpenNGC fetch exceeded {self.timeout_s:g}s")
        return b"".join(chunks)


def parse_openngc_text(text: str) -> ParseResult:
    sample = text[:4096]
    delimiter = ";" if sample.count(";") > sample.count(",") else ","
    reader = csv.reader(io.StringIO(text), delimiter=delimiter)
    result = ParseResult()
    columns: ColumnMap | None = None
    try:
        for line_no, row in enumerate(reader, start=1):
            if not row or not any(cell.strip() for cell in row) or row[0].startswith("#"):
                continue
            if columns is None:
                columns = ColumnMap.from_header(row)
                continue
            target, reason = _target_from_row(row, columns)
            if target is None:
                result.skipped.append(SkippedRow(line=line_no, reason=reason))
                continue
            result.targets.append(target)
    except csv.Error as e:
        raise UpstreamFetchError(f"OpenNGC source malformed near line {reader.line_num}: {e}") from e
    if columns is None:
        raise UpstreamFetchError("OpenNGC source is empty")
    return result


def _target_from_row(row: list[str], columns: ColumnMap) -> tuple[Target | None, str]:
    name = _safe_get(row, columns.name)
    if not name:
        return None, "missing name"
    raw_type = (_safe_get(row, columns.type) or "").upper()
    if raw_type in SKIPPED_TYPES:
        return None, f"excluded type {raw_type}"
    ra_raw = _safe_get(row, columns.ra)
    dec_raw = _safe_get(row, columns.dec)
    if not ra_raw or not dec_raw:
        return None, "missing coordinates"
    ra = parse_ra_hms(ra_raw)
    dec = parse_dec_dms(dec_raw)
    if not ra.ok:
        return None, f"unparseable RA {ra_raw!r}"
    if not dec.ok:
        return None, f"unparseable Dec {dec_raw!r}"

    maj_ax = _parse_float(_safe_get(row, columns.major_axis))
    size_deg = round(maj_ax / 60.0, 2) if maj_ax is not None and maj_ax > 0 else DEFAULT_SIZE_DEG
    vmag = _parse_float(_safe_get(row, columns.v_mag))
    bmag = _parse_float(_safe_get(row, columns.b_mag))
    mag = vmag if vmag is not None else bmag

    common_name = _parse_common_name(_safe_get(row, columns.common_names))
    messier_id = _parse_messier_id(_safe_get(row, columns.messier))
    display = common_name or name
    if messier_id:
        display = f"{display} ({messier_id})"
    return (
        Target(
            id=name,
            name=display,
            type=_map_type(raw_type),
            size_deg=size_deg,
            ra_hours=ra.value,
            dec_deg=dec.value,
            ra_hms=hours_to_hms(ra.value),
            dec_dms=deg_to_dms(dec.value),
            mag=mag,
            source="openngc",
        ),
        "",
    )


def _safe_get(row: list[str], idx: int | None) -> str | None:
    if idx is None or idx >= len(row):
        return None
    return row[idx].strip()


def _parse_float(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _parse_common_name(value: str | None) -> str | None:
    if not value:
        return None
    cleaned = value.replace("|", ",")
    parts = [p.strip() for p in cleaned.split(",") if p.strip()]
    if not parts:
        return None
    return parts[0]


def _parse_messier_id(value: str | None) -> str | None:
    if not value:
        return None
    value = value.strip()
    if value.isdigit():
        return f"M{int(value)}"
    if value.upper().startswith("M"):
        return value.upper()
    return None


def _map_type(opengnc_type: str) -> str:
    t = opengnc_type.strip().upper()
    if t in TYPE_NAMES:
        return TYPE_NAMES[t]
    if "PN" in t:
        return "Planetary Nebula"
    if "CL" in t:
        return "Open Cluster"
    return "Object"
