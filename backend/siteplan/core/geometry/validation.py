"""Parcel boundary checks and repair.

Raw rings arrive in geographic degrees from the cadastre or from a user
trace. Everything length-based (micro edges, closing gap, negligible area)
is measured in meters in a local frame centred on the ring.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

from shapely.geometry import MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.geometry.polygon import orient
from shapely.validation import explain_validity, make_valid

from siteplan.core.errors import InvalidParcelError
from siteplan.core.geometry.boolean import largest_polygon
from siteplan.core.geometry.primitives import distance
from siteplan.core.geometry.projection import LocalFrame, project

MICRO_EDGE_M = 0.01
MIN_PARCEL_AREA_M2 = 0.01
CLOSE_TOLERANCE_M = 0.5
COLLINEAR_CROSS_M2 = 1e-4
SAME_POINT_EPS = 1e-12

Point = tuple[float, float]


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class ParcelIssue:
    severity: Severity
    code: str
    message: str
    location: Point | None = None

    def to_dict(self) -> dict:
        return {
            "severity": self.severity.value,
            "code": self.code,
            "message": self.message,
            "location": list(self.location) if self.location else None,
        }


@dataclass
class ParcelReport:
    """Outcome of checking one ring: the usable polygon (if any) and every issue met."""

    polygon: Polygon | None = None
    issues: list[ParcelIssue] = field(default_factory=list)

    def add(self, severity: Severity, code: str, message: str, location=None) -> None:
        if location is not None:
            location = (location[0], location[1])
        self.issues.append(ParcelIssue(severity, code, message, location))

    def _with(self, severity: Severity) -> list[ParcelIssue]:
        return [i for i in self.issues if i.severity is severity]

    @property
    def errors(self) -> list[ParcelIssue]:
        return self._with(Severity.ERROR)

    @property
    def warnings(self) -> list[ParcelIssue]:
        return self._with(Severity.WARNING)

    @property
    def valid(self) -> bool:
        return not self.errors


def validate_coordinates(coords: Sequence[Sequence[float]]) -> list[ParcelIssue]:
    """Problems in a raw geographic ring, found before any polygon is built.

    Checks stop at the first blocking error.
    """
    report = ParcelReport()
    n = len(coords)
    if n < 3:
        report.add(Severity.ERROR, "TOO_FEW_POINTS",
                   f"Need at least 3 points for a polygon, got {n}")
        return report.issues

    bad = [i for i, c in enumerate(coords) if not all(map(math.isfinite, c[:2]))]
    for i in bad:
        report.add(Severity.ERROR, "NON_FINITE_COORD",
                   f"Point {i} is not a finite coordinate: {tuple(coords[i][:2])}")
    if bad:
        return report.issues

    for i, (a, b) in enumerate(zip(coords, coords[1:])):
        if _same(a, b):
            report.add(Severity.WARNING, "CONSECUTIVE_DUPLICATE",
                       f"Point {i + 1} repeats point {i}", location=a)

    distinct = _open_ring(deduplicate_consecutive(coords))
    if len(distinct) < 3:
        report.add(Severity.ERROR, "DEGENERATE_AFTER_DEDUP",
                   f"{len(distinct)} distinct points left, a polygon needs 3")
        return report.issues

    local = _frame_for(distinct).to_local_ring(distinct)
    if _collinear(local):
        report.add(Severity.ERROR, "ALL_COLLINEAR",
                   "Every point lies on one line, the area would be zero")

    for i, (a, b) in enumerate(zip(local, local[1:])):
        length = distance(a, b)
        if 0 < length < MICRO_EDGE_M:
            report.add(Severity.WARNING, "MICRO_EDGE",
                       f"Edge {i} is {length * 1000:.1f} mm long", location=distinct[i])

    return report.issues


def auto_close_ring(
    coords: Sequence[Sequence[float]],
    tolerance_m: float = CLOSE_TOLERANCE_M,
) -> tuple[list[Point], list[ParcelIssue]]:
    """Return a closed copy of the ring plus what was done to close it.

    A last point within ``tolerance_m`` of the first is moved onto it;
    a larger gap gets an extra closing vertex.
    """
    pts = [(c[0], c[1]) for c in coords]
    report = ParcelReport()
    if len(pts) < 3 or _same(pts[0], pts[-1]):
        return pts, report.issues

    head, tail = pts[0], pts[-1]
    gap = _frame_for(pts).distance(head, tail)
    if gap <= tolerance_m:
        pts[-1] = head
        report.add(Severity.WARNING, "SNAPPED_CLOSED",
                   f"Last point moved onto the first ({gap:.2f} m gap)", location=tail)
    else:
        pts.append(head)
        report.add(Severity.WARNING, "AUTO_CLOSED",
                   f"Closing edge added across a {gap:.1f} m gap", location=tail)
    return pts, report.issues


def validate_parcel(
    coords: Sequence[Sequence[float]],
    auto_fix: bool = True,
    close_tolerance_m: float = CLOSE_TOLERANCE_M,
) -> ParcelReport:
    """Check, close, repair and orient one parcel ring.

    The returned polygon is counter-clockwise. With ``auto_fix`` off an
    invalid ring is an error instead of going through ``make_valid``.
    """
    report = ParcelReport(issues=validate_coordinates(coords))
    if not report.valid:
        return report

    ring, closing = auto_close_ring(deduplicate_consecutive(coords), close_tolerance_m)
    report.issues.extend(closing)
    poly = Polygon(ring)

    if not poly.is_valid:
        severity = Severity.WARNING if auto_fix else Severity.ERROR
        report.add(severity, "INVALID_GEOMETRY", f"Invalid ring: {explain_validity(poly)}")
        if not auto_fix:
            return report
        poly = largest_polygon(make_valid(poly))
        if poly is None:
            report.add(Severity.ERROR, "REPAIR_FAILED", "make_valid() left no polygon")
            return report
        report.add(Severity.INFO, "AUTO_REPAIRED", "Ring rebuilt with make_valid()")

    if not poly.exterior.is_ccw:
        report.add(Severity.INFO, "CW_ORIENTATION", "Clockwise ring reversed")
        poly = orient(poly, sign=1.0)

    area = project(poly).area_m2(poly)
    if area < MIN_PARCEL_AREA_M2:
        report.add(Severity.ERROR, "ZERO_AREA", f"Area of {area:.4f} m² is negligible")
        return report

    report.polygon = poly
    return report


def parse_parcel(rings: Sequence[Sequence[Sequence[float]]]) -> Polygon | MultiPolygon:
    """Parcel geometry from one or more outer rings.

    Unusable rings are dropped. Raises ``InvalidParcelError`` carrying all
    issues when no ring survives.
    """
    reports = [validate_parcel(ring) for ring in rings]
    parts = [r.polygon for r in reports if r.polygon is not None]
    if not parts:
        issues = [i for r in reports for i in r.issues]
        errors = [i for i in issues if i.severity is Severity.ERROR]
        raise InvalidParcelError(errors[0].message if errors else "No usable boundary ring", issues)
    return parts[0] if len(parts) == 1 else MultiPolygon(parts)


def outer_ring(parcel: BaseGeometry) -> list[Point]:
    """Closed exterior ring of the largest parcel part, without repeated vertices.

    Edge ``i`` runs from vertex ``i`` to ``i + 1``; facade classification,
    envelope reconstruction and bands all index edges this way.
    """
    poly = largest_polygon(parcel)
    if poly is None:
        return []
    pts = _open_ring(deduplicate_consecutive(poly.exterior.coords))
    return pts + pts[:1]


def deduplicate_consecutive(coords: Sequence[Sequence[float]]) -> list[Point]:
    out: list[Point] = []
    for c in coords:
        if not out or not _same(c, out[-1]):
            out.append((c[0], c[1]))
    return out


def _open_ring(pts: list[Point]) -> list[Point]:
    if len(pts) > 1 and _same(pts[0], pts[-1]):
        return pts[:-1]
    return pts


def _frame_for(coords: Sequence[Sequence[float]]) -> LocalFrame:
    xs, ys = zip(*((c[0], c[1]) for c in coords))
    return LocalFrame(sum(xs) / len(xs), sum(ys) / len(ys))


def _same(a: Sequence[float], b: Sequence[float]) -> bool:
    return abs(a[0] - b[0]) < SAME_POINT_EPS and abs(a[1] - b[1]) < SAME_POINT_EPS


def _collinear(points: Sequence[Point]) -> bool:
    # parallelogram area against the first distinct direction, in m²
    origin = points[0]
    pivot = next((p for p in points[1:] if distance(origin, p) > 0), None)
    if pivot is None:
        return True
    dx, dy = pivot[0] - origin[0], pivot[1] - origin[1]
    return all(
        abs(dx * (p[1] - origin[1]) - dy * (p[0] - origin[0])) <= COLLINEAR_CROSS_M2
        for p in points
    )
