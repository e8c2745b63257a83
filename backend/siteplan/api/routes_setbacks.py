"""Setback endpoints: buildable envelope, forbidden bands and facade picking."""

from fastapi import APIRouter, HTTPException

from siteplan.core.errors import InvalidParcelError
from siteplan.core.geometry.validation import parse_parcel
from siteplan.core.setback.facade import FacadeSegment, find_closest_edge
from siteplan.core.setback.site import SiteEngine, compute_all_setbacks
from siteplan.models.schemas import EnvelopeRequest, FacadeInput, FacadeRequest

router = APIRouter(tags=["setbacks"])


def _parcel(rings):
    try:
        return parse_parcel(rings)
    except InvalidParcelError as e:
        raise HTTPException(422, detail=[
            {"message": str(e)},
            *(i.to_dict() for i in e.issues),
        ])


def _segment(facade: FacadeInput) -> FacadeSegment:
    return FacadeSegment(start=tuple(facade.start), end=tuple(facade.end), index=facade.index)


@router.post("/setbacks/envelope")
async def compute_envelope(req: EnvelopeRequest):
    """Envelope, forbidden band, setback bands and hatching for a parcel.

    Explicit ``setbacks`` distances take precedence over a ruleset.
    """
    parcel = _parcel(req.rings)

    if req.setbacks is not None:
        facade = _segment(req.facade) if req.facade else None
        if facade is None and req.click is not None:
            facade = find_closest_edge(parcel, req.click)
        s = req.setbacks
        result = compute_all_setbacks(parcel, facade, s.front_m, s.lateral_m, s.rear_m)
    else:
        engine = SiteEngine(parcel, req.ruleset, req.ruleset_valid)
        if req.facade is not None:
            engine.set_facade(_segment(req.facade))
        elif req.click is not None:
            engine.select_facade_from_click(req.click)
        result = engine.result

    return result.to_geojson() if req.geojson else result.to_dict()


@router.post("/setbacks/facade")
async def pick_facade(req: FacadeRequest):
    """Boundary edge nearest to a map click, within the click tolerance."""
    parcel = _parcel(req.rings)
    segment = find_closest_edge(parcel, req.click)
    if segment is None:
        raise HTTPException(404, detail="No parcel edge near the clicked point")
    return segment.to_dict()
