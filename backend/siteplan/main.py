"""Site planning geometry engine: FastAPI application entry point."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from siteplan.api.routes_drawing import router as drawing_router
from siteplan.api.routes_setbacks import router as setbacks_router
from siteplan.config import settings
from siteplan.utils.log_config import configure_logging

API_VERSION = "0.1.0"

configure_logging("DEBUG" if settings.debug else settings.log_level)

app = FastAPI(
    title=settings.app_name,
    version=API_VERSION,
    description="Buildable envelopes from parcel setbacks, and footprint editing inside them.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(setbacks_router, prefix="/api")
app.include_router(drawing_router, prefix="/api")


@app.get("/api/health")
async def health():
    return {"status": "ok", "version": API_VERSION}
