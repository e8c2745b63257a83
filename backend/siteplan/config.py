from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SITEPLAN_")

    app_name: str = "Site Planning Geometry Engine"
    debug: bool = False
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    log_level: str = "INFO"

    # setbacks
    hatch_spacing_m: float = 2.0
    hatch_angle_deg: float = 45.0
    facade_match_tolerance_m: float = 10.0
    facade_click_tolerance_m: float = 5.0

    # drawing
    max_history: int = 50
    rotation_snap_deg: float = 5.0
    containment_tolerance_m: float = 0.01  # slack for float round-trips through the local frame

    # default snap settings
    snap_enabled: bool = True
    grid_size_m: float = 1.0
    angle_snap: bool = True
    envelope_snap: bool = True
    object_snap: bool = True
    snap_tolerance_m: float = 10.0


settings = Settings()
