from __future__ import annotations

import os
from typing import Any, Optional

from pydantic import BaseModel, Field

from models import Coordinate


class Configuration(BaseModel):
    # Crowd estimation
    update_interval_sec: float = Field(default=30.0)
    estimate_delay_min_sec: float = Field(default=0.5)
    estimate_delay_jitter_sec: float = Field(default=1.0)
    random_adjustment_probability: float = Field(default=0.3)
    update_probability: float = Field(default=0.3)
    peak_hour_start: int = Field(default=10)
    peak_hour_end: int = Field(default=16)
    # 0 disables expiry
    crowd_cache_ttl_sec: float = Field(default=0.0)
    random_seed: Optional[int] = Field(default=None)

    # Recommendations
    # lowers the result count; recommendations never exceed five
    max_results: int = Field(default=5, ge=1)
    walking_minutes_per_km: float = Field(default=12.0)

    # Defaults
    default_lat: float = Field(default=40.7589)
    default_lng: float = Field(default=-73.9851)

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8010)

    @classmethod
    def from_env(cls, overrides: Optional[dict[str, Any]] = None) -> "Configuration":
        raw: dict[str, Any] = {}

        env_map = {
            "update_interval_sec": os.getenv("SMARTCROWD_UPDATE_INTERVAL_SEC"),
            "estimate_delay_min_sec": os.getenv("SMARTCROWD_DELAY_MIN_SEC"),
            "estimate_delay_jitter_sec": os.getenv("SMARTCROWD_DELAY_JITTER_SEC"),
            "random_adjustment_probability": os.getenv("SMARTCROWD_RANDOM_ADJUSTMENT_P"),
            "update_probability": os.getenv("SMARTCROWD_UPDATE_P"),
            "peak_hour_start": os.getenv("SMARTCROWD_PEAK_HOUR_START"),
            "peak_hour_end": os.getenv("SMARTCROWD_PEAK_HOUR_END"),
            "crowd_cache_ttl_sec": os.getenv("SMARTCROWD_CACHE_TTL_SEC"),
            "random_seed": os.getenv("SMARTCROWD_RANDOM_SEED"),
            "max_results": os.getenv("SMARTCROWD_MAX_RESULTS"),
            "walking_minutes_per_km": os.getenv("SMARTCROWD_WALKING_MIN_PER_KM"),
            "default_lat": os.getenv("SMARTCROWD_DEFAULT_LAT"),
            "default_lng": os.getenv("SMARTCROWD_DEFAULT_LNG"),
            "host": os.getenv("SMARTCROWD_HOST"),
            "port": os.getenv("SMARTCROWD_PORT"),
        }

        for k, v in env_map.items():
            if v is None or v == "":
                continue
            raw[k] = v

        if overrides:
            raw.update({k: v for k, v in overrides.items() if v is not None})

        return cls(**raw)

    def default_origin(self) -> Coordinate:
        return Coordinate(lat=self.default_lat, lng=self.default_lng)

    def log_summary(self) -> str:
        return (
            "interval=%ss delay=%s+%ss adjust_p=%s update_p=%s peak=%s-%s ttl=%s seed=%s max_results=%s"
            % (
                self.update_interval_sec,
                self.estimate_delay_min_sec,
                self.estimate_delay_jitter_sec,
                self.random_adjustment_probability,
                self.update_probability,
                self.peak_hour_start,
                self.peak_hour_end,
                self.crowd_cache_ttl_sec or "off",
                self.random_seed if self.random_seed is not None else "unset",
                self.max_results,
            )
        )
