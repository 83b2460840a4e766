from pydantic import BaseModel, Field
from typing import Dict
from enum import Enum
from datetime import datetime, timezone


class ProxyMode(str, Enum):
    MASTER = "master"
    VARIANT = "variant"
    SEGMENT = "segment"


class RequestStats(BaseModel):
    active_requests: int = 0
    total_requests: int = 0
    master_requests: int = 0
    variant_requests: int = 0
    segment_requests: int = 0
    failed_requests: int = 0
    uptime_seconds: int = 0


class HealthCheck(BaseModel):
    status: str
    version: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    stats: RequestStats = Field(default_factory=RequestStats)
    dependencies: Dict[str, str] = Field(default_factory=dict)
