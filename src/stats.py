import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict

from models import ProxyMode

logger = logging.getLogger(__name__)


@dataclass
class ProxyStats:
    """Process-wide request counters. Used for logging and the stats endpoints only."""
    active_requests: int = 0
    total_requests: int = 0
    master_requests: int = 0
    variant_requests: int = 0
    segment_requests: int = 0
    failed_requests: int = 0
    uptime_start: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def request_started(self, mode: ProxyMode):
        self.active_requests += 1
        self.total_requests += 1
        if mode == ProxyMode.MASTER:
            self.master_requests += 1
        elif mode == ProxyMode.VARIANT:
            self.variant_requests += 1
        elif mode == ProxyMode.SEGMENT:
            self.segment_requests += 1
        logger.debug(f"Active requests: {self.active_requests}")

    def request_finished(self, failed: bool = False):
        self.active_requests -= 1
        if failed:
            self.failed_requests += 1
        logger.debug(f"Active requests: {self.active_requests}")

    def snapshot(self) -> Dict:
        return {
            "active_requests": self.active_requests,
            "total_requests": self.total_requests,
            "master_requests": self.master_requests,
            "variant_requests": self.variant_requests,
            "segment_requests": self.segment_requests,
            "failed_requests": self.failed_requests,
            "uptime_seconds": int((datetime.now(timezone.utc) - self.uptime_start).total_seconds()),
        }
