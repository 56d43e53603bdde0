"""Health-check registry exposed on ``/health``."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .database import Database

logger = logging.getLogger("usermgmt.health")

Probe = Callable[[], None]


@dataclass(frozen=True)
class HealthResult:
    healthy: bool
    message: Optional[str] = None


class HealthCheckRegistry:
    """Named probes; a probe reports failure by raising."""

    def __init__(self) -> None:
        self._probes: Dict[str, Probe] = {}
        self._lock = threading.Lock()

    def register(self, name: str, probe: Probe) -> None:
        with self._lock:
            if name in self._probes:
                raise ValueError(f"Health check '{name}' is already registered")
            self._probes[name] = probe

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._probes)

    def run(self) -> Dict[str, HealthResult]:
        with self._lock:
            probes = dict(self._probes)

        results: Dict[str, HealthResult] = {}
        for name, probe in sorted(probes.items()):
            try:
                probe()
            except Exception as exc:
                logger.warning("Health check %s failed: %s", name, exc)
                results[name] = HealthResult(healthy=False, message=str(exc))
            else:
                results[name] = HealthResult(healthy=True)
        return results


def database_probe(database: Database) -> Probe:
    def probe() -> None:
        database.ping()

    return probe


__all__ = ["HealthCheckRegistry", "HealthResult", "database_probe"]
