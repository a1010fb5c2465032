"""
Health and readiness probes.

Response bodies follow the draft "Health Check Response Format for HTTP
APIs": an overall ``status`` plus a ``checks`` map keyed by
``<component>:<measurement>``.
"""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from typing import Dict, Any, Optional
from datetime import datetime
from enum import Enum
import time
import psutil
import logging

logger = logging.getLogger(__name__)

DEFAULT_SECRET = "change-me"

class HealthStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    WARN = "warn"

def _now() -> str:
    return datetime.utcnow().isoformat() + "Z"

def _check(state: HealthStatus, component_type: str, output: Optional[str] = None, **observed) -> Dict[str, Any]:
    result = {"status": state.value, "componentType": component_type, "time": _now()}
    if output:
        result["output"] = output
    if observed:
        result["observedValue"] = f"{observed['value']:.2f}"
        result["observedUnit"] = observed["unit"]
    return result

def _grade(value: float, fail_below: float, warn_below: float) -> HealthStatus:
    if value < fail_below:
        return HealthStatus.FAIL
    if value < warn_below:
        return HealthStatus.WARN
    return HealthStatus.PASS

class ServiceHealth:
    """Health router for the service bound to its database engine."""

    def __init__(self, service_name: str, version: str, engine: Engine, settings=None):
        self.service_name = service_name
        self.version = version
        self.engine = engine
        self.settings = settings
        self.started_at = time.time()
        self.readiness_runs = 0

    @staticmethod
    def overall_status(checks: Dict[str, Dict[str, Any]]) -> HealthStatus:
        found = {check.get("status", HealthStatus.PASS.value) for check in checks.values()}
        for state in (HealthStatus.FAIL, HealthStatus.WARN):
            if state.value in found:
                return state
        return HealthStatus.PASS

    def readiness_checks(self) -> Dict[str, Dict[str, Any]]:
        self.readiness_runs += 1
        return {
            "database:connectivity": self._check_database(),
            "storage:disk_space": self._check_disk_space(),
            "system:memory": self._check_memory(),
        }

    def startup_checks(self) -> Dict[str, Dict[str, Any]]:
        return {
            "database:migrations": self._check_migrations(),
            "config:secrets": self._check_secrets(),
        }

    def _check_database(self) -> Dict[str, Any]:
        started = time.perf_counter()
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return _check(HealthStatus.FAIL, "datastore", output=str(e))
        return _check(HealthStatus.PASS, "datastore", value=(time.perf_counter() - started) * 1000, unit="ms")

    def _check_disk_space(self) -> Dict[str, Any]:
        free_gb = psutil.disk_usage("/").free / 1024 ** 3
        return _check(_grade(free_gb, 1, 5), "system", value=free_gb, unit="GB")

    def _check_memory(self) -> Dict[str, Any]:
        available_mb = psutil.virtual_memory().available / 1024 ** 2
        return _check(_grade(available_mb, 100, 500), "system", value=available_mb, unit="MB")

    def _check_migrations(self) -> Dict[str, Any]:
        try:
            applied = inspect(self.engine).has_table("alembic_version")
        except Exception as e:
            return _check(HealthStatus.FAIL, "datastore", output=str(e))
        if not applied:
            return _check(HealthStatus.WARN, "datastore", output="Migrations table not found")
        return _check(HealthStatus.PASS, "datastore")

    def _check_secrets(self) -> Dict[str, Any]:
        if self.settings is not None and self.settings.JWT_SECRET == DEFAULT_SECRET:
            return _check(HealthStatus.WARN, "configuration", output="JWT_SECRET is still the default value")
        return _check(HealthStatus.PASS, "configuration")

    def create_health_router(self) -> APIRouter:
        router = APIRouter(tags=["health"])

        @router.get("/health")
        async def health() -> Dict[str, Any]:
            """Process is up; no dependency checks."""
            return {
                "status": HealthStatus.PASS.value,
                "service": self.service_name,
                "version": self.version,
                "timestamp": _now(),
            }

        @router.get("/health/live")
        async def live() -> Dict[str, Any]:
            return {"status": "alive"}

        @router.get("/health/ready")
        def ready() -> JSONResponse:
            checks = self.readiness_checks()
            overall = self.overall_status(checks)
            code = status.HTTP_503_SERVICE_UNAVAILABLE if overall == HealthStatus.FAIL else status.HTTP_200_OK
            return JSONResponse(status_code=code, content={
                "status": overall.value,
                "serviceId": self.service_name,
                "version": self.version,
                "checks": checks,
                "timestamp": _now(),
            })

        @router.get("/health/startup")
        def startup() -> JSONResponse:
            checks = self.startup_checks()
            if self.overall_status(checks) == HealthStatus.FAIL:
                return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                                    content={"status": "starting", "checks": checks})
            return JSONResponse(content={"status": "started", "checks": checks})

        @router.get("/metrics")
        async def metrics() -> Dict[str, Any]:
            process = psutil.Process()
            with process.oneshot():
                memory = process.memory_info()
                system = {
                    "memory_rss_bytes": memory.rss,
                    "memory_vms_bytes": memory.vms,
                    "cpu_percent": process.cpu_percent(),
                    "num_threads": process.num_threads(),
                }
            return {
                "service": self.service_name,
                "version": self.version,
                "uptime_seconds": round(time.time() - self.started_at, 3),
                "readiness_checks": self.readiness_runs,
                "timestamp": _now(),
                "system": system,
            }

        return router
