"""Pipeline health monitor with metrics and HTTP endpoints.

This module tracks the outcome of every scheduled pipeline run and every
dispatch attempt, derives an overall health status, and exposes both as
Prometheus metrics and JSON endpoints.
"""

import copy
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from aiohttp import web
from prometheus_client import Counter, Gauge, Histogram, generate_latest

from crypto_market_notifier.scheduler.job import RunOutcome

logger = logging.getLogger(__name__)

# Consecutive failed runs before a pipeline counts as failing
DEFAULT_FAILURE_THRESHOLD = 3


class HealthStatus(Enum):
    """Overall health status."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class PipelineStatus(Enum):
    """Status of an individual pipeline."""

    PENDING = "pending"
    OK = "ok"
    FAILING = "failing"


@dataclass
class PipelineHealth:
    """Health status for an individual pipeline."""

    name: str
    status: PipelineStatus = PipelineStatus.PENDING
    runs: int = 0
    failures: int = 0
    consecutive_failures: int = 0
    skipped: int = 0
    last_outcome: str | None = None
    last_run_time: float | None = None
    last_success_time: float | None = None
    last_error: str | None = None


@dataclass
class HealthReport:
    """Health report for all pipelines."""

    status: HealthStatus
    pipelines: dict[str, PipelineHealth] = field(default_factory=dict)
    alerts_delivered: int = 0
    alerts_failed: int = 0
    uptime_seconds: float = 0.0
    timestamp: float = field(default_factory=time.time)


# Prometheus metrics
PIPELINE_RUNS_TOTAL = Counter(
    "notifier_pipeline_runs_total",
    "Total number of pipeline runs by outcome",
    ["pipeline", "outcome"],
)

PIPELINE_LAST_SUCCESS = Gauge(
    "notifier_pipeline_last_success_timestamp",
    "Unix timestamp of the last successful pipeline run",
    ["pipeline"],
)

PIPELINE_DURATION = Histogram(
    "notifier_pipeline_duration_seconds",
    "Pipeline run duration in seconds",
    ["pipeline"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
)

ALERTS_TOTAL = Counter(
    "notifier_alerts_total",
    "Total number of dispatch attempts by outcome",
    ["target", "outcome"],
)

HEALTH_STATUS = Gauge(
    "notifier_health_status",
    "Overall health status (1=healthy, 0.5=degraded, 0=unhealthy)",
)


class PipelineHealthMonitor:
    """Track pipeline outcomes and expose metrics.

    Example:
        ```python
        monitor = PipelineHealthMonitor()
        job = ScheduledJob("prices", pipeline.run, trigger, on_outcome=monitor.record_run)
        dispatcher = Dispatcher(targets, on_result=monitor.record_dispatch)

        app = web.Application()
        monitor.register_routes(app)  # /health, /metrics, /ready, /live
        ```
    """

    def __init__(self, *, failure_threshold: int = DEFAULT_FAILURE_THRESHOLD) -> None:
        """Initialize the health monitor.

        Args:
            failure_threshold: Consecutive failed runs before a pipeline is failing.
        """
        self._failure_threshold = failure_threshold
        self._pipelines: dict[str, PipelineHealth] = {}
        self._alerts_delivered = 0
        self._alerts_failed = 0
        self._start_time = time.time()

    def register_pipeline(self, name: str) -> None:
        """Register a pipeline for monitoring."""
        if name not in self._pipelines:
            self._pipelines[name] = PipelineHealth(name=name)
            logger.debug("Registered pipeline for monitoring: %s", name)

    def record_run(
        self,
        name: str,
        outcome: RunOutcome,
        duration: float,
        error: str | None = None,
    ) -> None:
        """Record the outcome of one scheduled run.

        Args:
            name: Pipeline name.
            outcome: Run outcome.
            duration: Run duration in seconds.
            error: Error message for failed runs.
        """
        self.register_pipeline(name)
        pipeline = self._pipelines[name]
        PIPELINE_RUNS_TOTAL.labels(pipeline=name, outcome=outcome.value).inc()

        if outcome is RunOutcome.SKIPPED:
            pipeline.skipped += 1
            return

        now = time.time()
        pipeline.runs += 1
        pipeline.last_outcome = outcome.value
        pipeline.last_run_time = now
        PIPELINE_DURATION.labels(pipeline=name).observe(duration)

        if outcome is RunOutcome.SUCCESS:
            pipeline.consecutive_failures = 0
            pipeline.last_success_time = now
            pipeline.last_error = None
            pipeline.status = PipelineStatus.OK
            PIPELINE_LAST_SUCCESS.labels(pipeline=name).set(now)
            return

        pipeline.failures += 1
        pipeline.consecutive_failures += 1
        pipeline.last_error = error or outcome.value
        if pipeline.consecutive_failures >= self._failure_threshold:
            if pipeline.status is not PipelineStatus.FAILING:
                logger.warning(
                    "Pipeline %s failing: %d consecutive failed runs",
                    name,
                    pipeline.consecutive_failures,
                )
            pipeline.status = PipelineStatus.FAILING

    def record_dispatch(self, target: str, delivered: bool) -> None:
        """Record one dispatch attempt."""
        if delivered:
            self._alerts_delivered += 1
        else:
            self._alerts_failed += 1
        ALERTS_TOTAL.labels(target=target, outcome="delivered" if delivered else "failed").inc()

    def _determine_overall_status(self) -> HealthStatus:
        if not self._pipelines:
            return HealthStatus.HEALTHY

        statuses = [p.status for p in self._pipelines.values()]
        if all(s is PipelineStatus.FAILING for s in statuses):
            return HealthStatus.UNHEALTHY
        if any(s is PipelineStatus.FAILING for s in statuses):
            return HealthStatus.DEGRADED
        return HealthStatus.HEALTHY

    def get_health_report(self) -> HealthReport:
        """Generate a health report.

        Returns:
            HealthReport with the current status of all pipelines.
        """
        overall_status = self._determine_overall_status()
        HEALTH_STATUS.set(
            1.0 if overall_status == HealthStatus.HEALTHY
            else 0.5 if overall_status == HealthStatus.DEGRADED
            else 0.0
        )

        return HealthReport(
            status=overall_status,
            pipelines={name: copy.copy(p) for name, p in self._pipelines.items()},
            alerts_delivered=self._alerts_delivered,
            alerts_failed=self._alerts_failed,
            uptime_seconds=time.time() - self._start_time,
        )

    # HTTP handlers

    async def _handle_health(self, _request: web.Request) -> web.Response:
        """Handle /health endpoint."""
        report = self.get_health_report()
        status_code = 503 if report.status == HealthStatus.UNHEALTHY else 200

        body: dict[str, Any] = {
            "status": report.status.value,
            "uptime_seconds": round(report.uptime_seconds, 1),
            "alerts_delivered": report.alerts_delivered,
            "alerts_failed": report.alerts_failed,
            "pipelines": {},
        }
        for name, pipeline in report.pipelines.items():
            body["pipelines"][name] = {
                "status": pipeline.status.value,
                "runs": pipeline.runs,
                "failures": pipeline.failures,
                "skipped": pipeline.skipped,
                "last_outcome": pipeline.last_outcome,
                "last_success_time": pipeline.last_success_time,
                "last_error": pipeline.last_error,
            }

        return web.json_response(body, status=status_code)

    async def _handle_metrics(self, _request: web.Request) -> web.Response:
        """Handle /metrics endpoint (Prometheus format)."""
        self.get_health_report()
        return web.Response(
            body=generate_latest(),
            content_type="text/plain",
            charset="utf-8",
        )

    async def _handle_ready(self, _request: web.Request) -> web.Response:
        """Handle /ready endpoint for k8s readiness probe."""
        report = self.get_health_report()
        if report.status == HealthStatus.UNHEALTHY:
            return web.json_response({"ready": False, "reason": "unhealthy"}, status=503)
        return web.json_response({"ready": True}, status=200)

    async def _handle_live(self, _request: web.Request) -> web.Response:
        """Handle /live endpoint for k8s liveness probe."""
        return web.json_response({"live": True}, status=200)

    def register_routes(self, app: web.Application) -> None:
        """Add /health, /metrics, /ready and /live to an application."""
        app.router.add_get("/health", self._handle_health)
        app.router.add_get("/metrics", self._handle_metrics)
        app.router.add_get("/ready", self._handle_ready)
        app.router.add_get("/live", self._handle_live)
