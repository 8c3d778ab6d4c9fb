"""Provider Health Monitor - Periodic Latency Probes.

Probes every provider on a fixed interval (and once on start) with its own
timeout budget, independent of user requests, and classifies the result:

    healthy    latency < 1s
    degraded   1s <= latency <= 3s
    unhealthy  latency > 3s, probe failed, or probe timed out
    unknown    never probed

Health never blocks a call. The orchestrator reads it to prefer the other
provider when its primary is unhealthy.

Records are written only by the monitor task; readers get immutable
HealthRecord values.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Mapping
from datetime import UTC, datetime

import logfire
from pydantic import BaseModel, ConfigDict

from .domain_type import HealthStatus
from .errors import ProviderError
from .providers import Provider

HEALTHY_BELOW_MS = 1000.0
DEGRADED_UP_TO_MS = 3000.0


class HealthRecord(BaseModel):
    provider: str
    status: HealthStatus = HealthStatus.UNKNOWN
    last_latency_ms: float | None = None
    last_checked_at: datetime | None = None
    error: str | None = None

    model_config = ConfigDict(frozen=True)


def classify_latency(latency_ms: float) -> HealthStatus:
    if latency_ms < HEALTHY_BELOW_MS:
        return HealthStatus.HEALTHY
    if latency_ms <= DEGRADED_UP_TO_MS:
        return HealthStatus.DEGRADED
    return HealthStatus.UNHEALTHY


class ProviderHealthMonitor:
    """Background prober for a fixed set of providers.

    Args:
        providers: Providers keyed by name
        interval_s: Seconds between sweeps
        probe_timeout_s: Per-probe budget; a probe that runs out is unhealthy
    """

    def __init__(
        self,
        providers: Mapping[str, Provider],
        *,
        interval_s: float = 300.0,
        probe_timeout_s: float = 3.0,
    ):
        self.providers = dict(providers)
        self.interval_s = interval_s
        self.probe_timeout_s = probe_timeout_s
        self._records: dict[str, HealthRecord] = {name: HealthRecord(provider=name) for name in self.providers}
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the sweep loop; the first sweep runs immediately."""
        if self.running:
            logfire.warn("Provider health monitor already running")
            return
        self._task = asyncio.create_task(self._run(), name="provider-health-monitor")
        logfire.info("Provider health monitor started", interval_s=self.interval_s, providers=sorted(self.providers))

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logfire.info("Provider health monitor stopped")

    async def _run(self) -> None:
        while True:
            await self.check_all()
            await asyncio.sleep(self.interval_s)

    async def check_all(self) -> dict[str, HealthRecord]:
        """Probe every provider concurrently."""
        names = list(self.providers)
        records = await asyncio.gather(*(self.check_provider(name) for name in names))
        return dict(zip(names, records, strict=True))

    async def check_provider(self, name: str) -> HealthRecord:
        """Probe one provider and store the resulting record."""
        provider = self.providers[name]
        started = time.perf_counter()
        error: str | None = None
        try:
            await asyncio.wait_for(provider.probe(timeout=self.probe_timeout_s), timeout=self.probe_timeout_s)
        except TimeoutError:
            error = f"probe timed out after {self.probe_timeout_s}s"
        except ProviderError as exc:
            error = str(exc)
        except Exception as exc:
            # The sweep loop must outlive any client library failure.
            logfire.exception("Provider health probe crashed", provider=name)
            error = f"{type(exc).__name__}: {exc}"
        latency_ms = (time.perf_counter() - started) * 1000

        status = HealthStatus.UNHEALTHY if error else classify_latency(latency_ms)
        record = HealthRecord(
            provider=name,
            status=status,
            last_latency_ms=round(latency_ms, 1),
            last_checked_at=datetime.now(UTC),
            error=error,
        )
        previous = self._records.get(name)
        self._records[name] = record

        if previous is not None and previous.status != status:
            logfire.info("Provider health changed", provider=name, previous=previous.status, status=status)
        if error:
            logfire.warn("Provider health probe failed", provider=name, error=error)
        else:
            logfire.debug("Provider health probe", provider=name, status=status, latency_ms=record.last_latency_ms)
        return record

    def record(self, name: str) -> HealthRecord:
        return self._records.get(name) or HealthRecord(provider=name)

    def status(self, name: str) -> HealthStatus:
        return self.record(name).status

    def last_latency(self, name: str) -> float | None:
        return self.record(name).last_latency_ms

    def snapshot(self) -> dict[str, HealthRecord]:
        return dict(self._records)


__all__ = ["HealthRecord", "ProviderHealthMonitor", "classify_latency"]
