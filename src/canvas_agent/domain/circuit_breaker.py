"""Circuit Breaker - Per-Provider Failure Isolation.

Stops sending requests to a provider that keeps failing, then probes it
with a single trial call once a cool-down has passed.

State Machine:
    CLOSED --[consecutive failures >= threshold]--> OPEN
    OPEN --[cool-down elapsed, next allow()]--> HALF_OPEN (one trial admitted)
    HALF_OPEN --[trial succeeds]--> CLOSED
    HALF_OPEN --[trial fails]--> OPEN (cool-down restarts)

Concurrency:
    Each provider has its own lock; a failing provider never blocks checks
    for another. No lock is held across an await.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

import logfire
from pydantic import BaseModel, ConfigDict

from .domain_type import CircuitState
from .errors import CircuitOpenError

Clock = Callable[[], float]


class CircuitSnapshot(BaseModel):
    """Read-only view of one provider's circuit."""

    provider: str
    state: CircuitState
    consecutive_failures: int
    opened_at: float | None
    retry_after_s: float

    model_config = ConfigDict(frozen=True)


class _Circuit:
    __slots__ = ("lock", "state", "failures", "opened_at", "trial_in_flight")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.state = CircuitState.CLOSED
        self.failures = 0
        self.opened_at: float | None = None
        self.trial_in_flight = False


class CircuitBreaker:
    """Process-wide breaker keyed by provider name.

    Args:
        threshold: Consecutive failures that open a circuit
        cooldown_s: Seconds an open circuit rejects calls before a trial
        enabled: When False every call is allowed and nothing is tracked
        clock: Monotonic time source (injectable for tests)
    """

    def __init__(
        self,
        threshold: int = 5,
        cooldown_s: float = 60.0,
        *,
        enabled: bool = True,
        clock: Clock = time.monotonic,
    ):
        if threshold < 1:
            raise ValueError("threshold must be at least 1")
        self.threshold = threshold
        self.cooldown_s = cooldown_s
        self.enabled = enabled
        self._clock = clock
        self._circuits: dict[str, _Circuit] = {}
        self._registry_lock = threading.Lock()

    def _circuit(self, provider: str) -> _Circuit:
        circuit = self._circuits.get(provider)
        if circuit is None:
            with self._registry_lock:
                circuit = self._circuits.setdefault(provider, _Circuit())
        return circuit

    def _retry_after(self, circuit: _Circuit) -> float:
        if circuit.opened_at is None:
            return 0.0
        return max(0.0, self.cooldown_s - (self._clock() - circuit.opened_at))

    def allow(self, provider: str) -> bool:
        """Whether a call to ``provider`` may proceed right now.

        An open circuit whose cool-down has elapsed moves to HALF_OPEN and
        admits exactly one caller; later callers are refused until that
        trial reports back.
        """
        if not self.enabled:
            return True
        circuit = self._circuit(provider)
        with circuit.lock:
            if circuit.state == CircuitState.CLOSED:
                return True
            if circuit.state == CircuitState.OPEN:
                if self._retry_after(circuit) > 0:
                    return False
                circuit.state = CircuitState.HALF_OPEN
                circuit.trial_in_flight = True
                logfire.info("Circuit half-open, admitting trial call", provider=provider)
                return True
            if circuit.trial_in_flight:
                return False
            circuit.trial_in_flight = True
            return True

    def guard(self, provider: str) -> None:
        """Raise CircuitOpenError unless ``allow`` admits the call."""
        if not self.allow(provider):
            circuit = self._circuit(provider)
            with circuit.lock:
                retry_after = self._retry_after(circuit)
            raise CircuitOpenError(provider, retry_after)

    def record_success(self, provider: str) -> None:
        if not self.enabled:
            return
        circuit = self._circuit(provider)
        with circuit.lock:
            if circuit.state != CircuitState.CLOSED:
                logfire.info("Circuit closed after successful trial", provider=provider)
            circuit.state = CircuitState.CLOSED
            circuit.failures = 0
            circuit.opened_at = None
            circuit.trial_in_flight = False

    def record_failure(self, provider: str) -> None:
        if not self.enabled:
            return
        circuit = self._circuit(provider)
        with circuit.lock:
            circuit.failures += 1
            if circuit.state == CircuitState.HALF_OPEN:
                circuit.state = CircuitState.OPEN
                circuit.opened_at = self._clock()
                circuit.trial_in_flight = False
                logfire.warn("Circuit re-opened after failed trial", provider=provider, cooldown_s=self.cooldown_s)
            elif circuit.state == CircuitState.CLOSED and circuit.failures >= self.threshold:
                circuit.state = CircuitState.OPEN
                circuit.opened_at = self._clock()
                logfire.warn(
                    "Circuit opened",
                    provider=provider,
                    consecutive_failures=circuit.failures,
                    cooldown_s=self.cooldown_s,
                )

    def release(self, provider: str) -> None:
        """Give back an admitted trial that never reported (cancelled call).

        The circuit returns to OPEN with its original open time, so the next
        ``allow`` can admit a fresh trial straight away.
        """
        if not self.enabled:
            return
        circuit = self._circuit(provider)
        with circuit.lock:
            if circuit.state == CircuitState.HALF_OPEN and circuit.trial_in_flight:
                circuit.state = CircuitState.OPEN
                circuit.trial_in_flight = False

    def reset(self, provider: str) -> None:
        """Force a circuit back to CLOSED (operator action)."""
        circuit = self._circuit(provider)
        with circuit.lock:
            circuit.state = CircuitState.CLOSED
            circuit.failures = 0
            circuit.opened_at = None
            circuit.trial_in_flight = False
        logfire.info("Circuit reset", provider=provider)

    def state(self, provider: str) -> CircuitState:
        return self.snapshot(provider).state

    def snapshot(self, provider: str) -> CircuitSnapshot:
        circuit = self._circuit(provider)
        with circuit.lock:
            return CircuitSnapshot(
                provider=provider,
                state=circuit.state,
                consecutive_failures=circuit.failures,
                opened_at=circuit.opened_at,
                retry_after_s=round(self._retry_after(circuit), 3),
            )


__all__ = ["CircuitBreaker", "CircuitSnapshot", "Clock"]
