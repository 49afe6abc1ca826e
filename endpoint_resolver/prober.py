from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Executor, wait
from typing import Callable, Iterable, List, Optional

from .constants import (
    DEFAULT_PROBE_PASS_TIMEOUT_SEC,
    DEFAULT_SELECT_THRESHOLD_SEC,
    LOG_EXTRA_KEY,
    SINGLE_CANDIDATE_MS,
    UNUSABLE_MS,
)
from .transports.abstract_transport import AbstractProbeTransport, now_ms
from .transports.http_transport import HTTPExecutorManager
from .types import DomainCandidate, ProbeResult

logger = logging.getLogger(__name__)


def sort_probe_results(results: Iterable[ProbeResult]) -> List[ProbeResult]:
    """Ascending by ms; unusable entries last. Stable, so equal timings keep their order."""
    return sorted(results, key=lambda r: (r.ms == UNUSABLE_MS, r.ms if r.ms != UNUSABLE_MS else 0))


class DomainSpeedProber:
    def __init__(
        self,
        transport: AbstractProbeTransport,
        executor: Optional[Executor] = None,
        pass_timeout: float = DEFAULT_PROBE_PASS_TIMEOUT_SEC,
    ):
        self.transport = transport
        self.executor = executor or HTTPExecutorManager.get_executor()
        self.pass_timeout = pass_timeout

    def test_domain_speed(self, candidates: Iterable[DomainCandidate]) -> List[ProbeResult]:
        """
        Probe every candidate concurrently and return the reachable ones, fastest first.

        A lone candidate is returned as-is with ms=1 without touching the network.
        Candidates whose probe raised, or did not finish within pass_timeout, are
        left out of the result entirely.
        """
        candidates = list(candidates)
        if len(candidates) == 1:
            return [ProbeResult.from_candidate(candidates[0], SINGLE_CANDIDATE_MS)]

        started_ms = now_ms()
        futures = [self.executor.submit(self.transport.probe, c.domain, c.cert_type) for c in candidates]
        done, not_done = wait(futures, timeout=self.pass_timeout)
        for future in not_done:
            future.cancel()

        results: List[ProbeResult] = []
        dropped: List[str] = []
        for candidate, future in zip(candidates, futures):
            if future not in done:
                dropped.append(candidate.domain)
                continue

            error = future.exception()
            if error is not None:
                logger.debug("probe dropped %s: %s", candidate.domain, error)
                dropped.append(candidate.domain)
                continue

            results.append(ProbeResult.from_candidate(candidate, future.result()))

        results = sort_probe_results(results)

        logger.info(
            "resolver_probe_pass",
            extra={
                LOG_EXTRA_KEY: {
                    "candidates": len(candidates),
                    "reachable": [(r.domain, r.ms) for r in results],
                    "dropped": dropped,
                    "ts_ms": started_ms,
                    "elapsed_ms": now_ms() - started_ms,
                }
            },
        )

        return results


class ThrottledDomainSelector:
    """
    Memoizes the last probe pass for threshold seconds.

    The cache is not keyed by the candidate list: a different list inside the
    window still gets the previous result.
    """

    def __init__(
        self,
        prober: DomainSpeedProber,
        threshold: float = DEFAULT_SELECT_THRESHOLD_SEC,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.prober = prober
        self.threshold = threshold
        self._clock = clock
        self._lock = threading.Lock()
        self._last_select_ts: Optional[float] = None
        self._last_result: List[ProbeResult] = []

    @property
    def last_result(self) -> List[ProbeResult]:
        return self._last_result

    def select(self, candidates: Iterable[DomainCandidate]) -> List[ProbeResult]:
        with self._lock:
            now = self._clock()
            if self._last_select_ts is not None and now - self._last_select_ts < self.threshold:
                return self._last_result
            # Claimed before probing so callers arriving mid-pass reuse the old result
            previous_ts = self._last_select_ts
            self._last_select_ts = now

        try:
            result = self.prober.test_domain_speed(candidates)
        except Exception:
            # A failed pass must not hold the window shut
            with self._lock:
                if self._last_select_ts == now:
                    self._last_select_ts = previous_ts
            raise

        with self._lock:
            self._last_result = result
        return result
