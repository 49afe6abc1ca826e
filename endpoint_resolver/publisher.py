from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import Callable, Iterable, List, Optional

from .constants import LOG_EXTRA_KEY, RESET_MS, UNUSABLE_MS
from .transports.abstract_transport import now_ms
from .types import ResolvedEndpoint, ServiceConfigMap

logger = logging.getLogger(__name__)

ConfigSink = Callable[[ServiceConfigMap], object]


def _snapshot(config: ServiceConfigMap) -> ServiceConfigMap:
    return {name: list(endpoints) for name, endpoints in config.items()}


class WebApiUrlCache:
    """
    Same-process view of the resolved service config.

    on_disable is called after an endpoint is marked unusable, typically to
    trigger a throttled re-resolution.
    """

    def __init__(self, on_disable: Optional[Callable[[], None]] = None):
        self.on_disable = on_disable
        self._lock = threading.Lock()
        self._config: ServiceConfigMap = {}

    def set(self, config: ServiceConfigMap) -> None:
        with self._lock:
            self._config = _snapshot(config)

    def get(self) -> ServiceConfigMap:
        with self._lock:
            return _snapshot(self._config)

    def get_endpoints(self, service: str) -> List[ResolvedEndpoint]:
        with self._lock:
            return list(self._config.get(service, []))

    def get_usable_endpoints(self, service: str) -> List[ResolvedEndpoint]:
        """
        Endpoints of service that are not marked unusable, in latency order.

        When every endpoint is marked unusable they are all reset to ms=1 and
        returned, so a fully disabled service is retried rather than left empty.
        """
        with self._lock:
            items = self._config.get(service)
            if not items:
                return []
            usable = [item for item in items if item.url and item.ms >= 0]
            if usable:
                return usable
            for i, item in enumerate(items):
                items[i] = replace(item, ms=RESET_MS)
            reset = list(items)

        for item in reset:
            logger.info("[network optimize] reset network status [%s] %s.", service, item.url)
        return reset

    def is_empty(self) -> bool:
        with self._lock:
            return not self._config

    def disable(self, service: str, url: str) -> bool:
        """Mark the first usable endpoint of service that url starts with as unusable."""
        with self._lock:
            items = self._config.get(service)
            if not items:
                return False
            for i, item in enumerate(items):
                if url.startswith(item.url) and item.ms >= 0:
                    items[i] = replace(item, ms=UNUSABLE_MS)
                    break
            else:
                return False

        logger.info("[network optimize] disable [%s] %s.", service, items[i].url)
        if self.on_disable is not None:
            self.on_disable()
        return True


class ConfigPublisher:
    """
    Pushes one snapshot of the service config to the in-process cache and then to
    every cross-process sink. Sink failures are logged and do not stop the others.
    """

    def __init__(self, url_cache: WebApiUrlCache, sinks: Optional[Iterable[ConfigSink]] = None):
        self.url_cache = url_cache
        self.sinks: List[ConfigSink] = list(sinks or [])

    def add_sink(self, sink: ConfigSink) -> None:
        self.sinks.append(sink)

    def publish(self, config: ServiceConfigMap) -> None:
        snapshot = _snapshot(config)

        self.url_cache.set(snapshot)

        failed = 0
        for sink in self.sinks:
            try:
                sink(snapshot)
            except Exception as e:
                failed += 1
                logger.warning("service config sink %r failed: %s", sink, e)

        logger.info(
            "resolver_service_config_published",
            extra={
                LOG_EXTRA_KEY: {
                    "services": sorted(snapshot),
                    "sinks": len(self.sinks),
                    "failed_sinks": failed,
                    "ts_ms": now_ms(),
                }
            },
        )
