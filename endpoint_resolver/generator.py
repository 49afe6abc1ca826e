from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable, List, Optional, Sequence

from .builder import ServiceConfigBuilder
from .cache import PersistentConfigCache
from .call_service import CallServiceEndpointManager
from .constants import CALL_SERVICE_NAME, DEFAULT_GLOBAL_REFRESH_INTERVAL_SEC, LOG_EXTRA_KEY
from .fetcher import GlobalConfigFetcher
from .prober import ThrottledDomainSelector
from .publisher import ConfigPublisher
from .scheduler import PeriodicTask
from .transports.abstract_transport import now_ms
from .types import GlobalConfig, ServiceConfigMap

logger = logging.getLogger(__name__)


class ResolverState(Enum):
    BOOTSTRAPPING = "bootstrapping"
    RESOLVING = "resolving"
    READY = "ready"


class ServiceConfigGenerator:
    """
    Drives one resolution cycle: cached config first, then the latest bootstrap
    document, probing, building and publishing. start() repeats the cycle every
    interval seconds.

    No cycle ever raises; the worst outcome is that the previous config stays
    published.
    """

    def __init__(
        self,
        bootstrap_urls: Sequence[str],
        fetcher: GlobalConfigFetcher,
        selector: ThrottledDomainSelector,
        builder: ServiceConfigBuilder,
        cache: PersistentConfigCache,
        publisher: ConfigPublisher,
        call_manager: Optional[CallServiceEndpointManager] = None,
        call_service_name: str = CALL_SERVICE_NAME,
        interval: float = DEFAULT_GLOBAL_REFRESH_INTERVAL_SEC,
        task_factory: Callable[..., PeriodicTask] = PeriodicTask,
    ):
        self.bootstrap_urls: List[str] = list(bootstrap_urls)
        self.fetcher = fetcher
        self.selector = selector
        self.builder = builder
        self.cache = cache
        self.publisher = publisher
        self.call_manager = call_manager
        self.call_service_name = call_service_name
        self.interval = interval
        self._task_factory = task_factory
        self._task: Optional[PeriodicTask] = None
        self._lock = threading.Lock()
        self._global_config: Optional[GlobalConfig] = None
        self._state = ResolverState.BOOTSTRAPPING

    @property
    def state(self) -> ResolverState:
        return self._state

    @property
    def global_config(self) -> Optional[GlobalConfig]:
        return self._global_config

    def start(self) -> None:
        self.use_cached_config()

        # Nothing dialable yet: publish an unprobed config so consumers have URLs
        if self.publisher.url_cache.is_empty() and self._global_config is not None:
            self.regenerate(self._global_config, test_speed=False)

        if self._task is not None:
            self._task.stop()
        self._task = self._task_factory(self.refresh, self.interval, name="global-config-refresh")
        self._task.start()

    def stop(self) -> None:
        if self._task is not None:
            self._task.stop()
            self._task = None
        if self.call_manager is not None:
            self.call_manager.stop()

    def use_cached_config(self) -> None:
        """Adopt the persisted GlobalConfig and publish the persisted service config, if any."""
        self._state = ResolverState.BOOTSTRAPPING

        cached_global = self.cache.load_global_config()
        if cached_global is not None:
            with self._lock:
                self._global_config = cached_global
        logger.info("globalConfig cache get: %s", cached_global is not None)

        cached_services = self.cache.load_service_config()
        if cached_services:
            logger.info("serviceConfig cache get: %s", sorted(cached_services))
            self.publisher.publish(cached_services)

    def refresh(self) -> Optional[ServiceConfigMap]:
        """Run one full cycle. Returns the published config, or None if nothing could be resolved."""
        try:
            if self._global_config is None:
                self.use_cached_config()
            else:
                self._state = ResolverState.BOOTSTRAPPING

            config = self.fetcher.fetch(self.bootstrap_urls)
            if config is None:
                config = self._global_config
                logger.warning("falling back to last known global config: %s", config is not None)
            else:
                with self._lock:
                    self._global_config = config
                self.cache.save_global_config(config)
                logger.info("put globalConfig")

            if config is None:
                return None

            return self.regenerate(config)
        except Exception:
            logger.exception("fetch global config and select best domain failed")
            return None

    def regenerate(self, config: GlobalConfig, test_speed: bool = True) -> ServiceConfigMap:
        self._state = ResolverState.RESOLVING

        domains = self.selector.select(config.domains) if test_speed else list(config.domains)
        service_config = self.builder.combine(domains, config.services)

        self.cache.save_service_config(service_config)
        self.publisher.publish(service_config)
        self._state = ResolverState.READY

        logger.info(
            "resolver_service_config_ready",
            extra={
                LOG_EXTRA_KEY: {
                    "tested": test_speed,
                    "services": {name: len(endpoints) for name, endpoints in service_config.items()},
                    "ts_ms": now_ms(),
                }
            },
        )

        if self.call_manager is not None:
            self.call_manager.start(service_config.get(self.call_service_name, []))

        return service_config

    def reselect(self) -> Optional[ServiceConfigMap]:
        """Re-probe against the current GlobalConfig; throttled by the selector."""
        config = self._global_config
        if config is None:
            return None
        try:
            return self.regenerate(config)
        except Exception:
            logger.exception("reselect failed")
            return None
