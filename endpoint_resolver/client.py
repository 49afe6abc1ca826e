from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional

from .builder import ServiceConfigBuilder
from .cache import JsonFileStore, PersistentConfigCache
from .call_service import CallServiceEndpointManager
from .config import ResolverConfig
from .fetcher import GlobalConfigFetcher
from .generator import ServiceConfigGenerator
from .prober import DomainSpeedProber, ThrottledDomainSelector
from .publisher import ConfigPublisher, WebApiUrlCache
from .transports import (
    AbstractBootstrapClient,
    AbstractCallApiClient,
    AbstractProbeTransport,
    HttpBootstrapClient,
    HttpCallApiClient,
    HTTPExecutorManager,
    HttpProbeTransport,
    PubSubConfigSink,
)
from .types import ResolvedEndpoint, ServiceConfigMap

logger = logging.getLogger(__name__)


class EndpointResolver:
    """
    Wires the resolution pipeline together from a ResolverConfig.

    Every collaborator can be injected; the defaults talk HTTP via requests and,
    when a topic is configured, publish to Pub/Sub.
    """

    def __init__(
        self,
        config: Optional[ResolverConfig] = None,
        *,
        probe_transport: Optional[AbstractProbeTransport] = None,
        bootstrap_client: Optional[AbstractBootstrapClient] = None,
        call_api: Optional[AbstractCallApiClient] = None,
        call_api_base_url: Optional[str] = None,
        token_fetcher: Optional[Callable[[str], str]] = None,
        pubsub_client: Any = None,
        store: Optional[JsonFileStore] = None,
        task_factory: Optional[Callable[..., Any]] = None,
    ):
        self.config = config or ResolverConfig()
        self.executor = HTTPExecutorManager.get_executor(self.config.max_workers)

        transport = probe_transport or HttpProbeTransport(
            timeout=self.config.probe_timeout_sec, ca_bundle=self.config.self_signed_ca_bundle
        )
        self.prober = DomainSpeedProber(transport, self.executor, pass_timeout=self.config.probe_pass_timeout_sec)
        self.selector = ThrottledDomainSelector(self.prober, threshold=self.config.select_threshold_sec)

        self.cache = PersistentConfigCache(store or JsonFileStore(self.config.storage_dir))
        self.url_cache = WebApiUrlCache(on_disable=self._schedule_reselect)
        self.publisher = ConfigPublisher(self.url_cache)
        if pubsub_client is not None and self.config.pubsub_topic:
            self.publisher.add_sink(PubSubConfigSink(pubsub_client, self.config.pubsub_topic))

        if call_api is None and call_api_base_url and token_fetcher is not None:
            call_api = HttpCallApiClient(call_api_base_url, token_fetcher, timeout=self.config.call_api_timeout_sec)

        scheduling = {"task_factory": task_factory} if task_factory is not None else {}

        self.call_manager: Optional[CallServiceEndpointManager] = None
        if call_api is not None:
            # The call service keeps its own throttle window
            self.call_manager = CallServiceEndpointManager(
                call_api,
                selector=ThrottledDomainSelector(self.prober, threshold=self.config.select_threshold_sec),
                interval=self.config.call_refresh_interval_sec,
                **scheduling,
            )

        self.generator = ServiceConfigGenerator(
            self.config.bootstrap_urls,
            GlobalConfigFetcher(bootstrap_client or HttpBootstrapClient(timeout=self.config.bootstrap_timeout_sec)),
            self.selector,
            ServiceConfigBuilder(self.config.known_services),
            self.cache,
            self.publisher,
            call_manager=self.call_manager,
            call_service_name=self.config.call_service_name,
            interval=self.config.global_refresh_interval_sec,
            **scheduling,
        )

    def start(self) -> None:
        self.generator.start()

    def stop(self) -> None:
        self.generator.stop()

    def refresh(self) -> Optional[ServiceConfigMap]:
        return self.generator.refresh()

    def select_best_domain(self, test_speed: bool = True) -> Optional[ServiceConfigMap]:
        config = self.generator.global_config
        if config is None:
            return None
        return self.generator.regenerate(config, test_speed=test_speed)

    def get_service_config(self) -> ServiceConfigMap:
        return self.url_cache.get()

    def get_endpoints(self, service: str) -> List[ResolvedEndpoint]:
        """Dialable endpoints of service, fastest first; disabled ones are skipped."""
        return self.url_cache.get_usable_endpoints(service)

    def get_call_urls(self) -> List[str]:
        if self.call_manager is None:
            return [e.url for e in self.url_cache.get_usable_endpoints(self.config.call_service_name)]
        return self.call_manager.get_urls()

    def disable(self, service: str, url: str) -> bool:
        return self.url_cache.disable(service, url)

    def _schedule_reselect(self) -> None:
        self.executor.submit(self.generator.reselect)
