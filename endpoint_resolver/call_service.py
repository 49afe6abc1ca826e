from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, List, Optional, Union
from urllib.parse import urlparse

from .constants import CERT_TYPE_AUTHORITY, DEFAULT_CALL_REFRESH_INTERVAL_SEC, LOG_EXTRA_KEY
from .errors import CallApiError
from .prober import ThrottledDomainSelector
from .scheduler import PeriodicTask
from .transports.abstract_transport import AbstractCallApiClient, now_ms
from .types import DomainCandidate, ResolvedEndpoint

logger = logging.getLogger(__name__)


class CallServiceEndpointManager:
    """
    Keeps the dialable URL list for the call service fresh on its own timer.

    The list is seeded synchronously by start() and refreshed from the call API
    every interval seconds. A failed refresh keeps the previous list.
    """

    def __init__(
        self,
        call_api: AbstractCallApiClient,
        selector: Optional[ThrottledDomainSelector] = None,
        interval: float = DEFAULT_CALL_REFRESH_INTERVAL_SEC,
        cert_type: str = CERT_TYPE_AUTHORITY,
        task_factory: Callable[..., PeriodicTask] = PeriodicTask,
    ):
        self.call_api = call_api
        self.selector = selector
        self.interval = interval
        self.cert_type = cert_type
        self._task_factory = task_factory
        self._lock = threading.Lock()
        self._urls: List[str] = []
        self._task: Optional[PeriodicTask] = None

    def start(self, initial_endpoints: Optional[Iterable[Union[ResolvedEndpoint, str]]] = None) -> None:
        seed = [e if isinstance(e, str) else e.url for e in initial_endpoints or []]
        with self._lock:
            self._urls = seed

        if self._task is not None:
            self._task.stop()

        self._task = self._task_factory(self.refresh, self.interval, name="call-service-refresh")
        self._task.start()

    def stop(self) -> None:
        if self._task is not None:
            self._task.stop()
            self._task = None

    def refresh(self) -> bool:
        try:
            service_urls = self._fetch_service_urls()
        except CallApiError as e:
            logger.warning("get call service urls from server failed: %s", e)
            return False

        urls = self._rank(service_urls)
        if not urls:
            logger.warning("call service returned no urls, keeping previous list")
            return False

        with self._lock:
            self._urls = urls

        logger.info(
            "resolver_call_urls_refreshed",
            extra={LOG_EXTRA_KEY: {"urls": urls, "ts_ms": now_ms()}},
        )
        return True

    def get_urls(self) -> List[str]:
        with self._lock:
            if self._urls:
                return list(self._urls)

        try:
            urls = self._fetch_service_urls()
        except CallApiError as e:
            logger.warning("on-demand call service lookup failed: %s", e)
            return []

        with self._lock:
            if not self._urls:
                self._urls = list(urls)
        return urls

    def _fetch_service_urls(self) -> List[str]:
        try:
            response = self.call_api.get_service_urls()
        except CallApiError:
            raise
        except Exception as e:
            raise CallApiError(f"call service lookup failed: {e}") from e

        service_urls = response.get("serviceUrls") if isinstance(response, dict) else None
        if not isinstance(service_urls, list):
            raise CallApiError("call service lookup returned no serviceUrls")
        return [str(url) for url in service_urls]

    def _rank(self, service_urls: List[str]) -> List[str]:
        """Latency-order the API's URLs by host; the raw list is kept if nothing is reachable."""
        if self.selector is None or not service_urls:
            return service_urls

        candidates = [
            DomainCandidate(domain=urlparse(url).netloc or url, cert_type=self.cert_type)
            for url in service_urls
        ]
        ranked = self.selector.select(candidates)
        if not ranked:
            return service_urls
        return [f"https://{server.domain}" for server in ranked]
