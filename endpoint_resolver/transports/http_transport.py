import logging
import threading
import warnings
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Optional

import requests
from urllib3.exceptions import InsecureRequestWarning

from ..constants import (
    CALL_SERVICE_URL_PATH,
    DEFAULT_BOOTSTRAP_TIMEOUT_SEC,
    DEFAULT_CALL_API_TIMEOUT_SEC,
    DEFAULT_HTTP_MAX_WORKERS,
    DEFAULT_PROBE_TIMEOUT_SEC,
)
from ..errors import CallApiError, ProtocolError, TransportError
from .abstract_transport import AbstractBootstrapClient, AbstractCallApiClient, AbstractProbeTransport

logger = logging.getLogger(__name__)


# Shared thread pool for probes and RPCs
class HTTPExecutorManager:
    _executor: Optional[ThreadPoolExecutor] = None
    _lock = threading.Lock()

    @classmethod
    def get_executor(cls, max_workers: Optional[int] = None) -> ThreadPoolExecutor:
        """
        Returns the process-wide pool. max_workers only sizes the pool on first
        use; a later, different size is logged and ignored.
        """
        if cls._executor is None:
            with cls._lock:
                if cls._executor is None:
                    cls._executor = ThreadPoolExecutor(
                        max_workers=max_workers or DEFAULT_HTTP_MAX_WORKERS, thread_name_prefix="EPR-HTTP-Worker"
                    )
                    return cls._executor
        if max_workers is not None and cls._executor._max_workers != max_workers:
            logger.warning(
                "shared HTTP executor already has %d workers, ignoring max_workers=%d",
                cls._executor._max_workers,
                max_workers,
            )
        return cls._executor


class HttpProbeTransport(AbstractProbeTransport):
    """
    Probes candidates with a plain GET.
    Self-signed candidates verify against ca_bundle when given, otherwise not at all.
    """

    def __init__(self, timeout: float = DEFAULT_PROBE_TIMEOUT_SEC, ca_bundle: Optional[str] = None):
        self.timeout = timeout
        self.ca_bundle = ca_bundle

    def ping_url(self, url: str, allow_self_signed: bool) -> None:
        verify: Any = True
        if allow_self_signed:
            verify = self.ca_bundle or False

        try:
            with warnings.catch_warnings():
                if verify is False:
                    warnings.simplefilter("ignore", InsecureRequestWarning)
                response = requests.get(url, timeout=self.timeout, verify=verify)
        except requests.exceptions.RequestException as e:
            raise TransportError(f"ping failed for {url}: {e}") from e

        if response.status_code >= 400:
            raise ProtocolError(f"ping got status {response.status_code} for {url}", code=response.status_code)


class HttpBootstrapClient(AbstractBootstrapClient):
    def __init__(self, timeout: float = DEFAULT_BOOTSTRAP_TIMEOUT_SEC):
        self.timeout = timeout

    def get_global_config(self, url: str) -> Dict[str, Any]:
        response = requests.get(
            url,
            headers={"Cache-Control": "no-cache", "Accept": "application/json"},
            timeout=self.timeout,
        )

        response.raise_for_status()

        return response.json()


class HttpCallApiClient(AbstractCallApiClient):
    """
    Asks the call backend which media service URLs this client should use.
    """

    def __init__(
        self,
        base_url: str,
        token_fetcher: Callable[[str], str],
        timeout: float = DEFAULT_CALL_API_TIMEOUT_SEC,
    ):
        self.base_url = base_url.rstrip("/")
        self.token_fetcher = token_fetcher
        self.timeout = timeout

    def get_service_urls(self) -> Dict[str, Any]:
        service_url = self.base_url + CALL_SERVICE_URL_PATH

        try:
            headers = {
                "Authorization": f"Bearer {self.token_fetcher(service_url)}",
                "Content-Type": "application/json",
            }

            response = requests.get(service_url, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            raise CallApiError(f"call service lookup failed for {service_url}: {e}") from e

        # Some deployments wrap the payload in a {code, data} envelope
        if isinstance(body, dict) and "serviceUrls" not in body and isinstance(body.get("data"), dict):
            body = body["data"]

        if not isinstance(body, dict) or not isinstance(body.get("serviceUrls"), list):
            raise CallApiError(f"call service lookup returned no serviceUrls: {service_url}")

        return body
