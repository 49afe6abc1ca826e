import time
from abc import ABC, abstractmethod
from typing import Any, Dict

from ..constants import CERT_TYPE_SELF, REACHABLE_STATUS_MAX, REACHABLE_STATUS_MIN
from ..errors import TransportError


def now_ms() -> int:
    return int(time.time() * 1000)


class AbstractProbeTransport(ABC):
    """
    Abstract interface for a reachability probe.
    Subclasses supply .ping_url(); timing and failure classification live here.
    """

    @abstractmethod
    def ping_url(self, url: str, allow_self_signed: bool) -> None:
        """
        Issues one request against url.

        Args:
            url: Fully formed, cache-busted URL.
            allow_self_signed: Relax certificate validation for the request.

        Raises:
            An exception carrying an optional numeric .code on failure.
        """
        pass

    def probe(self, domain: str, cert_type: str) -> int:
        """
        Returns the elapsed milliseconds of one reachability check against domain.

        An error status in [100, 499] still means the server answered, so the
        attempt is timed. Anything else raises TransportError.
        """
        url = f"https://{domain}?t={now_ms()}"
        req_start = time.monotonic()
        try:
            self.ping_url(url, cert_type == CERT_TYPE_SELF)
        except Exception as e:
            code = getattr(e, "code", None)
            if isinstance(code, int) and REACHABLE_STATUS_MIN <= code <= REACHABLE_STATUS_MAX:
                return _elapsed_ms(req_start)
            if isinstance(e, TransportError):
                raise
            raise TransportError(f"probe failed for {domain}: {e}", code=code) from e

        return _elapsed_ms(req_start)


class AbstractBootstrapClient(ABC):
    @abstractmethod
    def get_global_config(self, url: str) -> Dict[str, Any]:
        """Returns the bootstrap envelope {"code": int, "data": dict | None}."""
        pass


class AbstractCallApiClient(ABC):
    @abstractmethod
    def get_service_urls(self) -> Dict[str, Any]:
        """Returns {"serviceUrls": [str, ...]}."""
        pass


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
