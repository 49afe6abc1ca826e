from __future__ import annotations

import logging
from typing import Iterable, Optional

from .constants import BOOTSTRAP_SUCCESS_CODE, LOG_EXTRA_KEY
from .errors import ConfigFetchError
from .transports.abstract_transport import AbstractBootstrapClient, now_ms
from .types import GlobalConfig

logger = logging.getLogger(__name__)


class GlobalConfigFetcher:
    """
    Retrieves the bootstrap document from an ordered list of fallback URLs.

    URLs are tried one after another, never concurrently; the first envelope with
    code 0 and a payload wins.
    """

    def __init__(self, client: AbstractBootstrapClient):
        self.client = client

    def fetch(self, bootstrap_urls: Iterable[str]) -> Optional[GlobalConfig]:
        """Returns None when every URL fails; the caller falls back to a cached config."""
        try:
            return self.fetch_or_raise(bootstrap_urls)
        except ConfigFetchError as e:
            logger.error("load global config ALL failed: %s", e)
            return None

    def fetch_or_raise(self, bootstrap_urls: Iterable[str]) -> GlobalConfig:
        tried = 0
        for url in bootstrap_urls:
            tried += 1
            try:
                response = self.client.get_global_config(url)
            except Exception as e:
                logger.error("load global config failed: %s, e=%s", url, e)
                continue

            code = response.get("code") if isinstance(response, dict) else None
            data = response.get("data") if isinstance(response, dict) else None
            if code != BOOTSTRAP_SUCCESS_CODE or not data:
                logger.warning("global config rejected: %s, code=%s", url, code)
                continue

            try:
                config = GlobalConfig.from_dict(data)
            except (KeyError, TypeError, AttributeError) as e:
                logger.error("global config malformed: %s, e=%s", url, e)
                continue

            logger.info(
                "resolver_global_config_fetched",
                extra={
                    LOG_EXTRA_KEY: {
                        "url": url,
                        "domains": len(config.domains),
                        "services": len(config.services),
                        "ts_ms": now_ms(),
                    }
                },
            )
            return config

        raise ConfigFetchError(f"no usable global config from {tried} url(s)")
