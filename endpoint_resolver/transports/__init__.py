from .abstract_transport import AbstractBootstrapClient, AbstractCallApiClient, AbstractProbeTransport
from .http_transport import HttpBootstrapClient, HttpCallApiClient, HTTPExecutorManager, HttpProbeTransport
from .pubsub_transport import PubSubConfigSink

__all__ = [
    "AbstractBootstrapClient",
    "AbstractCallApiClient",
    "AbstractProbeTransport",
    "HttpBootstrapClient",
    "HttpCallApiClient",
    "HTTPExecutorManager",
    "HttpProbeTransport",
    "PubSubConfigSink",
]
