import json
from typing import Any

from google.cloud import pubsub_v1

from ..types import ServiceConfigMap, service_config_to_dict


class PubSubConfigSink:
    """
    Forwards a resolved service config to other processes over Pub/Sub,
    blocking until the service ACK.
    """

    def __init__(self, publisher_client: pubsub_v1.PublisherClient, topic: str):
        self.client = publisher_client
        self.topic = topic

    def __call__(self, config: ServiceConfigMap) -> Any:
        """
        Publishes the full snapshot. Repeating the same snapshot is harmless.

        Returns:
            The Pub/Sub message id.
        """
        # Pub/Sub requires data to be bytes
        data = json.dumps(service_config_to_dict(config), sort_keys=True).encode("utf-8")

        future = self.client.publish(topic=self.topic, data=data)

        try:
            return future.result()
        except Exception as e:
            raise RuntimeError(f"Pub/Sub publish failed for topic {self.topic}: {e}") from e
