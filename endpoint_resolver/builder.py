from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from .constants import DYN_SERVICE_LIST
from .types import DomainCandidate, ResolvedEndpoint, ServiceConfigMap, ServiceDefinition


def combine_service_config(
    domains: Sequence[DomainCandidate],
    services: Iterable[ServiceDefinition],
    known_service_names: Iterable[str],
) -> ServiceConfigMap:
    """
    Build name -> endpoints for every registered service that has a definition.

    Domain order is kept as given, so a latency-sorted input stays latency-sorted.
    A registered service whose labels match nothing still gets an empty list.
    """
    definitions = list(services or [])
    config: ServiceConfigMap = {}

    for name in known_service_names:
        target: Optional[ServiceDefinition] = next((s for s in definitions if s.name == name), None)
        if target is None:
            continue

        used_domains = [d for d in domains if d.label in target.domains]
        config[name] = [
            ResolvedEndpoint(
                url=f"https://{d.domain}{target.path}",
                # unprobed candidates carry no timing
                ms=getattr(d, "ms", None) or 0,
                cert_type=d.cert_type,
            )
            for d in used_domains
        ]

    return config


class ServiceConfigBuilder:
    def __init__(self, known_service_names: Optional[Sequence[str]] = None):
        self.known_service_names: List[str] = list(
            known_service_names if known_service_names is not None else DYN_SERVICE_LIST
        )

    def combine(self, domains: Sequence[DomainCandidate], services: Iterable[ServiceDefinition]) -> ServiceConfigMap:
        return combine_service_config(domains, services, self.known_service_names)
