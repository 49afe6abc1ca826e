from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping

from .constants import CERT_TYPE_AUTHORITY


@dataclass(frozen=True)
class DomainCandidate:
    domain: str
    cert_type: str = CERT_TYPE_AUTHORITY  # "self" | "authority"
    label: str = ""  # grouping key referenced by ServiceDefinition.domains

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "DomainCandidate":
        return DomainCandidate(
            domain=str(data["domain"]),
            cert_type=str(data.get("certType") or CERT_TYPE_AUTHORITY),
            label=str(data.get("label") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"domain": self.domain, "certType": self.cert_type, "label": self.label}


@dataclass(frozen=True)
class ProbeResult(DomainCandidate):
    ms: int = 0  # -1 means unusable

    @staticmethod
    def from_candidate(candidate: DomainCandidate, ms: int) -> "ProbeResult":
        return ProbeResult(domain=candidate.domain, cert_type=candidate.cert_type, label=candidate.label, ms=ms)

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "ms": self.ms}


@dataclass(frozen=True)
class ServiceDefinition:
    name: str
    path: str = ""
    domains: List[str] = field(default_factory=list)  # labels this service may use

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "ServiceDefinition":
        return ServiceDefinition(
            name=str(data["name"]),
            path=str(data.get("path") or ""),
            domains=[str(label) for label in data.get("domains") or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "path": self.path, "domains": list(self.domains)}


@dataclass(frozen=True)
class ResolvedEndpoint:
    url: str
    ms: int = 0
    cert_type: str = CERT_TYPE_AUTHORITY

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "ResolvedEndpoint":
        ms = data.get("ms")
        return ResolvedEndpoint(
            url=str(data["url"]),
            ms=int(ms) if ms is not None else 0,
            cert_type=str(data.get("certType") or CERT_TYPE_AUTHORITY),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"url": self.url, "ms": self.ms, "certType": self.cert_type}


@dataclass
class GlobalConfig:
    domains: List[DomainCandidate] = field(default_factory=list)
    services: List[ServiceDefinition] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)  # unrelated top-level keys, kept for round trips

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "GlobalConfig":
        extra = {k: v for k, v in data.items() if k not in ("domains", "services")}
        return GlobalConfig(
            domains=[DomainCandidate.from_dict(d) for d in data.get("domains") or []],
            services=[ServiceDefinition.from_dict(s) for s in data.get("services") or []],
            extra=extra,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.extra,
            "domains": [d.to_dict() for d in self.domains],
            "services": [s.to_dict() for s in self.services],
        }


ServiceConfigMap = Dict[str, List[ResolvedEndpoint]]


def service_config_to_dict(config: ServiceConfigMap) -> Dict[str, List[Dict[str, Any]]]:
    return {name: [e.to_dict() for e in endpoints] for name, endpoints in config.items()}


def service_config_from_dict(data: Mapping[str, Any]) -> ServiceConfigMap:
    return {str(name): [ResolvedEndpoint.from_dict(e) for e in endpoints or []] for name, endpoints in data.items()}
