from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import IO, List, Optional

from . import constants


@dataclass
class ResolverConfig:
    """
    Configuration for the endpoint resolver.
    Allows overriding defaults for experimentation.
    """
    bootstrap_urls: List[str] = field(default_factory=list)
    storage_dir: str = constants.DEFAULT_STORAGE_DIR
    known_services: List[str] = field(default_factory=lambda: list(constants.DYN_SERVICE_LIST))
    call_service_name: str = constants.CALL_SERVICE_NAME

    # Timers
    select_threshold_sec: float = constants.DEFAULT_SELECT_THRESHOLD_SEC
    global_refresh_interval_sec: float = constants.DEFAULT_GLOBAL_REFRESH_INTERVAL_SEC
    call_refresh_interval_sec: float = constants.DEFAULT_CALL_REFRESH_INTERVAL_SEC

    # Network bounds
    probe_timeout_sec: float = constants.DEFAULT_PROBE_TIMEOUT_SEC
    probe_pass_timeout_sec: float = constants.DEFAULT_PROBE_PASS_TIMEOUT_SEC
    bootstrap_timeout_sec: float = constants.DEFAULT_BOOTSTRAP_TIMEOUT_SEC
    call_api_timeout_sec: float = constants.DEFAULT_CALL_API_TIMEOUT_SEC
    # Sizes the process-wide pool; only the first resolver in a process gets its way
    max_workers: int = constants.DEFAULT_HTTP_MAX_WORKERS

    # Trust anchor for "self" candidates; None disables verification for them
    self_signed_ca_bundle: Optional[str] = None

    # Cross-process publication target (full topic path)
    pubsub_topic: Optional[str] = None

    @staticmethod
    def from_dict(data: dict) -> "ResolverConfig":
        return ResolverConfig(**data)

    def to_dict(self) -> dict:
        return asdict(self)


def load_config(path_or_file: str | Path | IO[str]) -> ResolverConfig:
    if hasattr(path_or_file, "read"):
        raw = path_or_file.read()
    else:
        with open(Path(path_or_file), "r", encoding="utf-8") as f:
            raw = f.read()

    data = json.loads(raw)
    return ResolverConfig.from_dict(data)


def dump_config(config: ResolverConfig, path_or_file: str | Path | IO[str]) -> None:
    serialized = json.dumps(config.to_dict(), indent=2)

    if hasattr(path_or_file, "write"):
        path_or_file.write(serialized)
    else:
        Path(path_or_file).write_text(serialized, encoding="utf-8")
