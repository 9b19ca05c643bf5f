"""Environment driven settings and logging setup."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .artifacts import ArtifactRegistry
from .store import JsonRecordStore, MemoryRecordStore, RecordStore

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"


@dataclass(frozen=True)
class Settings:
    store_path: Path = Path("records.json")
    store_backend: str = "json"
    artifact_dir: Path = Path("keys")
    log_level: str = "INFO"
    session_ttl: float = 3600.0

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        backend = env.get("ZKLOGIN_STORE_BACKEND", cls.store_backend).lower()
        if backend not in ("json", "memory"):
            raise ValueError(f"Unknown store backend {backend!r}")
        return cls(
            store_path=Path(env.get("ZKLOGIN_STORE", str(cls.store_path))),
            store_backend=backend,
            artifact_dir=Path(env.get("ZKLOGIN_ARTIFACTS", str(cls.artifact_dir))),
            log_level=env.get("ZKLOGIN_LOG_LEVEL", cls.log_level).upper(),
            session_ttl=float(env.get("ZKLOGIN_SESSION_TTL", cls.session_ttl)),
        )

    def create_store(self) -> RecordStore:
        if self.store_backend == "memory":
            return MemoryRecordStore()
        return JsonRecordStore(str(self.store_path))

    def create_registry(self) -> ArtifactRegistry:
        return ArtifactRegistry(self.artifact_dir)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


__all__ = ["Settings", "configure_logging", "LOG_FORMAT"]
