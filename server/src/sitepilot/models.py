"""Records shared by the engine modules."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SiteType(str, Enum):
    UPLOAD = "upload"
    CODE = "code"


class HealthStatus(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"


@dataclass(frozen=True)
class SiteMetadata:
    host: str
    type: SiteType
    deployed_at: str
    size_bytes: int | None = None

    def to_dict(self) -> dict:
        return {
            "host": self.host,
            "type": self.type.value,
            "deployedAt": self.deployed_at,
            "size": self.size_bytes,
        }


@dataclass(frozen=True)
class SiteHealth:
    status: HealthStatus
    last_check: str


@dataclass(frozen=True)
class ReconcileResult:
    added: list[str]
    removed: list[str]
