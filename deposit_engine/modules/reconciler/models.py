"""Structured results of a reconciliation cycle."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Optional

STAGE_CONFIGURATION = "configuration"
STAGE_FETCH = "fetch"
STAGE_INGEST = "ingest"
STAGE_MATCH = "match"
STAGE_CHECKPOINT = "checkpoint"
STAGE_CONFIRM = "confirm"
STAGE_CREDIT = "credit"
STAGE_EXPIRE = "expire"


@dataclass(slots=True)
class CycleError:
    stage: str
    network: Optional[str]
    reference: Optional[str]
    message: str


@dataclass(slots=True)
class NetworkReport:
    network: str
    wallets: int = 0
    head_height: Optional[int] = None
    checkpoint_before: Optional[int] = None
    checkpoint_after: Optional[int] = None
    chunks: int = 0
    fetched: int = 0
    ingested: int = 0
    duplicates: int = 0
    matched: int = 0
    errors: list[CycleError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass(slots=True)
class CycleReport:
    started_at: datetime
    finished_at: Optional[datetime] = None
    networks: dict[str, NetworkReport] = field(default_factory=dict)
    scanned: int = 0
    confirmed: int = 0
    credited: int = 0
    unmatched: int = 0
    expired_intents: int = 0
    errors: list[CycleError] = field(default_factory=list)

    @property
    def all_errors(self) -> list[CycleError]:
        collected = list(self.errors)
        for report in self.networks.values():
            collected.extend(report.errors)
        return collected

    @property
    def ok(self) -> bool:
        return not self.all_errors

    @property
    def ingested(self) -> int:
        return sum(report.ingested for report in self.networks.values())

    @property
    def matched(self) -> int:
        return sum(report.matched for report in self.networks.values())

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["ok"] = self.ok
        payload["ingested"] = self.ingested
        payload["matched"] = self.matched
        return payload
