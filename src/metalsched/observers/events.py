# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/metalsched/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
import uuid


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str                 # ISO timestamp
    run_id: str             # correlates all events of one scheduling attempt
    request: str            # namespace/name of the sub-cluster request
    context: Optional[str]  # kube-context

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def new_ctx(request: str, context: Optional[str] = None, run_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "ts": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        "run_id": run_id or str(uuid.uuid4()),
        "request": request,
        "context": context,
    }


# ---------------------------------------------------------------------
# Candidate pool
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class PoolBuilt(BaseEvent):
    candidates: List[str]
    retained: List[str]

@dataclass(frozen=True)
class HostSkipped(BaseEvent):
    host: str
    error: str


# ---------------------------------------------------------------------
# Placement
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class HostRejected(BaseEvent):
    host: str
    error: str

@dataclass(frozen=True)
class PlacementComputed(BaseEvent):
    selected: Dict[str, List[str]]
    released: List[str]

@dataclass(frozen=True)
class PlacementFailed(BaseEvent):
    reason: str
    message: str


# ---------------------------------------------------------------------
# Commit
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class HostLabeled(BaseEvent):
    host: str
    claimed: bool

@dataclass(frozen=True)
class LabelConflict(BaseEvent):
    host: str
    error: str

@dataclass(frozen=True)
class ReadinessUpdated(BaseEvent):
    ready: bool
    reason: str

@dataclass(frozen=True)
class HostsReleased(BaseEvent):
    hosts: List[str]
