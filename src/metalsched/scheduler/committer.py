# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/metalsched/scheduler/committer.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from ..config.models import LabelKeys
from ..observers.dispatcher import EventBus
from ..observers.events import HostLabeled, LabelConflict, ReadinessUpdated
from ..store.conditions import CONDITION_READY, new_condition
from ..store.errors import ConflictError, StoreError
from ..store.interface import HostStore
from .host import Host, ScheduleStatus
from .pool import CLAIMED, RELEASED
from .request import SubClusterRequest
from .selector import PlacementDecision

log = logging.getLogger("metalsched")


@dataclass
class CommitReport:
    claimed: List[str] = field(default_factory=list)
    released: List[str] = field(default_factory=list)
    conflicts: Dict[str, str] = field(default_factory=dict)
    failed: Dict[str, str] = field(default_factory=dict)
    ready_updated: bool = False

    def summary(self) -> str:
        return (
            f"CLAIMED={len(self.claimed)} RELEASED={len(self.released)} "
            f"CONFLICTS={len(self.conflicts)} FAILED={len(self.failed)}"
        )


class DecisionCommitter:
    """
    Writes a placement decision back to the store.

    Each host is patched on its own. A host whose patch loses a race is
    reported and left for the next attempt; the rest of the commit goes on.
    """

    def __init__(
        self,
        store: HostStore,
        labels: Optional[LabelKeys] = None,
        bus: Optional[EventBus] = None,
    ):
        self.store = store
        self.labels = labels or LabelKeys()
        self.bus = bus or EventBus()

    def claim_labels(self, host: Host, owner: str) -> Dict[str, Optional[str]]:
        return {
            self.labels.claimed: CLAIMED,
            self.labels.owner: owner,
            self.labels.role: host.role.value if host.role else None,
        }

    def release_labels(self) -> Dict[str, Optional[str]]:
        return {
            self.labels.claimed: RELEASED,
            self.labels.owner: None,
            self.labels.role: None,
        }

    def _patch(
        self,
        host: Host,
        patch: Dict[str, Optional[str]],
        report: CommitReport,
        run_ctx: dict,
    ) -> bool:
        try:
            self.store.patch_host_labels(host.namespace, host.name, patch)
        except ConflictError as exc:
            log.warning("Label write on %s conflicted, leaving it for the next attempt: %s", host.key, exc)
            report.conflicts[host.key] = str(exc)
            self.bus.emit(LabelConflict(host=host.key, error=str(exc), **run_ctx))
            return False
        except StoreError as exc:
            log.error("Label write on %s failed: %s", host.key, exc)
            report.failed[host.key] = str(exc)
            return False

        # keep the in-memory copy in step with what was written
        meta = host.resource.setdefault("metadata", {})
        current = dict(meta.get("labels") or {})
        for k, v in patch.items():
            if v is None:
                current.pop(k, None)
            else:
                current[k] = v
        meta["labels"] = current
        return True

    def release(self, hosts: Iterable[Host], report: CommitReport, run_ctx: dict) -> None:
        for host in hosts:
            if self._patch(host, self.release_labels(), report, run_ctx):
                host.status = ScheduleStatus.NOT_SCHEDULED
                report.released.append(host.key)
                self.bus.emit(HostLabeled(host=host.key, claimed=False, **run_ctx))

    def commit(
        self,
        request: SubClusterRequest,
        decision: PlacementDecision,
        run_ctx: dict,
    ) -> CommitReport:
        report = CommitReport()

        for host in decision.selected_hosts():
            if self._patch(host, self.claim_labels(host, request.name), report, run_ctx):
                host.status = ScheduleStatus.SCHEDULED
                report.claimed.append(host.key)
                self.bus.emit(HostLabeled(host=host.key, claimed=True, **run_ctx))

        self.release(decision.rejected, report, run_ctx)

        condition = new_condition(CONDITION_READY, decision.ok, decision.reason, decision.message)
        try:
            self.store.patch_request_status(request.namespace, request.name, condition)
        except StoreError as exc:
            log.warning("Status update on %s failed: %s", request.key, exc)
        else:
            report.ready_updated = True
            self.bus.emit(ReadinessUpdated(ready=decision.ok, reason=decision.reason, **run_ctx))

        log.info("Commit for %s: %s", request.key, report.summary())
        return report
