# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/metalsched/scheduler/engine.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from ..config.models import SchedulerConfig
from ..observers.dispatcher import EventBus
from ..observers.events import (
    HostRejected,
    HostsReleased,
    PlacementComputed,
    PlacementFailed,
    new_ctx,
)
from ..observers.interface import Observer
from ..store.interface import HostStore
from .committer import CommitReport, DecisionCommitter
from .errors import InvalidHostError, NoCandidatesError
from .extrapolate import Extrapolator
from .host import Host
from .pool import CLAIMED, CandidatePool, build_pool
from .request import SubClusterRequest
from .selector import REASON_NO_CANDIDATES, PlacementDecision, select

log = logging.getLogger("metalsched")


@dataclass
class ScheduleResult:
    decision: PlacementDecision
    report: CommitReport
    pool: CandidatePool

    @property
    def ready(self) -> bool:
        return self.decision.ok


class Scheduler:
    """
    Runs scheduling attempts for sub-cluster requests.

    One call to ``schedule`` is one attempt: build the candidate pool,
    select hosts (resolving their metadata as they are accepted) and write
    the outcome back. Nothing is cached between attempts.
    """

    def __init__(
        self,
        store: HostStore,
        config: Optional[SchedulerConfig] = None,
        observers: Optional[List[Observer]] = None,
        run_id: Optional[str] = None,
    ):
        self.store = store
        self.config = config or SchedulerConfig()
        self.bus = EventBus(observers)
        self.run_id = run_id
        self.committer = DecisionCommitter(store, self.config.labels, self.bus)

    def _ctx(self, request: SubClusterRequest) -> dict:
        return new_ctx(request.key, self.config.context, self.run_id)

    def schedule(self, request: SubClusterRequest) -> ScheduleResult:
        ctx = self._ctx(request)
        log.info("Scheduling %s", request.key)

        try:
            pool = build_pool(
                self.store,
                labels=self.config.labels,
                owner=request.name,
                bus=self.bus,
                run_ctx=ctx,
            )
        except NoCandidatesError as exc:
            pool = CandidatePool()
            decision = PlacementDecision.failure(REASON_NO_CANDIDATES, str(exc))
        else:
            extrapolator = Extrapolator(self.store, self.config.secrets)
            decision = select(
                pool,
                request,
                admit=lambda host: extrapolator.extrapolate(host, request),
                owner=request.name,
            )

        for key, error in decision.errors.items():
            self.bus.emit(HostRejected(host=key, error=error, **ctx))

        if decision.ok:
            self.bus.emit(
                PlacementComputed(
                    selected={r.value: [h.key for h in hs] for r, hs in decision.selected.items()},
                    released=[h.key for h in decision.rejected],
                    **ctx,
                )
            )
        else:
            self.bus.emit(PlacementFailed(reason=decision.reason, message=decision.message, **ctx))

        report = self.committer.commit(request, decision, ctx)
        return ScheduleResult(decision=decision, report=report, pool=pool)

    def release(self, request: SubClusterRequest) -> CommitReport:
        """Give back every host claimed by *request*."""
        ctx = self._ctx(request)
        labels = self.config.labels
        resources = self.store.list_hosts(
            label_selector=f"{labels.claimed}={CLAIMED},{labels.owner}={request.name}"
        )

        hosts: List[Host] = []
        for res in resources:
            try:
                host = Host(res, label_keys=labels)
            except InvalidHostError as exc:
                log.warning("Cannot release %s: %s", res.get("metadata", {}).get("name"), exc)
                continue
            if host.owned_by(request.name):
                hosts.append(host)

        report = CommitReport()
        self.committer.release(hosts, report, ctx)
        self.bus.emit(HostsReleased(hosts=report.released, **ctx))
        log.info("Released %d hosts from %s", len(report.released), request.key)
        return report
