# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/metalsched/scheduler/selector.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set

from .errors import ExtrapolationError
from .host import Host
from .pool import CandidatePool
from .request import ROLE_ORDER, NodeSet, Role, SchedulingPolicy, SubClusterRequest

log = logging.getLogger("metalsched")

REASON_SCHEDULED = "Scheduled"
REASON_NO_CANDIDATES = "NoCandidates"
REASON_AFFINITY = "AffinityConstraintUnsatisfiable"

INSUFFICIENT_REASONS: Dict[Role, str] = {
    Role.CONTROL_PLANE: "InsufficientControlPlaneNodes",
    Role.WORKER: "InsufficientWorkerNodes",
}


@dataclass
class PlacementDecision:
    """
    Outcome of one selection. On success ``selected`` maps every requested
    role to its hosts and ``rejected`` holds the rest of the pool. On failure
    nothing is selected and the whole pool is rejected.
    """

    ok: bool
    reason: str
    message: str = ""
    selected: Dict[Role, List[Host]] = field(default_factory=dict)
    rejected: List[Host] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)

    def selected_hosts(self) -> List[Host]:
        return [h for role in ROLE_ORDER for h in self.selected.get(role, [])]

    @classmethod
    def failure(
        cls,
        reason: str,
        message: str,
        pool: Optional[CandidatePool] = None,
        errors: Optional[Dict[str, str]] = None,
    ) -> "PlacementDecision":
        return cls(
            ok=False,
            reason=reason,
            message=message,
            rejected=list(pool or []),
            errors=dict(errors or {}),
        )


# Called on a host just before it is accepted; raising ExtrapolationError
# makes the host ineligible.
Admit = Callable[[Host], None]


@dataclass
class _RoleOutcome:
    picks: List[Host]
    viable: int


def _ordered_candidates(pool: CandidatePool, role: Role, owner: Optional[str]) -> List[Host]:
    """Hosts this request already holds for *role* first, then by key."""
    def rank(h: Host) -> tuple:
        held = bool(owner) and h.owned_by(owner) and h.recorded_role == role.value
        return (0 if held else 1, h.key)

    return sorted(pool, key=rank)


def _select_role(
    role: Role,
    spec: NodeSet,
    candidates: List[Host],
    taken: Set[str],
    admit: Optional[Admit],
    errors: Dict[str, str],
) -> _RoleOutcome:
    """
    Greedy pick with at most one host per affinity group.

    The server is always a group; under rack anti-affinity the rack is one
    too. Hosts missing the label a group needs cannot be placed. ``viable``
    counts hosts that could have served the role had affinity allowed it.
    """
    used_servers: Set[str] = set()
    used_racks: Set[str] = set()
    picks: List[Host] = []
    viable = 0
    rack_policy = spec.scheduling == SchedulingPolicy.RACK

    for host in candidates:
        if host.key in taken or host.key in errors or not spec.matches(host.labels):
            continue
        if len(picks) == spec.count:
            break

        server = host.server
        rack = host.rack
        if server is None or server in used_servers:
            viable += 1
            continue
        if rack_policy and (rack is None or rack in used_racks):
            viable += 1
            continue

        if admit is not None:
            try:
                admit(host)
            except ExtrapolationError as exc:
                log.warning("Host %s is not eligible for %s: %s", host.key, role.value, exc)
                errors[host.key] = str(exc)
                continue

        viable += 1
        picks.append(host)
        used_servers.add(server)
        if rack is not None:
            used_racks.add(rack)

    return _RoleOutcome(picks=picks, viable=viable)


def select(
    pool: CandidatePool,
    request: SubClusterRequest,
    *,
    admit: Optional[Admit] = None,
    owner: Optional[str] = None,
) -> PlacementDecision:
    """
    Choose hosts for every role of *request*, or fail as a whole.

    Roles are placed in ROLE_ORDER against a shared pool, so a host taken
    by the control plane is not offered to workers. A host that failed
    admission is not offered again.
    """
    taken: Set[str] = set()
    selected: Dict[Role, List[Host]] = {}
    errors: Dict[str, str] = {}

    for role in ROLE_ORDER:
        spec = request.nodes.get(role)
        if spec is None or spec.count == 0:
            selected[role] = []
            continue

        outcome = _select_role(
            role,
            spec,
            _ordered_candidates(pool, role, owner),
            taken,
            admit,
            errors,
        )
        if len(outcome.picks) < spec.count:
            if outcome.viable < spec.count:
                reason = INSUFFICIENT_REASONS[role]
                message = (
                    f"{role.value} needs {spec.count} hosts, "
                    f"only {outcome.viable} eligible hosts are available"
                )
            else:
                reason = REASON_AFFINITY
                message = (
                    f"{role.value} needs {spec.count} hosts, only {len(outcome.picks)} "
                    f"can be placed under {spec.scheduling.value} scheduling"
                )
            log.info("Placement failed for %s: %s", request.key, message)
            return PlacementDecision.failure(reason, message, pool, errors)

        for host in outcome.picks:
            host.role = role
            taken.add(host.key)
        selected[role] = outcome.picks

    rejected = [h for h in pool if h.key not in taken]
    counts = ", ".join(f"{len(selected[r])} {r.value}" for r in ROLE_ORDER)
    return PlacementDecision(
        ok=True,
        reason=REASON_SCHEDULED,
        message=f"scheduled {counts}",
        selected=selected,
        rejected=rejected,
        errors=errors,
    )
