# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/metalsched/scheduler/pool.py
from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Optional

from ..config.models import LabelKeys
from ..observers.dispatcher import EventBus
from ..observers.events import HostSkipped, PoolBuilt
from ..store.interface import HostStore
from .errors import InvalidHostError, NoCandidatesError
from .host import Host, host_key

log = logging.getLogger("metalsched")

CLAIMED = "true"
RELEASED = "false"


def is_claimed(resource: Dict[str, Any], labels: LabelKeys) -> bool:
    meta_labels = (resource.get("metadata") or {}).get("labels") or {}
    return meta_labels.get(labels.claimed) == CLAIMED


class CandidatePool:
    """
    Hosts available to one scheduling attempt, keyed by namespaced name.
    Iteration is sorted by key so placement is reproducible.
    """

    def __init__(self, hosts: Optional[List[Host]] = None):
        self._hosts: Dict[str, Host] = {}
        for h in hosts or []:
            self.add(h)

    def add(self, host: Host) -> None:
        self._hosts[host.key] = host

    def has_host(self, resource: Dict[str, Any]) -> bool:
        return host_key(resource) in self._hosts

    def get(self, key: str) -> Optional[Host]:
        return self._hosts.get(key)

    def hosts(self) -> List[Host]:
        return [self._hosts[k] for k in sorted(self._hosts)]

    def __iter__(self) -> Iterator[Host]:
        return iter(self.hosts())

    def __len__(self) -> int:
        return len(self._hosts)

    def __contains__(self, key: object) -> bool:
        return key in self._hosts


def build_pool(
    store: HostStore,
    *,
    labels: Optional[LabelKeys] = None,
    owner: Optional[str] = None,
    bus: Optional[EventBus] = None,
    run_ctx: Optional[dict] = None,
) -> CandidatePool:
    """
    Collect the hosts a scheduling attempt may place.

    Hosts labeled claimed are excluded, except those claimed by *owner*
    (the request being scheduled), which are offered again. Hosts that
    cannot be admitted are skipped. Raises NoCandidatesError when nothing
    is left.
    """
    labels = labels or LabelKeys()
    pool = CandidatePool()
    retained: List[str] = []

    resources = store.list_hosts(label_selector=f"{labels.claimed}!={CLAIMED}")
    if owner:
        resources = [
            *resources,
            *store.list_hosts(label_selector=f"{labels.claimed}={CLAIMED},{labels.owner}={owner}"),
        ]

    for res in resources:
        if pool.has_host(res):
            continue
        held = False
        if is_claimed(res, labels):
            meta_labels = (res.get("metadata") or {}).get("labels") or {}
            if not owner or meta_labels.get(labels.owner) != owner:
                continue
            held = True
        try:
            host = Host(res, label_keys=labels)
        except InvalidHostError as exc:
            log.warning("Skipping host %s: %s", host_key(res), exc)
            if bus and run_ctx:
                bus.emit(HostSkipped(host=host_key(res), error=str(exc), **run_ctx))
            continue
        pool.add(host)
        if held:
            retained.append(host.key)

    if not len(pool):
        raise NoCandidatesError("no unclaimed hosts are available for scheduling")

    log.info("Candidate pool: %d hosts (%d already held)", len(pool), len(retained))
    if bus and run_ctx:
        bus.emit(PoolBuilt(candidates=[h.key for h in pool], retained=sorted(retained), **run_ctx))
    return pool
