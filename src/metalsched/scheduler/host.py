# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/metalsched/scheduler/host.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ..config.models import LabelKeys
from .errors import InvalidHostError
from .request import Role


class ScheduleStatus(str, Enum):
    NOT_SCHEDULED = "NotScheduled"
    SCHEDULED = "Scheduled"


@dataclass
class HostData:
    """Connection metadata resolved from a host's secrets."""

    bmc_username: str = ""
    bmc_password: str = ""
    ip_on_interface: Dict[str, str] = field(default_factory=dict)

    @property
    def has_credentials(self) -> bool:
        return bool(self.bmc_username and self.bmc_password)


def host_key(resource: Dict[str, Any]) -> str:
    meta = resource.get("metadata") or {}
    return f"{meta.get('namespace') or 'default'}/{meta.get('name', '')}"


class Host:
    """
    One bare-metal host resource as seen by a scheduling attempt.

    Wraps the raw resource together with the role it is considered for,
    its scheduling status and the metadata resolved for it. Hosts compare
    equal by namespaced name.
    """

    def __init__(
        self,
        resource: Dict[str, Any],
        role: Optional[Role] = None,
        status: ScheduleStatus = ScheduleStatus.NOT_SCHEDULED,
        *,
        label_keys: Optional[LabelKeys] = None,
    ):
        if status != ScheduleStatus.NOT_SCHEDULED:
            raise ValueError("hosts can only be constructed as NotScheduled")

        meta = resource.get("metadata") or {}
        if not meta.get("name"):
            raise InvalidHostError("host resource has no metadata.name")

        self.resource = resource
        self.key = host_key(resource)
        self.name: str = meta["name"]
        self.namespace: str = meta.get("namespace") or "default"

        spec = resource.get("spec") or {}
        network_data = spec.get("networkData") or {}
        if not network_data.get("name"):
            raise InvalidHostError(f"{self.key}: spec.networkData is not set")
        self.network_data_ref: Tuple[str, str] = (
            network_data.get("namespace") or self.namespace,
            network_data["name"],
        )

        bmc = spec.get("bmc") or {}
        self.credentials_ref: Optional[Tuple[str, str]] = (
            (self.namespace, bmc["credentialsName"]) if bmc.get("credentialsName") else None
        )
        self.bmc_address: str = bmc.get("address", "")

        self.role = role
        self.status = status
        self.data = HostData()
        self._label_keys = label_keys or LabelKeys()

    @property
    def labels(self) -> Dict[str, str]:
        return (self.resource.get("metadata") or {}).get("labels") or {}

    @property
    def server(self) -> Optional[str]:
        return self.labels.get(self._label_keys.server) or None

    @property
    def rack(self) -> Optional[str]:
        return self.labels.get(self._label_keys.rack) or None

    def owned_by(self, owner: str) -> bool:
        return (
            self.labels.get(self._label_keys.claimed) == "true"
            and self.labels.get(self._label_keys.owner) == owner
        )

    @property
    def recorded_role(self) -> Optional[str]:
        return self.labels.get(self._label_keys.role) or None

    def matches(self, resource: Dict[str, Any]) -> bool:
        """True when *resource* is the same host as this record."""
        return host_key(resource) == self.key

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Host):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __repr__(self) -> str:
        role = self.role.value if self.role else None
        return f"Host({self.key!r}, role={role!r}, status={self.status.value!r})"
