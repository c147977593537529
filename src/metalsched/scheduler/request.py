# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/metalsched/scheduler/request.py

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Role(str, Enum):
    CONTROL_PLANE = "ControlPlane"
    WORKER = "Worker"


# Roles are always placed in this order.
ROLE_ORDER: Tuple[Role, ...] = (Role.CONTROL_PLANE, Role.WORKER)


class SchedulingPolicy(str, Enum):
    """
    Per-role anti-affinity.

    Two hosts on the same server are never selected for the same role,
    whatever the policy. RACK additionally allows one host per rack.
    """

    NONE = "None"
    RACK = "RackAntiAffinity"


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class NodeSet(_Model):
    count: int = Field(default=0, ge=0)
    flavor: str = ""        # label selector "key=value"; empty matches any host
    scheduling: SchedulingPolicy = SchedulingPolicy.NONE

    @field_validator("flavor")
    @classmethod
    def _check_flavor(cls, v: str) -> str:
        if v:
            key, sep, _ = v.partition("=")
            if not sep or not key.strip():
                raise ValueError(f"flavor must look like key=value, got {v!r}")
        return v

    def flavor_selector(self) -> Optional[Tuple[str, str]]:
        if not self.flavor:
            return None
        key, _, value = self.flavor.partition("=")
        return key.strip(), value.strip()

    def matches(self, labels: Dict[str, str]) -> bool:
        selector = self.flavor_selector()
        if selector is None:
            return True
        key, value = selector
        return labels.get(key) == value


class ServiceSpec(_Model):
    image: str = ""
    node_port: Optional[int] = Field(default=None, alias="nodePort")
    node_interface: str = Field(alias="nodeInterface")
    node_labels: Dict[str, str] = Field(default_factory=dict, alias="nodeLabels")


class Services(_Model):
    load_balancer: List[ServiceSpec] = Field(default_factory=list, alias="loadBalancer")
    jump_host: List[ServiceSpec] = Field(default_factory=list, alias="jumpHost")

    def all(self) -> List[ServiceSpec]:
        return [*self.load_balancer, *self.jump_host]


class SubClusterRequest(_Model):
    name: str
    namespace: str = "default"
    nodes: Dict[Role, NodeSet] = Field(default_factory=dict)
    services: Services = Field(default_factory=Services)

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    def count_for(self, role: Role) -> int:
        spec = self.nodes.get(role)
        return spec.count if spec else 0

    def interfaces(self) -> List[str]:
        """Distinct service interfaces, in declaration order."""
        seen: List[str] = []
        for svc in self.services.all():
            if svc.node_interface not in seen:
                seen.append(svc.node_interface)
        return seen

    @property
    def requires_bmc_credentials(self) -> bool:
        return bool(self.services.jump_host)

    @classmethod
    def from_resource(cls, obj: Dict[str, Any]) -> "SubClusterRequest":
        """Build a request from a raw sub-cluster custom resource."""
        meta = obj.get("metadata") or {}
        spec = obj.get("spec") or {}
        return cls.model_validate(
            {
                "name": meta.get("name"),
                "namespace": meta.get("namespace") or "default",
                "nodes": spec.get("nodes") or {},
                "services": spec.get("services") or {},
            }
        )
