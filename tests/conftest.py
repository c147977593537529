import copy
import logging
import json
from typing import Dict, List, Optional

import pytest

from metalsched.config.models import LabelKeys
from metalsched.scheduler.request import SubClusterRequest
from metalsched.store.conditions import CONDITION_READY, find_condition, upsert_condition
from metalsched.store.errors import ConflictError, NotFoundError

LABELS = LabelKeys()
FLAVOR_KEY = "metalsched.io/flavor"
FLAVORS = {"ControlPlane": "control-plane", "Worker": "worker"}

NETWORK_DATA = json.dumps(
    {
        "links": [
            {"id": "enp0s3", "type": "phy", "ethernet_mac_address": "52:54:00:6c:f1:0a"},
            {"id": "enp0s4", "type": "phy", "ethernet_mac_address": "52:54:00:6c:f1:0b"},
        ],
        "networks": [
            {"id": "oam-ipv4", "type": "ipv4", "link": "enp0s3", "ip_address": "32.68.51.139/26"},
            {"id": "pxe-ipv4", "type": "ipv4", "link": "enp0s4", "ip_address": "172.3.3.4"},
        ],
        "services": [],
    }
)


def _matches(labels: Dict[str, str], selector: Optional[str]) -> bool:
    if not selector:
        return True
    for term in selector.split(","):
        if "!=" in term:
            k, v = term.split("!=", 1)
            if labels.get(k) == v:
                return False
        else:
            k, v = term.split("=", 1)
            if labels.get(k) != v:
                return False
    return True


class FakeStore:
    """In-memory HostStore. Returns copies, like a real API server."""

    def __init__(self):
        self.hosts: Dict[str, dict] = {}
        self.secrets: Dict[str, Dict[str, bytes]] = {}
        self.requests: Dict[str, dict] = {}
        self.calls: List[tuple] = []
        self.conflict_on: set = set()
        self.missing_on: set = set()

    # --- seeding ---
    def add_host(self, res: dict) -> dict:
        meta = res["metadata"]
        self.hosts[f"{meta['namespace']}/{meta['name']}"] = res
        return res

    def add_secret(self, namespace: str, name: str, data: Dict[str, bytes]) -> None:
        self.secrets[f"{namespace}/{name}"] = data

    def add_request(self, req: SubClusterRequest) -> None:
        self.requests[req.key] = {
            "metadata": {"name": req.name, "namespace": req.namespace},
            "spec": req.model_dump(mode="json", by_alias=True, include={"nodes", "services"}),
        }

    # --- HostStore ---
    def list_hosts(self, label_selector=None):
        self.calls.append(("list_hosts", label_selector))
        return [
            copy.deepcopy(h)
            for h in self.hosts.values()
            if _matches(h["metadata"].get("labels") or {}, label_selector)
        ]

    def get_secret(self, namespace, name):
        self.calls.append(("get_secret", f"{namespace}/{name}"))
        try:
            return dict(self.secrets[f"{namespace}/{name}"])
        except KeyError:
            raise NotFoundError(f"secret {namespace}/{name} not found")

    def patch_host_labels(self, namespace, name, labels):
        key = f"{namespace}/{name}"
        self.calls.append(("patch_host_labels", key))
        if key in self.conflict_on:
            raise ConflictError(f"{key} was modified")
        if key in self.missing_on:
            raise NotFoundError(f"baremetalhost {key} not found")
        current = self.hosts[key]["metadata"].setdefault("labels", {})
        for k, v in labels.items():
            if v is None:
                current.pop(k, None)
            else:
                current[k] = v

    def get_request(self, namespace, name):
        try:
            return copy.deepcopy(self.requests[f"{namespace}/{name}"])
        except KeyError:
            raise NotFoundError(f"request {namespace}/{name} not found")

    def patch_request_status(self, namespace, name, condition):
        self.calls.append(("patch_request_status", f"{namespace}/{name}"))
        obj = self.requests.setdefault(
            f"{namespace}/{name}", {"metadata": {"name": name, "namespace": namespace}}
        )
        status = obj.setdefault("status", {})
        status["conditions"] = upsert_condition(status.get("conditions"), condition)

    # --- assertions helpers ---
    def labels(self, name: str, namespace: str = "default") -> Dict[str, str]:
        return self.hosts[f"{namespace}/{name}"]["metadata"].get("labels") or {}

    def claimed(self) -> List[str]:
        return sorted(
            h["metadata"]["name"]
            for h in self.hosts.values()
            if (h["metadata"].get("labels") or {}).get(LABELS.claimed) == "true"
        )

    def ready(self, name: str, namespace: str = "default") -> Optional[dict]:
        obj = self.requests.get(f"{namespace}/{name}") or {}
        return find_condition((obj.get("status") or {}).get("conditions"), CONDITION_READY)

    def secret_reads(self) -> int:
        return sum(1 for c in self.calls if c[0] == "get_secret")


def bmh_resource(
    n: int,
    role: str = "ControlPlane",
    *,
    namespace: str = "default",
    server: Optional[str] = None,
    rack: Optional[str] = "r01",
    network_data: bool = True,
    credentials: Optional[str] = None,
) -> dict:
    name = f"node{n:02d}"
    labels = {
        FLAVOR_KEY: FLAVORS[role],
        LABELS.server: server or f"server{n:02d}",
    }
    if rack is not None:
        labels[LABELS.rack] = rack
    spec: dict = {
        "online": True,
        "bmc": {"address": f"redfish+http://10.0.0.{n}:8000/redfish/v1/Systems/{name}"},
    }
    if credentials:
        spec["bmc"]["credentialsName"] = credentials
    if network_data:
        spec["networkData"] = {"name": f"{name}-network-data", "namespace": namespace}
    return {
        "apiVersion": "metal3.io/v1alpha1",
        "kind": "BareMetalHost",
        "metadata": {"name": name, "namespace": namespace, "labels": labels},
        "spec": spec,
    }


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def add_host(store):
    """Create a host with its network-data and BMC secrets in the store."""

    def _add(n: int, role: str = "ControlPlane", *, bmc_secret: bool = True, **kw) -> dict:
        name = f"node{n:02d}"
        kw.setdefault("credentials", f"{name}-bmc-secret")
        res = store.add_host(bmh_resource(n, role, **kw))
        ns = res["metadata"]["namespace"]
        store.add_secret(ns, f"{name}-network-data", {"networkData": NETWORK_DATA.encode()})
        if bmc_secret:
            store.add_secret(ns, f"{name}-bmc-secret", {"username": b"root", "password": b"test"})
        return res

    return _add


@pytest.fixture
def make_request():
    def _make(
        name: str = "subcluster-1",
        control_planes: int = 1,
        workers: int = 0,
        *,
        scheduling: str = "None",
        load_balancers=(),
        jump_hosts=(),
        namespace: str = "default",
    ) -> SubClusterRequest:
        return SubClusterRequest.model_validate(
            {
                "name": name,
                "namespace": namespace,
                "nodes": {
                    "ControlPlane": {
                        "count": control_planes,
                        "flavor": f"{FLAVOR_KEY}=control-plane",
                        "scheduling": scheduling,
                    },
                    "Worker": {
                        "count": workers,
                        "flavor": f"{FLAVOR_KEY}=worker",
                        "scheduling": scheduling,
                    },
                },
                "services": {
                    "loadBalancer": [
                        {"image": "haproxy:latest", "nodePort": 30000, "nodeInterface": i}
                        for i in load_balancers
                    ],
                    "jumpHost": [
                        {"image": "quay.io/airshipit/jump-host", "nodeInterface": i}
                        for i in jump_hosts
                    ],
                },
            }
        )

    return _make


@pytest.fixture(autouse=True)
def _reset_logger():
    yield
    logger = logging.getLogger("metalsched")
    for h in list(logger.handlers):
        h.close()
        logger.removeHandler(h)
    logger.propagate = True
