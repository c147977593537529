# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/metalsched/scheduler/extrapolate.py

from __future__ import annotations

import ipaddress
import logging
from typing import Any, Dict, Iterable, List

import yaml

from ..config.models import SecretKeys
from ..store.errors import NotFoundError
from ..store.interface import HostStore
from .errors import (
    CredentialResolutionError,
    ExtrapolationError,
    MalformedCredentialError,
    MalformedNetworkDataError,
    NetworkDataMissingError,
)
from .host import Host
from .request import SubClusterRequest

log = logging.getLogger("metalsched")


def _as_str(v: Any) -> str:
    if v is None:
        return ""
    if isinstance(v, (bytes, bytearray)):
        return v.decode("utf-8", errors="replace")
    return str(v)


def parse_network_data(host: str, raw: Any) -> List[Dict[str, Any]]:
    """Return the ``networks`` list of a network-data payload."""
    try:
        doc = yaml.safe_load(_as_str(raw))
    except yaml.YAMLError as exc:
        raise MalformedNetworkDataError(host, f"network data is not valid YAML/JSON: {exc}") from exc

    if not isinstance(doc, dict) or not isinstance(doc.get("networks"), list):
        raise MalformedNetworkDataError(host, "network data has no 'networks' list")
    return [n for n in doc["networks"] if isinstance(n, dict)]


def address_on_interface(host: str, networks: List[Dict[str, Any]], interface: str) -> str:
    """
    Find the address bound to *interface* and strip any prefix length.
    Networks are matched by ``id`` first, then by ``link``.
    """
    entry = next((n for n in networks if n.get("id") == interface), None)
    if entry is None:
        entry = next((n for n in networks if n.get("link") == interface), None)
    if entry is None:
        raise MalformedNetworkDataError(host, f"no network entry for interface '{interface}'")

    raw_ip = entry.get("ip_address")
    if not raw_ip:
        raise MalformedNetworkDataError(host, f"interface '{interface}' has no ip_address")
    try:
        return str(ipaddress.ip_interface(str(raw_ip)).ip)
    except ValueError as exc:
        raise MalformedNetworkDataError(
            host, f"interface '{interface}' has an invalid address {raw_ip!r}"
        ) from exc


class Extrapolator:
    """
    Resolves BMC credentials and service addresses for hosts.

    Both operations only touch the store for data the host does not
    already carry, so running them again on a resolved host is free.
    """

    def __init__(self, store: HostStore, keys: SecretKeys | None = None):
        self.store = store
        self.keys = keys or SecretKeys()

    def resolve_credentials(self, host: Host) -> None:
        if host.data.has_credentials:
            return
        if host.credentials_ref is None:
            raise CredentialResolutionError(host.key, "spec.bmc.credentialsName is not set")

        namespace, name = host.credentials_ref
        try:
            data = self.store.get_secret(namespace, name)
        except NotFoundError as exc:
            raise CredentialResolutionError(
                host.key, f"BMC credential secret {namespace}/{name} not found"
            ) from exc

        username = _as_str(data.get(self.keys.username))
        password = _as_str(data.get(self.keys.password))
        if not username or not password:
            raise MalformedCredentialError(
                host.key,
                f"secret {namespace}/{name} must carry non-empty "
                f"'{self.keys.username}' and '{self.keys.password}'",
            )

        host.data.bmc_username = username
        host.data.bmc_password = password
        log.debug("%s: resolved BMC credentials from %s/%s", host.key, namespace, name)

    def resolve_addresses(self, host: Host, interfaces: Iterable[str]) -> None:
        missing = [i for i in interfaces if i not in host.data.ip_on_interface]
        if not missing:
            return

        namespace, name = host.network_data_ref
        try:
            data = self.store.get_secret(namespace, name)
        except NotFoundError as exc:
            raise NetworkDataMissingError(
                host.key, f"network data secret {namespace}/{name} not found"
            ) from exc

        if self.keys.network_data not in data:
            raise MalformedNetworkDataError(
                host.key, f"secret {namespace}/{name} has no '{self.keys.network_data}' key"
            )
        networks = parse_network_data(host.key, data[self.keys.network_data])

        resolved = {i: address_on_interface(host.key, networks, i) for i in missing}
        host.data.ip_on_interface.update(resolved)
        log.debug("%s: resolved addresses %s", host.key, resolved)

    def extrapolate(self, host: Host, request: SubClusterRequest) -> None:
        """Resolve whatever *request* needs from *host*."""
        interfaces = request.interfaces()
        if interfaces:
            self.resolve_addresses(host, interfaces)
        if request.requires_bmc_credentials:
            self.resolve_credentials(host)
