# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/metalsched/store/kube.py
from __future__ import annotations

import base64
import logging
from typing import Any, Dict, List, Optional

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from ..config.models import SchedulerConfig
from .conditions import upsert_condition
from .errors import ConflictError, NotFoundError, StoreError

log = logging.getLogger("metalsched")


def _translate(exc: ApiException, what: str) -> StoreError:
    if exc.status == 404:
        return NotFoundError(f"{what} not found")
    if exc.status == 409:
        return ConflictError(f"{what}: {exc.reason}")
    return StoreError(f"{what}: HTTP {exc.status} {exc.reason}")


def load_kube_config(kube_context: Optional[str] = None) -> None:
    """Load kubeconfig, falling back to the in-cluster service account."""
    try:
        if kube_context:
            config.load_kube_config(context=kube_context)
        else:
            config.load_kube_config()
    except config.ConfigException:
        if kube_context:
            raise
        config.load_incluster_config()


class KubeStore:
    """
    HostStore backed by the Kubernetes API.

    Hosts and sub-cluster requests are custom resources (coordinates come
    from SchedulerConfig); secrets are core/v1 objects.
    """

    def __init__(
        self,
        cfg: SchedulerConfig,
        *,
        core: Optional[client.CoreV1Api] = None,
        custom: Optional[client.CustomObjectsApi] = None,
    ):
        self.cfg = cfg
        self.namespace = cfg.namespace
        if core is None or custom is None:
            load_kube_config(cfg.context)
        self.core = core or client.CoreV1Api()
        self.custom = custom or client.CustomObjectsApi()

    # --------------------------------------------------
    # Hosts
    # --------------------------------------------------
    def list_hosts(self, label_selector: Optional[str] = None) -> List[Dict[str, Any]]:
        ref = self.cfg.hosts
        kwargs = {"label_selector": label_selector} if label_selector else {}
        try:
            resp = self.custom.list_namespaced_custom_object(
                ref.group, ref.version, self.namespace, ref.plural, **kwargs
            )
        except ApiException as exc:
            raise _translate(exc, f"{ref.plural} in {self.namespace}") from exc
        return list(resp.get("items", []))

    def patch_host_labels(
        self,
        namespace: str,
        name: str,
        labels: Dict[str, Optional[str]],
    ) -> None:
        ref = self.cfg.hosts
        body = {"metadata": {"labels": labels}}
        try:
            self.custom.patch_namespaced_custom_object(
                ref.group, ref.version, namespace, ref.plural, name, body
            )
        except ApiException as exc:
            raise _translate(exc, f"{ref.plural} {namespace}/{name}") from exc
        log.debug("Patched labels on %s/%s: %s", namespace, name, labels)

    # --------------------------------------------------
    # Secrets
    # --------------------------------------------------
    def get_secret(self, namespace: str, name: str) -> Dict[str, bytes]:
        try:
            secret = self.core.read_namespaced_secret(name, namespace)
        except ApiException as exc:
            raise _translate(exc, f"secret {namespace}/{name}") from exc

        data: Dict[str, bytes] = {
            k: base64.b64decode(v) for k, v in (secret.data or {}).items()
        }
        return data

    # --------------------------------------------------
    # Sub-cluster requests
    # --------------------------------------------------
    def get_request(self, namespace: str, name: str) -> Dict[str, Any]:
        ref = self.cfg.requests
        try:
            return self.custom.get_namespaced_custom_object(
                ref.group, ref.version, namespace, ref.plural, name
            )
        except ApiException as exc:
            raise _translate(exc, f"{ref.plural} {namespace}/{name}") from exc

    def patch_request_status(
        self,
        namespace: str,
        name: str,
        condition: Dict[str, Any],
    ) -> None:
        ref = self.cfg.requests
        current = self.get_request(namespace, name)
        conditions = upsert_condition(
            (current.get("status") or {}).get("conditions"), condition
        )
        body = {"status": {"conditions": conditions}}
        try:
            self.custom.patch_namespaced_custom_object_status(
                ref.group, ref.version, namespace, ref.plural, name, body
            )
        except ApiException as exc:
            raise _translate(exc, f"{ref.plural} {namespace}/{name} status") from exc
        log.debug("Set %s=%s on %s/%s", condition["type"], condition["status"], namespace, name)
