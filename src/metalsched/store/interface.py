# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol


class HostStore(Protocol):
    """
    Contract for the declarative resource store the scheduler reads and writes.

    Hosts and requests are handled as raw resource dicts (metadata/spec/status).
    Implementations raise NotFoundError for missing objects and ConflictError
    when a write races another writer.
    """

    def list_hosts(self, label_selector: Optional[str] = None) -> List[Dict[str, Any]]:
        ...

    def get_secret(self, namespace: str, name: str) -> Dict[str, bytes]:
        """Return the decoded data of a secret."""
        ...

    def patch_host_labels(
        self,
        namespace: str,
        name: str,
        labels: Dict[str, Optional[str]],
    ) -> None:
        """Merge labels into a host. A None value removes the label."""
        ...

    def get_request(self, namespace: str, name: str) -> Dict[str, Any]:
        ...

    def patch_request_status(
        self,
        namespace: str,
        name: str,
        condition: Dict[str, Any],
    ) -> None:
        """Upsert one status condition (matched by type) on a request."""
        ...
