# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/metalsched/store/conditions.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

CONDITION_READY = "Ready"


def now_rfc3339() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def new_condition(
    type_: str,
    status: bool,
    reason: str,
    message: str = "",
) -> Dict[str, Any]:
    return {
        "type": type_,
        "status": "True" if status else "False",
        "reason": reason,
        "message": message,
        "lastTransitionTime": now_rfc3339(),
    }


def find_condition(
    conditions: List[Dict[str, Any]] | None,
    type_: str,
) -> Optional[Dict[str, Any]]:
    for cond in conditions or []:
        if cond.get("type") == type_:
            return cond
    return None


def upsert_condition(
    conditions: List[Dict[str, Any]] | None,
    condition: Dict[str, Any],
) -> List[Dict[str, Any]]:
    """
    Return a new condition list with *condition* set by type.

    lastTransitionTime is carried over from the existing entry unless the
    status value changed.
    """
    out: List[Dict[str, Any]] = []
    replaced = False
    for cond in conditions or []:
        if cond.get("type") != condition["type"]:
            out.append(cond)
            continue
        merged = dict(condition)
        if cond.get("status") == condition["status"] and cond.get("lastTransitionTime"):
            merged["lastTransitionTime"] = cond["lastTransitionTime"]
        out.append(merged)
        replaced = True
    if not replaced:
        out.append(dict(condition))
    return out
