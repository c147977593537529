# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/metalsched/config/models.py

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


class LabelKeys(BaseModel):
    """Label keys read from and written to host resources."""

    claimed: str = "metalsched.io/schedule-claimed"
    owner: str = "metalsched.io/schedule-owner"
    role: str = "metalsched.io/schedule-role"
    server: str = "metalsched.io/server"
    rack: str = "metalsched.io/rack"


class SecretKeys(BaseModel):
    """Field names expected inside BMC credential and network-data secrets."""

    username: str = "username"
    password: str = "password"
    network_data: str = "networkData"


class ResourceRef(BaseModel):
    group: str
    version: str
    plural: str


class SchedulerConfig(BaseModel):
    namespace: str = "default"
    context: Optional[str] = None       # Kubernetes context to use
    labels: LabelKeys = Field(default_factory=LabelKeys)
    secrets: SecretKeys = Field(default_factory=SecretKeys)
    hosts: ResourceRef = ResourceRef(
        group="metal3.io", version="v1alpha1", plural="baremetalhosts"
    )
    requests: ResourceRef = ResourceRef(
        group="metalsched.io", version="v1", plural="subclusters"
    )
    log_dir: Optional[Path] = None
