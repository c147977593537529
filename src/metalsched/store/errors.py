# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/metalsched/store/errors.py
class StoreError(RuntimeError):
    """Base class for resource store failures."""


class NotFoundError(StoreError):
    """Raised when a requested object does not exist in the store."""


class ConflictError(StoreError):
    """Raised when a write loses a race against another writer."""
