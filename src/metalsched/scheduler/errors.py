# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/metalsched/scheduler/errors.py
class SchedulingError(RuntimeError):
    """Base class for scheduler failures."""


class InvalidHostError(SchedulingError):
    """Raised when a host resource cannot be admitted as a candidate."""


class NoCandidatesError(SchedulingError):
    """Raised when no unclaimed host is available for an attempt."""


class ExtrapolationError(SchedulingError):
    """Per-host failure while resolving connection metadata."""

    def __init__(self, host: str, message: str):
        super().__init__(f"{host}: {message}")
        self.host = host


class CredentialResolutionError(ExtrapolationError):
    """The BMC credential secret is missing or unreadable."""


class MalformedCredentialError(ExtrapolationError):
    """The BMC credential secret lacks a username or password."""


class NetworkDataMissingError(ExtrapolationError):
    """The network-data secret does not exist."""


class MalformedNetworkDataError(ExtrapolationError):
    """The network-data payload cannot be parsed or lacks the interface."""
