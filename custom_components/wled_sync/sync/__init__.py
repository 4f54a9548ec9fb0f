"""Device state reconciliation engine."""
from __future__ import annotations

from .capabilities import CapabilityCache
from .coalescer import UpdateCoalescer
from .dispatcher import CommandDispatcher, CommandPhase, CommandResult
from .errors import DeviceError, ErrorCenter, ErrorKind, classify
from .intent import IntentTracker, RenameIntent
from .reconciler import ReconcileAction, Reconciler, Reconciliation
from .refresh import RefreshCoordinator, is_in_local_subnets
from .registry import DeviceRegistry
from .streaming import run_transition
from .tasks import DeviceTaskRunner

__all__ = [
    "CapabilityCache",
    "CommandDispatcher",
    "CommandPhase",
    "CommandResult",
    "DeviceError",
    "DeviceRegistry",
    "DeviceTaskRunner",
    "ErrorCenter",
    "ErrorKind",
    "IntentTracker",
    "ReconcileAction",
    "Reconciler",
    "Reconciliation",
    "RefreshCoordinator",
    "RenameIntent",
    "UpdateCoalescer",
    "classify",
    "is_in_local_subnets",
    "run_transition",
]
