"""Case service core: business logic and attachment reconciliation."""

from .case_manager import CaseManager, DeleteResult
from .reconciler import ReconcileResult, reconcile

__all__ = ["CaseManager", "DeleteResult", "ReconcileResult", "reconcile"]
