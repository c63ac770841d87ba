"""Reconciler settings and interface inventory."""
from .settings import ReconcilerConfig
from .inventory import InterfaceInventory

__all__ = ["ReconcilerConfig", "InterfaceInventory"]
