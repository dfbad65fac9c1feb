"""Wrappers around the DiViMe virtual machine and its helper tools."""

from __future__ import annotations

from .runner import SAD_MODULES, DivimeRunner, ProcessingRecord, estimate_minutes_left
from .sox import Sox
from .vagrant import SshResult, VagrantVM

__all__ = [
    "SAD_MODULES",
    "DivimeRunner",
    "ProcessingRecord",
    "Sox",
    "SshResult",
    "VagrantVM",
    "estimate_minutes_left",
]
