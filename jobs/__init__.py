"""Standalone scheduled jobs (not attached to a domain)."""

from .system_monitor import register_system_monitor, stop_system_monitor, register_heap_probe

__all__ = [
    "register_system_monitor",
    "stop_system_monitor",
    "register_heap_probe",
]
