"""Structured snapshots of Linux ``/proc`` counter files."""

__version__ = "0.1.0"
