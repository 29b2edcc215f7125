"""Atomic, verified file and link materialization for early-boot provisioning."""

__version__ = "0.1.0"
