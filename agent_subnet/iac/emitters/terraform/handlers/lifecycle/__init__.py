"""Lifecycle handlers for Terraform emission."""

from .destroy_delay import DestroyDelayHandler

__all__ = [
    "DestroyDelayHandler",
]
