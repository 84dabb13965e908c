"""Ephemeral Azure agent subnets for CI test runs."""

__version__ = "0.1.0"
