"""IaC emitters."""

from .terraform import TerraformEmitter

__all__ = ["TerraformEmitter"]
