"""
Custom Exception Hierarchy for agent-subnet

This module provides the exception hierarchy used across the toolkit so that
configuration, addressing, emission and Terraform failures carry structured
context and an optional recovery suggestion.
"""

from typing import Any, Dict, List, Optional


class AgentSubnetError(Exception):
    """
    Base exception class for all agent-subnet errors.

    Provides structured error information including context, error codes,
    and optional recovery suggestions.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recovery_suggestion: Optional[str] = None,
    ) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional dictionary with error context
            cause: Optional underlying exception that caused this error
            recovery_suggestion: Optional suggestion for error recovery
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause
        self.recovery_suggestion = recovery_suggestion

    def __str__(self) -> str:
        """Return a formatted error message with context."""
        result = self.message
        if self.error_code:
            result = f"[{self.error_code}] {result}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            result += f" (context: {context_str})"
        if self.cause:
            result += f" (caused by: {self.cause})"
        if self.recovery_suggestion:
            result += f" (suggestion: {self.recovery_suggestion})"
        return result

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
            "recovery_suggestion": self.recovery_suggestion,
        }


# Configuration-related exceptions
class ConfigurationError(AgentSubnetError):
    """Raised when configuration values are missing or invalid."""

    def __init__(
        self, message: str, config_key: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if config_key:
            context["config_key"] = config_key
        kwargs["context"] = context
        kwargs.setdefault("error_code", "INVALID_CONFIG")
        super().__init__(message, **kwargs)


class AddressingError(AgentSubnetError):
    """Raised when a subnet address cannot be derived for a test run."""

    def __init__(
        self, message: str, test_run_id: Optional[Any] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if test_run_id is not None:
            context["test_run_id"] = test_run_id
        kwargs["context"] = context
        kwargs.setdefault("error_code", "ADDRESSING_FAILED")
        super().__init__(message, **kwargs)


# Emission-related exceptions
class EmissionError(AgentSubnetError):
    """Raised when a resource cannot be converted to Terraform configuration."""

    def __init__(
        self,
        message: str,
        resource_name: Optional[str] = None,
        resource_type: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if resource_name:
            context["resource_name"] = resource_name
        if resource_type:
            context["resource_type"] = resource_type
        kwargs["context"] = context
        kwargs.setdefault("error_code", "EMISSION_FAILED")
        super().__init__(message, **kwargs)


class DependencyCycleError(AgentSubnetError):
    """Raised when the emitted resources depend on each other in a cycle."""

    def __init__(self, message: str, cycle: Optional[List[str]] = None, **kwargs: Any) -> None:
        context = kwargs.get("context", {})
        if cycle:
            context["cycle"] = " -> ".join(cycle)
        kwargs["context"] = context
        kwargs.setdefault("error_code", "DEPENDENCY_CYCLE")
        super().__init__(message, **kwargs)
        self.cycle = cycle or []


# Terraform-related exceptions
class TerraformError(AgentSubnetError):
    """Base class for failures of the external Terraform engine."""

    pass


class TerraformNotInstalledError(TerraformError):
    """Raised when the terraform binary cannot be found."""

    def __init__(self, message: str, binary: Optional[str] = None, **kwargs: Any) -> None:
        context = kwargs.get("context", {})
        if binary:
            context["binary"] = binary
        kwargs["context"] = context
        kwargs.setdefault("error_code", "TERRAFORM_NOT_INSTALLED")
        kwargs.setdefault(
            "recovery_suggestion",
            "Install Terraform >= 1.5 or point terraform.binary at it",
        )
        super().__init__(message, **kwargs)


class TerraformCommandError(TerraformError):
    """Raised when a terraform command exits with a non-zero status."""

    def __init__(
        self,
        message: str,
        command: Optional[str] = None,
        exit_code: Optional[int] = None,
        stderr: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if command:
            context["command"] = command
        if exit_code is not None:
            context["exit_code"] = exit_code
        kwargs["context"] = context
        kwargs.setdefault("error_code", "TERRAFORM_COMMAND_FAILED")
        super().__init__(message, **kwargs)
        self.exit_code = exit_code
        self.stderr = stderr or ""


class NetworkLookupError(TerraformCommandError):
    """Raised when the referenced virtual network cannot be found."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "NETWORK_LOOKUP_FAILED")
        kwargs.setdefault(
            "recovery_suggestion",
            "Check network.virtual_network_name and network.resource_group_name",
        )
        super().__init__(message, **kwargs)


class AddressConflictError(TerraformCommandError):
    """Raised when the derived address range overlaps an existing subnet."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "ADDRESS_CONFLICT")
        kwargs.setdefault(
            "recovery_suggestion",
            "Another run with the same id modulo 254 still owns the range; "
            "destroy it or pick a different test run id",
        )
        super().__init__(message, **kwargs)


class SubnetInUseError(TerraformCommandError):
    """Raised when subnet deletion is blocked by service association links."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "SUBNET_IN_USE")
        kwargs.setdefault(
            "recovery_suggestion",
            "Increase lifecycle.destroy_wait and run destroy again",
        )
        super().__init__(message, **kwargs)


_NOT_FOUND_MARKERS = ("resourcenotfound", "was not found", "notfound")
_CONFLICT_MARKERS = ("netcfgsubnetrangesoverlap", "netcfgsubnetrangeoverlap", "overlap")
_IN_USE_MARKERS = ("inusesubnetcannotbedeleted", "serviceassociationlink")


def wrap_terraform_failure(
    command: str,
    exit_code: int,
    stderr: str,
    context: Optional[Dict[str, Any]] = None,
) -> TerraformCommandError:
    """
    Map a failed terraform invocation onto the exception hierarchy.

    Args:
        command: The terraform subcommand that failed (e.g. "apply")
        exit_code: Process exit code
        stderr: Captured standard error
        context: Optional context information

    Returns:
        TerraformCommandError: The most specific matching exception
    """
    lowered = stderr.lower()
    summary = stderr.strip().splitlines()[-1] if stderr.strip() else "no output"
    kwargs: Dict[str, Any] = {
        "command": command,
        "exit_code": exit_code,
        "stderr": stderr,
        "context": dict(context or {}),
    }

    if any(marker in lowered for marker in _IN_USE_MARKERS):
        return SubnetInUseError(f"Subnet deletion blocked: {summary}", **kwargs)
    if any(marker in lowered for marker in _CONFLICT_MARKERS):
        return AddressConflictError(f"Subnet address conflict: {summary}", **kwargs)
    if any(marker in lowered for marker in _NOT_FOUND_MARKERS):
        return NetworkLookupError(f"Virtual network lookup failed: {summary}", **kwargs)
    return TerraformCommandError(f"terraform {command} failed: {summary}", **kwargs)
