"""Terraform runner for agent subnet configurations.

This module wraps the terraform CLI (init, plan, apply, destroy, output,
show) with Azure credential forwarding, timeouts and mapping of failures
onto the exception hierarchy.
"""

import asyncio
import json
import os
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import structlog

from .exceptions import (
    TerraformCommandError,
    TerraformError,
    TerraformNotInstalledError,
    wrap_terraform_failure,
)

logger = structlog.get_logger(__name__)

CommandResult = Tuple[int, str, str]

# Credential key -> variable read by the azurerm provider
_ARM_VARIABLES = {
    "client_id": "ARM_CLIENT_ID",
    "client_secret": "ARM_CLIENT_SECRET",
    "tenant_id": "ARM_TENANT_ID",
    "subscription_id": "ARM_SUBSCRIPTION_ID",
}

# Credential key -> Azure SDK style variable used as a fallback source
_AZURE_VARIABLES = {
    "client_id": "AZURE_CLIENT_ID",
    "client_secret": "AZURE_CLIENT_SECRET",
    "tenant_id": "AZURE_TENANT_ID",
    "subscription_id": "AZURE_SUBSCRIPTION_ID",
}


def credentials_from_env() -> Dict[str, str]:
    """Collect Azure service principal credentials from AZURE_* variables."""
    return {
        key: os.environ[variable]
        for key, variable in _AZURE_VARIABLES.items()
        if os.environ.get(variable)
    }


class TerraformRunner:
    """Runs terraform against a rendered agent subnet configuration."""

    def __init__(
        self,
        working_dir: Path,
        credentials: Optional[Dict[str, str]] = None,
        binary: str = "terraform",
        timeout: int = 1800,
    ):
        """Initialize the Terraform runner.

        Args:
            working_dir: Directory containing the rendered configuration
            credentials: Azure credentials (client_id, client_secret,
                tenant_id, subscription_id)
            binary: Terraform executable
            timeout: Default command timeout in seconds
        """
        self.working_dir = Path(working_dir)
        self.credentials = credentials or {}
        self.binary = binary
        self.timeout = timeout

        if not self.working_dir.exists():
            raise TerraformError(
                f"Working directory {working_dir} does not exist",
                context={"working_dir": str(working_dir)},
                recovery_suggestion="Run 'agent-subnet render' first",
            )

    def _get_environment(self) -> Dict[str, str]:
        """Get environment variables with Azure credentials.

        Returns:
            Environment dictionary with ARM_* credentials set
        """
        env = os.environ.copy()
        for key, variable in _ARM_VARIABLES.items():
            if key in self.credentials:
                env[variable] = self.credentials[key]
        env.setdefault("TF_IN_AUTOMATION", "1")
        return env

    async def init(self) -> CommandResult:
        """Run terraform init."""
        return await self._run_terraform_command(["init", "-input=false", "-no-color"])

    async def plan(self, destroy: bool = False) -> CommandResult:
        """Run terraform plan, optionally previewing destruction."""
        cmd = ["plan", "-input=false", "-no-color"]
        if destroy:
            cmd.append("-destroy")
        return await self._run_terraform_command(cmd)

    async def apply(self, auto_approve: bool = False) -> CommandResult:
        """Execute terraform apply.

        Args:
            auto_approve: Skip interactive approval

        Returns:
            Tuple of (exit_code, stdout, stderr)
        """
        cmd = ["apply", "-input=false", "-no-color"]
        if auto_approve:
            cmd.append("-auto-approve")

        logger.info("Executing terraform apply", working_dir=str(self.working_dir))
        return await self._run_terraform_command(cmd)

    async def destroy(self, auto_approve: bool = False) -> CommandResult:
        """Execute terraform destroy.

        The destroy delay is torn down first, so this takes at least the
        configured destroy wait.

        Args:
            auto_approve: Skip interactive approval

        Returns:
            Tuple of (exit_code, stdout, stderr)
        """
        cmd = ["destroy", "-input=false", "-no-color"]
        if auto_approve:
            cmd.append("-auto-approve")

        logger.info("Executing terraform destroy", working_dir=str(self.working_dir))
        return await self._run_terraform_command(cmd)

    async def output(self) -> Dict[str, Any]:
        """Read root module outputs.

        Returns:
            Mapping of output name to value

        Raises:
            TerraformCommandError: If terraform output fails or is not JSON
        """
        result = await self._run_terraform_command(["output", "-json", "-no-color"])
        stdout = self.raise_for_status("output", result)
        try:
            outputs = json.loads(stdout or "{}")
        except json.JSONDecodeError as e:
            raise TerraformCommandError(
                "terraform output returned invalid JSON",
                command="output",
                exit_code=result[0],
                cause=e,
            ) from e
        return {name: entry.get("value") for name, entry in outputs.items()}

    async def get_managed_resources(
        self, raise_on_error: bool = False
    ) -> List[Dict[str, Any]]:
        """Get managed resources recorded in the terraform state.

        Args:
            raise_on_error: Raise when the state cannot be read instead of
                reporting no resources

        Returns:
            List of resources from terraform state; data sources are omitted

        Raises:
            TerraformCommandError: If raise_on_error is set and terraform show
                fails or returns invalid JSON
        """
        result = await self._run_terraform_command(["show", "-json", "-no-color"])
        if result[0] != 0:
            if raise_on_error:
                self.raise_for_status("show", result)
            logger.error("Failed to get terraform state", stderr=result[2])
            return []

        try:
            state_data = json.loads(result[1] or "{}")
        except json.JSONDecodeError as e:
            if raise_on_error:
                raise TerraformCommandError(
                    "terraform show returned invalid JSON",
                    command="show",
                    exit_code=result[0],
                    cause=e,
                ) from e
            logger.error("Failed to parse terraform state", error=str(e))
            return []

        root_module = state_data.get("values", {}).get("root_module", {})
        resources = []
        for resource in root_module.get("resources", []):
            if resource.get("mode", "managed") != "managed":
                continue
            resources.append(
                {
                    "address": resource.get("address", "unknown"),
                    "type": resource.get("type", "unknown"),
                    "name": resource.get("name", "unknown"),
                    "provider": resource.get("provider_name", "unknown"),
                    "id": resource.get("values", {}).get("id", "unknown"),
                }
            )
        return resources

    def raise_for_status(self, command: str, result: CommandResult) -> str:
        """Return stdout of a successful command or raise its failure.

        Raises:
            TerraformCommandError: Most specific subclass for the failure
        """
        exit_code, stdout, stderr = result
        if exit_code != 0:
            raise wrap_terraform_failure(
                command,
                exit_code,
                stderr,
                context={"working_dir": str(self.working_dir)},
            )
        return stdout

    async def _run_terraform_command(
        self, args: List[str], timeout: Optional[int] = None
    ) -> CommandResult:
        """Run a terraform command.

        Args:
            args: Terraform command arguments
            timeout: Command timeout in seconds (default: runner timeout)

        Returns:
            Tuple of (exit_code, stdout, stderr)
        """
        cmd = [self.binary, *args]
        timeout = timeout or self.timeout
        env = self._get_environment()

        logger.debug("Running command", command=" ".join(cmd))

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=self.working_dir,
                env=env,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )

            try:
                stdout, stderr = await asyncio.wait_for(
                    process.communicate(), timeout=timeout
                )
            except asyncio.TimeoutError:
                process.kill()
                await process.wait()
                logger.error("Terraform command timed out", command=args[0], timeout=timeout)
                return (1, "", f"Command timed out after {timeout}s")

            return (
                process.returncode or 0,
                stdout.decode("utf-8") if stdout else "",
                stderr.decode("utf-8") if stderr else "",
            )

        except FileNotFoundError as e:
            raise TerraformNotInstalledError(
                f"Terraform executable '{self.binary}' not found",
                binary=self.binary,
                cause=e,
            ) from e
        except OSError as e:
            logger.error("Failed to run terraform command", error=str(e))
            return (1, "", str(e))

    def check_terraform_installed(self) -> bool:
        """Check if terraform is installed and accessible.

        Returns:
            True if terraform is installed, False otherwise
        """
        try:
            result = subprocess.run(
                [self.binary, "version"], capture_output=True, text=True, timeout=5
            )
            return result.returncode == 0
        except (subprocess.TimeoutExpired, FileNotFoundError):
            return False

    def get_terraform_version(self) -> Optional[str]:
        """Get the installed terraform version.

        Returns:
            Version string or None if not found
        """
        try:
            result = subprocess.run(
                [self.binary, "version", "-json"],
                capture_output=True,
                text=True,
                timeout=5,
            )
        except (subprocess.TimeoutExpired, FileNotFoundError):
            return None

        if result.returncode != 0:
            return None
        try:
            version_data = json.loads(result.stdout)
        except json.JSONDecodeError:
            return None
        return version_data.get("terraform_version", "unknown")

    def require_terraform(self) -> None:
        """Raise TerraformNotInstalledError unless terraform is usable."""
        if not self.check_terraform_installed():
            raise TerraformNotInstalledError(
                f"Terraform executable '{self.binary}' is not available",
                binary=self.binary,
            )
        logger.debug("Terraform available", version=self.get_terraform_version())
