"""Tests for the Terraform runner."""

import asyncio
import json
import subprocess
from unittest.mock import AsyncMock, Mock, patch

import pytest

from agent_subnet.exceptions import (
    SubnetInUseError,
    TerraformCommandError,
    TerraformError,
    TerraformNotInstalledError,
)
from agent_subnet.terraform_runner import TerraformRunner, credentials_from_env


def _process(returncode=0, stdout=b"", stderr=b""):
    process = Mock()
    process.returncode = returncode
    process.communicate = AsyncMock(return_value=(stdout, stderr))
    process.wait = AsyncMock(return_value=returncode)
    return process


@pytest.fixture
def runner(tmp_path):
    """Runner with service principal credentials."""
    return TerraformRunner(
        tmp_path,
        credentials={
            "client_id": "app-id",
            "client_secret": "secret",  # pragma: allowlist secret
            "tenant_id": "tenant",
            "subscription_id": "sub",
        },
        timeout=30,
    )


class TestTerraformRunner:
    """Tests for TerraformRunner."""

    def test_missing_working_dir(self, tmp_path):
        """Test a missing directory is reported with a suggestion."""
        with pytest.raises(TerraformError) as exc_info:
            TerraformRunner(tmp_path / "absent")
        assert "render" in exc_info.value.recovery_suggestion

    def test_environment_has_arm_credentials(self, runner):
        """Test credentials are forwarded as ARM_* variables."""
        env = runner._get_environment()
        assert env["ARM_CLIENT_ID"] == "app-id"
        assert env["ARM_CLIENT_SECRET"] == "secret"  # pragma: allowlist secret
        assert env["ARM_TENANT_ID"] == "tenant"
        assert env["ARM_SUBSCRIPTION_ID"] == "sub"

    def test_credentials_from_env(self, monkeypatch):
        """Test AZURE_* variables are collected."""
        monkeypatch.setenv("AZURE_CLIENT_ID", "app-id")
        monkeypatch.setenv("AZURE_TENANT_ID", "tenant")
        monkeypatch.delenv("AZURE_CLIENT_SECRET", raising=False)
        monkeypatch.delenv("AZURE_SUBSCRIPTION_ID", raising=False)
        assert credentials_from_env() == {"client_id": "app-id", "tenant_id": "tenant"}

    @pytest.mark.asyncio
    async def test_apply_command(self, runner, tmp_path):
        """Test apply runs non-interactively in the working directory."""
        with patch(
            "asyncio.create_subprocess_exec", AsyncMock(return_value=_process(stdout=b"ok"))
        ) as mock_exec:
            result = await runner.apply(auto_approve=True)

        assert result == (0, "ok", "")
        args = mock_exec.call_args.args
        assert args == ("terraform", "apply", "-input=false", "-no-color", "-auto-approve")
        assert mock_exec.call_args.kwargs["cwd"] == tmp_path
        assert mock_exec.call_args.kwargs["env"]["ARM_CLIENT_ID"] == "app-id"

    @pytest.mark.asyncio
    async def test_destroy_without_auto_approve(self, runner):
        """Test destroy only auto-approves when asked."""
        with patch(
            "asyncio.create_subprocess_exec", AsyncMock(return_value=_process())
        ) as mock_exec:
            await runner.destroy()
        assert "-auto-approve" not in mock_exec.call_args.args

    @pytest.mark.asyncio
    async def test_plan_destroy(self, runner):
        """Test plan can preview destruction."""
        with patch(
            "asyncio.create_subprocess_exec", AsyncMock(return_value=_process())
        ) as mock_exec:
            await runner.plan(destroy=True)
        assert mock_exec.call_args.args[-1] == "-destroy"

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self, runner):
        """Test a timed out command is killed and reported as exit code 1."""
        process = _process()
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)), patch(
            "asyncio.wait_for", AsyncMock(side_effect=asyncio.TimeoutError)
        ):
            result = await runner.init()

        process.kill.assert_called_once()
        assert result[0] == 1
        assert "timed out" in result[2]

    @pytest.mark.asyncio
    async def test_missing_binary(self, runner):
        """Test a missing executable raises TerraformNotInstalledError."""
        with patch(
            "asyncio.create_subprocess_exec", AsyncMock(side_effect=FileNotFoundError("terraform"))
        ):
            with pytest.raises(TerraformNotInstalledError):
                await runner.init()

    @pytest.mark.asyncio
    async def test_output_parsed(self, runner):
        """Test outputs are flattened to their values."""
        stdout = json.dumps(
            {
                "subnet_id": {"value": "/subscriptions/s/.../subnets/agent-5", "type": "string"},
                "subnet_address_prefix": {"value": "172.16.7.0/24", "type": "string"},
            }
        ).encode()
        with patch(
            "asyncio.create_subprocess_exec", AsyncMock(return_value=_process(stdout=stdout))
        ):
            outputs = await runner.output()
        assert outputs["subnet_address_prefix"] == "172.16.7.0/24"

    @pytest.mark.asyncio
    async def test_output_invalid_json(self, runner):
        """Test unparseable output raises TerraformCommandError."""
        with patch(
            "asyncio.create_subprocess_exec", AsyncMock(return_value=_process(stdout=b"{oops"))
        ):
            with pytest.raises(TerraformCommandError, match="invalid JSON"):
                await runner.output()

    @pytest.mark.asyncio
    async def test_managed_resources(self, runner):
        """Test data sources are left out of the state listing."""
        state = {
            "values": {
                "root_module": {
                    "resources": [
                        {
                            "address": "data.azurerm_virtual_network.ci_vnet",
                            "mode": "data",
                            "type": "azurerm_virtual_network",
                            "name": "ci_vnet",
                            "values": {"id": "vnet-id"},
                        },
                        {
                            "address": "azurerm_subnet.agent_5",
                            "mode": "managed",
                            "type": "azurerm_subnet",
                            "name": "agent_5",
                            "provider_name": "registry.terraform.io/hashicorp/azurerm",
                            "values": {"id": "subnet-id"},
                        },
                    ]
                }
            }
        }
        with patch(
            "asyncio.create_subprocess_exec",
            AsyncMock(return_value=_process(stdout=json.dumps(state).encode())),
        ):
            resources = await runner.get_managed_resources()

        assert resources == [
            {
                "address": "azurerm_subnet.agent_5",
                "type": "azurerm_subnet",
                "name": "agent_5",
                "provider": "registry.terraform.io/hashicorp/azurerm",
                "id": "subnet-id",
            }
        ]

    @pytest.mark.asyncio
    async def test_managed_resources_on_failure(self, runner):
        """Test a failing show returns no resources."""
        with patch(
            "asyncio.create_subprocess_exec",
            AsyncMock(return_value=_process(returncode=1, stderr=b"no state")),
        ):
            assert await runner.get_managed_resources() == []

    @pytest.mark.asyncio
    async def test_managed_resources_raise_on_failure(self, runner):
        """Test an unreadable state raises when asked to."""
        stderr = b"Error: failed to load state: AuthorizationFailed"
        with patch(
            "asyncio.create_subprocess_exec",
            AsyncMock(return_value=_process(returncode=1, stderr=stderr)),
        ):
            with pytest.raises(TerraformCommandError) as exc_info:
                await runner.get_managed_resources(raise_on_error=True)

        assert exc_info.value.context["command"] == "show"
        assert "AuthorizationFailed" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_managed_resources_raise_on_invalid_json(self, runner):
        """Test invalid state JSON raises when asked to."""
        with patch(
            "asyncio.create_subprocess_exec",
            AsyncMock(return_value=_process(stdout=b"not json")),
        ):
            with pytest.raises(TerraformCommandError):
                await runner.get_managed_resources(raise_on_error=True)

    def test_raise_for_status(self, runner):
        """Test failures are mapped to the most specific error."""
        assert runner.raise_for_status("plan", (0, "out", "")) == "out"
        with pytest.raises(SubnetInUseError) as exc_info:
            runner.raise_for_status("destroy", (1, "", "Error: InUseSubnetCannotBeDeleted"))
        assert exc_info.value.context["working_dir"] == str(runner.working_dir)


class TestTerraformInstallation:
    """Tests for terraform binary checks."""

    def test_installed(self, runner):
        """Test a working binary is detected."""
        with patch("subprocess.run", return_value=Mock(returncode=0)):
            assert runner.check_terraform_installed() is True

    def test_not_installed(self, runner):
        """Test a missing binary is detected."""
        with patch("subprocess.run", side_effect=FileNotFoundError):
            assert runner.check_terraform_installed() is False
            with pytest.raises(TerraformNotInstalledError):
                runner.require_terraform()

    def test_version(self, runner):
        """Test the version is read from terraform version -json."""
        with patch(
            "subprocess.run",
            return_value=Mock(returncode=0, stdout='{"terraform_version": "1.7.5"}'),
        ):
            assert runner.get_terraform_version() == "1.7.5"

    def test_version_timeout(self, runner):
        """Test a hanging binary yields no version."""
        with patch("subprocess.run", side_effect=subprocess.TimeoutExpired("terraform", 5)):
            assert runner.get_terraform_version() is None
