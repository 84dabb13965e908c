"""Tests for configuration models."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from agent_subnet.config import (
    AgentSubnetConfig,
    LifecycleConfig,
    NetworkConfig,
    SubnetConfig,
    TerraformConfig,
)
from agent_subnet.exceptions import ConfigurationError


class TestNetworkConfig:
    """Tests for NetworkConfig."""

    def test_requires_names(self):
        """Test both network fields are required and non-empty."""
        with pytest.raises(ValidationError):
            NetworkConfig(virtual_network_name="", resource_group_name="rg")
        with pytest.raises(ValidationError):
            NetworkConfig(virtual_network_name="vnet")

    def test_rejects_unknown_fields(self):
        """Test extra fields are forbidden."""
        with pytest.raises(ValidationError):
            NetworkConfig(virtual_network_name="v", resource_group_name="r", location="x")


class TestSubnetConfig:
    """Tests for SubnetConfig."""

    def test_defaults(self):
        """Test the default delegation targets managed DevOps pools."""
        config = SubnetConfig()
        assert config.name_prefix == "agent-"
        assert config.address_base == "172.16"
        assert config.prefix_length == 24
        assert config.delegation_service == "Microsoft.DevOpsInfrastructure/pools"
        assert config.delegation_actions == [
            "Microsoft.Network/virtualNetworks/subnets/join/action"
        ]
        assert config.service_endpoints == []

    @pytest.mark.parametrize("base", ["172", "172.16.1", "300.1", "ab.cd", "1².16"])
    def test_invalid_address_base(self, base):
        """Test malformed bases are rejected."""
        with pytest.raises(ValidationError):
            SubnetConfig(address_base=base)

    @pytest.mark.parametrize("prefix_length", [16, 23, 31])
    def test_prefix_length_bounds(self, prefix_length):
        """Test prefix lengths outside 24-30 are rejected."""
        with pytest.raises(ValidationError):
            SubnetConfig(prefix_length=prefix_length)

    def test_delegation_service_format(self):
        """Test the delegated service must be a provider type."""
        with pytest.raises(ValidationError):
            SubnetConfig(delegation_service="pools")


class TestLifecycleConfig:
    """Tests for LifecycleConfig."""

    def test_defaults(self):
        """Test the default destroy wait."""
        config = LifecycleConfig()
        assert config.destroy_wait == "60s"
        assert config.destroy_wait_seconds == 60.0
        assert config.recreate_on_apply is True

    @pytest.mark.parametrize(
        "value, expected",
        [(90, "90s"), (1.5, "1.5s"), ("120", "120s"), ("2m", "2m"), (" 30s ", "30s")],
    )
    def test_destroy_wait_normalized(self, value, expected):
        """Test numbers and bare digits gain a seconds unit."""
        assert LifecycleConfig(destroy_wait=value).destroy_wait == expected

    @pytest.mark.parametrize(
        "value", ["soon", "", -5, True, float("nan"), float("inf"), "-inf"]
    )
    def test_invalid_destroy_wait(self, value):
        """Test invalid durations are rejected."""
        with pytest.raises(ValidationError):
            LifecycleConfig(destroy_wait=value)


class TestTerraformConfig:
    """Tests for TerraformConfig."""

    def test_defaults(self):
        """Test Terraform defaults."""
        config = TerraformConfig()
        assert config.binary == "terraform"
        assert config.working_dir == Path("./agent-subnet-tf")
        assert config.output_filename == "main.tf.json"

    def test_output_filename_must_be_json_config(self):
        """Test Terraform only reads *.tf.json files."""
        with pytest.raises(ValidationError):
            TerraformConfig(output_filename="main.json")

    def test_timeout_positive(self):
        """Test the timeout must be positive."""
        with pytest.raises(ValidationError):
            TerraformConfig(timeout_seconds=0)


class TestAgentSubnetConfig:
    """Tests for the complete run configuration."""

    def test_allocation(self, run_config):
        """Test the allocation follows the run id."""
        allocation = run_config.allocation()
        assert allocation.name == "agent-5"
        assert allocation.cidr == "172.16.7.0/24"

    def test_allocation_uses_subnet_settings(self, run_config_data):
        """Test base, prefix and name prefix come from the subnet section."""
        run_config_data["subnet"] = {
            "address_base": "10.40",
            "prefix_length": 27,
            "name_prefix": "pool-",
        }
        allocation = AgentSubnetConfig.model_validate(run_config_data).allocation()
        assert allocation.cidr == "10.40.7.0/27"
        assert allocation.name == "pool-5"

    def test_negative_run_id(self, run_config_data):
        """Test negative run ids are rejected."""
        run_config_data["test_run_id"] = -1
        with pytest.raises(ValidationError):
            AgentSubnetConfig.model_validate(run_config_data)

    @pytest.mark.parametrize("run_id", [True, False, 5.0, "5.0", "-1", "²", "five"])
    def test_non_integral_run_id_rejected(self, run_config_data, run_id):
        """Test booleans, floats and non-digit strings are not run ids."""
        run_config_data["test_run_id"] = run_id
        with pytest.raises(ValidationError):
            AgentSubnetConfig.model_validate(run_config_data)

    def test_digit_string_run_id(self, run_config_data):
        """Test digit strings from the environment are accepted."""
        run_config_data["test_run_id"] = " 42 "
        config = AgentSubnetConfig.model_validate(run_config_data)
        assert config.test_run_id == 42
        assert config.allocation().cidr == "172.16.44.0/24"

    def test_allocation_error_becomes_configuration_error(self, run_config):
        """Test addressing failures surface as configuration errors."""
        run_config.subnet.address_base = "999.1"
        with pytest.raises(ConfigurationError) as exc_info:
            run_config.allocation()
        assert exc_info.value.context["config_key"] == "test_run_id"

    def test_missing_network(self):
        """Test the network section is required."""
        with pytest.raises(ValidationError):
            AgentSubnetConfig.model_validate({"test_run_id": 1})
