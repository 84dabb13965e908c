"""Tests for the handler-based Terraform emitter."""

import json

import pytest

from agent_subnet.exceptions import EmissionError
from agent_subnet.iac.emitters.terraform import HandlerRegistry, TerraformEmitter
from agent_subnet.iac.resource_plan import build_resource_plan


class TestTerraformEmitter:
    """Tests for TerraformEmitter."""

    @pytest.fixture
    def plan(self, run_config):
        """Planned resources of test run 5."""
        return build_resource_plan(run_config)

    @pytest.fixture
    def emitter(self, run_config):
        """Emitter using the run's provider constraints."""
        return TerraformEmitter.from_config(run_config)

    def test_terraform_block(self, emitter, plan):
        """Test provider requirements for azurerm and time."""
        config = emitter.emit(plan)

        assert config["terraform"]["required_version"] == ">= 1.5.0"
        providers = config["terraform"]["required_providers"]
        assert providers["azurerm"] == {"source": "hashicorp/azurerm", "version": "~> 3.80"}
        assert providers["time"] == {"source": "hashicorp/time", "version": "~> 0.9"}
        assert config["provider"] == {"azurerm": {"features": {}}}

    def test_blocks_emitted(self, emitter, plan):
        """Test the lookup is a data source and the rest are resources."""
        config = emitter.emit(plan)

        assert list(config["data"]["azurerm_virtual_network"]) == ["ci_vnet"]
        assert list(config["resource"]["azurerm_subnet"]) == ["agent_5"]
        assert list(config["resource"]["time_sleep"]) == ["agent_5_destroy_delay"]
        assert "azurerm_virtual_network" not in config["resource"]

    def test_outputs(self, emitter, plan):
        """Test subnet outputs are added after emission."""
        outputs = emitter.emit(plan)["output"]
        assert set(outputs) == {"subnet_id", "subnet_name", "subnet_address_prefix"}
        assert outputs["subnet_id"]["depends_on"] == ["time_sleep.agent_5_destroy_delay"]

    def test_statistics(self, emitter, plan):
        """Test emission counters."""
        emitter.emit(plan)
        assert emitter.get_statistics() == {
            "total_resources": 3,
            "emitted_resources": 2,
            "emitted_data_sources": 1,
            "skipped_resources": 0,
            "unsupported_types_count": 0,
            "handler_errors_count": 0,
            "missing_references_count": 0,
        }

    def test_supported_types(self, emitter):
        """Test all three plan types have handlers."""
        assert emitter.get_supported_types() == [
            "Ephemeral/destroyDelays",
            "Microsoft.Network/virtualNetworks",
            "Microsoft.Network/virtualNetworks/subnets",
        ]

    def test_registry_survives_clear(self, plan):
        """Test handlers are registered again after the registry is cleared."""
        HandlerRegistry.clear()
        config = TerraformEmitter().emit(plan)
        assert "azurerm_subnet" in config["resource"]

    def test_unsupported_type_skipped(self, emitter, plan):
        """Test unknown plan types are skipped outside strict mode."""
        plan.append({"type": "Microsoft.Compute/virtualMachines", "name": "vm"})
        emitter.emit(plan)
        stats = emitter.get_statistics()
        assert stats["skipped_resources"] == 1
        assert stats["unsupported_types_count"] == 1

    def test_unsupported_type_strict(self, run_config, plan):
        """Test unknown plan types fail in strict mode."""
        plan.append({"type": "Microsoft.Compute/virtualMachines", "name": "vm"})
        emitter = TerraformEmitter.from_config(run_config, strict_mode=True)
        with pytest.raises(EmissionError, match="No handler"):
            emitter.emit(plan)

    def test_missing_lookup_cascades(self, emitter, plan):
        """Test dropping the lookup skips the subnet and then the delay."""
        config = emitter.emit(plan[1:])

        assert config["resource"] == {}
        assert config["output"] == {}
        stats = emitter.get_statistics()
        assert stats["skipped_resources"] == 2
        assert stats["missing_references_count"] == 2

    def test_missing_lookup_strict(self, run_config, plan):
        """Test a skipped subnet fails in strict mode."""
        emitter = TerraformEmitter.from_config(run_config, strict_mode=True)
        with pytest.raises(EmissionError, match="skipped"):
            emitter.emit(plan[1:])

    def test_handler_error_strict(self, run_config, plan):
        """Test handler errors propagate in strict mode."""
        plan[2]["properties"]["destroyDuration"] = "never"
        emitter = TerraformEmitter.from_config(run_config, strict_mode=True)
        with pytest.raises(EmissionError, match="Invalid destroy duration"):
            emitter.emit(plan)

    def test_handler_error_lenient(self, emitter, plan):
        """Test handler errors are recorded outside strict mode."""
        plan[2]["properties"]["destroyDuration"] = "never"
        config = emitter.emit(plan)
        assert "time_sleep" not in config["resource"]
        assert emitter.get_statistics()["handler_errors_count"] == 1
        assert "depends_on" not in config["output"]["subnet_id"]

    def test_write(self, emitter, plan, tmp_path):
        """Test the written file is JSON without empty blocks."""
        config = emitter.emit(plan)
        path = emitter.write(config, tmp_path / "out")

        assert path == tmp_path / "out" / "main.tf.json"
        written = json.loads(path.read_text())
        assert written["resource"]["azurerm_subnet"]["agent_5"]["address_prefixes"] == [
            "172.16.7.0/24"
        ]
        assert path.read_text().endswith("\n")

    def test_write_prunes_empty_blocks(self, emitter, plan, tmp_path):
        """Test empty top-level blocks are dropped."""
        config = emitter.emit(plan[1:])
        written = json.loads(emitter.write(config, tmp_path).read_text())
        assert "resource" not in written
        assert "data" not in written
        assert "terraform" in written
