"""Tests for dependency analysis of emitted configurations."""

import pytest

from agent_subnet.exceptions import DependencyCycleError
from agent_subnet.iac.dependency_graph import (
    analyze,
    build_dependency_graph,
    creation_order,
    destruction_order,
    extract_references,
    find_unresolved_references,
)
from agent_subnet.iac.emitters.terraform import TerraformEmitter
from agent_subnet.iac.resource_plan import build_resource_plan


@pytest.fixture
def emitted(run_config):
    """Configuration emitted for test run 5."""
    return TerraformEmitter.from_config(run_config).emit(build_resource_plan(run_config))


class TestExtractReferences:
    """Tests for reference extraction."""

    def test_interpolations_and_depends_on(self):
        """Test both interpolations and depends_on entries are collected."""
        block = {
            "virtual_network_name": "${data.azurerm_virtual_network.ci_vnet.name}",
            "triggers": {
                "subnet_id": "${azurerm_subnet.agent_5.id}",
                "applied_at": "${timestamp()}",
            },
            "depends_on": ["time_sleep.wait"],
        }
        assert extract_references(block) == {
            "data.azurerm_virtual_network.ci_vnet",
            "azurerm_subnet.agent_5",
            "time_sleep.wait",
        }

    def test_ignores_variables_and_literals(self):
        """Test variables, locals and plain strings are not references."""
        block = {
            "name": "agent-5",
            "address_prefixes": ["172.16.7.0/24"],
            "location": "${var.location}",
            "tags": "${local.tags}",
        }
        assert extract_references(block) == set()


class TestOrdering:
    """Tests for create and destroy ordering."""

    def test_graph_edges(self, emitted):
        """Test the subnet depends on the lookup and the delay on the subnet."""
        graph = build_dependency_graph(emitted)
        assert graph.has_edge("azurerm_subnet.agent_5", "data.azurerm_virtual_network.ci_vnet")
        assert graph.has_edge("time_sleep.agent_5_destroy_delay", "azurerm_subnet.agent_5")
        assert graph.nodes["data.azurerm_virtual_network.ci_vnet"]["managed"] is False

    def test_creation_order(self, emitted):
        """Test the lookup comes first and the delay last."""
        assert creation_order(build_dependency_graph(emitted)) == [
            "data.azurerm_virtual_network.ci_vnet",
            "azurerm_subnet.agent_5",
            "time_sleep.agent_5_destroy_delay",
        ]

    def test_destruction_order(self, emitted):
        """Test the delay is destroyed before the subnet and the lookup never."""
        assert destruction_order(build_dependency_graph(emitted)) == [
            "time_sleep.agent_5_destroy_delay",
            "azurerm_subnet.agent_5",
        ]

    def test_cycle_detected(self):
        """Test cyclic depends_on raises DependencyCycleError."""
        config = {
            "resource": {
                "time_sleep": {"a": {"depends_on": ["time_sleep.b"]}},
                "azurerm_subnet": {"s": {"name": "${time_sleep.a.id}"}},
            }
        }
        config["resource"]["time_sleep"]["b"] = {"depends_on": ["azurerm_subnet.s"]}

        with pytest.raises(DependencyCycleError) as exc_info:
            build_dependency_graph(config)
        cycle = exc_info.value.cycle
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {"time_sleep.a", "time_sleep.b", "azurerm_subnet.s"}


class TestUnresolvedReferences:
    """Tests for unresolved reference detection."""

    def test_emitted_config_is_complete(self, emitted):
        """Test a normal emission has no dangling references."""
        assert find_unresolved_references(emitted) == {}

    def test_missing_lookup_reported(self, emitted):
        """Test removing the lookup leaves the subnet dangling."""
        emitted["data"] = {}
        unresolved = find_unresolved_references(emitted)
        assert unresolved == {
            "azurerm_subnet.agent_5": {"data.azurerm_virtual_network.ci_vnet"}
        }

    def test_outputs_checked(self):
        """Test outputs referencing undeclared resources are reported."""
        config = {"output": {"subnet_id": {"value": "${azurerm_subnet.gone.id}"}}}
        assert find_unresolved_references(config) == {
            "output.subnet_id": {"azurerm_subnet.gone"}
        }

    def test_analyze_report(self, emitted):
        """Test analyze bundles ordering and validity."""
        report = analyze(emitted)
        assert report.is_valid
        assert report.creation_order[0].startswith("data.")
        assert report.destruction_order[0].startswith("time_sleep.")
