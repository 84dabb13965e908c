"""Dependency analysis of an emitted Terraform configuration.

Terraform derives create and destroy ordering from references between
blocks. This module rebuilds that graph from the JSON configuration so the
ordering hints (``depends_on``, interpolated references) can be checked and
previewed before Terraform runs:

- creation order: dependencies first (the network lookup, then the subnet,
  then the destroy delay)
- destruction order: dependents first, managed resources only (the delay is
  destroyed, and slept on, before the subnet; data sources are never
  destroyed)
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Set

import networkx as nx

from ..exceptions import DependencyCycleError

logger = logging.getLogger(__name__)

_INTERPOLATION = re.compile(r"\$\{([^}]*)\}")
_ADDRESS = re.compile(
    r"(?<![\w.])((?:data\.)?[a-z][a-z0-9_]*\.[A-Za-z_][A-Za-z0-9_-]*)"
)

# Address roots that never refer to a resource or data source
_NON_RESOURCE_ROOTS = {"var", "local", "each", "count", "path", "self", "terraform", "module"}


@dataclass
class DependencyReport:
    """Ordering and reference problems found in a configuration."""

    creation_order: List[str] = field(default_factory=list)
    destruction_order: List[str] = field(default_factory=list)
    unresolved_references: Dict[str, Set[str]] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.unresolved_references


def _iter_strings(value: Any) -> Iterator[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, dict):
        for item in value.values():
            yield from _iter_strings(item)
    elif isinstance(value, list):
        for item in value:
            yield from _iter_strings(item)


def extract_references(block: Dict[str, Any]) -> Set[str]:
    """Collect the addresses a block refers to.

    Args:
        block: A resource, data source or output configuration

    Returns:
        Addresses such as ``azurerm_subnet.agent_5`` or
        ``data.azurerm_virtual_network.vnet``
    """
    references: Set[str] = set()

    for entry in block.get("depends_on", []) or []:
        references.add(entry)

    body = {key: value for key, value in block.items() if key != "depends_on"}
    for text in _iter_strings(body):
        for expression in _INTERPOLATION.findall(text):
            for address in _ADDRESS.findall(expression):
                root = address.split(".", 1)[0]
                if root in _NON_RESOURCE_ROOTS:
                    continue
                if root == "data":
                    references.add(address)
                else:
                    # Keep type.name, drop attribute access
                    references.add(".".join(address.split(".")[:2]))
    return references


def declared_addresses(config: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Map every resource and data source address to its block."""
    addresses: Dict[str, Dict[str, Any]] = {}
    for data_type, blocks in (config.get("data") or {}).items():
        for name, block in blocks.items():
            addresses[f"data.{data_type}.{name}"] = block
    for resource_type, blocks in (config.get("resource") or {}).items():
        for name, block in blocks.items():
            addresses[f"{resource_type}.{name}"] = block
    return addresses


def build_dependency_graph(config: Dict[str, Any]) -> nx.DiGraph:
    """Build the dependency graph of a configuration.

    An edge ``A -> B`` means A depends on B. References to undeclared
    addresses are left out; use find_unresolved_references to report them.

    Raises:
        DependencyCycleError: If the blocks depend on each other in a cycle
    """
    addresses = declared_addresses(config)
    graph = nx.DiGraph()

    for address, block in addresses.items():
        graph.add_node(address, managed=not address.startswith("data."))
        for reference in extract_references(block):
            if reference in addresses and reference != address:
                graph.add_edge(address, reference)

    if not nx.is_directed_acyclic_graph(graph):
        cycle_edges = nx.find_cycle(graph)
        cycle = [edge[0] for edge in cycle_edges] + [cycle_edges[0][0]]
        raise DependencyCycleError(
            "Configuration contains a dependency cycle", cycle=cycle
        )

    logger.debug(
        f"Dependency graph: {graph.number_of_nodes()} nodes, "
        f"{graph.number_of_edges()} edges"
    )
    return graph


def creation_order(graph: nx.DiGraph) -> List[str]:
    """Addresses in the order Terraform may create or read them."""
    return list(nx.lexicographical_topological_sort(graph.reverse(copy=True)))


def destruction_order(graph: nx.DiGraph) -> List[str]:
    """Managed addresses in the order Terraform destroys them."""
    return [
        address
        for address in nx.lexicographical_topological_sort(graph)
        if graph.nodes[address].get("managed", True)
    ]


def find_unresolved_references(config: Dict[str, Any]) -> Dict[str, Set[str]]:
    """Find references (including from outputs) to undeclared addresses.

    Returns:
        Mapping of referring block to the addresses it cannot resolve
    """
    addresses = declared_addresses(config)
    referrers = dict(addresses)
    for name, output in (config.get("output") or {}).items():
        referrers[f"output.{name}"] = output

    unresolved: Dict[str, Set[str]] = {}
    for referrer, block in referrers.items():
        missing = {ref for ref in extract_references(block) if ref not in addresses}
        if missing:
            unresolved[referrer] = missing
    return unresolved


def analyze(config: Dict[str, Any]) -> DependencyReport:
    """Compute create/destroy ordering and unresolved references."""
    graph = build_dependency_graph(config)
    report = DependencyReport(
        creation_order=creation_order(graph),
        destruction_order=destruction_order(graph),
        unresolved_references=find_unresolved_references(config),
    )
    for referrer, missing in report.unresolved_references.items():
        logger.warning(f"{referrer} references undeclared {sorted(missing)}")
    return report
