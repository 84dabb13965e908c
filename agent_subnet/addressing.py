"""Subnet address allocation for test runs.

Every test run gets its own /24 inside a shared virtual network. The third
octet is derived from the test-run identifier so that parallel runs land in
different ranges without any coordination:

    octet = (test_run_id mod 254) + 2

Third-octet values 0 and 1 stay reserved for the network's own subnets, which
keeps every derived octet in [2, 255].
"""

import ipaddress
import logging
from dataclasses import dataclass

from .exceptions import AddressingError

logger = logging.getLogger(__name__)

OCTET_MODULUS = 254
RESERVED_OCTETS = 2
DEFAULT_ADDRESS_BASE = "172.16"
DEFAULT_PREFIX_LENGTH = 24
DEFAULT_NAME_PREFIX = "agent-"


@dataclass(frozen=True)
class SubnetAllocation:
    """Address and name assigned to one test run."""

    test_run_id: int
    octet: int
    cidr: str
    name: str


def _validate_run_id(test_run_id: int) -> int:
    # bool is an int subclass; True would silently map to run 1
    if isinstance(test_run_id, bool) or not isinstance(test_run_id, int):
        raise AddressingError(
            f"Test run id must be an integer, got {type(test_run_id).__name__}",
            test_run_id=test_run_id,
        )
    if test_run_id < 0:
        raise AddressingError(
            "Test run id must not be negative", test_run_id=test_run_id
        )
    return test_run_id


def _validate_base(base: str) -> str:
    parts = base.split(".") if isinstance(base, str) else []
    if len(parts) != 2 or not all(
        p.isascii() and p.isdigit() and 0 <= int(p) <= 255 for p in parts
    ):
        raise AddressingError(
            f"Address base '{base}' must be two dotted octets, e.g. '172.16'"
        )
    return ".".join(str(int(p)) for p in parts)


def derive_octet(test_run_id: int) -> int:
    """Return the third octet for a test run, always within [2, 255]."""
    run_id = _validate_run_id(test_run_id)
    return (run_id % OCTET_MODULUS) + RESERVED_OCTETS


def derive_cidr(
    test_run_id: int,
    base: str = DEFAULT_ADDRESS_BASE,
    prefix_length: int = DEFAULT_PREFIX_LENGTH,
) -> str:
    """Return the address range for a test run.

    Args:
        test_run_id: Non-negative test run identifier
        base: First two octets of the shared network
        prefix_length: Prefix length of the derived range (24-30)

    Returns:
        CIDR string such as ``172.16.7.0/24``
    """
    octet = derive_octet(test_run_id)
    base = _validate_base(base)
    if not 24 <= prefix_length <= 30:
        raise AddressingError(
            f"Prefix length {prefix_length} is outside 24-30",
            test_run_id=test_run_id,
        )

    network = ipaddress.ip_network(f"{base}.{octet}.0/{prefix_length}", strict=False)
    return str(network)


def subnet_name(test_run_id: int, prefix: str = DEFAULT_NAME_PREFIX) -> str:
    """Return the subnet name for a test run (``agent-<id>``)."""
    return f"{prefix}{_validate_run_id(test_run_id)}"


def octets_collide(first_run_id: int, second_run_id: int) -> bool:
    """Check whether two test runs would be given the same range."""
    return derive_octet(first_run_id) == derive_octet(second_run_id)


def cidrs_disjoint(first: str, second: str) -> bool:
    """Check that two CIDR blocks share no addresses."""
    try:
        first_net = ipaddress.ip_network(first, strict=False)
        second_net = ipaddress.ip_network(second, strict=False)
    except ValueError as e:
        raise AddressingError(f"Invalid CIDR block: {e}", cause=e) from e
    return not first_net.overlaps(second_net)


def allocate(
    test_run_id: int,
    base: str = DEFAULT_ADDRESS_BASE,
    prefix_length: int = DEFAULT_PREFIX_LENGTH,
    name_prefix: str = DEFAULT_NAME_PREFIX,
) -> SubnetAllocation:
    """Derive the full allocation (octet, CIDR and name) for a test run."""
    allocation = SubnetAllocation(
        test_run_id=test_run_id,
        octet=derive_octet(test_run_id),
        cidr=derive_cidr(test_run_id, base=base, prefix_length=prefix_length),
        name=subnet_name(test_run_id, prefix=name_prefix),
    )
    logger.debug(
        f"Allocated {allocation.cidr} ({allocation.name}) for test run {test_run_id}"
    )
    return allocation
