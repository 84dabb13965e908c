"""Address derivation command.

- 'cidr': show the octet, CIDR and subnet name a test run would get
"""

import click
from rich.table import Table

from ..addressing import DEFAULT_ADDRESS_BASE, DEFAULT_NAME_PREFIX, allocate
from .base import console, handle_errors


@click.command("cidr")
@click.argument("test_run_id", type=int)
@click.option(
    "--address-base",
    default=DEFAULT_ADDRESS_BASE,
    show_default=True,
    help="First two octets of the shared network",
)
@click.option(
    "--prefix-length",
    type=int,
    default=24,
    show_default=True,
    help="Prefix length of the derived range (24-30)",
)
@click.option(
    "--name-prefix",
    default=DEFAULT_NAME_PREFIX,
    show_default=True,
    help="Prefix of the subnet name",
)
@handle_errors
def cidr(test_run_id: int, address_base: str, prefix_length: int, name_prefix: str) -> None:
    """Show the address range assigned to TEST_RUN_ID.

    Examples:
        agent-subnet cidr 5
        agent-subnet cidr 253 --address-base 10.20
    """
    allocation = allocate(
        test_run_id,
        base=address_base,
        prefix_length=prefix_length,
        name_prefix=name_prefix,
    )

    table = Table(title=f"Test run {test_run_id}", show_header=True)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Third octet", str(allocation.octet))
    table.add_row("CIDR", allocation.cidr)
    table.add_row("Subnet name", allocation.name)
    console.print(table)
