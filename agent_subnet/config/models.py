"""
Configuration models for agent subnet provisioning.

Provides type-safe configuration using pydantic with validation,
defaults, and schema enforcement.
"""

from pathlib import Path
from typing import Annotated, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..addressing import DEFAULT_ADDRESS_BASE, DEFAULT_NAME_PREFIX, allocate
from ..durations import format_duration, parse_duration
from ..exceptions import AddressingError, ConfigurationError

NonEmptyStr = Annotated[str, Field(min_length=1)]


class NetworkConfig(BaseModel):
    """The pre-existing virtual network the agent subnet is carved from."""

    virtual_network_name: NonEmptyStr = Field(
        description="Name of the existing virtual network",
    )
    resource_group_name: NonEmptyStr = Field(
        description="Resource group that holds the virtual network",
    )

    model_config = ConfigDict(extra="forbid")  # Reject unknown fields


class SubnetConfig(BaseModel):
    """Naming, addressing and delegation of the agent subnet."""

    name_prefix: NonEmptyStr = Field(
        default=DEFAULT_NAME_PREFIX,
        description="Prefix prepended to the test run id to form the subnet name",
    )
    address_base: str = Field(
        default=DEFAULT_ADDRESS_BASE,
        description="First two octets of the shared address space",
    )
    prefix_length: Annotated[int, Field(ge=24, le=30)] = Field(
        default=24,
        description="Prefix length of each derived range",
    )
    delegation_name: NonEmptyStr = Field(
        default="delegation",
        description="Name of the subnet delegation block",
    )
    delegation_service: NonEmptyStr = Field(
        default="Microsoft.DevOpsInfrastructure/pools",
        description="Managed service the subnet is delegated to",
    )
    delegation_actions: List[str] = Field(
        default_factory=lambda: [
            "Microsoft.Network/virtualNetworks/subnets/join/action"
        ],
        description="Actions granted to the delegated service",
    )
    service_endpoints: List[str] = Field(
        default_factory=list,
        description="Optional service endpoints enabled on the subnet",
    )

    model_config = ConfigDict(extra="forbid")

    @field_validator("address_base")
    @classmethod
    def validate_address_base(cls, v: str) -> str:
        """Validate the base is two dotted octets."""
        parts = v.split(".")
        if len(parts) != 2 or not all(
            p.isascii() and p.isdigit() and 0 <= int(p) <= 255 for p in parts
        ):
            raise ValueError("address_base must look like '172.16'")
        return v

    @field_validator("delegation_service")
    @classmethod
    def validate_delegation_service(cls, v: str) -> str:
        """Validate the service looks like a resource provider type."""
        if "/" not in v:
            raise ValueError(
                "delegation_service must be a provider type such as "
                "'Microsoft.DevOpsInfrastructure/pools'"
            )
        return v


class LifecycleConfig(BaseModel):
    """Destroy-time behaviour of the agent subnet."""

    destroy_wait: str = Field(
        default="60s",
        description="How long to wait before the subnet may be deleted",
    )
    recreate_on_apply: bool = Field(
        default=True,
        description="Replace the delay on every apply so it always re-arms",
    )

    model_config = ConfigDict(extra="forbid")

    @field_validator("destroy_wait", mode="before")
    @classmethod
    def validate_destroy_wait(cls, v: object) -> str:
        """Accept seconds or a duration string; store a Terraform duration."""
        if isinstance(v, str) and v.strip().isascii() and v.strip().isdigit():
            v = int(v.strip())
        try:
            if isinstance(v, (int, float)) and not isinstance(v, bool):
                # time_sleep rejects durations without a unit
                return format_duration(v)
            if not isinstance(v, str):
                raise ValueError("destroy_wait must be a duration such as '90s'")
            parse_duration(v)
        except ConfigurationError as e:
            raise ValueError(e.message) from e
        return v.strip()

    @property
    def destroy_wait_seconds(self) -> float:
        """Destroy wait in seconds."""
        return parse_duration(self.destroy_wait)


class TerraformConfig(BaseModel):
    """How the external Terraform engine is invoked."""

    binary: NonEmptyStr = Field(
        default="terraform",
        description="Terraform executable",
    )
    working_dir: Path = Field(
        default=Path("./agent-subnet-tf"),
        description="Directory the configuration is written to and applied from",
    )
    required_version: str = Field(default=">= 1.5.0")
    azurerm_version: str = Field(default="~> 3.80")
    time_version: str = Field(default="~> 0.9")
    timeout_seconds: Annotated[int, Field(gt=0)] = Field(
        default=1800,
        description="Timeout for apply/destroy in seconds",
    )
    output_filename: NonEmptyStr = Field(default="main.tf.json")

    model_config = ConfigDict(extra="forbid")

    @field_validator("output_filename")
    @classmethod
    def validate_output_filename(cls, v: str) -> str:
        """Terraform only reads JSON configuration from *.tf.json files."""
        if not v.endswith(".tf.json"):
            raise ValueError("output_filename must end with '.tf.json'")
        return v


class AgentSubnetConfig(BaseModel):
    """
    Complete configuration for one test run's agent subnet.

    Combines the test run identity with network, subnet, lifecycle and
    Terraform settings.
    """

    test_run_id: Annotated[int, Field(ge=0)] = Field(
        description="Identifier of the test run the subnet belongs to",
    )
    network: NetworkConfig
    subnet: SubnetConfig = Field(default_factory=SubnetConfig)
    lifecycle: LifecycleConfig = Field(default_factory=LifecycleConfig)
    terraform: TerraformConfig = Field(default_factory=TerraformConfig)

    model_config = ConfigDict(extra="forbid")

    @field_validator("test_run_id", mode="before")
    @classmethod
    def validate_test_run_id(cls, v: object) -> object:
        """Accept whole numbers and digit strings only."""
        # bool is an int subclass; True would silently become run 1
        if isinstance(v, (bool, float)):
            raise ValueError("test_run_id must be a whole number")
        if isinstance(v, str):
            text = v.strip()
            if not (text.isascii() and text.isdigit()):
                raise ValueError("test_run_id must be a non-negative whole number")
            return int(text)
        return v

    def allocation(self):
        """Derive the address allocation for this run."""
        try:
            return allocate(
                self.test_run_id,
                base=self.subnet.address_base,
                prefix_length=self.subnet.prefix_length,
                name_prefix=self.subnet.name_prefix,
            )
        except AddressingError as e:
            raise ConfigurationError(
                f"Cannot derive subnet address: {e.message}",
                config_key="test_run_id",
                cause=e,
            ) from e
