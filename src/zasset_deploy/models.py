# models.py
# Data contracts for the configuration reconciler and the synth sequencers.
# No business logic lives here. Pure schema and validation.

from enum import Enum
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field


class CustomSolidity(BaseModel):
    """Hand-written migration instructions that replace the default call expression."""

    name: str = Field(..., description="Name of the internal function in the migration contract.")
    instructions: list[str] = Field(default_factory=list)
    interfaces: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Interface name to function declarations the instructions rely on.",
    )


class ConfigurationStep(BaseModel):
    """A single read-expect-write unit of on-chain configuration."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    contract_name: str = Field(..., description="Logical contract name, e.g. 'ZassetzUSD'.")
    target: Any = Field(default=None, description="Contract handle to mutate; None when not deployed.")
    read: str | None = Field(default=None, description="Accessor to query; absent means always write.")
    read_arg: Any = None
    expected: Callable[[Any], bool] | None = None
    write: str = Field(..., description="Mutating function invoked when not satisfied.")
    write_arg: Any = None
    comment: str = ""
    custom_solidity: CustomSolidity | None = None

    @property
    def read_args(self) -> list[Any]:
        return _as_args(self.read_arg)

    @property
    def write_args(self) -> list[Any]:
        return _as_args(self.write_arg)


def _as_args(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class ExecutionContext(BaseModel):
    """Process-wide switches that decide how an unsatisfied step is applied."""

    generate_solidity: bool = False
    use_fork: bool = False
    yes: bool = False
    explorer_link_prefix: str = ""
    network: str = "local"
    account: str = ""
    system_suspended: bool = False
    production_networks: set[str] = Field(default_factory=lambda: {"mainnet"})

    @property
    def is_production(self) -> bool:
        return self.network in self.production_networks


class Outcome(str, Enum):
    SKIPPED_NO_TARGET = "skipped-no-target"
    ALREADY_SATISFIED = "already-satisfied"
    RECORDED = "recorded"
    SUBMITTED = "submitted"


class GeneratedInstruction(BaseModel):
    """A step captured for a Solidity migration contract instead of being sent."""

    contract_name: str
    target_address: str
    call: str = Field(..., description="Solidity call expression, e.g. 'Proxy_zUSD(0x..).setTarget(0x..)'.")
    write: str = ""
    args: list[Any] = Field(default_factory=list)
    comment: str = ""
    custom_solidity: CustomSolidity | None = None


class StepResult(BaseModel):
    """Immutable log entry produced after each reconciled step."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    outcome: Outcome
    contract_name: str
    write: str
    comment: str = ""
    receipt: Any = None
    instruction: GeneratedInstruction | None = None


class SynthSpec(BaseModel):
    """One synthetic asset to deploy or configure."""

    name: str = Field(..., description="Currency key, e.g. 'zUSD'.")
    asset: str = Field(default="", description="Underlying asset symbol used to look up the price feed.")
    subclass: str | None = Field(default=None, description="Contract source overriding 'Synth'.")


class FeedSpec(BaseModel):
    feed: str | None = None


class SynthToAdd(BaseModel):
    """A freshly deployed synth waiting to be registered with the Issuer."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    synth: Any
    currency_key_in_bytes: bytes


class DeploySynthsResult(BaseModel):
    synths_to_add: list[SynthToAdd] = Field(default_factory=list)
