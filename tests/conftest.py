import itertools

import pytest

from zasset_deploy.chain import ContractNotFound
from zasset_deploy.models import ExecutionContext

# write selector → storage slot it updates
SETTERS = {
    "setTarget": "target",
    "setProxy": "proxy",
    "setAssociatedContract": "associatedContract",
    "setTotalSupply": "totalSupply",
}

_addresses = itertools.count(1)


def next_address() -> str:
    # digits only so checksumming never changes the string
    return "0x" + f"{next(_addresses):040d}"


class FakeContract:
    """In-memory contract: reads come from `state`, writes land in `state` and `trace`."""

    def __init__(self, name, trace, address=None, **state):
        self.name = name
        self.address = address or next_address()
        self.state = dict(state)
        self.trace = trace
        self.reads = []
        self.fail_reads = False
        self.fail_writes = False

    def call(self, selector, *args):
        self.reads.append((selector, args))
        if self.fail_reads:
            raise ConnectionError("node unavailable")
        value = self.state.get(selector)
        if args and isinstance(value, dict):
            return value.get(args[0])
        return value

    def transact(self, selector, *args):
        if self.fail_writes:
            raise RuntimeError("execution reverted")
        self.trace.append((self.name, selector, args))
        if selector == "addAggregator":
            self.state.setdefault("aggregators", {})[args[0]] = args[1]
        elif selector in SETTERS:
            self.state[SETTERS[selector]] = args[0]
        return {"transactionHash": b"\x01" * 32, "status": 1}


class FakeDeployer:
    def __init__(self, trace, config=None):
        self.trace = trace
        self.config = config or {}
        self.deployed_contracts = {}
        self.existing = {}
        self.deploy_calls = []

    def add(self, name, existing=False, **state):
        contract = FakeContract(name, self.trace, **state)
        self.deployed_contracts[name] = contract
        if existing:
            self.existing[name] = contract
        return contract

    def get_existing_contract(self, name):
        if name not in self.existing:
            raise ContractNotFound(name)
        return self.existing[name]

    def deploy_contract(self, name, source=None, args=None, deps=None, force=False):
        self.deploy_calls.append((name, source, list(args or [])))
        wants_deploy = force or self.config.get(name, {}).get("deploy", False)
        if name in self.deployed_contracts and not wants_deploy:
            return self.deployed_contracts[name]
        if any(dep not in self.deployed_contracts for dep in deps or []):
            return None
        contract = FakeContract(name, self.trace)
        self.deployed_contracts[name] = contract
        return contract


@pytest.fixture
def trace():
    return []


@pytest.fixture
def deployer(trace):
    return FakeDeployer(trace)


@pytest.fixture
def live_context():
    return ExecutionContext(network="local", account="0x" + "9" * 40)


@pytest.fixture
def solidity_context():
    return ExecutionContext(
        network="mainnet",
        generate_solidity=True,
        explorer_link_prefix="https://etherscan.io",
    )
