# chain.py
# web3.py adapter. Contract handles, signing, and the deployment registry.
#
# The reconciler only ever sees ContractHandle.call / .transact / .address.
# Everything that touches a node or a private key lives in this file.

import json
from pathlib import Path
from typing import Any

from eth_account import Account
from eth_utils import is_address as _is_address
from eth_utils import to_bytes, to_checksum_address
from web3 import Web3

from zasset_deploy import display
from zasset_deploy.reconciler import WriteFailed

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class ContractNotFound(Exception):
    """Raised when a logical contract name has no entry in the deployment file."""


class TransactionReverted(Exception):
    """Raised when a mined transaction reports status 0."""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def to_bytes32(text: str) -> bytes:
    """Right-pad a currency key such as 'zUSD' into a 32-byte identifier."""
    raw = to_bytes(text=text)
    if len(raw) > 32:
        raise ValueError(f"{text!r} does not fit in bytes32.")
    return raw.ljust(32, b"\0")


def is_address(value: Any) -> bool:
    return isinstance(value, str) and _is_address(value)


def address_of(handle: Any) -> str | None:
    """Address of a contract handle, or None when the handle is absent."""
    if handle is None:
        return None
    return handle.address


# ---------------------------------------------------------------------------
# Chain
# ---------------------------------------------------------------------------


class Chain:
    """
    A node connection bound to a single operating account.

    All writes are signed locally and submitted as raw transactions, so the
    node never needs to hold the key. Each write blocks until mined.
    """

    def __init__(self, provider_url: str, private_key: str) -> None:
        self.w3 = Web3(Web3.HTTPProvider(provider_url))
        self.signer = Account.from_key(private_key)

    @property
    def account(self) -> str:
        return self.signer.address

    def contract(self, address: str, abi: list[dict]) -> "ContractHandle":
        return ContractHandle(self, self.w3.eth.contract(address=to_checksum_address(address), abi=abi))

    def send(self, unsent: Any) -> Any:
        """Sign, submit and await a built web3 function call or constructor."""
        tx = unsent.build_transaction(
            {
                "from": self.account,
                "nonce": self.w3.eth.get_transaction_count(self.account, "pending"),
            }
        )
        signed = self.signer.sign_transaction(tx)
        tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash)
        if receipt["status"] == 0:
            raise TransactionReverted(f"Transaction {tx_hash.hex()} reverted.")
        return receipt


class ContractHandle:
    """A deployed contract instance addressed through its runtime address."""

    def __init__(self, chain: Chain, contract: Any) -> None:
        self._chain = chain
        self._contract = contract

    @property
    def address(self) -> str:
        return self._contract.address

    def call(self, selector: str, *args: Any) -> Any:
        return getattr(self._contract.functions, selector)(*args).call()

    def transact(self, selector: str, *args: Any) -> Any:
        return self._chain.send(getattr(self._contract.functions, selector)(*args))

    def __repr__(self) -> str:
        return f"ContractHandle({self.address})"


# ---------------------------------------------------------------------------
# Deployer
# ---------------------------------------------------------------------------


class Deployer:
    """
    Registry of deployed contracts backed by a deployment directory.

    Layout:
        deployment.json  {"targets": {name: {name, address, source}},
                          "sources": {source: {abi, bytecode}}}
        config.json      {name: {"deploy": bool}}

    `deployed_contracts` starts with every recorded target and is updated
    as contracts are redeployed. `get_existing_contract` always reflects
    the file as loaded, so it still returns the previous instance after a
    redeploy.
    """

    def __init__(self, chain: Chain, deployment_path: Path) -> None:
        self._chain = chain
        self._path = Path(deployment_path)
        self.deployment = json.loads((self._path / "deployment.json").read_text(encoding="utf-8"))
        config_file = self._path / "config.json"
        self.config: dict[str, dict] = (
            json.loads(config_file.read_text(encoding="utf-8")) if config_file.exists() else {}
        )
        self._existing = dict(self.deployment.get("targets", {}))
        self.deployed_contracts: dict[str, ContractHandle] = {}

        for name, target in self._existing.items():
            self.deployed_contracts[name] = self._handle(target["source"], target["address"])

    def _abi(self, source: str) -> list[dict]:
        try:
            return self.deployment["sources"][source]["abi"]
        except KeyError as exc:
            raise ContractNotFound(f"No compiled source '{source}' in deployment.") from exc

    def _handle(self, source: str, address: str) -> ContractHandle:
        return self._chain.contract(address, self._abi(source))

    def get_existing_contract(self, name: str) -> ContractHandle:
        target = self._existing.get(name)
        if target is None:
            raise ContractNotFound(f"No existing contract '{name}' in {self._path}.")
        return self._handle(target["source"], target["address"])

    def deploy_contract(
        self,
        name: str,
        source: str | None = None,
        args: list[Any] | None = None,
        deps: list[str] | None = None,
        force: bool = False,
    ) -> ContractHandle | None:
        """
        Reuse the recorded instance of `name` unless config or `force`
        demands a new one. Returns None when a dependency is missing and
        raises WriteFailed when the deployment transaction fails.
        """
        source = source or name
        wants_deploy = force or self.config.get(name, {}).get("deploy", False)

        if name in self._existing and not wants_deploy:
            display.contract_reused(name, self.deployed_contracts[name].address)
            return self.deployed_contracts[name]

        missing = [dep for dep in deps or [] if dep not in self.deployed_contracts]
        if missing:
            display.contract_skipped(name, missing)
            return None

        compiled = self.deployment["sources"].get(source)
        if compiled is None:
            raise ContractNotFound(f"No compiled source '{source}' in deployment.")

        factory = self._chain.w3.eth.contract(abi=compiled["abi"], bytecode=compiled["bytecode"])
        try:
            receipt = self._chain.send(factory.constructor(*(args or [])))
        except Exception as exc:
            display.step_failed(name, "constructor", str(exc))
            raise WriteFailed(f"Deploying {name} ({source}) failed: {exc}") from exc
        address = receipt["contractAddress"]

        handle = self._chain.contract(address, compiled["abi"])
        self.deployed_contracts[name] = handle
        self.deployment.setdefault("targets", {})[name] = {
            "name": name,
            "address": address,
            "source": source,
        }
        display.contract_deployed(name, source, address)
        return handle

    def save(self) -> None:
        (self._path / "deployment.json").write_text(
            json.dumps(self.deployment, indent=2) + "\n", encoding="utf-8"
        )
