import json
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from zasset_deploy.chain import (
    Chain,
    ContractHandle,
    ContractNotFound,
    Deployer,
    TransactionReverted,
    address_of,
    is_address,
    to_bytes32,
)
from zasset_deploy.reconciler import WriteFailed

OLD = "0x" + "1" * 40
NEW = "0x" + "2" * 40
ABI = [{"type": "function", "name": "totalSupply", "inputs": [], "outputs": []}]


def test_to_bytes32_pads_right():
    value = to_bytes32("zUSD")
    assert len(value) == 32
    assert value.startswith(b"zUSD")
    assert value[4:] == b"\0" * 28


def test_to_bytes32_rejects_long_keys():
    with pytest.raises(ValueError):
        to_bytes32("z" * 33)


def test_is_address():
    assert is_address(OLD)
    assert not is_address(None)
    assert not is_address("0x1234")


def test_address_of_handles_absent_contract():
    assert address_of(None) is None
    assert address_of(SimpleNamespace(address=OLD)) == OLD


@pytest.fixture
def deployment_dir(tmp_path):
    (tmp_path / "deployment.json").write_text(
        json.dumps(
            {
                "targets": {"ZassetzEUR": {"name": "ZassetzEUR", "address": OLD, "source": "Synth"}},
                "sources": {"Synth": {"abi": ABI, "bytecode": "0x6000"}},
            }
        )
    )
    return tmp_path


@pytest.fixture
def chain():
    chain = MagicMock()
    chain.contract.side_effect = lambda address, abi: SimpleNamespace(address=address, abi=abi)
    chain.send.return_value = {"contractAddress": NEW, "status": 1}
    return chain


def test_existing_contracts_loaded(chain, deployment_dir):
    deployer = Deployer(chain, deployment_dir)
    assert deployer.deployed_contracts["ZassetzEUR"].address == OLD
    assert deployer.get_existing_contract("ZassetzEUR").address == OLD
    with pytest.raises(ContractNotFound):
        deployer.get_existing_contract("ZassetzBTC")


def test_deploy_contract_reuses_unless_forced(chain, deployment_dir):
    deployer = Deployer(chain, deployment_dir)

    reused = deployer.deploy_contract(name="ZassetzEUR", source="Synth")
    assert reused.address == OLD
    chain.send.assert_not_called()

    fresh = deployer.deploy_contract(name="ZassetzEUR", source="Synth", args=[1], force=True)
    assert fresh.address == NEW
    chain.send.assert_called_once()
    # the previous instance stays reachable for supply migration
    assert deployer.get_existing_contract("ZassetzEUR").address == OLD


def test_deploy_contract_honours_config(chain, deployment_dir):
    (deployment_dir / "config.json").write_text(json.dumps({"ZassetzEUR": {"deploy": True}}))
    deployer = Deployer(chain, deployment_dir)
    assert deployer.deploy_contract(name="ZassetzEUR", source="Synth").address == NEW


def test_deploy_contract_skips_on_missing_dependency(chain, deployment_dir):
    deployer = Deployer(chain, deployment_dir)
    assert deployer.deploy_contract(name="ZassetzBTC", source="Synth", deps=["FeePool"]) is None
    chain.send.assert_not_called()


def test_deploy_contract_unknown_source(chain, deployment_dir):
    deployer = Deployer(chain, deployment_dir)
    with pytest.raises(ContractNotFound):
        deployer.deploy_contract(name="ProxyzBTC", source="ProxyERC20")


def test_save_persists_new_targets(chain, deployment_dir):
    deployer = Deployer(chain, deployment_dir)
    deployer.deploy_contract(name="ZassetzBTC", source="Synth")
    deployer.save()

    saved = json.loads((deployment_dir / "deployment.json").read_text())
    assert saved["targets"]["ZassetzBTC"] == {"name": "ZassetzBTC", "address": NEW, "source": "Synth"}


def test_deploy_contract_wraps_failed_send(chain, deployment_dir):
    chain.send.side_effect = ConnectionError("node unavailable")
    deployer = Deployer(chain, deployment_dir)

    with pytest.raises(WriteFailed) as excinfo:
        deployer.deploy_contract(name="ZassetzBTC", source="Synth")

    assert isinstance(excinfo.value.__cause__, ConnectionError)
    assert "ZassetzBTC" in str(excinfo.value)
    assert "ZassetzBTC" not in deployer.deployment["targets"]
    assert "ZassetzBTC" not in deployer.deployed_contracts


# ---------------------------------------------------------------------------
# Chain and ContractHandle
# ---------------------------------------------------------------------------

ACCOUNT = "0x" + "9" * 40


@pytest.fixture
def live_chain():
    with patch("zasset_deploy.chain.Web3"), patch("zasset_deploy.chain.Account") as account:
        account.from_key.return_value.address = ACCOUNT
        chain = Chain("http://localhost:8545", "0x" + "ab" * 32)
    chain.w3.eth.get_transaction_count.return_value = 7
    chain.w3.eth.wait_for_transaction_receipt.return_value = {"status": 1, "contractAddress": NEW}
    return chain


def test_send_signs_with_pending_nonce(live_chain):
    unsent = MagicMock()

    receipt = live_chain.send(unsent)

    live_chain.w3.eth.get_transaction_count.assert_called_once_with(ACCOUNT, "pending")
    unsent.build_transaction.assert_called_once_with({"from": ACCOUNT, "nonce": 7})
    live_chain.signer.sign_transaction.assert_called_once_with(unsent.build_transaction.return_value)
    signed = live_chain.signer.sign_transaction.return_value
    live_chain.w3.eth.send_raw_transaction.assert_called_once_with(signed.raw_transaction)
    live_chain.w3.eth.wait_for_transaction_receipt.assert_called_once_with(
        live_chain.w3.eth.send_raw_transaction.return_value
    )
    assert receipt["contractAddress"] == NEW


def test_send_raises_on_reverted_receipt(live_chain):
    live_chain.w3.eth.wait_for_transaction_receipt.return_value = {"status": 0}
    live_chain.w3.eth.send_raw_transaction.return_value = b"\x12\x34"

    with pytest.raises(TransactionReverted, match="1234"):
        live_chain.send(MagicMock())


def test_contract_handle_routes_calls_and_writes():
    chain = MagicMock()
    contract = MagicMock(address=OLD)
    contract.functions.target.return_value.call.return_value = NEW
    handle = ContractHandle(chain, contract)

    assert handle.address == OLD
    assert handle.call("target") == NEW
    contract.functions.target.assert_called_once_with()

    receipt = handle.transact("setTarget", NEW)
    contract.functions.setTarget.assert_called_once_with(NEW)
    chain.send.assert_called_once_with(contract.functions.setTarget.return_value)
    assert receipt is chain.send.return_value


def test_contract_handle_revert_surfaces_from_chain_send(live_chain):
    live_chain.w3.eth.wait_for_transaction_receipt.return_value = {"status": 0}
    live_chain.w3.eth.send_raw_transaction.return_value = b"\x00"
    handle = ContractHandle(live_chain, MagicMock(address=OLD))

    with pytest.raises(TransactionReverted):
        handle.transact("setTarget", NEW)
