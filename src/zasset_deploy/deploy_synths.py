# deploy_synths.py
# Deploys (or reuses) TokenState, Proxy and Zasset contracts for each synth.
#
# Synths deployed here are returned as `synths_to_add` so the Issuer can
# register them once the address resolver has been synced.

from typing import Any, Mapping

from zasset_deploy import display
from zasset_deploy.chain import ZERO_ADDRESS, ContractNotFound, address_of, to_bytes32
from zasset_deploy.configure_synths import BASE_CURRENCY, LEGACY_PROXY
from zasset_deploy.models import DeploySynthsResult, SynthSpec, SynthToAdd
from zasset_deploy.reconciler import ReadFailed, confirm_action


def _original_total_supply(deployer: Any, currency_key: str, fresh_deploy: bool) -> int:
    """Supply of the synth being replaced; 0 when there is none on a fresh deploy."""
    try:
        old_synth = deployer.get_existing_contract(f"Zasset{currency_key}")
    except ContractNotFound:
        # local environments handle both new and updating configurations
        if not fresh_deploy:
            raise
        return 0
    try:
        return old_synth.call("totalSupply")
    except Exception as exc:
        display.step_failed(f"Zasset{currency_key}", "totalSupply", str(exc))
        raise ReadFailed(f"Zasset{currency_key}.totalSupply() failed: {exc}") from exc


def deploy_synths(
    *,
    account: str,
    add_new_synths: bool,
    config: Mapping[str, Any],
    deployer: Any,
    fresh_deploy: bool,
    generate_solidity: bool,
    network: str,
    synths: list[SynthSpec],
    system_suspended: bool,
    use_fork: bool,
    yes: bool,
) -> DeploySynthsResult:
    """
    Deploy the contract trio for every synth in order.

    Raises OperatorAborted if the operator declines the supply-migration
    warning; nothing after that synth is deployed.
    """
    display.section("DEPLOY SYNTHS")

    issuer = deployer.deployed_contracts.get("Issuer")
    resolver = deployer.deployed_contracts.get("ReadProxyAddressResolver")

    synths_to_add: list[SynthToAdd] = []

    for spec in synths:
        currency_key = spec.name
        display.cluster(f"ZASSET {currency_key} - {spec.subclass or 'Synth'}")

        token_state = deployer.deploy_contract(
            name=f"TokenState{currency_key}",
            source="TokenState",
            args=[account, ZERO_ADDRESS],
            force=add_new_synths,
        )

        # mainnet zUSD keeps the legacy Proxy; its ERC20 proxy is deployed separately below
        synth_proxy_is_legacy = currency_key == BASE_CURRENCY and network == "mainnet"

        proxy = deployer.deploy_contract(
            name=f"Proxy{currency_key}",
            source="Proxy" if synth_proxy_is_legacy else "ProxyERC20",
            args=[account],
            force=add_new_synths,
        )

        proxy_erc20 = None
        if currency_key == BASE_CURRENCY:
            proxy_erc20 = deployer.deploy_contract(
                name=LEGACY_PROXY,
                source="ProxyERC20",
                args=[account],
                force=add_new_synths,
            )

        currency_key_in_bytes = to_bytes32(currency_key)
        synth_config = config.get(f"Zasset{currency_key}", {})

        original_total_supply = 0
        if synth_config.get("deploy"):
            original_total_supply = _original_total_supply(deployer, currency_key, fresh_deploy)

        if synth_config.get("deploy") and original_total_supply > 0:
            if not system_suspended and not generate_solidity and not use_fork:
                display.supply_warning(network, currency_key, original_total_supply)
                if not yes:
                    confirm_action("Do you want to continue?")

        synth = deployer.deploy_contract(
            name=f"Zasset{currency_key}",
            source=spec.subclass or "Synth",
            deps=[f"TokenState{currency_key}", f"Proxy{currency_key}", "Synthetix", "FeePool"],
            args=[
                address_of(proxy_erc20) if proxy_erc20 else address_of(proxy),
                address_of(token_state),
                f"Zasset {currency_key}",
                currency_key,
                account,
                currency_key_in_bytes,
                original_total_supply,
                address_of(resolver),
            ],
            force=add_new_synths,
        )

        if synth and issuer:
            synths_to_add.append(SynthToAdd(synth=synth, currency_key_in_bytes=currency_key_in_bytes))

    return DeploySynthsResult(synths_to_add=synths_to_add)
