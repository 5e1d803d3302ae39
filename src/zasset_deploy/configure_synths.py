# configure_synths.py
# Wires each synth to its TokenState, Proxy and price aggregator.
#
# Every action is a reconciler step, so re-running after a partial failure
# only sends the transactions that are still missing.
#
# Per-synth order matters: TokenState association, then proxy target, then
# the synth's own proxy pointer, then the zUSD ERC20 proxy. The aggregator
# is independent and goes last.

from typing import Any, Callable, Mapping

from eth_utils import to_checksum_address

from zasset_deploy import display
from zasset_deploy.chain import ContractNotFound, is_address, to_bytes32
from zasset_deploy.models import CustomSolidity, FeedSpec, StepResult, SynthSpec

BASE_CURRENCY = "zUSD"
LEGACY_PROXY = "ProxyERC20zUSD"
ZASSET_SUPPLY_INTERFACE = [
    "function totalSupply() external view returns (uint)",
    "function setTotalSupply(uint amount) external",
]


def _explorer_comment(prefix: str, address: str) -> str:
    return f"// {prefix}/address/{address}"


def _feed_for(feeds: Mapping[str, Any], asset: str) -> str | None:
    entry = feeds.get(asset)
    if entry is None:
        return None
    if isinstance(entry, FeedSpec):
        return entry.feed
    return entry.get("feed")


def configure_synths(
    *,
    address_of: Callable[[Any], str | None],
    explorer_link_prefix: str,
    generate_solidity: bool,
    synths: list[SynthSpec],
    feeds: Mapping[str, Any],
    deployer: Any,
    run_step: Callable[..., StepResult],
) -> list[StepResult]:
    """Reconcile proxy, token-state and aggregator wiring for every synth."""
    display.section("CONFIGURE SYNTHS")

    results: list[StepResult] = []
    exchange_rates = deployer.deployed_contracts.get("ExchangeRates")

    for spec in synths:
        currency_key = spec.name
        display.cluster(f"Zasset {currency_key}")

        currency_key_in_bytes = to_bytes32(currency_key)

        synth = deployer.deployed_contracts.get(f"Zasset{currency_key}")
        token_state = deployer.deployed_contracts.get(f"TokenState{currency_key}")
        proxy = deployer.deployed_contracts.get(f"Proxy{currency_key}")
        proxy_erc20 = (
            deployer.deployed_contracts.get(LEGACY_PROXY) if currency_key == BASE_CURRENCY else None
        )

        try:
            existing_synth = deployer.get_existing_contract(f"Zasset{currency_key}")
        except ContractNotFound:
            existing_synth = None

        # only solidity mode needs an explicit supply copy; live deploys pass it to the constructor
        if (
            synth
            and generate_solidity
            and existing_synth
            and address_of(existing_synth) != address_of(synth)
        ):
            results.append(
                run_step(
                    contract=f"Zasset{currency_key}",
                    target=synth,
                    write="setTotalSupply",
                    write_arg=address_of(synth),
                    comment="Ensure the new synth has the totalSupply from the previous one",
                    custom_solidity=CustomSolidity(
                        name=f"copyTotalSupplyFrom_{currency_key}",
                        interfaces={"Zasset": ZASSET_SUPPLY_INTERFACE},
                        instructions=[
                            _explorer_comment(explorer_link_prefix, address_of(existing_synth)),
                            f"Zasset existingSynth = Zasset({address_of(existing_synth)})",
                            _explorer_comment(explorer_link_prefix, address_of(synth)),
                            f"Zasset newSynth = Zasset({address_of(synth)})",
                            "newSynth.setTotalSupply(existingSynth.totalSupply())",
                        ],
                    ),
                )
            )

        if token_state and synth:
            results.append(
                run_step(
                    contract=f"TokenState{currency_key}",
                    target=token_state,
                    read="associatedContract",
                    expected=lambda value, synth=synth: value == address_of(synth),
                    write="setAssociatedContract",
                    write_arg=address_of(synth),
                    comment=f"Ensure the {currency_key} synth can write to its TokenState",
                )
            )

        if proxy and synth:
            results.append(
                run_step(
                    contract=f"Proxy{currency_key}",
                    target=proxy,
                    read="target",
                    expected=lambda value, synth=synth: value == address_of(synth),
                    write="setTarget",
                    write_arg=address_of(synth),
                    comment=f"Ensure the {currency_key} synth Proxy is correctly connected to the Synth",
                )
            )

            # when a ProxyERC20zUSD exists the synth must point at it instead
            synth_proxy = proxy_erc20 or proxy
            results.append(
                run_step(
                    contract=f"Zasset{currency_key}",
                    target=synth,
                    read="proxy",
                    expected=lambda value, synth_proxy=synth_proxy: value == address_of(synth_proxy),
                    write="setProxy",
                    write_arg=address_of(synth_proxy),
                    comment=f"Ensure the {currency_key} synth is connected to its Proxy",
                )
            )

            if proxy_erc20:
                results.append(
                    run_step(
                        contract=LEGACY_PROXY,
                        target=proxy_erc20,
                        read="target",
                        expected=lambda value, synth=synth: value == address_of(synth),
                        write="setTarget",
                        write_arg=address_of(synth),
                        comment=f"Ensure the special ERC20 proxy for {BASE_CURRENCY} has its target set to the Synth",
                    )
                )

        feed = _feed_for(feeds, spec.asset)

        if is_address(feed) and exchange_rates:
            feed = to_checksum_address(feed)
            results.append(
                run_step(
                    contract="ExchangeRates",
                    target=exchange_rates,
                    read="aggregators",
                    read_arg=currency_key_in_bytes,
                    expected=lambda value, feed=feed: value == feed,
                    write="addAggregator",
                    write_arg=[currency_key_in_bytes, feed],
                    comment=f"Ensure the ExchangeRates contract has the feed for {currency_key}",
                )
            )

    return results
