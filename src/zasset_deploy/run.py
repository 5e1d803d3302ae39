# run.py
# Entry point. Config and wiring only. No logic lives here.
#
# Secrets come from the environment (or a .env file):
#   PROVIDER_URL          JSON-RPC endpoint of the target network
#   DEPLOYER_PRIVATE_KEY  key of the single operating account

import argparse
import json
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from zasset_deploy import display
from zasset_deploy.chain import Chain, ContractNotFound, Deployer, address_of
from zasset_deploy.configure_synths import configure_synths
from zasset_deploy.deploy_synths import deploy_synths
from zasset_deploy.models import ExecutionContext, FeedSpec, SynthSpec
from zasset_deploy.reconciler import Reconciler, ReconcileError
from zasset_deploy.solidity import render_migration

load_dotenv()

DEFAULT_EXPLORER = "https://etherscan.io"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Deploy and configure Zasset synths.")
    parser.add_argument("--network", default="local")
    parser.add_argument("--deployment-path", type=Path, required=True)
    parser.add_argument("--explorer-link-prefix", default=DEFAULT_EXPLORER)
    parser.add_argument("--generate-solidity", action="store_true")
    parser.add_argument("--use-fork", action="store_true")
    parser.add_argument("--yes", "-y", action="store_true")
    parser.add_argument("--add-new-synths", action="store_true")
    parser.add_argument("--fresh-deploy", action="store_true")
    parser.add_argument("--system-suspended", action="store_true")
    return parser.parse_args(argv)


def load_synths(path: Path) -> list[SynthSpec]:
    raw = json.loads((path / "synths.json").read_text(encoding="utf-8"))
    return [SynthSpec.model_validate(entry) for entry in raw]


def load_feeds(path: Path) -> dict[str, FeedSpec]:
    feeds_file = path / "feeds.json"
    if not feeds_file.exists():
        return {}
    raw = json.loads(feeds_file.read_text(encoding="utf-8"))
    return {asset: FeedSpec.model_validate(entry) for asset, entry in raw.items()}


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    chain = Chain(os.environ["PROVIDER_URL"], os.environ["DEPLOYER_PRIVATE_KEY"])
    deployer = Deployer(chain, args.deployment_path)
    synths = load_synths(args.deployment_path)
    feeds = load_feeds(args.deployment_path)

    context = ExecutionContext(
        generate_solidity=args.generate_solidity,
        use_fork=args.use_fork,
        yes=args.yes,
        explorer_link_prefix=args.explorer_link_prefix,
        network=args.network,
        account=chain.account,
        system_suspended=args.system_suspended,
    )
    reconciler = Reconciler(context)
    display.banner(context.network, context.account, context.generate_solidity)

    try:
        deployed = deploy_synths(
            account=context.account,
            add_new_synths=args.add_new_synths,
            config=deployer.config,
            deployer=deployer,
            fresh_deploy=args.fresh_deploy,
            generate_solidity=context.generate_solidity,
            network=context.network,
            synths=synths,
            system_suspended=context.system_suspended,
            use_fork=context.use_fork,
            yes=context.yes,
        )
        configure_synths(
            address_of=address_of,
            explorer_link_prefix=context.explorer_link_prefix,
            generate_solidity=context.generate_solidity,
            synths=synths,
            feeds=feeds,
            deployer=deployer,
            run_step=reconciler,
        )
    except (ReconcileError, ContractNotFound) as exc:
        display.halt(str(exc))
        return 1
    finally:
        deployer.save()

    display.run_summary(reconciler.results)

    if context.generate_solidity:
        migration_file = args.deployment_path / f"Migration_{context.network}.sol"
        migration_file.write_text(
            render_migration(context.network, reconciler.instructions), encoding="utf-8"
        )
        display.migration_written(str(migration_file), len(reconciler.instructions))

    display.final_result(f"{len(deployed.synths_to_add)} synth(s) pending Issuer registration.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
