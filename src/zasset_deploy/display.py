# display.py
# All terminal output for the synth deployment tooling.
#
# This module owns presentation entirely. The reconciler, sequencers and
# chain adapter never format strings. They call named functions here.
#
# Colour language:
#   dim      section headers and per-synth clusters
#   cyan     routing: contracts reused, transactions being sent
#   green    success: already satisfied, submitted, deployed
#   yellow   recorded instructions, warnings, confirmation prompts
#   red      failures, halts, aborts

from collections.abc import Mapping
from typing import Any

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from zasset_deploy.models import GeneratedInstruction, Outcome, StepResult

console = Console()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _label(tag: str, color: str) -> Text:
    t = Text()
    t.append(f" {tag} ", style=f"bold white on {color}")
    return t


def _mono(value: str, max_len: int = 120) -> str:
    if len(value) > max_len:
        return value[:max_len] + "…"
    return value


def _args(args: list[Any]) -> str:
    rendered = []
    for arg in args:
        if isinstance(arg, (bytes, bytearray)):
            rendered.append("0x" + bytes(arg).hex())
        else:
            rendered.append(str(arg))
    return _mono(", ".join(rendered), 90)


# ---------------------------------------------------------------------------
# Run entry
# ---------------------------------------------------------------------------


def banner(network: str, account: str, generate_solidity: bool) -> None:
    mode = "solidity generation" if generate_solidity else "live execution"
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]Zasset Deployment[/bold cyan]\n"
            "[dim]Idempotent read → expect → write configuration[/dim]\n\n"
            f"[dim]Network :[/dim] [white]{network}[/white]\n"
            f"[dim]Account :[/dim] [white]{account}[/white]\n"
            f"[dim]Mode    :[/dim] [white]{mode}[/white]",
            border_style="cyan",
            padding=(1, 4),
        )
    )


def section(title: str) -> None:
    console.print()
    console.print(Rule(f"[dim]{title}[/dim]", style="dim"))


def cluster(title: str) -> None:
    console.print()
    console.print(f"[dim]   --- {title} ---[/dim]")


# ---------------------------------------------------------------------------
# Deployer
# ---------------------------------------------------------------------------


def contract_reused(name: str, address: str) -> None:
    console.print(f"  [cyan]↳ Reusing[/cyan] [white]{name}[/white] [dim]{address}[/dim]")


def contract_deployed(name: str, source: str, address: str) -> None:
    console.print(
        f"  [bold green]✓ Deployed[/bold green] [white]{name}[/white]"
        f" [dim]({source}) {address}[/dim]"
    )


def contract_skipped(name: str, missing: list[str]) -> None:
    console.print(
        f"  [yellow]↳ Skipping[/yellow] [white]{name}[/white]"
        f" [dim]missing dependencies: {', '.join(missing)}[/dim]"
    )


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------


def step_skipped(contract_name: str, write: str) -> None:
    console.print(f"  [dim]↳ {contract_name}.{write} skipped, contract not present[/dim]")


def step_satisfied(contract_name: str, accessor: str, value: Any) -> None:
    shown = "" if value is None else f" [dim]= {escape(_mono(str(value), 60))}[/dim]"
    console.print(f"  [green]✓ {contract_name}.{accessor}[/green]{shown}")


def step_sending(contract_name: str, write: str, args: list[Any]) -> None:
    console.print(
        f"  [cyan]→ Invoking[/cyan] [bold white]{contract_name}.{write}[/bold white]"
        f"[dim]({_args(args)})[/dim]"
    )


def step_submitted(contract_name: str, write: str, receipt: Any) -> None:
    tx_hash = ""
    if isinstance(receipt, Mapping):
        raw = receipt.get("transactionHash")
        tx_hash = raw.hex() if hasattr(raw, "hex") else str(raw or "")
    console.print(f"  [bold green]✓ {contract_name}.{write} mined[/bold green] [dim]{tx_hash}[/dim]")


def step_recorded(instruction: GeneratedInstruction) -> None:
    console.print(f"  [yellow]✎ Recorded[/yellow] [white]{_mono(instruction.call, 140)}[/white]")


def step_failed(contract_name: str, selector: str, reason: str) -> None:
    console.print()
    console.print(
        Panel(
            f"[bold red]{contract_name}.{selector} failed.[/bold red]\n\n[white]{escape(reason)}[/white]",
            title=_label("CALL FAILED ✗", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )


# ---------------------------------------------------------------------------
# Operator gates
# ---------------------------------------------------------------------------


def confirm_write(network: str, contract_name: str, write: str, args: list[Any]) -> None:
    console.print(
        f"  [yellow]⚠ {network}: about to invoke[/yellow] [bold white]{contract_name}.{write}"
        f"[/bold white][dim]({_args(args)})[/dim]"
    )


def supply_warning(network: str, currency_key: str, total_supply: int) -> None:
    console.print()
    console.print(
        Panel(
            "[bold yellow]⚠⚠⚠ WARNING: The system is not suspended! Adding a synth here without "
            "using a migration contract is potentially problematic.[/bold yellow]\n\n"
            f"[white]Please confirm - {network}:\n"
            f"Zasset{currency_key} totalSupply is {total_supply}[/white]\n"
            "[dim]NOTE: Deploying with this amount is dangerous when the system is not "
            "already suspended[/dim]",
            title=_label("SUPPLY MIGRATION", "yellow"),
            border_style="yellow",
            padding=(0, 2),
        )
    )


def operation_cancelled() -> None:
    console.print("[dim]Operation cancelled[/dim]")


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


_OUTCOME_STYLE = {
    Outcome.SKIPPED_NO_TARGET: "dim",
    Outcome.ALREADY_SATISFIED: "green",
    Outcome.RECORDED: "yellow",
    Outcome.SUBMITTED: "bold green",
}


def run_summary(results: list[StepResult]) -> None:
    console.print()
    table = Table(
        box=box.SIMPLE_HEAVY,
        border_style="dim",
        show_header=True,
        header_style="bold dim",
        padding=(0, 1),
    )
    table.add_column("Contract", style="white", width=20)
    table.add_column("Write", width=22)
    table.add_column("Outcome", width=18)
    table.add_column("Comment", style="dim white")

    for result in results:
        style = _OUTCOME_STYLE[result.outcome]
        table.add_row(
            result.contract_name,
            result.write,
            f"[{style}]{result.outcome.value}[/{style}]",
            _mono(result.comment, 60),
        )

    console.print(
        Panel(
            table,
            title="[dim]CONFIGURATION SUMMARY[/dim]",
            border_style="dim",
            padding=(0, 1),
        )
    )


def migration_written(path: str, count: int) -> None:
    console.print()
    console.print(
        Panel(
            f"[bold yellow]{count} instruction(s)[/bold yellow] written to [white]{path}[/white]",
            title=_label("MIGRATION CONTRACT", "yellow"),
            border_style="yellow",
            padding=(0, 2),
        )
    )


def halt(reason: str) -> None:
    console.print()
    console.print(
        Panel(
            f"[bold white]{escape(reason)}[/bold white]",
            title=_label("HALT", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )
    console.print()


def final_result(result: str) -> None:
    console.print()
    console.print(
        Panel(
            f"[white]{escape(result)}[/white]",
            title=_label("RESULT", "green"),
            border_style="green",
            padding=(1, 2),
        )
    )
    console.print()
