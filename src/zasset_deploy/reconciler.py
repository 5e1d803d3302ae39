# reconciler.py
# Idempotent on-chain configuration reconciler.
#
# The Reconciler is the only thing that decides whether a transaction is
# sent. Sequencers describe *what* the configuration should be as a series
# of ConfigurationSteps; this module owns read, compare, and write.
#
# Control flow per step:
#   target present? → read current value → expected? (done)
#   → pure decision (plan_action) → mode strategy
#   → live: operator gate → transact → receipt
#   → solidity: record instruction
#
# All terminal output is delegated to display.py. No formatting here.

from typing import Any, NamedTuple

from rich.prompt import Confirm

from zasset_deploy import display
from zasset_deploy.models import (
    ConfigurationStep,
    ExecutionContext,
    GeneratedInstruction,
    Outcome,
    StepResult,
)
from zasset_deploy.solidity import call_expression


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ReconcileError(Exception):
    """Base class for every failure that must abort a deployment run."""


class ReadFailed(ReconcileError):
    """Raised when the accessor call for a step cannot be completed."""


class WriteFailed(ReconcileError):
    """Raised when the mutating call reverts or is never included."""


class OperatorAborted(ReconcileError):
    """Raised when the operator declines a confirmation prompt. Always fatal."""


# ---------------------------------------------------------------------------
# Confirmation
# ---------------------------------------------------------------------------


def confirm_action(question: str) -> None:
    """Block on a y/n prompt. Returns on yes, raises OperatorAborted on no."""
    if not Confirm.ask(question, console=display.console, default=False):
        display.operation_cancelled()
        raise OperatorAborted(f"Operator declined: {question}")


# ---------------------------------------------------------------------------
# Decision
# ---------------------------------------------------------------------------


class Observed(NamedTuple):
    """What the reconciler learned about current state before deciding."""

    read_performed: bool
    value: Any = None
    written_this_run: bool = False


class PendingWrite(NamedTuple):
    contract_name: str
    address: str
    write: str
    args: list[Any]


def write_key(step: ConfigurationStep) -> tuple:
    return (step.contract_name, step.target.address, step.write, repr(step.write_args))


def plan_action(step: ConfigurationStep, observed: Observed) -> PendingWrite | None:
    """
    Pure decision: return the write that must happen, or None.

    A step with a read is satisfied when its predicate holds for the
    observed value. A step without one is satisfied only if the same write
    has already been applied or recorded earlier in this run.
    """
    if observed.read_performed:
        if step.expected is not None and step.expected(observed.value):
            return None
    elif observed.written_this_run:
        return None

    return PendingWrite(
        contract_name=step.contract_name,
        address=step.target.address,
        write=step.write,
        args=step.write_args,
    )


# ---------------------------------------------------------------------------
# Mode strategies
# ---------------------------------------------------------------------------


class SolidityRecorder:
    """Captures pending writes as migration instructions. Never transacts."""

    def __init__(self) -> None:
        self.instructions: list[GeneratedInstruction] = []

    def apply(self, step: ConfigurationStep, pending: PendingWrite) -> StepResult:
        instruction = GeneratedInstruction(
            contract_name=pending.contract_name,
            target_address=pending.address,
            call=call_expression(pending.contract_name, pending.address, pending.write, pending.args),
            write=pending.write,
            args=pending.args,
            comment=step.comment,
            custom_solidity=step.custom_solidity,
        )
        self.instructions.append(instruction)
        display.step_recorded(instruction)
        return StepResult(
            outcome=Outcome.RECORDED,
            contract_name=step.contract_name,
            write=step.write,
            comment=step.comment,
            instruction=instruction,
        )


class LiveExecutor:
    """Submits pending writes from the operating account and awaits inclusion."""

    def __init__(self, context: ExecutionContext) -> None:
        self._context = context

    def _needs_confirmation(self) -> bool:
        ctx = self._context
        return ctx.is_production and not ctx.system_suspended and not ctx.use_fork and not ctx.yes

    def apply(self, step: ConfigurationStep, pending: PendingWrite) -> StepResult:
        if self._needs_confirmation():
            display.confirm_write(self._context.network, pending.contract_name, pending.write, pending.args)
            confirm_action(f"Invoke {pending.write} on {pending.contract_name}?")

        display.step_sending(pending.contract_name, pending.write, pending.args)
        try:
            receipt = step.target.transact(pending.write, *pending.args)
        except Exception as exc:
            display.step_failed(pending.contract_name, pending.write, str(exc))
            raise WriteFailed(
                f"{pending.contract_name}.{pending.write}({pending.args}) failed: {exc}"
            ) from exc

        display.step_submitted(pending.contract_name, pending.write, receipt)
        return StepResult(
            outcome=Outcome.SUBMITTED,
            contract_name=step.contract_name,
            write=step.write,
            comment=step.comment,
            receipt=receipt,
        )


# ---------------------------------------------------------------------------
# Reconciler
# ---------------------------------------------------------------------------


class Reconciler:
    """
    Applies ConfigurationSteps against a fixed ExecutionContext.

    One instance per deployment run. It remembers which read-less writes
    it has already applied so re-issuing them in the same run is a no-op;
    nothing survives the process.

    Example:
        reconciler = Reconciler(ExecutionContext(network="local", yes=True))
        reconciler.run_step(
            ConfigurationStep(
                contract_name="ProxyzUSD",
                target=proxy,
                read="target",
                expected=lambda value: value == synth.address,
                write="setTarget",
                write_arg=synth.address,
            )
        )
    """

    def __init__(self, context: ExecutionContext) -> None:
        self.context = context
        self.results: list[StepResult] = []
        self._written: set[tuple] = set()
        self._recorder = SolidityRecorder()
        self._strategy = self._recorder if context.generate_solidity else LiveExecutor(context)

    @property
    def instructions(self) -> list[GeneratedInstruction]:
        """Instructions recorded so far in solidity-generation mode."""
        return list(self._recorder.instructions)

    def _observe(self, step: ConfigurationStep) -> Observed:
        if step.read is None:
            return Observed(read_performed=False, written_this_run=write_key(step) in self._written)

        try:
            value = step.target.call(step.read, *step.read_args)
        except Exception as exc:
            display.step_failed(step.contract_name, step.read, str(exc))
            raise ReadFailed(f"{step.contract_name}.{step.read}({step.read_args}) failed: {exc}") from exc
        return Observed(read_performed=True, value=value)

    def run_step(self, step: ConfigurationStep) -> StepResult:
        """Reconcile one step. Raises ReadFailed, WriteFailed or OperatorAborted."""
        if step.target is None:
            display.step_skipped(step.contract_name, step.write)
            result = StepResult(
                outcome=Outcome.SKIPPED_NO_TARGET,
                contract_name=step.contract_name,
                write=step.write,
                comment=step.comment,
            )
            self.results.append(result)
            return result

        observed = self._observe(step)
        pending = plan_action(step, observed)

        if pending is None:
            display.step_satisfied(step.contract_name, step.read or step.write, observed.value)
            result = StepResult(
                outcome=Outcome.ALREADY_SATISFIED,
                contract_name=step.contract_name,
                write=step.write,
                comment=step.comment,
            )
        else:
            result = self._strategy.apply(step, pending)
            self._written.add(write_key(step))

        self.results.append(result)
        return result

    def __call__(self, **options: Any) -> StepResult:
        """Keyword form used by the sequencers: run_step(contract=..., target=..., ...)."""
        if "contract" in options:
            options["contract_name"] = options.pop("contract")
        return self.run_step(ConfigurationStep(**options))
