# solidity.py
# Renders recorded configuration steps as a Solidity migration contract.
#
# Used when a run is in solidity-generation mode: instead of sending each
# correcting transaction, the reconciler records it and the whole batch is
# executed later by a single owner-approved migration contract.
#
# stdlib only. Zero external dependencies.

from typing import Any

from zasset_deploy.models import GeneratedInstruction

PRAGMA = "pragma solidity ^0.5.16;"
INDENT = "    "


# ---------------------------------------------------------------------------
# Literals
# ---------------------------------------------------------------------------


def format_arg(value: Any) -> str:
    """Render a Python value as a Solidity literal."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(format_arg(v) for v in value) + "]"
    if isinstance(value, str) and not value.startswith("0x"):
        return f'"{value}"'
    return str(value)


def contract_type(contract_name: str) -> str:
    """'ProxyzUSD' stays a valid identifier; anything else is sanitised."""
    return "".join(ch if ch.isalnum() or ch == "_" else "_" for ch in contract_name)


def parameter_type(value: Any) -> str:
    """Solidity parameter type for an external function taking `value`."""
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "uint"
    if isinstance(value, (bytes, bytearray)):
        return "bytes32" if len(value) <= 32 else "bytes calldata"
    if isinstance(value, (list, tuple)):
        element = parameter_type(value[0]).split()[0] if value else "uint"
        return f"{element}[] calldata"
    if isinstance(value, str) and value.startswith("0x"):
        return "address" if len(value) == 42 else "bytes calldata"
    return "string calldata"


def function_declaration(write: str, args: list[Any]) -> str:
    params = ", ".join(parameter_type(a) for a in args)
    return f"function {write}({params}) external"


def call_expression(contract_name: str, address: str, write: str, args: list[Any]) -> str:
    rendered = ", ".join(format_arg(a) for a in args)
    return f"{contract_type(contract_name)}({address}).{write}({rendered})"


# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------


def _interfaces(instructions: list[GeneratedInstruction]) -> dict[str, list[str]]:
    """Minimal interface per contract type, holding only the functions called."""
    declared: dict[str, list[str]] = {}

    def declare(interface: str, declaration: str) -> None:
        functions = declared.setdefault(interface, [])
        if declaration not in functions:
            functions.append(declaration)

    for instruction in instructions:
        custom = instruction.custom_solidity
        if custom is not None:
            for interface, declarations in custom.interfaces.items():
                for declaration in declarations:
                    declare(interface, declaration)
        elif instruction.write:
            declare(
                contract_type(instruction.contract_name),
                function_declaration(instruction.write, instruction.args),
            )
    return declared


def render_migration(name: str, instructions: list[GeneratedInstruction]) -> str:
    """
    Build the migration contract source.

    Every instruction becomes one line of `migrate()`, in recording order.
    Instructions carrying custom solidity are emitted as internal functions
    and `migrate()` calls them at the same position instead.
    Each contract type called is declared as an interface above the
    migration so the file compiles on its own.
    """
    body: list[str] = []
    helpers: list[str] = []

    for instruction in instructions:
        if instruction.comment:
            body.append(f"{INDENT * 2}// {instruction.comment}")

        custom = instruction.custom_solidity
        if custom is None:
            body.append(f"{INDENT * 2}{instruction.call};")
            continue

        body.append(f"{INDENT * 2}{custom.name}();")
        helpers.append("")
        helpers.append(f"{INDENT}function {custom.name}() internal {{")
        for line in custom.instructions:
            # explorer links arrive as comments already
            terminator = "" if line.lstrip().startswith("//") else ";"
            helpers.append(f"{INDENT * 2}{line}{terminator}")
        helpers.append(f"{INDENT}}}")

    interfaces: list[str] = []
    for interface, declarations in _interfaces(instructions).items():
        interfaces.append(f"interface {interface} {{")
        interfaces.extend(f"{INDENT}{declaration};" for declaration in declarations)
        interfaces.append("}")
        interfaces.append("")

    lines = [
        PRAGMA,
        "",
        *interfaces,
        f"contract Migration_{contract_type(name)} {{",
        f"{INDENT}function migrate() external {{",
        *body,
        f"{INDENT}}}",
        *helpers,
        "}",
        "",
    ]
    return "\n".join(lines)
