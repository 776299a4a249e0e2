"""
AnchorFlow Compiler — Instruction Templates
===========================================
An InstructionTemplate provides two emission hooks used while rendering one
behavioral module:

  emit_logic(instr, writer)
      Emits the category-specific body of the entry function at the writer's
      current indent.

  emit_account_update(account, writer)
      Emits the canned "advance state" statement for one bound account.
      Called once per bound account, after the logic block.

Templates are selected by the node's category (its kind, lower-cased). The
set is closed: token, nft, defi, validator, governance, start. Any other
category falls back to DefaultTemplate.

Adding a new category
---------------------
1. Subclass InstructionTemplate (usually only `comment` / `message` change).
2. Register: TEMPLATE_REGISTRY["my_category"] = MyTemplate()
"""

from __future__ import annotations

from typing import List, TYPE_CHECKING

if TYPE_CHECKING:
    from .ir import BoundAccount, ScheduledInstruction


# ── Code writer ───────────────────────────────────────────────────────────────

class CodeWriter:
    """Indented line accumulator for brace languages."""

    def __init__(self, indent: int = 0, comment_prefix: str = "//", indent_unit: str = "    "):
        self._lines: List[str] = []
        self._indent = indent
        self._comment_prefix = comment_prefix
        self._indent_unit = indent_unit

    def writeln(self, line: str = "") -> "CodeWriter":
        if line:
            self._lines.append(self._indent_unit * self._indent + line)
        else:
            self._lines.append("")
        return self

    def blank(self) -> "CodeWriter":
        return self.writeln()

    def comment(self, text: str) -> "CodeWriter":
        return self.writeln(f"{self._comment_prefix} {text}")

    def push(self) -> "CodeWriter":
        self._indent += 1
        return self

    def pop(self) -> "CodeWriter":
        self._indent = max(0, self._indent - 1)
        return self

    def extend(self, lines: List[str]) -> "CodeWriter":
        for line in lines:
            self.writeln(line)
        return self

    def lines(self) -> List[str]:
        return self._lines

    def result(self) -> str:
        return "\n".join(self._lines) + "\n"


# ── Literal escaping ──────────────────────────────────────────────────────────

def rust_fmt(text: str) -> str:
    """Escape free text for use inside a Rust `msg!("...")` format string."""
    return (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("{", "{{")
        .replace("}", "}}")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )


def ts_str(text: str) -> str:
    """Escape free text for use inside a double-quoted TypeScript string."""
    return (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )


_AUTHORITY_CHECK = "require!(ctx.accounts.authority.key() != Pubkey::default(), ErrorCode::Unauthorized);"


# ── Base template ─────────────────────────────────────────────────────────────

class InstructionTemplate:
    """
    Base class. The default logic block is an authority check followed by a
    log line; most categories only change the comment and the message.
    """

    comment = "Custom instruction logic"
    message = "Processing custom operation"

    def emit_logic(self, instr: "ScheduledInstruction", writer: CodeWriter) -> None:
        writer.comment(self.comment)
        writer.writeln(_AUTHORITY_CHECK)
        writer.writeln(f'msg!("{self.message}");')

    def emit_account_update(self, account: "BoundAccount", writer: CodeWriter) -> None:
        writer.writeln(f"ctx.accounts.{account.field_name}.data += 1;")
        writer.writeln(f'msg!("Updated {rust_fmt(account.struct_name)} data");')


class TokenTemplate(InstructionTemplate):
    comment = "Token operation logic"
    message = "Processing token operation"


class NftTemplate(InstructionTemplate):
    comment = "NFT operation logic"
    message = "Processing NFT operation"


class DefiTemplate(InstructionTemplate):
    comment = "DeFi operation logic"
    message = "Processing DeFi operation"


class GovernanceTemplate(InstructionTemplate):
    comment = "Governance operation logic"
    message = "Processing governance operation"


class ValidatorTemplate(InstructionTemplate):
    """Re-checks the authority of every bound account before logging."""

    comment = "Validation logic"
    message = "Processing validation"

    def emit_logic(self, instr: "ScheduledInstruction", writer: CodeWriter) -> None:
        super().emit_logic(instr, writer)
        for account in instr.bound_accounts:
            writer.writeln(
                f"require!(ctx.accounts.{account.field_name}.authority == "
                f"ctx.accounts.authority.key(), ErrorCode::Unauthorized);"
            )


class StartTemplate(InstructionTemplate):
    comment = "Program entry point"
    message = "Program start"

    def emit_logic(self, instr: "ScheduledInstruction", writer: CodeWriter) -> None:
        writer.comment(self.comment)
        writer.writeln(f'msg!("{self.message}");')


class DefaultTemplate(InstructionTemplate):
    pass


# ── Registry ──────────────────────────────────────────────────────────────────

TEMPLATE_REGISTRY: dict[str, InstructionTemplate] = {
    "token": TokenTemplate(),
    "nft": NftTemplate(),
    "defi": DefiTemplate(),
    "governance": GovernanceTemplate(),
    "validator": ValidatorTemplate(),
    "start": StartTemplate(),
}

_DEFAULT_TEMPLATE = DefaultTemplate()


def get_template(category: str) -> InstructionTemplate:
    return TEMPLATE_REGISTRY.get(category.lower(), _DEFAULT_TEMPLATE)
