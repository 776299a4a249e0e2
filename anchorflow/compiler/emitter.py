"""
AnchorFlow Compiler — Anchor Source Emitter
===========================================
Converts a ProgramSchedule into the text blobs of an Anchor workspace.

Output structure
----------------
    lib.rs              aggregate entry module
                          pub mod <module>;        one per behavioral node
                          declare_id!(<placeholder>)
                          #[program] re-exports + validate_program_flow hook
                          #[account] record        one per account-like node
                          ErrorCode enum
    <module>.rs         one per behavioral node
                          entry fn → category logic → account updates
                          #[derive(Accounts)] struct with bound accounts
    tests/<program>.ts  one mocha case per behavioral node
                          + integration case when the graph has connections
    Cargo.toml          program crate manifest
    Anchor.toml         workspace / localnet manifest

Every blob is a pure function of the schedule: no dates, no randomness, so
re-emitting an unchanged graph is byte-identical.
"""

from __future__ import annotations

import textwrap
from typing import List, Tuple

from .ir import GeneratedArtifact, InstructionModule, ProgramSchedule, ScheduledAccount, ScheduledInstruction
from .templates import CodeWriter, get_template, rust_fmt, ts_str

PROGRAM_ID = "Fg6PaFpoGXkYsidMpWTK6W2BeZ7FEfcYkg476zPFsLnS"
ANCHOR_LANG_VERSION = "0.29.0"

# Account record layout after the 8-byte discriminator: (field, rust type, size)
ACCOUNT_LAYOUT: List[Tuple[str, str, int]] = [
    ("authority", "Pubkey", 32),
    ("data", "u64", 8),
    ("bump", "u8", 1),
    ("connected_instructions", "u8", 1),
]
DISCRIMINATOR_SIZE = 8


def pascal_case(snake: str) -> str:
    """'my_program' → 'MyProgram' (the type name anchor generates for the IDL)."""
    return "".join(part[:1].upper() + part[1:] for part in snake.split("_") if part)


def camel_case(snake: str) -> str:
    """'token_transfer' → 'tokenTransfer' (the method name on program.methods)."""
    pascal = pascal_case(snake)
    if pascal[:1].isdigit():
        return f"_{pascal}"
    return pascal[:1].lower() + pascal[1:]


# ── Instruction modules ───────────────────────────────────────────────────────

def _emit_instruction(instr: ScheduledInstruction) -> str:
    tmpl = get_template(instr.category)
    w = CodeWriter()

    w.writeln("use anchor_lang::prelude::*;")
    imports = ["ErrorCode"] + [a.struct_name for a in instr.bound_accounts]
    if len(imports) == 1:
        w.writeln("use crate::ErrorCode;")
    else:
        w.writeln(f"use crate::{{{', '.join(imports)}}};")
    w.blank()

    w.writeln(f"pub fn {instr.module_name}(ctx: Context<{instr.struct_name}>) -> Result<()> {{")
    w.push()
    w.writeln(f'msg!("Executing {rust_fmt(instr.node_name)}");')
    w.blank()
    w.comment("Validate incoming connections")
    if instr.upstream_instructions:
        upstream = rust_fmt(", ".join(instr.upstream_instructions))
        w.writeln(f'msg!("Connected to instructions: {upstream}");')
    else:
        w.writeln('msg!("Entry point instruction");')
    w.blank()

    tmpl.emit_logic(instr, w)

    if instr.bound_accounts:
        w.blank()
        w.comment("Update connected accounts")
        for account in instr.bound_accounts:
            tmpl.emit_account_update(account, w)

    w.blank()
    w.writeln("Ok(())")
    w.pop()
    w.writeln("}")
    w.blank()

    w.writeln("#[derive(Accounts)]")
    w.writeln(f"pub struct {instr.struct_name}<'info> {{")
    w.push()
    for account in instr.bound_accounts:
        w.writeln(f"#[account(mut, constraint = {account.field_name}.authority == authority.key())]")
        w.writeln(f"pub {account.field_name}: Account<'info, {account.struct_name}>,")
    w.writeln("#[account(mut)]")
    w.writeln("pub authority: Signer<'info>,")
    w.writeln("pub system_program: Program<'info, System>,")
    w.pop()
    w.writeln("}")
    return w.result()


# ── Account declarations ──────────────────────────────────────────────────────

def account_len_expr() -> str:
    return " + ".join(str(size) for size in [DISCRIMINATOR_SIZE] + [s for _, _, s in ACCOUNT_LAYOUT])


def _emit_account(account: ScheduledAccount, w: CodeWriter) -> None:
    count = account.connection_count
    w.writeln("#[account]")
    w.writeln(f"pub struct {account.struct_name} {{")
    w.push()
    for field_name, rust_type, _ in ACCOUNT_LAYOUT:
        line = f"pub {field_name}: {rust_type},"
        if field_name == "connected_instructions":
            line += f" // {count} connection{'s' if count != 1 else ''}"
        w.writeln(line)
    w.pop()
    w.writeln("}")
    w.blank()
    w.writeln(f"impl {account.struct_name} {{")
    w.push()
    w.writeln(f"pub const LEN: usize = {account_len_expr()};")
    w.pop()
    w.writeln("}")


# ── lib.rs ────────────────────────────────────────────────────────────────────

_FLOW_VALIDATION = textwrap.dedent("""\
    pub fn validate_program_flow(instruction_sequence: &[String]) -> Result<()> {
        // Validate execution order based on connections
        for (i, instruction) in instruction_sequence.iter().enumerate() {
            msg!("Validating instruction {}: {}", i, instruction);
        }
        Ok(())
    }""")

_ERROR_CODES = textwrap.dedent("""\
    #[error_code]
    pub enum ErrorCode {
        #[msg("Invalid program flow")]
        InvalidProgramFlow,
        #[msg("Missing required connection")]
        MissingConnection,
        #[msg("Unauthorized access")]
        Unauthorized,
    }""")


def _emit_lib(schedule: ProgramSchedule) -> str:
    w = CodeWriter()
    w.writeln("use anchor_lang::prelude::*;")
    w.blank()
    w.writeln(f'declare_id!("{PROGRAM_ID}");')
    w.blank()

    if schedule.instructions:
        for instr in schedule.instructions:
            w.writeln(f"pub mod {instr.module_name};")
        w.blank()

    w.writeln("#[program]")
    w.writeln(f"pub mod {schedule.program_name} {{")
    w.push()
    w.writeln("use super::*;")
    for instr in schedule.instructions:
        w.writeln(f"pub use {instr.module_name}::*;")
    w.blank()
    w.extend(_FLOW_VALIDATION.splitlines())
    w.pop()
    w.writeln("}")
    w.blank()

    for account in schedule.accounts:
        _emit_account(account, w)
        w.blank()

    w.writeln("#[derive(Accounts)]")
    w.writeln("pub struct Initialize {}")
    w.blank()
    w.extend(_ERROR_CODES.splitlines())
    return w.result()


# ── Test suite ────────────────────────────────────────────────────────────────

def _emit_test_case(instr: ScheduledInstruction, w: CodeWriter) -> None:
    name = ts_str(instr.node_name)
    method = camel_case(instr.module_name)
    w.writeln(f'it("{name} ({instr.connection_count} connections)", async () => {{')
    w.push()
    w.comment(f"Test {name} instruction with connection validation")
    w.writeln("try {")
    w.push()
    w.writeln(f"const tx = await program.methods.{method}()")
    w.push()
    w.writeln(".accounts({")
    w.push()
    w.writeln("authority: provider.wallet.publicKey,")
    w.writeln("systemProgram: anchor.web3.SystemProgram.programId,")
    w.pop()
    w.writeln("})")
    w.writeln(".rpc();")
    w.pop()
    w.blank()
    w.writeln(f'console.log("{name} transaction signature:", tx);')
    w.blank()
    w.comment("Validate program flow")
    w.writeln(f'const flowValidation = await program.methods.validateProgramFlow(["{name}"])')
    w.push()
    w.writeln(".accounts({")
    w.push()
    w.writeln("authority: provider.wallet.publicKey,")
    w.pop()
    w.writeln("})")
    w.writeln(".rpc();")
    w.pop()
    w.blank()
    w.writeln('console.log("Flow validation signature:", flowValidation);')
    w.pop()
    w.writeln("} catch (error) {")
    w.push()
    w.writeln(f'console.error("{name} test failed:", error);')
    w.writeln("throw error;")
    w.pop()
    w.writeln("}")
    w.pop()
    w.writeln("});")


def _emit_integration_test(schedule: ProgramSchedule, w: CodeWriter) -> None:
    order = ", ".join(f'"{ts_str(name)}"' for name in schedule.flow.execution_order)
    w.writeln('describe("Integration Tests", () => {')
    w.push()
    w.writeln('it("should execute connected instructions in sequence", async () => {')
    w.push()
    w.writeln('console.log("Testing instruction connections");')
    w.blank()
    w.comment("Execute instructions in dependency order")
    w.writeln(f"const executionOrder = [{order}];")
    w.blank()
    w.writeln("for (const instructionName of executionOrder) {")
    w.push()
    w.writeln("console.log(`Executing: ${instructionName}`);")
    w.pop()
    w.writeln("}")
    w.blank()
    w.writeln('console.log("All connected instructions executed successfully");')
    w.pop()
    w.writeln("});")
    w.pop()
    w.writeln("});")


def _emit_tests(schedule: ProgramSchedule) -> str:
    program = schedule.program_name
    type_name = pascal_case(program)
    w = CodeWriter(indent_unit="  ")

    w.writeln('import * as anchor from "@coral-xyz/anchor";')
    w.writeln('import { Program } from "@coral-xyz/anchor";')
    w.writeln(f'import {{ {type_name} }} from "../target/types/{program}";')
    w.writeln('import { expect } from "chai";')
    w.blank()
    w.writeln(f'describe("{program}", () => {{')
    w.push()
    w.writeln("const provider = anchor.AnchorProvider.env();")
    w.writeln("anchor.setProvider(provider);")
    w.writeln(f"const program = anchor.workspace.{type_name} as Program<{type_name}>;")
    w.blank()
    w.writeln("before(async () => {")
    w.push()
    w.writeln(f'console.log("Starting {program} tests");')
    w.writeln('console.log("Program ID:", program.programId.toString());')
    w.pop()
    w.writeln("});")

    for instr in schedule.instructions:
        w.blank()
        _emit_test_case(instr, w)

    if schedule.has_connections:
        w.blank()
        _emit_integration_test(schedule, w)

    w.pop()
    w.writeln("});")
    return w.result()


# ── Manifests ─────────────────────────────────────────────────────────────────

_CARGO_TOML = textwrap.dedent("""\
    [package]
    name = "{program}"
    version = "0.1.0"
    description = "Created with AnchorFlow"
    edition = "2021"

    [lib]
    crate-type = ["cdylib", "lib"]
    name = "{program}"

    [features]
    no-entrypoint = []
    no-idl = []
    no-log-ix-name = []
    cpi = ["no-entrypoint"]
    default = []

    [dependencies]
    anchor-lang = "{anchor_version}"
    """)

_ANCHOR_TOML = textwrap.dedent("""\
    [features]
    seeds = false
    skip-lint = false

    [programs.localnet]
    {program} = "{program_id}"

    [registry]
    url = "https://api.apr.dev"

    [provider]
    cluster = "Localnet"
    wallet = "~/.config/solana/id.json"

    [scripts]
    test = "yarn run ts-mocha -p ./tsconfig.json -t 1000000 tests/**/*.ts"
    """)


def _emit_cargo_toml(program: str) -> str:
    return _CARGO_TOML.format(program=program, anchor_version=ANCHOR_LANG_VERSION)


def _emit_anchor_toml(program: str) -> str:
    return _ANCHOR_TOML.format(program=program, program_id=PROGRAM_ID)


# ── Public API ────────────────────────────────────────────────────────────────

def emit(schedule: ProgramSchedule) -> GeneratedArtifact:
    """
    Render every text blob of the workspace from a ProgramSchedule.

    Args:
        schedule: The schedule produced by Scheduler.build().

    Returns:
        The GeneratedArtifact bundle (blobs + program flow summary).
    """
    return GeneratedArtifact(
        program_name=schedule.program_name,
        lib=_emit_lib(schedule),
        instructions=[
            InstructionModule(node_id=i.node_id, module_name=i.module_name, source=_emit_instruction(i))
            for i in schedule.instructions
        ],
        tests=_emit_tests(schedule),
        cargo_toml=_emit_cargo_toml(schedule.program_name),
        anchor_toml=_emit_anchor_toml(schedule.program_name),
        program_flow=schedule.flow,
    )
