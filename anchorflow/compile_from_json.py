"""
compile_from_json.py — CLI for the AnchorFlow graph compiler
============================================================
Compiles a serialised module graph into an Anchor workspace.

Usage
-----
    anchorflow-compile <graph.json> [options]
    python -m anchorflow.compile_from_json <graph.json> [options]

Options
-------
    --out           <dir>   Output directory (default: ./anchor_out/)
    --program-name  <name>  Program / crate name (default: the graph's
                            "programName", then ANCHORFLOW_PROGRAM_NAME)
    --print                 Print lib.rs to stdout instead of writing files
    --analyze               Print the flow analysis as JSON and exit
    --strict                Treat dangling connection endpoints as errors

Examples
--------
    # Write the workspace tree under ./build/vault:
    anchorflow-compile graphs/vault.json --out build/vault --program-name vault

    # Inspect execution order, cycles and isolated modules:
    anchorflow-compile graphs/vault.json --analyze
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from anchorflow.compiler import generate
from anchorflow.compiler.deserialiser import json_to_graph
from anchorflow.compiler.schema import SchemaError, validate_file
from anchorflow.core.FlowAnalyzer import analyze_flow
from anchorflow.server.settings import GraphTooLargeError, configure_logging, get_settings

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="anchorflow-compile",
        description="Compile an AnchorFlow JSON graph to an Anchor workspace.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    p.add_argument(
        "graph_json",
        metavar="graph.json",
        help="Path to the graph JSON file to compile.",
    )
    p.add_argument(
        "--out",
        metavar="DIR",
        default="anchor_out",
        help="Output directory for the generated workspace (default: anchor_out/).",
    )
    p.add_argument(
        "--program-name",
        metavar="NAME",
        default=None,
        help="Program name; overrides the graph's programName.",
    )
    p.add_argument(
        "--print",
        dest="print_only",
        action="store_true",
        help="Print lib.rs to stdout instead of writing files.",
    )
    p.add_argument(
        "--analyze",
        action="store_true",
        help="Print the flow analysis as JSON instead of generating code.",
    )
    p.add_argument(
        "--strict",
        action="store_true",
        help="Treat dangling connection endpoints as errors rather than warnings.",
    )
    return p


def main(argv=None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    settings = get_settings()
    configure_logging(settings)

    json_path = Path(args.graph_json)
    if not json_path.exists():
        print(f"[error] File not found: {json_path}", file=sys.stderr)
        return 1

    # ── Validate JSON ────────────────────────────────────────────────────────
    try:
        data = validate_file(json_path, strict=args.strict)
    except json.JSONDecodeError as exc:
        print(f"[error] Invalid JSON: {exc}", file=sys.stderr)
        return 1
    except SchemaError as exc:
        print(f"[error] Schema validation failed: {exc}", file=sys.stderr)
        return 1

    # ── Deserialise JSON → Graph ─────────────────────────────────────────────
    graph = json_to_graph(data)
    try:
        settings.check_graph_size(graph)
    except GraphTooLargeError as exc:
        print(f"[error] {exc}", file=sys.stderr)
        return 1

    if args.analyze:
        analysis = analyze_flow(graph.nodes, graph.connections)
        print(json.dumps(analysis.to_dict(), indent=2))
        return 0

    program_name = args.program_name or data.get("programName") or settings.program_name
    # --print keeps stdout clean for piping
    info = (lambda msg: print(msg, file=sys.stderr)) if args.print_only else print
    info(f"[compile_from_json] graph   : {graph.name}")
    info(f"[compile_from_json] nodes   : {len(graph.nodes)}")
    info(f"[compile_from_json] edges   : {len(graph.connections)}")

    # ── Generate ─────────────────────────────────────────────────────────────
    artifact = generate(graph.nodes, graph.connections, program_name=program_name)
    info(f"[compile_from_json] program : {artifact.program_name}")

    # ── Output ───────────────────────────────────────────────────────────────
    if args.print_only:
        print(artifact.lib, end="")
        return 0

    out_dir = Path(args.out)
    root = out_dir.resolve()
    files = artifact.files()
    for rel_path in files:
        # Every generated path must land under --out
        if not (root / rel_path).resolve().is_relative_to(root):
            print(f"[error] Refusing to write outside {out_dir}: {rel_path}", file=sys.stderr)
            return 1

    for rel_path, text in files.items():
        target = out_dir / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
        logger.debug(f"Wrote {target}")

    print(f"[compile_from_json] wrote   : {len(artifact.files())} files under {out_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
