#!/usr/bin/env python3
"""
dagc — DAG expression compiler CLI

Usage:
    python dagc.py <input.txt> [-o first.ll] [--dialect default|llvm]
                               [--function-name foo] [--tokens] [--parse-tree]
                               [-v | -vv | -q] [--log-file compile.log]

Each non-blank line of the input is compiled on its own. For every line
the AST (and, on success, the DAG) is dumped level by level to stdout and
the artifact file is overwritten with that line's IR, or with a
placeholder comment when the line has errors.

Examples:
    python dagc.py exprs.txt
    python dagc.py exprs.txt -o out.ll --dialect llvm
    python dagc.py exprs.txt --tokens
    python dagc.py exprs.txt -vv --log-file compile.log
"""

import argparse
import logging
import sys
import os
from pathlib import Path

# Level-order dumps contain 'ε'
if sys.stdout.encoding and sys.stdout.encoding.lower() not in ('utf-8', 'utf8'):
    try:
        sys.stdout.reconfigure(encoding='utf-8', errors='replace')
    except AttributeError:
        pass

# Allow running from project root or as module
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from dag_compiler import __version__, compile_line, write_artifact
from dag_compiler.codegen import DIALECTS
from dag_compiler.lexer import Lexer

log = logging.getLogger("dagc")

DEFAULT_ARTIFACT = "first.ll"


def setup_logging(verbose: int = 0, quiet: bool = False, log_file=None):
    """Console handler on stderr, optional DEBUG file handler."""
    if quiet:
        level = logging.ERROR
    elif verbose == 0:
        level = logging.WARNING
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
    handlers = [console]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        handlers.append(file_handler)

    logging.basicConfig(
        level=logging.DEBUG if log_file else level,
        handlers=handlers,
        force=True,
    )


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dagc",
        description="Compile one-line '+'/'*' expressions to IR via CSE on a DAG",
        epilog="Dialects: " + ", ".join(DIALECTS.keys()),
    )
    parser.add_argument("input", help="Input file, one expression per line")
    parser.add_argument("-o", "--output", default=DEFAULT_ARTIFACT,
                        help=f"Artifact file rewritten after every line (default: {DEFAULT_ARTIFACT})")
    parser.add_argument("--dialect", default="default",
                        choices=list(DIALECTS.keys()),
                        help="IR text dialect (default: default)")
    parser.add_argument("--function-name", default="foo",
                        help="Name of the emitted function (default: foo)")
    parser.add_argument("--tokens", action="store_true",
                        help="Dump each line's token stream instead of compiling (debug)")
    parser.add_argument("--parse-tree", action="store_true",
                        help="Also dump the concrete parse tree for each line (debug)")
    parser.add_argument("--verbose", "-v", action="count", default=0,
                        help="Increase log verbosity (-v, -vv)")
    parser.add_argument("--quiet", "-q", action="store_true",
                        help="Only log errors")
    parser.add_argument("--log-file", help="Also write a DEBUG log to this file")
    parser.add_argument("--version", action="version",
                        version=f"dagc {__version__}")
    return parser


def report(result, show_parse_tree: bool = False, out=None):
    """Print the per-line console report."""
    out = out or sys.stdout
    if show_parse_tree:
        print("PARSE TREE", file=out)
        print(result.parse.tree.dump(), file=out)
    print("AST", file=out)
    print(result.ast.dump(), file=out)
    if result.ok:
        print("DAG", file=out)
        print(result.dag.dump(result.root), file=out)
    else:
        print("\nErrors encountered:", file=out)
        for err in result.errors:
            print(f"- {err.message}", file=out)
    print(file=out)


def run(args) -> int:
    try:
        with open(args.input, "r", encoding="utf-8") as f:
            lines = f.read().splitlines()
    except FileNotFoundError:
        print(f"Error: File not found: {args.input}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error reading {args.input}: {e}", file=sys.stderr)
        return 1

    compiled = failed = 0
    for lineno, line in enumerate(lines, 1):
        if not line.strip():
            continue

        if args.tokens:
            for tok in Lexer(line).tokenize():
                print(tok)
            print()
            continue

        log.info("line %d: %s", lineno, line)
        compiled += 1
        try:
            result = compile_line(line, dialect=args.dialect,
                                  function_name=args.function_name)
            report(result, show_parse_tree=args.parse_tree)
        except Exception as e:
            log.error("line %d: internal compiler error: %s", lineno, e,
                      exc_info=args.verbose > 0)
            print(f"Errors encountered:\n- Internal compiler error: {e}\n")
            write_artifact(None, args.output)
            failed += 1
            continue

        write_artifact(result, args.output)
        if not result.ok:
            failed += 1

    log.info("compiled %d line(s), %d with errors; artifact: %s",
             compiled, failed, args.output)
    return 0


def main(argv=None) -> int:
    args = build_arg_parser().parse_args(argv)
    setup_logging(args.verbose, args.quiet, args.log_file)

    try:
        return run(args)
    except Exception as e:
        log.error("Internal compiler error: %s", e, exc_info=args.verbose > 0)
        return 2


if __name__ == "__main__":
    sys.exit(main())
