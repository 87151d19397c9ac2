from __future__ import annotations

import argparse
import logging
import sys

from .api import flatten_file
from .diagnostics import ScriptDiagnostic
from .errors import IncludeError
from .python_host import PythonScriptHost


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("file", help="Root script file")
    p.add_argument(
        "-I",
        "--include-path",
        action="append",
        default=[],
        help="Additional include root (repeatable)",
    )
    p.add_argument("--encoding", default="utf-8", help="Source encoding (default: utf-8)")
    p.add_argument("--no-stdlib", action="store_true", help="Do not search the bundled script stdlib")


def _flatten(args: argparse.Namespace) -> int:
    res = flatten_file(
        args.file,
        encoding=args.encoding,
        include_path=args.include_path,
        stdlib=not args.no_stdlib,
    )
    if args.tree:
        if res.origins is None:
            raise RuntimeError(f"no origin tree for {args.file}")
        for depth, span in res.origins.spans():
            print(f"{'  ' * depth}{span.format()}")
    elif args.map:
        for i, loc in res.mapping():
            print(f"{i + 1}\t{loc.source}:{loc.line + 1}")
    else:
        sys.stdout.write(res.text)
    return 0


def _run(args: argparse.Namespace) -> int:
    host = PythonScriptHost()
    try:
        host.load(
            args.file,
            encoding=args.encoding,
            include_path=args.include_path,
            stdlib=not args.no_stdlib,
        )
        if args.call:
            host.call(args.call)
    except ScriptDiagnostic as e:
        print(str(e), file=sys.stderr)
        return 1
    finally:
        for line in host.output:
            print(line)
    return 0


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(prog="scriptmap", description="Flatten #include-ing dialog scripts")
    ap.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr")
    sub = ap.add_subparsers(dest="command", required=True)

    fl = sub.add_parser("flatten", help="Print the flattened script")
    _add_common(fl)
    mode = fl.add_mutually_exclusive_group()
    mode.add_argument("--map", action="store_true", help="Print flattened line -> source:line instead")
    mode.add_argument("--tree", action="store_true", help="Print the origin span tree instead")
    fl.set_defaults(func=_flatten)

    run = sub.add_parser("run", help="Run the script with the Python host")
    _add_common(run)
    run.add_argument("--call", metavar="NAME", help="Call this script function after loading")
    run.set_defaults(func=_run)

    args = ap.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    try:
        return args.func(args)
    except IncludeError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
