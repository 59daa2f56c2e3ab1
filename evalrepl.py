# evalrepl.py
import argparse
import logging
import readline  # noqa: F401  (line editing for input())
import sys

from harness.core import init_harness
from harness.config import load_config
from harness.model.schema import DEFAULT_CONFIG_PATH


def create_parser():
    parser = argparse.ArgumentParser(
        prog="evalrepl",
        description="Evaluation harness: edit input, run it through an engine, read the output.",
    )
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="config JSON (optional file)")
    parser.add_argument("--engine", help="json | remote | package.module:attr")
    parser.add_argument("--on-error", choices=("marker", "keep"), help="failure display policy")
    parser.add_argument("--ordering", choices=("submitted", "completed"), help="overlapping run policy")
    parser.add_argument("--file", help="evaluate this file once and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def run_file(core, path):
    out = core.execute("in.load " + path)
    if out.startswith("Error:"):
        print(out)
        return 1
    outcome = core.evaluate()
    print(outcome.display())
    return 0 if outcome.ok else 1


def repl(core):
    print("Evaluation harness (input -> engine -> output)")
    print("Commands: help (lists aliases).")
    print("Exit: quit/exit\n")

    while True:
        try:
            line = input("> ")
        except (EOFError, KeyboardInterrupt):
            print()
            break
        if line.strip() in ("quit", "exit"):
            break
        res = core.execute(line)
        if res is not None:
            print(res)
    return 0


def main(argv=None):
    args = create_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config).with_overrides(
            engine=args.engine,
            on_error=args.on_error,
            ordering=args.ordering,
        )
        core = init_harness(config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    try:
        if args.file:
            return run_file(core, args.file)
        return repl(core)
    finally:
        core.close()


if __name__ == "__main__":
    raise SystemExit(main())
