"""Print the directive parsed from a commit message as JSON."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import msgspec

from .parser import directive_to_dict, parse_directive, parse_directive_lines


def main(argv: list[str] | None = None) -> int:
    """Parse a commit message (or one message per line of a file).

    Parameters
    ----------
    argv : list[str] | None, optional
        Command-line arguments. ``None`` defaults to ``sys.argv``.

    Returns
    -------
    int
        0 when at least one directive was found, 1 otherwise.

    """
    parser = argparse.ArgumentParser(description=__doc__)
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("message", nargs="?", help="Commit message to parse")
    source.add_argument(
        "--lines-from",
        type=Path,
        default=None,
        help="File holding one commit subject per line; '-' reads stdin",
    )
    args = parser.parse_args(argv)

    if args.lines_from is None:
        directive = parse_directive(args.message)
        if directive is None:
            print("null")
            return 1
        print(msgspec.json.encode(directive_to_dict(directive)).decode())
        return 0

    if str(args.lines_from) == "-":
        lines = sys.stdin.read().splitlines()
    else:
        lines = args.lines_from.read_text(encoding="utf-8").splitlines()
    parsed = parse_directive_lines(lines)
    payload = [None if item is None else directive_to_dict(item) for item in parsed]
    print(msgspec.json.encode(payload).decode())
    return 0 if any(item is not None for item in parsed) else 1


if __name__ == "__main__":
    raise SystemExit(main())
