"""Command-line interface for softmax-m5."""

from __future__ import annotations

import argparse
import sys

from softmax_m5._csv import write_csv
from softmax_m5._errors import M5FormatError
from softmax_m5._reader import read_m5


def convert_command(args: argparse.Namespace) -> int:
    """Decode the input export and write it as CSV.

    Parameters
    ----------
    args : argparse.Namespace
        Parsed command-line arguments

    Returns
    -------
    int
        Exit code (0 for success, 1 for a malformed export, 2 for other errors)
    """
    try:
        # parse everything before touching the output, so a bad file never
        # leaves a half-written CSV behind
        document = read_m5(args.input, encoding=args.encoding, strict=args.strict)
    except M5FormatError as e:
        print(f"✗ Could not decode: {args.input}\n", file=sys.stderr)
        print(str(e), file=sys.stderr)
        return 1
    except Exception as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        return 2

    try:
        if args.output is None:
            write_csv(document, sys.stdout)
            sys.stdout.flush()
        else:
            with open(args.output, "w", newline="", encoding="utf-8") as f:
                write_csv(document, f)
    except Exception as e:
        print(f"✗ Error writing output: {e}", file=sys.stderr)
        return 2
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI.

    Parameters
    ----------
    argv : list[str] | None
        Command-line arguments (defaults to sys.argv[1:])

    Returns
    -------
    int
        Exit code
    """
    parser = argparse.ArgumentParser(
        prog="softmax-m5",
        description="Convert a SoftMax M5(e) tab-delimited export to flat CSV by well",
    )
    parser.add_argument(
        "input",
        nargs="?",
        help="Path or URI of the M5 tab-delimited export",
    )
    parser.add_argument(
        "output",
        nargs="?",
        help="Path of the CSV to write (standard output if omitted)",
    )
    parser.add_argument(
        "--encoding",
        default=None,
        help="Input text encoding (default: $SOFTMAX_M5_ENCODING or mac_roman)",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="Reject non-blank spacer columns and other tolerated irregularities",
    )

    args = parser.parse_args(argv)

    if args.input is None:
        print("Missing input M5 tab-delimited file", file=sys.stderr)
        print("Pass --help for more info", file=sys.stderr)
        return 0

    return convert_command(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
