"""
CLI for the demangler.
"""

import argparse
import logging
import sys

from classic_demangler.demangler import demangle, parse
from classic_demangler.options import DemangleOptions, Style

parser = argparse.ArgumentParser(
    "classic-demangle", description="Demangler for pre-ABI (GNU v2, cfront, HP, EDG) C++ symbols."
)
parser.add_argument(
    "symbol", help="Symbols to demangle. Read one per line from stdin if omitted.", nargs="*"
)
parser.add_argument(
    "--no-params", help="Do not print function parameter types", action="store_true"
)
parser.add_argument(
    "--no-ansi", help="Do not print const/volatile qualifiers", action="store_true"
)
parser.add_argument("--java", help="Print names in Java syntax", action="store_true")
parser.add_argument(
    "--style",
    "-s",
    help="Mangling dialect of the symbols",
    choices=[style.value for style in Style],
    default=None,
)
parser.add_argument(
    "--error-on-failure", "-e", help="Throw an exception if demangling fails", action="store_true"
)
parser.add_argument("--verbose", "-v", help="Log why symbols fail to demangle", action="store_true")


def _symbols(args):
    if args.symbol:
        yield from args.symbol
        return
    for line in sys.stdin:
        line = line.strip()
        if line:
            yield line


def main(argv=None):
    args = parser.parse_args(argv)  # noqa
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    options = DemangleOptions(
        params=not args.no_params,
        ansi=not args.no_ansi,
        java=args.java,
        style=Style(args.style) if args.style else None,
    )

    for symbol in _symbols(args):
        if args.error_on_failure:
            print(parse(symbol, options))
        else:
            result = demangle(symbol, options)
            print(symbol if result is None else result)


if __name__ == "__main__":
    main()
