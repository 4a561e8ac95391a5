import io
import logging
import sys
from argparse import ArgumentParser
from contextlib import nullcontext

from .engine import format_stream
from .indent import DEFAULT, Custom
from .verify import verify


log = logging.getLogger("nufmt:cli")


def decode_unit(unit: str) -> str:
    r"""Interpret backslash escapes, so that `-i '\t'` means a tab."""
    return unit.encode("latin-1", "backslashreplace").decode("unicode_escape")


def main(argv=None):
    parser = ArgumentParser(
        description="Re-indent nu source around brackets, braces, colons and commas."
    )
    parser.add_argument(
        "-o", "--output", default="-", help="Output file; defaults to stdout"
    )
    parser.add_argument(
        "-i",
        "--indent",
        default=None,
        help="Indentation unit, backslash escapes allowed; defaults to two spaces",
    )
    parser.add_argument(
        "-t",
        "--tabs",
        action="store_const",
        const=True,
        default=False,
        help="Indent with one tab per level",
    )
    parser.add_argument(
        "-c",
        "--check",
        action="store_const",
        const=True,
        default=False,
        help="Don't write anything; fail if the input isn't formatted already",
    )
    parser.add_argument(
        "--verify",
        action="store_const",
        const=True,
        default=False,
        help="Refuse to write output if formatting changed more than whitespace",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_const",
        const=True,
        default=False,
        help="Verbose output",
    )
    parser.add_argument(
        "filename",
        nargs="?",
        default="-",
        help="Input file; use '-' to read from stdin.",
    )
    parser.add_argument(
        "--version",
        action="store_const",
        const=True,
        default=False,
        help="Display version and exit",
    )
    args = parser.parse_args(argv)

    if args.version:
        from . import __version__
        print(f"nufmt v{__version__}.")
        sys.exit(0)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr)

    if args.indent is not None and args.tabs:
        parser.error("--indent and --tabs are mutually exclusive")
    if args.tabs:
        indentation = Custom("\t")
    elif args.indent is not None:
        indentation = Custom(decode_unit(args.indent))
    else:
        indentation = DEFAULT
    if args.verify and not indentation.is_blank():
        parser.error("--verify needs a whitespace indentation unit")
    log.debug("indentation: %r", indentation)

    try:
        with open_stream(args.filename, "rb") as input:
            if args.check or args.verify:
                sys.exit(run_buffered(input, args, indentation))
            with open_stream(args.output, "wb") as output:
                format_stream(input, output, indentation)
    except OSError as e:
        sys.stderr.write(f"nufmt: {e}\n")
        sys.exit(1)


def open_stream(name: str, mode: str):
    """Open a file; `-` is stdin or stdout, which are left open afterwards."""
    if name == "-":
        return nullcontext(sys.stdin.buffer if "r" in mode else sys.stdout.buffer)
    return open(name, mode)


def run_buffered(input, args, indentation) -> int:
    """Format the whole input in memory; return the exit code."""
    source = input.read()
    sink = io.BytesIO()
    format_stream(io.BytesIO(source), sink, indentation)
    result = sink.getvalue()

    if args.check:
        if result != source:
            sys.stderr.write(f"would reformat {args.filename}\n")
            return 1
        return 0

    try:
        verify(source.decode("utf-8", "surrogateescape"),
               result.decode("utf-8", "surrogateescape"))
    except ValueError as e:
        sys.stderr.write(f"nufmt: {args.filename}: {e}\n")
        return 2
    with open_stream(args.output, "wb") as output:
        output.write(result)
        output.flush()
    return 0
