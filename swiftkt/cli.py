"""Command-line entry point: swiftkt [OPTIONS] [INPUT] [-o OUTPUT]."""

from __future__ import annotations

import sys

from .diagnostics import ParseFailure
from .parse import parse
from .serialize import to_dict, to_json, token_to_dict
from .tokens import tokenize
from .translator import translate_module

PHASES: list[str] = ["tokens", "parse"]

USAGE: str = """\
swiftkt [OPTIONS] [INPUT] [-o OUTPUT]

Translate Swift source to Kotlin. Reads INPUT or stdin, writes stdout.

Options:
  --stop-at PHASE     Stop after phase: tokens, parse
  --indent N          Spaces per indentation level (default 4)
  --strict            Exit 1 when any diagnostic is produced
  --quiet             Do not print diagnostics
  -o, --output FILE   Write output to FILE instead of stdout
  -h, --help          Show this help message
"""


class Options:
    """Parsed command-line options."""

    def __init__(self) -> None:
        self.stop_at: str | None = None
        self.indent: int = 4
        self.strict: bool = False
        self.quiet: bool = False
        self.input_file: str | None = None
        self.output_file: str | None = None


def should_skip_file(source: str) -> bool:
    """Check if file has a swiftkt: skip directive in first 5 lines."""
    for line in source.split("\n", 5)[:5]:
        if "swiftkt: skip" in line:
            return True
    return False


def read_source(input_file: str | None) -> tuple[str, int]:
    """Read source from file or stdin. Returns (source, exit_code) where exit_code 0 means OK."""
    if input_file is not None:
        try:
            with open(input_file, "rb") as f:
                raw = f.read()
        except OSError:
            print("error: cannot open '" + input_file + "'", file=sys.stderr)
            return ("", 1)
    else:
        raw = sys.stdin.buffer.read()
    try:
        return (raw.decode("utf-8"), 0)
    except ValueError:
        print("error: invalid utf-8 in input", file=sys.stderr)
        return ("", 1)


def write_output(output: str, output_file: str | None) -> int:
    """Write output to file or stdout. Returns 0 on success, 1 on error."""
    if output_file is not None:
        try:
            with open(output_file, "w", encoding="utf-8") as f:
                f.write(output)
        except OSError:
            print("error: cannot write '" + output_file + "'", file=sys.stderr)
            return 1
        return 0
    sys.stdout.write(output)
    return 0


def _usage_error(msg: str) -> None:
    print("error: " + msg, file=sys.stderr)
    sys.exit(2)


def parse_args(args: list[str]) -> Options:
    """Parse command-line arguments, exiting with status 2 on misuse."""
    opts = Options()
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            sys.exit(0)
        elif arg in ("--stop-at", "--indent", "-o", "--output"):
            if i + 1 >= len(args):
                _usage_error(arg + " requires an argument")
            value = args[i + 1]
            if arg == "--stop-at":
                if value not in PHASES:
                    _usage_error("unknown phase '" + value + "'")
                opts.stop_at = value
            elif arg == "--indent":
                if not value.isdigit():
                    _usage_error("--indent expects a non-negative integer, got '" + value + "'")
                opts.indent = int(value)
            else:
                opts.output_file = value
            i += 2
        elif arg == "--strict":
            opts.strict = True
            i += 1
        elif arg == "--quiet":
            opts.quiet = True
            i += 1
        elif arg.startswith("-") and arg != "-":
            _usage_error("unknown flag '" + arg + "'")
        else:
            if opts.input_file is not None:
                _usage_error("unexpected argument '" + arg + "'")
            if arg != "-":
                opts.input_file = arg
            i += 1
    return opts


def run_pipeline(source: str, opts: Options) -> tuple[int, str]:
    """Run tokenize, parse and translate. Returns (exit_code, output)."""
    if should_skip_file(source):
        return (0, "")
    try:
        if opts.stop_at == "tokens":
            tokens = tokenize(source)
            return (0, to_json([token_to_dict(t) for t in tokens]) + "\n")
        module = parse(source)
    except ParseFailure as e:
        print("error:" + str(e.line) + ":" + str(e.col) + ": " + e.msg, file=sys.stderr)
        return (1, "")
    if opts.stop_at == "parse":
        return (0, to_json(to_dict(module)) + "\n")
    result = translate_module(module, " " * opts.indent)
    if not opts.quiet:
        for diag in result.diagnostics:
            print(str(diag), file=sys.stderr)
    if opts.strict and result.diagnostics:
        return (1, result.text)
    return (0, result.text)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    opts = parse_args(sys.argv[1:] if argv is None else argv)
    source, err = read_source(opts.input_file)
    if err != 0:
        return err
    exit_code, output = run_pipeline(source, opts)
    if output:
        write_code = write_output(output, opts.output_file)
        if write_code != 0:
            return write_code
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
