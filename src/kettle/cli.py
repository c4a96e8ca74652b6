"""Command-line interface for Kettle: print the rewritten token stream."""

from __future__ import annotations

import argparse
import logging
import sys
import time
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from kettle.errors import LexError, RewriteError

FORMATS = ("text", "json")
CONFIG_NAME = "kettle.toml"

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CliOptions:
    """Effective settings after merging kettle.toml and the command line."""

    input_file: Path
    output_file: Path | None
    format: str
    locations: bool
    tab_width: int
    raw: bool
    watch: bool
    debug: bool


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="kettle",
        description="Kettle front end: print the token stream handed to the parser",
    )
    p.add_argument("input", help="Input .ktl file")
    p.add_argument("-o", "--output", help="Write tokens to this file instead of stdout")
    p.add_argument(
        "--format",
        choices=FORMATS,
        default=None,
        help="Output format (default: text)",
    )
    p.add_argument(
        "--no-locations",
        action="store_true",
        help="Omit source locations from the output",
    )
    p.add_argument(
        "--tab-width",
        type=int,
        default=None,
        metavar="N",
        help="Columns a tab counts for in indentation (default: 2)",
    )
    p.add_argument(
        "--raw",
        action="store_true",
        help="Print the lexer output without rewriting it",
    )
    p.add_argument(
        "--config",
        metavar="FILE",
        help=f"Config file (default: {CONFIG_NAME} next to the input)",
    )
    p.add_argument("--watch", action="store_true", help="Re-run whenever the input changes")
    p.add_argument(
        "--debug",
        action="store_true",
        help="Log each pass and dump the lexer tokens to stderr",
    )
    return p


def load_config(config_path: Path | None, input_dir: Path) -> dict[str, Any]:
    """Read the TOML config; {} when no file is given and none sits next to the input."""
    path = config_path if config_path is not None else input_dir / CONFIG_NAME
    if not path.is_file():
        return {}
    logger.debug("loading config from %s", path)
    with path.open("rb") as f:
        return tomllib.load(f)


def _section(config: dict[str, Any], name: str) -> dict[str, Any]:
    table = config.get(name)
    return table if isinstance(table, dict) else {}


def _tab_width(lexer_cfg: dict[str, Any], cli_value: int | None) -> int:
    width = 2
    if "tab_width" in lexer_cfg:
        width = lexer_cfg["tab_width"]
        # bool is an int subclass
        if not isinstance(width, int) or isinstance(width, bool):
            raise argparse.ArgumentTypeError(f"lexer.tab_width must be an integer: {width!r}")
    if cli_value is not None:
        width = cli_value
    if width < 1:
        raise argparse.ArgumentTypeError(f"tab width must be at least 1: {width}")
    return width


def _output_format(output_cfg: dict[str, Any], cli_value: str | None) -> str:
    if cli_value is not None:
        return cli_value
    fmt = output_cfg.get("format", "text")
    if fmt not in FORMATS:
        raise argparse.ArgumentTypeError(f"output.format must be one of {FORMATS}: {fmt!r}")
    return fmt


def resolve_options(args: argparse.Namespace) -> CliOptions:
    """Combine defaults, the config file and CLI flags, later ones winning.

    Raises argparse.ArgumentTypeError for an unreadable or invalid config.
    """
    input_file = Path(args.input)
    input_dir = input_file.parent if input_file.parent.parts else Path(".")

    try:
        config = load_config(Path(args.config) if args.config else None, input_dir)
    except tomllib.TOMLDecodeError as exc:
        raise argparse.ArgumentTypeError(f"invalid config file: {exc}") from exc

    output_cfg = _section(config, "output")
    locations = output_cfg.get("locations", True)
    if not isinstance(locations, bool):
        raise argparse.ArgumentTypeError(f"output.locations must be true or false: {locations!r}")

    return CliOptions(
        input_file=input_file,
        output_file=Path(args.output) if args.output else None,
        format=_output_format(output_cfg, args.format),
        locations=locations and not args.no_locations,
        tab_width=_tab_width(_section(config, "lexer"), args.tab_width),
        raw=args.raw,
        watch=args.watch,
        debug=args.debug,
    )


def compile_file(options: CliOptions) -> str:
    """Tokenize (and unless --raw, rewrite) the input; return the formatted stream."""
    from kettle.debug import dump_tokens, format_tokens, tokens_to_json
    from kettle.lexer import tokenize
    from kettle.rewriter import Rewriter

    source = options.input_file.read_text(encoding="utf-8")
    filename = str(options.input_file)
    tokens = tokenize(source, filename, options.tab_width)

    if options.debug:
        dump_tokens(tokens, locations=options.locations)

    if not options.raw:
        tokens = Rewriter(tokens, source, filename).rewrite()

    if options.format == "json":
        return tokens_to_json(tokens, locations=options.locations)
    return format_tokens(tokens, locations=options.locations)


def _write_output(options: CliOptions, out: str) -> None:
    if options.output_file is None:
        sys.stdout.write(out)
        sys.stdout.flush()
    else:
        options.output_file.write_text(out, encoding="utf-8")


def watch_loop(options: CliOptions, interval: float = 0.5) -> None:
    """Re-run compile_file each time the input's mtime changes, until Ctrl-C."""
    seen_mtime: float | None = None
    print(f"Watching {options.input_file} (Ctrl-C to stop)", file=sys.stderr)
    try:
        while True:
            try:
                mtime = options.input_file.stat().st_mtime
            except OSError:
                mtime = None
            if mtime is not None and mtime != seen_mtime:
                seen_mtime = mtime
                try:
                    _write_output(options, compile_file(options))
                    print(f"Processed {options.input_file}", file=sys.stderr)
                except (LexError, RewriteError) as exc:
                    print(exc.format(str(options.input_file)), file=sys.stderr)
            time.sleep(interval)
    except KeyboardInterrupt:
        pass


def main(argv: list[str] | None = None) -> int:
    """Run the CLI and return the exit status: 0 ok, 1 source error, 2 usage or I/O error."""
    args = build_parser().parse_args(argv)

    try:
        options = resolve_options(args)
    except argparse.ArgumentTypeError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    if options.debug:
        logging.basicConfig(
            level=logging.DEBUG, format="%(name)s: %(message)s", stream=sys.stderr
        )

    if options.watch:
        watch_loop(options)
        return 0

    try:
        out = compile_file(options)
    except (LexError, RewriteError) as exc:
        print(exc.format(str(options.input_file)), file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    _write_output(options, out)
    return 0


def run() -> None:
    """Console script entry point."""
    sys.exit(main())
