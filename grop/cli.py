from __future__ import annotations

import argparse
import logging
import sys

from .config import Config, MergeConfig, load_config
from .errors import GropError, StreamError
from .processor import StreamProcessor

logger = logging.getLogger("grop")


def _split_fields(text: str) -> list[str]:
    return [name.strip() for name in text.split(",") if name.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="grop", description="A grok powered grep-like utility.")
    parser.add_argument("input", type=str, nargs="?", default="-", help="Input file path or '-' for stdin")
    parser.add_argument("-o", "--output", type=str, default="-", help="Output file path or '-' for stdout")
    parser.add_argument("-c", "--config", type=str, help="Path to YAML config file; flags override its values")
    parser.add_argument("-e", "--expression", type=str, help="Grok expression matched against each line")
    parser.add_argument(
        "-p", "--pattern", dest="patterns", action="append", metavar="'NAME BODY'",
        help="Define a custom pattern (repeatable)",
    )
    parser.add_argument(
        "-f", "--filter", dest="filters", action="append", metavar="'[-]FIELD PATTERN'",
        help="Keep (or with a leading '-', drop) records whose field matches (repeatable, evaluated in order)",
    )
    parser.add_argument("-F", "--format", type=str, help="Comma-separated fields to print, e.g. 'prefix,payload'")
    parser.add_argument("-m", "--merge-fields", type=_split_fields, help="Comma-separated fields merged across a scope")
    parser.add_argument("--merge-start", type=str, help="Expression opening a merge scope")
    parser.add_argument("--merge-end", type=str, help="Expression closing a merge scope")
    parser.add_argument(
        "--merge-exclusive", action=argparse.BooleanOptionalAction, default=None,
        help="Do not absorb the line closing a merge scope",
    )
    parser.add_argument(
        "-l", "--list-pattern", nargs="?", const="", default=None, metavar="NAME",
        help="List all pattern names, or print the definition of NAME, and exit",
    )
    parser.add_argument("-d", "--debug", action="store_true", help="Activate debug logging")
    return parser


def config_from_args(args: argparse.Namespace) -> Config:
    """Turn command-line flags into a Config holding only what was given."""
    options: dict = {}
    if args.patterns is not None:
        options["custom_patterns"] = args.patterns
    if args.expression is not None:
        options["match_expression"] = args.expression
    if args.filters is not None:
        options["filters"] = args.filters
    if args.format is not None:
        options["output_format"] = args.format
    merge = {
        "merge_fields": args.merge_fields,
        "merge_exp_start": args.merge_start,
        "merge_exp_end": args.merge_end,
        "merge_scope_exclusive": args.merge_exclusive,
    }
    if any(v is not None for v in merge.values()):
        options["merge_config"] = MergeConfig(**{k: v for k, v in merge.items() if v is not None})
    return Config(**options)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    try:
        cfg = config_from_args(args)
        if args.config:
            cfg = load_config(args.config).merge(cfg)
        registry = cfg.build_registry()

        if args.list_pattern is not None:
            sys.stdout.write(registry.describe(args.list_pattern or None) + "\n")
            return 0

        processor = cfg.build_processor(registry)
        run(processor, args.input, args.output)
        return 0
    except (GropError, OSError) as e:
        logger.error("%s", e)
        return 1


def run(processor: StreamProcessor, input_path: str, output_path: str) -> int:
    try:
        src = sys.stdin if input_path == "-" else open(input_path, "r", encoding="utf-8")
    except OSError as e:
        raise StreamError(f"cannot open input {input_path}: {e}") from e
    try:
        try:
            dst = sys.stdout if output_path == "-" else open(output_path, "w", encoding="utf-8")
        except OSError as e:
            raise StreamError(f"cannot open output {output_path}: {e}") from e
        try:
            return processor.process_stream(src, dst)
        finally:
            if dst is not sys.stdout:
                dst.close()
    finally:
        if src is not sys.stdin:
            src.close()


if __name__ == "__main__":
    raise SystemExit(main())
