"""
dumpfs command line: scan a directory and write an LLM-ready dump of it.
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

from . import __version__
from .config import DEFAULT_OUTPUT_FILE, OUTPUT_FORMATS, Config, find_config, load_json
from .errors import ConfigError, DumpFsError, TokenizerError
from .filters import normalize_patterns
from .repo import detect_repository
from .report import ScanReport, format_report
from .scanner import Scanner
from .tokenizer import CachingTokenizer, Model, Tokenizer, create_tokenizer, model_ids
from .writer import write_output

logger = logging.getLogger("dumpfs")


def setup_logging(verbose: bool, quiet: bool) -> None:
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s", stream=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dumpfs",
        description="Generate an XML or text representation of directory contents for LLM context",
    )
    parser.add_argument(
        "directory",
        nargs="?",
        default=".",
        help="Directory to process (default: current directory)",
    )
    parser.add_argument(
        "output_file",
        nargs="?",
        default=None,
        help=f"Output file (default: {DEFAULT_OUTPUT_FILE})",
    )
    parser.add_argument(
        "--ignore-patterns",
        action="append",
        default=[],
        help="Comma-separated glob patterns of names to ignore (repeatable)",
    )
    parser.add_argument(
        "--include-patterns",
        action="append",
        default=[],
        help="Comma-separated glob patterns; if given, only matching files are included (repeatable)",
    )
    parser.add_argument(
        "--threads",
        type=int,
        default=None,
        help="Number of worker threads for file processing (default: 4)",
    )
    parser.add_argument(
        "--no-gitignore",
        dest="respect_gitignore",
        action="store_false",
        default=None,
        help="Do not honor .gitignore files",
    )
    parser.add_argument(
        "--gitignore-path",
        default=None,
        help="Name of an additional ignore file to read in every directory",
    )
    parser.add_argument(
        "--model",
        choices=model_ids(),
        default=None,
        help="Count tokens for this model (default: no token counting; the report shows a chars/4 estimate)",
    )
    parser.add_argument(
        "--no-token-cache",
        dest="use_token_cache",
        action="store_false",
        default=None,
        help="Do not read or write the persistent token cache",
    )
    parser.add_argument(
        "--format",
        dest="output_format",
        choices=list(OUTPUT_FORMATS),
        default=None,
        help="Output format (default: xml)",
    )
    parser.add_argument(
        "--no-metadata",
        dest="include_metadata",
        action="store_false",
        default=None,
        help="Omit size/modified/permissions metadata from the output",
    )
    parser.add_argument(
        "--sort",
        dest="sort_files",
        action="store_true",
        default=None,
        help="Sort files by name within each directory for reproducible output",
    )
    parser.add_argument(
        "--stdout",
        action="store_true",
        help="Also print the generated output to stdout (report goes to stderr)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config file (default: auto-detect .dumpfs.json)",
    )
    parser.add_argument(
        "--no-config",
        action="store_true",
        help="Ignore config file",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Log debug details")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log errors")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def build_config(args: argparse.Namespace, path: Path) -> Config:
    config_path = find_config(path, args.config, args.no_config)
    data = load_json(config_path) if config_path else {}
    if config_path:
        logger.debug("Using config file %s", config_path)

    ignore_patterns = normalize_patterns(data.get("ignore_patterns"))
    for value in args.ignore_patterns:
        ignore_patterns.extend(normalize_patterns(value))
    include_patterns = normalize_patterns(data.get("include_patterns"))
    for value in args.include_patterns:
        include_patterns.extend(normalize_patterns(value))

    return Config.from_mapping(
        data,
        target_dir=path,
        output_file=Path(args.output_file) if args.output_file else None,
        ignore_patterns=ignore_patterns,
        include_patterns=include_patterns,
        num_threads=args.threads,
        respect_gitignore=args.respect_gitignore,
        gitignore_path=args.gitignore_path,
        model=args.model,
        output_format=args.output_format,
        include_metadata=args.include_metadata,
        sort_files=args.sort_files,
        use_token_cache=args.use_token_cache,
        repo=detect_repository(path),
    )


def build_tokenizer(config: Config) -> Optional[Tokenizer]:
    if config.model is None:
        return None
    try:
        return create_tokenizer(
            Model.from_id(config.model),
            project_dir=str(config.target_dir),
            use_cache=config.use_token_cache,
        )
    except TokenizerError as e:
        logger.warning("Token counting disabled: %s", e)
        return None


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose, args.quiet)

    path = Path(args.directory).resolve()
    if not path.is_dir():
        logger.error("Path is not a directory: %s", path)
        return 1

    try:
        config = build_config(args, path)
        config.validate()
    except ConfigError as e:
        logger.error("%s", e)
        return 1

    if config.repo is not None:
        logger.debug("Repository: %s", config.repo)
    if config.respect_gitignore:
        if config.gitignore_path:
            logger.debug("Using custom ignore file: %s", config.gitignore_path)
        else:
            logger.debug("Respecting .gitignore files in the project")

    tokenizer = build_tokenizer(config)
    scanner = Scanner(config, tokenizer)

    start = time.perf_counter()
    try:
        root = scanner.scan()
        output_path = write_output(config, root)
    except (DumpFsError, OSError) as e:
        logger.error("%s", e)
        return 1
    duration = time.perf_counter() - start

    if isinstance(tokenizer, CachingTokenizer):
        try:
            tokenizer.flush()
        except TokenizerError as e:
            logger.warning("%s", e)

    report = ScanReport.from_statistics(scanner.statistics(), str(output_path), duration)
    report_stream = sys.stderr if args.stdout else sys.stdout
    print("\n" + format_report(report, config.repo), file=report_stream)

    if args.stdout:
        with open(output_path, "r", encoding="utf-8") as f:
            sys.stdout.write(f.read())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
