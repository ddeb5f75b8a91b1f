# -*- coding: utf-8 -*-
"""
i18n-extract CLI Main Module
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import __version__
from .core.exceptions import ConfigError, I18nExtractError
from .core.file_processor import (
    collect_files,
    load_existing_translations,
    process_files,
    write_translations,
)
from .core.key_registry import KeyRegistry
from .core.processor import TransformPipeline
from .utils.config import (
    DEFAULT_CONFIG_FILE,
    REWRITE_MODES,
    TEMPLATE_MODES,
    ConfigManager,
    Framework,
    TransformOptions,
)


def setup_logging(verbose: bool):
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler()]
    )


def print_header():
    """Print the CLI header."""
    print("\n" + "=" * 60)
    print(f"       i18n-extract v{__version__}")
    print("       Source string extraction for Vue and React")
    print("=" * 60)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="i18n-extract",
        description=f"i18n-extract v{__version__}: replace marked strings with translation calls",
    )
    parser.add_argument("paths", nargs="*",
                        help="Files or directories to process (default: include patterns under the current directory)")
    parser.add_argument("--pattern", "-p", help="Extraction regex; the first group is the text")
    parser.add_argument("--config", help=f"Path to JSON configuration file (default: {DEFAULT_CONFIG_FILE} if present)")
    parser.add_argument("--output", "-o", help="Translation JSON file to merge new keys into")
    parser.add_argument("--framework", choices=[f.value for f in Framework], help="Target framework")
    parser.add_argument("--mode", choices=REWRITE_MODES, help="Rewrite mode: 'patch' keeps formatting, 'regenerate' reprints scripts")
    parser.add_argument("--template-mode", choices=TEMPLATE_MODES, help="Markup template strategy")
    parser.add_argument("--no-import", action="store_true", default=None,
                        help="Use a global translation function, never add imports or hooks")
    parser.add_argument("--dry-run", action="store_true", help="Report changes without writing files")
    parser.add_argument("--jobs", "-j", type=int, default=1, help="Parallel workers (per-file key scope only)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    return parser


def load_options(args) -> TransformOptions:
    """Config file first, explicit CLI args override it."""
    config_path = args.config or DEFAULT_CONFIG_FILE
    config_manager = ConfigManager(config_path)
    if args.config and not os.path.exists(args.config):
        raise ConfigError(f"Config file not found: {args.config}")
    config_manager.load_config()

    overrides: Dict[str, Any] = {
        "pattern": args.pattern,
        "framework": args.framework,
        "output_path": args.output,
        "rewrite_mode": args.mode,
        "template_mode": args.template_mode,
    }
    if args.no_import:
        overrides["i18n_import"] = {"no_import": True}
    return config_manager.options.merged(overrides)


def resolve_files(paths: List[str], options: TransformOptions) -> List[Path]:
    if not paths:
        return collect_files(options.include, ".", options.exclude)

    files: List[Path] = []
    for path in paths:
        if os.path.isdir(path):
            # include patterns are project-relative; inside a directory take every source file
            patterns = ["**/*.{js,jsx,ts,tsx,mjs,cjs,mts,cts,vue}"]
            files.extend(collect_files(patterns, path, options.exclude))
        elif os.path.isfile(path):
            files.append(Path(path))
        else:
            logging.getLogger(__name__).warning(f"Path not found: {path}")
    return files


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        options = load_options(args)
    except ConfigError as e:
        print(f"Error: {e}")
        return 2

    print_header()

    existing = load_existing_translations(options.existing_translations)
    registry = KeyRegistry.from_options(options, existing)
    pipeline = TransformPipeline(options, registry=registry)

    files = resolve_files(args.paths, options)
    if not files:
        print("No source files found.")
        return 0

    print(f"  Files: {len(files)}")
    print(f"  Mode: {options.rewrite_mode} (template: {options.template_mode})")
    if args.dry_run:
        print("  Dry run: no files will be written")

    summary = process_files(files, pipeline, dry_run=args.dry_run, jobs=max(1, args.jobs))

    if summary.extracted and options.output_path and not args.dry_run:
        try:
            write_translations(options.output_path, summary.extracted)
        except I18nExtractError as e:
            logger.error(str(e))
            return 1

    print("\n" + "=" * 60)
    print(f"Files scanned:  {summary.files_scanned}")
    print(f"Files changed:  {summary.files_changed}")
    print(f"New strings:    {len(summary.extracted)}")
    print(f"Existing keys:  {len(summary.used_existing)}")
    if summary.failed:
        print(f"Failed files:   {len(summary.failed)}")
        for path in summary.failed:
            print(f"  - {path}")
    print("=" * 60)

    return 1 if summary.failed else 0


if __name__ == "__main__":
    sys.exit(main())
