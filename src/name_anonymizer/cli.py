"""CLI interface for name-anonymizer.

Usage:
    # Redact a log file (or stdin) against the persisted alias table
    name-anonymizer --entities entities.yaml redact build.log > build.redacted.log

    # Register what the host currently knows and persist it
    name-anonymizer --entities entities.yaml refresh

    # Show original → alias, or every variant → alias
    name-anonymizer display
    name-anonymizer dump

    # Register ad-hoc names (prints JSON {name: alias})
    name-anonymizer register --category item --path "Folder1/Job1"

The entities file is YAML or JSON: ``{category: [name, ...]}``.
"""

from __future__ import annotations
import argparse
import json
import logging
import os
import sys
from typing import Any

import yaml

from .config import create_anonymizer, load_config, load_from_yaml
from .errors import AnonymizerError
from .refresh import static_sources

logger = logging.getLogger(__name__)

DEFAULT_LOG_LEVEL = os.environ.get("NAME_ANONYMIZER_LOG_LEVEL", "WARNING")


def _load_entities(path: str | None) -> dict[str, list[str]]:
    if not path:
        return {}
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise AnonymizerError(f"{path}: expected a mapping of category to names")
    return {str(category): [str(n) for n in names or []] for category, names in data.items()}


def _build_config(args: argparse.Namespace) -> dict[str, Any]:
    cfg = load_from_yaml(args.config) if args.config else load_config({})
    if args.store:
        cfg["store_path"] = args.store
    if args.backend:
        cfg["store_backend"] = args.backend
    if args.matcher:
        cfg["matcher"] = args.matcher
    if args.exclude:
        cfg["excluded_words"] = cfg["excluded_words"] + args.exclude.split(",")
    return cfg


def _build_anonymizer(args: argparse.Namespace):
    sources = static_sources(_load_entities(args.entities))
    return create_anonymizer(_build_config(args), sources).start()


def _dump_json(data: Any) -> None:
    json.dump(data, sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")


def cmd_redact(args: argparse.Namespace) -> None:
    """Redact files (or stdin) to stdout."""
    anonymizer = _build_anonymizer(args)
    if not args.files:
        sys.stdout.writelines(anonymizer.redact_lines(sys.stdin))
        return
    for name in args.files:
        with open(name, encoding="utf-8", errors="replace") as f:
            sys.stdout.writelines(anonymizer.redact_lines(f))


def cmd_refresh(args: argparse.Namespace) -> None:
    """Run a refresh and report counts."""
    anonymizer = _build_anonymizer(args)
    _dump_json(anonymizer.stats)


def cmd_display(args: argparse.Namespace) -> None:
    """Dump original → alias."""
    anonymizer = _build_anonymizer(args)
    _dump_json(dict(anonymizer.get_display_snapshot()))


def cmd_dump(args: argparse.Namespace) -> None:
    """Dump every variant → alias."""
    anonymizer = _build_anonymizer(args)
    _dump_json(dict(anonymizer.get_full_alias_table()))


def cmd_register(args: argparse.Namespace) -> None:
    """Register names given on the command line."""
    anonymizer = _build_anonymizer(args)
    result = {
        name: anonymizer.register(args.category, name, hierarchical=args.path)
        for name in args.names
    }
    _dump_json(result)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="name-anonymizer",
        description="Stable pseudonyms for sensitive names, and text redaction",
    )
    parser.add_argument("--config", help="YAML config file")
    parser.add_argument("--store", help="Alias table path (overrides config)")
    parser.add_argument("--backend", choices=["json", "sqlite", "memory"], help="Store backend")
    parser.add_argument("--entities", help="YAML/JSON file of {category: [names]}")
    parser.add_argument("--exclude", default="", help="Comma-separated words to never anonymize")
    parser.add_argument("--matcher", choices=["sequential", "combined"], help="Matching strategy")
    parser.add_argument("--log-level", default=DEFAULT_LOG_LEVEL, help="Logging level")

    sub = parser.add_subparsers(dest="command", required=True)
    p_redact = sub.add_parser("redact", help="Redact files or stdin")
    p_redact.add_argument("files", nargs="*", help="Files to redact (default: stdin)")
    sub.add_parser("refresh", help="Register current entities and save")
    sub.add_parser("display", help="Dump original → alias")
    sub.add_parser("dump", help="Dump every variant → alias")
    p_register = sub.add_parser("register", help="Register names")
    p_register.add_argument("--category", required=True)
    p_register.add_argument("--path", action="store_true", help="Names are hierarchical paths")
    p_register.add_argument("names", nargs="+")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="[%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )

    cmds = {
        "redact": cmd_redact,
        "refresh": cmd_refresh,
        "display": cmd_display,
        "dump": cmd_dump,
        "register": cmd_register,
    }
    try:
        cmds[args.command](args)
    except AnonymizerError as exc:
        logger.error("%s", exc, exc_info=logger.isEnabledFor(logging.DEBUG))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
