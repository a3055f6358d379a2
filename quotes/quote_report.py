#!/usr/bin/env python3
"""
Print pricing totals or the pending revision summary for a saved quote.

The quote file is the camelCase JSON document the quote builder stores.

Usage:
    python -m quotes.quote_report totals quote.json [--option OPTION_ID] [--json]
    python -m quotes.quote_report diff quote.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from quotes import config
from quotes.models import Quote, QuoteError
from quotes.pricing_calculator import PricingCalculator
from quotes.resources import load_registry
from quotes.revision_diff import generate_diff_summary

logger = logging.getLogger(__name__)


def load_quote(path: Path) -> Quote:
    with open(path, encoding="utf-8") as f:
        return Quote.from_dict(json.load(f))


def cmd_totals(args: argparse.Namespace) -> int:
    quote = load_quote(args.quote)
    calc = PricingCalculator(load_registry(args.resources))
    options = [quote.get_option(args.option)] if args.option else quote.options

    if args.json:
        print(json.dumps(
            {o.id: calc.calculate(o, quote).to_dict() for o in options}, indent=2
        ))
        return 0
    print("\n\n".join(calc.format_summary_text(o, quote) for o in options))
    return 0


def cmd_diff(args: argparse.Namespace) -> int:
    quote = load_quote(args.quote)
    if not quote.original_options_for_diff:
        print("No revision snapshot on this quote.")
        return 0
    summary = generate_diff_summary(quote.original_options_for_diff, quote.options, quote.revision_number)
    print(summary or "No changes detected.")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Quote pricing report")
    parser.add_argument("--log-level", default=config.LOG_LEVEL)
    sub = parser.add_subparsers(dest="command", required=True)

    p_totals = sub.add_parser("totals", help="Price every option of a quote")
    p_totals.add_argument("quote", type=Path)
    p_totals.add_argument("--option", default=None, help="Only this option id")
    p_totals.add_argument("--resources", type=Path, default=None, help="Roster YAML (default: QUOTES_RESOURCES_FILE)")
    p_totals.add_argument("--json", action="store_true", help="Emit totals as JSON")
    p_totals.set_defaults(func=cmd_totals)

    p_diff = sub.add_parser("diff", help="Summarize changes since the last sent revision")
    p_diff.add_argument("quote", type=Path)
    p_diff.set_defaults(func=cmd_diff)

    args = parser.parse_args(argv)
    config.configure_logging(args.log_level)

    try:
        return args.func(args)
    except (OSError, json.JSONDecodeError, QuoteError) as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
