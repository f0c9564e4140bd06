#!/usr/bin/env python3
"""Command-line interface for the nutrition extractor."""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from nutribot.data_layer.settings import configure_logging, load_settings
from nutribot.extraction.extraction_errors import ExtractionError, InputError
from nutribot.extraction.nutrition_cache import NutritionCache
from nutribot.extraction.nutrition_extractor import NutritionExtractor
from nutribot.nutrition.aggregator import NutritionAggregator
from nutribot.output.formatters import (
    analysis_to_dict,
    format_analysis_markdown,
    format_json_string,
    format_outcome_text,
    outcome_to_dict,
)
from nutribot.providers.gemini_provider import GeminiCompletionService

EXIT_INPUT_ERROR = 2
EXIT_SERVICE_ERROR = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Extract calories and macros from a food description"
    )
    parser.add_argument(
        "text",
        type=str,
        help="Food description (with --weight) or a whole meal message (with --message)"
    )
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument(
        "--weight",
        type=float,
        help="Portion weight in grams for a single food"
    )
    mode.add_argument(
        "--message",
        action="store_true",
        help="Treat text as a free-form message that may name several foods"
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Optional path to extraction settings YAML (see config/extraction.yaml.example)"
    )
    parser.add_argument(
        "--output",
        type=str,
        choices=["text", "json"],
        default="text",
        help="Output format: text (default) or json"
    )
    return parser


async def run(extractor: NutritionExtractor, args: argparse.Namespace) -> str:
    """Run one extraction and return the formatted output."""
    if not args.message:
        outcome = await extractor.extract_one(args.text, args.weight)
        if args.output == "json":
            return format_json_string(outcome_to_dict(outcome))
        return format_outcome_text(outcome)

    outcomes = await extractor.extract_from_message(args.text)
    analysis = NutritionAggregator.summarize(outcomes)
    if args.output == "json":
        return format_json_string({
            "outcomes": [outcome_to_dict(o) for o in outcomes],
            "analysis": analysis_to_dict(analysis),
        })

    blocks: List[str] = [format_outcome_text(o) for o in outcomes]
    blocks.append(format_analysis_markdown(analysis))
    return "\n\n".join(blocks)


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    if args.config and not Path(args.config).exists():
        print(f"Error: Settings file not found: {args.config}", file=sys.stderr)
        print("Hint: Copy config/extraction.yaml.example and customize it", file=sys.stderr)
        sys.exit(1)

    try:
        settings = load_settings(args.config)
    except ValueError as e:
        print(f"Error: Invalid settings: {e}", file=sys.stderr)
        sys.exit(1)
    configure_logging(settings.log_level)

    try:
        service = GeminiCompletionService.from_settings(settings)
    except Exception as e:
        print("Failed to initialize text-completion service:", file=sys.stderr)
        print(str(e), file=sys.stderr)
        sys.exit(EXIT_SERVICE_ERROR)

    extractor = NutritionExtractor(
        service=service,
        cache=NutritionCache(ttl_seconds=settings.cache_ttl_seconds),
        settings=settings,
    )

    try:
        print("Extracting nutrition...", file=sys.stderr)
        output = asyncio.run(run(extractor, args))
    except InputError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(EXIT_INPUT_ERROR)
    except ExtractionError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(EXIT_SERVICE_ERROR)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        sys.exit(1)

    print(output)


if __name__ == "__main__":
    main()
