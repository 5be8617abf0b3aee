"""
Command-line interface for keyword matching.

Usage:
    # Embedding shortlist, truncated
    keyword-matcher match "A detective hunts a serial killer in 1970s Paris"

    # LLM refinement with a preferred provider
    keyword-matcher match "..." --llm --provider gemini

    # Token estimate for a refinement call
    keyword-matcher estimate "..."

    # Offline index build
    keyword-matcher build-index --taxonomy data/keywords.json --output data/keyword-index.json

    # Provider configuration and usage counters
    keyword-matcher status

Results are printed as JSON on stdout; errors as JSON on stderr.
"""

import argparse
import json
import sys
from typing import Any, Dict, List, Optional

import structlog

from ..config import settings
from ..errors import InvalidInputError, KeywordMatcherError, QuotaExceededError
from ..index.builder import build_and_save
from ..logging_config import setup_logging
from ..matching.matcher import KeywordMatcher
from ..models.matching import parse_match_request
from ..usage import get_usage_tracker
from ..version import __version__


logger = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INVALID_INPUT = 2


# ============================================================================
# COMMANDS
# ============================================================================

def run_match(args: argparse.Namespace) -> Dict[str, Any]:
    request = parse_match_request({
        "description": args.description,
        "use_llm": args.llm,
        "keyword_count": args.count,
        "llm_provider": args.provider,
        "client_id": args.client_id,
    })
    result = KeywordMatcher(settings=settings).match(request)
    return result.model_dump(mode="json", by_alias=True, exclude_none=True)


def run_estimate(args: argparse.Namespace) -> Dict[str, Any]:
    estimate = KeywordMatcher(settings=settings).estimate(
        args.description, llm_provider=args.provider
    )
    return estimate.model_dump(mode="json", by_alias=True)


def run_build_index(args: argparse.Namespace) -> Dict[str, Any]:
    output_path = args.output or settings.keyword_index_path
    index = build_and_save(
        settings=settings,
        taxonomy_path=args.taxonomy,
        output_path=output_path,
    )
    return {
        "output": str(output_path),
        "keywords": len(index),
        "embeddingProvider": index.embedding_provider,
        "embeddingModel": index.embedding_model,
        "embeddingDimensions": index.embedding_dimensions,
    }


def run_status(args: argparse.Namespace) -> Dict[str, Any]:
    status = KeywordMatcher(settings=settings).provider_status()
    status["usage"] = get_usage_tracker().get_snapshot().model_dump(mode="json")
    return status


COMMANDS = {
    "match": run_match,
    "estimate": run_estimate,
    "build-index": run_build_index,
    "status": run_status,
}


# ============================================================================
# OUTPUT
# ============================================================================

def error_payload(error: Exception) -> Dict[str, Any]:
    """JSON error body for a failed command."""
    payload: Dict[str, Any] = {"error": str(error), "type": type(error).__name__}
    if isinstance(error, QuotaExceededError) and error.retry_after_seconds is not None:
        payload["retryAfterSeconds"] = error.retry_after_seconds
    return payload


def _print_json(data: Dict[str, Any], stream=None) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2), file=stream or sys.stdout)


# ============================================================================
# MAIN CLI
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="keyword-matcher",
        description="Keyword Matcher CLI - Match descriptions against a keyword taxonomy",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Shortlist truncated to 10 keywords
  %(prog)s match "A heist crew plans one last job" --count 10

  # Refine with an LLM
  %(prog)s match "A heist crew plans one last job" --llm --provider openrouter

  # Rebuild the index after editing the taxonomy
  %(prog)s build-index

Providers are configured through environment variables or .env:
  OPENAI_API_KEY, GEMINI_API_KEY, OPENROUTER_API_KEY, OLLAMA_BASE_URL
        """
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging on stderr"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    match_parser = subparsers.add_parser("match", help="Match a description to keywords")
    match_parser.add_argument("description", type=str, help="Free-text description")
    match_parser.add_argument(
        "--llm",
        action="store_true",
        help="Refine the embedding shortlist with an LLM"
    )
    match_parser.add_argument(
        "--provider",
        "-p",
        type=str,
        default=None,
        help="Preferred LLM provider (openrouter, gemini, openai, ollama)"
    )
    match_parser.add_argument(
        "--count",
        "-n",
        type=int,
        default=None,
        help="Number of keywords without --llm (clamped to 1-50, default: 15)"
    )
    match_parser.add_argument(
        "--client-id",
        type=str,
        default="cli",
        help="Caller id recorded in usage counters (default: cli)"
    )

    estimate_parser = subparsers.add_parser(
        "estimate", help="Estimate tokens of an LLM refinement call"
    )
    estimate_parser.add_argument("description", type=str, help="Free-text description")
    estimate_parser.add_argument(
        "--provider",
        "-p",
        type=str,
        default=None,
        help="Preferred LLM provider"
    )

    build_parser_ = subparsers.add_parser(
        "build-index", help="Embed the taxonomy and write the keyword index"
    )
    build_parser_.add_argument(
        "--taxonomy",
        "-t",
        type=str,
        default=None,
        help="Taxonomy JSON path (default: KEYWORDS_PATH)"
    )
    build_parser_.add_argument(
        "--output",
        "-o",
        type=str,
        default=None,
        help="Index output path (default: KEYWORD_INDEX_PATH)"
    )

    subparsers.add_parser("status", help="Show provider configuration and usage")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(settings, verbose=args.verbose)

    try:
        result = COMMANDS[args.command](args)

    except InvalidInputError as e:
        _print_json(error_payload(e), stream=sys.stderr)
        return EXIT_INVALID_INPUT

    except KeywordMatcherError as e:
        logger.error("command_failed", command=args.command, error=str(e))
        _print_json(error_payload(e), stream=sys.stderr)
        return EXIT_ERROR

    except Exception as e:
        logger.error("cli_failed", command=args.command, error=str(e), exc_info=True)
        _print_json({"error": "Internal error", "type": "InternalError"}, stream=sys.stderr)
        return EXIT_ERROR

    _print_json(result)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
