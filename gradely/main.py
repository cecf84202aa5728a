"""
Command-line entry point for Gradely reviews.

Usage:
    python -m gradely.main --file solution.py --language python
    python -m gradely.main --file Main.java --language java --model mixtral-8x7b-32768
    python -m gradely.main --file app.ts --language typescript --output output/review.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from gradely.config import load_settings
from gradely.models import LANGUAGES, SEVERITIES, ReviewResult
from gradely.reviewer import review_code


def load_code_from_file(filepath: str) -> str:
    """Read the source file to review."""
    with open(filepath, 'r', encoding='utf-8') as f:
        return f.read()


def save_output(result: ReviewResult, filepath: str):
    """Write the review as JSON, creating parent directories."""
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(result.model_dump(exclude_none=True), indent=2), encoding='utf-8')

    print(f"\n✓ Saved to {filepath}")


def print_summary(result: ReviewResult, filepath: str):
    """Print human-readable summary to console."""
    rule = "=" * 60
    print(f"\n{rule}\nREVIEW: {filepath}\n{rule}")
    print(f"\n{result.summary}")

    counts = {severity: 0 for severity in SEVERITIES}
    for issue in result.issues:
        counts[issue.severity] += 1
    print("\nIssues: " + ", ".join(f"{counts[s]} {s}" for s in reversed(SEVERITIES)))

    for i, issue in enumerate(result.issues, 1):
        print(f"\n  {i}. line {issue.line} [{issue.severity}] {issue.message}")
        if issue.suggestion:
            print(f"     fix: {issue.suggestion}")

    print(f"\n{rule}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gradely",
        description="Review a source file with free LLM models"
    )
    parser.add_argument("--file", required=True, help="Source file to review")
    parser.add_argument("--language", choices=LANGUAGES, required=True, help="Source language")
    parser.add_argument(
        "--model",
        action="append",
        dest="models",
        help="Candidate model id; repeat to build a fallback chain (default: REVIEW_* env chain)"
    )
    parser.add_argument(
        "--output",
        default="output/review.json",
        help="Where to write the JSON result (default: output/review.json)"
    )
    return parser


def main(argv=None) -> int:
    load_dotenv()
    # logging was configured before .env was read
    logging.getLogger().setLevel(load_settings().log_level)
    args = build_parser().parse_args(argv)

    try:
        code = load_code_from_file(args.file)
    except FileNotFoundError:
        print(f"Error: source file not found: {args.file}", file=sys.stderr)
        return 1

    print(f"Reviewing {args.file} ({args.language})...")
    result = review_code(code, args.language, models=args.models)

    print_summary(result, args.file)
    save_output(result, args.output)

    # Advisory only; error-level issues don't change the exit code
    return 0


if __name__ == "__main__":
    sys.exit(main())
