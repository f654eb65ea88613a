"""Command-line argument parsing for the GitHub metrics collector."""

from __future__ import annotations

import argparse
from datetime import date
from typing import Optional, Sequence


def _positive_int(value: str) -> int:
    """Parse and validate a positive integer CLI value.

    Args:
        value: Raw command-line argument value.

    Returns:
        The validated positive integer.

    Raises:
        argparse.ArgumentTypeError: If value is not a positive integer.
    """
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be an integer") from exc

    if parsed <= 0:
        raise argparse.ArgumentTypeError("must be greater than 0")

    return parsed


def _non_negative_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be an integer") from exc

    if parsed < 0:
        raise argparse.ArgumentTypeError("must be 0 or greater")

    return parsed


def _percentage(value: str) -> int:
    parsed = _non_negative_int(value)
    if parsed > 100:
        raise argparse.ArgumentTypeError("must be between 0 and 100")
    return parsed


def _iso_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` CLI value."""
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be a date in YYYY-MM-DD format") from exc


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments for report generation.

    Returns:
        Parsed CLI arguments containing the organization, repositories, date
        window, data directory and replay flag.
    """
    parser = argparse.ArgumentParser(
        prog="gh-metrics",
        description=(
            "Collect GitHub pull-request activity (authors, reviewers, participants) "
            "for an organization and write contributor and repository reports."
        ),
    )

    parser.add_argument(
        "--org",
        required=True,
        help="GitHub organization name.",
    )
    parser.add_argument(
        "--repo",
        action="append",
        default=[],
        help="Repository to analyze (repeatable). Defaults to every repository of the organization.",
    )
    parser.add_argument(
        "--days",
        type=_positive_int,
        default=None,
        help="Number of days of PR history to analyze when --start is omitted (default: 30).",
    )
    parser.add_argument(
        "--start",
        type=_iso_date,
        default=None,
        help="First day (YYYY-MM-DD) of the PR creation window.",
    )
    parser.add_argument(
        "--end",
        type=_iso_date,
        default=None,
        help="Last day (YYYY-MM-DD) of the PR creation window (default: today).",
    )
    parser.add_argument(
        "--data-dir",
        default="data",
        help="Directory for recorded GraphQL responses and output reports (default: data).",
    )
    parser.add_argument(
        "--replay-graphql",
        action="store_true",
        help="Serve every GraphQL response from a previous run instead of the network.",
    )
    parser.add_argument(
        "--workers",
        type=_positive_int,
        default=4,
        help="Number of repositories collected concurrently (default: 4).",
    )
    parser.add_argument(
        "--ignore-login",
        action="append",
        default=[],
        help="Login to leave out of contributor tables, e.g. a bot account (repeatable).",
    )
    thresholds = parser.add_argument_group("high-contributor thresholds")
    thresholds.add_argument(
        "--min-percentage",
        type=_percentage,
        default=None,
        help="Share of a repository's PRs a participant must review, author or join (default: 5).",
    )
    thresholds.add_argument(
        "--min-prs",
        type=_non_negative_int,
        default=None,
        help="Absolute number of PRs required per category (default: 10).",
    )
    thresholds.add_argument(
        "--categories",
        type=_non_negative_int,
        default=None,
        help="Number of categories a participant must be high in (default: 2).",
    )
    thresholds.add_argument(
        "--reviewer-saturation-threshold",
        type=_percentage,
        default=None,
        help="Share of reviewed PRs covered by the reviewer saturation count (default: 50).",
    )
    thresholds.add_argument(
        "--author-saturation-threshold",
        type=_percentage,
        default=None,
        help="Share of authored PRs covered by the author saturation count (default: 50).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v for debug).",
    )

    return parser.parse_args(argv)
