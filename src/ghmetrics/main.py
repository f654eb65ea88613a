"""Entry point for the GitHub pull-request activity metrics collector."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from .cli import parse_args
from .collector import collect_all
from .config import Mode, build_high_contributor_config, load_config, record_date_window
from .errors import AuthenticationError, ConfigurationError, MetricsError, StorageError
from .github_client import GithubClient
from .report import generate_summary, write_reports

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_UNEXPECTED_ERROR = 1
EXIT_CONFIGURATION_ERROR = 2
EXIT_AUTHENTICATION_ERROR = 3
EXIT_COLLECTION_ERROR = 4


def configure_logging(verbosity: int) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbosity > 0 else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def orchestrate_report_generation(argv: Optional[Sequence[str]] = None) -> int:
    """Run the full collection and reporting flow.

    Returns:
        ``0`` on success, ``2`` for configuration errors, ``3`` when no token
        is available, ``4`` when discovery or any repository failed (reports
        for the other repositories are still written) and ``1`` otherwise.
    """
    try:
        args = parse_args(argv)
        configure_logging(args.verbose)

        config = load_config(
            organization=args.org,
            repositories=args.repo,
            days=args.days,
            start=args.start,
            end=args.end,
            data_dir=args.data_dir,
            replay=args.replay_graphql,
            workers=args.workers,
            ignored_logins=args.ignore_login,
            high_contributor=build_high_contributor_config(
                min_percentage=args.min_percentage,
                min_prs=args.min_prs,
                categories=args.categories,
                reviewer_saturation=args.reviewer_saturation_threshold,
                author_saturation=args.author_saturation_threshold,
            ),
        )

        executor = None
        if config.mode is Mode.LIVE:
            executor = GithubClient(token=config.token, timeout_seconds=config.timeout_seconds)
            try:
                record_date_window(config)
            except StorageError as exc:
                logger.warning("Date window not recorded; replay will need --start and --end: %s", exc)

        print(
            f"Collecting pull requests for '{config.organization}' created "
            f"{config.start_date.isoformat()}..{config.end_date.isoformat()} ({config.mode.value} mode)..."
        )
        result = collect_all(config, executor)
        write_reports(config, result.aggregator)

        print(
            generate_summary(
                organization=config.organization,
                repository_rows=result.aggregator.repository_rows(),
                contributor_rows=result.aggregator.contributor_rows(),
                outcomes=result.outcomes,
            )
        )

        if result.failed:
            logger.error(
                "Some repositories could not be collected",
                extra={"failed": [outcome.repository for outcome in result.failed]},
            )
            return EXIT_COLLECTION_ERROR
        return EXIT_SUCCESS
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIGURATION_ERROR
    except AuthenticationError as exc:
        logger.error("Authentication error: %s", exc)
        return EXIT_AUTHENTICATION_ERROR
    except MetricsError as exc:
        logger.error("Collection failed: %s", exc)
        return EXIT_COLLECTION_ERROR
    except Exception:
        logger.exception("Unexpected error while generating reports")
        return EXIT_UNEXPECTED_ERROR


def main() -> None:
    raise SystemExit(orchestrate_report_generation())


if __name__ == "__main__":
    main()
