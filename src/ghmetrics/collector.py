"""Collection pipeline: pagination, extraction and aggregation per repository.

Each repository is one query identity. Its pages are fetched strictly in
cursor order and every page is extracted and aggregated before the next one
is requested. Repositories are collected concurrently on a bounded thread
pool, each with its own aggregator, and merged once all of them finished.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .aggregator import Aggregator
from .cache import QueryExecutor, ReplayCache
from .config import Config
from .errors import MetricsError
from .extractor import PullRequestExtractor, extract_repository_names
from .models import QueryRequest, RepositoryOutcome
from .paginator import Paginator
from .queries import organization_repositories, pull_request_search

logger = logging.getLogger(__name__)

ALL_REPOS_SCOPE = "all-repos"
REPO_PARTICIPANTS_SCOPE = "repo-participants"


@dataclass
class CollectionResult:
    """Merged aggregate of every successful repository plus per-repository outcomes."""

    aggregator: Aggregator
    outcomes: List[RepositoryOutcome] = field(default_factory=list)

    @property
    def failed(self) -> List[RepositoryOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]


def list_repositories(
    organization: str,
    cache: ReplayCache,
    executor: Optional[QueryExecutor] = None,
    cancel_event: Optional[threading.Event] = None,
) -> List[str]:
    """List the non-archived repositories of ``organization``.

    Raises:
        MetricsError: If any page cannot be fetched or replayed.
    """
    names: List[str] = []
    paginator = Paginator(organization_repositories(organization), cache, executor, cancel_event)
    for page in paginator:
        names.extend(extract_repository_names(page))

    logger.info(
        "Discovered organization repositories",
        extra={"organization": organization, "repository_count": len(names), "pages": paginator.pages_fetched},
    )
    return names


def collect_repository(
    repository: str,
    request: QueryRequest,
    cache: ReplayCache,
    executor: Optional[QueryExecutor] = None,
    ignored_logins: Sequence[str] = (),
    cancel_event: Optional[threading.Event] = None,
) -> Tuple[Aggregator, RepositoryOutcome]:
    """Collect one query identity.

    Terminal errors, including unexpected failures while extracting a page,
    are recorded in the returned outcome rather than raised,
    and the partial aggregate of a failed or cancelled repository is dropped
    so incomplete pagination never reaches the reports.
    """
    aggregator = Aggregator(ignored_logins)
    extractor = PullRequestExtractor()
    outcome = RepositoryOutcome(repository=repository)
    paginator = Paginator(request, cache, executor, cancel_event)

    try:
        for page in paginator:
            aggregator.add_all(extractor.extract(page))
    except MetricsError as exc:
        outcome.ok = False
        outcome.error = f"{type(exc).__name__}: {exc}"
        logger.error(
            "Repository collection failed",
            extra={"repository": repository, "pages": paginator.pages_fetched, "error": outcome.error},
        )
    except Exception as exc:
        outcome.ok = False
        outcome.error = f"{type(exc).__name__}: {exc}"
        logger.exception(
            "Unexpected error while collecting repository",
            extra={"repository": repository, "pages": paginator.pages_fetched},
        )

    if paginator.cancelled:
        outcome.ok = False
        outcome.cancelled = True
        outcome.error = outcome.error or "cancelled"

    outcome.pages = paginator.pages_fetched
    outcome.records = len(aggregator)
    outcome.skipped = extractor.skipped

    if not outcome.ok:
        return Aggregator(ignored_logins), outcome

    logger.info(
        "Collected repository activity",
        extra={
            "repository": repository,
            "pages": outcome.pages,
            "records": outcome.records,
            "skipped_nodes": outcome.skipped,
            "duplicates": aggregator.duplicates,
        },
    )
    return aggregator, outcome


def collect_all(
    config: Config,
    executor: Optional[QueryExecutor] = None,
    cancel_event: Optional[threading.Event] = None,
) -> CollectionResult:
    """Collect every configured repository on a bounded worker pool.

    Repositories are discovered from the organization when none are
    configured. Results are merged in repository order so the output does
    not depend on completion order.

    Raises:
        MetricsError: If repository discovery fails.
    """
    cancel_event = cancel_event or threading.Event()

    repositories = list(config.repositories)
    if not repositories:
        discovery_cache = ReplayCache(config.graphql_dir / ALL_REPOS_SCOPE, config.mode)
        repositories = list_repositories(config.organization, discovery_cache, executor, cancel_event)

    cache = ReplayCache(config.graphql_dir / REPO_PARTICIPANTS_SCOPE, config.mode)
    results: Dict[str, Tuple[Aggregator, RepositoryOutcome]] = {}

    with ThreadPoolExecutor(max_workers=config.workers) as pool:
        futures: Dict[Future, str] = {
            pool.submit(
                collect_repository,
                repository,
                pull_request_search(config.organization, repository, config.start_date, config.end_date),
                cache,
                executor,
                config.ignored_logins,
                cancel_event,
            ): repository
            for repository in repositories
        }
        try:
            for future in as_completed(futures):
                results[futures[future]] = future.result()
        except BaseException:
            cancel_event.set()
            for future in futures:
                future.cancel()
            raise

    merged = Aggregator(config.ignored_logins)
    outcomes: List[RepositoryOutcome] = []
    for repository in repositories:
        aggregator, outcome = results[repository]
        merged.merge(aggregator)
        outcomes.append(outcome)

    return CollectionResult(aggregator=merged, outcomes=outcomes)
