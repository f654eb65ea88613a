"""Report assembly: derived tables, CSV output and the console summary."""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Sequence, Tuple

from .aggregator import Aggregator
from .config import Config, HighContributorConfig
from .models import (
    ContributorRow,
    HighContributorRow,
    RepoParticipantRow,
    RepositoryOutcome,
    RepositoryRow,
)
from .stats import format_duration, percentage

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"


def _top_participant(
    participants: Sequence[RepoParticipantRow],
    num_prs: int,
    key: Callable[[RepoParticipantRow], int],
) -> Tuple[str, int]:
    """Participant with the highest ``key`` and that value as a % of PRs."""
    if not participants:
        return NOT_AVAILABLE, 0
    top = max(participants, key=key)
    return top.participant, percentage(key(top), num_prs)


def _saturation(
    participants: Sequence[RepoParticipantRow],
    num_prs: int,
    threshold_percentage: int,
    key: Callable[[RepoParticipantRow], int],
) -> Tuple[str, int]:
    """Smallest group of participants that together exceeds the threshold.

    Returns the names (with their share of PRs) and the size of the group.
    """
    ranked = sorted(((key(p), p.participant) for p in participants), reverse=True)
    target = num_prs * threshold_percentage // 100

    running_total = 0
    names: List[str] = []
    for count, login in ranked:
        running_total += count
        names.append(f"{login} ({percentage(count, num_prs)}%)")
        if running_total > target:
            break

    return ", ".join(names), len(names)


def is_high_contributor(participant: RepoParticipantRow, num_prs: int, thresholds: HighContributorConfig) -> bool:
    categories = [
        (participant.reviewed_or_merged(), thresholds.reviewer_min_percentage, thresholds.reviewer_min_prs),
        (participant.prs_participated, thresholds.participant_min_percentage, thresholds.participant_min_prs),
        (participant.prs_authored, thresholds.author_min_percentage, thresholds.author_min_prs),
    ]
    high = sum(
        1
        for count, min_percentage, min_prs in categories
        if count >= min_prs and percentage(count, num_prs) >= min_percentage
    )
    return high >= thresholds.categories_threshold


def high_contributor_rows(
    repository_rows: Iterable[RepositoryRow],
    participant_rows: Iterable[RepoParticipantRow],
    thresholds: HighContributorConfig,
) -> List[HighContributorRow]:
    """Build one high-contributor row per repository."""
    by_repository: Dict[str, List[RepoParticipantRow]] = {}
    for row in participant_rows:
        by_repository.setdefault(row.repository, []).append(row)

    rows: List[HighContributorRow] = []
    for repository_row in repository_rows:
        num_prs = repository_row.prs_opened
        in_repo = by_repository.get(repository_row.repository, [])

        top_author, top_author_percentage = _top_participant(in_repo, num_prs, lambda p: p.prs_authored)
        top_reviewer, top_reviewer_percentage = _top_participant(
            in_repo, num_prs, RepoParticipantRow.reviewed_or_merged
        )
        top_participant, top_participant_percentage = _top_participant(
            in_repo, num_prs, lambda p: p.prs_participated
        )
        saturation_author_names, saturation_authors = _saturation(
            in_repo, num_prs, thresholds.author_saturation_threshold, lambda p: p.prs_authored
        )
        saturation_reviewer_names, saturation_reviewers = _saturation(
            in_repo, num_prs, thresholds.reviewer_saturation_threshold, RepoParticipantRow.reviewed_or_merged
        )
        high_contributors = [p.participant for p in in_repo if is_high_contributor(p, num_prs, thresholds)]

        rows.append(
            HighContributorRow(
                repository=repository_row.repository,
                number_of_prs=num_prs,
                total_participants=sum(1 for p in in_repo if p.prs_participated > 0),
                total_authors=sum(1 for p in in_repo if p.prs_authored > 0),
                total_reviewers=sum(1 for p in in_repo if p.reviewed_or_merged() > 0),
                top_author=top_author,
                top_author_percentage=top_author_percentage,
                top_reviewer=top_reviewer,
                top_reviewer_percentage=top_reviewer_percentage,
                top_participant=top_participant,
                top_participant_percentage=top_participant_percentage,
                saturation_authors=saturation_authors,
                saturation_author_names=saturation_author_names,
                saturation_reviewers=saturation_reviewers,
                saturation_reviewer_names=saturation_reviewer_names,
                high_contributors=len(high_contributors),
                high_contributor_names=",".join(high_contributors),
            )
        )

    return rows


def write_csv(path: Path, columns: Sequence[str], rows: Iterable[Dict[str, Any]]) -> Path:
    """Write ``rows`` to ``path`` with a header in ``columns`` order."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=list(columns))
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
    return path


def write_reports(config: Config, aggregator: Aggregator) -> Dict[str, Path]:
    """Write every output table to ``config.output_dir``.

    Returns:
        Mapping of table name to the written file path.
    """
    contributors = aggregator.contributor_rows()
    repositories = aggregator.repository_rows()
    participants = aggregator.repo_participant_rows()
    high_contributors = high_contributor_rows(repositories, participants, config.high_contributor)

    output_dir = config.output_dir
    written = {
        "contributors": write_csv(
            output_dir / "contributors.csv", ContributorRow.COLUMNS, (row.as_row() for row in contributors)
        ),
        "repositories": write_csv(
            output_dir / "repositories.csv", RepositoryRow.COLUMNS, (row.as_row() for row in repositories)
        ),
        "repo-participants": write_csv(
            output_dir / "repo-participants.csv",
            RepoParticipantRow.COLUMNS,
            (row.as_row() for row in participants),
        ),
        "high-contributors": write_csv(
            output_dir / "high-contributors.csv",
            HighContributorRow.COLUMNS,
            (row.as_row() for row in high_contributors),
        ),
    }

    logger.info(
        "Wrote report tables",
        extra={"output_dir": str(output_dir), "tables": sorted(written)},
    )
    return written


def generate_summary(
    organization: str,
    repository_rows: Sequence[RepositoryRow],
    contributor_rows: Sequence[ContributorRow],
    outcomes: Sequence[RepositoryOutcome],
    top: int = 5,
) -> str:
    """Generate a human-readable activity summary.

    Args:
        organization: GitHub organization name.
        repository_rows: Repository table.
        contributor_rows: Contributor table.
        outcomes: Per-repository collection outcomes.
        top: Number of contributors listed.

    Returns:
        Formatted multi-line text report.
    """
    lines = [f"Organization: {organization}", "PR Activity Report", ""]

    lines.append("Repositories")
    for row in repository_rows:
        median = row.median_hours_to_merge
        lines.append(
            f"   {row.repository}: PRs={row.prs_opened} merged={row.prs_merged} "
            f"reviews={row.reviews} participants={row.unique_participants} "
            f"median time to merge={format_duration(None if median is None else median * 3600)}"
        )

    lines.extend(["", f"Top {top} contributors"])
    for row in contributor_rows[:top]:
        lines.append(
            f"   {row.login}: participated={row.prs_participated} authored={row.prs_authored} "
            f"reviews={row.reviews_given} merged={row.prs_merged}"
        )

    failed = [outcome for outcome in outcomes if not outcome.ok]
    if failed:
        lines.extend(["", "Failed repositories"])
        for outcome in failed:
            lines.append(f"   {outcome.repository}: {outcome.error}")

    return "\n".join(lines)
