"""Reduction of pull-request activity records into summary tables.

Records are deduplicated on ``(repository, number)`` with the most recently
added record winning, so overlapping pages from retries or replays count
once. Tables are computed in two passes: exact integer tallies first, then
derived rates and medians once every record has been seen.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .models import ContributorRow, PullRequestActivity, RepoParticipantRow, RepositoryRow
from .stats import median_hours, ratio

logger = logging.getLogger(__name__)


def _merge_seconds(record: PullRequestActivity) -> Optional[float]:
    if record.created_at is None or record.merged_at is None:
        return None
    seconds = (record.merged_at - record.created_at).total_seconds()
    if seconds < 0:
        logger.debug(
            "Ignoring negative merge duration",
            extra={"repository": record.repository, "number": record.number},
        )
        return None
    return seconds


def _involved(record: PullRequestActivity) -> List[str]:
    """Participants plus author, merger and reviewers, without duplicates."""
    involved = dict.fromkeys(record.participants)
    for login in [record.author, record.merged_by, *record.reviewers]:
        if login is not None:
            involved[login] = None
    return list(involved)


class Aggregator:
    """Accumulates deduplicated records and produces per-entity rows.

    An aggregator is not synchronized: use one per query identity and
    ``merge`` them once collection has finished.
    """

    def __init__(self, ignored_logins: Iterable[str] = ()) -> None:
        self._records: Dict[Tuple[str, int], PullRequestActivity] = {}
        self._ignored_logins = frozenset(ignored_logins)
        self.duplicates = 0

    def __len__(self) -> int:
        return len(self._records)

    def add(self, record: PullRequestActivity) -> None:
        if record.key in self._records:
            self.duplicates += 1
        self._records[record.key] = record

    def add_all(self, records: Iterable[PullRequestActivity]) -> None:
        for record in records:
            self.add(record)

    def merge(self, other: "Aggregator") -> None:
        """Fold ``other``'s records into this aggregator (``other`` wins on conflicts)."""
        self.add_all(other.records())
        self.duplicates += other.duplicates

    def records(self) -> List[PullRequestActivity]:
        return list(self._records.values())

    def _is_counted(self, login: Optional[str]) -> bool:
        return login is not None and login not in self._ignored_logins

    def contributor_rows(self) -> List[ContributorRow]:
        """One row per contributor login, busiest participants first."""
        rows: Dict[str, ContributorRow] = {}
        repositories: Dict[str, Set[str]] = defaultdict(set)
        merge_seconds: Dict[str, List[float]] = defaultdict(list)

        def row_for(login: str) -> ContributorRow:
            if login not in rows:
                rows[login] = ContributorRow(login=login)
            return rows[login]

        for record in self._records.values():
            if self._is_counted(record.author):
                row_for(record.author).prs_authored += 1
                repositories[record.author].add(record.repository)
                seconds = _merge_seconds(record)
                if seconds is not None:
                    merge_seconds[record.author].append(seconds)

            if self._is_counted(record.merged_by):
                row_for(record.merged_by).prs_merged += 1
                repositories[record.merged_by].add(record.repository)

            for reviewer in record.reviewers:
                if self._is_counted(reviewer):
                    row_for(reviewer).reviews_given += 1
                    repositories[reviewer].add(record.repository)
            for reviewer in dict.fromkeys(record.reviewers):
                if self._is_counted(reviewer):
                    row_for(reviewer).prs_reviewed += 1

            for participant in _involved(record):
                if self._is_counted(participant):
                    row_for(participant).prs_participated += 1
                    repositories[participant].add(record.repository)

        for login, row in rows.items():
            row.repositories = len(repositories[login])
            row.median_hours_to_merge = median_hours(merge_seconds[login])

        return sorted(rows.values(), key=lambda row: (-row.prs_participated, -row.prs_authored, row.login))

    def repository_rows(self) -> List[RepositoryRow]:
        """One row per repository, ordered by repository name."""
        rows: Dict[str, RepositoryRow] = {}
        participants: Dict[str, Set[str]] = defaultdict(set)
        reviewers: Dict[str, Set[str]] = defaultdict(set)
        merge_seconds: Dict[str, List[float]] = defaultdict(list)

        for record in self._records.values():
            row = rows.setdefault(record.repository, RepositoryRow(repository=record.repository))
            row.prs_opened += 1
            if record.merged_at is not None:
                row.prs_merged += 1
            row.reviews += record.reviews_fetched
            row.reviews_reported += record.reviews_total
            row.participants_reported += record.participants_total
            participants[record.repository].update(record.participants)
            reviewers[record.repository].update(record.reviewers)
            seconds = _merge_seconds(record)
            if seconds is not None:
                merge_seconds[record.repository].append(seconds)

        for repository, row in rows.items():
            row.unique_participants = len(participants[repository])
            row.unique_reviewers = len(reviewers[repository])
            row.reviews_per_pr = ratio(row.reviews, row.prs_opened)
            row.median_hours_to_merge = median_hours(merge_seconds[repository])

        return sorted(rows.values(), key=lambda row: row.repository)

    def repo_participant_rows(self) -> List[RepoParticipantRow]:
        """One row per (repository, participant) pair."""
        rows: Dict[Tuple[str, str], RepoParticipantRow] = {}

        def row_for(repository: str, login: str) -> RepoParticipantRow:
            key = (repository, login)
            if key not in rows:
                rows[key] = RepoParticipantRow(participant=login, repository=repository)
            return rows[key]

        for record in self._records.values():
            if self._is_counted(record.author):
                row_for(record.repository, record.author).prs_authored += 1
            if self._is_counted(record.merged_by):
                row_for(record.repository, record.merged_by).prs_merged += 1
            for reviewer in dict.fromkeys(record.reviewers):
                if self._is_counted(reviewer):
                    row_for(record.repository, reviewer).prs_reviewed += 1
            for login in _involved(record):
                if self._is_counted(login):
                    row_for(record.repository, login).prs_participated += 1

        return sorted(
            rows.values(),
            key=lambda row: (row.repository, -row.prs_participated, row.participant),
        )
