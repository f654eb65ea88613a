"""Tests for report assembly and CSV output."""

import csv
import sys
from datetime import date
from pathlib import Path

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ghmetrics.aggregator import Aggregator
from ghmetrics.config import Config, HighContributorConfig
from ghmetrics.models import (
    ContributorRow,
    PullRequestActivity,
    RepoParticipantRow,
    RepositoryOutcome,
    RepositoryRow,
)
from ghmetrics.report import generate_summary, high_contributor_rows, is_high_contributor, write_reports


def _config(tmp_path: Path) -> Config:
    return Config(
        organization="org",
        repositories=("repo",),
        start_date=date(2026, 1, 1),
        end_date=date(2026, 1, 31),
        token=None,
        data_dir=tmp_path,
    )


def _participant(login: str, participated: int, authored: int = 0, reviewed: int = 0, merged: int = 0):
    return RepoParticipantRow(
        participant=login,
        repository="org/repo",
        prs_participated=participated,
        prs_authored=authored,
        prs_reviewed=reviewed,
        prs_merged=merged,
    )


def test_high_contributor_rows_top_saturation_and_high_contributors():
    """Verify top participants, saturation groups and high contributors for a repository."""
    repository = RepositoryRow(repository="org/repo", prs_opened=20)
    participants = [
        _participant("alice", participated=18, authored=12, reviewed=4),
        _participant("bob", participated=15, authored=6, reviewed=14),
        _participant("carol", participated=3, authored=2, reviewed=0, merged=1),
    ]

    [row] = high_contributor_rows([repository], participants, HighContributorConfig())

    assert row.number_of_prs == 20
    assert row.total_participants == 3
    assert row.total_authors == 3
    assert row.total_reviewers == 3
    assert (row.top_author, row.top_author_percentage) == ("alice", 60)
    assert (row.top_reviewer, row.top_reviewer_percentage) == ("bob", 70)
    assert (row.top_participant, row.top_participant_percentage) == ("alice", 90)
    assert row.saturation_authors == 1
    assert row.saturation_author_names == "alice (60%)"
    assert row.saturation_reviewers == 1
    assert row.saturation_reviewer_names == "bob (70%)"
    assert row.high_contributors == 2
    assert row.high_contributor_names == "alice,bob"


def test_high_contributor_rows_without_participants():
    """Verify a repository with no participants reports N/A tops."""
    [row] = high_contributor_rows([RepositoryRow(repository="org/empty")], [], HighContributorConfig())

    assert row.top_author == "N/A"
    assert row.top_author_percentage == 0
    assert row.saturation_authors == 0
    assert row.high_contributor_names == ""


def test_is_high_contributor_requires_both_percentage_and_count():
    """Verify a category needs both the percentage and the absolute threshold."""
    thresholds = HighContributorConfig(categories_threshold=1, author_min_prs=10, author_min_percentage=5)

    assert is_high_contributor(_participant("a", participated=0, authored=10), 100, thresholds)
    assert not is_high_contributor(_participant("b", participated=0, authored=9), 100, thresholds)
    assert not is_high_contributor(_participant("c", participated=0, authored=10), 1000, thresholds)


def test_write_reports_writes_tables_with_fixed_columns(tmp_path):
    """Verify every table is written with its header in column order."""
    aggregator = Aggregator()
    aggregator.add(
        PullRequestActivity(
            repository="org/repo",
            number=1,
            author="alice",
            merged_by=None,
            created_at=None,
            merged_at=None,
            reviewers=["bob"],
            reviews_fetched=1,
            reviews_total=1,
            participants=["alice", "bob"],
            participants_total=2,
        )
    )

    written = write_reports(_config(tmp_path), aggregator)

    assert set(written) == {"contributors", "repositories", "repo-participants", "high-contributors"}
    with written["contributors"].open(newline="", encoding="utf-8") as handle:
        rows = list(csv.reader(handle))
    assert rows[0] == list(ContributorRow.COLUMNS)
    assert rows[1][:3] == ["alice", "1", "0"]
    assert rows[1][-1] == ""
    with written["repositories"].open(newline="", encoding="utf-8") as handle:
        repository_rows = list(csv.DictReader(handle))
    assert repository_rows[0]["repository"] == "org/repo"
    assert repository_rows[0]["unique_participants"] == "2"
    assert (tmp_path / "output" / "high-contributors.csv").exists()


def test_generate_summary_lists_repositories_contributors_and_failures():
    """Verify the console summary includes every section."""
    summary = generate_summary(
        organization="org",
        repository_rows=[RepositoryRow(repository="org/repo", prs_opened=2, reviews=3, median_hours_to_merge=1.5)],
        contributor_rows=[ContributorRow(login="alice", prs_authored=2, prs_participated=2)],
        outcomes=[RepositoryOutcome(repository="broken", ok=False, error="TransportError: 502")],
    )

    assert "Organization: org" in summary
    assert "org/repo: PRs=2" in summary
    assert "median time to merge=01:30:00" in summary
    assert "alice: participated=2 authored=2" in summary
    assert "broken: TransportError: 502" in summary
