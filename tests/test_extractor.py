"""Tests for extraction of activity records from GraphQL pages."""

import sys
from datetime import datetime, timezone
from pathlib import Path

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ghmetrics.extractor import PullRequestExtractor, decode_actor, extract_repository_names
from ghmetrics.models import OtherActor, QueryResponse, UserActor


def _user(login: str) -> dict:
    return {"__typename": "User", "login": login}


def _pr_node(
    number: int,
    author: dict | None = None,
    reviewers: tuple = (),
    participants: tuple = (),
    merged_by: dict | None = None,
    repository: str = "org/repo",
    reviews_total: int | None = None,
) -> dict:
    return {
        "__typename": "PullRequest",
        "number": number,
        "createdAt": "2026-01-01T00:00:00Z",
        "mergedAt": "2026-01-01T06:00:00Z" if merged_by else None,
        "repository": {"nameWithOwner": repository},
        "author": author,
        "mergedBy": merged_by,
        "reviews": {
            "totalCount": reviews_total if reviews_total is not None else len(reviewers),
            "nodes": [{"author": reviewer} for reviewer in reviewers],
        },
        "participants": {
            "totalCount": len(participants),
            "nodes": [_user(login) for login in participants],
        },
    }


def _page(nodes: list) -> QueryResponse:
    data = {"search": {"pageInfo": {"hasNextPage": False, "endCursor": None}, "nodes": nodes}}
    return QueryResponse(data=data, has_next_page=False, end_cursor=None)


def test_decode_actor_user_and_other_variants():
    """Verify actors decode to users only for User nodes with a login."""
    assert decode_actor(_user("alice")) == UserActor(login="alice")
    assert decode_actor({"__typename": "Bot", "login": "dependabot"}) == OtherActor(typename="Bot")
    assert decode_actor({"__typename": "Organization", "login": "org"}) == OtherActor(typename="Organization")
    assert decode_actor({"login": "ghost"}) == OtherActor()
    assert decode_actor({"__typename": "User", "login": ""}) == OtherActor(typename="User")
    assert decode_actor(None) == OtherActor()


def test_extract_pull_request_record_fields():
    """Verify a pull request node is flattened with reviewers, participants and totals."""
    node = _pr_node(
        12,
        author=_user("alice"),
        reviewers=(_user("bob"), _user("carol"), _user("bob")),
        participants=("alice", "bob", "carol"),
        merged_by=_user("carol"),
    )

    [record] = PullRequestExtractor().extract(_page([node]))

    assert record.key == ("org/repo", 12)
    assert record.author == "alice"
    assert record.merged_by == "carol"
    assert record.reviewers == ["bob", "carol", "bob"]
    assert record.reviews_fetched == 3
    assert record.participants == ["alice", "bob", "carol"]
    assert record.created_at == datetime(2026, 1, 1, tzinfo=timezone.utc)
    assert record.merged_at == datetime(2026, 1, 1, 6, tzinfo=timezone.utc)


def test_extract_preserves_reported_totals_above_fetched_counts():
    """Verify truncated connections keep both fetched and reported totals."""
    node = _pr_node(1, author=_user("alice"), reviewers=(_user("bob"),), reviews_total=250)
    node["participants"]["totalCount"] = 140

    [record] = PullRequestExtractor().extract(_page([node]))

    assert record.reviews_fetched == 1
    assert record.reviews_total == 250
    assert record.participants_total == 140


def test_extract_null_fills_non_user_actors():
    """Verify bot and deleted authors become None instead of failing."""
    bot_pr = _pr_node(1, author={"__typename": "Bot", "login": "renovate"}, reviewers=({"__typename": "Bot", "login": "ci"},))
    ghost_pr = _pr_node(2, author=None)

    first, second = PullRequestExtractor().extract(_page([bot_pr, ghost_pr]))

    assert first.author is None
    assert first.reviewers == []
    assert first.reviews_fetched == 1
    assert second.author is None


def test_extract_skips_unexpected_nodes_and_counts_them():
    """Verify non pull request nodes are skipped while order is preserved."""
    extractor = PullRequestExtractor()
    nodes = [
        _pr_node(3, author=_user("alice")),
        {"__typename": "Issue", "number": 4},
        None,
        {"__typename": "PullRequest", "number": 5, "repository": None},
        {"__typename": "PullRequest", "number": 6, "repository": "org/repo"},
        {"__typename": "PullRequest", "number": 7, "repository": ["org/repo"]},
        _pr_node(1, author=_user("bob")),
    ]

    records = extractor.extract(_page(nodes))

    assert [record.number for record in records] == [3, 1]
    assert extractor.skipped == 5


def test_extract_deduplicates_participants_within_a_pull_request():
    """Verify the participant list holds unique logins in first-seen order."""
    node = _pr_node(1, author=_user("alice"), participants=("bob", "alice", "bob"))

    [record] = PullRequestExtractor().extract(_page([node]))

    assert record.participants == ["bob", "alice"]


def test_extract_repository_names_skips_archived():
    """Verify repository listing keeps node order and drops archived repositories."""
    data = {
        "organization": {
            "repositories": {
                "pageInfo": {"hasNextPage": False, "endCursor": None},
                "nodes": [
                    {"name": "api", "isArchived": False},
                    {"name": "legacy", "isArchived": True},
                    {"name": "web", "isArchived": False},
                ],
            }
        }
    }
    page = QueryResponse(data=data, has_next_page=False, end_cursor=None)

    assert extract_repository_names(page) == ["api", "web"]
    assert extract_repository_names(page, include_archived=True) == ["api", "legacy", "web"]
