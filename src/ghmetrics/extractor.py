"""Extraction of typed activity records from raw GraphQL pages.

Search results are polymorphic: a node may be a pull request or an issue,
and actors may be users, bots, organizations or deleted accounts. Unexpected
shapes are skipped or null-filled; a single odd node never fails a page.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .models import Actor, OtherActor, PullRequestActivity, QueryResponse, UserActor
from .queries import ORG_REPOS, PRS_AND_PARTICIPANTS, connection

logger = logging.getLogger(__name__)


def _parse_datetime(value: Any) -> Optional[datetime]:
    """Parse GitHub ISO8601 timestamps into timezone-aware datetimes."""
    if not isinstance(value, str) or not value:
        return None

    normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def decode_actor(node: Any) -> Actor:
    """Decode an ``Actor`` interface node.

    Only ``User`` nodes with a non-empty login become ``UserActor``; anything
    else, including unknown or missing ``__typename``, is ``OtherActor``.
    """
    if not isinstance(node, dict):
        return OtherActor()

    typename = node.get("__typename")
    login = node.get("login")
    if typename == "User" and isinstance(login, str) and login:
        return UserActor(login=login)
    return OtherActor(typename=typename if isinstance(typename, str) else None)


def actor_login(node: Any) -> Optional[str]:
    actor = decode_actor(node)
    return actor.login if isinstance(actor, UserActor) else None


def _nodes(value: Any) -> List[Any]:
    if not isinstance(value, dict):
        return []
    nodes = value.get("nodes")
    return nodes if isinstance(nodes, list) else []


def _total_count(value: Any, fallback: int) -> int:
    if isinstance(value, dict) and isinstance(value.get("totalCount"), int):
        return value["totalCount"]
    return fallback


class PullRequestExtractor:
    """Maps ``prs-and-participants`` pages to ``PullRequestActivity`` records.

    ``skipped`` counts nodes that were not usable pull requests across every
    page this extractor has processed.
    """

    def __init__(self) -> None:
        self.skipped = 0

    def extract(self, page: QueryResponse) -> List[PullRequestActivity]:
        """Return one record per pull-request node, in node order."""
        records: List[PullRequestActivity] = []

        for node in _nodes(connection(PRS_AND_PARTICIPANTS, page.data)):
            record = self._extract_node(node)
            if record is None:
                self.skipped += 1
                continue
            records.append(record)

        return records

    def _extract_node(self, node: Any) -> Optional[PullRequestActivity]:
        if not isinstance(node, dict) or node.get("__typename") != "PullRequest":
            logger.debug(
                "Skipping non pull request search node",
                extra={"typename": node.get("__typename") if isinstance(node, dict) else None},
            )
            return None

        repository_node = node.get("repository")
        repository = repository_node.get("nameWithOwner") if isinstance(repository_node, dict) else None
        number = node.get("number")
        if not isinstance(repository, str) or not repository or not isinstance(number, int):
            logger.debug("Skipping pull request node without repository or number", extra={"node": node})
            return None

        reviews = node.get("reviews")
        review_nodes = _nodes(reviews)
        reviewers: List[str] = []
        for review in review_nodes:
            login = actor_login(review.get("author") if isinstance(review, dict) else None)
            if login is not None:
                reviewers.append(login)

        participants_connection = node.get("participants")
        participant_nodes = _nodes(participants_connection)
        participants: Dict[str, None] = {}
        for participant in participant_nodes:
            if not isinstance(participant, dict):
                continue
            login = participant.get("login")
            # Participants are always users; older payloads omit __typename.
            if isinstance(login, str) and login and participant.get("__typename", "User") == "User":
                participants[login] = None

        return PullRequestActivity(
            repository=repository,
            number=number,
            author=actor_login(node.get("author")),
            merged_by=actor_login(node.get("mergedBy")),
            created_at=_parse_datetime(node.get("createdAt")),
            merged_at=_parse_datetime(node.get("mergedAt")),
            reviewers=reviewers,
            reviews_fetched=len(review_nodes),
            reviews_total=_total_count(reviews, len(review_nodes)),
            participants=list(participants),
            participants_total=_total_count(participants_connection, len(participant_nodes)),
        )


def extract_repository_names(page: QueryResponse, include_archived: bool = False) -> List[str]:
    """Return repository names from an ``org-repos`` page, in node order."""
    names: List[str] = []
    for node in _nodes(connection(ORG_REPOS, page.data)):
        if not isinstance(node, dict):
            continue
        name = node.get("name")
        if not isinstance(name, str) or not name:
            continue
        if node.get("isArchived") and not include_archived:
            continue
        names.append(name)
    return names
