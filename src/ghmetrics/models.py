"""Domain models for GitHub pull-request activity metrics.

These dataclasses intentionally model only the subset of GraphQL payload
fields that are required for the activity tables.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple, Union


@dataclass(frozen=True, slots=True)
class QueryRequest:
    """One page request for a named GraphQL template."""

    template: str
    params: Mapping[str, Any]
    cursor: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    def with_cursor(self, cursor: Optional[str]) -> "QueryRequest":
        """Return the same query positioned at ``cursor``."""
        return QueryRequest(template=self.template, params=self.params, cursor=cursor)

    def variables(self) -> Dict[str, Any]:
        """GraphQL variables sent with the request."""
        variables = dict(self.params)
        variables["afterCursor"] = self.cursor
        return variables

    def describe(self) -> str:
        return f"{self.template}{dict(self.params)} cursor={self.cursor!r}"


@dataclass(slots=True)
class QueryResponse:
    """Raw GraphQL ``data`` payload of one page plus its pagination metadata."""

    data: Dict[str, Any]
    has_next_page: bool
    end_cursor: Optional[str]


@dataclass(frozen=True, slots=True)
class UserActor:
    """A GitHub user account with a login."""

    login: str


@dataclass(frozen=True, slots=True)
class OtherActor:
    """Any non-user actor (bot, organization, mannequin, deleted account)."""

    typename: Optional[str] = None


Actor = Union[UserActor, OtherActor]


@dataclass(slots=True)
class PullRequestActivity:
    """One pull request flattened from a search result node.

    ``reviews_total`` and ``participants_total`` are the API-reported totals and
    may exceed what was fetched when the nested connections were truncated.
    """

    repository: str
    number: int
    author: Optional[str]
    merged_by: Optional[str]
    created_at: Optional[datetime]
    merged_at: Optional[datetime]
    reviewers: List[str] = field(default_factory=list)
    reviews_fetched: int = 0
    reviews_total: int = 0
    participants: List[str] = field(default_factory=list)
    participants_total: int = 0

    @property
    def key(self) -> Tuple[str, int]:
        return (self.repository, self.number)


@dataclass(slots=True)
class RepositoryOutcome:
    """Result of collecting one query identity (one repository)."""

    repository: str
    ok: bool = True
    pages: int = 0
    records: int = 0
    skipped: int = 0
    cancelled: bool = False
    error: Optional[str] = None


@dataclass(slots=True)
class ContributorRow:
    """Activity of one contributor across all collected repositories."""

    COLUMNS: ClassVar[Tuple[str, ...]] = (
        "login",
        "prs_authored",
        "prs_merged",
        "reviews_given",
        "prs_reviewed",
        "prs_participated",
        "repositories",
        "median_hours_to_merge",
    )

    login: str
    prs_authored: int = 0
    prs_merged: int = 0
    reviews_given: int = 0
    prs_reviewed: int = 0
    prs_participated: int = 0
    repositories: int = 0
    median_hours_to_merge: Optional[float] = None

    def as_row(self) -> Dict[str, Any]:
        return {column: getattr(self, column) for column in self.COLUMNS}


@dataclass(slots=True)
class RepositoryRow:
    """Pull-request activity of one repository."""

    COLUMNS: ClassVar[Tuple[str, ...]] = (
        "repository",
        "prs_opened",
        "prs_merged",
        "unique_participants",
        "participants_reported",
        "reviews",
        "reviews_reported",
        "unique_reviewers",
        "reviews_per_pr",
        "median_hours_to_merge",
    )

    repository: str
    prs_opened: int = 0
    prs_merged: int = 0
    unique_participants: int = 0
    participants_reported: int = 0
    reviews: int = 0
    reviews_reported: int = 0
    unique_reviewers: int = 0
    reviews_per_pr: Optional[float] = None
    median_hours_to_merge: Optional[float] = None

    def as_row(self) -> Dict[str, Any]:
        return {column: getattr(self, column) for column in self.COLUMNS}


@dataclass(slots=True)
class RepoParticipantRow:
    """Activity of one contributor within one repository."""

    COLUMNS: ClassVar[Tuple[str, ...]] = (
        "participant",
        "repository",
        "prs_participated",
        "prs_authored",
        "prs_reviewed",
        "prs_merged",
    )

    participant: str
    repository: str
    prs_participated: int = 0
    prs_authored: int = 0
    prs_reviewed: int = 0
    prs_merged: int = 0

    def reviewed_or_merged(self) -> int:
        return max(self.prs_reviewed, self.prs_merged)

    def as_row(self) -> Dict[str, Any]:
        return {column: getattr(self, column) for column in self.COLUMNS}


@dataclass(slots=True)
class HighContributorRow:
    """Concentration of authoring, reviewing and participation in one repository."""

    COLUMNS: ClassVar[Tuple[str, ...]] = (
        "repository",
        "number_of_prs",
        "total_participants",
        "total_authors",
        "total_reviewers",
        "top_author",
        "top_author_percentage",
        "top_reviewer",
        "top_reviewer_percentage",
        "top_participant",
        "top_participant_percentage",
        "saturation_authors",
        "saturation_author_names",
        "saturation_reviewers",
        "saturation_reviewer_names",
        "high_contributors",
        "high_contributor_names",
    )

    repository: str
    number_of_prs: int
    total_participants: int
    total_authors: int
    total_reviewers: int
    top_author: str
    top_author_percentage: int
    top_reviewer: str
    top_reviewer_percentage: int
    top_participant: str
    top_participant_percentage: int
    saturation_authors: int
    saturation_author_names: str
    saturation_reviewers: int
    saturation_reviewer_names: str
    high_contributors: int
    high_contributor_names: str

    def as_row(self) -> Dict[str, Any]:
        return {column: getattr(self, column) for column in self.COLUMNS}
