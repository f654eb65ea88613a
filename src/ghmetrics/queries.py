"""Named GraphQL query templates and page parsing.

Each template declares the path of the paginated connection inside the
response ``data`` so pagination metadata can be read uniformly.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Optional, Tuple

from .errors import ConfigurationError, MalformedPageError
from .models import QueryRequest, QueryResponse

PRS_AND_PARTICIPANTS = "prs-and-participants"
ORG_REPOS = "org-repos"


@dataclass(frozen=True)
class QueryTemplate:
    """A reusable GraphQL query and the location of its paginated connection."""

    name: str
    text: str
    connection_path: Tuple[str, ...]


_PRS_AND_PARTICIPANTS_QUERY = """
query PrsAndParticipants($queryString: String!, $afterCursor: String) {
  search(query: $queryString, type: ISSUE, first: 50, after: $afterCursor) {
    issueCount
    pageInfo {
      hasNextPage
      endCursor
    }
    nodes {
      __typename
      ... on PullRequest {
        number
        createdAt
        mergedAt
        repository {
          nameWithOwner
        }
        author {
          __typename
          login
        }
        mergedBy {
          __typename
          login
        }
        reviews(first: 100) {
          totalCount
          nodes {
            author {
              __typename
              login
            }
          }
        }
        participants(first: 100) {
          totalCount
          nodes {
            __typename
            login
          }
        }
      }
    }
  }
}
""".strip()

_ORG_REPOS_QUERY = """
query OrgRepos($orgName: String!, $afterCursor: String) {
  organization(login: $orgName) {
    repositories(first: 100, after: $afterCursor, orderBy: {field: NAME, direction: ASC}) {
      pageInfo {
        hasNextPage
        endCursor
      }
      nodes {
        name
        isArchived
      }
    }
  }
}
""".strip()

TEMPLATES: Dict[str, QueryTemplate] = {
    PRS_AND_PARTICIPANTS: QueryTemplate(
        name=PRS_AND_PARTICIPANTS,
        text=_PRS_AND_PARTICIPANTS_QUERY,
        connection_path=("search",),
    ),
    ORG_REPOS: QueryTemplate(
        name=ORG_REPOS,
        text=_ORG_REPOS_QUERY,
        connection_path=("organization", "repositories"),
    ),
}


def get_template(name: str) -> QueryTemplate:
    """Look up a registered template by name.

    Raises:
        ConfigurationError: If no template is registered under ``name``.
    """
    try:
        return TEMPLATES[name]
    except KeyError as exc:
        raise ConfigurationError(f"Unknown GraphQL query template '{name}'.") from exc


def connection(template_name: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Return the paginated connection object inside ``data``.

    Raises:
        MalformedPageError: If any segment of the connection path is missing.
    """
    template = get_template(template_name)
    node: Any = data
    for segment in template.connection_path:
        if not isinstance(node, dict) or not isinstance(node.get(segment), dict):
            raise MalformedPageError(
                f"Response for '{template_name}' is missing '{'.'.join(template.connection_path)}'."
            )
        node = node[segment]
    return node


def parse_page(template_name: str, data: Any) -> QueryResponse:
    """Build a ``QueryResponse`` from a raw ``data`` payload.

    Raises:
        MalformedPageError: If ``pageInfo.hasNextPage`` is absent or not boolean.
    """
    if not isinstance(data, dict):
        raise MalformedPageError(f"Response for '{template_name}' has no data object.")

    page_info = connection(template_name, data).get("pageInfo")
    if not isinstance(page_info, dict) or not isinstance(page_info.get("hasNextPage"), bool):
        raise MalformedPageError(f"Response for '{template_name}' is missing pageInfo.hasNextPage.")

    end_cursor = page_info.get("endCursor")
    return QueryResponse(
        data=data,
        has_next_page=page_info["hasNextPage"],
        end_cursor=end_cursor if isinstance(end_cursor, str) and end_cursor else None,
    )


def pull_request_search(org: str, repo: str, start: date, end: date) -> QueryRequest:
    """Build the first-page request for PRs created in ``[start, end]``."""
    query_string = f"repo:{org}/{repo} is:pr created:{start.isoformat()}..{end.isoformat()}"
    return QueryRequest(template=PRS_AND_PARTICIPANTS, params={"queryString": query_string})


def organization_repositories(org: str, cursor: Optional[str] = None) -> QueryRequest:
    """Build the request listing repositories of ``org``."""
    return QueryRequest(template=ORG_REPOS, params={"orgName": org}, cursor=cursor)
