"""Configuration parsing and validation for the GitHub metrics collector."""

from __future__ import annotations

import json
import logging
import os
import subprocess
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional, Tuple

from .errors import AuthenticationError, ConfigurationError, StorageError

logger = logging.getLogger(__name__)

WINDOW_FILE = "window.json"


class Mode(str, Enum):
    """Whether responses come from the network (recording them) or from disk only."""

    LIVE = "live"
    REPLAY = "replay"


@dataclass(frozen=True)
class HighContributorConfig:
    """Thresholds for the high-contributor table.

    Percentages are relative to the number of PRs in the repository. A
    participant is "high" in a category when both the percentage and the
    absolute PR count thresholds are met; a high contributor is high in at
    least ``categories_threshold`` categories.
    """

    reviewer_min_percentage: int = 5
    reviewer_min_prs: int = 10
    participant_min_percentage: int = 5
    participant_min_prs: int = 10
    author_min_percentage: int = 5
    author_min_prs: int = 10
    categories_threshold: int = 2
    reviewer_saturation_threshold: int = 50
    author_saturation_threshold: int = 50


@dataclass(frozen=True)
class Config:
    """Validated runtime settings used by the metrics collector."""

    organization: str
    repositories: Tuple[str, ...]
    start_date: date
    end_date: date
    token: Optional[str]
    data_dir: Path
    mode: Mode = Mode.LIVE
    workers: int = 4
    timeout_seconds: int = 30
    ignored_logins: Tuple[str, ...] = ()
    high_contributor: HighContributorConfig = field(default_factory=HighContributorConfig)

    @property
    def graphql_dir(self) -> Path:
        return self.data_dir / "graphql"

    @property
    def output_dir(self) -> Path:
        return self.data_dir / "output"


def _token_from_git_config() -> Optional[str]:
    """Read ``github.oauth-token`` from git configuration, if git is available."""
    try:
        result = subprocess.run(
            ["git", "config", "--get", "github.oauth-token"],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError:
        logger.debug("git is not available for token lookup")
        return None

    if result.returncode != 0:
        return None
    token = result.stdout.strip()
    return token or None


def resolve_github_token() -> Optional[str]:
    """Find a GitHub token in ``GITHUB_TOKEN`` or in git configuration."""
    token = os.getenv("GITHUB_TOKEN", "").strip()
    if token:
        return token
    return _token_from_git_config()


def resolve_date_window(
    days: Optional[int],
    start: Optional[date],
    end: Optional[date],
    today: Optional[date] = None,
) -> Tuple[date, date]:
    """Resolve the inclusive ``created`` date window to search.

    Explicit ``start``/``end`` win; otherwise the window covers the last
    ``days`` days ending today (UTC). ``end`` alone defaults ``start`` to
    ``days`` before it.

    Raises:
        ConfigurationError: If ``days`` is not positive or the window is inverted.
    """
    if days is not None and days <= 0:
        raise ConfigurationError("Invalid value for 'days': expected an integer greater than 0.")

    end_date = end or today or datetime.now(timezone.utc).date()
    start_date = start or end_date - timedelta(days=days or 30)

    if start_date > end_date:
        raise ConfigurationError(
            f"Invalid date window: start {start_date.isoformat()} is after end {end_date.isoformat()}."
        )
    return start_date, end_date


def record_date_window(config: Config) -> Path:
    """Persist the resolved window next to the recorded responses.

    The window is part of every search query, so a later replay without
    explicit dates reads it back to rebuild identical requests.

    Raises:
        StorageError: If the file cannot be written.
    """
    path = config.graphql_dir / WINDOW_FILE
    tmp_path = path.with_suffix(".json.tmp")
    record = {
        "organization": config.organization,
        "start_date": config.start_date.isoformat(),
        "end_date": config.end_date.isoformat(),
    }

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(record, handle, indent=2, sort_keys=True)
            handle.write("\n")
        os.replace(tmp_path, path)
    except OSError as exc:
        raise StorageError(f"Failed to write date window {path}: {exc}") from exc

    return path


def load_recorded_date_window(graphql_dir: Path) -> Tuple[date, date]:
    """Read the window saved by the last live run in ``graphql_dir``.

    Raises:
        ConfigurationError: If no usable window was recorded.
    """
    path = graphql_dir / WINDOW_FILE
    try:
        with path.open("r", encoding="utf-8") as handle:
            record = json.load(handle)
        start_date = date.fromisoformat(record["start_date"])
        end_date = date.fromisoformat(record["end_date"])
    except FileNotFoundError as exc:
        raise ConfigurationError(
            f"No recorded date window in {graphql_dir}; pass --start and --end to replay."
        ) from exc
    except (OSError, ValueError, KeyError, TypeError) as exc:
        raise ConfigurationError(f"Unreadable recorded date window {path}: {exc}") from exc

    if start_date > end_date:
        raise ConfigurationError(f"Recorded date window in {path} is inverted.")
    return start_date, end_date


def build_high_contributor_config(
    min_percentage: Optional[int] = None,
    min_prs: Optional[int] = None,
    categories: Optional[int] = None,
    reviewer_saturation: Optional[int] = None,
    author_saturation: Optional[int] = None,
) -> HighContributorConfig:
    """Override the default high-contributor thresholds.

    ``min_percentage`` and ``min_prs`` apply to the reviewer, participant and
    author categories alike. ``None`` keeps the default.

    Raises:
        ConfigurationError: If a percentage is outside 0-100 or a count is negative.
    """
    overrides = {}
    percentages = (
        ("min_percentage", min_percentage),
        ("reviewer_saturation", reviewer_saturation),
        ("author_saturation", author_saturation),
    )
    for name, value in percentages:
        if value is not None and not 0 <= value <= 100:
            raise ConfigurationError(f"Invalid value for '{name}': expected a percentage between 0 and 100.")
    for name, value in (("min_prs", min_prs), ("categories", categories)):
        if value is not None and value < 0:
            raise ConfigurationError(f"Invalid value for '{name}': expected a non-negative integer.")

    if min_percentage is not None:
        overrides.update(
            reviewer_min_percentage=min_percentage,
            participant_min_percentage=min_percentage,
            author_min_percentage=min_percentage,
        )
    if min_prs is not None:
        overrides.update(reviewer_min_prs=min_prs, participant_min_prs=min_prs, author_min_prs=min_prs)
    if categories is not None:
        overrides["categories_threshold"] = categories
    if reviewer_saturation is not None:
        overrides["reviewer_saturation_threshold"] = reviewer_saturation
    if author_saturation is not None:
        overrides["author_saturation_threshold"] = author_saturation

    return replace(HighContributorConfig(), **overrides)


def load_config(
    organization: str,
    repositories: Iterable[str] = (),
    days: Optional[int] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    data_dir: str = "data",
    replay: bool = False,
    workers: int = 4,
    ignored_logins: Iterable[str] = (),
    high_contributor: Optional[HighContributorConfig] = None,
) -> Config:
    """Build and validate application configuration.

    Args:
        organization: GitHub organization (owner) login.
        repositories: Repository names within the organization; empty means
            every repository of the organization.
        days: Positive number of days of history to query (default 30). In
            replay mode without any window argument, the window recorded by
            the last live run in ``data_dir`` is used instead.
        start: Optional explicit first day of the window.
        end: Optional explicit last day of the window.
        data_dir: Directory holding the replay cache and outputs.
        replay: Serve every response from the replay cache.
        workers: Number of repositories collected concurrently.
        ignored_logins: Logins (typically bots) left out of contributor tables.
        high_contributor: Thresholds for the high-contributor table; defaults
            when omitted.

    Returns:
        A validated ``Config`` instance.

    Raises:
        ConfigurationError: If a value is invalid.
        AuthenticationError: If no token can be found in live mode.
    """
    organization = organization.strip()
    if not organization:
        raise ConfigurationError("Invalid value for 'organization': expected a non-empty name.")

    if workers <= 0:
        raise ConfigurationError("Invalid value for 'workers': expected an integer greater than 0.")

    mode = Mode.REPLAY if replay else Mode.LIVE
    if mode is Mode.REPLAY and days is None and start is None and end is None:
        start_date, end_date = load_recorded_date_window(Path(data_dir) / "graphql")
    else:
        start_date, end_date = resolve_date_window(days, start, end)

    repo_names = []
    for name in repositories:
        normalized = name.strip()
        # Accept "org/repo" as well as "repo".
        if "/" in normalized:
            owner, _, normalized = normalized.partition("/")
            if owner != organization:
                raise ConfigurationError(
                    f"Repository '{name}' does not belong to organization '{organization}'."
                )
        if normalized and normalized not in repo_names:
            repo_names.append(normalized)

    token = resolve_github_token()
    if mode is Mode.LIVE and not token:
        raise AuthenticationError(
            "Missing required GitHub token. "
            "Set the 'GITHUB_TOKEN' environment variable or 'git config github.oauth-token'."
        )

    return Config(
        organization=organization,
        repositories=tuple(repo_names),
        start_date=start_date,
        end_date=end_date,
        token=token,
        data_dir=Path(data_dir),
        mode=mode,
        workers=workers,
        ignored_logins=tuple(login.strip() for login in ignored_logins if login.strip()),
        high_contributor=high_contributor or HighContributorConfig(),
    )
