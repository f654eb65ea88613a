"""Disk-backed replay cache for GraphQL page responses.

Every live response is written to ``<directory>/<key>.json`` where the key is
derived from the request content only, so a later run in replay mode reads
back exactly the pages the live run saw.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union

from .config import Mode
from .errors import MalformedPageError, ReplayMissError, StorageError
from .models import QueryRequest, QueryResponse
from .queries import parse_page

logger = logging.getLogger(__name__)


class QueryExecutor(Protocol):
    def execute(self, request: QueryRequest) -> QueryResponse:
        ...


def _request_document(request: QueryRequest) -> Dict[str, Any]:
    return {
        "template": request.template,
        "params": dict(request.params),
        "cursor": request.cursor,
    }


def cache_key(request: QueryRequest) -> str:
    """Derive the content key of a request.

    Parameters are serialized with sorted keys so identical requests map to
    identical keys regardless of how the parameter mapping was built.
    """
    canonical = json.dumps(_request_document(request), sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class ReplayCache:
    """Stores and serves raw page responses keyed by request content."""

    def __init__(self, directory: Union[str, Path], mode: Mode = Mode.LIVE) -> None:
        self._directory = Path(directory)
        self._mode = mode

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, request: QueryRequest) -> Path:
        return self._directory / f"{cache_key(request)}.json"

    def lookup(self, request: QueryRequest) -> Optional[QueryResponse]:
        """Return the recorded response for ``request`` or ``None``.

        Unreadable or corrupt entries are logged and reported as misses.
        """
        path = self.path_for(request)
        if not path.exists():
            return None

        try:
            with path.open("r", encoding="utf-8") as handle:
                record = json.load(handle)
            return parse_page(request.template, record.get("data") if isinstance(record, dict) else None)
        except (OSError, ValueError, MalformedPageError) as exc:
            logger.warning(
                "Ignoring unreadable replay cache entry",
                extra={"path": str(path), "error": str(exc)},
            )
            return None

    def store(self, request: QueryRequest, response: QueryResponse) -> Path:
        """Persist ``response`` atomically.

        Raises:
            StorageError: If the entry cannot be written.
        """
        path = self.path_for(request)
        tmp_path = path.with_suffix(".json.tmp")
        record = {"request": _request_document(request), "data": response.data}

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(record, handle, ensure_ascii=False, indent=2, sort_keys=True)
                handle.write("\n")
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as exc:
            raise StorageError(f"Failed to write replay cache entry {path}: {exc}") from exc

        return path

    def resolve(self, request: QueryRequest, executor: Optional[QueryExecutor]) -> QueryResponse:
        """Obtain the response for ``request`` according to the cache mode.

        Live mode always calls ``executor`` and records the result; a failed
        write is logged and the in-memory response is still returned. Replay
        mode never touches the network.

        Raises:
            ReplayMissError: In replay mode, if ``request`` was never recorded.
            TransportError: In live mode, if the executor fails.
        """
        if self._mode is Mode.REPLAY:
            response = self.lookup(request)
            if response is None:
                raise ReplayMissError(
                    f"No recorded response for {request.describe()} in {self._directory}; "
                    "the recorded session is incomplete."
                )
            return response

        if executor is None:
            raise ValueError("A query executor is required in live mode.")

        response = executor.execute(request)
        try:
            self.store(request, response)
        except StorageError as exc:
            logger.warning(
                "Continuing without caching response",
                extra={"request": request.describe(), "error": str(exc)},
            )
        return response
