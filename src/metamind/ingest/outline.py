"""Remote wiki document source speaking the Outline HTTP API.

Every call is ``POST {base_url}/<method>`` with a JSON body and bearer-token
authentication. The API key is read from the environment (OUTLINE_API_KEY),
never from config files.
"""

from __future__ import annotations

import json
import logging
import os
import time
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any

from metamind.config import ConfigError
from metamind.errors import ProviderError, TransportError

logger = logging.getLogger(__name__)

API_KEY_ENV = "OUTLINE_API_KEY"
PAGE_LIMIT = 100
_TIMEOUT = 30  # seconds
_USER_AGENT = "metamind/0.1"


@dataclass(frozen=True)
class OutlineDocument:
    """Summary row from ``documents.list``."""

    id: str
    title: str
    updated_at: str = ""
    archived_at: str | None = None


class OutlineClient:
    """Paginated listing and full-text fetch against an Outline instance."""

    def __init__(self, base_url: str, api_key: str | None = None, timeout: float = _TIMEOUT) -> None:
        """Create a client.

        Args:
            base_url: API root, e.g. ``https://wiki.example.com/api``. A trailing
                slash is ignored.
            api_key: Bearer token. Defaults to ``$OUTLINE_API_KEY``.
            timeout: Per-request timeout in seconds.

        Raises:
            ConfigError: If the base URL or the API key is missing.
        """
        key = api_key if api_key is not None else os.environ.get(API_KEY_ENV, "")
        if not key:
            raise ConfigError(f"Missing Outline API key. Set {API_KEY_ENV}.")
        if not base_url:
            raise ConfigError("Missing Outline base URL. Set outline.base_url.")
        self.base_url = base_url.rstrip("/")
        self._api_key = key
        self._timeout = timeout

    def list_documents(self, offset: int, limit: int = PAGE_LIMIT) -> list[OutlineDocument]:
        """Return one page of document summaries (archived ones included)."""
        payload = self._post("documents.list", {"offset": offset, "limit": limit})
        data = payload.get("data")
        if not isinstance(data, list):
            raise ProviderError("documents.list response has no 'data' list")
        return [_to_document(item) for item in data]

    def list_all_documents(self) -> list[OutlineDocument]:
        """Walk every page until a short page is returned; archived documents are dropped."""
        documents: list[OutlineDocument] = []
        offset = 0
        while True:
            page = self.list_documents(offset, PAGE_LIMIT)
            documents.extend(page)
            if len(page) < PAGE_LIMIT:
                break
            offset += PAGE_LIMIT
        return [d for d in documents if not d.archived_at]

    def fetch(self, document_id: str) -> str:
        """Return the full markdown text of *document_id*."""
        payload = self._post("documents.info", {"id": document_id})
        data = payload.get("data")
        if not isinstance(data, dict):
            raise ProviderError("documents.info response has no 'data' object")
        return str(data.get("text") or "")

    def items(self) -> list[OutlineItem]:
        """Return pipeline items for every live document."""
        return [OutlineItem(self, doc) for doc in self.list_all_documents()]

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _post(self, method: str, body: dict[str, Any]) -> dict[str, Any]:
        request = urllib.request.Request(
            f"{self.base_url}/{method}",
            data=json.dumps(body).encode("utf-8"),
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
                "User-Agent": _USER_AGENT,
            },
            method="POST",
        )
        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                raw = response.read()
        except urllib.error.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")
            raise ProviderError(f"Outline {method}: HTTP {exc.code}: {detail}") from exc
        except (urllib.error.URLError, OSError) as exc:
            raise TransportError(f"Outline {method}: {exc}") from exc

        try:
            payload = json.loads(raw)
        except ValueError as exc:
            raise ProviderError(f"Outline {method}: invalid JSON response") from exc
        if not isinstance(payload, dict):
            raise ProviderError(f"Outline {method}: unexpected response shape")
        return payload


@dataclass(frozen=True)
class OutlineItem:
    """Pipeline item backed by a remote wiki document; text is fetched lazily."""

    client: OutlineClient
    document: OutlineDocument

    @property
    def path(self) -> str:
        return f"outline://{self.document.id}"

    @property
    def label(self) -> str:
        return self.document.title or self.document.id

    def last_modified(self) -> int:
        return int(time.time())

    def load(self) -> bytes:
        return self.client.fetch(self.document.id).encode("utf-8")


def _to_document(item: Any) -> OutlineDocument:
    if not isinstance(item, dict) or "id" not in item:
        raise ProviderError("documents.list entry without an 'id'")
    return OutlineDocument(
        id=str(item["id"]),
        title=str(item.get("title") or ""),
        updated_at=str(item.get("updatedAt") or ""),
        archived_at=item.get("archivedAt") or None,
    )
