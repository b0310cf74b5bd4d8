"""Log source backed by an Elasticsearch-style search API.

Entries for a producer are fetched with ``_search`` requests filtered on the
producer-name field and paged with ``search_after``; the message field of
every hit becomes a LogEntry.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..errors import LogSourceError
from ..interfaces import LogSource
from ..records import LogEntry, ProducerRecord

logger = logging.getLogger(__name__)

DEFAULT_NAME_FIELD = "kubernetes.pod_name"
DEFAULT_MESSAGE_FIELD = "log"
DEFAULT_SORT_FIELD = "_doc"

# Elasticsearch rejects size above index.max_result_window (10000 by default).
MAX_PAGE_SIZE = 10000


def _lookup(document: Dict[str, Any], dotted: str) -> Any:
    """Resolve ``a.b.c`` in a nested _source document (flat keys win)."""
    if dotted in document:
        return document[dotted]
    current: Any = document
    for part in dotted.split("."):
        if not isinstance(current, dict) or part not in current:
            return None
        current = current[part]
    return current


class HttpLogSource(LogSource):
    """Lee entradas de un backend de búsqueda vía HTTP.

    Args:
        base_url: URL del backend (ej. http://elasticsearch-logging:9200)
        index: índice o patrón de índices (ej. logstash-*)
        name_field: campo con el nombre del productor
        message_field: campo con la línea de log
        page_size: hits por request (máximo 10000)
        sort_field: orden estable para search_after
        client: cliente httpx ya construido (tests, proxies, auth)
    """

    def __init__(
        self,
        base_url: str,
        index: str = "logstash-*",
        name_field: str = DEFAULT_NAME_FIELD,
        message_field: str = DEFAULT_MESSAGE_FIELD,
        page_size: int = MAX_PAGE_SIZE,
        sort_field: str = DEFAULT_SORT_FIELD,
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
    ):
        if not 0 < page_size <= MAX_PAGE_SIZE:
            raise ValueError(f"page_size must be in (0, {MAX_PAGE_SIZE}], got {page_size}")
        self._url = f"{base_url.rstrip('/')}/{index}/_search"
        self._name_field = name_field
        self._message_field = message_field
        self._page_size = page_size
        self._sort_field = sort_field
        self._client = client or httpx.Client(timeout=timeout)

    def _query(self, producer: str, search_after: Optional[List[Any]] = None) -> Dict[str, Any]:
        query: Dict[str, Any] = {
            "size": self._page_size,
            "sort": [{self._sort_field: "asc"}],
            "query": {
                "bool": {
                    "filter": [
                        {"term": {self._name_field: producer}},
                    ]
                }
            },
        }
        if search_after is not None:
            query["search_after"] = search_after
        return query

    def _fetch_page(self, producer: str, search_after: Optional[List[Any]]) -> List[Any]:
        try:
            response = self._client.post(self._url, json=self._query(producer, search_after))
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as e:
            raise LogSourceError(producer, f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            raise LogSourceError(producer, "response is not valid JSON") from e

        try:
            hits = body["hits"]["hits"]
        except (KeyError, TypeError) as e:
            raise LogSourceError(producer, "response has no hits") from e
        if not isinstance(hits, list):
            raise LogSourceError(producer, "response has no hits")
        return hits

    def read_entries(self, record: ProducerRecord) -> List[LogEntry]:
        entries: List[LogEntry] = []
        search_after: Optional[List[Any]] = None
        pages = 0
        total_hits = 0

        while True:
            hits = self._fetch_page(record.name, search_after)
            pages += 1
            total_hits += len(hits)

            for hit in hits:
                source = hit.get("_source") if isinstance(hit, dict) else None
                if not isinstance(source, dict):
                    continue
                message = _lookup(source, self._message_field)
                if isinstance(message, str):
                    entries.append(LogEntry(payload=message))

            if len(hits) < self._page_size:
                break
            last = hits[-1]
            search_after = last.get("sort") if isinstance(last, dict) else None
            if not search_after:
                raise LogSourceError(record.name, "full page without sort values, cannot page further")

        logger.debug(
            "HTTP_SOURCE producer=%s pages=%d hits=%d entries=%d",
            record.name, pages, total_hits, len(entries),
        )
        return entries

    def close(self) -> None:
        self._client.close()
