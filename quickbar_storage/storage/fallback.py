"""
Ordered listing with a client-side sort fallback.

The owner-scoped listing asks the backend for records ordered by
creation time. That needs an index on the container; when the index is
missing the backend rejects the ordered query. In that case the same
filter is issued without ORDER BY and the results are sorted here.

The decision is made per call. A container can gain its index at any
time, so every call tries the indexed query first.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Protocol

from ..exceptions import IndexMissingError
from ..records import Record, created_sort_key

logger = logging.getLogger(__name__)


class QueryMode(Enum):
    """Which query served a listing."""

    INDEXED = "indexed"
    UNINDEXED = "unindexed"


class OwnerQuerySource(Protocol):
    """Anything that can run the owner-scoped record query."""

    async def query_records(
        self,
        owner_id: str,
        project_id: str | None = None,
        ordered: bool = True,
    ) -> list[Record]: ...


async def list_with_mode(
    source: OwnerQuerySource,
    owner_id: str,
    project_id: str | None = None,
) -> tuple[list[Record], QueryMode]:
    """List records newest first, reporting which query served them.

    Raises:
        Whatever the source raises, except IndexMissingError on the
        ordered query, which triggers the unordered query instead.
    """
    try:
        records = await source.query_records(owner_id, project_id, ordered=True)
        return records, QueryMode.INDEXED
    except IndexMissingError:
        logger.warning(
            "Missing index for (user_id, created_at); falling back to client-side sort. "
            "Create a composite index for better performance.",
            extra={"owner_id": owner_id, "project_id": project_id},
        )

    records = await source.query_records(owner_id, project_id, ordered=False)
    records.sort(key=created_sort_key, reverse=True)
    return records, QueryMode.UNINDEXED


async def list_with_fallback(
    source: OwnerQuerySource,
    owner_id: str,
    project_id: str | None = None,
) -> list[Record]:
    """List records owned by ``owner_id`` ordered by created_at descending."""
    records, _ = await list_with_mode(source, owner_id, project_id)
    return records
