"""
Grouping of ranked rows into per-type result buckets.

The store is asked for at most ``MAX_TOTAL_RESULTS`` rows, which is below
``4 * MAX_RESULTS_PER_TYPE``; the per-type cap only bites when one type
dominates the ranking.
"""

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from ..schema.search import GroupedResults, SearchResultItem, SearchResultRow

MAX_RESULTS_PER_TYPE = 5

SOURCE_TYPE_BUCKETS: Dict[str, str] = {
    "post": "posts",
    "document": "documents",
    "page": "pages",
    "event": "events",
}


def to_calendar_date(published_at: Optional[datetime]) -> Optional[str]:
    if published_at is None:
        return None
    if published_at.tzinfo is not None:
        published_at = published_at.astimezone(timezone.utc)
    return published_at.date().isoformat()


def to_result_item(row: SearchResultRow) -> SearchResultItem:
    return SearchResultItem(
        id=row.source_id,
        title=row.title,
        url=row.url,
        category=row.category,
        date=to_calendar_date(row.published_at),
        highlights=row.headline,
        source_type=row.source_type,
        score=row.combined_score,
    )


def group_results(rows: Iterable[SearchResultRow], max_per_type: int = MAX_RESULTS_PER_TYPE) -> GroupedResults:
    """Bucket rows by source type, preserving store order. Unknown types are dropped."""
    buckets: Dict[str, List[SearchResultItem]] = {name: [] for name in SOURCE_TYPE_BUCKETS.values()}

    for row in rows:
        bucket_name = SOURCE_TYPE_BUCKETS.get(row.source_type)
        if bucket_name is None:
            continue
        bucket = buckets[bucket_name]
        if len(bucket) < max_per_type:
            bucket.append(to_result_item(row))

    return GroupedResults(**buckets)


def total_count(grouped: GroupedResults) -> int:
    return len(grouped.posts) + len(grouped.documents) + len(grouped.pages) + len(grouped.events)
