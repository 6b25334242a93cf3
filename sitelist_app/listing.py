"""Search and filtering over the flattened site list."""
from __future__ import annotations

from typing import Any, Iterable

from .tree import Category, SiteRecord, category_of, category_titles_of, sub_category_of

ALL = "all"
NONE = "none"
DESCRIPTION_LIMIT = 50


def _matches_query(record: SiteRecord, query: str) -> bool:
    if not query:
        return True
    needle = query.lower()
    return (
        needle in record.name.lower()
        or needle in record.url.lower()
        or needle in (record.description or "").lower()
    )


def filter_sites(
    tree: list[Category],
    records: Iterable[SiteRecord],
    query: str = "",
    category: str = ALL,
    sub_category: str = ALL,
) -> list[SiteRecord]:
    """Apply the search box and both category selectors.

    `sub_category` accepts ``"all"``, ``"none"`` for sites placed directly
    under a category, or a subcategory id.
    """
    query = (query or "").strip()
    category = category or ALL
    sub_category = sub_category or ALL
    matched: list[SiteRecord] = []
    for record in records:
        if not _matches_query(record, query):
            continue
        if category != ALL and category_of(tree, record.id) != category:
            continue
        if sub_category != ALL:
            current = sub_category_of(tree, record.id)
            wanted = "" if sub_category == NONE else sub_category
            if current != wanted:
                continue
        matched.append(record)
    return matched


def describe(tree: list[Category], record: SiteRecord) -> dict[str, Any]:
    """Record payload with its category placement attached for display."""
    category_name, sub_category_name = category_titles_of(tree, record.id)
    payload = record.to_dict()
    payload.update(
        {
            "categoryId": category_of(tree, record.id),
            "subCategoryId": sub_category_of(tree, record.id),
            "categoryName": category_name,
            "subCategoryName": sub_category_name,
        }
    )
    return payload


def truncate_description(text: str | None, limit: int = DESCRIPTION_LIMIT) -> str:
    if not text:
        return "-"
    if len(text) <= limit:
        return text
    return text[:limit] + "..."
