"""In-memory editing of the two-level navigation tree.

The tree is a list of categories; each category holds sites directly and/or
inside its subcategories. Every mutating helper works on a deep copy and
returns the new tree so the caller can submit it wholesale.
"""
from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Iterable


class SiteListError(Exception):
    """Base error for site list operations."""


class NotFoundError(SiteListError, LookupError):
    """A category, subcategory or site id did not resolve."""


class ValidationError(SiteListError, ValueError):
    """Input is missing required fields or has the wrong shape."""


@dataclass
class Site:
    id: str
    title: str
    href: str
    description: str | None = None
    icon: str | None = None
    enabled: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "href": self.href,
            "description": self.description,
            "icon": self.icon,
            "enabled": self.enabled,
        }


@dataclass
class SubCategory:
    id: str
    title: str
    icon: str | None = None
    items: list[Site] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "icon": self.icon,
            "items": [s.to_dict() for s in self.items],
        }


@dataclass
class Category:
    id: str
    title: str
    icon: str | None = None
    items: list[Site] = field(default_factory=list)
    sub_categories: list[SubCategory] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "icon": self.icon,
            "items": [s.to_dict() for s in self.items],
            "subCategories": [s.to_dict() for s in self.sub_categories],
        }


@dataclass
class SiteRecord:
    """Flattened, display-only view of a site."""

    id: str
    name: str
    url: str
    description: str | None = None
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "description": self.description,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass(frozen=True)
class Location:
    category_index: int
    sub_category_index: int | None = None
    item_index: int | None = None

    def same_slot(self, other: "Location") -> bool:
        return (
            self.category_index == other.category_index
            and self.sub_category_index == other.sub_category_index
        )


def _optional_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value in (None, ""):
        return None
    if not isinstance(value, str):
        raise ValidationError(f"Invalid {key}.")
    return value


def _required_str(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"`{key}` is required.")
    return value.strip()


def _list_field(data: dict[str, Any], key: str) -> list[Any]:
    raw = data.get(key) or []
    if not isinstance(raw, list):
        raise ValidationError(f"Invalid {key}.")
    return raw


def site_from_dict(data: dict[str, Any]) -> Site:
    if not isinstance(data, dict):
        raise ValidationError("Site must be an object.")
    href = data.get("href")
    if href is not None and not isinstance(href, str):
        raise ValidationError("Invalid href.")
    enabled = data.get("enabled", True)
    if not isinstance(enabled, bool):
        raise ValidationError("Invalid enabled flag; expected true or false.")
    return Site(
        id=_required_str(data, "id"),
        title=str(data.get("title") or ""),
        href=href or "",
        description=_optional_str(data, "description"),
        icon=_optional_str(data, "icon"),
        enabled=enabled,
    )


def sub_category_from_dict(data: dict[str, Any]) -> SubCategory:
    if not isinstance(data, dict):
        raise ValidationError("Subcategory must be an object.")
    return SubCategory(
        id=_required_str(data, "id"),
        title=str(data.get("title") or ""),
        icon=_optional_str(data, "icon"),
        items=[site_from_dict(item) for item in _list_field(data, "items")],
    )


def category_from_dict(data: dict[str, Any]) -> Category:
    if not isinstance(data, dict):
        raise ValidationError("Category must be an object.")
    sub_categories = [sub_category_from_dict(s) for s in _list_field(data, "subCategories")]
    seen: set[str] = set()
    for sub in sub_categories:
        if sub.id in seen:
            raise ValidationError(f"Duplicate subcategory id {sub.id!r} in category {data.get('id')!r}.")
        seen.add(sub.id)
    return Category(
        id=_required_str(data, "id"),
        title=str(data.get("title") or ""),
        icon=_optional_str(data, "icon"),
        items=[site_from_dict(item) for item in _list_field(data, "items")],
        sub_categories=sub_categories,
    )


def tree_from_payload(items: Any) -> list[Category]:
    if not isinstance(items, list):
        raise ValidationError("Navigation items must be a list.")
    tree = [category_from_dict(item) for item in items]
    seen: set[str] = set()
    for category in tree:
        if category.id in seen:
            raise ValidationError(f"Duplicate category id {category.id!r}.")
        seen.add(category.id)
    return tree


def tree_to_payload(tree: Iterable[Category]) -> list[dict[str, Any]]:
    return [c.to_dict() for c in tree]


def _items_at(tree: list[Category], location: Location) -> list[Site]:
    category = tree[location.category_index]
    if location.sub_category_index is None:
        return category.items
    return category.sub_categories[location.sub_category_index].items


def _index_of(items: list[Site], site_id: str) -> int | None:
    for idx, item in enumerate(items):
        if item.id == site_id:
            return idx
    return None


def locate(tree: list[Category], site_id: str) -> Location | None:
    """Find where a site sits. Direct items are checked before subcategories."""
    for cat_idx, category in enumerate(tree):
        item_idx = _index_of(category.items, site_id)
        if item_idx is not None:
            return Location(cat_idx, None, item_idx)
        for sub_idx, sub in enumerate(category.sub_categories):
            item_idx = _index_of(sub.items, site_id)
            if item_idx is not None:
                return Location(cat_idx, sub_idx, item_idx)
    return None


def _require(tree: list[Category], site_id: str) -> Location:
    location = locate(tree, site_id)
    if location is None:
        raise NotFoundError(f"Site {site_id!r} not found.")
    return location


def resolve_target(tree: list[Category], category_id: str, sub_category_id: str | None = None) -> Location:
    cat_idx = next((i for i, c in enumerate(tree) if c.id == category_id), None)
    if cat_idx is None:
        raise NotFoundError(f"Category {category_id!r} not found.")
    if not sub_category_id:
        return Location(cat_idx)
    subs = tree[cat_idx].sub_categories
    sub_idx = next((i for i, s in enumerate(subs) if s.id == sub_category_id), None)
    if sub_idx is None:
        raise NotFoundError(f"Subcategory {sub_category_id!r} not found in category {category_id!r}.")
    return Location(cat_idx, sub_idx)


def move(
    tree: list[Category],
    site_id: str,
    title: str,
    href: str,
    description: str | None,
    icon: str | None,
    target: Location,
) -> list[Category]:
    """Rewrite a site and place it at `target`.

    Staying in the same slot keeps the ordinal position; moving to another
    slot appends to the end of the target sequence. The stored site is always
    re-enabled.
    """
    current = _require(tree, site_id)
    updated = deepcopy(tree)
    replacement = Site(
        id=site_id,
        title=title,
        href=href,
        description=description,
        icon=icon,
        enabled=True,
    )
    if current.same_slot(target):
        _items_at(updated, current)[current.item_index] = replacement
        return updated
    del _items_at(updated, current)[current.item_index]
    _items_at(updated, target).append(replacement)
    return updated


def insert(
    tree: list[Category],
    category_id: str,
    sub_category_id: str | None,
    site: Site,
) -> list[Category]:
    target = resolve_target(tree, category_id, sub_category_id)
    updated = deepcopy(tree)
    _items_at(updated, target).append(deepcopy(site))
    return updated


def remove(tree: list[Category], site_id: str) -> list[Category]:
    location = _require(tree, site_id)
    updated = deepcopy(tree)
    del _items_at(updated, location)[location.item_index]
    return updated


def remove_many(tree: list[Category], site_ids: Iterable[str]) -> list[Category]:
    """Delete several sites at once; all ids must resolve or nothing changes."""
    ids = list(dict.fromkeys(site_ids))
    missing = [sid for sid in ids if locate(tree, sid) is None]
    if missing:
        raise NotFoundError(f"Sites not found: {', '.join(missing)}")
    updated = deepcopy(tree)
    for sid in ids:
        location = _require(updated, sid)
        del _items_at(updated, location)[location.item_index]
    return updated


def _walk_sites(tree: Iterable[Category]) -> Iterable[Site]:
    for category in tree:
        yield from category.items
        for sub in category.sub_categories:
            yield from sub.items


def flatten(tree: Iterable[Category]) -> list[SiteRecord]:
    return [
        SiteRecord(id=s.id, name=s.title, url=s.href, description=s.description)
        for s in _walk_sites(tree)
    ]


def find_site(tree: list[Category], site_id: str) -> Site | None:
    location = locate(tree, site_id)
    if location is None:
        return None
    return _items_at(tree, location)[location.item_index]


def category_of(tree: list[Category], site_id: str) -> str:
    location = locate(tree, site_id)
    return tree[location.category_index].id if location else ""


def sub_category_of(tree: list[Category], site_id: str) -> str:
    location = locate(tree, site_id)
    if location is None or location.sub_category_index is None:
        return ""
    return tree[location.category_index].sub_categories[location.sub_category_index].id


def category_titles_of(tree: list[Category], site_id: str) -> tuple[str, str]:
    location = locate(tree, site_id)
    if location is None:
        return "", ""
    category = tree[location.category_index]
    if location.sub_category_index is None:
        return category.title, ""
    return category.title, category.sub_categories[location.sub_category_index].title
