from __future__ import annotations

import secrets
import string
import time
from dataclasses import dataclass
from typing import Any

from .tree import Category, Site, ValidationError, category_of, find_site, sub_category_of

# Select widgets post this instead of an empty subcategory.
NO_SUB_CATEGORY = "none"

_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_site_id() -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"site_{int(time.time() * 1000)}_{suffix}"


def _clean(value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError("Form fields must be strings.")
    return value.strip()


@dataclass
class SiteForm:
    name: str = ""
    url: str = ""
    description: str = ""
    icon: str = ""
    category_id: str = ""
    sub_category_id: str = ""

    @classmethod
    def from_payload(cls, data: Any) -> "SiteForm":
        if not isinstance(data, dict):
            raise ValidationError("Expected a JSON object.")
        sub_id = _clean(data.get("subCategoryId"))
        return cls(
            name=_clean(data.get("name")),
            url=_clean(data.get("url")),
            description=_clean(data.get("description")),
            icon=_clean(data.get("icon")),
            category_id=_clean(data.get("categoryId")),
            sub_category_id="" if sub_id == NO_SUB_CATEGORY else sub_id,
        )

    @classmethod
    def for_site(cls, tree: list[Category], site_id: str) -> "SiteForm":
        """Prefill an edit form from the stored site; blank when it is gone."""
        site = find_site(tree, site_id)
        if site is None:
            return cls()
        return cls(
            name=site.title,
            url=site.href,
            description=site.description or "",
            icon=site.icon or "",
            category_id=category_of(tree, site_id),
            sub_category_id=sub_category_of(tree, site_id),
        )

    def validate(self) -> "SiteForm":
        missing = [
            label
            for label, value in (("name", self.name), ("url", self.url), ("category", self.category_id))
            if not value
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
        return self

    def to_site(self, site_id: str) -> Site:
        return Site(
            id=site_id,
            title=self.name,
            href=self.url,
            description=self.description or None,
            icon=self.icon or None,
            enabled=True,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "url": self.url,
            "description": self.description,
            "icon": self.icon,
            "categoryId": self.category_id,
            "subCategoryId": self.sub_category_id,
        }
