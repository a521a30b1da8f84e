"""Spaces and the categories that group them."""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from typing import Any, Mapping

from cortex.models.types import CategoryDict, SpaceDict

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """Derive a URL slug: lowercase, runs of non-alphanumerics become '-'.

    >>> slugify("Cloud  Computing & AI!")
    'cloud-computing-ai'
    """
    return _NON_ALNUM.sub("-", name.lower()).strip("-")


@dataclass(frozen=True)
class Category:
    """Top-level grouping. Holds no items; its spaces are ordered via the ordering map."""

    id: str
    name: str
    icon: str = "folder"
    color: str = "gray"

    @classmethod
    def create(cls, name: str, icon: str = "folder", color: str = "gray") -> Category:
        """New user category; its id is the slug of its name."""
        name = name.strip()
        category_id = slugify(name)
        if not category_id:
            raise ValueError("Category name needs at least one letter or digit")
        return cls(id=category_id, name=name, icon=icon, color=color)

    def to_dict(self) -> CategoryDict:
        return {"id": self.id, "name": self.name, "icon": self.icon, "color": self.color}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Category:
        if not data.get("id") or not data.get("name"):
            raise ValueError(f"Category needs an id and a name: {dict(data)!r}")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            icon=str(data.get("icon") or "folder"),
            color=str(data.get("color") or "gray"),
        )


@dataclass(frozen=True)
class Space:
    """A user-facing collection of items.

    Category membership is the ``category`` field; the ordering map is only
    a view over it.
    """

    id: str
    name: str
    category: str
    emoji: str = "📁"
    slug: str = field(default="")

    def __post_init__(self) -> None:
        if not self.slug:
            object.__setattr__(self, "slug", slugify(self.name))

    @classmethod
    def create(cls, name: str, category: str, emoji: str = "📁") -> Space:
        """New user space with a generated id."""
        name = name.strip()
        if not name:
            raise ValueError("Space name cannot be empty")
        return cls(id=f"space-{uuid.uuid4().hex[:12]}", name=name, category=category, emoji=emoji)

    def to_dict(self) -> SpaceDict:
        return {
            "id": self.id,
            "name": self.name,
            "emoji": self.emoji,
            "category": self.category,
            "slug": self.slug,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Space:
        if not data.get("id") or not data.get("name") or not data.get("category"):
            raise ValueError(f"Space needs an id, a name and a category: {dict(data)!r}")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            category=str(data["category"]),
            emoji=str(data.get("emoji") or "📁"),
            slug=str(data.get("slug") or ""),
        )


BUILTIN_CATEGORIES: tuple[Category, ...] = (
    Category("shared", "Shared", icon="share", color="blue"),
    Category("team", "Team Space", icon="users", color="green"),
    Category("private", "Private", icon="lock", color="amber"),
)

DEFAULT_SPACES: tuple[Space, ...] = (
    Space("shared-1", "Second Brain", "shared", "🧠"),
    Space("shared-2", "OSS", "shared", "⚡"),
    Space("shared-3", "Artificial Intelligence", "shared", "🤖"),
    Space("team-1", "Brainboard Competitors", "team", "🎯"),
    Space("team-2", "Visualize Terraform", "team", "🏗️"),
    Space("team-3", "CI/CD Engine", "team", "⚙️"),
    Space("overview", "Overview", "private", "📊"),
    Space("private-1", "UXUI", "private", "🎨"),
    Space("private-2", "Space", "private", "🚀"),
    Space("private-3", "Cloud Computing", "private", "☁️"),
)
