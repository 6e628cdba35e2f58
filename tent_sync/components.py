"""Content components and the resources they exchange with Transifex."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

SLUG_SEPARATOR = "___"
METADATA_FILE = ".metadata.yaml"
CHECKS_FILE = ".checks.yaml"
ITEM_SUFFIX = ".yaml"


@dataclass
class Resource:
    """A translatable unit: a Transifex slug and its list of text records."""

    slug: str
    content: List[Dict[str, str]] = field(default_factory=list)


@dataclass
class Check:
    text: str
    no_check: bool = False


@dataclass
class Item:
    """A single article inside a subcategory."""

    category_id: str
    subcategory_id: str
    id: str
    title: str = ""
    difficulty: str = ""
    body: str = ""
    language: str = "en"

    def path(self) -> str:
        return os.path.join(self.language, self.category_id, self.subcategory_id, self.id + ITEM_SUFFIX)

    def resource(self) -> Resource:
        slug = SLUG_SEPARATOR.join([self.category_id, self.subcategory_id, self.id])
        return Resource(slug, [{"title": self.title, "body": self.body}])

    def to_document(self) -> Dict[str, Any]:
        return {"title": self.title, "difficulty": self.difficulty, "body": self.body}


@dataclass
class Checks:
    """The checklist of a subcategory. Only written when it has entries."""

    category_id: str
    subcategory_id: str
    checks: List[Check] = field(default_factory=list)
    language: str = "en"

    def has_children(self) -> bool:
        return bool(self.checks)

    def path(self) -> str:
        return os.path.join(self.language, self.category_id, self.subcategory_id, CHECKS_FILE)

    def resource(self) -> Resource:
        slug = SLUG_SEPARATOR.join([self.category_id, self.subcategory_id, "checks"])
        return Resource(slug, [{"text": check.text} for check in self.checks])

    def to_document(self) -> List[Dict[str, Any]]:
        return [{"text": check.text, "no_check": check.no_check} for check in self.checks]


@dataclass
class Subcategory:
    category_id: str
    id: str
    name: str = ""
    order: int = 0
    language: str = "en"
    checks: Optional[Checks] = None
    items: Dict[str, Item] = field(default_factory=dict)

    def __post_init__(self):
        if self.checks is None:
            self.checks = Checks(self.category_id, self.id, language=self.language)

    def item_names(self) -> List[str]:
        return list(self.items)

    def item(self, name: str) -> Item:
        return self.items[name]

    def path(self) -> str:
        return os.path.join(self.language, self.category_id, self.id, METADATA_FILE)

    def resource(self) -> Resource:
        return Resource(SLUG_SEPARATOR.join([self.category_id, self.id]), [{"name": self.name}])

    def to_document(self) -> Dict[str, Any]:
        return {"name": self.name, "order": self.order}


@dataclass
class Category:
    id: str
    name: str = ""
    order: int = 0
    language: str = "en"
    subcategories: Dict[str, Subcategory] = field(default_factory=dict)

    def subcategory_names(self) -> List[str]:
        return list(self.subcategories)

    def sub(self, name: str) -> Subcategory:
        return self.subcategories[name]

    def path(self) -> str:
        return os.path.join(self.language, self.id, METADATA_FILE)

    def resource(self) -> Resource:
        return Resource(self.id, [{"name": self.name}])

    def to_document(self) -> Dict[str, Any]:
        return {"name": self.name, "order": self.order}


Component = Union[Category, Subcategory, Checks, Item]
