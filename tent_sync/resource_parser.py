"""Folds translated resources into a per-language content tree."""
import logging
from typing import Dict, List, Optional

from tent_sync.components import (
    Category,
    Check,
    Checks,
    Component,
    Item,
    Resource,
    Subcategory,
)
from tent_sync.errors import ParseError

logger = logging.getLogger(__name__)


def _record_field(resource: Resource, index: int, key: str, required: bool = True) -> str:
    if index >= len(resource.content):
        raise ParseError(f"resource '{resource.slug}' has no record {index}")
    value = resource.content[index].get(key, "")
    if required and not value.strip():
        raise ParseError(f"resource '{resource.slug}' record {index} has no '{key}'")
    return value


class ResourceParser:
    """
    Builds translated copies of source components, grouped by language.

    Parents must be parsed before their children: a subcategory whose
    category is missing from the tree is rejected, and so are the checks
    and items of a missing subcategory. Every level keeps insertion order.
    Each call either applies all of its changes or raises before touching
    the tree.
    """

    def __init__(self):
        self._categories: Dict[str, Dict[str, Category]] = {}

    def categories(self) -> Dict[str, List[Category]]:
        return {lang: list(cats.values()) for lang, cats in self._categories.items()}

    def category(self, lang: str, category_id: str) -> Optional[Category]:
        return self._categories.get(lang, {}).get(category_id)

    def _subcategory(self, lang: str, category_id: str, subcategory_id: str) -> Subcategory:
        category = self.category(lang, category_id)
        if category is None:
            raise ParseError(f"category '{category_id}' not found for '{lang}'")
        subcategory = category.subcategories.get(subcategory_id)
        if subcategory is None:
            raise ParseError(f"subcategory '{category_id}/{subcategory_id}' not found for '{lang}'")
        return subcategory

    def parse(self, component: Component, resource: Resource, lang: str) -> None:
        """
        Add the translated ``resource`` of ``component`` to the tree of ``lang``.

        Args:
            component: The source component the resource belongs to.
            resource: The resource holding the translated records.
            lang: The two-letter code the translated node is filed under.

        Raises:
            ParseError: If the records do not fit the component or its parent is missing.
        """
        if isinstance(component, Category):
            self._parse_category(component, resource, lang)
        elif isinstance(component, Subcategory):
            self._parse_subcategory(component, resource, lang)
        elif isinstance(component, Checks):
            self._parse_checks(component, resource, lang)
        elif isinstance(component, Item):
            self._parse_item(component, resource, lang)
        else:
            raise ParseError(f"unsupported component {type(component).__name__} for '{resource.slug}'")

    def _parse_category(self, component: Category, resource: Resource, lang: str) -> None:
        name = _record_field(resource, 0, "name")
        existing = self.category(lang, component.id)
        if existing is not None:
            existing.name = name
            existing.order = component.order
            return
        category = Category(component.id, name=name, order=component.order, language=lang)
        self._categories.setdefault(lang, {})[component.id] = category

    def _parse_subcategory(self, component: Subcategory, resource: Resource, lang: str) -> None:
        name = _record_field(resource, 0, "name")
        category = self.category(lang, component.category_id)
        if category is None:
            raise ParseError(f"category '{component.category_id}' not found for '{lang}'")
        existing = category.subcategories.get(component.id)
        if existing is not None:
            existing.name = name
            existing.order = component.order
            return
        category.subcategories[component.id] = Subcategory(
            component.category_id, component.id, name=name, order=component.order, language=lang
        )

    def _parse_checks(self, component: Checks, resource: Resource, lang: str) -> None:
        if len(resource.content) != len(component.checks):
            raise ParseError(
                f"resource '{resource.slug}' has {len(resource.content)} checks, "
                f"expected {len(component.checks)}"
            )
        checks = [
            Check(_record_field(resource, i, "text"), no_check=source.no_check)
            for i, source in enumerate(component.checks)
        ]
        subcategory = self._subcategory(lang, component.category_id, component.subcategory_id)
        subcategory.checks = Checks(component.category_id, component.subcategory_id, checks, language=lang)

    def _parse_item(self, component: Item, resource: Resource, lang: str) -> None:
        title = _record_field(resource, 0, "title")
        body = _record_field(resource, 0, "body", required=False)
        subcategory = self._subcategory(lang, component.category_id, component.subcategory_id)
        subcategory.items[component.id] = Item(
            component.category_id,
            component.subcategory_id,
            component.id,
            title=title,
            difficulty=component.difficulty,
            body=body,
            language=lang
        )
        logger.debug("Added item '%s' to '%s'", component.id, subcategory.path())
