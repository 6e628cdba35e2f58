"""Writes a finished content tree back to disk, one node at a time."""
import logging
import os
from dataclasses import dataclass
from typing import Dict, Iterator, List

import yaml

from tent_sync.components import Category, Component
from tent_sync.errors import PersistError

logger = logging.getLogger(__name__)


@dataclass
class MaterializeStats:
    saved: int = 0
    failed: int = 0


class TreeWriter:
    """Persists single tree nodes as YAML files below ``output_root``."""

    def __init__(self, output_root: str, dry_run: bool = False):
        self.output_root = output_root
        self.dry_run = dry_run

    def persist(self, node: Component) -> str:
        """
        Write ``node`` to its path below the output root.

        Returns:
            The path written (or that would have been written in dry-run mode).

        Raises:
            PersistError: If the node cannot be serialized or written.
        """
        path = os.path.join(self.output_root, node.path())
        if self.dry_run:
            logger.info("[Dry Run] Would write '%s'.", path)
            return path
        try:
            content = yaml.safe_dump(node.to_document(), allow_unicode=True, sort_keys=False)
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                f.write(content)
        except yaml.YAMLError as exc:
            raise PersistError(f"Could not serialize '{path}': {exc}") from exc
        except OSError as exc:
            raise PersistError(f"Could not write '{path}': {exc}") from exc
        return path


def walk_tree(categories: Dict[str, List[Category]]) -> Iterator[Component]:
    """
    Yield every node of the tree depth-first in insertion order.

    Each category is followed by its subcategories; each subcategory by its
    checks (only when it has entries) and then its items.
    """
    for cats in categories.values():
        for cat in cats:
            yield cat
            for s in cat.subcategory_names():
                sub = cat.sub(s)
                yield sub
                if sub.checks.has_children():
                    yield sub.checks
                for i in sub.item_names():
                    yield sub.item(i)


def materialize(categories: Dict[str, List[Category]], writer: TreeWriter) -> MaterializeStats:
    """
    Persist every node of the tree, continuing past nodes that fail.

    Args:
        categories: The tree, as returned by ``ResourceParser.categories()``.
        writer: The writer used for every node.

    Returns:
        Counts of nodes saved and failed.
    """
    stats = MaterializeStats()
    for node in walk_tree(categories):
        try:
            writer.persist(node)
        except PersistError as exc:
            stats.failed += 1
            logger.error("%s %s", node.path(), exc)
            continue
        stats.saved += 1
        logger.info("%s ok", node.path())
    return stats
