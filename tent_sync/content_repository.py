"""Access to the git checkout holding the source-language content."""
import logging
import os
import subprocess
from typing import Any, List, Optional, Tuple

import yaml

from tent_sync.components import (
    CHECKS_FILE,
    ITEM_SUFFIX,
    METADATA_FILE,
    Category,
    Check,
    Checks,
    Component,
    Item,
    Subcategory,
)
from tent_sync.errors import RepositoryError

logger = logging.getLogger(__name__)


def _read_yaml(path: str) -> Any:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise RepositoryError(f"Invalid YAML in '{path}': {exc}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise RepositoryError(f"Could not read '{path}': {exc}") from exc


def _read_metadata(path: str) -> Tuple[str, int]:
    data = _read_yaml(path)
    if not isinstance(data, dict) or not data.get('name'):
        raise RepositoryError(f"Metadata file '{path}' needs a 'name'")
    try:
        order = int(data.get('order', 0))
    except (TypeError, ValueError) as exc:
        raise RepositoryError(f"Metadata file '{path}' has an invalid 'order'") from exc
    return str(data['name']), order


def _list_dirs(path: str) -> List[str]:
    return [
        entry for entry in os.listdir(path)
        if not entry.startswith('.') and os.path.isdir(os.path.join(path, entry))
    ]


class ContentRepository:
    """
    A local git checkout of the content repository.

    The source-language tree is laid out as::

        <root>/<lang>/<category>/.metadata.yaml
        <root>/<lang>/<category>/<subcategory>/.metadata.yaml
        <root>/<lang>/<category>/<subcategory>/.checks.yaml
        <root>/<lang>/<category>/<subcategory>/<item>.yaml
    """

    def __init__(self, root: str, remote: Optional[str] = None, branch: Optional[str] = None):
        self.root = root
        self.remote = remote
        self.branch = branch

    def pull(self) -> None:
        """
        Update the checkout with ``git pull``.

        Raises:
            RepositoryError: If git fails or is not available.
        """
        command = ['git', 'pull']
        if self.remote:
            command.append(self.remote)
            if self.branch:
                command.append(self.branch)
        try:
            result = subprocess.run(
                command,
                cwd=self.root,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                check=True
            )
        except subprocess.CalledProcessError as git_exc:
            raise RepositoryError(f"git pull failed in '{self.root}': {git_exc.stderr.strip()}") from git_exc
        except OSError as os_exc:
            raise RepositoryError(f"Could not run git in '{self.root}': {os_exc}") from os_exc
        logger.info("Updated content repository '%s': %s", self.root, result.stdout.strip())

    def all_components(self, language: str) -> List[Component]:
        """
        List every component of ``language`` in processing order.

        Categories and subcategories are sorted by their ``order`` and then
        by id; each subcategory is followed by its checks, when present, and
        its items in file-name order. Files that cannot be read are logged
        and skipped together with everything beneath them.

        Raises:
            RepositoryError: If the language folder does not exist.
        """
        lang_root = os.path.join(self.root, language)
        if not os.path.isdir(lang_root):
            raise RepositoryError(f"Language folder '{lang_root}' does not exist")

        components: List[Component] = []
        for category in self._categories(lang_root, language):
            components.append(category)
            category_dir = os.path.join(lang_root, category.id)
            for subcategory in self._subcategories(category_dir, category, language):
                components.append(subcategory)
                subcategory_dir = os.path.join(category_dir, subcategory.id)
                checks = self._checks(subcategory_dir, subcategory, language)
                if checks is not None:
                    components.append(checks)
                components.extend(self._items(subcategory_dir, subcategory, language))
        logger.info("Found %d component(s) for '%s' in '%s'", len(components), language, self.root)
        return components

    def _categories(self, lang_root: str, language: str) -> List[Category]:
        categories = []
        for category_id in _list_dirs(lang_root):
            try:
                name, order = _read_metadata(os.path.join(lang_root, category_id, METADATA_FILE))
            except RepositoryError as exc:
                logger.warning("Skipping category '%s': %s", category_id, exc)
                continue
            categories.append(Category(category_id, name=name, order=order, language=language))
        return sorted(categories, key=lambda c: (c.order, c.id))

    def _subcategories(self, category_dir: str, category: Category, language: str) -> List[Subcategory]:
        subcategories = []
        for subcategory_id in _list_dirs(category_dir):
            try:
                name, order = _read_metadata(os.path.join(category_dir, subcategory_id, METADATA_FILE))
            except RepositoryError as exc:
                logger.warning("Skipping subcategory '%s/%s': %s", category.id, subcategory_id, exc)
                continue
            subcategories.append(
                Subcategory(category.id, subcategory_id, name=name, order=order, language=language)
            )
        return sorted(subcategories, key=lambda s: (s.order, s.id))

    def _checks(self, subcategory_dir: str, subcategory: Subcategory, language: str) -> Optional[Checks]:
        path = os.path.join(subcategory_dir, CHECKS_FILE)
        if not os.path.exists(path):
            return None
        try:
            data = _read_yaml(path)
        except RepositoryError as exc:
            logger.warning("Skipping checks of '%s/%s': %s", subcategory.category_id, subcategory.id, exc)
            return None
        if not isinstance(data, list) or not all(isinstance(e, dict) and e.get('text') for e in data):
            logger.warning("Skipping checks of '%s/%s': expected a list of texts", subcategory.category_id, subcategory.id)
            return None
        checks = [Check(str(entry['text']), no_check=bool(entry.get('no_check', False))) for entry in data]
        return Checks(subcategory.category_id, subcategory.id, checks, language=language)

    def _items(self, subcategory_dir: str, subcategory: Subcategory, language: str) -> List[Item]:
        items = []
        for filename in sorted(os.listdir(subcategory_dir)):
            if filename.startswith('.') or not filename.endswith(ITEM_SUFFIX):
                continue
            item_id = filename[:-len(ITEM_SUFFIX)]
            try:
                data = _read_yaml(os.path.join(subcategory_dir, filename))
            except RepositoryError as exc:
                logger.warning("Skipping item '%s': %s", filename, exc)
                continue
            if not isinstance(data, dict) or not data.get('title'):
                logger.warning("Skipping item '%s/%s/%s': it needs a 'title'",
                               subcategory.category_id, subcategory.id, item_id)
                continue
            items.append(Item(
                subcategory.category_id,
                subcategory.id,
                item_id,
                title=str(data['title']),
                difficulty=str(data.get('difficulty') or ''),
                body=str(data.get('body') or ''),
                language=language
            ))
        return items
