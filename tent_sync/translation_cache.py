"""Write-once, file-per-slug cache of downloaded translation sets."""
import json
import logging
import os
from typing import Dict

from tent_sync.errors import CacheReadError, CacheWriteError
from tent_sync.payload_validator import decode_translation_set

logger = logging.getLogger(__name__)


class TranslationCache:
    """
    Stores each resource's full translation mapping as ``<folder>/<slug>``.

    The presence of an entry means the resource was already downloaded.
    Entries are created with exclusive-create semantics and are never
    rewritten by the cache.
    """

    def __init__(self, cache_folder: str):
        self.cache_folder = cache_folder

    def path_for(self, slug: str) -> str:
        return os.path.join(self.cache_folder, slug)

    def exists(self, slug: str) -> bool:
        return os.path.isfile(self.path_for(slug))

    def load(self, slug: str) -> Dict[str, str]:
        """
        Read and decode the cache entry for ``slug``.

        Raises:
            CacheReadError: If the entry cannot be read or decoded.
        """
        path = self.path_for(slug)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                raw = f.read()
        except (OSError, UnicodeDecodeError) as exc:
            raise CacheReadError(f"Could not read '{path}': {exc}") from exc
        return decode_translation_set(raw)

    def store(self, slug: str, translations: Dict[str, str]) -> str:
        """
        Create the cache entry for ``slug``.

        Returns:
            The path of the new entry.

        Raises:
            CacheWriteError: If the entry already exists or cannot be written.
        """
        path = self.path_for(slug)
        try:
            serialized = json.dumps(translations, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise CacheWriteError(f"Could not serialize translations for '{slug}': {exc}") from exc
        try:
            os.makedirs(self.cache_folder, exist_ok=True)
            with open(path, 'x', encoding='utf-8') as f:
                f.write(serialized + '\n')
        except FileExistsError as exc:
            raise CacheWriteError(f"Cache entry '{path}' already exists") from exc
        except OSError as exc:
            raise CacheWriteError(f"Could not write '{path}': {exc}") from exc
        logger.debug("Cached translations for '%s' in '%s'", slug, path)
        return path
