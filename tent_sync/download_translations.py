"""
Downloads the latest Transifex translations of the Tent content and saves
them as a translated content tree.

Each source component is resolved from the local cache or from Transifex,
checked, and folded into the in-memory tree. Once the loop finishes, or is
stopped with Ctrl+C, the tree is written to disk node by node.
"""
import asyncio
import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from tqdm import tqdm

from tent_sync.app_config import AppConfig, load_app_config
from tent_sync.components import Component, Resource
from tent_sync.content_repository import ContentRepository
from tent_sync.errors import (
    CacheReadError,
    CacheWriteError,
    FormatError,
    ParseError,
    RemoteError,
    RepositoryError,
)
from tent_sync.interrupts import InterruptHandler, wait_for_worker
from tent_sync.materializer import MaterializeStats, TreeWriter, materialize
from tent_sync.payload_validator import decode_resource_records
from tent_sync.resource_parser import ResourceParser
from tent_sync.transifex_client import TransifexClient
from tent_sync.translation_cache import TranslationCache

logger = logging.getLogger(__name__)


@dataclass
class SyncStats:
    processed: int = 0
    cache_hits: int = 0
    fetched: int = 0
    translated: int = 0
    not_translated: int = 0
    failed: int = 0


@dataclass
class SyncContext:
    """
    Everything one download run needs, passed explicitly through the loop.

    ``dump_folder`` receives the raw target-language text of every resource.
    When it is None the text is written to the cache entry's own path,
    replacing the cached mapping.
    """
    repository: ContentRepository
    client: TransifexClient
    cache: TranslationCache
    parser: ResourceParser
    source_language: str = "en"
    target_language: str = "zh-Hant"
    dump_folder: Optional[str] = None
    stats: SyncStats = field(default_factory=SyncStats)

    def dump_path(self, slug: str) -> str:
        if self.dump_folder is None:
            return self.cache.path_for(slug)
        return os.path.join(self.dump_folder, slug)


def build_context(config: AppConfig, repository: ContentRepository) -> SyncContext:
    """Create the run context from the loaded configuration."""
    return SyncContext(
        repository=repository,
        client=config.transifex_client,
        cache=TranslationCache(config.cache_folder),
        parser=ResourceParser(),
        source_language=config.source_language,
        target_language=config.target_language,
        dump_folder=None if config.legacy_dump_overwrites_cache else config.dump_folder,
    )


def validate_paths(config: AppConfig) -> None:
    """
    Check the content checkout exists and create the cache, dump and output folders.

    Raises:
        FileNotFoundError: If the content root does not exist.
        PermissionError: If a folder is not readable and writable.
    """
    if not os.path.isdir(config.content_root):
        logger.error("Content Root '%s' does not exist.", config.content_root)
        raise FileNotFoundError(f"Content Root '{config.content_root}' does not exist.")

    folders = [(config.cache_folder, "Cache Folder"), (config.output_root, "Output Root")]
    if not config.legacy_dump_overwrites_cache:
        folders.append((config.dump_folder, "Dump Folder"))
    for path, name in folders:
        os.makedirs(path, exist_ok=True)
        if not os.access(path, os.R_OK | os.W_OK):
            logger.error("%s '%s' is not accessible (read/write permissions needed).", name, path)
            raise PermissionError(f"{name} '{path}' is not accessible (read/write permissions needed).")
    logger.info("All critical paths are valid and accessible.")


async def resolve_translations(ctx: SyncContext, slug: str) -> Optional[Dict[str, str]]:
    """
    Return the translation set of ``slug`` from the cache, downloading it if absent.

    A newly downloaded set is stored as a cache entry; if that write fails
    the error is logged and the downloaded set is still returned.

    Returns:
        The translation set, or None if it could not be obtained.
    """
    if not ctx.cache.exists(slug):
        try:
            translations = await ctx.client.download_translations(slug)
        except RemoteError as exc:
            logger.error("%s: %s", slug, exc)
            return None
        ctx.stats.fetched += 1
        try:
            ctx.cache.store(slug, translations)
        except CacheWriteError as exc:
            logger.error("%s: %s", slug, exc)
        return translations

    try:
        translations = ctx.cache.load(slug)
    except CacheReadError as exc:
        logger.error("%s: %s", slug, exc)
        return None
    ctx.stats.cache_hits += 1
    return translations


def write_target_dump(ctx: SyncContext, slug: str, target: str) -> None:
    """Write the raw target-language text for ``slug``; failures are only logged."""
    path = ctx.dump_path(slug)
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(target)
    except OSError as exc:
        logger.error("%s (%s) %s", slug, ctx.target_language, exc)


async def process_component(ctx: SyncContext, component: Component) -> bool:
    """
    Resolve, check and parse the translation of one component.

    Every failure is logged with the resource slug and ends processing of
    this component only.

    Returns:
        True if the component was added to the tree.
    """
    slug = component.resource().slug
    lang = ctx.target_language

    translations = await resolve_translations(ctx, slug)
    if translations is None:
        return False

    target = translations.get(lang)
    if target is None:
        logger.warning("%s: %s not found", slug, lang)
        return False

    write_target_dump(ctx, slug, target)

    try:
        records = decode_resource_records(target)
    except FormatError as exc:
        logger.error("%s (%s) %s\n%s", slug, lang, exc, target)
        return False

    try:
        ctx.parser.parse(component, Resource(slug, records), lang[:2])
    except ParseError as exc:
        logger.error("%s (%s) %s", slug, lang, exc)
        return False

    if target != translations.get(ctx.source_language):
        ctx.stats.translated += 1
        logger.info("translated %s - %s", lang, slug)
    else:
        ctx.stats.not_translated += 1
        logger.info("not translated %s - %s", lang, slug)
    return True


async def sync_components(ctx: SyncContext, stop_requested: asyncio.Event) -> SyncStats:
    """
    Process every source component in order until done or asked to stop.

    ``stop_requested`` is checked before each component is started; a
    component already underway runs to the end unless the task itself is
    cancelled.
    """
    components: List[Component] = ctx.repository.all_components(ctx.source_language)
    with tqdm(total=len(components), desc="Downloading translations", unit="resource") as progress:
        for component in components:
            if stop_requested.is_set():
                logger.warning("Stop requested; %d component(s) were not started.",
                               len(components) - ctx.stats.processed)
                break
            ctx.stats.processed += 1
            try:
                ok = await process_component(ctx, component)
            except Exception as exc:
                logger.error("%s: unexpected error: %s", component.resource().slug, exc, exc_info=True)
                ok = False
            if not ok:
                ctx.stats.failed += 1
            progress.update(1)
    return ctx.stats


async def download_and_save(ctx: SyncContext, writer: TreeWriter) -> Tuple[SyncStats, MaterializeStats]:
    """
    Run the download loop as a background task, then save the tree.

    Ctrl+C stops the loop early; whatever the tree holds at that point is
    saved all the same.
    """
    stop_requested = asyncio.Event()
    worker = asyncio.create_task(sync_components(ctx, stop_requested))
    interrupts = InterruptHandler(stop_requested, worker)
    interrupts.install(asyncio.get_running_loop())
    try:
        completed = await wait_for_worker(worker)
    finally:
        interrupts.uninstall()
    if not completed:
        logger.warning("Download loop cancelled during a component; saving what was built.")

    stats = ctx.stats
    logger.info(
        "Processed %d component(s): %d from cache, %d downloaded, %d translated, "
        "%d not translated, %d failed.",
        stats.processed, stats.cache_hits, stats.fetched,
        stats.translated, stats.not_translated, stats.failed
    )
    logger.info("\n\n***** Saving %d files *****\n", stats.processed)
    saved = materialize(ctx.parser.categories(), writer)
    logger.info("Saved %d node(s), %d failed.", saved.saved, saved.failed)
    return stats, saved


async def main():
    """
    Main function to orchestrate the download.
    """
    config = load_app_config()
    client = config.transifex_client
    try:
        validate_paths(config)

        repository = ContentRepository(config.content_root, config.git_remote, config.git_branch)
        if config.pull_before_sync:
            repository.pull()

        client.configure_rate_limit(config.rate_limit_period_seconds, config.rate_limit_max_requests)

        ctx = build_context(config, repository)
        writer = TreeWriter(config.output_root, dry_run=config.dry_run)
        await download_and_save(ctx, writer)
    finally:
        await client.close()


def run():
    try:
        asyncio.run(main())
    except RepositoryError as repo_exc:
        logger.critical("Content repository error: %s", repo_exc)
        sys.exit(1)
    except Exception as main_exc:
        logger.error("An unexpected error occurred during execution: %s", main_exc, exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    run()
