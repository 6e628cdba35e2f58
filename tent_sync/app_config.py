"""Application configuration module for the Transifex download run."""
import logging
import os
import sys
from dataclasses import dataclass
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from tent_sync.logging_config import setup_logger
from tent_sync.transifex_client import (
    DEFAULT_MAX_REQUESTS,
    DEFAULT_PERIOD_SECONDS,
    TRANSIFEX_API_URL,
    TransifexClient,
)

CONFIG_ENV_VAR = 'TENT_SYNC_CONFIG_FILE'
DOTENV_LOCATIONS = ('.env', os.path.join('docker', '.env'))
DEFAULT_LOG_FILE = os.path.join('logs', 'tent_sync.log')


@dataclass
class AppConfig:
    """Everything a download run needs, resolved to absolute paths."""
    project_root: str
    # Source tree, cache and output locations
    content_root: str
    cache_folder: str
    dump_folder: str
    output_root: str

    source_language: str
    target_language: str

    # Run behaviour
    dry_run: bool
    legacy_dump_overwrites_cache: bool

    # git pull of the content checkout
    pull_before_sync: bool
    git_remote: Optional[str]
    git_branch: Optional[str]

    transifex_project: str
    rate_limit_max_requests: int
    rate_limit_period_seconds: float
    transifex_client: TransifexClient


def _compute_project_root() -> str:
    """The folder holding the tent_sync package."""
    return os.path.abspath(os.path.join(os.path.dirname(os.path.realpath(__file__)), os.pardir))


def _find_dotenv(project_root: str) -> Optional[str]:
    for relative in DOTENV_LOCATIONS:
        candidate = os.path.join(project_root, relative)
        if os.path.exists(candidate):
            return candidate
    return None


def _load_dotenv_files(project_root: str) -> Optional[str]:
    """Load the first .env found in the project root or docker/ and return its path."""
    dotenv_path = _find_dotenv(project_root)
    if dotenv_path:
        load_dotenv(dotenv_path)
    return dotenv_path


def _stderr(message: str) -> None:
    print(message, file=sys.stderr)


def _load_yaml_config(project_root: str) -> Dict[str, Any]:
    """
    Read the YAML configuration file.

    Logging is not configured yet at this point, so problems are reported on
    stderr and the run continues with the defaults.
    """
    config_file = os.path.abspath(os.environ.get(CONFIG_ENV_VAR, os.path.join(project_root, 'config.yaml')))

    if not os.path.exists(config_file):
        _stderr(f"Warning: No configuration file at '{config_file}'. Using defaults "
                f"(set {CONFIG_ENV_VAR} to use another file).")
        return {}

    try:
        with open(config_file, 'r', encoding='utf-8') as stream:
            loaded = yaml.safe_load(stream)
    except yaml.YAMLError as e:
        _stderr(f"Error: Invalid YAML in '{config_file}': {e}\nUsing defaults.")
        return {}
    except OSError as e:
        _stderr(f"Error: Could not read '{config_file}': {e}\nUsing defaults.")
        return {}

    if loaded is None:
        _stderr(f"Warning: '{config_file}' is empty. Using defaults.")
        return {}
    if not isinstance(loaded, dict):
        _stderr(f"Error: '{config_file}' must contain a YAML dictionary, "
                f"not {type(loaded).__name__}. Using defaults.")
        return {}

    _stderr(f"Configuration loaded from: {config_file}")
    return loaded


def _section(config: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = config.get(key)
    return value if isinstance(value, dict) else {}


def _resolve_path(project_root: str, path: str) -> str:
    """Resolve a configured path against the project root unless it is already absolute."""
    if os.path.isabs(path):
        return path
    return os.path.abspath(os.path.join(project_root, path))


def _logger_from_config(config: Dict[str, Any], project_root: str) -> logging.Logger:
    log_config = _section(config, 'logging')
    return setup_logger(
        str(log_config.get('log_level', 'INFO')),
        _resolve_path(project_root, log_config.get('log_file_path', DEFAULT_LOG_FILE)),
        bool(log_config.get('log_to_console', True)),
    )


def _create_transifex_client(
        transifex_config: Dict[str, Any],
        source_language: str,
        dry_run: bool,
        logger: logging.Logger
) -> TransifexClient:
    """Create the Transifex client, exiting when credentials are missing outside dry-run mode."""
    username = os.environ.get('TRANSIFEX_USERNAME')
    password = os.environ.get('TRANSIFEX_PASSWORD')

    if not username or not password:
        if not dry_run:
            logger.critical("CRITICAL: TRANSIFEX_USERNAME and TRANSIFEX_PASSWORD must be set.")
            logger.critical("Add them to .env, or enable dry_run to skip the check; uncached resources are then "
                            "requested without authentication and the tree is not written.")
            sys.exit(1)
        logger.warning("Transifex credentials not set; requests for uncached resources will be unauthenticated.")
        username = password = None

    client = TransifexClient(
        project=transifex_config.get('project', 'tent'),
        username=username,
        password=password,
        base_url=transifex_config.get('base_url', TRANSIFEX_API_URL),
        source_language=source_language,
        timeout=float(transifex_config.get('timeout_seconds', 30)),
    )
    logger.info("Transifex client initialized for project '%s'", client.project)
    return client


def load_app_config() -> AppConfig:
    """
    Build the run configuration from config.yaml, .env and the environment.

    TRANSIFEX_TARGET_LANGUAGE overrides the configured target language.
    Relative paths are resolved against the project root.

    Returns:
        AppConfig: The resolved configuration, with a ready Transifex client.
    """
    project_root = _compute_project_root()
    dotenv_path = _load_dotenv_files(project_root)
    config = _load_yaml_config(project_root)
    logger = _logger_from_config(config, project_root)

    if dotenv_path:
        logger.info("Loaded environment variables from: %s", dotenv_path)
    else:
        logger.info("No .env file found under '%s'; using the process environment.", project_root)

    dry_run = bool(config.get('dry_run', False))
    source_language = config.get('source_language', 'en')
    target_language = os.environ.get('TRANSIFEX_TARGET_LANGUAGE', config.get('target_language', 'zh-Hant'))

    cache_folder = _resolve_path(project_root, config.get('cache_folder', 'cache'))
    dump_folder = _resolve_path(project_root, config.get('dump_folder', 'dumps'))
    rate_limit = _section(config, 'rate_limit')

    transifex_client = _create_transifex_client(_section(config, 'transifex'), source_language, dry_run, logger)

    return AppConfig(
        project_root=project_root,
        content_root=_resolve_path(project_root, config.get('content_root', 'content')),
        cache_folder=cache_folder,
        dump_folder=dump_folder,
        output_root=_resolve_path(project_root, config.get('output_root', 'output')),
        source_language=source_language,
        target_language=target_language,
        dry_run=dry_run,
        legacy_dump_overwrites_cache=bool(config.get('legacy_dump_overwrites_cache', False)),
        pull_before_sync=bool(config.get('pull_before_sync', True)),
        git_remote=config.get('git_remote'),
        git_branch=config.get('git_branch'),
        transifex_project=transifex_client.project,
        rate_limit_max_requests=int(rate_limit.get('max_requests', DEFAULT_MAX_REQUESTS)),
        rate_limit_period_seconds=float(rate_limit.get('period_seconds', DEFAULT_PERIOD_SECONDS)),
        transifex_client=transifex_client
    )
