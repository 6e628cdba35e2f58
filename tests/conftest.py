import json
import logging
import os
from typing import Dict, List, Optional, Set

import pytest
import yaml

from tent_sync.content_repository import ContentRepository
from tent_sync.download_translations import SyncContext
from tent_sync.errors import RemoteError
from tent_sync.resource_parser import ResourceParser
from tent_sync.translation_cache import TranslationCache

TARGET_LANGUAGE = "zh-Hant"


def translation_set(en_records: List[Dict[str, str]], zh_records: Optional[List[Dict[str, str]]] = None) -> Dict[str, str]:
    """Build a Transifex translation set whose values are JSON record lists."""
    translations = {"en": json.dumps(en_records, ensure_ascii=False)}
    if zh_records is not None:
        translations[TARGET_LANGUAGE] = json.dumps(zh_records, ensure_ascii=False)
    return translations


class FakeTransifexClient:
    """Stands in for TransifexClient and records every slug requested."""

    def __init__(self, responses: Dict[str, Dict[str, str]], failing: Optional[Set[str]] = None):
        self.responses = responses
        self.failing = failing or set()
        self.requested: List[str] = []
        self.rate_limit = None
        self.closed = False

    def configure_rate_limit(self, period_seconds: float, max_requests: int) -> None:
        self.rate_limit = (period_seconds, max_requests)

    async def download_translations(self, slug: str) -> Dict[str, str]:
        self.requested.append(slug)
        if slug in self.failing:
            raise RemoteError(f"HTTP 500 for {slug}")
        if slug not in self.responses:
            raise RemoteError(f"HTTP 404 for {slug}")
        return dict(self.responses[slug])

    async def close(self):
        self.closed = True


def _write_yaml(path: str, data) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(data, f, allow_unicode=True, sort_keys=False)


@pytest.fixture
def content_root(tmp_path):
    """
    A small English source tree:

    security (order 1)
      passwords (order 1): checks x2, items faq + intro
    travel (order 2)
      borders (order 1): item crossing
    """
    root = tmp_path / "content"
    en = root / "en"
    _write_yaml(str(en / "travel" / ".metadata.yaml"), {"name": "Travel", "order": 2})
    _write_yaml(str(en / "travel" / "borders" / ".metadata.yaml"), {"name": "Borders", "order": 1})
    _write_yaml(str(en / "travel" / "borders" / "crossing.yaml"),
                {"title": "Crossing", "difficulty": "advanced", "body": "Be ready."})
    _write_yaml(str(en / "security" / ".metadata.yaml"), {"name": "Security", "order": 1})
    _write_yaml(str(en / "security" / "passwords" / ".metadata.yaml"), {"name": "Passwords", "order": 1})
    _write_yaml(str(en / "security" / "passwords" / ".checks.yaml"),
                [{"text": "Use a password manager"}, {"text": "Enable 2FA", "no_check": True}])
    _write_yaml(str(en / "security" / "passwords" / "intro.yaml"),
                {"title": "Intro", "difficulty": "beginner", "body": "Hello"})
    _write_yaml(str(en / "security" / "passwords" / "faq.yaml"),
                {"title": "FAQ", "difficulty": "beginner", "body": "Questions"})
    return str(root)


@pytest.fixture
def remote_translations():
    """Translation sets for every slug of the ``content_root`` tree."""
    return {
        "security": translation_set([{"name": "Security"}], [{"name": "安全"}]),
        "security___passwords": translation_set([{"name": "Passwords"}], [{"name": "密碼"}]),
        "security___passwords___checks": translation_set(
            [{"text": "Use a password manager"}, {"text": "Enable 2FA"}],
            [{"text": "使用密碼管理器"}, {"text": "啟用兩步驗證"}]
        ),
        "security___passwords___faq": translation_set(
            [{"title": "FAQ", "body": "Questions"}], [{"title": "FAQ", "body": "Questions"}]
        ),
        "security___passwords___intro": translation_set(
            [{"title": "Intro", "body": "Hello"}], [{"title": "簡介", "body": "你好"}]
        ),
        "travel": translation_set([{"name": "Travel"}], [{"name": "旅行"}]),
        "travel___borders": translation_set([{"name": "Borders"}], [{"name": "邊境"}]),
        "travel___borders___crossing": translation_set(
            [{"title": "Crossing", "body": "Be ready."}], [{"title": "過境", "body": "做好準備。"}]
        ),
    }


@pytest.fixture
def make_context(tmp_path, content_root):
    """Factory for a SyncContext over ``content_root`` with a fake client."""
    def _make(client, dump_folder: Optional[str] = "dumps") -> SyncContext:
        return SyncContext(
            repository=ContentRepository(content_root),
            client=client,
            cache=TranslationCache(str(tmp_path / "cache")),
            parser=ResourceParser(),
            source_language="en",
            target_language=TARGET_LANGUAGE,
            dump_folder=str(tmp_path / dump_folder) if dump_folder else None,
        )
    return _make


@pytest.fixture(autouse=True)
def propagate_package_logs():
    """Let caplog see package records even if a test configured the package logger."""
    logger = logging.getLogger("tent_sync")
    previous = logger.propagate
    logger.propagate = True
    yield
    logger.propagate = previous


@pytest.fixture
def fake_client_cls():
    return FakeTransifexClient


@pytest.fixture
def make_translation_set():
    return translation_set
