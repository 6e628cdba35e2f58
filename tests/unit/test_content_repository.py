import os
import subprocess
from unittest.mock import patch

import pytest

from tent_sync.components import Category, Checks, Item, Subcategory
from tent_sync.content_repository import ContentRepository
from tent_sync.errors import RepositoryError


def test_all_components_follow_order_then_id(content_root):
    components = ContentRepository(content_root).all_components("en")

    assert [c.resource().slug for c in components] == [
        "security",
        "security___passwords",
        "security___passwords___checks",
        "security___passwords___faq",
        "security___passwords___intro",
        "travel",
        "travel___borders",
        "travel___borders___crossing",
    ]
    assert [type(c) for c in components[:5]] == [Category, Subcategory, Checks, Item, Item]


def test_components_carry_source_fields(content_root):
    components = ContentRepository(content_root).all_components("en")
    by_slug = {c.resource().slug: c for c in components}

    checks = by_slug["security___passwords___checks"]
    assert [(c.text, c.no_check) for c in checks.checks] == [
        ("Use a password manager", False),
        ("Enable 2FA", True),
    ]
    intro = by_slug["security___passwords___intro"]
    assert (intro.title, intro.difficulty, intro.body, intro.language) == ("Intro", "beginner", "Hello", "en")
    assert intro.resource().content == [{"title": "Intro", "body": "Hello"}]
    assert by_slug["travel"].order == 2


def test_malformed_files_are_skipped(content_root, caplog):
    en = os.path.join(content_root, "en")
    with open(os.path.join(en, "security", "passwords", "broken.yaml"), 'w', encoding='utf-8') as f:
        f.write("title: [unclosed")
    os.makedirs(os.path.join(en, "nameless"))
    with open(os.path.join(en, "nameless", ".metadata.yaml"), 'w', encoding='utf-8') as f:
        f.write("order: 3\n")

    with caplog.at_level("WARNING", logger="tent_sync"):
        slugs = [c.resource().slug for c in ContentRepository(content_root).all_components("en")]

    assert "security___passwords___broken" not in slugs
    assert "nameless" not in slugs
    assert len(slugs) == 8
    assert "Skipping item 'broken.yaml'" in caplog.text
    assert "Skipping category 'nameless'" in caplog.text


def test_missing_language_folder_raises(content_root):
    with pytest.raises(RepositoryError):
        ContentRepository(content_root).all_components("fr")


def test_pull_runs_git_with_remote_and_branch(content_root):
    completed = subprocess.CompletedProcess(args=[], returncode=0, stdout="Already up to date.\n", stderr="")
    with patch('tent_sync.content_repository.subprocess.run', return_value=completed) as mock_run:
        ContentRepository(content_root, remote="origin", branch="master").pull()

    args, kwargs = mock_run.call_args
    assert args[0] == ['git', 'pull', 'origin', 'master']
    assert kwargs['cwd'] == content_root
    assert kwargs['check'] is True


def test_pull_failure_raises_repository_error(content_root):
    error = subprocess.CalledProcessError(1, ['git', 'pull'], stderr="fatal: not a git repository\n")
    with patch('tent_sync.content_repository.subprocess.run', side_effect=error):
        with pytest.raises(RepositoryError, match="not a git repository"):
            ContentRepository(content_root).pull()
