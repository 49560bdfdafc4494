import io
import json
import subprocess
from urllib.error import URLError

import pytest

from modupdater.core import sources
from modupdater.core.sources import GitHubSource, GitSource, VersionSourceError


class FakeResponse(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


def completed(args, stdout="", returncode=0, stderr=""):
    return subprocess.CompletedProcess(args, returncode, stdout=stdout, stderr=stderr)


# ── GitSource ────────────────────────────────────────────────────────

def test_git_source_parses_log(monkeypatch, tmp_path):
    calls = []
    log = (
        "def5678aaaa;alice;1700000000;Fix crash; again\n"
        "abc1234bbbb;bob;1699999000;Add option\n"
    )

    def fake_run(args, **kwargs):
        calls.append(args)
        if args[1] == 'log':
            return completed(args, stdout=log)
        return completed(args)

    monkeypatch.setattr(sources.subprocess, 'run', fake_run)
    records = GitSource(str(tmp_path), branch="dev").get_updates()

    assert calls[0] == ['git', 'fetch', 'origin', 'dev']
    assert calls[1][:3] == ['git', 'log', 'HEAD...origin/dev']
    assert [r.hash for r in records] == ["def5678aaaa", "abc1234bbbb"]
    assert records[0].author == "alice"
    assert records[0].message == "Fix crash; again"
    assert records[0].timestamp == 1_700_000_000_000


def test_git_source_error_exit(monkeypatch, tmp_path):
    monkeypatch.setattr(
        sources.subprocess, 'run',
        lambda args, **kwargs: completed(args, returncode=128, stderr="fatal: no remote\n"))

    with pytest.raises(VersionSourceError, match="fatal: no remote"):
        GitSource(str(tmp_path)).get_updates()


def test_git_source_missing_git(monkeypatch, tmp_path):
    def fake_run(args, **kwargs):
        raise FileNotFoundError("git")

    monkeypatch.setattr(sources.subprocess, 'run', fake_run)

    with pytest.raises(VersionSourceError):
        GitSource(str(tmp_path)).get_updates()


def test_git_source_apply(monkeypatch, tmp_path):
    results = iter([completed([], returncode=0), completed([], returncode=1, stderr="conflict")])
    monkeypatch.setattr(sources.subprocess, 'run', lambda args, **kwargs: next(results))

    git = GitSource(str(tmp_path))
    assert git.apply() is True
    assert git.apply() is False


def test_git_source_current_hash(monkeypatch, tmp_path):
    monkeypatch.setattr(sources.subprocess, 'run',
                        lambda args, **kwargs: completed(args, stdout="abc1234\n"))

    assert GitSource(str(tmp_path)).current_hash() == "abc1234"


# ── GitHubSource ─────────────────────────────────────────────────────

def test_github_source_returns_newest_first(monkeypatch):
    payload = {
        "commits": [
            {"sha": "older111", "author": {"login": "bob"},
             "commit": {"message": "Old change\n\nbody",
                        "author": {"name": "Bob", "date": "2024-01-01T00:00:00Z"}}},
            {"sha": "newer222", "author": None,
             "commit": {"message": "New change", "author": {"name": "Alice"}}},
            {"no_sha": True},
        ]
    }
    requests = []

    def fake_urlopen(req, timeout):
        requests.append(req)
        return FakeResponse(json.dumps(payload).encode('utf-8'))

    monkeypatch.setattr(sources, 'urlopen', fake_urlopen)
    records = GitHubSource("owner/mod", "abc1234").get_updates()

    assert requests[0].full_url == (
        "https://api.github.com/repos/owner/mod/compare/abc1234...HEAD")
    assert [r.hash for r in records] == ["newer222", "older111"]
    assert records[0].author == "Alice"
    assert records[1].author == "bob"
    assert records[1].message == "Old change"
    assert records[1].timestamp == 1_704_067_200_000


def test_github_source_network_error(monkeypatch):
    def fake_urlopen(req, timeout):
        raise URLError("unreachable")

    monkeypatch.setattr(sources, 'urlopen', fake_urlopen)

    with pytest.raises(VersionSourceError, match="Failed to fetch updates"):
        GitHubSource("owner/mod", "abc1234").get_updates()


def test_github_source_unexpected_payload(monkeypatch):
    monkeypatch.setattr(sources, 'urlopen',
                        lambda req, timeout: FakeResponse(b'{"message": "Not Found"}'))

    with pytest.raises(VersionSourceError, match="Unexpected response"):
        GitHubSource("owner/mod", "abc1234").get_updates()


def test_github_source_warns_when_comparison_is_truncated(monkeypatch, caplog):
    payload = {
        "total_commits": 300,
        "commits": [{"sha": f"{i:07d}", "commit": {"message": "Change"}} for i in range(250)],
    }
    monkeypatch.setattr(sources, 'urlopen',
                        lambda req, timeout: FakeResponse(json.dumps(payload).encode('utf-8')))

    with caplog.at_level("WARNING", logger=sources.__name__):
        records = GitHubSource("owner/mod", "abc1234").get_updates()

    assert len(records) == 250
    assert "250 of 300 commits" in caplog.text
