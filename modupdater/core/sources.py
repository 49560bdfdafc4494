"""Version sources: where the list of pending upstream changes comes from.

  GitSource     a git checkout of the mod; `git fetch` + `git log`
  GitHubSource  standalone builds; GitHub compare API against the build hash

Both return change records newest first and raise VersionSourceError on any
failure. All methods are synchronous (blocking), run them off the GUI thread.
"""

import json
import logging
import subprocess
from datetime import datetime
from typing import Protocol
from urllib.request import Request, urlopen
from urllib.error import URLError

from modupdater.branding import AppBranding
from modupdater.core.models import VersionRecord

logger = logging.getLogger(__name__)

GITHUB_COMPARE_URL = "https://api.github.com/repos/{repo}/compare/{base}...{head}"


class VersionSourceError(RuntimeError):
    """The update provider could not be reached or returned malformed data."""


class VersionSource(Protocol):
    def get_updates(self) -> list[VersionRecord]:
        ...


# ── Git checkout ─────────────────────────────────────────────────────

class GitSource:
    """Pending changes between the local checkout and its upstream branch."""

    def __init__(self, repo_dir: str, branch: str = "main", timeout: float = 60):
        self.repo_dir = repo_dir
        self.branch = branch
        self.timeout = timeout

    def _git(self, *args: str) -> str:
        try:
            result = subprocess.run(
                ['git', *args],
                cwd=self.repo_dir,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise VersionSourceError(f"git {args[0]} failed: {e}") from e

        if result.returncode != 0:
            stderr = (result.stderr or '').strip()
            raise VersionSourceError(
                f"git {args[0]} exited with {result.returncode}: {stderr or 'no output'}"
            )
        return result.stdout

    def current_hash(self) -> str:
        return self._git('rev-parse', 'HEAD').strip()

    def get_updates(self) -> list[VersionRecord]:
        """Fetch upstream and list commits on either side of HEAD...origin/<branch>.

        Local commits missing upstream are listed too, which is how a build
        that is ahead of the remote gets detected.
        """
        self._git('fetch', 'origin', self.branch)
        output = self._git(
            'log', f'HEAD...origin/{self.branch}', '--pretty=format:%H;%an;%ct;%s'
        )

        records = []
        for line in output.splitlines():
            if not line.strip():
                continue
            commit_hash, _, rest = line.partition(';')
            author, _, rest = rest.partition(';')
            committed, _, message = rest.partition(';')
            try:
                timestamp = int(committed) * 1000
            except ValueError:
                timestamp = None
            records.append(VersionRecord(
                hash=commit_hash,
                author=author,
                message=message,
                timestamp=timestamp,
            ))
        return records

    def apply(self) -> bool:
        """Fast-forward the checkout to upstream. Returns False on failure."""
        try:
            self._git('pull', '--ff-only', 'origin', self.branch)
        except VersionSourceError as e:
            logger.error("git pull failed: %s", e)
            return False
        logger.info("Checkout at %s fast-forwarded to origin/%s",
                    self.repo_dir, self.branch)
        return True


# ── GitHub compare API ───────────────────────────────────────────────

class GitHubSource:
    """Commits on the remote branch that the running build does not have."""

    def __init__(self, repo: str, current_hash: str, head: str = "HEAD",
                 timeout: float = 30):
        self.repo = repo
        self.current_hash = current_hash
        self.head = head
        self.timeout = timeout

    def get_updates(self) -> list[VersionRecord]:
        url = GITHUB_COMPARE_URL.format(repo=self.repo, base=self.current_hash,
                                        head=self.head)
        req = Request(url, headers={
            'User-Agent': AppBranding.user_agent(),
            'Accept': 'application/vnd.github+json',
        })

        try:
            with urlopen(req, timeout=self.timeout) as resp:
                data = json.loads(resp.read().decode('utf-8'))
        except (URLError, OSError, json.JSONDecodeError) as e:
            raise VersionSourceError(f"Failed to fetch updates: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get('commits'), list):
            raise VersionSourceError("Unexpected response from GitHub compare API")

        # The API returns at most 250 commits per comparison
        total = data.get('total_commits')
        if isinstance(total, int) and total > len(data['commits']):
            logger.warning("GitHub listed %d of %d commits ahead of %s; update count is partial",
                           len(data['commits']), total, self.current_hash)

        # The API lists commits oldest first
        records = []
        for commit in reversed(data['commits']):
            record = _record_from_commit(commit)
            if record is None:
                logger.warning("Skipping malformed commit entry from %s", self.repo)
                continue
            records.append(record)
        return records


def _record_from_commit(commit) -> VersionRecord | None:
    if not isinstance(commit, dict) or not commit.get('sha'):
        return None
    details = commit.get('commit') or {}
    git_author = details.get('author') or {}
    author = (commit.get('author') or {}).get('login') or git_author.get('name', '')
    message = (details.get('message') or '').split('\n', 1)[0]

    timestamp = None
    date = git_author.get('date')
    if date:
        try:
            parsed = datetime.fromisoformat(date.replace('Z', '+00:00'))
            timestamp = int(parsed.timestamp() * 1000)
        except ValueError:
            pass

    return VersionRecord(hash=commit['sha'], author=author, message=message,
                         timestamp=timestamp)
