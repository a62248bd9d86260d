"""A narrow interface to the ``git`` executable.

:class:`GitClient` lists the operations the sync engine needs; :class:`SubprocessGitClient` implements them by
running ``git -C <repo> ...``. Tests substitute a fake implementation.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging
import subprocess
from typing import List, Optional, Sequence

from mnotes.errors import ExternalToolError, GitCommandError, SyncConflictError

logger = logging.getLogger(__name__)

NO_COMMITS_PREFIXES = ('No commits yet on ', 'Initial commit on ')
PUSH_REJECTED_MARKERS = ('[rejected]', 'non-fast-forward', 'fetch first', 'Updates were rejected')


@dataclass
class GitStatus:
    files: List[str] = field(default_factory=list)
    """Paths with staged, unstaged or untracked changes."""

    current: Optional[str] = None
    """The checked-out branch, or None when detached."""

    tracking: Optional[str] = None
    ahead: int = 0
    behind: int = 0

    def is_clean(self) -> bool:
        return not self.files


def _parse_branch_line(status: GitStatus, line: str) -> None:
    text = line[3:]
    for prefix in NO_COMMITS_PREFIXES:
        if text.startswith(prefix):
            text = text[len(prefix):]
    if text.startswith('HEAD (no branch)'):
        return
    text, _, tracking = text.partition(' [')
    status.current, _, upstream = text.partition('...')
    status.tracking = upstream or None
    for part in tracking.rstrip(']').split(','):
        part = part.strip()
        if part.startswith('ahead '):
            status.ahead = int(part[6:])
        elif part.startswith('behind '):
            status.behind = int(part[7:])


def parse_status(output: str) -> GitStatus:
    """Parses the output of ``git status --porcelain --branch``."""
    status = GitStatus()
    for line in output.splitlines():
        if not line.strip():
            continue
        if line.startswith('## '):
            _parse_branch_line(status, line)
        else:
            status.files.append(line[3:])
    return status


class GitClient:
    """Base class for git access, bound to one repository.

    Every method may raise :exc:`mnotes.errors.ExternalToolError`.
    """
    def version(self) -> str:
        raise NotImplementedError()

    def is_repo(self) -> bool:
        raise NotImplementedError()

    def init(self) -> None:
        raise NotImplementedError()

    def remotes(self) -> List[str]:
        raise NotImplementedError()

    def add_remote(self, name: str, url: str) -> None:
        raise NotImplementedError()

    def remove_remote(self, name: str) -> None:
        raise NotImplementedError()

    def status(self) -> GitStatus:
        raise NotImplementedError()

    def add_all(self) -> None:
        raise NotImplementedError()

    def commit(self, message: str) -> None:
        raise NotImplementedError()

    def push(self, remote: str, branch: str, set_upstream: bool = True) -> None:
        """Should raise :exc:`mnotes.errors.SyncConflictError` if the remote rejects the push."""
        raise NotImplementedError()

    def pull(self, remote: str, branch: str, rebase: bool = True) -> None:
        raise NotImplementedError()

    def has_commits(self) -> bool:
        raise NotImplementedError()

    def current_branch(self) -> Optional[str]:
        return self.status().current

    def checkout(self, branch: str) -> None:
        raise NotImplementedError()

    def create_branch(self, branch: str) -> None:
        """Creates the branch from the current HEAD and checks it out."""
        raise NotImplementedError()

    def rename_branch(self, branch: str) -> None:
        """Renames the current branch, replacing any existing branch with that name."""
        raise NotImplementedError()


class SubprocessGitClient(GitClient):
    """Runs the ``git`` executable found on the PATH.

    .. attribute:: repo_path
       :type: str
    """
    def __init__(self, repo_path: str, executable: str = 'git'):
        self.repo_path = repo_path
        self.executable = executable

    def run(self, args: Sequence[str], check: bool = True) -> subprocess.CompletedProcess:
        """Runs git with the given arguments inside the repository and returns the completed process.

        Raises :exc:`mnotes.errors.GitCommandError` for a non-zero exit status if check is True, and
        :exc:`mnotes.errors.ExternalToolError` if git is not installed.
        """
        cmd = [self.executable, '-C', self.repo_path] + list(args)
        logger.debug('Running %s', cmd)
        try:
            proc = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE,
                                  encoding='utf-8')
        except FileNotFoundError as e:
            raise ExternalToolError('Git is not installed on your system.') from e
        if check and proc.returncode != 0:
            raise GitCommandError(args, proc.returncode, proc.stderr)
        return proc

    def version(self) -> str:
        return self.run(['--version']).stdout.strip()

    def is_repo(self) -> bool:
        proc = self.run(['rev-parse', '--is-inside-work-tree'], check=False)
        return proc.returncode == 0 and proc.stdout.strip() == 'true'

    def init(self) -> None:
        self.run(['init'])

    def remotes(self) -> List[str]:
        return [line.strip() for line in self.run(['remote']).stdout.splitlines() if line.strip()]

    def add_remote(self, name: str, url: str) -> None:
        self.run(['remote', 'add', name, url])

    def remove_remote(self, name: str) -> None:
        self.run(['remote', 'remove', name])

    def status(self) -> GitStatus:
        return parse_status(self.run(['status', '--porcelain', '--branch']).stdout)

    def add_all(self) -> None:
        self.run(['add', '-A'])

    def commit(self, message: str) -> None:
        self.run(['commit', '-m', message])

    def push(self, remote: str, branch: str, set_upstream: bool = True) -> None:
        args = ['push'] + (['--set-upstream'] if set_upstream else []) + [remote, branch]
        proc = self.run(args, check=False)
        if proc.returncode != 0:
            if any(marker in proc.stderr for marker in PUSH_REJECTED_MARKERS):
                raise SyncConflictError(args, proc.returncode, proc.stderr)
            raise GitCommandError(args, proc.returncode, proc.stderr)

    def pull(self, remote: str, branch: str, rebase: bool = True) -> None:
        self.run(['pull'] + (['--rebase', '--autostash'] if rebase else []) + [remote, branch])

    def has_commits(self) -> bool:
        return self.run(['rev-parse', '--verify', '--quiet', 'HEAD'], check=False).returncode == 0

    def checkout(self, branch: str) -> None:
        self.run(['checkout', branch])

    def create_branch(self, branch: str) -> None:
        self.run(['checkout', '-b', branch])

    def rename_branch(self, branch: str) -> None:
        self.run(['branch', '-M', branch])
