import pytest
from mnotes.api import Notebook
from mnotes.conf import MnConf
from mnotes.errors import GitCommandError
from mnotes.git import GitClient, GitStatus


class FakeGitClient(GitClient):
    """Keeps a tiny in-memory model of a repository and records every call made to it.

    Put an exception in ``failures`` under a method name to make that method raise it.
    """
    def __init__(self):
        self.calls = []
        self.failures = {}
        self.repo = False
        self.remote_urls = {}
        self.branches = {'master'}
        self.branch = 'master'
        self.commits = []
        self.changed_files = []

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.failures:
            raise self.failures[name]

    def call_names(self):
        return [c[0] for c in self.calls]

    def version(self):
        self._record('version')
        return 'git version 2.43.0'

    def is_repo(self):
        self._record('is_repo')
        return self.repo

    def init(self):
        self._record('init')
        self.repo = True

    def remotes(self):
        self._record('remotes')
        return sorted(self.remote_urls)

    def add_remote(self, name, url):
        self._record('add_remote', name, url)
        self.remote_urls[name] = url

    def remove_remote(self, name):
        self._record('remove_remote', name)
        del self.remote_urls[name]

    def status(self):
        self._record('status')
        return GitStatus(files=list(self.changed_files), current=self.branch)

    def add_all(self):
        self._record('add_all')

    def commit(self, message):
        self._record('commit', message)
        self.commits.append(message)
        self.changed_files = []

    def push(self, remote, branch, set_upstream=True):
        self._record('push', remote, branch, set_upstream)

    def pull(self, remote, branch, rebase=True):
        self._record('pull', remote, branch, rebase)

    def has_commits(self):
        self._record('has_commits')
        return bool(self.commits)

    def checkout(self, branch):
        self._record('checkout', branch)
        if branch not in self.branches:
            raise GitCommandError(['checkout', branch], 1, f"error: pathspec '{branch}' did not match")
        self.branch = branch

    def create_branch(self, branch):
        self._record('create_branch', branch)
        self.branches.add(branch)
        self.branch = branch

    def rename_branch(self, branch):
        self._record('rename_branch', branch)
        self.branches.discard(self.branch)
        self.branches.add(branch)
        self.branch = branch


@pytest.fixture
def git():
    return FakeGitClient()


@pytest.fixture
def nb(fs, git):
    return Notebook.initialize(MnConf('/notes'), git=git)
