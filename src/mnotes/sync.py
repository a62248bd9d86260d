"""Keeps the notes directory in step with a remote Git repository.

:func:`sync_with_remote` is the single reconciliation entry point: pull, then commit, then push. The other
functions prepare a repository for it and are safe to call repeatedly.
"""

import logging

from mnotes.errors import ExternalToolError
from mnotes.git import GitClient
from mnotes.models import SyncResult

logger = logging.getLogger(__name__)

DEFAULT_REMOTE = 'origin'
DEFAULT_BRANCH = 'main'
INITIAL_COMMIT_MESSAGE = 'Initial commit: Setup notes directory'


def sync_with_remote(git: GitClient, commit_message: str, branch: str = DEFAULT_BRANCH,
                     remote: str = DEFAULT_REMOTE) -> SyncResult:
    """Pulls remote changes, commits any local changes, and pushes.

    A failed pull is not an error: on the first sync there may be nothing to pull yet, or no upstream branch.
    A failed push is raised, since it means the remote did not receive the local changes.
    """
    result = SyncResult()
    try:
        git.pull(remote, branch, rebase=True)
        result.pulled = True
    except ExternalToolError as e:
        logger.info('No remote changes to pull: %s', e)

    if git.status().files:
        git.add_all()
        git.commit(commit_message)
        result.committed = True

    git.push(remote, branch, set_upstream=True)
    result.pushed = True
    return result


def init_git_repo(git: GitClient) -> bool:
    """Initializes the repository unless it already is one. Returns True if it was created."""
    if git.is_repo():
        return False
    git.init()
    return True


def setup_remote(git: GitClient, remote_url: str, remote: str = DEFAULT_REMOTE) -> None:
    """Points the named remote at the URL, replacing the remote if it already exists."""
    if remote in git.remotes():
        git.remove_remote(remote)
    git.add_remote(remote, remote_url)


def create_initial_commit(git: GitClient, branch: str = DEFAULT_BRANCH) -> bool:
    """Makes sure the repository has at least one commit and that the given branch is checked out.

    If there are commits already, the branch is checked out (and created if it does not exist yet). Otherwise
    everything is committed and the initial branch renamed. Returns True if a commit was made.
    """
    if git.has_commits():
        if git.current_branch() != branch:
            try:
                git.checkout(branch)
            except ExternalToolError:
                git.create_branch(branch)
        return False
    git.add_all()
    git.commit(INITIAL_COMMIT_MESSAGE)
    try:
        git.rename_branch(branch)
    except ExternalToolError as e:
        logger.debug('Could not rename initial branch to %s: %s', branch, e)
    return True
