"""Provides the main entry point for using the library, :class:`Notebook`"""

from __future__ import annotations
import logging
import os
import os.path
import re
from typing import List, Optional, Tuple

from mnotes import folders, search, store
from mnotes.conf import MnConf
from mnotes.editor import open_in_editor
from mnotes.errors import Error, NotFoundError, ValidationError
from mnotes.git import GitClient, GitStatus, SubprocessGitClient
from mnotes.models import FolderSettings, GitSync, Note, NoteConfig, SearchResult, SyncDisabled, SyncResult, \
    now_iso
from mnotes.sync import DEFAULT_BRANCH, create_initial_commit, init_git_repo, setup_remote, sync_with_remote

logger = logging.getLogger(__name__)

DEFAULT_FOLDER = 'general'
SECURITY_FOLDER = 'security'
GIT_REMOTE_ADD_RE = re.compile(r'^git\s+remote\s+add\s+\S+\s+')


def clean_remote_url(value: str) -> str:
    """Strips a pasted ``git remote add origin`` prefix from a remote URL."""
    return GIT_REMOTE_ADD_RE.sub('', value.strip()).strip()


class Notebook:
    """Main entry point for working programmatically with your notes.

    Generally, you should get an instance using :meth:`Notebook.for_user`, which raises
    :exc:`mnotes.errors.NotInitializedError` if ``mn init`` has not been run. Use :meth:`Notebook.initialize`
    to set up a new notes directory.

    .. attribute:: conf
       :type: mnotes.conf.MnConf

    .. attribute:: config
       :type: mnotes.models.NoteConfig

       Loaded once from ``config.json``; methods that change it save it again.

    .. attribute:: git
       :type: mnotes.git.GitClient

    Here's an example that tags every note mentioning "invoice":

    .. code-block:: python

       from mnotes.api import Notebook
       from mnotes.frontmatter import write_note
       nb = Notebook.for_user()
       for result in nb.search('invoice'):
           result.note.frontmatter.tags.append('finance')
           write_note(result.note)
    """

    @staticmethod
    def for_user(notes_path: str = None, git: GitClient = None) -> Notebook:
        return Notebook(MnConf.for_user(notes_path), git=git)

    @staticmethod
    def initialize(conf: MnConf, encrypt_security: bool = True, ignore_security: bool = True,
                   default_editor: str = None, git: GitClient = None) -> Notebook:
        """Creates the notes directory with its ``general`` and ``security`` folders, config, and ``.gitignore``.

        Running this on an existing directory keeps the notes but replaces the config.
        """
        root = conf.notes_path
        os.makedirs(os.path.join(root, DEFAULT_FOLDER), exist_ok=True)
        os.makedirs(os.path.join(root, SECURITY_FOLDER), exist_ok=True)
        config = NoteConfig.default(root)
        config.folder_settings[SECURITY_FOLDER] = FolderSettings(encrypted=encrypt_security,
                                                                 git_ignored=ignore_security)
        if default_editor:
            config.default_editor = default_editor
        conf.save(config)
        folders.write_gitignore(root, config.ignored_folders())
        logger.debug('Initialized notes directory %s', root)
        return Notebook(conf, config, git)

    def __init__(self, conf: MnConf, config: NoteConfig = None, git: GitClient = None):
        self.conf = conf
        self.config = config if config is not None else conf.load()
        self.git = git or SubprocessGitClient(conf.notes_path)

    @property
    def root(self) -> str:
        return self.conf.notes_path

    def save_config(self) -> None:
        self.conf.save(self.config)

    def _require_folder(self, folder: str) -> None:
        if folder not in self.config.folder_settings:
            raise NotFoundError(f'Folder "{folder}" does not exist. '
                                f'Available folders: {", ".join(self.config.folder_settings)}')

    def notes(self, folder: str = None) -> List[Note]:
        return store.list_notes(self.root, folder)

    def find(self, title: str, folder: str = None) -> Note:
        """Like :func:`mnotes.store.find_note_by_title`, but raises :exc:`mnotes.errors.NotFoundError` on a miss."""
        note = store.find_note_by_title(self.root, title, folder)
        if not note:
            raise NotFoundError(f'Note "{title}" not found.')
        return note

    def find_by_id(self, note_id: int) -> Note:
        note = store.find_note_by_id(self.root, note_id)
        if not note:
            raise NotFoundError(f'Note with ID [{note_id}] not found.')
        return note

    def create(self, title: str, folder: str = DEFAULT_FOLDER) -> Note:
        """Creates an empty note in a folder that exists in the config."""
        self._require_folder(folder)
        return store.create_note(self.root, folder, title)

    def add(self, content: str, folder: str = DEFAULT_FOLDER) -> Note:
        """Quickly adds a note with the given content; the title is taken from the content."""
        if not content or not content.strip():
            raise ValidationError('Note content cannot be empty.')
        self._require_folder(folder)
        return store.add_note(self.root, folder, content)

    def is_encrypted(self, note: Note) -> bool:
        settings = self.config.folder_settings.get(note.frontmatter.folder)
        return bool(settings and settings.encrypted)

    def edit(self, note: Note) -> Note:
        """Opens the note in the configured editor and then refreshes its ``updated`` timestamp."""
        open_in_editor(note.path, self.config.default_editor)
        return store.update_note_timestamp(note.path, self.root)

    def delete(self, note: Note) -> None:
        store.delete_note(note.path)

    def search(self, query: str, folder: str = None) -> List[SearchResult]:
        return search.search(self.root, query, folder)

    def folders(self) -> List[Tuple[str, Optional[FolderSettings]]]:
        """Returns each folder on disk with its settings, or None for folders missing from the config."""
        return [(name, self.config.folder_settings.get(name)) for name in folders.list_folders(self.root)]

    def _write_gitignore(self) -> None:
        folders.write_gitignore(self.root, self.config.ignored_folders())

    def create_folder(self, name: str, encrypted: bool = False, git_ignored: bool = False) -> str:
        """Creates a folder and registers it in the config. Returns the sanitized folder name."""
        name = folders.sanitize_folder_name(name)
        if name in self.config.folder_settings:
            raise FileExistsError(f'Folder "{name}" already exists.')
        folders.create_folder(self.root, name)
        self.config.add_folder(name, FolderSettings(encrypted=encrypted, git_ignored=git_ignored))
        self.save_config()
        self._write_gitignore()
        return name

    def delete_folder(self, name: str) -> None:
        """Deletes a folder with all its notes, and removes it from the config."""
        self._require_folder(name)
        folders.delete_folder(self.root, name)
        self.config.remove_folder(name)
        self.save_config()
        self._write_gitignore()

    def configure_folder(self, name: str, encrypted: bool = None, git_ignored: bool = None) -> FolderSettings:
        """Changes the settings of a folder; settings passed as None are left alone."""
        self._require_folder(name)
        self.config.update_folder(name, encrypted=encrypted, git_ignored=git_ignored)
        self.save_config()
        self._write_gitignore()
        return self.config.folder_settings[name]

    def sync(self, commit_message: str = None) -> SyncResult:
        """Runs :func:`mnotes.sync.sync_with_remote` with the configured branch. Errors are raised."""
        sync = self.config.sync
        if not isinstance(sync, GitSync):
            raise Error('Git sync is not configured. Run `mn sync setup` to configure it.')
        message = commit_message or f'Manual sync - {now_iso()}'
        return sync_with_remote(self.git, message, sync.branch)

    def auto_sync(self, operation: str) -> Optional[SyncResult]:
        """Syncs after a change, if Git sync and auto-sync are enabled.

        Returns None if no sync was attempted or if it failed. Failures are only logged: the change that triggered
        the sync has already been saved locally and stays that way.
        """
        sync = self.config.sync
        if not (isinstance(sync, GitSync) and sync.auto_sync):
            return None
        try:
            return sync_with_remote(self.git, f'{operation} - {now_iso()}', sync.branch)
        except Exception as e:
            logger.warning('Sync failed: %s. Your changes are saved locally. Run `mn sync` to try again.', e)
            return None

    def setup_sync(self, remote_url: str, branch: str = DEFAULT_BRANCH, auto_sync: bool = True) -> GitSync:
        """Prepares the notes directory as a git repository pushing to the given remote, and enables sync."""
        remote_url = clean_remote_url(remote_url)
        if not remote_url:
            raise ValidationError('Remote URL cannot be empty.')
        branch = branch.strip() if branch else ''
        if not branch:
            raise ValidationError('Branch name cannot be empty.')
        self.git.version()
        init_git_repo(self.git)
        setup_remote(self.git, remote_url)
        create_initial_commit(self.git, branch)
        self.config.sync = GitSync(remote_url=remote_url, branch=branch, auto_sync=auto_sync)
        self.config.touch()
        self.save_config()
        return self.config.sync

    def sync_status(self) -> Optional[GitStatus]:
        """Returns the repository status, or None if it cannot be determined."""
        try:
            return self.git.status()
        except Error as e:
            logger.debug('Could not get git status: %s', e)
            return None

    def disable_sync(self) -> bool:
        """Turns sync off, remembering the remote. Returns False if it was already off."""
        sync = self.config.sync
        if not isinstance(sync, GitSync):
            return False
        self.config.sync = SyncDisabled(remote_url=sync.remote_url, branch=sync.branch)
        self.config.touch()
        self.save_config()
        return True
