"""Defines classes for representing notes, configuration, and search results.

The most important classes are :class:`Note`, :class:`NoteConfig` and :class:`SearchResult`.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Union

from mnotes.errors import ConfigError, NotFoundError


CONFIG_VERSION = '1.0.0'


def now_iso() -> str:
    """Returns the current UTC time as an ISO-8601 string with millisecond precision, e.g. ``2024-03-01T09:30:00.000Z``."""
    return format_timestamp(datetime.now(timezone.utc))


def format_timestamp(dt: datetime) -> str:
    if not dt.tzinfo:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parses an ISO-8601 timestamp, returning None if it is missing or unparseable.

    Naive values are assumed to be UTC, so that all results can be compared with each other.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    if not dt.tzinfo:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass
class NoteFrontmatter:
    """The metadata stored in the YAML header of a note file."""

    title: str
    created: str
    """ISO-8601 creation timestamp."""

    updated: str
    """ISO-8601 timestamp of the last edit made through mnotes."""

    folder: str
    tags: List[str] = field(default_factory=list)
    id: Optional[int] = None
    """Stable numeric identifier shown by ``mn list``. Notes written by hand may not have one."""

    extra: Dict[str, object] = field(default_factory=dict)
    """Any other keys found in the header. They are written back unchanged."""

    @classmethod
    def from_dict(cls, meta: dict, *, default_title: str, default_folder: str,
                  default_timestamp: str) -> NoteFrontmatter:
        """Builds an instance from a decoded YAML header, filling in anything missing from the defaults."""
        meta = dict(meta)
        title = meta.pop('title', None)
        created = meta.pop('created', None)
        updated = meta.pop('updated', None)
        folder = meta.pop('folder', None)
        tags = meta.pop('tags', None) or []
        note_id = meta.pop('id', None)
        if isinstance(created, datetime):
            created = format_timestamp(created)
        if isinstance(updated, datetime):
            updated = format_timestamp(updated)
        if not isinstance(tags, list):
            tags = [tags]
        try:
            note_id = int(note_id) if note_id is not None else None
        except (TypeError, ValueError):
            note_id = None
        created = str(created) if created else default_timestamp
        return cls(
            title=str(title) if title else default_title,
            created=created,
            updated=str(updated) if updated else created,
            folder=str(folder) if folder else default_folder,
            tags=[str(t) for t in tags],
            id=note_id,
            extra=meta,
        )

    def as_dict(self) -> dict:
        """Returns the mapping to store in the YAML header."""
        result = {}
        if self.id is not None:
            result['id'] = self.id
        result['title'] = self.title
        result['created'] = self.created
        result['updated'] = self.updated
        result['tags'] = list(self.tags)
        result['folder'] = self.folder
        result.update(self.extra)
        return result

    def created_at(self) -> datetime:
        """The creation timestamp as a datetime; unparseable values sort as the oldest possible time."""
        return parse_timestamp(self.created) or datetime.min.replace(tzinfo=timezone.utc)

    def updated_at(self) -> datetime:
        return parse_timestamp(self.updated) or self.created_at()


@dataclass
class Note:
    """A note read from (or about to be written to) a Markdown file."""

    frontmatter: NoteFrontmatter
    content: str
    """The body of the file, without the frontmatter."""

    path: str
    """Absolute path of the file the note lives in."""

    def as_json(self) -> dict:
        """Returns a dict representing the instance, suitable for serializing as json."""
        return {
            'path': self.path,
            'frontmatter': self.frontmatter.as_dict(),
            'content': self.content,
        }


@dataclass
class FolderSettings:
    encrypted: bool = False
    """Intent only: mnotes stores and displays this flag but does not encrypt anything."""

    git_ignored: bool = False
    """If True, the folder is listed in the generated ``.gitignore`` and never pushed."""

    @classmethod
    def from_json(cls, data: dict) -> FolderSettings:
        return cls(encrypted=bool(data.get('encrypted', False)), git_ignored=bool(data.get('gitIgnored', False)))

    def as_json(self) -> dict:
        return {'encrypted': self.encrypted, 'gitIgnored': self.git_ignored}


@dataclass(frozen=True)
class SyncDisabled:
    """Git sync is not configured, or was turned off by ``mn sync disable``.

    The remote and branch from the last setup are remembered so they can be offered again.
    """
    remote_url: Optional[str] = None
    branch: Optional[str] = None


@dataclass(frozen=True)
class GitSync:
    """Git sync is configured and enabled."""
    remote_url: str
    branch: str
    auto_sync: bool = True

    def __post_init__(self):
        if not self.remote_url or not self.branch:
            raise ValueError('Git sync needs both a remote URL and a branch.')


SyncConfig = Union[SyncDisabled, GitSync]


def sync_from_json(data: Optional[dict]) -> SyncConfig:
    """Converts the ``sync`` object of config.json; partially filled-in settings count as disabled."""
    if not isinstance(data, dict):
        return SyncDisabled()
    git = data.get('git')
    if not isinstance(git, dict):
        return SyncDisabled()
    remote_url = git.get('remoteUrl') or None
    branch = git.get('branch') or None
    if git.get('enabled') and remote_url and branch:
        return GitSync(remote_url=remote_url, branch=branch, auto_sync=bool(git.get('autoSync', False)))
    return SyncDisabled(remote_url=remote_url, branch=branch)


def sync_as_json(sync: SyncConfig) -> Optional[dict]:
    if isinstance(sync, GitSync):
        return {
            'enabled': True,
            'provider': 'git',
            'git': {'enabled': True, 'remoteUrl': sync.remote_url, 'branch': sync.branch,
                    'autoSync': sync.auto_sync},
        }
    if sync.remote_url or sync.branch:
        return {
            'enabled': False,
            'provider': 'git',
            'git': {'enabled': False, 'remoteUrl': sync.remote_url or '', 'branch': sync.branch or '',
                    'autoSync': False},
        }
    return None


@dataclass
class NoteConfig:
    """The contents of ``config.json`` in the notes directory."""

    notes_path: str
    created_at: str
    updated_at: str
    version: str = CONFIG_VERSION
    default_editor: Optional[str] = None
    folder_settings: Dict[str, FolderSettings] = field(default_factory=dict)
    sync: SyncConfig = field(default_factory=SyncDisabled)

    @classmethod
    def default(cls, notes_path: str) -> NoteConfig:
        """Returns the config written by ``mn init`` before the user's answers are applied."""
        now = now_iso()
        return cls(
            notes_path=notes_path,
            created_at=now,
            updated_at=now,
            folder_settings={
                'general': FolderSettings(encrypted=False, git_ignored=False),
                'security': FolderSettings(encrypted=True, git_ignored=True),
            },
        )

    @classmethod
    def from_json(cls, data: dict) -> NoteConfig:
        """Raises :exc:`mnotes.errors.ConfigError` if required keys are missing or have the wrong shape."""
        if not isinstance(data, dict):
            raise ConfigError('The config file must contain a JSON object.')
        try:
            folders = data.get('folderSettings') or {}
            return cls(
                notes_path=data['notesPath'],
                created_at=data.get('createdAt') or now_iso(),
                updated_at=data.get('updatedAt') or data.get('createdAt') or now_iso(),
                version=data.get('version', CONFIG_VERSION),
                default_editor=data.get('defaultEditor') or None,
                folder_settings={name: FolderSettings.from_json(s) for name, s in folders.items()},
                sync=sync_from_json(data.get('sync')),
            )
        except (KeyError, AttributeError, TypeError) as e:
            raise ConfigError(f'The config file is missing or has invalid settings: {e}') from e

    def as_json(self) -> dict:
        """Returns a dict representing the instance, suitable for serializing as json."""
        result = {
            'version': self.version,
            'notesPath': self.notes_path,
        }
        if self.default_editor:
            result['defaultEditor'] = self.default_editor
        result['folderSettings'] = {name: s.as_json() for name, s in self.folder_settings.items()}
        sync = sync_as_json(self.sync)
        if sync:
            result['sync'] = sync
        result['createdAt'] = self.created_at
        result['updatedAt'] = self.updated_at
        return result

    def touch(self) -> None:
        self.updated_at = now_iso()

    def ignored_folders(self) -> List[str]:
        """Names of folders that should be excluded from git, in config order."""
        return [name for name, s in self.folder_settings.items() if s.git_ignored]

    def add_folder(self, name: str, settings: FolderSettings) -> None:
        if name in self.folder_settings:
            raise FileExistsError(f'Folder "{name}" already exists')
        self.folder_settings[name] = settings
        self.touch()

    def remove_folder(self, name: str) -> None:
        if name not in self.folder_settings:
            raise NotFoundError(f'Folder "{name}" not found in config')
        del self.folder_settings[name]
        self.touch()

    def update_folder(self, name: str, encrypted: Optional[bool] = None, git_ignored: Optional[bool] = None) -> None:
        """Changes the given settings of a folder, leaving the ones passed as None alone."""
        settings = self.folder_settings.get(name)
        if not settings:
            raise NotFoundError(f'Folder "{name}" not found in config')
        if encrypted is not None:
            settings.encrypted = encrypted
        if git_ignored is not None:
            settings.git_ignored = git_ignored
        self.touch()


@dataclass
class SearchMatches:
    """Which parts of a note matched a search query."""
    in_title: bool = False
    in_tags: bool = False
    in_content: bool = False
    content_snippet: Optional[str] = None
    """Text around the first match in the content, if there was one."""

    def locations(self) -> List[str]:
        result = []
        if self.in_title:
            result.append('Title')
        if self.in_tags:
            result.append('Tags')
        if self.in_content:
            result.append('Content')
        return result


@dataclass
class SearchResult:
    note: Note
    matches: SearchMatches
    score: int

    def as_json(self) -> dict:
        return {
            'note': self.note.as_json(),
            'matches': {
                'inTitle': self.matches.in_title,
                'inTags': self.matches.in_tags,
                'inContent': self.matches.in_content,
                'contentSnippet': self.matches.content_snippet,
            },
            'score': self.score,
        }


@dataclass
class SyncResult:
    """What :func:`mnotes.sync.sync_with_remote` did."""
    committed: bool = False
    pushed: bool = False
    pulled: bool = False

    def changed(self) -> bool:
        return self.committed or self.pushed
