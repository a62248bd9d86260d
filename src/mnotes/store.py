"""Reads, creates, updates and deletes the note files under a notes directory.

There is no caching: every call reads the files it needs from disk.
"""

from datetime import datetime, timezone
import logging
import os
import os.path
from typing import Iterator, List, Optional

from mnotes.errors import ValidationError
from mnotes.frontmatter import ParseError, read_note, write_note
from mnotes.models import Note, NoteFrontmatter, now_iso

logger = logging.getLogger(__name__)

NOTE_SUFFIX = '.md'
QUICK_TITLE_LENGTH = 50


def default_ignore(parentpath: str, filename: str) -> bool:
    return filename.startswith('.') or filename == 'node_modules'


def _paths_in(dirpath: str, recursive: bool) -> Iterator[str]:
    entries = sorted(os.scandir(dirpath), key=lambda e: e.name)
    for entry in entries:
        if entry.is_symlink() or default_ignore(dirpath, entry.name):
            continue
        if entry.is_dir():
            if recursive:
                yield from _paths_in(entry.path, recursive)
        elif entry.name.endswith(NOTE_SUFFIX):
            yield entry.path


def note_paths(root: str, folder: str = None) -> Iterator[str]:
    """Yields the paths of all Markdown files in the notes directory, or directly within one of its folders."""
    if folder:
        dirpath = os.path.join(root, folder)
        if os.path.isdir(dirpath):
            yield from _paths_in(dirpath, recursive=False)
    elif os.path.isdir(root):
        yield from _paths_in(root, recursive=True)


def list_notes(root: str, folder: str = None) -> List[Note]:
    """Returns all notes, most recently created first.

    If folder is given, only files directly inside that folder are considered, whatever their ``folder``
    metadata says. Files that cannot be parsed are skipped.
    """
    notes = []
    for path in note_paths(root, folder):
        try:
            notes.append(read_note(path, root))
        except (ParseError, UnicodeDecodeError) as e:
            logger.debug('Skipping unreadable note %s: %s', path, e)
    notes.sort(key=lambda n: n.frontmatter.created_at(), reverse=True)
    return notes


def find_note_by_title(root: str, title: str, folder: str = None) -> Optional[Note]:
    """Looks for a note whose title equals the given title, ignoring case.

    If there is none, the first note whose title contains the given title is returned instead. When several
    notes match, the first one in :func:`list_notes` order wins.
    """
    wanted = title.lower()
    notes = list_notes(root, folder)
    for note in notes:
        if note.frontmatter.title.lower() == wanted:
            return note
    for note in notes:
        if wanted in note.frontmatter.title.lower():
            return note
    return None


def find_note_by_id(root: str, note_id: int) -> Optional[Note]:
    for note in list_notes(root):
        if note.frontmatter.id == note_id:
            return note
    return None


def next_note_id(root: str) -> int:
    """Returns one more than the largest note id in use."""
    ids = [n.frontmatter.id for n in list_notes(root) if n.frontmatter.id is not None]
    return max(ids, default=0) + 1


def generate_timestamp_id(now: datetime = None) -> str:
    """Returns a filename stem like ``20240301093000123`` based on the current UTC time, to the millisecond."""
    now = now or datetime.now(timezone.utc)
    return now.strftime('%Y%m%d%H%M%S') + f'{now.microsecond // 1000:03d}'


def create_note(root: str, folder: str, title: str, content: str = '') -> Note:
    """Writes a new note file in the given folder and returns it.

    Raises :exc:`FileExistsError` if a file with the generated name already exists, which can only happen when
    two notes are created within the same millisecond.
    """
    if not title or not title.strip():
        raise ValidationError('Note title cannot be empty.')
    if not folder:
        raise ValidationError('Folder name cannot be empty.')
    folder_path = os.path.join(root, folder)
    path = os.path.join(folder_path, generate_timestamp_id() + NOTE_SUFFIX)
    if os.path.exists(path):
        raise FileExistsError(f'Note "{os.path.basename(path)}" already exists in {folder}/')
    note_id = next_note_id(root)
    os.makedirs(folder_path, exist_ok=True)
    now = now_iso()
    frontmatter = NoteFrontmatter(id=note_id, title=title.strip(), created=now, updated=now, tags=[], folder=folder)
    note = Note(frontmatter=frontmatter, content=content, path=path)
    write_note(note)
    logger.debug('Created note %s', path)
    return note


def quick_title(content: str) -> str:
    """Derives a title from the content of a quickly-added note."""
    content = content.strip()
    if len(content) > QUICK_TITLE_LENGTH:
        return content[:QUICK_TITLE_LENGTH] + '...'
    return content


def add_note(root: str, folder: str, content: str) -> Note:
    """Creates a note whose body is the given content, titled after the content itself."""
    if not content or not content.strip():
        raise ValidationError('Note content cannot be empty.')
    return create_note(root, folder, quick_title(content), content)


def update_note_timestamp(path: str, root: str = None) -> Note:
    """Re-reads the note at the path, sets its ``updated`` time to now, and writes it back.

    Pass the notes directory as ``root`` so that a missing ``folder`` is filled in relative to it.
    """
    note = read_note(path, root)
    note.frontmatter.updated = now_iso()
    write_note(note)
    return note


def delete_note(path: str) -> None:
    """Deletes the note file. Raises :exc:`FileNotFoundError` if it does not exist."""
    os.remove(path)
    logger.debug('Deleted note %s', path)
