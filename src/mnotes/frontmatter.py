"""Reads and writes note files: Markdown with a YAML metadata header.

Here's an example note file:

.. code-block:: markdown

   ---
   id: 3
   title: Buy milk
   created: '2024-03-01T09:30:00.000Z'
   updated: '2024-03-01T09:30:00.000Z'
   tags:
   - errands
   folder: general
   ---
   Semi-skimmed, two litres.
"""

from datetime import datetime, timezone
import os.path
import re
from typing import Tuple

import yaml

from mnotes.models import Note, NoteFrontmatter, format_timestamp

DELIMITER = '---'
YAML_META_RE = re.compile(r'(?s)\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)')
EMPTY_META_RE = re.compile(r'\A---[ \t]*\r?\n()---[ \t]*(?:\r?\n|\Z)')
OPENING_RE = re.compile(r'\A---[ \t]*(?:\r?\n|\Z)')


class _NoteDumper(yaml.SafeDumper):
    pass


def _represent_str(dumper, data):
    # keep multi-line values on one line so no line of the header can look like a delimiter
    if '\n' in data or '\r' in data:
        return dumper.represent_scalar('tag:yaml.org,2002:str', data, style='"')
    return dumper.represent_str(data)


_NoteDumper.add_representer(str, _represent_str)


class ParseError(Exception):
    """Raised when a note file's header cannot be parsed."""
    def __init__(self, message: str, path: str = None, cause: BaseException = None):
        super().__init__(f'{message}: {path}' if path else message)
        self.message = message
        self.path = path
        self.cause = cause


def encode(content: str, frontmatter: dict) -> str:
    """Returns the file text for a note with the given body and header mapping.

    The header is always written, even when empty, so that a body which itself starts with ``---`` is not
    mistaken for one.
    """
    meta = ''
    if frontmatter:
        meta = yaml.dump(frontmatter, Dumper=_NoteDumper, sort_keys=False, allow_unicode=True,
                         default_flow_style=False, width=float('inf'))
    return f'{DELIMITER}\n{meta}{DELIMITER}\n{content}'


def decode(text: str, path: str = None) -> Tuple[dict, str]:
    """Splits file text into the header mapping and the body.

    Text that does not begin with a ``---`` line has no header, so an empty dict is returned along with the
    entire text. Raises :exc:`ParseError` if the header is never closed, is not valid YAML, or is not a mapping.
    """
    if not OPENING_RE.match(text):
        return {}, text
    match = EMPTY_META_RE.match(text) or YAML_META_RE.match(text)
    if not match:
        raise ParseError('Frontmatter is not closed', path)
    try:
        meta = yaml.safe_load(match.group(1))
    except yaml.YAMLError as e:
        raise ParseError('Frontmatter is not valid YAML', path, e)
    if meta is None:
        meta = {}
    if not isinstance(meta, dict):
        raise ParseError('Frontmatter is not a mapping', path)
    return meta, text[match.end():]


def read_note(path: str, root: str = None) -> Note:
    """Loads the note stored at the given path.

    Missing metadata is filled in from the file: the title from the filename, the folder from the directory the
    file is in (relative to ``root``, if given), and the timestamps from the modification time.

    May raise :exc:`ParseError` or an IO-related exception.
    """
    with open(path, 'r', encoding='utf-8', newline='') as file:
        text = file.read()
    meta, content = decode(text, path)
    parent, filename = os.path.split(path)
    if root and os.path.abspath(parent) != os.path.abspath(root):
        default_folder = os.path.relpath(parent, root)
    elif root:
        default_folder = 'general'
    else:
        default_folder = os.path.basename(parent)
    mtime = datetime.fromtimestamp(os.stat(path).st_mtime, tz=timezone.utc)
    frontmatter = NoteFrontmatter.from_dict(
        meta,
        default_title=os.path.splitext(filename)[0],
        default_folder=default_folder,
        default_timestamp=format_timestamp(mtime),
    )
    return Note(frontmatter=frontmatter, content=content, path=path)


def write_note(note: Note) -> None:
    """Writes the note to its path, replacing anything already there."""
    with open(note.path, 'w', encoding='utf-8', newline='') as file:
        file.write(encode(note.content, note.frontmatter.as_dict()))
