"""Helpers for the folders inside the notes directory and the ``.gitignore`` generated from their settings."""

import logging
import os
import os.path
import re
import shutil
from typing import Iterable, List

from mnotes.errors import ValidationError

logger = logging.getLogger(__name__)

GITIGNORE_TEMPLATE = """# Notes CLI - Auto-generated gitignore

# Folders marked as gitignored
{folders}

# System files
.DS_Store
Thumbs.db

# Temporary files
*.tmp
*.temp
~*

# Editor files
.vscode/
.idea/
*.swp
*.swo"""


def sanitize_folder_name(name: str) -> str:
    """Converts user input into a folder name.

    The following adjustments are made:

    * Characters are converted to lowercase
    * Only the letters a-z, digits 0-9, whitespace, dashes and underscores are kept
    * Runs of whitespace are replaced with a dash
    * Consecutive dashes are collapsed to a single dash
    * Leading and trailing whitespace is removed

    For example, ``"My Work Notes!"`` becomes ``"my-work-notes"``.

    Raises :exc:`mnotes.errors.ValidationError` if nothing is left.
    """
    result = name.lower()
    result = re.sub(r'[^a-z0-9\s\-_]', '', result)
    result = result.strip()
    result = re.sub(r'\s+', '-', result)
    result = re.sub(r'-+', '-', result)
    if not result:
        raise ValidationError(f'Invalid folder name: "{name}"')
    return result


def create_folder(root: str, name: str) -> str:
    """Creates the folder's directory and returns its path. Raises :exc:`FileExistsError` if it exists."""
    path = os.path.join(root, name)
    if os.path.exists(path):
        raise FileExistsError(f'Folder "{name}" already exists')
    os.makedirs(path)
    return path


def list_folders(root: str) -> List[str]:
    """Returns the names of the non-hidden directories directly inside the notes directory, sorted."""
    return sorted(e.name for e in os.scandir(root) if e.is_dir() and not e.name.startswith('.'))


def delete_folder(root: str, name: str) -> None:
    """Deletes the folder and every note inside it. A folder that does not exist on disk is not an error."""
    path = os.path.join(root, name)
    if os.path.isdir(path):
        shutil.rmtree(path)
        logger.debug('Deleted folder %s', path)


def gitignore_text(ignored_folders: Iterable[str]) -> str:
    return GITIGNORE_TEMPLATE.format(folders='\n'.join(f'{f}/' for f in ignored_folders)).strip()


def write_gitignore(root: str, ignored_folders: Iterable[str]) -> str:
    """Regenerates ``.gitignore`` in the notes directory and returns its path."""
    path = os.path.join(root, '.gitignore')
    with open(path, 'w', encoding='utf-8') as file:
        file.write(gitignore_text(ignored_folders))
    return path
