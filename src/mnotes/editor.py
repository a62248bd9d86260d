"""Opens notes in the user's text editor."""

import logging
import os
import shlex
import subprocess

from mnotes.errors import ExternalToolError

logger = logging.getLogger(__name__)

FALLBACK_EDITOR = 'vim'


def resolve_editor(configured: str = None) -> str:
    """Returns the configured editor, or else ``$EDITOR``, or else ``$VISUAL``, or else vim."""
    return configured or os.environ.get('EDITOR') or os.environ.get('VISUAL') or FALLBACK_EDITOR


def open_in_editor(path: str, editor: str = None) -> None:
    """Runs the editor on the file and waits for it to exit.

    The editor may be a command with arguments, such as ``code --wait``.
    Raises :exc:`mnotes.errors.ExternalToolError` if it cannot be started or exits with a non-zero status.
    """
    cmd = shlex.split(resolve_editor(editor)) + [path]
    logger.debug('Opening editor: %s', cmd)
    try:
        proc = subprocess.run(cmd)
    except OSError as e:
        raise ExternalToolError(f'Failed to open editor: {e}') from e
    if proc.returncode != 0:
        raise ExternalToolError(f'Editor exited with code {proc.returncode}')
