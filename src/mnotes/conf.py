"""Locates the notes directory and reads/writes its ``config.json``.

Configuration is resolved once per invocation with :meth:`MnConf.for_user` and then passed explicitly to
everything that needs it.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
import json
import logging
import os
import os.path
from typing import Optional

from mnotes.errors import ConfigError, NotInitializedError
from mnotes.models import NoteConfig

logger = logging.getLogger(__name__)

NOTES_DIR_ENV = 'MN_NOTES_DIR'
CONFIG_FILENAME = 'config.json'


def default_notes_path() -> str:
    """Returns ``$MN_NOTES_DIR`` if set, otherwise ``~/.notes``."""
    override = os.environ.get(NOTES_DIR_ENV)
    if override:
        return os.path.expanduser(override)
    return os.path.expanduser(os.path.join('~', '.notes'))


def load_note_config(path: str) -> Optional[NoteConfig]:
    """Reads a config file, returning None if there is no file at the path.

    Raises :exc:`mnotes.errors.ConfigError` if the file is not valid JSON or lacks required settings.
    """
    if not os.path.isfile(path):
        return None
    with open(path, 'r', encoding='utf-8') as file:
        try:
            data = json.load(file)
        except json.JSONDecodeError as e:
            raise ConfigError(f'The config file is not valid JSON ({e}): {path}') from e
    return NoteConfig.from_json(data)


def save_note_config(path: str, config: NoteConfig) -> None:
    """Writes the config as UTF-8 JSON indented with two spaces."""
    with open(path, 'w', encoding='utf-8') as file:
        json.dump(config.as_json(), file, indent=2, ensure_ascii=False)
        file.write('\n')
    logger.debug('Saved config to %s', path)


@dataclass
class MnConf:
    """Where the notes live. Everything else is stored in the config file inside that directory."""

    notes_path: str
    """Root directory containing the folders of notes, ``config.json`` and ``.gitignore``."""

    @classmethod
    def for_user(cls, notes_path: str = None) -> MnConf:
        """Creates an instance for the current user, using :func:`default_notes_path` unless a path is given."""
        return cls(notes_path or default_notes_path()).standardize()

    def standardize(self) -> MnConf:
        return replace(self, notes_path=os.path.abspath(os.path.expanduser(self.notes_path)))

    @property
    def config_path(self) -> str:
        return os.path.join(self.notes_path, CONFIG_FILENAME)

    def is_initialized(self) -> bool:
        return os.path.isfile(self.config_path)

    def load(self) -> NoteConfig:
        """Returns the config, raising :exc:`mnotes.errors.NotInitializedError` if ``mn init`` has not been run."""
        config = load_note_config(self.config_path)
        if config is None:
            raise NotInitializedError(self.config_path)
        return config

    def save(self, config: NoteConfig) -> None:
        save_note_config(self.config_path, config)
