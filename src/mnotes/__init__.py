"""Keeps Markdown notes with YAML metadata in ``~/.notes``, optionally synced with a Git remote.

If you installed via ``pip``, run ``mn -h`` to get help.

To use the Python API, look at :class:`mnotes.api.Notebook`
"""
