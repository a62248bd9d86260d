"""Exception types raised by mnotes.

Filesystem problems are not wrapped: they surface as the built-in :exc:`FileNotFoundError`,
:exc:`PermissionError` and :exc:`FileExistsError`. Unreadable note files raise
:exc:`mnotes.frontmatter.ParseError`.
"""


class Error(Exception):
    """Base class for errors that the command line reports with a message and exit status 1."""
    pass


class NotInitializedError(Error):
    """Raised when the notes directory has no config file yet."""
    def __init__(self, config_path: str):
        super().__init__(f'Notes not initialized (no config at {config_path}). Run `mn init` first.')
        self.config_path = config_path


class ConfigError(Error):
    """Raised when the config file exists but cannot be understood."""
    pass


class NotFoundError(Error):
    """Raised when a note or folder lookup finds nothing."""
    pass


class ValidationError(Error):
    """Raised for empty titles, contents, queries or folder names."""
    pass


class ExternalToolError(Error):
    """Raised when an external program (git, the editor) is missing or fails."""
    pass


class GitCommandError(ExternalToolError):
    """Raised when a git command exits with a non-zero status."""
    def __init__(self, args, returncode: int, stderr: str):
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip() or f'exit status {returncode}'
        super().__init__(f'git {" ".join(self.args_list)} failed: {detail}')


class SyncConflictError(GitCommandError):
    """Raised when the remote rejects a push, typically because it has commits we don't."""

    hints = [
        'Pull and resolve the conflicts manually inside the notes directory (git pull --rebase)',
        'Then run `mn sync` again',
    ]
