"""Command-line interface for mnotes."""


import argparse
from collections import Counter
import json
import logging
import sys
from typing import List, Optional

from terminaltables import AsciiTable

from mnotes.api import DEFAULT_FOLDER, Notebook
from mnotes.conf import MnConf
from mnotes.errors import Error, NotFoundError, SyncConflictError, ValidationError
from mnotes.frontmatter import ParseError
from mnotes.models import GitSync, Note, SyncResult, parse_timestamp
from mnotes.sync import DEFAULT_BRANCH

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 50
SYNC_TROUBLESHOOTING = [
    'Make sure you have push access to the remote repository',
    'Check your internet connection',
    'Verify the remote URL is correct with `mn sync status`',
]


def _ask(prompt: str, default: str = None) -> str:
    suffix = f' [{default}]' if default else ''
    answer = input(f'{prompt}{suffix}: ').strip()
    return answer or default or ''


def _confirm(prompt: str, default: bool = False) -> bool:
    answer = input(f'{prompt} {"[Y/n]" if default else "[y/N]"} ').strip().lower()
    if not answer:
        return default
    return answer in ('y', 'yes')


def _choose(prompt: str, options: List[str]) -> int:
    """Prints the options numbered from 1 and returns the index of the one picked."""
    for i, option in enumerate(options, start=1):
        print(f'{i:>3}. {option}')
    answer = input(f'{prompt} [1-{len(options)}]: ').strip()
    try:
        choice = int(answer)
    except ValueError:
        raise ValidationError(f'Not a number: "{answer}"')
    if not 1 <= choice <= len(options):
        raise ValidationError(f'Choose a number between 1 and {len(options)}.')
    return choice - 1


def _format_date(value: str) -> str:
    dt = parse_timestamp(value)
    return dt.strftime('%Y-%m-%d %H:%M') if dt else value


def _format_id(note: Note) -> str:
    return str(note.frontmatter.id) if note.frontmatter.id is not None else '-'


def _select_note(args, nb: Notebook, action: str) -> Note:
    if getattr(args, 'id', None) is not None:
        return nb.find_by_id(args.id)
    if args.title:
        return nb.find(args.title)
    notes = nb.notes()
    if not notes:
        raise NotFoundError('No notes found. Create one with `mn create`.')
    options = [f'[{_format_id(n)}] {n.frontmatter.title} ({n.frontmatter.folder})' for n in notes]
    return notes[_choose(f'Which note do you want to {action}?', options)]


def _select_folder(args, nb: Notebook, action: str) -> str:
    if args.name:
        return args.name
    names = list(nb.config.folder_settings)
    if not names:
        raise NotFoundError('No folders configured. Create one with `mn folder create`.')
    return names[_choose(f'Which folder do you want to {action}?', names)]


def _print_sync_result(result: Optional[SyncResult]) -> None:
    if result is None:
        return
    if result.pulled:
        print('  * Pulled remote changes')
    if result.committed:
        print('  * Committed local changes')
    if result.pushed:
        print('  * Pushed to remote')
    if not result.committed and not result.pulled:
        print('  * Already up to date')


def _auto_sync(nb: Notebook, operation: str) -> None:
    result = nb.auto_sync(operation)
    if result is not None:
        print('Synced with remote.')
        _print_sync_result(result)


def _init(args, conf: MnConf) -> int:
    if conf.is_initialized() and not args.yes:
        if not _confirm(f'Notes are already initialized in {conf.notes_path}. Reinitialize the config?'):
            print('Initialization cancelled.')
            return 0
    editor = args.editor
    encrypt_security = not args.no_encrypt_security
    ignore_security = not args.no_ignore_security
    if not args.yes:
        if editor is None:
            editor = _ask('Default editor (leave empty to use $EDITOR)') or None
        if not args.no_encrypt_security:
            encrypt_security = _confirm('Mark the security folder as encrypted?', default=True)
        if not args.no_ignore_security:
            ignore_security = _confirm('Keep the security folder out of git?', default=True)
    Notebook.initialize(conf, encrypt_security=encrypt_security, ignore_security=ignore_security,
                        default_editor=editor)
    print(f'Initialized notes in {conf.notes_path}')
    print(f'  {DEFAULT_FOLDER}/')
    print('  security/')
    print('  config.json')
    print('  .gitignore')
    return 0


def _create(args, nb: Notebook) -> int:
    title = args.title or _ask('Note title')
    note = nb.create(title, args.folder)
    print(f'Created note [{_format_id(note)}] "{note.frontmatter.title}" in {note.frontmatter.folder}/')
    print(note.path)
    if args.edit:
        note = nb.edit(note)
    _auto_sync(nb, f'Create note: {note.frontmatter.title}')
    return 0


def _add(args, nb: Notebook) -> int:
    note = nb.add(args.content, args.folder)
    print(f'Added note [{_format_id(note)}] to {note.frontmatter.folder}/')
    _auto_sync(nb, f'Add note: {note.frontmatter.title}')
    return 0


def _list(args, nb: Notebook) -> int:
    notes = nb.notes(args.folder)
    if args.json:
        print(json.dumps([n.as_json() for n in notes]))
        return 0
    if not notes:
        print('No notes found.')
        return 0
    data = [('ID', 'Title', 'Folder', 'Created', 'Tags')]
    for note in notes:
        fm = note.frontmatter
        data.append((_format_id(note), fm.title, fm.folder, _format_date(fm.created), ', '.join(fm.tags)))
    table = AsciiTable(data)
    table.justify_columns[0] = 'right'
    print(table.table)
    print(f'Total: {len(notes)} note{"" if len(notes) == 1 else "s"}')
    counts = Counter(n.frontmatter.folder for n in notes)
    if len(counts) > 1:
        for folder in sorted(counts):
            print(f'  {folder}: {counts[folder]}')
    return 0


def _show(args, nb: Notebook) -> int:
    note = _select_note(args, nb, 'show')
    if args.json:
        print(json.dumps(note.as_json()))
        return 0
    fm = note.frontmatter
    data = [
        ('ID', _format_id(note)),
        ('Title', fm.title),
        ('Folder', fm.folder),
        ('Created', _format_date(fm.created)),
        ('Updated', _format_date(fm.updated)),
        ('Tags', ', '.join(fm.tags)),
        ('Path', note.path),
    ]
    table = AsciiTable(data)
    table.inner_heading_row_border = False
    print(table.table)
    print()
    print(note.content)
    return 0


def _edit(args, nb: Notebook) -> int:
    note = _select_note(args, nb, 'edit')
    if nb.is_encrypted(note):
        print(f'Warning: folder "{note.frontmatter.folder}" is marked as encrypted, '
              'but the note is stored as plain text.', file=sys.stderr)
    note = nb.edit(note)
    print(f'Updated note "{note.frontmatter.title}"')
    _auto_sync(nb, f'Edit note: {note.frontmatter.title}')
    return 0


def _search(args, nb: Notebook) -> int:
    results = nb.search(args.query, args.folder)
    if args.json:
        print(json.dumps([r.as_json() for r in results]))
        return 0
    if not results:
        print(f'No notes found matching "{args.query}".')
        return 0
    data = [('Title', 'Folder', 'Matches', 'Preview')]
    for result in results:
        preview = result.matches.content_snippet
        if preview is None:
            preview = result.note.content[:PREVIEW_LENGTH].replace('\n', ' ')
        data.append((result.note.frontmatter.title, result.note.frontmatter.folder,
                     ', '.join(result.matches.locations()), preview))
    print(AsciiTable(data).table)
    print(f'Found {len(results)} note{"" if len(results) == 1 else "s"}')
    return 0


def _delete(args, nb: Notebook) -> int:
    note = _select_note(args, nb, 'delete')
    title = note.frontmatter.title
    if not args.yes and not _confirm(f'Delete note "{title}"?'):
        print('Deletion cancelled.')
        return 0
    nb.delete(note)
    print(f'Deleted note "{title}"')
    _auto_sync(nb, f'Delete note: {title}')
    return 0


def _folder_create(args, nb: Notebook) -> int:
    name = nb.create_folder(args.name or _ask('Folder name'), encrypted=args.encrypted,
                            git_ignored=args.git_ignored)
    print(f'Created folder {name}/')
    _auto_sync(nb, f'Create folder: {name}')
    return 0


def _folder_list(args, nb: Notebook) -> int:
    folders = nb.folders()
    if not folders:
        print('No folders found.')
        return 0
    counts = {name: len(nb.notes(name)) for name, _ in folders}
    data = [('Folder', 'Notes', 'Encrypted', 'Git ignored')]
    for name, settings in folders:
        if settings:
            data.append((name, str(counts[name]), 'yes' if settings.encrypted else 'no',
                         'yes' if settings.git_ignored else 'no'))
        else:
            data.append((name, str(counts[name]), '-', '-'))
    table = AsciiTable(data)
    table.justify_columns[1] = 'right'
    print(table.table)
    return 0


def _folder_delete(args, nb: Notebook) -> int:
    name = _select_folder(args, nb, 'delete')
    count = len(nb.notes(name))
    if not args.yes and not _confirm(f'Delete folder "{name}" and its {count} note{"" if count == 1 else "s"}?'):
        print('Deletion cancelled.')
        return 0
    nb.delete_folder(name)
    print(f'Deleted folder {name}/')
    _auto_sync(nb, f'Delete folder: {name}')
    return 0


def _folder_config(args, nb: Notebook) -> int:
    name = _select_folder(args, nb, 'configure')
    encrypted = args.encrypted
    git_ignored = args.git_ignored
    if encrypted is None and git_ignored is None:
        current = nb.config.folder_settings.get(name)
        if current is None:
            raise NotFoundError(f'Folder "{name}" does not exist.')
        encrypted = _confirm('Mark as encrypted?', default=current.encrypted)
        git_ignored = _confirm('Keep out of git?', default=current.git_ignored)
    settings = nb.configure_folder(name, encrypted=encrypted, git_ignored=git_ignored)
    print(f'Updated folder {name}/ (encrypted: {"yes" if settings.encrypted else "no"}, '
          f'git ignored: {"yes" if settings.git_ignored else "no"})')
    _auto_sync(nb, f'Configure folder: {name}')
    return 0


def _sync(args, nb: Notebook) -> int:
    sync = nb.config.sync
    if not isinstance(sync, GitSync):
        print('Git sync is not configured. Run `mn sync setup` to configure it.')
        return 0
    print(f'Syncing with {sync.remote_url} ({sync.branch})...')
    try:
        result = nb.sync()
    except SyncConflictError as e:
        print(f'Error: {e}', file=sys.stderr)
        for hint in e.hints:
            print(f'  * {hint}', file=sys.stderr)
        return 1
    except Error as e:
        print(f'Error: {e}', file=sys.stderr)
        print('Troubleshooting:', file=sys.stderr)
        for hint in SYNC_TROUBLESHOOTING:
            print(f'  * {hint}', file=sys.stderr)
        return 1
    print('Sync successful!')
    _print_sync_result(result)
    return 0


def _sync_setup(args, nb: Notebook) -> int:
    sync = nb.config.sync
    if isinstance(sync, GitSync) and not args.yes:
        if not _confirm(f'Git sync is already configured with {sync.remote_url}. Reconfigure?'):
            print('Setup cancelled.')
            return 0
    remote_url = args.remote
    branch = args.branch
    if not remote_url:
        remote_url = sync.remote_url if args.yes else _ask('Remote repository URL', sync.remote_url)
    if not branch:
        previous = sync.branch or DEFAULT_BRANCH
        branch = previous if args.yes else _ask('Branch', previous)
    if not remote_url:
        raise ValidationError('Remote URL cannot be empty.')
    sync = nb.setup_sync(remote_url, branch, auto_sync=not args.no_auto_sync)
    print('Git sync configured!')
    print(f'Remote: {sync.remote_url}')
    print(f'Branch: {sync.branch}')
    print(f'Auto-sync: {"enabled" if sync.auto_sync else "disabled"}')
    if args.yes or _confirm('Do you want to sync now?', default=True):
        return _sync(args, nb)
    return 0


def _sync_status(args, nb: Notebook) -> int:
    sync = nb.config.sync
    if not isinstance(sync, GitSync):
        print('Git sync: disabled')
        if sync.remote_url:
            print(f'Last remote: {sync.remote_url} ({sync.branch or DEFAULT_BRANCH})')
        print('Run `mn sync setup` to configure it.')
        return 0
    data = [
        ('Git sync', 'enabled'),
        ('Remote', sync.remote_url),
        ('Branch', sync.branch),
        ('Auto-sync', 'enabled' if sync.auto_sync else 'disabled'),
    ]
    status = nb.sync_status()
    if status:
        data.append(('Current branch', status.current or '(detached)'))
        if status.tracking:
            data.append(('Ahead/behind', f'{status.ahead}/{status.behind}'))
        data.append(('Uncommitted changes', str(len(status.files))))
    else:
        data.append(('Repository', 'unavailable'))
    table = AsciiTable(data)
    table.inner_heading_row_border = False
    print(table.table)
    if status and status.files:
        for path in status.files:
            print(f'  {path}')
    return 0


def _sync_disable(args, nb: Notebook) -> int:
    if not isinstance(nb.config.sync, GitSync):
        print('Git sync is already disabled.')
        return 0
    if not args.yes and not _confirm('Disable Git sync?'):
        print('Cancelled.')
        return 0
    nb.disable_sync()
    print('Git sync disabled. The repository and remote are left in place; run `mn sync setup` to enable it again.')
    return 0


def _add_note_selector(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('title', nargs='?',
                        help='Title of the note. An exact (case-insensitive) match is preferred, otherwise the '
                             'first note whose title contains this text is used. If omitted, you will be asked to '
                             'pick a note from a list.')
    parser.add_argument('-i', '--id', type=int, help='Select the note by its numeric ID instead of its title.')


def argparser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='mn', description='Keep Markdown notes in ~/.notes, optionally synced '
                                                            'with a Git remote.')
    parser.add_argument('-v', '--verbose', action='store_true', help='Log debugging information to stderr.')
    parser.set_defaults(func=None)

    subs = parser.add_subparsers(title='Commands')

    p_init = subs.add_parser('init', help='Set up the notes directory with the "general" and "security" folders.')
    p_init.add_argument('-y', '--yes', action='store_true', help='Do not ask questions; use the defaults.')
    p_init.add_argument('--editor', help='Command used to open notes, such as "code --wait".')
    p_init.add_argument('--no-encrypt-security', action='store_true',
                        help='Do not mark the security folder as encrypted.')
    p_init.add_argument('--no-ignore-security', action='store_true',
                        help='Do not exclude the security folder from git.')
    p_init.set_defaults(func=_init)

    p_create = subs.add_parser('create', help='Create a new, empty note.')
    p_create.add_argument('title', nargs='?', help='Title of the note. You will be asked for one if omitted.')
    p_create.add_argument('-f', '--folder', default=DEFAULT_FOLDER, help='Folder to create the note in.')
    p_create.add_argument('-e', '--edit', action='store_true', help='Open the new note in your editor.')
    p_create.set_defaults(func=_create)

    p_add = subs.add_parser('add', help='Quickly add a note; its title is taken from the content.')
    p_add.add_argument('content', help='Text of the note.')
    p_add.add_argument('-f', '--folder', default=DEFAULT_FOLDER, help='Folder to add the note to.')
    p_add.set_defaults(func=_add)

    p_list = subs.add_parser('list', aliases=['ls'], help='List notes, most recently created first.')
    p_list.add_argument('-f', '--folder', help='Only list the notes in this folder.')
    p_list.add_argument('-j', '--json', action='store_true', help='Output as JSON.')
    p_list.set_defaults(func=_list)

    p_show = subs.add_parser('show', aliases=['view'], help='Show the metadata and content of a note.')
    _add_note_selector(p_show)
    p_show.add_argument('-j', '--json', action='store_true', help='Output as JSON.')
    p_show.set_defaults(func=_show)

    p_edit = subs.add_parser('edit', help='Open a note in your editor and update its "updated" time.')
    _add_note_selector(p_edit)
    p_edit.set_defaults(func=_edit)

    p_search = subs.add_parser('search', help='Search the titles, tags and content of notes. Matches in titles '
                                              'rank highest, then tags, then content.')
    p_search.add_argument('query', help='Text to look for, case-insensitively.')
    p_search.add_argument('-f', '--folder', help='Only search the notes in this folder.')
    p_search.add_argument('-j', '--json', action='store_true', help='Output as JSON.')
    p_search.set_defaults(func=_search)

    p_delete = subs.add_parser('delete', aliases=['rm'], help='Delete a note.')
    _add_note_selector(p_delete)
    p_delete.add_argument('-y', '--yes', action='store_true', help='Do not ask for confirmation.')
    p_delete.set_defaults(func=_delete)

    p_folder = subs.add_parser('folder', help='Manage folders. Lists them if no subcommand is given.')
    p_folder.set_defaults(func=_folder_list)
    folder_subs = p_folder.add_subparsers(title='Folder commands')

    p_fcreate = folder_subs.add_parser('create', help='Create a folder. The name is lower-cased and '
                                                      'spaces become dashes.')
    p_fcreate.add_argument('name', nargs='?', help='Name of the folder. You will be asked for one if omitted.')
    p_fcreate.add_argument('--encrypted', action='store_true', help='Mark the folder as encrypted.')
    p_fcreate.add_argument('--git-ignored', action='store_true', help='Exclude the folder from git.')
    p_fcreate.set_defaults(func=_folder_create)

    p_flist = folder_subs.add_parser('list', aliases=['ls'], help='List folders with their settings.')
    p_flist.set_defaults(func=_folder_list)

    p_fdelete = folder_subs.add_parser('delete', aliases=['rm'], help='Delete a folder and all notes in it.')
    p_fdelete.add_argument('name', nargs='?', help='Name of the folder. You can pick one if omitted.')
    p_fdelete.add_argument('-y', '--yes', action='store_true', help='Do not ask for confirmation.')
    p_fdelete.set_defaults(func=_folder_delete)

    p_fconfig = folder_subs.add_parser('config', help='Change the settings of a folder. Without flags, you are '
                                                      'asked for each setting.')
    p_fconfig.add_argument('name', nargs='?', help='Name of the folder. You can pick one if omitted.')
    p_fconfig_enc = p_fconfig.add_mutually_exclusive_group()
    p_fconfig_enc.add_argument('--encrypted', dest='encrypted', action='store_true', default=None,
                               help='Mark the folder as encrypted.')
    p_fconfig_enc.add_argument('--no-encrypted', dest='encrypted', action='store_false', default=None,
                               help='Mark the folder as not encrypted.')
    p_fconfig_ign = p_fconfig.add_mutually_exclusive_group()
    p_fconfig_ign.add_argument('--git-ignored', dest='git_ignored', action='store_true', default=None,
                               help='Exclude the folder from git.')
    p_fconfig_ign.add_argument('--no-git-ignored', dest='git_ignored', action='store_false', default=None,
                               help='Include the folder in git.')
    p_fconfig.set_defaults(func=_folder_config)

    p_sync = subs.add_parser('sync', help='Sync notes with the Git remote: pull, commit local changes, push.')
    p_sync.set_defaults(func=_sync)
    sync_subs = p_sync.add_subparsers(title='Sync commands')

    p_ssetup = sync_subs.add_parser('setup', help='Turn the notes directory into a git repository and '
                                                  'connect it to a remote.')
    p_ssetup.add_argument('--remote', help='URL of the remote repository.')
    p_ssetup.add_argument('--branch', help=f'Branch to sync (default: {DEFAULT_BRANCH}).')
    p_ssetup.add_argument('--no-auto-sync', action='store_true',
                          help='Do not sync automatically after every change.')
    p_ssetup.add_argument('-y', '--yes', action='store_true',
                          help='Do not ask questions; use the defaults and sync right away.')
    p_ssetup.set_defaults(func=_sync_setup)

    p_sstatus = sync_subs.add_parser('status', help='Show the sync settings and the state of the repository.')
    p_sstatus.set_defaults(func=_sync_status)

    p_sdisable = sync_subs.add_parser('disable', help='Stop syncing. The repository and remote are kept.')
    p_sdisable.add_argument('-y', '--yes', action='store_true', help='Do not ask for confirmation.')
    p_sdisable.set_defaults(func=_sync_disable)

    return parser


def main(args=None) -> int:
    """Runs the tool and returns its exit code.

    args may be an array of string command-line arguments; if absent,
    the process's arguments are used.
    """
    parser = argparser()
    args = parser.parse_args(args)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(levelname)s: %(message)s')
    if not args.func:
        parser.print_help()
        return 1
    try:
        conf = MnConf.for_user()
        if args.func is _init:
            return _init(args, conf)
        return args.func(args, Notebook(conf))
    except (Error, ParseError, OSError) as e:
        logger.debug('Command failed', exc_info=True)
        print(f'Error: {e}', file=sys.stderr)
        return 1
