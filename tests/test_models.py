from datetime import datetime, timedelta, timezone
from freezegun import freeze_time
import pytest
from mnotes.errors import ConfigError, NotFoundError
from mnotes.models import FolderSettings, GitSync, NoteConfig, NoteFrontmatter, SearchMatches, SyncDisabled, \
    format_timestamp, now_iso, parse_timestamp, sync_as_json, sync_from_json


@freeze_time('2024-03-01T09:30:00.123456Z')
def test_now_iso():
    assert now_iso() == '2024-03-01T09:30:00.123Z'


def test_format_timestamp_converts_to_utc():
    dt = datetime(2024, 3, 1, 11, 30, tzinfo=timezone(timedelta(hours=2)))
    assert format_timestamp(dt) == '2024-03-01T09:30:00.000Z'
    assert format_timestamp(datetime(2024, 3, 1, 9, 30)) == '2024-03-01T09:30:00.000Z'


def test_parse_timestamp():
    expected = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)
    assert parse_timestamp('2024-03-01T09:30:00.000Z') == expected
    assert parse_timestamp('2024-03-01T09:30:00') == expected
    assert parse_timestamp('2024-03-01T11:30:00+02:00') == expected
    assert parse_timestamp('yesterday') is None
    assert parse_timestamp(None) is None


def test_frontmatter_from_dict_defaults():
    fm = NoteFrontmatter.from_dict({}, default_title='stem', default_folder='work',
                                   default_timestamp='2024-03-01T09:30:00.000Z')
    assert fm == NoteFrontmatter(title='stem', created='2024-03-01T09:30:00.000Z',
                                 updated='2024-03-01T09:30:00.000Z', folder='work')


def test_frontmatter_from_dict_coerces_values():
    fm = NoteFrontmatter.from_dict({'id': '12', 'title': 2024, 'tags': 'solo',
                                    'created': '2024-03-01T09:30:00.000Z'},
                                   default_title='x', default_folder='general', default_timestamp='unused')
    assert fm.id == 12
    assert fm.title == '2024'
    assert fm.tags == ['solo']
    assert fm.updated == '2024-03-01T09:30:00.000Z'


def test_frontmatter_bad_id_is_dropped():
    fm = NoteFrontmatter.from_dict({'id': 'abc'}, default_title='x', default_folder='general',
                                   default_timestamp='2024-03-01T09:30:00.000Z')
    assert fm.id is None
    assert 'id' not in fm.as_dict()


def test_frontmatter_as_dict_order():
    fm = NoteFrontmatter(id=3, title='T', created='c', updated='u', folder='f', tags=['a'], extra={'z': 1})
    assert list(fm.as_dict()) == ['id', 'title', 'created', 'updated', 'tags', 'folder', 'z']


def test_frontmatter_unparseable_created_sorts_oldest():
    fm = NoteFrontmatter(title='T', created='whenever', updated='whenever', folder='f')
    assert fm.created_at() == datetime.min.replace(tzinfo=timezone.utc)
    assert fm.updated_at() == fm.created_at()


def test_sync_from_json():
    assert sync_from_json(None) == SyncDisabled()
    assert sync_from_json({'enabled': True}) == SyncDisabled()
    enabled = {'enabled': True, 'provider': 'git',
               'git': {'enabled': True, 'remoteUrl': 'git@example.com:me/notes.git', 'branch': 'main',
                       'autoSync': True}}
    assert sync_from_json(enabled) == GitSync('git@example.com:me/notes.git', 'main', True)


def test_sync_from_json_partial_is_disabled():
    no_remote = {'git': {'enabled': True, 'remoteUrl': '', 'branch': 'main', 'autoSync': True}}
    assert sync_from_json(no_remote) == SyncDisabled(branch='main')
    turned_off = {'git': {'enabled': False, 'remoteUrl': 'https://example.com/n.git', 'branch': 'main'}}
    assert sync_from_json(turned_off) == SyncDisabled('https://example.com/n.git', 'main')


def test_sync_json_round_trip():
    for sync in [GitSync('https://example.com/n.git', 'main', False), SyncDisabled('https://example.com/n.git',
                                                                                   'dev')]:
        assert sync_from_json(sync_as_json(sync)) == sync
    assert sync_as_json(SyncDisabled()) is None


def test_git_sync_requires_remote_and_branch():
    with pytest.raises(ValueError):
        GitSync('', 'main')
    with pytest.raises(ValueError):
        GitSync('https://example.com/n.git', '')


@freeze_time('2024-03-01T09:30:00Z')
def test_default_config():
    config = NoteConfig.default('/notes')
    assert config.as_json() == {
        'version': '1.0.0',
        'notesPath': '/notes',
        'folderSettings': {
            'general': {'encrypted': False, 'gitIgnored': False},
            'security': {'encrypted': True, 'gitIgnored': True},
        },
        'createdAt': '2024-03-01T09:30:00.000Z',
        'updatedAt': '2024-03-01T09:30:00.000Z',
    }
    assert config.ignored_folders() == ['security']


def test_config_json_round_trip():
    config = NoteConfig(notes_path='/notes', created_at='2024-03-01T09:30:00.000Z',
                        updated_at='2024-03-02T09:30:00.000Z', default_editor='code --wait',
                        folder_settings={'general': FolderSettings(), 'work': FolderSettings(True, True)},
                        sync=GitSync('https://example.com/n.git', 'main'))
    assert NoteConfig.from_json(config.as_json()) == config


def test_config_from_json_invalid():
    with pytest.raises(ConfigError):
        NoteConfig.from_json([])
    with pytest.raises(ConfigError):
        NoteConfig.from_json({'folderSettings': {}})
    with pytest.raises(ConfigError):
        NoteConfig.from_json({'notesPath': '/notes', 'folderSettings': ['general']})


def test_config_folder_changes():
    with freeze_time('2024-03-01T09:30:00Z'):
        config = NoteConfig.default('/notes')
    with freeze_time('2024-03-05T09:30:00Z'):
        config.add_folder('work', FolderSettings(git_ignored=True))
    assert config.updated_at == '2024-03-05T09:30:00.000Z'
    assert config.created_at == '2024-03-01T09:30:00.000Z'
    assert config.ignored_folders() == ['security', 'work']

    with pytest.raises(FileExistsError):
        config.add_folder('work', FolderSettings())

    config.update_folder('work', encrypted=True)
    assert config.folder_settings['work'] == FolderSettings(encrypted=True, git_ignored=True)
    config.update_folder('security', git_ignored=False)
    assert config.ignored_folders() == ['work']

    config.remove_folder('work')
    assert list(config.folder_settings) == ['general', 'security']
    with pytest.raises(NotFoundError):
        config.remove_folder('work')
    with pytest.raises(NotFoundError):
        config.update_folder('work', encrypted=False)


def test_search_matches_locations():
    assert SearchMatches(in_title=True, in_content=True).locations() == ['Title', 'Content']
    assert SearchMatches().locations() == []
