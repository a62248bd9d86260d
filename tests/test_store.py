from datetime import datetime, timezone
import os.path
from pathlib import Path
from freezegun import freeze_time
import pytest
from mnotes.errors import ValidationError
from mnotes.frontmatter import encode, read_note
from mnotes.store import add_note, create_note, delete_note, find_note_by_id, find_note_by_title, \
    generate_timestamp_id, list_notes, next_note_id, note_paths, quick_title, update_note_timestamp


def write(path, title, created, folder='general', **extra):
    meta = {'title': title, 'created': created, 'updated': created, 'tags': [], 'folder': folder}
    meta.update(extra)
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    Path(path).write_text(encode('', meta))


def test_generate_timestamp_id():
    assert generate_timestamp_id(datetime(2024, 3, 1, 9, 30, 5, 123456, tzinfo=timezone.utc)) == \
        '20240301093005123'


def test_note_paths_skips_hidden_and_other_files(fs):
    fs.create_file('/notes/general/a.md')
    fs.create_file('/notes/general/b.txt')
    fs.create_file('/notes/.git/c.md')
    fs.create_file('/notes/general/.hidden.md')
    fs.create_file('/notes/work/deep/d.md')
    fs.create_file('/notes/node_modules/e.md')
    assert list(note_paths('/notes')) == ['/notes/general/a.md', '/notes/work/deep/d.md']
    assert list(note_paths('/notes', 'work')) == []
    assert list(note_paths('/notes', 'missing')) == []


def test_list_notes_sorted_newest_first(fs):
    write('/notes/general/a.md', 'Oldest', '2024-01-01T00:00:00.000Z')
    write('/notes/general/b.md', 'Newest', '2024-03-01T00:00:00.000Z')
    write('/notes/work/c.md', 'Middle', '2024-02-01T00:00:00.000Z', folder='work')
    assert [n.frontmatter.title for n in list_notes('/notes')] == ['Newest', 'Middle', 'Oldest']
    assert [n.frontmatter.title for n in list_notes('/notes', 'work')] == ['Middle']


def test_list_notes_ties_keep_name_order(fs):
    for name in ['c', 'a', 'b']:
        write(f'/notes/general/{name}.md', name.upper(), '2024-01-01T00:00:00.000Z')
    assert [n.frontmatter.title for n in list_notes('/notes')] == ['A', 'B', 'C']


def test_list_notes_skips_unparseable(fs):
    write('/notes/general/good.md', 'Good', '2024-01-01T00:00:00.000Z')
    fs.create_file('/notes/general/bad.md', contents='---\ntitle: [\n---\n')
    fs.create_file('/notes/general/unclosed.md', contents='---\ntitle: x\n')
    assert [n.frontmatter.title for n in list_notes('/notes')] == ['Good']


def test_list_notes_empty(fs):
    assert list_notes('/notes') == []
    fs.create_dir('/notes')
    assert list_notes('/notes') == []


def test_find_note_by_title(fs):
    write('/notes/general/a.md', 'Shopping list', '2024-01-01T00:00:00.000Z')
    write('/notes/general/b.md', 'Shop', '2024-01-02T00:00:00.000Z')
    write('/notes/general/c.md', 'Workshop ideas', '2024-01-03T00:00:00.000Z')
    assert find_note_by_title('/notes', 'SHOP').path == '/notes/general/b.md'
    assert find_note_by_title('/notes', 'list').path == '/notes/general/a.md'
    # substring matches are taken in newest-first order
    assert find_note_by_title('/notes', 'hop').path == '/notes/general/c.md'
    assert find_note_by_title('/notes', 'gardening') is None
    assert find_note_by_title('/notes', 'shop', 'work') is None


def test_find_note_by_id_and_next_id(fs):
    assert next_note_id('/notes') == 1
    write('/notes/general/a.md', 'A', '2024-01-01T00:00:00.000Z', id=4)
    write('/notes/general/b.md', 'B', '2024-01-02T00:00:00.000Z', id=9)
    write('/notes/general/c.md', 'No id', '2024-01-03T00:00:00.000Z')
    assert find_note_by_id('/notes', 4).frontmatter.title == 'A'
    assert find_note_by_id('/notes', 5) is None
    assert next_note_id('/notes') == 10


@freeze_time('2024-03-01T09:30:00.123Z')
def test_create_note(fs):
    note = create_note('/notes', 'general', 'My note')
    assert note.path == '/notes/general/20240301093000123.md'
    assert Path(note.path).read_text() == """---
id: 1
title: My note
created: '2024-03-01T09:30:00.123Z'
updated: '2024-03-01T09:30:00.123Z'
tags: []
folder: general
---
"""
    assert read_note(note.path, '/notes') == note


@freeze_time('2024-03-01T09:30:00.123Z')
def test_create_note_same_millisecond(fs):
    create_note('/notes', 'general', 'First')
    with pytest.raises(FileExistsError):
        create_note('/notes', 'general', 'Second')
    assert len(list_notes('/notes')) == 1


def test_create_note_ids_increase(fs):
    with freeze_time('2024-03-01T09:30:00Z') as frozen:
        first = create_note('/notes', 'general', 'First')
        frozen.tick()
        second = create_note('/notes', 'work', 'Second')
    assert (first.frontmatter.id, second.frontmatter.id) == (1, 2)
    assert os.path.isdir('/notes/work')


def test_create_note_requires_title(fs):
    with pytest.raises(ValidationError):
        create_note('/notes', 'general', '  ')
    with pytest.raises(ValidationError):
        create_note('/notes', '', 'title')


def test_quick_title():
    assert quick_title('  Buy milk \n') == 'Buy milk'
    assert quick_title('x' * 50) == 'x' * 50
    assert quick_title('y' * 51) == 'y' * 50 + '...'


@freeze_time('2024-03-01T09:30:00Z')
def test_add_note(fs):
    content = 'Remember to water the plants on the balcony every morning'
    note = add_note('/notes', 'general', content)
    assert note.frontmatter.title == content[:50] + '...'
    assert note.content == content
    assert read_note(note.path).content == content


def test_add_note_requires_content(fs):
    with pytest.raises(ValidationError):
        add_note('/notes', 'general', ' \n ')


def test_update_note_timestamp(fs):
    with freeze_time('2024-03-01T09:30:00Z'):
        note = create_note('/notes', 'general', 'Note', 'body')
    with freeze_time('2024-03-02T10:00:00Z'):
        updated = update_note_timestamp(note.path)
    assert updated.frontmatter.updated == '2024-03-02T10:00:00.000Z'
    assert updated.frontmatter.created == '2024-03-01T09:30:00.000Z'
    reread = read_note(note.path)
    assert reread.frontmatter.updated == '2024-03-02T10:00:00.000Z'
    assert reread.content == 'body'


def test_delete_note(fs):
    fs.create_file('/notes/general/a.md')
    delete_note('/notes/general/a.md')
    assert not os.path.exists('/notes/general/a.md')
    with pytest.raises(FileNotFoundError):
        delete_note('/notes/general/a.md')


def test_list_folder_uses_location_not_metadata(fs):
    write('/notes/work/a.md', 'Filed under work', '2024-01-01T00:00:00.000Z', folder='general')
    write('/notes/general/b.md', 'Claims work', '2024-01-02T00:00:00.000Z', folder='work')
    assert [n.frontmatter.title for n in list_notes('/notes', 'work')] == ['Filed under work']


def test_create_then_find(fs):
    create_note('/notes', 'general', 'Test')
    note = find_note_by_title('/notes', 'Test')
    assert note.frontmatter.title == 'Test'
    assert note.content == ''


def test_update_note_timestamp_keeps_folder(fs):
    fs.create_file('/notes/loose.md', contents='no header')
    fs.create_file('/notes/work/deep/d.md', contents='no header either')
    before = {n.path: n.frontmatter.folder for n in list_notes('/notes')}
    assert before == {'/notes/loose.md': 'general', '/notes/work/deep/d.md': 'work/deep'}
    with freeze_time('2024-03-02T10:00:00Z'):
        update_note_timestamp('/notes/loose.md', '/notes')
        update_note_timestamp('/notes/work/deep/d.md', '/notes')
    assert {n.path: n.frontmatter.folder for n in list_notes('/notes')} == before
    assert read_note('/notes/work/deep/d.md').frontmatter.folder == 'work/deep'
