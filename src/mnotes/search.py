"""Ranks notes against a free-text query.

Matching is plain case-insensitive substring containment; there is no tokenizing, fuzzy matching or index.
Every search reads all the notes in scope.
"""

import re
from typing import Iterable, List

from mnotes.errors import ValidationError
from mnotes.models import Note, SearchMatches, SearchResult
from mnotes.store import list_notes

TITLE_SCORE = 10
TAG_SCORE = 5
CONTENT_SCORE = 3
SNIPPET_CONTEXT = 50
ELLIPSIS = '...'


def snippet(content: str, start: int, length: int, context: int = SNIPPET_CONTEXT) -> str:
    """Returns the text around ``content[start:start+length]``, with up to ``context`` characters on each side.

    An ellipsis marks each side where the content was cut off. Line breaks are replaced with spaces.
    """
    begin = max(0, start - context)
    end = min(len(content), start + length + context)
    text = content[begin:end].replace('\r\n', ' ').replace('\n', ' ')
    if begin > 0:
        text = ELLIPSIS + text
    if end < len(content):
        text = text + ELLIPSIS
    return text


def score_note(note: Note, query: str) -> SearchResult:
    """Scores one note; ``query`` must already be lower case."""
    matches = SearchMatches()
    score = 0
    if query in note.frontmatter.title.lower():
        matches.in_title = True
        score += TITLE_SCORE
    if any(query in tag.lower() for tag in note.frontmatter.tags):
        matches.in_tags = True
        score += TAG_SCORE
    if query in note.content.lower():
        matches.in_content = True
        # offsets into the lower-cased text drift when lower() changes a character's length
        found = re.search(re.escape(query), note.content, re.IGNORECASE)
        start, end = found.span() if found else (0, 0)
        matches.content_snippet = snippet(note.content, start, end - start)
        score += CONTENT_SCORE
    return SearchResult(note=note, matches=matches, score=score)


def rank(notes: Iterable[Note], query: str) -> List[SearchResult]:
    """Scores the notes, drops the ones that don't match at all, and sorts the rest best first.

    Notes with equal scores keep their original relative order.
    """
    if not query or not query.strip():
        raise ValidationError('Please provide a search query.')
    query = query.lower()
    results = [r for r in (score_note(n, query) for n in notes) if r.score > 0]
    results.sort(key=lambda r: r.score, reverse=True)
    return results


def search(root: str, query: str, folder: str = None) -> List[SearchResult]:
    """Searches the titles, tags and content of all notes (or those in one folder)."""
    if not query or not query.strip():
        raise ValidationError('Please provide a search query.')
    return rank(list_notes(root, folder), query)
