"""Tests for the note listing predicate."""

import pytest

from notevault.domain import Note
from notevault.query import NoteQuery
from notevault.utils import time_now


def note(title, tags, owner="usr_a"):
    now = time_now()
    return Note(f"note_{title}", owner, title, "<p>body</p>", tags, now, now)


FIRST = note("First Note", ["work"])
SECOND = note("Second Note", ["personal"])
FOREIGN = note("First Note", ["work"], owner="usr_b")


def matching(query, notes=(FIRST, SECOND, FOREIGN)):
    return [n for n in notes if query.matches(n)]


def test_empty_filters_match_all_owned_notes():
    assert matching(NoteQuery("usr_a")) == [FIRST, SECOND]


def test_owner_clause_always_applies():
    assert FOREIGN not in matching(NoteQuery("usr_a", search="First", tag="work"))


def test_owner_is_required():
    with pytest.raises(ValueError):
        NoteQuery("")


def test_search_matches_title_substring_case_insensitively():
    assert matching(NoteQuery("usr_a", search="first")) == [FIRST]
    assert matching(NoteQuery("usr_a", search="ond no")) == [SECOND]


def test_search_matches_tag_substring():
    assert matching(NoteQuery("usr_a", search="PERS")) == [SECOND]


def test_search_text_is_literal_not_a_pattern():
    assert matching(NoteQuery("usr_a", search=".*")) == []
    regexy = note("Costs (Q1) [draft]", [])
    assert NoteQuery("usr_a", search="(q1) [").matches(regexy)


def test_tag_filter_is_exact():
    assert matching(NoteQuery("usr_a", tag="work")) == [FIRST]
    assert matching(NoteQuery("usr_a", tag="wor")) == []
    assert matching(NoteQuery("usr_a", tag="Work")) == []


def test_search_and_tag_are_anded():
    assert matching(NoteQuery("usr_a", search="Note", tag="personal")) == [SECOND]
    assert matching(NoteQuery("usr_a", search="First", tag="personal")) == []


def test_none_filters_behave_like_empty():
    assert matching(NoteQuery("usr_a", search=None, tag=None)) == [FIRST, SECOND]
