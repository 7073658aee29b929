"""
Tests de NoteService.

Reglas de negocio con repositorio en memoria; las llamadas exactas al
repositorio se verifican con MagicMock.
"""
from unittest.mock import MagicMock

import pytest
from bson import ObjectId

from app.core.exceptions import InvalidQuery, NotFound, ValidationError
from app.services.note_service import EMPTY_STATS, ListOptions, NoteService, parse_tag_filter

OWNER = str(ObjectId())
OTHER = str(ObjectId())


@pytest.fixture
def service(notes_repo, clock):
    return NoteService(notes_repo, clock=clock)


def _create(service, clock, title="Title", content="Body", tags=None, owner=OWNER):
    note = service.create(owner, title, content, tags)
    clock.advance(seconds=1)
    return note


class TestCreate:
    def test_defaults(self, service, clock):
        note = service.create(OWNER, " Plan ", " Details ", ["Work"])
        assert note.note_title == "Plan"
        assert note.note_content == "Details"
        assert note.note_tags == ["work"]
        assert note.note_owner == OWNER
        assert not note.is_note_pinned and not note.is_note_archived
        assert note.note_created_at == note.note_updated_at == clock()

    def test_reports_every_invalid_field(self, service):
        with pytest.raises(ValidationError) as exc:
            service.create(OWNER, "", "x" * 10001, ["bad tag"])
        fields = [e["field"] for e in exc.value.errors]
        assert fields == ["noteTitle", "noteContent", "noteTags[0]"]


class TestList:
    def test_pinned_first_then_newest(self, service, clock):
        a = _create(service, clock, "a")
        b = _create(service, clock, "b")
        c = _create(service, clock, "c")
        service.toggle_pin(OWNER, a.id)

        page = service.list(OWNER, ListOptions())

        assert [n.id for n in page.items] == [a.id, c.id, b.id]

    def test_archived_excluded_from_items_and_total(self, service, clock):
        a = _create(service, clock)
        _create(service, clock)
        service.toggle_archive(OWNER, a.id)

        assert service.list(OWNER, ListOptions()).total == 1
        assert service.list(OWNER, ListOptions(include_archived=True)).total == 2

    def test_tag_filter_or(self, service, clock):
        _create(service, clock, tags=["work"])
        _create(service, clock, tags=["home"])
        _create(service, clock, tags=["misc"])
        page = service.list(OWNER, ListOptions(tags=["work", "home"]))
        assert page.total == 2

    def test_pagination(self, service, clock):
        for i in range(5):
            _create(service, clock, f"n{i}")
        page = service.list(OWNER, ListOptions(limit=2, skip=2))
        assert [n.note_title for n in page.items] == ["n2", "n1"]
        assert page.pagination() == {"total": 5, "limit": 2, "skip": 2, "hasMore": True}

    def test_owner_isolation(self, service, clock):
        _create(service, clock, owner=OTHER)
        assert service.list(OWNER, ListOptions()).total == 0


class TestSearch:
    @pytest.mark.parametrize("query", [None, "", " a ", "x"])
    def test_short_query(self, service, query):
        with pytest.raises(InvalidQuery):
            service.search(OWNER, query)

    def test_title_ranks_higher(self, service, clock):
        body_hit = _create(service, clock, "Groceries", "meeting later")
        title_hit = _create(service, clock, "Meeting", "agenda")
        _create(service, clock, "Other", "nothing")

        page = service.search(OWNER, "  meeting ")

        assert [n.id for n in page.items] == [title_hit.id, body_hit.id]
        assert page.items[0].score > page.items[1].score

    def test_skips_archived(self, service, clock):
        note = _create(service, clock, "Meeting")
        service.toggle_archive(OWNER, note.id)
        assert service.search(OWNER, "meeting").total == 0

    def test_passes_trimmed_query(self, clock):
        repo = MagicMock()
        repo.search.return_value = ([], 0)
        NoteService(repo, clock=clock).search(OWNER, "  hello  ", limit=5, skip=1)
        repo.search.assert_called_once_with(OWNER, "hello", skip=1, limit=5)


class TestStats:
    def test_zeroed_when_no_notes(self, service):
        assert service.stats(OWNER) == EMPTY_STATS

    def test_counts(self, service, clock):
        a = _create(service, clock, tags=["x", "y"])
        _create(service, clock, tags=["x"])
        b = _create(service, clock)
        service.toggle_pin(OWNER, a.id)
        service.toggle_archive(OWNER, b.id)
        assert service.stats(OWNER) == {"totalNotes": 3, "pinnedNotes": 1, "archivedNotes": 1, "totalTags": 3}

    def test_popular_tags_ties_lexical(self, service, clock):
        _create(service, clock, tags=["beta", "alpha"])
        _create(service, clock, tags=["gamma", "beta"])
        assert service.popular_tags(OWNER) == [
            {"tag": "beta", "count": 2},
            {"tag": "alpha", "count": 1},
            {"tag": "gamma", "count": 1},
        ]


class TestUpdate:
    def test_partial_update(self, service, clock):
        note = _create(service, clock, "Old", "Body", ["a"])
        updated = service.update(OWNER, note.id, {"noteTitle": "New"})
        assert updated.note_title == "New"
        assert updated.note_content == "Body"
        assert updated.note_tags == ["a"]
        assert updated.note_updated_at > note.note_updated_at

    def test_explicit_flags(self, service, clock):
        note = _create(service, clock)
        updated = service.update(OWNER, note.id, {"isNotePinned": True, "isNoteArchived": True})
        assert updated.is_note_pinned and updated.is_note_archived

    def test_empty_update_is_noop(self, service, clock):
        note = _create(service, clock)
        same = service.update(OWNER, note.id, {})
        assert same.note_updated_at == note.note_updated_at

    def test_invalid_fields(self, service, clock):
        note = _create(service, clock)
        with pytest.raises(ValidationError) as exc:
            service.update(OWNER, note.id, {"noteTitle": "", "isNotePinned": "yes"})
        assert [e["field"] for e in exc.value.errors] == ["noteTitle", "isNotePinned"]

    def test_null_tags_clears(self, service, clock):
        note = _create(service, clock, tags=["a"])
        assert service.update(OWNER, note.id, {"noteTags": None}).note_tags == []

    def test_foreign_note(self, service, clock):
        note = _create(service, clock, owner=OTHER)
        with pytest.raises(NotFound):
            service.update(OWNER, note.id, {"noteTitle": "hijack"})


class TestOwnership:
    @pytest.mark.parametrize("op", ["get", "delete", "toggle_pin", "toggle_archive"])
    def test_foreign_and_missing_look_the_same(self, service, clock, op):
        foreign = _create(service, clock, owner=OTHER)
        for note_id in (foreign.id, str(ObjectId()), "not-an-id"):
            with pytest.raises(NotFound) as exc:
                getattr(service, op)(OWNER, note_id)
            assert exc.value.error_code == "NOTE_NOT_FOUND"
            assert exc.value.message == "Note not found or access denied"

    def test_toggle_twice_restores(self, service, clock):
        note = _create(service, clock)
        assert service.toggle_pin(OWNER, note.id).is_note_pinned is True
        assert service.toggle_pin(OWNER, note.id).is_note_pinned is False

    def test_delete_then_get(self, service, clock):
        note = _create(service, clock)
        assert service.delete(OWNER, note.id).id == note.id
        with pytest.raises(NotFound):
            service.get(OWNER, note.id)


class TestParseTagFilter:
    def test_single_tag_wins(self):
        assert parse_tag_filter(" Work ", "a,b") == ["work"]

    def test_comma_list(self):
        assert parse_tag_filter(None, " A, b ,,c") == ["a", "b", "c"]

    def test_empty(self):
        assert parse_tag_filter() == []

    def test_too_many_tags(self):
        with pytest.raises(ValidationError) as exc:
            parse_tag_filter(None, ",".join(f"t{i}" for i in range(11)))
        assert exc.value.errors[0]["message"] == "Maximum 10 tags allowed in query"

    def test_bad_tag_shape(self):
        with pytest.raises(ValidationError) as exc:
            parse_tag_filter(None, "ok,bad tag")
        assert exc.value.errors == [{
            "field": "tags",
            "message": "Tags must be 1-20 characters, letters, numbers and hyphens only",
            "value": "bad tag",
        }]

    def test_single_tag_shape(self):
        with pytest.raises(ValidationError):
            parse_tag_filter("x" * 21)


class TestSearchBounds:
    def test_two_chars_without_matches(self, service, clock):
        _create(service, clock, "Meeting", "agenda")
        page = service.search(OWNER, "zz")
        assert page.items == []
        assert page.pagination() == {"total": 0, "limit": 20, "skip": 0, "hasMore": False}

    def test_over_hundred_chars(self, service):
        with pytest.raises(InvalidQuery):
            service.search(OWNER, "x" * 101)
        assert service.search(OWNER, "x" * 100).total == 0
