"""
Lógica de notas: validación, filtros, búsqueda, estadísticas y toggles.

Toda operación recibe el id del dueño autenticado; una nota ajena o inexistente
produce el mismo NotFound.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from app.core.exceptions import InvalidQuery, NotFound, ValidationError
from app.core.time import Clock, utc_now
from app.domain.notes.schemas import TAG_RE, TAGS_MAX, NoteRecord, check_content, check_tags, check_title
from app.repositories.note_repo import NoteRepository

_log = logging.getLogger("notes.notes")

SEARCH_MIN_CHARS = 2
SEARCH_MAX_CHARS = 100
EMPTY_STATS = {"totalNotes": 0, "pinnedNotes": 0, "archivedNotes": 0, "totalTags": 0}

# Campos admitidos en un update parcial
_UPDATABLE = ("noteTitle", "noteContent", "noteTags", "isNotePinned", "isNoteArchived")


@dataclass
class Page:
    items: List[NoteRecord]
    total: int
    limit: int
    skip: int

    @property
    def has_more(self) -> bool:
        return self.skip + self.limit < self.total

    def pagination(self) -> Dict[str, Any]:
        return {"total": self.total, "limit": self.limit, "skip": self.skip, "hasMore": self.has_more}


@dataclass
class ListOptions:
    tags: List[str] = field(default_factory=list)
    include_archived: bool = False
    limit: int = 50
    skip: int = 0


def parse_tag_filter(tag: Optional[str] = None, tags: Optional[str] = None) -> List[str]:
    """`tag` (uno) tiene prioridad sobre `tags` (separados por coma); normaliza a minúsculas.

    Raises:
        ValidationError: más de 10 tags o algún tag con forma inválida.
    """
    if tag and tag.strip():
        field_name, values = "tag", [tag.strip()]
    elif tags:
        field_name, values = "tags", [t.strip() for t in tags.split(",") if t.strip()]
    else:
        return []

    errors: List[Dict[str, Any]] = []
    if len(values) > TAGS_MAX:
        errors.append({"field": field_name, "message": f"Maximum {TAGS_MAX} tags allowed in query", "value": tags})
    for value in values:
        if not TAG_RE.fullmatch(value):
            errors.append({
                "field": field_name,
                "message": "Tags must be 1-20 characters, letters, numbers and hyphens only",
                "value": value,
            })
    if errors:
        raise ValidationError(errors)
    return [v.lower() for v in values]


def _not_found() -> NotFound:
    return NotFound("Note not found or access denied", error_code="NOTE_NOT_FOUND")


class NoteService:
    def __init__(self, repo: NoteRepository, *, clock: Clock = utc_now) -> None:
        self.repo = repo
        self.clock = clock

    def create(self, owner_id: str, title: Any, content: Any, tags: Any = None) -> NoteRecord:
        errors: List[Dict[str, Any]] = []
        clean_title = check_title(title, errors)
        clean_content = check_content(content, errors)
        clean_tags = check_tags(tags, errors)
        if errors:
            raise ValidationError(errors)

        now = self.clock()
        note = self.repo.insert({
            "noteTitle": clean_title,
            "noteContent": clean_content,
            "noteTags": clean_tags,
            "noteOwner": owner_id,
            "isNotePinned": False,
            "isNoteArchived": False,
            "noteCreatedAt": now,
            "noteUpdatedAt": now,
        })
        _log.info("Nota creada note_id=%s owner=%s", note.id, owner_id)
        return note

    def list(self, owner_id: str, options: ListOptions) -> Page:
        items, total = self.repo.list(
            owner_id,
            tags=options.tags,
            include_archived=options.include_archived,
            skip=options.skip,
            limit=options.limit,
        )
        return Page(items=items, total=total, limit=options.limit, skip=options.skip)

    def search(self, owner_id: str, query: Optional[str], *, limit: int = 20, skip: int = 0) -> Page:
        q = (query or "").strip()
        if not SEARCH_MIN_CHARS <= len(q) <= SEARCH_MAX_CHARS:
            raise InvalidQuery(query)
        items, total = self.repo.search(owner_id, q, skip=skip, limit=limit)
        return Page(items=items, total=total, limit=limit, skip=skip)

    def stats(self, owner_id: str) -> Dict[str, int]:
        row = self.repo.stats(owner_id) or {}
        return {k: int(row.get(k, 0)) for k in EMPTY_STATS}

    def popular_tags(self, owner_id: str, limit: int = 10) -> List[Dict[str, Any]]:
        return [{"tag": r["tag"], "count": int(r["count"])} for r in self.repo.popular_tags(owner_id, limit)]

    def get(self, owner_id: str, note_id: str) -> NoteRecord:
        note = self.repo.get(owner_id, note_id)
        if note is None:
            raise _not_found()
        return note

    def update(self, owner_id: str, note_id: str, partial: Dict[str, Any]) -> NoteRecord:
        """Actualización parcial: sólo cambian las claves presentes en `partial`."""
        errors: List[Dict[str, Any]] = []
        fields: Dict[str, Any] = {}
        for key in _UPDATABLE:
            if key not in partial:
                continue
            value = partial[key]
            if key == "noteTitle":
                fields[key] = check_title(value, errors)
            elif key == "noteContent":
                fields[key] = check_content(value, errors)
            elif key == "noteTags":
                fields[key] = check_tags(value if value is not None else [], errors)
            elif isinstance(value, bool):
                fields[key] = value
            else:
                errors.append({"field": key, "message": f"{key} must be a boolean value", "value": value})
        if errors:
            raise ValidationError(errors)

        if not fields:
            # Nada que cambiar: no hay mutación ni se toca noteUpdatedAt
            return self.get(owner_id, note_id)

        note = self.repo.update(owner_id, note_id, fields, self.clock())
        if note is None:
            raise _not_found()
        _log.info("Nota actualizada note_id=%s fields=%s", note_id, sorted(fields))
        return note

    def delete(self, owner_id: str, note_id: str) -> NoteRecord:
        note = self.repo.delete(owner_id, note_id)
        if note is None:
            raise _not_found()
        _log.info("Nota eliminada note_id=%s owner=%s", note_id, owner_id)
        return note

    def _toggle(self, owner_id: str, note_id: str, field_name: str) -> NoteRecord:
        note = self.repo.toggle(owner_id, note_id, field_name, self.clock())
        if note is None:
            raise _not_found()
        return note

    def toggle_pin(self, owner_id: str, note_id: str) -> NoteRecord:
        return self._toggle(owner_id, note_id, "isNotePinned")

    def toggle_archive(self, owner_id: str, note_id: str) -> NoteRecord:
        return self._toggle(owner_id, note_id, "isNoteArchived")
