"""
Endpoints de `notes`, todos con Bearer token y acotados al dueño autenticado.

`/search` y `/stats` se declaran antes de `/{note_id}` para que no se
interpreten como ids.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_current_user, get_note_service, get_settings_dep
from app.api.schemas.common import ok
from app.api.schemas.note import NoteCreatePayload, NoteUpdatePayload
from app.core.config import Settings
from app.core.time import iso, utc_now
from app.domain.users.schemas import UserRecord
from app.services.note_service import ListOptions, NoteService, parse_tag_filter

router = APIRouter(prefix="/notes", tags=["Notes"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=dict, summary="Crear nota")
def create_note(
    payload: NoteCreatePayload,
    user: UserRecord = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    note = service.create(user.id, payload.noteTitle, payload.noteContent, payload.noteTags)
    return ok("Note created successfully", {"note": note.public()})


def _clamp(limit: Optional[int], default: int, maximum: int) -> int:
    if limit is None:
        return default
    return max(1, min(limit, maximum))


@router.get(
    "",
    response_model=dict,
    summary="Listar notas",
    description="Fijadas primero y luego más recientes; filtro por tag(s) con semántica OR.",
)
def list_notes(
    tag: Optional[str] = Query(default=None),
    tags: Optional[str] = Query(default=None, description="Separados por coma"),
    limit: Optional[int] = Query(default=None),
    skip: int = Query(default=0, ge=0),
    includeArchived: bool = Query(default=False),
    user: UserRecord = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
    settings: Settings = Depends(get_settings_dep),
):
    tag_filter = parse_tag_filter(tag, tags)
    options = ListOptions(
        tags=tag_filter,
        include_archived=includeArchived,
        limit=_clamp(limit, settings.notes_default_limit, settings.notes_max_limit),
        skip=skip,
    )
    page = service.list(user.id, options)
    return ok("Notes retrieved successfully", {
        "notes": [n.public() for n in page.items],
        "pagination": page.pagination(),
        "filters": {"tags": tag_filter, "includeArchived": includeArchived},
    })


@router.get("/search", response_model=dict, summary="Buscar notas por texto")
def search_notes(
    q: Optional[str] = Query(default=None),
    limit: Optional[int] = Query(default=None),
    skip: int = Query(default=0, ge=0),
    user: UserRecord = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
    settings: Settings = Depends(get_settings_dep),
):
    limit = _clamp(limit, settings.search_default_limit, settings.notes_max_limit)
    page = service.search(user.id, q, limit=limit, skip=skip)
    return ok("Search completed successfully", {
        "notes": [n.public() for n in page.items],
        "searchQuery": (q or "").strip(),
        "pagination": page.pagination(),
    })


@router.get("/stats", response_model=dict, summary="Estadísticas y tags populares")
def note_stats(
    user: UserRecord = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
    settings: Settings = Depends(get_settings_dep),
):
    return ok("Note statistics retrieved successfully", {
        "statistics": service.stats(user.id),
        "popularTags": service.popular_tags(user.id, settings.popular_tags_limit),
    })


@router.get("/{note_id}", response_model=dict, summary="Obtener nota")
def get_note(
    note_id: str,
    user: UserRecord = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    note = service.get(user.id, note_id)
    return ok("Note retrieved successfully", {"note": note.public()})


@router.put("/{note_id}", response_model=dict, summary="Actualizar nota (parcial)")
def update_note(
    note_id: str,
    payload: NoteUpdatePayload,
    user: UserRecord = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    note = service.update(user.id, note_id, payload.model_dump(exclude_unset=True))
    return ok("Note updated successfully", {"note": note.public()})


@router.delete("/{note_id}", response_model=dict, summary="Eliminar nota")
def delete_note(
    note_id: str,
    user: UserRecord = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    note = service.delete(user.id, note_id)
    return ok("Note deleted successfully", {
        "deletedNote": {"id": note.id, "title": note.note_title, "deletedAt": iso(utc_now())},
    })


@router.patch("/{note_id}/pin", response_model=dict, summary="Fijar / desfijar")
def toggle_pin(
    note_id: str,
    user: UserRecord = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    note = service.toggle_pin(user.id, note_id)
    state = "pinned" if note.is_note_pinned else "unpinned"
    return ok(f"Note {state} successfully", {"note": note.public()})


@router.patch("/{note_id}/archive", response_model=dict, summary="Archivar / desarchivar")
def toggle_archive(
    note_id: str,
    user: UserRecord = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    note = service.toggle_archive(user.id, note_id)
    state = "archived" if note.is_note_archived else "unarchived"
    return ok(f"Note {state} successfully", {"note": note.public()})
