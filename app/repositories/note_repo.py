"""Repo de la colección `notes`.

Toda lectura/escritura filtra por (id, noteOwner): una nota de otro dueño es
indistinguible de una inexistente. Los filtros y pipelines se construyen con
funciones puras para poder probarlos sin base de datos.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database

from app.domain.notes.schemas import NoteRecord

NOTES_COLLECTION = "notes"

# Fijadas primero, luego más recientes
LIST_SORT: List[Tuple[str, int]] = [("isNotePinned", DESCENDING), ("noteCreatedAt", DESCENDING)]

# Relevancia textual (título pesa 10, contenido 5; ver índice en bootstrap), luego más recientes
SEARCH_PROJECTION: Dict[str, Any] = {"score": {"$meta": "textScore"}}
SEARCH_SORT: List[Tuple[str, Any]] = [("score", {"$meta": "textScore"}), ("noteCreatedAt", DESCENDING)]


def to_object_id(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def owner_filter(owner_id: str, note_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """Filtro (id, dueño). Devuelve None si algún id no es un ObjectId válido."""
    owner = to_object_id(owner_id)
    if owner is None:
        return None
    filtro: Dict[str, Any] = {"noteOwner": owner}
    if note_id is not None:
        oid = to_object_id(note_id)
        if oid is None:
            return None
        filtro["_id"] = oid
    return filtro


def build_list_filter(owner_id: str, tags: Sequence[str] = (), include_archived: bool = False) -> Dict[str, Any]:
    """Filtro de listado: tags con semántica OR (`$in`), archivadas excluidas por defecto."""
    filtro: Dict[str, Any] = {"noteOwner": ObjectId(owner_id)}
    if tags:
        filtro["noteTags"] = {"$in": list(tags)}
    if not include_archived:
        filtro["isNoteArchived"] = False
    return filtro


def build_search_filter(owner_id: str, query: str) -> Dict[str, Any]:
    return {
        "noteOwner": ObjectId(owner_id),
        "$text": {"$search": query},
        "isNoteArchived": False,
    }


def stats_pipeline(owner_id: str) -> List[Dict[str, Any]]:
    """Conteos agregados; `totalTags` suma ocurrencias (no tags distintos)."""
    return [
        {"$match": {"noteOwner": ObjectId(owner_id)}},
        {
            "$group": {
                "_id": None,
                "totalNotes": {"$sum": 1},
                "pinnedNotes": {"$sum": {"$cond": ["$isNotePinned", 1, 0]}},
                "archivedNotes": {"$sum": {"$cond": ["$isNoteArchived", 1, 0]}},
                "totalTags": {"$sum": {"$size": {"$ifNull": ["$noteTags", []]}}},
            }
        },
        {"$project": {"_id": 0}},
    ]


def popular_tags_pipeline(owner_id: str, limit: int) -> List[Dict[str, Any]]:
    """Frecuencia de tags desc; empates por orden lexicográfico del tag."""
    return [
        {"$match": {"noteOwner": ObjectId(owner_id)}},
        {"$unwind": "$noteTags"},
        {"$group": {"_id": "$noteTags", "count": {"$sum": 1}}},
        {"$sort": {"count": -1, "_id": 1}},
        {"$limit": limit},
        {"$project": {"_id": 0, "tag": "$_id", "count": 1}},
    ]


def toggle_pipeline(field: str, now: datetime) -> List[Dict[str, Any]]:
    """Update con pipeline: invierte el booleano en una sola operación atómica por documento."""
    return [{"$set": {field: {"$not": [f"${field}"]}, "noteUpdatedAt": now}}]


class NoteRepository:
    def __init__(self, db: Database) -> None:
        self.coll = db[NOTES_COLLECTION]

    def insert(self, doc: Dict[str, Any]) -> NoteRecord:
        data = dict(doc)
        data["noteOwner"] = ObjectId(data["noteOwner"])
        res = self.coll.insert_one(data)
        data["_id"] = res.inserted_id
        return NoteRecord.from_doc(data)

    def list(
        self, owner_id: str, *, tags: Sequence[str] = (), include_archived: bool = False, skip: int = 0, limit: int = 50
    ) -> Tuple[List[NoteRecord], int]:
        """Lista paginada (skip/limit) + total con el mismo filtro."""
        filtro = build_list_filter(owner_id, tags, include_archived)
        cursor = self.coll.find(filtro).sort(LIST_SORT).skip(skip).limit(limit)
        items = [NoteRecord.from_doc(d) for d in cursor]
        return items, self.coll.count_documents(filtro)

    def search(self, owner_id: str, query: str, *, skip: int = 0, limit: int = 20) -> Tuple[List[NoteRecord], int]:
        filtro = build_search_filter(owner_id, query)
        cursor = self.coll.find(filtro, SEARCH_PROJECTION).sort(SEARCH_SORT).skip(skip).limit(limit)
        items = [NoteRecord.from_doc(d) for d in cursor]
        return items, self.coll.count_documents(filtro)

    def get(self, owner_id: str, note_id: str) -> Optional[NoteRecord]:
        filtro = owner_filter(owner_id, note_id)
        if filtro is None:
            return None
        doc = self.coll.find_one(filtro)
        return NoteRecord.from_doc(doc) if doc else None

    def update(self, owner_id: str, note_id: str, fields: Dict[str, Any], now: datetime) -> Optional[NoteRecord]:
        """Actualización parcial: sólo `fields` cambia; siempre se actualiza `noteUpdatedAt`."""
        filtro = owner_filter(owner_id, note_id)
        if filtro is None:
            return None
        doc = self.coll.find_one_and_update(
            filtro,
            {"$set": {**fields, "noteUpdatedAt": now}},
            return_document=ReturnDocument.AFTER,
        )
        return NoteRecord.from_doc(doc) if doc else None

    def toggle(self, owner_id: str, note_id: str, field: str, now: datetime) -> Optional[NoteRecord]:
        filtro = owner_filter(owner_id, note_id)
        if filtro is None:
            return None
        doc = self.coll.find_one_and_update(
            filtro, toggle_pipeline(field, now), return_document=ReturnDocument.AFTER
        )
        return NoteRecord.from_doc(doc) if doc else None

    def delete(self, owner_id: str, note_id: str) -> Optional[NoteRecord]:
        filtro = owner_filter(owner_id, note_id)
        if filtro is None:
            return None
        doc = self.coll.find_one_and_delete(filtro)
        return NoteRecord.from_doc(doc) if doc else None

    def stats(self, owner_id: str) -> Optional[Dict[str, int]]:
        """Conteos agregados o None si el dueño no tiene notas."""
        rows = list(self.coll.aggregate(stats_pipeline(owner_id)))
        return rows[0] if rows else None

    def popular_tags(self, owner_id: str, limit: int = 10) -> List[Dict[str, Any]]:
        return list(self.coll.aggregate(popular_tags_pipeline(owner_id, limit)))
