"""
Registro plano de nota (colección `notes`) y reglas de validación de campos.

Las reglas se aplican en el servicio (no en el router) para que cualquier
llamador reciba un ValidationError con *todos* los campos inválidos.
"""
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.core.time import as_utc, iso

TITLE_MAX = 100
CONTENT_MAX = 10000
TAGS_MAX = 10
TAG_RE = re.compile(r"[A-Za-z0-9-]{1,20}")


class NoteRecord(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(alias="_id")
    note_title: str
    note_content: str
    note_tags: List[str] = Field(default_factory=list)
    note_owner: str
    is_note_pinned: bool = False
    is_note_archived: bool = False
    note_created_at: datetime
    note_updated_at: datetime
    score: Optional[float] = None  # sólo presente en resultados de búsqueda

    @field_validator("id", "note_owner", mode="before")
    @classmethod
    def _str_id(cls, v: Any) -> str:
        return str(v)

    @field_validator("note_created_at", "note_updated_at", mode="after")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return as_utc(v)

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "NoteRecord":
        return cls.model_validate(doc)

    def public(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "_id": self.id,
            "noteTitle": self.note_title,
            "noteContent": self.note_content,
            "noteTags": list(self.note_tags),
            "noteOwner": self.note_owner,
            "isNotePinned": self.is_note_pinned,
            "isNoteArchived": self.is_note_archived,
            "noteCreatedAt": iso(self.note_created_at),
            "noteUpdatedAt": iso(self.note_updated_at),
        }
        if self.score is not None:
            out["score"] = self.score
        return out


def _error(field: str, message: str, value: Any) -> Dict[str, Any]:
    return {"field": field, "message": message, "value": value}


def check_title(value: Any, errors: List[Dict[str, Any]]) -> Optional[str]:
    if not isinstance(value, str):
        errors.append(_error("noteTitle", "Note title is required", value))
        return None
    title = value.strip()
    if not title or len(title) > TITLE_MAX:
        errors.append(_error("noteTitle", f"Note title must be between 1 and {TITLE_MAX} characters", value))
        return None
    return title


def check_content(value: Any, errors: List[Dict[str, Any]]) -> Optional[str]:
    if not isinstance(value, str):
        errors.append(_error("noteContent", "Note content is required", value))
        return None
    content = value.strip()
    if not content or len(content) > CONTENT_MAX:
        errors.append(_error("noteContent", f"Note content must be between 1 and {CONTENT_MAX:,} characters", None))
        return None
    return content


def check_tags(value: Any, errors: List[Dict[str, Any]]) -> Optional[List[str]]:
    """Valida cantidad y forma; devuelve los tags en minúsculas (sin deduplicar)."""
    if value is None:
        return []
    if not isinstance(value, list):
        errors.append(_error("noteTags", "Note tags must be an array", value))
        return None
    ok = True
    if len(value) > TAGS_MAX:
        errors.append(_error("noteTags", f"Maximum {TAGS_MAX} tags allowed", len(value)))
        ok = False
    for i, tag in enumerate(value):
        if not isinstance(tag, str) or not TAG_RE.fullmatch(tag):
            errors.append(_error(
                f"noteTags[{i}]",
                "Tags must be 1-20 characters, letters, numbers and hyphens only",
                tag,
            ))
            ok = False
    if not ok:
        return None
    return [t.lower() for t in value]
