"""
Esquemas Pydantic de entrada para `notes`.

Sólo fijan la forma del JSON (un objeto); los tipos y reglas de contenido
(longitudes, tags, booleanos) los aplica NoteService para reportar todos los
campos inválidos a la vez, incluso cuando alguno trae un tipo equivocado.
"""
from typing import Any

from pydantic import BaseModel


class NoteCreatePayload(BaseModel):
    noteTitle: Any = None
    noteContent: Any = None
    noteTags: Any = None


class NoteUpdatePayload(BaseModel):
    """Update parcial: sólo las claves enviadas se aplican (`exclude_unset`)."""
    noteTitle: Any = None
    noteContent: Any = None
    noteTags: Any = None
    isNotePinned: Any = None
    isNoteArchived: Any = None
