"""
Bootstrap de la base Mongo: define y aplica validadores (JSON Schema) e índices.
Se ejecuta al inicio de la app para asegurar colecciones mínimas y consistencia.
No tumba la app si algo falla; deja warnings en casos no críticos.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List

from pymongo import ASCENDING, DESCENDING, TEXT
from pymongo.database import Database
from pymongo.errors import PyMongoError

from app.repositories.note_repo import NOTES_COLLECTION
from app.repositories.user_repo import USERS_COLLECTION

_log = logging.getLogger("notes.mongo.bootstrap")


USER_VALIDATOR: Dict[str, Any] = {
    "bsonType": "object",
    "required": [
        "fullName",
        "emailAddress",
        "phoneNumber",
        "passwordHash",
        "isEmailVerified",
        "isAccountActive",
        "accountCreatedAt",
    ],
    "properties": {
        "fullName": {"bsonType": "string", "minLength": 2, "maxLength": 50},
        "emailAddress": {"bsonType": "string", "minLength": 3, "description": "lowercase"},
        "phoneNumber": {"bsonType": "string", "minLength": 1},
        "passwordHash": {"bsonType": "string"},
        "isEmailVerified": {"bsonType": "bool"},
        "isAccountActive": {"bsonType": "bool"},
        "emailVerificationOtp": {"bsonType": ["string", "null"]},
        "otpExpirationTime": {"bsonType": ["date", "null"]},
        "lastLoginAt": {"bsonType": ["date", "null"]},
        "accountCreatedAt": {"bsonType": "date"},
    },
    "additionalProperties": True,
}

NOTE_VALIDATOR: Dict[str, Any] = {
    "bsonType": "object",
    "required": [
        "noteTitle",
        "noteContent",
        "noteTags",
        "noteOwner",
        "isNotePinned",
        "isNoteArchived",
        "noteCreatedAt",
        "noteUpdatedAt",
    ],
    "properties": {
        "noteTitle": {"bsonType": "string", "minLength": 1, "maxLength": 100},
        "noteContent": {"bsonType": "string", "minLength": 1, "maxLength": 10000},
        "noteTags": {
            "bsonType": "array",
            "maxItems": 10,
            "items": {"bsonType": "string", "pattern": "^[a-z0-9-]{1,20}$"},
        },
        "noteOwner": {"bsonType": "objectId"},
        "isNotePinned": {"bsonType": "bool"},
        "isNoteArchived": {"bsonType": "bool"},
        "noteCreatedAt": {"bsonType": "date"},
        "noteUpdatedAt": {"bsonType": "date"},
    },
    "additionalProperties": True,
}


def _collmod_or_create(db: Database, name: str, validator: Dict[str, Any] | None) -> None:
    try:
        if name not in db.list_collection_names():
            if validator:
                db.create_collection(name, validator={"$jsonSchema": validator})
            else:
                db.create_collection(name)
        elif validator:
            db.command({
                "collMod": name,
                "validator": {"$jsonSchema": validator},
                "validationLevel": "moderate",
            })
    except PyMongoError as e:
        # Algunos motores no aceptan collMod sin privilegios; seguimos sin validator estricto.
        _log.warning("No se pudo aplicar validator en '%s': %s", name, e)


def _ensure_indexes(db: Database, name: str, indexes: List[Dict[str, Any]]) -> None:
    coll = db[name]
    for ix in indexes:
        spec = dict(ix)
        keys = spec.pop("keys")
        try:
            coll.create_index(keys, **spec)
        except PyMongoError as e:
            # Ignora fallas de índice (e.g., ya existe con otras opciones o datos no únicos previos)
            _log.warning("No se pudo crear índice en '%s' (%s): %s", name, keys, e)


USER_INDEXES: List[Dict[str, Any]] = [
    {"keys": [("emailAddress", ASCENDING)], "unique": True, "name": "uniq_email"},
    {"keys": [("phoneNumber", ASCENDING)], "unique": True, "name": "uniq_phone"},
    {"keys": [("isAccountActive", ASCENDING)], "name": "ix_active"},
]

NOTE_INDEXES: List[Dict[str, Any]] = [
    {"keys": [("noteOwner", ASCENDING)], "name": "ix_owner"},
    {"keys": [("noteOwner", ASCENDING), ("noteTags", ASCENDING)], "name": "ix_owner_tags"},
    {"keys": [("noteOwner", ASCENDING), ("noteCreatedAt", DESCENDING)], "name": "ix_owner_created"},
    {
        "keys": [("noteOwner", ASCENDING), ("isNotePinned", DESCENDING), ("noteCreatedAt", DESCENDING)],
        "name": "ix_owner_pinned_created",
    },
    {
        "keys": [("noteTitle", TEXT), ("noteContent", TEXT)],
        "weights": {"noteTitle": 10, "noteContent": 5},
        "name": "txt_title_content",
    },
]


def ensure_collections(db: Database) -> None:
    """
    Garantiza colecciones, validadores e índices mínimos.
    """
    _collmod_or_create(db, USERS_COLLECTION, USER_VALIDATOR)
    _ensure_indexes(db, USERS_COLLECTION, USER_INDEXES)

    _collmod_or_create(db, NOTES_COLLECTION, NOTE_VALIDATOR)
    _ensure_indexes(db, NOTES_COLLECTION, NOTE_INDEXES)
    _log.info("Colecciones e índices verificados")
