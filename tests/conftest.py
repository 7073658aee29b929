"""
Fixtures compartidas.

Los repositorios de Mongo se reemplazan por dobles en memoria con la misma
interfaz pública; la app se arma con `create_app(settings, container)` y
nunca abre conexión.
"""
from collections import Counter
from copy import deepcopy
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.core.container import wire_services
from app.core.exceptions import Conflict
from app.domain.notes.schemas import NoteRecord
from app.domain.users.schemas import UserRecord
from app.infrastructure.security.passwords import PasswordService
from app.main import create_app
from app.repositories.note_repo import to_object_id

API = "/api"
PASSWORD = "Secret1!pass"


class FrozenClock:
    """Reloj controlable para expiraciones de OTP y JWT."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class InMemoryUserRepo:
    def __init__(self) -> None:
        self.docs: Dict[str, Dict[str, Any]] = {}

    def _record(self, doc: Optional[Dict[str, Any]]) -> Optional[UserRecord]:
        return UserRecord.from_doc(deepcopy(doc)) if doc else None

    def _find(self, key: str, value: str) -> Optional[Dict[str, Any]]:
        return next((d for d in self.docs.values() if d.get(key) == value), None)

    def find_by_email(self, email: str) -> Optional[UserRecord]:
        return self._record(self._find("emailAddress", email.strip().lower()))

    def find_by_phone(self, phone: str) -> Optional[UserRecord]:
        return self._record(self._find("phoneNumber", phone.strip()))

    def get_by_id(self, user_id: str) -> Optional[UserRecord]:
        return self._record(self.docs.get(user_id))

    def insert(self, doc: Dict[str, Any]) -> UserRecord:
        if self._find("emailAddress", doc["emailAddress"]):
            raise Conflict("User with this email address already exists", error_code="EMAIL_ALREADY_EXISTS")
        if self._find("phoneNumber", doc["phoneNumber"]):
            raise Conflict("User with this phone number already exists", error_code="PHONE_ALREADY_EXISTS")
        data = dict(doc, _id=str(ObjectId()))
        self.docs[data["_id"]] = data
        return self._record(data)

    def _update(self, user_id: str, set_fields: Dict[str, Any], unset: Sequence[str] = ()) -> Optional[UserRecord]:
        doc = self.docs.get(user_id)
        if doc is None:
            return None
        doc.update(set_fields)
        for key in unset:
            doc.pop(key, None)
        return self._record(doc)

    def set_otp(self, user_id: str, code: str, expires_at: datetime) -> Optional[UserRecord]:
        return self._update(user_id, {"emailVerificationOtp": code, "otpExpirationTime": expires_at})

    def mark_verified(self, user_id: str) -> Optional[UserRecord]:
        return self._update(user_id, {"isEmailVerified": True}, ("emailVerificationOtp", "otpExpirationTime"))

    def touch_last_login(self, user_id: str, when: datetime) -> Optional[UserRecord]:
        return self._update(user_id, {"lastLoginAt": when})

    def set_active(self, user_id: str, active: bool) -> Optional[UserRecord]:
        return self._update(user_id, {"isAccountActive": bool(active)})


class InMemoryNoteRepo:
    """Imita filtros, orden y agregaciones de NoteRepository sobre una lista."""

    def __init__(self) -> None:
        self.docs: Dict[str, Dict[str, Any]] = {}

    def _owned(self, owner_id: str, note_id: str) -> Optional[Dict[str, Any]]:
        if to_object_id(note_id) is None:
            return None
        doc = self.docs.get(note_id)
        if doc is None or doc["noteOwner"] != owner_id:
            return None
        return doc

    def insert(self, doc: Dict[str, Any]) -> NoteRecord:
        data = dict(doc, _id=str(ObjectId()))
        self.docs[data["_id"]] = data
        return NoteRecord.from_doc(deepcopy(data))

    def list(
        self, owner_id: str, *, tags: Sequence[str] = (), include_archived: bool = False, skip: int = 0, limit: int = 50
    ) -> Tuple[List[NoteRecord], int]:
        rows = [d for d in self.docs.values() if d["noteOwner"] == owner_id]
        if tags:
            rows = [d for d in rows if set(d["noteTags"]) & set(tags)]
        if not include_archived:
            rows = [d for d in rows if not d["isNoteArchived"]]
        rows.sort(key=lambda d: (d["isNotePinned"], d["noteCreatedAt"]), reverse=True)
        return [NoteRecord.from_doc(deepcopy(d)) for d in rows[skip:skip + limit]], len(rows)

    def search(self, owner_id: str, query: str, *, skip: int = 0, limit: int = 20) -> Tuple[List[NoteRecord], int]:
        terms = query.lower().split()
        scored = []
        for d in self.docs.values():
            if d["noteOwner"] != owner_id or d["isNoteArchived"]:
                continue
            title, content = d["noteTitle"].lower(), d["noteContent"].lower()
            score = sum(10 for t in terms if t in title) + sum(5 for t in terms if t in content)
            if score:
                scored.append(dict(d, score=float(score)))
        scored.sort(key=lambda d: (d["score"], d["noteCreatedAt"]), reverse=True)
        return [NoteRecord.from_doc(deepcopy(d)) for d in scored[skip:skip + limit]], len(scored)

    def get(self, owner_id: str, note_id: str) -> Optional[NoteRecord]:
        doc = self._owned(owner_id, note_id)
        return NoteRecord.from_doc(deepcopy(doc)) if doc else None

    def update(self, owner_id: str, note_id: str, fields: Dict[str, Any], now: datetime) -> Optional[NoteRecord]:
        doc = self._owned(owner_id, note_id)
        if doc is None:
            return None
        doc.update(fields, noteUpdatedAt=now)
        return NoteRecord.from_doc(deepcopy(doc))

    def toggle(self, owner_id: str, note_id: str, field: str, now: datetime) -> Optional[NoteRecord]:
        doc = self._owned(owner_id, note_id)
        if doc is None:
            return None
        doc[field] = not doc[field]
        doc["noteUpdatedAt"] = now
        return NoteRecord.from_doc(deepcopy(doc))

    def delete(self, owner_id: str, note_id: str) -> Optional[NoteRecord]:
        doc = self._owned(owner_id, note_id)
        if doc is None:
            return None
        del self.docs[note_id]
        return NoteRecord.from_doc(doc)

    def stats(self, owner_id: str) -> Optional[Dict[str, int]]:
        rows = [d for d in self.docs.values() if d["noteOwner"] == owner_id]
        if not rows:
            return None
        return {
            "totalNotes": len(rows),
            "pinnedNotes": sum(1 for d in rows if d["isNotePinned"]),
            "archivedNotes": sum(1 for d in rows if d["isNoteArchived"]),
            "totalTags": sum(len(d["noteTags"]) for d in rows),
        }

    def popular_tags(self, owner_id: str, limit: int = 10) -> List[Dict[str, Any]]:
        counts = Counter(t for d in self.docs.values() if d["noteOwner"] == owner_id for t in d["noteTags"])
        ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:limit]
        return [{"tag": tag, "count": count} for tag, count in ranked]


class FakeEmailClient:
    """Registra los códigos enviados en lugar de hablar SMTP."""

    def __init__(self, deliver: bool = True) -> None:
        self.deliver = deliver
        self.otps: Dict[str, str] = {}
        self.welcomed: List[str] = []

    def send_otp_email(self, to_email: str, full_name: str, code: str, expires_in_minutes: int) -> bool:
        self.otps[to_email] = code
        return self.deliver

    def send_welcome_email(self, to_email: str, full_name: str) -> bool:
        self.welcomed.append(to_email)
        return self.deliver


def make_settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = dict(
        jwt_secret="test-secret-key",
        environment="development",
        rate_limit_enabled=False,
        # argon2 barato para que la suite sea rápida
        argon2_time_cost=1,
        argon2_memory_cost=8,
        argon2_parallelism=1,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def users() -> InMemoryUserRepo:
    return InMemoryUserRepo()


@pytest.fixture
def notes_repo() -> InMemoryNoteRepo:
    return InMemoryNoteRepo()


@pytest.fixture
def email() -> FakeEmailClient:
    return FakeEmailClient()


@pytest.fixture
def container(settings, users, notes_repo, email, clock):
    return wire_services(
        settings, users, notes_repo, email, passwords=PasswordService(settings), clock=clock
    )


@pytest.fixture
def client(settings, container) -> TestClient:
    return TestClient(create_app(settings, container))


def signup_payload(email_address: str = "ana@example.com", phone: str = "+15551234567", **extra: Any) -> Dict[str, Any]:
    return {
        "fullName": "Ana Lopez",
        "emailAddress": email_address,
        "phoneNumber": phone,
        "password": PASSWORD,
        **extra,
    }


def register(client: TestClient, email: FakeEmailClient, email_address: str = "ana@example.com",
             phone: str = "+15551234567") -> Dict[str, Any]:
    """Registro + verificación completos; devuelve `data` de verify-otp (user + token)."""
    r = client.post(f"{API}/auth/signup", json=signup_payload(email_address, phone))
    assert r.status_code == 201, r.text
    r = client.post(f"{API}/auth/verify-otp", json={"emailAddress": email_address, "otpCode": email.otps[email_address]})
    assert r.status_code == 200, r.text
    return r.json()["data"]


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(client, email) -> Dict[str, str]:
    return bearer(register(client, email)["authToken"])
