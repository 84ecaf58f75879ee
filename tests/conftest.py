import io

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from fabnest.main import app
from fabnest.shared.config import settings
from fabnest.shared.db import Base, get_db
from fabnest.shared.auth import CurrentUser, create_access_token
from fabnest.auth.service import register_user

@pytest.fixture
def engine():
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()

@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)

@pytest.fixture
def db(session_factory):
    s = session_factory()
    yield s
    s.close()

@pytest.fixture(autouse=True)
def storage(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "STORAGE_DIR", str(tmp_path / "public"))
    monkeypatch.setattr(settings, "EMAIL_OUTBOX_DIR", str(tmp_path / "outbox"))
    monkeypatch.setattr(settings, "EMAIL_DRY_RUN", True)
    return tmp_path / "public"

@pytest.fixture
def outbox(tmp_path):
    return tmp_path / "outbox"

@pytest.fixture
def client(session_factory):
    def _get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()

# --- users ---

@pytest.fixture
def user(db):
    return register_user(db, "alice@example.com", "secret123", "Alice")

@pytest.fixture
def other_user(db):
    return register_user(db, "bob@example.com", "secret123", "Bob")

@pytest.fixture
def admin(db):
    return register_user(db, "admin@example.com", "secret123", "Admin", role="admin")

def _headers(u) -> dict:
    return {"Authorization": f"Bearer {create_access_token(sub=u.id, email=u.email, role=u.role)}"}

@pytest.fixture
def user_headers(user):
    return _headers(user)

@pytest.fixture
def other_headers(other_user):
    return _headers(other_user)

@pytest.fixture
def admin_headers(admin):
    return _headers(admin)

@pytest.fixture
def as_current():
    def _current(u) -> CurrentUser:
        return CurrentUser(sub=u.id, email=u.email, role=u.role)
    return _current

# --- payload factories ---

@pytest.fixture
def png_bytes():
    def _png(w: int = 4, h: int = 3) -> bytes:
        buf = io.BytesIO()
        Image.new("RGB", (w, h), "white").save(buf, "PNG")
        return buf.getvalue()
    return _png

@pytest.fixture
def upload(client):
    """POST /upload and return the response."""
    def _upload(headers, filename="part.stl", data=b"solid part\nendsolid part\n",
                file_type="model", content_type="application/octet-stream", destination=None):
        form = {"fileType": file_type}
        if destination:
            form["destination"] = destination
        return client.post(
            "/upload", files={"file": (filename, data, content_type)}, data=form, headers=headers
        )
    return _upload

@pytest.fixture
def custom_file(client, upload):
    """Upload a model and register it as a custom print file; returns the customFile body."""
    def _custom(headers, filename="part.stl", data=b"solid part\nendsolid part\n"):
        r = upload(headers, filename=filename, data=data)
        assert r.status_code == 200, r.text
        r = client.post(
            "/upload/custom-order",
            json={"fileId": r.json()["file"]["id"], "material": "PLA", "quality": "standard"},
            headers=headers,
        )
        assert r.status_code == 200, r.text
        return r.json()["customFile"]
    return _custom

@pytest.fixture
def quote(client, custom_file):
    """Create a pending quote request for a fresh custom file; returns the quoteRequest body."""
    def _quote(headers, **kw):
        cf = custom_file(headers, **kw)
        r = client.post("/quote-requests", json={"customFileId": cf["id"]}, headers=headers)
        assert r.status_code == 201, r.text
        return r.json()["quoteRequest"]
    return _quote

@pytest.fixture
def quoted(client, quote, admin_headers):
    """A quote request priced by an admin."""
    def _quoted(headers, price=45.0, **kw):
        q = quote(headers, **kw)
        r = client.put(f"/quote-requests/{q['id']}", json={"requestedPrice": price}, headers=admin_headers)
        assert r.status_code == 200, r.text
        return r.json()["quoteRequest"]
    return _quoted
