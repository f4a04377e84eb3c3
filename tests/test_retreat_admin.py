import base64

import pytest

import config
from models import Retreat
from scripts import create_retreat
from services import avatar_storage
from services.errors import InvalidAvatar
from services.retreat_service import add_code_alias, find_joinable_retreat, resolve_retreat


def test_create_retreat_script_with_alias(db, capsys):
    code = create_retreat.main([
        "Spring Caravan", "--code", "spring26", "--destination", "Camp Lakeside",
        "--lat", "36.6", "--lng", "-93.3", "--ends", "2099-01-01T00:00:00Z", "--alias", "262026",
    ])

    assert code == 0
    assert "SPRING26" in capsys.readouterr().out
    retreat = db.query(Retreat).one()
    assert retreat.code == "SPRING26"
    assert find_joinable_retreat(db, "262026").id == retreat.id


def test_create_retreat_rejects_duplicate_code(db, make_retreat, capsys):
    make_retreat()
    assert create_retreat.main(["Again", "--code", "TEST26"]) == 1
    assert "already exists" in capsys.readouterr().err


def test_generated_code_is_used_when_missing(db):
    assert create_retreat.main(["Autumn Caravan"]) == 0
    assert len(db.query(Retreat).one().code) == 8


def test_resolve_retreat_by_id_or_code(db, make_retreat):
    retreat = make_retreat()
    assert resolve_retreat(db, str(retreat.id)).id == retreat.id
    assert resolve_retreat(db, " test26 ").id == retreat.id
    assert resolve_retreat(db, "NOPE") is None


def test_alias_can_be_repointed(db, make_retreat):
    make_retreat()
    other = make_retreat(code="OTHER1")
    add_code_alias(db, "launch", "TEST26")
    add_code_alias(db, "LAUNCH", "other1")
    assert find_joinable_retreat(db, "launch").id == other.id


def test_decode_data_url_normalizes_jpeg():
    payload = "data:image/jpeg;base64," + base64.b64encode(b"jpeg bytes").decode()
    raw, ext = avatar_storage.decode_data_url(payload)
    assert raw == b"jpeg bytes"
    assert ext == "jpg"


def test_decode_data_url_rejects_oversized(monkeypatch):
    monkeypatch.setattr(config, "AVATAR_MAX_BYTES", 4)
    payload = "data:image/png;base64," + base64.b64encode(b"too many bytes").decode()
    with pytest.raises(InvalidAvatar):
        avatar_storage.decode_data_url(payload)


def test_public_url():
    assert avatar_storage.public_url(None) is None
    assert avatar_storage.public_url("retreat-avatars/1/a.png") == "/storage/retreat-avatars/1/a.png"
