from datetime import timedelta
from types import SimpleNamespace

from models import ParticipantLocation, RetreatMessage, RetreatParticipant
from scripts import merge_duplicates
from services.duplicate_collapse import collapse_duplicate_names, merge_duplicate_participants
from utils.datetime_helpers import utcnow

NOW = utcnow()


def person(id, name, phone=None, last_seen=None, is_leader=False):
    return SimpleNamespace(id=id, name=name, phone_e164=phone, last_seen_at=last_seen, is_leader=is_leader)


def test_names_outside_collision_set_are_untouched():
    rows = [person(1, "Sam"), person(2, "Sam")]
    assert [p.id for p in collapse_duplicate_names(rows, 99, [])] == [1, 2]
    assert [p.id for p in collapse_duplicate_names(rows, 99, ["Alex"])] == [1, 2]


def test_current_participant_wins():
    rows = [person(1, "Sam", phone="+15012315761"), person(2, " sam ")]
    assert [p.id for p in collapse_duplicate_names(rows, 2, ["SAM"])] == [2]


def test_phone_linked_row_wins_over_recent():
    rows = [person(1, "Sam", last_seen=NOW), person(2, "Sam", phone="+15012315761", last_seen=NOW - timedelta(days=1))]
    assert [p.id for p in collapse_duplicate_names(rows, 99, ["sam"])] == [2]


def test_most_recent_then_highest_id():
    rows = [
        person(1, "Sam", last_seen=NOW - timedelta(hours=1)),
        person(2, "Sam", last_seen=NOW),
        person(3, "Sam"),
    ]
    assert [p.id for p in collapse_duplicate_names(rows, 99, ["sam"])] == [2]

    tied = [person(1, "Sam", last_seen=NOW), person(4, "Sam", last_seen=NOW)]
    assert [p.id for p in collapse_duplicate_names(tied, 99, ["sam"])] == [4]


def test_collapsed_group_keeps_first_position():
    rows = [person(1, "Ana"), person(2, "Sam"), person(3, "Bo"), person(4, "Sam", phone="+15012315761")]
    assert [p.id for p in collapse_duplicate_names(rows, 99, ["sam"])] == [1, 4, 3]


def _seed_duplicates(db, retreat):
    legacy_leader = RetreatParticipant(retreat_id=retreat.id, name="Sam", is_leader=True, joined_at=NOW)
    legacy = RetreatParticipant(retreat_id=retreat.id, name="sam", joined_at=NOW, last_seen_at=NOW)
    linked = RetreatParticipant(retreat_id=retreat.id, name="Sam", phone_e164="+15012315761", joined_at=NOW)
    db.add_all([legacy_leader, legacy, linked])
    db.commit()

    db.add_all([
        ParticipantLocation(participant_id=legacy.id, latitude=1, longitude=1, recorded_at=NOW, created_at=NOW),
        RetreatMessage(retreat_id=retreat.id, participant_id=legacy_leader.id, content="hello", created_at=NOW),
    ])
    db.commit()
    return legacy_leader.id, legacy.id, linked.id


def test_merge_keeps_phone_linked_row_and_moves_history(db, make_retreat):
    retreat = make_retreat()
    _, _, linked_id = _seed_duplicates(db, retreat)

    kept = merge_duplicate_participants(db, retreat.id, "SAM")

    assert kept == linked_id
    remaining = db.query(RetreatParticipant).all()
    assert [p.id for p in remaining] == [linked_id]
    assert remaining[0].is_leader is True
    assert {l.participant_id for l in db.query(ParticipantLocation).all()} == {linked_id}
    assert {m.participant_id for m in db.query(RetreatMessage).all()} == {linked_id}


def test_merge_without_duplicates_is_a_no_op(db, make_retreat):
    retreat = make_retreat()
    db.add(RetreatParticipant(retreat_id=retreat.id, name="Solo", joined_at=NOW))
    db.commit()

    assert merge_duplicate_participants(db, retreat.id, "Solo") is None
    assert db.query(RetreatParticipant).count() == 1


def test_merge_script_is_dry_run_by_default(db, make_retreat, capsys):
    retreat = make_retreat()
    _seed_duplicates(db, retreat)

    assert merge_duplicates.main(["TEST26", "Sam"]) == 0
    assert "Dry run only" in capsys.readouterr().out
    db.expire_all()
    assert db.query(RetreatParticipant).count() == 3

    assert merge_duplicates.main([str(retreat.id), "Sam", "--commit"]) == 0
    db.expire_all()
    assert db.query(RetreatParticipant).count() == 1


def test_roster_collapses_configured_names(client, db, make_retreat, join, monkeypatch):
    import config

    retreat = make_retreat()
    monkeypatch.setattr(config, "LEGACY_DUPLICATE_NAMES", ["Tester"])
    db.add(RetreatParticipant(retreat_id=retreat.id, name="Tester", device_token="legacy-token", joined_at=NOW))
    db.commit()

    data = join().json()["data"]
    roster = client.get("/api/v1/retreat/locations", headers={"X-Device-Token": data["device_token"]}).json()

    assert [e["participant_id"] for e in roster["data"]] == [data["participant_id"]]
    assert roster["meta"]["total_participants"] == 1
