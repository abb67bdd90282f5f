import json

import pytest

from db.patient_store import InvalidPhoneError, PatientStore


@pytest.fixture
def store(tmp_path):
    return PatientStore(tmp_path / "pacientes.json")


def test_get_all_without_file(store):
    assert store.get_all() == {}


def test_set_phone_creates_record(store):
    assert store.set_phone("Maria", "11999998888") == "5511999998888"

    db = store.get_all()
    assert db == {"Maria": {"telefone": "5511999998888"}}
    assert "informadoEm" not in db["Maria"]


def test_invalid_phone_leaves_store_untouched(store):
    store.set_phone("Maria", "11999998888")
    before = store.path.read_text(encoding="utf-8")

    with pytest.raises(InvalidPhoneError):
        store.set_phone("Maria", "123")

    assert store.path.read_text(encoding="utf-8") == before


def test_invalid_phone_does_not_create_file(store):
    with pytest.raises(InvalidPhoneError):
        store.set_phone("Joao", "123")
    assert not store.path.exists()


def test_set_phone_keeps_informed_timestamp(store):
    store.set_informed("Maria", True)
    informed_at = store.get_all()["Maria"]["informadoEm"]

    store.set_phone("Maria", "(21) 98888-7777")

    assert store.get_all()["Maria"] == {"informadoEm": informed_at, "telefone": "5521988887777"}


def test_set_informed_round_trip(store):
    stamp = store.set_informed("Ana", True)
    assert stamp and stamp.endswith("Z")
    assert store.get_all()["Ana"]["informadoEm"] == stamp

    store.set_informed("Ana", False)
    store.set_informed("Ana", False)
    assert store.get_all()["Ana"] == {"informadoEm": None}


def test_legacy_string_values_are_replaced_by_objects(store):
    store.path.write_text(json.dumps({"Carlos": "5511999998888"}), encoding="utf-8")

    store.set_informed("Carlos", True)

    record = store.get_all()["Carlos"]
    assert isinstance(record, dict)
    assert record["informadoEm"] is not None


def test_corrupt_file_raises(store):
    store.path.write_text("{oops", encoding="utf-8")
    with pytest.raises(ValueError):
        store.get_all()
