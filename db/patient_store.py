# db/patient_store.py

from datetime import datetime, timezone
from pathlib import Path

from db.database import read_json, write_json
from services.phone import DEFAULT_REGION, normalize_phone


class InvalidPhoneError(ValueError):
    def __init__(self, raw_phone):
        super().__init__(f"Número inválido: {raw_phone!r}")
        self.raw_phone = raw_phone


def _now_iso() -> str:
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


class PatientStore:
    """
    Patient roster: one JSON object mapping patient name -> record.
    Record shape: {"telefone": "5511999998888", "informadoEm": "...Z" | null}
    """

    def __init__(self, path: Path, region: str = DEFAULT_REGION):
        self.path = Path(path)
        self.region = region

    def get_all(self) -> dict:
        data = read_json(self.path)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"{self.path.name} must contain a JSON object")
        return data

    def _upsert(self, name: str, **fields) -> None:
        db = self.get_all()

        # Older writers may have stored a bare string per patient
        record = db.get(name)
        if not isinstance(record, dict):
            record = {}

        record.update(fields)
        db[name] = record
        write_json(self.path, db)

    def set_phone(self, name: str, raw_phone: str) -> str:
        phone = normalize_phone(raw_phone, self.region)
        if not phone:
            raise InvalidPhoneError(raw_phone)

        self._upsert(name, telefone=phone)
        return phone

    def set_informed(self, name: str, informed: bool) -> str | None:
        informed_at = _now_iso() if informed else None
        self._upsert(name, informadoEm=informed_at)
        return informed_at
