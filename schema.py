from pydantic import BaseModel, ConfigDict, Field

from db.settings_store import MAX_DIAS_ESCOPO


class SavePhoneRequest(BaseModel):
    nome: str
    # Digits-only numbers may arrive as JSON numbers
    telefone: str | int | None = None


class MarkInformedRequest(BaseModel):
    nome: str
    informado: bool


class SettingsUpdate(BaseModel):
    # Front end may persist its own keys next to the known ones
    model_config = ConfigDict(extra="allow")

    diasEscopo: int | None = Field(default=None, ge=1, le=MAX_DIAS_ESCOPO)
    senhaAdmin: str | None = None
    ocultarIgnorados: bool | None = None
