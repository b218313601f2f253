"""Vehicle master-list and trailer status models."""

from __future__ import annotations

from datetime import date
from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, Field, field_validator

from pyflotta.ingestion.normalize import normalize_targa, parse_date_flexible, safe_str
from pyflotta.models._base import FlottaBaseModel, FlottaRecordModel


class Vehicle(FlottaRecordModel):
    """A vehicle of the company fleet (``@mezzi_aziendali`` entry).

    Date fields accept ``yyyy-mm-dd``, ``dd/mm/yyyy`` and ``dd mm yyyy``
    text as typed in the dashboard forms; unparseable dates are ``None``.
    """

    id: str = Field(default="", validation_alias=AliasChoices("id", "uid"))
    targa: str = Field(
        default="",
        validation_alias=AliasChoices("targa", "targaCamion", "targaMotrice", "targaRimorchio"),
    )
    """Normalized plate."""
    tipo: str = Field(default="", validation_alias=AliasChoices("tipo"))
    """``"motrice"`` or ``"cisterna"`` when known."""
    categoria: str = Field(default="", validation_alias=AliasChoices("categoria"))
    marca: str = Field(default="", validation_alias=AliasChoices("marca"))
    modello: str = Field(default="", validation_alias=AliasChoices("modello", "marcaModello"))
    autista_nome: str = Field(default="", validation_alias=AliasChoices("autistaNome", "autista_nome"))
    data_immatricolazione: date | None = Field(
        default=None,
        validation_alias=AliasChoices("dataImmatricolazione", "data_immatricolazione", "immatricolazione"),
    )
    """First registration date."""
    data_scadenza_revisione: date | None = Field(
        default=None,
        validation_alias=AliasChoices("dataScadenzaRevisione", "data_scadenza_revisione", "scadenzaRevisione"),
    )
    """Explicit next-inspection deadline, when stored."""
    data_ultimo_collaudo: date | None = Field(
        default=None,
        validation_alias=AliasChoices("dataUltimoCollaudo", "data_ultimo_collaudo", "ultimaRevisione"),
    )
    """Date of the last passed inspection."""

    @property
    def label(self) -> str:
        parts = [part for part in (self.marca, self.modello) if part]
        return " ".join(parts)

    @field_validator("targa", mode="before")
    @classmethod
    def _normalize_targa(cls, value: Any) -> str:
        return normalize_targa(value)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        if isinstance(value, (int, str)) and not isinstance(value, bool):
            return str(value).strip()
        return ""

    @field_validator("tipo", "categoria", "marca", "modello", "autista_nome", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return safe_str(value)

    @field_validator(
        "data_immatricolazione",
        "data_scadenza_revisione",
        "data_ultimo_collaudo",
        mode="before",
    )
    @classmethod
    def _coerce_dates(cls, value: Any) -> date | None:
        return parse_date_flexible(value)


class TrailerState(StrEnum):
    AGGANCIATO = "AGGANCIATO"
    """Coupled to a tractor in an open session."""
    LIBERO = "LIBERO"
    """Last seen unhooked and not in use."""


class TrailerStatus(FlottaBaseModel):
    """One row of the trailer status board."""

    targa: str
    stato: TrailerState
    autista: str = ""
    motrice: str = ""
    luogo: str = ""
    stato_carico: str = ""
    timestamp: int = 0
