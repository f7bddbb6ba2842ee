"""Pydantic models describing the ordinals indexer payloads."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, cast

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _truthy_flag(value: object) -> bool:
    return value is True or value == "true"


class IndexerBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Envelope(IndexerBaseModel):
    """Every indexer response wraps its payload as ``{code, msg, data}``."""

    code: int = 0
    msg: str | None = Field(default=None, validation_alias=AliasChoices("msg", "message"))
    data: Any = None


class UtxoPayload(IndexerBaseModel):
    txid: str | None = Field(default=None, validation_alias=AliasChoices("txid", "txId"))
    vout: int | None = Field(default=None, validation_alias=AliasChoices("vout", "vOut"))
    satoshi: int | None = Field(default=None, validation_alias=AliasChoices("satoshi", "value"))
    script_pk: str | None = Field(
        default=None, validation_alias=AliasChoices("scriptPk", "scriptpk", "script")
    )
    address: str | None = None
    inscriptions: list[dict[str, Any]] = Field(default_factory=list)

    _normalize_script = field_validator("script_pk", "txid", mode="before")(_blank_to_none)


class InscriptionPayload(IndexerBaseModel):
    inscription_id: str | None = Field(
        default=None, validation_alias=AliasChoices("inscriptionId", "id")
    )
    inscription_number: int | None = Field(
        default=None, validation_alias=AliasChoices("inscriptionNumber", "number", "num")
    )
    content_type: str | None = Field(
        default=None,
        validation_alias=AliasChoices("contentType", "content_type", "mimeType", "mime_type"),
    )
    address: str | None = None
    timestamp: int | None = Field(
        default=None, validation_alias=AliasChoices("timestamp", "createdAt", "time")
    )
    is_brc20: bool = Field(default=False, validation_alias=AliasChoices("isBRC20", "is_brc20"))
    utxo: UtxoPayload | None = None
    txid: str | None = Field(default=None, validation_alias=AliasChoices("txid", "txId"))
    vout: int | None = Field(default=None, validation_alias=AliasChoices("vout", "vOut"))
    out_satoshi: int | None = Field(
        default=None, validation_alias=AliasChoices("outSatoshi", "satoshi", "value")
    )
    script_pk: str | None = Field(
        default=None, validation_alias=AliasChoices("scriptPk", "scriptpk")
    )
    outpoint: str | None = None

    _normalize_blank = field_validator("inscription_id", "script_pk", "txid", mode="before")(
        _blank_to_none
    )

    @field_validator("is_brc20", mode="before")
    @classmethod
    def _parse_flag(cls, value: object) -> bool:
        return _truthy_flag(value)

    @field_validator("utxo", mode="before")
    @classmethod
    def _drop_non_object_utxo(cls, value: object) -> object:
        return value if isinstance(value, Mapping) else None

    @property
    def is_token(self) -> bool:
        """Fungible token transfers share the listing endpoint but are never delegates."""

        if self.is_brc20:
            return True
        if self.utxo is None:
            return False
        return any(_truthy_flag(entry.get("isBRC20")) for entry in self.utxo.inscriptions)


class InscriptionListData(IndexerBaseModel):
    cursor: int | None = None
    total: int | None = None
    inscription: list[InscriptionPayload] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _normalize_shapes(cls, value: object) -> object:
        # the listing has been seen as a bare list and under "list" as well
        if isinstance(value, list):
            return {"inscription": value}
        if isinstance(value, Mapping):
            mapping_value = cast(Mapping[str, object], value)
            if "inscription" not in mapping_value and isinstance(mapping_value.get("list"), list):
                data: dict[str, object] = dict(mapping_value)
                data["inscription"] = data.pop("list")
                return data
        return value


class TxOutputPayload(IndexerBaseModel):
    value: int | None = Field(default=None, validation_alias=AliasChoices("value", "satoshi"))
    script_hex: str | None = Field(
        default=None, validation_alias=AliasChoices("scriptPk", "script")
    )

    @model_validator(mode="before")
    @classmethod
    def _flatten_script_pubkey(cls, value: object) -> object:
        if isinstance(value, Mapping):
            mapping_value = cast(Mapping[str, object], value)
            script_pubkey = mapping_value.get("scriptPubKey")
            if isinstance(script_pubkey, Mapping) and "hex" in script_pubkey:
                data: dict[str, object] = dict(mapping_value)
                data["scriptPk"] = cast(Mapping[str, object], script_pubkey)["hex"]
                return data
        return value


class TransactionPayload(IndexerBaseModel):
    txid: str | None = None
    vout: list[TxOutputPayload] = Field(default_factory=list)
