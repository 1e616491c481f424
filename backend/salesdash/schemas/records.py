"""
Record schemas for the Firestore collections.

Documents are validated once, at the fetch layer. Field aliases keep the
Portuguese names used in the stored documents (and by the front end).
"""
from typing import Any, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from salesdash.utils.parsing import parse_brl, to_datetime


class RecordModel(BaseModel):
    """Immutable document with its Firestore id; unknown fields are kept."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    id: str

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, value):
        return str(value)

    def to_document(self) -> dict:
        """JSON-ready dict using the stored field names."""
        return self.model_dump(mode="json", by_alias=True)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


class SaleRecord(RecordModel):
    date: Optional[datetime] = Field(None, alias="data")
    code: Optional[str] = Field(None, alias="codigo")
    product: str = Field("", alias="descricao")
    category: str = Field("", alias="categoria")
    quantity: float = Field(0.0, alias="quantidade")
    unit_price: float = Field(0.0, alias="valorUnitario")
    revenue: float = Field(0.0, alias="final")
    origin: str = Field("", alias="origem")
    vendor: str = Field("", alias="vendedor")
    customer: str = Field("", alias="nomeCliente")
    city: str = Field("", alias="cidade")
    logistics: str = Field("", alias="logistica")
    type: str = Field("", alias="tipo")

    @model_validator(mode="before")
    @classmethod
    def _fill_revenue(cls, values):
        # Rows without a final amount fall back to unit price x quantity
        if isinstance(values, dict) and "revenue" not in values and not parse_brl(values.get("final")):
            values = {
                **values,
                "final": parse_brl(values.get("valorUnitario")) * parse_brl(values.get("quantidade")),
            }
        return values

    @field_validator("date", mode="before")
    @classmethod
    def _parse_date(cls, value):
        return to_datetime(value)

    @field_validator("quantity", "unit_price", "revenue", mode="before")
    @classmethod
    def _parse_amount(cls, value):
        return parse_brl(value)

    @field_validator("code", mode="before")
    @classmethod
    def _parse_code(cls, value):
        text = _text(value)
        return text or None

    @field_validator("product", "category", "origin", "vendor", "customer", "city", "logistics", "type", mode="before")
    @classmethod
    def _parse_text(cls, value):
        return _text(value)

    @property
    def order_key(self) -> str:
        """Identifier of the order this line belongs to."""
        return self.code or self.id


class LogisticsRecord(RecordModel):
    logistics: str = Field("", alias="logistica")
    delivery_person: str = Field("", alias="entregador")
    fee: float = Field(0.0, alias="valor")

    @field_validator("logistics", "delivery_person", mode="before")
    @classmethod
    def _parse_text(cls, value):
        return _text(value)

    @field_validator("fee", mode="before")
    @classmethod
    def _parse_fee(cls, value):
        return parse_brl(value)


class FeeRecord(RecordModel):
    """Card operator fee table row (flat key-value)."""


class CostRecord(RecordModel):
    """Cost or packaging-cost row (flat key-value)."""
