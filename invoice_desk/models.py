"""Company, invoice and line item records exchanged between the API and the PDF layout."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .formatting import parse_number


def _pick(data: Mapping[str, Any], *keys: str, default: Any = "") -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return default


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _as_mapping(data: Any) -> Mapping[str, Any]:
    return data if isinstance(data, Mapping) else {}


@dataclass
class Company:
    name: str = ""
    address: str = ""
    email: str = ""
    ifu: str = ""
    vmcf: str = ""
    paypal: str = ""
    id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Any) -> "Company":
        data = _as_mapping(data)
        return cls(
            name=_text(data.get("name")),
            address=_text(data.get("address")),
            email=_text(data.get("email")),
            ifu=_text(data.get("ifu")),
            vmcf=_text(data.get("vmcf")),
            paypal=_text(data.get("paypal")),
            id=data.get("id"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "email": self.email,
            "ifu": self.ifu,
            "vmcf": self.vmcf,
            "paypal": self.paypal,
        }


@dataclass
class LineItem:
    """One billable row. ``amount`` is the line total; quantity and unit price are informational."""

    description: str = ""
    quantity: Any = None
    unit_price: Any = None
    amount: Any = ""

    @classmethod
    def from_dict(cls, data: Any) -> "LineItem":
        data = _as_mapping(data)
        return cls(
            description=_text(data.get("description")),
            quantity=data.get("quantity"),
            unit_price=_pick(data, "unitPrice", "unit_price", default=None),
            amount=_pick(data, "amount"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "description": self.description,
            "quantity": self.quantity,
            "unitPrice": self.unit_price,
            "amount": self.amount,
        }


@dataclass
class Invoice:
    number: str = ""
    date: str = ""
    client_name: str = ""
    client_address: str = ""
    client_city: str = ""
    client_siren: str = ""
    conditions: str = ""
    items: List[LineItem] = field(default_factory=list)
    id: Optional[int] = None
    company_id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Any) -> "Invoice":
        data = _as_mapping(data)
        raw_items = data.get("items")
        items = [LineItem.from_dict(item) for item in raw_items] if isinstance(raw_items, list) else []
        return cls(
            number=_text(data.get("number")),
            date=_text(data.get("date")),
            client_name=_text(_pick(data, "clientName", "client_name")),
            client_address=_text(_pick(data, "clientAddress", "client_address")),
            client_city=_text(_pick(data, "clientCity", "client_city")),
            client_siren=_text(_pick(data, "clientSiren", "client_siren")),
            conditions=_text(data.get("conditions")),
            items=items,
            id=data.get("id"),
            company_id=_pick(data, "companyId", "company_id", default=None),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "companyId": self.company_id,
            "number": self.number,
            "date": self.date,
            "clientName": self.client_name,
            "clientAddress": self.client_address,
            "clientCity": self.client_city,
            "clientSiren": self.client_siren,
            "conditions": self.conditions,
            "items": [item.to_dict() for item in self.items],
        }


def invoice_total(items: Iterable[Any]) -> Decimal:
    """Sum of the parseable line amounts; anything unparseable counts as zero."""
    total = Decimal("0")
    for item in items:
        amount = item.amount if isinstance(item, LineItem) else _as_mapping(item).get("amount")
        total += parse_number(amount) or Decimal("0")
    return total
