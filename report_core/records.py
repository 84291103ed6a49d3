"""Typed report records parsed from the backend JSON payloads."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _num(value: object) -> float:
    try:
        out = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(out):
        return 0.0
    return out


def _int(value: object) -> int:
    return int(_num(value))


def _str(value: object) -> str:
    return "" if value is None else str(value)


def _section(payload: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = payload.get(key)
    return value if isinstance(value, dict) else {}


@dataclass(frozen=True)
class SupplierRecord:
    supplier_id: int
    supplier_name_th: str
    supplier_name_en: str
    total_commission: float
    total_net_commission: float
    total_pax: int
    avg_commission_per_pax: float
    avg_net_commission_per_pax: float

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "SupplierRecord":
        m = _section(payload, "metrics")
        return cls(
            supplier_id=_int(payload.get("supplier_id")),
            supplier_name_th=_str(payload.get("supplier_name_th")),
            supplier_name_en=_str(payload.get("supplier_name_en")),
            total_commission=_num(m.get("total_commission")),
            total_net_commission=_num(m.get("total_net_commission")),
            total_pax=_int(m.get("total_pax")),
            avg_commission_per_pax=_num(m.get("avg_commission_per_pax")),
            avg_net_commission_per_pax=_num(m.get("avg_net_commission_per_pax")),
        )


@dataclass(frozen=True)
class DiscountSalesRecord:
    sales_id: int
    sales_name: str
    total_commission: float
    total_discount: float
    discount_percentage: float
    order_count: int
    net_commission: float

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "DiscountSalesRecord":
        m = _section(payload, "metrics")
        return cls(
            sales_id=_int(payload.get("sales_id")),
            sales_name=_str(payload.get("sales_name")),
            total_commission=_num(m.get("total_commission")),
            total_discount=_num(m.get("total_discount")),
            discount_percentage=_num(m.get("discount_percentage")),
            order_count=_int(m.get("order_count")),
            net_commission=_num(m.get("net_commission")),
        )


@dataclass(frozen=True)
class OrderDiscountRecord:
    order_code: str
    created_at: str
    customer_name: str
    total_installments: int
    paid_installments: int
    status_list: str
    seller_name: str
    crm_name: str
    net_amount: float
    supplier_commission: float
    discount: float
    discount_percent: float

    @property
    def is_unpaid(self) -> bool:
        return self.paid_installments < self.total_installments

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "OrderDiscountRecord":
        order = _section(payload, "order_info")
        customer = _section(payload, "customer_info")
        payment = _section(payload, "payment_details")
        people = _section(payload, "sales_crm")
        fin = _section(payload, "financial_metrics")
        return cls(
            order_code=_str(order.get("order_code")),
            created_at=_str(order.get("created_at")),
            customer_name=_str(customer.get("customer_name")),
            total_installments=_int(payment.get("total_installments")),
            paid_installments=_int(payment.get("paid_installments")),
            status_list=_str(payment.get("status_list")),
            seller_name=_str(people.get("seller_name")),
            crm_name=_str(people.get("crm_name")),
            net_amount=_num(fin.get("net_amount")),
            supplier_commission=_num(fin.get("supplier_commission")),
            discount=_num(fin.get("discount")),
            discount_percent=_num(fin.get("discount_percent")),
        )


@dataclass(frozen=True)
class OrderExternalRecord:
    order_code: str
    created_at: str
    customer_name: str
    net_amount: float
    supplier_commission: float
    discount: float
    first_installment_paid: bool
    paid_at: str

    @property
    def is_unpaid(self) -> bool:
        return not self.first_installment_paid

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "OrderExternalRecord":
        return cls(
            order_code=_str(payload.get("order_code")),
            created_at=_str(payload.get("created_at")),
            customer_name=_str(payload.get("customer_name")),
            net_amount=_num(payload.get("net_amount")),
            supplier_commission=_num(payload.get("supplier_commission")),
            discount=_num(payload.get("discount")),
            first_installment_paid=bool(payload.get("first_installment_paid")),
            paid_at=_str(payload.get("paid_at")),
        )


# ---------------- Filter options ----------------
@dataclass(frozen=True)
class Country:
    id: int
    name_th: str
    name_en: str

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Country":
        return cls(id=_int(payload.get("id")), name_th=_str(payload.get("name_th")), name_en=_str(payload.get("name_en")))


@dataclass(frozen=True)
class Team:
    team_number: int

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Team":
        return cls(team_number=_int(payload.get("team_number")))


@dataclass(frozen=True)
class JobPosition:
    job_position: str

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "JobPosition":
        return cls(job_position=_str(payload.get("job_position")))


@dataclass(frozen=True)
class User:
    id: int
    user_id: str = ""
    first_name: str = ""
    last_name: str = ""
    nickname: str = ""
    job_position: str = ""
    team_number: Optional[int] = None

    @property
    def display_name(self) -> str:
        return self.nickname or f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "User":
        team = payload.get("team_number")
        return cls(
            id=_int(payload.get("ID", payload.get("id"))),
            user_id=_str(payload.get("user_id")),
            first_name=_str(payload.get("first_name")),
            last_name=_str(payload.get("last_name")),
            nickname=_str(payload.get("nickname")),
            job_position=_str(payload.get("job_position")),
            team_number=None if team is None else _int(team),
        )


def unwrap_payload(payload: object, *, label: str = "report") -> List[Dict[str, Any]]:
    """Accept a bare JSON array or a ``{"data": [...]}`` envelope.

    Anything else resolves to an empty list so the page lands in a calm empty
    state instead of failing.
    """
    if isinstance(payload, list):
        rows = payload
    elif isinstance(payload, dict) and isinstance(payload.get("data"), list):
        rows = payload["data"]
    else:
        logger.warning("Unexpected %s API response format: %r", label, type(payload).__name__)
        return []
    return [row for row in rows if isinstance(row, dict)]


def parse_records(payload: object, factory: Callable[[Dict[str, Any]], T], *, label: str = "report") -> List[T]:
    return [factory(row) for row in unwrap_payload(payload, label=label)]
