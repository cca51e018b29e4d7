# Overview: Sale ledger filters and role-based scoping.

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Mapping

from ..errors import ValidationError
from ..models import Sale
from ..models.auth import ROLE_ADMIN
from ..models.sales import PAYMENT_METHODS, PAYMENT_STATUSES
from ..time_utils import end_of_day, is_date_only, parse_iso_datetime
from ..validation import coerce_int, require_choice


@dataclass(frozen=True)
class Principal:
    """Authenticated caller as resolved by the auth collaborator."""
    user_id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


@dataclass(frozen=True)
class SaleFilters:
    start_date: datetime | None = None
    end_date: datetime | None = None
    payment_status: str | None = None
    payment_method: str | None = None
    customer_id: int | None = None
    seller_id: int | None = None


def _parse_date(value: str, name: str) -> datetime:
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date or datetime", details={name: value})


def parse_sale_filters(args: Mapping[str, str]) -> SaleFilters:
    """
    Build filters from query parameters.

    startDate, endDate, paymentStatus, paymentMethod, customerId, sellerId;
    all optional. A date-only endDate includes the whole day.
    """
    start = args.get("startDate") or None
    end = args.get("endDate") or None

    start_dt = _parse_date(start, "startDate") if start else None
    end_dt = _parse_date(end, "endDate") if end else None
    if end_dt is not None and is_date_only(end):
        end_dt = end_of_day(end_dt)

    if start_dt and end_dt and start_dt > end_dt:
        raise ValidationError("startDate must not be after endDate")

    payment_status = args.get("paymentStatus") or None
    if payment_status is not None:
        require_choice(payment_status, "paymentStatus", PAYMENT_STATUSES)

    payment_method = args.get("paymentMethod") or None
    if payment_method is not None:
        require_choice(payment_method, "paymentMethod", PAYMENT_METHODS)

    customer_id = args.get("customerId") or None
    seller_id = args.get("sellerId") or None

    return SaleFilters(
        start_date=start_dt,
        end_date=end_dt,
        payment_status=payment_status,
        payment_method=payment_method,
        customer_id=coerce_int(customer_id, "customerId") if customer_id is not None else None,
        seller_id=coerce_int(seller_id, "sellerId") if seller_id is not None else None,
    )


def effective_sale_filters(principal: Principal, requested: SaleFilters) -> SaleFilters:
    """
    Scope requested filters to what the caller may see.

    Admins see the whole ledger; everyone else only the sales they sold,
    whatever sellerId they asked for.
    """
    if principal.is_admin:
        return requested
    return replace(requested, seller_id=principal.user_id)


def apply_sale_filters(query, filters: SaleFilters):
    """Intersect a Sale query with every filter that is set."""
    if filters.start_date is not None:
        query = query.filter(Sale.created_at >= filters.start_date)
    if filters.end_date is not None:
        query = query.filter(Sale.created_at <= filters.end_date)
    if filters.payment_status is not None:
        query = query.filter(Sale.payment_status == filters.payment_status)
    if filters.payment_method is not None:
        query = query.filter(Sale.payment_method == filters.payment_method)
    if filters.customer_id is not None:
        query = query.filter(Sale.customer_id == filters.customer_id)
    if filters.seller_id is not None:
        query = query.filter(Sale.seller_id == filters.seller_id)
    return query
