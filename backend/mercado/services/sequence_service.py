# Overview: Service-layer operations for sale numbering; per-year atomic counter.

"""
Sale number allocation.

FORMAT: <prefix><year>-<sequence>, sequence zero-padded (V2024-007).

The counter row for a year is bumped with a single UPDATE inside the
caller's transaction, so the number is only consumed if the sale commits.
The sale_number unique constraint is the final guard; callers retry with
resync_sale_sequence() when it fires.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import update

from ..extensions import db
from ..models import Sale, SaleSequence


def _prefix() -> str:
    return current_app.config.get("SALE_NUMBER_PREFIX", "V")


def format_sale_number(year: int, number: int) -> str:
    pad = current_app.config.get("SALE_NUMBER_PAD", 3)
    return f"{_prefix()}{year}-{number:0{pad}d}"


def parse_sale_number(sale_number: str) -> tuple[int, int] | None:
    """Return (year, sequence) or None when the value is not a sale number."""
    prefix = _prefix()
    if not sale_number or not sale_number.startswith(prefix):
        return None
    year_part, sep, seq_part = sale_number[len(prefix):].partition("-")
    if not sep or not year_part.isdigit() or not seq_part.isdigit():
        return None
    return int(year_part), int(seq_part)


def highest_sequence_in_year(year: int) -> int:
    """Largest sequence already used by a sale number in the given year."""
    pattern = f"{_prefix()}{year}-%"
    numbers = db.session.query(Sale.sale_number).filter(Sale.sale_number.like(pattern)).all()

    highest = 0
    for (sale_number,) in numbers:
        parsed = parse_sale_number(sale_number)
        if parsed and parsed[0] == year:
            highest = max(highest, parsed[1])
    return highest


def next_sale_number(year: int) -> str:
    """
    Atomically allocate the next sale number for a year.

    A missing counter row is seeded from the ledger. A concurrent seeder
    surfaces as IntegrityError on flush and is retried by the caller.
    """
    stmt = (
        update(SaleSequence)
        .where(SaleSequence.year == year)
        .values(next_number=SaleSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        current = (
            db.session.query(SaleSequence.next_number)
            .filter(SaleSequence.year == year)
            .scalar()
        )
        number = current - 1
    else:
        number = highest_sequence_in_year(year) + 1
        db.session.add(SaleSequence(year=year, next_number=number + 1))
        db.session.flush()

    return format_sale_number(year, number)


def resync_sale_sequence(year: int) -> int:
    """
    Re-derive the counter from the ledger after a sale number collision.

    Commits on its own; returns the next number that will be handed out.
    """
    next_number = highest_sequence_in_year(year) + 1

    seq = db.session.query(SaleSequence).filter_by(year=year).first()
    if seq is None:
        db.session.add(SaleSequence(year=year, next_number=next_number))
    elif seq.next_number < next_number:
        seq.next_number = next_number

    db.session.commit()
    return next_number
