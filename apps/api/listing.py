"""
Shared list-endpoint plumbing: query parameters, filtering, sorting and
offset pagination with next/prev cursors.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from fastapi import Query
from sqlalchemy import Select, func, or_, select
from sqlalchemy.orm import InstrumentedAttribute, Session

from packages.shared.exceptions import ValidationError


@dataclass
class ListParams:
    """Validated list query parameters."""

    page: int = 1
    limit: int = 10
    search: str | None = None
    is_active: bool | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    sort_by: str = "date_created"
    sort_order: Literal["asc", "desc"] = "desc"

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def list_params(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str | None = Query(None, max_length=100),
    is_active: bool | None = Query(None, alias="isActive"),
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
    sort_by: str = Query("date_created", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
) -> ListParams:
    """FastAPI dependency collecting the common list query parameters."""
    return ListParams(
        page=page,
        limit=limit,
        search=search.strip() if search else None,
        is_active=is_active,
        start_date=start_date,
        end_date=end_date,
        sort_by=sort_by,
        sort_order=sort_order,
    )


def pagination_links(page: int, limit: int, total: int) -> dict[str, Any]:
    """Build {next, prev} cursors for an offset page."""
    pagination: dict[str, Any] = {}
    start_index = (page - 1) * limit
    if start_index + limit < total:
        pagination["next"] = {"page": page + 1, "limit": limit}
    if start_index > 0:
        pagination["prev"] = {"page": page - 1, "limit": limit}
    return pagination


def apply_filters(
    stmt: Select,
    params: ListParams,
    *,
    search_columns: list[InstrumentedAttribute],
    created_column: InstrumentedAttribute,
    active_column: InstrumentedAttribute | None = None,
) -> Select:
    """Apply search, active flag and creation-date range filters."""
    if params.search:
        stmt = stmt.where(
            or_(*(col.icontains(params.search, autoescape=True) for col in search_columns))
        )
    if params.is_active is not None and active_column is not None:
        stmt = stmt.where(active_column == params.is_active)
    if params.start_date is not None:
        stmt = stmt.where(created_column >= params.start_date)
    if params.end_date is not None:
        stmt = stmt.where(created_column <= params.end_date)
    return stmt


def fetch_page(
    db: Session,
    stmt: Select,
    params: ListParams,
    *,
    sort_columns: dict[str, InstrumentedAttribute],
    id_column: InstrumentedAttribute,
) -> tuple[list[Any], int]:
    """
    Count and fetch one page of stmt.

    Sorting is restricted to sort_columns; ties break on id_column so page
    boundaries are stable.

    Raises:
        ValidationError: If params.sort_by is not whitelisted
    """
    column = sort_columns.get(params.sort_by)
    if column is None:
        raise ValidationError(
            "Invalid sortBy field",
            errors=[
                {
                    "field": "sortBy",
                    "message": f"sortBy must be one of: {', '.join(sort_columns)}",
                }
            ],
        )

    total = db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()

    if params.sort_order == "asc":
        order = (column.asc(), id_column.asc())
    else:
        order = (column.desc(), id_column.desc())

    rows = db.execute(
        stmt.order_by(*order).offset(params.offset).limit(params.limit)
    ).scalars()
    return list(rows), total


def member_distribution(counts: list[int], unit: str = "Studies") -> list[dict[str, Any]]:
    """
    Bucket per-record member counts into 0 / 1-5 / 6-10 / 10+.

    Empty buckets are omitted; buckets keep their natural order.
    """
    labels = [f"No {unit}", f"1-5 {unit}", f"6-10 {unit}", f"10+ {unit}"]
    tally = dict.fromkeys(labels, 0)
    for count in counts:
        if count == 0:
            tally[labels[0]] += 1
        elif count <= 5:
            tally[labels[1]] += 1
        elif count <= 10:
            tally[labels[2]] += 1
        else:
            tally[labels[3]] += 1
    return [{"_id": label, "count": n} for label, n in tally.items() if n]
