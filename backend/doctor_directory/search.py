"""Search, filter, sort and paginate doctors.

``parse_search_args`` turns raw query-string values into a ``SearchQuery``
(raising ``ValidationError`` before anything touches the database) and
``run_search`` executes it as a count query plus a page query that share the
same predicates.
"""
import logging
import math
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select, func

from . import db
from .models import Doctor, MAX_DB_INT
from .errors import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100

# sortBy keys mapped to column objects; client strings never reach ORDER BY.
SORTABLE_COLUMNS = {
    "id": Doctor.id,
    "name": Doctor.name,
    "rating": Doctor.rating,
    "experience_years": Doctor.experience_years,
    "consultation_fee": Doctor.consultation_fee,
    "search_count": Doctor.search_count,
    "created_at": Doctor.created_at,
}
SORT_ALIASES = {
    "experienceYears": "experience_years",
    "consultationFee": "consultation_fee",
    "searchCount": "search_count",
    "createdAt": "created_at",
}
DEFAULT_SORT = "id"


@dataclass
class SearchQuery:
    name: Optional[str] = None
    specialization: Optional[str] = None
    location: Optional[str] = None
    min_rating: Optional[float] = None
    max_fee: Optional[int] = None
    min_experience: Optional[int] = None
    sort_by: str = DEFAULT_SORT
    order: str = "ASC"
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @property
    def offset(self):
        return (self.page - 1) * self.limit

    def filters(self):
        return {
            "name": self.name,
            "specialization": self.specialization,
            "location": self.location,
            "minRating": self.min_rating,
            "maxFee": self.max_fee,
            "minExperience": self.min_experience,
        }


def resolve_sort(sort_by):
    key = SORT_ALIASES.get(sort_by, sort_by)
    return key if key in SORTABLE_COLUMNS else DEFAULT_SORT


def resolve_order(order):
    return "DESC" if isinstance(order, str) and order.strip().lower() == "desc" else "ASC"


def _text(args, key):
    value = args.get(key)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _number(args, key, cast, errors, message, low=None, high=None):
    raw = _text(args, key)
    if raw is None:
        return None
    try:
        value = cast(raw)
    except ValueError:
        errors.append(message)
        return None
    if cast is float and not math.isfinite(value):
        errors.append(message)
        return None
    if (low is not None and value < low) or (high is not None and value > high):
        errors.append(message)
        return None
    return value


def parse_search_args(args):
    """Validate query-string arguments. ``args`` is any mapping with ``get``."""
    errors = []
    min_rating = _number(args, "minRating", float, errors, "minRating must be between 0 and 5", 0, 5)
    max_fee = _number(args, "maxFee", int, errors, "maxFee must be a positive number", 0, MAX_DB_INT)
    min_experience = _number(args, "minExperience", int, errors, "minExperience must be a positive number", 0, MAX_DB_INT)
    page = _number(args, "page", int, errors, "page must be a positive number", 1, MAX_DB_INT)
    limit = _number(args, "limit", int, errors, "limit must be between 1 and 100", 1, MAX_LIMIT)
    if errors:
        raise ValidationError(errors=errors)

    return SearchQuery(
        name=_text(args, "name"),
        specialization=_text(args, "specialization"),
        location=_text(args, "location"),
        min_rating=min_rating,
        max_fee=max_fee,
        min_experience=min_experience,
        sort_by=resolve_sort(args.get("sortBy") or DEFAULT_SORT),
        order=resolve_order(args.get("order")),
        page=page if page is not None else DEFAULT_PAGE,
        limit=limit if limit is not None else DEFAULT_LIMIT,
    )


def _escape_like(value):
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_predicates(query):
    predicates = []
    if query.name:
        predicates.append(Doctor.name.ilike(f"%{_escape_like(query.name)}%", escape="\\"))
    if query.specialization:
        predicates.append(Doctor.specialization == query.specialization)
    if query.location:
        predicates.append(Doctor.location == query.location)
    if query.min_rating is not None:
        predicates.append(Doctor.rating >= query.min_rating)
    if query.max_fee is not None:
        predicates.append(Doctor.consultation_fee <= query.max_fee)
    if query.min_experience is not None:
        predicates.append(Doctor.experience_years >= query.min_experience)
    return predicates


def order_clause(query):
    column = SORTABLE_COLUMNS[query.sort_by]
    primary = column.desc() if query.order == "DESC" else column.asc()
    return [primary, Doctor.id.asc()]


def pagination_meta(page, limit, total):
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "currentPage": page,
        "totalPages": total_pages,
        "totalResults": total,
        "resultsPerPage": limit,
        "hasNextPage": page < total_pages,
        "hasPreviousPage": page > 1,
    }


def run_search(query):
    predicates = build_predicates(query)

    total = db.session.scalar(select(func.count(Doctor.id)).where(*predicates))
    stmt = (
        select(Doctor)
        .where(*predicates)
        .order_by(*order_clause(query))
        .limit(query.limit)
        .offset(query.offset)
    )
    doctors = list(db.session.scalars(stmt))
    logger.debug("Search %s matched %d doctors (page %d)", query.filters(), total, query.page)

    return {
        "success": True,
        "count": len(doctors),
        "pagination": pagination_meta(query.page, query.limit, total),
        "filters": query.filters(),
        "sorting": {"sortBy": query.sort_by, "order": query.order},
        "data": [d.to_dict() for d in doctors],
    }
