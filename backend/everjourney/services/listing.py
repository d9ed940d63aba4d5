"""
Listing Query Builder
=====================
One generic filter / sort / paginate component shared by every listing page
(hotels, packages, transport routes, deals).

A resource is described once by a ``ListingSpec``:

  from_sql      FROM clause (joins included), e.g. "hotels h LEFT JOIN cities c ..."
  columns       projected SELECT list
  count_key     expression counted with COUNT(DISTINCT ...)
  fields        allowed filters, each with a static predicate template
  fixed         predicates that are always applied (e.g. future departures)
  sorts         allowlist of sort keyword -> literal ORDER BY expression
  project       row -> view-model mapping

Pipeline per request:
  1. normalize()     raw query params -> typed filter record
  2. build_where()   (clauses, params): one fragment per active filter
  3. order_by()      sort keyword -> allowlisted ORDER BY
  4. fetch()         data query + COUNT query sharing the same WHERE/params

User input only ever reaches the database as a bound parameter.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from sqlalchemy import bindparam, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import BindParameter, TextClause

from everjourney.core.config import settings

logger = logging.getLogger(__name__)

TEXT_MAX_LENGTH = 200
LIST_MAX_ITEMS = 20
# Signed 64-bit range of INTEGER / BIGINT bound parameters
INT64_MAX = 2 ** 63 - 1
INT64_MIN = -(2 ** 63)
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


# ---------------------------------------------------------------------------
# Value coercion helpers (shared with the row projectors)
# ---------------------------------------------------------------------------

def clean_text(value: Any, limit: int = TEXT_MAX_LENGTH) -> str:
    """Strip, drop control characters and cap the length."""
    if value is None:
        return ""
    return _CONTROL_CHARS.sub("", str(value).strip())[:limit]


def to_number(value: Any, default: Optional[float] = None) -> Optional[float]:
    """Parse a float; NaN, infinities and garbage fall back to ``default``."""
    if value is None or value == "":
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return number


def to_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    number = to_number(value)
    if number is None:
        return default
    number = int(number)
    if not INT64_MIN <= number <= INT64_MAX:
        return default
    return number


def to_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(clean_text(value, 10))
    except ValueError:
        return None


def truncate(value: Optional[str], limit: int) -> str:
    """Cut ``value`` to ``limit`` characters, marking the cut with '...'."""
    if not value:
        return ""
    if len(value) > limit:
        return value[:limit] + "..."
    return value


def like_pattern(value: str) -> str:
    """Lower-cased substring pattern for ``LOWER(col) LIKE :param``."""
    return f"%{value.lower()}%"


# ---------------------------------------------------------------------------
# Resource description
# ---------------------------------------------------------------------------

class FieldKind(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    INTEGER = "integer"
    DATE = "date"
    LIST = "list"


@dataclass(frozen=True)
class FilterField:
    """
    One allowed filter.

    ``predicate`` is a static SQL template referencing ``:<name>``; a field
    without a predicate is normalized and echoed back but narrows nothing
    (check-in dates, guest counts).
    """
    name: str
    kind: FieldKind = FieldKind.TEXT
    predicate: Optional[str] = None
    transform: Optional[Callable[[Any], Any]] = None

    def empty(self) -> Any:
        if self.kind == FieldKind.LIST:
            return []
        if self.kind == FieldKind.TEXT:
            return ""
        return None

    def coerce(self, raw: Any) -> Any:
        if self.kind == FieldKind.LIST:
            items = raw if isinstance(raw, (list, tuple)) else [raw]
            cleaned = [clean_text(item, 100) for item in items[:LIST_MAX_ITEMS]]
            return [item for item in cleaned if item]

        if isinstance(raw, (list, tuple)):
            raw = raw[0] if raw else None

        if self.kind == FieldKind.TEXT:
            return clean_text(raw)
        if self.kind == FieldKind.NUMBER:
            return to_number(raw)
        if self.kind == FieldKind.INTEGER:
            return to_int(raw)
        if self.kind == FieldKind.DATE:
            return to_date(raw)
        return raw


@dataclass(frozen=True)
class Predicate:
    """A fixed SQL fragment plus whatever parameters it binds."""
    sql: str
    params: Dict[str, Any] = field(default_factory=dict)
    binds: Tuple[BindParameter, ...] = ()


@dataclass(frozen=True)
class SortOption:
    """
    Literal ORDER BY body. ``filtered_clause`` replaces ``clause`` while the
    filter named by ``when_filter`` is active.
    """
    clause: str
    when_filter: Optional[str] = None
    filtered_clause: Optional[str] = None


FixedPredicate = Union[Predicate, Callable[[], Predicate]]


@dataclass(frozen=True)
class ListingSpec:
    name: str
    from_sql: str
    columns: str
    count_key: str
    fields: Sequence[FilterField]
    sorts: Mapping[str, SortOption]
    default_sort: str
    project: Callable[[Mapping[str, Any]], Dict[str, Any]]
    fixed: Sequence[FixedPredicate] = ()


# ---------------------------------------------------------------------------
# Pagination + results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Page:
    number: int
    per_page: int

    @property
    def limit(self) -> int:
        return self.per_page

    @property
    def offset(self) -> int:
        return (self.number - 1) * self.per_page

    @classmethod
    def from_raw(cls, page: Any = None, per_page: Any = None) -> "Page":
        size = to_int(_first(per_page), settings.listing_default_per_page)
        size = min(settings.listing_max_per_page, max(settings.listing_min_per_page, size))
        # OFFSET must fit in a signed 64-bit integer
        requested = to_number(_first(page), 1)
        number = max(min(requested, INT64_MAX // size), 1)
        return cls(number=int(number), per_page=size)


@dataclass
class ListingResult:
    items: List[Dict[str, Any]]
    total: int
    page: Page
    filters: Dict[str, Any]
    sort: str

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.page.per_page) if self.total else 0

    @property
    def has_prev(self) -> bool:
        return self.page.number > 1

    @property
    def has_next(self) -> bool:
        return self.page.number < self.pages


@dataclass(frozen=True)
class ListingStatements:
    """The paired queries for one request; both share ``where_sql`` and ``params``."""
    where_sql: str
    params: Dict[str, Any]
    binds: Tuple[BindParameter, ...]
    data_sql: str
    count_sql: str

    def data(self) -> TextClause:
        return text(self.data_sql).bindparams(*self.binds)

    def count(self) -> TextClause:
        return text(self.count_sql).bindparams(*self.binds)


def _first(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def query_to_raw(query_params: Any) -> Dict[str, Any]:
    """
    Flatten a Starlette ``QueryParams`` (or any multi-dict) into
    ``{key: value}``, keeping repeated keys as lists. ``amenities[]`` style
    keys are folded into ``amenities``.
    """
    raw: Dict[str, Any] = {}
    keys = query_params.keys() if hasattr(query_params, "keys") else []
    for key in keys:
        values = query_params.getlist(key) if hasattr(query_params, "getlist") else [query_params[key]]
        name = key[:-2] if key.endswith("[]") else key
        existing = raw.get(name)
        if existing is not None:
            values = (existing if isinstance(existing, list) else [existing]) + list(values)
        raw[name] = values if len(values) > 1 else values[0]
    return raw


# ---------------------------------------------------------------------------
# The builder
# ---------------------------------------------------------------------------

class ListingQuery:
    """Filter / sort / paginate engine for one ``ListingSpec``."""

    def __init__(self, db: Session, spec: ListingSpec):
        self.db = db
        self.spec = spec

    # -- 1. filters ---------------------------------------------------------

    def normalize(self, raw: Mapping[str, Any]) -> Dict[str, Any]:
        """Typed filter record; every declared field present, empties as defaults."""
        filters: Dict[str, Any] = {}
        for f in self.spec.fields:
            value = raw.get(f.name)
            if value is None and f.kind == FieldKind.LIST:
                value = raw.get(f"{f.name}[]")
            filters[f.name] = f.empty() if value is None else f.coerce(value)
            if filters[f.name] is None or filters[f.name] == "":
                filters[f.name] = f.empty()

        sort = clean_text(_first(raw.get("sort")), 40)
        filters["sort"] = sort if sort in self.spec.sorts else self.spec.default_sort
        return filters

    # -- 2. predicates ------------------------------------------------------

    def build_where(self, filters: Mapping[str, Any]) -> Tuple[List[str], Dict[str, Any], List[BindParameter]]:
        """
        Fixed predicates first, then one fragment per active filter in
        declaration order. Each fragment binds only its own parameter(s).
        """
        clauses: List[str] = []
        params: Dict[str, Any] = {}
        binds: List[BindParameter] = []

        for fixed in self.spec.fixed:
            predicate = fixed() if callable(fixed) else fixed
            clauses.append(predicate.sql)
            params.update(predicate.params)
            binds.extend(predicate.binds)

        for f in self.spec.fields:
            if not f.predicate:
                continue
            value = filters.get(f.name)
            if value is None or value == "" or value == []:
                continue
            params[f.name] = f.transform(value) if f.transform else value
            clauses.append(f.predicate)
            if f.kind == FieldKind.LIST:
                binds.append(bindparam(f.name, expanding=True))

        return clauses, params, binds

    # -- 3. sort ------------------------------------------------------------

    def order_by(self, filters: Mapping[str, Any]) -> str:
        option = self.spec.sorts.get(filters.get("sort"))
        if option is None:
            option = self.spec.sorts[self.spec.default_sort]
        if option.when_filter and filters.get(option.when_filter):
            return option.filtered_clause or option.clause
        return option.clause

    # -- 4. SQL -------------------------------------------------------------

    def statements(self, filters: Mapping[str, Any], page: Page) -> ListingStatements:
        clauses, params, binds = self.build_where(filters)
        where_sql = ("WHERE " + " AND ".join(clauses)) if clauses else ""
        spec = self.spec

        data_sql = (
            f"SELECT {spec.columns} FROM {spec.from_sql} {where_sql} "
            f"ORDER BY {self.order_by(filters)} "
            f"LIMIT :_limit OFFSET :_offset"
        )
        count_sql = f"SELECT COUNT(DISTINCT {spec.count_key}) FROM {spec.from_sql} {where_sql}"

        return ListingStatements(
            where_sql=where_sql,
            params=params,
            binds=tuple(binds),
            data_sql=data_sql,
            count_sql=count_sql,
        )

    def fetch(self, raw: Mapping[str, Any]) -> ListingResult:
        filters = self.normalize(raw)
        page = Page.from_raw(raw.get("page"), raw.get("per_page", raw.get("perPage")))
        stmts = self.statements(filters, page)

        try:
            rows = self.db.execute(
                stmts.data(),
                {**stmts.params, "_limit": page.limit, "_offset": page.offset},
            ).mappings().all()
        except SQLAlchemyError as e:
            logger.warning(f"{self.spec.name} listing query failed: {e}")
            self.db.rollback()
            return ListingResult(items=[], total=0, page=page, filters=filters, sort=filters["sort"])

        try:
            total = int(self.db.execute(stmts.count(), dict(stmts.params)).scalar() or 0)
        except SQLAlchemyError as e:
            logger.warning(f"{self.spec.name} count query failed, using page size: {e}")
            self.db.rollback()
            total = len(rows)

        items = [self.spec.project(row) for row in rows]
        logger.debug(f"{self.spec.name}: {len(items)} rows of {total} (page {page.number})")
        return ListingResult(items=items, total=total, page=page, filters=filters, sort=filters["sort"])
