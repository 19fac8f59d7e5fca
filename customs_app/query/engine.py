# customs_app/query/engine.py
"""Query executor: applies a compiled rule tree with sorting, pagination and hydration."""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.sql.elements import ColumnElement

from customs_app.core.config import EXPORT_BATCH_SIZE, QUERY_DEFAULT_PER_PAGE, QUERY_MAX_PER_PAGE
from customs_app.customs.models import Header
from customs_app.exports.sections import (
    SUMMARY_RELATIONS,
    FlatLayout,
    Section,
    relations_for,
    summary_row,
)
from customs_app.query.builder import PredicateCompiler
from customs_app.query.exceptions import DataAccessError, EmptyQueryRejected, RecordNotFoundError
from customs_app.query.rules import Group, is_empty, parse_rule_tree

logger = logging.getLogger(__name__)

SORTABLE_COLUMNS = {
    "nomordaftar": Header.nomordaftar,
    "tanggaldaftar": Header.tanggaldaftar,
    "kodejalur": Header.kodejalur,
}
DEFAULT_SORT_BY = "nomordaftar"
DEFAULT_SORT_DIRECTION = "asc"

DETAIL_RELATIONS = ("data", "entities", "carriers", "goods", "packaging", "documents", "containers", "duties")


@dataclass(frozen=True)
class SortSpec:
    column: str = DEFAULT_SORT_BY
    direction: str = DEFAULT_SORT_DIRECTION

    def order_by(self) -> list:
        column = SORTABLE_COLUMNS[self.column]
        ordered = column.desc() if self.direction == "desc" else column.asc()
        # idheader keeps ordering total so pages never overlap
        return [ordered, Header.idheader.asc()]


def resolve_sort(sort_by: Optional[str] = None, sort_direction: Optional[str] = None) -> SortSpec:
    """Restrict sorting to header columns; anything else falls back to nomordaftar asc."""
    column = (sort_by or DEFAULT_SORT_BY).strip()
    direction = (sort_direction or DEFAULT_SORT_DIRECTION).strip().lower()
    if column not in SORTABLE_COLUMNS or direction not in ("asc", "desc"):
        logger.info(
            "Unsupported sort %s %s requested, using %s %s",
            sort_by, sort_direction, DEFAULT_SORT_BY, DEFAULT_SORT_DIRECTION,
        )
        return SortSpec()
    return SortSpec(column, direction)


def clamp_per_page(per_page: Optional[int], maximum: int = QUERY_MAX_PER_PAGE) -> int:
    if per_page is None:
        return min(QUERY_DEFAULT_PER_PAGE, maximum)
    return max(1, min(int(per_page), maximum))


@dataclass
class QueryPage:
    """One page of results in the paginator shape the UI expects."""

    data: List[Dict[str, Any]]
    current_page: int
    per_page: int
    total: int
    columns: Optional[List[str]] = None
    sort: SortSpec = field(default_factory=SortSpec)

    @property
    def last_page(self) -> int:
        return max(1, math.ceil(self.total / self.per_page))

    @property
    def from_(self) -> Optional[int]:
        if not self.data:
            return None
        return (self.current_page - 1) * self.per_page + 1

    @property
    def to(self) -> Optional[int]:
        if not self.data:
            return None
        return min(self.current_page * self.per_page, self.total)

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "data": self.data,
            "current_page": self.current_page,
            "last_page": self.last_page,
            "per_page": self.per_page,
            "total": self.total,
            "from": self.from_,
            "to": self.to,
            "sort_by": self.sort.column,
            "sort_direction": self.sort.direction,
        }
        if self.columns is not None:
            payload["columns"] = self.columns
        return payload


class QueryExecutor:
    """Runs rule trees against the customs warehouse."""

    def __init__(self, session: Session, compiler: Optional[PredicateCompiler] = None):
        self.session = session
        self.compiler = compiler or PredicateCompiler()

    # ===== PREPARATION =====

    def prepare(self, rules: Any) -> ColumnElement:
        """Parse, reject empty trees and compile. Nothing touches the database here."""
        tree = rules if isinstance(rules, Group) else parse_rule_tree(rules)
        if is_empty(tree):
            raise EmptyQueryRejected()
        return self.compiler.compile(tree)

    # ===== EXECUTION =====

    def execute(
        self,
        rules: Any,
        page: int = 1,
        per_page: Optional[int] = None,
        sort_by: Optional[str] = None,
        sort_direction: Optional[str] = None,
        sections: Optional[Sequence[Section]] = None,
    ) -> QueryPage:
        """Return one page of declarations matching the rule tree."""
        predicate = self.prepare(rules)
        sort = resolve_sort(sort_by, sort_direction)
        per_page = clamp_per_page(per_page)
        page = max(1, int(page or 1))
        layout = FlatLayout(sections) if sections else None
        columns = layout.headers if layout else None

        total = self._run(lambda: self.count(predicate))
        offset = (page - 1) * per_page
        # offsets at or past the total never reach the database
        if offset >= total:
            return QueryPage([], page, per_page, total, columns=columns, sort=sort)

        ids = self._run(lambda: self.page_ids(predicate, sort, offset, per_page))
        headers = self._run(lambda: self.load_headers(ids, self._relations(sections)))

        if layout:
            data = [record for header in headers for record in layout.records(header)]
            return QueryPage(data, page, per_page, total, columns=columns, sort=sort)

        return QueryPage([summary_row(header) for header in headers], page, per_page, total, sort=sort)

    def iter_header_batches(
        self,
        rules: Any,
        sort_by: Optional[str] = None,
        sort_direction: Optional[str] = None,
        batch_size: int = EXPORT_BATCH_SIZE,
        sections: Optional[Sequence[Section]] = None,
    ) -> Iterator[List[Header]]:
        """
        Yield hydrated declarations in batches of at most ``batch_size``.

        The rule tree is validated immediately, before any SQL is issued.
        Each batch is loaded with its own bounded queries. The sequence is
        finite and a fresh call starts again from the first row.
        """
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        predicate = self.prepare(rules)
        sort = resolve_sort(sort_by, sort_direction)
        relations = self._relations(sections)
        return self._batches(predicate, sort, batch_size, relations)

    def _batches(self, predicate, sort: SortSpec, batch_size: int, relations) -> Iterator[List[Header]]:
        offset = 0
        while True:
            ids = self._run(lambda: self.page_ids(predicate, sort, offset, batch_size))
            if not ids:
                return
            yield self._run(lambda: self.load_headers(ids, relations))
            if len(ids) < batch_size:
                return
            offset += batch_size

    def detail(self, idheader: int) -> Header:
        """Declaration with every child relation loaded."""
        headers = self._run(lambda: self.load_headers([idheader], DETAIL_RELATIONS))
        if not headers:
            raise RecordNotFoundError(idheader)
        return headers[0]

    # ===== QUERIES =====

    def count(self, predicate: ColumnElement) -> int:
        query = select(func.count()).select_from(Header).where(predicate)
        return self.session.execute(query).scalar() or 0

    def page_ids(self, predicate: ColumnElement, sort: SortSpec, offset: int, limit: int) -> List[int]:
        query = (
            select(Header.idheader)
            .where(predicate)
            .order_by(*sort.order_by())
            .offset(offset)
            .limit(limit)
        )
        return list(self.session.execute(query).scalars().all())

    def load_headers(self, ids: Sequence[int], relations: Iterable[str]) -> List[Header]:
        """Load the given declarations and only their child rows, keeping id order."""
        if not ids:
            return []
        query = select(Header).where(Header.idheader.in_(list(ids)))
        for relation in relations:
            query = query.options(selectinload(getattr(Header, relation)))
        by_id = {header.idheader: header for header in self.session.execute(query).scalars().all()}
        return [by_id[idheader] for idheader in ids if idheader in by_id]

    # ===== HELPERS =====

    @staticmethod
    def _relations(sections: Optional[Sequence[Section]]) -> tuple:
        return relations_for(sections) if sections else SUMMARY_RELATIONS

    def _run(self, operation: Callable[[], Any]) -> Any:
        try:
            return operation()
        except SQLAlchemyError as exc:
            logger.exception("Customs query failed: %s", exc)
            raise DataAccessError() from exc
