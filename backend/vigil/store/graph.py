from contextlib import contextmanager
from typing import Any, Iterator, NamedTuple, Optional, Sequence

import structlog
from sqlalchemy import and_, exists, func, or_, true
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import aliased
from sqlmodel import Session, SQLModel, select

from vigil.core.errors import Internal
from vigil.models import Applicant, Edge, LovedOne, Reminder, TimelineEvent, User
from vigil.store.filters import Eq, Filter, Join, Lacks, OrderBy, Range

logger = structlog.get_logger(__name__)

LOVED_ONE = "LovedOne"
APPLICANT = "Applicant"
USER = "User"
TIMELINE_EVENT = "TimelineEvent"
REMINDER = "Reminder"

HAS_TIMELINE_EVENT = "HAS_TIMELINE_EVENT"
HAS_REMINDER = "HAS_REMINDER"
ASSIGNED_TO = "ASSIGNED_TO"

# label -> (table, key attribute)
NODE_LABELS: dict[str, tuple[type[SQLModel], str]] = {
    LOVED_ONE: (LovedOne, "id"),
    APPLICANT: (Applicant, "id"),
    USER: (User, "email"),
    TIMELINE_EVENT: (TimelineEvent, "event_id"),
    REMINDER: (Reminder, "reminder_id"),
}


class NodeRef(NamedTuple):
    label: str
    key: str
    value: str


class Match(NamedTuple):
    node: Any
    related: Any = None


def ref(label: str, value: str) -> NodeRef:
    return NodeRef(label, NODE_LABELS[label][1], value)


class GraphStore:
    """
    Node/relationship view over the SQL tables.

    Writes are flushed, not committed: callers group them with transaction().
    Any SQLAlchemy failure surfaces as Internal with the driver message in
    `details`.
    """

    def __init__(self, session: Session):
        self.session = session

    @contextmanager
    def transaction(self) -> Iterator["GraphStore"]:
        try:
            yield self
            with self._guard("commit", "*"):
                self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    @contextmanager
    def savepoint(self) -> Iterator["GraphStore"]:
        with self._guard("savepoint", "*"):
            nested = self.session.begin_nested()
        try:
            yield self
        except Exception:
            nested.rollback()
            raise
        with self._guard("release", "*"):
            nested.commit()

    @contextmanager
    def _guard(self, op: str, label: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            logger.error("store_operation_failed", op=op, label=label, error=str(e))
            raise Internal("Store operation failed", details=str(e)) from e

    def _model(self, label: str) -> type[SQLModel]:
        try:
            return NODE_LABELS[label][0]
        except KeyError:
            raise Internal(f"Unknown node label: {label}")

    def _column(self, model: type[SQLModel], field: str):
        col = getattr(model, field, None)
        if col is None:
            raise Internal(f"Unknown field {field} on {model.__name__}")
        return col

    def find_one(self, label: str, key: str, value: Any) -> Optional[Any]:
        model = self._model(label)
        with self._guard("find_one", label):
            return self.session.exec(select(model).where(self._column(model, key) == value)).first()

    def create(self, label: str, fields: dict[str, Any]) -> Any:
        node = self._model(label)(**fields)
        with self._guard("create", label):
            self.session.add(node)
            self.session.flush()
        return node

    def update_fields(self, label: str, key: str, value: Any, fields: dict[str, Any]) -> Optional[Any]:
        model = self._model(label)
        node = self.find_one(label, key, value)
        if node is None:
            return None
        for name, v in fields.items():
            self._column(model, name)
            setattr(node, name, v)
        with self._guard("update_fields", label):
            self.session.add(node)
            self.session.flush()
        return node

    def delete_node(self, label: str, key: str, value: Any, detach: bool = True) -> bool:
        node = self.find_one(label, key, value)
        if node is None:
            return False

        edges = self._edges_touching(label, str(value))
        if edges and not detach:
            raise Internal(f"{label} {value} still has relationships")

        with self._guard("delete_node", label):
            for e in edges:
                self.session.delete(e)
            self.session.delete(node)
            self.session.flush()
        return True

    def create_edge(self, from_ref: NodeRef, edge_type: str, to_ref: NodeRef) -> bool:
        """Link two nodes. Returns False, writing nothing, if either end does not exist."""
        if self.find_one(*from_ref) is None or self.find_one(*to_ref) is None:
            return False

        edge = Edge(
            from_label=from_ref.label,
            from_id=str(from_ref.value),
            edge_type=edge_type,
            to_label=to_ref.label,
            to_id=str(to_ref.value),
        )
        with self._guard("create_edge", edge_type):
            self.session.add(edge)
            self.session.flush()
        return True

    def delete_edge(
        self,
        from_ref: NodeRef,
        edge_type: str,
        to_ref: Optional[NodeRef] = None,
        to_label: Optional[str] = None,
    ) -> int:
        """Remove edges of `edge_type` leaving `from_ref`; to_ref=None means any target."""
        q = select(Edge).where(
            Edge.from_label == from_ref.label,
            Edge.from_id == str(from_ref.value),
            Edge.edge_type == edge_type,
        )
        if to_ref is not None:
            q = q.where(Edge.to_label == to_ref.label, Edge.to_id == str(to_ref.value))
        elif to_label is not None:
            q = q.where(Edge.to_label == to_label)

        with self._guard("delete_edge", edge_type):
            edges = self.session.exec(q).all()
            for e in edges:
                self.session.delete(e)
            self.session.flush()
        return len(edges)

    def _edges_touching(self, label: str, value: str) -> list[Edge]:
        q = select(Edge).where(
            or_(
                and_(Edge.from_label == label, Edge.from_id == value),
                and_(Edge.to_label == label, Edge.to_id == value),
            )
        )
        with self._guard("edges", label):
            return list(self.session.exec(q).all())

    def query(
        self,
        label: str,
        filters: Sequence[Filter] = (),
        ordering: Sequence[OrderBy] = (),
        limit: Optional[int] = None,
        join: Optional[Join] = None,
    ) -> list[Match]:
        model = self._model(label)
        related = None

        if join is None:
            q = select(model)
        else:
            related = self._model(join.label)
            edge = aliased(Edge)
            node_key = self._column(model, NODE_LABELS[label][1])
            related_key = self._column(related, NODE_LABELS[join.label][1])
            if join.inbound:
                on_node = and_(edge.to_label == label, edge.to_id == node_key)
                on_related = and_(edge.from_label == join.label, edge.from_id == related_key)
            else:
                on_node = and_(edge.from_label == label, edge.from_id == node_key)
                on_related = and_(edge.to_label == join.label, edge.to_id == related_key)
            q = (
                select(model, related)
                .join(edge, and_(on_node, edge.edge_type == join.edge_type))
                .join(related, on_related)
            )

        for f in filters:
            q = q.where(self._compile(f, label, model, related))

        for o in ordering:
            col = self._column(self._target(o.on, model, related), o.field)
            q = q.order_by(col.desc() if o.descending else col.asc())

        if limit is not None:
            q = q.limit(limit)

        with self._guard("query", label):
            rows = self.session.exec(q).all()

        if join is None:
            return [Match(node) for node in rows]
        return [Match(node, rel) for node, rel in rows]

    def count(self, label: str, filters: Sequence[Filter] = ()) -> int:
        model = self._model(label)
        q = select(func.count()).select_from(model)
        for f in filters:
            q = q.where(self._compile(f, label, model, None))

        with self._guard("count", label):
            return self.session.exec(q).one()

    def count_by(self, label: str, field: str, filters: Sequence[Filter] = ()) -> dict[Any, int]:
        """Node counts grouped by one field's value (None included)."""
        model = self._model(label)
        col = self._column(model, field)
        q = select(col, func.count()).group_by(col)
        for f in filters:
            q = q.where(self._compile(f, label, model, None))

        with self._guard("count_by", label):
            rows = self.session.exec(q).all()
        return {value: n for value, n in rows}

    def _target(self, on: str, model, related):
        if on == "related":
            if related is None:
                raise Internal("Filter on related node requires a join")
            return related
        return model

    def _compile(self, f: Filter, label: str, model, related):
        if isinstance(f, Lacks):
            key = self._column(model, NODE_LABELS[label][1])
            return ~exists().where(
                Edge.from_label == label,
                Edge.from_id == key,
                Edge.edge_type == f.edge_type,
            )

        col = self._column(self._target(f.on, model, related), f.field)
        if isinstance(f, Eq):
            return col.is_(None) if f.value is None else col == f.value
        if isinstance(f, Range):
            clauses = []
            if f.gte is not None:
                clauses.append(col >= f.gte)
            if f.lte is not None:
                clauses.append(col <= f.lte)
            if f.lt is not None:
                clauses.append(col < f.lt)
            return and_(*clauses) if clauses else true()
        raise Internal(f"Unsupported filter: {f!r}")
