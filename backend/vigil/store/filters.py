"""
Filter, ordering and join specifications understood by GraphStore.query().

Each filter kind is its own frozen dataclass; the store compiles them into SQL
expressions. `on="related"` targets the node reached through the query's join
instead of the queried node.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal, Optional, Union

Target = Literal["node", "related"]


@dataclass(frozen=True)
class Eq:
    field: str
    value: Any
    on: Target = "node"


@dataclass(frozen=True)
class Range:
    field: str
    gte: Optional[datetime] = None
    lte: Optional[datetime] = None
    lt: Optional[datetime] = None
    on: Target = "node"


@dataclass(frozen=True)
class Lacks:
    """Node has no outgoing edge of `edge_type`."""

    edge_type: str


Filter = Union[Eq, Range, Lacks]


@dataclass(frozen=True)
class OrderBy:
    field: str
    descending: bool = False
    on: Target = "node"


@dataclass(frozen=True)
class Join:
    """Follow `edge_type` to a node labelled `label`.

    inbound=True means the edge points from the related node to the queried one,
    e.g. (LovedOne)-[:HAS_TIMELINE_EVENT]->(TimelineEvent) when querying events.
    """

    edge_type: str
    label: str
    inbound: bool = True
