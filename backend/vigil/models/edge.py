import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


class Edge(SQLModel, table=True):
    """Directed relationship between two nodes, addressed by label + key value."""

    __tablename__ = "edges"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True, index=True)

    from_label: str = Field(index=True)
    from_id: str = Field(index=True)
    edge_type: str = Field(index=True)  # HAS_TIMELINE_EVENT/HAS_REMINDER/ASSIGNED_TO
    to_label: str = Field(index=True)
    to_id: str = Field(index=True)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_type=DateTime(timezone=True),
    )
