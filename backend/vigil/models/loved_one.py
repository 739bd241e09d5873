import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


class LovedOne(SQLModel, table=True):
    __tablename__ = "loved_ones"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True, index=True)
    name: str = Field(index=True)
    community: Optional[str] = Field(default=None, index=True)
    status: Optional[str] = Field(default=None, index=True)  # Missing/Found/...

    date_of_incident: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
