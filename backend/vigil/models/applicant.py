import uuid

from sqlmodel import Field, SQLModel


class Applicant(SQLModel, table=True):
    __tablename__ = "applicants"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True, index=True)
    name: str = Field(index=True)
