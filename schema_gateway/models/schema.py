"""
Durable storage layout for registered JSON schemas.

One row per schema. The primary key is the registry-assigned schema ID,
never generated by the database.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, Text

from schema_gateway.models.database import Base


def _now():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SchemaRow(Base):
    __tablename__ = "schemas"

    schema_id = Column(Integer, primary_key=True, autoincrement=False)
    schema_name = Column(String(255), nullable=False)
    json_schema = Column(Text, nullable=False, comment="Serialized JSON schema body")
    description = Column(Text, nullable=True)
    chg_dt = Column(DateTime, default=_now, onupdate=_now, nullable=False, comment="Last change")
