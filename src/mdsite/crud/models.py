"""Database table definitions for the build manifest"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Column, DateTime, String, Text
from sqlmodel import Field, SQLModel


class BuildRecord(SQLModel, table=True):
    """Last published state of one source document"""
    __tablename__ = "build_records"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    path: str = Field(..., sa_column=Column(Text, nullable=False, unique=True))
    output_path: str = Field(..., sa_column=Column(Text, nullable=False))
    source_hash: str = Field(..., sa_column=Column(String(64), nullable=False))
    html_hash: str = Field(..., sa_column=Column(String(64), nullable=False))
    built_at: datetime = Field(default_factory=datetime.now, sa_column=Column(DateTime(timezone=False), nullable=False))
