"""SQLAlchemy table definitions."""

from sqlalchemy import JSON, Column, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class RecipeRow(Base):
    __tablename__ = "recipes"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Case-sensitive exact match is the dedupe key
    title = Column(String, unique=True, index=True, nullable=False)
    ingredients = Column(JSON, nullable=False, default=list)
    instructions = Column(Text, nullable=False, default="")
