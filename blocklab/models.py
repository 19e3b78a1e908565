"""
Data models — FieldDefinition, BlockDefinition, BlockFile
Pydantic v2 (définitions JSON) + SQLAlchemy (SQLite) pour les posts et users
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

import sqlalchemy as sa
from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


POST_TYPE = "block_lab"


# ── ENUMS ──────────────────────────────────────────────────────────────

class PostStatus(str, Enum):
    PUBLISH = "publish"
    DRAFT   = "draft"


# ── DÉFINITIONS DE BLOCS ───────────────────────────────────────────────

class FieldDefinition(BaseModel):
    """Un champ d'un bloc. Les clés inconnues (label, help, order…) sont conservées."""
    model_config = ConfigDict(frozen=True, extra="allow")

    name:     Optional[str] = None
    type:     Optional[str] = None
    default:  Any           = None
    source:   Optional[str] = None
    meta:     Optional[str] = None
    selector: Optional[str] = None
    query:    Optional[Dict[str, Any]] = None
    control:  Optional[str] = None


class BlockDefinition(BaseModel):
    """Un bloc : nom d'affichage (sert aussi au lookup de template) + champs."""
    model_config = ConfigDict(frozen=True, extra="allow")

    name:   str
    fields: Dict[str, FieldDefinition] = Field(default_factory=dict)

    @field_validator("fields", mode="before")
    @classmethod
    def empty_list_as_dict(cls, value):
        # un tableau PHP vide est encodé en []
        if value == [] or value is None:
            return {}
        return value

    def to_json_dict(self) -> Dict[str, Any]:
        """Sérialise uniquement les clés présentes dans le document source."""
        return self.model_dump(mode="json", exclude_unset=True)


class BlockFile(RootModel[Dict[str, BlockDefinition]]):
    """Document JSON complet : block_key → BlockDefinition."""


# ── API ────────────────────────────────────────────────────────────────

class BlockPostInput(BaseModel):
    slug:    str
    content: str
    status:  PostStatus = PostStatus.PUBLISH


# ── ORM ────────────────────────────────────────────────────────────────

class Base(DeclarativeBase):
    pass


class BlockPostDB(Base):
    __tablename__ = "block_posts"
    post_id:      Mapped[int]      = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    slug:         Mapped[str]      = mapped_column(sa.String, nullable=False, index=True)
    post_type:    Mapped[str]      = mapped_column(sa.String, default=POST_TYPE)
    post_status:  Mapped[str]      = mapped_column(sa.String, default=PostStatus.PUBLISH.value)
    post_content: Mapped[str]      = mapped_column(sa.Text, default="{}")
    created_at:   Mapped[datetime] = mapped_column(sa.DateTime, default=datetime.utcnow)
    updated_at:   Mapped[datetime] = mapped_column(sa.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class UserDB(Base):
    __tablename__ = "users"
    user_id:      Mapped[int]           = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    login:        Mapped[str]           = mapped_column(sa.String, unique=True, nullable=False)
    display_name: Mapped[str]           = mapped_column(sa.String, default="")
    email:        Mapped[Optional[str]] = mapped_column(sa.String, nullable=True)
