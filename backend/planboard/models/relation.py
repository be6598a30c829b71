"""Entity relation model: typed, optionally bidirectional edges."""

from sqlalchemy import Boolean, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from planboard.db.base import BaseModel, JSONType
from planboard.types import EntityKind, EntityRef


class EntityRelation(BaseModel):
    """A relation between two entities, stored once from source to target.

    Bidirectional edges are visible from the target side by querying
    ``target_* = entity AND is_bidirectional``; no mirror row is written.
    """

    __tablename__ = "entity_relations"
    __table_args__ = (
        Index("er_source_idx", "source_type", "source_id"),
        Index("er_target_idx", "target_type", "target_id"),
        Index("er_relation_type_idx", "relation_type"),
        Index("er_created_by_idx", "created_by"),
    )

    # Source entity (owns the relation)
    source_type: Mapped[str] = mapped_column(String(20), nullable=False)
    source_id: Mapped[int] = mapped_column(Integer, nullable=False)

    # Target entity
    target_type: Mapped[str] = mapped_column(String(20), nullable=False)
    target_id: Mapped[int] = mapped_column(Integer, nullable=False)

    relation_type: Mapped[str] = mapped_column(String(50), nullable=False)
    is_bidirectional: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    reverse_relation_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    created_by: Mapped[int] = mapped_column(Integer, nullable=False)

    # label, color, notes, strength (1-10)
    extra_data: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    @property
    def source(self) -> EntityRef:
        return EntityRef(EntityKind(self.source_type), self.source_id)

    @property
    def target(self) -> EntityRef:
        return EntityRef(EntityKind(self.target_type), self.target_id)

    def __repr__(self) -> str:
        return (
            f"<EntityRelation {self.source_type}={self.source_id} "
            f"{self.relation_type} {self.target_type}={self.target_id}>"
        )
