"""Project hierarchy models: projects, blocks, sections, tasks and subtasks.

The relation engine only reads these rows; they are written by the CRUD
layer of the surrounding product.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from planboard.db.base import BaseModel, JSONType


class Project(BaseModel):
    """Top-level project."""

    __tablename__ = "projects"

    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    icon: Mapped[str | None] = mapped_column(String(64), nullable=True, default="folder")
    color: Mapped[str | None] = mapped_column(String(32), nullable=True, default="#f59e0b")
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default="active"
    )  # active, archived, completed
    start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    target_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    extra_data: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    blocks: Mapped[list["Block"]] = relationship("Block", back_populates="project")

    def __repr__(self) -> str:
        return f"<Project id={self.id} {self.name}>"


class Block(BaseModel):
    """Major phase of a project roadmap."""

    __tablename__ = "blocks"

    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration: Mapped[str | None] = mapped_column(String(64), nullable=True)
    deadline: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    extra_data: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    project: Mapped["Project"] = relationship("Project", back_populates="blocks")
    sections: Mapped[list["Section"]] = relationship("Section", back_populates="block")

    def __repr__(self) -> str:
        return f"<Block id={self.id} {self.title}>"


class Section(BaseModel):
    """Grouping of tasks within a block."""

    __tablename__ = "sections"

    block_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("blocks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    extra_data: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    block: Mapped["Block"] = relationship("Block", back_populates="sections")
    tasks: Mapped[list["Task"]] = relationship("Task", back_populates="section")

    def __repr__(self) -> str:
        return f"<Section id={self.id} {self.title}>"


class Task(BaseModel):
    """Individual work item."""

    __tablename__ = "tasks"

    section_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("sections.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default="not_started"
    )  # not_started, in_progress, completed
    priority: Mapped[str | None] = mapped_column(String(20), nullable=True)  # low, medium, high, critical
    deadline: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    estimated_hours: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    extra_data: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    section: Mapped["Section"] = relationship("Section", back_populates="tasks")
    subtasks: Mapped[list["Subtask"]] = relationship("Subtask", back_populates="task")

    def __repr__(self) -> str:
        return f"<Task id={self.id} {self.title}>"


class Subtask(BaseModel):
    """Checklist item within a task."""

    __tablename__ = "subtasks"

    task_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="not_started")
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    task: Mapped["Task"] = relationship("Task", back_populates="subtasks")

    def __repr__(self) -> str:
        return f"<Subtask id={self.id} {self.title}>"
