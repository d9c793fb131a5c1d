from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from ideavault.utils import new_id, utcnow


class Base(DeclarativeBase):
    pass


class Idea(Base):
    __tablename__ = "ideas"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    original_idea: Mapped[str] = mapped_column(Text, nullable=False)
    enhanced_idea: Mapped[str] = mapped_column(Text, nullable=False)
    user_flow_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)

    scores: Mapped[list[Score]] = relationship(
        "Score", back_populates="idea", order_by=lambda: [Score.created_at, Score.position],
    )
    improvements: Mapped[list[Improvement]] = relationship(
        "Improvement", back_populates="idea", order_by=lambda: [Improvement.created_at, Improvement.position],
    )
    features: Mapped[list[Feature]] = relationship(
        "Feature", back_populates="idea", order_by=lambda: [Feature.created_at, Feature.position],
    )
    tech_stack: Mapped[list[TechStackItem]] = relationship(
        "TechStackItem", back_populates="idea", order_by=lambda: [TechStackItem.created_at, TechStackItem.position],
    )
    kanban_tickets: Mapped[list[KanbanTicket]] = relationship(
        "KanbanTicket", back_populates="idea", order_by=lambda: [KanbanTicket.created_at, KanbanTicket.position],
    )


class _ChildMixin:
    """Columns shared by every row that hangs off an Idea.

    ``position`` is the row's index within the batch that created it, so rows
    sharing a batch timestamp still come back in submitted order.
    """

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    idea_id: Mapped[str] = mapped_column(String(32), ForeignKey("ideas.id"), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class Score(_ChildMixin, Base):
    __tablename__ = "scores"

    dimension: Mapped[str] = mapped_column(String(200), nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)  # 1..10
    justification: Mapped[str] = mapped_column(Text, nullable=False)

    idea: Mapped[Idea] = relationship("Idea", back_populates="scores")


class Improvement(_ChildMixin, Base):
    __tablename__ = "improvements"

    dimension: Mapped[str] = mapped_column(String(200), nullable=False)
    suggestion: Mapped[str] = mapped_column(Text, nullable=False)

    idea: Mapped[Idea] = relationship("Idea", back_populates="improvements")


class Feature(_ChildMixin, Base):
    __tablename__ = "features"

    name: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[str] = mapped_column(String(20), nullable=False)  # must-have | should-have | nice-to-have

    idea: Mapped[Idea] = relationship("Idea", back_populates="features")


class TechStackItem(_ChildMixin, Base):
    __tablename__ = "tech_stack_items"

    category: Mapped[str] = mapped_column(String(100), nullable=False)
    technology: Mapped[str] = mapped_column(String(200), nullable=False)
    justification: Mapped[str] = mapped_column(Text, nullable=False)

    idea: Mapped[Idea] = relationship("Idea", back_populates="tech_stack")


class KanbanTicket(_ChildMixin, Base):
    __tablename__ = "kanban_tickets"

    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="backlog")
    effort: Mapped[str | None] = mapped_column(String(100), nullable=True)

    idea: Mapped[Idea] = relationship("Idea", back_populates="kanban_tickets")
