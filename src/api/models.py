# src/api/models.py - v1
"""API-level request and view models."""

from __future__ import annotations

from pydantic import BaseModel, Field

from contentflow.core.models import PersonaProfile, StepName, WorkItem, WorkItemStatus
from contentflow.pipeline import state_machine


class StepRequest(BaseModel):
    """Body of POST /work-items/{id}/steps/{step}."""

    block_index: int | None = Field(default=None, ge=0)
    model: str | None = None


class WriteAllRequest(BaseModel):
    model: str | None = None


class CreateWorkItemRequest(BaseModel):
    keyword: str = Field(min_length=1)
    title: str | None = None
    target_id: str | None = None
    persona: PersonaProfile | None = None


class WorkItemView(BaseModel):
    """Work item plus its derived workflow position."""

    item: WorkItem
    label: str
    progress: int
    next_step: StepName | None = None
    available_steps: list[StepName] = Field(default_factory=list)

    @classmethod
    def of(cls, item: WorkItem) -> WorkItemView:
        status = WorkItemStatus(item.status)
        return cls(
            item=item,
            label=state_machine.label(status),
            progress=state_machine.progress(status),
            next_step=state_machine.next_step(status),
            available_steps=state_machine.available_steps(status),
        )
