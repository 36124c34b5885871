# src/pipeline/state_machine.py - v1
"""Work item status machine.

Pure functions over WorkItemStatus: which step comes next, which steps are
legal, where a rollback lands, display labels and progress percentage.
No I/O; the orchestrator is the only caller that acts on the answers.
"""

from __future__ import annotations

from contentflow.core.errors import IllegalTransitionError
from contentflow.core.models import StepName, WorkItem, WorkItemStatus

S = WorkItemStatus

FORWARD_SEQUENCE: tuple[WorkItemStatus, ...] = (
    S.DRAFT,
    S.ANALYZING,
    S.PLANNING,
    S.WRITING,
    S.MEDIA,
    S.SEO_CHECK,
    S.REVIEWING,
    S.PUBLISHING,
    S.PUBLISHED,
)

_NEXT_STEP: dict[WorkItemStatus, StepName | None] = {
    S.DRAFT: StepName.ANALYZE,
    S.ANALYZING: StepName.PLAN,
    S.PLANNING: StepName.WRITE_BLOCK,
    S.WRITING: StepName.MEDIA,
    S.MEDIA: StepName.SEO_CHECK,
    S.SEO_CHECK: StepName.SEO_CHECK,
    S.REVIEWING: StepName.PUBLISH,
    S.PUBLISHING: StepName.PUBLISH,
    S.PUBLISHED: None,
    S.REFRESH_NEEDED: None,
}

# (from, step) -> to. None marks the configurable refresh target.
TRANSITIONS: dict[tuple[WorkItemStatus, StepName], WorkItemStatus | None] = {
    (S.DRAFT, StepName.ANALYZE): S.ANALYZING,
    (S.ANALYZING, StepName.PLAN): S.PLANNING,
    (S.PLANNING, StepName.WRITE_BLOCK): S.WRITING,
    (S.WRITING, StepName.WRITE_BLOCK): S.WRITING,
    (S.REFRESH_NEEDED, StepName.WRITE_BLOCK): S.WRITING,
    (S.WRITING, StepName.MEDIA): S.MEDIA,
    (S.MEDIA, StepName.SEO_CHECK): S.SEO_CHECK,
    (S.SEO_CHECK, StepName.SEO_CHECK): S.REVIEWING,
    (S.REVIEWING, StepName.PUBLISH): S.PUBLISHING,
    (S.PUBLISHING, StepName.PUBLISH): S.PUBLISHED,
    (S.PUBLISHED, StepName.REFRESH): None,
    (S.REFRESH_NEEDED, StepName.REFRESH): None,
}

STATUS_LABELS: dict[str, str] = {
    "draft": "Brouillon",
    "analyzing": "Analyse",
    "planning": "Plan",
    "writing": "Redaction",
    "media": "Media",
    "seo_check": "Verification SEO",
    "reviewing": "Relecture",
    "publishing": "Publication",
    "published": "Publie",
    "refresh_needed": "A rafraichir",
}

STEP_LABELS: dict[StepName, str] = {
    StepName.ANALYZE: "Analyse SERP",
    StepName.PLAN: "Generation du plan",
    StepName.WRITE_BLOCK: "Redaction d'un bloc",
    StepName.MEDIA: "Generation des medias",
    StepName.SEO_CHECK: "Verification SEO",
    StepName.PUBLISH: "Publication",
    StepName.REFRESH: "Rafraichissement",
}


def next_step(status: WorkItemStatus) -> StepName | None:
    """Step that advances an item in the given status, or None."""
    return _NEXT_STEP[WorkItemStatus(status)]


def available_steps(status: WorkItemStatus) -> list[StepName]:
    """Every step the transition table allows from status."""
    status = WorkItemStatus(status)
    return [step for (src, step) in TRANSITIONS if src == status]


def rollback_target(status: WorkItemStatus) -> WorkItemStatus | None:
    """Immediately preceding forward status; never skips a state."""
    status = WorkItemStatus(status)
    if status == S.REFRESH_NEEDED:
        return S.PUBLISHED
    index = FORWARD_SEQUENCE.index(status)
    return FORWARD_SEQUENCE[index - 1] if index > 0 else None


def label(status: str) -> str:
    """Display label; unknown tokens are returned unchanged."""
    value = status.value if isinstance(status, WorkItemStatus) else status
    return STATUS_LABELS.get(value, value)


def step_label(step: StepName) -> str:
    return STEP_LABELS[StepName(step)]


def progress(status: WorkItemStatus) -> int:
    """Completion percentage: index * 100 // 8 along the forward sequence."""
    status = WorkItemStatus(status)
    if status in (S.PUBLISHED, S.REFRESH_NEEDED):
        return 100
    return FORWARD_SEQUENCE.index(status) * 100 // (len(FORWARD_SEQUENCE) - 1)


def resolve_transition(
    item: WorkItem,
    step: StepName,
    refresh_target: WorkItemStatus = S.WRITING,
    require_persona: bool = False,
) -> WorkItemStatus:
    """Validate a step against the table and its guards.

    Returns:
        The status the item moves to if the step succeeds.

    Raises:
        IllegalTransitionError: If the pair is not in the table or a guard fails.
    """
    step = StepName(step)
    key = (item.status, step)
    if key not in TRANSITIONS:
        allowed = ", ".join(s.value for s in available_steps(item.status)) or "none"
        raise IllegalTransitionError(
            f"Step '{step.value}' not allowed from status '{item.status.value}' "
            f"(allowed: {allowed})",
            status=item.status.value,
            step=step.value,
        )

    if step == StepName.WRITE_BLOCK and item.status == S.PLANNING:
        if require_persona and item.persona is None:
            raise IllegalTransitionError(
                "A persona is required before writing",
                status=item.status.value,
                step=step.value,
            )

    if step == StepName.MEDIA:
        unwritten = [i for i, b in enumerate(item.blocks) if b.status == "pending"]
        if unwritten:
            raise IllegalTransitionError(
                f"All blocks must be written before media ({len(unwritten)} pending)",
                status=item.status.value,
                step=step.value,
            )

    target = TRANSITIONS[key]
    return target if target is not None else WorkItemStatus(refresh_target)
