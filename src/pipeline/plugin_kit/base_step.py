# src/pipeline/plugin_kit/base_step.py - v1
"""Standard step handler interface."""

from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from contentflow.core.models import PublishTarget, StepName, WorkItem
from contentflow.pipeline.models import StepOptions
from contentflow.pipeline.plugin_kit.models import StepOutput

if TYPE_CHECKING:
    from contentflow.config.settings import Settings
    from contentflow.llm.completion import CompletionService
    from contentflow.media.base_image_generator import BaseImageGenerator
    from contentflow.publishing.base_publisher import BasePublisher
    from contentflow.search.base_search import BaseSearchClient
    from contentflow.search.link_checker import LinkChecker

_PROMPTS_DIR = Path(__file__).parent.parent / "prompts"
_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


@dataclass
class StepServices:
    """External collaborators injected into every handler."""

    completion: CompletionService
    publisher: BasePublisher | None = None
    search: BaseSearchClient | None = None
    images: BaseImageGenerator | None = None
    link_checker: LinkChecker | None = None


@dataclass
class StepContext:
    """Everything a handler may read. Handlers never write to storage."""

    item: WorkItem
    options: StepOptions
    settings: Settings
    services: StepServices
    target: PublishTarget | None = None


class BaseStep(ABC):
    """Standard interface for all workflow step handlers."""

    needs_target: bool = False

    @property
    @abstractmethod
    def name(self) -> StepName:
        """Step this handler implements."""

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of what this step does."""

    @abstractmethod
    async def execute(self, ctx: StepContext) -> StepOutput:
        """Run the step.

        Raises:
            StepFailure: Domain failure (bad model output, missing input).
            ExternalServiceError: A collaborator failed.
        """


def load_prompt(name: str) -> str:
    """Read a prompt template from pipeline/prompts."""
    return (_PROMPTS_DIR / f"{name}.txt").read_text(encoding="utf-8")


def parse_json_response(content: str) -> Any:
    """Parse LLM JSON output, tolerating markdown fences and surrounding prose."""
    text = _FENCE_RE.sub("", content.strip())
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        start = min((i for i in (text.find("{"), text.find("[")) if i >= 0), default=-1)
        if start < 0:
            raise
        end = max(text.rfind("}"), text.rfind("]"))
        return json.loads(text[start : end + 1])
