from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

from docreview.gateway.exceptions import EmptyResultError
from docreview.workflow.models import Stage, StageStatus, WorkflowState


@dataclass(frozen=True)
class Transition:
    """A description of how a stage wants the workflow state to change.

    ``requires`` names state fields and the exact objects they held when the
    stage read them; the transition is stale once any of them is replaced.
    """

    changes: dict[str, Any] = field(default_factory=dict)
    message: str = ""
    status: StageStatus = StageStatus.SUCCEEDED
    requires: dict[str, Any] = field(default_factory=dict)

    def is_current(self, state: WorkflowState) -> bool:
        return all(getattr(state, name) is value for name, value in self.requires.items())


class StageStep(ABC):
    """One stage handler.

    ``begin`` runs synchronously with the precondition check and may clear
    state that the stage is about to replace. ``execute`` does the slow part
    and describes the result; it never mutates anything itself.
    """

    stage: ClassVar[Stage]
    reentrant: ClassVar[bool] = False
    empty_message: ClassVar[str] = "Could not produce a result."
    failure_message: ClassVar[str] = "Stage failed. See logs for details."

    def begin(self, state: WorkflowState) -> Transition:
        """Validate preconditions.

        Raises:
            PreconditionError: if the stage cannot start.
        """
        return Transition()

    @abstractmethod
    async def execute(self, state: WorkflowState) -> Transition:
        raise NotImplementedError

    def describe_failure(self, state: WorkflowState, exc: Exception) -> str:
        if isinstance(exc, EmptyResultError):
            return self.empty_message
        return self.failure_message
