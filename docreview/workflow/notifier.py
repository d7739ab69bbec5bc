from abc import ABC, abstractmethod

from docreview.logging.logger import Log
from docreview.workflow.models import Stage, StageStatus


class BaseNotifier(ABC):
    """Receives user-visible status from the workflow."""

    @abstractmethod
    def message(self, text: str, *, ok: bool) -> None:
        """Show a short status string; ``ok`` is the success/failure intent."""

    def stage_changed(self, stage: Stage, status: StageStatus) -> None:
        """Called on every stage status change. Ignored by default."""


class LogNotifier(BaseNotifier):
    """Routes messages to the application log."""

    def message(self, text: str, *, ok: bool) -> None:
        if ok:
            Log.info(text)
        else:
            Log.warning(text)

    def stage_changed(self, stage: Stage, status: StageStatus) -> None:
        Log.debug(f"Stage {stage.value} -> {status.value}")
