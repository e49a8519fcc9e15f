"""
Patch notifications

The engine reports outcomes to a NotificationSink instead of talking to the
editor UI. EditorNotificationSink keeps the toast-style notifications the
plugin shows (message, severity, how long it stays on screen).
"""
from typing import List
from enum import Enum
import logging

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

SUCCESS_DURATION_S = 5.0
FAILURE_DURATION_S = 15.0
SUGGESTION_DURATION_S = 20.0


class NotificationSeverity(str, Enum):
    INFO = "Info"
    WARNING = "Warning"
    ERROR = "Error"


class Notification(BaseModel):
    """User-facing notification"""
    message: str = Field(..., description="Notification text")
    severity: NotificationSeverity = Field(default=NotificationSeverity.INFO, description="Icon/colour")
    duration_s: float = Field(default=SUCCESS_DURATION_S, description="Seconds before it fades out")


class NotificationSink:
    """Receives patch outcomes. The base sink ignores them."""

    def report_success(self, op_count: int):
        pass

    def report_failure(self, patch_text: str, reason: str):
        pass


class EditorNotificationSink(NotificationSink):
    """
    Records and logs notifications for the editor to display

    Usage:
        sink = EditorNotificationSink()
        engine = PatchEngine(model, sink)
        ...
        for note in sink.drain():
            show(note.message)
    """

    def __init__(self):
        self.notifications: List[Notification] = []

    def report_success(self, op_count: int):
        message = f"Successfully applied AI patch with {op_count} operations"
        logger.info(message)
        self._push(message, NotificationSeverity.INFO, SUCCESS_DURATION_S)

    def report_failure(self, patch_text: str, reason: str):
        message = f"Failed to apply AI patch: {reason}"
        logger.error(message)
        logger.debug(f"Patch JSON: {patch_text}")
        self._push(message, NotificationSeverity.ERROR, FAILURE_DURATION_S)

        detailed = (
            f"Patch application failed: {reason}\n\n"
            "Suggestions:\n"
            "• Check if the target Blueprint is open\n"
            "• Verify the Blueprint hasn't been modified\n"
            "• Try exporting fresh context from UE"
        )
        self._push(detailed, NotificationSeverity.WARNING, SUGGESTION_DURATION_S)

    def drain(self) -> List[Notification]:
        """Return pending notifications and clear them"""
        pending, self.notifications = self.notifications, []
        return pending

    def _push(self, message: str, severity: NotificationSeverity, duration_s: float):
        self.notifications.append(Notification(message=message, severity=severity, duration_s=duration_s))
