"""Progress notifications emitted while scanning remote resources."""

import logging
import uuid
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol

log = logging.getLogger(__name__)


class ProgressUpdateType(StrEnum):
    """Kinds of progress updates."""

    LOADING_DEVOPS_INFO = "LoadingDevOpsInfoStatusUpdate"


@dataclass(frozen=True, kw_only=True)
class ProgressUpdate:
    """A human readable status message for one caller."""

    correlation_id: str
    message: str
    update_type: ProgressUpdateType = ProgressUpdateType.LOADING_DEVOPS_INFO
    item_id: uuid.UUID = field(default_factory=uuid.uuid4)


class ProgressSink(Protocol):
    """Receiver of progress updates."""

    async def publish(self, update: ProgressUpdate) -> None:
        """Deliver an update to the caller identified by its correlation ID."""


class NullProgressSink:
    """Sink that discards every update."""

    async def publish(self, update: ProgressUpdate) -> None:
        """Discard the update."""


class LoggingProgressSink:
    """Sink that writes updates to the log."""

    async def publish(self, update: ProgressUpdate) -> None:
        """Log the update at debug level."""
        log.debug(
            "[%s] %s: %s", update.correlation_id, update.update_type, update.message
        )
