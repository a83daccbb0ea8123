"""Per-role record of non-fatal failures."""

import asyncio
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


FrameFailureReason = Literal["cross-origin", "detached", "timeout", "unknown"]

DETACHED_MARKERS = ("detached", "No frame for given id", "Frame was removed", "Cannot find context")
CROSS_ORIGIN_MARKERS = ("cross-origin", "Cross-origin", "OOPIF", "separate CDP session", "Blocked a frame")


def classify_frame_error(error: BaseException) -> FrameFailureReason:
    """
    Map an exception raised while injecting into a frame to a failure reason.

    Args:
        error: The exception caught around the injection

    Returns:
        One of "cross-origin", "detached", "timeout" or "unknown"
    """
    if isinstance(error, asyncio.TimeoutError):
        return "timeout"

    message = str(error)
    if any(marker in message for marker in DETACHED_MARKERS):
        return "detached"
    if any(marker in message for marker in CROSS_ORIGIN_MARKERS):
        return "cross-origin"
    if "timed out" in message.lower() or "timeout" in message.lower():
        return "timeout"
    return "unknown"


class FrameInjectionFailure(BaseModel):
    frame_id: str
    error: str
    reason: FrameFailureReason
    is_main_frame: bool = False
    timestamp: datetime = Field(default_factory=datetime.now)


class FrameExpansionFailure(BaseModel):
    ref: str
    error: str
    detached: bool = False
    timestamp: datetime = Field(default_factory=datetime.now)


class FailureLog(BaseModel):
    """
    Append-only record of problems that did not abort an operation.

    Lives on one role's context and survives navigations until the caller
    clears it.
    """
    frame_injection_failures: List[FrameInjectionFailure] = Field(default_factory=list)
    frame_expansion_failures: List[FrameExpansionFailure] = Field(default_factory=list)
    cleanup_errors: List[str] = Field(default_factory=list)
    frame_discovery_error: Optional[str] = None
    auth_load_error: Optional[str] = None
    total_frames: int = 0
    successful_frames: int = 0

    def record_injection_failure(
        self,
        frame_id: str,
        error: BaseException,
        is_main_frame: bool = False,
    ) -> FrameInjectionFailure:
        failure = FrameInjectionFailure(
            frame_id=frame_id,
            error=str(error) or type(error).__name__,
            reason=classify_frame_error(error),
            is_main_frame=is_main_frame,
        )
        self.frame_injection_failures.append(failure)
        return failure

    def record_expansion_failure(self, ref: str, error: BaseException) -> FrameExpansionFailure:
        failure = FrameExpansionFailure(
            ref=ref,
            error=str(error) or type(error).__name__,
            detached=classify_frame_error(error) == "detached",
        )
        self.frame_expansion_failures.append(failure)
        return failure

    def record_cleanup_error(self, message: str) -> None:
        self.cleanup_errors.append(message)

    @property
    def has_failures(self) -> bool:
        return bool(
            self.frame_injection_failures
            or self.frame_expansion_failures
            or self.cleanup_errors
            or self.frame_discovery_error
            or self.auth_load_error
        )

    def clear(self) -> None:
        self.frame_injection_failures = []
        self.frame_expansion_failures = []
        self.cleanup_errors = []
        self.frame_discovery_error = None
        self.auth_load_error = None
        self.total_frames = 0
        self.successful_frames = 0
