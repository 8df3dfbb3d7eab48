"""
Client-side workflow for the upload -> analyze -> (save | discard) flow.
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from enum import Enum
from pathlib import Path
from typing import Optional

from compliance_client.clients.compliance_api import ComplianceAPI
from compliance_client.core.errors import (
    ComplianceClientError,
    FileTooLarge,
    UnsupportedFileType,
    WorkflowStateError,
)
from compliance_client.schemas import AnalysisRecord, PendingUpload

logger = logging.getLogger(__name__)

DEFAULT_ANALYSIS_NAME = "Untitled Analysis"
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024


class WorkflowState(str, Enum):
    IDLE = "idle"
    FILE_SELECTED = "file_selected"
    SUBMITTING = "submitting"
    RESULT_PREVIEW = "result_preview"
    PERSISTED = "persisted"
    ERROR = "error"


_SELECTABLE_STATES = frozenset(
    {
        WorkflowState.IDLE,
        WorkflowState.FILE_SELECTED,
        WorkflowState.ERROR,
        WorkflowState.RESULT_PREVIEW,
        WorkflowState.PERSISTED,
    }
)
_SUBMITTABLE_STATES = frozenset({WorkflowState.FILE_SELECTED, WorkflowState.ERROR})


class AnalysisWorkflow:
    """State machine driving one floor-plan analysis at a time.

    The backend persists every analysis it creates, so ``RESULT_PREVIEW`` only
    tracks whether the user has acknowledged the result. Responses that land
    after ``reset()`` (or after a newer submission) are discarded; the request
    itself is never cancelled.
    """

    def __init__(
        self,
        api: ComplianceAPI,
        *,
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
    ) -> None:
        self._api = api
        self._max_upload_bytes = max_upload_bytes
        self._state = WorkflowState.IDLE
        self._upload: Optional[PendingUpload] = None
        self._preview_url: Optional[str] = None
        self._result: Optional[AnalysisRecord] = None
        self._error: Optional[str] = None
        self._acknowledged = False
        self._generation = 0
        self.validation_error: Optional[str] = None

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def upload(self) -> Optional[PendingUpload]:
        return self._upload

    @property
    def preview_url(self) -> Optional[str]:
        return self._preview_url

    @property
    def result(self) -> Optional[AnalysisRecord]:
        return self._result

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def acknowledged(self) -> bool:
        return self._acknowledged

    def _check_file(self, *, media_type: str, size: int) -> None:
        if not media_type.lower().startswith("image/"):
            self.validation_error = "Please select an image file"
            raise UnsupportedFileType(
                self.validation_error, fields={"file": [self.validation_error]}
            )
        if size > self._max_upload_bytes:
            limit_mb = self._max_upload_bytes // (1024 * 1024)
            self.validation_error = f"File size must be less than {limit_mb}MB"
            raise FileTooLarge(
                self.validation_error, fields={"file": [self.validation_error]}
            )

    async def select_file(
        self, content: bytes, *, filename: str, media_type: Optional[str]
    ) -> PendingUpload:
        """Validate an image and make it the pending upload.

        On rejection the workflow stays where it was and the validation error
        is raised.
        """
        if self._state not in _SELECTABLE_STATES:
            raise WorkflowStateError(f"Cannot select a file while {self._state.value}.")
        self._check_file(media_type=media_type or "", size=len(content))

        upload = PendingUpload(
            content=content,
            filename=filename,
            media_type=media_type or "",
            validated=True,
        )
        generation = self._generation
        preview_url = await asyncio.to_thread(upload.to_data_url)
        if generation != self._generation:
            logger.debug("Workflow reset while preparing preview for %s", filename)
            return upload

        self._upload = upload
        self._preview_url = preview_url
        self._result = None
        self._error = None
        self._acknowledged = False
        self.validation_error = None
        self._state = WorkflowState.FILE_SELECTED
        return upload

    async def select_path(self, path: str | Path) -> PendingUpload:
        """Select a file from disk, guessing its media type from the name."""
        file_path = Path(path)
        media_type, _ = mimetypes.guess_type(file_path.name)
        size = (await asyncio.to_thread(file_path.stat)).st_size
        if self._state not in _SELECTABLE_STATES:
            raise WorkflowStateError(f"Cannot select a file while {self._state.value}.")
        self._check_file(media_type=media_type or "", size=size)
        content = await asyncio.to_thread(file_path.read_bytes)
        return await self.select_file(content, filename=file_path.name, media_type=media_type)

    async def submit(
        self, name: str = "", *, persist_immediately: bool = False
    ) -> Optional[AnalysisRecord]:
        """Upload the pending image and wait for the remote analysis.

        Returns ``None`` when the workflow was reset before the response
        arrived. Failures move the workflow to ``ERROR`` and are re-raised
        with the pending upload kept for a retry.
        """
        if self._state not in _SUBMITTABLE_STATES or self._upload is None:
            raise WorkflowStateError("Please select an image first")

        self._generation += 1
        generation = self._generation
        upload = self._upload
        analysis_name = name.strip() or DEFAULT_ANALYSIS_NAME
        self._state = WorkflowState.SUBMITTING
        self._error = None
        logger.info("Submitting %s for analysis as %r", upload.filename, analysis_name)

        try:
            record = await self._api.upload_and_analyze(upload, name=analysis_name)
        except ComplianceClientError as exc:
            if generation != self._generation:
                logger.info("Discarding failure of abandoned submission: %s", exc.message)
                return None
            self._state = WorkflowState.ERROR
            self._error = exc.message or "Analysis failed"
            raise

        if generation != self._generation:
            logger.info("Discarding analysis %s for abandoned submission", record.id)
            return None

        self._result = record
        if persist_immediately:
            self._acknowledged = True
            self._state = WorkflowState.PERSISTED
        else:
            self._acknowledged = False
            self._state = WorkflowState.RESULT_PREVIEW
        logger.info(
            "Analysis %s completed with status %s",
            record.id,
            record.compliance_status.value,
        )
        return record

    def confirm(self) -> AnalysisRecord:
        """Acknowledge a previewed result; the record is already stored server-side."""
        if self._state is not WorkflowState.RESULT_PREVIEW or self._result is None:
            raise WorkflowStateError("There is no analysis result awaiting confirmation.")
        self._acknowledged = True
        self._state = WorkflowState.PERSISTED
        return self._result

    def reset(self) -> None:
        """Return to ``IDLE`` from any state, dropping upload, result and error."""
        self._generation += 1
        self._upload = None
        self._preview_url = None
        self._result = None
        self._error = None
        self._acknowledged = False
        self.validation_error = None
        self._state = WorkflowState.IDLE

    async def delete(self, analysis_id: int | str) -> None:
        """Delete a stored analysis; cached listings must be re-fetched by the caller."""
        await self._api.delete_analysis(analysis_id)
        logger.info("Deleted analysis %s", analysis_id)


__all__ = [
    "AnalysisWorkflow",
    "DEFAULT_ANALYSIS_NAME",
    "DEFAULT_MAX_UPLOAD_BYTES",
    "WorkflowState",
]
