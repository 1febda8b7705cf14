"""
Report cycle: shake -> screenshot -> annotation session -> submit -> toast.

The coordinator is built by the host with its own reporter; there is no
shared global instance. Sends run on a background thread and finish by
handing a Toast to the host's presenter (called from that thread, so a
UI host should hop back to its own thread inside the presenter).
"""
import uuid
import logging
import threading
from typing import Callable, Dict, Optional, Tuple
from PIL import Image

from .annotation.archive import AnnotationArchive
from .annotation.session import AnnotationSession
from .annotation.stroke_engine.geometry import Size, aspect_fit_rect
from .capture import capture_screenshot
from .reporting.client import IssueReporter
from .reporting.device import collect_device_metadata
from .reporting.errors import AttachmentFailed, JiraError
from .reporting.models import DeviceMetadata, FeedbackJob, Report, Toast
from .shake import ShakeSource

logger = logging.getLogger("feedback_coordinator")

DEFAULT_CONTAINER_SIZE: Size = (390, 844)
MAX_FINISHED_JOBS = 256


class FeedbackCoordinator:
    def __init__(
        self,
        reporter: IssueReporter,
        archive: Optional[AnnotationArchive] = None,
        capture: Callable[[], Image.Image] = capture_screenshot,
        present_toast: Optional[Callable[[Toast], None]] = None,
        metadata_provider: Callable[[], DeviceMetadata] = collect_device_metadata,
        container_size: Size = DEFAULT_CONTAINER_SIZE,
        max_finished_jobs: int = MAX_FINISHED_JOBS,
    ):
        self.reporter = reporter
        self.archive = archive
        self.container_size = container_size
        self._capture = capture
        self._present_toast = present_toast
        self._metadata_provider = metadata_provider
        self.max_finished_jobs = max_finished_jobs
        self._lock = threading.Lock()
        self._sessions: Dict[str, Tuple[AnnotationSession, Image.Image]] = {}
        self._jobs: Dict[str, FeedbackJob] = {}

    # --- Shake ---

    def attach_to(self, source: ShakeSource) -> None:
        source.register(self.handle_shake)

    def detach_from(self, source: ShakeSource) -> None:
        source.unregister(self.handle_shake)

    def handle_shake(self) -> str:
        """One report cycle begins: capture the screen and open a session on it."""
        screenshot = self._capture()
        return self.open_session(screenshot)

    # --- Sessions ---

    def open_session(self, screenshot: Image.Image, container_size: Optional[Size] = None) -> str:
        session = AnnotationSession(container_size or self.container_size)
        records = []
        if self.archive is not None:
            display = aspect_fit_rect(screenshot.size, session.container_size)
            records = self.archive.load(screenshot, display)
        session.open(screenshot, records)
        session_id = str(uuid.uuid4())
        with self._lock:
            self._sessions[session_id] = (session, screenshot)
        return session_id

    def session(self, session_id: str) -> AnnotationSession:
        with self._lock:
            return self._sessions[session_id][0]

    def discard(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def submit(self, session_id: str, note: str = "", metadata: Optional[DeviceMetadata] = None,
               background: bool = True) -> str:
        """
        Finishes the session and files it. Returns a job id right away when
        `background` is set; the outcome lands in result(job_id) and the toast.
        """
        with self._lock:
            session, screenshot = self._sessions.pop(session_id)

        result = session.finish()
        if self.archive is not None:
            display = aspect_fit_rect(screenshot.size, session.container_size)
            self.archive.save(screenshot, result.records, display)

        report = Report(
            note=note,
            image=result.image,
            metadata=metadata if metadata is not None else self._metadata_provider(),
        )
        job_id = str(uuid.uuid4())
        with self._lock:
            self._jobs[job_id] = FeedbackJob(request_id=job_id)

        if background:
            t = threading.Thread(target=self._deliver, args=(job_id, report), daemon=True)
            t.start()
        else:
            self._deliver(job_id, report)
        return job_id

    def result(self, job_id: str) -> FeedbackJob:
        with self._lock:
            return self._jobs[job_id]

    # --- Delivery ---

    def _deliver(self, job_id: str, report: Report) -> None:
        try:
            key = self.reporter.send(report)
            job = FeedbackJob(request_id=job_id, status="sent", issue_key=key, toast=Toast.sent())
            logger.info("Created issue %s", key)
        except AttachmentFailed as e:
            logger.exception("Issue %s created but screenshot attach failed", e.issue_key)
            job = FeedbackJob(request_id=job_id, status="failed", issue_key=e.issue_key,
                              error=f"Issue {e.issue_key} created but screenshot attach failed",
                              toast=Toast.failed())
        except JiraError as e:
            logger.exception("Failed to send feedback")
            job = FeedbackJob(request_id=job_id, status="failed", error=str(e), toast=Toast.failed())
        except Exception as e:
            logger.exception("Unexpected error while sending feedback")
            job = FeedbackJob(request_id=job_id, status="failed", error=f"Unexpected error: {e}", toast=Toast.failed())

        with self._lock:
            self._jobs[job_id] = job
            self._evict_finished()
        if self._present_toast is not None:
            self._present_toast(job.toast)

    def _evict_finished(self) -> None:
        # Oldest finished jobs go first; jobs still processing are never dropped
        finished = [job_id for job_id, job in self._jobs.items() if job.status != "processing"]
        for job_id in finished[:max(0, len(finished) - self.max_finished_jobs)]:
            del self._jobs[job_id]
