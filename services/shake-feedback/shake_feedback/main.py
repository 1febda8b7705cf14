import os
import logging
from typing import Optional
from fastapi import FastAPI

from .annotation.api import router as feedback_router
from .annotation.archive import AnnotationArchive
from .config import AppSettings, load_settings
from .coordinator import FeedbackCoordinator
from .reporting.client import IssueReporter
from .reporting.device import collect_device_metadata


def create_app(settings: Optional[AppSettings] = None,
               coordinator: Optional[FeedbackCoordinator] = None) -> FastAPI:
    """
    App factory. Run with `uvicorn --factory shake_feedback.main:create_app`;
    settings come from the environment unless passed in.
    """
    if coordinator is None:
        settings = settings or load_settings()
        logging.basicConfig(
            level=settings.log_level.upper(),
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
        coordinator = FeedbackCoordinator(
            reporter=IssueReporter(settings.jira),
            archive=AnnotationArchive(os.path.join(settings.data_dir, "annotations")),
            metadata_provider=lambda: collect_device_metadata(
                app_version=settings.app_version,
                build=settings.app_build,
                data_path=settings.data_dir,
            ),
        )
        logging.getLogger("main").info("Filing feedback to %s (project %s)",
                                       settings.jira.domain, settings.jira.project_key)

    app = FastAPI(title="Shake Feedback")
    app.state.coordinator = coordinator
    app.include_router(feedback_router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app
