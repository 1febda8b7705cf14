from typing import Optional
from PIL import Image
from pydantic import BaseModel, ConfigDict


class DeviceMetadata(BaseModel):
    model: str = "unknown"
    os_version: str = "unknown"
    app_version: str = "x.x"
    build: str = "0"
    locale: str = "unknown"
    timezone: str = "unknown"
    free_disk: str = "unknown"
    battery: str = "unknown"
    uptime: str = "unknown"


class Report(BaseModel):
    """One feedback submission. Not modified once handed to the reporter."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    note: str = ""
    image: Image.Image
    metadata: DeviceMetadata = DeviceMetadata()


class Toast(BaseModel):
    text: str
    success: bool
    color: str
    duration: float = 2.0

    @classmethod
    def sent(cls) -> "Toast":
        return cls(text="Sent to Jira ✔︎", success=True, color="#34c759")

    @classmethod
    def failed(cls) -> "Toast":
        return cls(text="Failed to send", success=False, color="#ff3b30")


class FeedbackJob(BaseModel):
    request_id: str
    status: str = "processing"  # processing, sent, failed
    issue_key: Optional[str] = None
    error: Optional[str] = None
    toast: Optional[Toast] = None
