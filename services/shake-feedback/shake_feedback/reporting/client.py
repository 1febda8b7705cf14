"""
Issue reporter: files a Report as a Jira Cloud issue (REST v3).

Flow per send():
1. Resolve the issue type (pinned in config, or looked up once and cached).
2. Create the issue with an ADF description of the note + device snapshot.
3. Upload the annotated screenshot as a JPEG attachment.

Every call goes out exactly once; there are no retries. A failed attachment
leaves the created issue in place.
"""
import base64
import logging
import threading
from typing import Dict, Optional, Type, TypeVar
from urllib.parse import quote, urlparse

import requests
from PIL import Image
from pydantic import BaseModel, ValidationError

from ..config import JiraConfig
from ..utils import encode_jpeg
from .errors import (
    AttachmentFailed,
    CreateIssueFailed,
    HttpError,
    ImageConversionFailed,
    InvalidResponse,
    InvalidURL,
    JiraError,
    NoValidIssueTypes,
    ProjectMetadataFailed,
)
from .models import DeviceMetadata, Report
from .schemas import (
    AdfDocument,
    CreateIssueRequest,
    CreateIssueResponse,
    CreateMetaResponse,
    IssueFields,
    IssueTypeRef,
    ProjectRef,
    ProjectResponse,
    adf_bullets,
    adf_heading,
    adf_paragraph,
)

logger = logging.getLogger("issue_reporter")

SUMMARY_MAX_CHARS = 80
ELLIPSIS = "…"
DEFAULT_SUMMARY = "Shake feedback"
JPEG_QUALITY = 80
ATTACHMENT_NAME = "screenshot.jpg"
PREFERRED_ISSUE_TYPES = ("bug", "task", "story")

M = TypeVar("M", bound=BaseModel)


# ============================================================================
# Issue content
# ============================================================================

def make_summary(note: str) -> str:
    """
    One-line summary: the note, cut to SUMMARY_MAX_CHARS plus an ellipsis
    when longer. Jira summaries are single-line, so runs of whitespace
    (newlines included) are collapsed to one space even in short notes.
    """
    line = " ".join(note.split())
    if not line:
        return DEFAULT_SUMMARY
    if len(line) <= SUMMARY_MAX_CHARS:
        return line
    return line[:SUMMARY_MAX_CHARS] + ELLIPSIS


def make_description(note: str, metadata: DeviceMetadata) -> AdfDocument:
    # ADF rejects empty text nodes
    lines = [line.strip() for line in note.splitlines() if line.strip()] or ["No note provided."]
    return AdfDocument(content=[
        adf_heading("Shake feedback", 2),
        adf_heading("Note", 3),
        *[adf_paragraph(line) for line in lines],
        adf_heading("Device snapshot", 3),
        adf_bullets([
            f"Model: {metadata.model}",
            f"OS: {metadata.os_version}",
            f"App: {metadata.app_version} ({metadata.build})",
            f"Battery: {metadata.battery}",
            f"Free disk: {metadata.free_disk}",
            f"Locale / timezone: {metadata.locale} / {metadata.timezone}",
            f"Uptime: {metadata.uptime}",
        ]),
    ])


def pick_issue_type(issue_types: Dict[str, str]) -> Optional[str]:
    """Bug, then Task, then Story (any case), then whatever is left."""
    by_name = {name.strip().lower(): type_id for name, type_id in issue_types.items()}
    for name in PREFERRED_ISSUE_TYPES:
        if name in by_name:
            return by_name[name]
    return next(iter(issue_types.values()), None)


def basic_auth(email: str, api_token: str) -> str:
    cred = base64.b64encode(f"{email}:{api_token}".encode("utf-8")).decode("ascii")
    return f"Basic {cred}"


# ============================================================================
# Reporter
# ============================================================================

class IssueReporter:
    """
    Owns the Jira credentials and the issue-type cache. All public calls
    are serialized on one lock, so concurrent send()s queue up instead of
    interleaving.
    """

    def __init__(self, config: JiraConfig, session: Optional[requests.Session] = None):
        self.config = config
        self._http = session if session is not None else requests.Session()
        self._lock = threading.RLock()
        self._issue_type_id: Optional[str] = config.issue_type_id
        self._issue_types: Optional[Dict[str, str]] = None

    # --- Plumbing ---

    def _url(self, path: str) -> str:
        domain = self.config.domain.strip()
        for scheme in ("https://", "http://"):
            if domain.lower().startswith(scheme):
                domain = domain[len(scheme):]
        domain = domain.rstrip("/")
        if not domain or "/" in domain or any(c.isspace() for c in domain):
            raise InvalidURL(f"Bad Jira domain: {self.config.domain!r}")
        url = f"https://{domain}{path}"
        if not urlparse(url).hostname:
            raise InvalidURL(f"Bad Jira URL: {url!r}")
        return url

    def _request(self, method: str, url: str, headers: Optional[Dict[str, str]] = None, **kwargs) -> requests.Response:
        all_headers = {
            "Authorization": basic_auth(self.config.email, self.config.api_token),
            "Accept": "application/json",
        }
        all_headers.update(headers or {})
        response = self._http.request(method, url, headers=all_headers, timeout=self.config.timeout, **kwargs)
        if not 200 <= response.status_code < 300:
            raise HttpError(response.status_code, response.text[:500])
        return response

    @staticmethod
    def _decode(response: requests.Response, model: Type[M]) -> M:
        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise InvalidResponse(f"Unexpected {model.__name__} body: {e}") from e

    # --- Issue type ---

    def _fetch_issue_types(self) -> Dict[str, str]:
        project_key = self.config.project_key.strip()
        if not project_key:
            raise InvalidURL("Empty project key")

        try:
            resp = self._request("GET", self._url(f"/rest/api/3/project/{quote(project_key, safe='')}"))
            project = self._decode(resp, ProjectResponse)
            resp = self._request(
                "GET",
                self._url("/rest/api/3/issue/createmeta"),
                params={"projectIds": project.id, "expand": "projects.issuetypes"},
            )
            meta = self._decode(resp, CreateMetaResponse)
        except (JiraError, requests.RequestException) as e:
            raise ProjectMetadataFailed(f"Could not load issue types for {project_key}: {e}") from e

        if not meta.projects or not meta.projects[0].issuetypes:
            raise NoValidIssueTypes(f"Project {project_key} reports no issue types")
        return {t.name: t.id for t in meta.projects[0].issuetypes}

    def resolve_issue_type(self) -> str:
        """
        Issue type id to file under. Looked up at most once per reporter;
        any lookup failure falls back to the configured default.
        """
        with self._lock:
            if self._issue_type_id is not None:
                return self._issue_type_id

            fallback = self.config.default_issue_type_id
            try:
                types = self._fetch_issue_types()
                picked = pick_issue_type(types)
                if picked is None:
                    raise NoValidIssueTypes("No issue types to choose from")
                self._issue_types = types
                resolved = picked
                logger.info("Resolved issue type %s from %s", resolved, sorted(types))
            except JiraError as e:
                logger.warning("Issue type lookup failed, using default %s: %s", fallback, e)
                resolved = fallback

            self._issue_type_id = resolved
            return resolved

    @property
    def issue_types(self) -> Optional[Dict[str, str]]:
        return dict(self._issue_types) if self._issue_types is not None else None

    # --- Issue + attachment ---

    def create_issue(self, note: str, metadata: DeviceMetadata) -> str:
        """Creates the issue and returns its key (e.g. "ABC-123")."""
        with self._lock:
            issue_type_id = self.resolve_issue_type()
            body = CreateIssueRequest(fields=IssueFields(
                project=ProjectRef(key=self.config.project_key),
                issuetype=IssueTypeRef(id=issue_type_id),
                summary=make_summary(note),
                description=make_description(note, metadata),
            ))
            try:
                resp = self._request("POST", self._url("/rest/api/3/issue"), json=body.encode())
                key = self._decode(resp, CreateIssueResponse).key
            except (JiraError, requests.RequestException) as e:
                raise CreateIssueFailed(f"Could not create issue: {e}") from e

            logger.info("Created issue %s", key)
            return key

    def attach(self, image: Image.Image, issue_key: str) -> None:
        with self._lock:
            try:
                data = encode_jpeg(image, quality=JPEG_QUALITY)
            except (OSError, ValueError) as e:
                raise ImageConversionFailed(f"Could not encode screenshot: {e}", issue_key=issue_key) from e

            try:
                self._request(
                    "POST",
                    self._url(f"/rest/api/3/issue/{quote(issue_key, safe='')}/attachments"),
                    headers={"X-Atlassian-Token": "nocheck"},
                    files={"file": (ATTACHMENT_NAME, data, "image/jpeg")},
                )
            except (JiraError, requests.RequestException) as e:
                raise AttachmentFailed(f"Could not attach screenshot to {issue_key}: {e}", issue_key=issue_key) from e

            logger.info("Attached %s (%d bytes) to %s", ATTACHMENT_NAME, len(data), issue_key)

    def send(self, report: Report) -> str:
        """Issue type -> create -> attach. Returns the issue key."""
        with self._lock:
            self.resolve_issue_type()
            key = self.create_issue(report.note, report.metadata)
            self.attach(report.image, key)
            return key
