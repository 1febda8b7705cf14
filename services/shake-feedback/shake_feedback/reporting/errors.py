from typing import Optional


class JiraError(Exception):
    """Base for every failure talking to Jira."""


class InvalidURL(JiraError):
    pass


class InvalidResponse(JiraError):
    pass


class HttpError(JiraError):
    def __init__(self, status_code: int, body: str = ""):
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code
        self.body = body


class CreateIssueFailed(JiraError):
    pass


class AttachmentFailed(JiraError):
    def __init__(self, message: str, issue_key: Optional[str] = None):
        super().__init__(message)
        # The issue exists even though the screenshot never made it
        self.issue_key = issue_key


class ImageConversionFailed(AttachmentFailed):
    pass


class ProjectMetadataFailed(JiraError):
    pass


class NoValidIssueTypes(JiraError):
    pass
