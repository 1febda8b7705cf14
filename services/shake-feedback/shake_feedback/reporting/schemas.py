"""
Typed payloads for the slice of the Jira Cloud REST v3 API the reporter uses.
Requests are encoded with model_dump(exclude_none=True); responses are
decoded with model_validate, and unknown fields are ignored.
"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict


# ============================================================================
# Atlassian Document Format (issue description)
# ============================================================================

class AdfNode(BaseModel):
    type: str
    text: Optional[str] = None
    attrs: Optional[Dict[str, Any]] = None
    content: Optional[List["AdfNode"]] = None


class AdfDocument(AdfNode):
    type: str = "doc"
    version: int = 1


def adf_text(text: str) -> AdfNode:
    return AdfNode(type="text", text=text)


def adf_heading(text: str, level: int) -> AdfNode:
    return AdfNode(type="heading", attrs={"level": level}, content=[adf_text(text)])


def adf_paragraph(text: str) -> AdfNode:
    return AdfNode(type="paragraph", content=[adf_text(text)])


def adf_bullets(items: List[str]) -> AdfNode:
    return AdfNode(
        type="bulletList",
        content=[AdfNode(type="listItem", content=[adf_paragraph(item)]) for item in items],
    )


# ============================================================================
# POST /rest/api/3/issue
# ============================================================================

class ProjectRef(BaseModel):
    key: str


class IssueTypeRef(BaseModel):
    id: str


class IssueFields(BaseModel):
    project: ProjectRef
    issuetype: IssueTypeRef
    summary: str
    description: AdfDocument


class CreateIssueRequest(BaseModel):
    fields: IssueFields

    def encode(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class CreateIssueResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    key: str
    id: Optional[str] = None


# ============================================================================
# GET /rest/api/3/project/{projectKey}
# ============================================================================

class ProjectResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    key: Optional[str] = None


# ============================================================================
# GET /rest/api/3/issue/createmeta?projectIds=...&expand=projects.issuetypes
# ============================================================================

class IssueType(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str


class CreateMetaProject(BaseModel):
    model_config = ConfigDict(extra="ignore")

    issuetypes: List[IssueType] = []


class CreateMetaResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    projects: List[CreateMetaProject] = []
