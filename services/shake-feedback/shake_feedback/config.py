import os
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from dotenv import find_dotenv, load_dotenv

DEFAULT_ISSUE_TYPE_ID = "10004"


class ConfigError(ValueError):
    pass


class JiraConfig(BaseModel):
    """Jira credentials and target project. Fixed for the reporter's lifetime."""
    model_config = ConfigDict(frozen=True)

    domain: str                           # e.g. "acme.atlassian.net"
    email: str
    api_token: str
    project_key: str                      # e.g. "IOS"
    issue_type_id: Optional[str] = None   # pinned type; looked up when None
    default_issue_type_id: str = DEFAULT_ISSUE_TYPE_ID
    timeout: float = Field(default=30.0, gt=0)


class AppSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    jira: JiraConfig
    data_dir: str = "./data"
    app_version: str = "x.x"
    app_build: str = "0"
    log_level: str = "INFO"


def _require(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ConfigError(f"Missing required setting {name}")
    return value


def load_settings() -> AppSettings:
    """Reads settings from the environment (and a .env file if present)."""
    load_dotenv(find_dotenv(usecwd=True))
    domain = _require("JIRA_DOMAIN")
    email = _require("JIRA_EMAIL")
    api_token = _require("JIRA_API_TOKEN")
    project_key = _require("JIRA_PROJECT_KEY")
    try:
        jira = JiraConfig(
            domain=domain,
            email=email,
            api_token=api_token,
            project_key=project_key,
            issue_type_id=os.getenv("JIRA_ISSUE_TYPE_ID") or None,
            timeout=float(os.getenv("JIRA_TIMEOUT", "30")),
        )
        return AppSettings(
            jira=jira,
            data_dir=os.getenv("FEEDBACK_DATA_DIR", "./data"),
            app_version=os.getenv("APP_VERSION", "x.x"),
            app_build=os.getenv("APP_BUILD", "0"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
    except (ValidationError, ValueError) as e:
        raise ConfigError(f"Invalid settings: {e}") from e
