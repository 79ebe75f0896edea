"""Salesforce connections built from caller-supplied credentials (no token storage)"""
import logging
from typing import Any, Dict, Optional

import requests
from pydantic import BaseModel, ConfigDict, Field, field_validator
from simple_salesforce import Salesforce

from sfdash.config import API_VERSION, REQUEST_TIMEOUT_SECONDS
from sfdash.errors import RequestTimeout

logger = logging.getLogger(__name__)


class Credentials(BaseModel):
    """Instance URL + bearer token handed over by the caller for one request."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    instance_url: str = Field(default="", alias="instanceUrl")
    access_token: str = Field(default="", alias="accessToken", repr=False)

    @field_validator("instance_url", "access_token", mode="before")
    @classmethod
    def _strip(cls, value):
        # Non-string values are treated like a missing field
        return value.strip() if isinstance(value, str) else ""

    @field_validator("instance_url")
    @classmethod
    def _drop_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["Credentials"]:
        """Build from an `sfAuthData`-style dict; None when there is nothing usable."""
        if isinstance(payload, Credentials):
            return payload
        if not isinstance(payload, dict):
            return None
        return cls.model_validate(
            {
                "instanceUrl": payload.get("instanceUrl") or payload.get("instance_url"),
                "accessToken": payload.get("accessToken") or payload.get("access_token"),
            }
        )


def soql_quote(value: str) -> str:
    """Escape a value for use inside a single-quoted SOQL literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


class ToolingGateway:
    """
    Thin Tooling API client: attaches bearer auth, enforces a per-request
    timeout and hands back the raw response. Status handling is left to callers.
    """

    def __init__(
        self,
        credentials: Credentials,
        api_version: str = API_VERSION,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.credentials = credentials
        self.api_version = api_version
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def tooling_url(self) -> str:
        return f"{self.credentials.instance_url}/services/data/v{self.api_version}/tooling"

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.credentials.access_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.tooling_url}/{path}"
        try:
            resp = self.session.request(method, url, headers=self.headers, timeout=self.timeout, **kwargs)
        except requests.Timeout as e:
            raise RequestTimeout(method, url, self.timeout) from e
        logger.debug("%s %s -> %s", method, url, resp.status_code)
        return resp

    def create(self, sobject: str, payload: Dict[str, Any]) -> requests.Response:
        return self._request("POST", f"sobjects/{sobject}", json=payload)

    def delete(self, sobject: str, record_id: str) -> requests.Response:
        return self._request("DELETE", f"sobjects/{sobject}/{record_id}")

    def query(self, soql: str) -> requests.Response:
        clean_query = " ".join(soql.strip().split())
        return self._request("GET", "query/", params={"q": clean_query})


def get_salesforce_connection(credentials: Credentials, api_version: str = API_VERSION) -> Salesforce:
    """
    Build a simple_salesforce connection for data API queries.

    Args:
        credentials: instance URL and access token for this request

    Returns:
        Salesforce connection instance
    """
    return Salesforce(
        instance_url=credentials.instance_url,
        session_id=credentials.access_token,
        version=api_version,
    )
