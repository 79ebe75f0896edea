"""
Apex class update through a Tooling API MetadataContainer.

ApexClass bodies cannot be PATCHed directly. An update is staged and compiled
server-side in four sequential steps, each needing the id produced by the one
before:

1. create a MetadataContainer (a throwaway workspace, one per call)
2. create an ApexClassMember holding the new body inside that container
3. submit a ContainerAsyncRequest with IsCheckOnly=false
4. poll the request until Completed/Failed/Error/Aborted, then translate

A failure in steps 1-3 stops the sequence and is reported with its phase so
callers can tell "never deployed" apart from "deployed and did not compile".
Creation calls are never retried; only the status checks are.
"""
import logging
import re
import time
import uuid
from typing import Any, Callable, Optional

import requests

from sfdash.config import (
    API_VERSION,
    DELETE_CONTAINERS,
    POLL_INTERVAL_SECONDS,
    POLL_MAX_ATTEMPTS,
    REQUEST_TIMEOUT_SECONDS,
)
from sfdash.errors import (
    ClassMemberCreationFailed,
    ContainerCreationFailed,
    DeployError,
    DeployRequestFailed,
    FailureKind,
    InputValidationError,
    RequestTimeout,
)
from sfdash.services.deploy_result import DeploymentResult, parse_error_body, translate
from sfdash.services.deploy_status import DeploymentStatusPoller
from sfdash.services.salesforce import Credentials, ToolingGateway

logger = logging.getLogger(__name__)

SALESFORCE_ID_RE = re.compile(r"^[A-Za-z0-9]{15}(?:[A-Za-z0-9]{3})?$")


def _container_name() -> str:
    # MetadataContainer.Name is capped at 32 characters
    return f"ApexUpdate_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"


def validate_deploy_input(class_id: Any, new_body: Any, credentials: Optional[Credentials]) -> None:
    """Raise InputValidationError with a per-field report; makes no network calls."""

    def _state(ok: bool, present: bool) -> str:
        if not present:
            return "missing"
        return "present" if ok else "invalid"

    has_id = isinstance(class_id, str) and bool(class_id.strip())
    has_body = isinstance(new_body, str) and bool(new_body.strip())
    instance_url = credentials.instance_url if credentials else ""
    access_token = credentials.access_token if credentials else ""

    fields = {
        "classId": _state(has_id and bool(SALESFORCE_ID_RE.match(class_id.strip())), has_id),
        "classBody": _state(True, has_body),
        "instanceUrl": _state(instance_url.startswith(("https://", "http://")), bool(instance_url)),
        "accessToken": _state(True, bool(access_token)),
    }
    if any(state != "present" for state in fields.values()):
        raise InputValidationError(fields)


class ApexClassDeployer:
    """Runs one container deployment per call; keeps no state between calls."""

    def __init__(
        self,
        api_version: str = API_VERSION,
        request_timeout: float = REQUEST_TIMEOUT_SECONDS,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        max_attempts: int = POLL_MAX_ATTEMPTS,
        sleep: Callable[[float], Any] = time.sleep,
        cleanup_container: bool = DELETE_CONTAINERS,
        session: Optional[requests.Session] = None,
    ):
        self.api_version = api_version
        self.request_timeout = request_timeout
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self.sleep = sleep
        self.cleanup_container = cleanup_container
        self.session = session

    def _gateway(self, credentials: Credentials) -> ToolingGateway:
        return ToolingGateway(
            credentials,
            api_version=self.api_version,
            timeout=self.request_timeout,
            session=self.session,
        )

    def deploy_class_update(self, class_id: str, new_body: str, credentials: Optional[Credentials]) -> DeploymentResult:
        """
        Replace the body of an existing Apex class.

        Args:
            class_id: ApexClass Id (15 or 18 characters)
            new_body: full Apex source
            credentials: instance URL + access token for this call

        Returns:
            DeploymentResult; failures come back as success=False with a phase.
            requests.ConnectionError is not caught and reaches the caller.
        """
        container_id = None
        credentials = Credentials.from_payload(credentials)
        try:
            validate_deploy_input(class_id, new_body, credentials)
            gateway = self._gateway(credentials)

            container_id = self._create_container(gateway)
            self._create_class_member(gateway, container_id, class_id.strip(), new_body)
            request_id = self._submit_deploy(gateway, container_id)
        except DeployError as e:
            logger.error("Apex class update failed during %s: %s", e.phase.value, e.message)
            return DeploymentResult.from_error(e, container_id=container_id)

        poller = DeploymentStatusPoller(
            gateway, interval=self.poll_interval, max_attempts=self.max_attempts, sleep=self.sleep
        )
        poll_result = poller.poll_until_terminal(request_id)
        result = translate(poll_result).model_copy(update={"container_id": container_id})

        if self.cleanup_container and not poll_result.timed_out:
            self._delete_container(gateway, container_id)

        if result.success:
            logger.info("Apex class %s updated (request %s)", class_id, request_id)
        else:
            logger.error("Apex class %s update failed: %s (%s)", class_id, result.status, result.error_message)
        return result

    def _post(self, gateway: ToolingGateway, sobject: str, payload: dict, error_cls: type, parse_body: bool):
        try:
            resp = gateway.create(sobject, payload)
        except RequestTimeout as e:
            raise error_cls(str(e), kind=FailureKind.REQUEST_TIMEOUT) from e

        if not resp.ok:
            message = f"Failed to create {sobject}: {resp.status_code} {resp.reason}"
            if parse_body:
                details, kind = parse_error_body(resp.text)
            else:
                details, kind = resp.text, None
            raise error_cls(
                message,
                kind=kind or FailureKind.HTTP_ERROR,
                http_status=resp.status_code,
                details=details,
            )
        try:
            return resp.json()["id"]
        except (ValueError, KeyError, TypeError) as e:
            raise error_cls(
                f"Unexpected response creating {sobject}: {e}",
                kind=FailureKind.PARSE_FALLBACK,
                http_status=resp.status_code,
                details={"rawError": resp.text},
            ) from e

    def _create_container(self, gateway: ToolingGateway) -> str:
        name = _container_name()
        container_id = self._post(
            gateway, "MetadataContainer", {"Name": name}, ContainerCreationFailed, parse_body=False
        )
        logger.info("Created MetadataContainer %s (%s)", name, container_id)
        return container_id

    def _create_class_member(self, gateway: ToolingGateway, container_id: str, class_id: str, body: str) -> str:
        payload = {
            "ContentEntityId": class_id,
            "Body": body,
            "MetadataContainerId": container_id,
        }
        return self._post(gateway, "ApexClassMember", payload, ClassMemberCreationFailed, parse_body=True)

    def _submit_deploy(self, gateway: ToolingGateway, container_id: str) -> str:
        payload = {
            "MetadataContainerId": container_id,
            "IsCheckOnly": False,
        }
        request_id = self._post(gateway, "ContainerAsyncRequest", payload, DeployRequestFailed, parse_body=True)
        logger.info("Submitted ContainerAsyncRequest %s", request_id)
        return request_id

    def _delete_container(self, gateway: ToolingGateway, container_id: str) -> None:
        """Best-effort cleanup; never changes the verdict."""
        try:
            resp = gateway.delete("MetadataContainer", container_id)
            if not resp.ok:
                logger.warning("Failed to delete container %s: %s", container_id, resp.text)
        except (RequestTimeout, requests.RequestException) as e:
            logger.warning("Failed to delete container %s: %s", container_id, e)
