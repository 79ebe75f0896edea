"""Bounded polling of a ContainerAsyncRequest until it reaches a terminal status."""
import logging
import time
from typing import Any, Callable, Dict, Optional

import requests

from sfdash.config import POLL_INTERVAL_SECONDS, POLL_MAX_ATTEMPTS
from sfdash.errors import RequestTimeout
from sfdash.services.deploy_result import TERMINAL_STATUSES, PollResult
from sfdash.services.salesforce import ToolingGateway, soql_quote

logger = logging.getLogger(__name__)

STATUS_QUERY = (
    "SELECT Id, Status, CompilerErrors, ErrorMsg, DeployDetails "
    "FROM ContainerAsyncRequest WHERE Id = '{request_id}'"
)


class DeploymentStatusPoller:
    """
    Sleep-then-check loop over a ContainerAsyncRequest.

    Diagnostic fields are selected on every check so no extra round-trip is
    needed once a terminal status shows up. A failed check (HTTP error,
    connection error, unreadable body) only costs one attempt.
    """

    def __init__(
        self,
        gateway: ToolingGateway,
        interval: float = POLL_INTERVAL_SECONDS,
        max_attempts: int = POLL_MAX_ATTEMPTS,
        sleep: Callable[[float], Any] = time.sleep,
    ):
        self.gateway = gateway
        self.interval = interval
        self.max_attempts = max_attempts
        self._sleep = sleep

    def _check(self, soql: str, attempt: int) -> Optional[Dict[str, Any]]:
        try:
            resp = self.gateway.query(soql)
        except RequestTimeout as e:
            logger.warning("Status check timed out (attempt %s): %s", attempt, e)
            return None
        except requests.RequestException as e:
            logger.warning("Status check failed (attempt %s): %s", attempt, e)
            return None

        if not resp.ok:
            logger.warning("Status check error (attempt %s): %s %s", attempt, resp.status_code, resp.text)
            return None

        try:
            records = resp.json().get("records") or []
        except (ValueError, AttributeError):
            logger.warning("Status check returned an unreadable body (attempt %s)", attempt)
            return None

        return records[0] if records else None

    def poll_until_terminal(self, request_id: str) -> PollResult:
        soql = STATUS_QUERY.format(request_id=soql_quote(request_id))
        last_record: Optional[Dict[str, Any]] = None

        for attempt in range(1, self.max_attempts + 1):
            self._sleep(self.interval)

            record = self._check(soql, attempt)
            if record is None:
                continue

            last_record = record
            status = record.get("Status")
            logger.info("Deployment %s status (attempt %s): %s", request_id, attempt, status)

            if status in TERMINAL_STATUSES:
                return PollResult(
                    request_id=request_id,
                    final_status=status,
                    record=record,
                    attempts=attempt,
                )

        logger.warning("Deployment %s not terminal after %s attempts", request_id, self.max_attempts)
        return PollResult(
            request_id=request_id,
            final_status=last_record.get("Status") if last_record else None,
            record=last_record,
            timed_out=True,
            attempts=self.max_attempts,
        )
