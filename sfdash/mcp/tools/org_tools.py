import logging

from simple_salesforce.exceptions import SalesforceError

from sfdash.config import LOGIN_HISTORY_DEFAULT_LIMIT
from sfdash.mcp.json_response import create_json_response
from sfdash.mcp.server import register_tool
from sfdash.services import org_data
from sfdash.services.salesforce import Credentials, get_salesforce_connection

logger = logging.getLogger(__name__)


def _connect(instance_url: str, access_token: str):
    return get_salesforce_connection(Credentials(instance_url=instance_url, access_token=access_token))


def _salesforce_failure(tool: str, e: SalesforceError) -> str:
    logger.warning("%s: Salesforce returned %s", tool, e.status)
    return create_json_response(False, error=str(e), status=e.status, details=e.content)


# =============================================================================
# ORG DATA TOOLS
# =============================================================================

@register_tool
def fetch_users(instance_url: str, access_token: str) -> str:
    """List active users ordered by last name.

Args:
    instance_url (str): Org instance URL.
    access_token (str): OAuth access token for that org.
"""
    try:
        data = org_data.fetch_users(_connect(instance_url, access_token))
        return create_json_response(True, users=data["users"], totalSize=data["totalSize"])
    except SalesforceError as e:
        return _salesforce_failure("fetch_users", e)
    except Exception as e:
        logger.error("fetch_users: %s", e, exc_info=True)
        return create_json_response(False, error=str(e))


@register_tool
def fetch_login_history(instance_url: str, access_token: str, limit: int = LOGIN_HISTORY_DEFAULT_LIMIT) -> str:
    """Most recent LoginHistory rows, newest first.

Args:
    instance_url (str): Org instance URL.
    access_token (str): OAuth access token for that org.
    limit (int): Maximum number of rows to return.
"""
    try:
        records = org_data.fetch_login_history(_connect(instance_url, access_token), limit)
        return create_json_response(True, records=records)
    except SalesforceError as e:
        return _salesforce_failure("fetch_login_history", e)
    except Exception as e:
        logger.error("fetch_login_history: %s", e, exc_info=True)
        return create_json_response(False, error=str(e))


@register_tool
def fetch_chatter_feed(instance_url: str, access_token: str) -> str:
    """Chatter FeedItem posts, newest first, with an HTML rendering of each body.

Args:
    instance_url (str): Org instance URL.
    access_token (str): OAuth access token for that org.
"""
    try:
        records = org_data.fetch_chatter_feed(_connect(instance_url, access_token))
        return create_json_response(True, records=records)
    except SalesforceError as e:
        return _salesforce_failure("fetch_chatter_feed", e)
    except Exception as e:
        logger.error("fetch_chatter_feed: %s", e, exc_info=True)
        return create_json_response(False, error=str(e))


@register_tool
def fetch_email_templates(instance_url: str, access_token: str, folder: str = "public") -> str:
    """Email templates stored in one folder.

Args:
    instance_url (str): Org instance URL.
    access_token (str): OAuth access token for that org.
    folder (str): EmailTemplate FolderName to read from.
"""
    try:
        templates = org_data.fetch_email_templates(_connect(instance_url, access_token), folder)
        return create_json_response(True, templates=templates)
    except SalesforceError as e:
        return _salesforce_failure("fetch_email_templates", e)
    except Exception as e:
        logger.error("fetch_email_templates: %s", e, exc_info=True)
        return create_json_response(False, error=str(e))


@register_tool
def fetch_org_limits(instance_url: str, access_token: str) -> str:
    """Org limits (API requests, storage, ...) as a quick health check."""
    try:
        data = org_data.fetch_org_limits(_connect(instance_url, access_token))
        return create_json_response(True, data=data)
    except SalesforceError as e:
        return _salesforce_failure("fetch_org_limits", e)
    except Exception as e:
        logger.error("fetch_org_limits: %s", e, exc_info=True)
        return create_json_response(False, error=str(e))
