"""Single-request wrappers around Tooling and data API queries used by the dashboard."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from simple_salesforce import Salesforce

from sfdash.config import APEX_CLASS_LIST_LIMIT, LOGIN_HISTORY_DEFAULT_LIMIT, LOGIN_HISTORY_SINCE
from sfdash.services.chatter import format_chatter_content
from sfdash.services.salesforce import ToolingGateway, soql_quote

logger = logging.getLogger(__name__)

APEX_CLASS_FIELDS = (
    "Id, Name, ApiVersion, Status, NamespacePrefix, LengthWithoutComments, "
    "BodyCrc, IsValid, CreatedDate, LastModifiedDate"
)


class UpstreamError(Exception):
    """Salesforce answered a query with a non-2xx status."""

    def __init__(self, status_code: int, body: str, reason: str = ""):
        super().__init__(f"Salesforce returned {status_code} {reason}".strip())
        self.status_code = status_code
        self.body = body
        self.reason = reason


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _strip_attributes(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    for record in records:
        record.pop("attributes", None)
        for value in record.values():
            if isinstance(value, dict):
                value.pop("attributes", None)
    return records


def _tooling_records(gateway: ToolingGateway, soql: str) -> Dict[str, Any]:
    resp = gateway.query(soql)
    if not resp.ok:
        logger.warning("Tooling query failed: %s %s", resp.status_code, resp.text)
        raise UpstreamError(resp.status_code, resp.text, resp.reason or "")
    return resp.json()


def _apex_class_summary(record: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": record.get("Id"),
        "name": record.get("Name"),
        "apiVersion": record.get("ApiVersion"),
        "status": record.get("Status"),
        "namespacePrefix": record.get("NamespacePrefix"),
        "lengthWithoutComments": record.get("LengthWithoutComments"),
        "bodyCrc": record.get("BodyCrc"),
        "isValid": record.get("IsValid"),
        "createdDate": record.get("CreatedDate"),
        "lastModifiedDate": record.get("LastModifiedDate"),
    }


def list_apex_classes(gateway: ToolingGateway, limit: int = APEX_CLASS_LIST_LIMIT) -> Dict[str, Any]:
    """Apex classes ordered by name, without bodies."""
    data = _tooling_records(
        gateway, f"SELECT {APEX_CLASS_FIELDS} FROM ApexClass ORDER BY Name ASC LIMIT {int(limit)}"
    )
    if "records" not in data:
        raise ValueError("No records field in response")
    return {
        "classes": [_apex_class_summary(r) for r in data["records"]],
        "totalSize": data.get("totalSize", len(data["records"])),
    }


def get_apex_class(gateway: ToolingGateway, class_name: str) -> Optional[Dict[str, Any]]:
    """One Apex class with its body, or None when no class has that Name."""
    data = _tooling_records(
        gateway,
        f"SELECT {APEX_CLASS_FIELDS}, Body FROM ApexClass WHERE Name = '{soql_quote(class_name)}' LIMIT 1",
    )
    records = data.get("records") or []
    if not records:
        return None
    summary = _apex_class_summary(records[0])
    summary["body"] = records[0].get("Body")
    return summary


def fetch_users(sf: Salesforce) -> Dict[str, Any]:
    """Active users ordered by last name."""
    result = sf.query(
        "SELECT Id, Name, Username, Email, Alias, FirstName, LastName, Title, Department, "
        "Profile.Name, UserRole.Name, ManagerId, Manager.Name, CreatedDate, LastLoginDate, "
        "IsActive, TimeZoneSidKey, LocaleSidKey, EmailEncodingKey, LanguageLocaleKey, "
        "UserType, UserRoleId FROM User WHERE IsActive = true ORDER BY LastName"
    )
    users = []
    for user in result.get("records", []):
        users.append({
            "id": user.get("Id"),
            "name": user.get("Name"),
            "username": user.get("Username"),
            "email": user.get("Email"),
            "alias": user.get("Alias"),
            "firstName": user.get("FirstName"),
            "lastName": user.get("LastName"),
            "title": user.get("Title"),
            "department": user.get("Department"),
            "profileName": (user.get("Profile") or {}).get("Name"),
            "roleName": (user.get("UserRole") or {}).get("Name"),
            "managerId": user.get("ManagerId"),
            "managerName": (user.get("Manager") or {}).get("Name"),
            "createdDate": user.get("CreatedDate"),
            "lastLoginDate": user.get("LastLoginDate"),
            "isActive": user.get("IsActive"),
            "timeZoneSidKey": user.get("TimeZoneSidKey"),
            "localeSidKey": user.get("LocaleSidKey"),
            "emailEncodingKey": user.get("EmailEncodingKey"),
            "languageLocaleKey": user.get("LanguageLocaleKey"),
            "userType": user.get("UserType"),
            "userRoleId": user.get("UserRoleId"),
        })
    return {"users": users, "totalSize": result.get("totalSize", len(users))}


def fetch_login_history(sf: Salesforce, limit: int = LOGIN_HISTORY_DEFAULT_LIMIT) -> List[Dict[str, Any]]:
    result = sf.query(
        "SELECT Id, UserId, LoginTime, SourceIp, LoginType, Status, Browser, LoginUrl "
        f"FROM LoginHistory WHERE LoginTime >= {LOGIN_HISTORY_SINCE} "
        f"ORDER BY LoginTime DESC LIMIT {int(limit)}"
    )
    return _strip_attributes(result.get("records", []))


def fetch_chatter_feed(sf: Salesforce) -> List[Dict[str, Any]]:
    result = sf.query(
        "SELECT Id, Body, CreatedBy.Name, CreatedDate, BestCommentId, CommentCount, Title, "
        "Type, Status, LinkUrl, LikeCount FROM FeedItem ORDER BY CreatedDate DESC"
    )
    records = _strip_attributes(result.get("records", []))
    for record in records:
        record["BodyHtml"] = format_chatter_content(record.get("Body"))
    return records


def fetch_email_templates(sf: Salesforce, folder: str = "public") -> List[Dict[str, Any]]:
    result = sf.query(
        "SELECT Id, Name, Subject, HtmlValue, FolderId FROM EmailTemplate "
        f"WHERE FolderName = '{soql_quote(folder)}' ORDER BY Name ASC"
    )
    return [
        {
            "id": r.get("Id"),
            "name": r.get("Name"),
            "subject": r.get("Subject"),
            "htmlContent": r.get("HtmlValue"),
            "folderId": r.get("FolderId"),
        }
        for r in result.get("records", [])
    ]


def fetch_org_limits(sf: Salesforce) -> Dict[str, Any]:
    """Org limits, used by the dashboard as a health probe."""
    return sf.limits()
