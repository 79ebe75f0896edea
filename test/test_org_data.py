import pytest
import responses

from conftest import TOOLING_URL
from sfdash.services import org_data
from sfdash.services.salesforce import Credentials, ToolingGateway, soql_quote


class FakeSalesforce:
    def __init__(self, records):
        self.records = records
        self.queries = []

    def query(self, soql):
        self.queries.append(soql)
        return {"totalSize": len(self.records), "done": True, "records": self.records}


@pytest.fixture
def gateway(credentials):
    return ToolingGateway(credentials)


def test_soql_quote():
    assert soql_quote("O'Brien") == "O\\'Brien"
    assert soql_quote("a\\b") == "a\\\\b"


def test_credentials_from_payload():
    creds = Credentials.from_payload({"instanceUrl": " https://acme.my.salesforce.com/ ", "accessToken": 42})

    assert creds.instance_url == "https://acme.my.salesforce.com"
    assert creds.access_token == ""
    assert Credentials.from_payload("nope") is None
    assert "access_token" not in repr(Credentials(instance_url="https://x", access_token="secret"))


def test_list_apex_classes_maps_fields(rsps, gateway):
    rsps.add(
        responses.GET,
        f"{TOOLING_URL}/query/",
        json={"totalSize": 2, "records": [
            {"Id": "01pA", "Name": "A", "ApiVersion": 58.0, "IsValid": True},
            {"Id": "01pB", "Name": "B", "ApiVersion": 57.0, "IsValid": False},
        ]},
    )

    data = org_data.list_apex_classes(gateway, limit=2)

    assert data["totalSize"] == 2
    assert [c["name"] for c in data["classes"]] == ["A", "B"]
    assert data["classes"][1]["isValid"] is False
    query = rsps.calls[0].request.params["q"]
    assert "ORDER BY Name ASC LIMIT 2" in query
    assert "Body," not in query


def test_list_apex_classes_without_records_field(rsps, gateway):
    rsps.add(responses.GET, f"{TOOLING_URL}/query/", json={"totalSize": 0})

    with pytest.raises(ValueError):
        org_data.list_apex_classes(gateway)


def test_tooling_failure_raises_upstream_error(rsps, gateway):
    rsps.add(responses.GET, f"{TOOLING_URL}/query/", status=400, body="MALFORMED_QUERY")

    with pytest.raises(org_data.UpstreamError) as exc_info:
        org_data.get_apex_class(gateway, "A")

    assert exc_info.value.status_code == 400
    assert exc_info.value.body == "MALFORMED_QUERY"


def test_get_apex_class_includes_body(rsps, gateway):
    rsps.add(
        responses.GET,
        f"{TOOLING_URL}/query/",
        json={"totalSize": 1, "records": [{"Id": "01pA", "Name": "A", "Body": "public class A {}"}]},
    )

    apex = org_data.get_apex_class(gateway, "A")

    assert apex["id"] == "01pA"
    assert apex["body"] == "public class A {}"


def test_fetch_users_flattens_relationships():
    sf = FakeSalesforce([{
        "Id": "005A",
        "Name": "Jane",
        "Profile": {"Name": "Standard User"},
        "UserRole": {"Name": "CEO"},
        "Manager": None,
    }])

    data = org_data.fetch_users(sf)

    user = data["users"][0]
    assert (user["profileName"], user["roleName"], user["managerName"]) == ("Standard User", "CEO", None)
    assert data["totalSize"] == 1
    assert "WHERE IsActive = true" in sf.queries[0]


def test_fetch_login_history_strips_attributes():
    sf = FakeSalesforce([{"attributes": {"type": "LoginHistory"}, "Id": "0Ya", "Status": "Success"}])

    records = org_data.fetch_login_history(sf, limit=3)

    assert records == [{"Id": "0Ya", "Status": "Success"}]
    assert sf.queries[0].endswith("ORDER BY LoginTime DESC LIMIT 3")


def test_fetch_chatter_feed_renders_body():
    sf = FakeSalesforce([
        {"attributes": {}, "Id": "0D5A", "Body": "line1\nline2", "CreatedBy": {"attributes": {}, "Name": "Jane"}},
        {"attributes": {}, "Id": "0D5B", "Body": None},
    ])

    records = org_data.fetch_chatter_feed(sf)

    assert records[0]["BodyHtml"] == "line1<br>line2"
    assert records[0]["CreatedBy"] == {"Name": "Jane"}
    assert records[1]["BodyHtml"] == ""


def test_fetch_email_templates_quotes_folder():
    sf = FakeSalesforce([{"Id": "00X", "Name": "Hi", "Subject": "S", "HtmlValue": "<p/>", "FolderId": "00l"}])

    templates = org_data.fetch_email_templates(sf, "Bob's")

    assert templates == [{"id": "00X", "name": "Hi", "subject": "S", "htmlContent": "<p/>", "folderId": "00l"}]
    assert "FolderName = 'Bob\\'s'" in sf.queries[0]
