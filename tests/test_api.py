import pendulum
import pytest
import requests

from zebra_core import EntityKey
from zebra_core.api import ProjectApiService, TimesheetApiService, UserApiService, ZebraClient
from zebra_core.exceptions import InvalidEntity, ZebraApiError
from zebra_core.models import Role
from zebra_core.repositories import ZebraTimesheetRepository
from zebra_core.repositories.projects import project_from_api
from zebra_core.timesheets import create_timesheet


class FakeResponse:

    def __init__(self, payload=None, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self.payload is None:
            raise ValueError("no json")
        return self.payload


class FakeSession:

    def __init__(self, *responses):
        self.headers = {}
        self.responses = list(responses)
        self.requests = []

    def request(self, method, url, params=None, timeout=None):
        self.requests.append((method, url, params))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def ok(data):
    return FakeResponse({"success": True, "data": data})


def client(*responses):
    return ZebraClient("https://zebra.test/", "secret", session=FakeSession(*responses))


class TestZebraClient:

    def test_sends_bearer_token(self):
        c = client(ok({"list": []}))
        ProjectApiService(c).fetch_all()
        assert c.session.headers["Authorization"] == "Bearer secret"
        method, url, params = c.session.requests[0]
        assert (method, url) == ("GET", "https://zebra.test/api/v2/projects")
        assert ("statuses[]", 2) in params

    def test_unsuccessful_response_is_an_error(self):
        with pytest.raises(ZebraApiError):
            client(FakeResponse({"success": False})).get("/api/v2/projects")

    def test_http_error_keeps_status(self):
        with pytest.raises(ZebraApiError) as e:
            client(FakeResponse({}, status_code=500)).get("/x")
        assert e.value.status_code == 500

    def test_connection_error(self):
        with pytest.raises(ZebraApiError):
            client(requests.ConnectionError("refused")).get("/x")

    def test_invalid_json(self):
        with pytest.raises(ZebraApiError):
            client(FakeResponse(None)).get("/x")

    def test_requires_credentials(self):
        with pytest.raises(ZebraApiError):
            ZebraClient("", "token")
        with pytest.raises(ZebraApiError):
            ZebraClient("https://zebra.test", None)


class TestServices:

    def test_timesheet_not_found_is_none(self):
        api = TimesheetApiService(client(FakeResponse({}, status_code=404)))
        assert api.fetch_by_id(3) is None

    def test_timesheet_list_filters(self):
        c = client(ok({"list": [{"id": 1}, {"id": 2}]}))
        records = TimesheetApiService(c).fetch_all({"start_date": "2025-01-15", "end_date": "2025-01-15"})
        assert [r["id"] for r in records] == [1, 2]
        assert c.session.requests[0][2] == {"start_date": "2025-01-15", "end_date": "2025-01-15"}

    def test_user_roles(self):
        c = client(ok({"user": {"id": 42}, "roles": [{"id": 7, "name": "Dev", "full_name": "Developer"}]}))
        data = UserApiService(c).fetch_by_id(42)
        assert Role.from_dict(data["roles"][0]).full_name == "Developer"

    def test_project_payload(self):
        project = project_from_api({
            "id": 100, "name": "Zebra", "status": 1,
            "activities": [{"id": 5, "name": "Dev", "alias": "dev"}],
        })
        assert project.entity_key == EntityKey.zebra(100)
        assert project.activities[0].project_key == project.entity_key
        assert project.activities[0].alias == "dev"


class FakeActivities:

    def __init__(self, *activities):
        self.by_key = {a.entity_key: a for a in activities}

    def get(self, key):
        return self.by_key.get(key)


class FakeRoles:

    def __init__(self, *roles):
        self.by_id = {r.id: r for r in roles}

    def get(self, role_id):
        return self.by_id.get(role_id)


API_RECORD = {
    "id": 900,
    "occupation_id": 1001,
    "date": "2025-01-15",
    "time": "1.75",
    "description": "ZEB-1 work",
    "client_description": "",
    "role_id": "7",
    "lu_date": "2025-01-15 13:00:00",
}


class TestZebraTimesheetRepository:

    def repository(self, zebra_activity, role, *responses):
        return ZebraTimesheetRepository(TimesheetApiService(client(*responses)),
                                        FakeActivities(zebra_activity), FakeRoles(role))

    def test_from_api(self, zebra_activity, role):
        timesheet = self.repository(zebra_activity, role).from_api(API_RECORD)
        assert timesheet.zebra_id == 900
        assert timesheet.activity == zebra_activity
        assert timesheet.time == 1.75
        assert timesheet.role == role
        assert timesheet.client_description is None
        assert timesheet.updated_at == pendulum.datetime(2025, 1, 15, 12, 0)

    def test_unknown_role_becomes_minimal_role(self, zebra_activity, role):
        timesheet = self.repository(zebra_activity, role).from_api({**API_RECORD, "role_id": 55})
        assert timesheet.role == Role(55)

    def test_missing_activity_is_invalid(self, zebra_activity, role):
        with pytest.raises(InvalidEntity):
            self.repository(zebra_activity, role).from_api({**API_RECORD, "occupation_id": 2})

    def test_create_reads_timesheet_from_response(self, zebra_activity, role):
        repository = self.repository(zebra_activity, role, ok({"timesheet": {**API_RECORD, "occupid": 1001}}))
        local = create_timesheet(zebra_activity, pendulum.date(2025, 1, 15), 1.75, "ZEB-1 work", role=role)

        created = repository.create(local)

        assert created.zebra_id == 900
        method, url, params = repository.api.client.session.requests[0]
        assert method == "POST"
        assert params["project_id"] == 100
        assert params["activity_id"] == 1001
        assert params["role_id"] == 7
        assert params["date"] == "2025-01-15"
        assert params["individual_action"] == 0

    def test_create_falls_back_to_fetching_by_id(self, zebra_activity, role):
        repository = self.repository(zebra_activity, role, ok({"id": 900}), ok(API_RECORD))
        local = create_timesheet(zebra_activity, pendulum.date(2025, 1, 15), 1.75, "ZEB-1 work", role=role)
        assert repository.create(local).zebra_id == 900

    def test_create_falls_through_unreadable_timesheet(self, zebra_activity, role):
        repository = self.repository(zebra_activity, role,
                                     ok({"timesheet": {**API_RECORD, "occupid": 2}, "id": 900}), ok(API_RECORD))
        local = create_timesheet(zebra_activity, pendulum.date(2025, 1, 15), 1.75, "ZEB-1 work", role=role)
        assert repository.create(local).zebra_id == 900
        assert [r[0] for r in repository.api.client.session.requests] == ["POST", "GET"]

    def test_unreadable_record_counts_as_not_found(self, zebra_activity, role):
        repository = self.repository(zebra_activity, role, ok({**API_RECORD, "occupation_id": 2}))
        assert repository.get_by_zebra_id(900) is None

    def test_strict_lookup_raises_for_unreadable_record(self, zebra_activity, role):
        repository = self.repository(zebra_activity, role, ok({**API_RECORD, "occupation_id": 2}))
        with pytest.raises(InvalidEntity):
            repository.get_by_zebra_id(900, strict=True)

    def test_date_range_skips_unreadable_records(self, zebra_activity, role):
        records = [{**API_RECORD, "id": 901, "time": "1.3"}, {**API_RECORD, "id": 902, "occupation_id": 2},
                   API_RECORD]
        repository = self.repository(zebra_activity, role, ok({"list": records}))
        day = pendulum.date(2025, 1, 15)
        assert [t.zebra_id for t in repository.get_by_date_range(day, day)] == [900]

    def test_update_refetches(self, zebra_activity, role):
        repository = self.repository(zebra_activity, role, ok({}), ok(API_RECORD))
        local = create_timesheet(zebra_activity, pendulum.date(2025, 1, 15), 1.75, role=role).with_changes(
            zebra_id=900)
        assert repository.update(local).zebra_id == 900
        assert [r[0] for r in repository.api.client.session.requests] == ["PUT", "GET"]

    def test_delete_asks_for_confirmation(self, zebra_activity, role):
        repository = self.repository(zebra_activity, role, ok({}))
        assert not repository.delete(900, lambda zebra_id: False)
        assert repository.delete(900, lambda zebra_id: True)
