"""
Thin client for the Zebra REST API. Every call is blocking; failures are
reported as ZebraApiError and never retried here.
"""
import logging

import requests

from typing import Any, Dict, List, Optional

from zebra_core.exceptions import ZebraApiError

logger = logging.getLogger(__name__)


class ZebraClient:

    def __init__(self, base_uri: str, token: str, timeout: float = 30.0,
                 session: Optional[requests.Session] = None):
        if not base_uri:
            raise ZebraApiError("No Zebra base URI configured. Set zebra.base_uri or ZEBRA_BASE_URI.")
        if not token:
            raise ZebraApiError("No Zebra token configured. Set zebra.token or ZEBRA_TOKEN.")
        self.base_uri = base_uri.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        })

    def request(self, method: str, path: str, params: Any = None) -> Dict[str, Any]:
        url = f"{self.base_uri}{path}"
        logger.debug("%s %s %s", method, url, params or "")
        try:
            response = self.session.request(method, url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise ZebraApiError(f"Request to Zebra failed: {e}")

        if response.status_code == 404:
            raise ZebraApiError(f"Not found: {path}", status_code=404)
        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise ZebraApiError(f"Zebra API error: {e}", status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise ZebraApiError(f"Failed to decode JSON response from Zebra API: {e}",
                                status_code=response.status_code)

        if not isinstance(data, dict) or data.get("success") is not True:
            message = data.get("message") if isinstance(data, dict) else None
            raise ZebraApiError(f"Zebra API request was not successful{': ' + message if message else ''}",
                                status_code=response.status_code)
        return data

    def get(self, path: str, params: Any = None) -> Dict[str, Any]:
        return self.request("GET", path, params)

    def post(self, path: str, params: Any = None) -> Dict[str, Any]:
        return self.request("POST", path, params)

    def put(self, path: str, params: Any = None) -> Dict[str, Any]:
        return self.request("PUT", path, params)

    def delete(self, path: str) -> Dict[str, Any]:
        return self.request("DELETE", path)


def _list_of(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    items = (data.get("data") or {}).get("list") or []
    if isinstance(items, dict):
        items = list(items.values())
    return items


def _query_params(fields: Dict[str, Any]) -> Dict[str, Any]:
    params = {}
    for key, value in fields.items():
        if isinstance(value, (list, tuple)):
            params[f"{key}[]"] = list(value)
        elif isinstance(value, bool):
            params[key] = int(value)
        elif value is not None:
            params[key] = value
    return params


class ProjectApiService:
    # Inactive, active and other projects.
    PATH = "/api/v2/projects"
    STATUSES = [("statuses[]", 0), ("statuses[]", 1), ("statuses[]", 2)]

    def __init__(self, client: ZebraClient):
        self.client = client

    def fetch_all(self) -> List[Dict[str, Any]]:
        return _list_of(self.client.get(self.PATH, self.STATUSES))


class UserApiService:
    PATH = "/api/v2/users"

    def __init__(self, client: ZebraClient):
        self.client = client

    def fetch_by_id(self, user_id: int) -> Dict[str, Any]:
        data = self.client.get(f"{self.PATH}/{user_id}").get("data") or {}
        if not isinstance(data.get("user"), dict):
            raise ZebraApiError("User data not found in API response")
        return data


class TimesheetApiService:
    PATH = "/api/v2/timesheets"

    def __init__(self, client: ZebraClient):
        self.client = client

    def fetch_all(self, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        return _list_of(self.client.get(self.PATH, _query_params(filters)))

    def fetch_by_id(self, zebra_id: int) -> Optional[Dict[str, Any]]:
        """Returns None when Zebra has no timesheet with this id."""
        try:
            data = self.client.get(f"{self.PATH}/{zebra_id}")
        except ZebraApiError as e:
            if e.status_code == 404:
                return None
            raise
        timesheet = data.get("data")
        if not isinstance(timesheet, dict):
            raise ZebraApiError("Timesheet data not found in API response")
        return timesheet

    def create(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.post(self.PATH, _query_params(fields))

    def update(self, zebra_id: int, fields: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.put(f"{self.PATH}/{zebra_id}", _query_params(fields))

    def delete(self, zebra_id: int) -> Dict[str, Any]:
        return self.client.delete(f"{self.PATH}/{zebra_id}")
