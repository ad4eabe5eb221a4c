import threading
import requests

from typing import Optional
from urllib.parse import quote

from kafka_connect_exporter.structs import ConnectorStatus, ConnectorTask

DEFAULT_TIMEOUT = 5.0


class FetchError(Exception):
    """Base error for a failed call to a Kafka Connect REST endpoint."""

    def __init__(self, endpoint: str, url: str, message: str):
        super().__init__(f"{url}: {message}")
        self.endpoint = endpoint
        self.url = url


class ConnectRequestError(FetchError):
    """The request did not complete: connection, DNS, timeout or HTTP status."""


class MalformedResponseError(FetchError):
    """The response body is not the JSON shape Kafka Connect documents."""


class ConnectFetcher:
    """Reads connector listings and connector statuses from Kafka Connect.

    The fetcher neither retries nor logs; failures are raised as FetchError
    subclasses and handled by the caller.

    Without an explicit session each thread (Flask request threads and scrape
    workers) gets its own requests.Session, since sessions are not documented
    as thread-safe.
    """

    def __init__(self, session: requests.Session = None, timeout: float = DEFAULT_TIMEOUT):
        self._session = session
        self._local = threading.local()
        self.timeout = timeout

    @property
    def session(self) -> requests.Session:
        if self._session is not None:
            return self._session
        session = getattr(self._local, 'session', None)
        if session is None:
            session = self._local.session = requests.Session()
        return session

    def list_connectors(self, endpoint: str, timeout: Optional[float] = None) -> list[str]:
        """Fetches the names of all connectors registered on the endpoint."""
        url = f"http://{endpoint}/connectors"
        body = self._get_json(endpoint, url, timeout)
        if not isinstance(body, list) or not all(isinstance(name, str) for name in body):
            raise MalformedResponseError(endpoint, url, "expected a JSON array of connector names")
        return body

    def fetch_status(self, endpoint: str, connector: str, timeout: Optional[float] = None) -> ConnectorStatus:
        """
        Fetches the status of one connector.
        A task without a state, or with a null one, keeps an empty state.
        """
        url = f"http://{endpoint}/connectors/{quote(connector, safe='')}/status"
        body = self._get_json(endpoint, url, timeout)
        if not isinstance(body, dict):
            raise MalformedResponseError(endpoint, url, "expected a JSON object")

        name = body.get('name', connector)
        tasks = body.get('tasks')
        if not isinstance(name, str):
            raise MalformedResponseError(endpoint, url, "'name' is not a string")
        if not isinstance(tasks, list):
            raise MalformedResponseError(endpoint, url, "'tasks' is not an array")

        status = ConnectorStatus(name=name)
        for task in tasks:
            if not isinstance(task, dict):
                raise MalformedResponseError(endpoint, url, "task entry is not an object")
            state = task.get('state')
            if state is not None and not isinstance(state, str):
                raise MalformedResponseError(endpoint, url, "task 'state' is not a string")
            status.tasks.append(ConnectorTask(state=state or ""))
        return status

    def _get_json(self, endpoint: str, url: str, timeout: Optional[float]):
        # The response is closed on every path so the connection goes back to the pool.
        try:
            with self.session.get(url, timeout=timeout or self.timeout) as resp:
                resp.raise_for_status()
                try:
                    return resp.json()
                except ValueError as e:
                    raise MalformedResponseError(endpoint, url, f"invalid JSON: {e}") from e
        except requests.RequestException as e:
            raise ConnectRequestError(endpoint, url, str(e)) from e
