"""Client for the process-configuration persistence API."""

import logging
from typing import Any, Dict, List, Optional

import requests

from .config import Settings
from .exceptions import ProcessServiceError

logger = logging.getLogger(__name__)

PROCESS_TYPES = ("BUSINESS_PROCESS", "EVENT_CORRELATION", "DATA_FLOW")
DEFAULT_PROCESS_TYPE = "BUSINESS_PROCESS"
DEFAULT_EXECUTION_MODE = "SEQUENTIAL"

FLOW_TAGS = ["flow-builder", "business-process"]


def convert_flow_to_process(flow: Dict[str, Any], name: str, description: str = "") -> Dict[str, Any]:
    """Wrap an editor graph as a process document ready to save."""
    return {
        "name": name,
        "description": description,
        "nodes": list(flow.get("nodes") or []),
        "edges": list(flow.get("edges") or []),
        "tags": list(FLOW_TAGS),
        "category": "automated",
    }


def convert_process_to_flow(process: Dict[str, Any]) -> Dict[str, Any]:
    """Extract the editor graph from a stored process document."""
    return {
        "nodes": process.get("nodes") or [],
        "edges": process.get("edges") or [],
        "metadata": process.get("metadata") or {},
    }


def build_payload(
    process: Dict[str, Any],
    process_type: str = DEFAULT_PROCESS_TYPE,
    updated: bool = False
) -> Dict[str, Any]:
    """
    Build the request body for create/update calls.

    Args:
        process: Process document with name, description, nodes, edges and
            optional tags, category and metadata
        process_type: One of PROCESS_TYPES
        updated: True for an update, which records updatedBy and keeps the
            stored version

    Returns:
        JSON-serialisable request body
    """
    if process_type not in PROCESS_TYPES:
        raise ValueError(f"Unknown process type {process_type!r}; expected one of {PROCESS_TYPES}")

    metadata = {
        "version": "1.0",
        "tags": list(process.get("tags") or []),
        "category": process.get("category") or "general",
    }
    if updated:
        metadata["version"] = (process.get("metadata") or {}).get("version") or "1.0"
        metadata["updatedBy"] = "user"
    else:
        metadata["createdBy"] = "user"

    return {
        "name": process.get("name", ""),
        "description": process.get("description", ""),
        "processType": process_type,
        "executionMode": process.get("executionMode") or DEFAULT_EXECUTION_MODE,
        "nodes": process.get("nodes") or [],
        "edges": process.get("edges") or [],
        "metadata": metadata,
    }


class ProcessService:
    """CRUD calls against {base_url}/process-configs."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None
    ):
        settings = None
        if base_url is None or timeout is None:
            settings = Settings.from_env()
        self.base_url = (base_url or settings.api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.http_timeout
        self.session = session or requests.Session()

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/process-configs"

    def _request(self, method: str, url: str, action: str, **kwargs) -> requests.Response:
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"Failed to {action}: {e}")
            raise ProcessServiceError(f"Failed to {action}: {e}") from e

        if not 200 <= response.status_code < 300:
            logger.error(f"Failed to {action}: HTTP {response.status_code} {response.reason}")
            raise ProcessServiceError(
                f"Failed to {action}: {response.reason or response.status_code}",
                status_code=response.status_code,
            )
        return response

    def save_process(self, process: Dict[str, Any], process_type: str = DEFAULT_PROCESS_TYPE) -> Dict[str, Any]:
        response = self._request(
            "POST", self.endpoint, "save process",
            json=build_payload(process, process_type),
        )
        saved = response.json()
        logger.info(f"Process saved: {saved.get('id', '?') if isinstance(saved, dict) else '?'}")
        return saved

    def load_all_processes(self, process_type: str = DEFAULT_PROCESS_TYPE) -> List[Dict[str, Any]]:
        response = self._request(
            "GET", self.endpoint, "load processes",
            params={"processType": process_type},
        )
        return response.json()

    def load_process(self, process_id: str) -> Dict[str, Any]:
        response = self._request("GET", f"{self.endpoint}/{process_id}", "load process")
        return response.json()

    def update_process(
        self,
        process_id: str,
        process: Dict[str, Any],
        process_type: str = DEFAULT_PROCESS_TYPE
    ) -> Dict[str, Any]:
        response = self._request(
            "PUT", f"{self.endpoint}/{process_id}", "update process",
            json=build_payload(process, process_type, updated=True),
        )
        return response.json()

    def delete_process(self, process_id: str) -> bool:
        self._request("DELETE", f"{self.endpoint}/{process_id}", "delete process")
        logger.info(f"Process deleted: {process_id}")
        return True
