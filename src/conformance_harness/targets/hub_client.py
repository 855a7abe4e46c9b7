"""Minimal JSON client for the hub REST API."""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Dict, List, Mapping, Optional

from ..errors import HubRequestError

logger = logging.getLogger(__name__)


class HubClient:
    """Issue authenticated JSON requests against a hub base URL.

    A bearer ``token`` is used as-is; otherwise ``username``/``password`` are
    exchanged once for a token via ``POST /auth/login``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str = "",
        username: str = "",
        password: str = "",
        timeout: float = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._token = token
        self._username = username
        self._password = password

    # Applications ------------------------------------------------------------
    def create_application(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/applications", payload)

    def delete_application(self, application_id: int) -> None:
        self._request("DELETE", f"/applications/{application_id}")

    def get_analysis(self, application_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/applications/{application_id}/analysis") or {}

    def get_tags(self, application_id: int) -> List[Dict[str, Any]]:
        return self._request("GET", f"/applications/{application_id}/tags") or []

    # Identities --------------------------------------------------------------
    def create_identity(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/identities", payload)

    def delete_identity(self, identity_id: int) -> None:
        self._request("DELETE", f"/identities/{identity_id}")

    # Tasks -------------------------------------------------------------------
    def create_task(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/tasks", payload)

    def get_task(self, task_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/tasks/{task_id}")

    def cancel_task(self, task_id: int) -> None:
        self._request("PUT", f"/tasks/{task_id}/cancel")

    # ------------------------------------------------------------------
    def _authorization(self) -> Optional[str]:
        if not self._token and self._username:
            response = self._send(
                "POST",
                "/auth/login",
                {"user": self._username, "password": self._password},
                authorization=None,
            )
            token = (response or {}).get("token")
            if not token:
                raise HubRequestError("hub login did not return a token")
            self._token = str(token)
        return f"Bearer {self._token}" if self._token else None

    def _request(self, method: str, path: str, payload: Mapping[str, Any] | None = None) -> Any:
        return self._send(method, path, payload, authorization=self._authorization())

    def _send(
        self,
        method: str,
        path: str,
        payload: Mapping[str, Any] | None,
        *,
        authorization: Optional[str],
    ) -> Any:
        url = urllib.parse.urljoin(self.base_url + "/", path.lstrip("/"))
        body = json.dumps(payload).encode("utf-8") if payload is not None else None

        request = urllib.request.Request(url, data=body, method=method)
        request.add_header("Accept", "application/json")
        if body is not None:
            request.add_header("Content-Type", "application/json")
        if authorization:
            request.add_header("Authorization", authorization)

        logger.debug("Hub request method=%s url=%s", method, url)
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                raw = response.read().decode("utf-8", errors="replace")
        except urllib.error.HTTPError as exc:
            message = f"hub request {method} {path} failed with status {exc.code}"
            detail = exc.read().decode("utf-8", errors="replace").strip() if exc.fp else ""
            if detail:
                message += f": {detail}"
            raise HubRequestError(message, status=exc.code) from exc
        except (urllib.error.URLError, TimeoutError) as exc:
            raise HubRequestError(f"hub request {method} {path} failed: {exc}") from exc

        if not raw.strip():
            return None

        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise HubRequestError(f"hub response for {method} {path} was not valid JSON") from exc


__all__ = ["HubClient"]
