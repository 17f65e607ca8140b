"""Client for the change-request, team and user service."""

import logging
from typing import Any, NoReturn, Optional

import requests

from .config import ApiConfig
from .consts import TIMEOUT_HTTP_REQUEST
from .enums import ApprovalStatus, ExecutionStatus, ReviewDecision
from .errors import ApiException, ClientError
from .models import AuthResult, ChangeRequest, Comment, HistoryEntry, Team, TeamMembership, User
from .utils import sanitize

logger = logging.getLogger(__name__)


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        message = body.get("error") or body.get("message")
        if message:
            return str(message)
    return f"HTTP error! status: {response.status_code}"


def _raise_for_response(response: requests.Response, operation: str) -> NoReturn:
    """Raise ClientError for 4xx responses and ApiException for anything else."""
    status_code = response.status_code
    message = _error_message(response)
    logger.error(f"Failed to {operation}: status_code={status_code}, error={message}")
    if 400 <= status_code < 500:
        raise ClientError(message, status_code=status_code)
    raise ApiException(message, status_code=status_code)


def _handle_request_exception(exception: requests.RequestException, operation: str) -> NoReturn:
    logger.error(f"Failed to {operation}: {exception.__class__.__name__}")
    raise ApiException(f"Failed to {operation}: {exception}") from exception


class ChangeRequestClient:
    """Client for the change-request service REST API.

    Every call makes exactly one attempt. Failures raise ``ClientError`` for
    4xx responses and ``ApiException`` otherwise; nothing is retried.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: int = TIMEOUT_HTTP_REQUEST,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.http = session or requests.Session()

        logger.debug(
            f"ChangeRequestClient initialized: "
            f"base_url={self.base_url}, "
            f"token={sanitize(self.token)}, "
            f"timeout={self.timeout}"
        )

    @classmethod
    def from_config(cls, config: ApiConfig) -> "ChangeRequestClient":
        return cls(str(config.base_url), token=config.token, timeout=config.timeout)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(
        self,
        method: str,
        endpoint: str,
        operation: str,
        json: Any = None,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        url = f"{self.base_url}{endpoint}"
        logger.debug(f"{method} {url}")

        try:
            response = self.http.request(
                method,
                url,
                json=json,
                params=params,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            _handle_request_exception(e, operation)

        if not response.ok:
            _raise_for_response(response, operation)

        try:
            return response.json()
        except ValueError as e:
            raise ApiException(f"Failed to {operation}: response is not JSON") from e

    # ==================== Auth ====================

    def register(self, username: str, email: str, password: str) -> AuthResult:
        data = self._request(
            "POST",
            "/auth/register",
            "register",
            json={"username": username, "email": email, "password": password},
        )
        result = AuthResult.model_validate(data)
        self.token = result.token
        return result

    def login(self, username: str, password: str) -> AuthResult:
        data = self._request(
            "POST",
            "/auth/login",
            "log in",
            json={"username": username, "password": password},
        )
        result = AuthResult.model_validate(data)
        self.token = result.token
        logger.info(f"Logged in as {result.user.username}")
        return result

    def get_current_user(self) -> User:
        return User.model_validate(self._request("GET", "/auth/me", "fetch current user"))

    def logout(self) -> None:
        self.token = None

    # ==================== Change requests ====================

    def list_change_requests(
        self,
        approval_status: ApprovalStatus | str | None = None,
        execution_status: ExecutionStatus | str | None = None,
        team_id: int | None = None,
        user_id: int | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> list[ChangeRequest]:
        params = {
            "approval_status": _enum_value(approval_status),
            "execution_status": _enum_value(execution_status),
            "team_id": team_id,
            "user_id": user_id,
            "page": page,
            "limit": limit,
        }
        params = {k: v for k, v in params.items() if v}
        data = self._request("GET", "/change-requests", "list change requests", params=params)
        return [ChangeRequest.model_validate(item) for item in data or []]

    def get_change_request(self, cr_id: int) -> ChangeRequest:
        data = self._request("GET", f"/change-requests/{cr_id}", "load change request")
        return ChangeRequest.model_validate(data)

    def create_change_request(self, title: str, payload: str, team_id: int) -> ChangeRequest:
        data = self._request(
            "POST",
            "/change-requests",
            "create change request",
            json={
                "title": title,
                "config_changes_payload": payload,
                "requester_team_id": team_id,
            },
        )
        change_request = ChangeRequest.model_validate(data)
        logger.info(f"Created change request #{change_request.cr_id}: {title}")
        return change_request

    def update_change_request(self, cr_id: int, title: str, payload: str) -> ChangeRequest:
        data = self._request(
            "PUT",
            f"/change-requests/{cr_id}",
            "update change request",
            json={"title": title, "config_changes_payload": payload},
        )
        logger.info(f"Updated change request #{cr_id}")
        return ChangeRequest.model_validate(data)

    def review_change_request(self, cr_id: int, decision: ReviewDecision | str) -> ChangeRequest:
        data = self._request(
            "POST",
            f"/change-requests/{cr_id}/review",
            "review change request",
            json={"review_decision": _enum_value(decision)},
        )
        return ChangeRequest.model_validate(data)

    def update_execution_status(self, cr_id: int, status: ExecutionStatus | str) -> ChangeRequest:
        data = self._request(
            "PUT",
            f"/change-requests/{cr_id}/execution-status",
            "update execution status",
            json={"execution_status": _enum_value(status)},
        )
        return ChangeRequest.model_validate(data)

    def add_comment(self, cr_id: int, text: str) -> Comment:
        data = self._request(
            "POST",
            f"/change-requests/{cr_id}/comments",
            "add comment",
            json={"comment_text": text},
        )
        return Comment.model_validate(data)

    def get_comments(self, cr_id: int) -> list[Comment]:
        data = self._request("GET", f"/change-requests/{cr_id}/comments", "load comments")
        return [Comment.model_validate(item) for item in data or []]

    def get_history(self, cr_id: int) -> list[HistoryEntry]:
        data = self._request("GET", f"/change-requests/{cr_id}/history", "load history")
        return [HistoryEntry.model_validate(item) for item in data or []]

    # ==================== Teams & users ====================

    def list_teams(self) -> list[Team]:
        return [Team.model_validate(item) for item in self._request("GET", "/teams", "list teams") or []]

    def get_my_teams(self) -> list[Team]:
        data = self._request("GET", "/teams/my-teams", "list my teams")
        return [Team.model_validate(item) for item in data or []]

    def get_team(self, team_id: int) -> Team:
        return Team.model_validate(self._request("GET", f"/teams/{team_id}", "load team"))

    def create_team(self, name: str) -> Team:
        data = self._request("POST", "/teams", "create team", json={"name": name})
        return Team.model_validate(data)

    def add_team_member(self, team_id: int, user_id: int) -> TeamMembership:
        data = self._request(
            "POST",
            f"/teams/{team_id}/members",
            "add team member",
            json={"user_id": user_id},
        )
        return TeamMembership.model_validate(data)

    def remove_team_member(self, team_id: int, user_id: int) -> None:
        self._request("DELETE", f"/teams/{team_id}/members/{user_id}", "remove team member")

    def list_users(self) -> list[User]:
        return [User.model_validate(item) for item in self._request("GET", "/users", "list users") or []]


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)
