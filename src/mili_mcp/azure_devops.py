"""Azure DevOps pull-request creation over the REST API.

Only one call is supported: ``POST git/repositories/{id}/pullrequests``.
No retries; a failure is reported once.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Any, Literal
from urllib.parse import quote

import httpx

from mili_mcp.config import ServerConfig

logger = logging.getLogger(__name__)

AuthType = Literal["bearer", "pat"]

DEFAULT_TARGET_BRANCH = "develop"
_TIMEOUT_SECONDS = 30.0

# Known repository names mapped to their Azure DevOps repository IDs.
REPOSITORY_IDS: dict[str, str] = {
    "Mili Paco": "02941a9a-1897-4542-a075-72be67518b99",
    "cxcBack": "95754590-b8ae-442c-bad7-6c9490a0e8ea",
    "cxcFront": "78a27ae9-582a-4fad-a72a-c89f535d4c52",
    "Mili New-Back": "4f5ee3ce-2b3a-4c7d-b9dc-8dccad38787e",
    "Mili_Company_PG": "99101cf4-cba3-460f-9b83-49e113d30312",
    "MILI_LEGACY_APP_CLIENT": "1e0c8682-f7cc-415f-97e7-cc67bdca57d5",
    "Mili_seller": "6b3fb8fa-6430-401c-8460-91034c522bed",
    "MiliBackJuridico": "0f2f537d-468c-4dba-a793-449f961269a7",
    "MiliFrontJuridico": "f5a4d5a2-382d-4884-8098-ef105daec2b7",
    "Mili-Front-Next": "7a48c858-cb7c-495f-bd21-b044f565d175",
    "MiliNewBack_V2": "a71b1b27-3ef6-4aa6-8212-57b20237eb87",
    "MiliNewFront_V2": "0084cfd3-beaf-41b8-a9dd-b7a80a9de879",
    "MiliPGJuridico": "a74682b4-1df8-4591-8d07-c182631cd9cd",
}


def resolve_repository(repository: str) -> str:
    """Map a known repository name to its ID; anything else is passed through as an ID."""
    return REPOSITORY_IDS.get(repository, repository)


class PullRequestError(RuntimeError):
    """The PR request failed. ``status`` is None for transport errors."""

    def __init__(self, message: str, *, status: int | None = None, detail: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.detail = detail


@dataclass(frozen=True)
class PullRequest:
    id: int | None
    url: str | None
    raw: dict[str, Any]


def auth_headers(token: str, auth_type: AuthType = "bearer") -> dict[str, str]:
    if auth_type == "bearer":
        return {"Authorization": f"Bearer {token}"}
    encoded = base64.b64encode(f":{token}".encode()).decode("ascii")
    return {"Authorization": f"Basic {encoded}"}


class AzureDevOpsClient:
    """Thin async client scoped to one organization/project."""

    def __init__(
        self,
        organization: str,
        project: str,
        token: str,
        *,
        auth_type: AuthType = "bearer",
        api_version: str = "7.1",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.organization = organization
        self.project = project
        self.base_url = f"https://dev.azure.com/{quote(organization)}/{quote(project)}/_apis/"
        self._headers = {"Content-Type": "application/json", **auth_headers(token, auth_type)}
        self._params = {"api-version": api_version}
        self._transport = transport

    @classmethod
    def from_config(cls, config: ServerConfig, *, transport: httpx.AsyncBaseTransport | None = None) -> AzureDevOpsClient:
        if not config.azure_token:
            msg = "AZURE_DEVOPS_TOKEN or AZURE_PAT environment variable not set"
            raise ValueError(msg)
        return cls(
            config.azure_organization,
            config.azure_project,
            config.azure_token,
            api_version=config.azure_api_version,
            transport=transport,
        )

    async def create_pull_request(
        self,
        repository: str,
        source_branch: str,
        title: str,
        *,
        target_branch: str = DEFAULT_TARGET_BRANCH,
        description: str = "",
    ) -> PullRequest:
        repo_id = resolve_repository(repository)
        body = {
            "sourceRefName": f"refs/heads/{source_branch}",
            "targetRefName": f"refs/heads/{target_branch}",
            "title": title,
            "description": description,
        }
        url = f"git/repositories/{quote(repo_id, safe='')}/pullrequests"
        async with httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers,
            params=self._params,
            timeout=_TIMEOUT_SECONDS,
            transport=self._transport,
        ) as client:
            try:
                response = await client.post(url, json=body)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                detail = _response_detail(exc.response)
                msg = f"Azure DevOps returned HTTP {exc.response.status_code}"
                raise PullRequestError(msg, status=exc.response.status_code, detail=detail) from exc
            except httpx.TransportError as exc:
                msg = f"Could not reach Azure DevOps: {exc}"
                raise PullRequestError(msg) from exc

        data = response.json()
        logger.info("Created pull request %s in %s", data.get("pullRequestId"), repo_id)
        return PullRequest(id=data.get("pullRequestId"), url=data.get("url"), raw=data)


def _response_detail(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text
