"""HTTP prompt fetcher

Overview
--------
Thin async HTTP implementation of :class:`~prompt_engine.prompt.base.PromptFetcher`
for the remote prompt service. It only moves decoded JSON around; version
selection and payload normalization are done by the resolver.

Endpoints
---------
- ``GET /prompts/types``: prompt catalog with the minor versions of every
  major version; used to build candidate sets.
- ``GET /apps/{app_id}/prompts/{prompt_id}/major/{major}/minor/{minor}``:
  payload of one prompt version (``major`` is ``undeployed`` for undeployed
  revisions, with the revision id as ``minor``).
- ``POST /apps/{app_id}/prompts/{prompt_id}/revisions/{revision_id}/validate``:
  checks that a CI revision override is compatible with a major version and
  returns its payload (HTTP 409 when it is not).

Authentication
--------------
Requests carry ``Authorization: Bearer <api key>``. The key is passed
explicitly or read from ``PROMPT_ENGINE_API_KEY``.

Errors
------
HTTP status and transport failures are raised as ``FetchError`` carrying the
status code and response body where applicable. Bodies that are not JSON
raise ``SchemaError``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote

import httpx

from prompt_engine import __version__
from prompt_engine.core.config import API_KEY_ENV_VAR, DEFAULT_API_ENDPOINT, PromptEngineSettings

from ..errors import FetchError, RevisionOverrideError, SchemaError
from ..models import LATEST, UNDEPLOYED_VERSION, CandidateSet, Revision


def _seg(value: str) -> str:
    return quote(str(value), safe="")


class HttpPromptFetcher:
    """Fetch prompt candidates and payloads from the remote prompt service.

    The fetcher owns its ``httpx.AsyncClient`` unless one is injected; call
    :meth:`aclose` to release an owned client.
    """

    def __init__(
        self,
        app_id: str,
        *,
        api_key: Optional[str] = None,
        endpoint: str = DEFAULT_API_ENDPOINT,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Create an HTTP fetcher.

        Args:
            app_id: Identifier of the application that owns the prompts.
            api_key: API key sent as Bearer token.
            endpoint: Base URL of the prompt service.
            timeout: Default HTTP timeout for the internal client.
            client: Optional preconfigured ``httpx.AsyncClient`` to use.

        Raises:
            ValueError: If ``app_id`` or ``api_key`` is missing.
        """
        if not app_id:
            raise ValueError("You must pass in the application id via 'app_id' or set 'PROMPT_ENGINE_APP_ID'.")
        if not api_key:
            raise ValueError(
                f"You must either pass in the API key via 'api_key' or set the '{API_KEY_ENV_VAR}' environment variable."
            )
        self.app_id = app_id
        self.base_url = endpoint.rstrip("/")
        self._api_key = api_key
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._logger = logging.getLogger(__name__)

    @classmethod
    def from_settings(cls, settings: PromptEngineSettings, *, client: Optional[httpx.AsyncClient] = None) -> "HttpPromptFetcher":
        """Build a fetcher from :class:`PromptEngineSettings`."""
        return cls(
            settings.app_id or "",
            api_key=settings.api_key,
            endpoint=settings.api_endpoint,
            client=client,
        )

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
            "X-Prompt-Engine-SDK": f"python-{__version__}",
        }

    def _prompt_url(self, prompt_id: str) -> str:
        return f"{self.base_url}/apps/{_seg(self.app_id)}/prompts/{_seg(prompt_id)}"

    async def _request(self, method: str, url: str, *, what: str, json: Optional[Any] = None) -> httpx.Response:
        try:
            r = await self._client.request(method, url, headers=self._headers(), json=json)
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(
                f"Failed to {what}: {e.response.status_code} {e.response.reason_phrase}",
                status_code=e.response.status_code,
                details=e.response.text,
            ) from e
        except httpx.HTTPError as e:
            raise FetchError(f"Failed to {what}: {type(e).__name__}") from e
        return r

    @staticmethod
    def _json(r: httpx.Response, what: str) -> Any:
        try:
            return r.json()
        except ValueError as e:
            raise SchemaError(f"Response to {what} is not JSON") from e

    async def fetch_candidates(self, prompt_id: str, major: str) -> CandidateSet:
        """Return the minor versions of ``prompt_id`` within ``major``.

        For undeployed prompts the service resolves the newest revision
        itself, so a single ``latest`` alias revision is reported without a
        request.
        """
        if major == UNDEPLOYED_VERSION:
            return CandidateSet(major=major, revisions=(Revision(id=LATEST),))

        what = f"list versions of {prompt_id}@v{major}"
        self._logger.debug("HttpPromptFetcher.fetch_candidates: GET /prompts/types prompt=%s major=%s", prompt_id, major)
        r = await self._request("GET", f"{self.base_url}/prompts/types", what=what)
        data = self._json(r, what)
        if not isinstance(data, list):
            raise SchemaError(f"Expected a list of prompt types, got {type(data).__name__}")
        return CandidateSet(major=major, minor_versions=tuple(self._minor_versions(data, prompt_id, major)))

    def _minor_versions(self, prompt_types: List[Any], prompt_id: str, major: str) -> List[str]:
        for prompt in prompt_types:
            if not isinstance(prompt, Mapping) or prompt.get("id") != prompt_id:
                continue
            if prompt.get("appId") not in (None, self.app_id):
                continue
            for version in prompt.get("majorVersions") or []:
                if isinstance(version, Mapping) and str(version.get("majorVersion")) == major:
                    return [str(minor) for minor in version.get("minorVersions") or []]
        return []

    async def fetch_prompt_version(self, prompt_id: str, major: str, minor: str) -> Mapping[str, Any]:
        """Return the raw payload of ``prompt_id`` at ``major.minor``."""
        what = f"fetch {prompt_id}@v{major}.{minor}"
        url = f"{self._prompt_url(prompt_id)}/major/{_seg(major)}/minor/{_seg(minor)}"
        self._logger.debug("HttpPromptFetcher.fetch_prompt_version: GET %s", url)
        r = await self._request("GET", url, what=what)
        data = self._json(r, what)
        if not isinstance(data, Mapping):
            raise SchemaError(f"Expected a prompt object, got {type(data).__name__}")
        return data

    async def validate_revision_override(self, prompt_id: str, revision_id: str, major: str) -> Mapping[str, Any]:
        """Validate that ``revision_id`` may override ``major`` and return its payload.

        Raises:
            RevisionOverrideError: If the service reports the revision as
                incompatible with ``major`` (HTTP 409).
        """
        what = f"validate revision {revision_id} of {prompt_id}"
        url = f"{self._prompt_url(prompt_id)}/revisions/{_seg(revision_id)}/validate"
        try:
            r = await self._request("POST", url, what=what, json={"majorVersion": int(major)})
        except FetchError as e:
            if e.status_code == 409:
                raise RevisionOverrideError(
                    f"Can't override prompt '{prompt_id}' with revision '{revision_id}' because it is not "
                    f"compatible with major version '{major}'."
                ) from e
            raise
        data = self._json(r, what)
        if not isinstance(data, Mapping):
            raise SchemaError(f"Expected a prompt object, got {type(data).__name__}")
        return data

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this fetcher created it."""
        if self._owns_client:
            await self._client.aclose()
