"""Knowledge-base client for the MediaWiki action API with Wikibase extensions.

``RemoteStore`` is the interface the ingestion core depends on;
``WikibaseClient`` implements it over HTTP and ``InMemoryStore``
(``edukb.wikibase.memory``) implements it for tests and dry runs.

No retry policy: transport failures surface as ``RemoteUnavailableError`` and
the caller decides.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

import httpx

from edukb.utils import AuthExpiredError, RemoteStoreError, RemoteUnavailableError
from edukb.wikibase.models import Statement

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 30.0
_DEFAULT_USER_AGENT = "edukb/0.1 (school data loader)"
_SEARCH_LIMIT = 50

# API error codes that mean the session or token is no longer usable
_AUTH_ERROR_CODES = frozenset({"badtoken", "notloggedin", "assertuserfailed", "assertbotfailed"})


class RemoteStore(Protocol):
    """Operations the ingestion core needs from a knowledge base."""

    def find_entity_ids(self, label: str, kind: str = "item") -> list[str]: ...

    def find_entity_id(self, label: str, kind: str = "item") -> str | None: ...

    def create_entity(
        self,
        label: str,
        description: str = "",
        *,
        kind: str = "item",
        datatype: str | None = None,
    ) -> str: ...

    def add_alias(self, entity_id: str, alias: str) -> None: ...

    def get_statements(self, subject_id: str, property_id: str | None = None) -> list[Statement]: ...

    def create_statement(self, subject_id: str, property_id: str, value: Any) -> str: ...

    def add_qualifier(self, statement_id: str, property_id: str, value: Any) -> None: ...


def _snak_value(snak: dict[str, Any]) -> Any:
    if snak.get("snaktype") != "value":
        return None
    return snak.get("datavalue", {}).get("value")


def parse_claim(claim: dict[str, Any]) -> Statement:
    """Convert a ``wbgetclaims`` claim object into a ``Statement``."""
    mainsnak = claim.get("mainsnak", {})
    qualifiers = {
        pid: [_snak_value(snak) for snak in snaks]
        for pid, snaks in claim.get("qualifiers", {}).items()
    }
    return Statement(
        id=claim["id"],
        property_id=mainsnak.get("property", ""),
        value=_snak_value(mainsnak),
        qualifiers=qualifiers,
    )


class WikibaseClient:
    """Synchronous Wikibase API client on one ``httpx.Client`` session.

    The session cookie jar carries the login; the CSRF token is fetched once
    after login and reused for every write.
    """

    def __init__(
        self,
        api_url: str,
        username: str = "",
        password: str = "",
        *,
        language: str = "es",
        timeout: float = _DEFAULT_TIMEOUT,
        user_agent: str = _DEFAULT_USER_AGENT,
    ) -> None:
        self.api_url = api_url
        self.username = username
        self.password = password
        self.language = language
        self._http = httpx.Client(
            timeout=timeout,
            headers={"User-Agent": user_agent},
            follow_redirects=True,
        )
        self._csrf_token: str | None = None
        self._logged_in = False

    @classmethod
    def from_settings(cls, settings, **overrides: Any) -> "WikibaseClient":
        """Build a client from ``EduKBSettings``; keyword overrides win."""
        kwargs: dict[str, Any] = {
            "api_url": settings.api_url,
            "username": settings.username,
            "password": settings.password,
            "language": settings.language,
            "timeout": settings.timeout,
            "user_agent": settings.user_agent,
        }
        kwargs.update({k: v for k, v in overrides.items() if v})
        return cls(**kwargs)

    # -- Session ---------------------------------------------------------------

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "WikibaseClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def login(self) -> None:
        """Log in with the configured bot credentials.

        Raises:
            AuthExpiredError: if the credentials are rejected.
        """
        token = self._token("login")
        payload = self._request("POST", {
            "action": "login",
            "lgname": self.username,
            "lgpassword": self.password,
            "lgtoken": token,
        })
        result = payload.get("login", {})
        if result.get("result") != "Success":
            raise AuthExpiredError(
                f"Login failed for {self.username!r}: {result.get('reason', result.get('result'))}",
                code="loginfailed",
            )
        self._logged_in = True
        self._csrf_token = None
        logger.info("Logged in to %s as %s", self.api_url, self.username)

    def _token(self, kind: str) -> str:
        payload = self._request("GET", {"action": "query", "meta": "tokens", "type": kind})
        try:
            return payload["query"]["tokens"][f"{kind}token"]
        except KeyError:
            raise RemoteUnavailableError(f"No {kind} token in response") from None

    # -- Transport -------------------------------------------------------------

    def _request(self, method: str, params: dict[str, Any]) -> dict[str, Any]:
        """Issue one API call and return its decoded JSON body.

        Raises:
            RemoteUnavailableError: transport failure, HTTP error or non-JSON body.
            AuthExpiredError: the API rejected the session or token.
            RemoteStoreError: any other API error.
        """
        params = {**params, "format": "json"}
        try:
            if method == "GET":
                resp = self._http.request("GET", self.api_url, params=params)
            else:
                resp = self._http.request("POST", self.api_url, data=params)
            resp.raise_for_status()
        except (httpx.HTTPStatusError, httpx.RequestError) as exc:
            raise RemoteUnavailableError(f"Request to {self.api_url} failed: {exc}") from exc

        try:
            payload = resp.json()
        except (json.JSONDecodeError, ValueError):
            raise RemoteUnavailableError(
                f"Non-JSON response from {self.api_url} (status {resp.status_code})"
            ) from None

        error = payload.get("error") if isinstance(payload, dict) else None
        if error:
            code = error.get("code", "")
            message = f"{params.get('action')}: {error.get('info', code)}"
            if code in _AUTH_ERROR_CODES:
                raise AuthExpiredError(message, code=code)
            raise RemoteStoreError(message, code=code)
        return payload

    def _post(self, params: dict[str, Any]) -> dict[str, Any]:
        if self.username and not self._logged_in:
            self.login()
        if self._csrf_token is None:
            self._csrf_token = self._token("csrf")
        return self._request("POST", {**params, "token": self._csrf_token})

    # -- RemoteStore -----------------------------------------------------------

    def find_entity_ids(self, label: str, kind: str = "item") -> list[str]:
        """Ids of the entities whose label or alias equals *label*, ignoring case."""
        payload = self._request("GET", {
            "action": "wbsearchentities",
            "search": label,
            "language": self.language,
            "type": kind,
            "limit": _SEARCH_LIMIT,
        })
        wanted = label.casefold()
        ids: list[str] = []
        for hit in payload.get("search", []):
            texts = [hit.get("label", ""), hit.get("match", {}).get("text", "")]
            texts.extend(hit.get("aliases", []))
            if any(text.casefold() == wanted for text in texts if text) and hit["id"] not in ids:
                ids.append(hit["id"])
        return ids

    def find_entity_id(self, label: str, kind: str = "item") -> str | None:
        """First exact match of *label*, or None."""
        ids = self.find_entity_ids(label, kind)
        return ids[0] if ids else None

    def create_entity(
        self,
        label: str,
        description: str = "",
        *,
        kind: str = "item",
        datatype: str | None = None,
    ) -> str:
        data: dict[str, Any] = {
            "labels": {self.language: {"language": self.language, "value": label}},
        }
        if description:
            data["descriptions"] = {
                self.language: {"language": self.language, "value": description},
            }
        if kind == "property":
            if not datatype:
                raise ValueError("Properties need a datatype")
            data["datatype"] = datatype

        payload = self._post({
            "action": "wbeditentity",
            "new": kind,
            "data": json.dumps(data, ensure_ascii=False),
        })
        entity_id = payload["entity"]["id"]
        logger.info("Created %s %s: %s", kind, entity_id, label)
        return entity_id

    def add_alias(self, entity_id: str, alias: str) -> None:
        self._post({
            "action": "wbsetaliases",
            "id": entity_id,
            "language": self.language,
            "add": alias,
        })

    def get_statements(self, subject_id: str, property_id: str | None = None) -> list[Statement]:
        params = {"action": "wbgetclaims", "entity": subject_id}
        if property_id:
            params["property"] = property_id
        payload = self._request("GET", params)
        return [
            parse_claim(claim)
            for claims in payload.get("claims", {}).values()
            for claim in claims
        ]

    def create_statement(self, subject_id: str, property_id: str, value: Any) -> str:
        payload = self._post({
            "action": "wbcreateclaim",
            "entity": subject_id,
            "property": property_id,
            "snaktype": "value",
            "value": json.dumps(value, ensure_ascii=False),
        })
        return payload["claim"]["id"]

    def add_qualifier(self, statement_id: str, property_id: str, value: Any) -> None:
        self._post({
            "action": "wbsetqualifier",
            "claim": statement_id,
            "property": property_id,
            "snaktype": "value",
            "value": json.dumps(value, ensure_ascii=False),
        })
