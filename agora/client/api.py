"""
Async HTTP client for the forum API.

Mirrors every backend route and keeps the bearer token between calls.
Failures are mapped onto agora.errors so callers (the reaction cache in
particular) can tell a retryable blip from a hard refusal:

- transport errors, timeouts, 502/503/504 -> Transient
- 401 -> Unauthorized (the stored token is dropped)
- 404 -> NotFound
- anything else non-2xx -> ApiError
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from agora.errors import ForumError, NotFound, Transient, Unauthorized
from agora.reactions.base import LikeableKind

logger = logging.getLogger(__name__)

TRANSIENT_STATUSES = {502, 503, 504}


class ApiError(ForumError):
    def __init__(self, status_code: int, detail: Any):
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


def _detail(resp: httpx.Response) -> Any:
    try:
        body = resp.json()
    except ValueError:
        return resp.text
    return body.get("detail", body) if isinstance(body, dict) else body


class ForumApiClient:
    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self._http = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "ForumApiClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            resp = await self._http.request(method, url, headers=headers, **kwargs)
        except httpx.TransportError as e:
            logger.warning("transport failure on %s %s: %r", method, url, e)
            raise Transient(f"{method} {url} failed: {e!r}") from e

        if resp.status_code == 401:
            self.token = None
            raise Unauthorized(str(_detail(resp)))
        if resp.status_code == 404:
            raise NotFound(message=str(_detail(resp)))
        if resp.status_code in TRANSIENT_STATUSES:
            raise Transient(f"{method} {url} -> {resp.status_code}")
        if resp.is_error:
            raise ApiError(resp.status_code, _detail(resp))
        return resp

    # ------------------------------
    # auth
    # ------------------------------
    def _store_token(self, resp: httpx.Response) -> Dict[str, Any]:
        data = resp.json()
        if data.get("token"):
            self.token = data["token"]
        return data

    async def register(self, username: str, email: str, password: str) -> Dict[str, Any]:
        resp = await self._request(
            "POST", "/api/auth/register",
            json={"username": username, "email": email, "password": password},
        )
        return self._store_token(resp)

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        resp = await self._request("POST", "/api/auth/login", json={"email": email, "password": password})
        return self._store_token(resp)

    async def me(self) -> Dict[str, Any]:
        return (await self._request("GET", "/api/auth/me")).json()

    def logout(self) -> None:
        self.token = None

    # ------------------------------
    # forums
    # ------------------------------
    async def list_forums(self) -> List[Dict[str, Any]]:
        return (await self._request("GET", "/api/forums")).json()

    async def get_forum(self, forum_id: int) -> Dict[str, Any]:
        return (await self._request("GET", f"/api/forums/{forum_id}")).json()

    async def create_forum(self, title: str, description: str, tags: Optional[List[str]] = None) -> Dict[str, Any]:
        body = {"title": title, "description": description, "tags": tags or []}
        return (await self._request("POST", "/api/forums", json=body)).json()

    async def update_forum(self, forum_id: int, **fields) -> Dict[str, Any]:
        return (await self._request("PUT", f"/api/forums/{forum_id}", json=fields)).json()

    async def delete_forum(self, forum_id: int) -> None:
        await self._request("DELETE", f"/api/forums/{forum_id}")

    # ------------------------------
    # comments
    # ------------------------------
    async def list_comments(self, forum_id: int) -> List[Dict[str, Any]]:
        return (await self._request("GET", f"/api/comments/forum/{forum_id}")).json()

    async def create_comment(self, forum_id: int, content: str) -> Dict[str, Any]:
        return (await self._request("POST", f"/api/comments/forum/{forum_id}", json={"content": content})).json()

    async def update_comment(self, comment_id: int, content: str) -> Dict[str, Any]:
        return (await self._request("PUT", f"/api/comments/{comment_id}", json={"content": content})).json()

    async def delete_comment(self, comment_id: int) -> None:
        await self._request("DELETE", f"/api/comments/{comment_id}")

    # ------------------------------
    # likes
    # ------------------------------
    async def toggle_like(self, kind: LikeableKind, item_id: int) -> Dict[str, Any]:
        """POST /api/<kind>/{id}/like; returns the item with its new likes/liked pair."""
        resp = await self._request("POST", f"/api/{LikeableKind(kind).value}/{item_id}/like")
        return resp.json()

    async def like_forum(self, forum_id: int) -> Dict[str, Any]:
        return await self.toggle_like(LikeableKind.FORUM, forum_id)

    async def like_comment(self, comment_id: int) -> Dict[str, Any]:
        return await self.toggle_like(LikeableKind.COMMENT, comment_id)
