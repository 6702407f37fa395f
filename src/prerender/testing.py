"""Async test client for prerender applications.

Sends requests through the ASGI interface directly — no HTTP involved —
and returns the same ``RenderResult`` type the dispatcher produces.
"""

from typing import Any

from prerender.app import PrerenderApp
from prerender.http.result import RenderResult


class TestClient:
    __test__ = False  # Tell pytest this is not a test class
    """Async test client for a PrerenderApp.

    Usage::

        async with TestClient(app) as client:
            result = await client.get("/")
            assert result.status_code == 200
    """

    __slots__ = ("app",)

    def __init__(self, app: PrerenderApp) -> None:
        self.app = app

    async def __aenter__(self) -> "TestClient":
        await self.app.startup()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.app.shutdown()

    async def get(self, path: str, *, headers: dict[str, str] | None = None) -> RenderResult:
        """Send a GET request."""
        return await self.request("GET", path, headers=headers)

    async def head(self, path: str, *, headers: dict[str, str] | None = None) -> RenderResult:
        """Send a HEAD request."""
        return await self.request("HEAD", path, headers=headers)

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
    ) -> RenderResult:
        """Send an arbitrary request through the ASGI app."""
        if "?" in path:
            path_part, query_string = path.split("?", 1)
        else:
            path_part = path
            query_string = ""

        raw_headers: list[tuple[bytes, bytes]] = [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in (headers or {}).items()
        ]

        scope: dict[str, Any] = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": method.upper(),
            "path": path_part,
            "raw_path": path_part.encode("latin-1"),
            "query_string": query_string.encode("latin-1"),
            "root_path": "",
            "headers": raw_headers,
            "server": ("testserver", 80),
            "client": ("127.0.0.1", 0),
        }

        async def receive() -> dict[str, Any]:
            return {"type": "http.request", "body": b"", "more_body": False}

        status = 200
        response_headers: list[tuple[bytes, bytes]] = []
        body_parts: list[bytes] = []

        async def send(message: dict[str, Any]) -> None:
            nonlocal status, response_headers
            if message["type"] == "http.response.start":
                status = message["status"]
                response_headers = list(message.get("headers", []))
            elif message["type"] == "http.response.body":
                body_parts.append(message.get("body", b""))

        await self.app(scope, receive, send)

        return RenderResult(
            status_code=status,
            headers=tuple(
                (name.decode("latin-1"), value.decode("latin-1"))
                for name, value in response_headers
            ),
            body=b"".join(body_parts),
        )
