"""ASGI response sending — translates a RenderResult to ASGI messages."""

from prerender._internal.asgi import Send
from prerender.http.result import RenderResult


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


async def send_result(result: RenderResult, send: Send, *, head: bool = False) -> None:
    """Translate a RenderResult into ASGI send() calls.

    ``head=True`` keeps the headers of the GET response but sends no body.
    """
    body = result.body_bytes if _body_allowed(result.status_code) else b""

    raw_headers: list[tuple[bytes, bytes]] = [
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in result.headers
        if name.lower() != "content-length"
    ]
    raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))

    await send(
        {
            "type": "http.response.start",
            "status": result.status_code,
            "headers": raw_headers,
        }
    )
    await send(
        {
            "type": "http.response.body",
            "body": b"" if head else body,
        }
    )
