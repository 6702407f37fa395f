"""Render result with chainable .with_*() transformation API.

Each transformation returns a new RenderResult. Immutable by convention,
built incrementally by design. Produced fresh per dispatch, never cached.
"""

from collections.abc import Mapping
from dataclasses import dataclass, replace

HTML = "text/html; charset=utf-8"
PLAIN_TEXT = "text/plain; charset=utf-8"


@dataclass(frozen=True, slots=True)
class RenderResult:
    """Status, headers and body for one dispatched path.

    Header order is irrelevant; names are matched case-insensitively by
    ``header()``.
    """

    status_code: int = 200
    headers: tuple[tuple[str, str], ...] = ()
    body: str | bytes = ""

    # -- Constructors --

    @classmethod
    def html(cls, text: str, status_code: int = 200) -> "RenderResult":
        return cls(status_code=status_code, headers=(("Content-Type", HTML),), body=text)

    @classmethod
    def text(cls, text: str, status_code: int = 200) -> "RenderResult":
        return cls(
            status_code=status_code, headers=(("Content-Type", PLAIN_TEXT),), body=text
        )

    # -- Chainable transformations --

    def with_status(self, status_code: int) -> "RenderResult":
        """Return a new RenderResult with a different status code."""
        return replace(self, status_code=status_code)

    def with_header(self, name: str, value: str) -> "RenderResult":
        """Return a new RenderResult with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> "RenderResult":
        """Return a new RenderResult with additional headers."""
        return replace(self, headers=(*self.headers, *headers.items()))

    # -- Accessors --

    def header(self, name: str) -> str | None:
        """First value for *name*, case-insensitive."""
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None

    @property
    def content_type(self) -> str | None:
        return self.header("Content-Type")

    @property
    def body_bytes(self) -> bytes:
        """Body encoded as bytes."""
        if isinstance(self.body, bytes):
            return self.body
        return self.body.encode("utf-8")

    @property
    def text_body(self) -> str:
        """Body decoded as text."""
        if isinstance(self.body, str):
            return self.body
        return self.body.decode("utf-8", errors="replace")
