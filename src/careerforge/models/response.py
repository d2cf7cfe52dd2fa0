"""HTTP response model returned by the network gateway."""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class HttpResponse(BaseModel):
    """A completed HTTP exchange.

    Any status code is a normal response: the gateway only raises for
    transport-level failures, never for 4xx/5xx.
    """

    model_config = ConfigDict(frozen=True)

    status: int
    url: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status < 500

    @property
    def is_server_error(self) -> bool:
        return self.status >= 500

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json_body(self) -> Any:
        """Decode the body as JSON.

        Raises :class:`ValueError` when the body is empty or not JSON.
        """
        if not self.body:
            raise ValueError(f"Empty body from {self.url or 'response'} (HTTP {self.status})")
        return json.loads(self.body)
