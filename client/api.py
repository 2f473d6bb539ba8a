from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional
from urllib.parse import unquote

import httpx


TITLE_HEADER = "X-Chat-Title"


class ChatAPIError(RuntimeError):
    def __init__(self, status_code: int, payload: Any) -> None:
        detail = payload.get("error") if isinstance(payload, dict) else payload
        super().__init__(f"Chat API returned {status_code}: {detail}")
        self.status_code = status_code
        self.payload = payload


class ChatReply:
    """A streamed reply; ``title`` is known as soon as headers arrive."""

    def __init__(self, response: httpx.Response) -> None:
        self._response = response
        raw_title = response.headers.get(TITLE_HEADER)
        self.title: Optional[str] = unquote(raw_title) if raw_title else None

    def __iter__(self) -> Iterator[str]:
        return self._response.iter_text()


def _raise_for_error(response: httpx.Response) -> None:
    if response.status_code < 400:
        return
    response.read()
    try:
        payload = response.json()
    except ValueError:
        payload = response.text
    raise ChatAPIError(response.status_code, payload)


class NICClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        base_url = base_url or os.getenv("NIC_API_URL", "http://127.0.0.1:8000")
        self._http = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "NICClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def send(self, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        response = self._http.post("/api/chat", json={"messages": messages})
        _raise_for_error(response)
        return response.json()

    @contextmanager
    def stream(self, messages: List[Dict[str, str]]) -> Iterator[ChatReply]:
        with self._http.stream("POST", "/api/chat/stream", json={"messages": messages}) as response:
            _raise_for_error(response)
            yield ChatReply(response)

    def check(self) -> Dict[str, Any]:
        response = self._http.get("/api/test")
        return response.json()
