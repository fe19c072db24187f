"""In-process stand-in for the aggregator API, served through httpx.MockTransport."""

import json
from collections import defaultdict

import httpx

API_PREFIX = "/api/v2"


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeBank:
    """Routes requests by (method, path) to queued responses.

    Each route holds a list of responses; they are served in order and the
    last one repeats. ``/token/new/`` answers with a fresh token by default.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], list] = {}
        self.requests: list[httpx.Request] = []
        self.token_count = 0
        self.hits: dict[tuple[str, str], int] = defaultdict(int)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handle))

    def on(self, method: str, path: str, *responses) -> "FakeBank":
        self.routes[(method.upper(), path)] = list(responses)
        return self

    def calls(self, method: str, path: str) -> int:
        return self.hits[(method.upper(), path)]

    def bodies(self, method: str, path: str) -> list[dict]:
        return [
            json.loads(r.content or b"{}")
            for r in self.requests
            if r.method == method.upper() and r.url.path == API_PREFIX + path
        ]

    def upstream_calls(self) -> int:
        """Requests other than token exchanges."""
        return sum(1 for r in self.requests if not r.url.path.endswith("/token/new/"))

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix(API_PREFIX)
        key = (request.method, path)
        self.hits[key] += 1

        queue = self.routes.get(key)
        if queue is None and path == "/token/new/":
            self.token_count += 1
            return httpx.Response(200, json={"access": f"token-{self.token_count}", "access_expires": 86400})
        if not queue:
            return httpx.Response(404, json={"summary": "Not found", "path": path})

        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(request)
        return response


def transactions_page(booked=None, pending=None, next_url=None) -> httpx.Response:
    body = {"transactions": {"booked": booked or [], "pending": pending or []}}
    if next_url:
        body["next"] = next_url
    return httpx.Response(200, json=body)


def booked(transaction_id, amount, booking_date="2026-10-10", description="ICA Supermarket", **extra) -> dict:
    record = {
        "bookingDate": booking_date,
        "transactionAmount": {"amount": str(amount), "currency": "SEK"},
        "remittanceInformationUnstructured": description,
    }
    if transaction_id is not None:
        record["transactionId"] = transaction_id
    record.update(extra)
    return record
