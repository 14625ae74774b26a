from collections.abc import Callable

import httpx
import pytest

Handler = Callable[[httpx.Request], httpx.Response]
ClientFactory = Callable[[Handler], tuple[httpx.AsyncClient, list[httpx.Request]]]


@pytest.fixture()
def make_client() -> ClientFactory:
    """Provides a factory for AsyncClients backed by a canned-response handler.

    The factory returns the client and the list every issued request is
    recorded into, so tests can assert on URLs, params and headers.
    """

    def factory(handler: Handler) -> tuple[httpx.AsyncClient, list[httpx.Request]]:
        requests: list[httpx.Request] = []

        def recording_handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return handler(request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(recording_handler))
        return client, requests

    return factory
