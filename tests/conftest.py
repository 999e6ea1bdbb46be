from unittest.mock import MagicMock, patch

import pytest


def make_response(body="", url="", history=(), json_data=None):
    response = MagicMock()
    response.status_code = 200
    response.content = body.encode("utf-8")
    response.text = body
    response.url = url
    response.history = list(history)
    response.json.return_value = json_data if json_data is not None else {}
    return response


@pytest.fixture
def response_factory():
    """Build a fake ``httpx.Response`` carrying an HTML or JSON body."""
    return make_response


@pytest.fixture(autouse=True)
def no_backoff():
    with patch("animeindo.client.time.sleep"):
        yield
