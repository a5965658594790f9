"""
Unit test specific fixtures.

These fixtures are only available to unit tests.
"""

from unittest.mock import patch

import pytest


@pytest.fixture(autouse=True)
def block_external_http():
    """Unit tests never reach a real ad platform; tests that need HTTP patch it themselves."""
    with patch("requests.request") as mock_request, patch("requests.post") as mock_post:
        mock_request.return_value.status_code = 200
        mock_request.return_value.content = b"{}"
        mock_request.return_value.json.return_value = {}
        mock_post.return_value.status_code = 200
        mock_post.return_value.json.return_value = {}
        yield
