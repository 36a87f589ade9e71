"""
Unit tests for page fetching.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from school_stations.shared.errors import FetchError
from school_stations.shared.http import fetch_html


class TestFetchHtml:
    """Test cases for fetch_html."""

    @patch("school_stations.shared.http.requests.get")
    def test_success(self, mock_get, test_config):
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.text = "<table></table>"
        mock_get.return_value = mock_response

        html = fetch_html("https://example.org/stations", test_config)

        assert html == "<table></table>"
        kwargs = mock_get.call_args.kwargs
        assert kwargs["timeout"] == test_config.http.timeout_seconds
        assert kwargs["headers"]["User-Agent"] == test_config.http.user_agent

    @patch("school_stations.shared.http.requests.get")
    def test_timeout_override(self, mock_get, test_config):
        mock_get.return_value = MagicMock(status_code=200, text="")
        fetch_html("https://example.org", test_config, timeout=5)
        assert mock_get.call_args.kwargs["timeout"] == 5

    @patch("school_stations.shared.http.requests.get")
    def test_non_2xx_raises(self, mock_get, test_config):
        mock_get.return_value = MagicMock(status_code=404, text="Not Found")

        with pytest.raises(FetchError) as exc_info:
            fetch_html("https://example.org/missing", test_config)

        assert exc_info.value.status_code == 404
        assert exc_info.value.url == "https://example.org/missing"
        assert "HTTP 404" in str(exc_info.value)

    @patch("school_stations.shared.http.requests.get")
    def test_network_error_raises(self, mock_get, test_config):
        mock_get.side_effect = requests.Timeout("timed out")

        with pytest.raises(FetchError) as exc_info:
            fetch_html("https://example.org", test_config)

        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.__cause__, requests.Timeout)
