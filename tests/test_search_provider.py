"""Tests for SerpAPISearchProvider."""

from unittest.mock import Mock, patch
import requests

from retrieval.search_provider import SerpAPISearchProvider, platform_for_url
from schemas.evidence import RecencyWindow, SearchResult, SourcePlatform


def ok_response(payload):
    response = Mock()
    response.status_code = 200
    response.json.return_value = payload
    return response


class TestSerpAPISearchProvider:
    """Test SerpApi integration with mocked HTTP."""

    def setup_method(self):
        self.provider = SerpAPISearchProvider(api_key="test-key", timeout=5)

    @patch('requests.get')
    def test_search_success(self, mock_get):
        mock_get.return_value = ok_response({
            "organic_results": [
                {"title": "渋谷のカフェ10選", "link": "https://example.com/cafe", "snippet": "静かな店"},
                {"title": "Reddit thread", "link": "https://www.reddit.com/r/tokyo/abc"},
                {"title": "no link"},
            ]
        })

        results = self.provider.search("渋谷 カフェ", num_results=6)

        assert len(results) == 2
        assert isinstance(results[0], SearchResult)
        assert results[0].title == "渋谷のカフェ10選"
        assert results[0].snippet == "静かな店"
        assert results[0].platform == SourcePlatform.WEB
        assert results[1].platform == SourcePlatform.REDDIT

        call_args = mock_get.call_args
        assert call_args[0][0] == SerpAPISearchProvider.BASE_URL
        params = call_args[1]["params"]
        assert params["q"] == "渋谷 カフェ"
        assert params["gl"] == "jp"
        assert params["hl"] == "ja"
        assert params["num"] == 6
        assert "tbs" not in params
        assert call_args[1]["timeout"] == 5

    @patch('requests.get')
    def test_recency_and_site_filter(self, mock_get):
        mock_get.return_value = ok_response({"organic_results": []})

        self.provider.search(
            "ナルト フィギュア",
            recency=RecencyWindow.MONTH,
            site_filter=["x.com", "instagram.com"]
        )

        params = mock_get.call_args[1]["params"]
        assert params["q"] == "ナルト フィギュア (site:x.com OR site:instagram.com)"
        assert params["tbs"] == "qdr:m"

    @patch('requests.get')
    def test_malformed_items_are_skipped(self, mock_get):
        mock_get.return_value = ok_response({
            "organic_results": [
                {"title": "numeric link", "link": 12345},
                {"title": "bad host", "link": "https://[::1/page"},
                {"title": "list title", "link": "https://example.com/x", "snippet": ["a"]},
                "not a dict",
                {"title": "good", "link": "https://example.com/good"},
            ]
        })

        results = self.provider.search("q", num_results=6)

        assert [r.title for r in results] == ["good"]

    @patch('requests.get')
    def test_missing_results_key(self, mock_get):
        mock_get.return_value = ok_response({"search_metadata": {}})

        assert self.provider.search("nothing") == []

    @patch('requests.get')
    def test_timeout_returns_empty(self, mock_get):
        mock_get.side_effect = requests.exceptions.Timeout()

        assert self.provider.search("Python") == []
        assert "timeout" in self.provider.get_last_error().lower()

    @patch('requests.get')
    def test_connection_error_returns_empty(self, mock_get):
        mock_get.side_effect = requests.exceptions.ConnectionError("refused")

        assert self.provider.search("Python") == []

    @patch('requests.get')
    def test_auth_error_returns_empty(self, mock_get):
        response = Mock()
        response.status_code = 401
        mock_get.return_value = response

        assert self.provider.search("Python") == []
        assert "authentication" in self.provider.get_last_error().lower()

    @patch('requests.get')
    def test_server_error_returns_empty(self, mock_get):
        response = Mock()
        response.status_code = 500
        response.text = "Internal Server Error"
        mock_get.return_value = response

        assert self.provider.search("Python") == []

    @patch('requests.get')
    def test_provider_recovers_after_error(self, mock_get):
        """An error does not disable later searches."""
        mock_get.side_effect = [
            requests.exceptions.Timeout(),
            ok_response({"organic_results": [{"title": "t", "link": "https://a.example/"}]}),
        ]

        assert self.provider.search("q") == []
        assert len(self.provider.search("q")) == 1
        assert self.provider.get_last_error() is None

    @patch('requests.get')
    def test_no_api_key_skips_request(self, mock_get):
        provider = SerpAPISearchProvider(api_key=None)

        assert provider.search("Python") == []
        mock_get.assert_not_called()


class TestPlatformForUrl:

    def test_social_hosts(self):
        assert platform_for_url("https://x.com/user/status/1") == SourcePlatform.X
        assert platform_for_url("https://twitter.com/user") == SourcePlatform.X
        assert platform_for_url("https://www.instagram.com/p/abc") == SourcePlatform.INSTAGRAM
        assert platform_for_url("https://m.youtube.com/watch?v=1") == SourcePlatform.YOUTUBE
        assert platform_for_url("https://youtu.be/abc") == SourcePlatform.YOUTUBE

    def test_web_host(self):
        assert platform_for_url("https://example.com/x.com") == SourcePlatform.WEB
        assert platform_for_url("https://notx.com/") == SourcePlatform.WEB
