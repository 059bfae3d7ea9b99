"""Tests for the Query Refiner and Product Term Extractor."""

from unittest.mock import Mock

from llm.base_client import BaseLLMClient
from agents.query_refiner import QueryRefiner, sanitize_llm_line
from agents.product_extractor import ProductTermExtractor, build_marketplace_url
from schemas.context import Intent


class TestQueryRefiner:
    """Test LLM rewrite with heuristic fallback."""

    def setup_method(self):
        self.llm = Mock(spec=BaseLLMClient)
        self.refiner = QueryRefiner(llm_client=self.llm, max_query_chars=60)

    def test_uses_llm_rewrite(self):
        self.llm.generate.return_value = "渋谷 静かなカフェ 周辺 おすすめ"

        query = self.refiner.refine("渋谷で静かなカフェある？", Intent.PROXIMITY)

        assert query == "渋谷 静かなカフェ 周辺 おすすめ"
        self.llm.generate.assert_called_once()
        messages = self.llm.generate.call_args[0][0]
        assert messages[0].role == "system"
        assert "渋谷で静かなカフェある？" in messages[-1].content

    def test_strips_quotes_and_labels(self):
        self.llm.generate.return_value = "検索クエリ: 「ナルト フィギュア 通販」\n説明: ..."

        query = self.refiner.refine("ナルトのフィギュア欲しい", Intent.PRODUCT)

        assert query == "ナルト フィギュア 通販"

    def test_falls_back_on_error(self):
        self.llm.generate.side_effect = RuntimeError("timeout")

        query = self.refiner.refine("ナルトのフィギュア欲しい", Intent.PRODUCT)

        assert query == "ナルトのフィギュア欲しい 通販 最安値"

    def test_falls_back_on_empty_output(self):
        self.llm.generate.return_value = "   "

        assert self.refiner.refine("東京タワーの住所", Intent.ADDRESS) == "東京タワーの住所 住所 アクセス"

    def test_falls_back_on_overlong_output(self):
        self.llm.generate.return_value = "あ" * 200

        assert self.refiner.refine("こんにちは", Intent.GENERAL) == "こんにちは"

    def test_no_client_uses_fallback(self):
        refiner = QueryRefiner(llm_client=None)

        assert refiner.refine("  近くの  カフェ ", Intent.PROXIMITY) == "近くの カフェ 周辺 おすすめ"


class TestSanitize:

    def test_code_fence(self):
        assert sanitize_llm_line("```\nナルト フィギュア\n```") == "ナルト フィギュア"

    def test_bullet(self):
        assert sanitize_llm_line("- ポケモンカード 151") == "ポケモンカード 151"

    def test_empty(self):
        assert sanitize_llm_line("") == ""


class TestProductTermExtractor:
    """Test product term extraction."""

    def setup_method(self):
        self.llm = Mock(spec=BaseLLMClient)
        self.extractor = ProductTermExtractor(llm_client=self.llm)

    def test_extracts_term(self):
        self.llm.generate.return_value = "ナルト フィギュア"

        assert self.extractor.extract("ナルトのフィギュアを安く買うには？") == "ナルト フィギュア"

    def test_strips_label(self):
        self.llm.generate.return_value = "商品名: ナルト フィギュア"

        assert self.extractor.extract("ナルトのフィギュアを安く買うには？") == "ナルト フィギュア"

    def test_failure_yields_empty(self):
        self.llm.generate.side_effect = RuntimeError("rate limited")

        assert self.extractor.extract("ナルトのフィギュアを安く買うには？") == ""

    def test_overlong_term_rejected(self):
        self.llm.generate.return_value = "これは商品名ではなく長い説明文です。" * 5

        assert self.extractor.extract("何か欲しい") == ""

    def test_no_client(self):
        assert ProductTermExtractor().extract("ナルトのフィギュア") == ""


class TestMarketplaceUrl:
    """Test marketplace URL building."""

    def test_percent_encodes_term(self):
        url = build_marketplace_url("ナルト フィギュア")

        assert url == (
            "https://jp.mercari.com/search/?q="
            "%E3%83%8A%E3%83%AB%E3%83%88%20%E3%83%95%E3%82%A3%E3%82%AE%E3%83%A5%E3%82%A2&sort="
        )

    def test_custom_template(self):
        url = build_marketplace_url("a&b", "https://shop.example/search/?category=ALL&q={term}")

        assert url == "https://shop.example/search/?category=ALL&q=a%26b"

    def test_empty_term(self):
        assert build_marketplace_url("   ") == ""
