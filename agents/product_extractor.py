"""Product term extraction and marketplace search links."""

import logging
from typing import Optional
from urllib.parse import quote

from llm.base_client import BaseLLMClient, Message
from .query_refiner import sanitize_llm_line

logger = logging.getLogger(__name__)

DEFAULT_MARKETPLACE_TEMPLATE = "https://jp.mercari.com/search/?q={term}&sort="


def build_marketplace_url(term: str, template: str = DEFAULT_MARKETPLACE_TEMPLATE) -> str:
    """
    Percent-encode a product term into the marketplace search template.

    Spaces become ``%20``. Returns an empty string for an empty term.
    """
    term = " ".join((term or "").split())
    if not term:
        return ""
    return template.format(term=quote(term, safe=""))


class ProductTermExtractor:
    """Extracts the bare product name from a purchase-intent utterance."""

    SYSTEM_PROMPT = """ユーザーの発言から「商品名」だけを抜き出してください。
- 「安く」「買う」「どこで」「欲しい」「には？」などの疑問・購入の言葉は取り除く
- 商品名と、区別に必要な最小限の修飾語（シリーズ名・種類）だけを残す
- 単語はスペース区切り、説明や記号は付けない
- 商品名が無ければ何も出力しない

例:
発言: ナルトのフィギュアを安く買うには？
商品名: ナルト フィギュア

発言: ポケモンカードの151ってどこに在庫ありますか
商品名: ポケモンカード 151

発言: Switch2が欲しい
商品名: Nintendo Switch 2

発言: 一番安いワイヤレスイヤホンどれ？
商品名: ワイヤレスイヤホン"""

    MAX_TERM_CHARS = 40

    def __init__(self, llm_client: Optional[BaseLLMClient] = None):
        """
        Initialize extractor.

        Args:
            llm_client: LLM client (None disables extraction)
        """
        self.llm_client = llm_client

    def extract(self, utterance: str) -> str:
        """
        Extract the product term.

        An empty result is a normal outcome: no marketplace link is attached.

        Args:
            utterance: Purchase-intent user text

        Returns:
            Product term or an empty string
        """
        if not self.llm_client or not (utterance or "").strip():
            return ""

        messages = [
            Message(role="system", content=self.SYSTEM_PROMPT),
            Message(role="user", content=f"発言: {utterance}\n商品名:")
        ]

        try:
            content = self.llm_client.generate(messages, temperature=0.0, max_tokens=30)
        except Exception as e:
            logger.warning(f"Product term extraction failed: {e}")
            return ""

        term = " ".join(sanitize_llm_line(content).split())
        if len(term) > self.MAX_TERM_CHARS:
            logger.warning(f"Discarding overlong product term: {term!r}")
            return ""

        logger.info(f"Extracted product term: {term!r}")
        return term
