"""LLM-based query refiner with a deterministic fallback."""

import re
import logging
from typing import Optional

from llm.base_client import BaseLLMClient, Message
from schemas.context import Intent

logger = logging.getLogger(__name__)


def sanitize_llm_line(content: str) -> str:
    """
    Reduce a short LLM answer to one plain line.

    Strips markdown fences, leading labels, bullets and surrounding quotes.
    """
    text = (content or "").strip()
    if text.startswith("```"):
        text = text.strip("`").strip()
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if not lines:
        return ""
    line = lines[0]
    line = re.sub(r"^(検索クエリ|クエリ|query|商品名|product)\s*[:：]\s*", "", line, flags=re.IGNORECASE)
    line = re.sub(r"^[-*・]\s*", "", line)
    line = line.strip("\"'“”「」『』`")
    return line.strip()


class QueryRefiner:
    """
    Turns an utterance into a compact search query.

    Uses one bounded LLM call when a client is available and falls back to
    the raw utterance plus an intent-specific suffix otherwise.
    """

    SYSTEM_PROMPT = """あなたは検索クエリ作成アシスタントです。
ユーザーの発言から、検索エンジンにそのまま入力できる検索クエリを1つだけ作ってください。
- 20〜60文字程度
- 記号・装飾・引用符・説明文は付けない
- 出力は検索クエリの1行のみ"""

    INTENT_HINTS = {
        Intent.PRODUCT: "商品を購入したい意図です。通販・価格・在庫が見つかる語を加えてください（例: 通販 最安値 在庫）。",
        Intent.PROXIMITY: "近くのお店・施設を探す意図です。地名と「周辺 おすすめ」などの語を加えてください。",
        Intent.ADDRESS: "お店・施設の住所や場所を知りたい意図です。「住所 アクセス」などの語を加えてください。",
        Intent.DESCRIBE: "お店・場所の雰囲気や特徴を知りたい意図です。「雰囲気 口コミ 特徴」などの語を加えてください。",
        Intent.GENERAL: "一般的な質問です。要点となる語だけを残してください。",
    }

    FALLBACK_SUFFIXES = {
        Intent.PRODUCT: "通販 最安値",
        Intent.PROXIMITY: "周辺 おすすめ",
        Intent.ADDRESS: "住所 アクセス",
        Intent.DESCRIBE: "雰囲気 口コミ",
        Intent.GENERAL: "",
    }

    def __init__(
        self,
        llm_client: Optional[BaseLLMClient] = None,
        max_query_chars: int = 120
    ):
        """
        Initialize query refiner.

        Args:
            llm_client: LLM client for rewriting (None uses the fallback only)
            max_query_chars: Longer rewrites are treated as malformed
        """
        self.llm_client = llm_client
        self.max_query_chars = max_query_chars

    def refine(self, utterance: str, intent: Intent) -> str:
        """
        Build a search query for an utterance.

        Args:
            utterance: Raw user text (or merged pending query)
            intent: Classified intent

        Returns:
            Search query string, never empty for non-empty input
        """
        if not self.llm_client:
            return self.fallback(utterance, intent)

        messages = [
            Message(role="system", content=self.SYSTEM_PROMPT),
            Message(
                role="user",
                content=f"{self.INTENT_HINTS[intent]}\n\n発言: {utterance}\n\n検索クエリ:"
            )
        ]

        try:
            content = self.llm_client.generate(messages, temperature=0.2, max_tokens=60)
        except Exception as e:
            logger.warning(f"Query refinement failed, using fallback: {e}")
            return self.fallback(utterance, intent)

        query = sanitize_llm_line(content)
        if not query or len(query) > self.max_query_chars:
            logger.warning(f"Malformed refined query {content!r}, using fallback")
            return self.fallback(utterance, intent)

        logger.info(f"Refined query ({intent.value}): {query}")
        return query

    def fallback(self, utterance: str, intent: Intent) -> str:
        """Raw utterance with the intent's fixed suffix."""
        base = " ".join((utterance or "").split())
        suffix = self.FALLBACK_SUFFIXES.get(intent, "")
        return f"{base} {suffix}".strip() if suffix else base
