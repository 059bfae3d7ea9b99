"""LLM-based reply synthesizer with post-generation link guarantees."""

import re
import logging
from typing import List, Optional

from llm.base_client import BaseLLMClient, Message
from memory.models import ConversationTurn
from memory.context_manager import to_messages
from schemas.context import Intent
from schemas.evidence import EvidenceBundle, SearchResult
from schemas.responses import LinkKind, LinkObligation, ReplyDraft

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"https?://\S+")

FALLBACK_TEXT = (
    "すみません、うまく答えをまとめられませんでした。"
    "知りたいこと（場所・商品名・条件など）をもう少し具体的に教えてもらえますか？"
)


class ReplySynthesizer:
    """
    Builds the final reply from history, evidence and intent guidance.

    Whatever the model returns, the draft leaves with the fallback text
    substituted for empty output, the marketplace link present for Product
    replies and a sources block when evidence was used but not linked.
    """

    SYSTEM_PROMPT = """あなたは「AIくん」。日本語で、具体的・実用的に答えるアシスタントです。
- 一般論だけで終わらせない。「公式サイト/SNSで確認してください」「データに含まれていません」等の逃げ表現は使わない。
- 情報が足りない時は補足質問を1つだけ添えつつ、暫定の答えを必ず出す。
- 可能なら名称・住所・目印・目安価格・営業時間を含める。URLはhttpsから始まる簡潔なもの。
- 回答の形:
  1) 結論を1文で
  2) 具体的な内容を2〜4文
  3) 調査結果から分かったことを最大2点
  4) 必要なら代替案や注意点
  5) 次の一手を1つ（短い指示）"""

    INTENT_GUIDANCE = {
        Intent.PRODUCT: "購入したい商品についての質問です。買える場所（通販・店舗）、目安価格、在庫の探し方を具体的に。",
        Intent.PROXIMITY: "指定された場所の周辺で探している質問です。候補となるお店・施設を名称付きで、場所の目安とともに。",
        Intent.ADDRESS: "お店・施設の場所を知りたい質問です。住所や最寄り駅、行き方を具体的に。",
        Intent.DESCRIBE: "お店・場所の雰囲気や特徴を知りたい質問です。客層、雰囲気、評判の傾向を具体的に。",
        Intent.GENERAL: "一般的な質問です。要点を押さえて簡潔に。",
    }

    MARKETPLACE_SENTENCE = "横断検索で購入先を探すならこちら: {url}"
    SOURCES_HEADER = "参考:"
    MAX_SOURCE_LINKS = 2

    def __init__(
        self,
        llm_client: Optional[BaseLLMClient] = None,
        temperature: float = 0.5,
        max_tokens: int = 600,
        always_append_marketplace_link: bool = False
    ):
        """
        Initialize synthesizer.

        Args:
            llm_client: LLM client for generation (None always yields the fallback)
            temperature: Sampling temperature
            max_tokens: Maximum tokens in the reply
            always_append_marketplace_link: Append the marketplace sentence even
                when the model already included the URL
        """
        self.llm_client = llm_client
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.always_append_marketplace_link = always_append_marketplace_link

    def synthesize(
        self,
        utterance: str,
        history: List[ConversationTurn],
        intent: Intent,
        evidence: Optional[EvidenceBundle] = None,
        marketplace_url: Optional[str] = None
    ) -> ReplyDraft:
        """
        Generate a reply and enforce its link obligations.

        Args:
            utterance: Original user text
            history: Loaded conversation turns, chronological
            intent: Classified intent
            evidence: Evidence bundle (None or empty when research was skipped)
            marketplace_url: Marketplace search URL for Product intent

        Returns:
            ReplyDraft ready to send
        """
        results = evidence.results if evidence else []
        messages = self.build_messages(utterance, history, intent, results)

        text = ""
        if self.llm_client:
            try:
                text = self.llm_client.generate(
                    messages,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens
                )
            except Exception as e:
                logger.error(f"Reply synthesis failed: {e}")
                text = ""
        else:
            logger.warning("No LLM client configured, replying with fallback text")

        return self.enforce_invariants(text, intent, results, marketplace_url)

    def build_messages(
        self,
        utterance: str,
        history: List[ConversationTurn],
        intent: Intent,
        results: List[SearchResult]
    ) -> List[Message]:
        """System instruction, replayed history, then the user payload."""
        messages = [Message(role="system", content=self.SYSTEM_PROMPT)]
        messages.extend(to_messages(history))
        messages.append(Message(
            role="user",
            content=self._build_user_payload(utterance, intent, results)
        ))
        return messages

    def _build_user_payload(
        self,
        utterance: str,
        intent: Intent,
        results: List[SearchResult]
    ) -> str:
        parts = [f"## 質問\n{utterance}"]
        parts.append(f"## 回答の方針\n{self.INTENT_GUIDANCE[intent]}")

        if results:
            lines = [
                f"{i}. {result.title}\n   {result.link}"
                + (f"\n   {result.snippet}" if result.snippet else "")
                for i, result in enumerate(results, 1)
            ]
            parts.append("## 調査結果\n" + "\n".join(lines))
        else:
            parts.append("## 調査結果\nなし（会話の流れと一般知識から答えてください）")

        return "\n\n".join(parts)

    def enforce_invariants(
        self,
        text: str,
        intent: Intent,
        results: List[SearchResult],
        marketplace_url: Optional[str] = None
    ) -> ReplyDraft:
        """
        Apply the post-generation guarantees to generated text.

        Args:
            text: Raw generated text
            intent: Classified intent
            results: Evidence results shown to the model
            marketplace_url: Marketplace link owed to Product replies

        Returns:
            ReplyDraft with obligations satisfied
        """
        text = (text or "").strip()
        obligations = []
        used_fallback = not text

        if used_fallback:
            text = FALLBACK_TEXT

        generated_has_url = bool(URL_PATTERN.search(text))

        if intent == Intent.PRODUCT and marketplace_url:
            obligations.append(LinkObligation(kind=LinkKind.MARKETPLACE, url=marketplace_url))
            if self.always_append_marketplace_link or marketplace_url not in text:
                text += "\n\n" + self.MARKETPLACE_SENTENCE.format(url=marketplace_url)

        if results and not generated_has_url:
            sources = results[:self.MAX_SOURCE_LINKS]
            for result in sources:
                obligations.append(LinkObligation(kind=LinkKind.CITATION, url=result.link))
            text += "\n\n" + self.render_sources(sources)

        return ReplyDraft(text=text, obligations=obligations, used_fallback=used_fallback)

    def render_sources(self, results: List[SearchResult]) -> str:
        lines = [self.SOURCES_HEADER]
        for result in results[:self.MAX_SOURCE_LINKS]:
            lines.append(f"・{result.title}\n{result.link}")
        return "\n".join(lines)
