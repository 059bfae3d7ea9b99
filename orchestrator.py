"""Main orchestrator for the research-augmented assistant."""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional

from config.settings import Settings
from schemas.context import ConversationState, InboundEvent, Intent
from schemas.evidence import EvidenceBundle

# LLM components
from llm.factory import create_llm_client, LLMProvider
from llm.base_client import BaseLLMClient

# Memory components
from memory.sqlite_store import SQLiteMemoryStore
from memory.usage_store import SQLiteUsageStore
from memory.context_manager import (
    ConversationContextManager,
    derive_conversation_id,
    find_pending_query,
)
from memory.errors import ConversationResetError

# Retrieval components
from retrieval.search_provider import SearchProvider, SerpAPISearchProvider
from retrieval.research_aggregator import ResearchAggregator

# Pipeline agents
from agents.intent_classifier import IntentClassifier, has_place_token
from agents.query_refiner import QueryRefiner
from agents.product_extractor import ProductTermExtractor, build_marketplace_url
from agents.reply_synthesizer import ReplySynthesizer, FALLBACK_TEXT

logger = logging.getLogger(__name__)

CLARIFICATION_TEXT = "どのあたり（駅名・地名）で探していますか？場所を教えてもらえれば、近くの候補を調べます。"
RESET_DONE_TEXT = "会話の履歴をリセットしました。新しい話題からどうぞ。"
RESET_FAILED_TEXT = "すみません、履歴のリセットに失敗しました。時間をおいてもう一度「リセット」と送ってください。"
LIMIT_REACHED_TEXT = "本日の利用回数の上限に達しました。また明日お試しください。"
NON_TEXT_TEXT = "ごめんなさい、今はテキストのメッセージにだけお返事できます。"


def default_non_text_handler(event: InboundEvent) -> str:
    """Reply used for stickers, images and other non-text payloads."""
    return NON_TEXT_TEXT


class AssistantOrchestrator:
    """
    Routes each utterance through classify, refine, research and synthesize.

    Every stage returns a best-effort result, so a text event always gets
    exactly one reply. The only user-visible failures are the reset failure
    message and the synthesis fallback text.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        llm_client: Optional[BaseLLMClient] = None,
        search_provider: Optional[SearchProvider] = None,
        memory_store: Optional[SQLiteMemoryStore] = None,
        usage_store: Optional[SQLiteUsageStore] = None,
        non_text_handler: Optional[Callable[[InboundEvent], str]] = None
    ):
        """
        Initialize orchestrator.

        Collaborators not passed in are built from settings.

        Args:
            settings: Application settings
            llm_client: LLM backend shared by refiner, extractor and synthesizer
            search_provider: Search backend for research
            memory_store: Persistence backend for the turn log
            usage_store: Daily usage counter (only used when a limit is set)
            non_text_handler: Reply builder for non-text events
        """
        self.settings = settings or Settings()

        self.llm_client = llm_client
        if self.llm_client is None:
            self._init_llm_client()

        self.memory_store = memory_store or SQLiteMemoryStore(db_path=self.settings.db_path)
        self.context_manager = ConversationContextManager(
            store=self.memory_store,
            history_window=self.settings.history_window
        )

        self.usage_store = usage_store
        if self.usage_store is None and self.settings.daily_message_limit > 0:
            self.usage_store = SQLiteUsageStore(db_path=self.settings.db_path)

        self.search_provider = search_provider or SerpAPISearchProvider(
            api_key=self.settings.serpapi_api_key,
            country=self.settings.country,
            language=self.settings.language,
            timeout=self.settings.search_timeout
        )

        self.non_text_handler = non_text_handler or default_non_text_handler

        self._init_agents()

    def _init_llm_client(self):
        """Initialize LLM client based on settings."""
        api_key = self.settings.get_llm_api_key()

        if not api_key:
            logger.warning(
                f"No API key for {self.settings.llm_provider}. "
                "Replies will use the heuristic query and fallback text."
            )
            return

        try:
            provider = LLMProvider(self.settings.llm_provider)
            self.llm_client = create_llm_client(
                provider=provider,
                api_key=api_key,
                model=self.settings.llm_model,
                timeout=self.settings.llm_timeout,
                max_retries=self.settings.llm_max_retries
            )
            logger.info(
                f"LLM client initialized: {self.settings.llm_provider} "
                f"({self.llm_client.get_model_name()})"
            )
        except Exception as e:
            logger.error(f"Failed to initialize LLM client: {e}")
            self.llm_client = None

    def _init_agents(self):
        """Initialize pipeline stages."""
        self.classifier = IntentClassifier()
        self.refiner = QueryRefiner(
            llm_client=self.llm_client,
            max_query_chars=self.settings.max_query_chars
        )
        self.product_extractor = ProductTermExtractor(llm_client=self.llm_client)
        self.aggregator = ResearchAggregator(
            provider=self.search_provider,
            evidence_cap=self.settings.evidence_cap,
            working_set_size=self.settings.working_set_size,
            web_result_count=self.settings.web_result_count,
            recency_days=self.settings.recency_days,
            timeout=self.settings.research_timeout
        )
        self.synthesizer = ReplySynthesizer(
            llm_client=self.llm_client,
            always_append_marketplace_link=self.settings.always_append_marketplace_link
        )

    def handle_event(self, event: InboundEvent) -> str:
        """
        Produce the one reply owed to an inbound event.

        Args:
            event: Event from the messaging transport

        Returns:
            Reply text (never raises)
        """
        conversation_id = derive_conversation_id(event.source)

        if not event.is_text:
            try:
                return self.non_text_handler(event)
            except Exception as e:
                logger.error(f"Non-text handler failed for {conversation_id}: {e}")
                return NON_TEXT_TEXT

        return self.reply_to_text(
            conversation_id=conversation_id,
            text=event.text,
            user_id=event.source.user_id
        )

    def handle_events(self, events: List[InboundEvent]) -> List[str]:
        """
        Process a batch of events.

        Conversations are handled concurrently; events of the same
        conversation run in arrival order so its turn log stays ordered.

        Returns:
            Replies in the order of ``events``
        """
        groups: Dict[str, List[int]] = {}
        for index, event in enumerate(events):
            groups.setdefault(derive_conversation_id(event.source), []).append(index)

        replies: List[Optional[str]] = [None] * len(events)

        def run_group(indices: List[int]):
            for index in indices:
                replies[index] = self.handle_event(events[index])

        if not groups:
            return []

        max_workers = max(1, min(self.settings.max_concurrent_events, len(groups)))
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="event") as executor:
            futures = [executor.submit(run_group, indices) for indices in groups.values()]
            for future in futures:
                future.result()

        return [reply if reply is not None else FALLBACK_TEXT for reply in replies]

    def reply_to_text(
        self,
        conversation_id: str,
        text: str,
        user_id: Optional[str] = None
    ) -> str:
        """
        Process a text utterance end-to-end.

        Args:
            conversation_id: Conversation ID
            text: User utterance
            user_id: User identity for usage limiting

        Returns:
            Final reply text
        """
        utterance = (text or "").strip()

        if self.is_reset_command(utterance):
            return self.reset(conversation_id)

        if self._over_daily_limit(user_id):
            return LIMIT_REACHED_TEXT

        try:
            return self._run_pipeline(conversation_id, utterance)
        except Exception as e:
            logger.exception(f"Pipeline failed for {conversation_id}: {e}")
            self.context_manager.append(conversation_id, "assistant", FALLBACK_TEXT)
            return FALLBACK_TEXT

    def _run_pipeline(self, conversation_id: str, utterance: str) -> str:
        history = self.context_manager.load(conversation_id)

        # A pending clarification completes the earlier query with this turn
        pending_query = find_pending_query(
            history,
            CLARIFICATION_TEXT,
            lookback=self.settings.clarification_lookback
        )
        effective = f"{pending_query} {utterance}" if pending_query else utterance

        intent = self.classifier.classify(effective)
        self.context_manager.append(conversation_id, "user", utterance)

        if self.settings.verbose:
            print(f"\nCONVERSATION: {conversation_id}")
            print(f"  Utterance: {utterance}")
            if pending_query:
                print(f"  Pending query merged: {pending_query}")
            print(f"  Intent: {intent.value} (rule: {self.classifier.matched_rule(effective)})")

        if self.state_for(intent, effective) == ConversationState.AWAITING_LOCATION:
            logger.info(f"Asking for a location in {conversation_id}")
            self.context_manager.append(conversation_id, "assistant", CLARIFICATION_TEXT)
            return CLARIFICATION_TEXT

        evidence = None
        marketplace_url = None

        if intent != Intent.GENERAL or self.settings.always_research:
            query = self.refiner.refine(effective, intent)
            evidence = self.aggregator.aggregate(query, intent)

            if intent == Intent.PRODUCT:
                term = self.product_extractor.extract(effective)
                marketplace_url = build_marketplace_url(
                    term, self.settings.marketplace_url_template
                ) or None

            if self.settings.verbose:
                print(f"  Query: {query}")
                print(f"  Evidence: {len(evidence.results)} of {len(evidence.candidates)} kept")
                if marketplace_url:
                    print(f"  Marketplace: {marketplace_url}")
        else:
            evidence = EvidenceBundle(query="")

        draft = self.synthesizer.synthesize(
            utterance=effective,
            history=history,
            intent=intent,
            evidence=evidence,
            marketplace_url=marketplace_url
        )

        self.context_manager.append(conversation_id, "assistant", draft.text)
        return draft.text

    def state_for(self, intent: Intent, utterance: str) -> ConversationState:
        """Proximity without a place cannot be researched yet."""
        if intent == Intent.PROXIMITY and not has_place_token(utterance):
            return ConversationState.AWAITING_LOCATION
        return ConversationState.NORMAL

    def is_reset_command(self, utterance: str) -> bool:
        commands = {command.lower() for command in self.settings.reset_commands}
        return utterance.lower() in commands

    def reset(self, conversation_id: str) -> str:
        """Clear the conversation history; the outcome is reported to the user."""
        try:
            self.context_manager.reset(conversation_id)
        except ConversationResetError as e:
            logger.error(f"Reset failed: {e}")
            return RESET_FAILED_TEXT
        logger.info(f"Conversation {conversation_id} reset")
        return RESET_DONE_TEXT

    def _over_daily_limit(self, user_id: Optional[str]) -> bool:
        limit = self.settings.daily_message_limit
        if limit <= 0 or not self.usage_store or not user_id:
            return False
        try:
            count = self.usage_store.increment(user_id)
        except Exception as e:
            logger.error(f"Usage counter failed for {user_id}: {e}")
            return False
        if count > limit:
            logger.info(f"Daily limit reached for {user_id} ({count}/{limit})")
            return True
        return False

    def get_conversation_history(self, conversation_id: str) -> list:
        """Get conversation history for display."""
        return [
            {"role": turn.role, "content": turn.content, "timestamp": turn.timestamp}
            for turn in self.context_manager.load(conversation_id)
        ]
