"""AI-kun - Streamlit chat front-end."""

import os
import uuid
import streamlit as st
from config.settings import Settings
from orchestrator import AssistantOrchestrator


st.set_page_config(
    page_title="AI-kun",
    page_icon="🔎",
    layout="centered"
)

# Initialize session state
if "conversation_id" not in st.session_state:
    st.session_state.conversation_id = str(uuid.uuid4())

if "messages" not in st.session_state:
    st.session_state.messages = []

if "orchestrator" not in st.session_state:
    st.session_state.orchestrator = None


def get_orchestrator(settings: Settings) -> AssistantOrchestrator:
    """Get or create orchestrator instance."""
    if st.session_state.orchestrator is None:
        st.session_state.orchestrator = AssistantOrchestrator(settings=settings)
    return st.session_state.orchestrator


# Sidebar configuration
st.sidebar.header("Configuration")

llm_provider = st.sidebar.selectbox(
    "LLM Provider",
    options=["openai", "anthropic"],
    index=0
)

openai_api_key = st.sidebar.text_input(
    "OpenAI API Key",
    value=os.environ.get("OPENAI_API_KEY", ""),
    type="password"
)

anthropic_api_key = st.sidebar.text_input(
    "Anthropic API Key",
    value=os.environ.get("ANTHROPIC_API_KEY", ""),
    type="password"
)

serpapi_api_key = st.sidebar.text_input(
    "SerpApi Key",
    value=os.environ.get("SERPAPI_API_KEY", ""),
    type="password",
    help="Required for web and social research"
)

with st.sidebar.expander("Advanced Settings"):
    recency_days = st.slider(
        "Social freshness (days)",
        min_value=1,
        max_value=365,
        value=14
    )
    history_window = st.slider(
        "History window (exchanges)",
        min_value=1,
        max_value=30,
        value=12
    )
    show_debug = st.checkbox("Show debug info", value=False)

settings = Settings(
    llm_provider=llm_provider,
    openai_api_key=openai_api_key or None,
    anthropic_api_key=anthropic_api_key or None,
    serpapi_api_key=serpapi_api_key or None,
    recency_days=recency_days,
    history_window=history_window,
    verbose=show_debug,
)

if st.sidebar.button("Start New Conversation", type="secondary"):
    reply = get_orchestrator(settings).reset(st.session_state.conversation_id)
    st.session_state.conversation_id = str(uuid.uuid4())
    st.session_state.messages = []
    st.session_state.orchestrator = None
    st.sidebar.info(reply)
    st.rerun()

st.sidebar.markdown("---")
st.sidebar.caption(f"Conversation ID: {st.session_state.conversation_id[:8]}...")

st.title("AI-kun")
st.markdown("Web and social research assistant")

for message in st.session_state.messages:
    with st.chat_message(message["role"]):
        st.markdown(message["content"])

if prompt := st.chat_input("質問をどうぞ（例: 渋谷で静かなカフェは？）"):
    st.session_state.messages.append({"role": "user", "content": prompt})

    with st.chat_message("user"):
        st.markdown(prompt)

    with st.chat_message("assistant"):
        with st.spinner("調べています..."):
            orchestrator = get_orchestrator(settings)

            if show_debug:
                intent = orchestrator.classifier.classify(prompt)
                st.info(f"Intent: {intent.value}")
                llm_status = "Enabled" if orchestrator.llm_client else "Disabled (fallback mode)"
                st.info(f"LLM: {llm_status}")

            response = orchestrator.reply_to_text(
                conversation_id=st.session_state.conversation_id,
                text=prompt,
                user_id=st.session_state.conversation_id
            )

            st.markdown(response)
            st.session_state.messages.append({"role": "assistant", "content": response})

if not st.session_state.messages:
    st.markdown("""
    ### Welcome!

    **Try asking:**
    - "ナルトのフィギュアを安く買うには？"
    - "近くのカフェ"
    - "渋谷のガチャガチャ専門店の雰囲気は？"

    Send "リセット" to clear the conversation history.
    """)
