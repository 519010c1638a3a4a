from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage
from langchain_core.prompts import ChatPromptTemplate, MessagesPlaceholder
from langchain_core.runnables import Runnable
from langchain_google_genai import ChatGoogleGenerativeAI

from agent.core.models import Turn
from agent.core.prompt import SYSTEM_PROMPT
from config.settings import get_settings


def build_chain() -> Runnable:
    settings = get_settings()
    if not settings.google_api_key:
        raise RuntimeError(
            "GOOGLE_API_KEY not set. Please configure it in environment or .env"
        )

    llm = ChatGoogleGenerativeAI(
        model=settings.gemini_model,
        google_api_key=settings.google_api_key,
        temperature=settings.temperature,
        top_p=settings.top_p,
    )

    prompt = ChatPromptTemplate.from_messages(
        [
            ("system", SYSTEM_PROMPT),
            MessagesPlaceholder("chat_history", optional=True),
            ("human", "{input}\n\n{directive}"),
        ]
    )

    # No server memory: the client sends the transcript every turn.
    return prompt | llm


def to_lc_messages(history: Sequence[Turn], limit: Optional[int] = None) -> List[BaseMessage]:
    if limit is None:
        limit = get_settings().history_turns
    turns = list(history or [])
    if limit > 0:
        turns = turns[-limit:]
    messages: List[BaseMessage] = []
    for turn in turns:
        text = turn.text
        if not text:
            continue
        if turn.role == "user":
            messages.append(HumanMessage(content=text))
        else:
            messages.append(AIMessage(content=text))
    return messages


def _content_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            part if isinstance(part, str) else str(part.get("text", ""))
            for part in content
            if isinstance(part, (str, dict))
        )
    return ""


def build_payload(query: str, directive: str, history: Sequence[Turn]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"input": query, "directive": directive}
    chat_history = to_lc_messages(history)
    if chat_history:
        # Only include chat_history key if we actually have turns
        payload["chat_history"] = chat_history
    return payload


def run_chain(chain: Runnable, payload: Dict[str, Any]) -> Dict[str, Optional[str]]:
    try:
        result = chain.invoke(payload)
    except Exception as exc:
        return {"output": "", "error": str(exc)}

    return {"output": _content_text(getattr(result, "content", result)), "error": None}


def stream_chain(chain: Runnable, payload: Dict[str, Any]) -> Iterator[str]:
    for chunk in chain.stream(payload):
        text = _content_text(getattr(chunk, "content", chunk))
        if text:
            yield text
