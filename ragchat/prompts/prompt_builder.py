# ragchat/prompts/prompt_builder.py

from typing import List, Optional, Sequence

from ragchat.models import ChatMessage, RetrievalResult, Turn
from ragchat.prompts.system_prompts import CONTEXT_HEADER, SOURCE_TAG


def build_context_block(results: Sequence[RetrievalResult]) -> str:
    """Retrieved passages in rank order, each tagged with its source."""

    return "\n\n".join(
        SOURCE_TAG.format(source=r.source, text=r.text)
        for r in results
    )


def build_system_message(directive: str, results: Sequence[RetrievalResult]) -> ChatMessage:
    """
    Directive first, retrieved context after it.

    The context header is kept even when nothing was retrieved, so the
    model sees an explicit empty context rather than none at all.
    """

    context_block = build_context_block(results)

    return ChatMessage(
        role="system",
        content=f"{directive}\n\n{CONTEXT_HEADER}\n{context_block}",
    )


def build_messages(
    query: str,
    directive: str,
    results: Sequence[RetrievalResult],
    history: Sequence[Turn],
    history_window: Optional[int] = None,
) -> List[ChatMessage]:
    """
    Full request for the completion engine:
    [system] + prior history + [user query].

    history_window keeps only the most recent turns; None sends all of them.
    """

    if history_window is not None:
        history = history[-history_window:] if history_window else []

    messages = [build_system_message(directive, results)]

    messages.extend(
        ChatMessage(role=turn.role, content=turn.content)
        for turn in history
    )

    messages.append(ChatMessage(role="user", content=query))

    return messages
