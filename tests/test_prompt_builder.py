# tests/test_prompt_builder.py
from ragchat.models import RetrievalResult, Turn
from ragchat.prompts.prompt_builder import (
    build_context_block,
    build_messages,
    build_system_message,
)


RESULTS = [
    RetrievalResult(text="Best passage", source="a.pdf", score=0.9),
    RetrievalResult(text="Second passage", source="b.pdf", score=0.7),
]


class TestContextBlock:

    def test_passages_tagged_in_rank_order(self):
        block = build_context_block(RESULTS)

        assert block == "[Source: a.pdf] Best passage\n\n[Source: b.pdf] Second passage"

    def test_empty_results(self):
        assert build_context_block([]) == ""


class TestSystemMessage:

    def test_directive_precedes_context(self):
        message = build_system_message("Be brief.", RESULTS)

        assert message.role == "system"
        assert message.content.startswith("Be brief.\n\nContext:\n")
        assert message.content.index("Be brief.") < message.content.index("[Source: a.pdf]")

    def test_header_kept_without_results(self):
        message = build_system_message("Be brief.", [])

        assert message.content == "Be brief.\n\nContext:\n"


class TestMessageSequence:

    def test_order_is_system_history_query(self):
        history = (
            Turn(role="user", content="Earlier question"),
            Turn(role="assistant", content="Earlier answer"),
        )

        messages = build_messages("New question", "Directive", RESULTS, history)

        assert [m.role for m in messages] == ["system", "user", "assistant", "user"]
        assert messages[1].content == "Earlier question"
        assert messages[2].content == "Earlier answer"
        assert messages[-1].content == "New question"

    def test_query_is_last_even_without_history(self):
        messages = build_messages("Only question", "Directive", RESULTS, ())

        assert len(messages) == 2
        assert messages[-1].role == "user"
        assert messages[-1].content == "Only question"

    def test_history_window_keeps_most_recent_turns(self):
        history = tuple(
            Turn(role="user" if i % 2 == 0 else "assistant", content=f"turn {i}")
            for i in range(6)
        )

        messages = build_messages("q", "d", [], history, history_window=2)

        assert [m.content for m in messages[1:-1]] == ["turn 4", "turn 5"]

    def test_no_window_sends_full_history(self):
        history = tuple(
            Turn(role="user" if i % 2 == 0 else "assistant", content=f"turn {i}")
            for i in range(50)
        )

        messages = build_messages("q", "d", [], history)

        assert len(messages) == 52
