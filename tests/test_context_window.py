from __future__ import annotations

from atelier_engine.chat.context_window import (
    ContextWindowManager,
    analyze_complexity,
    estimate_tokens,
    is_summary,
    optimal_context_size,
    relevance,
    summarize_long_conversation,
    to_turns,
)
from atelier_engine.chat.messages import ImageMessage, TextMessage


def _history(count: int, content: str = "message number {i}") -> list[TextMessage]:
    return [
        TextMessage(role="user" if i % 2 == 0 else "assistant", content=content.format(i=i))
        for i in range(count)
    ]


def test_long_history_gets_exactly_one_summary_within_size() -> None:
    history = _history(60)
    selection = ContextWindowManager().select(history, "what about the weather")

    assert selection.context_size == 10
    assert len(selection.messages) <= selection.context_size
    assert sum(1 for message in selection.messages if is_summary(message)) == 1
    assert selection.summary is selection.messages[0]
    assert selection.messages[-1] is history[-1]
    assert selection.summarized == 40


def test_summarize_keeps_last_twenty() -> None:
    history = _history(51)
    compressed = summarize_long_conversation(history)
    assert len(compressed) == 21
    assert is_summary(compressed[0])
    assert "31 previous messages summarized" in compressed[0].content
    assert compressed[1:] == history[-20:]
    assert summarize_long_conversation(history[:50]) == history[:50]


def test_recent_messages_are_always_kept() -> None:
    history = _history(8)
    selection = ContextWindowManager().select(history, "volcanoes lava")
    assert selection.messages == history[-4:]
    assert len(selection.dropped) == 4


def test_relevant_older_message_is_kept() -> None:
    history = _history(8)
    history[1] = TextMessage(role="assistant", content="volcanoes erupt with molten lava")
    selection = ContextWindowManager().select(history, "volcanoes lava")
    assert selection.messages == [history[1], *history[-4:]]


def test_size_cap_limits_selection() -> None:
    history = _history(8, content="volcanoes lava {i}")
    selection = ContextWindowManager().select(history, "volcanoes lava", size_cap=6)
    assert selection.context_size == 6
    assert selection.messages == history[-6:]


def test_token_budget_drops_oldest() -> None:
    history = _history(4, content="x" * 39 + "{i}")
    selection = ContextWindowManager(token_budget=10).select(history, "anything")
    assert selection.messages == [history[-1]]
    assert selection.estimated_tokens == 10


def test_token_budget_wins_over_keeping_an_entry() -> None:
    history = [TextMessage(role="user", content="y" * 400)]
    selection = ContextWindowManager(token_budget=50).select(history, "anything")
    assert selection.messages == []
    assert selection.estimated_tokens == 0
    assert selection.dropped == [history[0].message_id]


def test_complex_history_widens_window() -> None:
    code = [TextMessage(role="user", content="```python\ndef function(): pass\n```") for _ in range(3)]
    assert analyze_complexity(code) > 0.7
    assert optimal_context_size(code) == 15
    assert optimal_context_size(code, cap=6) == 6
    assert optimal_context_size(_history(3)) == 10


def test_relevance_counts_all_input_words() -> None:
    assert relevance("volcanoes erupt lava", "volcanoes lava") == 1.0
    assert relevance("volcanoes erupt", "tell me about volcanoes") == 0.25
    assert relevance("anything", "") == 0.0


def test_estimate_tokens() -> None:
    assert estimate_tokens("") == 1
    assert estimate_tokens("a" * 400) == 100


def test_to_turns_references_images() -> None:
    turns = to_turns(
        [
            TextMessage(role="user", content="draw a cat"),
            ImageMessage(role="assistant", content="Here it is", image_ref="/tmp/cat.png"),
        ]
    )
    assert turns == [
        {"role": "user", "content": "draw a cat"},
        {"role": "assistant", "content": "Here it is\n[image: /tmp/cat.png]"},
    ]
