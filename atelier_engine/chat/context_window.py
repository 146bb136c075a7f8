"""Bound the history sent to the text-generation provider.

Selection happens in three passes: long conversations are first compressed
(everything but the newest 20 messages becomes one summary message), the
remaining messages are filtered by word overlap with the new input while the
newest `min_recent` are always kept, and finally the oldest entries are
dropped until both the turn limit and the token budget hold.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

from ..utils import new_id
from .messages import ImageMessage, Message, TextMessage

TECHNICAL_TERMS = ("function", "algorithm", "implementation", "architecture", "optimization")
MATH_TERMS = ("equation", "derivative", "integral", "theorem", "proof")
CODE_MARKERS = ("```", "function", "class")

LOW_COMPLEXITY_SIZE = 10
HIGH_COMPLEXITY_SIZE = 15
COMPLEXITY_THRESHOLD = 0.7
RELEVANCE_THRESHOLD = 0.3
SUMMARY_TRIGGER = 50
SUMMARY_KEEP_RECENT = 20
SUMMARY_KEY_POINTS = 3
MIN_RECENT = 4
DEFAULT_TOKEN_BUDGET = 6000


def analyze_complexity(messages: Sequence[Message]) -> float:
    score = 0.0
    for message in messages:
        content = message.content.lower()
        score += 0.1 * sum(1 for term in TECHNICAL_TERMS if term in content)
        score += 0.1 * sum(1 for term in MATH_TERMS if term in content)
        if len(message.content) > 500:
            score += 0.1
        if len(message.content) > 1000:
            score += 0.2
        if any(marker in content for marker in CODE_MARKERS):
            score += 0.2
    return min(score, 1.0)


def optimal_context_size(messages: Sequence[Message], cap: int | None = None) -> int:
    size = HIGH_COMPLEXITY_SIZE if analyze_complexity(messages) > COMPLEXITY_THRESHOLD else LOW_COMPLEXITY_SIZE
    if cap is not None:
        size = min(size, cap)
    return size


def relevance(content: str, current_input: str) -> float:
    """Share of the input's words (longer than 3 chars) found in `content`.

    The denominator counts every input word, short ones included.
    """
    message_words = set(content.lower().split())
    input_words = current_input.lower().split()
    if not input_words:
        return 0.0
    common = sum(1 for word in input_words if len(word) > 3 and word in message_words)
    return common / len(input_words)


def estimate_tokens(text: str) -> int:
    return max(1, len(text) // 4)


def is_summary(message: Message) -> bool:
    return message.message_id.startswith("summary-")


def summary_message(messages: Sequence[Message]) -> TextMessage:
    topics: list[str] = []
    key_points: list[str] = []
    for message in messages:
        if message.role != "user":
            continue
        content = message.content.lower()
        if ("programming" in content or "code" in content) and "Programming" not in topics:
            topics.append("Programming")
        if ("math" in content or "equation" in content) and "Mathematics" not in topics:
            topics.append("Mathematics")
        if ("image" in content or "photo" in content) and "Image Generation" not in topics:
            topics.append("Image Generation")
        if len(message.content) > 100:
            key_points.append(message.content[:50] + "...")
    content = (
        "📋 **Conversation Summary**\n\n"
        f"**Topics Discussed:** {', '.join(topics)}\n"
        f"**Key Points:** {' | '.join(key_points[:SUMMARY_KEY_POINTS])}\n"
        f"**Messages:** {len(messages)} previous messages summarized"
    )
    return TextMessage(role="assistant", content=content, message_id=new_id("summary-"))


def summarize_long_conversation(messages: Sequence[Message]) -> list[Message]:
    if len(messages) <= SUMMARY_TRIGGER:
        return list(messages)
    older = messages[:-SUMMARY_KEEP_RECENT]
    recent = messages[-SUMMARY_KEEP_RECENT:]
    return [summary_message(older), *recent]


@dataclass
class ContextSelection:
    messages: list[Message]
    context_size: int
    complexity: float
    estimated_tokens: int
    summarized: int = 0
    dropped: list[str] = field(default_factory=list)

    @property
    def summary(self) -> Message | None:
        if self.messages and is_summary(self.messages[0]):
            return self.messages[0]
        return None


class ContextWindowManager:
    def __init__(
        self,
        *,
        token_budget: int = DEFAULT_TOKEN_BUDGET,
        min_recent: int = MIN_RECENT,
        relevance_threshold: float = RELEVANCE_THRESHOLD,
    ) -> None:
        self.token_budget = token_budget
        self.min_recent = min_recent
        self.relevance_threshold = relevance_threshold

    def select(
        self,
        history: Sequence[Message],
        current_input: str,
        *,
        size_cap: int | None = None,
    ) -> ContextSelection:
        complexity = analyze_complexity(history)
        size = optimal_context_size(history, cap=size_cap)
        compressed = summarize_long_conversation(history)
        summary = compressed[0] if compressed and is_summary(compressed[0]) else None
        body = compressed[1:] if summary is not None else compressed

        protected = body[-self.min_recent :] if self.min_recent > 0 else []
        older = body[: len(body) - len(protected)]
        relevant = [
            message
            for message in older
            if relevance(message.content, current_input) > self.relevance_threshold
        ]
        relevant_ids = {message.message_id for message in relevant}
        dropped = [message.message_id for message in older if message.message_id not in relevant_ids]

        body_limit = size - 1 if summary is not None else size
        kept = [*relevant, *protected]
        if len(kept) > body_limit:
            dropped.extend(message.message_id for message in kept[: len(kept) - body_limit])
            kept = kept[len(kept) - body_limit :] if body_limit > 0 else []

        selected: list[Message] = [summary, *kept] if summary is not None else kept
        total = sum(estimate_tokens(message.content) for message in selected)
        while selected and total > self.token_budget:
            victim_idx = 1 if summary is not None and len(selected) > 1 else 0
            victim = selected.pop(victim_idx)
            dropped.append(victim.message_id)
            total -= estimate_tokens(victim.content)
            if victim is summary:
                summary = None

        return ContextSelection(
            messages=selected,
            context_size=size,
            complexity=complexity,
            estimated_tokens=total,
            summarized=len(history) - SUMMARY_KEEP_RECENT if len(history) > SUMMARY_TRIGGER else 0,
            dropped=dropped,
        )


def to_turns(messages: Sequence[Message]) -> list[dict[str, Any]]:
    turns: list[dict[str, Any]] = []
    for message in messages:
        content = message.content
        if isinstance(message, ImageMessage):
            content = f"{content}\n[image: {message.image_ref}]".strip()
        turns.append({"role": "assistant" if message.role == "assistant" else "user", "content": content})
    return turns
