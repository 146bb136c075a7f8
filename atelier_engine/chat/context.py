"""Per-conversation state as an immutable value with explicit transitions."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Literal

ExpertiseLevel = Literal["beginner", "intermediate", "advanced"]
TOPIC_THREAD_LIMIT = 5
RELATED_TOPICS_LIMIT = 3


@dataclass(frozen=True)
class EnhancementRecord:
    prompt: str
    result_ref: str


@dataclass(frozen=True)
class UserPreferences:
    response_style: Literal["concise", "detailed", "balanced"] = "balanced"
    technical_level: Literal["basic", "intermediate", "advanced"] = "intermediate"
    preferred_examples: bool = True


@dataclass(frozen=True)
class ConversationContext:
    selected_image: str | None = None
    selected_message_id: str | None = None
    selection_mode: bool = False
    uploaded_image: str | None = None
    enhancement_history: tuple[EnhancementRecord, ...] = ()
    topic_thread: tuple[str, ...] = ()
    expertise_level: ExpertiseLevel = "intermediate"
    conversation_depth: int = 0
    related_topics: tuple[str, ...] = ()
    preferences: UserPreferences = field(default_factory=UserPreferences)

    @property
    def has_selection(self) -> bool:
        return self.selected_image is not None


def new_context(preferences: UserPreferences | None = None) -> ConversationContext:
    return ConversationContext(preferences=preferences or UserPreferences())


def enter_selection_mode(ctx: ConversationContext) -> ConversationContext:
    return replace(
        ctx,
        selection_mode=True,
        selected_image=None,
        selected_message_id=None,
        topic_thread=(),
        conversation_depth=0,
    )


def cancel_selection(ctx: ConversationContext) -> ConversationContext:
    return replace(ctx, selection_mode=False, selected_image=None, selected_message_id=None)


def select_image(ctx: ConversationContext, image_ref: str, message_id: str | None = None) -> ConversationContext:
    return replace(ctx, selection_mode=False, selected_image=image_ref, selected_message_id=message_id)


def reset_selection(ctx: ConversationContext) -> ConversationContext:
    return replace(
        ctx,
        selected_image=None,
        selected_message_id=None,
        enhancement_history=(),
        topic_thread=(),
        conversation_depth=0,
    )


def record_enhancement(ctx: ConversationContext, prompt: str, result_ref: str) -> ConversationContext:
    """Append to the history and retarget the selection to the new result."""
    return replace(
        ctx,
        enhancement_history=ctx.enhancement_history + (EnhancementRecord(prompt, result_ref),),
        selected_image=result_ref,
    )


def set_uploaded_image(ctx: ConversationContext, image_ref: str | None) -> ConversationContext:
    return replace(ctx, uploaded_image=image_ref)


def record_chat_turn(
    ctx: ConversationContext,
    *,
    topics: tuple[str, ...] | list[str],
    expertise: ExpertiseLevel,
    related_topics: tuple[str, ...] | list[str],
) -> ConversationContext:
    return replace(
        ctx,
        topic_thread=tuple(topics)[:TOPIC_THREAD_LIMIT],
        expertise_level=expertise,
        conversation_depth=ctx.conversation_depth + 1,
        related_topics=tuple(related_topics)[:RELATED_TOPICS_LIMIT],
    )
