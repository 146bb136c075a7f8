"""System prompts and conversation digests for text-generation calls."""

from __future__ import annotations

from typing import Sequence

from .context import ConversationContext, ExpertiseLevel
from .messages import Message

BASE_PROMPT = """You are an advanced AI assistant with deep expertise across multiple domains. You excel at:

🧠 **Contextual Understanding**: Analyze conversation patterns, user intent, and implicit needs
💭 **Deep Reasoning**: Provide multi-layered responses that address both explicit and implicit questions
🔄 **Adaptive Learning**: Adjust communication style based on user expertise level and preferences
🎯 **Proactive Assistance**: Anticipate follow-up questions and provide comprehensive guidance

Current Mode: {mode}
Conversation Depth: {depth}
User Expertise Level: {expertise}

**Conversation Context Analysis:**
{patterns}

**Response Guidelines:**
- Provide layered responses (immediate answer + deeper insights + related concepts)
- Reference previous conversation points when relevant
- Suggest logical next steps or related topics
- Adapt complexity to user's demonstrated knowledge level
- Ask clarifying questions to deepen understanding"""

CONTINUITY_PROMPT = (
    "\n\nConversation Context: This is an ongoing conversation. The user has been discussing {mode} "
    "topics. Please maintain continuity and reference previous discussions when relevant."
)

ANALYST_SYSTEM_PROMPT = (
    "You are an expert image analyst and photography consultant. Analyze selected images and provide "
    "detailed feedback for enhancement conversations."
)

DEEP_CONVERSATION_THRESHOLD = 5

_TOPIC_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("javascript", "js"), "JavaScript"),
    (("python",), "Python"),
    (("react",), "React"),
    (("api",), "API Development"),
    (("database",), "Database"),
    (("algebra",), "Algebra"),
    (("calculus",), "Calculus"),
    (("statistics",), "Statistics"),
    (("geometry",), "Geometry"),
    (("image", "photo"), "Image Processing"),
    (("enhance",), "Image Enhancement"),
    (("generate",), "Image Generation"),
)

_EXPERTISE_TERMS = (
    "function", "variable", "array", "object", "class", "method", "algorithm",
    "database", "query", "api", "framework", "library", "component",
    "derivative", "integral", "matrix", "vector", "equation", "theorem",
    "pixel", "resolution", "enhancement", "filter", "compression",
)

_COMPLEX_INDICATORS = (
    "implement", "optimize", "architecture", "design pattern", "algorithm",
    "performance", "scalability", "integration", "advanced", "complex",
)

_RELATED_TOPICS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("JavaScript", ("TypeScript", "React", "Node.js")),
    ("Python", ("Django", "Flask", "Data Science")),
    ("API", ("REST", "GraphQL", "Authentication")),
    ("algebra", ("calculus", "geometry", "statistics")),
    ("derivative", ("integration", "limits", "optimization")),
    ("photography", ("composition", "lighting", "editing")),
)

_FOLLOW_UPS: dict[str, tuple[str, ...]] = {
    "programming": (
        "Would you like to see implementation examples?",
        "Should I explain the underlying concepts?",
        "Do you need help with testing or debugging?",
    ),
    "math": (
        "Would you like to see step-by-step solutions?",
        "Should I explain the mathematical principles?",
        "Do you want to explore related problems?",
    ),
    "photo": (
        "Would you like variations of this image?",
        "Should I suggest enhancement techniques?",
        "Do you want to explore different styles?",
    ),
    "general": (
        "Would you like more detailed information?",
        "Should I provide practical examples?",
        "Do you have related questions?",
    ),
}


def _user_messages(messages: Sequence[Message]) -> list[Message]:
    return [message for message in messages if message.role == "user"]


def extract_topics(messages: Sequence[Message], limit: int = 5) -> list[str]:
    topics: list[str] = []
    for message in messages:
        content = message.content.lower()
        for keywords, topic in _TOPIC_RULES:
            if topic not in topics and any(keyword in content for keyword in keywords):
                topics.append(topic)
    return topics[:limit]


def analyze_question_types(messages: Sequence[Message]) -> str:
    question_words = ("how", "what", "why", "when", "where", "which")
    request_words = ("can you", "could you", "please", "help")
    questions = 0
    requests = 0
    for message in _user_messages(messages):
        content = message.content.lower()
        if any(word in content for word in question_words):
            questions += 1
        if any(word in content for word in request_words):
            requests += 1
    if questions > requests:
        return "Inquiry-focused"
    if requests > questions:
        return "Task-oriented"
    return "Mixed conversation"


def measure_engagement(messages: Sequence[Message]) -> str:
    users = _user_messages(messages)
    if not users:
        return "Low engagement"
    average = sum(len(message.content) for message in users) / len(users)
    if average > 100:
        return "High engagement"
    if average > 50:
        return "Medium engagement"
    return "Low engagement"


def count_technical_terms(messages: Sequence[Message]) -> int:
    count = 0
    for message in messages:
        content = message.content.lower()
        count += sum(1 for term in _EXPERTISE_TERMS if term in content)
    return count


def analyze_question_complexity(messages: Sequence[Message]) -> float:
    score = 0.0
    for message in messages:
        content = message.content.lower()
        score += 0.1 * sum(1 for indicator in _COMPLEX_INDICATORS if indicator in content)
        if len(message.content) > 200:
            score += 0.1
        if len(message.content) > 500:
            score += 0.2
    return min(score, 1.0)


def determine_expertise(messages: Sequence[Message]) -> ExpertiseLevel:
    users = _user_messages(messages)
    terms = count_technical_terms(users)
    complexity = analyze_question_complexity(users)
    if terms > 10 and complexity > 0.7:
        return "advanced"
    if terms > 5 and complexity > 0.4:
        return "intermediate"
    return "beginner"


def analyze_conversation_patterns(messages: Sequence[Message], topics: Sequence[str] | None = None) -> str:
    recent = list(messages)[-10:]
    if not topics:
        topics = extract_topics(recent)
    return (
        f"Recent Topics: {', '.join(topics)}\n"
        f"Question Patterns: {analyze_question_types(recent)}\n"
        f"Engagement Level: {measure_engagement(recent)}"
    )


def extract_related_topics(text: str) -> list[str]:
    topics: list[str] = []
    for marker, related in _RELATED_TOPICS:
        if marker in text:
            topics.extend(related)
    return topics[:3]


def generate_follow_up_suggestions(mode: str) -> list[str]:
    return list(_FOLLOW_UPS.get(mode, ()))


def generate_proactive_suggestions(last_response: str, mode: str) -> list[str]:
    suggestions: list[str] = []
    if "example" in last_response or "instance" in last_response:
        suggestions.append("Would you like to see more examples?")
    if "concept" in last_response or "theory" in last_response:
        suggestions.append("Should I explain the underlying principles?")
    if mode == "programming" and "function" in last_response:
        suggestions.append("Would you like to see this implemented in other languages?")
    if mode == "math" and ("equation" in last_response or "formula" in last_response):
        suggestions.append("Would you like to see step-by-step derivation?")
    if "error" in last_response or "mistake" in last_response:
        suggestions.append("Should I show you how to avoid this in the future?")
    return suggestions


def suggestions_for(last_response: str, mode: str, context: ConversationContext, limit: int = 3) -> list[str]:
    """Proactive suggestions first, then related topics, then the mode's follow-ups."""
    suggestions = generate_proactive_suggestions(last_response, mode)
    if context.related_topics:
        suggestions.append(f"Want to explore {', '.join(context.related_topics)}?")
    for follow_up in generate_follow_up_suggestions(mode):
        if follow_up not in suggestions:
            suggestions.append(follow_up)
    return suggestions[:limit]


def build_system_prompt(
    mode: str,
    history: Sequence[Message],
    context: ConversationContext | None = None,
) -> str:
    """Render the chat system prompt.

    Depth flips to `Deep` after five messages. With a `context`, expertise,
    the topic thread and related topics come from what the router tracked
    for this conversation; without one they are derived from `history`.
    """
    if context is None:
        expertise: str = determine_expertise(history)
        topics: Sequence[str] = ()
    else:
        expertise = context.expertise_level
        topics = context.topic_thread
    prompt = BASE_PROMPT.format(
        mode=mode,
        depth="Deep" if len(history) > DEEP_CONVERSATION_THRESHOLD else "Surface",
        expertise=expertise,
        patterns=analyze_conversation_patterns(history, topics),
    )
    if context is not None and context.related_topics:
        prompt += f"\n- Related topics worth mentioning: {', '.join(context.related_topics)}"
    if context is not None and context.preferences.response_style != "balanced":
        prompt += f"\n- Prefer {context.preferences.response_style} responses"
    if len(history) > DEEP_CONVERSATION_THRESHOLD:
        prompt += CONTINUITY_PROMPT.format(mode=mode)
    return prompt


def analysis_prompt(enhancement_count: int) -> str:
    return f"""Please provide a detailed analysis of this selected image for enhancement and conversation. Include:

1. **Visual Analysis:**
   - What objects, people, or scenes are visible
   - The style, composition, and quality of the image
   - Color palette and lighting analysis

2. **Technical Assessment:**
   - Image quality and resolution
   - Potential areas for improvement
   - Technical strengths and weaknesses

3. **Enhancement Suggestions:**
   - Specific improvements that could be made
   - Style modifications that would work well
   - Creative enhancement possibilities

4. **Conversation Context:**
   - Previous enhancements made (if any): {enhancement_count} modifications
   - How the image has evolved
   - Next steps for further improvement

Please be detailed and conversational in your analysis, as this is part of an ongoing enhancement conversation."""
