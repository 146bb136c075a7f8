"""Entry point for every user message: classify once, dispatch once."""

from __future__ import annotations

from typing import Any, Callable

from ..errors import ErrorCategory, ProviderError, categorize, user_message, user_title
from ..media.artifacts import read_media, verify_upload
from ..media.pipeline import MediaPipeline
from ..providers.base import ChatRequest, TextProvider
from ..runs.events import EventWriter
from ..runs.performance import PerformanceMonitor
from . import enhancement
from .command_registry import MODES
from .context import (
    ConversationContext,
    cancel_selection,
    enter_selection_mode,
    new_context,
    record_chat_turn,
    record_enhancement,
    reset_selection,
    select_image,
    set_uploaded_image,
)
from .context_window import ContextWindowManager, to_turns
from .intent_parser import parse_intent
from .intent_schema import (
    AnalyzeImage,
    CancelSelection,
    Chat,
    Command,
    ConfirmEnhancement,
    GeneratePhoto,
    IntentState,
    RequestEnhancement,
    ResetSelection,
    SelectImage,
    Suggest,
)
from .messages import Conversation, ImageMessage, Message, TextMessage, loading_message
from .prompting import (
    ANALYST_SYSTEM_PROMPT,
    analysis_prompt,
    build_system_prompt,
    determine_expertise,
    extract_related_topics,
    extract_topics,
    suggestions_for,
)
from .streaming import StreamingCoordinator

GREETING = (
    "Hello! I'm your AI assistant. I can help you with:\n\n"
    "💻 **Programming** - Debug code, explain concepts, generate APIs\n"
    "🧮 **Mathematics** - Solve equations, explain theories, step-by-step solutions\n"
    "🎨 **Photo Generation** - Create images from descriptions\n"
    "📸 **Image Enhancement** - Upload and enhance your photos with AI\n"
    "🎯 **Image Selection & Conversation** - Select any image and talk about enhancing it\n"
    "🎤 **Voice Interaction** - Speak to me and I'll respond with voice\n\n"
    "What would you like to work on today?"
)

SELECTION_MODE_MESSAGE = (
    "🎯 **Image Selection Mode Active**\n\n"
    "Click on any image in the conversation to select it for enhancement and discussion. "
    "Once selected you can:\n\n"
    "• Enhance it with specific requests\n"
    "• Ask questions about it\n"
    "• Get analysis and suggestions\n\n"
    "Click on an image to select it, or type \"cancel\" to exit selection mode."
)

SELECTION_CANCELLED_MESSAGE = (
    "❌ **Image Selection Cancelled**\n\n"
    "You can still enhance images by:\n"
    "• Uploading a new image\n"
    "• Using the photo generation mode\n\n"
    "Type \"select image\" to enter selection mode again."
)

IMAGE_SELECTED_MESSAGE = (
    "🎯 **Image Selected for Enhancement!**\n\n"
    "**🤖 Interactive Enhancement Flow:**\n"
    "1. **Tell me what you want to enhance** (e.g., \"enhance the lighting\")\n"
    "2. **I'll ask for confirmation** and show you what I'll do\n"
    "3. **Say \"proceed\" or \"yes\"** to generate the enhancement\n"
    "4. **Or say \"no\" or \"change\"** to modify your request\n\n"
    "**📝 Other Options:**\n"
    "• Type \"analyze\" for detailed analysis\n"
    "• Type \"reset\" to select a different image\n"
    "• Type \"suggest\" for enhancement ideas\n\n"
    "What would you like to enhance in this image?"
)

SELECTION_RESET_MESSAGE = (
    "🔄 **Image Selection Reset**\n\n"
    "I've cleared the selected image. You can now:\n"
    "• Select a different image\n"
    "• Upload a new image\n"
    "• Generate a new image\n\n"
    "Type \"select image\" to choose an image from the conversation."
)

PHOTO_MODE_MESSAGE = (
    "🎨 **Photo Generation Mode Activated!**\n\n"
    "Describe what you want to see and I'll generate it. After generating an image you can "
    "edit it by describing changes (\"change the sky to a stormy night\"), or ask for an "
    "upscale with words like \"4k\" or \"high quality\"."
)

_FAILURE_TITLES = {
    AnalyzeImage: "Image Analysis",
    ConfirmEnhancement: "Image Enhancement",
    GeneratePhoto: "Image Generation",
    Chat: "Response",
}


class IntentRouter:
    def __init__(
        self,
        conversation: Conversation,
        pipeline: MediaPipeline,
        streaming: StreamingCoordinator,
        text_provider: TextProvider,
        *,
        mode: str = "general",
        model: str = "default",
        max_tokens: int = 1500,
        temperature: float = 0.7,
        image_style: str | None = None,
        context_window: ContextWindowManager | None = None,
        speaker: Callable[[str], Any] | None = None,
        events: EventWriter | None = None,
        monitor: PerformanceMonitor | None = None,
    ) -> None:
        self.conversation = conversation
        self.pipeline = pipeline
        self.streaming = streaming
        self.text_provider = text_provider
        self.mode = mode
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.image_style = image_style
        self.context_window = context_window or ContextWindowManager()
        self.speaker = speaker
        self.events = events
        self.monitor = monitor
        self.context: ConversationContext = new_context()
        self.enhancement = enhancement.IDLE
        self.loading = False

    def intent_state(self) -> IntentState:
        return IntentState(
            selection_mode=self.context.selection_mode,
            has_selection=self.context.has_selection,
            awaiting_confirmation=self.enhancement.awaiting_confirmation,
            photo_mode=self.mode == "photo",
            has_upload=self.context.uploaded_image is not None,
        )

    def status(self) -> dict[str, Any]:
        return {
            "loading": self.loading,
            "selection_mode": self.context.selection_mode,
            "selected_image": self.context.selected_image,
            "awaiting_confirmation": self.enhancement.awaiting_confirmation,
            "mode": self.mode,
        }

    def handle(self, text: str, *, message: Message | None = None) -> Command | None:
        """Record the user's message, classify it, and dispatch it.

        `message` lets voice input arrive as a `VoiceMessage`; its content is
        what gets classified. Any failure ends in one assistant message plus
        one toast, and no loading placeholder survives.
        """
        if message is None:
            if not text or not text.strip():
                return None
            message = TextMessage(role="user", content=text)
        self.conversation.append(message)
        text = message.content
        command = parse_intent(text, self.intent_state())
        if self.events is not None:
            self.events.emit("intent_classified", command=type(command).__name__, mode=self.mode)
        self.loading = True
        try:
            self._dispatch(command)
        except Exception as exc:
            self._report_failure(command, exc)
        finally:
            self.loading = False
            self._clear_placeholders()
        return command

    def choose_image(self, message_id: str) -> bool:
        if not self.context.selection_mode:
            return False
        target = self.conversation.find(message_id)
        if not isinstance(target, ImageMessage):
            return False
        self.context = select_image(self.context, target.image_ref, target.message_id)
        self._say(IMAGE_SELECTED_MESSAGE)
        self._toast("Image Selected", "You can now enhance and discuss this image.")
        return True

    def new_chat(self) -> None:
        self.conversation.reset()
        if self.events is not None:
            self.events.session_id = self.conversation.session_id
        self.context = new_context(self.context.preferences)
        self.enhancement = enhancement.IDLE
        self.mode = "general"
        self._say(GREETING)
        if self.events is not None:
            self.events.emit("session_started", mode=self.mode)

    def set_mode(self, mode: str) -> None:
        if mode not in MODES:
            raise ValueError(f"Unknown mode '{mode}'. Expected one of: {', '.join(MODES)}.")
        self.mode = mode
        if mode == "photo":
            self._say(PHOTO_MODE_MESSAGE)

    def upload_image(self, image_ref: str, caption: str = "Uploaded image") -> ImageMessage:
        verify_upload(read_media(image_ref))
        message = ImageMessage(role="user", content=caption, image_ref=image_ref)
        self.conversation.append(message)
        self.context = set_uploaded_image(self.context, image_ref)
        self._toast("Image Uploaded", "Describe how you'd like it enhanced.")
        return message

    def _dispatch(self, command: Command) -> None:
        if isinstance(command, SelectImage):
            self.context = enter_selection_mode(self.context)
            self.enhancement = enhancement.IDLE
            self._say(SELECTION_MODE_MESSAGE)
        elif isinstance(command, CancelSelection):
            self.context = cancel_selection(self.context)
            self._say(SELECTION_CANCELLED_MESSAGE)
        elif isinstance(command, AnalyzeImage):
            self._analyze()
        elif isinstance(command, ResetSelection):
            self.context = reset_selection(self.context)
            self.enhancement = enhancement.IDLE
            self._say(SELECTION_RESET_MESSAGE)
        elif isinstance(command, RequestEnhancement):
            self._apply(enhancement.request(self.enhancement, command.prompt))
        elif isinstance(command, ConfirmEnhancement):
            self._apply(enhancement.respond(self.enhancement, command.response, command.raw))
        elif isinstance(command, Suggest):
            self._say(enhancement.SUGGESTIONS_MESSAGE)
        elif isinstance(command, GeneratePhoto):
            if command.enhance_upload:
                self._enhance_upload(command.prompt)
            else:
                self._photo(command.prompt)
        else:
            self._chat(command.prompt)

    def _apply(self, transition: enhancement.Transition) -> None:
        self.enhancement = transition.state
        if transition.message:
            self._say(transition.message)
        if transition.execute_prompt is not None:
            self._execute_enhancement(transition.execute_prompt)

    def _execute_enhancement(self, prompt: str) -> None:
        if not self.context.selected_image:
            raise ProviderError(ErrorCategory.NO_SELECTION, "No image is selected.")
        result = self.pipeline.enhance(self.context.selected_image, prompt)
        self.context = record_enhancement(self.context, prompt, result.image_ref)
        count = len(self.context.enhancement_history)
        self.conversation.append(
            ImageMessage(
                role="assistant",
                content=(
                    "✨ **Image Enhanced Successfully!**\n\n"
                    f"**Enhancement Request:** \"{prompt}\"\n\n"
                    f"**Enhancement History:** {count} modifications made to this image."
                ),
                image_ref=result.image_ref,
            )
        )
        self._toast("Image Enhanced", "Your image has been enhanced successfully!")
        self._speak(f"I've enhanced the image: {prompt}")

    def _enhance_upload(self, prompt: str) -> None:
        result = self.pipeline.enhance(self.context.uploaded_image, prompt)
        self.context = set_uploaded_image(self.context, result.image_ref)
        self.conversation.append(
            ImageMessage(
                role="assistant",
                content=f"✨ **Image Enhanced Successfully!**\n\n**Enhancement Request:** \"{prompt}\"",
                image_ref=result.image_ref,
            )
        )
        self._toast("Image Enhanced", "Your image has been enhanced successfully!")
        self._speak(f"I've enhanced your uploaded image: {prompt}")

    def _analyze(self) -> None:
        request = ChatRequest(
            system_prompt=ANALYST_SYSTEM_PROMPT,
            turns=[{"role": "user", "content": analysis_prompt(len(self.context.enhancement_history))}],
            model=self.model,
            max_tokens=1500,
            temperature=self.temperature,
        )
        analysis = self.text_provider.complete(request) or "Unable to analyze the image."
        count = len(self.context.enhancement_history)
        text = (
            f"📸 **Image Analysis Complete!**\n\n{analysis}\n\n"
            f"**Enhancement History:** {count} previous modifications"
        )
        self._say(text)
        self._toast("Image Analyzed", "Detailed feedback on your selected image is ready.")
        self._speak(analysis)

    def _photo(self, prompt: str) -> None:
        previous = self.conversation.latest_image()
        placeholder = self.conversation.append(
            loading_message("🎨 **Generating your image...**\n\nPlease wait while I create your image.")
        )
        try:
            outcome = self.pipeline.photo(
                prompt,
                previous_image=previous.image_ref if previous else None,
                style=self.image_style,
            )
        finally:
            self.conversation.remove(placeholder.message_id)
        details = ""
        if outcome.applied == "edit" and outcome.parameters is not None:
            details = f"\n\n🎨 **Edited**\n• {outcome.parameters.describe()}"
        elif outcome.applied == "upscale":
            details = "\n\n✨ **Enhanced with Upscale**\n• 2x resolution increase\n• Quality enhancement applied"
        if outcome.note:
            reason = user_title(outcome.note_category) if outcome.note_category else "unknown error"
            details += f"\n\n⚠️ **Note:** {outcome.note}: {reason}"
        self.conversation.append(
            ImageMessage(
                role="assistant",
                content=(
                    "🎨 **Image Generated Successfully!**\n\n"
                    f"**Prompt:** \"{prompt}\"\n"
                    f"**Style:** {self.image_style or self.pipeline.style}{details}"
                ),
                image_ref=outcome.image_ref,
            )
        )
        enhanced = "and enhanced " if outcome.upscaled else ""
        self._speak(f"I've generated {enhanced}an image based on your request: {prompt}")

    def _chat(self, prompt: str) -> None:
        history = list(self.conversation.messages[:-1])
        size_cap = self.monitor.context_size_cap() if self.monitor is not None else None
        selection = self.context_window.select(history, prompt, size_cap=size_cap)
        self.context = record_chat_turn(
            self.context,
            topics=extract_topics(history[-5:]),
            expertise=determine_expertise(history),
            related_topics=extract_related_topics(prompt),
        )
        max_tokens = self.monitor.max_tokens(self.max_tokens) if self.monitor is not None else self.max_tokens
        request = ChatRequest(
            system_prompt=build_system_prompt(self.mode, history, self.context),
            turns=[*to_turns(selection.messages), {"role": "user", "content": prompt}],
            model=self.model,
            max_tokens=max_tokens,
            temperature=self.temperature,
        )
        result = self.streaming.respond(self.conversation, request)
        if self.events is not None:
            self.events.emit("suggestions", items=suggestions_for(result.text, self.mode, self.context))
        self._speak(result.text)

    def _report_failure(self, command: Command, exc: BaseException) -> None:
        category = categorize(exc)
        operation = _FAILURE_TITLES.get(type(command), "Request")
        title = user_title(category)
        description = user_message(category)
        self._say(f"❌ **{operation} Failed**\n\n**{title}:** {description}")
        self._toast(title, description, variant="destructive")

    def _clear_placeholders(self) -> None:
        for message in list(self.conversation.messages):
            if message.message_id.endswith(("-loading", "-streaming")):
                self.conversation.remove(message.message_id)

    def _say(self, text: str) -> Message:
        return self.conversation.append(TextMessage(role="assistant", content=text))

    def _toast(self, title: str, description: str, *, variant: str = "default") -> None:
        if self.events is not None:
            self.events.toast(title, description, variant=variant)

    def _speak(self, text: str) -> None:
        if self.speaker is None:
            return
        try:
            self.speaker(text)
        except (ProviderError, OSError) as exc:
            if self.events is not None:
                self.events.emit("speech_failed", category=categorize(exc).value, error=str(exc))
