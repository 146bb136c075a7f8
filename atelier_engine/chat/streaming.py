"""Incremental assembly of a streamed assistant response."""

from __future__ import annotations

import time
from dataclasses import dataclass

from ..cancellation import CancelToken
from ..errors import ErrorCategory, ProviderError
from ..providers.base import ChatRequest, TextProvider
from ..runs.events import EventWriter
from ..runs.performance import PerformanceMonitor
from .messages import Conversation, Message, TextMessage, streaming_message

EMPTY_RESPONSE = "Sorry, I couldn't process that request."


@dataclass
class StreamResult:
    message: Message
    text: str
    deltas: int
    fell_back: bool = False


class StreamingCoordinator:
    def __init__(
        self,
        provider: TextProvider,
        *,
        events: EventWriter | None = None,
        monitor: PerformanceMonitor | None = None,
    ) -> None:
        self.provider = provider
        self.events = events
        self.monitor = monitor

    def respond(
        self,
        conversation: Conversation,
        request: ChatRequest,
        cancel: CancelToken | None = None,
    ) -> StreamResult:
        """Stream a reply into `conversation`.

        The first delta appends an in-progress assistant message; later
        deltas replace its content in arrival order; the end of the stream
        finalizes its id. A transport failure discards any partial slot and
        retries once without streaming. Provider-level failures propagate.
        """
        start = time.monotonic()
        slot_id: str | None = None
        accumulated = ""
        deltas = 0
        try:
            for delta in self.provider.stream(request, cancel):
                accumulated += delta
                deltas += 1
                if slot_id is None:
                    slot_id = conversation.append(streaming_message(accumulated)).message_id
                else:
                    conversation.update_content(slot_id, accumulated)
        except ProviderError as exc:
            if slot_id is not None:
                conversation.remove(slot_id)
            if exc.category != ErrorCategory.TRANSPORT_FAILURE:
                self._track(start, False)
                raise
            if self.events is not None:
                self.events.emit("stream_fallback", error=str(exc), partial_deltas=deltas)
            return self._complete_once(conversation, request, start)

        if slot_id is None:
            message = conversation.append(TextMessage(role="assistant", content=EMPTY_RESPONSE))
            text = EMPTY_RESPONSE
        else:
            message = conversation.finalize(slot_id)
            text = accumulated
        self._track(start, True)
        return StreamResult(message=message, text=text, deltas=deltas)

    def _complete_once(self, conversation: Conversation, request: ChatRequest, start: float) -> StreamResult:
        try:
            text = self.provider.complete(request)
        except ProviderError:
            self._track(start, False)
            raise
        text = text or EMPTY_RESPONSE
        message = conversation.append(TextMessage(role="assistant", content=text))
        self._track(start, True)
        return StreamResult(message=message, text=text, deltas=0, fell_back=True)

    def _track(self, start: float, success: bool) -> None:
        if self.monitor is not None:
            self.monitor.track((time.monotonic() - start) * 1000.0, success, operation="chat")
