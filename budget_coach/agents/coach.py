"""
AI Financial Coach

DESIGN DECISION: The coach is a thin relay. It forwards the chat history
plus the deterministic financial snapshot to Gemini and returns the text.

CRITICAL BOUNDARIES:
- CAN: Explain spending, suggest ways to save, encourage the user
- CANNOT: See storage; it only gets the rendered snapshot text
- CANNOT: Change the ledger
- MUST: Fall back to general tips when no snapshot is given

The LLM is a COACH, not a BOOKKEEPER.
"""

from collections.abc import Iterator
from typing import Optional

import google.generativeai as genai
from google.api_core.exceptions import GoogleAPIError

from budget_coach.config import GeminiSettings, get_settings
from budget_coach.models.finance import ChatMessage, ChatRole


SYSTEM_PROMPT = """You are a friendly, knowledgeable AI financial coach for a personal budget tracker app. You help users understand their spending, suggest ways to save, and provide personalized money advice.

IMPORTANT RULES:
- Be concise and actionable. Use bullet points when listing recommendations.
- Use the user's financial context when provided: reference specific categories, amounts, and trends.
- If no financial data is provided, give general tips and encourage them to add transactions.
- Never give specific investment or legal advice. Frame suggestions as general guidance.
- Use a warm, supportive tone. Celebrate progress when appropriate.
- Format numbers clearly (e.g., "₱5,000" for Philippine Peso when amounts are in that currency).
- Keep responses focused: typically 2 to 4 short paragraphs or a clear list."""

CONTEXT_TEMPLATE = (
    "\n\nHere is the user's current financial snapshot "
    "(use this to personalize your response):\n{context}\n"
)

EMPTY_REPLY = "Sorry, I could not generate a response."


class CoachError(Exception):
    """Base exception for coach failures."""
    pass


class CoachNotConfiguredError(CoachError):
    """Raised when no Gemini API key is configured."""

    def __init__(self):
        super().__init__(
            "AI service is not configured. Add GEMINI_API_KEY to your environment."
        )


class ChatRequestError(CoachError):
    """Raised when the chat request itself is unusable."""
    pass


class CoachServiceError(CoachError):
    """Raised when Gemini fails; carries the provider's message."""
    pass


def build_system_instruction(
    messages: list[ChatMessage],
    financial_context: Optional[str] = None,
) -> str:
    """
    Coaching prompt, then the snapshot, then any system chat messages.
    """
    instruction = SYSTEM_PROMPT
    if financial_context:
        instruction += CONTEXT_TEMPLATE.format(context=financial_context)

    for message in messages:
        if message.role == ChatRole.SYSTEM:
            instruction += f"\n\n{message.content}"
    return instruction


def to_gemini_contents(messages: list[ChatMessage]) -> list[dict]:
    """Map chat history to Gemini turns ('assistant' is 'model' there)."""
    contents = []
    for message in messages:
        if message.role == ChatRole.SYSTEM:
            continue
        role = "model" if message.role == ChatRole.ASSISTANT else "user"
        contents.append({"role": role, "parts": [message.content]})
    return contents


def _response_text(response) -> str:
    # .text raises ValueError when the candidate has no parts (e.g. blocked)
    try:
        text = response.text
    except ValueError:
        return ""
    return text or ""


class FinancialCoachAgent:
    """
    Relays a coaching conversation to Gemini.

    One request per call, no retries: a failed answer is reported to the
    user, who can simply ask again.
    """

    def __init__(self, settings: Optional[GeminiSettings] = None):
        self._settings = settings or get_settings().gemini
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        if self._settings.api_key:
            genai.configure(api_key=self._settings.api_key)

    @property
    def is_configured(self) -> bool:
        return bool(self._settings.api_key)

    def _prepare(
        self,
        messages: list[ChatMessage],
        financial_context: Optional[str],
    ) -> tuple["genai.GenerativeModel", list[dict]]:
        if not self.is_configured:
            raise CoachNotConfiguredError()
        if not messages:
            raise ChatRequestError("Messages are required")

        contents = to_gemini_contents(messages)
        if not contents:
            raise ChatRequestError("Messages are required")

        model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            system_instruction=build_system_instruction(messages, financial_context),
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            },
        )
        return model, contents

    async def reply(
        self,
        messages: list[ChatMessage],
        financial_context: Optional[str] = None,
    ) -> str:
        """
        Get the coach's next message.

        Raises:
            CoachNotConfiguredError: No API key
            ChatRequestError: No messages to send
            CoachServiceError: Gemini rejected or failed the request
        """
        model, contents = self._prepare(messages, financial_context)

        try:
            response = await model.generate_content_async(contents)
        except GoogleAPIError as e:
            raise CoachServiceError(str(e) or "Failed to get AI response") from e

        return _response_text(response).strip() or EMPTY_REPLY

    def stream_reply(
        self,
        messages: list[ChatMessage],
        financial_context: Optional[str] = None,
    ) -> Iterator[str]:
        """
        Yield the coach's reply in chunks as Gemini produces them.

        Validation errors are raised before the first chunk.
        """
        model, contents = self._prepare(messages, financial_context)
        return self._stream(model, contents)

    def _stream(self, model, contents: list[dict]) -> Iterator[str]:
        produced = False
        try:
            for chunk in model.generate_content(contents, stream=True):
                text = _response_text(chunk)
                if text:
                    produced = True
                    yield text
        except GoogleAPIError as e:
            raise CoachServiceError(str(e) or "Failed to get AI response") from e

        if not produced:
            yield EMPTY_REPLY
