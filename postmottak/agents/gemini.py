"""
Gemini agent client.

Asks the model to fill in one of the result shapes from agents.results and
returns the parsed shape together with the conversation history.
"""

from typing import TypeVar

from google import genai
from google.genai import types
from pydantic import BaseModel, ValidationError

from postmottak.agents.prompts import FUN_FACT_PROMPT, instructions_for
from postmottak.agents.results import FunFactResult
from postmottak.config import settings
from postmottak.core.logging import get_logger

log = get_logger(__name__)

ResultT = TypeVar("ResultT", bound=BaseModel)


class AgentClient:
    """Structured-output client for Gemini chats."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        max_output_tokens: int | None = None,
    ):
        self.api_key = api_key or settings.gemini_api_key
        self.model = model or settings.gemini_model
        self.max_output_tokens = max_output_tokens or settings.gemini_max_output_tokens
        self._client: genai.Client | None = None
        # One generation config per result shape, reused across calls
        self._configs: dict[type[BaseModel], types.GenerateContentConfig] = {}

    def _get_client(self) -> genai.Client:
        """Get or create Gemini client."""
        if self._client is None:
            if not self.api_key:
                raise ValueError("GEMINI_API_KEY is required")
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def _config_for(self, result_type: type[BaseModel]) -> types.GenerateContentConfig:
        config = self._configs.get(result_type)
        if config is None:
            config = types.GenerateContentConfig(
                system_instruction=instructions_for(result_type),
                response_mime_type="application/json",
                response_schema=result_type,
                max_output_tokens=self.max_output_tokens,
            )
            self._configs[result_type] = config
        return config

    def ask(
        self,
        prompt: str,
        result_type: type[ResultT],
        history: list[types.Content] | None = None,
    ) -> tuple[list[types.Content], ResultT | None]:
        """
        Ask the agent to fill in a result shape.

        Args:
            prompt: User turn, usually the message body or subject
            result_type: Pydantic shape to fill in
            history: Earlier turns to continue from

        Returns:
            Tuple of (conversation history, parsed result). The result is None
            when the last turn is empty or does not fit the shape.
        """
        chat = self._get_client().chats.create(
            model=self.model,
            config=self._config_for(result_type),
            history=history or [],
        )

        try:
            response = chat.send_message(prompt)
        except Exception as e:
            log.error("agent_error", result_type=result_type.__name__, error=str(e))
            raise

        usage = response.usage_metadata
        if usage is not None:
            log.info(
                "agent_token_usage",
                result_type=result_type.__name__,
                model=self.model,
                prompt_tokens=usage.prompt_token_count,
                output_tokens=usage.candidates_token_count,
                total_tokens=usage.total_token_count,
            )

        return chat.get_history(), self._parse_response(response.text, result_type)

    def fun_fact(self) -> str:
        """A one-line fun fact about archiving, or an empty string."""
        try:
            _, result = self.ask(FUN_FACT_PROMPT, FunFactResult)
        except Exception as e:
            log.warning("fun_fact_failed", error=str(e))
            return ""
        return result.message if result else ""

    def _parse_response(self, response_text: str | None, result_type: type[ResultT]) -> ResultT | None:
        """Parse JSON from Gemini response into the result shape."""
        text = (response_text or "").strip()
        if not text:
            log.warning("agent_empty_response", result_type=result_type.__name__)
            return None

        # Remove markdown code blocks if present
        if text.startswith("```"):
            lines = text.split("\n")
            lines = lines[1:]  # Remove opening ```
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]  # Remove closing ```
            text = "\n".join(lines)

        try:
            return result_type.model_validate_json(text)
        except ValidationError as e:
            log.warning(
                "agent_parse_error",
                result_type=result_type.__name__,
                error=str(e),
                response_preview=text[:200],
            )
            return None
