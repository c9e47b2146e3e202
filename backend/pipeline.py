import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from ai_client import AIGenerationClient, GenerationOutcome
from content import describe_sheet
from errors import InvalidInput
from fallback import FallbackGenerator
from models import TaskDraft
from prompts import build_prompt

logger = logging.getLogger(__name__)

FALLBACK_WARNINGS = {
    GenerationOutcome.NOT_CONFIGURED:
        "AI service not configured. Generated fallback tasks based on your input.",
    GenerationOutcome.AUTH_FAILURE:
        "AI service rejected its credentials. Generated fallback tasks based on your input.",
    GenerationOutcome.MALFORMED:
        "AI service returned an unusable response. Generated fallback tasks based on your input.",
    GenerationOutcome.TRANSPORT_FAILURE:
        "AI service unavailable. Generated fallback tasks based on your input.",
}


@dataclass
class GenerationRequest:
    """Exactly one of the three sources must carry text."""
    free_text: Optional[str] = None
    file_text: Optional[str] = None
    sheet_text: Optional[str] = None

    def user_content(self) -> str:
        sources = [
            (name, value.strip())
            for name, value in (("desc", self.free_text), ("file", self.file_text), ("sheet", self.sheet_text))
            if value and value.strip()
        ]
        if not sources:
            raise InvalidInput("No valid input provided.")
        if len(sources) > 1:
            raise InvalidInput(
                "Provide only one of desc, file or sheet (got %s)." % ", ".join(name for name, _ in sources)
            )
        name, text = sources[0]
        return describe_sheet(text) if name == "sheet" else text


@dataclass
class GenerationResult:
    tasks: list[TaskDraft]
    outcome: GenerationOutcome
    warning: Optional[str] = None

    def to_json(self) -> dict:
        body = {"tasks": [task.to_json() for task in self.tasks]}
        if self.warning:
            body["warning"] = self.warning
        return body


class GenerationPipeline:
    """
    AI generation with a deterministic fallback.

    Only invalid input raises; every model or network problem ends in
    fallback tasks with a warning, so the result is never empty.
    """

    def __init__(
        self,
        client: Optional[AIGenerationClient],
        fallback: Optional[FallbackGenerator] = None,
        today: Callable[[], date] = date.today,
    ):
        self.client = client
        self.fallback = fallback or FallbackGenerator(today=today)
        self._today = today

    def _fallback(self, content: str, outcome: GenerationOutcome) -> GenerationResult:
        logger.info("Using fallback task generation (%s)", outcome.value)
        return GenerationResult(
            tasks=self.fallback.generate(content),
            outcome=outcome,
            warning=FALLBACK_WARNINGS[outcome],
        )

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        content = request.user_content()

        if self.client is None:
            return self._fallback(content, GenerationOutcome.NOT_CONFIGURED)

        attempt = await self.client.generate(content, build_prompt(self._today()))
        if attempt.ok and attempt.tasks:
            return GenerationResult(tasks=attempt.tasks, outcome=attempt.outcome)
        if attempt.ok:
            return self._fallback(content, GenerationOutcome.MALFORMED)
        return self._fallback(content, attempt.outcome)
