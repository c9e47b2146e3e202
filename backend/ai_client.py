import asyncio
import json
import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

import openai
from openai import AsyncOpenAI
from pydantic import ValidationError

from config import Settings
from errors import AuthFailure, MalformedModelOutput, TransportFailure
from models import TaskDraft

logger = logging.getLogger(__name__)


class GenerationOutcome(str, Enum):
    SUCCESS = "success"
    MALFORMED = "malformed"
    AUTH_FAILURE = "auth_failure"
    TRANSPORT_FAILURE = "transport_failure"
    NOT_CONFIGURED = "not_configured"


@dataclass
class GenerationAttempt:
    """Terminal state of one generate() call."""
    outcome: GenerationOutcome
    tasks: list[TaskDraft] = field(default_factory=list)
    error: Optional[str] = None
    attempts: int = 1

    @property
    def ok(self) -> bool:
        return self.outcome == GenerationOutcome.SUCCESS


def extract_message_content(response: Any) -> str:
    """Pull choices[0].message.content out of a chat completion."""
    try:
        content = response.choices[0].message.content
    except (AttributeError, IndexError, TypeError) as e:
        raise MalformedModelOutput("Response has no choices[0].message.content") from e
    if not isinstance(content, str) or not content.strip():
        raise MalformedModelOutput("Response message content is empty")
    return content


def parse_tasks_content(content: str) -> list[TaskDraft]:
    """
    Parse the model's message content into task drafts.

    The content must be a JSON object with a non-empty "tasks" array of
    objects. Nothing is repaired: code fences, trailing prose or a bare
    array all count as malformed output.
    """
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as e:
        raise MalformedModelOutput(f"Response content is not JSON: {e}") from e

    if not isinstance(payload, dict) or not isinstance(payload.get("tasks"), list):
        raise MalformedModelOutput('Response JSON has no "tasks" array')
    if not payload["tasks"]:
        raise MalformedModelOutput('Response "tasks" array is empty')

    drafts = []
    for index, item in enumerate(payload["tasks"]):
        if not isinstance(item, dict):
            raise MalformedModelOutput(f"Task #{index} is not an object")
        try:
            drafts.append(TaskDraft.model_validate(item))
        except ValidationError as e:
            raise MalformedModelOutput(f"Task #{index} is invalid: {e}") from e
    return drafts


class AIGenerationClient:
    """
    One chat-completion call per generate(), classified into a GenerationOutcome.

    Transport failures (network, timeout, 429/5xx) get at most one retry
    after a random delay; auth failures and malformed output are final.
    The SDK's own retries are disabled so this is the only retry.
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str,
        temperature: float = 1.0,
        top_p: float = 1.0,
        max_retries: int = 1,
        jitter: tuple[float, float] = (0.5, 1.5),
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._client = client
        self.model = model
        self.temperature = temperature
        self.top_p = top_p
        self.max_retries = max(0, min(1, max_retries))
        self.jitter = jitter
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings) -> "AIGenerationClient":
        if not settings.llm_configured:
            raise ValueError("LLM API key is not configured")
        client = AsyncOpenAI(
            api_key=settings.llm_api_key,
            base_url=settings.llm_base_url,
            timeout=settings.llm_timeout_seconds,
            max_retries=0,
        )
        return cls(
            client,
            model=settings.llm_model,
            temperature=settings.llm_temperature,
            top_p=settings.llm_top_p,
            max_retries=settings.llm_max_retries,
            jitter=(settings.llm_retry_jitter_min, settings.llm_retry_jitter_max),
        )

    async def _request(self, content: str, system_prompt: str) -> list[TaskDraft]:
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": content},
                ],
                temperature=self.temperature,
                top_p=self.top_p,
            )
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise AuthFailure(f"Credential rejected ({e.status_code})") from e
        except openai.APITimeoutError as e:
            raise TransportFailure("Request timed out") from e
        except openai.APIConnectionError as e:
            raise TransportFailure(f"Connection error: {e}") from e
        except openai.APIStatusError as e:
            raise TransportFailure(f"Unexpected status {e.status_code}") from e
        except openai.OpenAIError as e:
            raise TransportFailure(f"{e.__class__.__name__}: {e}") from e

        return parse_tasks_content(extract_message_content(response))

    async def generate(self, content: str, system_prompt: str) -> GenerationAttempt:
        logger.info("Sending to AI (model=%s): %s", self.model, content[:1000])
        attempts = 0
        while True:
            attempts += 1
            try:
                tasks = await self._request(content, system_prompt)
            except AuthFailure as e:
                logger.warning("AI authentication failed: %s", e)
                return GenerationAttempt(GenerationOutcome.AUTH_FAILURE, error=str(e), attempts=attempts)
            except MalformedModelOutput as e:
                logger.warning("AI response unusable: %s", e)
                return GenerationAttempt(GenerationOutcome.MALFORMED, error=str(e), attempts=attempts)
            except TransportFailure as e:
                if attempts <= self.max_retries:
                    delay = random.uniform(*self.jitter)
                    logger.info("AI request failed (%s), retrying in %.2fs", e, delay)
                    await self._sleep(delay)
                    continue
                logger.warning("AI request failed after %d attempt(s): %s", attempts, e)
                return GenerationAttempt(GenerationOutcome.TRANSPORT_FAILURE, error=str(e), attempts=attempts)
            except Exception as e:
                logger.warning("AI request raised %s", e.__class__.__name__, exc_info=True)
                return GenerationAttempt(
                    GenerationOutcome.TRANSPORT_FAILURE, error=f"{e.__class__.__name__}: {e}", attempts=attempts
                )

            logger.info("AI returned %d tasks", len(tasks))
            return GenerationAttempt(GenerationOutcome.SUCCESS, tasks=tasks, attempts=attempts)
