"""
Clients for the generative text service used to evaluate résumés.

Both backends expose ``invoke(prompt, cancel_event=None) -> str`` and share a
bounded retry state machine: client errors (4xx) fail at once, server errors,
connection failures and timeouts are retried with linear backoff.
"""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from typing import Any, Callable, Dict, Optional

import google.generativeai as genai
import requests
from google.api_core import exceptions as google_exceptions
from google.generativeai.types import HarmBlockThreshold, HarmCategory

from errors import (
    BadRequestError,
    EvaluationCancelled,
    RateLimitedError,
    ResponseFormatError,
    RetriesExhaustedError,
    ServiceError,
    ServiceTimeoutError,
    UnauthorizedError,
    UpstreamServiceError,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_GEMINI_MODEL = "gemini-1.5-flash-latest"
DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_TEMPERATURE = 0.1
DEFAULT_MAX_TOKENS = 1500
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_RETRY_ATTEMPTS = 3
BACKOFF_STEP_SECONDS = 1.0


class AttemptState(Enum):
    ATTEMPTING = "attempting"
    BACKING_OFF = "backing_off"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def classify_status(status_code: int, body: str = "") -> UpstreamServiceError:
    """
    Map an HTTP status from the service onto the error taxonomy.

    Args:
        status_code: HTTP status returned by the service.
        body: Raw error body, kept on the exception for diagnostics.

    Returns:
        The exception instance to raise.
    """
    snippet = (body or "")[:500]
    if status_code in (401, 403):
        return UnauthorizedError(f"Service rejected credentials ({status_code}): {snippet}", status_code, body)
    if status_code == 429:
        return RateLimitedError(f"Rate limit exceeded: {snippet}", status_code, body)
    if 400 <= status_code < 500:
        return BadRequestError(f"Service rejected request ({status_code}): {snippet}", status_code, body)
    return ServiceError(f"Service error ({status_code}): {snippet}", status_code, body)


class RetryingClient:
    """Base class running ``_send_once`` through the retry state machine."""

    def __init__(
        self,
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        backoff_step: float = BACKOFF_STEP_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if retry_attempts < 1:
            raise ValueError("retry_attempts must be >= 1")
        self.retry_attempts = retry_attempts
        self.backoff_step = backoff_step
        self._sleep = sleep

    def _send_once(self, prompt: str) -> str:  # pragma: no cover - interface
        raise NotImplementedError

    def _precheck(self, prompt: str) -> None:
        if not prompt or not prompt.strip():
            raise BadRequestError("Prompt must not be empty")

    def invoke(self, prompt: str, cancel_event: Optional[threading.Event] = None) -> str:
        """
        Send a prompt and return the generated text.

        Args:
            prompt: Fully rendered prompt.
            cancel_event: Optional event; once set, no further attempt is made.

        Returns:
            Non-empty completion text.

        Raises:
            UpstreamServiceError: A terminal failure, or RetriesExhaustedError
                wrapping the last retryable one.
            EvaluationCancelled: ``cancel_event`` was set.
        """
        self._precheck(prompt)

        state = AttemptState.ATTEMPTING
        attempt = 1
        result = ""
        last_error: Optional[UpstreamServiceError] = None

        while True:
            if state is AttemptState.ATTEMPTING:
                if cancel_event is not None and cancel_event.is_set():
                    raise EvaluationCancelled("Evaluation cancelled before attempt %d" % attempt)
                try:
                    result = self._send_once(prompt)
                    state = AttemptState.SUCCEEDED
                except UpstreamServiceError as exc:
                    last_error = exc
                    if exc.retryable and attempt < self.retry_attempts:
                        state = AttemptState.BACKING_OFF
                    else:
                        # Terminal: the error is raised on entering the state
                        state = AttemptState.FAILED
                        self._raise_terminal(exc)

            elif state is AttemptState.BACKING_OFF:
                delay = self.backoff_step * attempt
                LOGGER.warning(
                    "Attempt %d/%d failed (%s); retrying in %.1fs",
                    attempt,
                    self.retry_attempts,
                    last_error,
                    delay,
                )
                if cancel_event is not None:
                    if cancel_event.wait(delay):
                        raise EvaluationCancelled("Evaluation cancelled during backoff")
                else:
                    self._sleep(delay)
                attempt += 1
                state = AttemptState.ATTEMPTING

            else:
                if attempt > 1:
                    LOGGER.info("Service call succeeded on attempt %d", attempt)
                return result

    def _raise_terminal(self, error: UpstreamServiceError) -> None:
        """Raise the final error once no further attempt will be made."""
        if error.retryable:
            LOGGER.error("All %d attempts failed: %s", self.retry_attempts, error)
            raise RetriesExhaustedError(
                f"Service call failed after {self.retry_attempts} attempts: {error}",
                error,
            ) from error
        LOGGER.error("Service call failed without retry: %s", error)
        raise error


class GenerativeServiceClient(RetryingClient):
    """Chat-completions client for OpenAI compatible endpoints."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_OPENAI_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(retry_attempts=retry_attempts, sleep=sleep)
        self.api_key = (api_key or "").strip()
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._session = session or requests.Session()
        LOGGER.info("Generative client initialized with model %s", self.model)

    def _precheck(self, prompt: str) -> None:
        if not self.api_key:
            raise UnauthorizedError("API key is not configured", status_code=None)
        super()._precheck(prompt)

    def _payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

    def _send_once(self, prompt: str) -> str:
        url = f"{self.base_url}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            response = self._session.post(url, json=self._payload(prompt), headers=headers, timeout=self.timeout)
        except requests.Timeout as exc:
            raise ServiceTimeoutError(f"Request timed out after {self.timeout}s") from exc
        except requests.ConnectionError as exc:
            raise ServiceError(f"Connection to service failed: {exc}") from exc
        except requests.RequestException as exc:
            raise ServiceError(f"Request to service failed: {exc}") from exc

        if response.status_code >= 400:
            raise classify_status(response.status_code, response.text)
        return self._extract_content(response)

    @staticmethod
    def _extract_content(response: requests.Response) -> str:
        try:
            data = response.json()
        except ValueError as exc:
            raise ResponseFormatError("Service returned invalid JSON", response.status_code, response.text) from exc

        if not isinstance(data, dict):
            raise ResponseFormatError("Service returned an unexpected payload", response.status_code, response.text)
        error = data.get("error")
        if error:
            message = error.get("message", "Unknown error") if isinstance(error, dict) else str(error)
            raise ResponseFormatError(f"Service returned an error: {message}", response.status_code, response.text)

        choices = data.get("choices")
        if not isinstance(choices, list) or not choices:
            raise ResponseFormatError("No choices in service response", response.status_code, response.text)
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        if not isinstance(message, dict):
            raise ResponseFormatError("No message in service response", response.status_code, response.text)
        content = message.get("content")
        if not isinstance(content, str) or not content.strip():
            raise ResponseFormatError("Empty content in service response", response.status_code, response.text)

        LOGGER.debug("Raw service response (first 200 chars): %s", content[:200])
        return content.strip()


class GeminiClient(RetryingClient):
    """Google Gemini backend with the same invoke contract."""

    def __init__(
        self,
        api_key: str,
        model_name: str = DEFAULT_GEMINI_MODEL,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        model: Any = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initialize the Gemini client.

        Args:
            api_key: Google Gemini API key.
            model_name: Name of the Gemini model to use.
            temperature: Sampling temperature.
            max_tokens: Maximum output tokens per answer.
            timeout: Per-request timeout in seconds.
            retry_attempts: Total attempts for retryable failures.
            model: Pre-built model object, mainly for tests.
            sleep: Backoff sleep function.
        """
        super().__init__(retry_attempts=retry_attempts, sleep=sleep)
        self.api_key = (api_key or "").strip()
        self._model_name = model_name
        self.timeout = timeout
        self._generation_config = {
            "temperature": temperature,
            "max_output_tokens": max_tokens,
            "candidate_count": 1,
        }
        self._safety_settings = self._build_safety_settings()
        if model is not None:
            self._model = model
        else:
            genai.configure(api_key=self.api_key)
            self._model = genai.GenerativeModel(model_name)
        LOGGER.info("LLM enabled (Gemini) with model %s", self._model_name)

    @staticmethod
    def _build_safety_settings() -> Dict[Any, Any]:
        """Relax blocking for the content categories résumé text can trip."""
        settings = {}
        for category_name in (
            "HARM_CATEGORY_HARASSMENT",
            "HARM_CATEGORY_HATE_SPEECH",
            "HARM_CATEGORY_SEXUALLY_EXPLICIT",
            "HARM_CATEGORY_DANGEROUS_CONTENT",
        ):
            if hasattr(HarmCategory, category_name):
                settings[getattr(HarmCategory, category_name)] = HarmBlockThreshold.BLOCK_NONE
        return settings

    def _precheck(self, prompt: str) -> None:
        if not self.api_key:
            raise UnauthorizedError("API key is not configured", status_code=None)
        super()._precheck(prompt)

    def _send_once(self, prompt: str) -> str:
        try:
            response = self._model.generate_content(
                prompt,
                generation_config=self._generation_config,
                safety_settings=self._safety_settings or None,
                request_options={"timeout": self.timeout},
            )
        except google_exceptions.DeadlineExceeded as exc:
            raise ServiceTimeoutError(f"Gemini request timed out after {self.timeout}s") from exc
        except google_exceptions.GoogleAPICallError as exc:
            status = exc.code if isinstance(exc.code, int) else 500
            raise classify_status(status, str(exc)) from exc
        except (requests.ConnectionError, ConnectionError) as exc:
            raise ServiceError(f"Connection to Gemini failed: {exc}") from exc
        return self._extract_text(response)

    @staticmethod
    def _extract_text(response: Any) -> str:
        try:
            text = response.text or ""
        except ValueError as exc:
            # .text raises when the candidate was blocked or has no parts
            raise ResponseFormatError(f"Gemini returned no usable text: {exc}") from exc
        if not text.strip():
            raise ResponseFormatError("Empty response from Gemini")
        LOGGER.debug("Raw Gemini response (first 200 chars): %s", text[:200])
        return text.strip()


def build_generative_client(settings) -> RetryingClient:
    """
    Create the client selected by ``settings.llm_provider``.

    Args:
        settings: Application settings dataclass.

    Returns:
        A client exposing ``invoke``.
    """
    provider = (settings.llm_provider or "openai").lower()
    if provider == "gemini":
        return GeminiClient(
            settings.api_key,
            model_name=settings.model,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
            timeout=settings.timeout_seconds,
            retry_attempts=settings.retry_attempts,
        )
    if provider == "openai":
        return GenerativeServiceClient(
            settings.api_key,
            model=settings.model,
            base_url=settings.api_base_url,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
            timeout=settings.timeout_seconds,
            retry_attempts=settings.retry_attempts,
        )
    raise ValueError(f"Unsupported llm_provider: {settings.llm_provider}")
