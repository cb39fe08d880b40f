"""OpenAI LLM adapter for contract date extraction.

Uses OpenAI Chat Completions API with a JSON schema response format to pull
significant calendar dates out of contract text into a validated
DateExtractionResult.
"""

import json
import os
from typing import Optional

from openai import (
    APIConnectionError,
    APITimeoutError,
    AuthenticationError,
    BadRequestError,
    InternalServerError,
    OpenAI,
    RateLimitError,
)
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.schemas.domain import DateExtractionResult

# Environment configuration with defaults
LLM_MODEL = os.environ.get("LLM_MODEL", "gpt-4o-mini")
LLM_MAX_CHARS = int(os.environ.get("LLM_MAX_CHARS", "200000"))
LLM_TEMPERATURE = float(os.environ.get("LLM_TEMPERATURE", "0.1"))
LLM_TIMEOUT_S = int(os.environ.get("LLM_TIMEOUT_S", "60"))
LLM_MAX_RETRIES = int(os.environ.get("LLM_MAX_RETRIES", "3"))

# Errors that are safe to retry (transient)
RETRYABLE_ERRORS = (
    RateLimitError,
    APIConnectionError,
    APITimeoutError,
    InternalServerError,
)

SYSTEM_PROMPT = """You are a legal document analyzer specializing in contract deadlines.

Find every significant calendar date in the provided contract and return it as an entry in "dates":

- date_type: one of start_date, end_date, renewal_date, termination_notice, payment_due,
  review_date, warranty_expiry, other
- date: the calendar date in ISO format YYYY-MM-DD. Resolve relative dates ("30 days before
  the end of the term") against other dates in the contract when possible; skip dates you
  cannot resolve to a specific day.
- description: a short human-readable description of what happens on that date
- clause: the exact sentence or clause from the contract that contains the date
- confidence: high if the date is stated explicitly, medium if it is derived,
  low if it is a guess

Return {"dates": []} if the contract contains no usable dates."""


class DateExtractError(RuntimeError):
    """Raised when LLM date extraction fails."""

    pass


# Lazy client initialization
_client: Optional[OpenAI] = None


def _get_client() -> OpenAI:
    """Get or create OpenAI client (lazy initialization)."""
    global _client
    if _client is None:
        _client = OpenAI(timeout=LLM_TIMEOUT_S)
    return _client


def _truncate_text(text: str, max_chars: int) -> str:
    """Truncate text to max_chars, preserving complete sentences where possible."""
    if len(text) <= max_chars:
        return text

    truncated = text[:max_chars]
    last_period = truncated.rfind(".")
    if last_period > max_chars * 0.8:  # Only if we keep at least 80%
        truncated = truncated[: last_period + 1]

    return truncated


def _make_retry_decorator():
    """Create tenacity retry decorator with configured settings."""
    return retry(
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
        stop=stop_after_attempt(LLM_MAX_RETRIES),
        wait=wait_exponential(multiplier=1, min=1, max=60),
        reraise=True,
    )


def _call_openai(client: OpenAI, text: str, contract_type: str) -> DateExtractionResult:
    """Make OpenAI API call with structured output."""
    schema = DateExtractionResult.model_json_schema()

    response = client.chat.completions.create(
        model=LLM_MODEL,
        temperature=LLM_TEMPERATURE,
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": f"Contract type: {contract_type}\n\nExtract the dates from this contract:\n\n{text}",
            },
        ],
        response_format={
            "type": "json_schema",
            "json_schema": {
                "name": "date_extraction_result",
                "schema": schema,
            },
        },
    )

    content = response.choices[0].message.content
    if not content:
        raise DateExtractError("Empty response from LLM")

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise DateExtractError(f"Invalid JSON response: {e}")

    try:
        return DateExtractionResult.model_validate(data)
    except ValidationError as e:
        raise DateExtractError(f"Response does not match schema: {e}")


def extract_dates(
    text: str,
    contract_type: str,
    client: Optional[OpenAI] = None,
) -> DateExtractionResult:
    """Extract significant contract dates using OpenAI structured outputs.

    Args:
        text: Plain contract text.
        contract_type: Contract category (e.g. "employment", "lease") given to the model as context.
        client: Optional OpenAI client (for testing). If None, uses default client.

    Returns:
        Validated DateExtractionResult (possibly with no dates).

    Raises:
        DateExtractError: On any failure (API, validation, exhausted retries).
    """
    if not text or not text.strip():
        raise DateExtractError("Empty text provided")

    actual_client = client if client is not None else _get_client()
    truncated_text = _truncate_text(text, LLM_MAX_CHARS)

    retryable_call = _make_retry_decorator()(_call_openai)

    try:
        return retryable_call(actual_client, truncated_text, contract_type)
    except DateExtractError:
        raise
    except RETRYABLE_ERRORS as e:
        raise DateExtractError(f"API error after {LLM_MAX_RETRIES} retries: {e}")
    except (AuthenticationError, BadRequestError) as e:
        raise DateExtractError(f"Non-retryable API error: {e}")
    except Exception as e:
        raise DateExtractError(f"Unexpected error: {e}")


__all__ = ["DateExtractError", "extract_dates"]
