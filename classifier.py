# ===================================
# classifier.py - Alpha Vantage Response Classification
# ===================================

"""
Alpha Vantage answers almost every failure with HTTP 200 and a JSON body, so
the status code alone says little. ``classify_response`` looks at the body for
the error envelope (``Error Message`` / ``Information`` / ``Note``) before any
endpoint-specific decoding happens.

The unauthorized and rate-limit checks match substrings of free-text messages.
That is brittle: if Alpha Vantage rewords those messages, they will fall
through to ``ApiErrorOutcome`` instead. Only the unauthorized markers ignore
case; the rate-limit markers must appear exactly as written.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

UNAUTHORIZED_MARKERS = ("invalid api key", "invalid api call", "apikey is invalid")
INFORMATION_RATE_LIMIT_MARKERS = ("rate limit", "25 requests")
NOTE_RATE_LIMIT_MARKERS = ("rate", "frequency")


@dataclass(frozen=True)
class Success:
    payload: Dict[str, Any]


@dataclass(frozen=True)
class Unauthorized:
    pass


@dataclass(frozen=True)
class RateLimited:
    pass


@dataclass(frozen=True)
class ApiErrorOutcome:
    message: str


@dataclass(frozen=True)
class TransportOutcome:
    status_code: int


@dataclass(frozen=True)
class Malformed:
    reason: str  # "empty" or "invalid_json"


ClassifiedOutcome = Union[Success, Unauthorized, RateLimited, ApiErrorOutcome, TransportOutcome, Malformed]


@dataclass(frozen=True)
class ErrorEnvelope:
    error_message: Optional[str] = None
    information: Optional[str] = None
    note: Optional[str] = None

    @classmethod
    def from_body(cls, body: Any) -> "ErrorEnvelope":
        """Pick the three optional envelope fields; never fails"""
        if not isinstance(body, dict):
            return cls()

        def field(name: str) -> Optional[str]:
            value = body.get(name)
            return value if isinstance(value, str) else None

        return cls(
            error_message=field("Error Message"),
            information=field("Information"),
            note=field("Note"),
        )

    def first_message(self) -> Optional[str]:
        for value in (self.error_message, self.information, self.note):
            if value is not None:
                return value
        return None


def _contains_any(text: Optional[str], markers, ignore_case: bool = False) -> bool:
    if text is None:
        return False
    if ignore_case:
        text = text.lower()
    return any(marker in text for marker in markers)


def classify_response(status_code: int, body: bytes) -> ClassifiedOutcome:
    """Classify a raw (status, body) pair into a single outcome"""
    if not 200 <= status_code <= 299:
        return TransportOutcome(status_code)

    if not body or not body.strip():
        return Malformed("empty")

    try:
        decoded = json.loads(body)
    except (ValueError, UnicodeDecodeError):
        decoded = None

    envelope = ErrorEnvelope.from_body(decoded)

    if _contains_any(envelope.information, UNAUTHORIZED_MARKERS, ignore_case=True):
        return Unauthorized()

    if (_contains_any(envelope.information, INFORMATION_RATE_LIMIT_MARKERS)
            or _contains_any(envelope.note, NOTE_RATE_LIMIT_MARKERS)):
        return RateLimited()

    message = envelope.first_message()
    if message is not None:
        return ApiErrorOutcome(message)

    if not isinstance(decoded, dict):
        return Malformed("invalid_json")

    return Success(decoded)
