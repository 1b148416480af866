"""Record and page types for the result ledger.

``TestParams`` wraps the test configuration document. The ledger never looks
inside it: the only checks are that it is a JSON object and that it can be
encoded. Encoding is canonical (sorted keys, compact separators) so that two
submissions of the same configuration produce identical stored text, which is
what the dedup constraint compares.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any

from typing_server.ledger.errors import InvalidRequest, InvalidTestParams

# Cursor returned with an empty page. Result ids start at 1, so no real row
# ever carries this value.
END_OF_HISTORY = 0

# Largest value SQLite stores in an INTEGER column; bounds cursors and limits.
MAX_STORE_INTEGER = 2**63 - 1


@dataclass(frozen=True, slots=True)
class TestParams:
    """Opaque, immutable test configuration document."""

    __test__ = False  # not a pytest test class

    document: Mapping[str, Any]

    def __post_init__(self) -> None:
        if not isinstance(self.document, Mapping):
            raise InvalidTestParams(
                f"test params must be a JSON object, got {type(self.document).__name__}"
            )
        object.__setattr__(self, "document", MappingProxyType(dict(self.document)))

    def encode(self) -> str:
        """Return the canonical JSON text stored in the ledger."""
        try:
            return json.dumps(
                dict(self.document),
                sort_keys=True,
                separators=(",", ":"),
                ensure_ascii=False,
                allow_nan=False,
                default=_reject_unknown,
            )
        except (TypeError, ValueError) as exc:
            raise InvalidTestParams(f"test params are not JSON-serializable: {exc}") from exc

    @classmethod
    def decode(cls, text: str) -> TestParams:
        """Parse stored JSON text back into a ``TestParams``."""
        try:
            document = json.loads(text)
        except (TypeError, ValueError) as exc:
            raise InvalidTestParams(f"stored test params are not valid JSON: {exc}") from exc
        return cls(document)

    def to_dict(self) -> dict[str, Any]:
        """Return a plain (mutable) copy of the document."""
        return json.loads(self.encode())


def _reject_unknown(value: Any) -> Any:
    raise TypeError(f"unsupported value of type {type(value).__name__}")


def datetime_from_epoch_ms(value: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    seconds, millis = divmod(int(value), 1000)
    return datetime.fromtimestamp(seconds, tz=UTC).replace(microsecond=millis * 1000)


def datetime_to_epoch_ms(value: datetime) -> int:
    """Convert a datetime to epoch milliseconds, truncating sub-millisecond parts.

    Naive datetimes are interpreted as UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    delta = value - datetime(1970, 1, 1, tzinfo=UTC)
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000


@dataclass(frozen=True, slots=True)
class ResultRecord:
    """
    One completed typing test attempt.

    Attributes:
        id: Store-assigned, strictly increasing identifier.
        user_id: Owner, as supplied by the identity provider.
        test_params: How the test was configured.
        completed_at: When the attempt finished (UTC, millisecond precision).
        wpm: Net words per minute as reported by the client.
        raw_wpm: Raw words per minute as reported by the client.
        accuracy: Accuracy as reported by the client.
    """

    id: int
    user_id: int
    test_params: TestParams
    completed_at: datetime
    wpm: float
    raw_wpm: float
    accuracy: float

    @property
    def completed_at_ms(self) -> int:
        return datetime_to_epoch_ms(self.completed_at)


@dataclass(frozen=True, slots=True)
class ResultPage:
    """A page of results, newest first, and the cursor for the next page."""

    results: tuple[ResultRecord, ...]
    next_cursor: int

    @property
    def exhausted(self) -> bool:
        """True when there is nothing left to fetch below this page."""
        return self.next_cursor == END_OF_HISTORY


def check_metric(name: str, value: float) -> float:
    """Coerce a metric to float; reject NaN and infinities.

    Values are otherwise stored as given: no range checks.
    """
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidRequest(f"{name} must be a number") from exc
    if not math.isfinite(number):
        raise InvalidRequest(f"{name} must be finite")
    return number
