"""
Pydantic models for API requests and responses.

Wire names are camelCase (``testParams``, ``rawWpm``) to match the browser
client; Python attributes stay snake_case. Timestamps cross the wire as epoch
milliseconds.
"""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

# ============================================================================
# REQUEST MODELS (Client → Server)
# ============================================================================


class SubmitResultRequest(BaseModel):
    """
    A completed typing test.

    Attributes:
        test_params: Test configuration document, stored verbatim.
        completed_at: Completion time in epoch milliseconds. Older clients
            send it as ``testCompletedTimestamp``; both names are accepted.
        wpm: Net words per minute.
        raw_wpm: Raw words per minute.
        accuracy: Accuracy.
    """

    model_config = ConfigDict(populate_by_name=True)

    test_params: dict[str, Any] = Field(alias="testParams")
    completed_at: int = Field(
        validation_alias=AliasChoices("completedAt", "testCompletedTimestamp", "completed_at")
    )
    wpm: float = Field(allow_inf_nan=False)
    raw_wpm: float = Field(alias="rawWpm", allow_inf_nan=False)
    accuracy: float = Field(allow_inf_nan=False)


# ============================================================================
# RESPONSE MODELS (Server → Client)
# ============================================================================


class ResultItem(BaseModel):
    """One result as returned to the client (the id is not exposed)."""

    model_config = ConfigDict(populate_by_name=True)

    test_params: dict[str, Any] = Field(alias="testParams")
    completed_at: int = Field(alias="completedAt")
    wpm: float
    raw_wpm: float = Field(alias="rawWpm")
    accuracy: float


class ResultPageResponse(BaseModel):
    """
    A page of results, newest first.

    Attributes:
        cursor: Pass back as ``cursor`` to fetch the next page. ``0`` means
            the history is exhausted.
        results: Up to ``limit`` results.
    """

    cursor: int
    results: list[ResultItem]


class LogoutResponse(BaseModel):
    """Outcome of a session revocation."""

    success: bool
