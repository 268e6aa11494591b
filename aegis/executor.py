"""
Request executor: runs one Gemini operation against the credential pool.

The retry loop is an explicit state machine:

    ATTEMPTING --success--------------------------> DONE
    ATTEMPTING --quota, rotated without wrap------> ATTEMPTING (next key)
    ATTEMPTING --quota, wrapped or single key-----> ROTATE_WAIT --backoff--> ATTEMPTING
    ATTEMPTING --any other failure----------------> FAILED (RequestError)
    any state  --attempt budget (2 x keys) spent--> FAILED (last QuotaExceededError)

DONE hands the raw text to the output contract; a contract violation is
terminal because rotating keys cannot fix malformed model output.
"""

import enum
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .credentials import CredentialPool
from .errors import (
    DeadlineExceededError,
    EmptyResponseError,
    GenerationError,
    QuotaExceededError,
    RequestError,
    ValidationError,
)
from .gemini_client import RemoteCallError
from .schema_contract import Rule, validate

logger = logging.getLogger(__name__)

DEFAULT_BACKOFF_SECONDS = 2.0

# An operation takes one credential and returns the response text (or None).
Operation = Callable[[str], Optional[str]]


class ExecutorState(str, enum.Enum):
    ATTEMPTING = "attempting"
    ROTATE_WAIT = "rotate_wait"
    DONE = "done"
    FAILED = "failed"


class FailureClass(str, enum.Enum):
    RETRIABLE = "retriable"
    FATAL = "fatal"


def is_quota_error(error: Exception) -> bool:
    """
    HTTP 429, or an "exhausted" indicator anywhere in the error text.

    A bare "429" in the text only counts when no HTTP status came back; a known
    non-429 status is never reclassified by its message.
    """
    status = getattr(error, "status", None)
    if status == 429:
        return True
    text = str(error)
    if "exhausted" in text.lower():
        return True
    return status is None and "429" in text


def classify_failure(error: Exception) -> FailureClass:
    """Only quota exhaustion is worth another attempt."""
    if is_quota_error(error):
        return FailureClass.RETRIABLE
    return FailureClass.FATAL


@dataclass
class ExecutionResult:
    data: Any
    attempts: int
    backoffs: int
    credential_index: int


class RequestExecutor:
    """
    Usage:
        executor = RequestExecutor(pool)
        data = executor.execute(lambda key: client.generate_content(key, prompt),
                                ANALYSIS_CONTRACT)
    """

    def __init__(self, pool: CredentialPool, backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], float] = time.monotonic):
        self.pool = pool
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep
        self._clock = clock

    def max_attempts(self) -> int:
        """Every key gets two tries per call."""
        return 2 * self.pool.size

    def execute(self, operation: Operation, contract: Rule,
                deadline_seconds: Optional[float] = None) -> Any:
        return self.run(operation, contract, deadline_seconds).data

    def run(self, operation: Operation, contract: Rule,
            deadline_seconds: Optional[float] = None) -> ExecutionResult:
        """
        Drive the state machine to DONE or FAILED.

        Returns the validated payload with attempt/backoff counts. Raises the
        terminal GenerationError on failure.
        """
        budget = self.max_attempts()
        deadline = None if deadline_seconds is None else self._clock() + deadline_seconds

        state = ExecutorState.ATTEMPTING
        attempts = 0
        backoffs = 0
        index = self.pool.index
        raw: Optional[str] = None
        last_quota_error: Optional[QuotaExceededError] = None
        failure: Optional[GenerationError] = None

        while state not in (ExecutorState.DONE, ExecutorState.FAILED):
            if state == ExecutorState.ATTEMPTING:
                if attempts >= budget:
                    logger.warning("Attempt budget of %d spent: giving up", budget)
                    failure = last_quota_error
                    state = ExecutorState.FAILED
                    continue
                if self._expired(deadline):
                    failure = DeadlineExceededError(
                        f"Deadline of {deadline_seconds}s passed after {attempts} attempt(s)"
                    )
                    state = ExecutorState.FAILED
                    continue

                index, credential = self.pool.snapshot()
                attempts += 1
                try:
                    raw = operation(credential)
                except RemoteCallError as e:
                    if classify_failure(e) == FailureClass.FATAL:
                        logger.warning("Gemini call failed on key #%d: %s", index + 1, e)
                        failure = RequestError(str(e), status=e.status)
                        state = ExecutorState.FAILED
                        continue

                    last_quota_error = QuotaExceededError(
                        str(e), status=e.status, credential_index=index
                    )
                    logger.warning("Quota exceeded on key #%d: switching keys", index + 1)
                    _, wrapped = self.pool.rotate(from_index=index)
                    if wrapped or self.pool.size == 1:
                        state = ExecutorState.ROTATE_WAIT
                    continue

                logger.info("Gemini call succeeded on key #%d (attempt %d)", index + 1, attempts)
                state = ExecutorState.DONE

            elif state == ExecutorState.ROTATE_WAIT:
                if attempts >= budget:
                    # No attempt left to wait for
                    state = ExecutorState.ATTEMPTING
                    continue
                if self._expired(deadline, self.backoff_seconds):
                    failure = DeadlineExceededError(
                        f"Deadline of {deadline_seconds}s would pass during backoff "
                        f"after {attempts} attempt(s)"
                    )
                    state = ExecutorState.FAILED
                    continue
                logger.warning(
                    "All keys exhausted or single key in use: backing off %.1fs",
                    self.backoff_seconds,
                )
                self._sleep(self.backoff_seconds)
                backoffs += 1
                state = ExecutorState.ATTEMPTING

        if state == ExecutorState.FAILED:
            raise failure

        data = decode_and_validate(raw, contract)
        return ExecutionResult(data=data, attempts=attempts, backoffs=backoffs,
                               credential_index=index)

    def _expired(self, deadline: Optional[float], lookahead: float = 0.0) -> bool:
        return deadline is not None and self._clock() + lookahead > deadline


def decode_and_validate(raw: Optional[str], contract: Rule) -> Any:
    """Response text -> decoded JSON checked against the contract."""
    if raw is None or not raw.strip():
        raise EmptyResponseError("No response received from Gemini.")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationError("$", f"response is not valid JSON ({e.msg})") from e
    return validate(data, contract)
