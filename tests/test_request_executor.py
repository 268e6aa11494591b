"""
Request executor tests: rotation, backoff, attempt budget, terminal errors.

Tests:
1-4.   Failure classification (a known non-429 status is never rotated)
5-7.   Quota rotation without wrap (no pause), two- and three-key pools
8-9.   Single-key pool backs off before every retry, budget = 2 attempts
10.    Attempt budget never exceeds 2n for any pool size
11-12. Fatal errors: one attempt, no rotation
13-15. Done-state decoding (empty payload, bad JSON, contract violation)
16-17. Caller deadline
"""

import pytest

from aegis.credentials import CredentialPool
from aegis.errors import (
    DeadlineExceededError,
    EmptyResponseError,
    QuotaExceededError,
    RequestError,
    ValidationError,
)
from aegis.executor import (
    FailureClass,
    RequestExecutor,
    classify_failure,
    decode_and_validate,
)
from aegis.gemini_client import RemoteCallError
from aegis.schema_contract import ANALYSIS_CONTRACT, BLUEPRINT_CONTRACT
from conftest import (
    ScriptedClient,
    as_text,
    bad_request_error,
    blueprint_part,
    quota_error,
    valid_analysis,
)


def _run(keys, outcomes, sleeper, contract=BLUEPRINT_CONTRACT, **kwargs):
    client = ScriptedClient(outcomes)
    pool = CredentialPool(keys)
    executor = RequestExecutor(pool, sleep=sleeper, **kwargs)
    operation = lambda key: client.generate_content(key, "prompt")  # noqa: E731
    return executor, client, pool, operation


# ============================================================
# Classification
# ============================================================

def test_http_429_is_retriable():
    assert classify_failure(RemoteCallError("Too Many Requests", status=429)) == FailureClass.RETRIABLE


def test_exhausted_text_is_retriable():
    """Quota exhaustion is sometimes only visible in the error text."""
    assert classify_failure(RemoteCallError("RESOURCE_EXHAUSTED: quota")) == FailureClass.RETRIABLE
    assert classify_failure(RemoteCallError("Resource has been exhausted")) == FailureClass.RETRIABLE
    assert classify_failure(RemoteCallError("upstream said 429")) == FailureClass.RETRIABLE


@pytest.mark.parametrize("error", [
    RemoteCallError("INVALID_ARGUMENT", status=400),
    RemoteCallError("API key not valid", status=403),
    RemoteCallError("Internal error", status=500),
    RemoteCallError("Gemini unreachable: [Errno 111] Connection refused"),
    RemoteCallError("INVALID_ARGUMENT: prompt is 4290 tokens over the limit", status=400),
])
def test_other_failures_are_fatal(error):
    assert classify_failure(error) == FailureClass.FATAL


def test_status_400_mentioning_429_is_not_rotated(sleeper):
    error = RemoteCallError("INVALID_ARGUMENT: input of 4290 tokens", status=400)
    executor, client, pool, operation = _run(["k1", "k2"], [error, as_text([])], sleeper)
    with pytest.raises(RequestError) as exc_info:
        executor.run(operation, BLUEPRINT_CONTRACT)

    assert exc_info.value.status == 400
    assert len(client.calls) == 1
    assert pool.index == 0


# ============================================================
# Rotation without wrap
# ============================================================

def test_quota_on_first_key_rotates_without_pause(sleeper):
    """Two keys: k1 exhausted, k2 succeeds: 2 attempts, no backoff."""
    payload = [blueprint_part()]
    executor, client, pool, operation = _run(
        ["k1", "k2"], [quota_error(), as_text(payload)], sleeper,
    )
    result = executor.run(operation, BLUEPRINT_CONTRACT)

    assert result.data == payload
    assert result.attempts == 2
    assert result.backoffs == 0
    assert client.keys_used == ["k1", "k2"]
    assert sleeper.calls == []
    assert pool.index == 1


def test_two_exhausted_keys_then_success_no_pause(sleeper):
    """Three keys: k1 and k2 exhausted, k3 succeeds: 3 attempts, never wrapped."""
    payload = [blueprint_part()]
    executor, client, pool, operation = _run(
        ["k1", "k2", "k3"], [quota_error(), quota_error(), as_text(payload)], sleeper,
    )
    result = executor.run(operation, BLUEPRINT_CONTRACT)

    assert result.data == payload
    assert result.attempts == 3
    assert client.keys_used == ["k1", "k2", "k3"]
    assert sleeper.calls == []


def test_wrapping_the_pool_backs_off(sleeper):
    """Two keys both exhausted: the wrap back to k1 pauses 2s before retrying."""
    executor, client, pool, operation = _run(
        ["k1", "k2"], [quota_error(), quota_error(), as_text([])], sleeper,
    )
    result = executor.run(operation, BLUEPRINT_CONTRACT)

    assert result.data == []
    assert client.keys_used == ["k1", "k2", "k1"]
    assert sleeper.calls == [2.0]
    assert result.backoffs == 1


# ============================================================
# Single-key pool
# ============================================================

def test_single_key_backs_off_then_fails_after_two_attempts(sleeper):
    executor, client, pool, operation = _run(
        ["k1"], [quota_error(), quota_error()], sleeper,
    )
    with pytest.raises(QuotaExceededError) as exc_info:
        executor.run(operation, BLUEPRINT_CONTRACT)

    assert len(client.calls) == 2
    assert sleeper.calls == [2.0]  # one pause, before the second attempt
    assert exc_info.value.status == 429


def test_single_key_recovers_after_backoff(sleeper):
    executor, client, pool, operation = _run(
        ["k1"], [quota_error(), as_text([blueprint_part()])], sleeper,
    )
    result = executor.run(operation, BLUEPRINT_CONTRACT)
    assert result.attempts == 2
    assert sleeper.calls == [2.0]


def test_backoff_interval_is_configurable(sleeper):
    executor, client, pool, operation = _run(
        ["k1"], [quota_error(), as_text([])], sleeper, backoff_seconds=0.5,
    )
    executor.run(operation, BLUEPRINT_CONTRACT)
    assert sleeper.calls == [0.5]


# ============================================================
# Attempt budget
# ============================================================

@pytest.mark.parametrize("size", [1, 2, 3, 4, 7])
def test_quota_errors_never_exceed_twice_pool_size(size, sleeper):
    keys = [f"k{i}" for i in range(size)]
    outcomes = [quota_error() for _ in range(4 * size)]
    executor, client, pool, operation = _run(keys, outcomes, sleeper)

    with pytest.raises(QuotaExceededError):
        executor.execute(operation, BLUEPRINT_CONTRACT)

    assert len(client.calls) == 2 * size
    assert client.keys_used == keys + keys


def test_budget_exhaustion_surfaces_last_quota_error(sleeper):
    outcomes = [quota_error("first"), quota_error("second")]
    executor, client, pool, operation = _run(["k1"], outcomes, sleeper)
    with pytest.raises(QuotaExceededError) as exc_info:
        executor.execute(operation, BLUEPRINT_CONTRACT)
    assert "second" in exc_info.value.message


# ============================================================
# Fatal errors
# ============================================================

def test_malformed_request_fails_after_one_attempt(sleeper):
    executor, client, pool, operation = _run(
        ["k1", "k2"], [bad_request_error(), as_text([])], sleeper,
    )
    with pytest.raises(RequestError) as exc_info:
        executor.run(operation, BLUEPRINT_CONTRACT)

    assert len(client.calls) == 1
    assert pool.index == 0  # never rotated
    assert sleeper.calls == []
    assert exc_info.value.status == 400


def test_fatal_error_after_quota_rotation_stops_immediately(sleeper):
    executor, client, pool, operation = _run(
        ["k1", "k2", "k3"], [quota_error(), RemoteCallError("API key not valid", status=403)], sleeper,
    )
    with pytest.raises(RequestError):
        executor.run(operation, BLUEPRINT_CONTRACT)
    assert client.keys_used == ["k1", "k2"]
    assert pool.index == 1


# ============================================================
# Done-state decoding
# ============================================================

@pytest.mark.parametrize("raw", [None, "", "   "])
def test_no_payload_is_empty_response_error(raw, sleeper):
    executor, client, pool, operation = _run(["k1", "k2"], [raw], sleeper)
    with pytest.raises(EmptyResponseError):
        executor.run(operation, BLUEPRINT_CONTRACT)
    assert len(client.calls) == 1


def test_non_json_text_is_validation_error():
    with pytest.raises(ValidationError) as exc_info:
        decode_and_validate("Sure! Here is your analysis:", ANALYSIS_CONTRACT)
    assert exc_info.value.field == "$"


def test_contract_violation_is_not_retried(sleeper):
    bad = valid_analysis(riskScore=1.7)
    executor, client, pool, operation = _run(
        ["k1", "k2"], [as_text(bad), as_text(valid_analysis())], sleeper,
    )
    with pytest.raises(ValidationError) as exc_info:
        executor.run(operation, ANALYSIS_CONTRACT)

    assert exc_info.value.field == "riskScore"
    assert len(client.calls) == 1
    assert pool.index == 0


# ============================================================
# Caller deadline
# ============================================================

class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_deadline_stops_before_backoff():
    """A 1s deadline cannot fit a 2s backoff: fail instead of sleeping."""
    clock = FakeClock()
    slept = []
    client = ScriptedClient([quota_error(), as_text([])])
    executor = RequestExecutor(CredentialPool(["k1"]), sleep=slept.append, clock=clock)

    with pytest.raises(DeadlineExceededError):
        executor.execute(lambda key: client.generate_content(key, "p"), BLUEPRINT_CONTRACT,
                         deadline_seconds=1.0)

    assert len(client.calls) == 1
    assert slept == []


def test_deadline_checked_before_each_attempt():
    clock = FakeClock()
    client = ScriptedClient([quota_error(), quota_error(), as_text([])])

    def slow_operation(key):
        clock.now += 5.0
        return client.generate_content(key, "p")

    executor = RequestExecutor(CredentialPool(["k1", "k2", "k3"]), sleep=lambda s: None, clock=clock)
    with pytest.raises(DeadlineExceededError):
        executor.execute(slow_operation, BLUEPRINT_CONTRACT, deadline_seconds=8.0)
    assert len(client.calls) == 2
