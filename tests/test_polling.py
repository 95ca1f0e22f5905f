"""Tests for the poll-until-ready engine."""
import asyncio

import pytest

from cloud_speech import (
    Classification,
    DomainFailureError,
    ErrorCode,
    NoResourceError,
    Poller,
    PollPolicy,
    PollTimeoutError,
    SpeechServiceError,
    TrainingFailedError,
    UnexpectedStatusError,
    await_completion,
    classify_corpora,
    classify_training,
    wait_for_completion,
)


class ScriptedStatus:
    """Returns scripted statuses in order, repeating the last one forever."""

    def __init__(self, *statuses):
        self.statuses = list(statuses)
        self.calls = 0

    def __call__(self, handle):
        self.calls += 1
        status = self.statuses[min(self.calls, len(self.statuses)) - 1]
        if isinstance(status, Exception):
            raise status
        return {"customization_id": handle, "status": status}

    async def fetch(self, handle):
        return self(handle)


class RecordingSleep:
    def __init__(self):
        self.delays = []

    def __call__(self, seconds):
        self.delays.append(seconds)

    async def wait(self, seconds):
        self.delays.append(seconds)


def test_poll_policy_defaults():
    policy = PollPolicy()
    assert policy.interval == 5000
    assert policy.max_attempts == 30
    assert policy.interval_seconds == 5.0


def test_poll_policy_rejects_invalid_values():
    with pytest.raises(ValueError):
        PollPolicy(max_attempts=0)
    with pytest.raises(ValueError):
        PollPolicy(interval=-1)


def test_training_scenario_resolves_on_third_fetch():
    status = ScriptedStatus("pending", "training", "ready")
    result = asyncio.run(
        await_completion("cust-1", status.fetch, classify_training, PollPolicy(interval=10, max_attempts=3))
    )

    assert result["status"] == "ready"
    assert status.calls == 3


def test_always_pending_times_out_after_exactly_max_attempts():
    for attempts in (1, 2, 5):
        status = ScriptedStatus("pending")
        sleep = RecordingSleep()

        with pytest.raises(PollTimeoutError) as exc:
            wait_for_completion(
                "cust-1",
                status,
                classify_training,
                PollPolicy(interval=250, max_attempts=attempts),
                sleep=sleep,
            )

        assert status.calls == attempts
        assert exc.value.code == ErrorCode.TIMEOUT
        assert exc.value.attempts == attempts
        assert exc.value.last_snapshot == {"customization_id": "cust-1", "status": "pending"}
        # No delay after the final attempt.
        assert sleep.delays == [0.25] * (attempts - 1)


def test_timeout_scenario_async():
    status = ScriptedStatus("pending")

    with pytest.raises(PollTimeoutError) as exc:
        asyncio.run(await_completion("cust-1", status.fetch, classify_training, PollPolicy(interval=0, max_attempts=2)))

    assert status.calls == 2
    assert isinstance(exc.value, TimeoutError)
    assert exc.value.code == "ERR_TIMEOUT"


def test_success_on_kth_fetch_stops_polling():
    status = ScriptedStatus("pending", "pending", "available", "failed")
    sleep = RecordingSleep()

    result = wait_for_completion(
        "cust-1", status, classify_training, PollPolicy(interval=0, max_attempts=10), sleep=sleep
    )

    assert result["status"] == "available"
    assert status.calls == 3
    assert len(sleep.delays) == 2


def test_transport_error_aborts_without_retry():
    status = ScriptedStatus("pending", SpeechServiceError("boom", status_code=503))

    with pytest.raises(SpeechServiceError) as exc:
        asyncio.run(
            await_completion("cust-1", status.fetch, classify_training, PollPolicy(interval=0, max_attempts=30))
        )

    assert exc.value.status_code == 503
    assert status.calls == 2


def test_transport_error_on_final_attempt_is_not_converted_to_timeout():
    status = ScriptedStatus("pending", SpeechServiceError("boom"))

    with pytest.raises(SpeechServiceError):
        wait_for_completion("cust-1", status, classify_training, PollPolicy(interval=0, max_attempts=2))

    assert status.calls == 2


def test_failure_status_aborts_with_domain_error():
    status = ScriptedStatus("training", "failed")

    with pytest.raises(TrainingFailedError) as exc:
        wait_for_completion(
            "cust-1",
            status,
            classify_training,
            PollPolicy(interval=0, max_attempts=30),
            failure_error=TrainingFailedError,
        )

    assert status.calls == 2
    assert isinstance(exc.value, DomainFailureError)
    assert exc.value.code is None
    assert exc.value.snapshot["status"] == "failed"
    assert exc.value.handle == "cust-1"


def test_unexpected_status_aborts_immediately():
    status = ScriptedStatus("upgrading")

    with pytest.raises(UnexpectedStatusError) as exc:
        asyncio.run(
            await_completion("cust-1", status.fetch, classify_training, PollPolicy(interval=0, max_attempts=30))
        )

    assert status.calls == 1
    assert exc.value.snapshot["status"] == "upgrading"


def test_failing_precondition_performs_no_fetch():
    status = ScriptedStatus("being_processed")

    async def precondition(handle):
        raise NoResourceError("nothing to poll", handle=handle)

    with pytest.raises(NoResourceError) as exc:
        asyncio.run(
            await_completion(
                "cust-1",
                status.fetch,
                classify_training,
                PollPolicy(interval=0, max_attempts=5),
                precondition=precondition,
            )
        )

    assert status.calls == 0
    assert exc.value.code == ErrorCode.NO_CORPORA


def test_precondition_runs_once():
    status = ScriptedStatus("pending", "pending", "ready")
    checks = []

    def precondition(handle):
        checks.append(handle)

    wait_for_completion(
        "cust-1",
        status,
        classify_training,
        PollPolicy(interval=0, max_attempts=5),
        precondition=precondition,
    )

    assert checks == ["cust-1"]
    assert status.calls == 3


def test_concurrent_polls_are_independent():
    policy = PollPolicy(interval=1, max_attempts=5)
    first = ScriptedStatus("pending", "ready")
    second = ScriptedStatus("pending", "pending", "pending", "available")

    async def run_both():
        poller_a = Poller(first.fetch, classify_training, policy)
        poller_b = Poller(second.fetch, classify_training, policy)
        return await asyncio.gather(poller_a.run("a"), poller_b.run("b"))

    result_a, result_b = asyncio.run(run_both())

    assert result_a == {"customization_id": "a", "status": "ready"}
    assert result_b == {"customization_id": "b", "status": "available"}
    assert (first.calls, second.calls) == (2, 4)


def test_async_sleep_override_receives_interval():
    status = ScriptedStatus("pending", "ready")
    sleep = RecordingSleep()

    asyncio.run(
        await_completion(
            "cust-1",
            status.fetch,
            classify_training,
            PollPolicy(interval=1500, max_attempts=3),
            sleep=sleep.wait,
        )
    )

    assert sleep.delays == [1.5]


@pytest.mark.parametrize(
    "status, expected",
    [
        ("pending", Classification.PENDING),
        ("training", Classification.PENDING),
        ("ready", Classification.SUCCESS),
        ("available", Classification.SUCCESS),
        ("failed", Classification.FAILURE),
        ("upgrading", Classification.UNEXPECTED),
        (None, Classification.UNEXPECTED),
    ],
)
def test_classify_training(status, expected):
    assert classify_training({"status": status}) is expected


def test_classify_corpora():
    def corpora(*statuses):
        return {"corpora": [{"name": f"c{i}", "status": s} for i, s in enumerate(statuses)]}

    assert classify_corpora(corpora("analyzed", "being_processed")) is Classification.PENDING
    assert classify_corpora(corpora("analyzed", "undetermined")) is Classification.SUCCESS
    assert classify_corpora(corpora("undetermined")) is Classification.UNEXPECTED
    assert classify_corpora(corpora()) is Classification.UNEXPECTED


@pytest.mark.parametrize("snapshot", [None, b"", "ready", ["ready"]])
def test_classifiers_treat_non_mapping_snapshot_as_unexpected(snapshot):
    assert classify_training(snapshot) is Classification.UNEXPECTED
    assert classify_corpora(snapshot) is Classification.UNEXPECTED
