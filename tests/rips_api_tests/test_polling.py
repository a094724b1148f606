from __future__ import annotations

import threading

import pytest
import responses

from rips_api.errors import (
    ConfigurationError,
    NotFoundError,
    PollCancelledError,
    ScanTimeoutError,
    UnexpectedResponseError,
)
from rips_api.models import ScanStatus


def _add_status(base, pid, *statuses):
    for st in statuses:
        responses.add(responses.GET, f"{base}/project/{pid}/status/", json=st, status=200)


@responses.activate
def test_returns_on_first_finished_poll(client, rips_base_url, sleeps):
    _add_status(rips_base_url, 3, {"phase": 0, "percent": 100})

    status = client.block_until_finished(3)
    assert status.finished
    assert sleeps == []
    assert len(responses.calls) == 1


@responses.activate
def test_keeps_polling_until_percent_reaches_100(client, rips_base_url, sleeps):
    _add_status(rips_base_url, 3,
                {"phase": 2, "percent": 40},
                {"phase": 0, "percent": 99},
                {"phase": "0", "percent": "100"})

    status = client.block_until_finished(3, poll_interval=5)
    assert (status.phase, status.percent) == (0, 100)
    assert sleeps == [5, 5]
    assert len(responses.calls) == 3


@responses.activate
def test_times_out_after_max_wait(client, rips_base_url, sleeps):
    _add_status(rips_base_url, 3, {"phase": 1, "percent": 10})

    with pytest.raises(ScanTimeoutError):
        client.block_until_finished(3, max_wait=5, poll_interval=5)
    assert sleeps == [5]
    assert len(responses.calls) == 2


@responses.activate
def test_api_error_aborts_poll(client, rips_base_url, sleeps):
    responses.add(responses.GET, f"{rips_base_url}/project/3/status/", json={"message": "no project"}, status=404)

    with pytest.raises(NotFoundError, match="no project"):
        client.block_until_finished(3, max_wait=60)
    assert sleeps == []


@responses.activate
def test_cancel_event_interrupts_wait(client, rips_base_url, sleeps):
    _add_status(rips_base_url, 3, {"phase": 1, "percent": 10})
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(PollCancelledError):
        client.block_until_finished(3, poll_interval=5, cancel=cancel)
    assert len(responses.calls) == 1
    assert sleeps == []


def test_max_wait_requires_positive_interval(client):
    with pytest.raises(ConfigurationError):
        client.block_until_finished(3, max_wait=10, poll_interval=0)


@responses.activate
def test_configured_defaults_are_used(client, rips_base_url, sleeps):
    _add_status(rips_base_url, 8, {"phase": 1, "percent": 10})
    client.poll_interval = 2
    client.max_wait = 3

    with pytest.raises(ScanTimeoutError):
        client.block_until_finished(8)
    # polls at 0s, 2s, 4s
    assert sleeps == [2, 2]


def test_scan_status_missing_fields_never_finished():
    status = ScanStatus.from_dict({})
    assert not status.finished
    assert status.phase == -1
    assert not ScanStatus.from_dict({"phase": 0, "percent": 99}).finished


@responses.activate
def test_zero_poll_interval_rejected_without_max_wait(client, sleeps):
    with pytest.raises(ConfigurationError):
        client.block_until_finished(3, poll_interval=0)
    assert len(responses.calls) == 0
    assert sleeps == []


@pytest.mark.parametrize("body", [
    [{"phase": 0, "percent": 100}],
    "finished",
    {"phase": "scanning", "percent": 50},
    {"phase": 0, "percent": [100]},
])
@responses.activate
def test_malformed_status_body_is_unexpected_response(client, rips_base_url, sleeps, body):
    _add_status(rips_base_url, 3, body)

    with pytest.raises(UnexpectedResponseError):
        client.block_until_finished(3)
    assert sleeps == []
