from unittest.mock import patch

import pytest
from botocore.exceptions import ClientError

from labkit.errors import DeploymentError
from labkit.utils.decorators import deployment_step, retry


def _client_error(code="AccessDenied"):
    return ClientError({"Error": {"Code": code, "Message": "nope"}}, "CreateBucket")


def test__deployment_step__returns_result():
    @deployment_step("make bucket")
    def make_bucket(name):
        return f"arn:aws:s3:::{name}"

    assert make_bucket("site") == "arn:aws:s3:::site"
    assert make_bucket.__name__ == "make_bucket"


def test__deployment_step__wraps_aws_errors():
    @deployment_step("make bucket")
    def make_bucket():
        raise _client_error()

    with pytest.raises(DeploymentError) as exc_info:
        make_bucket()
    assert exc_info.value.step == "make bucket"
    assert "AccessDenied" in exc_info.value.reason
    assert isinstance(exc_info.value.__cause__, ClientError)


def test__deployment_step__other_errors_pass_through():
    original = DeploymentError("inner", "boom")

    @deployment_step("outer")
    def fails_with_deployment_error():
        raise original

    @deployment_step("outer")
    def fails_with_value_error():
        raise ValueError("bad input")

    with pytest.raises(DeploymentError) as exc_info:
        fails_with_deployment_error()
    assert exc_info.value is original
    with pytest.raises(ValueError, match="bad input"):
        fails_with_value_error()


@patch("labkit.utils.decorators.time.sleep")
def test__retry__until_success(mock_sleep):
    outcomes = [OSError("one"), OSError("two"), "ok"]
    calls = []

    @retry(max_attempts=3, delay=1.0, backoff=2.0, exceptions=(OSError,))
    def flaky():
        calls.append(1)
        outcome = outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    assert flaky() == "ok"
    assert len(calls) == 3
    assert [c.args[0] for c in mock_sleep.call_args_list] == [1.0, 2.0]


@patch("labkit.utils.decorators.time.sleep")
def test__retry__gives_up(mock_sleep):
    calls = []

    @retry(max_attempts=2, delay=0.5, exceptions=(OSError,))
    def broken():
        calls.append(1)
        raise OSError("down")

    with pytest.raises(OSError, match="down"):
        broken()
    assert len(calls) == 2
    assert mock_sleep.call_count == 1


@patch("labkit.utils.decorators.time.sleep")
def test__retry__ignores_unlisted_exceptions(mock_sleep):
    calls = []

    @retry(max_attempts=3, exceptions=(OSError,))
    def broken():
        calls.append(1)
        raise KeyError("x")

    with pytest.raises(KeyError):
        broken()
    assert len(calls) == 1
    mock_sleep.assert_not_called()
