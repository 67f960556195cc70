import pytest
from storekit.exceptions import TransientBackendError, ValidationError
from storekit.retry import RetryPolicy

class Flaky:
    def __init__(self, failures, error=TransientBackendError):
        self.failures = failures
        self.error = error
        self.calls = 0

    def __call__(self, value):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error(f"failure {self.calls}")
        return value

def test_succeeds_without_retry():
    sleeps = []
    operation = Flaky(0)
    assert RetryPolicy(sleep=sleeps.append).run(operation, "ok") == "ok"
    assert operation.calls == 1
    assert sleeps == []

def test_retries_with_linear_backoff():
    sleeps = []
    operation = Flaky(2)
    assert RetryPolicy(sleep=sleeps.append).run(operation, "ok") == "ok"
    assert operation.calls == 3
    assert sleeps == [1.0, 2.0]

def test_raises_last_error_after_bound():
    sleeps = []
    operation = Flaky(5)
    with pytest.raises(TransientBackendError, match="failure 3"):
        RetryPolicy(sleep=sleeps.append).run(operation, "ok")
    assert operation.calls == 3
    assert sleeps == [1.0, 2.0]

def test_non_retryable_errors_propagate_immediately():
    sleeps = []
    operation = Flaky(1, error=ValidationError)
    with pytest.raises(ValidationError):
        RetryPolicy(sleep=sleeps.append).run(operation, "ok")
    assert operation.calls == 1
    assert sleeps == []

def test_custom_bounds():
    sleeps = []
    policy = RetryPolicy(max_attempts=4, base_delay=0.5, sleep=sleeps.append)
    assert policy.run(Flaky(3), 1) == 1
    assert sleeps == [0.5, 1.0, 1.5]
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)
