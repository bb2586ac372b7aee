import pytest

from apps.core.exceptions import Conflict, InvalidInput, StaleState
from apps.core.results import ServiceResult, returns_result


class TestServiceResult:
    def test_success_carries_value(self):
        result = ServiceResult.success(42, message="done")

        assert result.ok
        assert result.value == 42
        assert result.error_code is None
        assert result.unwrap() == 42

    def test_failure_carries_error(self):
        result = ServiceResult.failure(Conflict("Already there"))

        assert not result.ok
        assert result.error_code == "conflict"
        assert result.message == "Already there"
        with pytest.raises(Conflict):
            result.unwrap()


class TestReturnsResult:
    def test_wraps_plain_return_value(self):
        @returns_result
        def add(a, b):
            return a + b

        result = add(2, 3)

        assert result.ok
        assert result.value == 5

    def test_engine_error_becomes_failure(self):
        @returns_result
        def lose_race():
            raise StaleState()

        result = lose_race()

        assert not result.ok
        assert result.error_code == "stale_state"

    def test_passes_explicit_result_through(self):
        @returns_result
        def noop():
            return ServiceResult.success("same", message="nothing to do")

        result = noop()

        assert result.value == "same"
        assert result.message == "nothing to do"

    def test_other_exceptions_propagate(self):
        @returns_result
        def broken():
            raise ZeroDivisionError

        with pytest.raises(ZeroDivisionError):
            broken()

    def test_error_context_is_kept(self):
        @returns_result
        def bad_amount():
            raise InvalidInput("amount must be a number", field="amount")

        result = bad_amount()

        assert result.error.as_dict() == {
            "code": "invalid_input",
            "message": "amount must be a number",
            "field": "amount",
        }
