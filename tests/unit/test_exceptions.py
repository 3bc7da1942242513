"""Unit tests for custom exception hierarchy"""
from datetime import datetime

import psycopg

from hotel_gamification.exceptions import (
    AuthenticationMismatchError,
    DatabaseError,
    GamificationError,
    PersistenceUnavailableError,
    ValidationError,
    wrap_external_exception,
)


class TestGamificationError:
    """Test base exception class"""

    def test_basic_exception(self):
        error = GamificationError("Test error")
        assert error.message == "Test error"
        assert error.user_message == "Progress could not be recorded this time."
        assert error.request_id is not None
        assert isinstance(error.timestamp, datetime)

    def test_exception_with_context(self):
        error = GamificationError(
            message="Save failed",
            user_id="staff-1",
            operation="save_user_stats",
            context={"key": "user_gamification_stats/staff-1"},
        )
        assert error.user_id == "staff-1"
        assert error.operation == "save_user_stats"
        assert error.context["key"] == "user_gamification_stats/staff-1"

    def test_to_dict(self):
        error = GamificationError("Test error", request_id="req-1")
        data = error.to_dict()

        assert data["error"] == "GamificationError"
        assert data["request_id"] == "req-1"
        assert "timestamp" in data

    def test_logged_on_creation(self, caplog):
        with caplog.at_level("ERROR"):
            GamificationError("Visible in logs")

        assert "Visible in logs" in caplog.text


class TestSubclasses:

    def test_validation_error_fields(self):
        error = ValidationError("Input should be less than or equal to 100", field="score", value=140)

        assert error.field == "score"
        assert error.value == 140
        assert error.user_message.startswith("Invalid score")
        assert isinstance(error, GamificationError)

    def test_persistence_error_is_database_error(self):
        error = PersistenceUnavailableError(key="c/1")

        assert isinstance(error, DatabaseError)
        assert error.key == "c/1"
        assert error.context == {"key": "c/1"}

    def test_authentication_mismatch(self):
        error = AuthenticationMismatchError(requested_user_id="staff-2")

        assert error.requested_user_id == "staff-2"
        assert error.context == {"requested_user_id": "staff-2"}


class TestWrapExternalException:

    def test_operational_error_maps_to_persistence(self):
        wrapped = wrap_external_exception(psycopg.OperationalError("down"), operation="get_document", key="c/1")

        assert isinstance(wrapped, PersistenceUnavailableError)
        assert wrapped.operation == "get_document"
        assert "Database connection failed" in wrapped.message

    def test_timeout_maps_to_persistence(self):
        wrapped = wrap_external_exception(TimeoutError(), operation="query_records")

        assert isinstance(wrapped, PersistenceUnavailableError)

    def test_other_errors_map_to_base(self):
        wrapped = wrap_external_exception(KeyError("x"), operation="query_records")

        assert type(wrapped) is GamificationError
        assert isinstance(wrapped.cause, KeyError)

    def test_already_wrapped_passes_through(self):
        original = PersistenceUnavailableError()
        assert wrap_external_exception(original, operation="x") is original
