"""
Unit tests for opsdesk errors.

Tests error codes, details and rebuilding errors from API payloads.
"""

import pytest

from opsdesk.errors import (
    ConflictError,
    ERROR_CLASSES,
    ImmutableFieldError,
    NotFoundError,
    OperateLogNotFoundError,
    OpsDeskError,
    ProtectedResourceError,
    ValidationError,
    VolumeNotFoundError,
    VolumeRecordNotFoundError,
    error_from_payload,
)


class TestErrorCodes:
    """Tests for error construction."""

    @pytest.mark.parametrize("exc,code", [
        (ValidationError("alias", None, "alias is required"), "VALIDATION_ERROR"),
        (VolumeNotFoundError("v"), "VOLUME_NOT_FOUND"),
        (VolumeRecordNotFoundError("r"), "VOLUME_RECORD_NOT_FOUND"),
        (OperateLogNotFoundError("o"), "OPERATE_LOG_NOT_FOUND"),
        (ImmutableFieldError("name", "v"), "IMMUTABLE_FIELD"),
        (ConflictError("name", "v"), "CONFLICT"),
        (ProtectedResourceError("v", "built in"), "PROTECTED_RESOURCE"),
    ])
    def test_codes(self, exc, code):
        assert exc.error_code == code
        assert code in ERROR_CLASSES

    def test_str_includes_code(self):
        exc = VolumeNotFoundError("alice-data")

        assert str(exc) == "[VOLUME_NOT_FOUND] Volume 'alice-data' not found"
        assert exc.details == {"id": "alice-data"}

    def test_not_found_subclasses(self):
        assert isinstance(VolumeRecordNotFoundError("r"), NotFoundError)

    def test_base_defaults(self):
        exc = OpsDeskError("boom")

        assert exc.error_code == "UNKNOWN"
        assert exc.details == {}


class TestErrorFromPayload:
    """Tests for rebuilding errors returned by the API."""

    def test_known_code(self):
        exc = error_from_payload(
            "IMMUTABLE_FIELD",
            "Field 'name' of 'v' cannot be changed after creation",
            {"field": "name", "id": "v"},
        )

        assert isinstance(exc, ImmutableFieldError)
        assert exc.field == "name"
        assert exc.identifier == "v"
        assert exc.message.startswith("Field 'name'")

    def test_not_found_code(self):
        exc = error_from_payload("OPERATE_LOG_NOT_FOUND", "missing", {"id": "op-1"})

        assert isinstance(exc, OperateLogNotFoundError)
        assert isinstance(exc, NotFoundError)
        assert exc.identifier == "op-1"

    def test_unknown_code(self):
        exc = error_from_payload("INTERNAL_ERROR", "boom")

        assert type(exc) is OpsDeskError
        assert exc.error_code == "INTERNAL_ERROR"
        assert exc.details == {}

    def test_missing_details_default_to_none(self):
        exc = error_from_payload("VALIDATION_ERROR", "bad", {"field": "alias"})

        assert isinstance(exc, ValidationError)
        assert exc.field == "alias"
        assert exc.value is None
        assert exc.reason is None

    def test_can_be_raised(self):
        with pytest.raises(ConflictError):
            raise error_from_payload("CONFLICT", "dup", {"field": "name", "value": "v"})
