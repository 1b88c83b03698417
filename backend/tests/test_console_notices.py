"""Tests for the server-error parser and the notices it produces."""
import pytest

from yatrasathi.console.notices import (
    ACCESS_DENIED,
    parse_error,
    parse_server_message,
    validation_notice,
)
from yatrasathi.errors import ApiError, ConnectivityError


class TestParseServerMessage:
    def test_duplicate_entry(self):
        notice = parse_server_message("Duplicate entry 'TRV' for key 'PRIMARY'")

        assert notice.title == "Duplicate Entry"
        assert notice.description == (
            "A record with PRIMARY 'TRV' already exists.\nPlease use a different value."
        )

    def test_already_exists_with_assignment(self):
        notice = parse_server_message("Application with ap_apid = 'TRV' already exists")

        assert notice.title == "Duplicate Entry"
        assert "ap_apid 'TRV'" in notice.description

    def test_already_exists_without_details(self):
        notice = parse_server_message("Record already exists")
        assert notice.title == "Duplicate Entry"
        assert notice.description == "Record already exists"

    def test_referenced_row(self):
        message = "Cannot delete or update a parent row: a foreign key constraint fails"
        notice = parse_server_message(message)

        assert notice.title == "Cannot Delete Record"
        assert notice.description.startswith("This record is referenced by other records.")

    def test_invalid_reference(self):
        notice = parse_server_message("ER_NO_REFERENCED_ROW_2: Foreign key constraint fails")
        assert notice.title == "Invalid Reference"

    def test_data_too_long(self):
        notice = parse_server_message("Data too long for column 'ap_apshort' at row 1")

        assert notice.title == "Data Too Long"
        assert notice.description == (
            "The ap_apshort exceeds the maximum allowed length.\nPlease shorten your input."
        )

    def test_required_field_missing(self):
        notice = parse_server_message("Column 'us_email' cannot be null")

        assert notice.title == "Required Field Missing"
        assert notice.description == "The us_email is required.\nPlease provide a value."

    def test_validation_error_is_warning(self):
        notice = parse_server_message("Validation error: Email is invalid")

        assert notice.type == "warning"
        assert notice.description == "Email is invalid"

    def test_access_denied(self):
        assert parse_server_message("Access denied for this resource") == ACCESS_DENIED

    def test_missing_table(self):
        notice = parse_server_message("Table 'yatrasathi.foo' doesn't exist")
        assert notice.title == "System Error"
        assert "data table does not exist" in notice.description

    def test_unknown_column(self):
        notice = parse_server_message("Unknown column 'xx' in 'field list'")
        assert notice.title == "System Error"
        assert notice.description.startswith("Invalid field detected.")

    def test_unrecognized_keeps_raw_text(self):
        notice = parse_server_message("Something odd happened")
        assert notice.title == "Error"
        assert notice.description == "Something odd happened"


class TestParseError:
    def test_timeout(self):
        notice = parse_error(ConnectivityError(timeout=True))
        assert notice.title == "Request Timeout"

    def test_connection(self):
        notice = parse_error(ConnectivityError())
        assert notice.title == "Connection Error"

    @pytest.mark.parametrize(
        "payload",
        [
            {"message": "Duplicate entry 'a' for key 'b'"},
            {"error": {"message": "Duplicate entry 'a' for key 'b'"}},
            {"error": "Duplicate entry 'a' for key 'b'"},
            "Duplicate entry 'a' for key 'b'",
        ],
    )
    def test_server_message_locations(self, payload):
        notice = parse_error(ApiError("Request failed", upstream_status=409, payload=payload))
        assert notice.title == "Duplicate Entry"

    def test_falls_back_to_exception_message(self):
        notice = parse_error(ApiError("Column 'x' cannot be null", upstream_status=400))
        assert notice.title == "Required Field Missing"

    def test_unexpected_error(self):
        notice = parse_error(ValueError("boom"))
        assert notice.title == "Unexpected Error"
        assert notice.description == "boom"


def test_validation_notice_joins_messages() -> None:
    notice = validation_notice(["Email Address is required", "User Name is required"])

    assert notice.type == "error"
    assert notice.title == "Validation Error"
    assert notice.description == "Email Address is required\nUser Name is required"
