import re

import pytest

from pvestore.validate import (
    ValidationError,
    error_item_exists,
    error_item_not_exists,
    error_key_empty,
    error_key_not_set,
    validate_array_not_empty,
    validate_file_path,
    validate_int_greater,
    validate_int_greater_or_equals,
    validate_int_in_range,
    validate_string_in_array,
    validate_string_not_empty,
    validate_strings_equal,
)


def test_error_messages():
    assert str(error_key_empty("path")) == "error the value of key (path) may not be empty"
    assert str(error_key_not_set("pbs:{ password }")) == "error the key (pbs:{ password }) must be set"
    assert str(error_item_exists("local", "storage")) == "error storage with id ( local ) already exists"
    assert str(error_item_not_exists("local", "storage")) == "error storage with id ( local ) does not exist"


def test_errors_are_value_errors():
    with pytest.raises(ValueError, match=re.escape("error the value of key (x) may not be empty")):
        validate_string_not_empty("", "x")


@pytest.mark.parametrize("value", [1, 8007, 65536])
def test_int_in_range_accepts_bounds(value):
    assert validate_int_in_range(1, 65536, value, "port") is None


@pytest.mark.parametrize("value", [0, 65537])
def test_int_in_range_rejects(value):
    with pytest.raises(ValidationError, match=re.escape("(port) must be between 1 and 65536")):
        validate_int_in_range(1, 65536, value, "port")


def test_int_greater_or_equals():
    assert validate_int_greater_or_equals(0, 0, "timeout") is None
    with pytest.raises(ValidationError, match=re.escape("(timeout) must be greater or equal to 0")):
        validate_int_greater_or_equals(0, -1, "timeout")


def test_int_greater():
    assert validate_int_greater(0, 1, "last") is None
    with pytest.raises(ValidationError, match=re.escape("(last) must be greater than 0")):
        validate_int_greater(0, 0, "last")


def test_string_not_empty():
    assert validate_string_not_empty("a", "server") is None
    with pytest.raises(ValidationError, match=re.escape("(server) may not be empty")):
        validate_string_not_empty("", "server")


def test_string_in_array():
    versions = ["3", "4", "4.1", "4.2"]
    assert validate_string_in_array(versions, "4.1", "nfs:{ version }") is None
    with pytest.raises(ValidationError, match=re.escape("must be one of 3,4,4.1,4.2")):
        validate_string_in_array(versions, "5", "nfs:{ version }")


def test_string_in_array_empty_value_reports_empty():
    with pytest.raises(ValidationError, match="may not be empty"):
        validate_string_in_array(["a"], "", "type")


def test_strings_equal():
    assert validate_strings_equal("a", "a", "type") is None
    with pytest.raises(ValidationError, match=re.escape("(type) may not be changed during update")):
        validate_strings_equal("lvm", "zfs", "type")


def test_file_path():
    assert validate_file_path("/exports", "path") is None
    with pytest.raises(ValidationError, match="not a valid file absolute path"):
        validate_file_path("relative/dir", "path")
    with pytest.raises(ValidationError, match="may not be empty"):
        validate_file_path("", "path")


def test_array_not_empty():
    assert validate_array_not_empty(["10.20.1.1"], "monitors") is None
    with pytest.raises(ValidationError, match=re.escape("(monitors) may not be empty")):
        validate_array_not_empty([], "monitors")
    with pytest.raises(ValidationError):
        validate_array_not_empty(None, "monitors")