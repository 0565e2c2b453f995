import pytest

from contacts_import.normalization import (
    CanonicalPhone,
    find_phone_column,
    is_plausible_phone,
    normalize_phone,
    safe_get,
)


def test_normalize_phone_strips_formatting_and_prefixes_once():
    assert normalize_phone("(11) 91234-5678") == "+5511912345678"
    assert normalize_phone("11 99999.8888") == "+5511999998888"


def test_normalize_phone_is_total():
    assert normalize_phone("") == "+55"
    assert normalize_phone(None) == "+55"
    assert normalize_phone("abc") == "+55"


def test_normalize_phone_treats_plain_strings_as_raw_input():
    # A raw value that happens to carry the country code keeps its digits.
    assert normalize_phone("+55 11 99999-8888") == "+555511999998888"


def test_normalize_phone_does_not_reapply_to_canonical_values():
    once = normalize_phone("(11) 91234-5678")
    assert isinstance(once, CanonicalPhone)
    assert normalize_phone(once) == "+5511912345678"
    assert normalize_phone(normalize_phone(once)) is once


def test_normalize_phone_custom_prefix():
    assert normalize_phone("555-0100", prefix="+1") == "+15550100"


@pytest.mark.parametrize(
    "headers, expected",
    [
        (["Nome", "Telefone", "Cidade"], "Telefone"),
        (["name", "Mobile Phone"], "Mobile Phone"),
        (["TELEFONE_CELULAR", "phone"], "TELEFONE_CELULAR"),
        (["Nome", "Cidade"], None),
        ([], None),
    ],
)
def test_find_phone_column(headers, expected):
    assert find_phone_column(headers) == expected


def test_is_plausible_phone():
    assert is_plausible_phone("+5511912345678") is True
    assert is_plausible_phone("+55") is False
    assert is_plausible_phone("") is False


def test_safe_get_handles_missing_and_blank_values():
    row = {"A": "  value  ", "B": None}
    assert safe_get(row, "A") == "value"
    assert safe_get(row, "B") == ""
    assert safe_get(row, "C") == ""
    assert safe_get(row, None) == ""
