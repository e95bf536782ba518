from datetime import date
from decimal import Decimal

from atelier.utils.ocr_normalization import (
    NOT_AVAILABLE,
    PLACEHOLDER_DESCRIPTION,
    build_missing_fields_warning,
    find_missing_fields,
    normalize_extraction,
    normalize_invoice_date,
    normalize_items,
    parse_decimal,
)

TODAY = date(2025, 6, 20)


def test_full_date_is_parsed_day_first():
    assert normalize_invoice_date("15/03/2025", TODAY) == date(2025, 3, 15)


def test_two_digit_year_is_in_this_century():
    assert normalize_invoice_date("15/03/25", TODAY) == date(2025, 3, 15)


def test_unreadable_year_becomes_current_year():
    assert normalize_invoice_date("15/03/null", TODAY) == date(2025, 3, 15)
    assert normalize_invoice_date("15/03/", TODAY) == date(2025, 3, 15)


def test_unusable_dates_fall_back_to_today():
    for raw in (None, "", NOT_AVAILABLE, "2025-03-15", "15/03", "ab/03/2025", "31/02/2025", 20250315):
        assert normalize_invoice_date(raw, TODAY) == TODAY


def test_parse_decimal():
    assert parse_decimal(12) == Decimal("12")
    assert parse_decimal(12.5) == Decimal("12.5")
    assert parse_decimal("12,50") == Decimal("12.50")
    assert parse_decimal("abc") is None
    assert parse_decimal("") is None
    assert parse_decimal(True) is None
    assert parse_decimal(None) is None


def test_all_fields_missing_from_empty_extraction():
    assert find_missing_fields({}) == ["invoiceNumber", "invoiceDate", "totalValue", "items"]


def test_zero_total_and_na_values_count_as_missing():
    data = {
        "invoiceNumber": "N/A",
        "invoiceDate": "01/02/2025",
        "totalValue": 0,
        "items": [{"description": "Bainha", "value": 5}],
    }
    assert find_missing_fields(data) == ["invoiceNumber", "totalValue"]


def test_warning_lists_fields_in_order():
    assert build_missing_fields_warning([]) is None
    assert (
        build_missing_fields_warning(["invoiceNumber", "items"])
        == "Não foi possível ler: número da nota, itens. Revise na aba de validação."
    )


def test_placeholder_item_carries_the_total():
    assert normalize_items(None, Decimal("25.00")) == [
        {"description": PLACEHOLDER_DESCRIPTION, "value": Decimal("25.00")}
    ]
    assert normalize_items([], Decimal("0")) == [{"description": PLACEHOLDER_DESCRIPTION, "value": Decimal("0")}]


def test_items_are_cleaned_up():
    items = normalize_items(
        [{"description": "Fecho", "value": "7,5"}, {"description": None, "value": None}, "lixo"],
        Decimal("10"),
    )
    assert items == [
        {"description": "Fecho", "value": Decimal("7.5")},
        {"description": PLACEHOLDER_DESCRIPTION, "value": Decimal("0")},
    ]


def test_normalize_complete_extraction():
    normalized = normalize_extraction({
        "invoiceNumber": "4521",
        "invoiceDate": "02/05/2025",
        "totalValue": 32.5,
        "contactName": "Maria Silva",
        "phoneNumber": "912345678",
        "items": [{"description": "Bainha", "value": 12.5}, {"description": "Fecho", "value": 20}],
    }, TODAY)

    assert normalized.invoice_number == "4521"
    assert normalized.invoice_date == date(2025, 5, 2)
    assert normalized.total_value == Decimal("32.5")
    assert normalized.contact_name == "Maria Silva"
    assert len(normalized.items) == 2
    assert normalized.missing_fields == []
    assert normalized.warning is None


def test_normalize_empty_extraction():
    normalized = normalize_extraction({}, TODAY)

    assert normalized.invoice_number == NOT_AVAILABLE
    assert normalized.invoice_date == TODAY
    assert normalized.total_value == Decimal("0")
    assert normalized.items == [{"description": PLACEHOLDER_DESCRIPTION, "value": Decimal("0")}]
    assert "número da nota, data, valor total, itens" in normalized.warning


def test_odd_length_years_become_current_year():
    assert normalize_invoice_date("15/03/5", TODAY) == date(2025, 3, 15)
    assert normalize_invoice_date("15/03/024", TODAY) == date(2025, 3, 15)
    assert normalize_invoice_date("15/03/20245", TODAY) == date(2025, 3, 15)
