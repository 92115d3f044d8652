from __future__ import annotations

from datetime import date

from reporting.format_utils import (
    MISSING,
    NOT_AVAILABLE,
    calculate_percentage,
    display,
    extract_address,
    extract_image_url,
    format_currency_words,
    format_date,
    format_inr,
    get_path,
    lookup,
    money_words,
    number_to_words,
    parse_amount,
    round_to_nearest_1000,
)


def test_format_date_reads_literal_components():
    assert format_date("2024-03-05") == "5/3/2024"
    assert format_date("2024-03-05T18:30:00.000Z") == "5/3/2024"
    assert format_date("05/03/2024") == "5/3/2024"
    assert format_date(date(2023, 12, 1)) == "1/12/2023"


def test_format_date_passes_unparseable_text_through():
    assert format_date("not-a-date") == "not-a-date"
    assert format_date("Q3 2024") == "Q3 2024"


def test_format_date_absent_is_marker():
    assert format_date(None) == NOT_AVAILABLE
    assert format_date("") == NOT_AVAILABLE
    assert format_date(MISSING) == NOT_AVAILABLE


def test_number_to_words_uses_lac_and_crore():
    assert number_to_words(1500000) == "FIFTEEN LAC"
    assert number_to_words(150000) == "ONE LAC FIFTY THOUSAND"
    assert number_to_words(12345678) == (
        "ONE CRORE TWENTY THREE LAC FORTY FIVE THOUSAND SIX HUNDRED SEVENTY EIGHT"
    )
    assert number_to_words("₹ 2,00,00,000/-") == "TWO CRORE"


def test_zero_words_differ_between_helpers():
    assert number_to_words(0) == ""
    assert number_to_words("NA") == ""
    # standalone words stay empty for zero; the money-words helper spells it out
    assert money_words(0) == "Zero"
    assert money_words(None) == ""


def test_format_inr_indian_grouping():
    assert format_inr(1500000) == "15,00,000"
    assert format_inr(12345678) == "1,23,45,678"
    assert format_inr(999) == "999"
    assert format_inr("₹ 1,50,000/-") == "1,50,000"
    assert format_inr(1234.5, precision=2) == "1,234.50"
    assert format_inr("Nil") == NOT_AVAILABLE


def test_parse_amount_is_lenient():
    assert parse_amount("Rs. 45,000") == 45000.0
    assert parse_amount(12) == 12.0
    assert parse_amount("abc") is None
    assert parse_amount(True) is None
    assert parse_amount("NA") is None


def test_round_to_nearest_1000_fallbacks():
    assert round_to_nearest_1000("1,23,456") == 123000
    assert round_to_nearest_1000(1500) == 2000
    assert round_to_nearest_1000(0) == NOT_AVAILABLE
    assert round_to_nearest_1000(0.0) == NOT_AVAILABLE
    assert round_to_nearest_1000("0") == 0
    assert round_to_nearest_1000("") == NOT_AVAILABLE
    assert round_to_nearest_1000(None) == NOT_AVAILABLE
    # Unparseable after stripping: the original value comes back, not the marker.
    assert round_to_nearest_1000("about") == "about"


def test_format_currency_words():
    assert format_currency_words(150000) == "₹ 1,50,000/- (ONE LAC FIFTY THOUSAND)"
    assert format_currency_words(200000, 50) == "₹ 1,00,000/- (ONE LAC)"
    assert format_currency_words(None) == NOT_AVAILABLE
    assert format_currency_words("n/a") == NOT_AVAILABLE


def test_calculate_percentage_rounds_half_up():
    assert calculate_percentage(1000, 75) == 750
    assert calculate_percentage(5, 50) == 3
    assert calculate_percentage("x", 10) == 0


def test_extract_image_url_schemes():
    assert extract_image_url({"url": "ftp://x"}) == ""
    assert extract_image_url("https://x/y.png") == "https://x/y.png"
    assert extract_image_url({"preview": "data:image/png;base64,AAAA"}) == "data:image/png;base64,AAAA"
    assert extract_image_url({"file": {"name": "a.jpg"}}) == ""
    assert extract_image_url(None) == ""
    assert extract_image_url("  ") == ""


def test_get_path_and_lookup():
    record = {"a": {"b": [{"c": 1}]}, "flag": False}
    assert get_path(record, "a.b.0.c") == 1
    assert get_path(record, "a.b.3.c") is MISSING
    assert get_path(record, "a.x") is MISSING
    assert get_path("not a mapping", "a") is MISSING
    assert lookup(record, "flag") == "No"
    assert lookup(record, "a") == NOT_AVAILABLE
    assert lookup({}, "missing", fallback="-") == "-"
    legacy = {"agreementForSale": {"agreementForSaleExecutedName": "Mr. A. Patil"}}
    assert lookup(legacy, "agreementForSale") == "Mr. A. Patil"


def test_extract_address_and_display():
    assert extract_address({"fullAddress": "Flat 4, Vashi"}) == "Flat 4, Vashi"
    assert extract_address({"city": "Vashi"}) == ""
    assert display(12.0) == "12"
    assert display(True) == "Yes"
    assert display(["Lift", "", "Parking"]) == "Lift, Parking"
    assert display({"x": 1}) == NOT_AVAILABLE
