from __future__ import annotations

import copy

from reporting.report_data import build_galleries, build_report_document, compute_derived_values
from services.field_resolver import resolve_record
from valuers import get_valuer


def _canonical(**overrides):
    canonical = resolve_record({})
    canonical.update(overrides)
    return canonical


def test_total_of_line_items_with_words_and_say():
    r = compute_derived_values(_canonical(presentValue="30,00,000", wardrobes="50000", showcases="Nil"))
    assert r["totalValuationItems"] == "30,50,000"
    assert r["totalValuationItemsWords"] == "THIRTY LAC FIFTY THOUSAND ONLY"
    assert r["totalValueSay"] == "30,50,000"


def test_total_skipped_when_all_items_absent_or_zero():
    r = compute_derived_values(_canonical(presentValue="0", wardrobes="NA"))
    assert r["totalValuationItems"] == "NA"
    assert r["totalValuationItemsWords"] == "NA"
    assert r["totalValueSay"] == "NA"


def test_supplied_total_words_are_kept():
    r = compute_derived_values(_canonical(totalValuationItems="12,00,000", totalValuationItemsWords="Twelve lakh"))
    assert r["totalValuationItemsWords"] == "Twelve lakh"


def test_value_word_pairs_synthesized_only_when_missing():
    r = compute_derived_values(
        _canonical(
            fairMarketValue="45,00,000",
            distressValue="36,00,000",
            distressValueWords="Rupees Thirty Six Lakh Only",
            insurableValue="0",
        )
    )
    assert r["fairMarketValueWords"] == "Rupees FORTY FIVE LAC Only"
    assert r["distressValueWords"] == "Rupees Thirty Six Lakh Only"
    assert r["insurableValueWords"] == "NA"
    assert r["realisableValueWords"] == "NA"
    assert r["totalValueSay"] == "45,00,000"


def test_say_value_rounds_total_to_thousand():
    r = compute_derived_values(_canonical(presentValue="2345678", otherItems="400"))
    assert r["totalValuationItems"] == "23,46,078"
    assert r["totalValueSay"] == "23,46,000"


def test_canonical_record_is_not_mutated():
    canonical = _canonical(presentValue="1000000", fairMarketValue="1000000")
    before = copy.deepcopy(canonical)
    build_report_document(canonical, get_valuer(None))
    assert canonical == before


def test_document_section_order_and_flags():
    doc = build_report_document(_canonical(customFields=[{"name": "Parking", "value": "1 covered"}]))
    keys = [s.key for s in doc.sections]
    assert keys[:8] == [
        "general", "apartment", "flat", "marketability", "rate", "composite_rate", "valuation_details", "value_of_flat",
    ]
    assert "custom_fields" in keys
    assert doc.forced_break_keys == ["valuation_details"]
    assert [s.key for s in doc.discrete_sections] == [
        "valuation_summary", "declaration", "valuer_information", "code_of_conduct", "code_of_conduct_continued",
    ]
    custom = doc.section("custom_fields")
    assert custom.rows[0].label == "Parking"
    assert custom.rows[0].value == "1 covered"


def test_custom_fields_section_omitted_when_empty():
    doc = build_report_document(_canonical())
    assert doc.section("custom_fields") is None


def test_valuation_details_table_rows():
    doc = build_report_document(_canonical(presentValue="30,00,000", presentValueQty="850", presentValueRate="3529"))
    section = doc.section("valuation_details")
    first = section.rows[0]
    assert first.value == "₹ 30,00,000/-"
    assert first.quantity == "850"
    assert first.rate == "₹ 3529/-"
    # Unfilled optional items read "Nil".
    assert section.rows[1].value == "Nil"
    total = [row for row in section.rows if row.label == "TOTAL AMOUNT"][0]
    assert total.value == "₹ 30,00,000/-"


def test_valuer_profile_fills_signature_values():
    valuer = get_valuer("sample")
    doc = build_report_document(_canonical(), valuer)
    assert doc.values["signer"] == "Sample Valuer"
    assert doc.values["company"] == "Sample Valuation Associates"
    doc = build_report_document(_canonical(valuersName="R. K. Joshi"), valuer)
    assert doc.values["signer"] == "R. K. Joshi"


def test_galleries_drop_invalid_urls_and_empty_groups():
    record = _canonical(
        propertyImages=[{"url": "https://cdn.example.com/1.jpg"}, {"url": "ftp://bad/2.jpg"}, "https://cdn.example.com/3.jpg"],
        locationImages=[{"url": ""}],
        areaImages={"Hall": [{"url": "https://cdn.example.com/h.jpg"}], "Kitchen": [{"url": "file:///k.jpg"}]},
        documentPreviews=[{"preview": "data:image/png;base64,AAAA"}],
    )
    galleries = build_galleries(record)
    assert [g.key for g in galleries] == ["property", "area", "documents"]
    prop = galleries[0]
    assert [img.url for img in prop.images] == ["https://cdn.example.com/1.jpg", "https://cdn.example.com/3.jpg"]
    assert [img.label for img in prop.images] == ["Property Image 1", "Property Image 2"]
    area = galleries[1]
    assert [g.name for g in area.groups] == ["Hall"]
    assert galleries[2].layout == "single"
