"""
Build the structured valuation report (sections, rows, galleries) from a canonical record.

Derived values (line-item total, rupee words, "Say" value) are computed on a
working copy; the canonical record passed in is never mutated.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Dict, List, Optional

from models import GalleryImage, ImageGallery, ImageGroup, ReportDocument, ReportRow, ReportSection, ValuerProfile
from services.field_resolver import VALUATION_ITEM_KEYS
from valuers import get_valuer

from .format_utils import (
    NOT_AVAILABLE,
    RUPEE,
    display,
    extract_image_url,
    format_date,
    format_inr,
    is_blank,
    number_to_words,
    parse_amount,
    round_to_nearest_1000,
)

VALUE_WORD_PAIRS = (
    "fairMarketValue",
    "realisableValue",
    "distressValue",
    "agreementValue",
    "valueCircleRate",
    "insurableValue",
)

VALUATION_ITEM_LABELS = {
    "presentValue": "Present value of Flat (Built up area)",
    "wardrobes": "Wardrobes",
    "showcases": "Show cases / Almirah",
    "kitchenArrangements": "Kitchen arrangements",
    "superfineFinish": "Superfine Finish",
    "interiorDecorations": "Interiors Decorations",
    "electricityDeposits": "Electricity Deposits / Electrical fitting etc.",
    "collapsibleGates": "Extra Collapsible gates / grills works etc.",
    "potentialValue": "Potential Value, if any",
    "otherItems": "Others",
}

DECLARATION_STATEMENTS = (
    "I have no direct or indirect interest in the property valued.",
    "I have not been convicted of any offence and sentenced to a term of Imprisonment;",
    "I have not been found guilty of misconduct in my professional capacity.",
    "I have read the Handbook on Policy, Standards and procedure for Real Estate Valuation, 2011 of the IBA "
    "and this report is in conformity to the \"Standards\" enshrined for valuation in the Part-B of the above "
    "handbook to the best of my ability.",
    "I have read the International Valuation Standards (IVS) and the report submitted to the Bank for the "
    "respective asset class is in conformity to the \"Standards\" as enshrined for valuation in the IVS in "
    "\"General Standards\" and \"Asset Standards\" as applicable.",
    "I abide by the Model Code of Conduct for empanelment of valuer in the Bank. (Annexure III - A signed copy "
    "of same to be taken and kept along with this declaration)",
    "I am registered under Section 34 AB of the Wealth Tax Act, 1957.",
    "I am the proprietor / partner / authorized official of the firm / company, who is competent to sign this "
    "valuation report.",
)

CODE_OF_CONDUCT = (
    "All valuers empanelled with bank shall strictly adhere to the following code of conduct:",
    "Integrity and Fairness:",
    "A valuer shall in the conduct of his/its business, follow high standards of integrity and fairness in all "
    "his/its dealings with his/its clients and other valuers.",
    "A valuer shall maintain integrity by being honest, straightforward, and forthright in all professional "
    "relationships.",
    "A valuer shall endeavor to ensure that he/it provides true and adequate information and shall not "
    "misrepresent any facts or situations.",
    "A valuer shall not involve himself/it in any action that would bring disrepute to the profession.",
    "A valuer shall keep public interest foremost while delivering his/its services.",
    "Professional Competence and Due Care:",
    "A valuer shall render at all times high standards of service, exercise due diligence, ensure proper care "
    "and exercise independent professional judgment.",
    "A valuer shall carry out professional services in accordance with the relevant technical and professional "
    "standards that may be specified from time to time.",
    "A valuer shall continuously maintain professional knowledge and skill to provide competent professional "
    "service based on up-to-date developments in practice, prevailing regulations/guidelines and techniques.",
    "In the preparation of a valuation report, the valuer shall not disclaim liability for his/its expertise or "
    "deny his/its duty of care, except to the extent that the assumptions are based on statements of fact "
    "provided by the company or its auditors or consultants or information unavailable in public domain and "
    "not generated by the valuer.",
    "A valuer shall not carry out any instruction of the client insofar as they are incompatible with the "
    "requirements of integrity, objectivity and independence.",
    "A valuer shall clearly state to his client the services that he would be competent to provide and the "
    "services for which he would be relying on other valuers or professionals or for which client can seek "
    "independent expert opinion or a separate arrangement with other valuers.",
    "Independence and Disclosure of Interest:",
    "A valuer shall act with objectivity in his/its professional dealings by ensuring that his/its decisions "
    "are not biased by or subject to any pressure, coercion, or undue influence of any party, whether directly "
    "connected to the valuation assignment or not.",
    "A valuer shall not take up an assignment if he/it or any of his/its relatives or associates is not "
    "independent in terms of association to the company.",
    "A valuer shall maintain complete independence in his/its professional relationships and shall conduct the "
    "valuation independent of external influences.",
    "A valuer shall wherever necessary disclose to the clients, possible sources of conflicts of duties and "
    "interests, while providing unbiased services.",
    "A valuer shall not indulge in \"mandate snatching\" or offering \"convenience valuations\" in order to "
    "cater to a company or client's needs.",
    "As an independent valuer, the valuer shall not charge success fee.",
)

CODE_OF_CONDUCT_CONTINUED = (
    "Confidentiality:",
    "A valuer shall not use or divulge to other clients or any other party any confidential information about "
    "the subject company, which has come to his/its knowledge without prior and specific authority or unless "
    "there is a legal or professional right or duty to disclose.",
    "Record Management:",
    "A valuer shall ensure that he/ it maintains written contemporaneous records for any decision taken, the "
    "rationale for taking the decision, and the information and evidence in support of such decision.",
    "A valuer shall operate and be available for inspections and investigations carried out by the authority, "
    "any person authorized by the authority, the registered valuers organization with which he/it is "
    "registered or any other statutory regulatory body.",
    "A valuer while inspecting the confidentiality of information acquired during the course of performing "
    "professional services, shall maintain proper working papers for a period of three years or such longer "
    "period as required in its contract for a specific valuation.",
    "Gifts and hospitality:",
    "A valuer or his/its relative shall not accept gifts or hospitality which undermines or affects his "
    "independence as a valuer.",
    "A valuer shall not offer gifts or hospitality or an inducement to any other person with a view to obtain "
    "or retain work for himself/ itself.",
    "Remuneration and Costs:",
    "A valuer shall provide services for remuneration which is charged in a transparent manner, is a reasonable "
    "reflection of the work necessarily and properly undertaken, and is not inconsistent with the applicable "
    "rules.",
    "A valuer shall not accept any fees or charges other than those which are disclosed in a written contract "
    "with the person to whom he would be rendering service.",
    "Occupation, employability and restrictions:",
    "A valuer shall refrain from accepting too many assignments, if he/it is unlikely to be able to devote "
    "adequate time to each of his/ its assignments.",
    "A valuer shall not conduct business which in the opinion of the authority or the registered valuer "
    "organization discredits the profession.",
)


def _has(record: Mapping[str, Any], key: str) -> bool:
    value = record.get(key)
    return not is_blank(value) and value != NOT_AVAILABLE


def _val(record: Mapping[str, Any], key: str, fallback: str = NOT_AVAILABLE) -> str:
    value = record.get(key)
    if value == NOT_AVAILABLE:
        return fallback
    return display(value, fallback)


def _date(record: Mapping[str, Any], key: str) -> str:
    value = record.get(key)
    return NOT_AVAILABLE if value == NOT_AVAILABLE else format_date(value)


def _with_suffix(record: Mapping[str, Any], key: str, suffix: str) -> str:
    return f"{_val(record, key)} {suffix}" if _has(record, key) else NOT_AVAILABLE


def _row(index: str, label: str, value: str = "", **kwargs: Any) -> ReportRow:
    return ReportRow(index=index, label=label, value=value, **kwargs)


def _heading(index: str, label: str, value: str = "") -> ReportRow:
    return ReportRow(index=index, label=label, value=value, heading=True)


def compute_derived_values(canonical: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Working copy of the canonical record with derived values filled in:
    totalValuationItems (+Words), the six value/words pairs, and totalValueSay.
    One rounding rule for the total: round half up on the summed amount.
    """
    working = dict(canonical)

    total_amount: Optional[float] = None
    if _has(working, "totalValuationItems"):
        total_amount = parse_amount(working["totalValuationItems"])
    else:
        amounts = [parse_amount(working.get(key)) for key in VALUATION_ITEM_KEYS]
        present = [a for a in amounts if a is not None]
        if present and sum(present) > 0:
            total_amount = sum(present)
            working["totalValuationItems"] = format_inr(total_amount)
    if total_amount is not None and total_amount > 0 and not _has(working, "totalValuationItemsWords"):
        working["totalValuationItemsWords"] = f"{number_to_words(total_amount)} ONLY"

    for key in VALUE_WORD_PAIRS:
        amount = parse_amount(working.get(key)) if _has(working, key) else None
        words_key = f"{key}Words"
        if amount is not None and amount > 0 and not _has(working, words_key):
            working[words_key] = f"Rupees {number_to_words(amount)} Only"

    if not _has(working, "totalValueSay"):
        if _has(working, "fairMarketValue"):
            working["totalValueSay"] = working["fairMarketValue"]
        elif total_amount is not None and total_amount > 0:
            working["totalValueSay"] = format_inr(round_to_nearest_1000(total_amount))
    return working


def _general(r: Mapping[str, Any]) -> ReportSection:
    rows = [
        _row("1.", "Purpose of valuation", _val(r, "valuationPurpose")),
        _row("2.", "a) Date of inspection", _date(r, "inspectionDate")),
        _row("", "b) Date on which the valuation is made", _date(r, "valuationMadeDate")),
        _row("3.", "List of documents produced for perusal", _val(r, "listOfDocumentsProduced", "")),
        _row("", "i) Photocopy of Agreement for Sale", _val(r, "agreementForSale")),
        _row("", "ii) Commencement Certificate", _val(r, "commencementCertificate")),
        _row("", "iii) Occupancy Certificate", _val(r, "occupancyCertificate")),
        _row(
            "4.",
            "Name of the owner(s) and his / their address (as) with Phone no. "
            "(details of share of each owner in case of joint ownership)",
            _val(r, "ownerNameAddress"),
        ),
        _row("5.", "Brief description of the property", _val(r, "briefDescriptionProperty")),
        _heading("6.", "Location of property"),
        _row("", "a) Plot No. / Survey No.", _val(r, "plotNo")),
        _row("", "b) Door No.", _val(r, "doorNo")),
        _row("", "c) T.S. No. / Village", _val(r, "tsNoVillage")),
        _row("", "d) Ward / Taluka", _val(r, "wardTaluka")),
        _row("", "e) Mandal / District", _val(r, "mandalDistrict")),
        _row("", "f) Date of issue and validity of layout of approved map / plan", _val(r, "layoutIssueDate")),
        _row("", "g) Approved map / plan issuing authority", _val(r, "approvedMapAuthority")),
        _row("", "h) Whether genuineness or authenticity of approved map / plan is verified", _val(r, "mapVerified")),
        _row(
            "",
            "i) Any other comments by our empanelled valuers on authentic of authentic plan",
            _val(r, "valuersComments"),
        ),
        _row("7.", "Postal address of the property", _val(r, "postalAddress")),
        _row("8.", "City / Town", _val(r, "cityTown")),
        _row("", "Residential Area", _val(r, "residentialArea")),
        _row("", "Commercial Area", _val(r, "commercialArea")),
        _row("", "Industrial Area", _val(r, "industrialArea")),
        _heading("9.", "Classification of the area"),
        _row("", "i) High / Middle / Poor", _val(r, "areaClassification")),
        _row("", "ii) Urban / Semi Urban / Rural", _val(r, "urbanType")),
        _row("10.", "Coming under Corporation limit / Village Panchayat / Municipality", _val(r, "jurisdictionType")),
        _row(
            "11.",
            "Whether covered under any State / Central Govt. enactments (e.g. Urban Land Ceiling Act) or notified "
            "under agency area / scheduled area / cantonment area",
            _val(r, "enactmentCovered"),
        ),
        _heading("12a", "Boundaries of the property - Plot", "A) As per Deed"),
    ]
    for direction in ("North", "South", "East", "West"):
        rows.append(_row("", direction, _val(r, f"boundariesPlot{direction}Deed")))
    rows.append(_heading("", "", "B) Actual"))
    for direction in ("North", "South", "East", "West"):
        rows.append(_row("", direction, _val(r, f"boundariesPlot{direction}Actual")))
    rows.append(_heading("12b", "Boundaries of the property (Flat)", "A) As per Agreement"))
    for direction in ("North", "South", "East", "West"):
        rows.append(_row("", direction, _val(r, f"boundariesShop{direction}Deed")))
    rows.append(_heading("", "", "B) Actual"))
    for direction in ("North", "South", "East", "West"):
        rows.append(_row("", direction, _val(r, f"boundariesShop{direction}Actual")))
    rows += [
        _heading("13.", "Dimensions of the property", "A) As per Documents"),
        _row("", "", _val(r, "dimensionsDeed")),
        _heading("", "", "B) As per Actuals"),
        _row("", "", _val(r, "dimensionsActual")),
        _row("14.", "Extent of the Site", _val(r, "extentUnit")),
        _row("15.", "Extent of the Site considered for valuation", _val(r, "extentSiteValuation")),
        _row("16.", "Latitude, longitude & Co-ordinates of Flat", _val(r, "latitudeLongitude")),
        _row(
            "17.",
            "Whether occupied by the owner/tenant? If occupied by tenant, since how long? Rent received per month",
            _val(r, "rentReceivedPerMonth"),
        ),
    ]
    return ReportSection(key="general", title="I. GENERAL", rows=rows)


def _apartment(r: Mapping[str, Any]) -> ReportSection:
    rows = [
        _row("1.", "Nature of the apartment", _val(r, "apartmentNature")),
        _heading("2.", "Location", _val(r, "apartmentLocation", "")),
        _row("", "C.T.S. No.", _val(r, "apartmentCTSNo")),
        _row("", "Block No.", _val(r, "apartmentBlockNo")),
        _row("", "Ward No.", _val(r, "apartmentWardNo")),
        _row("", "Village / Municipality / Corporation", _val(r, "apartmentMunicipality")),
        _row("", "Door No., Street or Road", _val(r, "apartmentDoorNoStreetRoad")),
        _row("", "Pin Code", _val(r, "apartmentPinCode")),
        _row("3.", "Description of the Locality (Residential / Commercial / Mixed)", _val(r, "localityDescription")),
        _row("4.", "Year of Construction", _val(r, "yearConstruction")),
        _row("5.", "Number of floors", _val(r, "numberOfFloors")),
        _row("6.", "Type of structure", _val(r, "structureType")),
        _row("7.", "Number of dwelling unit in the building", _val(r, "numberOfDwellingUnits")),
        _row("8.", "Quality of construction", _val(r, "qualityConstruction")),
        _row("9.", "Appearance of the Building", _val(r, "buildingAppearance")),
        _row("10.", "Maintenance of the Building", _val(r, "buildingMaintenance")),
        _heading("11.", "Facilities available"),
        _row("", "- Lift", _val(r, "facilityLift")),
        _row("", "- Protected water supply", _val(r, "facilityWater")),
        _row("", "- Underground Sewerage", _val(r, "facilitySump")),
        _row("", "- Car parking (Open / Covered)", _val(r, "facilityParking")),
        _row("", "- Around compound wall", _val(r, "facilityCompoundWall")),
        _row("", "- Pavement around the building", _val(r, "facilityPavement")),
        _row("", "- Any others facility", _val(r, "facilityOthers")),
    ]
    return ReportSection(key="apartment", title="II. APARTMENT BUILDING", rows=rows)


def _doors_and_windows(r: Mapping[str, Any]) -> str:
    parts = [_val(r, k) for k in ("doorsUnit", "windowsUnit") if _has(r, k)]
    return " / ".join(parts) if parts else NOT_AVAILABLE


def _flat(r: Mapping[str, Any]) -> ReportSection:
    agreement = _val(r, "agreementForSale") if _has(r, "agreementForSale") else _val(r, "ownerNameAddress")
    rows = [
        _row("1.", "The floor in which the Unit is situated", _val(r, "floorUnit")),
        _row("2.", "Door Number of the Flat", _val(r, "doorNoUnit")),
        _heading("3.", "Specifications of the Flat", _val(r, "unitSpecification", "")),
        _row("", "Roof", _val(r, "roofUnit")),
        _row("", "Flooring", _val(r, "flooringUnit")),
        _row("", "Doors & Windows", _doors_and_windows(r)),
        _row("", "Bath / WC", _val(r, "unitBathAndWC")),
        _row("", "Electrical wiring", _val(r, "unitElectricalWiring")),
        _row("", "Fittings", _val(r, "fittingsUnit")),
        _row("", "Finishing", _val(r, "finishingUnit")),
        _heading("4.", "Flat Tax"),
        _row("", "Assessment No.", _val(r, "assessmentNo")),
        _row("", "Tax Amount", _val(r, "taxAmount")),
        _row("", "In the Name of", _val(r, "taxPaidName")),
        _row("5.", "Electricity service connection number", _val(r, "electricityServiceNo")),
        _row("", "Meter card is in the name of", _val(r, "meterCardName")),
        _row("6.", "How is the maintenance of the Flat?", _val(r, "unitMaintenance")),
        _row("7.", "Agreement for Sale executed in the name of", agreement),
        _row("8.", "What is the undivided area of the land as per sale deed?", _val(r, "undividedLandArea")),
        _row("9.", "What is the Plinth Area of the Flat?", _val(r, "plinthArea")),
        _row("10.", "What is the floor space index?", _val(r, "floorSpaceIndex")),
        _row("11.", "What is the Carpet area of the Flat?", _val(r, "carpetArea")),
        _row("12.", "Is it Posh / I Class / Medium / Ordinary?", _val(r, "unitClassification")),
        _row("13.", "Is it being used for residential or commercial?", _val(r, "residentialOrCommercial")),
        _row("14.", "Is it owner occupied or tenanted?", _val(r, "ownerOccupiedOrLetOut")),
        _row("15.", "If tenanted, what is the monthly rent?", _val(r, "monthlyRent")),
    ]
    return ReportSection(key="flat", title="III. FLAT", rows=rows)


def _marketability(r: Mapping[str, Any]) -> ReportSection:
    return ReportSection(
        key="marketability",
        title="IV. MARKETABILITY",
        rows=[
            _row("1.", "How is the marketability?", _val(r, "marketability")),
            _row("2.", "What are the factors favoring for an extra potential value?", _val(r, "favoringFactors")),
            _row("3.", "Any negative factors observed which affect the market value in general?", _val(r, "negativeFactors")),
        ],
    )


def _rate(r: Mapping[str, Any]) -> ReportSection:
    return ReportSection(
        key="rate",
        title="V. RATE",
        rows=[
            _row(
                "1.",
                "After analyzing the comparable sale instances, what is the composite rate for a similar Flat with "
                "same specifications in the adjoining locality?",
                _val(r, "comparableRate"),
            ),
            _row(
                "2.",
                "Assuming it is a new construction, what is the adopted basic composite rate of the Flat under "
                "valuation after comparing with the specifications and other factors?",
                _val(r, "adoptedBasicCompositeRate"),
            ),
            _heading("3.", "Break up for the above Rate"),
            _row("", "i) Building + Services", _val(r, "buildingServicesRate")),
            _row("", "ii) Land + Other", _val(r, "landOthersRate")),
            _row(
                "4.",
                "Guideline rate obtained from the Registrar's office (an evidence thereof to be enclosed)",
                _val(r, "guidelineRate"),
            ),
        ],
    )


def _composite_rate(r: Mapping[str, Any]) -> ReportSection:
    return ReportSection(
        key="composite_rate",
        title="VI. COMPOSITE RATE ADOPTED AFTER DEPRECIATION",
        rows=[
            _heading("a)", "Depreciated Building Rate", _val(r, "depreciatedBuildingRate")),
            _row("", "Replacement cost of Flat with services (V(3)(i))", _val(r, "replacementCostServices")),
            _row("", "Age of the Building", _with_suffix(r, "buildingAge", "Years")),
            _row("", "Future Life of the building estimated", _with_suffix(r, "buildingLife", "years")),
            _row("", "Depreciation percentage assuming the salvage value as 10%", _with_suffix(r, "depreciationPercentage", "%")),
            _row("", "Depreciated Rate of the building", _with_suffix(r, "depreciatedRatio", "%")),
            _heading("b)", "Total composite rate arrived for valuation"),
            _row("", "Depreciated Building rate VI (a)", _val(r, "depreciatedBuildingRate")),
            _row("", "Rate for land & others [V (3) (ii)]", _val(r, "landOthersRate")),
            _row("", "Total Composite rate", _val(r, "totalCompositeRate")),
        ],
    )


def _rupees(text: str) -> str:
    return text if text in (NOT_AVAILABLE, "Nil") else f"{RUPEE} {text}/-"


def _valuation_details(r: Mapping[str, Any]) -> ReportSection:
    rows = []
    for n, key in enumerate(VALUATION_ITEM_KEYS, start=1):
        empty = NOT_AVAILABLE if n == 1 else "Nil"
        rows.append(
            _row(
                f"{n}.",
                VALUATION_ITEM_LABELS[key],
                _rupees(_val(r, key, empty)),
                quantity=_val(r, f"{key}Qty", empty),
                rate=_rupees(_val(r, f"{key}Rate", empty)),
            )
        )
    rows.append(_row("", "TOTAL AMOUNT", _rupees(_val(r, "totalValuationItems")), heading=True))
    rows.append(_row("", "Say", _rupees(_val(r, "totalValueSay")), heading=True))
    return ReportSection(
        key="valuation_details",
        title="C. VALUATION DETAILS",
        columns=["Sr. No", "Description", "Qty. Sq. ft.", "Rate per Unit Sq. ft.", f"Estimated / Present Value ({RUPEE})"],
        rows=rows,
        forced_break=True,
    )


def _money_text(r: Mapping[str, Any], key: str) -> str:
    if not _has(r, key):
        return NOT_AVAILABLE
    words = _val(r, f"{key}Words", "")
    text = f"Rs. {_val(r, key)} /-"
    return f"{text} ({words})" if words else text


def _value_of_flat(r: Mapping[str, Any]) -> ReportSection:
    agreement_key = "agreementValue" if _has(r, "agreementValue") else "valueCircleRate"
    return ReportSection(
        key="value_of_flat",
        title="VALUE OF FLAT",
        rows=[
            _row("", "Fair Market Value", _money_text(r, "fairMarketValue")),
            _row("", "Realizable Value", _money_text(r, "realisableValue")),
            _row("", "Distress Value", _money_text(r, "distressValue")),
            _row("", "Agreement Value / Circle Rate", _money_text(r, agreement_key)),
            _row("", "Insurance Value", _money_text(r, "insurableValue")),
        ],
    )


def _custom_fields(r: Mapping[str, Any]) -> Optional[ReportSection]:
    fields = r.get("customFields") or []
    rows = [
        _row("", display(f.get("name")), display(f.get("value")))
        for f in fields
        if isinstance(f, Mapping)
    ]
    if not rows:
        return None
    return ReportSection(key="custom_fields", title="CUSTOM FIELDS", columns=["Field Name", "Field Value"], rows=rows)


def _place(r: Mapping[str, Any], valuer: ValuerProfile) -> str:
    if _has(r, "valuationPlace"):
        return _val(r, "valuationPlace")
    return valuer.default_place or NOT_AVAILABLE


def _signer(r: Mapping[str, Any], valuer: ValuerProfile) -> str:
    return _val(r, "valuersName") if _has(r, "valuersName") else valuer.name


def _valuation_summary(r: Mapping[str, Any], valuer: ValuerProfile) -> ReportSection:
    fmv = _money_text(r, "fairMarketValue")
    paragraphs = [
        "As a result of my appraisal and analysis, it is my considered opinion that the present fair market "
        f"value of the above property in the prevailing condition with aforesaid specifications is {fmv}.",
        f"The realizable value is {_money_text(r, 'realisableValue')} and the distress value is "
        f"{_money_text(r, 'distressValue')}.",
        f"Place: {_place(r, valuer)}",
        f"Date: {_date(r, 'valuationMadeDate')}",
    ]
    return ReportSection(
        key="valuation_summary",
        title="",
        paragraphs=paragraphs,
        discrete_page=True,
        signature=True,
    )


def _declaration(r: Mapping[str, Any]) -> ReportSection:
    paragraphs = [
        "I hereby declare that-",
        f"The information furnished in my valuation report dated {_date(r, 'valuationMadeDate')} is true and "
        "correct to the best of my knowledge and belief and I have made an impartial and true valuation of the "
        "property.",
        DECLARATION_STATEMENTS[0],
        f"I have personally inspected the property on {_date(r, 'inspectionDate')}. The work is not "
        "sub-contracted to any other valuer and carried out by myself.",
        *DECLARATION_STATEMENTS[1:],
    ]
    return ReportSection(
        key="declaration",
        title="ANNEXURE-II  FORMAT-A  DECLARATION FROM VALUERS",
        paragraphs=paragraphs,
        discrete_page=True,
    )


def _valuer_information(r: Mapping[str, Any], valuer: ValuerProfile) -> ReportSection:
    owner = _val(r, "ownerNameAddress")
    bank = _val(r, "bankName", "the Bank")
    branch = _val(r, "branch", "")
    appointing = f"As per request of Branch Manager, {bank}" + (f", {branch}" if branch else "") + "."
    dates = (
        f"Date of Appointment: {_date(r, 'inspectionDate')}; "
        f"Date of Inspection: {_date(r, 'inspectionDate')}; "
        f"Date of Valuation Report: {_date(r, 'valuationMadeDate')}"
    )
    rows = [
        _row(
            "1",
            "Background information of the asset being valued;",
            f"Property in question to be purchased by {owner}. This is based on information given by Owner and "
            "documents available for our perusal.",
        ),
        _row("2", "Purpose of valuation and appointing authority", appointing),
        _row("3", "Identity of the valuer and any other experts involved in the valuation;", _signer(r, valuer)),
        _row("4", "Disclosure of valuer interest or conflict, if any;", valuer.disclosure_of_interest),
        _row("5", "Date of appointment, valuation date and date of report;", dates),
        _row("6", "Inspections and/or investigations undertaken;", f"Site inspection was carried out along with {owner}."),
        _row("7", "Nature and sources of the information used or relied upon", valuer.information_sources),
        _row(
            "8",
            "Procedures adopted in carrying out the valuation and valuation standards followed;",
            f"Actual site visit conducted along with {owner}. Valuation report was prepared by adopting "
            f"{valuer.valuation_method}.",
        ),
        _row("9", "Restrictions on use of the report, if any;", "The report is only valid for the purpose mentioned in the report."),
        _row("10", "Major factors that were taken into account during the valuation;", valuer.major_factors),
        _row(
            "11",
            "Caveats, limitations and disclaimers to the extent they explain or elucidate the limitations faced "
            "by valuer, which shall not be for the purpose of limiting his responsibility for the valuation report",
            valuer.caveats,
        ),
    ]
    return ReportSection(
        key="valuer_information",
        title="Further, I hereby provide the following information.",
        columns=["S. No.", "Particulars", "Valuer Comment"],
        rows=rows,
        paragraphs=[f"Date: {_date(r, 'valuationMadeDate')}", f"Place: {_place(r, valuer)}"],
        discrete_page=True,
        signature=True,
    )


def _code_of_conduct(r: Mapping[str, Any], valuer: ValuerProfile) -> List[ReportSection]:
    return [
        ReportSection(
            key="code_of_conduct",
            title="ANNEXURE - IV  MODEL CODE OF CONDUCT FOR VALUERS",
            paragraphs=list(CODE_OF_CONDUCT),
            discrete_page=True,
        ),
        ReportSection(
            key="code_of_conduct_continued",
            title="",
            paragraphs=[
                *CODE_OF_CONDUCT_CONTINUED,
                f"Date: {_date(r, 'valuationMadeDate')}",
                f"Place: {_place(r, valuer)}",
            ],
            discrete_page=True,
            signature=True,
        ),
    ]


def _gallery_images(refs: Any, label: str) -> List[GalleryImage]:
    images = []
    for ref in refs if isinstance(refs, list) else []:
        url = extract_image_url(ref)
        if url:
            images.append(GalleryImage(url=url, label=f"{label} {len(images) + 1}"))
    return images


def build_galleries(record: Mapping[str, Any]) -> List[ImageGallery]:
    """Image galleries in output order; empty galleries and invalid image URLs are dropped."""
    galleries: List[ImageGallery] = []
    prop = _gallery_images(record.get("propertyImages"), "Property Image")
    if prop:
        galleries.append(ImageGallery(key="property", title="PROPERTY IMAGES", layout="grid", groups=[ImageGroup(images=prop)]))
    loc = _gallery_images(record.get("locationImages"), "Location Image")
    if loc:
        galleries.append(ImageGallery(key="location", title="LOCATION IMAGES", layout="single", groups=[ImageGroup(images=loc)]))
    area_map = record.get("areaImages")
    if isinstance(area_map, Mapping):
        groups = []
        for area_name, refs in area_map.items():
            images = _gallery_images(refs, f"{area_name} - Image")
            if images:
                groups.append(ImageGroup(name=str(area_name), images=images))
        if groups:
            galleries.append(ImageGallery(key="area", title="PROPERTY AREA IMAGES", layout="grid", groups=groups))
    docs = _gallery_images(record.get("documentPreviews"), "Supporting Document")
    if docs:
        galleries.append(
            ImageGallery(key="documents", title="SUPPORTING DOCUMENTS", layout="single", groups=[ImageGroup(images=docs)])
        )
    return galleries


def build_report_document(canonical: Mapping[str, Any], valuer: ValuerProfile | None = None) -> ReportDocument:
    """Ordered report sections (flowing sections first, then discrete pages) plus image galleries."""
    if valuer is None:
        valuer = get_valuer(None)
    r = compute_derived_values(canonical)

    sections = [
        _general(r),
        _apartment(r),
        _flat(r),
        _marketability(r),
        _rate(r),
        _composite_rate(r),
        _valuation_details(r),
        _value_of_flat(r),
    ]
    custom = _custom_fields(r)
    if custom is not None:
        sections.append(custom)
    sections += [
        _valuation_summary(r, valuer),
        _declaration(r),
        _valuer_information(r, valuer),
        *_code_of_conduct(r, valuer),
    ]

    addressee = ["To,", "The Branch Manager,"]
    if _has(r, "bankName"):
        addressee.append(_val(r, "bankName"))
    if _has(r, "branch"):
        addressee.append(_val(r, "branch"))

    report_date_key = "reportDate" if _has(r, "reportDate") else "inspectionDate"
    return ReportDocument(
        reference_no=_val(r, "referenceNo"),
        report_date=_date(r, report_date_key),
        addressee=addressee,
        sections=sections,
        galleries=build_galleries(r),
        values={
            "signer": _signer(r, valuer),
            "designation": valuer.designation,
            "registration_no": valuer.registration_no,
            "company": valuer.company or "",
            "client_name": _val(r, "clientName", ""),
            "unique_id": _val(r, "uniqueId", ""),
            "total_valuation_items": _val(r, "totalValuationItems"),
            "total_valuation_items_words": _val(r, "totalValuationItemsWords", ""),
        },
    )
