"""In-repo valuer profile registry (signature blocks, declaration and information pages)."""
from __future__ import annotations

from models import ValuerProfile
from settings import DEFAULT_VALUER_ID

VALUERS: dict[str, ValuerProfile] = {
    "default": ValuerProfile(
        valuer_id="default",
        name="Shashikant R. Dhumal",
        designation="Engineer & Govt. Approved Valuer",
        registration_no="CAT/I/143-2007",
        company=None,
        default_place="Navi Mumbai",
    ),
    "sample": ValuerProfile(
        valuer_id="sample",
        name="Sample Valuer",
        designation="Registered Valuer (Land & Building)",
        registration_no="IBBI/RV/00/0000/00000",
        company="Sample Valuation Associates",
        default_place="Pune",
        valuation_method="comparable sales and composite rate method of valuation",
    ),
}


def get_valuer(valuer_id: str | None) -> ValuerProfile:
    """Profile for valuer_id; unknown or empty ids fall back to the configured default."""
    if valuer_id and valuer_id in VALUERS:
        return VALUERS[valuer_id]
    return VALUERS.get(DEFAULT_VALUER_ID) or VALUERS["default"]


def find_valuer(valuer_id: str) -> ValuerProfile | None:
    return VALUERS.get(valuer_id)


def list_valuers() -> list[ValuerProfile]:
    return list(VALUERS.values())
