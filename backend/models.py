from __future__ import annotations

import re
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ReportRow(BaseModel):
    """
    One label/value row of a report section.

    - index: printed serial label ("1.", "12a", "a)"), empty for continuation rows
    - label: field label as printed on the form
    - value: resolved, display-ready value
    - quantity / rate: only used by the itemized valuation-details table
    - heading: group header row (label only, value column left blank)
    """

    index: str = ""
    label: str = ""
    value: str = ""
    quantity: Optional[str] = None
    rate: Optional[str] = None
    heading: bool = False


class ReportSection(BaseModel):
    """Ordered, titled block of rows. Discrete sections always start a fresh physical page."""
    key: str
    title: str = ""
    rows: List[ReportRow] = Field(default_factory=list)
    paragraphs: List[str] = Field(default_factory=list)
    columns: List[str] = Field(default_factory=list)
    forced_break: bool = False
    discrete_page: bool = False
    signature: bool = False


class GalleryImage(BaseModel):
    url: str
    label: str = ""


class ImageGroup(BaseModel):
    """Named sub-gallery (one per area key for area images)."""
    name: str = ""
    images: List[GalleryImage] = Field(default_factory=list)


class ImageGallery(BaseModel):
    key: str
    title: str
    layout: Literal["grid", "single"] = "grid"
    groups: List[ImageGroup] = Field(default_factory=list)

    @property
    def images(self) -> List[GalleryImage]:
        return [img for group in self.groups for img in group.images]


class ReportDocument(BaseModel):
    """Structured, render-ready valuation report."""
    title: str = "VALUATION REPORT (IN RESPECT OF FLAT)"
    reference_no: str = ""
    report_date: str = ""
    addressee: List[str] = Field(default_factory=list)
    sections: List[ReportSection] = Field(default_factory=list)
    galleries: List[ImageGallery] = Field(default_factory=list)
    values: Dict[str, Any] = Field(default_factory=dict)

    @property
    def flow_sections(self) -> List[ReportSection]:
        return [s for s in self.sections if not s.discrete_page]

    @property
    def discrete_sections(self) -> List[ReportSection]:
        return [s for s in self.sections if s.discrete_page]

    @property
    def forced_break_keys(self) -> List[str]:
        return [s.key for s in self.sections if s.forced_break and not s.discrete_page]

    def section(self, key: str) -> Optional[ReportSection]:
        for s in self.sections:
            if s.key == key:
                return s
        return None


class ValuerProfile(BaseModel):
    """Identity printed in signature blocks and the declaration pages."""
    valuer_id: str
    name: str
    designation: str = "Engineer & Govt. Approved Valuer"
    registration_no: str = ""
    company: str | None = None
    default_place: str | None = None
    disclosure_of_interest: str = "No"
    information_sources: str = "Local inquiry in the surrounding vicinity."
    valuation_method: str = "composite rate method of valuation"
    major_factors: str = "Marketability supply and demand, locality, construction quality."
    caveats: str = "No such circumstances were noticed."

    @field_validator("valuer_id")
    @classmethod
    def validate_valuer_id(cls, v: str) -> str:
        v = (v or "").strip()
        if not re.fullmatch(r"[A-Za-z0-9_-]{1,64}", v):
            raise ValueError("valuer_id must be 1-64 characters of letters, digits, '-' or '_'")
        return v


class ReportRequest(BaseModel):
    """Body for report endpoints: the raw record as stored, plus optional valuer profile."""
    model_config = ConfigDict(extra="ignore")

    record: Dict[str, Any] = Field(default_factory=dict)
    valuer_id: Optional[str] = None


class ReportArtifact(BaseModel):
    filename: str
    content: bytes
    page_count: int = 0
    image_count: int = 0
    media_type: str = "application/pdf"


class PreviewReference(BaseModel):
    preview_id: str
    url: str
    filename: str
    expires_at: float


class GatewayResult(BaseModel):
    """Outcome of a RecordGateway call. Failures carry the server message, else the transport message."""
    success: bool
    data: Any = None
    message: Optional[str] = None
    status_code: Optional[int] = None
    pagination: Optional[Dict[str, Any]] = None
