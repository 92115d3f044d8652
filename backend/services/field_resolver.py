"""
Field resolution: raw valuation record (nested, flat or mixed) -> flat canonical record.

Every canonical field declares an ordered list of candidate paths. The first
candidate holding a usable value wins; when none does, the field falls back to
"NA" (scalar fields), [] (list fields) or {} (area image map).

Candidate order per field:
  1. explicit priority paths (e.g. pdfDetails.classificationPosh)
  2. pdfDetails.<name>  (form overrides; never consulted for image fields)
  3. <name> at the record root
  4. declared aliases (historic names, then nested group paths)

Resolution never raises: a missing or malformed path segment only makes that
candidate absent.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Literal, Optional, Tuple

from reporting.format_utils import MISSING, NOT_AVAILABLE, extract_address, get_path, is_blank, lookup, yes_no

logger = logging.getLogger(__name__)

FORM_OVERRIDES_GROUP = "pdfDetails"

FieldKind = Literal["scalar", "list", "image_list", "image_map"]
CanonicalRecord = Dict[str, Any]

VALUATION_ITEM_KEYS: Tuple[str, ...] = (
    "presentValue",
    "wardrobes",
    "showcases",
    "kitchenArrangements",
    "superfineFinish",
    "interiorDecorations",
    "electricityDeposits",
    "collapsibleGates",
    "potentialValue",
    "otherItems",
)

IMAGE_FIELDS: Tuple[str, ...] = ("propertyImages", "locationImages", "documentPreviews", "areaImages")


@dataclass(frozen=True)
class FieldSpec:
    name: str
    aliases: Tuple[str, ...] = ()
    kind: FieldKind = "scalar"
    priority: Tuple[str, ...] = ()
    coerce: Optional[Callable[[Any], Any]] = None

    @property
    def overridable(self) -> bool:
        return self.kind not in ("image_list", "image_map")

    @property
    def candidates(self) -> Tuple[str, ...]:
        paths: List[str] = list(self.priority)
        if self.overridable:
            paths.append(f"{FORM_OVERRIDES_GROUP}.{self.name}")
        paths.append(self.name)
        paths.extend(self.aliases)
        seen: set[str] = set()
        ordered = []
        for p in paths:
            if p not in seen:
                seen.add(p)
                ordered.append(p)
        return tuple(ordered)

    @property
    def default(self) -> Any:
        if self.kind in ("list", "image_list"):
            return []
        if self.kind == "image_map":
            return {}
        return NOT_AVAILABLE


def _f(name: str, *aliases: str, **kwargs: Any) -> FieldSpec:
    return FieldSpec(name=name, aliases=tuple(aliases), **kwargs)


def _agreement_name(value: Any) -> Any:
    if isinstance(value, Mapping):
        return lookup(value, "agreementForSaleExecutedName", MISSING)
    return value


def _address(value: Any) -> Any:
    return extract_address(value) or MISSING


def _boundaries() -> List[FieldSpec]:
    specs = []
    for direction in ("North", "South", "East", "West"):
        lower = direction.lower()
        specs.append(_f(
            f"boundariesPlot{direction}Deed",
            f"boundariesPlot{direction}",
            f"propertyBoundaries.plotBoundaries.{lower}",
        ))
        specs.append(_f(f"boundariesPlot{direction}Actual", f"propertyBoundaries.plotBoundariesActual.{lower}"))
        specs.append(_f(f"boundariesShop{direction}Deed", f"boundariesShop{direction}"))
        specs.append(_f(f"boundariesShop{direction}Actual"))
    return specs


def _valuation_items() -> List[FieldSpec]:
    specs = []
    for key in VALUATION_ITEM_KEYS:
        value_aliases = ("valuationItem1",) if key == "presentValue" else ()
        specs.append(_f(key, *value_aliases, f"valuationDetails.{key}"))
        specs.append(_f(f"{key}Qty", f"valuationDetails.{key}Qty"))
        specs.append(_f(f"{key}Rate", f"valuationDetails.{key}Rate"))
    return specs


FIELD_SPECS: Tuple[FieldSpec, ...] = (
    # Document information
    _f("referenceNo", "documentInformation.referenceNo"),
    _f("branch", "documentInformation.branch"),
    _f("valuationPurpose", "pdfDetails.purposeOfValuation", "purposeOfValuation", "documentInformation.valuationPurpose"),
    _f("inspectionDate", "dateOfInspection", "pdfDetails.dateOfInspection", "documentInformation.dateOfInspection"),
    _f(
        "valuationMadeDate",
        "dateOfValuationMade",
        "pdfDetails.dateOfValuationMade",
        "dateOfValuation",
        "documentInformation.valuationMadeDate",
        "documentInformation.dateOfValuation",
        "valuationResults.valuationMadeDate",
    ),
    _f("valuationDate", "signatureDate", "signatureReport.signatureDate", "pdfDetails.valuationMadeDate"),
    _f("reportDate", "signatureReport.reportDate"),
    _f(
        "valuationPlace",
        "place",
        "documentInformation.valuationPlace",
        "valuationResults.valuationPlace",
        "signatureReport.place",
    ),
    _f("listOfDocumentsProduced", "documentsProduced.listOfDocumentsProduced"),
    _f(
        "agreementForSale",
        "documentsProduced.photocopyCopyAgreement",
        "agreementSaleExecutedName",
        "pdfDetails.agreementSaleExecutedName",
        coerce=_agreement_name,
    ),
    _f("commencementCertificate", "documentsProduced.commencementCertificate"),
    _f("occupancyCertificate", "documentsProduced.occupancyCertificate"),
    # Owner
    _f("ownerNameAddress", "ownerDetails.ownerNameAddress"),
    _f("briefDescriptionProperty", "propertyDescription", "ownerDetails.propertyDescription"),
    # Location of property
    _f("plotNo", "plotSurveyNo", "pdfDetails.plotSurveyNo", "locationOfProperty.plotSurveyNo"),
    _f("doorNo", "locationOfProperty.doorNo"),
    _f("tsNoVillage", "tpVillage", "pdfDetails.tpVillage", "locationOfProperty.tsVillage"),
    _f("wardTaluka", "locationOfProperty.wardTaluka"),
    _f("mandalDistrict", "locationOfProperty.mandalDistrict"),
    _f(
        "layoutIssueDate",
        "layoutPlanIssueDate",
        "pdfDetails.layoutPlanIssueDate",
        "locationOfProperty.dateLayoutIssueValidity",
    ),
    _f("approvedMapAuthority", "locationOfProperty.approvedMapIssuingAuthority"),
    _f("mapVerified", "authenticityVerified", "pdfDetails.authenticityVerified"),
    _f("valuersComments", "valuerCommentOnAuthenticity", "pdfDetails.valuerCommentOnAuthenticity"),
    _f("postalAddress", "locationOfProperty.postalAddress", coerce=_address),
    _f("cityTown", "cityAreaType.cityTown", "locationOfProperty.cityTown"),
    _f("residentialArea", "locationOfProperty.residentialArea"),
    _f("commercialArea", "locationOfProperty.commercialArea"),
    _f("industrialArea", "locationOfProperty.industrialArea"),
    _f("areaClassification", "areaClassification.areaClassification", "locationOfProperty.areaClassification"),
    _f("urbanType", "urbanClassification", "pdfDetails.urbanClassification", "areaClassification.areaType"),
    _f("jurisdictionType", "governmentType", "pdfDetails.governmentType", "areaClassification.govGovernance"),
    _f(
        "enactmentCovered",
        "govtEnactmentsCovered",
        "pdfDetails.govtEnactmentsCovered",
        "areaClassification.stateGovernmentEnactments",
    ),
    *_boundaries(),
    # Dimensions
    _f("dimensionsDeed", "propertyDimensions.dimensionsAsPerDeed"),
    _f("dimensionsActual", "propertyDimensions.actualDimensions"),
    _f("extentUnit", "extent", "extentOfUnit", "propertyDimensions.extent"),
    _f("extentSiteValuation", "extentOfSiteValuation", "propertyDimensions.extentSiteConsideredValuation"),
    _f("latitudeLongitude", "coordinates", "propertyDimensions.latitudeLongitudeCoordinates"),
    _f("rentReceivedPerMonth", "pdfDetails.monthlyRent", "valuationResults.rentReceivedPerMonth"),
    # Apartment building
    _f("apartmentNature", "apartmentLocation.apartmentNature"),
    _f("apartmentLocation", "apartmentLocation.apartmentLocation", "apartmentLocation.location", "location"),
    _f(
        "apartmentCTSNo",
        "ctsNo",
        "cTSNo",
        "apartmentLocation.apartmentCTSNo",
        "apartmentLocation.ctsNo",
        "apartmentLocation.cTSNo",
    ),
    _f(
        "apartmentTSNo",
        "tsNo",
        "tSNo",
        "apartmentLocation.tsNo",
        "apartmentLocation.tSNo",
        "apartmentLocation.plotSurveyNo",
        "apartmentCTSNo",
    ),
    _f(
        "apartmentBlockNo",
        "blockNo",
        "block",
        "blockNumber",
        "apartmentLocation.blockNo",
        "apartmentLocation.block",
        "apartmentLocation.blockNumber",
        "apartmentLocation.apartmentBlockNo",
    ),
    _f(
        "apartmentWardNo",
        "wardNo",
        "ward",
        "wardNumber",
        "apartmentLocation.wardNo",
        "apartmentLocation.ward",
        "apartmentLocation.wardNumber",
        "apartmentLocation.apartmentWardNo",
    ),
    _f(
        "apartmentMunicipality",
        "apartmentVillageMunicipalityCounty",
        "pdfDetails.apartmentVillageMunicipalityCounty",
        "villageOrMunicipality",
        "village",
        "municipality",
        "apartmentLocation.villageOrMunicipality",
        "apartmentLocation.village",
        "apartmentLocation.municipality",
    ),
    _f(
        "apartmentDoorNoStreetRoad",
        "apartmentDoorNoPin",
        "apartmentDoorNoStreetRoadPinCode",
        "doorNoStreetRoadPinCode",
        "streetRoad",
        "street",
        "doorNumber",
        "apartmentLocation.doorNoStreetRoadPinCode",
        "apartmentLocation.doorNo",
        "apartmentLocation.streetRoad",
        "apartmentLocation.street",
    ),
    _f("apartmentPinCode", "pinCode", "apartmentLocation.pinCode", "apartmentLocation.apartmentPinCode"),
    _f("localityDescription", "descriptionOfLocalityResidentialCommercialMixed"),
    _f("yearConstruction", "yearOfConstruction", "buildingConstruction.yearOfConstruction"),
    _f("numberOfFloors", "buildingConstruction.numberOfFloors"),
    _f("structureType", "typeOfStructure", "buildingConstruction.typeOfStructure"),
    _f(
        "numberOfDwellingUnits",
        "dwellingUnits",
        "numberOfDwellingUnitsInBuilding",
        "buildingConstruction.numberOfDwellingUnits",
        "unitClassification.numberOfDwellingUnits",
    ),
    _f("qualityConstruction", "qualityOfConstruction", "buildingConstruction.qualityOfConstruction"),
    _f("buildingAppearance", "appearanceOfBuilding", "buildingConstruction.appearanceOfBuilding"),
    _f("buildingMaintenance", "maintenanceOfBuilding", "buildingConstruction.maintenanceOfBuilding"),
    # Facilities
    _f("facilityLift", "facilities.facilityLift", "liftAvailable", "pdfDetails.liftAvailable", "facilities.liftAvailable"),
    _f(
        "facilityWater",
        "facilities.facilityWater",
        "protectedWaterSupply",
        "pdfDetails.protectedWaterSupply",
        "facilities.protectedWaterSupply",
    ),
    _f(
        "facilitySump",
        "facilities.facilitySump",
        "undergroundSewerage",
        "pdfDetails.undergroundSewerage",
        "facilities.undergroundSewerage",
    ),
    _f(
        "facilityParking",
        "facilities.facilityParking",
        "carParkingType",
        "carParkingOpenCovered",
        "pdfDetails.carParkingOpenCovered",
        "facilities.carParkingOpenCovered",
    ),
    _f(
        "facilityCompoundWall",
        "facilities.facilityCompoundWall",
        "compoundWall",
        "compoundWallExisting",
        "isCompoundWallExisting",
        "pdfDetails.isCompoundWallExisting",
        "facilities.isCompoundWallExisting",
    ),
    _f(
        "facilityPavement",
        "facilities.facilityPavement",
        "pavement",
        "pavementAroundBuilding",
        "isPavementLaidAroundBuilding",
        "pdfDetails.isPavementLaidAroundBuilding",
        "facilities.isPavementLaidAroundBuilding",
    ),
    _f("facilityOthers", "facilities.facilityOthers", "othersFacility", "pdfDetails.othersFacility", "facilities.othersFacility"),
    # Flat
    _f("floorUnit", "floorLocation", "unitFloor", "pdfDetails.unitFloor", "unitSpecifications.floorLocation"),
    _f("doorNoUnit", "unitDoorNo", "pdfDetails.unitDoorNo", "unitSpecifications.doorNoUnit"),
    _f("unitSpecification", "specification", "unitSpecifications.specification"),
    _f("roofUnit", "roof", "unitRoof", "pdfDetails.unitRoof", "unitSpecifications.roof"),
    _f("flooringUnit", "flooring", "unitFlooring", "pdfDetails.unitFlooring", "unitSpecifications.flooring"),
    _f("doorsUnit", "doors", "unitDoors", "pdfDetails.unitDoors", "unitSpecifications.doors"),
    _f("windowsUnit", "windows", "unitWindows", "pdfDetails.unitWindows", "unitSpecifications.windows"),
    _f("unitBathAndWC", "bathAndWC", "unitSpecifications.bathAndWC"),
    _f("unitElectricalWiring", "electricalWiring", "unitSpecifications.electricalWiring"),
    _f("fittingsUnit", "fittings", "unitFittings", "pdfDetails.unitFittings", "unitSpecifications.fittings"),
    _f("finishingUnit", "finishing", "unitFinishing", "pdfDetails.unitFinishing", "unitSpecifications.finishing"),
    _f("assessmentNo", "unitTax.assessmentNo"),
    _f("taxPaidName", "unitTax.taxPaidName"),
    _f("taxAmount", "unitTax.taxAmount"),
    _f(
        "electricityServiceNo",
        "electricityConnectionNo",
        "electricityServiceConnectionNo",
        "pdfDetails.electricityServiceConnectionNo",
        "electricityService.electricityServiceConnectionNo",
    ),
    _f("meterCardName", "electricityService.meterCardName"),
    _f("unitMaintenance", "unitMaintenanceStatus", "unitMaintenance.unitMaintenanceStatus"),
    _f(
        "undividedLandArea",
        "undividedLandAreaSaleDeed",
        "undividedAreaLand",
        "undividedArea",
        "pdfDetails.undividedAreaLand",
        "unitAreaDetails.undividedLandAreaSaleDeed",
        "unitAreaDetails.undividedLandArea",
    ),
    _f("plinthArea", "unitAreaDetails.plinthAreaUnit", "unitAreaDetails.plinthArea"),
    _f("floorSpaceIndex", "unitClassification.floorSpaceIndex"),
    _f(
        "carpetArea",
        "carpetAreaFlat",
        "pdfDetails.carpetAreaFlat",
        "unitAreaDetails.carpetAreaUnit",
        "unitAreaDetails.carpetArea",
        "additionalFlatDetails.carpetAreaFlat",
        "areaUsage",
    ),
    _f("areaUsage", "additionalFlatDetails.areaUsage"),
    _f(
        "unitClassification",
        "classificationPosh",
        "unitClassification.unitClassification",
        "unitClassification.classification",
        priority=("pdfDetails.classificationPosh",),
    ),
    _f(
        "residentialOrCommercial",
        "classificationUsage",
        "pdfDetails.classificationUsage",
        "unitClassification.residentialOrCommercial",
        "unitClassification.usageType",
    ),
    _f(
        "ownerOccupiedOrLetOut",
        "ownerOccupancyStatus",
        "classificationOwnership",
        "pdfDetails.ownerOccupancyStatus",
        "pdfDetails.classificationOwnership",
        "unitClassification.ownerOccupiedOrLetOut",
        "unitClassification.occupancyType",
    ),
    _f("monthlyRent", "monthlyRent.ifRentedMonthlyRent"),
    # Marketability
    _f("marketability", "marketability.howIsMarketability", "valuationResults.marketability"),
    _f("favoringFactors", "marketability.factorsFavouringExtraPotential"),
    _f("negativeFactors", "marketability.negativeFactorsAffectingValue"),
    # Rate
    _f(
        "comparableRate",
        "marketabilityDescription",
        "compositeRateAnalysis",
        "rateInfo.comparableRateSimilarUnit",
        "rateValuation.comparableRateSimilarUnitPerSqft",
    ),
    _f(
        "adoptedBasicCompositeRate",
        "smallFlatDescription",
        "newConstructionRate",
        "rateInfo.adoptedBasicCompositeRate",
        "rateValuation.adoptedBasicCompositeRatePerSqft",
    ),
    _f("buildingServicesRate", "rateInfo.buildingServicesRate", "rateValuation.buildingServicesRatePerSqft"),
    _f("landOthersRate", "rateInfo.landOthersRate", "rateValuation.landOthersRatePerSqft"),
    _f(
        "guidelineRate",
        "rateAdjustments",
        "pdfDetails.guidelineRatePerSqm",
        "guidelineRate.guidelineRatePerSqm",
        "compositeRateDepreciation.guidelineRatePerSqm",
        "compositeRate.guidelineRateRegistrar",
    ),
    # Composite rate after depreciation
    _f(
        "depreciatedBuildingRate",
        "depreciatedBuildingRateFinal",
        "compositeRateDepreciation.depreciatedBuildingRatePerSqft",
        "compositeRate.depreciatedBuildingRate",
    ),
    _f(
        "replacementCostServices",
        "compositeRateDepreciation.replacementCostUnitServicesPerSqft",
        "compositeRate.replacementCostUnitServices",
    ),
    _f("buildingAge", "buildingAgeDepreciation", "compositeRateDepreciation.ageOfBuildingYears", "compositeRate.ageOfBuilding"),
    _f(
        "buildingLife",
        "buildingLifeEstimated",
        "compositeRateDepreciation.lifeOfBuildingEstimatedYears",
        "compositeRate.lifeOfBuildingEstimated",
    ),
    _f(
        "depreciationPercentage",
        "depreciationPercentageFinal",
        "compositeRateDepreciation.depreciationPercentageSalvage",
        "compositeRate.depreciationPercentageSalvage",
    ),
    _f(
        "depreciatedRatio",
        "depreciationStorage",
        "deprecatedRatio",
        "pdfDetails.deprecatedRatio",
        "compositeRateDepreciation.depreciatedRatioBuilding",
        "compositeRate.depreciatedRatioBuilding",
    ),
    _f(
        "totalCompositeRate",
        "compositeRateDepreciation.totalCompositeRatePerSqft",
        "compositeRate.totalCompositeRate",
    ),
    _f(
        "rateForLandOther",
        "rateLandOther",
        "compositeRateDepreciation.rateLandOtherV3IIPerSqft",
        "compositeRate.rateLandOtherV3II",
    ),
    # Valuation details (line items)
    *_valuation_items(),
    _f("totalValuationItems", "totalEstimatedValue"),
    _f("totalValuationItemsWords"),
    _f("totalValueSay"),
    # Valuation results
    _f("fairMarketValue", "marketValue", "finalMarketValue", "valuationResults.fairMarketValue"),
    _f("fairMarketValueWords", "marketValueWords", "finalMarketValueWords", "valuationResults.fairMarketValueWords"),
    _f(
        "realisableValue",
        "realizableValue",
        "pdfDetails.realizableValue",
        "valuationResults.realisableValue",
        "valuationResults.realizableValue",
    ),
    _f(
        "realisableValueWords",
        "realizableValueWords",
        "valuationResults.realisableValueWords",
        "valuationResults.realizableValueWords",
    ),
    _f("distressValue", "finalDistressValue", "valuationResults.distressValue"),
    _f("distressValueWords", "finalDistressValueWords", "valuationResults.distressValueWords"),
    _f("agreementValue", "valuationResults.agreementValue"),
    _f("agreementValueWords", "valuationResults.agreementValueWords"),
    _f("valueCircleRate", "circleRate", "valuationResults.valueCircleRate", "valuationResults.circleRate"),
    _f(
        "valueCircleRateWords",
        "circleRateWords",
        "valuationResults.valueCircleRateWords",
        "valuationResults.circleRateWords",
    ),
    _f("insurableValue", "valuationResults.insurableValue"),
    _f("insurableValueWords", "valuationResults.insurableValueWords"),
    _f("saleDeedValue", "valuationResults.saleDeedValue"),
    _f("readyReckonerValue", "totalJantriValue", "pdfDetails.totalJantriValue"),
    _f("readyReckonerYear"),
    # Signature
    _f("valuersName", "signerName", "valuationValuerName", "signatureReport.signerName"),
    _f("valuersCompany"),
    _f("valuersLicense"),
    # Client information
    _f("uniqueId", "_id"),
    _f("clientName"),
    _f("mobileNumber"),
    _f("address"),
    _f("bankName"),
    _f("city"),
    _f("dsa"),
    _f("engineerName"),
    _f("notes"),
    _f("status"),
    # Collections
    _f("customFields", kind="list"),
    _f("propertyImages", kind="image_list"),
    _f("locationImages", kind="image_list"),
    _f("documentPreviews", kind="image_list"),
    _f("areaImages", kind="image_map"),
)

FIELD_SPECS_BY_NAME: Dict[str, FieldSpec] = {spec.name: spec for spec in FIELD_SPECS}
CANONICAL_FIELDS: Tuple[str, ...] = tuple(FIELD_SPECS_BY_NAME)


def _accept(spec: FieldSpec, value: Any) -> Any:
    """Return the candidate's usable value for this field, or MISSING."""
    if spec.coerce is not None and not is_blank(value):
        value = spec.coerce(value)
    if is_blank(value):
        return MISSING
    if spec.kind == "scalar":
        if isinstance(value, bool):
            return yes_no(value)
        if isinstance(value, (Mapping, list, tuple, set)):
            return MISSING
        return value
    if spec.kind == "image_map":
        return dict(value) if isinstance(value, Mapping) and value else MISSING
    if isinstance(value, (list, tuple)) and value:
        return list(value)
    return MISSING


def resolve_field(raw: Any, spec: FieldSpec) -> Any:
    if not isinstance(raw, Mapping):
        return spec.default
    for path in spec.candidates:
        value = _accept(spec, get_path(raw, path))
        if value is not MISSING:
            return value
    return spec.default


def resolve_record(raw: Any, log: Optional[logging.Logger] = None) -> CanonicalRecord:
    """Resolve every canonical field of a raw record. Field order is the declaration order."""
    log = log or logger
    canonical: CanonicalRecord = {spec.name: resolve_field(raw, spec) for spec in FIELD_SPECS}
    missing = sum(1 for spec in FIELD_SPECS if canonical[spec.name] == spec.default)
    log.debug(
        "FIELDS_RESOLVED total=%s missing=%s overrides=%s",
        len(FIELD_SPECS),
        missing,
        isinstance(raw, Mapping) and isinstance(raw.get(FORM_OVERRIDES_GROUP), Mapping),
    )
    return canonical
