"""
ParameterDefinition tables and the parameter registry.

This module defines the declarative parameter set for each service.
The planner and extractor use these definitions to drive the intake
deterministically, without per-service branching logic.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence


class ParameterType(str, Enum):
    """Value types a parameter can collect."""
    TEXT = "text"
    NUMBER = "number"
    BOOL = "bool"
    CHOICE = "choice"
    MEDIA = "media"


@dataclass(frozen=True)
class ParameterDefinition:
    """
    Specification for a single parameter to collect.

    Attributes:
        id: The slot key (e.g., "propertyType"), unique within a service
        label: Human-readable label shown to the user
        type: The type of value expected
        goal: Why the parameter is collected
        options: For CHOICE type, the ordered options offered to the user
        expected_format: Hint describing the expected answer
        allow_multiple: Whether several options may be selected at once
    """
    id: str
    label: str
    type: ParameterType
    goal: str
    options: Optional[List[str]] = None
    expected_format: Optional[str] = None
    allow_multiple: bool = False


def _choice(
    id: str,
    label: str,
    goal: str,
    options: List[str],
    expected_format: str,
    allow_multiple: bool = False,
) -> ParameterDefinition:
    return ParameterDefinition(
        id=id,
        label=label,
        type=ParameterType.CHOICE,
        goal=goal,
        options=options,
        expected_format=expected_format,
        allow_multiple=allow_multiple,
    )


# =============================================================================
# SERVICE PARAMETER SETS
# =============================================================================

INTERIOR_DESIGN_PARAMETERS = [
    _choice(
        "spaceType", "Space Type", "Identify project category",
        ["Home", "Apartment", "Villa/Farmhouse", "Commercial Project", "Other"],
        "Choose from: Home, Apartment, Villa/Farmhouse, Commercial Project, or Other",
    ),
    _choice(
        "areaSqft", "Area (sqft)", "Determine scale and budget mapping",
        ["500-800 sqft", "801-1200 sqft", "1201-1600 sqft", "1601-2000 sqft", "More than 2000 sqft", "Other"],
        "Choose a range for the area in square feet",
    ),
    _choice(
        "bhkRoomCount", "Room / BHK Count", "Define layout complexity",
        ["Studio/1BHK", "2BHK", "3BHK", "4BHK/Villa", "Other"],
        "Choose the number of rooms or BHK configuration",
    ),
    _choice(
        "stylePreference", "Style Preference", "Creative direction",
        ["Modern/Contemporary", "Neo-Indian/Traditional", "European", "Japandi", "Not Sure", "Other"],
        "Choose your preferred design style",
    ),
    _choice(
        "budgetRange", "Budget Range (₹)", "Material & planning alignment",
        ["1-3 Lakhs", "3-5 Lakhs", "5-8 Lakhs", "More than 8 Lakhs", "Flexible", "Other"],
        "Choose your approximate budget range in Lakhs",
    ),
    _choice(
        "timeline", "Timeline", "Pacing for milestones",
        ["45-60 Days", "61-90 Days", "More than 90 days", "Flexible", "Other"],
        "Choose your desired project timeline",
    ),
    _choice(
        "floorPlanAvailability", "Floor Plan Availability", "Quotation accuracy",
        ["Yes", "No", "Other"],
        "Do you have a floor plan available?",
    ),
    _choice(
        "specialZonesFocus", "Special Zones / Focus Areas", "Priority areas",
        ["Living Room", "Bedroom", "Kids Room", "All rooms", "Other"],
        "Choose any special focus areas",
    ),
    ParameterDefinition(
        id="inspirationsMoodboard",
        label="Inspirations / Moodboard",
        type=ParameterType.TEXT,
        goal="Mood & theme cues",
        expected_format="Please describe any ideas or inspirations you have",
    ),
]

CONSTRUCTION_PARAMETERS = [
    _choice(
        "plotSize", "Plot Size", "Foundation & scope estimation",
        ["<1200 sqft", "1200-2400 sqft", "2401-4000 sqft", "4001-6000 sqft", "6000+ sqft", "Not Sure", "Other"],
        "Choose a range for plot size in square feet",
    ),
    _choice(
        "plotType", "Plot Type / Zone", "Approval norms",
        ["BBMP", "DTCP", "BMRDA", "Panchayat", "Private Site", "Not Sure", "Other"],
        "Choose from: BBMP, DTCP, BMRDA, Panchayat, Private Site, Not Sure, or Other",
    ),
    _choice(
        "approvalStatus", "Approval Status", "Readiness for design",
        ["Yes", "No", "In Progress", "Not Started", "Not Sure"],
        "Choose approval status: Yes, No, In Progress, Not Started, or Not Sure",
    ),
    _choice(
        "soilTestStatus", "Soil Test Status", "Safety pre-check",
        ["Yes (report available)", "Scheduled", "No", "Not Sure"],
        "Choose: Yes (report available), Scheduled, No, or Not Sure",
    ),
    _choice(
        "numberOfFloors", "Number of Floors", "Structural base",
        ["G", "G+1", "G+2", "G+3", "4+ Floors", "Not Sure"],
        "Choose floors: G, G+1, G+2, G+3, 4+ Floors, or Not Sure",
    ),
    _choice(
        "structureType", "Structure Type", "RCC vs alternatives",
        ["RCC Frame", "Load Bearing", "Hybrid", "Steel Frame", "Not Sure"],
        "Choose from: RCC Frame, Load Bearing, Hybrid, Steel Frame, or Not Sure",
    ),
    _choice(
        "constructionStage", "Construction Stage", "New vs ongoing",
        ["New Project", "Mid-way Construction", "Renovation", "Extension"],
        "Choose from: New Project, Mid-way Construction, Renovation, or Extension",
    ),
    _choice(
        "timeline", "Timeline", "Schedule planning",
        ["< 3 months", "3-6 months", "6-9 months", "> 9 months", "Flexible", "Not Sure"],
        "Choose your target timeline",
    ),
    _choice(
        "budgetRange", "Budget Range (₹)", "Material & phases",
        ["< ₹20L", "₹20-35L", "₹35-50L", "₹50-75L", "₹75L+", "Flexible", "Not Sure"],
        "Choose a budget range in Lakhs",
    ),
]

HOME_AUTOMATION_PARAMETERS = [
    _choice(
        "homeType", "Home Type", "Wiring vs retrofit",
        ["New Build", "Existing Home", "Under Construction", "Rental Property", "Not Sure"],
        "Choose from: New Build, Existing Home, Under Construction, Rental Property, or Not Sure",
    ),
    _choice(
        "automationFocus", "Automation Focus", "Lighting/security/climate",
        ["Lighting & Ambience", "Security & Safety", "Climate & Energy", "Entertainment & Media",
         "Whole Home Suite", "Not Sure"],
        "You can choose multiple: Lighting & Ambience, Security & Safety, Climate & Energy, "
        "Entertainment & Media, Whole Home Suite, or Not Sure",
        allow_multiple=True,
    ),
    _choice(
        "roomsToAutomate", "Rooms to Automate", "Device count & mapping",
        ["Living Room & Common Areas", "Bedrooms", "Kitchen & Dining", "Entire Home", "Specific Zones Only",
         "Not Decided"],
        "Choose rooms: Living Room & Common Areas, Bedrooms, Kitchen & Dining, Entire Home, "
        "Specific Zones Only, or Not Decided",
    ),
    _choice(
        "powerBackupInverter", "Power Backup", "System compatibility",
        ["Yes (already installed)", "Planning to install", "No backup", "Not Sure"],
        "Choose: Yes (already installed), Planning to install, No backup, or Not Sure",
    ),
    _choice(
        "wifiNetworkStrength", "Wi-Fi Strength", "Ecosystem stability",
        ["Strong throughout home", "Moderate (few weak spots)", "Weak (needs upgrade)", "Currently no Wi-Fi",
         "Need on-site assessment"],
        "Choose Wi-Fi status: Strong, Moderate, Weak, No Wi-Fi, or Need assessment",
    ),
    _choice(
        "ecosystemPreference", "Ecosystem Preference", "Voice/app-based",
        ["Amazon Alexa", "Google Assistant", "Apple HomeKit", "App-based Only", "Open to suggestions"],
        "Choose: Amazon Alexa, Google Assistant, Apple HomeKit, App-based Only, or Open to suggestions",
    ),
    _choice(
        "securityPriority", "Security Priority", "Cameras/sensors",
        ["High (CCTV & sensors)", "Medium (basic alerts)", "Low priority", "Not Sure"],
        "Choose security focus: High, Medium, Low, or Not Sure",
    ),
    _choice(
        "budgetTier", "Budget Tier", "Product planning",
        ["Economical", "Mid-range", "Premium", "Luxury", "Flexible"],
        "Choose budget tier: Economical, Mid-range, Premium, Luxury, or Flexible",
    ),
    _choice(
        "lifestylePatterns", "Lifestyle Patterns", "Scene intelligence",
        ["Working professionals", "Mostly at home", "Senior-friendly home", "Rental / AirBnB",
         "Vacation / Second Home", "Not Sure"],
        "Choose: Working professionals, Mostly at home, Senior-friendly, Rental/AirBnB, Vacation home, or Not Sure",
    ),
]

PAINTING_PARAMETERS = [
    _choice(
        "propertyType", "Property Type", "Surface preparation context",
        ["Apartment", "Independent House", "Villa", "Office Space", "Retail/Commercial", "Other"],
        "Choose from: Apartment, Independent House, Villa, Office Space, Retail/Commercial, or Other",
    ),
    _choice(
        "interiorOrExterior", "Interior or Exterior", "Product family",
        ["Interior Only", "Exterior Only", "Both Interior & Exterior", "Feature Walls Only"],
        "Choose from: Interior Only, Exterior Only, Both Interior & Exterior, or Feature Walls Only",
    ),
    _choice(
        "surfaceCondition", "Surface Condition", "Repair / damp proofing",
        ["Fresh / Good condition", "Minor cracks or flaking", "Damp patches present", "Peeling / bubbling paint",
         "Major repair needed", "Not Sure"],
        "Choose condition: Fresh, Minor cracks, Damp patches, Peeling, Major repair, or Not Sure",
    ),
    _choice(
        "oldPaintType", "Old Paint Type", "Primer compatibility",
        ["Emulsion", "Enamel", "Distemper", "Not Sure", "No Previous Paint"],
        "Choose from: Emulsion, Enamel, Distemper, Not Sure, or No Previous Paint",
    ),
    _choice(
        "colourThemeIntent", "Colour Theme / Intent", "Visual direction",
        ["Warm & Cozy", "Soft Pastels", "Earthy / Natural", "Bright & Vibrant", "Monochrome / Minimal",
         "Accent Feature Wall", "Not Sure"],
        "Choose your colour mood: Warm, Pastels, Earthy, Vibrant, Monochrome, Feature Wall, or Not Sure",
    ),
    _choice(
        "finishPreference", "Finish Preference", "Product-level decision",
        ["Matte", "Eggshell", "Satin", "Semi-Gloss", "High Gloss", "Not Sure"],
        "Choose from: Matte, Eggshell, Satin, Semi-Gloss, High Gloss, or Not Sure",
    ),
    _choice(
        "totalAreaSqft", "Total Area (sqft)", "Quantity estimation",
        ["< 800 sqft", "800 - 1200 sqft", "1201 - 1800 sqft", "1801 - 2500 sqft", "2500+ sqft", "Not Sure"],
        "Choose the total paintable area range",
    ),
    _choice(
        "timeline", "Timeline", "Resource planning",
        ["Within 1 week", "1-2 weeks", "3-4 weeks", "Next month", "Flexible", "Just exploring"],
        "Choose your preferred project window",
    ),
    _choice(
        "budgetBrandFlexibility", "Budget / Brand Flexibility", "Recommendations",
        ["Economical (< ₹40k)", "Mid-range (₹40k - ₹70k)", "Premium (₹70k - ₹1.2L)", "Luxury (₹1.2L+)",
         "Brand agnostic", "Specific premium brands only"],
        "Choose budget range or brand preference",
    ),
]

SOLAR_SERVICES_PARAMETERS = [
    _choice(
        "propertyType", "Property Type", "Determines load & roof area",
        ["Independent House", "Apartment", "Villa", "Commercial Building", "Industrial Shed",
         "Institutional / School", "Other"],
        "Choose from: Independent House, Apartment, Villa, Commercial Building, Industrial Shed, "
        "Institutional/School, or Other",
    ),
    _choice(
        "roofTypeOrientation", "Roof Type & Orientation", "Feasibility for panels",
        ["Flat RCC terrace (open)", "Tiled / Sloped roof", "Metal sheet roof", "Mixed terrace + utilities",
         "Partially shaded terrace", "Ground-mounted area", "Not Sure"],
        "Choose roof type / orientation or select Not Sure",
    ),
    _choice(
        "availableRoofAreaSqft", "Available Roof Area (sqft)", "Panel capacity calculation",
        ["< 200 sqft (1-2 kW)", "200 - 400 sqft (2-4 kW)", "401 - 650 sqft (4-6 kW)", "651 - 900 sqft (6-8 kW)",
         "901+ sqft (8 kW+)", "Not Sure"],
        "Choose the approximate usable sunlit area",
    ),
    _choice(
        "monthlyBillInr", "Current Electricity Bill (₹/month)", "Load estimation (kWh/day)",
        ["< ₹1,500", "₹1,500 - ₹3,000", "₹3,001 - ₹5,000", "₹5,001 - ₹8,000", "₹8,001+",
         "Seasonal spikes only", "Not Sure"],
        "Choose your average monthly bill band",
    ),
    _choice(
        "desiredSolarType", "Desired Solar Type", "System design choice",
        ["On-grid", "Hybrid", "Off-grid", "Not Sure"],
        "Choose from: On-grid, Hybrid, Off-grid, Not Sure",
    ),
    _choice(
        "backupRequirement", "Backup Requirement", "Battery sizing",
        ["Yes, power cuts are frequent", "Yes, want critical load backup", "No, grid is reliable",
         "Considering later", "Not Sure"],
        "Choose your backup requirement preference",
    ),
    _choice(
        "budgetRange", "Budget Range (₹)", "Proposal alignment",
        ["₹1.5L - ₹2.5L", "₹2.5L - ₹4L", "₹4L - ₹6L", "₹6L+", "Exploring financing options",
         "Flexible / need guidance"],
        "Choose a budget band or financing preference",
    ),
    _choice(
        "interestedInSubsidy", "Interest in Subsidy", "Determine policy applicability",
        ["Yes, residential subsidy", "Yes, commercial scheme", "Need help understanding eligibility",
         "No, not required"],
        "Choose your subsidy interest",
    ),
    _choice(
        "installationTimeline", "Timeline / Installation Goal", "Planning and vendor sync",
        ["Within 1 month", "1-2 months", "This quarter", "After monsoon", "Just exploring options"],
        "Choose your target installation window",
    ),
]

ELECTRICAL_SERVICES_PARAMETERS = [
    _choice(
        "propertyType", "Property Type", "Establish project scale and wiring complexity",
        ["Apartment", "Independent House", "Villa", "Office Space", "Retail/Commercial", "Other"],
        "Choose from: Apartment, Independent House, Villa, Office Space, Retail/Commercial, or Other",
    ),
    _choice(
        "wiringAge", "Age of Wiring (years)", "Safety indicator for risk assessment",
        ["< 5 years", "5-10 years", "10-15 years", "15+ years", "Not Sure"],
        "Choose approximate age band or Not Sure",
    ),
    _choice(
        "powerIssues", "Frequent Power Issues", "Detect voltage fluctuations or circuit problems",
        ["Frequent tripping", "Flickering lights", "Sparks or burnt smell", "Electric shocks",
         "Overheating plugs/sockets", "None", "Other"],
        "Choose the most relevant issue or None/Other",
    ),
    _choice(
        "mainPowerSource", "Main Power Source", "Understand grid/inverter/solar mix",
        ["Grid Only", "Grid + Inverter", "Grid + Solar", "Grid + Solar + Inverter", "DG Backup", "Other"],
        "Choose from: Grid Only, Grid + Inverter, Grid + Solar, Grid + Solar + Inverter, DG Backup, or Other",
    ),
    _choice(
        "inverterBackup", "Inverter / Backup System", "Integration and load management",
        ["Yes (installed)", "Planning to install", "No backup", "Not Sure"],
        "Choose: Yes (installed), Planning to install, No backup, or Not Sure",
    ),
    _choice(
        "applianceLoad", "Appliance Load Summary", "Estimate power consumption",
        ["Light (no AC/geyser)", "Moderate (1 AC or geyser)", "Heavy (2+ ACs / heavy kitchen)",
         "Mixed household + office", "Not Sure"],
        "Choose load profile: Light, Moderate, Heavy, Mixed, or Not Sure",
    ),
    _choice(
        "earthingSafety", "Earthing & Safety Devices", "Compliance check for safety systems",
        ["Yes (with ELCB/RCCB)", "Only MCB", "No", "Not Sure"],
        "Choose from: Yes (with ELCB/RCCB), Only MCB, No, or Not Sure",
    ),
    _choice(
        "renovationGoal", "Renovation or Maintenance Goal", "Define service scope",
        ["Safety Inspection", "Repair/Troubleshooting", "Partial Upgrade", "Full Rewiring",
         "Automation Integration", "New Installation", "Other"],
        "Choose from: Safety Inspection, Repair/Troubleshooting, Partial Upgrade, Full Rewiring, "
        "Automation Integration, New Installation, or Other",
    ),
    _choice(
        "budgetRange", "Budget Range (₹)", "Align scope with financial planning",
        ["< ₹10k", "₹10k - ₹25k", "₹25k - ₹50k", "₹50k+", "Flexible / Need quote"],
        "Choose a budget band for the electrical work",
    ),
    _choice(
        "timeline", "Timeline / Urgency", "Scheduling service priority",
        ["ASAP", "This week", "1-2 weeks", "This month", "Flexible"],
        "Choose your preferred schedule window",
    ),
]


SERVICE_PARAMETERS: Dict[str, List[ParameterDefinition]] = {
    "interior_design": INTERIOR_DESIGN_PARAMETERS,
    "construction": CONSTRUCTION_PARAMETERS,
    "home_automation": HOME_AUTOMATION_PARAMETERS,
    "painting": PAINTING_PARAMETERS,
    "solar_services": SOLAR_SERVICES_PARAMETERS,
    "electrical_services": ELECTRICAL_SERVICES_PARAMETERS,
}


# =============================================================================
# REGISTRY
# =============================================================================

class ParameterRegistry:
    """
    Read-only lookup of the ordered parameter set for each service.

    Raises:
        ValueError: If a service declares the same parameter id twice.
    """

    def __init__(self, tables: Optional[Dict[str, Sequence[ParameterDefinition]]] = None):
        source = SERVICE_PARAMETERS if tables is None else tables
        self._tables: Dict[str, List[ParameterDefinition]] = {}
        for service, parameters in source.items():
            ids = [p.id for p in parameters]
            duplicates = sorted({i for i in ids if ids.count(i) > 1})
            if duplicates:
                raise ValueError(f"Duplicate parameter ids for service {service}: {duplicates}")
            self._tables[service] = list(parameters)

    def services(self) -> List[str]:
        """Get all known service names."""
        return list(self._tables.keys())

    def get(self, service: str) -> List[ParameterDefinition]:
        """Get the ordered parameter list for a service (empty if unknown)."""
        return list(self._tables.get(service, []))

    def get_parameter(self, service: str, parameter_id: str) -> Optional[ParameterDefinition]:
        """Get a parameter definition by id."""
        for parameter in self._tables.get(service, []):
            if parameter.id == parameter_id:
                return parameter
        return None

    def get_parameter_ids(self, service: str) -> List[str]:
        """Get parameter ids in question order."""
        return [p.id for p in self._tables.get(service, [])]
