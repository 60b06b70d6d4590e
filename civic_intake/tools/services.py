"""
Service catalog: the council services a caller can request and the
ordered fields each one needs.

The catalog is built once at startup and passed to whatever needs it.
Field order is significant: it is the order in which the orchestrator
asks for values.
"""

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional

from pydantic import BaseModel, ConfigDict, model_validator

from civic_intake.errors import UnknownServiceError

logger = logging.getLogger(__name__)


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class FieldType(str, Enum):
    """Semantic type of a field, passed to the extractor as context."""

    TEXT = "text"
    NAME = "name"
    EMAIL = "email"
    PHONE = "phone"
    DATE = "date"
    ADDRESS = "address"
    SELECT = "select"
    MULTISELECT = "multiselect"
    FILE = "file"


class FieldValidation(BaseModel):
    """Advisory format constraints handed to the extractor."""

    model_config = ConfigDict(frozen=True)

    pattern: Optional[str] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    message: Optional[str] = None


class ServiceField(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    type: FieldType = FieldType.TEXT
    required: bool = True
    options: tuple[str, ...] = ()
    validation: Optional[FieldValidation] = None
    help_text: Optional[str] = None

    @model_validator(mode="after")
    def _options_for_choices(self) -> "ServiceField":
        if self.type in (FieldType.SELECT, FieldType.MULTISELECT) and not self.options:
            raise ValueError(f"Field '{self.id}' of type {self.type.value} needs options")
        return self


class ServiceDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    category: str = ""
    priority: Priority = Priority.MEDIUM
    fields: tuple[ServiceField, ...]
    welcome_message: str
    completion_message: str
    keywords: tuple[str, ...] = ()

    @model_validator(mode="after")
    def _unique_field_ids(self) -> "ServiceDefinition":
        seen: set[str] = set()
        for f in self.fields:
            if f.id in seen:
                raise ValueError(f"Duplicate field id '{f.id}' in service '{self.id}'")
            seen.add(f.id)
        if not self.fields:
            raise ValueError(f"Service '{self.id}' defines no fields")
        return self

    @property
    def field_count(self) -> int:
        return len(self.fields)

    def first_field_of_type(self, field_type: FieldType) -> Optional[ServiceField]:
        for f in self.fields:
            if f.type == field_type:
                return f
        return None


class ServiceCatalog:
    """Read-only registry of service definitions keyed by id."""

    def __init__(self, services: list[ServiceDefinition]) -> None:
        self._services: dict[str, ServiceDefinition] = {}
        for svc in services:
            if svc.id in self._services:
                raise ValueError(f"Duplicate service id '{svc.id}'")
            self._services[svc.id] = svc

    def get(self, service_id: Optional[str]) -> Optional[ServiceDefinition]:
        """Look up a service. Returns None for unknown or empty ids."""
        if not service_id:
            return None
        return self._services.get(service_id.strip().lower())

    def require(self, service_id: str) -> ServiceDefinition:
        svc = self.get(service_id)
        if svc is None:
            raise UnknownServiceError(
                f"Service '{service_id}' not in catalog. Available: {self.ids()}"
            )
        return svc

    def ids(self) -> list[str]:
        return list(self._services.keys())

    def services(self) -> list[ServiceDefinition]:
        return list(self._services.values())

    def menu_text(self) -> str:
        """Numbered spoken menu, e.g. '1, Blue Badge Application, 2, ...'."""
        return ", ".join(
            f"{i}, {svc.name}" for i, svc in enumerate(self._services.values(), start=1)
        )

    def __contains__(self, service_id: object) -> bool:
        return isinstance(service_id, str) and self.get(service_id) is not None

    def __len__(self) -> int:
        return len(self._services)

    def __iter__(self) -> Iterator[ServiceDefinition]:
        return iter(self._services.values())


_DEFAULT_SERVICES: list[dict] = [
    {
        "id": "blue_badge",
        "name": "Blue Badge Application",
        "description": "Apply for a Blue Badge parking permit for disabled individuals",
        "category": "Accessibility",
        "priority": "medium",
        "welcome_message": (
            "I'll help you apply for a Blue Badge. This permit allows you to park "
            "closer to your destination. I'll need to collect some personal and "
            "medical information."
        ),
        "completion_message": (
            "Great! I've collected all the information needed for your Blue Badge "
            "application. You'll receive a confirmation email shortly with next steps."
        ),
        "keywords": ["blue badge", "disabled parking", "parking permit", "disability badge"],
        "fields": [
            {"id": "full_name", "label": "Full Name", "type": "name"},
            {"id": "date_of_birth", "label": "Date of Birth", "type": "date"},
            {"id": "address", "label": "Home Address", "type": "address"},
            {"id": "email", "label": "Email Address", "type": "email",
             "help_text": "We'll send your confirmation there."},
            {"id": "disability_type", "label": "Type of Disability", "type": "select",
             "options": ["Mobility impairment", "Visual impairment",
                         "Hidden disability", "Other"]},
            {"id": "medical_evidence", "label": "Do you have medical evidence?",
             "type": "select",
             "options": ["Yes, I have it ready", "Yes, but need to obtain it",
                         "No, I need guidance"]},
            {"id": "current_medication", "label": "Current medications affecting mobility",
             "type": "text", "required": False},
        ],
    },
    {
        "id": "missed_bin",
        "name": "Report Missed Bin Collection",
        "description": "Report a missed bin collection for your property",
        "category": "Waste Management",
        "priority": "medium",
        "welcome_message": (
            "I'll help you report a missed bin collection. I'll need some details "
            "about your property and which bins weren't collected."
        ),
        "completion_message": (
            "Thank you for reporting the missed collection. We'll investigate and "
            "arrange for collection within 48 hours."
        ),
        "keywords": ["missed bin", "bin collection", "bins", "rubbish", "recycling", "waste"],
        "fields": [
            {"id": "property_address", "label": "Property Address", "type": "address"},
            {"id": "collection_date", "label": "Scheduled Collection Date", "type": "date"},
            {"id": "bin_types", "label": "Which bins were missed?", "type": "multiselect",
             "options": ["General waste (black)", "Recycling (blue)",
                         "Garden waste (green)", "Food waste (brown)"]},
            {"id": "bin_location", "label": "Where were the bins placed?", "type": "select",
             "options": ["Outside property boundary", "On pavement",
                         "In designated area", "Other location"]},
            {"id": "additional_info", "label": "Any additional information?",
             "type": "text", "required": False},
        ],
    },
    {
        "id": "housing_benefit",
        "name": "Housing Benefit Application",
        "description": "Apply for housing benefit to help with rent costs",
        "category": "Benefits",
        "priority": "high",
        "welcome_message": (
            "I'll help you apply for Housing Benefit. This can help with your rent "
            "costs. I'll need to collect information about your circumstances, "
            "income, and housing situation."
        ),
        "completion_message": (
            "I've collected all the initial information for your Housing Benefit "
            "application. You'll receive an email with the application reference "
            "and information about required documents."
        ),
        "keywords": ["housing benefit", "help with rent", "rent", "benefit"],
        "fields": [
            {"id": "full_name", "label": "Full Name", "type": "name"},
            {"id": "national_insurance", "label": "National Insurance Number", "type": "text",
             "validation": {"pattern": "^[A-Z]{2}[0-9]{6}[A-D]$",
                            "message": "Two letters, six digits and a final letter"}},
            {"id": "current_address", "label": "Current Address", "type": "address"},
            {"id": "resident_email", "label": "Email Address", "type": "email"},
            {"id": "rental_amount", "label": "Weekly or Monthly Rent Amount", "type": "text"},
            {"id": "employment_status", "label": "Employment Status", "type": "select",
             "options": ["Employed full-time", "Employed part-time", "Self-employed",
                         "Unemployed", "Student", "Retired", "Unable to work"]},
            {"id": "household_size", "label": "Number of people in household",
             "type": "select", "options": ["1", "2", "3", "4", "5", "6 or more"]},
            {"id": "savings_amount", "label": "Total savings and investments",
             "type": "select",
             "options": ["Under £6,000", "£6,000 - £16,000", "Over £16,000",
                         "Prefer not to say"]},
        ],
    },
    {
        "id": "pothole_report",
        "name": "Report Pothole",
        "description": "Report a pothole or road surface issue",
        "category": "Highways",
        "priority": "medium",
        "welcome_message": (
            "I'll help you report a pothole or road surface issue. I'll need the "
            "location details and information about the severity of the problem."
        ),
        "completion_message": (
            "Thank you for reporting the pothole. We'll assess the issue within 5 "
            "working days and take appropriate action."
        ),
        "keywords": ["pothole", "road damage", "road surface", "hole in the road"],
        "fields": [
            {"id": "location", "label": "Exact Location", "type": "address"},
            {"id": "severity", "label": "How severe is the pothole?", "type": "select",
             "options": ["Minor - small crack or chip", "Moderate - noticeable hole",
                         "Severe - large hole or dangerous",
                         "Urgent - immediate safety hazard"]},
            {"id": "size_estimate", "label": "Approximate size", "type": "select",
             "options": ["Smaller than a dinner plate", "Dinner plate sized",
                         "Larger than a dinner plate", "Very large area"]},
            {"id": "safety_concern", "label": "Is it causing safety issues?",
             "type": "select",
             "options": ["No safety issues", "Minor inconvenience",
                         "Moderate safety concern", "Serious safety hazard"]},
            {"id": "additional_details", "label": "Additional details or landmarks",
             "type": "text", "required": False},
        ],
    },
    {
        "id": "noise_complaint",
        "name": "Noise Complaint",
        "description": "Report persistent noise from a neighbour, business or event",
        "category": "Environmental Health",
        "priority": "medium",
        "welcome_message": (
            "I'll help you report a noise problem. I'll need to know where the "
            "noise is coming from and when it happens."
        ),
        "completion_message": (
            "Thank you. An environmental health officer will review your noise "
            "complaint and may contact you for a diary of incidents."
        ),
        "keywords": ["noise", "noisy", "loud music", "neighbour", "barking"],
        "fields": [
            {"id": "full_name", "label": "Full Name", "type": "name"},
            {"id": "noise_address", "label": "Address the noise comes from",
             "type": "address"},
            {"id": "noise_type", "label": "Type of noise", "type": "select",
             "options": ["Music or parties", "Dogs barking", "Construction",
                         "Alarms", "Commercial premises", "Other"]},
            {"id": "first_noticed", "label": "Date the problem started", "type": "date"},
            {"id": "email", "label": "Email Address", "type": "email", "required": False},
        ],
    },
    {
        "id": "street_lighting",
        "name": "Street Lighting Fault",
        "description": "Report a street light that is out, flickering or damaged",
        "category": "Highways",
        "priority": "low",
        "welcome_message": (
            "I'll help you report a street lighting fault. I'll need the location "
            "of the light and what's wrong with it."
        ),
        "completion_message": (
            "Thank you for reporting the street light. Our lighting team will "
            "inspect it within 7 working days."
        ),
        "keywords": ["street light", "streetlight", "lamp post", "street lamp"],
        "fields": [
            {"id": "location", "label": "Location of the light", "type": "address"},
            {"id": "fault_type", "label": "What is wrong with the light?", "type": "select",
             "options": ["Not working", "Flickering", "On during the day",
                         "Damaged or leaning"]},
            {"id": "column_number", "label": "Number on the lamp post, if visible",
             "type": "text", "required": False},
        ],
    },
]


def default_catalog() -> ServiceCatalog:
    """Build the catalog of built-in council services."""
    return ServiceCatalog([ServiceDefinition.model_validate(s) for s in _DEFAULT_SERVICES])


def load_catalog(path: str) -> ServiceCatalog:
    """Load service definitions from a JSON file containing a list of services."""
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, list):
        raise ValueError(f"Catalog file {path} must contain a JSON list of services")
    catalog = ServiceCatalog([ServiceDefinition.model_validate(s) for s in raw])
    logger.info("Loaded %d services from %s", len(catalog), path)
    return catalog


def build_catalog(catalog_path: Optional[str] = None) -> ServiceCatalog:
    """Load the configured catalog file, or fall back to the built-in services."""
    if catalog_path:
        return load_catalog(catalog_path)
    return default_catalog()
