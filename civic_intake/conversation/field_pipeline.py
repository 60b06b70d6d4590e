"""
Field extraction pipeline: one utterance, one field, one result.

The pipeline asks the extractor for a normalized value of the field the
cursor points at. Format constraints declared on the field travel to the
extractor as context; they are not re-checked here. The pipeline never
touches the session, so a failed extraction cannot move the cursor or
alter collected data.

Usage:
    pipeline = FieldExtractionPipeline(RuleBasedFieldExtractor())
    result = pipeline.extract("jane at example dot com", email_field)
    if result.is_valid:
        session.collected_data[email_field.id] = result.value
"""

import logging
from typing import Any

from civic_intake.nlu.base import INVALID, ExtractionResult, FieldExtractor
from civic_intake.tools.services import ServiceDefinition, ServiceField

logger = logging.getLogger(__name__)


class FieldExtractionPipeline:
    """Thin policy layer over a FieldExtractor."""

    def __init__(self, extractor: FieldExtractor) -> None:
        self._extractor = extractor

    def extract(self, utterance: str, field: ServiceField) -> ExtractionResult:
        """
        Extract a value for ``field`` from ``utterance``.

        Returns:
            A VALUE result with a trimmed value, EMPTY for an optional
            field the caller declined, or the INVALID sentinel.

        Raises:
            CollaboratorError: If the extractor failed or timed out.
        """
        result = self._extractor.extract(utterance, field)

        if result.is_valid:
            value = (result.value or "").strip()
            if not value:
                result = INVALID
            else:
                result = ExtractionResult.of(value)

        if result.is_empty and field.required:
            logger.debug("Empty answer for required field '%s'", field.id)
            return INVALID

        logger.debug("Field '%s' extraction: %s", field.id, result.status.value)
        return result


def missing_fields(service: ServiceDefinition, collected: dict[str, str]) -> list[ServiceField]:
    """Required fields with no collected value."""
    return [f for f in service.fields if f.required and f.id not in collected]


def fill_stats(service: ServiceDefinition, collected: dict[str, str]) -> dict[str, Any]:
    """Field collection statistics for logging and audit views."""
    required = sum(1 for f in service.fields if f.required)
    filled = required - len(missing_fields(service, collected))
    return {
        "fields_total": service.field_count,
        "fields_collected": sum(1 for f in service.fields if f.id in collected),
        "required_filled": filled,
        "required_total": required,
        "fill_rate": filled / required if required else 1.0,
    }
