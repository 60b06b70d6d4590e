"""Tests for the field extraction pipeline and collection statistics."""

import pytest

from civic_intake.conversation.field_pipeline import (
    FieldExtractionPipeline,
    fill_stats,
    missing_fields,
)
from civic_intake.errors import CollaboratorError
from civic_intake.nlu.base import EMPTY, INVALID, ExtractionResult
from civic_intake.tools.services import FieldType, ServiceField
from tests.conftest import ScriptedExtractor, blue_badge_collected

REQUIRED = ServiceField(id="full_name", label="Full Name", type=FieldType.NAME)
OPTIONAL = ServiceField(id="notes", label="Notes", type=FieldType.TEXT, required=False)


class TestPipeline:
    def test_value_is_trimmed(self):
        pipeline = FieldExtractionPipeline(ScriptedExtractor(ExtractionResult.of("  Jane  ")))
        assert pipeline.extract("Jane", REQUIRED).value == "Jane"

    def test_blank_value_is_invalid(self):
        pipeline = FieldExtractionPipeline(ScriptedExtractor(ExtractionResult.of(" ")))
        assert pipeline.extract("...", REQUIRED) == INVALID

    def test_empty_on_required_is_invalid(self):
        pipeline = FieldExtractionPipeline(ScriptedExtractor(EMPTY))
        assert pipeline.extract("nothing", REQUIRED) == INVALID

    def test_empty_on_optional_passes_through(self):
        pipeline = FieldExtractionPipeline(ScriptedExtractor(EMPTY))
        assert pipeline.extract("nothing", OPTIONAL).is_empty

    def test_invalid_passes_through(self):
        pipeline = FieldExtractionPipeline(ScriptedExtractor(INVALID))
        assert pipeline.extract("banana", REQUIRED) == INVALID

    def test_collaborator_error_propagates(self):
        pipeline = FieldExtractionPipeline(ScriptedExtractor(CollaboratorError("boom")))
        with pytest.raises(CollaboratorError):
            pipeline.extract("Jane", REQUIRED)

    def test_extractor_sees_field(self):
        extractor = ScriptedExtractor(ExtractionResult.of("x"))
        FieldExtractionPipeline(extractor).extract("hello", OPTIONAL)
        assert extractor.calls == [("hello", "notes")]


class TestStats:
    def test_missing_fields_lists_required_only(self, catalog):
        service = catalog.require("blue_badge")
        missing = missing_fields(service, {"full_name": "Jane Doe"})
        ids = [f.id for f in missing]
        assert "date_of_birth" in ids
        assert "full_name" not in ids
        assert "current_medication" not in ids

    def test_fill_stats_complete(self, catalog):
        stats = fill_stats(catalog.require("blue_badge"), blue_badge_collected())
        assert stats["required_filled"] == stats["required_total"] == 6
        assert stats["fields_total"] == 7
        assert stats["fill_rate"] == 1.0

    def test_fill_stats_partial(self, catalog):
        stats = fill_stats(catalog.require("blue_badge"), {"full_name": "Jane Doe"})
        assert stats["required_filled"] == 1
        assert stats["fields_collected"] == 1
        assert stats["fill_rate"] == pytest.approx(1 / 6)
