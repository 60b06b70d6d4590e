"""
Deterministic collaborators that need no network access.

Used by the console demo and the test suite, and usable as a fallback
deployment when no LLM is configured. Matching is deliberately simple:
keyword and number lookup for services, type-aware patterns for fields,
and word lists for yes/no.
"""

import logging
import re
from datetime import date, datetime, timedelta
from typing import Optional

from civic_intake.nlu.base import (
    EMPTY,
    INVALID,
    ConfirmationInterpreter,
    ExtractionResult,
    FieldExtractor,
    ServiceClassifier,
)
from civic_intake.tools.services import FieldType, ServiceCatalog, ServiceField
from civic_intake.utils import normalize_phone

logger = logging.getLogger(__name__)

# Validation thresholds
MIN_NAME_LENGTH = 2
MIN_PHONE_DIGITS = 7
MAX_PHONE_DIGITS = 15
MIN_ADDRESS_LENGTH = 5

_NUMBER_WORDS = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "first": 1, "second": 2, "third": 3, "fourth": 4, "fifth": 5,
}

_EMPTY_PHRASES = {
    "nothing", "none", "no", "nope", "skip", "n/a", "na", "nothing else",
    "no thanks", "no thank you", "not applicable", "nothing to add", "no nothing",
}

_FILLER_PREFIX = re.compile(
    r"^(?:(?:my|the)\s+[\w ]+?\s+(?:is|was)|it's|it is|that's|that is|"
    r"i live at|i'm at|i am at|i'm|i am|they were|it was)\s+",
    re.IGNORECASE,
)

_EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+")

_DATE_FORMATS = (
    "%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y", "%d.%m.%Y",
    "%d %B %Y", "%d %b %Y", "%B %d %Y", "%b %d %Y",
)

_NEGATIVE_WORDS = {"no", "nope", "nah", "wrong", "incorrect", "change", "not", "mistake"}
_POSITIVE_WORDS = {
    "yes", "yeah", "yep", "yup", "correct", "right", "okay", "ok",
    "sure", "confirm", "confirmed", "perfect", "absolutely", "exactly",
}


def _words(text: str) -> list[str]:
    return re.findall(r"[a-z0-9']+", text.lower())


def _strip_filler(text: str) -> str:
    text = text.strip().rstrip(".!")
    return _FILLER_PREFIX.sub("", text, count=1).strip()


def _number_choice(text: str) -> Optional[int]:
    """Parse 'two', '2', 'number 2' or 'option two' into an int."""
    match = re.fullmatch(r"(?:number|option|service)?\s*(\w+)", text.strip().lower().rstrip("."))
    if not match:
        return None
    token = match.group(1)
    if token.isdigit():
        return int(token)
    return _NUMBER_WORDS.get(token)


class KeywordServiceClassifier(ServiceClassifier):
    """Match a request to a service by number, id, name or keyword.

    The longest matching term wins so that 'street light' beats 'light'.
    """

    def classify(self, utterance: str, catalog: ServiceCatalog) -> Optional[str]:
        services = catalog.services()
        choice = _number_choice(utterance)
        if choice is not None:
            if 1 <= choice <= len(services):
                return services[choice - 1].id
            return None

        normalized = " ".join(_words(utterance))
        best: Optional[tuple[int, str]] = None
        for svc in services:
            terms = [svc.id.replace("_", " "), svc.name.lower(), *svc.keywords]
            for term in terms:
                term = term.lower()
                if re.search(rf"\b{re.escape(term)}\b", normalized):
                    if best is None or len(term) > best[0]:
                        best = (len(term), svc.id)
        if best is None:
            logger.debug("No service matched '%s'", utterance)
            return None
        return best[1]


class RuleBasedFieldExtractor(FieldExtractor):
    """Type-aware extraction with simple normalization rules."""

    def extract(self, utterance: str, field: ServiceField) -> ExtractionResult:
        text = utterance.strip()
        if not text:
            return INVALID

        if field.type in (FieldType.SELECT, FieldType.MULTISELECT):
            result = self._extract_choice(text, field)
            if result.is_valid:
                return result

        if not field.required and " ".join(_words(text)) in _EMPTY_PHRASES:
            return EMPTY

        handler = {
            FieldType.EMAIL: self._extract_email,
            FieldType.PHONE: self._extract_phone,
            FieldType.DATE: self._extract_date,
            FieldType.ADDRESS: self._extract_address,
            FieldType.NAME: self._extract_name,
        }.get(field.type)
        if handler is not None:
            return handler(text)
        if field.type in (FieldType.SELECT, FieldType.MULTISELECT):
            return INVALID
        return self._extract_text(text, field)

    def _extract_email(self, text: str) -> ExtractionResult:
        spoken = re.sub(r"\s+at\s+", "@", text, flags=re.IGNORECASE)
        spoken = re.sub(r"\s+dot\s+", ".", spoken, flags=re.IGNORECASE)
        match = _EMAIL_RE.search(spoken)
        if not match:
            return INVALID
        return ExtractionResult.of(match.group(0).lower().rstrip("."))

    def _extract_phone(self, text: str) -> ExtractionResult:
        cleaned = normalize_phone(_strip_filler(text))
        digits = cleaned.lstrip("+")
        if not MIN_PHONE_DIGITS <= len(digits) <= MAX_PHONE_DIGITS:
            return INVALID
        return ExtractionResult.of(cleaned)

    def _extract_date(self, text: str) -> ExtractionResult:
        value = _strip_filler(text).lower()
        today = date.today()
        if value in ("today", "this morning"):
            return ExtractionResult.of(today.isoformat())
        if value == "yesterday":
            return ExtractionResult.of((today - timedelta(days=1)).isoformat())
        value = re.sub(r"(\d)(st|nd|rd|th)\b", r"\1", value)
        value = re.sub(r"\s*,\s*", " ", value).replace(" of ", " ").strip()
        for fmt in _DATE_FORMATS:
            try:
                return ExtractionResult.of(datetime.strptime(value, fmt).date().isoformat())
            except ValueError:
                continue
        return INVALID

    def _extract_address(self, text: str) -> ExtractionResult:
        value = _strip_filler(text)
        if len(value) < MIN_ADDRESS_LENGTH or len(value.split()) < 2:
            return INVALID
        return ExtractionResult.of(value)

    def _extract_name(self, text: str) -> ExtractionResult:
        value = _strip_filler(text)
        if len(value) < MIN_NAME_LENGTH or not re.fullmatch(r"[A-Za-z][A-Za-z' .-]*", value):
            return INVALID
        return ExtractionResult.of(value.title())

    def _extract_text(self, text: str, field: ServiceField) -> ExtractionResult:
        value = _strip_filler(text) or text
        if field.validation is not None and field.validation.pattern:
            compact = re.sub(r"\s+", "", value).upper()
            for candidate in (value, compact):
                if re.fullmatch(field.validation.pattern, candidate):
                    return ExtractionResult.of(candidate)
            return INVALID
        return ExtractionResult.of(value)

    def _extract_choice(self, text: str, field: ServiceField) -> ExtractionResult:
        options = list(field.options)
        choice = _number_choice(text)
        if choice is not None and 1 <= choice <= len(options):
            return ExtractionResult.of(options[choice - 1])

        lowered = text.lower()
        exact = [opt for opt in options if opt.lower() in lowered]
        if field.type == FieldType.SELECT and len(exact) == 1:
            return ExtractionResult.of(exact[0])

        # words that identify exactly one option
        said = set(_words(text))
        option_words = {opt: set(_words(opt)) for opt in options}
        distinctive = {
            opt: {
                w for w in words
                if len(w) > 2 and sum(w in other for other in option_words.values()) == 1
            }
            for opt, words in option_words.items()
        }
        matched = [opt for opt in options if opt in exact or distinctive[opt] & said]
        if field.type == FieldType.MULTISELECT and matched:
            return ExtractionResult.of("; ".join(matched))
        if len(matched) == 1:
            return ExtractionResult.of(matched[0])
        return INVALID


class KeywordConfirmationInterpreter(ConfirmationInterpreter):
    """Yes/no word lists. Any negative word wins over a positive one."""

    def interpret(self, utterance: str) -> bool:
        words = set(_words(utterance.replace("n't", " not")))
        if words & _NEGATIVE_WORDS:
            return False
        if words & _POSITIVE_WORDS:
            return True
        return "that's it" in utterance.lower()
