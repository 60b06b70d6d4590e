"""
System prompts for the LLM-backed collaborators.

Each collaborator gets a narrowly scoped instruction: one classification,
one field, or one yes/no decision per call. Council wording is injected
from configuration, and the service list is built from the catalog the
classifier was handed, never hardcoded.
"""

from civic_intake.config import settings
from civic_intake.tools.services import FieldType, ServiceCatalog, ServiceField

_council = settings.council

INVALID_REPLY = "INVALID"
EMPTY_REPLY = "NONE"
UNRECOGNIZED_REPLY = "null"

CLASSIFIER_SYSTEM_PROMPT = """You are helping identify which {council} service a caller needs.
Based on their speech, return ONLY the service ID from these options:
{options}

The caller may also say the number of a service from this list.
Return only the service ID, nothing else. If unclear, return {unrecognized}."""

_TYPE_RULES: dict[FieldType, str] = {
    FieldType.EMAIL: "Return a single well-formed email address in lower case.",
    FieldType.PHONE: "Return the phone number as digits, keeping a leading + if given.",
    FieldType.DATE: "Return the date in YYYY-MM-DD format.",
    FieldType.ADDRESS: "Return the address on one line, formatted clearly.",
    FieldType.NAME: "Return the person's full name with each part capitalised.",
    FieldType.SELECT: "Return exactly one of the allowed options, copied verbatim.",
    FieldType.MULTISELECT: (
        "Return every allowed option the caller mentioned, copied verbatim "
        "and separated by '; '."
    ),
    FieldType.FILE: "Return a short description of the document the caller refers to.",
    FieldType.TEXT: "Return the relevant information as a short clean phrase.",
}

EXTRACTOR_SYSTEM_PROMPT = """You are processing a {field_type} field called "{label}".
Extract the relevant information from the caller's speech and return it in a clean format.
{type_rule}
{constraints}If the information seems invalid or incomplete, return "{invalid}".
{empty_rule}Return only the value, nothing else."""

CONFIRMATION_SYSTEM_PROMPT = (
    "The caller is confirming information that was read back to them. "
    "Return 'yes' if they're confirming or agreeing, 'no' if they want to make changes. "
    "Look for words like yes, correct, right, okay, sure versus no, wrong, change, incorrect. "
    "Return only 'yes' or 'no'."
)


def build_classifier_prompt(catalog: ServiceCatalog) -> str:
    options = "\n".join(
        f"- {svc.id}: {i}. {svc.name} ({svc.description})"
        for i, svc in enumerate(catalog, start=1)
    )
    return CLASSIFIER_SYSTEM_PROMPT.format(
        council=_council.name, options=options, unrecognized=UNRECOGNIZED_REPLY
    )


def build_extractor_prompt(field: ServiceField) -> str:
    constraints: list[str] = []
    if field.options:
        constraints.append("Allowed options: " + " | ".join(field.options) + ".")
    if field.validation is not None:
        v = field.validation
        if v.pattern:
            constraints.append(f"The value must match the pattern {v.pattern}.")
        if v.min_length:
            constraints.append(f"It must be at least {v.min_length} characters.")
        if v.max_length:
            constraints.append(f"It must be at most {v.max_length} characters.")
        if v.message:
            constraints.append(f"Format hint: {v.message}.")
    if field.help_text:
        constraints.append(f"Context: {field.help_text}")

    empty_rule = ""
    if not field.required:
        empty_rule = (
            f'This field is optional. If the caller says they have nothing to add, '
            f'return "{EMPTY_REPLY}".\n'
        )

    return EXTRACTOR_SYSTEM_PROMPT.format(
        field_type=field.type.value,
        label=field.label,
        type_rule=_TYPE_RULES[field.type],
        constraints="".join(c + "\n" for c in constraints),
        invalid=INVALID_REPLY,
        empty_rule=empty_rule,
    )
