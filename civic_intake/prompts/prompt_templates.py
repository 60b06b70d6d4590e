"""Caller-facing wording for every dialogue step."""

from typing import Optional

from civic_intake.config import settings
from civic_intake.tools.services import ServiceCatalog, ServiceDefinition, ServiceField

_council = settings.council


def build_greeting(catalog: ServiceCatalog) -> str:
    return (
        f"Hello! Welcome to the {_council.name} helpline. I am {_council.assistant_name}, "
        "your assistant. Please tell me what service you need help with today. "
        f"You can choose from: {catalog.menu_text()}."
    )


def build_service_menu_reprompt(catalog: ServiceCatalog) -> str:
    return (
        "I didn't quite catch which service you need. Please choose from: "
        f"{catalog.menu_text()}. You can say the service name or just the number."
    )


def build_field_question(field: ServiceField) -> str:
    question = f"What is your {field.label.lower()}?"
    if field.label.rstrip().endswith("?"):
        question = field.label
    if field.options:
        question += " The options are: " + ", ".join(field.options) + "."
    if not field.required:
        question += " You can say 'nothing' to skip this one."
    if field.help_text:
        question += f" {field.help_text}"
    return question


def build_service_selected(service: ServiceDefinition, first_field: ServiceField) -> str:
    return (
        f"Great! I'll help you with {service.name}. {service.welcome_message} "
        f"Let me start with your first detail. {build_field_question(first_field)}"
    )


def build_next_field(field: ServiceField) -> str:
    return f"Thank you. {build_field_question(field)}"


def build_field_reprompt(field: ServiceField) -> str:
    return (
        f"I didn't quite catch that. Could you please repeat your answer? "
        f"{build_field_question(field)}"
    )


def build_collaborator_failure_reprompt(field: Optional[ServiceField]) -> str:
    if field is None:
        return "Sorry, I didn't catch that. Could you say that again?"
    return (
        "Sorry, I had trouble processing that. Could you please repeat your "
        f"{field.label.lower().rstrip('?')}?"
    )


def build_confirmation_summary(service: ServiceDefinition, collected: dict[str, str]) -> str:
    """Read back everything collected, in field order, and ask for a yes or no."""
    parts = [
        f"{f.label.rstrip('?')}: {collected[f.id]}"
        for f in service.fields
        if f.id in collected
    ]
    return (
        f"Thank you! I've collected all the information: {', '.join(parts)}. "
        "Is this information correct? Please say yes to confirm or no to make changes."
    )


def build_confirmation_reprompt(service: ServiceDefinition, collected: dict[str, str]) -> str:
    return "Sorry, I didn't catch that. " + build_confirmation_summary(service, collected)


def build_decline_restart(first_field: ServiceField) -> str:
    return (
        "No problem! Let's go through the information again, and you can correct "
        f"anything that was wrong. {build_field_question(first_field)}"
    )


def build_completion(service: ServiceDefinition, reference: str) -> str:
    return (
        f"Perfect! I've submitted your {service.name} request. Your reference number is "
        f"{' '.join(reference)}. {service.completion_message} "
        f"Thank you for contacting {_council.name}. Goodbye!"
    )


def build_persistence_failure() -> str:
    return (
        "I'm very sorry, but I wasn't able to submit your request just now. "
        "Please call back shortly or contact us on "
        f"{_council.contact_line}. Goodbye."
    )


def build_escalation(originating_address: str) -> str:
    callback = f" on {originating_address}" if originating_address else ""
    return (
        "I'm sorry, I'm having trouble understanding. A member of our team will call "
        f"you back{callback} to help finish your request. Goodbye."
    )


def build_store_conflict() -> str:
    return "Sorry, I missed that. Could you please repeat what you just said?"


def build_notification(
    record_reference: str,
    salutation_name: Optional[str],
    service: ServiceDefinition,
    collected: dict[str, str],
    submitted_on: str,
) -> tuple[str, str]:
    """Subject and plain-text body of the confirmation email."""
    subject = f"{_council.name} Request Confirmation - {service.name}"
    greeting = f"Hello {salutation_name}," if salutation_name else "Hello,"
    rows = [
        f"  {f.label.rstrip('?')}: {collected[f.id]}"
        for f in service.fields
        if f.id in collected
    ]
    body = "\n".join([
        greeting,
        "",
        f"Thank you for contacting us through our assistant {_council.assistant_name}. "
        f"We have received your {service.name} request and it has been logged in our system.",
        "",
        f"Reference Number: {record_reference}",
        f"Service Type: {service.name}",
        f"Date Submitted: {submitted_on}",
        "",
        "Information Provided:",
        *rows,
        "",
        f"Our team will review your request within {_council.review_days}. "
        "You may be contacted for additional information if needed.",
        "",
        f"Need to make changes or have questions? Contact us at {_council.contact_line}.",
    ])
    return subject, body
