"""
Offline console demo: runs a full intake conversation without any API keys.

Drives the real turn service, orchestrator, state machine and completion
handoff with the keyword collaborators, an in-memory session store and
record sink, and a notifier that keeps messages in memory. No LLM, no
database, no network calls.

Usage:
    python console_demo.py
    python console_demo.py --scenario blue_badge
    python console_demo.py --scenario decline
"""

import argparse
import uuid
from typing import Optional

from civic_intake.config import settings
from civic_intake.conversation.completion import CompletionHandoff
from civic_intake.conversation.orchestrator import DialogueOrchestrator
from civic_intake.nlu.keyword import (
    KeywordConfirmationInterpreter,
    KeywordServiceClassifier,
    RuleBasedFieldExtractor,
)
from civic_intake.schemas.session_schema import ContinuationSignal
from civic_intake.service import IntakeTurnService, TurnResult
from civic_intake.storage.session_store import InMemorySessionStore
from civic_intake.tools.notifications import RecordingNotifier
from civic_intake.tools.records import InMemoryRecordSink
from civic_intake.tools.services import build_catalog

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"


class ConsoleSession:
    """One simulated caller talking to the intake line in the terminal."""

    # Pre-scripted scenarios for --scenario flag
    SCENARIOS: dict[str, list[str]] = {
        "blue_badge": [
            "I need help with a blue badge",
            "My name is Jane Doe",
            "15 March 1980",
            "12 High Street, Leeds",
            "jane at example dot com",
            "mobility",
            "yes I have it ready",
            "none",
            "yes that's right",
        ],
        "pothole": [
            "there's a pothole on my road",
            "outside 4 Mill Lane, York",
            "severe",
            "2",
            "serious",
            "skip",
            "yes",
        ],
        "decline": [
            "street light",
            "Church Road near the school",
            "flickering",
            "no",
            "no, that's wrong",
            "Church Road by the park",
            "not working",
            "no",
            "correct",
        ],
        "escalation": [
            "I want a parking permit for my car",
            "Sam",
            "banana",
            "banana",
            "banana",
        ],
    }

    MAX_INPUT_LENGTH = 500

    def __init__(self, caller_address: str = "+441234567890") -> None:
        self.store = InMemorySessionStore()
        self.sink = InMemoryRecordSink()
        self.notifier = RecordingNotifier()
        self.catalog = build_catalog(settings.storage.catalog_path)
        orchestrator = DialogueOrchestrator(
            catalog=self.catalog,
            classifier=KeywordServiceClassifier(),
            extractor=RuleBasedFieldExtractor(),
            interpreter=KeywordConfirmationInterpreter(),
            handoff=CompletionHandoff(self.sink, self.notifier),
        )
        self.service = IntakeTurnService(self.store, orchestrator)
        self.session_id = f"console-{uuid.uuid4().hex[:8]}"
        self.caller_address = caller_address

    def agent_say(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[{settings.council.assistant_name}]{RESET} {GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def turn(self, utterance: Optional[str]) -> TurnResult:
        result = self.service.process_turn(self.session_id, self.caller_address, utterance)
        self.agent_say(result.prompt)
        session = self.store.get(self.session_id)
        if session is not None:
            self.system_log(
                f"Stage: {session.stage.value} | service: {session.service_id or '-'} "
                f"| cursor: {session.cursor} | version: {session.version}"
            )
        if result.record_reference:
            self.system_log(f"Request stored: {result.record_reference}")
        return result

    def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario for demo purposes."""
        steps = self.SCENARIOS.get(scenario)
        if not steps:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        self._banner(f"Scenario: {scenario}")
        result = self.turn(None)
        for step in steps:
            if result.action == ContinuationSignal.END:
                break
            print(f"\n{BLUE}[Caller] {RESET}{step}")
            result = self.turn(step)
        self._summary()

    def run(self) -> None:
        self._banner("Console Demo", "Type 'quit' to exit")
        result = self.turn(None)

        while result.action != ContinuationSignal.END:
            user_input = input(f"\n{BLUE}[Caller] {RESET}").strip()
            if user_input.lower() in ("quit", "exit", "q"):
                print(f"\n{DIM}Session ended.{RESET}")
                return
            if len(user_input) > self.MAX_INPUT_LENGTH:
                self.agent_say("That was quite long. Could you keep it brief for me?")
                continue
            result = self.turn(user_input)

        self._summary()

    def _banner(self, title: str, hint: Optional[str] = None) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  CIVIC INTAKE LINE - {title}{RESET}")
        print(f"{BOLD}  Council: {settings.council.name}{RESET}")
        if hint:
            print(f"{BOLD}  {hint}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()

    def _summary(self) -> None:
        session = self.store.get(self.session_id)
        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  Conversation complete.{RESET}")
        if session is not None:
            print(f"{DIM}  Final stage: {session.stage.value}"
                  f"{' (escalated)' if session.escalated else ''}{RESET}")
            print(f"{DIM}  Collected: {session.collected_data}{RESET}")
        for record in self.sink.list_records():
            print(f"{YELLOW}  Record {record.reference}: {record.service_name}{RESET}")
        for message in self.notifier.sent:
            print(f"{YELLOW}  Mail to {message.address}: {message.subject}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Offline console demo")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleSession.SCENARIOS),
        default=None,
        help="Auto-play a pre-scripted scenario instead of interactive mode",
    )
    args = parser.parse_args(argv)

    session = ConsoleSession()
    if args.scenario:
        session.run_scenario(args.scenario)
    else:
        session.run()


if __name__ == "__main__":
    main()
