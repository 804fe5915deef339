"""
Interactive console for the RAG chatbot.

Commands:
    /exit or /quit      leave
    /lang [language]    show or switch the response language
    /new                start a new session
    /info               show passages retrieved for the last message
    /help               show this help
"""
import argparse
import logging
import sys
from typing import Optional

from config import DEFAULT_LANGUAGE, LOG_FORMAT
from logger import setup_logging
from services.errors import TurnFailedError
from services.session_orchestrator import SessionOrchestrator
from bootstrap import build_orchestrator

logger = logging.getLogger(__name__)

HELP_TEXT = """Commands:
 - /exit or /quit: leave the program
 - /lang [language]: switch language (e.g. /lang English)
 - /new: start a new session
 - /info: show passages retrieved for the last message
 - /help: show this help"""

DEMO_TURNS = [
    ("Hello! Please introduce yourself.", DEFAULT_LANGUAGE),
    ("What is LangChain?", None),
    ("What is retrieval-augmented generation?", None),
    ("Thanks for the explanation, I understand now!", None),
]


class ChatSession:
    """State of the console: current session id and language."""

    def __init__(self, orchestrator: SessionOrchestrator, session_id: Optional[str] = None,
                 language: str = DEFAULT_LANGUAGE, out=None):
        self.orchestrator = orchestrator
        self.language = language
        self.out = out or sys.stdout
        self.session_id = session_id or orchestrator.start_new_session(language)
        self.running = True

    def say(self, text: str) -> None:
        print(text, file=self.out)

    def handle(self, line: str) -> None:
        """Process one input line: a command or a message."""
        line = line.strip()
        if not line:
            return
        if line.startswith("/"):
            self._command(line)
        else:
            self._message(line)

    def _command(self, line: str) -> None:
        command, _, argument = line.partition(" ")
        command = command.lower()
        argument = argument.strip()

        if command in ("/exit", "/quit"):
            self.say("Goodbye!")
            self.running = False
        elif command == "/lang":
            if argument:
                self.language = argument
                self.say(f"Language switched to: {self.language}")
            else:
                self.say(f"Current language: {self.language}")
        elif command == "/new":
            try:
                self.session_id = self.orchestrator.start_new_session(self.language)
            except TurnFailedError as e:
                self.say(f"Error: {e.message}")
                return
            self.say(f"Started a new session, session id: {self.session_id}")
        elif command == "/info":
            try:
                passages = self.orchestrator.last_retrieval(self.session_id)
            except TurnFailedError as e:
                self.say(f"Error: {e.message}")
                return
            if passages:
                self.say("\nPassages retrieved for the last message:")
                for index, passage in enumerate(passages, start=1):
                    self.say(f"[{index}] {passage[:150]}...")
            else:
                self.say("No retrieved passages.")
        elif command == "/help":
            self.say(HELP_TEXT)
        else:
            self.say(f"Unknown command: {command}")

    def _message(self, text: str) -> None:
        try:
            result = self.orchestrator.run_turn(self.session_id, text, self.language)
        except TurnFailedError as e:
            self.say(f"Error: {e.message}")
            return

        if result.passages:
            self.say(f"\n[system] Retrieved {len(result.passages)} relevant passages")
        self.say(f"\nBot: {result.reply}\n")


def run_demo(orchestrator: SessionOrchestrator) -> None:
    """Scripted four-turn conversation."""
    session_id = orchestrator.start_new_session()
    print("===== RAG chatbot demo =====")
    print(f"Session id: {session_id}")

    for message, language in DEMO_TURNS:
        print(f"\nUser: {message}")
        try:
            reply = orchestrator.submit_turn(session_id, message, language)
        except TurnFailedError as e:
            print(f"Error: {e.message}")
            continue
        print(f"Bot: {reply}")


def run_console(orchestrator: SessionOrchestrator, session_id: Optional[str], language: str) -> None:
    """Read lines from stdin until /exit or end of input."""
    chat = ChatSession(orchestrator, session_id=session_id, language=language)
    print("\n=== RAG chatbot ===")
    print(f"Session id: {chat.session_id}")
    print(HELP_TEXT)
    print("=" * 19)

    while chat.running:
        try:
            line = input("User: ")
        except (EOFError, KeyboardInterrupt):
            print("\nGoodbye!")
            break
        chat.handle(line)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Chat with the retrieval-augmented assistant")
    parser.add_argument("--session", help="Resume an existing session id")
    parser.add_argument("--language", default=DEFAULT_LANGUAGE,
                        help=f"Response language (default: {DEFAULT_LANGUAGE})")
    parser.add_argument("--demo", action="store_true", help="Run the scripted demo conversation and exit")
    parser.add_argument("--log-level", default="WARNING", help="Log level (default: WARNING)")
    args = parser.parse_args(argv)

    setup_logging(args.log_level, LOG_FORMAT)

    try:
        orchestrator = build_orchestrator()
    except ValueError as e:
        print(f"Initialization failed: {e}", file=sys.stderr)
        return 1

    try:
        if args.demo:
            run_demo(orchestrator)
        else:
            run_console(orchestrator, args.session, args.language)
    except TurnFailedError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    finally:
        orchestrator.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
