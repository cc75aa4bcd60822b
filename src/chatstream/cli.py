"""Shell Chat - terminal client with live rendering and narration.

Replies stream into a rich Live view while finished sentences are narrated
through the speech queue. Ctrl+C stops the reply that is streaming.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
from typing import Optional

from dotenv import load_dotenv
from rich.console import Console
from rich.live import Live
from rich.markdown import Markdown
from rich.prompt import Prompt
from rich.style import Style
from rich.text import Text

from .chat import ChatOrchestrator, ConversationHistory
from .chat.streaming.types import FinalState, NarrationSettings, RenderSnapshot
from .config import Settings, get_settings
from .logging_handlers import DateStampedFileHandler, cleanup_old_logs
from .logging_settings import parse_logging_settings
from .openrouter import OpenRouterClient
from .services.tts import SpeechQueue, SpeechSegmenter

logger = logging.getLogger(__name__)

# Styles
ASSISTANT_STYLE = Style(color="bright_green")
SPEECH_STYLE = Style(color="magenta", italic=True)
ERROR_STYLE = Style(color="red", bold=True)
INFO_STYLE = Style(color="cyan")

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _configure_logging(settings: Settings) -> None:
    """Configure console and session-file logging from the settings file."""
    load_dotenv()

    logging_settings = parse_logging_settings(settings.logging_settings_path)
    env_level = os.getenv("LOG_LEVEL")
    terminal_level = logging_settings.terminal_level
    if env_level:
        terminal_level = getattr(logging, env_level.upper(), terminal_level)

    formatter = logging.Formatter(_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    handlers: list[logging.Handler] = []

    if terminal_level is not None:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(terminal_level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    if logging_settings.sessions_level is not None:
        file_handler = DateStampedFileHandler(settings.log_dir, prefix="chat")
        file_handler.setLevel(logging_settings.sessions_level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    levels = [
        level
        for level in (terminal_level, logging_settings.sessions_level)
        if level is not None
    ]
    logging.basicConfig(
        level=min(levels) if levels else logging.CRITICAL,
        handlers=handlers or [logging.NullHandler()],
        force=True,
    )

    # Quiet down noisy third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    cleanup_old_logs(
        settings.log_dir,
        logging_settings.retention_hours,
        logger=logging.getLogger(__name__),
    )


class LiveRenderSink:
    """Render sink that mirrors the conversation history into a rich Live view."""

    def __init__(self, console: Console, history: ConversationHistory):
        self.console = console
        self.history = history
        self._live: Optional[Live] = None

    def update(self, snapshot: RenderSnapshot) -> None:
        self.history.update(snapshot)
        if self._live is None:
            self._live = Live(console=self.console, refresh_per_second=10)
            self._live.start()
        self._live.update(Markdown(snapshot.text, style=ASSISTANT_STYLE))

    def finalize(self, state: FinalState) -> None:
        self.history.finalize(state)
        if self._live is not None:
            self._live.update(Markdown(state.text, style=ASSISTANT_STYLE))
            self._live.stop()
            self._live = None

        if state.outcome == "error":
            self.console.print(f"Request failed: {state.error}", style=ERROR_STYLE)
        elif state.outcome == "cancelled":
            self.console.print("[dim]Generation stopped[/dim]")

        if state.metadata is not None:
            for index, source in enumerate(state.metadata.sources(), start=1):
                title = source.title or source.uri
                self.console.print(f"[dim]\\[{index}] {title} - {source.uri}[/dim]")


class ShellChat:
    """Terminal chat client driving a ChatOrchestrator."""

    def __init__(self, settings: Settings, *, narrate: Optional[bool] = None):
        self.settings = settings
        self.console = Console()
        self.history = ConversationHistory()
        self.running = True
        self.client = OpenRouterClient(settings)
        self.speech = SpeechQueue(self._speak_to_console)
        enabled = settings.narration_enabled if narrate is None else narrate
        self.orchestrator = ChatOrchestrator(
            self.client,
            LiveRenderSink(self.console, self.history),
            self.speech,
            narration=NarrationSettings(narration_enabled=enabled),
            segmenter=SpeechSegmenter(settings.speech_delimiters),
        )

    async def _speak_to_console(self, text: str) -> None:
        """Stand-in synthesizer: print the segment and pace it like speech."""
        self.console.print(Text(f"🔊 {text}", style=SPEECH_STYLE))
        # Roughly 15 characters per second at rate 1.0
        await asyncio.sleep(len(text) / (15.0 * self.settings.speech_rate))

    def _on_interrupt(self) -> None:
        if self.orchestrator.cancel():
            return
        self.speech.interrupt()
        self.console.print("\n[dim]Nothing to stop. Type /quit or Ctrl+D to exit.[/dim]")

    def _show_help(self) -> None:
        self.console.print(
            "\n[bold]Commands:[/bold]\n"
            "  /narrate [on|off]  Toggle or set narration\n"
            "  /clear             Clear the conversation\n"
            "  /quit              Exit\n"
            "  Ctrl+C             Stop the current reply\n"
        )

    def _handle_command(self, user_input: str) -> bool:
        """Handle slash commands. Returns True if handled."""
        parts = user_input.strip().split()
        command = parts[0].lower()

        if command == "/help":
            self._show_help()
            return True
        elif command == "/clear":
            self.history.clear()
            self.console.print("Conversation cleared.", style=INFO_STYLE)
            return True
        elif command == "/quit":
            self.running = False
            return True
        elif command == "/narrate":
            if len(parts) > 1:
                enabled = parts[1].lower() in ("on", "true", "1", "yes")
            else:
                enabled = not self.orchestrator.narration_enabled
            self.orchestrator.set_narration_enabled(enabled)
            state = "on" if enabled else "off"
            self.console.print(f"Narration {state}", style=INFO_STYLE)
            return True

        return False

    async def run(self) -> None:
        """Main chat loop."""
        loop = asyncio.get_running_loop()
        loop.add_signal_handler(signal.SIGINT, self._on_interrupt)
        speech_task = asyncio.create_task(self.speech.process())

        self.console.print(
            f"[bold]Shell Chat[/bold] - model {self.settings.default_model}. "
            "Type /help for commands, Ctrl+D to exit\n",
            style=INFO_STYLE,
        )

        try:
            while self.running:
                try:
                    user_input = await asyncio.to_thread(
                        Prompt.ask, "[bold blue]You[/bold blue]", console=self.console
                    )
                except EOFError:
                    self.console.print("\n[dim]Goodbye![/dim]")
                    break

                if not user_input.strip():
                    continue
                if user_input.startswith("/") and self._handle_command(user_input):
                    continue

                context = self.history.context()
                self.history.add_user_message(user_input)
                self.console.print()
                await self.orchestrator.send(user_input, context)
                self.console.print()
        finally:
            loop.remove_signal_handler(signal.SIGINT)
            self.orchestrator.cancel()
            self.speech.interrupt()
            self.speech.close()
            await speech_task
            await self.client.aclose()


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Shell Chat - streaming chat with live narration",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables:
  OPENROUTER_API_KEY        API key (required)
  OPENROUTER_DEFAULT_MODEL  Model to chat with
  NARRATION_ENABLED         Start with narration on
  LOG_LEVEL                 Override the terminal log level
""",
    )
    parser.add_argument("--model", "-m", default=None, help="Model override")
    narration = parser.add_mutually_exclusive_group()
    narration.add_argument(
        "--narrate", dest="narrate", action="store_true", default=None,
        help="Start with narration enabled",
    )
    narration.add_argument(
        "--no-narrate", dest="narrate", action="store_false",
        help="Start with narration disabled",
    )

    args = parser.parse_args()

    settings = get_settings()
    if args.model:
        settings = settings.model_copy(update={"default_model": args.model})
    _configure_logging(settings)

    chat = ShellChat(settings, narrate=args.narrate)
    asyncio.run(chat.run())


if __name__ == "__main__":
    main()
