"""Terminal front end for talking to a single flow file."""

import uuid
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from chatflow.config.loader import ConfigLoader
from chatflow.config.models import ChatflowConfig
from chatflow.engine.replies import ButtonReply, MediaReply, ReplyPayload
from chatflow.engine.tracing import BufferedTraceSink, LoggingTraceSink, TraceSink
from chatflow.graph.loader import FlowLoader
from chatflow.graph.repository import InMemoryFlowRepository
from chatflow.runtime.service import ChatService, Failure
from chatflow.session.store import MemorySessionStore, SessionStore

BANNER = r"""
      _           _    __ _
  ___| |__   __ _| |_ / _| | _____      __
 / __| '_ \ / _` | __| |_| |/ _ \ \ /\ / /
| (__| | | | (_| | |_|  _| | (_) \ V  V /
 \___|_| |_|\__,_|\__|_| |_|\___/ \_/\_/
"""

EXIT_WORDS = frozenset({"quit", "exit", "q", "/quit", "/exit"})
RESET_WORD = "/reset"
BOT_PREFIX = "[bold blue]Bot > [/]"


@dataclass
class ChatConfig:
    flow_path: Path
    config_path: Path | None = None
    session_key: str | None = None
    trace: bool = False
    debug: bool = False


class ChatRunner:
    """REPL over one flow graph.

    Sessions live in memory, so closing the runner forgets the conversation.
    Button prompts are numbered and a bare number picks that button.
    """

    def __init__(self, config: ChatConfig):
        self.config = config
        self.console = Console()
        self.service: ChatService | None = None
        self.sessions: SessionStore | None = None
        self.trace_sink: BufferedTraceSink | None = None
        self.flow_id = ""
        self.session_key = config.session_key or f"cli_{uuid.uuid4().hex[:6]}"
        self._last: ReplyPayload | None = None

    async def setup(self) -> None:
        from dotenv import load_dotenv

        load_dotenv()
        settings = ChatflowConfig()
        if self.config.config_path:
            settings = ConfigLoader.load(self.config.config_path)

        graph = FlowLoader.load(self.config.flow_path)
        self.flow_id = graph.id

        sink: TraceSink = LoggingTraceSink()
        if self.config.trace:
            self.trace_sink = BufferedTraceSink()
            sink = self.trace_sink

        self.sessions = MemorySessionStore()
        await self.sessions.open()
        self.service = ChatService.from_config(
            settings, InMemoryFlowRepository([graph]), self.sessions, sink=sink
        )

    def render(self, payload: ReplyPayload) -> None:
        """Print a reply the way a chat widget would show it."""
        if isinstance(payload, MediaReply):
            if payload.text:
                self.console.print(BOT_PREFIX + payload.text)
            for image in payload.images:
                suffix = f" - {image.caption}" if image.caption else ""
                self.console.print(f"   [magenta]🖼  {image.url}[/]{suffix}")
        else:
            self.console.print(BOT_PREFIX + payload.text)
            if isinstance(payload, ButtonReply):
                for number, label in enumerate(payload.buttons, start=1):
                    self.console.print(f"   [cyan][{number}][/] {label}")
        self.console.print()

    def render_trace(self) -> None:
        if self.trace_sink is None or not self.trace_sink.events:
            return
        table = Table(title="Step trace")
        for heading in ("Step", "Event", "Node", "Type"):
            table.add_column(heading, justify="right" if heading == "Step" else "left")
        for event in self.trace_sink.events:
            table.add_row(
                str(event.step), event.event, event.node_id or "-", event.node_type or "-"
            )
        self.console.print(table)
        self.trace_sink.clear()

    def _expand_choice(self, user_input: str, last: ReplyPayload | None) -> str:
        """Map a button number to its label."""
        if not (isinstance(last, ButtonReply) and user_input.isdigit()):
            return user_input
        position = int(user_input)
        if 1 <= position <= len(last.buttons):
            return last.buttons[position - 1]
        return user_input

    def _is_exit_command(self, user_input: str) -> bool:
        return user_input.strip().lower() in EXIT_WORDS

    async def _turn(self, text: str) -> None:
        assert self.service is not None
        if text == RESET_WORD:
            await self.service.reset_session(self.flow_id, self.session_key)
            self._last = None
            self.console.print("[dim]Conversation reset.[/]\n")
            return

        outcome = await self.service.handle_message(
            self.flow_id, self._expand_choice(text, self._last), session_key=self.session_key
        )
        if isinstance(outcome, Failure):
            self.console.print(f"[red]{type(outcome.error).__name__}: {outcome.error}[/]\n")
            return

        self._last = outcome.payload
        self.render(outcome.payload)
        if outcome.result.truncated:
            self.console.print("[yellow]Run stopped at the step limit.[/]\n")
        self.render_trace()

    async def start(self) -> None:
        if self.service is None:
            await self.setup()

        self.console.print(BANNER, style="bold blue")
        self.console.print(f"Flow: [green]{self.flow_id}[/]  Session: [green]{self.session_key}[/]")
        self.console.print(f"'{RESET_WORD}' starts over, 'quit' leaves.\n")

        while self.service is not None:
            try:
                text = Prompt.ask("[bold green]You[/]").strip()
            except (KeyboardInterrupt, EOFError):
                break
            if self._is_exit_command(text):
                break
            try:
                await self._turn(text)
            except Exception as e:
                if not self.config.debug:
                    self.console.print(f"[red]Error: {e}[/]")
                else:
                    self.console.print_exception()
        self.console.print("\n[yellow]Bye.[/]")

    async def cleanup(self) -> None:
        if self.sessions is not None:
            await self.sessions.close()
            self.sessions = None
        self.service = None

    async def __aenter__(self) -> "ChatRunner":
        await self.setup()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.cleanup()


async def run_chat_session(config: ChatConfig) -> None:
    async with ChatRunner(config) as runner:
        await runner.start()
