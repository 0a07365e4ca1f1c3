from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from .config import LANGUAGES
from .dispatcher import PlanDispatcher
from .logger import get_log_history, set_log_level

logger = logging.getLogger(__name__)

BANNER = "SUPER AI AGENT"

INTRO = """AI Agent initialized successfully! This agent can:
- Create complex projects (Node.js, Python, React, Full-stack apps)
- Manage running processes and servers
- Perform advanced file operations
- Handle package management (npm, pip)
- Execute database operations (MongoDB)
- Manage git repositories
- Deploy applications to various platforms

Type [yellow]help[/yellow] for examples, [yellow]info[/yellow] for status, \
[yellow]settings[/yellow] to configure, [yellow]logs[/yellow] for recent log lines \
or [yellow]exit[/yellow] to quit."""

HELP_TEXT = """Examples of what you can do:

Project Creation:
- ek full stack MERN project banao authentication ke sath
- Python Flask ka API banao MongoDB connection ke sath
- ek responsive website banao Bootstrap se

Database Operations:
- mongodb setup karo aur users collection banao
- users collection me do sample users insert karo

Deployment:
- production build banao aur firebase pe deploy karo

Development Tasks:
- git repository initialize karo aur github pe push karo
- tests cases run karo aur code coverage report banao

System Operations:
- background me server chalao aur logs save karo
- src folder ko watch karo

Type [yellow]info[/yellow] to see current status and [yellow]settings[/yellow] to configure the agent."""

SETTINGS_MENU = (
    "Change API key",
    "Change default project directory",
    "Change language (Hindi/English)",
    "Change log level",
    "Toggle auto-save",
    "Back to main menu",
)


class InteractiveShell:
    """Read-eval loop: built-in commands, everything else goes to the dispatcher."""

    def __init__(
        self,
        dispatcher: PlanDispatcher,
        *,
        console: Optional[Console] = None,
        prompt: Callable[..., Any] = click.prompt,
    ):
        self.dispatcher = dispatcher
        self.session = dispatcher.session
        self.console = console or dispatcher.console
        self.prompt = prompt
        self.builtins: Dict[str, Callable[[], None]] = {
            "help": self.show_help,
            "info": self.show_info,
            "settings": self.settings,
            "logs": self.show_logs,
        }

    def read_line(self) -> str:
        return str(self.prompt("\n>>", prompt_suffix=" ", default="", show_default=False))

    def run(self) -> int:
        self.console.print(Panel.fit(BANNER, style="cyan"))
        self.console.print(INTRO)
        while True:
            try:
                line = self.read_line()
            except (EOFError, click.Abort):
                line = "exit"
            command = line.strip()
            if not command:
                continue
            if command.lower() == "exit":
                self.shutdown()
                self.console.print("[green]Thank you for using Super AI Agent! Goodbye.[/green]")
                return 0
            builtin = self.builtins.get(command.lower())
            if builtin is not None:
                self.run_builtin(command.lower(), builtin)
                continue
            self.execute(command)

    def run_builtin(self, name: str, builtin: Callable[[], None]) -> None:
        try:
            builtin()
        except Exception as exc:
            logger.error("%s failed: %s", name, exc)
            self.console.print(f"[red]❌ Error: {escape(str(exc))}[/red]")

    def execute(self, command: str) -> None:
        try:
            report = self.dispatcher.handle(command)
        except Exception as exc:
            logger.error("Command failed: %s", exc)
            return
        if report.error:
            self.console.print(f"[red]❌ Error: {escape(report.error)}[/red]")

    def shutdown(self) -> None:
        self.console.print("[cyan]Cleaning up before exit...[/cyan]")
        self.session.registry.shutdown()

    def show_help(self) -> None:
        self.console.print(HELP_TEXT)

    def show_info(self) -> None:
        registry = self.session.registry
        registry.drain_events()
        self.console.print(
            "\n".join(
                [
                    "[cyan]Current Status:[/cyan]",
                    f"Current directory: {escape(self.session.cwd)}",
                    f"Running processes: {len(registry.processes)}",
                    f"File watchers: {len(registry.watchers)}",
                    f"Database connections: {len(registry.databases)}",
                    f"Commands history: {len(self.session.history)}",
                    "",
                    "Most recent commands:",
                ]
            )
        )
        now = datetime.now(timezone.utc)
        for entry in self.session.history.recent(5):
            ago = int((now - entry.timestamp).total_seconds())
            self.console.print(f"[bright_black]{ago}s ago: {escape(entry.command)}[/bright_black]")

    def show_logs(self) -> None:
        lines = get_log_history(self.session.config.log_file, 10)
        if not lines:
            self.console.print("No log entries yet.")
            return
        for line in lines:
            self.console.print(escape(line))

    def settings(self) -> None:
        for idx, label in enumerate(SETTINGS_MENU, start=1):
            self.console.print(f"  {idx}. {label}")
        choice = self.prompt("Select configuration option", type=click.IntRange(1, len(SETTINGS_MENU)))
        label = SETTINGS_MENU[choice - 1]
        if label == "Back to main menu":
            return

        config = self.session.config
        if label == "Change API key":
            api_key = ""
            while not api_key:
                api_key = str(self.prompt("Enter new API key", hide_input=True)).strip()
            config.api_key = api_key
            if hasattr(self.dispatcher.llm, "api_key"):
                self.dispatcher.llm.api_key = api_key
        elif label == "Change default project directory":
            config.default_projects_dir = str(
                self.prompt("Enter default projects directory", default=config.default_projects_dir)
            )
        elif label == "Change language (Hindi/English)":
            config.language = self.prompt("Select language", type=click.Choice(LANGUAGES), default=config.language)
        elif label == "Change log level":
            level = self.prompt(
                "Select log level",
                type=click.Choice(("debug", "info", "warn", "error")),
                default=config.log_level,
            )
            config.log_level = level
            set_log_level(level)
        elif label == "Toggle auto-save":
            config.auto_save = not config.auto_save
            history = self.session.history
            history.path = Path(config.history_file).expanduser() if config.auto_save else None
            if config.auto_save:
                history.save()
            self.console.print(f"[green]Auto-save: {'ON' if config.auto_save else 'OFF'}[/green]")
        config.save()
