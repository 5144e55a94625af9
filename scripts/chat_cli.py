#!/usr/bin/env python3
"""Interactive chat CLI for the todo assistant service."""

import sys

import httpx
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table


class ChatCLI:
    """Interactive chat interface for the todo assistant service.

    The server keeps no conversation state, so the running history lives here
    and is posted in full on every turn.
    """

    def __init__(self, base_url: str = "http://localhost:3001"):
        """Initialize chat CLI."""
        self.base_url = base_url
        self.history: list[dict[str, str | None]] = []
        self.console = Console()
        self.client = httpx.Client(timeout=120.0)

    def start(self) -> None:
        """Start the interactive chat session."""
        self.console.print(
            Panel.fit(
                "[bold blue]TodoMate - Interactive Chat[/bold blue]\n"
                "Type your messages to manage your todos.\n"
                "Commands: /help, /todos, /reset, /quit",
                border_style="blue",
            )
        )

        if not self._test_connection():
            self.console.print(f"[red]Cannot connect to the service at {self.base_url}. Is it running?[/red]")
            return

        self.console.print("[green]Connected to todo assistant[/green]\n")

        try:
            while True:
                user_input = Prompt.ask("\n[bold cyan]You[/bold cyan]")
                command = user_input.strip().lower()

                if command in ["/quit", "/exit", "quit", "exit"]:
                    break
                elif command == "/help":
                    self._show_help()
                    continue
                elif command == "/reset":
                    self.history = []
                    self.console.print("[yellow]Conversation reset[/yellow]")
                    continue
                elif command == "/todos":
                    self._show_todos(self._fetch_todos())
                    continue
                elif command == "":
                    continue

                response = self._send_message(user_input)
                if response:
                    self._display_response(response)

        except KeyboardInterrupt:
            pass
        finally:
            self.console.print("\n[yellow]Goodbye![/yellow]")
            self.client.close()

    def _test_connection(self) -> bool:
        """Test connection to the service."""
        try:
            response = self.client.get(f"{self.base_url}/health")
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    def _send_message(self, message: str) -> dict | None:
        """Post the history plus the new message; keep both turns on success."""
        pending = [*self.history, {"role": "user", "content": message}]
        try:
            with self.console.status("[dim]Thinking...[/dim]"):
                response = self.client.post(f"{self.base_url}/api/chat", json={"messages": pending})
        except httpx.HTTPError as e:
            self.console.print(f"[red]Connection error: {e}[/red]")
            return None

        if response.status_code != 200:
            self.console.print(f"[red]API Error: {response.status_code} - {response.text}[/red]")
            return None

        data = response.json()
        self.history = [*pending, {"role": "assistant", "content": data.get("assistant", "")}]
        return data

    def _fetch_todos(self) -> list[dict]:
        try:
            response = self.client.get(f"{self.base_url}/api/todos")
            response.raise_for_status()
        except httpx.HTTPError as e:
            self.console.print(f"[red]Could not load todos: {e}[/red]")
            return []
        return response.json().get("todos", [])

    def _display_response(self, response: dict) -> None:
        """Display the assistant reply and the refreshed list."""
        self.console.print(
            Panel(
                Markdown(response.get("assistant") or "_(no reply)_"),
                title="[bold green]TodoMate[/bold green]",
                border_style="green",
                padding=(1, 2),
            )
        )
        self._show_todos(response.get("todos", []))

    def _show_todos(self, todos: list[dict]) -> None:
        if not todos:
            self.console.print("[dim]No todos yet.[/dim]")
            return

        table = Table(title="Todos", border_style="yellow")
        table.add_column("ID", justify="right")
        table.add_column("Title")
        table.add_column("Due")
        table.add_column("Priority")
        table.add_column("Done", justify="center")
        for todo in todos:
            table.add_row(
                str(todo["id"]),
                todo["title"],
                todo.get("due_date") or "-",
                "high" if todo.get("priority") == 1 else "normal",
                "✓" if todo.get("done") else "",
            )
        self.console.print(table)

    def _show_help(self) -> None:
        """Show help information."""
        help_text = """
[bold]Available Commands:[/bold]
• /help - Show this help message
• /todos - Show the current todo list
• /reset - Forget the conversation so far
• /quit or /exit - Exit the chat

[bold]Example Conversation:[/bold]
1. "Add a todo called 'buy milk' due tomorrow"
2. "Mark buy milk as done"
3. "Delete todo 3"

[bold]Tips:[/bold]
• If several todos share a title the assistant will ask for the id
        """

        self.console.print(Panel(help_text.strip(), title="[cyan]Help[/cyan]", border_style="cyan"))


def main():
    """Main entry point for the chat CLI."""
    base_url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:3001"

    chat = ChatCLI(base_url)
    chat.start()


if __name__ == "__main__":
    main()
