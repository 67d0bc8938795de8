#!/usr/bin/env python3
"""Interactive chat CLI for the calendar assistant service."""

import os
import sys

import httpx
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table


class ChatCLI:
    """Terminal front end: sign in with a token, then chat."""

    def __init__(self, base_url: str = "http://localhost:8000"):
        """Initialize chat CLI."""
        self.base_url = base_url
        self.session_id: str | None = None
        self.console = Console()
        self.client = httpx.Client(timeout=60.0)

    def start(self) -> None:
        """Start the interactive chat session."""
        self.console.print(
            Panel.fit(
                "[bold blue]📅 Calendar Assistant - Interactive Chat[/bold blue]\n"
                "Ask about your schedule or create events.\n"
                "Commands: /help, /history, /clear, /signout, /quit",
                border_style="blue",
            )
        )

        if not self._test_connection():
            self.console.print(f"[red]❌ Cannot connect to the service at {self.base_url}.[/red]")
            return

        if not self._sign_in():
            self.client.close()
            return

        try:
            while True:
                user_input = Prompt.ask("\n[bold cyan]You[/bold cyan]")
                command = user_input.strip().lower()

                if command in ["/quit", "/exit", "quit", "exit"]:
                    break
                elif command == "/help":
                    self._show_help()
                    continue
                elif command == "/history":
                    self._show_history()
                    continue
                elif command == "/clear":
                    self._reset()
                    continue
                elif command == "/signout":
                    self._sign_out()
                    break
                elif command == "":
                    continue

                response = self._send_message(user_input)
                if response and response.get("response"):
                    self._display_response(response["response"])

        except KeyboardInterrupt:
            pass
        finally:
            self.console.print("\n[yellow]👋 Goodbye![/yellow]")
            self.client.close()

    def _test_connection(self) -> bool:
        """Test connection to the service."""
        try:
            response = self.client.get(f"{self.base_url}/health")
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    def _sign_in(self) -> bool:
        """Start a session with an OAuth access token."""
        token = os.getenv("GOOGLE_ACCESS_TOKEN") or Prompt.ask("[bold]Google access token[/bold]", password=True)
        payload: dict[str, str] = {"access_token": token}
        if timezone := os.getenv("ASSISTANT_TIMEZONE"):
            payload["timezone"] = timezone

        response = self.client.post(f"{self.base_url}/session", json=payload)
        if response.status_code != 200:
            self.console.print(f"[red]❌ Sign-in failed: {response.status_code} - {response.text}[/red]")
            return False

        data = response.json()
        self.session_id = data["session_id"]
        self.console.print(f"[green]✅ Signed in ({data['timezone']})[/green]\n")
        self._display_response(data["greeting"])
        return True

    def _sign_out(self) -> None:
        response = self.client.delete(f"{self.base_url}/session")
        if response.status_code == 200:
            self.console.print("[yellow]🔒 Signed out[/yellow]")
        else:
            self.console.print(f"[red]❌ Sign-out: {response.status_code} - {response.text}[/red]")
        self.session_id = None

    def _reset(self) -> None:
        response = self.client.post(f"{self.base_url}/conversation/reset", params={"session_id": self.session_id})
        if response.status_code == 200:
            self.console.print("[yellow]🔄 Conversation cleared[/yellow]")
        else:
            self.console.print(f"[red]❌ API Error: {response.status_code} - {response.text}[/red]")

    def _send_message(self, message: str) -> dict | None:
        """Send message to the assistant service."""
        try:
            payload = {"message": message, "session_id": self.session_id}

            self.console.print("[dim]💭 Thinking...[/dim]", end="")

            response = self.client.post(
                f"{self.base_url}/conversation", json=payload, headers={"Content-Type": "application/json"}
            )

            # Clear the "thinking" message
            self.console.print("\r" + " " * 20 + "\r", end="\n")

            if response.status_code == 200:
                return response.json()

            self.console.print(f"[red]❌ API Error: {response.status_code} - {response.text}[/red]")
            return None

        except httpx.HTTPError as e:
            self.console.print(f"[red]❌ Connection error: {e}[/red]")
            return None

    def _display_response(self, text: str) -> None:
        """Display assistant response with nice formatting."""
        self.console.print(
            Panel(
                Markdown(text),
                title="[bold green]🤖 Calendar Assistant[/bold green]",
                border_style="green",
                padding=(1, 2),
            )
        )

    def _show_history(self) -> None:
        """Show the conversation history as a table."""
        response = self.client.get(f"{self.base_url}/conversation/history", params={"session_id": self.session_id})
        if response.status_code != 200:
            self.console.print(f"[red]❌ API Error: {response.status_code} - {response.text}[/red]")
            return

        table = Table(title="Conversation history")
        table.add_column("Role", style="cyan")
        table.add_column("Content")

        for message in response.json()["messages"]:
            for part in message["parts"]:
                if "text" in part:
                    content = part["text"]
                elif "functionCall" in part:
                    call = part["functionCall"]
                    content = f"[magenta]call[/magenta] {call['name']}({call.get('args', {})})"
                else:
                    result = part["functionResponse"]
                    content = f"[magenta]result[/magenta] {result['name']}: {result['response']}"
                table.add_row(message["role"], content)

        self.console.print(table)

    def _show_help(self) -> None:
        """Show help information."""
        help_text = """
[bold]Available Commands:[/bold]
• /help - Show this help message
• /history - Show the conversation so far, including tool calls
• /clear - Clear the conversation, staying signed in
• /signout - Sign out and revoke the token
• /quit or /exit - Exit the chat

[bold]Examples:[/bold]
1. "What do I have going on tomorrow?"
2. "Schedule a team meeting next week at 2pm"
3. "What's on my calendar for 2025-07-04?"

[bold]Tips:[/bold]
• Set GOOGLE_ACCESS_TOKEN to skip the token prompt
• Set ASSISTANT_TIMEZONE (e.g. America/New_York) to resolve times in your zone
        """

        self.console.print(Panel(help_text.strip(), title="[cyan]❓ Help[/cyan]", border_style="cyan"))


def main():
    """Main entry point for the chat CLI."""
    base_url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"

    chat = ChatCLI(base_url)
    chat.start()


if __name__ == "__main__":
    main()
