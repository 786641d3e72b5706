"""
Console Reporter

Architectural Intent:
- StatusReporter implementation printing task status lines to stdout
- Same prefixes the CLI uses for its own messages
"""

from rollout.application.reporting import StatusReporter


class ConsoleReporter(StatusReporter):
    def info(self, message: str) -> None:
        print(f"[*] {message}")

    def comment(self, message: str) -> None:
        print(f"[~] {message}")

    def error(self, message: str) -> None:
        print(f"[-] {message}")

    def line(self, message: str) -> None:
        print(message)
