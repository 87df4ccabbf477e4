"""Console output formatting utilities for sauceci."""

from __future__ import annotations

import sys
from typing import Optional

from ..notifications import Notification, NotificationType
from ..ports import unsupported_port


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show verbose tunnel output, debug lines and stack traces
        """
        self.debug = debug

    def print_header(self, title: str) -> None:
        """Print a section header."""
        print(f"\n{title}")
        print("-" * len(title))

    def print_ok(self, message: str) -> None:
        print(f">> {message}")

    def print_warning(self, message: str) -> None:
        print(f"WARNING: {message}")

    def print_run_started(self, framework: str, targets: list[str]) -> None:
        """Print run start information."""
        print("\nRUN STARTED")
        print(f"Framework: {framework}")
        print(f"Targets: {', '.join(targets)}")
        print()

    def print_jobs_started(self, started: int, total: int) -> None:
        print(f"\n{started}/{total} tests started")

    def print_job_completed(
        self,
        url: str,
        platform: str,
        passed: bool,
        tunnel_id: Optional[str] = None,
    ) -> None:
        """Print the outcome of one browser job."""
        self.print_header(f"Tested {url}")
        print(f"Platform: {platform}")
        if tunnel_id and unsupported_port(url):
            self.print_warning("This url might use a port that is not proxied by Sauce Connect.")
        print(f"Passed: {passed}")
        print(f"Url {url}")

    def print_test_completed(self, passed: bool) -> None:
        message = f"All tests completed with status {passed}"
        if passed:
            self.print_ok(message)
        else:
            print(f"ERROR: {message}", file=sys.stderr)

    def print_results(self, results: dict[str, bool]) -> None:
        """Print final results summary."""
        print("\n" + "=" * 40)
        print("RESULTS")
        print("=" * 40)
        for target, passed in results.items():
            print(f"  {target}: {'PASSED' if passed else 'FAILED'}")

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: Exception) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exception(type(exc), exc, exc.__traceback__)
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)

    def print_tunnel_output(self, method: str, text: str, verbose: bool) -> None:
        if verbose and not self.debug:
            return
        if method == "error":
            print(text, file=sys.stderr)
        elif method == "warn":
            self.print_warning(text)
        elif method == "ok":
            self.print_ok(text)
        else:
            print(text)

    def report(self, notification: Notification) -> None:
        """Notification sink: render one progress notification."""
        kind = getattr(notification, "type", None)

        if kind is NotificationType.TUNNEL_OPEN:
            print("=> Starting Tunnel to Sauce Labs")
        elif kind is NotificationType.TUNNEL_OPENED:
            self.print_ok("Connected to Saucelabs")
        elif kind is NotificationType.TUNNEL_CLOSE:
            print("=> Stopping Tunnel to Sauce Labs")
        elif kind is NotificationType.TUNNEL_EVENT:
            self.print_tunnel_output(notification.method, notification.text, notification.verbose)
        elif kind is NotificationType.JOB_STARTED:
            self.print_jobs_started(notification.started_jobs, notification.number_of_jobs)
        elif kind is NotificationType.JOB_COMPLETED:
            self.print_job_completed(
                notification.url,
                notification.platform,
                notification.passed,
                notification.tunnel_id,
            )
        elif kind is NotificationType.TEST_COMPLETED:
            self.print_test_completed(notification.passed)
        elif kind is NotificationType.ERROR:
            print(f"ERROR: {notification.message}", file=sys.stderr)
            self.print_debug(f"error type: {notification.error_type}")
        else:
            print("ERROR: Unexpected notification type", file=sys.stderr)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console


def report(notification: Notification) -> None:
    """Default sink: forward to the global console."""
    get_console().report(notification)
