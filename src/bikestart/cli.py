"""
Command line and REPL front end for the motorcycle remote start.

One-shot mode (``--start``) scans, connects, runs the start sequence once and
exits. Without flags an interactive REPL is started.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.history import InMemoryHistory

from .commands import COMMANDS, CommandCompleter, get_command
from .controller import RemoteStartController
from .display import DisplayManager
from .exceptions import BikeStartError
from .restart import ExponentialBackoff, ImmediateRestart, RestartPolicy
from .sequencer import SequenceStep
from .settings import RemoteStartConfig, load_config
from .status import ConnectionState

logger = logging.getLogger(__name__)

BLUETOOTH_OFF_MESSAGE = "Bluetooth is off or unavailable. Switch it on and try again."


def configure_logging(verbose: bool = False) -> None:
    """Configure root logging for the CLI."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(name)s %(levelname)s: %(message)s",
        )
    else:
        logging.basicConfig(level=logging.INFO, format="%(message)s")


def make_restart_policy(name: str, config: RemoteStartConfig) -> RestartPolicy:
    """Create the restart policy selected on the command line."""
    if name == "immediate":
        return ImmediateRestart()
    return ExponentialBackoff(config.restart_backoff_base, config.restart_backoff_cap)


class BikeStartREPL:
    """Interactive REPL for the remote start service."""

    def __init__(
        self,
        config: RemoteStartConfig,
        restart_policy: Optional[RestartPolicy] = None,
    ) -> None:
        """Initialize REPL with controller and display manager."""
        self.display = DisplayManager()
        self.controller = RemoteStartController(
            config,
            notifier=self.display,
            restart_policy=restart_policy,
        )
        self.running = False

        # Set up callbacks
        self.controller.set_on_sequence_finished(self._on_sequence_finished)
        self.controller.set_on_error(self._on_error)

        # Create prompt session with auto-completion
        self.session: PromptSession = PromptSession(
            completer=CommandCompleter(),
            history=InMemoryHistory(),
            enable_history_search=True,
        )

    async def run(self) -> None:
        """Run the main REPL loop."""
        self.running = True
        self.display.print_banner()

        try:
            while self.running:
                try:
                    prompt_text = self._get_prompt()
                    text = await self.session.prompt_async(prompt_text)

                    if text.strip():
                        await self._handle_input(text.strip())

                except KeyboardInterrupt:
                    # Just show new prompt on Ctrl+C
                    self.display.console.print()
                    continue

        except EOFError:
            # End of input (Ctrl+D)
            await self.cmd_quit([])
        finally:
            self.running = False
            self.controller.disable()

    def _get_prompt(self) -> FormattedText:
        """Get dynamic prompt based on connection state.

        Returns:
            FormattedText for prompt_toolkit
        """
        if self.controller.is_connected:
            return FormattedText([("class:prompt", "[connected] > ")])
        if self.controller.is_running:
            return FormattedText([("class:prompt", "[scanning] > ")])
        return FormattedText([("class:prompt", "[stopped] > ")])

    async def _handle_input(self, text: str) -> None:
        """Parse and dispatch command.

        Args:
            text: Raw user input text
        """
        parts = text.split()
        cmd_name = parts[0].lower()
        args = parts[1:]

        cmd = get_command(cmd_name)
        if not cmd:
            self.display.print_error(
                f"Unknown command: {cmd_name}. Type 'help' for available commands."
            )
            return

        handler = getattr(self, cmd.handler, None)
        if handler is None:
            self.display.print_error(f"Handler not found: {cmd.handler}")
            return

        try:
            await handler(args)
        except Exception as e:
            self.display.print_error(f"Command failed: {e}")
            logger.exception("Command exception")

    def _on_sequence_finished(self, step: SequenceStep) -> None:
        self.display.print_sequence_result(step)

    def _on_error(self, message: str) -> None:
        self.display.print_error(message)

    # ========== Command Handlers ==========

    async def cmd_enable(self, args: list) -> None:
        """Start scanning for the motorcycle."""
        if self.controller.is_running:
            self.display.print_info("Already running")
            return

        if not await self.controller.enable():
            self.display.print_error(BLUETOOTH_OFF_MESSAGE)

    async def cmd_disable(self, args: list) -> None:
        """Stop scanning and disconnect."""
        if not self.controller.is_running and not self.controller.restart_pending:
            self.display.print_info("Not running")
            return

        self.controller.disable()
        self.display.print_info("Stopped")

    async def cmd_status(self, args: list) -> None:
        """Show connection state and flags."""
        self.display.print_status(self.controller.get_status())

    async def cmd_info(self, args: list) -> None:
        """Show device configuration."""
        config = self.controller.config
        self.display.console.print("[bold cyan]Device[/bold cyan]")
        self.display.console.print(f"  Address: {config.device_address}")
        self.display.console.print(f"  Service: {config.service_uuid}")
        self.display.console.print(f"  Characteristic: {config.characteristic_uuid}")

        self.display.console.print()
        self.display.console.print("[bold cyan]Timing[/bold cyan]")
        self.display.console.print(
            f"  Engine start delay: {config.engine_start_delay_ms} ms"
        )
        self.display.console.print(
            f"  Engine start duration: {config.engine_start_duration_ms} ms"
        )

    async def cmd_help(self, args: list) -> None:
        """Show all available commands."""
        self.display.print_help(COMMANDS)

    async def cmd_quit(self, args: list) -> None:
        """Exit the REPL."""
        if self.controller.is_running:
            self.display.print_info("Stopping...")
            self.controller.disable()

        self.display.console.print("[cyan]Goodbye![/cyan]")
        self.running = False


async def run_start(
    config: RemoteStartConfig,
    restart_policy: Optional[RestartPolicy] = None,
    timeout: Optional[float] = None,
) -> bool:
    """Run the start sequence once and stop.

    Args:
        config: Device configuration
        restart_policy: Policy for reconnecting after a dropped link
        timeout: Give up after this many seconds (None waits forever)

    Returns:
        True if the full sequence was sent
    """
    display = DisplayManager()
    controller = RemoteStartController(
        config, notifier=display, restart_policy=restart_policy
    )
    finished = asyncio.Event()
    outcome: List[SequenceStep] = []

    def on_finished(step: SequenceStep) -> None:
        outcome.append(step)
        finished.set()

    def on_error(message: str) -> None:
        display.print_error(message)
        finished.set()

    controller.set_on_sequence_finished(on_finished)
    controller.set_on_error(on_error)

    try:
        if not await controller.enable():
            display.print_error(BLUETOOTH_OFF_MESSAGE)
            return False

        try:
            await asyncio.wait_for(finished.wait(), timeout)
        except asyncio.TimeoutError:
            state = controller.state
            if state is ConnectionState.SCANNING:
                display.print_error("Motorcycle not found. Is it in range?")
            else:
                display.print_error(f"Timed out while {state.value}")
            return False
    finally:
        controller.disable()

    if outcome:
        display.print_sequence_result(outcome[-1])
    return bool(outcome) and outcome[-1] is SequenceStep.COMPLETE


async def run_check() -> bool:
    """Check that Bluetooth is usable."""
    from .drivers.bleak_driver import BleakBLEAdapter

    display = DisplayManager()
    if await BleakBLEAdapter().is_radio_enabled():
        display.print_info("Bluetooth is available")
        return True
    display.print_error(BLUETOOTH_OFF_MESSAGE)
    return False


def main() -> None:
    """Entry point for the CLI and REPL."""
    parser = argparse.ArgumentParser(
        description="Motorcycle remote start over Bluetooth LE",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  bikestart                       # Start interactive REPL
  bikestart --start               # Run the start sequence once
  bikestart --start --timeout 60  # Give up if not started within a minute
  bikestart --check               # Check that Bluetooth is available
  bikestart --config bike.json    # Use another config file
        """,
    )

    parser.add_argument(
        "--start", action="store_true", help="Run the start sequence once and exit"
    )

    parser.add_argument(
        "--check", action="store_true", help="Check that Bluetooth is available"
    )

    parser.add_argument(
        "--config", type=Path, default=None, help="Path to a JSON config file"
    )

    parser.add_argument(
        "--restart",
        choices=["backoff", "immediate"],
        default="backoff",
        help="Reconnection policy after a dropped link (default: backoff)",
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for the start sequence in --start mode",
    )

    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )

    args = parser.parse_args()
    configure_logging(args.verbose)

    if args.start and args.check:
        print("Error: Only one command can be specified at a time", file=sys.stderr)
        sys.exit(1)

    try:
        config = load_config(args.config)
    except BikeStartError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    restart_policy = make_restart_policy(args.restart, config)

    try:
        if args.check:
            ok = asyncio.run(run_check())
        elif args.start:
            ok = asyncio.run(run_start(config, restart_policy, args.timeout))
        else:
            asyncio.run(BikeStartREPL(config, restart_policy).run())
            ok = True
    except KeyboardInterrupt:
        print("\nInterrupted")
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
