"""
glasschess: terminal simulator entry point.

Wires together:  config → ChessApp → stdin commands (as glasses events) → rich display

Commands:
  w / up      scroll up          s / down    scroll down
  <enter> / t tap                dd          double-tap
  m           open the menu      q           quit
"""

from __future__ import annotations

import asyncio
import signal
import sys
import threading
from pathlib import Path

from glasschess.actions import OpenMenu
from glasschess.app import ChessApp
from glasschess.cli.display import console, print_banner, print_help, render_state
from glasschess.config import load_config
from glasschess.logging_setup import configure_logging

# Commands typed at the prompt, translated to the payloads the glasses hub sends
_COMMAND_PAYLOADS: dict[str, dict] = {
    "w": {"textEvent": {"eventType": "SCROLL_TOP_EVENT"}},
    "up": {"textEvent": {"eventType": "SCROLL_TOP_EVENT"}},
    "s": {"textEvent": {"eventType": "SCROLL_BOTTOM_EVENT"}},
    "down": {"textEvent": {"eventType": "SCROLL_BOTTOM_EVENT"}},
    "": {"listEvent": {"eventType": 0, "currentSelectItemIndex": 0}},
    "t": {"listEvent": {"eventType": 0, "currentSelectItemIndex": 0}},
    "dd": {"textEvent": {"eventType": "DOUBLE_CLICK_EVENT"}},
}


def _start_stdin_reader(loop: asyncio.AbstractEventLoop, lines: asyncio.Queue[str | None]) -> None:
    """Feed stdin lines into the loop from a daemon thread so quitting never blocks on input."""
    def _read() -> None:
        for line in sys.stdin:
            loop.call_soon_threadsafe(lines.put_nowait, line.strip().lower())
        loop.call_soon_threadsafe(lines.put_nowait, None)  # EOF

    threading.Thread(target=_read, name="stdin-reader", daemon=True).start()


async def _main(stop_event: asyncio.Event) -> None:
    config_path = Path("config.yaml")
    try:
        config = load_config(config_path)
    except FileNotFoundError as exc:
        console.print(f"[red]Error:[/] {exc}")
        sys.exit(1)
    except ValueError as exc:
        console.print(f"[red]Config error:[/] {exc}")
        sys.exit(1)

    configure_logging(config.logging, console_level="WARNING")

    chess_app = ChessApp(config)
    await chess_app.start()

    loop = asyncio.get_running_loop()
    render_pending = False

    def _render() -> None:
        nonlocal render_pending
        render_pending = False
        render_state(chess_app.state)

    def _on_change(new: object, prev: object) -> None:
        # Several dispatches per gesture collapse into one frame
        nonlocal render_pending
        if not render_pending:
            render_pending = True
            loop.call_soon(_render)

    chess_app.subscribe(_on_change)
    print_banner(str(config.engine.command or "random moves"))
    render_state(chess_app.state)

    lines: asyncio.Queue[str | None] = asyncio.Queue()
    _start_stdin_reader(loop, lines)

    closed = asyncio.create_task(chess_app.closed.wait())
    stopped = asyncio.create_task(stop_event.wait())
    try:
        while True:
            next_line = asyncio.create_task(lines.get())
            done, _ = await asyncio.wait(
                {next_line, closed, stopped}, return_when=asyncio.FIRST_COMPLETED
            )
            if next_line not in done:
                next_line.cancel()
                break
            command = next_line.result()
            if command is None or command == "q":
                break
            if command == "m":
                chess_app.dispatch(OpenMenu())
            elif command in _COMMAND_PAYLOADS:
                chess_app.handle_payload(_COMMAND_PAYLOADS[command])
            else:
                print_help()
    finally:
        closed.cancel()
        stopped.cancel()
        await chess_app.shutdown()
        console.print("[dim]Bye.[/]")


def main() -> None:
    async def _run() -> None:
        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()

        original_sigint = signal.getsignal(signal.SIGINT)

        def _on_sigint(sig: int, frame: object) -> None:
            # First Ctrl+C ends the session cleanly, a second one kills it
            loop.call_soon_threadsafe(stop_event.set)
            signal.signal(signal.SIGINT, original_sigint)

        signal.signal(signal.SIGINT, _on_sigint)
        await _main(stop_event)

    asyncio.run(_run())


if __name__ == "__main__":
    main()
