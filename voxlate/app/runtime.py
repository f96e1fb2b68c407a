from __future__ import annotations

import logging
import sys
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

from voxlate.errors import VoxlateError
from voxlate.live.pipeline import TranslationPipeline
from voxlate.ui.bridge import EventBus

HELP = """commands:
  r               start/stop recording
  t               translate the current text
  s               speak the translation
  x               stop speaking
  c               clear both texts
  text <words>    type the text to translate
  from <code>     set the spoken language
  to <code>       set the translation language
  langs           list languages
  status          show the language pair and texts
  q               quit"""


@dataclass(frozen=True)
class ConsoleCommand:
    name: str
    arg: str = ""


_ALIASES = {
    "r": "record",
    "record": "record",
    "t": "translate",
    "translate": "translate",
    "s": "speak",
    "speak": "speak",
    "x": "hush",
    "c": "clear",
    "clear": "clear",
    "text": "text",
    "from": "from",
    "to": "to",
    "langs": "langs",
    "status": "status",
    "h": "help",
    "help": "help",
    "?": "help",
    "q": "quit",
    "quit": "quit",
    "exit": "quit",
}


def parse_command(line: str) -> Optional[ConsoleCommand]:
    stripped = (line or "").strip()
    if not stripped:
        return None
    head, _, rest = stripped.partition(" ")
    name = _ALIASES.get(head.lower())
    if name is None:
        return ConsoleCommand("unknown", stripped)
    return ConsoleCommand(name, rest.strip())


def _log_event(logger: logging.Logger | None, level: int, event: str, **fields: Any) -> None:
    if logger is None:
        return
    logger.log(level, event, extra=fields)


def apply_command(
    pipeline: TranslationPipeline,
    cmd: ConsoleCommand,
    *,
    write: Callable[[str], None] = print,
    logger: logging.Logger | None = None,
) -> bool:
    """Run one console command on the owner thread; returns False on quit."""
    _log_event(logger, logging.DEBUG, "console_command", command=cmd.name)
    try:
        if cmd.name == "quit":
            return False
        if cmd.name == "record":
            pipeline.toggle_capture()
        elif cmd.name == "translate":
            pipeline.manual_translate()
        elif cmd.name == "speak":
            if not pipeline.speak_translation():
                write("nothing to speak yet")
        elif cmd.name == "hush":
            pipeline.stop_speaking()
        elif cmd.name == "clear":
            pipeline.clear()
        elif cmd.name == "text":
            pipeline.set_transcript(cmd.arg)
        elif cmd.name == "from":
            pipeline.select_source_language(cmd.arg)
            write(f"pair: {pipeline.pair}")
        elif cmd.name == "to":
            pipeline.select_target_language(cmd.arg)
            write(f"pair: {pipeline.pair}")
        elif cmd.name == "langs":
            for lang in pipeline.languages():
                write(f"  {lang.code:<8} {lang.display_name}")
        elif cmd.name == "status":
            state = pipeline.state
            write(f"pair: {state.selected_source.display_name} -> {state.selected_target.display_name}")
            write(f"FROM: {state.last_transcript}")
            write(f"TO:   {state.last_translation}")
        elif cmd.name == "help":
            write(HELP)
        else:
            write(f"unknown command: {cmd.arg!r} (type 'help')")
    except VoxlateError as e:
        _log_event(logger, logging.WARNING, "console_command_failed", command=cmd.name, error=str(e))
        pipeline.presentation.show_error(e)
    return True


def start_stdin_reader(
    bus: EventBus,
    stop_event: threading.Event,
    readline: Callable[[], str] = sys.stdin.readline,
) -> threading.Thread:
    """Read console lines on a worker thread and post them to the owner's bus."""

    def _loop() -> None:
        while not stop_event.is_set():
            line = readline()
            if line == "":
                bus.push(ConsoleCommand("quit"))
                return
            cmd = parse_command(line)
            if cmd is not None:
                bus.push(cmd)

    thread = threading.Thread(target=_loop, name="voxlate-stdin", daemon=True)
    thread.start()
    return thread


def run_console(
    pipeline: TranslationPipeline,
    *,
    poll_ms: int = 60,
    stop_event: threading.Event | None = None,
    write: Callable[[str], None] = print,
    logger: logging.Logger | None = None,
) -> None:
    stop_event = stop_event or threading.Event()

    def _on_other(item: Any) -> None:
        if isinstance(item, ConsoleCommand) and not apply_command(pipeline, item, write=write, logger=logger):
            stop_event.set()

    _log_event(logger, logging.INFO, "console_start", pair=str(pipeline.pair))
    try:
        while not stop_event.is_set():
            pipeline.pump(timeout=max(1, int(poll_ms)) / 1000.0, on_other=_on_other)
    finally:
        stop_event.set()
        pipeline.close()
        _log_event(logger, logging.INFO, "console_stop", generation=pipeline.generation)
