from __future__ import annotations

import sys
import threading

from voxlate.app.config import resolve_args
from voxlate.app.diagnostics import hint_for_exception, summarize_exception
from voxlate.app.logging_setup import setup_app_logger
from voxlate.app.runtime import HELP, run_console, start_stdin_reader
from voxlate.app.services import build_pipeline_services, build_translation_service
from voxlate.audio.mic import SoundDeviceMicSource
from voxlate.errors import UnknownLanguage, VoxlateError
from voxlate.live.pipeline import TranslationPipeline
from voxlate.ui.bridge import EventBus
from voxlate.ui.presentation import ConsolePresentation, NullPresentation


def _fail(logger, event: str, exc: BaseException) -> int:
    logger.exception(event)
    summary = summarize_exception(str(exc) or type(exc).__name__)
    print(f"[error] {summary}", file=sys.stderr)
    print(f"[hint] {hint_for_exception(summary)}", file=sys.stderr)
    return 1


def main(argv: list[str] | None = None) -> int:
    args = resolve_args(argv)
    logger, _log_dir, log_path = setup_app_logger(debug=bool(args.debug))
    logger.info("app_start", extra={"config_path": str(getattr(args, "config", "")), "argv": argv or []})

    if args.list_devices:
        print(SoundDeviceMicSource.list_devices())
        return 0

    if args.list_languages:
        try:
            languages = build_translation_service(args).languages()
        except VoxlateError as e:
            return _fail(logger, "list_languages_failed", e)
        for lang in languages:
            print(f"{lang.code:<8} {lang.display_name}")
        return 0

    try:
        services = build_pipeline_services(args)
        bus = EventBus(maxsize=max(1, int(args.queue_maxsize)))
        pipeline = TranslationPipeline(
            translation=services.translation,
            recognizer=services.recognizer,
            speech=services.speech,
            gate=services.gate,
            route=services.route,
            presentation=ConsolePresentation() if args.print_console else NullPresentation(),
            bus=bus,
            async_translate=bool(args.async_translate),
            source_lang=str(args.source_lang),
            target_lang=str(args.target_lang),
        )
    except UnknownLanguage as e:
        print("Use --list-languages to see the supported codes.", file=sys.stderr)
        return _fail(logger, "language_unsupported_startup", e)
    except VoxlateError as e:
        return _fail(logger, "pipeline_init_failed", e)

    status = services.gate.request_permissions()
    if not status.granted:
        print("[warn] recording is unavailable: microphone or speech permission missing", file=sys.stderr)

    print(f"{pipeline.state.selected_source.display_name} -> {pipeline.state.selected_target.display_name}")
    print(HELP)
    print(f"(log: {log_path})")

    stop_event = threading.Event()
    start_stdin_reader(bus, stop_event)
    try:
        run_console(pipeline, poll_ms=int(args.poll_ms), stop_event=stop_event, logger=logger)
    except KeyboardInterrupt:
        logger.info("app_keyboard_interrupt")
    logger.info("app_exit")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
