from __future__ import annotations

import argparse
import copy
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir


DEFAULTS: dict[str, Any] = {
    "list_devices": False,
    "list_languages": False,
    "device": None,
    "sr": 16000,
    "channels": 1,
    "chunk_sec": 0.5,
    "rms_th": 250.0,
    "silence_chunks": 3,
    "min_utter_sec": 0.4,
    "max_utter_sec": 15.0,
    "partial_every": 2,
    "debug": False,
    "model": "base",
    "source_lang": "en",
    "target_lang": "ta",
    "translator": "argos",
    "allow_model_download": True,
    "allow_metered": False,
    "refresh_index": True,
    "async_translate": True,
    "speech_permission": True,
    "tts_rate": 170,
    "tts_volume": 0.8,
    "tts_voice": None,
    "post_utterance_delay": 0.2,
    "poll_ms": 60,
    "queue_maxsize": 100,
    "print_console": True,
}
CONFIG_KEYS: tuple[str, ...] = tuple(DEFAULTS.keys())


@dataclass(frozen=True)
class AppPaths:
    config_dir: Path
    config_path: Path


def app_paths() -> AppPaths:
    config_dir = Path(user_config_dir("Voxlate", "Voxlate"))
    return AppPaths(config_dir=config_dir, config_path=config_dir / "config.json")


def _load_json_dict(path: Path) -> dict[str, Any]:
    # Accept UTF-8 with or without BOM for Windows-edited config files.
    with path.open("r", encoding="utf-8-sig") as f:
        loaded = json.load(f)
    if not isinstance(loaded, dict):
        raise ValueError(f"config must be a JSON object: {path}")
    return loaded


def _write_json_dict(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)
        f.write("\n")


def _known_only(payload: dict[str, Any]) -> dict[str, Any]:
    return {key: payload[key] for key in CONFIG_KEYS if key in payload}


def ensure_user_config_exists(defaults: dict[str, Any] | None = None) -> Path:
    paths = app_paths()
    if not paths.config_path.exists():
        _write_json_dict(paths.config_path, defaults or copy.deepcopy(DEFAULTS))
    return paths.config_path


def load_user_config(config_path: str | None = None) -> tuple[dict[str, Any], Path]:
    if config_path:
        chosen = Path(config_path)
        if not chosen.exists():
            raise SystemExit(f"Config file not found: {chosen}")
    else:
        chosen = ensure_user_config_exists()
    merged = copy.deepcopy(DEFAULTS)
    merged.update(_known_only(_load_json_dict(chosen)))
    return merged, chosen


def save_user_config(values: dict[str, Any], config_path: str | None = None) -> Path:
    path = Path(config_path) if config_path else ensure_user_config_exists()
    merged = copy.deepcopy(DEFAULTS)
    if path.exists():
        merged.update(_known_only(_load_json_dict(path)))
    merged.update(_known_only(values))
    _write_json_dict(path, merged)
    return path


def parser_with_defaults(defaults: dict[str, Any]) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="voxlate", description="Speak, translate, and hear the translation.")
    p.add_argument("--config", default=None, help="JSON config path (CLI flags override config)")
    p.add_argument("--list-devices", action="store_true", help="print audio devices and exit")
    p.add_argument("--list-languages", action="store_true", help="print translation languages and exit")
    p.add_argument("--device", type=int, default=defaults["device"], help="sounddevice input device id")
    p.add_argument("--sr", type=int, default=defaults["sr"], help="sample rate (Hz)")
    p.add_argument("--channels", type=int, default=defaults["channels"], help="input channels")
    p.add_argument("--chunk-sec", type=float, default=defaults["chunk_sec"], help="mic chunk size in seconds")
    p.add_argument("--rms-th", type=float, default=defaults["rms_th"], help="RMS threshold for speech VAD")
    p.add_argument(
        "--silence-chunks",
        type=int,
        default=defaults["silence_chunks"],
        help="finalize after this many non-speech chunks",
    )
    p.add_argument(
        "--min-utter-sec",
        type=float,
        default=defaults["min_utter_sec"],
        help="utterances shorter than this finalize with no text",
    )
    p.add_argument(
        "--max-utter-sec",
        type=float,
        default=defaults["max_utter_sec"],
        help="force finalize while continuously speaking (seconds)",
    )
    p.add_argument(
        "--partial-every",
        type=int,
        default=defaults["partial_every"],
        help="re-transcribe for a partial result every N speech chunks (0 = off)",
    )
    p.add_argument("--debug", action="store_true", help="log debug events")
    p.add_argument("--model", default=defaults["model"], help="faster-whisper model size")
    p.add_argument("--source-lang", default=defaults["source_lang"], help="language spoken into the mic")
    p.add_argument("--target-lang", default=defaults["target_lang"], help="language to translate into")
    p.add_argument("--translator", default=defaults["translator"], choices=["argos", "stub"], help="translation backend")
    p.add_argument(
        "--allow-model-download",
        action=argparse.BooleanOptionalAction,
        default=defaults["allow_model_download"],
        help="download missing translation models on demand",
    )
    p.add_argument(
        "--allow-metered",
        action=argparse.BooleanOptionalAction,
        default=defaults["allow_metered"],
        help="allow model downloads over a metered connection",
    )
    p.add_argument(
        "--refresh-index",
        action=argparse.BooleanOptionalAction,
        default=defaults["refresh_index"],
        help="refresh the translation package index before downloads",
    )
    p.add_argument(
        "--async-translate",
        action=argparse.BooleanOptionalAction,
        default=defaults["async_translate"],
        help="translate on a background worker",
    )
    p.add_argument(
        "--speech-permission",
        action=argparse.BooleanOptionalAction,
        default=defaults["speech_permission"],
        help="allow speech recognition",
    )
    p.add_argument("--tts-rate", type=int, default=defaults["tts_rate"], help="speech rate (words per minute)")
    p.add_argument("--tts-volume", type=float, default=defaults["tts_volume"], help="speech volume (0-1)")
    p.add_argument("--tts-voice", default=defaults["tts_voice"], help="force a TTS voice id")
    p.add_argument(
        "--post-utterance-delay",
        type=float,
        default=defaults["post_utterance_delay"],
        help="pause after each spoken utterance (seconds)",
    )
    p.add_argument("--poll-ms", type=int, default=defaults["poll_ms"], help="event loop poll interval (ms)")
    p.add_argument(
        "--queue-maxsize",
        type=int,
        default=defaults["queue_maxsize"],
        help="pending partial transcripts kept before dropping",
    )
    p.add_argument(
        "--print-console",
        action=argparse.BooleanOptionalAction,
        default=defaults["print_console"],
        help="print transcripts and translations to the console",
    )
    return p


def resolve_args(argv: list[str] | None = None) -> argparse.Namespace:
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", default=None)
    pre_args, _ = pre.parse_known_args(argv)
    defaults, _ = load_user_config(config_path=pre_args.config)
    args = parser_with_defaults(defaults).parse_args(argv)
    if defaults.get("list_devices"):
        args.list_devices = True
    if defaults.get("list_languages"):
        args.list_languages = True
    if defaults.get("debug"):
        args.debug = True
    return args
