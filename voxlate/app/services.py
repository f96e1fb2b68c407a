from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from voxlate.asr.faster_whisper_pcm16 import FasterWhisperPCM16Transcriber
from voxlate.asr.whisper_stream import WhisperStreamRecognizer
from voxlate.audio.mic import SoundDeviceMicSource
from voxlate.audio.permissions import PermissionGate, SoundDevicePermissionProvider
from voxlate.audio.route import AudioRouteController
from voxlate.audio.vad import EnergyVAD
from voxlate.contracts import DownloadPolicy
from voxlate.nlp.translation_service import TranslationService
from voxlate.nlp.translator.factory import get_translator_backend
from voxlate.tts.pyttsx3_backend import Pyttsx3SpeechSynthesizer
from voxlate.tts.speech_output import SpeechOutput, SpeechOutputConfig


@dataclass(frozen=True)
class PipelineServices:
    mic: SoundDeviceMicSource
    recognizer: WhisperStreamRecognizer
    gate: PermissionGate
    route: AudioRouteController
    translation: TranslationService
    speech: SpeechOutput


def build_translation_service(args: Any) -> TranslationService:
    backend = get_translator_backend(str(args.translator), refresh_index=bool(args.refresh_index))
    policy = DownloadPolicy(
        allow_network=bool(args.allow_model_download),
        allow_metered=bool(args.allow_metered),
    )
    return TranslationService(backend, policy=policy)


def build_pipeline_services(args: Any) -> PipelineServices:
    mic = SoundDeviceMicSource(
        chunk_seconds=float(args.chunk_sec),
        sample_rate=int(args.sr),
        channels=int(args.channels),
        device=args.device,
    )
    recognizer = WhisperStreamRecognizer(
        mic=mic,
        transcriber=FasterWhisperPCM16Transcriber(model_size=str(args.model)),
        vad=EnergyVAD(rms_threshold=float(args.rms_th)),
        silence_chunks_to_finalize=max(1, int(args.silence_chunks)),
        min_utter_sec=max(0.0, float(args.min_utter_sec)),
        max_utter_sec=None if args.max_utter_sec is None else float(args.max_utter_sec),
        partial_every=max(0, int(args.partial_every)),
    )
    route = AudioRouteController()
    speech = SpeechOutput(
        Pyttsx3SpeechSynthesizer(),
        route=route,
        config=SpeechOutputConfig(
            rate=args.tts_rate,
            volume=args.tts_volume,
            voice_id=args.tts_voice,
            post_utterance_delay=max(0.0, float(args.post_utterance_delay)),
        ),
    )
    return PipelineServices(
        mic=mic,
        recognizer=recognizer,
        gate=PermissionGate(SoundDevicePermissionProvider(mic, speech_allowed=bool(args.speech_permission))),
        route=route,
        translation=build_translation_service(args),
        speech=speech,
    )
