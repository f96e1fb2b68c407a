from __future__ import annotations
import os
from .base import TranslatorBackend
from .argos import ArgosTranslatorBackend
from .stub import StubTranslatorBackend

def get_translator_backend(provider: str | None = None, *, refresh_index: bool = True) -> TranslatorBackend:
    provider = (provider or os.getenv("VOXLATE_TRANSLATOR", "argos")).lower().strip()

    if provider == "argos":
        return ArgosTranslatorBackend(refresh_index=refresh_index)
    if provider == "stub":
        return StubTranslatorBackend()

    raise ValueError(f"Unknown translator provider: {provider}")
