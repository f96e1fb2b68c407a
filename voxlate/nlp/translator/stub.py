from __future__ import annotations
from typing import List
from .base import TranslatorBackend
from voxlate.contracts import DownloadPolicy, LanguageDescriptor, LanguagePair

_STUB_LANGUAGES = (
    LanguageDescriptor("en", "English"),
    LanguageDescriptor("es", "Spanish"),
    LanguageDescriptor("fr", "French"),
    LanguageDescriptor("ja", "Japanese"),
    LanguageDescriptor("ta", "Tamil"),
)

class StubTranslatorBackend(TranslatorBackend):
    """Offline backend: no models, deterministic output tagged with the target code."""

    @property
    def name(self) -> str:
        return "stub"

    def supported_languages(self) -> List[LanguageDescriptor]:
        return sorted(_STUB_LANGUAGES, key=lambda d: d.display_name)

    def ensure_model(self, pair: LanguagePair, policy: DownloadPolicy) -> None:
        return None

    def translate(self, pair: LanguagePair, text: str) -> str:
        return f"[{pair.target}] {text}"
