from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List
from voxlate.contracts import DownloadPolicy, LanguageDescriptor, LanguagePair

class TranslatorBackend(ABC):
    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def supported_languages(self) -> List[LanguageDescriptor]: ...

    @abstractmethod
    def ensure_model(self, pair: LanguagePair, policy: DownloadPolicy) -> None:
        """Make the model for `pair` usable or raise ModelUnavailable. May block on download."""

    @abstractmethod
    def translate(self, pair: LanguagePair, text: str) -> str:
        """Translate on an installed model or raise TranslationFailed."""
