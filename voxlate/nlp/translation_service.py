from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional

from voxlate.contracts import (
    DownloadPolicy,
    LanguageDescriptor,
    LanguagePair,
    TranslationRequest,
    TranslationResult,
)
from voxlate.errors import EmptyInput, ModelUnavailable, TranslationFailed
from voxlate.nlp.translator.base import TranslatorBackend

logger = logging.getLogger(__name__)


class PairTranslator:
    """One language pair bound to a backend; remembers when its model is ready."""

    def __init__(self, backend: TranslatorBackend, pair: LanguagePair) -> None:
        self.backend = backend
        self.pair = pair
        self.ready = False

    def ensure_ready(self, policy: DownloadPolicy) -> None:
        if self.ready:
            return
        try:
            self.backend.ensure_model(self.pair, policy)
        except ModelUnavailable:
            raise
        except Exception as e:
            raise ModelUnavailable(f"Model for {self.pair} unavailable: {e}") from e
        self.ready = True

    def translate(self, text: str) -> str:
        try:
            return self.backend.translate(self.pair, text)
        except TranslationFailed:
            raise
        except Exception as e:
            raise TranslationFailed(f"Translation {self.pair} failed: {e}") from e


class TranslationService:
    """
    Translator cache keyed by language pair, with model-ready gating.

    A result is only handed back if the translator that produced it is still
    the one for the selected pair once its model is ready; otherwise the
    result comes back with ``stale=True`` and no text.
    """

    def __init__(self, backend: TranslatorBackend, *, policy: DownloadPolicy | None = None) -> None:
        self.backend = backend
        self.policy = policy or DownloadPolicy()
        self._lock = threading.Lock()
        self._translators: Dict[LanguagePair, PairTranslator] = {}
        self._selected: Optional[LanguagePair] = None
        self._languages: Optional[List[LanguageDescriptor]] = None

    @property
    def selected(self) -> Optional[LanguagePair]:
        return self._selected

    def languages(self) -> List[LanguageDescriptor]:
        if self._languages is None:
            self._languages = list(self.backend.supported_languages())
        return list(self._languages)

    def select(self, pair: LanguagePair) -> None:
        with self._lock:
            self._selected = pair

    def translator_for(self, pair: LanguagePair) -> PairTranslator:
        with self._lock:
            translator = self._translators.get(pair)
            if translator is None:
                translator = PairTranslator(self.backend, pair)
                self._translators[pair] = translator
            return translator

    def _is_current(self, translator: PairTranslator) -> bool:
        with self._lock:
            if self._selected is None:
                return True
            return self._selected == translator.pair and self._translators.get(translator.pair) is translator

    def translate(self, request: TranslationRequest) -> TranslationResult:
        text = (request.text or "").strip()
        if not text:
            raise EmptyInput("Nothing to translate.")

        translator = self.translator_for(request.pair)
        try:
            translator.ensure_ready(self.policy)
        except ModelUnavailable as e:
            logger.warning("translate_model_unavailable", extra={"pair": str(request.pair), "error": str(e)})
            return TranslationResult(source_text=text, provider=self.backend.name, error=e)

        if not self._is_current(translator):
            logger.info(
                "translate_stale_discarded",
                extra={"pair": str(request.pair), "selected": str(self._selected)},
            )
            return TranslationResult(source_text=text, provider=self.backend.name, stale=True)

        try:
            out = translator.translate(text)
        except TranslationFailed as e:
            logger.warning("translate_failed", extra={"pair": str(request.pair), "error": str(e)})
            return TranslationResult(source_text=text, provider=self.backend.name, error=e)
        return TranslationResult(source_text=text, translated_text=out, provider=self.backend.name)
