from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, List, Optional, Tuple

from .base import TranslatorBackend
from voxlate.contracts import DownloadPolicy, LanguageDescriptor, LanguagePair
from voxlate.errors import BackendUnavailable, ModelUnavailable, TranslationFailed

logger = logging.getLogger(__name__)

PIVOT_CODE = "en"


class ArgosTranslatorBackend(TranslatorBackend):
    """
    On-device translation with Argos Translate. Missing packages are fetched
    from the Argos index when the download policy allows it; pairs without a
    direct package go through English.
    """

    def __init__(
        self,
        *,
        refresh_index: bool = True,
        is_metered: Callable[[], bool] = lambda: False,
    ) -> None:
        self.refresh_index = refresh_index
        self.is_metered = is_metered
        self._index_loaded = False
        self._ready: set[LanguagePair] = set()
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "argos"

    def _argos(self):
        try:
            import argostranslate.package
            import argostranslate.translate
        except ImportError as e:
            raise BackendUnavailable(
                "argostranslate is not installed. Install with: python -m pip install argostranslate"
            ) from e
        return argostranslate.package, argostranslate.translate

    def _installed_pairs(self) -> set[Tuple[str, str]]:
        package, _ = self._argos()
        return {(p.from_code, p.to_code) for p in package.get_installed_packages()}

    def _load_index(self) -> None:
        package, _ = self._argos()
        if self._index_loaded or not self.refresh_index:
            return
        package.update_package_index()
        self._index_loaded = True

    def supported_languages(self) -> List[LanguageDescriptor]:
        package, translate = self._argos()
        names: Dict[str, str] = {}
        for lang in translate.get_installed_languages():
            names[lang.code] = lang.name
        try:
            self._load_index()
            for p in package.get_available_packages():
                names.setdefault(p.from_code, p.from_name)
                names.setdefault(p.to_code, p.to_name)
        except Exception:
            # offline: installed languages are still usable
            logger.warning("argos_index_unavailable", exc_info=True)
        return sorted(
            (LanguageDescriptor(code=code, display_name=name) for code, name in names.items()),
            key=lambda d: (d.display_name, d.code),
        )

    def _route(self, pair: LanguagePair) -> List[Tuple[str, str]]:
        if PIVOT_CODE in (pair.source, pair.target):
            return [(pair.source, pair.target)]
        return [(pair.source, PIVOT_CODE), (PIVOT_CODE, pair.target)]

    def ensure_model(self, pair: LanguagePair, policy: DownloadPolicy) -> None:
        with self._lock:
            if pair in self._ready:
                return
            installed = self._installed_pairs()
            if (pair.source, pair.target) in installed:
                self._ready.add(pair)
                return

            missing = [hop for hop in self._route(pair) if hop not in installed]
            if not missing:
                self._ready.add(pair)
                return
            if not policy.allow_network:
                raise ModelUnavailable(f"Argos model {pair} not installed and downloads are disabled")
            if not policy.allow_metered and self.is_metered():
                raise ModelUnavailable(f"Argos model {pair} needs a download but the network is metered")

            package, _ = self._argos()
            try:
                self._load_index()
                available = {(p.from_code, p.to_code): p for p in package.get_available_packages()}
            except Exception as e:
                raise ModelUnavailable(f"Argos package index unavailable: {e}") from e

            direct = available.get((pair.source, pair.target))
            hops = [(pair.source, pair.target)] if direct is not None else missing
            for hop in hops:
                pkg = available.get(hop)
                if pkg is None:
                    raise ModelUnavailable(f"No Argos package found for {hop[0]}->{hop[1]}")
                logger.info("argos_package_download", extra={"from_code": hop[0], "to_code": hop[1]})
                try:
                    path = pkg.download()
                    package.install_from_path(path)
                except Exception as e:
                    raise ModelUnavailable(f"Argos package {hop[0]}->{hop[1]} failed to install: {e}") from e
            self._ready.add(pair)

    def translate(self, pair: LanguagePair, text: str) -> str:
        _, translate = self._argos()
        try:
            out: Optional[str] = translate.translate(text, pair.source, pair.target)
        except Exception as e:
            raise TranslationFailed(f"Argos translation {pair} failed: {e}") from e
        if out is None:
            raise TranslationFailed(f"Argos returned no translation for {pair}")
        return out
