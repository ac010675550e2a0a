import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = 'en'


class Translator:
    """
    Строки бота из locales/*.json.

    Код языка из Telegram ('ru-RU', 'pt-br') сводится к базовому ('ru').
    Ключа нет в языке игрока - берём английский, нет и там - отдаём сам ключ.
    """

    def __init__(self, locale_dir: Optional[Path] = None):
        self.locale_dir = locale_dir or Path(__file__).parent / 'locales'
        self.locales: Dict[str, Dict[str, Any]] = {}
        self._load_locales()

    def _load_locales(self):
        """Загрузка файлов локализации"""
        for locale_file in self.locale_dir.glob('*.json'):
            with open(locale_file, 'r', encoding='utf-8') as f:
                self.locales[locale_file.stem] = json.load(f)

        if DEFAULT_LANGUAGE not in self.locales:
            raise RuntimeError(f"Default locale '{DEFAULT_LANGUAGE}' not found in {self.locale_dir}")

    @property
    def languages(self):
        return sorted(self.locales)

    def resolve_language(self, lang: Optional[str]) -> str:
        if not lang:
            return DEFAULT_LANGUAGE
        lang = lang.lower().replace('_', '-')
        if lang in self.locales:
            return lang
        base = lang.split('-', 1)[0]
        return base if base in self.locales else DEFAULT_LANGUAGE

    def get(self, key: str, lang: Optional[str] = DEFAULT_LANGUAGE, **kwargs) -> str:
        """Получить перевод"""
        lang = self.resolve_language(lang)

        value = self._lookup(self.locales[lang], key)
        if value is None and lang != DEFAULT_LANGUAGE:
            value = self._lookup(self.locales[DEFAULT_LANGUAGE], key)
        if value is None:
            logger.warning(f"⚠️ Missing translation: {key} ({lang})")
            return key

        if kwargs:
            try:
                value = value.format(**kwargs)
            except (KeyError, IndexError) as e:
                logger.warning(f"⚠️ Bad placeholders in {key} ({lang}): {e}")

        return value

    @staticmethod
    def _lookup(locale: Dict[str, Any], key: str) -> Optional[str]:
        """'slots.spin' -> locale['slots']['spin']; только строки, не разделы"""
        value: Any = locale
        for part in key.split('.'):
            if not isinstance(value, dict):
                return None
            value = value.get(part)
        return value if isinstance(value, str) else None


translator = Translator()
