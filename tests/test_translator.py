import json
import tempfile
import unittest
from pathlib import Path

from gorbagana.i18n.translator import Translator, translator


def write_locales(directory: Path, locales: dict):
    for lang, data in locales.items():
        (directory / f"{lang}.json").write_text(json.dumps(data, ensure_ascii=False), encoding='utf-8')


class TestTranslatorFallback(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        write_locales(Path(self.tmp.name), {
            'en': {'slots': {'win': 'WIN: {amount}', 'spinning': 'Spinning...'}},
            'ru': {'slots': {'win': 'ВЫИГРЫШ: {amount}'}},
        })
        self.translator = Translator(Path(self.tmp.name))

    def test_telegram_language_code_is_reduced(self):
        self.assertEqual(self.translator.resolve_language('ru-RU'), 'ru')
        self.assertEqual(self.translator.resolve_language('RU_ru'), 'ru')
        self.assertEqual(self.translator.get('slots.win', 'ru-RU', amount='1 SOL'), 'ВЫИГРЫШ: 1 SOL')

    def test_unknown_language_falls_back_to_english(self):
        self.assertEqual(self.translator.resolve_language('pt-br'), 'en')
        self.assertEqual(self.translator.resolve_language(None), 'en')
        self.assertEqual(self.translator.get('slots.spinning', 'de'), 'Spinning...')

    def test_missing_key_falls_back_to_english(self):
        self.assertEqual(self.translator.get('slots.spinning', 'ru'), 'Spinning...')

    def test_unknown_key_returns_key(self):
        self.assertEqual(self.translator.get('slots.nope', 'ru'), 'slots.nope')

    def test_section_is_not_a_translation(self):
        self.assertEqual(self.translator.get('slots', 'en'), 'slots')

    def test_missing_placeholder_keeps_template(self):
        self.assertEqual(self.translator.get('slots.win', 'en', bet='0.01'), 'WIN: {amount}')

    def test_default_locale_is_required(self):
        with tempfile.TemporaryDirectory() as empty:
            write_locales(Path(empty), {'ru': {}})
            with self.assertRaises(RuntimeError):
                Translator(Path(empty))


class TestShippedLocales(unittest.TestCase):

    def test_ru_covers_every_en_key(self):
        def keys(data, prefix=''):
            for name, value in data.items():
                if isinstance(value, dict):
                    yield from keys(value, f"{prefix}{name}.")
                else:
                    yield f"{prefix}{name}"

        self.assertEqual(set(keys(translator.locales['ru'])), set(keys(translator.locales['en'])))


if __name__ == '__main__':
    unittest.main()
