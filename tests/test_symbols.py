import unittest
from decimal import Decimal

from gorbagana.errors import UnknownSymbolError
from gorbagana.games.symbols import SYMBOL_TABLE, Symbol, SymbolTable


class TestSymbolTable(unittest.TestCase):
    """Таблица символов программы gorbagana_slots"""

    def test_identities_are_dense_and_ordered(self):
        identities = [s.identity for s in SYMBOL_TABLE.all()]
        self.assertEqual(identities, list(range(8)))
        self.assertIs(SYMBOL_TABLE.all(), SYMBOL_TABLE.all())

    def test_weights_and_multipliers_match_program(self):
        gorbagana = SYMBOL_TABLE.by_identity(0)
        banana = SYMBOL_TABLE.by_identity(7)

        self.assertEqual(gorbagana.name, 'gorbagana')
        self.assertEqual(gorbagana.display_weight, 1)
        self.assertEqual(gorbagana.payout_multiplier, Decimal('100'))
        self.assertEqual(banana.display_weight, 8)
        self.assertEqual(banana.payout_multiplier, Decimal('2'))
        self.assertEqual(SYMBOL_TABLE.total_weight, 36)

    def test_by_identity_rejects_out_of_range(self):
        for bad in (-1, 8, 100, True, '1', None):
            with self.subTest(identity=bad):
                with self.assertRaises(UnknownSymbolError):
                    SYMBOL_TABLE.by_identity(bad)

    def test_lookup_falls_back_to_default(self):
        with self.assertLogs('gorbagana.games.symbols', level='WARNING'):
            symbol = SYMBOL_TABLE.lookup(42)
        self.assertEqual(symbol, SYMBOL_TABLE.default)
        self.assertEqual(symbol.name, 'banana')

    def test_by_payout_is_descending(self):
        multipliers = [s.payout_multiplier for s in SYMBOL_TABLE.by_payout()]
        self.assertEqual(multipliers, sorted(multipliers, reverse=True))
        self.assertEqual(SYMBOL_TABLE.by_payout()[0].name, 'gorbagana')

    def test_gap_in_identities_is_rejected(self):
        with self.assertRaises(ValueError):
            SymbolTable([
                Symbol(0, 'a', 'A', 1, Decimal('1')),
                Symbol(2, 'b', 'B', 1, Decimal('1')),
            ], default_identity=0)

    def test_non_positive_weight_is_rejected(self):
        with self.assertRaises(ValueError):
            SymbolTable([Symbol(0, 'a', 'A', 0, Decimal('1'))], default_identity=0)

    def test_symbols_are_immutable(self):
        with self.assertRaises(AttributeError):
            SYMBOL_TABLE.by_identity(0).display_weight = 10


if __name__ == '__main__':
    unittest.main()
