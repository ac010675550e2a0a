import random
import unittest
from collections import Counter

from gorbagana.games.sampler import WeightedSampler
from gorbagana.games.symbols import SYMBOL_TABLE


class TestWeightedSampler(unittest.TestCase):

    def test_pool_replicates_each_symbol_by_weight(self):
        sampler = WeightedSampler(SYMBOL_TABLE, random.Random(1))
        self.assertEqual(sampler.pool_size, SYMBOL_TABLE.total_weight)

    def test_frequencies_converge_to_weights(self):
        sampler = WeightedSampler(SYMBOL_TABLE, random.Random(20240601))
        trials = 72000
        counts = Counter(sampler.sample().identity for _ in range(trials))

        for symbol in SYMBOL_TABLE.all():
            expected = symbol.display_weight / SYMBOL_TABLE.total_weight
            observed = counts[symbol.identity] / trials
            with self.subTest(symbol=symbol.name):
                self.assertAlmostEqual(observed, expected, delta=0.01)

    def test_seeded_source_is_deterministic(self):
        a = WeightedSampler(SYMBOL_TABLE, random.Random(7))
        b = WeightedSampler(SYMBOL_TABLE, random.Random(7))
        self.assertEqual([a.sample() for _ in range(50)], [b.sample() for _ in range(50)])

    def test_sample_grid_shape(self):
        sampler = WeightedSampler(SYMBOL_TABLE, random.Random(3))
        grid = sampler.sample_grid()
        self.assertEqual(len(grid), 3)
        self.assertTrue(all(len(row) == 3 for row in grid))
        self.assertTrue(all(0 <= identity < len(SYMBOL_TABLE) for row in grid for identity in row))


if __name__ == '__main__':
    unittest.main()
