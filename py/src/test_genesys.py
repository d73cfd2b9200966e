import unittest

import genesys
from dice_details import Die, Pool
from dice_errors import SymbolError
from genesys import Symbol, Tally

S = Symbol.SUCCESS
A = Symbol.ADVANTAGE
TR = Symbol.TRIUMPH
F = Symbol.FAILURE
TH = Symbol.THREAT
DE = Symbol.DESPAIR


class CancelTest(unittest.TestCase):
    def test_opposites_cancel(self):
        self.assertEqual(genesys.cancel([S, F]), [])
        self.assertEqual(genesys.cancel([A, S, TH]), [S])

    def test_never_negative(self):
        tally = Tally([S, F, F])
        self.assertEqual(tally.count(F), 1)
        self.assertEqual(tally.count(S), 0)

    def test_blanks_dropped(self):
        self.assertEqual(genesys.cancel([Symbol.BLANK, A]), [A])

    def test_triumph_and_despair_stay(self):
        tally = Tally([TR, DE, S, F])
        self.assertEqual(tally.count(TR), 1)
        self.assertEqual(tally.count(DE), 1)
        self.assertEqual(repr(tally), "1 triumph, 1 despair")


class TallyTest(unittest.TestCase):
    def test_empty(self):
        tally = Tally([S, F])
        self.assertTrue(tally.is_empty())
        self.assertEqual(repr(tally), "no net symbols")

    def test_display_order(self):
        self.assertEqual(repr(Tally([TR, A, S, S])), "2 success, 1 advantage, 1 triumph")

    def test_add_recancels(self):
        self.assertEqual(Tally([S, S]).add(Tally([F])), Tally([S]))
        self.assertTrue(Tally([A]).add(Tally([TH])).is_empty())

    def test_from_pool(self):
        pool = Pool([Die(12, 12), Die(12, 1)], [(2, 12)])
        tally = Tally.from_pool(genesys.get_kind("p"), pool)
        self.assertEqual(tally, Tally([TR]))
        self.assertEqual(
            genesys.face_symbols(genesys.get_kind("p"), pool), "[12:triumph, 1:blank]"
        )

    def test_unknown_kind(self):
        with self.assertRaises(SymbolError):
            genesys.get_kind("x")


if __name__ == "__main__":
    unittest.main()
