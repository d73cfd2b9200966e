import unittest

import dice
from dice_details import SequenceSource
from dice_errors import TranslationError
from translations import *


class CofdTest(unittest.TestCase):
    def test_default(self):
        self.assertEqual(translate_cofd("5"), "(5)d10er10t8")
        self.assertEqual(translate_cofd("chance"), "1d10t10")

    def test_again(self):
        self.assertEqual(translate_cofd("5+3a9"), "(5+3)d10er[9, 10]t8")
        self.assertEqual(translate_cofd("5m"), "(5)d10t8")

    def test_rote_and_bonus(self):
        self.assertEqual(translate_cofd("4r"), "(4)d10ro[1, 2, 3, 4, 5, 6, 7]er10t8")
        self.assertEqual(translate_cofd("5a8;2"), "(5)d10er[8, 9, 10]t8+(2)")

    def test_unknown(self):
        for command in ("5x", "a9", "5a1", ""):
            with self.assertRaises(TranslationError):
                translate_cofd(command)

    def test_translated_roll(self):
        roll = dice.roll(
            translate_cofd("5+3a9"), source=SequenceSource([9, 1, 2, 3, 4, 5, 6, 7, 8])
        )
        self.assertEqual(roll.result, dice.SuccessValue(2))


class ExaltedTest(unittest.TestCase):
    def test_default(self):
        self.assertEqual(translate_exalted("8"), "(8)d10t[1, 1, 1, 2]")

    def test_options(self):
        self.assertEqual(translate_exalted("8d9"), "(8)d10t[1, 1, 2, 2]")
        self.assertEqual(translate_exalted("8m"), "(8)d10t7")
        self.assertEqual(translate_exalted("8t6"), "(8)d10t[1, 1, 1, 1, 2]")
        self.assertEqual(translate_exalted("8{r1}"), "(8)d10r1t[1, 1, 1, 2]")
        self.assertEqual(translate_exalted("8;3"), "(8)d10t[1, 1, 1, 2]+(3)")

    def test_unknown(self):
        with self.assertRaises(TranslationError):
            translate_exalted("8q")

    def test_translated_roll(self):
        roll = dice.roll(translate_exalted("3"), source=SequenceSource([10, 7, 3]))
        self.assertEqual(roll.result, dice.SuccessValue(3))


class GenesysTest(unittest.TestCase):
    def test_kinds(self):
        self.assertEqual(
            translate_genesys("a2p2 b2 d2 c2 s2"),
            "2d8ga&2d12gp&2d6gb&2d8gd&2d12gc&2d6gs",
        )

    def test_ignores_noise(self):
        self.assertEqual(
            translate_genesys("a2p2 b2  d 2 c2 jkghjhgkuyguygytu s2"),
            "2d8ga&2d12gp&2d6gb&2d8gd&2d12gc&2d6gs",
        )

    def test_unknown(self):
        with self.assertRaises(TranslationError):
            translate_genesys("x3")
        with self.assertRaises(TranslationError):
            translate_genesys("")

    def test_translated_roll(self):
        roll = dice.roll(translate_genesys("b1s1"), source=SequenceSource([4, 3]))
        self.assertEqual(repr(roll.result), "1 advantage")


class StoryShaperTest(unittest.TestCase):
    def test_modifiers(self):
        self.assertEqual(translate_story_shaper("+3"), "2d10+3")
        self.assertEqual(translate_story_shaper("+ 3"), "2d10+3")
        self.assertEqual(translate_story_shaper(""), "2d10")

    def test_unknown(self):
        with self.assertRaises(TranslationError):
            translate_story_shaper("+3$")


class L5rTest(unittest.TestCase):
    def test_roll_and_keep(self):
        self.assertEqual(translate_l5r("6k3"), "6d10ea10k3")
        self.assertEqual(translate_l5r("6k3u"), "6d10k3")
        self.assertEqual(translate_l5r("6k3e"), "6d10ro1ea10k3")
        self.assertEqual(translate_l5r("6k3+5"), "6d10ea10k3+5")

    def test_unknown(self):
        for command in ("6k3q", "6"):
            with self.assertRaises(TranslationError):
                translate_l5r(command)

    def test_translated_roll(self):
        roll = dice.roll(translate_l5r("6k3"), source=SequenceSource([10, 1, 2, 3, 4, 5, 7]))
        self.assertEqual(roll.result, dice.DecimalValue(26))


if __name__ == "__main__":
    unittest.main()
