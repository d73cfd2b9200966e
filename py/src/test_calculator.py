import math
import unittest

import calculator
from dice_errors import *


class CalculatorTest(unittest.TestCase):
    def assertCalcEquals(self, expression, expected):
        self.assertAlmostEqual(calculator.evaluate(expression), expected)

    def test_precedence(self):
        self.assertCalcEquals("3+4*2/(1-5)^2^3", 3.0001220703125)
        self.assertCalcEquals("-3^2", -9)

    def test_operators(self):
        self.assertCalcEquals("2 × 3", 6)
        self.assertCalcEquals("2x3", 6)
        self.assertCalcEquals("7 ÷ 2", 3.5)
        self.assertCalcEquals("2**10", 1024)
        self.assertCalcEquals("7%3", 1)

    def test_constants(self):
        self.assertCalcEquals("pi", math.pi)
        self.assertCalcEquals("π*2", 2 * math.pi)

    def test_functions(self):
        self.assertCalcEquals("sin(0)", 0)
        self.assertCalcEquals("cos(pi)", -1)
        self.assertCalcEquals("ln(1)", 0)
        self.assertCalcEquals("log(1000)", 3)
        self.assertCalcEquals("abs(-3)", 3)
        self.assertCalcEquals("floor(2.7)", 2)
        self.assertCalcEquals("ceil(2.1)", 3)
        self.assertCalcEquals("asinh(0)", 0)
        self.assertCalcEquals("sqrt(16)+sqrt(9)", 7)

    def test_rejects_dice(self):
        for expression in ("1d6", "2&3", "4k3"):
            with self.assertRaises(SymbolError):
                calculator.evaluate(expression)

    def test_errors(self):
        with self.assertRaises(MathDomainError):
            calculator.evaluate("1/0")
        with self.assertRaises(MathDomainError):
            calculator.evaluate("acos(2)")
        with self.assertRaises(InputError):
            calculator.evaluate("")

    def test_overflow(self):
        for expression in (
            "2^1023+2^1023",
            "(2^1023+2^1023)-(2^1023+2^1023)",
            "-(2^1023)-2^1023",
            "1" + "0" * 400,
        ):
            with self.assertRaises(MathDomainError):
                calculator.evaluate(expression)

    def test_calculate_formatting(self):
        self.assertEqual(calculator.calculate("1+1"), "`1+1` ⇒ **2**")
        self.assertTrue(calculator.calculate("1d6").startswith("Calculation error."))


if __name__ == "__main__":
    unittest.main()
