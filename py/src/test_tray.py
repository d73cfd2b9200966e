import asyncio
import unittest

import dice
from dice_details import SequenceSource
from dice_errors import *
from tray import RollOrder, Tray, TrayRack


class TrayTest(unittest.TestCase):
    def test_eviction(self):
        tray = Tray(capacity=3, source=SequenceSource([1, 2, 3, 4, 5]))
        for _ in range(4):
            tray.add_roll_from_command("1d6")
        rolls = tray.rolls()
        self.assertEqual(len(rolls), 3)
        self.assertEqual(rolls[0].result, dice.DecimalValue(2))
        self.assertEqual(tray.latest().result, dice.DecimalValue(4))
        tray.add_roll_from_command("1d6")
        self.assertEqual(len(tray), 3)

    def test_empty(self):
        tray = Tray()
        with self.assertRaises(RetrieveError):
            tray.latest()
        with self.assertRaises(RetrieveError):
            tray.reroll_latest()
        with self.assertRaises(RetrieveError):
            tray.modify_latest("+1", reviser=1)

    def test_failure_leaves_tray_alone(self):
        tray = Tray(source=SequenceSource([4, 5]))
        tray.add_roll_from_command("1d6", "first", 7)
        with self.assertRaises(OperatorMismatchError):
            tray.add_roll_from_command("1d20+", roller=7)
        self.assertEqual(len(tray), 1)
        self.assertEqual(tray.latest().comment, "first")

    def test_repeats(self):
        tray = Tray(capacity=3, source=SequenceSource([1, 2, 3, 4]))
        tray.add_roll_from_command("1d6", "", 7)
        rolls = tray.add_rolls_from_command("1d6", "init", 7, repeat=3)
        self.assertEqual([r.result for r in rolls], [dice.DecimalValue(n) for n in (2, 3, 4)])
        self.assertEqual(tray.rolls(), rolls)

    def test_repeats_are_all_or_nothing(self):
        tray = Tray(source=SequenceSource([5, 1, 1, 3, 4, 200, 200]))
        tray.add_roll_from_command("1d6", "first", 7)
        with self.assertRaises(ArgumentRangeError):
            tray.add_rolls_from_command("(2d200)d6", "", 7, repeat=2)
        self.assertEqual(len(tray), 1)
        self.assertEqual(tray.latest().comment, "first")

    def test_reroll_latest(self):
        tray = Tray(source=SequenceSource([4, 6]))
        first = tray.add_roll_from_command("1d6", "stealth", 7)
        second = tray.reroll_latest()
        self.assertEqual(len(tray), 2)
        self.assertEqual(second.command, first.command)
        self.assertEqual(second.comment, "stealth")
        self.assertEqual(second.owner, 7)
        self.assertEqual(second.result, dice.DecimalValue(6))
        self.assertEqual(first.result, dice.DecimalValue(4))

    def test_modify_latest(self):
        tray = Tray(source=SequenceSource([15, 12]))
        tray.add_roll_from_command("1d20+5", "to hit", 7)
        revised = tray.modify_latest("+2", "", 7)
        self.assertEqual(revised.command, "1d20+5+2")
        self.assertEqual(revised.comment, "to hit")
        self.assertEqual(revised.result, dice.DecimalValue(19))
        self.assertEqual(len(tray), 2)

    def test_modify_latest_new_comment(self):
        tray = Tray(source=SequenceSource([15, 12]))
        tray.add_roll_from_command("1d20+5", "to hit", 7)
        revised = tray.modify_latest("+2", "with bless", 7)
        self.assertEqual(revised.comment, "with bless")

    def test_orders(self):
        tray = Tray(source=SequenceSource([15]))
        tray.add_roll_from_command("1d20+5", "to hit", 7)
        self.assertEqual(tray.reroll_order(), RollOrder("1d20+5", "to hit", 7))
        self.assertEqual(tray.revision_order("+2", "", 7), RollOrder("1d20+5+2", "to hit", 7))
        self.assertEqual(tray.revision_order(" +D4", "bless", 7).command, "1d20+5 +D4")
        self.assertEqual(len(tray), 1)

    def test_modify_latest_permission(self):
        tray = Tray(source=SequenceSource([15, 12]))
        tray.add_roll_from_command("1d20+5", "to hit", 7)
        with self.assertRaises(RevisePermissionError):
            tray.modify_latest("+2", "", 8)
        self.assertEqual(len(tray), 1)

    def test_capacity(self):
        with self.assertRaises(ValueError):
            Tray(capacity=0)


class TrayRackTest(unittest.IsolatedAsyncioTestCase):
    async def test_scopes(self):
        rack = TrayRack(capacity=2, source=SequenceSource([1, 2, 3]))
        async with rack.open(1) as tray:
            tray.add_roll_from_command("1d6")
        async with rack.open(1) as tray:
            self.assertEqual(len(tray), 1)
        async with rack.open(2) as tray:
            self.assertEqual(len(tray), 0)
            self.assertEqual(tray.capacity, 2)

    async def test_scope_is_exclusive(self):
        rack = TrayRack()
        order = []

        async def hold(name):
            async with rack.open(1):
                order.append(f"{name} in")
                await asyncio.sleep(0.01)
                order.append(f"{name} out")

        await asyncio.gather(hold("a"), hold("b"))
        self.assertEqual(order, ["a in", "a out", "b in", "b out"])


if __name__ == "__main__":
    unittest.main()
