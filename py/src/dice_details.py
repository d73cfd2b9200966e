# Dice primitives.
# Single dice, pools of dice, operator arguments, and where the faces come from.
import random
import typing

import config
from dice_errors import (
    ArgumentRangeError,
    ExpressionError,
    NotANumberError,
    PoolTooLargeError,
)

# Production randomness. Anything with a `randint(a, b)` method can stand in.
# The module-level generator is reseeded in each forked worker process.
DEFAULT_SOURCE = random


# Plays back a fixed list of faces in order.
# Faces outside a die's range are clamped onto it.
class SequenceSource:
    def __init__(self, faces) -> None:
        self.faces = list(faces)
        self.position = 0

    def randint(self, a: int, b: int) -> int:
        if self.position >= len(self.faces):
            raise IndexError(f"Ran out of faces after {len(self.faces)} rolls.")
        face = self.faces[self.position]
        self.position += 1
        return min(max(face, a), b)

    def remaining(self) -> int:
        return len(self.faces) - self.position


def _resolve_source(source):
    return DEFAULT_SOURCE if source is None else source


def check_pool_size(size: int) -> None:
    if size > config.MAX_POOL_SIZE:
        raise PoolTooLargeError(size, config.MAX_POOL_SIZE)


def force_integral(value, description="") -> int:
    if isinstance(value, bool):
        raise ArgumentRangeError(value, 0, config.MAX_ARGUMENT)
    if isinstance(value, int):
        number = value
    elif isinstance(value, float) and value.is_integer():
        number = int(value)
    else:
        raise ArgumentRangeError(
            f"{description} {value}".strip(), 0, config.MAX_ARGUMENT
        )
    if number < 0 or number > config.MAX_ARGUMENT:
        raise ArgumentRangeError(
            f"{description} {value}".strip(), 0, config.MAX_ARGUMENT
        )
    return number


class Die:
    def __init__(self, sides: int, result: int) -> None:
        # zero sides is the no-op sentinel, which always shows 0
        if sides == 0:
            result = 0
        elif result < 1 or result > sides:
            raise ValueError(f"A d{sides} can't show {result}.")
        self.sides = sides
        self.result = result

    @classmethod
    def roll(cls, sides: int, source=None) -> "Die":
        if sides == 0:
            return cls(0, 0)
        return cls(sides, _resolve_source(source).randint(1, sides))

    # Roll this die again in place. Returns the change in its value.
    def reroll(self, source=None) -> int:
        if self.sides == 0:
            return 0
        old = self.result
        self.result = _resolve_source(source).randint(1, self.sides)
        return self.result - old

    def set(self, value: int) -> None:
        if self.sides == 0:
            return
        self.result = min(max(value, 1), self.sides)

    # A fresh die of the same size.
    def explode(self, source=None) -> "Die":
        return Die.roll(self.sides, source)

    # The most recently rolled face, which is what triggers operators.
    def face(self) -> int:
        return self.result

    def copy(self) -> "Die":
        return Die(self.sides, self.result)

    def equals(self, value: int) -> bool:
        return self.result == value

    def equal_or_greater(self, target: int) -> bool:
        return self.result >= target

    def equal_or_less(self, target: int) -> bool:
        return self.result <= target

    def describe(self) -> str:
        return str(self.result)

    def __eq__(self, other):
        if not isinstance(other, Die):
            return NotImplemented
        return self.sides == other.sides and self.result == other.result

    __hash__ = None  # type: ignore

    def __repr__(self):
        return str(self.result)


# A die built up by additive explosion: each part is a rolled face and the
# die's result is their sum.
class CompoundDie(Die):
    def __init__(self, sides: int, parts) -> None:
        self.parts: list[int] = list(parts)
        if not self.parts:
            raise ValueError("A compound die needs at least one rolled face.")
        for part in self.parts:
            if sides != 0 and (part < 1 or part > sides):
                raise ValueError(f"A d{sides} can't show {part}.")
        self.sides = sides
        self.result = sum(self.parts)

    @classmethod
    def from_die(cls, die: Die) -> "CompoundDie":
        if isinstance(die, CompoundDie):
            return cls(die.sides, die.parts)
        return cls(die.sides, [die.result])

    def with_part(self, part: int) -> "CompoundDie":
        return CompoundDie(self.sides, self.parts + [part])

    def reroll(self, source=None) -> int:
        old = self.result
        self.parts = [_resolve_source(source).randint(1, self.sides)]
        self.result = self.parts[0]
        return self.result - old

    def set(self, value: int) -> None:
        self.parts = [min(max(value, 1), self.sides)]
        self.result = self.parts[0]

    def face(self) -> int:
        return self.parts[-1]

    def copy(self) -> "CompoundDie":
        return CompoundDie(self.sides, self.parts)

    def describe(self) -> str:
        if len(self.parts) == 1:
            return str(self.result)
        return "+".join(str(p) for p in self.parts) + f"={self.result}"


# Represents one die as shown in a breakdown.
# Tracks whether an operation dropped it or added it.
class SetElement(typing.NamedTuple):
    item: Die
    dropped: bool = False
    added: bool = False

    def formatted(self, text=None) -> str:
        if text is None:
            text = self.item.describe()
        if self.dropped:  # strikethrough dropped values
            text = f"~~{text}~~"
        if self.added:  # italicize added values
            text = f"_{text}_"
        return text


def format_elements(elements) -> str:
    return "[" + ", ".join(element.formatted() for element in elements) + "]"


# An operand that is either one number or a bracketed list of numbers.
class Argument(typing.NamedTuple):
    values: tuple
    is_array: bool = False

    @staticmethod
    def single(value) -> "Argument":
        return Argument((force_integral(value, "argument"),), False)

    @staticmethod
    def array(values) -> "Argument":
        return Argument(tuple(force_integral(v, "argument") for v in values), True)

    # Parse "3" or "[9, 10]".
    @staticmethod
    def parse(text: str) -> "Argument":
        text = text.strip()
        if text.startswith("[") and text.endswith("]"):
            inner = text[1:-1]
            parts = [p.strip() for p in inner.split(",") if p.strip()]
            if not parts:
                raise ExpressionError("An argument list can't be empty.")
            return Argument.array(_parse_integer(p) for p in parts)
        return Argument.single(_parse_integer(text))

    def scalar(self) -> int:
        if self.is_array:
            raise NotANumberError(f"the list {self}")
        return self.values[0]

    def faces(self) -> set[int]:
        return set(self.values)

    def __str__(self):
        if self.is_array:
            return "[" + ", ".join(str(v) for v in self.values) + "]"
        return str(self.values[0])

    def __repr__(self):
        return f"Argument({self})"


def _parse_integer(text: str):
    try:
        return int(text)
    except ValueError:
        try:
            return float(text)
        except ValueError as err:
            raise ArgumentRangeError(text, 0, config.MAX_ARGUMENT) from err


# An ordered collection of dice, plus the (count, sides) shapes that made it.
# Operations hand back new pools rather than changing this one.
class Pool:
    def __init__(self, dice, shapes) -> None:
        self.dice: list[Die] = list(dice)
        check_pool_size(len(self.dice))
        self.shapes: list[tuple[int, int]] = list(shapes)

    @classmethod
    def roll(cls, counts: Argument, sides: Argument, source=None) -> "Pool":
        count_list = list(counts.values)
        side_list = list(sides.values)
        if counts.is_array and sides.is_array:
            if len(count_list) != len(side_list):
                raise ExpressionError(
                    f"Can't pair dice counts {counts} with sizes {sides}."
                )
        elif counts.is_array:
            side_list = side_list * len(count_list)
        elif sides.is_array:
            count_list = count_list * len(side_list)

        check_pool_size(sum(count_list))
        dice = []
        shapes = []
        for count, size in zip(count_list, side_list):
            shapes.append((count, size))
            for i in range(count):
                dice.append(Die.roll(size, source))
        return cls(dice, shapes)

    def total(self) -> int:
        return sum(die.result for die in self.dice)

    def results(self) -> list[int]:
        return [die.result for die in self.dice]

    def sizes(self) -> set[int]:
        return set(die.sides for die in self.dice)

    def copy(self) -> "Pool":
        return Pool([die.copy() for die in self.dice], self.shapes)

    # A pool with the same shapes holding other dice.
    def with_dice(self, dice) -> "Pool":
        return Pool(dice, self.shapes)

    def merge(self, other: "Pool") -> "Pool":
        return Pool(
            [die.copy() for die in self.dice] + [die.copy() for die in other.dice],
            self.shapes + other.shapes,
        )

    def shape_description(self) -> str:
        return "&".join(f"{count}d{sides}" for count, sides in self.shapes)

    def __len__(self):
        return len(self.dice)

    def __iter__(self):
        return iter(self.dice)

    def __repr__(self):
        return f"{self.shape_description()} -> {self.dice}"
