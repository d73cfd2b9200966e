# Genesys narrative dice.
# Each die kind maps its faces to a few symbols; opposing symbols cancel.
import enum
import typing
from collections import Counter

from dice_details import Die, Pool
from dice_errors import SymbolError


class Symbol(enum.Enum):
    SUCCESS = "success"
    ADVANTAGE = "advantage"
    TRIUMPH = "triumph"
    FAILURE = "failure"
    THREAT = "threat"
    DESPAIR = "despair"
    BLANK = "blank"


# Triumph and despair are missing on purpose: they never cancel.
OPPOSITES = {
    Symbol.SUCCESS: Symbol.FAILURE,
    Symbol.FAILURE: Symbol.SUCCESS,
    Symbol.ADVANTAGE: Symbol.THREAT,
    Symbol.THREAT: Symbol.ADVANTAGE,
}

S = Symbol.SUCCESS
A = Symbol.ADVANTAGE
TR = Symbol.TRIUMPH
F = Symbol.FAILURE
TH = Symbol.THREAT
DE = Symbol.DESPAIR


class DieKind(typing.NamedTuple):
    letter: str
    name: str
    sides: int
    faces: dict  # face -> tuple of symbols; unlisted faces are blank

    def symbols(self, die: Die) -> list[Symbol]:
        return list(self.faces.get(die.result, (Symbol.BLANK,)))


# fmt: off
KINDS = {
    "b": DieKind("b", "boost", 6, {
        3: (S,), 4: (S, A), 5: (A, A), 6: (A,),
    }),
    "s": DieKind("s", "setback", 6, {
        3: (F,), 4: (F,), 5: (TH,), 6: (TH,),
    }),
    "a": DieKind("a", "ability", 8, {
        2: (S,), 3: (S,), 4: (S, S), 5: (A,), 6: (A,), 7: (S, A), 8: (A, A),
    }),
    "d": DieKind("d", "difficulty", 8, {
        2: (F,), 3: (F, F), 4: (TH,), 5: (TH,), 6: (TH,), 7: (TH, TH), 8: (F, TH),
    }),
    "p": DieKind("p", "proficiency", 12, {
        2: (S,), 3: (S,), 4: (S, S), 5: (S, S), 6: (A,), 7: (S, A), 8: (S, A),
        9: (S, A), 10: (A, A), 11: (A, A), 12: (TR,),
    }),
    "c": DieKind("c", "challenge", 12, {
        2: (F,), 3: (F,), 4: (F, F), 5: (F, F), 6: (TH,), 7: (TH,), 8: (F, TH),
        9: (F, TH), 10: (TH, TH), 11: (TH, TH), 12: (DE,),
    }),
}
# fmt: on


def get_kind(letter: str) -> DieKind:
    try:
        return KINDS[letter]
    except KeyError:
        raise SymbolError(f"g{letter}") from None


# Cancel opposing symbols one for one. A symbol cancels the most recent
# unmatched occurrence of its opposite. Blanks are dropped.
def cancel(symbols) -> list[Symbol]:
    kept: list[Symbol] = []
    for symbol in symbols:
        if symbol is Symbol.BLANK:
            continue
        opposite = OPPOSITES.get(symbol)
        if opposite is not None and opposite in kept:
            last = len(kept) - 1 - kept[::-1].index(opposite)
            del kept[last]
        else:
            kept.append(symbol)
    return kept


# The net symbols of a roll, as symbol -> count.
class Tally:
    def __init__(self, symbols=()) -> None:
        self.counts: Counter = Counter(cancel(symbols))

    @classmethod
    def from_pool(cls, kind: DieKind, pool: Pool) -> "Tally":
        symbols = []
        for die in pool.dice:
            symbols.extend(kind.symbols(die))
        return cls(symbols)

    # Symbols in display order, repeated by count.
    def expand(self) -> list[Symbol]:
        out = []
        for symbol in Symbol:
            out.extend([symbol] * self.counts.get(symbol, 0))
        return out

    def add(self, other: "Tally") -> "Tally":
        return Tally(self.expand() + other.expand())

    def count(self, symbol: Symbol) -> int:
        return self.counts.get(symbol, 0)

    def is_empty(self) -> bool:
        return sum(self.counts.values()) == 0

    def __eq__(self, other):
        if not isinstance(other, Tally):
            return NotImplemented
        return +self.counts == +other.counts

    __hash__ = None  # type: ignore

    def __repr__(self):
        if self.is_empty():
            return "no net symbols"
        return ", ".join(
            f"{self.counts[symbol]} {symbol.value}"
            for symbol in Symbol
            if self.counts.get(symbol, 0) > 0
        )


# How each die of a pool reads as symbols, for breakdowns.
def face_symbols(kind: DieKind, pool: Pool) -> str:
    parts = []
    for die in pool.dice:
        names = "+".join(symbol.value for symbol in kind.symbols(die))
        parts.append(f"{die.result}:{names}")
    return "[" + ", ".join(parts) + "]"
