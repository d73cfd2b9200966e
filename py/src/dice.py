# Dicerolling.
# Tokenizer, shunting-yard transformer, and stack evaluator for dice roll inputs.
import logging
import math
import re
import typing
from datetime import datetime, timezone

import config
import dice_ops
import genesys
from dice_details import Argument, Pool, format_elements, force_integral
from dice_errors import *
from utils import codeblock, escape

log = logging.getLogger(__name__)

FUNCTIONS = {
    "asinh": math.asinh,
    "acosh": math.acosh,
    "atanh": math.atanh,
    "asin": math.asin,
    "acos": math.acos,
    "atan": math.atan,
    "sinh": math.sinh,
    "cosh": math.cosh,
    "tanh": math.tanh,
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "sqrt": math.sqrt,
    "abs": abs,
    "floor": math.floor,
    "ceil": math.ceil,
    "log": math.log10,
    "ln": math.log,
}
# longest names first so "asinh" isn't read as "asin"
FUNCTION_PATTERN = "|".join(sorted(FUNCTIONS, key=len, reverse=True))

# fmt: off
TOKEN_SPEC = [
    ("ARRAY",    r"\[[\d.,]*\]"),               # Bracketed argument lists
    ("NUMBER",   r"\d+(?:\.\d*)?|\.\d+"),       # Integer or decimal number
    ("CONSTANT", r"pi|π"),                      # Constants
    ("FUNCTION", FUNCTION_PATTERN),             # Named functions
    ("OP",       r"\*\*|[+\-*x×/÷%^&]"),        # Arithmetic and pool merge
    ("PAREN",    r"[(){}]"),                    # Grouping
    ("GENESYS",  r"g[bsadpc]"),                 # Genesys die kinds
    ("DICE",     r"d"),                         # Diceroll operator
    ("KEEP",     r"k[hle]?"),                   # Keep high/low/exact
    ("REROLL",   r"r[obwr]?"),                  # Reroll once/better/worse/recursive
    ("EXPLODE",  r"e[oar]?"),                   # Explode once/additive/recursive
    ("TARGET",   r"[tb]"),                      # Target number or botch number
    ("SKIP",     r"\s+"),                       # Skip over whitespace
    ("MISMATCH", r"."),                         # Any other character
]
TOKEN_PATTERN = re.compile(
    '|'.join(f"(?P<{pair[0]}>{pair[1]})" for pair in TOKEN_SPEC))
# fmt: on

# Token kinds the math calculator refuses.
DICE_KINDS = ("ARRAY", "GENESYS", "DICE", "KEEP", "REROLL", "EXPLODE", "TARGET")

# symbol: (precedence, right associative)
PRECEDENCE = {
    "&": (3, False),
    "+": (4, False),
    "-": (4, False),
    "*": (5, False),
    "x": (5, False),
    "×": (5, False),
    "/": (5, False),
    "÷": (5, False),
    "%": (5, False),
    "^": (6, True),
    "**": (6, True),
}
NEGATE = "neg"
NEGATE_PRECEDENCE = (6, True)
FUNCTION_PRECEDENCE = 7
CHAINING_PRECEDENCE = 10

ARITHMETICS = {
    "*": lambda x, y: x * y,
    "x": lambda x, y: x * y,
    "×": lambda x, y: x * y,
    "/": lambda x, y: x / y,
    "÷": lambda x, y: x / y,
    "%": lambda x, y: x % y,
    "^": lambda x, y: math.pow(x, y),
    "**": lambda x, y: math.pow(x, y),
}

PAREN_PAIRS = {")": "(", "}": "{"}

SUB_MODE_DEFAULTS = {"k": "h", "r": "o", "e": "o"}


def format_number(number) -> str:
    if isinstance(number, float) and number.is_integer():
        return str(int(number))
    return str(number)


class RollValue:
    def to_decimal(self) -> float:
        raise NotANumberError(self)

    def add(self, other: "RollValue") -> "RollValue":
        raise NotImplementedError("Addition missing for this value.")

    def negate(self) -> "RollValue":
        raise NotANumberError(self)

    def subtract(self, other: "RollValue") -> "RollValue":
        return self.add(other.negate())


class DecimalValue(RollValue):
    def __init__(self, number) -> None:
        self.number = _check_number(float(number))

    def to_decimal(self) -> float:
        return self.number

    def add(self, other):
        return DecimalValue(self.number + other.to_decimal())

    def negate(self):
        return DecimalValue(-self.number)

    def __eq__(self, other):
        if isinstance(other, DecimalValue):
            return self.number == other.number
        return NotImplemented

    __hash__ = None  # type: ignore

    def __repr__(self):
        return format_number(self.number)


class SuccessValue(RollValue):
    def __init__(self, count: int) -> None:
        self.count = int(count)

    def to_decimal(self) -> float:
        return float(self.count)

    def add(self, other):
        if isinstance(other, SuccessValue):
            return SuccessValue(self.count + other.count)
        return DecimalValue(self.count + other.to_decimal())

    def negate(self):
        return SuccessValue(-self.count)

    def __eq__(self, other):
        if isinstance(other, SuccessValue):
            return self.count == other.count
        return NotImplemented

    __hash__ = None  # type: ignore

    def __repr__(self):
        return f"{self.count} success" + ("es" if abs(self.count) != 1 else "")


class GenesysValue(RollValue):
    def __init__(self, tally: genesys.Tally) -> None:
        self.tally = tally

    def add(self, other):
        if not isinstance(other, GenesysValue):
            raise NotANumberError(self)
        return GenesysValue(self.tally.add(other.tally))

    def __eq__(self, other):
        if isinstance(other, GenesysValue):
            return self.tally == other.tally
        return NotImplemented

    __hash__ = None  # type: ignore

    def __repr__(self):
        return repr(self.tally)


def _check_number(number) -> float:
    if isinstance(number, complex) or math.isnan(number) or math.isinf(number):
        raise MathDomainError(f"That math doesn't come out to a real number.")
    return number


# Base token. Tokens that can sit on the evaluation stack override
# value(), argument() and pool().
class Token:
    symbol = ""

    def is_chaining(self) -> bool:
        return False

    def value(self) -> RollValue:
        raise NotANumberError(self.describe())

    def argument(self) -> Argument:
        return Argument.single(force_integral(self.value().to_decimal(), "argument"))

    def pool(self) -> Pool:
        raise MissingPoolError(self.describe())

    def describe(self) -> str:
        return self.symbol

    def __repr__(self):
        return self.describe()


class ArgumentToken(Token):
    def __init__(self, argument: Argument) -> None:
        self.arg = argument
        self.symbol = str(argument)

    def value(self) -> RollValue:
        return DecimalValue(self.arg.scalar())

    def argument(self) -> Argument:
        return self.arg


class Number(Token):
    def __init__(self, value: RollValue, symbol=None) -> None:
        self._value = value
        self.symbol = symbol if symbol is not None else repr(value)

    def value(self) -> RollValue:
        return self._value


class Paren(Token):
    def __init__(self, symbol: str) -> None:
        self.symbol = symbol

    def is_opening(self) -> bool:
        return self.symbol in ("(", "{")


class MathOperator(Token):
    def __init__(self, symbol: str) -> None:
        self.symbol = symbol
        if symbol == NEGATE:
            self.precedence, self.right_assoc = NEGATE_PRECEDENCE
            self.arity = 1
        else:
            self.precedence, self.right_assoc = PRECEDENCE[symbol]
            self.arity = 2
        self.operands: list[Token] = []
        self.outcome: Token | None = None

    def is_unary(self) -> bool:
        return self.arity == 1

    def resolve(self, *operands: Token) -> "MathOperator":
        resolved = MathOperator(self.symbol)
        resolved.operands = list(operands)
        resolved.outcome = resolved._compute()
        return resolved

    def _compute(self) -> Token:
        if self.is_unary():
            return Number(self.operands[0].value().negate())
        left, right = self.operands
        if self.symbol == "&":
            if _is_raw_pool(left) and _is_raw_pool(right):
                return DiceToken(left.pool().merge(right.pool()))
            return Number(left.value().add(right.value()))
        if self.symbol == "+":
            return Number(left.value().add(right.value()))
        if self.symbol == "-":
            return Number(left.value().subtract(right.value()))
        x = left.value().to_decimal()
        y = right.value().to_decimal()
        try:
            number = ARITHMETICS[self.symbol](x, y)
        except (ZeroDivisionError, OverflowError, ValueError) as err:
            raise MathDomainError(
                f"Can't compute {format_number(x)} {self.symbol} {format_number(y)}: {err}"
            ) from err
        return Number(DecimalValue(_check_number(number)))

    def describe(self) -> str:
        if self.outcome is None:
            return "-" if self.is_unary() else self.symbol
        result = self.outcome.describe() if self.symbol == "&" else repr(self.outcome.value())
        if self.is_unary():
            return f"-({self.operands[0].value()!r}) = {result}"
        left, right = self.operands
        if isinstance(self.outcome, DiceToken):
            return f"& {result}"
        return f"{left.value()!r} {self.symbol} {right.value()!r} = {result}"


class Function(Token):
    def __init__(self, name: str) -> None:
        self.symbol = name
        self.func = FUNCTIONS[name]
        self.operand: Token | None = None
        self.result: RollValue | None = None

    def resolve(self, operand: Token) -> "Function":
        resolved = Function(self.symbol)
        resolved.operand = operand
        x = operand.value().to_decimal()
        try:
            number = float(self.func(x))
        except (ValueError, OverflowError) as err:
            raise MathDomainError(f"Can't compute {self.symbol}({format_number(x)}).") from err
        resolved.result = DecimalValue(_check_number(number))
        return resolved

    def value(self) -> RollValue:
        if self.result is None:
            raise NotResolvedError(self.symbol)
        return self.result

    def describe(self) -> str:
        if self.operand is None:
            return self.symbol
        return f"{self.symbol}({self.operand.value()!r}) = {self.result!r}"


# A pending `d` until resolve() rolls its pool.
class DiceToken(Token):
    symbol = "d"

    def __init__(self, rolled: Pool | None = None) -> None:
        self.rolled = rolled

    def is_chaining(self) -> bool:
        return True

    def resolve(self, counts: Argument, sides: Argument, source=None) -> "DiceToken":
        return DiceToken(Pool.roll(counts, sides, source))

    def pool(self) -> Pool:
        if self.rolled is None:
            raise NotResolvedError("a dice pool")
        return self.rolled

    def value(self) -> RollValue:
        return DecimalValue(self.pool().total())

    def describe(self) -> str:
        if self.rolled is None:
            return self.symbol
        return repr(self.rolled)


def _is_raw_pool(token: Token) -> bool:
    return isinstance(token, (DiceToken, PoolOperator))


def _scalar(argument: Argument) -> int:
    return argument.scalar()


# mode -> (label, algorithm)
POOL_OPERATIONS = {
    "kh": ("keep highest", lambda pool, arg, src, cap: dice_ops.keep_high(pool, _scalar(arg))),
    "kl": ("keep lowest", lambda pool, arg, src, cap: dice_ops.keep_low(pool, _scalar(arg))),
    "ke": ("keep exactly", lambda pool, arg, src, cap: dice_ops.keep_exact(pool, arg.faces())),
    "eo": ("explode once", lambda pool, arg, src, cap: dice_ops.explode_once(pool, arg.faces(), src)),
    "er": ("explode", lambda pool, arg, src, cap: dice_ops.explode_recursive(pool, arg.faces(), src, cap)),
    "ea": ("explode additively", lambda pool, arg, src, cap: dice_ops.explode_additive(pool, arg.faces(), src, cap)),
    "ro": ("reroll once", lambda pool, arg, src, cap: dice_ops.reroll_once(pool, arg.faces(), src)),
    "rr": ("reroll recursively", lambda pool, arg, src, cap: dice_ops.reroll_recursive(pool, arg.faces(), src, cap)),
    "rb": ("reroll keeping better", lambda pool, arg, src, cap: dice_ops.reroll_better(pool, arg.faces(), src)),
    "rw": ("reroll keeping worse", lambda pool, arg, src, cap: dice_ops.reroll_worse(pool, arg.faces(), src)),
}


# Keep, explode, or reroll. Takes a pool on the left and an argument on the right.
class PoolOperator(Token):
    def __init__(self, symbol: str) -> None:
        self.symbol = symbol
        family = symbol[0]
        sub_mode = symbol[1:] or SUB_MODE_DEFAULTS[family]
        self.mode = family + sub_mode
        self.label = POOL_OPERATIONS[self.mode][0]
        self.arg: Argument | None = None
        self.change: dice_ops.PoolChange | None = None

    def is_chaining(self) -> bool:
        return True

    def resolve(
        self, pool: Pool, argument: Argument, source=None, max_generations=None
    ) -> "PoolOperator":
        resolved = PoolOperator(self.symbol)
        resolved.arg = argument
        algorithm = POOL_OPERATIONS[self.mode][1]
        resolved.change = algorithm(pool, argument, source, max_generations)
        return resolved

    def pool(self) -> Pool:
        if self.change is None:
            raise NotResolvedError(self.label)
        return self.change.pool

    def value(self) -> RollValue:
        return DecimalValue(self.pool().total())

    def describe(self) -> str:
        if self.change is None:
            return self.symbol
        return f"{self.symbol}{self.arg} -> {format_elements(self.change.elements)} = {self.pool().total()}"


# Target or botch. Converts a pool into a signed count of successes.
class Conversion(Token):
    def __init__(self, symbol: str) -> None:
        self.symbol = symbol
        self.arg: Argument | None = None
        self.source_pool: Pool | None = None
        self.count: dice_ops.Count | None = None
        self.successes: int | None = None

    def is_chaining(self) -> bool:
        return True

    def resolve(self, operand: Token, argument: Argument) -> "Conversion":
        resolved = Conversion(self.symbol)
        resolved.arg = argument
        resolved.source_pool = operand.pool()
        # a second conversion adds onto the first one's count
        base = operand.successes if isinstance(operand, Conversion) else 0
        if self.symbol == "t":
            resolved.count = dice_ops.count_successes(resolved.source_pool, argument)
        else:
            resolved.count = dice_ops.count_botches(resolved.source_pool, argument)
        resolved.successes = base + resolved.count.value
        return resolved

    def pool(self) -> Pool:
        if self.source_pool is None:
            raise NotResolvedError("a success count")
        return self.source_pool

    def value(self) -> RollValue:
        if self.successes is None:
            raise NotResolvedError("a success count")
        return SuccessValue(self.successes)

    def describe(self) -> str:
        if self.count is None:
            return self.symbol
        return f"{self.symbol}{self.arg} -> {format_elements(self.count.elements)} = {self.value()!r}"


# Reads a pool as Genesys dice of one kind.
class GenesysToken(Token):
    def __init__(self, kind: str) -> None:
        self.symbol = "g" + kind
        self.kind = genesys.get_kind(kind)
        self.source_pool: Pool | None = None
        self.tally: genesys.Tally | None = None

    def is_chaining(self) -> bool:
        return True

    def resolve(self, operand: Token) -> "GenesysToken":
        resolved = GenesysToken(self.kind.letter)
        resolved.source_pool = operand.pool()
        resolved.tally = genesys.Tally.from_pool(self.kind, resolved.source_pool)
        return resolved

    def pool(self) -> Pool:
        if self.source_pool is None:
            raise NotResolvedError(f"{self.kind.name} dice")
        return self.source_pool

    def value(self) -> RollValue:
        if self.tally is None:
            raise NotResolvedError(f"{self.kind.name} dice")
        return GenesysValue(self.tally)

    def describe(self) -> str:
        if self.tally is None:
            return self.symbol
        return f"{self.kind.name} -> {genesys.face_symbols(self.kind, self.pool())} = {self.tally!r}"


# Whether a `+`, `-` or `d` at this point has nothing on its left.
def _expects_operand(previous: Token | None) -> bool:
    if previous is None:
        return True
    if isinstance(previous, (MathOperator, Function)):
        return True
    return isinstance(previous, Paren) and previous.is_opening()


def _number_token(text: str) -> Token:
    number = float(text)
    if math.isinf(number):
        raise MathDomainError(f"{text[:12]}... is too big a number.")
    if "." not in text and number <= config.MAX_ARGUMENT:
        return ArgumentToken(Argument.single(int(text)))
    return Number(DecimalValue(number), symbol=text)


# Split an input string into typed tokens.
def tokenize(intext: str, math_only: bool = False) -> list[Token]:
    text = "".join(intext.split())
    tokens: list[Token] = []

    for item in TOKEN_PATTERN.finditer(text):
        kind = item.lastgroup  # group name
        value = item.group()
        previous = tokens[-1] if tokens else None

        if kind == "SKIP":
            continue
        if kind == "MISMATCH" or (math_only and kind in DICE_KINDS):
            raise SymbolError(value)

        if kind == "ARRAY":
            tokens.append(ArgumentToken(Argument.parse(value)))
        elif kind == "NUMBER":
            tokens.append(_number_token(value))
        elif kind == "CONSTANT":
            tokens.append(Number(DecimalValue(math.pi), symbol=value))
        elif kind == "FUNCTION":
            tokens.append(Function(value))
        elif kind == "OP":
            if value == "&" and math_only:
                raise SymbolError(value)
            if value in ("+", "-") and _expects_operand(previous):
                # unary plus changes nothing
                if value == "-":
                    tokens.append(MathOperator(NEGATE))
                continue
            tokens.append(MathOperator(value))
        elif kind == "PAREN":
            tokens.append(Paren(value))
        elif kind == "DICE":
            # a leading `d` rolls one die
            if _expects_operand(previous):
                tokens.append(ArgumentToken(Argument.single(1)))
            tokens.append(DiceToken())
        elif kind in ("KEEP", "REROLL", "EXPLODE"):
            tokens.append(PoolOperator(value))
        elif kind == "TARGET":
            tokens.append(Conversion(value))
        elif kind == "GENESYS":
            tokens.append(GenesysToken(value[1]))
    return tokens


def _should_pop(top: Token, incoming: MathOperator) -> bool:
    if isinstance(top, Paren):
        return False
    if top.is_chaining():
        top_precedence = CHAINING_PRECEDENCE
    elif isinstance(top, Function):
        top_precedence = FUNCTION_PRECEDENCE
    else:
        top_precedence = top.precedence  # type: ignore
    if incoming.right_assoc:
        return top_precedence > incoming.precedence
    return top_precedence >= incoming.precedence


# Shunting-yard: reorder infix tokens into postfix.
# Dice, operators, and conversions chain left to right, so `4d6r1k3`
# rolls, then rerolls, then keeps.
def to_postfix(tokens: list[Token]) -> list[Token]:
    output: list[Token] = []
    stack: list[Token] = []

    for token in tokens:
        if isinstance(token, (ArgumentToken, Number)):
            output.append(token)
        elif isinstance(token, Function):
            stack.append(token)
        elif token.is_chaining():
            while stack and stack[-1].is_chaining():
                output.append(stack.pop())
            stack.append(token)
        elif isinstance(token, MathOperator):
            if not token.is_unary():
                while stack and _should_pop(stack[-1], token):
                    output.append(stack.pop())
            stack.append(token)
        elif isinstance(token, Paren) and token.is_opening():
            stack.append(token)
        elif isinstance(token, Paren):
            while stack and not isinstance(stack[-1], Paren):
                output.append(stack.pop())
            if not stack:
                raise ExpressionError(f"Found <{token.symbol}> without a matching opener.")
            opener = stack.pop()
            if opener.symbol != PAREN_PAIRS[token.symbol]:
                raise ExpressionError(f"<{opener.symbol}> was closed by <{token.symbol}>.")
            if stack and isinstance(stack[-1], Function):
                output.append(stack.pop())
        else:
            raise ExpressionError(f"Unexpected token <{token}>.")

    while stack:
        top = stack.pop()
        if isinstance(top, Paren):
            raise ExpressionError(f"<{top.symbol}> was never closed.")
        output.append(top)
    log.debug(f"Postfix: {output}")
    return output


def _pop(stack: list[Token], error: RollError) -> Token:
    if not stack:
        raise error
    return stack.pop()


# Stack machine over postfix tokens. Returns the log of resolved operations
# and the single token left on the stack.
def evaluate(
    postfix: list[Token], source=None, max_generations=None
) -> tuple[list[Token], Token]:
    stack: list[Token] = []
    operations: list[Token] = []

    for token in postfix:
        if isinstance(token, (ArgumentToken, Number)):
            stack.append(token)
            continue

        if isinstance(token, MathOperator):
            mismatch = OperatorMismatchError("-" if token.is_unary() else token.symbol)
            if token.is_unary():
                resolved = token.resolve(_pop(stack, mismatch))
            else:
                right = _pop(stack, mismatch)
                left = _pop(stack, mismatch)
                resolved = token.resolve(left, right)
            operations.append(resolved)
            stack.append(resolved.outcome)  # type: ignore
        elif isinstance(token, Function):
            resolved = token.resolve(_pop(stack, FnMismatchError(token.symbol)))
            operations.append(resolved)
            stack.append(Number(resolved.value()))
        elif isinstance(token, DiceToken):
            mismatch = OperatorMismatchError(token.symbol)
            right = _pop(stack, mismatch)
            left = _pop(stack, mismatch)
            resolved = token.resolve(left.argument(), right.argument(), source)
            operations.append(resolved)
            stack.append(resolved)
        elif isinstance(token, PoolOperator):
            mismatch = OperatorMismatchError(token.symbol)
            right = _pop(stack, mismatch)
            left = _pop(stack, mismatch)
            resolved = token.resolve(
                left.pool(), right.argument(), source, max_generations
            )
            operations.append(resolved)
            stack.append(resolved)
        elif isinstance(token, Conversion):
            mismatch = OperatorMismatchError(token.symbol)
            right = _pop(stack, mismatch)
            left = _pop(stack, mismatch)
            resolved = token.resolve(left, right.argument())
            operations.append(resolved)
            stack.append(resolved)
        elif isinstance(token, GenesysToken):
            resolved = token.resolve(_pop(stack, OperatorMismatchError(token.symbol)))
            operations.append(resolved)
            stack.append(resolved)
        else:
            raise ExpressionError(f"Unexpected token <{token}> in postfix input.")

    if len(stack) != 1:
        raise TrailingTokensError(len(stack))
    return operations, stack[0]


def evaluate_string(
    infix: str, source=None, max_generations=None
) -> tuple[list[Token], Token]:
    return evaluate(to_postfix(tokenize(infix)), source, max_generations)


# A finished roll. Never changed after it's made.
class Roll(typing.NamedTuple):
    command: str
    comment: str
    operations: tuple
    result: RollValue
    owner: typing.Any
    timestamp: datetime


def roll(formula: str, comment: str = "", owner=None, source=None) -> Roll:
    if len(formula.strip()) < 1:
        raise InputError("Roll formula is empty.")
    operations, final = evaluate_string(formula, source)
    return Roll(
        command=formula,
        comment=comment,
        operations=tuple(operations),
        result=final.value(),
        owner=owner,
        timestamp=datetime.now(timezone.utc),
    )


# Roll the same formula `repeat` times. Either every roll succeeds or the
# first error propagates and nothing is returned. Runs in a worker process.
def roll_many(
    formula: str, comment: str = "", owner=None, repeat: int = 1, source=None
) -> tuple[Roll, ...]:
    return tuple(roll(formula, comment, owner, source) for _ in range(repeat))


# A roll request split into its decorations: `N#` repeats, `:comment`.
class RollRequest(typing.NamedTuple):
    repeat: int
    command: str
    comment: str


REPEAT_PATTERN = re.compile(rf"^\s*(\d+)\s*{re.escape(config.REPEAT_SEPARATOR)}")


def parse_roll_input(text: str) -> RollRequest:
    command, _, comment = text.partition(config.COMMENT_SEPARATOR)
    repeat = 1
    match = REPEAT_PATTERN.match(command)
    if match:
        repeat = int(match.group(1))
        command = command[match.end() :]
        if repeat < 1 or repeat > config.TRAY_CAPACITY:
            raise InputError(
                f"Can repeat a roll 1 to {config.TRAY_CAPACITY} times, not {repeat}."
            )
    command = command.strip().lower()
    if not command:
        raise InputError("What do you want me to roll?")
    return RollRequest(repeat, command, comment.strip())


def format_roll(roll: Roll, roller: str | None = None, verbose: bool = False) -> str:
    out = f"{roller} rolled " if roller else ""
    out += codeblock(roll.command)
    if roll.comment:
        out += f" ({escape(roll.comment)})"
    out += f" ⇒ **{roll.result!r}**"
    if not roll.operations:
        return out
    if verbose:
        out += "\n" + "\n".join(f"> {op.describe()}" for op in roll.operations)
    else:
        count = len(roll.operations)
        plural = "s" if count != 1 else ""
        out += f"  ({count} operation{plural}, use verbose for details)"
    return out
