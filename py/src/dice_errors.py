# Errors raised while translating, parsing, and evaluating dice rolls.
# Everything derives from RollError so the chat layer can catch one type.


def _rebuild(cls, args):
    return cls.__new__(cls, *args)


class RollError(ValueError):
    # Unpickle from the stored message; subclass __init__ signatures differ.
    def __reduce__(self):
        return (_rebuild, (type(self), self.args), self.__dict__)


# Lexical: a substring that isn't part of the grammar.
class SymbolError(RollError):
    def __init__(self, symbol: str) -> None:
        super().__init__(f"I don't know what <{symbol}> means.")
        self.symbol = symbol


# Syntactic: unbalanced parentheses or malformed structure.
class ExpressionError(RollError):
    pass


# Stack/arity: operands and operators don't line up.
class StackError(RollError):
    pass


class OperatorMismatchError(StackError):
    def __init__(self, symbol: str) -> None:
        super().__init__(f"Operator <{symbol}> is missing an operand.")
        self.symbol = symbol


class FnMismatchError(StackError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Function <{name}> is missing its argument.")
        self.name = name


class TrailingTokensError(StackError):
    def __init__(self, count: int) -> None:
        super().__init__(
            f"Expected a single result but {count} values were left over. Missing operators?"
        )
        self.count = count


# Semantic: a token was asked to act as something it isn't.
class SemanticError(RollError):
    pass


class NotANumberError(SemanticError):
    def __init__(self, what) -> None:
        super().__init__(f"Expected a number, got {what}.")


class MissingPoolError(SemanticError):
    def __init__(self, what) -> None:
        super().__init__(f"Expected a dice pool, got {what}.")


class NotResolvedError(SemanticError):
    def __init__(self, what) -> None:
        super().__init__(f"Tried to use {what} before it was rolled.")


# Division by zero, overflow, or a function outside its domain.
class MathDomainError(SemanticError):
    pass


class ArgumentRangeError(SemanticError):
    def __init__(self, value, low: int, high: int) -> None:
        super().__init__(f"Dice arguments must be whole numbers from {low} to {high}: {value}")
        self.value = value


# Termination safety: an explosion or reroll that could never stop.
class BlockedExplosionError(RollError):
    pass


class PoolTooLargeError(RollError):
    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"That would put {size} dice in one pool. The most I can hold is {limit}.")
        self.size = size


class TranslationError(RollError):
    def __init__(self, token: str) -> None:
        super().__init__(f"Unrecognized shorthand: <{token}>")
        self.token = token


class RevisePermissionError(RollError):
    def __init__(self, reviser, owner) -> None:
        super().__init__("Only the person who made a roll can revise it.")
        self.reviser = reviser
        self.owner = owner


class RetrieveError(RollError):
    pass


class InputError(RollError):
    pass
