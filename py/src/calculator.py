# Math calculator.
# The dice pipeline restricted to numbers, arithmetic, and functions.
import logging

import dice
from dice_errors import InputError, RollError
from utils import codeblock

log = logging.getLogger(__name__)


def evaluate(expression: str) -> float:
    tokens = dice.tokenize(expression, math_only=True)
    if not tokens:
        raise InputError("There's nothing to calculate.")
    operations, final = dice.evaluate(dice.to_postfix(tokens))
    for op in operations:
        log.debug(op.describe())
    return final.value().to_decimal()


# Formatted output for the chat command. Runs in a worker process, so errors
# come back as text.
def calculate(expression: str) -> str:
    try:
        result = evaluate(expression)
    except RollError as err:
        log.info(f"Calculation error. {err}")
        return f"Calculation error.\n{codeblock(err, big=True)}"
    return f"{codeblock(expression)} ⇒ **{dice.format_number(result)}**"
