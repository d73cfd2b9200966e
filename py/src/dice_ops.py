# Pool operators (keep, explode, reroll) and conversions (target, botch).
# Operators return a new pool; the pool they were given is left alone.
import logging
import typing

import config
from dice_details import CompoundDie, Die, Pool, SetElement, check_pool_size
from dice_errors import BlockedExplosionError

log = logging.getLogger(__name__)


# A transformed pool, and how each die should appear in a breakdown.
class PoolChange(typing.NamedTuple):
    pool: Pool
    elements: list[SetElement]


# A signed success count, and how each die should appear in a breakdown.
class Count(typing.NamedTuple):
    value: int
    elements: list[SetElement]


def _sorted_indices(pool: Pool) -> list[int]:
    return sorted(range(len(pool.dice)), key=lambda i: pool.dice[i].result)


def _keep_indices(pool: Pool, keep: list[int]) -> PoolChange:
    kept = set(keep)
    elements = [
        SetElement(item=die.copy(), dropped=(i not in kept))
        for i, die in enumerate(pool.dice)
    ]
    return PoolChange(pool.with_dice(pool.dice[i].copy() for i in keep), elements)


def keep_high(pool: Pool, n: int) -> PoolChange:
    n = min(n, len(pool))
    ascending = _sorted_indices(pool)
    return _keep_indices(pool, ascending[len(ascending) - n :])


def keep_low(pool: Pool, n: int) -> PoolChange:
    n = min(n, len(pool))
    return _keep_indices(pool, _sorted_indices(pool)[:n])


def keep_exact(pool: Pool, faces: set[int]) -> PoolChange:
    keep = [i for i, die in enumerate(pool.dice) if die.result in faces]
    return _keep_indices(pool, keep)


# Raise if some die in the pool can never roll a face outside the trigger set.
def check_termination(pool: Pool, faces: set[int], what="explosion"):
    for sides in sorted(pool.sizes()):
        if sides > 0 and set(range(1, sides + 1)) <= faces:
            raise BlockedExplosionError(
                f"Every face of a d{sides} triggers this {what}, so it would never stop."
            )


def _generation_guard(generation: int, max_generations: int, what: str):
    if generation > max_generations:
        raise BlockedExplosionError(
            f"Gave up on this {what} after {max_generations} generations."
        )


def explode_once(pool: Pool, faces: set[int], source=None) -> PoolChange:
    check_termination(pool, faces)
    dice = []
    elements = []
    for die in pool.dice:
        dice.append(die.copy())
        elements.append(SetElement(item=die.copy()))
        if die.face() in faces:
            extra = die.explode(source)
            dice.append(extra)
            elements.append(SetElement(item=extra.copy(), added=True))
    return PoolChange(pool.with_dice(dice), elements)


# Follow each die's chain of explosions. Only dice rolled in the previous
# generation can trigger the next one.
def _explosion_chains(
    pool: Pool, faces: set[int], source, max_generations: int
) -> list[list[Die]]:
    check_termination(pool, faces)
    chains = [[die.copy()] for die in pool.dice]
    triggered = [i for i, chain in enumerate(chains) if chain[0].face() in faces]
    generation = 0
    rolled = len(chains)
    while triggered:
        generation += 1
        _generation_guard(generation, max_generations, "explosion")
        rolled += len(triggered)
        check_pool_size(rolled)
        next_triggered = []
        for i in triggered:
            extra = chains[i][-1].explode(source)
            chains[i].append(extra)
            if extra.face() in faces:
                next_triggered.append(i)
        triggered = next_triggered
    log.debug(f"Explosion settled after {generation} generation(s).")
    return chains


def explode_recursive(
    pool: Pool, faces: set[int], source=None, max_generations=None
) -> PoolChange:
    if max_generations is None:
        max_generations = config.MAX_EXPLOSION_GENERATIONS
    chains = _explosion_chains(pool, faces, source, max_generations)
    dice = []
    elements = []
    for chain in chains:
        for j, die in enumerate(chain):
            dice.append(die)
            elements.append(SetElement(item=die.copy(), added=(j > 0)))
    return PoolChange(pool.with_dice(dice), elements)


# Like recursive explosion, but every extra die is added onto the die that
# triggered it instead of joining the pool.
def explode_additive(
    pool: Pool, faces: set[int], source=None, max_generations=None
) -> PoolChange:
    if max_generations is None:
        max_generations = config.MAX_EXPLOSION_GENERATIONS
    chains = _explosion_chains(pool, faces, source, max_generations)
    dice = []
    for chain in chains:
        if len(chain) == 1:
            dice.append(chain[0])
            continue
        compound = CompoundDie.from_die(chain[0])
        for extra in chain[1:]:
            compound = compound.with_part(extra.result)
        dice.append(compound)
    elements = [SetElement(item=die.copy()) for die in dice]
    return PoolChange(pool.with_dice(dice), elements)


def reroll_once(pool: Pool, faces: set[int], source=None) -> PoolChange:
    dice = []
    elements = []
    for die in pool.dice:
        if die.face() not in faces:
            dice.append(die.copy())
            elements.append(SetElement(item=die.copy()))
            continue
        elements.append(SetElement(item=die.copy(), dropped=True))
        rerolled = die.copy()
        rerolled.reroll(source)
        dice.append(rerolled)
        elements.append(SetElement(item=rerolled.copy(), added=True))
    return PoolChange(pool.with_dice(dice), elements)


def reroll_recursive(
    pool: Pool, faces: set[int], source=None, max_generations=None
) -> PoolChange:
    if max_generations is None:
        max_generations = config.MAX_EXPLOSION_GENERATIONS
    check_termination(pool, faces, "reroll")
    dice = []
    elements = []
    for die in pool.dice:
        current = die.copy()
        generation = 0
        while current.face() in faces:
            generation += 1
            _generation_guard(generation, max_generations, "reroll")
            elements.append(SetElement(item=current.copy(), dropped=True))
            current.reroll(source)
        dice.append(current)
        elements.append(SetElement(item=current.copy(), added=(generation > 0)))
    return PoolChange(pool.with_dice(dice), elements)


# Reroll matching dice once and keep whichever of the two is better (or worse).
def _reroll_compare(pool: Pool, faces: set[int], source, better: bool) -> PoolChange:
    dice = []
    elements = []
    for die in pool.dice:
        if die.face() not in faces:
            dice.append(die.copy())
            elements.append(SetElement(item=die.copy()))
            continue
        old = die.copy()
        rerolled = die.copy()
        delta = rerolled.reroll(source)
        keep_new = delta > 0 if better else delta < 0
        if keep_new:
            dice.append(rerolled)
            elements.append(SetElement(item=old, dropped=True))
            elements.append(SetElement(item=rerolled.copy(), added=True))
        else:
            dice.append(old.copy())
            elements.append(SetElement(item=old))
            elements.append(SetElement(item=rerolled, dropped=True, added=True))
    return PoolChange(pool.with_dice(dice), elements)


def reroll_better(pool: Pool, faces: set[int], source=None) -> PoolChange:
    return _reroll_compare(pool, faces, source, better=True)


def reroll_worse(pool: Pool, faces: set[int], source=None) -> PoolChange:
    return _reroll_compare(pool, faces, source, better=False)


# Per-face success tables are right-aligned against the highest face:
# the last entry belongs to face `sides`.
def success_table_value(die: Die, table) -> int:
    if not table:
        return 0
    offset = die.sides - len(table)
    index = die.result - 1 - offset
    if index < 0:
        return 0
    if index >= len(table):
        return table[-1]
    return table[index]


# Per-face botch tables are left-aligned against face 1.
def botch_table_value(die: Die, table) -> int:
    index = die.result - 1
    if index < 0 or index >= len(table):
        return 0
    return table[index]


def count_successes(pool: Pool, target) -> Count:
    elements = []
    total = 0
    for die in pool.dice:
        if target.is_array:
            value = success_table_value(die, target.values)
        else:
            value = 1 if die.equal_or_greater(target.scalar()) else 0
        total += value
        elements.append(SetElement(item=die.copy(), dropped=(value == 0)))
    return Count(total, elements)


def count_botches(pool: Pool, target) -> Count:
    elements = []
    total = 0
    for die in pool.dice:
        if target.is_array:
            value = botch_table_value(die, target.values)
        else:
            value = 1 if die.equal_or_less(target.scalar()) else 0
        total -= value
        elements.append(SetElement(item=die.copy(), dropped=(value == 0)))
    return Count(total, elements)
