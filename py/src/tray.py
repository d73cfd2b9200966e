# Roll history.
# A tray remembers the last few rolls made in one guild or private channel.
import asyncio
import collections
import contextlib
import logging
import typing

import config
import dice
from dice_errors import RetrieveError, RevisePermissionError

log = logging.getLogger(__name__)


# What to roll next: the command, its comment, and who owns the result.
class RollOrder(typing.NamedTuple):
    command: str
    comment: str
    owner: typing.Any


class Tray:
    def __init__(self, capacity: int = config.TRAY_CAPACITY, source=None) -> None:
        if capacity < 1:
            raise ValueError(f"Tray capacity must be positive, not {capacity}.")
        self.capacity = capacity
        self.source = source
        self._rolls: collections.deque[dice.Roll] = collections.deque()

    def rolls(self) -> list[dice.Roll]:
        return list(self._rolls)

    def latest(self) -> dice.Roll:
        if not self._rolls:
            raise RetrieveError("There are no rolls in the tray yet.")
        return self._rolls[-1]

    # Store a finished roll, evicting the oldest if full.
    def push(self, roll: dice.Roll) -> dice.Roll:
        while len(self._rolls) >= self.capacity:
            evicted = self._rolls.popleft()
            log.debug(f"Evicted {evicted.command} from tray.")
        self._rolls.append(roll)
        return roll

    def push_all(self, rolls) -> list[dice.Roll]:
        return [self.push(roll) for roll in rolls]

    # Evaluation runs before anything is stored, so a failed roll leaves
    # the tray untouched.
    def add_roll_from_command(self, command: str, comment: str = "", roller=None) -> dice.Roll:
        new_roll = dice.roll(command, comment=comment, owner=roller, source=self.source)
        return self.push(new_roll)

    # All repeats are rolled before any is stored.
    def add_rolls_from_command(
        self, command: str, comment: str = "", roller=None, repeat: int = 1
    ) -> list[dice.Roll]:
        return self.push_all(dice.roll_many(command, comment, roller, repeat, self.source))

    def reroll_order(self) -> RollOrder:
        old = self.latest()
        return RollOrder(old.command, old.comment, old.owner)

    # The latest command with `extra_text` appended. Only the owner may revise.
    # `extra_text` is appended as given; callers normalise it like any roll input.
    def revision_order(self, extra_text: str, new_comment: str = "", reviser=None) -> RollOrder:
        old = self.latest()
        if reviser != old.owner:
            raise RevisePermissionError(reviser, old.owner)
        comment = new_comment if new_comment else old.comment
        return RollOrder(old.command + extra_text, comment, old.owner)

    def reroll_latest(self) -> dice.Roll:
        return self.add_roll_from_command(*self.reroll_order())

    def modify_latest(self, extra_text: str, new_comment: str = "", reviser=None) -> dice.Roll:
        return self.add_roll_from_command(
            *self.revision_order(extra_text, new_comment, reviser)
        )

    def __len__(self):
        return len(self._rolls)


# One tray per scope (guild or private channel), each behind its own lock.
class TrayRack:
    def __init__(self, capacity: int = config.TRAY_CAPACITY, source=None) -> None:
        self.capacity = capacity
        self.source = source
        self.trays: dict[int, Tray] = {}
        self.locks: dict[int, asyncio.Lock] = {}

    def _lock(self, scope) -> asyncio.Lock:
        if scope not in self.locks:
            self.locks[scope] = asyncio.Lock()
        return self.locks[scope]

    @contextlib.asynccontextmanager
    async def open(self, scope):
        async with self._lock(scope):
            if scope not in self.trays:
                log.info(f"New tray for scope {scope}.")
                self.trays[scope] = Tray(self.capacity, self.source)
            yield self.trays[scope]
