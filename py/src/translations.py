# Game system shorthand.
# Each translator rewrites a system's roll notation into the dice grammar.
import logging
import re

from dice_errors import TranslationError

log = logging.getLogger(__name__)

BONUS_SEPARATOR = ";"
DICE_PART_PATTERN = re.compile(r"^(?P<dice>[\d\s+\-*/()]+)(?P<flags>.*)$")

COFD_TARGET = 8
COFD_AGAIN = 10
COFD_CHANCE = "1d10t10"
COFD_FLAG_PATTERN = re.compile(r"(?P<again>a(?P<threshold>\d+))|(?P<flag>[mr])|(?P<other>\S)")

EXALTED_TARGET = 7
EXALTED_DOUBLE = 10
EXALTED_FLAG_PATTERN = re.compile(
    r"(?P<double>d(?P<dvalue>\d+))|(?P<target>t(?P<tvalue>\d+))"
    r"|(?P<nodouble>m)|(?P<passthrough>\{(?P<ops>[^}]*)\})|(?P<other>\S)"
)

GENESYS_SIDES = {"b": 6, "s": 6, "a": 8, "d": 8, "p": 12, "c": 12}
GENESYS_TOKEN_PATTERN = re.compile(r"(?P<kind>[a-z])\s*(?P<number>\d+)")

STORY_SHAPER_BASE = "2d10"
STORY_SHAPER_PATTERN = re.compile(r"^[\w\s+\-*/%^()\[\],.&]*$")

L5R_PATTERN = re.compile(
    r"^(?P<rolled>\d+)k(?P<kept>\d+)(?P<flags>[a-z]*)(?P<modifier>[+\-]\d+)?$"
)


# Format a face trigger as a single face or a list.
def _faces(low: int, high: int) -> str:
    if low == high:
        return str(low)
    return "[" + ", ".join(str(f) for f in range(low, high + 1)) + "]"


# Split `dice flags;bonus` into its three parts.
def _split(command: str) -> tuple[str, str, str]:
    main, _, bonus = command.partition(BONUS_SEPARATOR)
    match = DICE_PART_PATTERN.match(main.strip())
    if not match:
        raise TranslationError(main.strip() or command)
    dice_part = match.group("dice").strip()
    if not dice_part:
        raise TranslationError(main.strip())
    return dice_part, match.group("flags").strip(), bonus.strip()


def _with_bonus(command: str, bonus: str) -> str:
    if bonus:
        return f"{command}+({bonus})"
    return command


# Chronicles of Darkness: d10 pools, successes on 8+, 10-again.
# `m` disables again, `aN` sets the again threshold, `r` rerolls failures once.
def translate_cofd(command: str) -> str:
    command = command.strip().lower()
    if command == "chance":
        return COFD_CHANCE
    dice_part, flags, bonus = _split(command)

    again = COFD_AGAIN
    rote = False
    for item in COFD_FLAG_PATTERN.finditer(flags):
        if item.group("other"):
            raise TranslationError(item.group("other"))
        if item.group("again"):
            again = int(item.group("threshold"))
            if again < 2 or again > 10:
                raise TranslationError(item.group("again"))
        elif item.group("flag") == "m":
            again = None
        elif item.group("flag") == "r":
            rote = True

    out = f"({dice_part})d10"
    if rote:
        out += f"ro{_faces(1, COFD_TARGET - 1)}"
    if again is not None:
        out += f"er{_faces(again, 10)}"
    out += f"t{COFD_TARGET}"
    out = _with_bonus(out, bonus)
    log.debug(f"CofD {command} -> {out}")
    return out


# Exalted: d10 pools, successes on 7+, 10s count double.
# `dN` sets the doubles threshold, `m` disables doubles, `tN` sets the target,
# and `{...}` is inserted as extra dice operations before counting.
def translate_exalted(command: str) -> str:
    command = command.strip().lower()
    dice_part, flags, bonus = _split(command)

    target = EXALTED_TARGET
    double = EXALTED_DOUBLE
    extra = ""
    for item in EXALTED_FLAG_PATTERN.finditer(flags):
        if item.group("other"):
            raise TranslationError(item.group("other"))
        if item.group("double"):
            double = int(item.group("dvalue"))
            if double < 1 or double > 10:
                raise TranslationError(item.group("double"))
        elif item.group("target"):
            target = int(item.group("tvalue"))
            if target < 1 or target > 10:
                raise TranslationError(item.group("target"))
        elif item.group("nodouble"):
            double = None
        elif item.group("passthrough"):
            extra += item.group("ops").strip()

    out = f"({dice_part})d10{extra}"
    if double is None:
        out += f"t{target}"
    else:
        table = [2 if face >= double else 1 for face in range(target, 11)]
        out += "t[" + ", ".join(str(v) for v in table) + "]"
    out = _with_bonus(out, bonus)
    log.debug(f"Exalted {command} -> {out}")
    return out


# Genesys: `a2p2d3` becomes one pool per die kind, joined with `&`.
# Text that isn't a letter followed by a count is ignored.
def translate_genesys(command: str) -> str:
    terms = []
    for item in GENESYS_TOKEN_PATTERN.finditer(command.lower()):
        kind, number = item.group("kind"), item.group("number")
        if kind not in GENESYS_SIDES:
            raise TranslationError(kind)
        terms.append(f"{int(number)}d{GENESYS_SIDES[kind]}g{kind}")
    if not terms:
        raise TranslationError(command.strip())
    return "&".join(terms)


# Story Shaper: 2d10 plus whatever modifiers follow.
def translate_story_shaper(command: str) -> str:
    modifiers = "".join(command.lower().split())
    if not STORY_SHAPER_PATTERN.match(modifiers):
        bad = next(c for c in modifiers if not STORY_SHAPER_PATTERN.match(c))
        raise TranslationError(bad)
    return STORY_SHAPER_BASE + modifiers


# Legend of the Five Rings roll and keep: `6k3` rolls 6d10, explodes 10s
# onto the die that rolled them, and keeps the best 3.
# `u` is unskilled (no explosion), `e` is emphasis (reroll 1s once).
def translate_l5r(command: str) -> str:
    command = "".join(command.lower().split())
    match = L5R_PATTERN.match(command)
    if not match:
        raise TranslationError(command)
    explode = True
    emphasis = False
    for flag in match.group("flags"):
        if flag == "u":
            explode = False
        elif flag == "e":
            emphasis = True
        else:
            raise TranslationError(flag)

    out = f"{int(match.group('rolled'))}d10"
    if emphasis:
        out += "ro1"
    if explode:
        out += "ea10"
    out += f"k{int(match.group('kept'))}"
    if match.group("modifier"):
        out += match.group("modifier")
    return out


TRANSLATORS = {
    "cofd": translate_cofd,
    "exalted": translate_exalted,
    "genesys": translate_genesys,
    "storyshaper": translate_story_shaper,
    "l5r": translate_l5r,
}
