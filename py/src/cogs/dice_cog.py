# Cog for dice roller commands
import logging

import calculator
import config
import dice
import translations
from cmds import as_subprocess_command, swap_hybrid_command_description
from cogs.base_cog import BaseCog
from dice_errors import RollError
from discord.ext import commands
from tray import RollOrder
from utils import *

log = logging.getLogger(__name__)


# Dig the original exception out of command and interaction wrappers.
def _unwrap(error):
    while hasattr(error, "original"):
        error = error.original
    return error


class DiceRoller(BaseCog):
    def __init__(self, bot) -> None:
        super().__init__(bot)
        for command in (
            self.roll,
            self.vroll,
            self.reroll,
            self.revise,
            self.history,
            self.calc,
            self.cofd,
            self.exalted,
            self.genesys,
            self.storyshaper,
            self.l5r,
        ):
            swap_hybrid_command_description(command)

    # Evaluate in the worker pool, then store every roll at once. The scope's
    # tray stays locked for the whole round trip.
    async def roll_order_into_tray(self, ctx: commands.Context, tray, order, repeat=1):
        new_rolls = await as_subprocess_command(
            ctx, dice.roll_many, order.command, order.comment, order.owner, repeat
        )
        return tray.push_all(new_rolls)

    # Parse decorations, translate, roll into this scope's tray, and reply.
    async def roll_into_tray(self, ctx: commands.Context, text: str, translate=None, verbose=False):
        request = dice.parse_roll_input(text)
        command = translate(request.command) if translate else request.command
        order = RollOrder(command, request.comment, ctx.author.id)
        async with self.bot.get_rack().open(get_scope(ctx)) as tray:
            new_rolls = await self.roll_order_into_tray(ctx, tray, order, request.repeat)
        roller = escape(ctx.author.display_name)
        await reply(ctx, "\n".join(dice.format_roll(r, roller, verbose) for r in new_rolls))

    async def cog_command_error(self, ctx: commands.Context, error):
        if ignorable_check_failure(error):
            return
        original = _unwrap(error)
        if isinstance(original, RollError):
            log.info(f"Roll error. {original}")
            await reply(ctx, f"Roll error.\n{codeblock(original, big=True)}")
            return
        if isinstance(error, commands.errors.MissingRequiredArgument):
            await reply(ctx, f"What do you want me to roll? {get_help_notice(ctx.command)}")
            return
        await reply(ctx, f"{original}")

    @commands.hybrid_command(
        aliases=["r"],
        brief="Roll some dice",
        description=f"""
    __**roll**__
    Rolls some dice and does some math.
    See: (https://en.wikipedia.org/wiki/Dice_notation).
    Roughly in order of precedence:

    __Dice roll__ `d`
        `<N>d<S>` to roll N dice of size S. N omitted will roll 1 dice.
        `[2, 3]d[6, 8]` rolls 2d6 and 3d8 as one pool.
    __Keep__ `k`, `kh`, `kl`, `ke`
        `{get_summon_prefix()}roll 4d6k3` keeps the 3 highest. `ke[5, 6]` keeps only 5s and 6s.
    __Reroll__ `r` (once), `rr` (recursive), `rb` (keep better), `rw` (keep worse)
        `{get_summon_prefix()}roll 4d6r1` rerolls 1s once.
    __Explode__ `e` (once), `er` (recursive), `ea` (added onto the die)
        `{get_summon_prefix()}roll 10d10er10`, `{get_summon_prefix()}roll 5d10er[9, 10]`
    __Count successes__ `t`, `b`
        `t8` counts dice of 8 or more. `b1` subtracts each 1.
        `t[1, 1, 2]` counts per face, ending at the highest face.
    __Genesys__ `gb gs ga gd gp gc`
        `{get_summon_prefix()}roll 2d8ga&1d12gp&2d8gd`
    __Arithmetic__ `+ - * / % ^`, `&` to combine pools
    __Functions__ `sqrt() abs() floor() ceil() ln() log() sin()` and friends.
    __Parentheses__ `( )` for associativity and order of operations.
    __Repeat__ `<N>#` rolls the same thing N times: `{get_summon_prefix()}roll 6#4d6k3`
    __Comment__ `:` labels the roll: `{get_summon_prefix()}roll 1d20+5 : to hit`
    """,
    )
    async def roll(
        self,
        ctx: commands.Context,
        *,
        formula: str = commands.parameter(
            description="The dice roll formula to evaluate"
        ),
    ):
        await self.roll_into_tray(ctx, formula)

    @commands.hybrid_command(
        aliases=["vr"],
        brief="Roll some dice, showing every step",
        description=f"""
    __**vroll**__
    Same as `{get_summon_prefix()}roll`, but lists every operation.
    Dropped dice are ~~struck out~~ and added dice are _italic_.
    """,
    )
    async def vroll(
        self,
        ctx: commands.Context,
        *,
        formula: str = commands.parameter(
            description="The dice roll formula to evaluate"
        ),
    ):
        await self.roll_into_tray(ctx, formula, verbose=True)

    @commands.hybrid_command(
        aliases=["rr"],
        brief="Roll the latest roll again",
        description=f"""
    __**reroll**__
    Rolls the most recent roll made here again, as a new roll.
    """,
    )
    async def reroll(self, ctx: commands.Context):
        async with self.bot.get_rack().open(get_scope(ctx)) as tray:
            (new_roll,) = await self.roll_order_into_tray(ctx, tray, tray.reroll_order())
        await reply(ctx, dice.format_roll(new_roll, escape(ctx.author.display_name)))

    @commands.hybrid_command(
        aliases=["rv"],
        brief="Add onto your latest roll",
        description=f"""
    __**revise**__
    Appends to the most recent roll and rolls the whole thing again.
    Only the person who made the roll can revise it.
    `{get_summon_prefix()}revise +2 : with bless`
    """,
    )
    async def revise(
        self,
        ctx: commands.Context,
        *,
        formula: str = commands.parameter(
            description="What to add onto the latest roll", default=""
        ),
    ):
        extra, _, comment = formula.partition(config.COMMENT_SEPARATOR)
        async with self.bot.get_rack().open(get_scope(ctx)) as tray:
            order = tray.revision_order(extra.strip().lower(), comment.strip(), ctx.author.id)
            (new_roll,) = await self.roll_order_into_tray(ctx, tray, order)
        await reply(ctx, dice.format_roll(new_roll, escape(ctx.author.display_name)))

    @commands.hybrid_command(
        aliases=["h"],
        brief="Show recent rolls",
        description=f"""
    __**history**__
    Lists the last {config.TRAY_CAPACITY} rolls made here, oldest first.
    """,
    )
    async def history(self, ctx: commands.Context):
        async with self.bot.get_rack().open(get_scope(ctx)) as tray:
            rolls = tray.rolls()
        if not rolls:
            await reply(ctx, "No rolls yet.")
            return
        lines = [f"{i + 1}. {dice.format_roll(r)}" for i, r in enumerate(rolls)]
        await reply(ctx, "\n".join(lines))

    @commands.hybrid_command(
        aliases=["c", "math"],
        brief="Do some math",
        description=f"""
    __**calc**__
    Evaluates a math expression. No dice.
    __Operators__ `+ - * x × / ÷ % ^ **`
    __Functions__ `sin cos tan asin acos atan sinh cosh tanh asinh acosh atanh sqrt abs floor ceil ln log`
    __Constants__ `pi`
    `{get_summon_prefix()}calc 3+4*2/(1-5)^2^3`
    """,
    )
    async def calc(
        self,
        ctx: commands.Context,
        *,
        expression: str = commands.parameter(description="The expression to evaluate"),
    ):
        output = await as_subprocess_command(ctx, calculator.calculate, expression)
        await reply(ctx, output)

    @commands.hybrid_command(
        aliases=["cod", "wod"],
        brief="Roll Chronicles of Darkness dice",
        description=f"""
    __**cofd**__
    Rolls d10s counting successes on 8+, with 10-again.
    `m` for no again, `a8`/`a9` for 8-again or 9-again, `r` for rote quality.
    `chance` rolls a chance die. `;` adds a bonus to the successes.
    `{get_summon_prefix()}cofd 5+3a9`
    """,
    )
    async def cofd(
        self,
        ctx: commands.Context,
        *,
        formula: str = commands.parameter(description="Dice pool and qualities"),
    ):
        await self.roll_into_tray(ctx, formula, translations.translate_cofd)

    @commands.hybrid_command(
        aliases=["ex"],
        brief="Roll Exalted dice",
        description=f"""
    __**exalted**__
    Rolls d10s counting successes on 7+, with 10s counting double.
    `d9` doubles 9s too, `m` for no doubles, `t6` to change the target.
    `{{...}}` adds dice operations before counting: `{get_summon_prefix()}exalted 8{{r1}}`
    """,
    )
    async def exalted(
        self,
        ctx: commands.Context,
        *,
        formula: str = commands.parameter(description="Dice pool and options"),
    ):
        await self.roll_into_tray(ctx, formula, translations.translate_exalted)

    @commands.hybrid_command(
        aliases=["gen"],
        brief="Roll Genesys narrative dice",
        description=f"""
    __**genesys**__
    Rolls narrative dice by kind and count.
    `b` boost, `s` setback, `a` ability, `d` difficulty, `p` proficiency, `c` challenge.
    `{get_summon_prefix()}genesys a2p1d3`
    """,
    )
    async def genesys(
        self,
        ctx: commands.Context,
        *,
        formula: str = commands.parameter(description="Dice kinds and counts"),
    ):
        await self.roll_into_tray(ctx, formula, translations.translate_genesys)

    @commands.hybrid_command(
        aliases=["ss"],
        brief="Roll Story Shaper dice",
        description=f"""
    __**storyshaper**__
    Rolls 2d10 followed by any modifiers.
    `{get_summon_prefix()}storyshaper +3`
    """,
    )
    async def storyshaper(
        self,
        ctx: commands.Context,
        *,
        formula: str = commands.parameter(description="Modifiers", default=""),
    ):
        await self.roll_into_tray(
            ctx, formula or "+0", translations.translate_story_shaper
        )

    @commands.hybrid_command(
        aliases=["rings"],
        brief="Roll Legend of the Five Rings dice",
        description=f"""
    __**l5r**__
    Roll and keep: `6k3` rolls 6d10, 10s explode, keeps the best 3.
    `u` for unskilled (no explosions), `e` for emphasis (reroll 1s).
    `{get_summon_prefix()}l5r 6k3e+5`
    """,
    )
    async def l5r(
        self,
        ctx: commands.Context,
        *,
        formula: str = commands.parameter(description="Roll and keep"),
    ):
        await self.roll_into_tray(ctx, formula, translations.translate_l5r)
