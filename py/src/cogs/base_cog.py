# Base class for dice tray cogs
import logging

from client import DiceTrayClient
from discord.ext import commands

log = logging.getLogger(__name__)


class BaseCog(commands.Cog):
    def __init__(self, bot: DiceTrayClient) -> None:
        self.bot = bot
