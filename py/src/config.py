# Configuration and constants.

# DISCORD_TOKEN # is expected in the environment
# TEST_GUILD_ID # can be provided in the environment
# SUMMON_PREFIX # can be provided in the environment

DEFAULT_SUMMON_PREFIX = "~!"
DEFAULT_HELP_KEY = "help"
MAX_MESSAGE_LENGTH = 1900
MAX_COMMAND_WORKERS = 5
COMMAND_TIMEOUT = 10.0  # in seconds
INVISIBLE_SPACE = "\u200b"
BOT_DESCRIPTION = "A dice tray for tabletop games. Rolls, rerolls, and revises."

# Dice engine
TRAY_CAPACITY = 10  # rolls remembered per guild or private channel
MAX_EXPLOSION_GENERATIONS = 100
MAX_ARGUMENT = 255  # largest dice count, side count, or face argument
MAX_POOL_SIZE = 1000  # most dice a single pool may hold
COMMENT_SEPARATOR = ":"
REPEAT_SEPARATOR = "#"
