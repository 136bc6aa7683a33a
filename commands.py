# commands.py
import enum
import logging

import protocol

logger = logging.getLogger(__name__)

HELP_TEXT = [
    "Available commands:",
    "/nick <name>  - change your nickname",
    "/help         - show this help",
    "/clear        - clear the screen",
    "/exit         - leave the chat",
]

HOST_HELP_TEXT = [
    "/info         - show server name, address, port and user count (host only)",
    "/users        - list connected users (host only)",
    "/kick <n>     - disconnect user number n from /users (host only)",
]

HOST_ONLY_COMMANDS = {"/info", "/users", "/kick"}


class Outcome(enum.Enum):
    NOT_A_COMMAND = "not_a_command"  # The caller sends the line as chat.
    HANDLED = "handled"
    EXIT = "exit"                    # The caller ends its session or process.


class CommandContext:
    def __init__(self, server, caller, argument):
        self.server = server
        self.caller = caller
        self.argument = argument

    def reply(self, text):
        self.caller.reply(text)


def handle_nick(ctx: CommandContext):
    new_nickname = ctx.argument
    if not new_nickname:
        ctx.reply("Usage: /nick <name>")
        return Outcome.HANDLED

    if ctx.caller.is_host:
        old_nickname = ctx.server.nickname
        ctx.server.nickname = new_nickname
    else:
        old_nickname = ctx.server.registry.rename(ctx.caller, new_nickname)
        if old_nickname is None:
            # Kicked while the command was in flight.
            return Outcome.HANDLED

    notice = protocol.create_server_notice(f"{old_nickname} changed nickname to {new_nickname}")
    ctx.server.broadcaster.broadcast(notice, None)
    return Outcome.HANDLED


def handle_help(ctx: CommandContext):
    lines = HELP_TEXT + HOST_HELP_TEXT if ctx.caller.is_host else HELP_TEXT
    for line in lines:
        ctx.reply(line)
    return Outcome.HANDLED


def handle_clear(ctx: CommandContext):
    # Purely a display effect; a remote session clears its own screen.
    if ctx.caller.is_host:
        ctx.server.console.clear()
    return Outcome.HANDLED


def handle_exit(ctx: CommandContext):
    return Outcome.EXIT


def handle_info(ctx: CommandContext):
    server = ctx.server
    ctx.reply("")
    ctx.reply(f"Server Name: {server.nickname}")
    ctx.reply(f"IP: {server.server_ip}")
    ctx.reply(f"Port: {server.port}")
    ctx.reply(f"Connected Users: {server.registry.count()}")
    ctx.reply("")
    return Outcome.HANDLED


def handle_users(ctx: CommandContext):
    _, listing = ctx.server.registry.count_and_list()
    ctx.reply("")
    ctx.reply("Connected Users:")
    for index, nickname, address in listing:
        ctx.reply(f"{index}. {nickname} ({address})")
    ctx.reply("")
    return Outcome.HANDLED


def handle_kick(ctx: CommandContext):
    try:
        number = int(ctx.argument)
    except ValueError:
        ctx.reply("Usage: /kick <number>")
        return Outcome.HANDLED

    # /users numbers from 1; the number refers to the current position.
    if number < 1 or ctx.server.kick(number - 1) is None:
        ctx.reply("Invalid number.")
    return Outcome.HANDLED


COMMANDS = {
    "/nick": handle_nick,
    "/help": handle_help,
    "/clear": handle_clear,
    "/exit": handle_exit,
    "/info": handle_info,
    "/users": handle_users,
    "/kick": handle_kick,
}


def dispatch(server, caller, line):
    """
    Runs a command line on behalf of `caller`.

    `caller` is either a remote Session or the HostConsole; both provide
    `is_host` and `reply`. A slash-prefixed line that names no known
    command is not an error: NOT_A_COMMAND tells the caller to send it
    on as an ordinary chat line.

    Returns:
        Outcome: what the caller has to do next.
    """
    if not protocol.is_command(line):
        return Outcome.NOT_A_COMMAND

    command, argument = protocol.parse_command(line)
    handler = COMMANDS.get(command)
    if handler is None:
        return Outcome.NOT_A_COMMAND

    if command in HOST_ONLY_COMMANDS and not caller.is_host:
        caller.reply("Host only command.")
        return Outcome.HANDLED

    logger.debug("Running %s for %r", command, caller)
    return handler(CommandContext(server, caller, argument))
