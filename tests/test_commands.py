import io

import pytest

import commands
from commands import Outcome
from console import Console
from server import ChatServer


@pytest.fixture
def server():
    output = io.StringIO()
    chat_server = ChatServer("Host", port=9000, console=Console(output))
    chat_server.server_ip = "192.168.1.10"
    chat_server.output = output
    yield chat_server
    chat_server.server_socket.close()


@pytest.fixture
def sessions(server, fake_session):
    alice, bob = fake_session("10.0.0.1:5000"), fake_session("10.0.0.2:5001")
    server.registry.add(alice, "Alice")
    server.registry.add(bob, "Bob")
    return alice, bob


def host_output(server):
    return server.output.getvalue().splitlines()


def test_plain_text_is_not_a_command(server, sessions):
    alice, _ = sessions
    assert commands.dispatch(server, alice, "hello") is Outcome.NOT_A_COMMAND


def test_unknown_slash_command_falls_through(server, sessions):
    alice, bob = sessions
    assert commands.dispatch(server, alice, "/dance now") is Outcome.NOT_A_COMMAND
    assert alice.replies == []
    assert bob.sent == []


def test_nick_renames_and_notifies_everyone(server, sessions):
    alice, bob = sessions

    assert commands.dispatch(server, alice, "/NICK Zoe") is Outcome.HANDLED

    assert server.registry.get_nickname(alice) == "Zoe"
    assert alice.sent[-1].endswith("Server: Alice changed nickname to Zoe")
    assert bob.sent[-1].endswith("Server: Alice changed nickname to Zoe")


def test_nick_without_name_reports_usage(server, sessions):
    alice, bob = sessions

    commands.dispatch(server, alice, "/nick   ")

    assert alice.replies == ["Usage: /nick <name>"]
    assert server.registry.get_nickname(alice) == "Alice"
    assert bob.sent == []


def test_host_nick_renames_host(server, sessions):
    _, bob = sessions

    commands.dispatch(server, server.host_console, "/nick Admin")

    assert server.nickname == "Admin"
    assert bob.sent[-1].endswith("Host changed nickname to Admin")


def test_help_replies_to_caller_only(server, sessions):
    alice, bob = sessions

    commands.dispatch(server, alice, "/help")

    assert alice.replies == commands.HELP_TEXT
    assert bob.sent == []


def test_host_help_lists_admin_commands(server):
    commands.dispatch(server, server.host_console, "/help")

    assert any(line.startswith("/kick") for line in host_output(server))


@pytest.mark.parametrize("line", ["/info", "/users", "/kick 1"])
def test_admin_commands_are_host_only(server, sessions, line):
    alice, bob = sessions

    assert commands.dispatch(server, alice, line) is Outcome.HANDLED

    assert alice.replies == ["Host only command."]
    assert server.registry.count() == 2
    assert bob.sent == []


def test_exit_and_clear(server, sessions):
    alice, _ = sessions

    assert commands.dispatch(server, alice, "/exit") is Outcome.EXIT
    assert commands.dispatch(server, alice, "/clear") is Outcome.HANDLED
    assert alice.replies == []
    assert commands.dispatch(server, server.host_console, "/clear") is Outcome.HANDLED
    assert "\033[2J" in server.output.getvalue()


def test_info(server, sessions):
    commands.dispatch(server, server.host_console, "/info")

    lines = host_output(server)
    assert "Server Name: Host" in lines
    assert "IP: 192.168.1.10" in lines
    assert "Port: 9000" in lines
    assert "Connected Users: 2" in lines


def test_users_lists_in_connection_order(server, sessions):
    commands.dispatch(server, server.host_console, "/users")

    lines = host_output(server)
    start = lines.index("Connected Users:")
    assert lines[start + 1:start + 3] == [
        "1. Alice (10.0.0.1:5000)",
        "2. Bob (10.0.0.2:5001)",
    ]


def test_kick_removes_exactly_the_numbered_session(server, sessions):
    alice, bob = sessions

    commands.dispatch(server, server.host_console, "/kick 1")

    assert alice.sent[-1].endswith("Server: You were kicked.")
    assert alice.closed
    assert server.registry.snapshot() == [bob]
    assert bob.sent[-1].endswith("Server: Alice was kicked.")
    assert not any("was kicked" in line for line in alice.sent)
    assert "> Connected users: 1" in host_output(server)


@pytest.mark.parametrize("argument, reply", [
    ("", "Usage: /kick <number>"),
    ("abc", "Usage: /kick <number>"),
    ("0", "Invalid number."),
    ("-1", "Invalid number."),
    ("3", "Invalid number."),
])
def test_kick_rejects_bad_numbers(server, sessions, argument, reply):
    commands.dispatch(server, server.host_console, f"/kick {argument}")

    assert host_output(server)[-1] == reply
    assert server.registry.count() == 2
