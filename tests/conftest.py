import io
import socket
import time

import pytest

from console import Console
from server import ChatServer

TIMEOUT = 5


class FakeSession:
    """Stands in for a Session in registry and broadcaster tests."""
    is_host = False

    def __init__(self, address, fail=False):
        self.address = address
        self.fail = fail
        self.sent = []
        self.replies = []
        self.closed = False

    def send(self, text):
        if self.fail:
            raise ConnectionResetError("peer gone")
        self.sent.append(text)

    def reply(self, text):
        self.replies.append(text)

    def close(self):
        self.closed = True


class ChatPeer:
    """A line-oriented test client connected to a running server."""
    def __init__(self, port):
        self.sock = socket.create_connection(("127.0.0.1", port), timeout=TIMEOUT)
        self.file = self.sock.makefile("r", encoding="utf-8", newline="\n")

    def send(self, text):
        self.sock.sendall(f"{text}\n".encode("utf-8"))

    def read_line(self):
        line = self.file.readline()
        return line.rstrip("\n") if line else None

    def expect(self, fragment):
        """Reads lines until one contains `fragment` and returns it."""
        while True:
            line = self.read_line()
            assert line is not None, f"connection closed before {fragment!r}"
            if fragment in line:
                return line

    def join(self, nickname):
        """Waits for the greeting, then announces a nickname the way the client does."""
        self.expect("Type /help")
        self.send(f"/nick {nickname}")
        self.expect(f"changed nickname to {nickname}")

    def close(self):
        self.file.close()
        self.sock.close()


@pytest.fixture
def fake_session():
    return FakeSession


@pytest.fixture
def chat_server():
    output = io.StringIO()
    server = ChatServer("Host", host="127.0.0.1", port=0, console=Console(output))
    server.output = output
    server.start()
    yield server
    server.shutdown()


@pytest.fixture
def connect(chat_server):
    peers = []

    def _connect(nickname=None):
        peer = ChatPeer(chat_server.port)
        peers.append(peer)
        if nickname is not None:
            peer.join(nickname)
        return peer

    yield _connect
    for peer in peers:
        peer.close()


@pytest.fixture
def wait_until():
    def _wait_until(predicate, timeout=TIMEOUT):
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(0.01)
        return predicate()
    return _wait_until
