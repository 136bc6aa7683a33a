"""
server.py

This module is the core of the chat application's backend. It defines and runs
the ChatServer, which listens for incoming connections, keeps the registry of
live sessions, relays every chat line to all other sessions and executes the
host's administrative commands.

The server uses one thread per connection: each handler blocks on reading its
own socket and touches shared state only through the SessionRegistry. A
separate acceptor thread waits for new connections while the operator types
commands and chat lines on the main thread.
"""

import logging
import socket
import threading

import commands
import protocol
from commands import Outcome
from config import HOST, DEFAULT_PORT, ADDRESS_NOT_FOUND
from console import Console, HostConsole
from models import Session, SessionRegistry, Broadcaster

logger = logging.getLogger(__name__)


def get_local_ip_address():
    """
    Returns the first IPv4 address the local hostname resolves to.

    The address is only advertised to the operator; the server listens on
    all interfaces regardless. Resolution failures degrade to a placeholder.
    """
    try:
        _, _, addresses = socket.gethostbyname_ex(socket.gethostname())
    except OSError as e:
        logger.debug("Could not resolve local address: %s", e)
        return ADDRESS_NOT_FOUND
    return addresses[0] if addresses else ADDRESS_NOT_FOUND


class ChatServer:
    """
    The main class for the chat server.

    Owns the listening socket, the session registry and the broadcaster.
    The host takes part in the chat under `nickname` without being a
    session itself.
    """
    def __init__(self, nickname, host=HOST, port=DEFAULT_PORT, console=None):
        self.nickname = nickname
        self.host = host
        self.port = port
        self.server_ip = ADDRESS_NOT_FOUND
        self.console = console if console is not None else Console()
        self.host_console = HostConsole(self.console)
        self.registry = SessionRegistry()
        self.broadcaster = Broadcaster(self.registry, self.console)
        self.server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.accept_thread = None

    def bind(self):
        """
        Binds and listens on the configured port.

        Raises:
            OSError: If the port is already in use or cannot be bound.
        """
        self.server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.server_socket.bind((self.host, self.port))
        self.server_socket.listen()
        # Port 0 lets the OS pick a free port.
        self.port = self.server_socket.getsockname()[1]
        self.server_ip = get_local_ip_address()
        logger.info("[LISTENING] Server is listening on %s:%s", self.host, self.port)

    def start(self):
        """Binds the server socket and runs the acceptor on a background thread."""
        self.bind()
        self.accept_thread = threading.Thread(target=self.serve_forever, daemon=True)
        self.accept_thread.start()

    def serve_forever(self):
        """
        The acceptor loop: registers each new connection and spawns its handler.

        Returns quietly once the listening socket is closed by shutdown().
        """
        while True:
            try:
                conn, addr = self.server_socket.accept()
            except OSError:
                logger.debug("Listening socket closed, acceptor stopped.")
                return

            session = Session(conn, addr)
            self.registry.add(session)
            logger.info("[NEW CONNECTION] %s connected.", session.address)
            self.show_connected_count()
            self.broadcaster.broadcast(protocol.create_server_notice("A new user connected."), None)

            thread = threading.Thread(target=self.handle_client, args=(session,), daemon=True)
            thread.start()

    def handle_client(self, session):
        """
        Main logic for handling a single session. This runs in its own thread.

        Greets the peer, then reads one line at a time: commands go to the
        dispatcher, anything else is relayed to every other session. The
        loop ends when the peer closes the stream, a read fails, or the
        peer sends /exit.
        """
        try:
            session.send(protocol.create_server_notice("Welcome to the chat!"))
            session.send(protocol.create_server_notice("Type /help to see available commands."))

            for line in session.reader:
                line = line.strip()
                if not line:
                    continue

                outcome = commands.dispatch(self, session, line)
                if outcome is Outcome.EXIT:
                    break
                if outcome is Outcome.NOT_A_COMMAND:
                    nickname = self.registry.get_nickname(session)
                    self.broadcaster.broadcast(protocol.create_chat_message(nickname, line), session)
        except OSError as e:
            logger.debug("Read from %s failed: %s", session.address, e)
        finally:
            self.close_session(session)

    def close_session(self, session):
        """
        Deregisters and closes a session, then announces the departure.

        A session that was already removed (kicked) is closed again but
        not announced a second time.
        """
        nickname = self.registry.remove(session)
        session.close()
        if nickname is None:
            return

        logger.info("[DISCONNECTED] %s (%s) disconnected.", session.address, nickname)
        self.broadcaster.broadcast(protocol.create_server_notice(f"{nickname} disconnected."), None)
        self.show_connected_count()

    def kick(self, index):
        """
        Disconnects the session at a 0-based position in connection order.

        Returns:
            str: The nickname of the kicked session, or None if the index
                 does not refer to a live session.
        """
        removed = self.registry.remove_at(index)
        if removed is None:
            return None
        session, nickname = removed

        try:
            session.send(protocol.create_server_notice("You were kicked."))
        except OSError as e:
            logger.debug("Kick notice to %s failed: %s", session.address, e)
        session.close()

        logger.info("[KICKED] %s (%s)", session.address, nickname)
        self.broadcaster.broadcast(protocol.create_server_notice(f"{nickname} was kicked."), None)
        self.show_connected_count()
        return nickname

    def show_connected_count(self):
        self.console.write(f"> Connected users: {self.registry.count()}")

    def handle_host_input(self, line):
        """
        Processes one line typed by the operator.

        Returns:
            bool: False when the operator asked to exit, True otherwise.
        """
        line = line.strip()
        if not line:
            return True

        outcome = commands.dispatch(self, self.host_console, line)
        if outcome is Outcome.EXIT:
            return False
        if outcome is Outcome.NOT_A_COMMAND:
            self.broadcaster.broadcast(protocol.create_chat_message(self.nickname, line), None)
        return True

    def run_console(self, input_func=input):
        """Reads operator input until /exit or end of input, then shuts down."""
        self.console.write()
        self.console.write("Server created!")
        self.console.write(f"Name: {self.nickname}")
        self.console.write(f"IP: {self.server_ip}")
        self.console.write(f"Port: {self.port}")
        self.console.write()

        try:
            while True:
                self.console.prompt()
                try:
                    line = input_func()
                except EOFError:
                    break
                if not self.handle_host_input(line):
                    break
        finally:
            self.shutdown()

    def shutdown(self):
        """Stops accepting connections and drops every live session."""
        try:
            self.server_socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self.server_socket.close()
        for session in self.registry.snapshot():
            session.close()


if __name__ == "__main__":
    chat_server = ChatServer("Server")
    chat_server.start()
    chat_server.run_console()
