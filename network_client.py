"""
network_client.py

This module manages all network communication for the client application.

A NetworkThread runs in the background, holding the connection to the server
and turning every received line into a Qt signal, so the main thread only ever
touches the terminal from its own event loop. A ConsoleReader does the same
for the operator's keyboard input. ChatClient holds the client-side command
handling and does not depend on Qt.
"""

import logging
import socket
import threading

from PyQt6.QtCore import QObject, QThread, pyqtSignal

import protocol
from commands import HELP_TEXT

logger = logging.getLogger(__name__)


class NetworkThread(QThread):
    """
    The background thread that owns the connection to the server.

    It connects, announces the nickname with '/nick <name>', and then
    listens for lines until the server closes the connection.
    """
    # --- Signals to communicate with the main thread ---
    connected = pyqtSignal()
    message_received = pyqtSignal(str)
    disconnected = pyqtSignal(str)

    def __init__(self, ip, port, nickname):
        """
        Initializes the network thread.

        Args:
            ip (str): The server IP address to connect to.
            port (int): The server port to connect to.
            nickname (str): The nickname announced right after connecting.
        """
        super().__init__()
        self.ip = ip
        self.port = port
        self.nickname = nickname
        self.socket = None
        self._closing = False

    def run(self):
        """Connects, announces the nickname and relays incoming lines."""
        try:
            self.socket = socket.create_connection((self.ip, self.port))
            protocol.send_line(self.socket, protocol.create_nick_command(self.nickname))
        except OSError as e:
            self.disconnected.emit(f"Connection error: {e}")
            return

        self.connected.emit()

        try:
            for line in protocol.LineReader(self.socket):
                self.message_received.emit(line)
        except OSError as e:
            logger.debug("Read from server failed: %s", e)

        if not self._closing:
            self.disconnected.emit("Disconnected from server.")

    def send_message(self, text):
        """
        Sends one line to the server.

        Returns:
            bool: True if the line was sent, False otherwise.
        """
        if not self.socket:
            return False
        try:
            protocol.send_line(self.socket, text)
            return True
        except OSError as e:
            logger.debug("Send to server failed: %s", e)
            return False

    def close(self):
        """Closes the connection; the listening loop then ends on its own."""
        self._closing = True
        if self.socket:
            try:
                self.socket.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            self.socket.close()


class ConsoleReader(QObject):
    """
    Reads operator input on a daemon thread and emits it line by line.

    input() cannot be interrupted, so the reading thread is a daemon and
    never keeps the process alive.
    """
    line_entered = pyqtSignal(str)
    input_closed = pyqtSignal()

    def __init__(self, input_func=input):
        super().__init__()
        self.input_func = input_func
        self.thread = None

    def start(self):
        self.thread = threading.Thread(target=self.run, daemon=True)
        self.thread.start()

    def run(self):
        while True:
            try:
                line = self.input_func()
            except EOFError:
                self.input_closed.emit()
                return
            self.line_entered.emit(line)


class ChatClient:
    """
    Client-side handling of the operator's lines.

    /exit, /clear and /help act locally; every other line, /nick and
    unknown slash commands included, goes to the server as typed.
    """
    def __init__(self, network, console, on_exit):
        self.network = network
        self.console = console
        self.on_exit = on_exit

    def show_connected(self):
        self.console.clear()
        self.console.write("Connected successfully! You can now chat.")
        self.console.write()
        self.console.prompt()

    def show_message(self, line):
        self.console.write()
        self.console.write(line)
        self.console.prompt()

    def handle_input(self, line):
        """
        Processes one line typed by the operator.

        Returns:
            bool: False once the client is leaving, True otherwise.
        """
        text = line.strip()
        if not text:
            self.console.prompt()
            return True

        command, _ = protocol.parse_command(text) if protocol.is_command(text) else ("", "")

        if command == "/exit":
            self.network.close()
            self.console.write("Disconnected.")
            self.on_exit()
            return False
        if command == "/clear":
            self.console.clear()
        elif command == "/help":
            for help_line in HELP_TEXT:
                self.console.write(help_line)
        elif not self.network.send_message(text):
            self.console.write("Message could not be sent.")

        self.console.prompt()
        return True
