"""
main.py

This is the main entry point of the terminal chat.

It shows the numbered menu and starts either the server (with the operator's
console) or the client. The client side runs a QCoreApplication event loop
and acts as the controller connecting the background network thread and the
keyboard reader with the terminal.
"""

import argparse
import logging
import sys

from PyQt6.QtCore import QCoreApplication

from config import APP_TITLE, DEFAULT_PORT, DEFAULT_NICKNAME
from console import Console
from network_client import NetworkThread, ConsoleReader, ChatClient
from server import ChatServer

LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


class ChatApplication:
    """
    The controller for the client mode.

    It owns the Qt application object, the network thread and the console
    reader, and connects their signals to the ChatClient.
    """
    def __init__(self, nickname, ip, port, console):
        """Initializes the application and its main components."""
        self.app = QCoreApplication.instance() or QCoreApplication(sys.argv)
        self.console = console
        self.network_thread = NetworkThread(ip, port, nickname)
        self.console_reader = ConsoleReader()
        self.client = ChatClient(self.network_thread, console, self.quit)

        # --- Connect signals from the background threads to the controller ---
        self.network_thread.connected.connect(self.handle_connected)
        self.network_thread.message_received.connect(self.client.show_message)
        self.network_thread.disconnected.connect(self.handle_disconnection)
        self.console_reader.line_entered.connect(self.client.handle_input)
        self.console_reader.input_closed.connect(self.quit)

    def handle_connected(self):
        """Starts reading the keyboard once the server accepted the connection."""
        self.client.show_connected()
        self.console_reader.start()

    def handle_disconnection(self, reason):
        self.console.write()
        self.console.write(reason)
        self.quit()

    def quit(self):
        self.network_thread.close()
        self.network_thread.wait()
        self.app.quit()

    def run(self):
        """Connects in the background and runs the event loop until the client leaves."""
        self.network_thread.start()
        return self.app.exec()


def configure_logging(debug):
    logging.basicConfig(level=logging.WARNING, format=LOG_FORMAT)
    set_debug_mode(debug)


def set_debug_mode(debug):
    logging.getLogger().setLevel(logging.DEBUG if debug else logging.WARNING)


def read_port(text):
    """Parses a port number, falling back to the default port."""
    try:
        return int(text)
    except ValueError:
        return DEFAULT_PORT


def start_server(console):
    console.clear()
    nickname = input("Your nickname (server): ").strip() or "Server"
    port = read_port(input(f"Port (e.g., {DEFAULT_PORT}): ").strip())

    chat_server = ChatServer(nickname, port=port, console=console)
    try:
        chat_server.start()
    except OSError as e:
        console.write(f"An error occurred: {e}")
        return 1

    console.clear()
    chat_server.run_console()
    return 0


def start_client(console):
    console.clear()
    nickname = input("Your nickname: ").strip() or DEFAULT_NICKNAME
    ip = input("Server IP: ").strip() or "127.0.0.1"
    port = read_port(input("Port: ").strip())

    chat_app = ChatApplication(nickname, ip, port, console)
    return chat_app.run()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description=APP_TITLE)
    parser.add_argument("--debug", action="store_true", help="start with debug logging enabled")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    debug_mode = args.debug
    configure_logging(debug_mode)
    console = Console()

    while True:
        console.write(f"=== Welcome to {APP_TITLE} ===")
        console.write()
        console.write("Select mode:")
        console.write("1. Create server (multiplayer)")
        console.write("2. Connect to server")
        console.write(f"3. {'Disable' if debug_mode else 'Enable'} debug mode")
        console.write("4. Exit")

        try:
            choice = input("Enter number: ").strip()
            if choice == "1":
                return start_server(console)
            if choice == "2":
                return start_client(console)
            if choice == "3":
                debug_mode = not debug_mode
                set_debug_mode(debug_mode)
                console.clear()
            elif choice == "4":
                return 0
            else:
                console.write("Invalid option. Try again.")
                console.write()
        except (EOFError, KeyboardInterrupt):
            return 0


if __name__ == "__main__":
    sys.exit(main())
