"""
protocol.py

Defines the communication rules (protocol) for the chat application.

Messages are UTF-8 text lines terminated by a newline; a line is the unit
of a message and there is no other framing. This module contains the
helpers to send and receive single lines over a stream socket, the
functions that build the lines the server sends (chat lines and server
notices), and the parser for leading-slash commands.
"""

from datetime import datetime

from config import ENCODING, BUFFER_SIZE

LINE_DELIMITER = b'\n'
COMMAND_PREFIX = '/'


# --- Sending and receiving lines ---

def send_line(sock, text):
    """
    Sends a single line of text, appending the line delimiter.

    Unlike a broadcast, this does not swallow errors: the caller decides
    whether a failed send matters.

    Args:
        sock (socket.socket): The socket to send data through.
        text (str): The line to send, without a trailing newline.
    Raises:
        OSError: If the socket is closed or the peer reset the connection.
    """
    sock.sendall(text.encode(ENCODING) + LINE_DELIMITER)


class LineReader:
    """
    Splits the byte stream of a socket into newline-terminated lines.

    TCP may deliver several lines in one chunk or one line across several
    chunks, so received bytes are buffered until a full line is available.
    """
    def __init__(self, sock, buffer_size=BUFFER_SIZE):
        self.sock = sock
        self.buffer_size = buffer_size
        self._buffer = bytearray()
        # Bytes of the buffer already searched for a delimiter.
        self._scanned = 0
        self._eof = False

    def read_line(self):
        """
        Blocks until one full line is available and returns it.

        A trailing carriage return is stripped so that clients sending
        CRLF line endings are handled the same way as LF.

        Returns:
            str: The decoded line, or None when the peer closed the stream.
                 A partial last line without a delimiter is returned once
                 before None.
        Raises:
            OSError: If reading from the socket fails.
        """
        end = self._buffer.find(LINE_DELIMITER, self._scanned)
        while end < 0 and not self._eof:
            self._scanned = len(self._buffer)
            chunk = self.sock.recv(self.buffer_size)
            if not chunk:
                self._eof = True
                break
            self._buffer += chunk
            end = self._buffer.find(LINE_DELIMITER, self._scanned)

        if end >= 0:
            line = bytes(self._buffer[:end])
            del self._buffer[:end + 1]
        elif self._buffer:
            line = bytes(self._buffer)
            self._buffer.clear()
        else:
            return None
        self._scanned = 0
        return line.rstrip(b'\r').decode(ENCODING, errors='replace')

    def __iter__(self):
        while True:
            line = self.read_line()
            if line is None:
                return
            yield line


# --- Message creation functions ---

def get_timestamp(now=None):
    """Returns the current time formatted as HH:MM."""
    return (now or datetime.now()).strftime('%H:%M')


def create_chat_message(nickname, message_text, timestamp=None):
    """Creates a chat line: '[HH:MM] [nick]: text'."""
    return f"[{timestamp or get_timestamp()}] [{nickname}]: {message_text}"


def create_server_notice(message_text, timestamp=None):
    """Creates a server notice: '[HH:MM] Server: text'."""
    return f"[{timestamp or get_timestamp()}] Server: {message_text}"


def create_nick_command(nickname):
    """Client -> Server: announces the nickname right after connecting."""
    return f"/nick {nickname}"


# --- Command parsing ---

def is_command(line):
    """Returns True if the line starts with the command prefix."""
    return line.startswith(COMMAND_PREFIX)


def parse_command(line):
    """
    Splits a command line into its command token and argument.

    The command token is the first whitespace-delimited word, lower-cased
    so commands are matched case-insensitively. The argument is the rest
    of the line with surrounding whitespace removed.

    Args:
        line (str): A trimmed line starting with '/'.
    Returns:
        tuple: (command, argument), e.g. ('/kick', '2'). The argument is
               an empty string when none was given.
    """
    parts = line.strip().split(None, 1)
    if not parts:
        return "", ""
    command = parts[0].lower()
    argument = parts[1].strip() if len(parts) > 1 else ""
    return command, argument
