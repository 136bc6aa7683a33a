# models.py
import logging
import socket
import threading

import protocol
from config import DEFAULT_NICKNAME

logger = logging.getLogger(__name__)


class Session:
    """Represents one accepted connection."""
    is_host = False

    def __init__(self, connection, address):
        self.connection = connection
        # Remote endpoint as 'ip:port', used for display only.
        self.address = format_address(address)
        self.reader = protocol.LineReader(connection)
        # Handlers of other sessions may write to this socket concurrently.
        self._send_lock = threading.Lock()

    def send(self, text):
        """Sends one line to the peer. Raises OSError on failure."""
        with self._send_lock:
            protocol.send_line(self.connection, text)

    def reply(self, text):
        """Replies to a command issued by this session."""
        self.send(text)

    def close(self):
        """Closes the socket, ignoring errors. Wakes up a blocked read."""
        try:
            self.connection.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        try:
            self.connection.close()
        except OSError:
            pass

    def __repr__(self):
        return f"<Session {self.address}>"


def format_address(address):
    """Formats a socket address tuple as 'ip:port'."""
    if isinstance(address, tuple):
        return f"{address[0]}:{address[1]}"
    return str(address)


class SessionRegistry:
    """
    The shared collection of live sessions and their nicknames.

    All structural reads and writes go through one lock. The lock is only
    held for the in-memory operation; no method here performs network I/O,
    so a slow peer can never stall registration of other sessions.

    Sessions are kept in connection order. That order is what the numbered
    /users listing and /kick <n> refer to, so positions shift whenever a
    session ahead in the list leaves.
    """
    def __init__(self):
        self._sessions = []   # Live sessions, in connection order.
        self._nicknames = {}  # Session -> nickname.
        self._lock = threading.Lock()

    def add(self, session, nickname=DEFAULT_NICKNAME):
        """Appends a session at the end of the connection order."""
        with self._lock:
            if session in self._nicknames:
                return
            self._sessions.append(session)
            self._nicknames[session] = nickname

    def remove(self, session):
        """
        Removes a session and its nickname.

        Removing a session that is no longer registered is a no-op, which
        covers a kick racing with the session's own disconnect.

        Returns:
            str: The nickname the session had, or None if it was not registered.
        """
        with self._lock:
            nickname = self._nicknames.pop(session, None)
            if nickname is not None:
                self._sessions.remove(session)
            return nickname

    def remove_at(self, index):
        """
        Removes the session at a 0-based position in connection order.

        Returns:
            tuple: (session, nickname), or None if the index is out of range.
        """
        with self._lock:
            if index < 0 or index >= len(self._sessions):
                return None
            session = self._sessions.pop(index)
            return session, self._nicknames.pop(session)

    def rename(self, session, new_nickname):
        """
        Replaces the nickname of a registered session.

        Returns:
            str: The previous nickname, or None if the session was removed
                 in the meantime (its nickname is then left unregistered).
        """
        with self._lock:
            if session not in self._nicknames:
                return None
            old_nickname = self._nicknames[session]
            self._nicknames[session] = new_nickname
            return old_nickname

    def get_nickname(self, session):
        with self._lock:
            return self._nicknames.get(session, DEFAULT_NICKNAME)

    def snapshot(self):
        """Returns a copy of the live sessions, safe to iterate without the lock."""
        with self._lock:
            return list(self._sessions)

    def count_and_list(self):
        """
        Returns the number of live sessions and a numbered listing.

        Returns:
            tuple: (count, [(index, nickname, address), ...]) with 1-based
                   indexes in connection order.
        """
        with self._lock:
            listing = [
                (index, self._nicknames[session], session.address)
                for index, session in enumerate(self._sessions, start=1)
            ]
        return len(listing), listing

    def count(self):
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session):
        with self._lock:
            return session in self._nicknames


class Broadcaster:
    """Sends a line to every live session except the sender."""
    def __init__(self, registry, console=None):
        self.registry = registry
        # On the hosting side every broadcast is mirrored to the local display.
        self.console = console

    def broadcast(self, message, exclude=None):
        """
        Delivers a message to all sessions in a registry snapshot except `exclude`.

        Delivery is best effort: each send is attempted once and a failing
        recipient is skipped without retry and without telling the sender.
        The failing session's own handler notices the broken socket on its
        next read and cleans up.
        """
        for session in self.registry.snapshot():
            if session is exclude:
                continue
            try:
                session.send(message)
            except OSError as e:
                logger.debug("Dropped message for %s: %s", session.address, e)

        if self.console is not None:
            self.console.write(message)
