# config.py
# Shared settings for the server and the client.

APP_TITLE = "Terminal Chat v2.4 (Multiplayer)"

HOST = '0.0.0.0'  # The server listens on all available network interfaces.
DEFAULT_PORT = 8888
DEFAULT_NICKNAME = "Guest"

ENCODING = 'utf-8'
BUFFER_SIZE = 4096

# Shown when the local hostname does not resolve to an IPv4 address.
ADDRESS_NOT_FOUND = "Not found"
