"""Application configuration.

One frozen dataclass holds the server address and the path matching
flags the app reads at startup.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Settings for one App.

    Usage::

        App(AppConfig(debug=True, port=3000, sensitive=True))
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    log_level: str = "info"

    # Pattern matching
    sensitive: bool = False  # Case-sensitive path matching
    strict: bool = False  # Disallow the optional trailing delimiter

    # Run plain ``def`` handlers in a worker thread instead of on the event loop
    sync_handlers_in_thread: bool = False
