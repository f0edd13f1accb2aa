"""Push-Relay: fan stdin events out to push notification and log collector sinks."""

__version__ = "0.3.0"

__all__ = ["__version__"]
