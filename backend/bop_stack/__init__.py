"""B.O.P stack configurator backend."""

__version__ = "1.0.0"
