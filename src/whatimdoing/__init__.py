"""Record what you are doing right now and browse the history."""

__version__ = "0.1.0"
