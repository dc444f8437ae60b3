"""Cut profiles of source-receiver sight lines through buildings, terrain and ground."""

__version__ = "0.1.0"
