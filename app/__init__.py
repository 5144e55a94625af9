"""TodoMate conversational todo assistant."""

__version__ = "0.1.0"
