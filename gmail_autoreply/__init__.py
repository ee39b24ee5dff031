"""Reply once to every unread Gmail thread and label the reply as handled."""

__version__ = "0.1.0"
