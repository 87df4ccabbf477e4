from .console import Console, get_console, set_console, report

__all__ = ["Console", "get_console", "set_console", "report"]
