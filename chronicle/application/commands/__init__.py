from .bus import CommandBus, DuplicateHandlerError
from .handler import CommandHandler

__all__ = ["CommandBus", "CommandHandler", "DuplicateHandlerError"]
