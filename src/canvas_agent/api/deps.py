"""API dependency wiring."""

from functools import lru_cache

from ..config import settings
from ..service import CommandService, create_command_service


@lru_cache(maxsize=1)
def get_command_service() -> CommandService:
    """
    Create command service from config (cached singleton).

    Service factory handles all construction logic - deps.py is just thin DI glue.
    """
    return create_command_service(settings)
