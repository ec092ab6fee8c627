from src.core.auth.schemas import Actor
from src.core.auth.dependencies import CurrentActor, get_current_actor

__all__ = [
    "Actor",
    "CurrentActor",
    "get_current_actor",
]
