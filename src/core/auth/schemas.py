from pydantic import Field

from src.shared.schemas import BaseSchema


class Actor(BaseSchema):
    """Identity supplied by the upstream auth layer; trusted for attribution."""

    actor_code: str = Field(..., min_length=1, max_length=50)
    actor_name: str = Field(..., min_length=1, max_length=200)
