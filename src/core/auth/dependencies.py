from typing import Annotated

from fastapi import Depends, Header

from src.core.auth.schemas import Actor
from src.core.exceptions import AuthenticationError


async def get_current_actor(
    x_actor_code: Annotated[str | None, Header()] = None,
    x_actor_name: Annotated[str | None, Header()] = None,
) -> Actor:
    """
    Dependency resolving the calling actor from gateway headers.

    Authentication happens upstream; this service only needs a code and a
    display name to attribute approvals and audit entries.

    Usage:
        @router.post("/purchase-orders")
        async def create(actor: Actor = Depends(get_current_actor)):
            ...
    """
    code = (x_actor_code or "").strip()
    name = (x_actor_name or "").strip()
    if not code:
        raise AuthenticationError("X-Actor-Code header required")
    return Actor(actor_code=code, actor_name=name or code)


# Convenience dependency
CurrentActor = Annotated[Actor, Depends(get_current_actor)]
