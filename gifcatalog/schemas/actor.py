"""
Actor schema

The catalog doesn't manage users. Collaborators pass in an opaque actor
carrying the identity and role they resolved.
"""

from pydantic import BaseModel

from gifcatalog.config import ELEVATED_ROLES, UserRole


class Actor(BaseModel):
    """The user on whose behalf an operation runs"""

    id: int
    role: UserRole = UserRole.user
    sfw_mode: bool = True

    model_config = {"from_attributes": True}

    @property
    def is_elevated(self) -> bool:
        """Moderators and administrators may act on any item."""
        return self.role in ELEVATED_ROLES
