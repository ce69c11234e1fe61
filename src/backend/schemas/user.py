"""
Identity schema for the authenticated caller.
"""

from typing import Optional

from pydantic import BaseModel


class AuthenticatedUser(BaseModel):
    """The verified identity carried by an access token."""

    id: str
    is_admin: bool = False
    email: Optional[str] = None
