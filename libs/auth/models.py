from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class AuthUser(BaseModel):
    """
    Represents an authenticated user from a Supabase access token.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_id: str = Field(..., alias="sub")
    email: Optional[EmailStr] = None
    role: str = "authenticated"
    app_metadata: dict = Field(default_factory=dict)
    user_metadata: dict = Field(default_factory=dict)

    @property
    def is_admin(self) -> bool:
        return self.role == "service_role" or self.app_metadata.get("role") == "admin"

    @property
    def display_name(self) -> str:
        name = self.user_metadata.get("full_name") or self.user_metadata.get("name")
        if name:
            return name
        return (self.email or "").split("@")[0] or "there"
