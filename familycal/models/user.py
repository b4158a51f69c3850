from pydantic import BaseModel


class AdminUser(BaseModel):
    """The Google account that administers the dashboard."""

    id: str
    email: str = ""
    name: str = ""
    picture: str | None = None

    def public_profile(self) -> dict[str, str | None]:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "picture": self.picture,
        }
