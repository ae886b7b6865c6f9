from typing import Optional

from pydantic import BaseModel, ConfigDict


class Identity(BaseModel):
    """Signed-in user as reported by the identity provider"""

    model_config = ConfigDict(populate_by_name=True)

    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = None

    def to_client(self) -> dict:
        return {
            "uid": self.uid,
            "email": self.email,
            "displayName": self.display_name,
            "photoURL": self.photo_url,
        }
