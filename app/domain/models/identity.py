from typing import Optional
from pydantic import BaseModel

GUEST = "guest"

class Identity(BaseModel):
    """Requesting shopper: a known user id, or a guest (user_id is None)."""
    user_id: Optional[str] = None

    model_config = {"frozen": True}

    @property
    def is_guest(self) -> bool:
        return self.user_id is None

    @property
    def cache_token(self) -> str:
        return self.user_id or GUEST

    @classmethod
    def guest(cls) -> "Identity":
        return cls(user_id=None)

    @classmethod
    def parse(cls, raw: Optional[str]) -> "Identity":
        """'guest', empty or missing ids are guests; anything else is a candidate user id."""
        value = (raw or "").strip()
        if not value or value.lower() == GUEST:
            return cls.guest()
        return cls(user_id=value)
