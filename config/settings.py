"""Environment-backed settings.

Values are read from the process environment, with a ``.env`` file loaded
first when present (see ``.env.example``).
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from config.constants import API_READ_TIMEOUT_DEFAULT, OFF_API_BASE_URL
from domain.models import Credentials

load_dotenv()


@dataclass(frozen=True)
class Settings:
    """Runtime configuration for clients built by the container."""

    base_url: str = OFF_API_BASE_URL
    user_id: Optional[str] = None
    password: Optional[str] = None
    read_timeout: float = API_READ_TIMEOUT_DEFAULT

    @classmethod
    def from_env(cls) -> "Settings":
        read_timeout = os.getenv("OFF_READ_TIMEOUT")
        return cls(
            base_url=os.getenv("OFF_BASE_URL") or OFF_API_BASE_URL,
            user_id=os.getenv("OFF_USER_ID") or None,
            password=os.getenv("OFF_PASSWORD") or None,
            read_timeout=float(read_timeout) if read_timeout else API_READ_TIMEOUT_DEFAULT,
        )

    def default_credentials(self) -> Optional[Credentials]:
        """Credentials configured in the environment, if both parts are set."""
        if not self.user_id or not self.password:
            return None
        return Credentials(user_id=self.user_id, password=self.password)
