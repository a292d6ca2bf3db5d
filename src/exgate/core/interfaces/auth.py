from abc import ABC, abstractmethod
from typing import Optional, Set

ADMIN_ROLE = "admin"


class AuthPort(ABC):
    @abstractmethod
    def resolve_roles(self, authorization: Optional[str]) -> Set[str]:
        """Return the roles granted by the raw Authorization header value."""
        pass
