"""
Back-office helpers: role checks and dashboard counts.
"""

from typing import Dict, List, Optional
import logging

from ..models.schemas import AdminStats, UserRoles
from .backend_client import BackendClient

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


class AdminService:
    """Role lookup and statistics for the admin dashboard."""

    def __init__(self, backend: BackendClient):
        self._backend = backend

    def is_admin(self, user_id: Optional[str]) -> bool:
        """True when ``user_roles`` grants the user the admin role."""
        if not user_id:
            return False
        roles = self._backend.select("user_roles", {"user_id": user_id})
        return any(r.get("role") == ADMIN_ROLE for r in roles)

    def set_role(self, user_id: str, role: str):
        """Replace the user's roles with ``role``."""
        for row in self._backend.select("user_roles", {"user_id": user_id}):
            self._backend.delete("user_roles", row["id"])
        self._backend.insert("user_roles", {"user_id": user_id, "role": role})
        logger.info(f"User {user_id} now has role '{role}'")

    def users(self) -> List[UserRoles]:
        """Every profile with the roles granted to it."""
        roles: Dict[str, List[str]] = {}
        for row in self._backend.select("user_roles", order_by="id"):
            roles.setdefault(str(row.get("user_id")), []).append(row.get("role"))
        return [
            UserRoles(
                user_id=str(profile["id"]),
                full_name=profile.get("full_name"),
                roles=roles.get(str(profile["id"]), []),
            )
            for profile in self._backend.select("profiles", order_by="id")
        ]

    def stats(self) -> AdminStats:
        return AdminStats(
            properties=self._backend.count("properties"),
            users=self._backend.count("profiles"),
            inquiries=self._backend.count("property_inquiries"),
        )
