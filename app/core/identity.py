import enum
from dataclasses import dataclass, field
from typing import Optional


class UserType(int, enum.Enum):
    INTERNAL = 1
    EXTERNAL = 2
    ANONYMOUS = 3


PERM_PRICE_VIEW = "price:view"
PERM_PRICE_VIEW_EXTERNAL = "price:view:external"
PERM_PRICE_VIEW_INTERNAL = "price:view:internal"
PERM_PRICE_MANAGE_ORG = "price:manage:org"
PERM_PRICE_CREATE = "price:create"
PERM_PRICE_EDIT = "price:edit"
PERM_PRICE_DELETE = "price:delete"

# Role names are provisioned by the admin console and are matched verbatim.
ROLE_SUPER_ADMIN = "超级管理员"
ROLE_ADMIN = "管理员"
ADMIN_ROLES = frozenset({ROLE_SUPER_ADMIN, ROLE_ADMIN})


@dataclass(frozen=True)
class IdentityContext:
    """Caller identity as resolved by the upstream auth gateway for one request."""

    user_id: Optional[int] = None
    user_type: int = UserType.INTERNAL.value
    organization_id: Optional[int] = None
    roles: frozenset[str] = field(default_factory=frozenset)
    permissions: frozenset[str] = field(default_factory=frozenset)

    def has_permission(self, code: str) -> bool:
        return code in self.permissions

    def has_any_role(self, roles) -> bool:
        return any(role in self.roles for role in roles)

    @property
    def can_view_external(self) -> bool:
        return PERM_PRICE_VIEW_EXTERNAL in self.permissions or PERM_PRICE_VIEW in self.permissions

    @property
    def can_view_internal(self) -> bool:
        return PERM_PRICE_VIEW_INTERNAL in self.permissions or PERM_PRICE_VIEW in self.permissions

    @property
    def sees_all_organizations(self) -> bool:
        return PERM_PRICE_MANAGE_ORG in self.permissions or self.has_any_role(ADMIN_ROLES)
