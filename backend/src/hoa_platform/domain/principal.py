"""Authenticated caller identities.

A principal is one of four variants. Engine operations branch on the
variant class rather than on raw role strings from the token.
"""

from dataclasses import dataclass
from typing import Union

from hoa_platform.domain.enums import PrincipalType, Role


@dataclass(frozen=True)
class LeaderPrincipal:
    id: str
    role: Role = Role.LEADER
    type: PrincipalType = PrincipalType.USER


@dataclass(frozen=True)
class HomeOwnerPrincipal:
    id: str
    role: Role = Role.HOME_OWNER
    type: PrincipalType = PrincipalType.USER


@dataclass(frozen=True)
class ServiceProviderPrincipal:
    id: str
    role: Role = Role.SERVICE_PROVIDER
    type: PrincipalType = PrincipalType.SERVICE_PROVIDER


@dataclass(frozen=True)
class AdminPrincipal:
    id: str
    role: Role = Role.ADMIN
    type: PrincipalType = PrincipalType.USER


Principal = Union[LeaderPrincipal, HomeOwnerPrincipal, ServiceProviderPrincipal, AdminPrincipal]

_BY_ROLE: dict[Role, type] = {
    Role.LEADER: LeaderPrincipal,
    Role.HOME_OWNER: HomeOwnerPrincipal,
    Role.SERVICE_PROVIDER: ServiceProviderPrincipal,
    Role.ADMIN: AdminPrincipal,
}


def principal_for(principal_id: str, role: Role | str) -> Principal:
    """Build the variant matching *role*. Raises ValueError for unknown roles."""
    return _BY_ROLE[Role(role)](id=principal_id)


def principal_from_claims(claims: dict) -> Principal | None:
    """Build a principal from decoded JWT claims, or None if they are malformed."""
    principal_id = claims.get("sub")
    if not principal_id:
        return None
    if claims.get("type") == PrincipalType.SERVICE_PROVIDER.value:
        return ServiceProviderPrincipal(id=principal_id)
    if claims.get("role") == Role.SERVICE_PROVIDER.value:
        # Provider tokens must also carry the provider type
        return None
    try:
        return principal_for(principal_id, claims.get("role", ""))
    except ValueError:
        return None
