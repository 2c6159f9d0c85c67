"""Request dependencies: the authenticated caller and their country.

Authentication happens upstream. The gateway in front of this service
forwards the verified identity as ``X-User-*`` headers and the visitor's
country (from GeoIP) as ``X-Country``. Every authenticated request
refreshes the local Customer record.
"""

from dataclasses import dataclass

from fastapi import Depends, Header
from protean.utils.globals import current_domain

from commerce.customer.registration import SyncCustomer
from commerce.errors import NotAuthenticated, NotAuthorized
from commerce.pricing.localization import resolve_country

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class CurrentUser:
    id: str
    email: str
    name: str | None = None
    country: str | None = None
    is_admin: bool = False


async def current_user(
    x_user_id: str | None = Header(default=None),
    x_user_email: str | None = Header(default=None),
    x_user_name: str | None = Header(default=None),
    x_user_country: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> CurrentUser:
    if not x_user_id or not x_user_email:
        raise NotAuthenticated()

    user = CurrentUser(
        id=x_user_id,
        email=x_user_email,
        name=x_user_name,
        country=(x_user_country or "").upper()[:2] or None,
        is_admin=(x_user_role or "").lower() == ADMIN_ROLE,
    )
    current_domain.process(
        SyncCustomer(
            customer_id=user.id,
            email=user.email,
            name=user.name,
            country=user.country,
            is_admin=user.is_admin,
        ),
        asynchronous=False,
    )
    return user


async def admin_user(user: CurrentUser = Depends(current_user)) -> CurrentUser:
    if not user.is_admin:
        raise NotAuthorized()
    return user


async def request_country(
    user: CurrentUser = Depends(current_user),
    x_country: str | None = Header(default=None),
) -> str:
    """The buyer's country: GeoIP header, else profile country, else the default."""
    return resolve_country(x_country or user.country)
