"""Customer provisioning from the authenticated identity."""

from datetime import UTC, datetime

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, Identifier, String
from protean.utils.globals import current_domain

from commerce.customer.customer import Customer
from commerce.domain import commerce


def find_customer(customer_id) -> Customer | None:
    try:
        return current_domain.repository_for(Customer).get(str(customer_id))
    except ObjectNotFoundError:
        return None


@commerce.command(part_of="Customer")
class SyncCustomer:
    """Create or refresh the local record of an authenticated user."""

    customer_id = Identifier(required=True)
    email = String(required=True, max_length=254)
    name = String(max_length=255)
    country = String(max_length=2)
    is_admin = Boolean(default=False)


@commerce.command_handler(part_of=Customer)
class SyncCustomerHandler:
    @handle(SyncCustomer)
    def sync_customer(self, command):
        repo = current_domain.repository_for(Customer)
        customer = find_customer(command.customer_id)

        if customer is None:
            customer = Customer.register(
                customer_id=command.customer_id,
                email=command.email,
                name=command.name,
                country=command.country,
                is_admin=command.is_admin,
            )
            repo.add(customer)
            return str(customer.id)

        # An identity without a country keeps the one on record.
        country = (command.country or "").upper() or customer.country
        if (customer.email, customer.name, customer.country, bool(customer.is_admin)) != (
            command.email,
            command.name,
            country,
            bool(command.is_admin),
        ):
            customer.email = command.email
            customer.name = command.name
            customer.country = country
            customer.is_admin = command.is_admin
            customer.updated_at = datetime.now(UTC)
            repo.add(customer)

        return str(customer.id)
