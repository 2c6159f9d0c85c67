"""One-time confirmation access — redeem an order's access token."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.errors import InvalidOrAlreadyUsed
from commerce.order.order import ACCESS_TOKEN_MAX_LENGTH, Order


@commerce.command(part_of="Order")
class RedeemConfirmationToken:
    user_id = Identifier(required=True)
    token = String(required=True, max_length=ACCESS_TOKEN_MAX_LENGTH)


@commerce.command_handler(part_of=Order)
class RedeemConfirmationTokenHandler:
    @handle(RedeemConfirmationToken)
    def redeem(self, command):
        repo = current_domain.repository_for(Order)
        matches = repo._dao.query.filter(access_token=command.token).all().items
        if not matches:
            raise InvalidOrAlreadyUsed()

        order = matches[0]
        order.redeem_confirmation(command.user_id, command.token)
        repo.add(order)
        return str(order.id)
