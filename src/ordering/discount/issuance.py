"""Discount code issuance: command and handler."""

from uuid import uuid4

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String
from protean.utils.globals import current_domain

from ordering.discount.discount_code import DiscountCode
from ordering.domain import logger, ordering


@ordering.command(part_of="DiscountCode")
class IssueDiscountCode:
    code = String(max_length=50)  # Generated when omitted
    percentage = Float(required=True, min_value=0.0, max_value=100.0)
    owner_id = Identifier()
    expires_at = DateTime()


@ordering.command_handler(part_of=DiscountCode)
class IssueDiscountCodeHandler:
    @handle(IssueDiscountCode)
    def issue_discount_code(self, command):
        repo = current_domain.repository_for(DiscountCode)
        code = command.code or f"DISC-{uuid4().hex[:8].upper()}"

        if repo.by_code(code) is not None:
            raise ValidationError({"code": [f"Discount code {code} already exists"]})

        discount_code = DiscountCode.issue(
            code=code,
            percentage=command.percentage,
            owner_id=command.owner_id,
            expires_at=command.expires_at,
        )
        repo.add(discount_code)
        logger.info("Discount code issued", code=discount_code.code, owner_id=command.owner_id)
        return discount_code.code
