import logging
from typing import Optional

from pydantic import Field

from toolhub.infra.error_handler import error_message
from toolhub.tools.base import BuiltinTool, ToolParams
from toolhub.tools.services import ToolServices, not_configured

logger = logging.getLogger(__name__)


class CustomerLookupParams(ToolParams):
    customer_id: Optional[str] = Field(None, description="Customer identifier")
    email: Optional[str] = Field(None, description="Customer email address")
    phone: Optional[str] = Field(None, description="Customer phone number")


def build_customer_lookup_tool(services: ToolServices) -> BuiltinTool:
    async def lookup_customer(params: CustomerLookupParams, context) -> dict:
        if not (params.customer_id or params.email or params.phone):
            return {"success": False, "error": "Provide at least one of customer_id, email or phone"}
        if services.customers is None:
            return not_configured("Customer lookup")

        try:
            customer = await services.customers.find_customer(
                organization_id=context.organization_id,
                customer_id=params.customer_id,
                email=params.email,
                phone=params.phone,
            )
        except Exception as e:
            logger.error(f"Customer lookup failed: {e}", exc_info=True)
            return {"success": False, "error": f"Customer lookup failed: {error_message(e)}"}

        if not customer:
            return {"success": False, "error": "Customer not found"}
        return {"success": True, "customer": customer}

    return BuiltinTool(
        name="customer_lookup",
        display_name="Customer Lookup",
        description=(
            "Look up a customer's profile by ID, email or phone number. Use this to personalize "
            "answers or check account details."
        ),
        parameters=CustomerLookupParams,
        handler=lookup_customer,
    )
