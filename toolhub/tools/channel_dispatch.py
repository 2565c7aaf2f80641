import logging
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import Field

from toolhub.infra.error_handler import error_message
from toolhub.tools.base import BuiltinTool, ToolParams
from toolhub.tools.services import ToolServices, not_configured

logger = logging.getLogger(__name__)


class Channel(str, Enum):
    WHATSAPP = "WHATSAPP"
    EMAIL = "EMAIL"
    SALESFORCE = "SALESFORCE"


class ChannelDispatchParams(ToolParams):
    channel: Channel = Field(..., description="The channel to dispatch to")
    customer_name: str = Field(..., description="Customer's name")
    customer_email: Optional[str] = Field(None, description="Customer's email address")
    customer_phone: Optional[str] = Field(None, description="Customer's phone number")
    message: str = Field(..., description="Summary message for the dispatch")


def build_channel_dispatch_tool(services: ToolServices) -> BuiltinTool:
    async def dispatch(params: ChannelDispatchParams, context) -> dict:
        if services.channels is None:
            return not_configured("Channel dispatch")

        channel = params.channel.value
        try:
            channel_config = await services.channels.get_channel_config(channel)
            if not channel_config or not channel_config.get("enabled"):
                return {"success": False, "message": f"Channel {channel} is not configured or enabled"}

            stamp = int(time.time() * 1000)
            request = {
                "id": f"tool-dispatch-{stamp}",
                "session_id": context.session_id or f"tool-session-{stamp}",
                "organization_id": context.organization_id,
                "customer_name": params.customer_name,
                "customer_email": params.customer_email or None,
                "customer_phone": params.customer_phone or None,
                "messages": [
                    {
                        "role": "system",
                        "content": params.message,
                        "created_at": datetime.now(timezone.utc).isoformat(),
                    }
                ],
            }
            result = await services.channels.dispatch(request, channel_config)
        except Exception as e:
            logger.error(f"Dispatch to {channel} failed: {e}", exc_info=True)
            return {"success": False, "message": f"Dispatch to {channel} failed: {error_message(e)}"}

        logger.info(f"Dispatched conversation to {channel}: success={result.get('success')}")
        return {
            "success": bool(result.get("success")),
            "message": result.get("message"),
            "externalId": result.get("external_id"),
        }

    return BuiltinTool(
        name="channel_dispatch",
        display_name="Send via Channel",
        description=(
            "Send a message or escalate a conversation to an external channel such as WhatsApp, "
            "Email, or Salesforce. Use this when the user requests to be contacted via a specific "
            "channel or when escalation is needed."
        ),
        parameters=ChannelDispatchParams,
        handler=dispatch,
    )
