"""Inbound gateway webhooks."""

from fastapi import APIRouter, Request, Response

from ..dependencies import get_runtime
from ..logging import generate_request_id, get_service_logger, set_request_id

router = APIRouter()
log = get_service_logger(__name__)


@router.post("/whatsapp-webhook", tags=["Webhooks"])
async def whatsapp_webhook(request: Request):
    """Handle incoming UltraMsg webhooks. Always answers with an empty 200."""
    from ...integrations.ultramsg.webhook import handle_ultramsg_webhook

    set_request_id(generate_request_id())
    try:
        await handle_ultramsg_webhook(request, get_runtime())
    except Exception:
        # The gateway only ever sees an empty 200
        log.exception("Webhook handling failed")
    return Response(status_code=200)
