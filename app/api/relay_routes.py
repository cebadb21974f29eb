from fastapi import APIRouter, Request

from app.relay.webhook import RelayWebhook

router = APIRouter(tags=["relay"])


def get_webhook_handler(request: Request) -> RelayWebhook:
    return request.app.state.webhook_handler


@router.post("/{caller_key}/{object_type_name}/{destination_path:path}", status_code=204)
async def relay_webhook(request: Request, caller_key: str, object_type_name: str, destination_path: str):
    webhook_handler = get_webhook_handler(request)
    return await webhook_handler.handle_webhook(request, caller_key, object_type_name, destination_path)
