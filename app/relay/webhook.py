"""
Directus webhook endpoint logic: authenticate, parse, render, dispatch.
"""

import logging

from fastapi import Request, Response, HTTPException, status

from app.auth.keys import KeyVerifier
from app.config import Settings
from app.relay.errors import AuthFailure, RenderFailure, ValidationFailure
from app.relay.models import ChangeEvent, RelayTarget
from app.slack.dispatcher import SlackDispatcher
from app.slack.formatter import build_outgoing

logger = logging.getLogger(__name__)


class RelayWebhook:
    """Handles change notifications from Directus."""

    def __init__(self, settings: Settings, verifier: KeyVerifier, dispatcher: SlackDispatcher):
        self.settings = settings
        self.verifier = verifier
        self.dispatcher = dispatcher

    async def authenticate(self, caller_key: str) -> None:
        if not await self.verifier.verify(caller_key):
            raise AuthFailure("invalid key")

    async def handle_webhook(
        self,
        request: Request,
        caller_key: str,
        object_type_name: str,
        destination_path: str,
    ) -> Response:
        """Relay one change notification; answers before Slack is contacted."""
        request_id = getattr(request.state, "request_id", None)

        try:
            await self.authenticate(caller_key)
        except AuthFailure:
            logger.warning("Invalid caller key")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Unauthorized"
            )

        body = await request.body()

        try:
            event = ChangeEvent.from_body(body, object_type_name)
            target = RelayTarget.from_path(destination_path)
        except ValidationFailure as e:
            logger.warning(f"Rejected webhook (request {request_id}): {e}")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Bad request"
            )

        try:
            outgoing = build_outgoing(event, self.settings.directus_base_url)
        except RenderFailure as e:
            logger.error(f"Error rendering message (request {request_id}): {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error"
            )

        logger.info(
            f"Relaying change of {event.object_type_name} {event.record_id} "
            f"by user {event.modified_by_user_id} (request {request_id})"
        )
        self.dispatcher.dispatch(
            target.url(self.settings.slack_base_url),
            outgoing,
            request_id=request_id,
        )

        return Response(status_code=status.HTTP_204_NO_CONTENT)
