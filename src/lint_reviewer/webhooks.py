"""
Webhook Dispatch

Maps ``<event>.<action>`` kinds to handler coroutines. Handlers take the
bot and the raw payload, so they can be called directly with constructed
payloads.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from .models.pr_diff import PullRequestEvent


logger = logging.getLogger(__name__)

Handler = Callable[[Any, Dict[str, Any]], Awaitable[Any]]


async def handle_pull_request(bot, payload: Dict[str, Any]):
    """Validate a pull_request payload and run one review cycle."""
    event = PullRequestEvent.from_webhook(payload)
    return await bot.review_pull_request(event)


EVENT_HANDLERS: Dict[str, Handler] = {
    "pull_request.opened": handle_pull_request,
    "pull_request.synchronize": handle_pull_request,
}


def event_kind(event_name: str, payload: Dict[str, Any]) -> str:
    action = payload.get('action')
    return f"{event_name}.{action}" if action else event_name


async def dispatch(
    bot,
    event_name: str,
    payload: Dict[str, Any],
    handlers: Optional[Dict[str, Handler]] = None
):
    """
    Route a webhook delivery to its handler.

    Args:
        bot: Object passed through to the handler
        event_name: Value of the ``X-GitHub-Event`` header
        payload: Decoded JSON body
        handlers: Dispatch table (defaults to EVENT_HANDLERS)

    Returns:
        Handler result, or None when the kind has no handler
    """
    table = EVENT_HANDLERS if handlers is None else handlers
    kind = event_kind(event_name, payload)

    handler = table.get(kind)
    if handler is None:
        logger.debug(f"No handler for {kind}, ignoring")
        return None

    logger.info(f"Dispatching {kind}")
    return await handler(bot, payload)
