from fastapi import HTTPException, status
import logging
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from polis.core.errors import error_response

logger = logging.getLogger("polis")


class BodyTooLarge(HTTPException):
    def __init__(self, max_body_size: int):
        super().__init__(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Request body exceeds {max_body_size} bytes",
        )


class BodySizeLimitMiddleware:
    """
    Rejects request bodies larger than max_body_size with 413.

    A declared Content-Length is checked before the app runs. Bodies sent
    without one (chunked) are counted while the app reads them.
    """

    def __init__(self, app: ASGIApp, max_body_size: int):
        self.app = app
        self.max_body_size = max_body_size

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length is not None:
            try:
                size = int(content_length)
            except ValueError:
                response = error_response(status.HTTP_400_BAD_REQUEST, "Invalid Content-Length header")
                await response(scope, receive, send)
                return
            if size > self.max_body_size:
                logger.warning(f"Rejected {scope['method']} {scope['path']}: body of {size} bytes")
                response = error_response(
                    status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    f"Request body exceeds {self.max_body_size} bytes",
                )
                await response(scope, receive, send)
                return

        received = 0
        response_started = False

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_size:
                    logger.warning(f"Rejected {scope['method']} {scope['path']}: streamed body over limit")
                    raise BodyTooLarge(self.max_body_size)
            return message

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, limited_receive, tracking_send)
        except BodyTooLarge as e:
            # Raised outside a route, so no exception handler answered it
            if response_started:
                raise
            await error_response(e.status_code, e.detail)(scope, receive, send)
