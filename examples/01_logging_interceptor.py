"""
Logging + auth example.

Sends a request through two interceptors:

- A plain interceptor that logs every request, response and error.
- A sequential interceptor that attaches a bearer token, fetching it once;
  concurrent requests wait in its request queue instead of all refreshing.

Run:
  uv run python examples/01_logging_interceptor.py
"""

from __future__ import annotations

import logging

import anyio

from intercepted import InterceptedClient, Interceptor, SequentialInterceptor

logger = logging.getLogger("example")


class LoggingInterceptor(Interceptor):
    def on_request(self, request, handler):
        logger.info("--> %s %s", request.method, request.url)
        handler.proceed(request)

    def on_response(self, response, handler):
        logger.info("<-- %s %s", response.status_code, response.request.url)
        handler.proceed(response)

    def on_error(self, error, handler):
        logger.warning("<!! %s: %r", handler.request.url, error)
        handler.fail(error, propagate=True)


class TokenInterceptor(SequentialInterceptor):
    def __init__(self):
        super().__init__()
        self._token: str | None = None

    async def on_request(self, request, handler):
        if self._token is None:
            # Pretend to hit an auth server.
            await anyio.sleep(0.2)
            self._token = "s3cr3t"
            logger.info("fetched token")
        request.headers["authorization"] = f"Bearer {self._token}"
        handler.proceed(request)


async def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(name)s %(message)s")

    async with InterceptedClient(interceptors=[LoggingInterceptor(), TokenInterceptor()]) as client:
        async with anyio.create_task_group() as tg:
            for todo in range(1, 4):
                tg.start_soon(client.get, f"https://jsonplaceholder.typicode.com/todos/{todo}")


if __name__ == "__main__":
    anyio.run(main)
