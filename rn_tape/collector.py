"""Single-result HTTP collector for test output relayed from the device."""

import asyncio
import logging

from aiohttp import ClientPayloadError, web
from aiohttp.http_exceptions import HttpProcessingError
from pydantic import ValidationError

from rn_tape.errors import NetworkError, ProtocolError, TransportError
from rn_tape.models.config import DEFAULT_PORT
from rn_tape.models.result import RunResult

log = logging.getLogger(__name__)

# Errors surfaced by aiohttp when a request body breaks off mid-transfer
TRANSPORT_ERRORS = (ConnectionError, ClientPayloadError, HttpProcessingError)

# Full test output arrives in one body, well past aiohttp's 1 MiB default
MAX_SUBMISSION_SIZE = 1024**3


class PendingResult:
    """Holds the outcome of a run, settled at most once.

    Settling an already settled result is ignored: the first outcome wins.
    """

    def __init__(self) -> None:
        self._future: asyncio.Future[RunResult] | None = None

    def _get_future(self) -> asyncio.Future[RunResult]:
        if self._future is None:
            self._future = asyncio.get_running_loop().create_future()
        return self._future

    @property
    def settled(self) -> bool:
        """Whether a result or a failure has been recorded."""
        return self._future is not None and self._future.done()

    def resolve(self, result: RunResult) -> bool:
        """Record the result, returning False if already settled."""
        future = self._get_future()
        if future.done():
            log.warning("Ignoring result received after the run was settled")
            return False
        future.set_result(result)
        return True

    def reject(self, error: BaseException) -> bool:
        """Record a failure, returning False if already settled."""
        future = self._get_future()
        if future.done():
            log.warning("Ignoring failure after the run was settled: %s", error)
            return False
        future.set_exception(error)
        return True

    async def wait(self) -> RunResult:
        """Wait for the outcome, raising the recorded failure if any."""
        return await self._get_future()


class ResultCollector:
    """HTTP listener accepting the single result submission of a run.

    Any method on any path is accepted. The body must be a JSON result
    payload; the response is ``ok`` once it has been parsed, ``fail``
    otherwise. The listener keeps serving until stopped, but only the first
    settlement counts.
    """

    def __init__(
        self,
        *,
        port: int = DEFAULT_PORT,
        host: str = "127.0.0.1",
        max_size: int = MAX_SUBMISSION_SIZE,
    ) -> None:
        self.host = host
        self.requested_port = port
        self.max_size = max_size
        self.pending = PendingResult()
        self._runner: web.AppRunner | None = None
        self._port: int | None = None

    @property
    def port(self) -> int:
        """Port the collector is bound to."""
        if self._port is None:
            raise RuntimeError("Result collector has not been started")
        return self._port

    @property
    def closed(self) -> bool:
        """Whether the listening socket is released."""
        return self._runner is None

    async def start(self) -> None:
        """Bind the listener.

        Raises:
            NetworkError: If the port cannot be bound

        """
        app = web.Application(client_max_size=self.max_size)
        app.router.add_route("*", "/{tail:.*}", self.handle_submission)

        runner = web.AppRunner(app, access_log=None)
        await runner.setup()
        site = web.TCPSite(runner, self.host, self.requested_port)
        try:
            await site.start()
        except OSError as exc:
            await runner.cleanup()
            raise NetworkError(
                f"Could not bind result collector on "
                f"{self.host}:{self.requested_port}: {exc.strerror or exc}"
            ) from exc

        self._runner = runner
        self._port = runner.addresses[0][1]
        log.info("Result collector listening on %s:%d", self.host, self._port)

    async def stop(self) -> None:
        """Unbind the listener and wait until the socket is closed."""
        if self._runner is None:
            return
        runner, self._runner = self._runner, None
        await runner.cleanup()
        log.info("Result collector stopped")

    async def result(self) -> RunResult:
        """Wait for the first submission to settle the run."""
        return await self.pending.wait()

    async def handle_submission(self, request: web.Request) -> web.Response:
        """Buffer the request body and settle the pending result from it."""
        try:
            body = await request.read()
        except TRANSPORT_ERRORS as exc:
            log.error("Result submission broke off: %s", exc)
            self.pending.reject(
                TransportError(f"Result submission broke off before completing: {exc}")
            )
            return web.Response(status=400, text="fail")
        except web.HTTPRequestEntityTooLarge:
            log.error("Result submission exceeds %d bytes", self.max_size)
            self.pending.reject(
                ProtocolError(f"Result submission exceeds {self.max_size} bytes")
            )
            return web.Response(status=400, text="fail")

        try:
            result = RunResult.model_validate_json(body)
        except ValidationError as exc:
            invalid_json = any(err["type"] == "json_invalid" for err in exc.errors())
            reason = "is not valid JSON" if invalid_json else "is not a result payload"
            log.error("Result submission %s", reason)
            self.pending.reject(
                ProtocolError(f"Result submission {reason}", data=str(exc))
            )
            return web.Response(status=400, text="fail")

        log.info("Result received (finished=%s)", result.finished)
        self.pending.resolve(result)
        return web.Response(text="ok")
