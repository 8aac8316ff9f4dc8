"""Line-delimited JSON-RPC transport over a subprocess's standard streams.

One JSON object per line in each direction. The transport owns two
background tasks per process: a read loop that demultiplexes responses to
their waiters by request id, and a stderr drain that keeps a short tail of
the server's diagnostics for error reports.
"""

import asyncio
import inspect
import json
import logging
import threading
from collections import deque
from collections.abc import Callable
from typing import Any

from opentelemetry.trace import SpanKind

from whispo_mcp.domain.exceptions.mcp import (
    MCPConnectionClosedError,
    MCPError,
    MCPProtocolError,
    MCPRequestTimeoutError,
    MCPTransportParseError,
    MCPTransportWriteError,
)
from whispo_mcp.domain.model.mcp.protocol import (
    METHOD_NOT_FOUND,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    RequestId,
    parse_message,
)
from whispo_mcp.infrastructure.telemetry import add_span_attributes, async_with_tracer

logger = logging.getLogger(__name__)

STDERR_TAIL_LINES = 50

NotificationCallback = Callable[[str, dict[str, Any]], Any]


class _PendingRequests:
    """Outstanding requests keyed by id.

    Request senders register and discard, the read loop resolves; all of it
    goes through one mutex.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._futures: dict[RequestId, asyncio.Future] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._futures)

    def register(self, request_id: RequestId, future: asyncio.Future) -> None:
        with self._lock:
            if request_id in self._futures:
                raise RuntimeError(f"Request id {request_id!r} is already pending")
            self._futures[request_id] = future

    def resolve(self, request_id: RequestId) -> asyncio.Future | None:
        """Remove and return the waiter for an id (None if unknown)."""
        with self._lock:
            return self._futures.pop(request_id, None)

    def discard(self, request_id: RequestId) -> None:
        with self._lock:
            self._futures.pop(request_id, None)

    def fail_all(self, make_error: Callable[[], Exception]) -> int:
        with self._lock:
            futures = list(self._futures.values())
            self._futures.clear()
        failed = 0
        for future in futures:
            if not future.done():
                future.set_exception(make_error())
                failed += 1
        return failed


class StdioTransport:
    """
    JSON-RPC framing over a running MCP server process.

    Usage:
        process = await asyncio.create_subprocess_exec(..., stdin=PIPE, stdout=PIPE, stderr=PIPE)
        transport = StdioTransport("editor", process)
        transport.start()
        result = await transport.request("tools/list", {}, timeout=30)
        await transport.stop()
    """

    def __init__(
        self,
        server_name: str,
        process: asyncio.subprocess.Process,
        on_notification: NotificationCallback | None = None,
        on_close: Callable[[], None] | None = None,
    ) -> None:
        self.server_name = server_name
        self._process = process
        self._on_notification = on_notification
        self._on_close = on_close
        self._pending = _PendingRequests()
        self._request_id = 0
        self._write_lock = asyncio.Lock()
        self._stderr_tail: deque[str] = deque(maxlen=STDERR_TAIL_LINES)
        self._reader_task: asyncio.Task | None = None
        self._stderr_task: asyncio.Task | None = None
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def stderr_tail(self) -> list[str]:
        """Last lines the server wrote to stderr, oldest first."""
        return list(self._stderr_tail)

    def start(self) -> None:
        """Start the read loop and the stderr drain."""
        if self._reader_task is not None:
            return
        self._reader_task = asyncio.create_task(
            self._read_loop(), name=f"mcp-read-{self.server_name}"
        )
        self._stderr_task = asyncio.create_task(
            self._drain_stderr(), name=f"mcp-stderr-{self.server_name}"
        )

    def _next_request_id(self) -> int:
        self._request_id += 1
        return self._request_id

    async def send(self, message: dict[str, Any]) -> None:
        """
        Write one message as a single JSON line.

        Raises:
            MCPTransportWriteError: If the process's stdin is closed.
        """
        stdin = self._process.stdin
        if self._closed or stdin is None or stdin.is_closing():
            raise MCPTransportWriteError(self.server_name)

        # json.dumps escapes newlines inside strings, so one message is one line
        line = json.dumps(message, separators=(",", ":"), ensure_ascii=False) + "\n"
        async with self._write_lock:
            try:
                stdin.write(line.encode("utf-8"))
                await stdin.drain()
            except (ConnectionError, RuntimeError) as e:
                raise MCPTransportWriteError(self.server_name, e) from e
        logger.debug(f"[{self.server_name}] -> {line.rstrip()}")

    @async_with_tracer("mcp.transport", kind=SpanKind.CLIENT)
    async def request(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """
        Send a request and wait for its response.

        Args:
            method: JSON-RPC method name.
            params: Request params (defaults to an empty object).
            timeout: Seconds to wait; None waits until the connection closes.

        Returns:
            The ``result`` member of the response.

        Raises:
            MCPProtocolError: The server answered with a JSON-RPC error.
            MCPRequestTimeoutError: No response within ``timeout``.
            MCPConnectionClosedError: The connection closed first.
            MCPTransportWriteError: The request could not be written.
        """
        if self._closed:
            raise MCPConnectionClosedError(self.server_name)

        request_id = self._next_request_id()
        add_span_attributes(
            {"mcp.server": self.server_name, "mcp.method": method, "mcp.request_id": request_id}
        )
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending.register(request_id, future)
        try:
            await self.send(JsonRpcRequest(id=request_id, method=method, params=params or {}).to_dict())
            if timeout is None:
                response: JsonRpcResponse = await future
            else:
                response = await asyncio.wait_for(future, timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[{self.server_name}] Request {method} (id={request_id}) timed out")
            raise MCPRequestTimeoutError(self.server_name, method, timeout) from None
        finally:
            # Late responses for this id are dropped by the read loop
            self._pending.discard(request_id)

        if response.error is not None:
            raise response.error.to_exception()
        return response.result

    async def notify(self, method: str, params: dict[str, Any] | None = None) -> None:
        """Send a notification (no id, no response)."""
        await self.send(JsonRpcNotification(method=method, params=params or {}).to_dict())

    async def stop(self) -> None:
        """Cancel both background tasks and fail outstanding requests. Idempotent."""
        tasks = [
            task
            for task in (self._reader_task, self._stderr_task)
            if task is not None and not task.done()
        ]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._mark_closed()

    def _mark_closed(self) -> None:
        if self._closed:
            return
        self._closed = True
        failed = self._pending.fail_all(lambda: MCPConnectionClosedError(self.server_name))
        if failed:
            logger.warning(f"[{self.server_name}] Connection closed with {failed} pending request(s)")
        if self._on_close is not None:
            try:
                self._on_close()
            except Exception:
                logger.exception(f"[{self.server_name}] on_close callback failed")

    async def _read_loop(self) -> None:
        reader = self._process.stdout
        try:
            while reader is not None:
                try:
                    raw = await reader.readline()
                except ValueError as e:
                    # Line over the stream limit; the reader already skipped it
                    logger.error(f"[{self.server_name}] Oversized frame discarded: {e}")
                    continue
                if not raw:
                    logger.info(f"[{self.server_name}] Server closed its stdout")
                    break
                line = raw.decode("utf-8", errors="replace").strip()
                if not line:
                    continue
                await self._handle_line(line)
        except asyncio.CancelledError:
            logger.debug(f"[{self.server_name}] Read loop cancelled")
        except Exception as e:
            logger.error(f"[{self.server_name}] Error in read loop: {e}", exc_info=True)
        finally:
            self._mark_closed()

    async def _handle_line(self, line: str) -> None:
        logger.debug(f"[{self.server_name}] <- {line}")
        try:
            message = parse_message(json.loads(line))
        except (json.JSONDecodeError, MCPProtocolError) as e:
            logger.warning(str(MCPTransportParseError(self.server_name, line, e)))
            return

        if isinstance(message, JsonRpcResponse):
            self._route_response(message)
        elif isinstance(message, JsonRpcNotification):
            await self._dispatch_notification(message)
        else:
            await self._reject_server_request(message)

    def _route_response(self, response: JsonRpcResponse) -> None:
        if response.id is None:
            logger.warning(
                f"[{self.server_name}] Dropping response without id: "
                f"{response.error.message if response.error else response.result!r}"
            )
            return
        future = self._pending.resolve(response.id)
        if future is None or future.done():
            logger.warning(
                f"[{self.server_name}] Dropping response for unknown request id {response.id!r}"
            )
            return
        future.set_result(response)

    async def _dispatch_notification(self, notification: JsonRpcNotification) -> None:
        if self._on_notification is None:
            logger.debug(f"[{self.server_name}] Unhandled notification {notification.method}")
            return
        try:
            result = self._on_notification(notification.method, notification.params)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning(
                f"[{self.server_name}] Notification handler failed for {notification.method}: {e}",
                exc_info=True,
            )

    async def _reject_server_request(self, request: JsonRpcRequest) -> None:
        logger.debug(f"[{self.server_name}] Rejecting server-initiated request {request.method}")
        response = JsonRpcResponse.failure(
            request.id, METHOD_NOT_FOUND, f"Method not found: {request.method}"
        )
        try:
            await self.send(response.to_dict())
        except MCPError as e:
            logger.warning(f"[{self.server_name}] Could not answer {request.method}: {e}")

    async def _drain_stderr(self) -> None:
        stream = self._process.stderr
        if stream is None:
            return
        try:
            while True:
                try:
                    raw = await stream.readline()
                except ValueError:
                    continue
                if not raw:
                    break
                text = raw.decode("utf-8", errors="replace").rstrip()
                if text:
                    self._stderr_tail.append(text)
                    logger.debug(f"[{self.server_name} stderr] {text}")
        except asyncio.CancelledError:
            pass
