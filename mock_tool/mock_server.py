import asyncio
import errno
import logging
from http import HTTPStatus

from .mock_engine import MockEngine

# Setup Logging
logger = logging.getLogger("MockServer")

MAX_RETRY_BIND_COUNT = 10
RETRY_BIND_DELAY = 0.5


class BindError(Exception):
    """Listener could not bind after all retries"""


class BadRequest(Exception):
    pass


def reason_phrase(status):
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return "Unknown"


class MockServer:
    def __init__(self, host='0.0.0.0', port=8888, engine=None,
                 verbose=False, ready_mode=False,
                 retry_bind_delay=RETRY_BIND_DELAY):
        self.host = host
        self.port = port
        self.engine = engine or MockEngine()
        self.verbose = verbose
        self.ready_mode = ready_mode
        self.retry_bind_delay = retry_bind_delay
        self.server = None
        self.running = False
        self.listening = None
        self.log_queue = None # Can be set by TUI

    def log(self, message, level=logging.INFO):
        logger.log(level, message)
        if self.log_queue:
            self.log_queue.put_nowait(message)

    def announce(self, message):
        print(message, flush=True)
        if self.log_queue:
            self.log_queue.put_nowait(message)

    async def bind(self):
        retry_bind_count = 0
        while True:
            try:
                self.server = await asyncio.start_server(
                    self.handle_client, self.host, self.port
                )
                break
            except OSError as e:
                if e.errno != errno.EADDRINUSE:
                    raise
                retry_bind_count += 1
                if retry_bind_count > MAX_RETRY_BIND_COUNT:
                    self.log("Address in use, giving up", logging.ERROR)
                    raise BindError(f"Address {self.host}:{self.port} in use") from e
                self.log(f"Address in use, retrying on {self.host}:{self.port}", logging.WARNING)
                await asyncio.sleep(self.retry_bind_delay)

        if self.port == 0:
            self.port = self.server.sockets[0].getsockname()[1]
        self.running = True

        if self.verbose:
            self.announce(f"Server listening on {self.host}:{self.port}")
        if self.ready_mode:
            self.announce("Ready!")
        if self.listening:
            self.listening.set()

    async def start(self):
        await self.bind()
        async with self.server:
            await self.server.serve_forever()

    def stop(self):
        self.running = False
        if self.server:
            self.server.close()

    async def handle_client(self, reader, writer):
        try:
            while True:
                try:
                    request = await self.read_request(reader, writer)
                except BadRequest as e:
                    self.log(f"Bad request: {e}", logging.WARNING)
                    await self.write_response(writer, 400, {}, b"", keep_alive=False)
                    break
                if request is None:
                    break

                method, url, version, headers, body = request
                self.log(f"{method} {url}", logging.DEBUG)

                response = self.engine.handle(method, url, headers, body)

                keep_alive = self.keep_alive(version, headers)
                await self.write_response(writer, *response, keep_alive=keep_alive,
                                          send_body=method != "HEAD")
                if not keep_alive:
                    break
        except (ConnectionError, asyncio.IncompleteReadError):
            pass # Client went away
        except Exception:
            logger.exception("Error handling request, aborting connection")
        finally:
            writer.close()

    def keep_alive(self, version, headers):
        connection = headers.get("connection", "").lower()
        if version == "HTTP/1.0":
            return connection == "keep-alive"
        return connection != "close"

    async def read_line(self, reader):
        try:
            line = await reader.readline()
        except (asyncio.LimitOverrunError, ValueError):
            raise BadRequest("Line too long")
        return line.decode('latin-1')

    async def read_request(self, reader, writer):
        """Read one complete request, or None when the client is done"""
        request_line = await self.read_line(reader)
        while request_line in ("\r\n", "\n"):
            request_line = await self.read_line(reader)
        if not request_line:
            return None

        parts = request_line.split()
        if len(parts) != 3 or not parts[2].startswith("HTTP/"):
            raise BadRequest(f"Malformed request line: {request_line.strip()!r}")
        method, url, version = parts

        headers = {}
        while True:
            line = await self.read_line(reader)
            if not line:
                raise BadRequest("Connection closed inside headers")
            line = line.rstrip("\r\n")
            if not line:
                break
            if ":" not in line:
                raise BadRequest(f"Malformed header line: {line!r}")
            name, value = line.split(":", 1)
            name = name.strip().lower()
            value = value.strip()
            if name in headers:
                headers[name] = f"{headers[name]}, {value}"
            else:
                headers[name] = value

        if headers.get("expect", "").lower() == "100-continue":
            writer.write(f"{version} 100 Continue\r\n\r\n".encode('latin-1'))
            await writer.drain()

        body = await self.read_body(reader, headers)
        return method, url, version, headers, body

    async def read_body(self, reader, headers):
        if "chunked" in headers.get("transfer-encoding", "").lower():
            chunks = []
            while True:
                size_line = await self.read_line(reader)
                try:
                    size = int(size_line.split(";", 1)[0].strip(), 16)
                except ValueError:
                    raise BadRequest(f"Malformed chunk size: {size_line.strip()!r}")
                if size == 0:
                    # Skip trailers
                    while (await self.read_line(reader)) not in ("\r\n", "\n", ""):
                        pass
                    return b"".join(chunks)
                chunks.append(await reader.readexactly(size))
                await reader.readexactly(2)

        length = headers.get("content-length")
        if not length:
            return b""
        try:
            length = int(length)
        except ValueError:
            raise BadRequest(f"Malformed Content-Length: {length!r}")
        if length < 0:
            raise BadRequest(f"Malformed Content-Length: {length!r}")
        return await reader.readexactly(length)

    async def write_response(self, writer, status, headers, body, keep_alive=True,
                             send_body=True):
        lines = [f"HTTP/1.1 {status} {reason_phrase(status)}"]
        for k, v in headers.items():
            lines.append(f"{k}: {v}")
        if (status >= 200 and status not in (204, 304)
                and not any(k.lower() == "content-length" for k in headers)):
            lines.append(f"Content-Length: {len(body)}")
        if not keep_alive:
            lines.append("Connection: close")
        head = "\r\n".join(lines) + "\r\n\r\n"
        if not send_body:
            body = b""
        writer.write(head.encode('latin-1', errors='replace') + body)
        await writer.drain()
