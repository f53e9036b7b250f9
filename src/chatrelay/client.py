"""Terminal chat client.

Connects to ``ws://<addr>/broadcast``, prints every frame the relay sends
and sends each line typed on stdin.

usage:
  chatrelay-client --addr localhost:8080 --origin http://localhost:3000
"""

import argparse
import asyncio
import sys
import threading

import aiohttp

from chatrelay.settings import settings

PREFIX = "Message sent from client: "


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Chat relay terminal client")
    p.add_argument("--addr", default=settings.addr, help="http service address (host:port)")
    p.add_argument("--origin", default=settings.allowed_origin, help="Origin header to send")
    return p.parse_args(argv)


async def print_incoming(ws: aiohttp.ClientWebSocketResponse, out=sys.stdout):
    async for msg in ws:
        if msg.type == aiohttp.WSMsgType.TEXT:
            print(f"receive: {msg.data}", file=out, flush=True)
        elif msg.type in (aiohttp.WSMsgType.CLOSED, aiohttp.WSMsgType.ERROR):
            break


def read_lines(stdin, loop: asyncio.AbstractEventLoop, lines: asyncio.Queue):
    """Feed stdin into ``lines`` from a daemon thread; None marks EOF.

    A blocked readline must not keep the process alive once the server has
    gone, so this thread is never joined.
    """
    try:
        for line in iter(stdin.readline, ""):
            loop.call_soon_threadsafe(lines.put_nowait, line)
        loop.call_soon_threadsafe(lines.put_nowait, None)
    except RuntimeError:
        # Event loop already closed
        return


async def send_lines(ws: aiohttp.ClientWebSocketResponse, lines: asyncio.Queue):
    while (line := await lines.get()) is not None:
        if ws.closed:
            break
        await ws.send_str(PREFIX + line)


async def run(addr: str, origin: str, stdin=None, out=None):
    """Chat until the server closes the socket or stdin ends."""
    stdin = stdin or sys.stdin
    out = out or sys.stdout
    url = f"ws://{addr}/broadcast"
    print(f"connecting to {url}", file=sys.stderr)

    lines = asyncio.Queue()
    threading.Thread(
        target=read_lines, args=(stdin, asyncio.get_running_loop(), lines), daemon=True
    ).start()

    async with aiohttp.ClientSession() as session:
        async with session.ws_connect(url, origin=origin) as ws:
            reader = asyncio.create_task(print_incoming(ws, out))
            writer = asyncio.create_task(send_lines(ws, lines))
            done, pending = await asyncio.wait({reader, writer}, return_when=asyncio.FIRST_COMPLETED)
            for t in pending:
                t.cancel()
            await asyncio.gather(*pending, return_exceptions=True)


def main(argv=None):
    args = parse_args(argv)
    try:
        asyncio.run(run(args.addr, args.origin))
    except aiohttp.WSServerHandshakeError as e:
        sys.exit(f"dial: {e.status} {e.message}")
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
