import argparse

import uvicorn

from chatrelay.settings import settings


def parse_addr(addr: str) -> tuple[str, int]:
    host, _, port = addr.rpartition(":")
    if not host or not port.isdigit():
        raise argparse.ArgumentTypeError(f"expected host:port, got {addr!r}")
    return host, int(port)


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Run the chat relay server")
    p.add_argument(
        "--addr", type=parse_addr, default=settings.addr, help="http service address (host:port)"
    )
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    host, port = args.addr
    uvicorn.run("chatrelay.app:app", host=host, port=port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
