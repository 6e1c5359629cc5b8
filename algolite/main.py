import argparse
import logging
import os

import uvicorn

from algolite.api.app import create_app
from algolite.dependencies.index_provider import DEFAULT_HOST, DEFAULT_PORT, LOG_LEVEL
from algolite.repositories.index_registry import IndexRegistry


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="algolite", description="Serve a local Algolia-compatible search API")
    parser.add_argument("--path", default=os.getenv("ALGOLITE_PATH", os.getcwd()),
                        help="directory holding the .algolite index storage")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--log-level", default=LOG_LEVEL)
    return parser


def main(argv=None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app(registry=IndexRegistry(path=args.path))
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())


if __name__ == '__main__':
    main()
