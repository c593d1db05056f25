import argparse
import asyncio
import logging
import os
import sys

# Allow running as "python mock_tool/" by adding parent to path
if __package__ in (None, "") and not hasattr(sys, "frozen"):
    path = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    sys.path.insert(0, path)

from mock_tool.mock_engine import MockEngine
from mock_tool.mock_server import BindError, MockServer
from mock_tool.rules import ConfigError

logger = logging.getLogger("mock_tool")


def build_parser():
    parser = argparse.ArgumentParser(
        prog="mock_tool",
        description="Simple http server mock for tests.",
    )
    parser.add_argument("-c", "--config", help="Configuration file for the responses.")
    parser.add_argument("-p", "--port", type=int, default=8888)
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("-r", "--ready-mode", action="store_true",
                        help="Print 'Ready!' once the server is listening.")
    parser.add_argument("--trace", action="store_true",
                        help="Print extra debug information. Turns -v on as well.")
    parser.add_argument("--tui", action="store_true", help="Show requests in a terminal UI.")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    if args.trace:
        args.verbose = True

    level = logging.DEBUG if args.trace else logging.INFO if args.verbose else logging.WARNING
    logging.basicConfig(level=level, stream=sys.stderr,
                        format="%(asctime)s %(name)s %(levelname)s %(message)s")
    logger.debug("Arguments: %r", vars(args))

    config_file = os.path.abspath(args.config) if args.config else None
    if config_file:
        logger.debug("Reading config from: %s", config_file)

    if args.tui:
        from mock_tool.tui import MockTui
        MockTui(config_file=config_file, port=args.port, host=args.host).run()
        return 0

    try:
        engine = MockEngine.from_config(config_file)
    except ConfigError as e:
        logger.error("%s", e)
        return 1
    logger.debug("Config: %r", engine.rules)

    server = MockServer(host=args.host, port=args.port, engine=engine,
                        verbose=args.verbose, ready_mode=args.ready_mode)
    try:
        asyncio.run(server.start())
    except BindError as e:
        logger.error("%s", e)
        return 2
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
