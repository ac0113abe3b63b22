"""
Entrypoint: load config, init logging, build the agent and storage,
run the polling loop until interrupted.
"""

import asyncio
import signal
import sys

import structlog
from dotenv import load_dotenv

from .agent import build_agent
from .config import Config
from .errors import PriceFeedError
from .logs import configure_logging
from .storage import QuoteStorage
from .worker import PricePoller

logger = structlog.get_logger(__name__)


async def run(config: Config):
    """Initialize dependencies and poll until stopped"""
    agent = build_agent(config)
    storage = QuoteStorage(config={'mongodb': config.mongodb})
    if not storage.connect():
        await agent.aclose()
        raise RuntimeError("Failed to connect to MongoDB")

    poller = PricePoller(agent, storage=storage, interval=config.poller.get('interval', 60.0))

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, poller.stop)
        except NotImplementedError:
            pass

    try:
        await agent.refresh()
        await poller.start()
    finally:
        storage.close()
        await agent.aclose()


def main():
    load_dotenv()

    try:
        config = Config()
    except (FileNotFoundError, ValueError) as e:
        print(f"Fatal error during startup: {e}")
        sys.exit(1)

    log_config = config.logging
    configure_logging(level=log_config.get('level', 'INFO'), json=log_config.get('json', True))

    try:
        asyncio.run(run(config))
    except KeyboardInterrupt:
        logger.info("shutting_down_gracefully")
    except (PriceFeedError, RuntimeError) as e:
        logger.error("fatal_error", error=str(e), exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
