import logging

from dotenv import load_dotenv

from core.bot import ModKeeper
from core.config import load_config


def main() -> None:
    load_dotenv()
    config = load_config()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    logging.getLogger(__name__).info("Starting with config %s", config.sanitize())
    bot = ModKeeper(config)
    bot.run(config.token, log_handler=None)


if __name__ == "__main__":
    main()
