import logging

from rich.console import Console
from rich.logging import RichHandler

# Third-party logger -> (level in debug mode, level otherwise)
LIBRARY_LEVELS: dict[str, tuple[int, int]] = {
    "twitchio": (logging.DEBUG, logging.INFO),
    "twitchio.http": (logging.DEBUG, logging.WARNING),
    "twitchio.websockets": (logging.INFO, logging.WARNING),
    "httpx": (logging.INFO, logging.WARNING),
    "httpcore": (logging.INFO, logging.WARNING),
    "googletrans": (logging.INFO, logging.WARNING),
    "langdetect": (logging.WARNING, logging.WARNING),
    "asyncio": (logging.ERROR, logging.ERROR),
}


def _rich_handler() -> RichHandler:
    handler = RichHandler(
        console=Console(force_terminal=True, width=120),
        show_time=True,
        show_level=True,
        show_path=False,
        markup=True,
        rich_tracebacks=True,
        tracebacks_show_locals=False,
        tracebacks_width=120,
    )
    handler.setFormatter(logging.Formatter(fmt="%(message)s", datefmt="[%Y-%m-%d %H:%M:%S]"))
    return handler


def setup_logging(log_level: str = "INFO") -> None:
    """Route all logging through rich and tame chatty libraries.

    Safe to call again once settings are loaded; the root handlers are replaced.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    debug = level == logging.DEBUG

    try:
        logging.basicConfig(level=level, handlers=[_rich_handler()], force=True)
    except Exception as e:
        logging.basicConfig(
            level=level,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            force=True,
        )
        logging.getLogger("Bot").warning(f"Failed to setup Rich logging: {e}, using standard logging")

    for name, (debug_level, normal_level) in LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(debug_level if debug else normal_level)

    logging.getLogger("Bot").debug(f"Logging configured at {logging.getLevelName(level)}")
