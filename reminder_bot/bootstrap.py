"""Construct the bot's collaborators from configuration."""

import logging
import logging.handlers
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable

import pytz

from reminder_bot.bot import IntakeHandler
from reminder_bot.config import get
from reminder_bot.errors import ConfigurationError
from reminder_bot.messaging import LineMessenger, Messenger, TelegramMessenger
from reminder_bot.scheduler import DueSweepDispatcher
from reminder_bot.services import TimeTaskExtractor
from reminder_bot.store import (
    MemoryReminderStore,
    RedisReminderStore,
    ReminderStore,
    SqlReminderStore,
)

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class Services:
    """Everything a webhook call or sweep tick needs."""

    store: ReminderStore
    messenger: Messenger
    extractor: TimeTaskExtractor
    intake: IntakeHandler
    dispatcher: DueSweepDispatcher

    async def aclose(self):
        await self.messenger.close()
        self.store.close()


def setup_logging():
    """Configure root logging from the logging.* settings."""
    log_file = get("logging.file")
    log_level = get("logging.level", "INFO")

    handlers = [logging.StreamHandler()]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)

        # Time-based rotating file handler, one backup
        file_handler = logging.handlers.TimedRotatingFileHandler(
            log_file,
            when="midnight",
            interval=1,
            backupCount=1,
        )
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(
        level=getattr(logging, str(log_level).upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
    )


def make_clock(timezone: str = None) -> Callable[[], datetime]:
    """Current time in the configured zone, or the host's local time."""
    if not timezone:
        return datetime.now
    tz = pytz.timezone(timezone)
    return lambda: datetime.now(tz)


def build_store() -> ReminderStore:
    backend = get("store.backend", "sqlite")

    if backend == "redis":
        return RedisReminderStore.from_url(
            get("store.url"),
            prefix=get("store.prefix", "reminders"),
            use_index=bool(get("store.user_index", True)),
        )
    if backend == "sqlite":
        return SqlReminderStore(get("store.path"))
    if backend == "memory":
        logger.warning("Using in-memory reminder store; reminders are lost on restart")
        return MemoryReminderStore()

    raise ConfigurationError(f"Unknown store backend: {backend}")


def build_messenger() -> Messenger:
    platform = get("messaging.platform", "line")

    if platform == "line":
        token = get("line.channel_access_token")
        if not token:
            raise ConfigurationError(
                "LINE channel access token not configured. "
                "Set line.channel_access_token or LINE_CHANNEL_ACCESS_TOKEN."
            )
        return LineMessenger(
            channel_access_token=token,
            channel_secret=get("line.channel_secret"),
            api_base=get("line.api_base", "https://api.line.me"),
        )
    if platform == "telegram":
        token = get("telegram.bot_token")
        if not token or token == "YOUR_BOT_TOKEN_FROM_BOTFATHER":
            raise ConfigurationError(
                "Telegram bot token not configured. "
                "Get one from @BotFather and set telegram.bot_token or TELEGRAM_BOT_TOKEN."
            )
        return TelegramMessenger(bot_token=token, secret_token=get("telegram.secret_token"))

    raise ConfigurationError(f"Unknown messaging platform: {platform}")


def build_services() -> Services:
    """Build all collaborators from the loaded configuration."""
    timezone = get("timezone")
    store = build_store()
    messenger = build_messenger()
    extractor = TimeTaskExtractor(
        languages=get("parser.languages", ["en"]),
        timezone=timezone,
        placeholder_task=get("parser.placeholder_task", "Reminder"),
    )
    intake = IntakeHandler(store, messenger, extractor, clock=make_clock(timezone))
    dispatcher = DueSweepDispatcher(
        store,
        messenger,
        give_up_after_ms=int(get("sweep.give_up_after_minutes", 1440)) * 60 * 1000,
    )

    logger.info(
        f"Services ready: platform={messenger.platform}, store={type(store).__name__}, "
        f"timezone={timezone or 'host'}"
    )
    return Services(store, messenger, extractor, intake, dispatcher)
