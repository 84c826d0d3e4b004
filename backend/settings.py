import logging
import os
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

load_dotenv()

# LINE Messaging API channel (webhook + push)
LINE_BOT_SECRET = os.getenv("LINE_BOT_SECRET", "")
LINE_BOT_TOKEN = os.getenv("LINE_BOT_TOKEN", "")

# LINE Login channel (dashboard OAuth)
LINE_LOGIN_ID = os.getenv("LINE_LOGIN_ID", "")
LINE_LOGIN_SECRET = os.getenv("LINE_LOGIN_SECRET", "")
LINE_LOGIN_REDIRECT_URL = os.getenv("LINE_LOGIN_REDIRECT_URL", "")

EDIT_URL = os.getenv("EDIT_URL", "")
SESSION_SECRET = os.getenv("SESSION_SECRET", "choo-todo-bot")

TIMEZONE = ZoneInfo(os.getenv("TODO_TIMEZONE", "Asia/Bangkok"))

PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def configure_logging():
    logging.basicConfig(
        level=LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s:%(name)s: %(message)s",
    )
