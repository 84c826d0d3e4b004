"""
LINE chat-bot: webhook event handling and the daily reminder.
"""
import base64
import hashlib
import hmac
import logging
import sqlite3
from datetime import datetime
from typing import Optional

import httpx

import replies
from database import create_todo
from dates import WrongFormatError, format_due, localize, parse_user_message
from models import Todo, WebhookEvent

logger = logging.getLogger(__name__)

LINE_API_URL = "https://api.line.me"


class LineApiError(Exception):
    """Raised when the Messaging API rejects a reply or push."""


class LineClient:
    """Minimal LINE Messaging API client: signature check, reply and push."""

    def __init__(self, channel_secret: str, channel_token: str, http: Optional[httpx.Client] = None):
        self.channel_secret = channel_secret
        self.channel_token = channel_token
        self.http = http or httpx.Client(base_url=LINE_API_URL, timeout=10.0)

    def verify_signature(self, body: bytes, signature: Optional[str]) -> bool:
        digest = hmac.new(
            self.channel_secret.encode("utf-8"),
            body,
            hashlib.sha256
        ).digest()
        expected = base64.b64encode(digest).decode("utf-8")
        return hmac.compare_digest(expected, signature or "")

    def _post(self, path: str, payload: dict):
        response = self.http.post(
            path,
            json=payload,
            headers={"Authorization": f"Bearer {self.channel_token}"}
        )
        if response.is_error:
            raise LineApiError(f"{response.status_code}: {response.text}")

    def reply_message(self, reply_token: str, text: str):
        self._post("/v2/bot/message/reply", {
            "replyToken": reply_token,
            "messages": [{"type": "text", "text": text}]
        })

    def push_message(self, user_id: str, text: str):
        self._post("/v2/bot/message/push", {
            "to": user_id,
            "messages": [{"type": "text", "text": text}]
        })


def _reply_to_text(text: str, user_id: Optional[str], edit_url: str) -> str:
    if text.lower() == replies.EDIT_KEYWORD:
        return replies.EDIT_REPLY.format(edit_url=edit_url)

    try:
        parsed = parse_user_message(text)
    except WrongFormatError:
        return replies.HOW_TO

    try:
        create_todo(user_id, parsed.task, parsed.due)
    except sqlite3.Error as e:
        logger.error("Could not store task for %s: %s", user_id, e)
        return str(e)
    return replies.TASK_CREATED


def handle_events(events: list[WebhookEvent], client: LineClient, edit_url: str):
    """Reply to every text message and join event. LineApiError propagates."""
    for event in events:
        if event.type == "message" and event.message and event.message.type == "text":
            reply = _reply_to_text(event.message.text or "", event.source.user_id, edit_url)
            client.reply_message(event.reply_token, reply)
        elif event.type == "join":
            client.reply_message(event.reply_token, replies.WELCOME + replies.HOW_TO)


def build_reminder(todos: list[Todo], now: datetime) -> str:
    """
    Build one user's reminder text.
    `todos` must already be ordered open first, pinned first, then by due date
    (see database.get_todos_by_user).
    """
    now = localize(now)
    message = replies.REMINDER_GREETING
    show_done = False
    remaining = 0

    for i, todo in enumerate(todos):
        if i == 0:
            message += replies.REMINDER_ALL_DONE if todo.done else replies.REMINDER_TODO_HEADER
        if not todo.done:
            remaining += 1
        elif not show_done:
            message += replies.REMINDER_DONE_HEADER
            show_done = True

        message += replies.REMINDER_PINNED if todo.pin else replies.REMINDER_UNPINNED
        due = format_due(now, todo.due)
        if not todo.done and now > todo.due:
            due += replies.REMINDER_OVERDUE
        message += f"{todo.task} : {due}\n"

    if remaining:
        message += replies.REMINDER_FOOTER.format(remaining=remaining, total=len(todos))
    return message


def build_reminders(todos_by_user: dict[str, list[Todo]], now: datetime) -> dict[str, str]:
    return {user_id: build_reminder(todos, now) for user_id, todos in todos_by_user.items() if todos}


def push_reminder(client: LineClient, user_id: str, message: str):
    """Fire-and-forget push for one recipient; a failure only affects that recipient."""
    try:
        client.push_message(user_id, message)
    except (LineApiError, httpx.HTTPError) as e:
        logger.warning("Reminder push to %s failed: %s", user_id, e)
