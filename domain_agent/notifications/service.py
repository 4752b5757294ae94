# domain_agent/notifications/service.py
"""
Outbound user notifications.

Welcome and purchase-confirmation emails are best-effort: the caller hands
them to `dispatch` and carries on. Password-reset mail is awaited because a
failed send has to invalidate the issued token.
"""

import asyncio
from typing import Coroutine, Set

from ..logging_config import get_logger
from . import templates
from .email import EmailSender

logger = get_logger(__name__)


class Notifier:
    def __init__(self, sender: EmailSender, client_url: str):
        self.sender = sender
        self.client_url = client_url.rstrip("/")
        # Strong references so scheduled sends are not garbage collected mid-flight
        self._pending: Set[asyncio.Task] = set()

    def reset_url(self, raw_token: str) -> str:
        return f"{self.client_url}/reset-password?token={raw_token}"

    async def send_password_reset(self, email: str, name: str, raw_token: str):
        await self.sender.send(
            templates.password_reset_email(email, name, self.reset_url(raw_token))
        )

    async def send_welcome(self, email: str, name: str):
        await self.sender.send(templates.welcome_email(email, name))

    async def send_purchase_confirmation(self, email: str, name: str, domain: str, amount: str, currency: str):
        await self.sender.send(
            templates.purchase_confirmation_email(email, name, domain, amount, currency)
        )

    def dispatch(self, send: Coroutine, label: str) -> asyncio.Task:
        """Schedule a send without awaiting it; failures only reach the log"""
        task = asyncio.create_task(send)
        self._pending.add(task)
        task.add_done_callback(lambda t: self._finish(t, label))
        return task

    def _finish(self, task: asyncio.Task, label: str):
        self._pending.discard(task)
        if task.cancelled():
            logger.warning(f"Notification cancelled: {label}")
            return
        error = task.exception()
        if error is not None:
            logger.error(
                f"Notification failed: {label}",
                extra={"extra_data": {"error": str(error), "error_type": type(error).__name__}}
            )

    async def drain(self):
        """Wait for in-flight sends (shutdown, tests)"""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
