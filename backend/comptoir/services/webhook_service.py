# Overview: Fire-and-forget outbound webhook notifications behind a queue boundary.

"""
Webhook notifier.

Request handlers only build a payload and enqueue it after their database
work has committed; a single daemon worker posts the queued messages with
httpx. Delivery errors are logged and dropped: a failed webhook never turns
a successful request into a failed one, and nothing is retried.

Discord webhook URLs receive an embed payload, any other URL receives a
plain JSON document.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass

import httpx
from flask import current_app

from comptoir.time_utils import utcnow, to_utc_z


logger = logging.getLogger(__name__)

COLOR_GREEN = 5763719
COLOR_RED = 15548997
COLOR_YELLOW = 0xFFFF00


@dataclass(frozen=True)
class WebhookMessage:
    kind: str
    url: str
    payload: dict


class WebhookNotifier:
    def __init__(self, *, timeout: float = 5.0, asynchronous: bool = True, transport: httpx.BaseTransport | None = None):
        self.timeout = timeout
        self.asynchronous = asynchronous
        self.transport = transport
        self.delivered = 0
        self.failed = 0
        self._queue: queue.Queue[WebhookMessage] = queue.Queue()
        self._worker: threading.Thread | None = None
        self._lock = threading.Lock()

    def configure(self, *, timeout: float | None = None, asynchronous: bool | None = None, transport: httpx.BaseTransport | None = None) -> None:
        if timeout is not None:
            self.timeout = timeout
        if asynchronous is not None:
            self.asynchronous = asynchronous
        if transport is not None:
            self.transport = transport

    def enqueue(self, kind: str, url: str | None, payload: dict) -> bool:
        """Queue a message; returns False when there is no URL to post to."""
        if not url:
            logger.debug("Webhook %s skipped: no URL configured", kind)
            return False

        message = WebhookMessage(kind=kind, url=url, payload=payload)
        if not self.asynchronous:
            self._deliver(message)
            return True

        self._ensure_worker()
        self._queue.put(message)
        return True

    def drain(self) -> None:
        """Block until every queued message has been attempted."""
        self._queue.join()

    def _ensure_worker(self) -> None:
        with self._lock:
            if self._worker is not None and self._worker.is_alive():
                return
            self._worker = threading.Thread(target=self._run, name="webhook-notifier", daemon=True)
            self._worker.start()

    def _run(self) -> None:
        while True:
            message = self._queue.get()
            try:
                self._deliver(message)
            finally:
                self._queue.task_done()

    def _deliver(self, message: WebhookMessage) -> bool:
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(message.url, json=message.payload)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            self.failed += 1
            logger.warning("Webhook %s delivery failed: %s", message.kind, exc)
            return False
        except Exception:
            self.failed += 1
            logger.exception("Webhook %s delivery crashed", message.kind)
            return False

        self.delivered += 1
        return True


notifier = WebhookNotifier()


def is_discord_url(url: str) -> bool:
    return "discord.com/api/webhooks" in url


def _money(value: float) -> str:
    return f"${value:.2f}"


def notify_sale(
    *,
    seller_name: str,
    lines: list[dict],
    total_amount: float,
    total_margin: float,
    employee_count: int,
) -> bool:
    url = current_app.config.get("SALES_WEBHOOK_URL")
    product_list = "\n".join(f"• {line['quantity']} x {line['name']}" for line in lines) or "-"
    embed = {
        "author": {"name": f"Vente enregistrée par {seller_name}"},
        "title": f"Transaction de {total_amount:.2f}$",
        "description": f"Vente répartie sur {employee_count} employé(s).",
        "color": COLOR_GREEN,
        "fields": [
            {"name": "Produits Vendus", "value": product_list},
            {"name": "Marge Brute Totale", "value": _money(total_margin)},
        ],
        "timestamp": to_utc_z(utcnow()),
    }
    return notifier.enqueue("sale", url, {"embeds": [embed]})


def notify_stock_update(
    settings,
    *,
    item_type: str,
    item_name: str,
    old_stock: int,
    new_stock: int,
    username: str,
) -> bool:
    """Stock notifications are gated by the webhook_enabled setting."""
    url = settings.webhook_url or current_app.config.get("WEBHOOK_URL")
    enabled = settings.webhook_enabled or current_app.config.get("WEBHOOK_ENABLED", False)
    if not enabled or not url:
        return False

    difference = new_stock - old_stock
    timestamp = to_utc_z(utcnow())
    if is_discord_url(url):
        color = COLOR_GREEN if difference > 0 else COLOR_RED if difference < 0 else COLOR_YELLOW
        payload = {
            "embeds": [{
                "title": f"Modification de Stock - {item_name}",
                "color": color,
                "fields": [
                    {"name": "Type d'item", "value": "Produit" if item_type == "product" else "Ingrédient", "inline": True},
                    {"name": "Stock précédent", "value": str(old_stock), "inline": True},
                    {"name": "Nouveau stock", "value": str(new_stock), "inline": True},
                    {"name": "Différence", "value": f"+{difference}" if difference > 0 else str(difference), "inline": True},
                    {"name": "Modifié par", "value": username, "inline": True},
                ],
                "timestamp": timestamp,
            }]
        }
    else:
        payload = {
            "type": "stock_update",
            "action": "stock_updated",
            "item": {
                "type": item_type,
                "name": item_name,
                "old_stock": old_stock,
                "new_stock": new_stock,
                "difference": difference,
            },
            "user": username,
            "timestamp": timestamp,
        }
    return notifier.enqueue("stock", url, payload)


def notify_week_closed(*, week_id: int, summary: dict) -> bool:
    url = current_app.config.get("WEEKLY_WEBHOOK_URL")
    net_margin = summary["net_margin"]
    embed = {
        "title": f"Résumé Financier - Semaine {week_id}",
        "color": COLOR_GREEN if net_margin > 0 else COLOR_RED,
        "fields": [
            {"name": "Chiffre d'Affaires", "value": _money(summary["total_revenue"]), "inline": True},
            {"name": "Coût Marchandises", "value": f"-{_money(summary['total_cost_of_goods'])}", "inline": True},
            {"name": "Autres Dépenses", "value": f"-{_money(summary['total_expenses'])}", "inline": True},
            {"name": "Marge Nette", "value": f"**{_money(net_margin)}**", "inline": False},
        ],
        "timestamp": to_utc_z(utcnow()),
    }
    return notifier.enqueue("week_closed", url, {"embeds": [embed]})
