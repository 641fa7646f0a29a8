"""Per-invocation configuration and collaborators, built once and passed down the pipeline."""

from dataclasses import dataclass

import httpx

from reconciler.core.audit import AuditLog
from reconciler.core.config import Settings
from reconciler.db.accounts import AccountRegistry
from reconciler.db.store import RecordStore
from reconciler.services.dispatch import WebhookDispatcher
from reconciler.services.emails import MailSender
from reconciler.services.gateway import GatewayClient


@dataclass
class PipelineContext:
    settings: Settings
    http: httpx.AsyncClient
    store: RecordStore
    accounts: AccountRegistry
    gateway: GatewayClient
    dispatcher: WebhookDispatcher
    mailer: MailSender
    audit: AuditLog


def build_context(http: httpx.AsyncClient, settings: Settings) -> PipelineContext:
    store = RecordStore(http, settings)
    return PipelineContext(
        settings=settings,
        http=http,
        store=store,
        accounts=AccountRegistry(http, settings),
        gateway=GatewayClient(http, settings),
        dispatcher=WebhookDispatcher(http, settings),
        mailer=MailSender(http, settings),
        audit=AuditLog(store),
    )
