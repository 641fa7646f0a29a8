import pytest

from reconciler.core import audit as audit_module

pytestmark = pytest.mark.asyncio


class RecordingLogger:
    def __init__(self):
        self.calls = []

    def error(self, event, **kw):
        self.calls.append(("error", event))

    def warning(self, event, **kw):
        self.calls.append(("warning", event))

    def info(self, event, **kw):
        self.calls.append(("info", event))


@pytest.fixture
def recorded(monkeypatch):
    logger = RecordingLogger()
    monkeypatch.setattr(audit_module, "log", logger)
    return logger


async def test_level_follows_event_name(ctx, recorded):
    for event in (
        "webhook.dispatch_error",
        "webhook.error_sending_email",
        "webhook.critical_error",
        "webhook.warning_no_user_id",
        "check_status.persist_failed",
        "webhook.email_sent",
    ):
        await ctx.audit.log_event(event, {})

    assert recorded.calls == [
        ("error", "webhook.dispatch_error"),
        ("error", "webhook.error_sending_email"),
        ("error", "webhook.critical_error"),
        ("warning", "webhook.warning_no_user_id"),
        ("warning", "check_status.persist_failed"),
        ("info", "webhook.email_sent"),
    ]


async def test_row_is_written(backend, ctx, recorded):
    await ctx.audit.log_event("webhook.received", {"action": "payment.updated"}, False, "gw-1")

    row = backend.rows("webhook_logs")[0]
    assert row["event"] == "webhook.received"
    assert row["gateway_id"] == "gw-1"
    assert row["direction"] == "incoming"
    assert row["payload"] == '{"action": "payment.updated"}'


async def test_failed_write_is_not_raised(backend, ctx, recorded):
    backend.failures[("POST", "/rest/v1/webhook_logs")] = 503

    await ctx.audit.log_event("webhook.received", {})

    assert backend.rows("webhook_logs") == []
    assert ("warning", "audit_write_failed") in recorded.calls
