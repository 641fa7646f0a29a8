from reconciler.models.access_grant import AccessGrant
from reconciler.models.catalog import Checkout, Content, Domain, MemberArea, ProductContent, Profile
from reconciler.models.email_template import EmailTemplate
from reconciler.models.gateway import Gateway
from reconciler.models.integration import Integration
from reconciler.models.order import Order, OrderItem
from reconciler.models.payment import Payment
from reconciler.models.webhook_log import WebhookLog

__all__ = [
    "AccessGrant",
    "Checkout",
    "Content",
    "Domain",
    "EmailTemplate",
    "Gateway",
    "Integration",
    "MemberArea",
    "Order",
    "OrderItem",
    "Payment",
    "ProductContent",
    "Profile",
    "WebhookLog",
]
