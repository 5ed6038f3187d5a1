"""Mail provider connectors."""

from spamcount_mail.connectors.gmail_connector import (
    GmailConfig,
    GmailConnector,
    MessageDetail,
    MessagePage,
    MessageRef,
)

__all__ = ["GmailConnector", "GmailConfig", "MessageDetail", "MessagePage", "MessageRef"]
