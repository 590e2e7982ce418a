from app.ledger.client import LedgerClient, LedgerResult, NotificationConfig

__all__ = ["LedgerClient", "LedgerResult", "NotificationConfig"]
