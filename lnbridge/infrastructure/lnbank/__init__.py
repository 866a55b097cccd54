"""LNbank backend: BTCPay Server's LNbank plugin REST API and SignalR hub."""

from .client import LNbankLightningClient
from .listener import LNbankInvoiceListener
from .transport import LNbankTransport

__all__ = ["LNbankLightningClient", "LNbankInvoiceListener", "LNbankTransport"]
