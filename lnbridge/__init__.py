"""lnbridge: one asynchronous client interface over heterogeneous Lightning nodes.

Callers program against :class:`lnbridge.domain.ports.LightningClient`; the
backend adapters translate their native payloads into the shared domain model.
"""

__version__ = "0.1.0"
