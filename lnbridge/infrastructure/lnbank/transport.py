"""HTTP transport for the LNbank API.

Performs authenticated requests against
``<server>/plugins/lnbank/api/lightning/`` and returns typed wire models.
A non-2xx answer raises :class:`LNbankApiError` with the backend's error code
and message; a request that never completes raises :class:`TransportError`.
No retries: callers decide what to do with a failure.
"""

from typing import Any, TypeVar
from urllib.parse import quote

import httpx
import pydantic

from ...exceptions import LNbankApiError, ParseError, TransportError
from ...utils.logging import get_logger
from .wire import (
    ApiErrorData,
    ChannelData,
    ConnectRequestData,
    CreateInvoiceRequestData,
    DepositAddressData,
    InvoiceData,
    NodeInfoData,
    OpenChannelRequestData,
    PaymentData,
    PayRequestData,
    PayResponseData,
)

logger = get_logger(__name__)

API_PATH = "plugins/lnbank/api/lightning/"
GENERIC_ERROR_CODE = "generic-error"
USER_AGENT = "lnbridge/lnbank"

M = TypeVar("M", bound=pydantic.BaseModel)


def _segment(value: str) -> str:
    """Quote an identifier as a single path segment."""
    return quote(value, safe="")


def _parse(model: type[M], data: Any) -> M:
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        raise ParseError(
            f"Unexpected {model.__name__} payload from LNbank",
            context={"errors": e.error_count()},
            original_error=e,
        ) from e


def _api_error(response: httpx.Response) -> LNbankApiError:
    """Build the typed error for a failed response."""
    try:
        body = ApiErrorData.model_validate(response.json())
        code, message = body.code, body.message or response.reason_phrase
    except (ValueError, pydantic.ValidationError):
        code, message = GENERIC_ERROR_CODE, response.text or response.reason_phrase

    return LNbankApiError(
        message,
        error_code=code,
        status_code=response.status_code,
        context={"url": str(response.request.url)[:100]},
    )


class LNbankTransport:
    """Typed request/response calls against one LNbank wallet.

    Safe to share between concurrent calls: the only state is the underlying
    ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        server: str,
        api_token: str,
        *,
        timeout_seconds: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.server = server.rstrip("/")
        self.base_url = f"{self.server}/{API_PATH}"
        self._headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {api_token}",
            "User-Agent": USER_AGENT,
        }
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds, connect=min(timeout_seconds, 10.0))
        )

    async def _request(self, method: str, path: str, body: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = await self._http.request(method, url, json=body, headers=self._headers)
        except httpx.HTTPError as e:
            logger.warning("lnbank_request_failed", method=method, path=path, error=str(e))
            raise TransportError(
                f"LNbank request failed: {e}", url=url, original_error=e
            ) from e

        if not response.is_success:
            error = _api_error(response)
            logger.info(
                "lnbank_api_error",
                method=method,
                path=path,
                status_code=response.status_code,
                error_code=error.error_code,
            )
            raise error

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ParseError("LNbank returned a non-JSON body", original_error=e) from e

    async def get_info(self) -> NodeInfoData:
        return _parse(NodeInfoData, await self._request("GET", "info"))

    async def get_invoice(self, invoice_id: str) -> InvoiceData:
        return _parse(InvoiceData, await self._request("GET", f"invoice/{_segment(invoice_id)}"))

    async def cancel_invoice(self, invoice_id: str) -> None:
        await self._request("DELETE", f"invoice/{_segment(invoice_id)}")

    async def create_invoice(self, request: CreateInvoiceRequestData) -> InvoiceData:
        return _parse(InvoiceData, await self._request("POST", "invoice", request.to_wire()))

    async def get_payment(self, payment_hash: str) -> PaymentData:
        return _parse(PaymentData, await self._request("GET", f"payment/{_segment(payment_hash)}"))

    async def pay(self, request: PayRequestData) -> PayResponseData:
        return _parse(PayResponseData, await self._request("POST", "pay", request.to_wire()))

    async def get_deposit_address(self) -> str:
        data = await self._request("POST", "deposit-address")
        # Older LNbank versions answer with a bare JSON string.
        if isinstance(data, str):
            return data
        return _parse(DepositAddressData, data).address

    async def list_channels(self) -> list[ChannelData]:
        data = await self._request("GET", "channels")
        return [_parse(ChannelData, item) for item in data or []]

    async def open_channel(self, request: OpenChannelRequestData) -> None:
        await self._request("POST", "channels", request.to_wire())

    async def connect_to(self, request: ConnectRequestData) -> None:
        await self._request("POST", "connect", request.to_wire())

    async def aclose(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._owns_client:
            await self._http.aclose()
