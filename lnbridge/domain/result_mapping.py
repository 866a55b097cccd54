"""Backend error codes mapped onto closed result enums.

Only OpenChannel and ConnectTo turn backend errors into results. The tables
are total over the codes they know; any other code raises
:class:`UnsupportedErrorCodeError` and is never coerced into ``OK``.
"""

from types import MappingProxyType

from ..exceptions import UnsupportedErrorCodeError
from .enums import ConnectionResult, OpenChannelResult

OPEN_CHANNEL_OPERATION = "open_channel"
CONNECT_TO_OPERATION = "connect_to"

OPEN_CHANNEL_ERROR_CODES: MappingProxyType[str, OpenChannelResult] = MappingProxyType(
    {
        "channel-already-exists": OpenChannelResult.ALREADY_EXISTS,
        "cannot-afford-funding": OpenChannelResult.CANNOT_AFFORD_FUNDING,
        "need-more-confirmations": OpenChannelResult.NEED_MORE_CONF,
        "peer-not-connected": OpenChannelResult.PEER_NOT_CONNECTED,
    }
)

CONNECTION_ERROR_CODES: MappingProxyType[str, ConnectionResult] = MappingProxyType(
    {
        "could-not-connect": ConnectionResult.COULD_NOT_CONNECT,
    }
)


def map_open_channel_error(error_code: str) -> OpenChannelResult:
    """Translate an open-channel error code.

    Raises:
        UnsupportedErrorCodeError: If the code is not a known open-channel code
    """
    try:
        return OPEN_CHANNEL_ERROR_CODES[error_code]
    except KeyError:
        raise UnsupportedErrorCodeError(
            "Unknown OpenChannelResult",
            operation=OPEN_CHANNEL_OPERATION,
            error_code=error_code,
        ) from None


def map_connection_error(error_code: str) -> ConnectionResult:
    """Translate a connect-to-peer error code.

    Raises:
        UnsupportedErrorCodeError: If the code is not a known connection code
    """
    try:
        return CONNECTION_ERROR_CODES[error_code]
    except KeyError:
        raise UnsupportedErrorCodeError(
            "Unknown ConnectionResult",
            operation=CONNECT_TO_OPERATION,
            error_code=error_code,
        ) from None
