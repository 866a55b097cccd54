"""Build Lightning clients from connection strings or settings.

Connection strings are ``;``-separated ``key=value`` pairs with
case-insensitive keys, e.g.::

    type=lnbank;server=https://btcpay.example;api-token=XYZ
"""

from collections.abc import Callable

from .domain.enums import Network
from .domain.ports import LightningClient
from .exceptions import ConnectionStringError
from .infrastructure.lnbank import LNbankLightningClient
from .utils.config import Settings, get_settings
from .utils.logging import get_logger

logger = get_logger(__name__)

ClientBuilder = Callable[[dict[str, str], Network, Settings | None], LightningClient]


def parse_connection_string(connection_string: str) -> dict[str, str]:
    """Split a connection string into a lower-cased key map.

    Raises:
        ConnectionStringError: On an empty string, a pair without ``=`` or a duplicate key
    """
    values: dict[str, str] = {}
    for part in connection_string.split(";"):
        part = part.strip()
        if not part:
            continue
        key, sep, value = part.partition("=")
        key = key.strip().lower()
        if not sep or not key:
            raise ConnectionStringError(
                f"Invalid connection string segment {part.split('=')[0]!r}",
                expected="key=value",
            )
        if key in values:
            raise ConnectionStringError(f"Duplicate connection string key {key!r}", setting=key)
        values[key] = value.strip()

    if not values:
        raise ConnectionStringError("Connection string is empty", expected="type=...;server=...")
    return values


def _require(values: dict[str, str], key: str) -> str:
    value = values.get(key)
    if not value:
        raise ConnectionStringError(f"Connection string is missing {key!r}", setting=key)
    return value


def _build_lnbank(
    values: dict[str, str], network: Network, settings: Settings | None
) -> LightningClient:
    server = _require(values, "server")
    if not server.startswith(("http://", "https://")):
        raise ConnectionStringError(
            "LNbank server must be an http(s) URL", setting="server", expected="https://host"
        )
    api_token = _require(values, "api-token")

    options = {}
    if settings is not None:
        options = {
            "timeout_seconds": settings.request_timeout_seconds,
            "listener_open_timeout_seconds": settings.listener_open_timeout_seconds,
        }
    return LNbankLightningClient(server, api_token, network, **options)


BUILDERS: dict[str, ClientBuilder] = {
    "lnbank": _build_lnbank,
}


def create_client(
    connection_string: str,
    network: Network = Network.MAINNET,
    *,
    settings: Settings | None = None,
) -> LightningClient:
    """Create the client a connection string describes.

    Raises:
        ConnectionStringError: If the type is unknown or a required key is missing
    """
    values = parse_connection_string(connection_string)
    client_type = _require(values, "type").lower()
    builder = BUILDERS.get(client_type)
    if builder is None:
        raise ConnectionStringError(
            f"Unsupported connection type {client_type!r}",
            setting="type",
            expected=", ".join(sorted(BUILDERS)),
        )

    client = builder(values, network, settings)
    logger.debug("client_created", type=client_type, network=network.value)
    return client


def create_client_from_settings(settings: Settings | None = None) -> LightningClient:
    """Create a client from :class:`Settings`.

    ``connection_string`` wins; otherwise ``lnbank_server`` and
    ``lnbank_api_token`` are used.

    Raises:
        ConnectionStringError: If neither form is configured
    """
    settings = settings or get_settings()

    if settings.connection_string is not None:
        connection_string = settings.connection_string.get_secret_value()
    elif settings.lnbank_server and settings.lnbank_api_token is not None:
        connection_string = (
            f"type=lnbank;server={settings.lnbank_server};"
            f"api-token={settings.lnbank_api_token.get_secret_value()}"
        )
    else:
        raise ConnectionStringError(
            "No Lightning backend configured",
            setting="LNBRIDGE_CONNECTION_STRING",
            expected="a connection string or LNBRIDGE_LNBANK_SERVER and LNBRIDGE_LNBANK_API_TOKEN",
        )

    return create_client(connection_string, settings.network, settings=settings)


__all__ = ["create_client", "create_client_from_settings", "parse_connection_string"]
