"""Main CLI entry point for lnbridge."""

import typer

from lnbridge import __version__
from lnbridge.domain.models import OpenChannelRequest, PayInvoiceParams
from lnbridge.domain.ports import LightningClient
from lnbridge.domain.value_objects import LightMoney, NodeInfo
from lnbridge.utils.config import get_settings
from lnbridge.utils.logging import configure_logging_from_settings

from .commands import invoice, payment
from .runner import console, render_record, render_rows, run_with_client

app = typer.Typer(
    name="lnbridge",
    help="⚡ Talk to a Lightning node through one client API",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"[bold blue]lnbridge[/bold blue] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="Print results as JSON"),
) -> None:
    """
    lnbridge - one API over Lightning node backends.

    The backend is read from LNBRIDGE_CONNECTION_STRING, or from
    LNBRIDGE_LNBANK_SERVER and LNBRIDGE_LNBANK_API_TOKEN.
    """
    configure_logging_from_settings(get_settings())
    ctx.ensure_object(dict)
    ctx.obj["json"] = json_output


@app.command("info")
def info(ctx: typer.Context) -> None:
    """Show block height and node URIs."""
    node = run_with_client(lambda client: client.get_info())
    render_record(ctx, node.to_dict(), "⚡ Node")


@app.command("channels")
def channels(ctx: typer.Context) -> None:
    """List channels."""
    listing = run_with_client(lambda client: client.list_channels())
    render_rows(ctx, [channel.to_dict() for channel in listing], "Channels")


@app.command("deposit-address")
def deposit_address(ctx: typer.Context) -> None:
    """Get a fresh on-chain deposit address."""
    address = run_with_client(lambda client: client.get_deposit_address())
    render_record(ctx, address.to_dict(), "Deposit address")


@app.command("pay")
def pay(
    ctx: typer.Context,
    bolt11: str = typer.Argument(..., help="BOLT11 payment request"),
    max_fee_percent: float | None = typer.Option(
        None, "--max-fee-percent", min=0, help="Fee limit as a percentage of the amount"
    ),
    amount_sat: int | None = typer.Option(
        None, "--amount-sat", min=1, help="Amount for invoices without one"
    ),
) -> None:
    """Pay a BOLT11 invoice."""
    params = PayInvoiceParams(
        max_fee_percent=max_fee_percent,
        amount=LightMoney.from_satoshis(amount_sat) if amount_sat else None,
    )
    response = run_with_client(lambda client: client.pay(bolt11, params))

    data = {"result": response.result.value, "error_detail": response.error_detail}
    if response.details:
        data["preimage"] = response.details.preimage
        data["fee_msat"] = response.details.fee_amount.msat if response.details.fee_amount else None
    render_record(ctx, data, "Payment")
    if not response.succeeded:
        raise typer.Exit(1)


@app.command("connect")
def connect(node_uri: str = typer.Argument(..., help="Peer as <pubkey>@<host>:<port>")) -> None:
    """Connect to a peer."""
    result = run_with_client(lambda client: client.connect_to(NodeInfo.parse(node_uri)))
    console.print(f"Connection result: [bold]{result}[/bold]")


@app.command("open-channel")
def open_channel(
    node_uri: str = typer.Argument(..., help="Peer as <pubkey>@<host>:<port>"),
    amount_sat: int = typer.Argument(..., min=1, help="Channel size in satoshis"),
    fee_rate: int | None = typer.Option(
        None, "--fee-rate", min=1, help="Funding fee rate in sat/vbyte"
    ),
) -> None:
    """Open a channel to a peer."""

    async def _open(client: LightningClient):
        request = OpenChannelRequest(
            node_info=NodeInfo.parse(node_uri),
            channel_amount_sat=amount_sat,
            fee_rate_sat_per_vbyte=fee_rate,
        )
        return await client.open_channel(request)

    response = run_with_client(_open)
    console.print(f"Open channel result: [bold]{response.result}[/bold]")


@app.command("listen")
def listen(
    ctx: typer.Context,
    count: int | None = typer.Option(
        None, "--count", "-n", min=1, help="Stop after this many invoice updates"
    ),
) -> None:
    """Print invoice updates as they arrive. Ctrl+C stops."""

    async def _listen(client: LightningClient) -> int:
        received = 0
        listener = await client.listen()
        try:
            async for update in listener:
                render_record(ctx, update.to_dict(), "Invoice update")
                received += 1
                if count is not None and received >= count:
                    break
        finally:
            await listener.close()
        return received

    try:
        run_with_client(_listen)
    except KeyboardInterrupt:
        console.print("[yellow]Stopped listening[/yellow]")


app.add_typer(invoice.app, name="invoice", help="🧾 Manage invoices")
app.add_typer(payment.app, name="payment", help="💸 Inspect outgoing payments")


if __name__ == "__main__":
    app()
