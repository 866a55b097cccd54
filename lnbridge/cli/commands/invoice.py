"""Invoice commands."""

from datetime import timedelta

import typer

from lnbridge.domain.models import CreateInvoiceParams
from lnbridge.domain.value_objects import LightMoney

from ..runner import console, render_record, run_with_client

app = typer.Typer(name="invoice", help="🧾 Manage invoices", no_args_is_help=True)


@app.command("get")
def get_invoice(
    ctx: typer.Context,
    invoice_id: str = typer.Argument(..., help="Invoice id"),
) -> None:
    """Show an invoice."""
    invoice = run_with_client(lambda client: client.get_invoice(invoice_id))
    render_record(ctx, invoice.to_dict(), "Invoice")


@app.command("create")
def create_invoice(
    ctx: typer.Context,
    amount_sat: int = typer.Argument(..., min=1, help="Amount in satoshis"),
    description: str = typer.Option("", "--description", "-d", help="Invoice description"),
    expiry: int = typer.Option(3600, "--expiry", "-e", min=1, help="Expiry in seconds"),
    private_route_hints: bool = typer.Option(
        False, "--private-route-hints", help="Include hints for private channels"
    ),
) -> None:
    """Create an invoice."""
    params = CreateInvoiceParams(
        amount=LightMoney.from_satoshis(amount_sat),
        description=description,
        expiry=timedelta(seconds=expiry),
        private_route_hints=private_route_hints,
    )
    invoice = run_with_client(lambda client: client.create_invoice(params))
    render_record(ctx, invoice.to_dict(), "Invoice created")


@app.command("cancel")
def cancel_invoice(invoice_id: str = typer.Argument(..., help="Invoice id")) -> None:
    """Cancel an unpaid invoice."""
    run_with_client(lambda client: client.cancel_invoice(invoice_id))
    console.print(f"[green]✅ Invoice {invoice_id} cancelled[/green]")
