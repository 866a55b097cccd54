"""Payment commands."""

import typer

from ..runner import render_record, run_with_client

app = typer.Typer(name="payment", help="💸 Inspect outgoing payments", no_args_is_help=True)


@app.command("get")
def get_payment(
    ctx: typer.Context,
    payment_hash: str = typer.Argument(..., help="Payment hash"),
) -> None:
    """Show an outgoing payment."""
    payment = run_with_client(lambda client: client.get_payment(payment_hash))
    render_record(ctx, payment.to_dict(), "Payment")
