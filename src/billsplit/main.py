from pathlib import Path

import typer
from dotenv import load_dotenv
from pydantic import ValidationError

from billsplit.allocation import participant_items, summarize_receipt
from billsplit.config import Settings
from billsplit.ingestion import (
    BillSplitError,
    ParsedReceipt,
    apply_parsed_receipt,
    new_receipt,
    start_parsing,
)
from billsplit.integrations.local_export import LocalExporter
from billsplit.integrations.share_store import JsonFileShareCodeStore
from billsplit.models import Participant, ReceiptSnapshot, ReceiptSummary
from billsplit.runtime import parse_log_level, set_log_level
from billsplit.share_codes import ShareCodeGenerator
from billsplit.utils.join_url import build_join_url

load_dotenv()

app = typer.Typer(no_args_is_help=True)


@app.callback(invoke_without_command=True)
def callback(ctx: typer.Context):
    """billsplit CLI tool."""
    try:
        settings = Settings.from_env()
    except ValidationError as e:
        typer.echo(f"Invalid configuration: {e}", err=True)
        raise typer.Exit(code=1) from e
    set_log_level(parse_log_level(settings.log_level))
    ctx.obj = settings

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


def format_cents(cents: int | None, currency: str) -> str:
    if cents is None:
        return "—"
    return f"{cents / 100:.2f} {currency}"


def load_snapshot(path: Path) -> ReceiptSnapshot:
    """Read a receipt snapshot JSON file, exiting with a message on failure."""
    try:
        return ReceiptSnapshot.model_validate_json(path.read_text(encoding="utf-8"))
    except OSError as e:
        typer.echo(f"Error reading {path}: {e}", err=True)
        raise typer.Exit(code=1) from e
    except ValidationError as e:
        typer.echo(f"Invalid receipt snapshot {path}: {e}", err=True)
        raise typer.Exit(code=1) from e


def _settings(ctx: typer.Context) -> Settings:
    return ctx.obj if isinstance(ctx.obj, Settings) else Settings()


@app.command()
def ingest(
    ctx: typer.Context,
    parsed_file: Path = typer.Argument(..., help="Parser output JSON file"),
    receipt_id: str = typer.Option(..., "--receipt-id", "-r", help="Receipt ID"),
    host: str = typer.Option(..., "--host", help="Host participant ID"),
    host_name: str | None = typer.Option(None, "--host-name", help="Host display name"),
    merchant_type: str | None = typer.Option(
        None, "--merchant-type", "-m", help="Merchant category, e.g. restaurant"
    ),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Write the snapshot here instead of stdout"
    ),
):
    """Validate parser output and build a receipt snapshot."""
    try:
        parsed = ParsedReceipt.model_validate_json(parsed_file.read_text(encoding="utf-8"))
    except OSError as e:
        typer.echo(f"Error reading {parsed_file}: {e}", err=True)
        raise typer.Exit(code=1) from e
    except ValidationError as e:
        typer.echo(f"Rejected parser output: {e}", err=True)
        raise typer.Exit(code=1) from e

    host_participant = Participant(id=host, display_name=host_name or host, is_host=True)
    try:
        receipt = new_receipt(receipt_id, host_participant, merchant_type=merchant_type)
        receipt = start_parsing(receipt, host)
        receipt, items = apply_parsed_receipt(receipt, parsed)
    except BillSplitError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e

    snapshot_json = ReceiptSnapshot(receipt=receipt, items=items).model_dump_json(indent=2)

    if output is None:
        typer.echo(snapshot_json)
        return

    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(snapshot_json, encoding="utf-8")
    except OSError as e:
        typer.echo(f"Error writing {output}: {e}", err=True)
        raise typer.Exit(code=1) from e

    typer.echo(f"Wrote receipt {receipt_id} with {len(items)} items to {output}")


def _print_summary(snapshot: ReceiptSnapshot, summary: ReceiptSummary) -> None:
    currency = summary.currency
    receipt = snapshot.receipt
    typer.echo(f"Receipt: {receipt.id} {receipt.merchant_name or ''}".rstrip())
    typer.echo(f"Subtotal: {format_cents(summary.subtotal_cents, currency)}")
    typer.echo(f"Tax: {format_cents(receipt.tax_cents, currency)}")
    typer.echo(f"Tip: {format_cents(receipt.tip_cents, currency)}")
    typer.echo(
        f"Claimed: {format_cents(summary.claimed_cents, currency)} / "
        f"{format_cents(summary.subtotal_cents, currency)} "
        f"({round(summary.progress_percentage)}%)"
    )
    typer.echo(f"Unclaimed: {format_cents(summary.unclaimed_cents, currency)}")
    if summary.prompt_tip_confirmation:
        typer.echo("Tip not yet confirmed by the host")
    if not summary.totals_consistent:
        typer.echo("Warning: receipt total does not match items + tax + tip", err=True)


@app.command()
def summary(
    ctx: typer.Context,
    snapshot_file: Path = typer.Argument(..., help="Receipt snapshot JSON file"),
    participant: str | None = typer.Option(
        None, "--participant", "-p", help="Only show this participant's statement"
    ),
):
    """Show claim progress and what every participant owes."""
    settings = _settings(ctx)
    snapshot = load_snapshot(snapshot_file)
    receipt_summary = summarize_receipt(
        snapshot.receipt, snapshot.items, settings.totals_tolerance_cents
    )
    _print_summary(snapshot, receipt_summary)

    currency = receipt_summary.currency
    shares = receipt_summary.shares
    if participant is not None:
        shares = [share for share in shares if share.participant_id == participant]
        if not shares:
            typer.echo(f"Unknown participant: {participant}", err=True)
            raise typer.Exit(code=1)

    for share in shares:
        entry = snapshot.receipt.participant(share.participant_id)
        name = entry.display_name if entry else share.participant_id
        typer.echo("")
        typer.echo(f"{name}: {format_cents(share.total_cents, currency)}")
        if participant is not None:
            for line in participant_items(snapshot.items, share.participant_id):
                split = f" (1/{line.claimant_count})" if line.claimant_count > 1 else ""
                typer.echo(
                    f"  {line.item.quantity}x {line.item.name}{split}: "
                    f"{format_cents(line.share_cents, currency)}"
                )
        typer.echo(f"  subtotal {format_cents(share.subtotal_cents, currency)}")
        typer.echo(f"  tax {format_cents(share.tax_cents, currency)}")
        typer.echo(f"  tip {format_cents(share.tip_cents, currency)}")


@app.command()
def export(
    ctx: typer.Context,
    snapshot_file: Path = typer.Argument(..., help="Receipt snapshot JSON file"),
    output: Path = typer.Option(..., "--output", "-o", help="CSV file to append to"),
):
    """Append per-participant breakdown rows to a CSV file."""
    settings = _settings(ctx)
    snapshot = load_snapshot(snapshot_file)
    receipt_summary = summarize_receipt(
        snapshot.receipt, snapshot.items, settings.totals_tolerance_cents
    )
    rows = [(snapshot.receipt, share) for share in receipt_summary.shares]

    try:
        LocalExporter().export(rows, output)
    except OSError as e:
        typer.echo(f"Error writing {output}: {e}", err=True)
        raise typer.Exit(code=1) from e

    typer.echo(f"Exported {len(rows)} participant rows to {output}")


@app.command()
def share(
    ctx: typer.Context,
    receipt_id: str = typer.Argument(..., help="Receipt to share"),
    store: Path = typer.Option(
        Path("share_codes.json"), "--store", "-s", help="Share code store file"
    ),
):
    """Print the active share code and join link for a receipt."""
    settings = _settings(ctx)
    generator = ShareCodeGenerator.from_settings(JsonFileShareCodeStore(store), settings)
    try:
        code = generator.get_or_create_code(receipt_id)
    except (OSError, ValidationError) as e:
        typer.echo(f"Error using share code store {store}: {e}", err=True)
        raise typer.Exit(code=1) from e

    typer.echo(f"Share code: {code}")
    typer.echo(f"Join link: {build_join_url(settings.join_base_url, code)}")


@app.command()
def join(
    ctx: typer.Context,
    code: str = typer.Argument(..., help="Share code or join link"),
    store: Path = typer.Option(
        Path("share_codes.json"), "--store", "-s", help="Share code store file"
    ),
):
    """Resolve a share code (or join link) to its receipt ID."""
    settings = _settings(ctx)
    generator = ShareCodeGenerator.from_settings(JsonFileShareCodeStore(store), settings)
    try:
        receipt_id = generator.resolve_code(code)
    except (OSError, ValidationError) as e:
        typer.echo(f"Error using share code store {store}: {e}", err=True)
        raise typer.Exit(code=1) from e

    if receipt_id is None:
        typer.echo(f"Share code {code} is invalid or has expired", err=True)
        raise typer.Exit(code=1)
    typer.echo(receipt_id)


def main():
    app()


if __name__ == "__main__":
    main()
