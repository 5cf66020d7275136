"""CLI for holdings tracker."""

import json
import logging
from decimal import Decimal
from enum import StrEnum

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table
from rich.traceback import install

from holdings_tracker.config import Settings
from holdings_tracker.core.aggregator import BalanceAggregator
from holdings_tracker.core.classifier import address_format_message, chain_selection_warning, classify
from holdings_tracker.core.history import HistoricalSeriesBuilder
from holdings_tracker.core.models import (
    AssetClass,
    NormalizedBalance,
    PortfolioValuation,
    PositionInput,
    TimePoint,
    WalletInput,
    WeightUnit,
    format_usd,
)
from holdings_tracker.core.registry import ChainRegistry
from holdings_tracker.core.valuation import ValuationEngine
from holdings_tracker.data import get_all_supported_chains, get_chain_config
from holdings_tracker.errors import DecryptionError, PersistenceError
from holdings_tracker.pricing import TIME_RANGES, CoinGeckoPricing, PriceCache, QuotePricing
from holdings_tracker.storage import JsonFileStore, WalletService
from holdings_tracker.vault import SecretVault

# Locals may hold decrypted secrets
install(show_locals=False)

app = typer.Typer(
    name="holdings-tracker",
    help="Track wallet balances, manual positions and portfolio value across chains",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)

DEFAULT_USER = "default"


class OutputFormat(StrEnum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


class Runtime:
    """
    Wires settings, price caches and services for one CLI invocation.

    Parameters
    ----------
    settings : Settings
        Runtime settings
    store_path : str | None
        JSON store location; defaults to ``settings.store_path``

    """

    def __init__(self, settings: Settings, store_path: str | None = None) -> None:
        self.settings = settings
        self.coingecko = CoinGeckoPricing(api_key=settings.coingecko_api_key, timeout=settings.http_timeout)
        self.quotes = QuotePricing(timeout=settings.http_timeout)

        self.spot_prices = PriceCache(self.coingecko.get_spot_price, ttl=settings.price_ttl, name="spot")
        self.token_prices = PriceCache(self.coingecko.get_token_price_by_key, ttl=settings.price_ttl, name="token")
        self.quote_prices = PriceCache(self.quotes.get_spot_price, ttl=settings.price_ttl, name="quote")

        self.aggregator = BalanceAggregator(self.spot_prices, self.token_prices, settings=settings)
        self.engine = ValuationEngine(
            self.spot_prices,
            self.quote_prices,
            HistoricalSeriesBuilder(self.coingecko, self.quotes, settings),
        )

        self.vault = SecretVault(iterations=settings.kdf_iterations, salt=settings.vault_salt)
        self.store = JsonFileStore(store_path or settings.store_path)
        self.service = WalletService(self.store, self.vault)

    def close(self) -> None:
        self.aggregator.close()
        self.coingecko.close()
        self.quotes.close()

    def __enter__(self) -> "Runtime":
        return self

    def __exit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        self.close()


@app.callback()
def main(debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging")) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True, show_path=debug)],
        force=True,
    )


@app.command("classify")
def classify_command(
    address: str = typer.Argument(..., help="Address to classify"),
    chain: str | None = typer.Option(None, "--chain", "-c", help="Chain you intend to use"),
) -> None:
    """Detect which chains an address format belongs to."""
    result = classify(address)

    console.print(address_format_message(address))
    if result.candidates:
        console.print(f"Candidates: {', '.join(result.candidates)}")

    if chain:
        warning = chain_selection_warning(address, chain)
        if warning:
            console.print(f"[yellow]Warning:[/yellow] {warning}")


@app.command()
def balance(
    address: str = typer.Argument(..., help="Wallet address to query"),
    chain: str = typer.Option(..., "--chain", "-c", help="Chain the address lives on"),
    format: OutputFormat = typer.Option(OutputFormat.TABLE, "--format", "-f", help="Output format"),
) -> None:
    """
    Get the native and token balance of one address.

    Examples:

        holdings-tracker balance 0xABC... --chain ethereum

        holdings-tracker balance bc1q... --chain bitcoin --format json
    """
    if not ChainRegistry.is_supported(chain):
        console.print(f"[bold red]Unsupported chain:[/bold red] {chain}")
        raise typer.Exit(1)

    with Runtime(Settings.from_env()) as runtime:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task(f"Fetching {chain} balance...", total=None)
            result = runtime.aggregator.fetch_balance(address.strip(), chain)
            progress.update(task, description="✓ Done")

    if result is None:
        console.print("[yellow]Balance unavailable[/yellow]")
        raise typer.Exit(1)

    balances = {result.address: result}
    if format == OutputFormat.JSON:
        _output_json({key: b.model_dump(mode="json") for key, b in balances.items()})
    else:
        _output_balances(balances)


@app.command()
def refresh(
    user: str = typer.Option(DEFAULT_USER, "--user", "-u", help="User id"),
    store: str | None = typer.Option(None, "--store", help="Path to the JSON store"),
    format: OutputFormat = typer.Option(OutputFormat.TABLE, "--format", "-f", help="Output format"),
) -> None:
    """Refresh balances of every stored wallet."""
    with Runtime(Settings.from_env(), store) as runtime:
        wallets = _load(runtime.service.list_wallets, user)
        balances = _refresh_with_progress(runtime, wallets)

    if format == OutputFormat.JSON:
        _output_json({key: b.model_dump(mode="json") for key, b in balances.items()})
    else:
        _output_balances(balances)


@app.command()
def value(
    user: str = typer.Option(DEFAULT_USER, "--user", "-u", help="User id"),
    store: str | None = typer.Option(None, "--store", help="Path to the JSON store"),
    format: OutputFormat = typer.Option(OutputFormat.TABLE, "--format", "-f", help="Output format"),
) -> None:
    """Value all wallets and manual positions, with P&L."""
    with Runtime(Settings.from_env(), store) as runtime:
        wallets = _load(runtime.service.list_wallets, user)
        positions = _load(runtime.service.list_positions, user)
        balances = _refresh_with_progress(runtime, wallets)
        summary = runtime.engine.value(balances, positions, wallets)

    if format == OutputFormat.JSON:
        _output_json(summary.model_dump(mode="json"))
    else:
        _output_valuation(summary)


@app.command()
def history(
    time_range: str = typer.Option("1m", "--range", "-r", help=f"One of: {', '.join(TIME_RANGES)}"),
    user: str = typer.Option(DEFAULT_USER, "--user", "-u", help="User id"),
    store: str | None = typer.Option(None, "--store", help="Path to the JSON store"),
    format: OutputFormat = typer.Option(OutputFormat.TABLE, "--format", "-f", help="Output format"),
) -> None:
    """Reconstruct portfolio value over a time range."""
    with Runtime(Settings.from_env(), store) as runtime:
        wallets = _load(runtime.service.list_wallets, user)
        positions = _load(runtime.service.list_positions, user)
        balances = _refresh_with_progress(runtime, wallets)
        points = runtime.engine.history(time_range, balances, positions)

    if format == OutputFormat.JSON:
        _output_json([p.model_dump(mode="json") for p in points])
    else:
        _output_history(points)


@app.command()
def encrypt(
    identity: str = typer.Option(..., "--identity", "-i", help="Identity the key is derived from"),
    secret: str = typer.Option(..., prompt=True, hide_input=True, help="Secret to encrypt"),
) -> None:
    """Encrypt a secret and print the blob."""
    settings = Settings.from_env()
    vault = SecretVault(iterations=settings.kdf_iterations, salt=settings.vault_salt)
    try:
        typer.echo(vault.encrypt(secret, identity))
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def decrypt(
    blob: str = typer.Argument(..., help="Encrypted blob"),
    identity: str = typer.Option(..., "--identity", "-i", help="Identity used at encryption time"),
) -> None:
    """Decrypt a blob produced by `encrypt`."""
    settings = Settings.from_env()
    vault = SecretVault(iterations=settings.kdf_iterations, salt=settings.vault_salt)
    try:
        typer.echo(vault.decrypt(blob, identity))
    except DecryptionError as e:
        console.print(f"[bold red]Decryption failed:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def list_chains() -> None:
    """List all supported chains."""
    table = Table(title="Supported Chains", show_header=True, header_style="bold magenta")
    table.add_column("Chain", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Native", style="green")
    table.add_column("Tokens", style="yellow")

    for chain in get_all_supported_chains():
        config = get_chain_config(chain)
        tokens = "✓" if chain in ChainRegistry.get_token_capable_chains() else "-"
        table.add_row(chain, config.get("name", chain), config["native_symbol"], tokens)

    console.print(table)


@app.command()
def add_wallet(
    name: str = typer.Argument(..., help="Display name"),
    address: str = typer.Argument(..., help="Public address"),
    chain: str | None = typer.Option(None, "--chain", "-c", help="Chain id (detected when unambiguous)"),
    user: str = typer.Option(DEFAULT_USER, "--user", "-u", help="User id"),
    identity: str | None = typer.Option(None, "--identity", "-i", help="Identity to encrypt the phrase under"),
    with_secret: bool = typer.Option(False, "--with-secret", help="Prompt for a recovery phrase to store"),
    notes: str | None = typer.Option(None, "--notes", help="Free-text note"),
    store: str | None = typer.Option(None, "--store", help="Path to the JSON store"),
) -> None:
    """Add a wallet, optionally storing an encrypted recovery phrase."""
    if chain is None:
        detected = classify(address)
        if len(detected.candidates) != 1:
            console.print(f"[bold red]{address_format_message(address)}[/bold red]; pass --chain")
            raise typer.Exit(1)
        chain = detected.candidates[0]

    secret = None
    if with_secret:
        if not identity:
            console.print("[bold red]--identity is required with --with-secret[/bold red]")
            raise typer.Exit(1)
        secret = typer.prompt("Recovery phrase", hide_input=True)

    with Runtime(Settings.from_env(), store) as runtime:
        try:
            wallet, warnings = runtime.service.add_wallet(
                user,
                identity or user,
                WalletInput(name=name, chain=chain, address=address, secret=secret, notes=notes),
            )
        except PersistenceError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(1)

    for warning in warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")
    console.print(f"Added wallet [cyan]{wallet.id}[/cyan] ({wallet.chain})")


@app.command()
def remove_wallet(
    wallet_id: str = typer.Argument(..., help="Wallet id"),
    store: str | None = typer.Option(None, "--store", help="Path to the JSON store"),
) -> None:
    """Remove a wallet."""
    with Runtime(Settings.from_env(), store) as runtime:
        try:
            runtime.service.remove_wallet(wallet_id)
        except PersistenceError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(1)
    console.print(f"Removed wallet {wallet_id}")


@app.command()
def add_position(
    name: str = typer.Argument(..., help="Position name"),
    asset_class: AssetClass = typer.Option(..., "--class", help="Asset class"),
    quantity: str = typer.Option(..., "--quantity", "-q", help="Units held (weight for metals)"),
    cost_basis: str = typer.Option("0", "--cost", help="Cost per unit"),
    symbol: str | None = typer.Option(None, "--symbol", "-s", help="Ticker, coin id or metal name"),
    weight_unit: WeightUnit | None = typer.Option(None, "--unit", help="Weight unit for metals"),
    user: str = typer.Option(DEFAULT_USER, "--user", "-u", help="User id"),
    notes: str | None = typer.Option(None, "--notes", help="Free-text note"),
    store: str | None = typer.Option(None, "--store", help="Path to the JSON store"),
) -> None:
    """Add a manual position."""
    try:
        position_input = PositionInput(
            asset_class=asset_class,
            name=name,
            symbol=symbol,
            quantity=Decimal(quantity),
            cost_basis=Decimal(cost_basis),
            weight_unit=weight_unit,
            notes=notes,
        )
    except ArithmeticError as e:
        console.print(f"[bold red]Invalid number:[/bold red] {e}")
        raise typer.Exit(1)

    with Runtime(Settings.from_env(), store) as runtime:
        try:
            position = runtime.service.add_position(user, position_input)
        except PersistenceError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(1)
    console.print(f"Added position [cyan]{position.id}[/cyan] ({position.asset_class})")


@app.command()
def remove_position(
    position_id: str = typer.Argument(..., help="Position id"),
    store: str | None = typer.Option(None, "--store", help="Path to the JSON store"),
) -> None:
    """Remove a manual position."""
    with Runtime(Settings.from_env(), store) as runtime:
        try:
            runtime.service.remove_position(position_id)
        except PersistenceError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(1)
    console.print(f"Removed position {position_id}")


@app.command()
def rotate_secret(
    wallet_id: str = typer.Argument(..., help="Wallet id"),
    identity: str = typer.Option(..., "--identity", "-i", help="Current identity"),
    new_identity: str | None = typer.Option(None, "--new-identity", help="Identity to re-encrypt under"),
    store: str | None = typer.Option(None, "--store", help="Path to the JSON store"),
) -> None:
    """Re-encrypt a wallet's recovery phrase with a fresh nonce."""
    with Runtime(Settings.from_env(), store) as runtime:
        try:
            runtime.service.rotate_secret(wallet_id, identity, new_identity)
        except (DecryptionError, PersistenceError, ValueError) as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(1)
    console.print(f"Rotated secret for wallet {wallet_id}")


@app.command()
def reveal_secret(
    wallet_id: str = typer.Argument(..., help="Wallet id"),
    identity: str = typer.Option(..., "--identity", "-i", help="Identity used at encryption time"),
    store: str | None = typer.Option(None, "--store", help="Path to the JSON store"),
) -> None:
    """Decrypt and print a wallet's recovery phrase."""
    with Runtime(Settings.from_env(), store) as runtime:
        try:
            secret = runtime.service.reveal_secret(wallet_id, identity)
        except (DecryptionError, PersistenceError) as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(1)

    if secret is None:
        console.print("[yellow]No recovery phrase stored for this wallet[/yellow]")
        return
    typer.echo(secret)


def _load(list_records, user: str) -> list:
    try:
        return list_records(user)
    except PersistenceError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


def _refresh_with_progress(runtime: Runtime, wallets: list) -> dict[str, NormalizedBalance]:
    if not wallets:
        return {}
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task(f"Refreshing {len(wallets)} wallets...", total=100)
        return runtime.aggregator.refresh_all(wallets, progress=progress, task_id=task)


def _output_balances(balances: dict[str, NormalizedBalance]) -> None:
    """Output balances as rich table."""
    if not balances:
        console.print("\n[yellow]No balances found[/yellow]")
        return

    table = Table(title="Balances", show_header=True, header_style="bold magenta")
    table.add_column("Chain", style="blue")
    table.add_column("Address", style="cyan")
    table.add_column("Asset", style="green")
    table.add_column("Balance", style="white", justify="right")
    table.add_column("USD Value", style="bold green", justify="right")

    for address, result in balances.items():
        short = f"{address[:10]}...{address[-6:]}" if len(address) > 20 else address
        table.add_row(result.chain, short, result.native_symbol, result.native_balance, result.native_usd_display)
        for token in result.tokens:
            table.add_row("", "", token.symbol, token.balance, token.usd_display)

    console.print(table)
    total = sum((b.total_usd_value for b in balances.values()), Decimal("0"))
    console.print(f"[bold]Total:[/bold] {format_usd(total)}")


def _output_valuation(summary: PortfolioValuation) -> None:
    """Output valuation as rich tables."""
    if not summary.holdings:
        console.print("\n[yellow]No holdings found[/yellow]")
        return

    table = Table(title="Holdings", show_header=True, header_style="bold magenta")
    table.add_column("Holding", style="cyan")
    table.add_column("Class", style="yellow")
    table.add_column("Quantity", style="white", justify="right")
    table.add_column("Value", style="bold green", justify="right")
    table.add_column("P&L", justify="right")
    table.add_column("P&L %", justify="right")

    for holding in summary.holdings:
        label = holding.label if holding.priced else f"{holding.label} [dim](cost)[/dim]"
        pnl = "-" if holding.pnl is None else f"{holding.pnl:,.2f}"
        pnl_pct = "-" if holding.pnl_pct is None else f"{holding.pnl_pct}%"
        table.add_row(
            label,
            str(holding.asset_class),
            f"{holding.quantity:,.4f}",
            format_usd(holding.current_value),
            pnl,
            pnl_pct,
        )

    console.print(table)

    summary_table = Table(show_header=False, box=None)
    summary_table.add_column("Label", style="bold")
    summary_table.add_column("Value", style="bold green")

    summary_table.add_row("Total Value:", f"${summary.total_usd_value:,.2f}")
    summary_table.add_row("Wallets:", f"${summary.wallets_usd_value:,.2f}")
    summary_table.add_row("Positions:", f"${summary.positions_usd_value:,.2f}")
    summary_table.add_row("Total P&L:", f"{summary.total_pnl:,.2f}")

    if summary.by_chain:
        summary_table.add_row("", "")
        summary_table.add_row("[bold]By Chain:[/bold]", "")
        for chain, amount in summary.by_chain.items():
            summary_table.add_row(f"  {chain}", f"${amount:,.2f}")

    if summary.by_asset_class:
        summary_table.add_row("", "")
        summary_table.add_row("[bold]By Asset Class:[/bold]", "")
        for asset_class, amount in summary.by_asset_class.items():
            summary_table.add_row(f"  {asset_class}", f"${amount:,.2f}")

    console.print(summary_table)


def _output_history(points: list[TimePoint]) -> None:
    """Output history as rich table."""
    if not points:
        console.print("\n[yellow]No history available[/yellow]")
        return

    labels = list(dict.fromkeys(label for point in points for label in point.values))

    table = Table(title="Portfolio History", show_header=True, header_style="bold magenta")
    table.add_column("Date", style="cyan")
    for label in labels:
        table.add_column(label, justify="right")
    table.add_column("Total", style="bold green", justify="right")

    for point in points:
        cells = [f"{point.values[label]:,.2f}" if label in point.values else "-" for label in labels]
        table.add_row(point.label, *cells, f"{point.total:,.2f}")

    console.print(table)


def _output_json(data: object) -> None:
    """Output data as JSON."""
    typer.echo(json.dumps(data, indent=2))


if __name__ == "__main__":
    app()
