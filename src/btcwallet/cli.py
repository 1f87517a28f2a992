"""
btcwallet CLI - Generate phrases, list addresses, check balances and send.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import typer
from loguru import logger

from btcwallet.config import WalletSettings
from btcwallet.constants import SATS_PER_BTC
from btcwallet.errors import WalletError
from btcwallet.models import NetworkType

app = typer.Typer(
    name="btcwallet",
    help="Non-custodial BIP84 Bitcoin wallet",
    add_completion=False,
)


def setup_logging(level: str = "INFO") -> None:
    """Configure loguru logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )


def _load_phrase(mnemonic: str | None, mnemonic_file: Path | None) -> str:
    if mnemonic_file:
        if not mnemonic_file.exists():
            logger.error(f"Mnemonic file not found: {mnemonic_file}")
            raise typer.Exit(1)
        mnemonic = mnemonic_file.read_text().strip()

    if not mnemonic:
        logger.error("Mnemonic required. Use --mnemonic, --mnemonic-file, or MNEMONIC env var")
        raise typer.Exit(1)
    return mnemonic


def _settings(network: NetworkType | None, log_level: str | None) -> WalletSettings:
    overrides: dict[str, object] = {}
    if network is not None:
        overrides["network"] = network
    if log_level is not None:
        overrides["log_level"] = log_level
    settings = WalletSettings(**overrides)
    setup_logging(settings.log_level)
    return settings


def _format_btc(sats: int) -> str:
    return f"{sats:,} sats ({sats / SATS_PER_BTC:.8f} BTC)"


@app.command()
def generate(
    words: int = typer.Option(12, "--words", "-w", help="Number of words (12, 15, 18, 21, 24)"),
) -> None:
    """Generate a new BIP39 mnemonic phrase."""
    from btcwallet.wallet.derivation import generate_phrase

    setup_logging()

    if words not in (12, 15, 18, 21, 24):
        logger.error("--words must be one of 12, 15, 18, 21, 24")
        raise typer.Exit(1)

    phrase = generate_phrase(strength=words * 32 // 3)

    typer.echo("\n" + "=" * 80)
    typer.echo("GENERATED MNEMONIC - WRITE THIS DOWN AND KEEP IT SAFE!")
    typer.echo("=" * 80)
    typer.echo(f"\n{phrase}\n")
    typer.echo("=" * 80)
    typer.echo("\nAnyone with this phrase can spend your coins.")
    typer.echo("Store it securely offline - NEVER share it with anyone!")
    typer.echo("=" * 80 + "\n")


@app.command()
def validate(
    mnemonic: str = typer.Option(None, "--mnemonic", envvar="MNEMONIC", help="BIP39 mnemonic"),
    mnemonic_file: Path | None = typer.Option(
        None, "--mnemonic-file", "-f", help="Path to mnemonic file"
    ),
) -> None:
    """Check a mnemonic's words and checksum."""
    from btcwallet.wallet.derivation import validate_phrase

    setup_logging()
    phrase = _load_phrase(mnemonic, mnemonic_file)

    if validate_phrase(phrase):
        typer.echo("Mnemonic is valid")
    else:
        typer.echo("Mnemonic is INVALID")
        raise typer.Exit(1)


@app.command()
def addresses(
    mnemonic: str = typer.Option(None, "--mnemonic", envvar="MNEMONIC", help="BIP39 mnemonic"),
    mnemonic_file: Path | None = typer.Option(None, "--mnemonic-file", "-f"),
    network: NetworkType | None = typer.Option(None, "--network", "-n", help="Bitcoin network"),
    change: bool = typer.Option(False, "--change", help="Show change addresses too"),
    log_level: str | None = typer.Option(None, "--log-level", "-l"),
) -> None:
    """List the account's derived addresses."""
    from btcwallet.wallet.derivation import derive_account

    settings = _settings(network, log_level)
    phrase = _load_phrase(mnemonic, mnemonic_file)

    try:
        account = derive_account(
            phrase,
            account_index=settings.account_index,
            receive_count=settings.receive_count,
            change_count=settings.change_count,
            network=settings.network_params,
        )
    except WalletError as e:
        logger.error(f"Failed to derive addresses: {e}")
        raise typer.Exit(1)

    records = account.addresses if change else account.receive_addresses
    for record in records:
        typer.echo(f"{record.path:<24} {record.address}")


@app.command()
def balance(
    mnemonic: str = typer.Option(None, "--mnemonic", envvar="MNEMONIC", help="BIP39 mnemonic"),
    mnemonic_file: Path | None = typer.Option(None, "--mnemonic-file", "-f"),
    network: NetworkType | None = typer.Option(None, "--network", "-n", help="Bitcoin network"),
    log_level: str | None = typer.Option(None, "--log-level", "-l"),
) -> None:
    """Display confirmed balance across the account's addresses."""
    settings = _settings(network, log_level)
    phrase = _load_phrase(mnemonic, mnemonic_file)

    try:
        asyncio.run(_show_balance(settings, phrase))
    except WalletError as e:
        logger.error(f"Failed to fetch balance: {e}")
        raise typer.Exit(1)


async def _show_balance(settings: WalletSettings, phrase: str) -> None:
    from btcwallet.wallet.service import WalletService

    async with WalletService(settings) as wallet:
        account = wallet.load_account(phrase)
        result = await wallet.get_balance(account)

    typer.echo(f"\nTotal Balance: {_format_btc(result.total_balance)}")
    for entry in result.per_address:
        if entry.confirmed or entry.tx_count:
            typer.echo(f"  {entry.address}  {entry.confirmed:>15,} sats  ({entry.tx_count} txs)")
    if result.failed_addresses:
        typer.echo(f"\nWARNING: {len(result.failed_addresses)} addresses could not be queried")


@app.command()
def send(
    destination: str = typer.Argument(..., help="Recipient address"),
    amount: int = typer.Option(..., "--amount", "-a", help="Amount in sats"),
    mnemonic: str = typer.Option(None, "--mnemonic", envvar="MNEMONIC", help="BIP39 mnemonic"),
    mnemonic_file: Path | None = typer.Option(None, "--mnemonic-file", "-f"),
    fee_rate: int | None = typer.Option(None, "--fee-rate", help="Fee rate in sat/vB"),
    network: NetworkType | None = typer.Option(None, "--network", "-n", help="Bitcoin network"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Build and sign without broadcasting"),
    log_level: str | None = typer.Option(None, "--log-level", "-l"),
) -> None:
    """Send bitcoin to an address."""
    settings = _settings(network, log_level)
    phrase = _load_phrase(mnemonic, mnemonic_file)

    try:
        asyncio.run(_send(settings, phrase, destination, amount, fee_rate, dry_run))
    except (WalletError, ValueError) as e:
        logger.error(f"Send failed: {e}")
        raise typer.Exit(1)


async def _send(
    settings: WalletSettings,
    phrase: str,
    destination: str,
    amount: int,
    fee_rate: int | None,
    dry_run: bool,
) -> None:
    from btcwallet.wallet.service import WalletService

    async with WalletService(settings) as wallet:
        account = wallet.load_account(phrase)
        if dry_run:
            signed = await wallet.create_transaction(
                phrase, account, destination, amount, fee_rate=fee_rate
            )
        else:
            signed = await wallet.send(phrase, account, destination, amount, fee_rate=fee_rate)

    typer.echo(f"\nTXID:    {signed.txid}")
    typer.echo(f"Amount:  {_format_btc(signed.amount)}")
    typer.echo(f"Fee:     {signed.fee:,} sats ({signed.fee_rate:.2f} sat/vB, {signed.vsize} vB)")
    if signed.change_value:
        typer.echo(f"Change:  {_format_btc(signed.change_value)}")
    if dry_run:
        typer.echo("\nDry run - transaction NOT broadcast:")
        typer.echo(signed.tx_hex)
    else:
        typer.echo("\nTransaction broadcast")


@app.command()
def status(
    txid: str = typer.Argument(..., help="Transaction id"),
    network: NetworkType | None = typer.Option(None, "--network", "-n", help="Bitcoin network"),
    log_level: str | None = typer.Option(None, "--log-level", "-l"),
) -> None:
    """Show confirmation status of a transaction."""
    settings = _settings(network, log_level)

    try:
        asyncio.run(_show_status(settings, txid))
    except WalletError as e:
        logger.error(f"Failed to fetch status: {e}")
        raise typer.Exit(1)


async def _show_status(settings: WalletSettings, txid: str) -> None:
    from btcwallet.wallet.service import WalletService

    async with WalletService(settings) as wallet:
        tx_status = await wallet.get_transaction_status(txid)

    if tx_status.confirmed:
        typer.echo(
            f"{txid}: confirmed at height {tx_status.block_height} "
            f"({tx_status.confirmations} confirmations)"
        )
    else:
        typer.echo(f"{txid}: unconfirmed")


@app.command()
def fees(
    network: NetworkType | None = typer.Option(None, "--network", "-n", help="Bitcoin network"),
    log_level: str | None = typer.Option(None, "--log-level", "-l"),
) -> None:
    """Show recommended fee rates."""
    settings = _settings(network, log_level)

    try:
        asyncio.run(_show_fees(settings))
    except WalletError as e:
        logger.error(f"Failed to fetch fee estimates: {e}")
        raise typer.Exit(1)


async def _show_fees(settings: WalletSettings) -> None:
    from btcwallet.wallet.service import WalletService

    async with WalletService(settings) as wallet:
        estimates = await wallet.get_fee_estimates()

    typer.echo(f"Fastest:   {estimates.fastest_fee} sat/vB")
    typer.echo(f"Half hour: {estimates.half_hour_fee} sat/vB")
    typer.echo(f"Hour:      {estimates.hour_fee} sat/vB")
    typer.echo(f"Economy:   {estimates.economy_fee} sat/vB")
    typer.echo(f"Minimum:   {estimates.minimum_fee} sat/vB")


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
