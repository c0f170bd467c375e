"""
tipwallet CLI - Manage the wallet key, check the balance, and send payments.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Coroutine
from typing import Any

import typer
from loguru import logger

from tipwallet.config import WalletSettings
from tipwallet.constants import SATOSHIS_PER_BTC
from tipwallet.errors import NoAddressError, WalletError
from tipwallet.models import PaymentRequest
from tipwallet.wallet import Wallet

app = typer.Typer(
    name="tipwallet",
    help="Single-address Bitcoin wallet",
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


def _load_settings(log_level: str | None) -> WalletSettings:
    settings = WalletSettings()
    setup_logging(log_level or settings.log_level)
    return settings


def create_wallet(settings: WalletSettings) -> Wallet:
    return Wallet(settings)


def parse_payment(value: str) -> PaymentRequest:
    """Parse ADDRESS:SATS."""
    destination, sep, amount = value.rpartition(":")
    if not sep or not destination:
        raise typer.BadParameter(f"Expected ADDRESS:SATS, got {value!r}")
    try:
        sats = int(amount)
    except ValueError:
        raise typer.BadParameter(f"Amount must be an integer number of sats: {amount!r}") from None
    if sats <= 0:
        raise typer.BadParameter(f"Amount must be positive: {sats}")
    return PaymentRequest(destination=destination, amount=sats)


def format_sats(sats: int) -> str:
    return f"{sats:,} sats ({sats / SATOSHIS_PER_BTC:.8f} BTC)"


def _run(coro: Coroutine[Any, Any, None]) -> None:
    try:
        asyncio.run(coro)
    except WalletError as e:
        logger.error(e.message)
        raise typer.Exit(1)


def _password_for(wallet: Wallet, password: str | None) -> str:
    if password is not None or not wallet.is_encrypted:
        return password or ""
    return typer.prompt("Password", hide_input=True)


@app.command()
def generate(
    force: bool = typer.Option(False, "--force", help="Replace an existing address"),
    log_level: str | None = typer.Option(
        None, "--log-level", "-l", help="Defaults to TIPWALLET_LOG_LEVEL, then INFO"
    ),
) -> None:
    """Generate a new address, replacing the stored one."""
    settings = _load_settings(log_level)
    _run(_generate(settings, force))


async def _generate(settings: WalletSettings, force: bool) -> None:
    async with create_wallet(settings) as wallet:
        try:
            existing = await wallet.vault.restore()
        except NoAddressError:
            existing = ""
        if existing and not force:
            logger.error(f"Wallet already has address {existing}. Use --force to replace it")
            raise typer.Exit(1)

        address = await wallet.generate_address()
        typer.echo(address)


@app.command("import-key")
def import_key(
    wif: str = typer.Option(..., "--wif", prompt=True, hide_input=True, help="WIF private key"),
    password: str | None = typer.Option(
        None, "--password", envvar="TIPWALLET_PASSWORD", help="Password of the current key"
    ),
    log_level: str | None = typer.Option(
        None, "--log-level", "-l", help="Defaults to TIPWALLET_LOG_LEVEL, then INFO"
    ),
) -> None:
    """Replace the wallet key with an imported private key."""
    settings = _load_settings(log_level)
    _run(_import_key(settings, wif, password))


async def _import_key(settings: WalletSettings, wif: str, password: str | None) -> None:
    async with create_wallet(settings) as wallet:
        try:
            await wallet.vault.restore()
        except NoAddressError:
            pass
        address = await wallet.import_address(_password_for(wallet, password), wif)
        typer.echo(address)


@app.command()
def info(
    offline: bool = typer.Option(False, "--offline", help="Show last stored balance only"),
    log_level: str | None = typer.Option(
        None, "--log-level", "-l", help="Defaults to TIPWALLET_LOG_LEVEL, then INFO"
    ),
) -> None:
    """Display the wallet address and balance."""
    settings = _load_settings(log_level)
    _run(_info(settings, offline))


async def _info(settings: WalletSettings, offline: bool) -> None:
    async with create_wallet(settings) as wallet:
        if offline:
            await wallet.vault.restore()
            balance = await wallet.preferences.get_last_balance()
        else:
            await wallet.restore()
            balance = wallet.balance

        typer.echo(f"Address:   {wallet.address}")
        typer.echo(f"Balance:   {format_sats(balance)}")
        typer.echo(f"Encrypted: {'yes' if wallet.is_encrypted else 'no'}")


@app.command("set-password")
def set_password(
    password: str | None = typer.Option(None, "--password", envvar="TIPWALLET_PASSWORD"),
    new_password: str = typer.Option(
        ...,
        "--new-password",
        prompt=True,
        hide_input=True,
        confirmation_prompt=True,
        help="New password, empty to store the key unencrypted",
    ),
    log_level: str | None = typer.Option(
        None, "--log-level", "-l", help="Defaults to TIPWALLET_LOG_LEVEL, then INFO"
    ),
) -> None:
    """Encrypt the private key under a new password."""
    settings = _load_settings(log_level)
    _run(_set_password(settings, password, new_password))


async def _set_password(settings: WalletSettings, password: str | None, new_password: str) -> None:
    async with create_wallet(settings) as wallet:
        await wallet.vault.restore()
        await wallet.update_password(_password_for(wallet, password), new_password)
        typer.echo("Password updated" if new_password else "Password removed")


@app.command("estimate-fee")
def estimate_fee_command(
    inputs: int = typer.Argument(..., min=0, help="Number of inputs"),
    outputs: int = typer.Argument(..., min=0, help="Number of outputs"),
) -> None:
    """Estimate the mining fee of a transaction."""
    from tipwallet.fees import estimate_fee

    typer.echo(format_sats(estimate_fee(inputs, outputs)))


@app.command()
def plan(
    to: list[str] = typer.Option(..., "--to", "-t", help="ADDRESS:SATS, highest priority first"),
    log_level: str | None = typer.Option(
        None, "--log-level", "-l", help="Defaults to TIPWALLET_LOG_LEVEL, then INFO"
    ),
) -> None:
    """Show which payments the current funds can cover."""
    settings = _load_settings(log_level)
    requests = [parse_payment(value) for value in to]
    _run(_plan(settings, requests))


async def _plan(settings: WalletSettings, requests: list[PaymentRequest]) -> None:
    async with create_wallet(settings) as wallet:
        await wallet.vault.restore()
        result = await wallet.plan_payments(requests)

        total = format_sats(result.total_inputs_satoshi)
        typer.echo(f"Inputs:  {len(result.selected_inputs)} ({total})")
        for request in result.satisfied_outputs:
            typer.echo(f"  pay {request.destination}: {format_sats(request.amount)}")
        unfunded = len(requests) - len(result.satisfied_outputs)
        if unfunded:
            typer.echo(f"Not funded: {unfunded} payment(s)")


@app.command()
def send(
    to: list[str] = typer.Option(..., "--to", "-t", help="ADDRESS:SATS, highest priority first"),
    password: str | None = typer.Option(None, "--password", envvar="TIPWALLET_PASSWORD"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the signed tx, do not broadcast"),
    log_level: str | None = typer.Option(
        None, "--log-level", "-l", help="Defaults to TIPWALLET_LOG_LEVEL, then INFO"
    ),
) -> None:
    """Send payments from the wallet."""
    settings = _load_settings(log_level)
    requests = [parse_payment(value) for value in to]
    _run(_send(settings, requests, password, dry_run))


async def _send(
    settings: WalletSettings, requests: list[PaymentRequest], password: str | None, dry_run: bool
) -> None:
    async with create_wallet(settings) as wallet:
        await wallet.vault.restore()
        secret = _password_for(wallet, password)

        try:
            if dry_run:
                tx = await wallet.assembler.build(requests, secret)
                typer.echo(tx.to_hex())
                return
            pending = wallet.send(requests, secret)
        except ValueError as e:
            logger.error(str(e))
            raise typer.Exit(1)
        txid = await pending
        typer.echo(txid)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
