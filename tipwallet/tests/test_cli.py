"""
Tests for the tipwallet CLI.
"""

from __future__ import annotations

import json

import pytest
import typer
from conftest import ADDRESS_COMPRESSED, DEST_P2PKH, WIF_COMPRESSED, WIF_UNCOMPRESSED, make_utxo
from loguru import logger
from typer.testing import CliRunner

from tipwallet import cli
from tipwallet.cli import app, parse_payment
from tipwallet.errors import BackendError
from tipwallet.models import PaymentRequest, UnspentOutputs
from tipwallet.preferences import MemoryPreferences
from tipwallet.transaction import deserialize_transaction
from tipwallet.wallet import Wallet

runner = CliRunner()


def last_line(result) -> str:
    """Value echoed by a command; log lines may precede it on older click."""
    return result.stdout.strip().splitlines()[-1]


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    # Handlers added during a run point at the runner's closed stream
    logger.remove()


@pytest.fixture
def env(tmp_path) -> dict[str, str | None]:
    return {
        "TIPWALLET_PREFERENCES_PATH": str(tmp_path / "prefs.json"),
        "TIPWALLET_PASSWORD": None,
        "TIPWALLET_LOG_LEVEL": None,
    }


@pytest.fixture
def stub_wallet(monkeypatch, mock_backend) -> MemoryPreferences:
    """Route the CLI to an in-memory wallet on the mocked backend."""
    preferences = MemoryPreferences(address=ADDRESS_COMPRESSED, private_key=WIF_COMPRESSED)

    def factory(settings):
        return Wallet(settings, preferences=preferences, backend=mock_backend)

    monkeypatch.setattr(cli, "create_wallet", factory)
    return preferences


class TestParsePayment:
    def test_valid(self) -> None:
        assert parse_payment(f"{DEST_P2PKH}:25000") == PaymentRequest(DEST_P2PKH, 25_000)

    @pytest.mark.parametrize("value", [DEST_P2PKH, ":100", f"{DEST_P2PKH}:abc", f"{DEST_P2PKH}:0"])
    def test_invalid(self, value: str) -> None:
        with pytest.raises(typer.BadParameter):
            parse_payment(value)


class TestKeyCommands:
    def test_generate_and_info(self, env, tmp_path) -> None:
        result = runner.invoke(app, ["generate"], env=env)
        assert result.exit_code == 0, result.output
        address = last_line(result)

        stored = json.loads((tmp_path / "prefs.json").read_text())
        assert stored["address"] == address
        assert stored["is_encrypted"] is False
        assert stored["last_balance"] == 0

        result = runner.invoke(app, ["info", "--offline"], env=env)
        assert result.exit_code == 0, result.output
        assert address in result.stdout
        assert "0 sats" in result.stdout
        assert "Encrypted: no" in result.stdout

    def test_generate_refuses_to_replace_without_force(self, env, tmp_path) -> None:
        first = last_line(runner.invoke(app, ["generate"], env=env))

        result = runner.invoke(app, ["generate"], env=env)
        assert result.exit_code == 1
        assert json.loads((tmp_path / "prefs.json").read_text())["address"] == first

        result = runner.invoke(app, ["generate", "--force"], env=env)
        assert result.exit_code == 0
        assert last_line(result) != first

    def test_info_without_address(self, env) -> None:
        result = runner.invoke(app, ["info", "--offline"], env=env)
        assert result.exit_code == 1

    def test_import_key(self, env) -> None:
        result = runner.invoke(app, ["import-key", "--wif", WIF_COMPRESSED], env=env)
        assert result.exit_code == 0, result.output
        assert last_line(result) == ADDRESS_COMPRESSED

    def test_import_invalid_key(self, env) -> None:
        result = runner.invoke(app, ["import-key", "--wif", "not-a-key"], env=env)
        assert result.exit_code == 1

    def test_set_password_then_import_needs_it(self, env) -> None:
        runner.invoke(app, ["import-key", "--wif", WIF_COMPRESSED], env=env)

        result = runner.invoke(app, ["set-password"], input="s3cret\ns3cret\n", env=env)
        assert result.exit_code == 0, result.output
        assert "Password updated" in result.stdout

        result = runner.invoke(app, ["info", "--offline"], env=env)
        assert "Encrypted: yes" in result.stdout

        result = runner.invoke(
            app, ["import-key", "--wif", WIF_UNCOMPRESSED, "--password", "wrong"], env=env
        )
        assert result.exit_code == 1

        result = runner.invoke(
            app, ["import-key", "--wif", WIF_UNCOMPRESSED, "--password", "s3cret"], env=env
        )
        assert result.exit_code == 0, result.output


class TestLogging:
    def test_level_from_environment(self, env) -> None:
        runner.invoke(app, ["generate"], env=env)

        quiet = runner.invoke(app, ["generate", "--force"], env=env)
        verbose = runner.invoke(
            app, ["generate", "--force"], env={**env, "TIPWALLET_LOG_LEVEL": "DEBUG"}
        )

        assert quiet.exit_code == 0
        assert verbose.exit_code == 0
        assert "Restored address" not in quiet.output
        assert "Restored address" in verbose.output

    def test_option_overrides_environment(self, env, monkeypatch) -> None:
        levels: list[str] = []
        monkeypatch.setattr(cli, "setup_logging", levels.append)

        runner.invoke(app, ["generate"], env={**env, "TIPWALLET_LOG_LEVEL": "DEBUG"})
        runner.invoke(
            app,
            ["generate", "--force", "--log-level", "WARNING"],
            env={**env, "TIPWALLET_LOG_LEVEL": "DEBUG"},
        )
        runner.invoke(app, ["generate", "--force"], env=env)

        assert levels == ["DEBUG", "WARNING", "INFO"]


class TestEstimateFee:
    def test_estimate(self) -> None:
        result = runner.invoke(app, ["estimate-fee", "10", "2"])
        assert result.exit_code == 0
        assert "20,000 sats" in result.stdout

    def test_negative_count_rejected(self) -> None:
        result = runner.invoke(app, ["estimate-fee", "--", "-1", "2"])
        assert result.exit_code != 0


class TestPayments:
    def test_plan(self, env, stub_wallet, mock_backend) -> None:
        mock_backend.get_unspent_outputs.return_value = UnspentOutputs(
            confirmed=[make_utxo(30_000)]
        )

        result = runner.invoke(
            app, ["plan", "--to", f"{DEST_P2PKH}:15000", "--to", f"{DEST_P2PKH}:15000"], env=env
        )

        assert result.exit_code == 0, result.output
        assert "Inputs:  1 (30,000 sats" in result.stdout
        assert f"{DEST_P2PKH}: 15,000 sats" in result.stdout
        assert f"{DEST_P2PKH}: 5,000 sats" in result.stdout
        assert "Not funded" not in result.stdout

    def test_info_with_explorer_down_shows_stored_balance(
        self, env, stub_wallet, mock_backend
    ) -> None:
        stub_wallet.values["last_balance"] = 7_000
        mock_backend.get_address_balance.side_effect = BackendError("explorer down")

        result = runner.invoke(app, ["info"], env=env)

        assert result.exit_code == 0, result.output
        assert ADDRESS_COMPRESSED in result.stdout
        assert "7,000 sats" in result.stdout

    def test_send_dry_run_prints_signed_tx(self, env, stub_wallet, mock_backend) -> None:
        mock_backend.get_unspent_outputs.return_value = UnspentOutputs(
            confirmed=[make_utxo(20_000)]
        )

        result = runner.invoke(app, ["send", "--to", f"{DEST_P2PKH}:10000", "--dry-run"], env=env)

        assert result.exit_code == 0, result.output
        tx = deserialize_transaction(bytes.fromhex(last_line(result)))
        assert [out.value for out in tx.outputs] == [10_000]
        mock_backend.broadcast_transaction.assert_not_awaited()

    def test_send_broadcasts(self, env, stub_wallet, mock_backend) -> None:
        mock_backend.get_unspent_outputs.return_value = UnspentOutputs(
            confirmed=[make_utxo(20_000)]
        )

        result = runner.invoke(app, ["send", "--to", f"{DEST_P2PKH}:10000"], env=env)

        assert result.exit_code == 0, result.output
        assert last_line(result) == "txid123"
        mock_backend.close.assert_awaited()

    def test_send_insufficient_funds(self, env, stub_wallet, mock_backend) -> None:
        mock_backend.get_unspent_outputs.return_value = UnspentOutputs(
            confirmed=[make_utxo(15_000)]
        )

        result = runner.invoke(app, ["send", "--to", f"{DEST_P2PKH}:10000"], env=env)

        assert result.exit_code == 1
        mock_backend.broadcast_transaction.assert_not_awaited()

    def test_send_invalid_destination(self, env, stub_wallet, mock_backend) -> None:
        result = runner.invoke(app, ["send", "--to", "bogus:10000"], env=env)
        assert result.exit_code == 1
        mock_backend.get_unspent_outputs.assert_not_awaited()

    def test_send_malformed_payment(self, env, stub_wallet) -> None:
        result = runner.invoke(app, ["send", "--to", "no-amount"], env=env)
        assert result.exit_code == 2
