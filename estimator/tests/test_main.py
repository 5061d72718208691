"""Unit tests for the CLI configuration surface."""

import argparse
import sys
from unittest.mock import patch

import pytest

from estimator.main import build_secondary, create_parser, main, parse_bool
from estimator.src.collectors import BinanceRestCollector, UniswapPoolCollector

ENV_VARS = [
    "BINANCE_WS_URL",
    "SYMBOL",
    "UPDATE_INTERVAL_SECONDS",
    "VOLATILITY_WINDOW_HOURS",
    "READ_TIMEOUT_SECONDS",
    "DRAIN_TIMEOUT_SECONDS",
    "SECONDARY_SOURCE",
    "ETH_RPC_URL",
    "UNISWAP_POOL_ADDRESS",
    "TOKEN0_DECIMALS",
    "TOKEN1_DECIMALS",
    "INVERT_PRICE",
    "BINANCE_REST_URL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestParser:
    """Test defaults and environment handling."""

    def test_defaults(self) -> None:
        """Defaults match the documented configuration."""
        args = create_parser().parse_args([])
        assert args.ws_url is None
        assert args.symbol == "ethusdc"
        assert args.interval == 5
        assert args.window_hours == 6.0
        assert args.read_timeout == 60.0
        assert args.drain_timeout == 0.25
        assert args.secondary is None
        assert args.token0_decimals == 18
        assert args.token1_decimals == 18
        assert args.invert_price is False

    def test_env_defaults(self, monkeypatch) -> None:
        """Environment variables provide defaults."""
        monkeypatch.setenv("BINANCE_WS_URL", "wss://example.test/ws")
        monkeypatch.setenv("UPDATE_INTERVAL_SECONDS", "10")
        monkeypatch.setenv("VOLATILITY_WINDOW_HOURS", "2")
        monkeypatch.setenv("INVERT_PRICE", "true")

        args = create_parser().parse_args([])

        assert args.ws_url == "wss://example.test/ws"
        assert args.interval == 10
        assert args.window_hours == 2.0
        assert args.invert_price is True

    def test_cli_overrides_env(self, monkeypatch) -> None:
        """CLI arguments take precedence over environment variables."""
        monkeypatch.setenv("UPDATE_INTERVAL_SECONDS", "10")
        args = create_parser().parse_args(["--interval", "3"])
        assert args.interval == 3

    @pytest.mark.parametrize("value", ["1", "true", "YES", "on"])
    def test_parse_bool_true(self, value: str) -> None:
        assert parse_bool(value) is True

    @pytest.mark.parametrize("value", [None, "", "0", "false", "off"])
    def test_parse_bool_false(self, value) -> None:
        assert parse_bool(value) is False


class TestMainValidation:
    """Test fatal configuration errors."""

    def run_main(self, argv: list[str]) -> None:
        with patch.object(sys, "argv", ["estimator", *argv]):
            main()

    def test_missing_ws_url(self, capsys) -> None:
        """Absent endpoint URL is fatal at startup."""
        with pytest.raises(SystemExit) as exc_info:
            self.run_main([])
        assert exc_info.value.code == 2
        assert "BINANCE_WS_URL" in capsys.readouterr().err

    def test_invalid_interval(self) -> None:
        """Interval below one second is rejected."""
        with pytest.raises(SystemExit):
            self.run_main(["--ws-url", "wss://example.test/ws", "--interval", "0"])

    def test_negative_drain_timeout(self, capsys) -> None:
        """A negative drain budget is rejected."""
        with pytest.raises(SystemExit):
            self.run_main(["--ws-url", "wss://example.test/ws", "--drain-timeout", "-1"])
        assert "--drain-timeout" in capsys.readouterr().err

    def test_uniswap_requires_rpc(self, capsys) -> None:
        """The uniswap secondary needs an RPC URL and pool address."""
        with pytest.raises(SystemExit):
            self.run_main(["--ws-url", "wss://example.test/ws", "--secondary", "uniswap"])
        assert "--rpc-url" in capsys.readouterr().err

    def test_unknown_secondary_from_env(self, monkeypatch) -> None:
        """An unknown secondary from the environment is rejected."""
        monkeypatch.setenv("SECONDARY_SOURCE", "coingecko")
        with pytest.raises(SystemExit):
            self.run_main(["--ws-url", "wss://example.test/ws"])

    def test_runs_monitor(self) -> None:
        """Valid configuration starts the monitor loop."""
        with patch("estimator.main.asyncio.run") as run:
            self.run_main(["--ws-url", "wss://example.test/ws", "--read-timeout", "0"])

        run.assert_called_once()
        run.call_args.args[0].close()


class TestBuildSecondary:
    """Test secondary collector selection."""

    def namespace(self, **overrides) -> argparse.Namespace:
        args = create_parser().parse_args([])
        for key, value in overrides.items():
            setattr(args, key, value)
        return args

    def test_none(self) -> None:
        assert build_secondary(self.namespace()) is None

    def test_binance_rest(self) -> None:
        collector = build_secondary(self.namespace(secondary="binance-rest", symbol="btcusdt"))
        assert isinstance(collector, BinanceRestCollector)
        assert collector.symbol == "BTCUSDT"

    def test_uniswap(self) -> None:
        collector = build_secondary(
            self.namespace(
                secondary="uniswap",
                rpc_url="http://localhost:8545",
                pool_address="0x88e6a0c2ddd26feeb64f039a2c41296fcb3f5640",
                token0_decimals=6,
                invert_price=True,
            )
        )
        assert isinstance(collector, UniswapPoolCollector)
        assert collector.token0_decimals == 6
        assert collector.invert is True
