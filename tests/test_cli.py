"""Tests for the shopstack CLI."""
from unittest.mock import patch

from typer.testing import CliRunner

from shopstack.cli import app

runner = CliRunner()


class TestCli:
    def test_services_lists_default_ports(self) -> None:
        result = runner.invoke(app, ["services"])

        assert result.exit_code == 0
        for name, port in (("auth", "3001"), ("product", "3002"), ("cart", "3003"), ("order", "3004"), ("todo", "8000")):
            assert name in result.output
            assert port in result.output

    def test_serve_unknown_service(self) -> None:
        result = runner.invoke(app, ["serve", "billing"])

        assert result.exit_code == 1
        assert "Unknown service" in result.output

    def test_serve_runs_uvicorn_factory(self) -> None:
        with patch("shopstack.cli.uvicorn.run") as run, patch("shopstack.cli.setup_logging") as setup, patch(
            "shopstack.cli.shutdown_observability"
        ) as shutdown:
            result = runner.invoke(app, ["serve", "cart", "--port", "9003"])

        assert result.exit_code == 0
        run.assert_called_once()
        args, kwargs = run.call_args
        assert args == ("shopstack.services.cart:create_cart_app",)
        assert kwargs["factory"] is True
        assert kwargs["port"] == 9003
        assert setup.call_args.args[0].service_name == "cart-service"
        shutdown.assert_called_once()
