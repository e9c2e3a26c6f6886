"""
Unit tests for record CLI commands.

Each command runs against the in-memory API through a patched
_open_api, with permissions taken from a temporary config file.
"""

import logging

import pytest
from unittest.mock import patch
from click.testing import CliRunner


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers bound to the runner's streams after each test."""
    yield
    logging.getLogger("adminkit").handlers.clear()


@pytest.fixture
def cli_runner():
    """Create a Click CLI runner."""
    return CliRunner()


@pytest.fixture
def invoke(cli_runner, fake_api, admin_config_file, clean_environment):
    """Invoke the CLI with the temp config file and the fake API."""
    from adminkit.cli.main import cli
    from adminkit.src.api_client import AdminApiClient

    def open_api(config):
        return AdminApiClient(
            server_url=config.server_url,
            api_token=config.api_token or None,
            transport=fake_api.transport,
        )

    def run(*args, **kwargs):
        with patch("adminkit.cli.records._open_api", side_effect=open_api):
            return cli_runner.invoke(cli, ["--config", str(admin_config_file), *args], **kwargs)

    return run


@pytest.fixture
def billings(fake_api, seeded_restaurants):
    return [
        fake_api.seed("billings", order_summary="Dinner for two", total_value=55.0, table_number="5", restaurant_id=seeded_restaurants[0]["id"]),
        fake_api.seed("billings", order_summary="Lunch", total_value=12.0, table_number="12"),
        fake_api.seed("billings", order_summary="Late dinner", total_value=30.0, table_number="7"),
    ]


class TestListCommand:
    """Tests for the list command."""

    def test_list_shows_records(self, invoke, billings):
        """Test list prints a table and the page range."""
        result = invoke("list", "billings")

        assert result.exit_code == 0
        assert "Order Summary" in result.output
        assert "Dinner for two" in result.output
        assert "Lunch" in result.output
        assert "Showing 1-3 of 3" in result.output

    def test_list_with_filter_and_limit(self, invoke, billings):
        result = invoke("list", "billings", "-f", "order_summary=dinner", "--limit", "1", "--order-by", "total_value", "--desc")

        assert result.exit_code == 0
        assert "Dinner for two" in result.output
        assert "Late dinner" not in result.output
        assert "Showing 1-1 of 2" in result.output

    def test_list_empty(self, invoke):
        result = invoke("list", "billings")

        assert result.exit_code == 0
        assert "No billings found." in result.output

    def test_list_unknown_entity(self, invoke):
        result = invoke("list", "invoices")

        assert result.exit_code == 2
        assert "Unknown entity" in result.output

    def test_list_unknown_filter_field(self, invoke):
        result = invoke("list", "billings", "-f", "tip=5")

        assert result.exit_code == 2
        assert "no field 'tip'" in result.output

    def test_list_non_filterable_field(self, invoke):
        result = invoke("list", "billings", "-f", "total_value=5")

        assert result.exit_code == 1
        assert "total_value" in result.output

    def test_list_requires_server(self, cli_runner, temp_config_dir, clean_environment):
        from adminkit.cli.main import cli

        result = cli_runner.invoke(cli, ["--config", str(temp_config_dir / "none.yaml"), "list", "billings"])

        assert result.exit_code == 1
        assert "No server URL configured" in result.output


class TestShowCommand:
    """Tests for the show command."""

    def test_show_record(self, invoke, billings):
        result = invoke("show", "billings", billings[0]["id"])

        assert result.exit_code == 0
        assert "Order Summary: Dinner for two" in result.output
        assert "Total Value: 55.0" in result.output

    def test_show_restaurant_counts(self, invoke, billings, seeded_restaurants):
        result = invoke("show", "restaurants", seeded_restaurants[0]["id"])

        assert result.exit_code == 0
        assert "Billings count: 1" in result.output

    def test_show_missing(self, invoke):
        result = invoke("show", "billings", "bil_missing")

        assert result.exit_code == 1
        assert "not found" in result.output.lower()


class TestCreateCommand:
    """Tests for the create command."""

    def test_create_billing(self, invoke, fake_api):
        """Test a valid create prints the new id and the list route."""
        result = invoke(
            "create", "billings",
            "-s", "order_summary=Table 5 dinner",
            "-s", "total_value=42.50",
            "-s", "table_number=5",
        )

        assert result.exit_code == 0
        assert "Created Billings:" in result.output
        assert "→ /billings" in result.output
        [record] = fake_api.store["billings"].values()
        assert record["order_summary"] == "Table 5 dinner"
        assert record["total_value"] == 42.5

    def test_create_with_link(self, invoke, fake_api, seeded_restaurants):
        result = invoke(
            "create", "billings",
            "-s", "order_summary=Lunch",
            "-s", "total_value=12",
            "-l", "restaurant_id=luna",
        )

        assert result.exit_code == 0
        [record] = fake_api.store["billings"].values()
        assert record["restaurant_id"] == seeded_restaurants[1]["id"]

    def test_create_link_uses_configured_debounce(self, invoke, seeded_restaurants):
        """Test that --link searches wait for the configured lookup debounce."""
        from adminkit.src.linked_records import LinkedRecordField

        with patch("adminkit.cli.records.LinkedRecordField", wraps=LinkedRecordField) as field_cls:
            result = invoke(
                "create", "billings",
                "-s", "order_summary=Lunch",
                "-s", "total_value=12",
                "-l", "restaurant_id=luna",
            )

        assert result.exit_code == 0
        assert field_cls.call_args.kwargs["debounce"] == 0.3

    def test_create_with_ambiguous_link(self, invoke, fake_api, seeded_restaurants):
        result = invoke(
            "create", "billings",
            "-s", "order_summary=Lunch",
            "-s", "total_value=12",
            "-l", "restaurant_id=lu",
        )

        assert result.exit_code == 2
        assert "does not identify a single" in result.output
        assert fake_api.mutations() == []

    def test_create_validation_failure(self, invoke, fake_api):
        result = invoke("create", "billings", "-s", "total_value=-3")

        assert result.exit_code == 1
        assert "Validation failed:" in result.output
        assert "order_summary: Order Summary is a required field" in result.output
        assert "total_value: Total Value must be greater than or equal to 0" in result.output
        assert fake_api.mutations() == []

    def test_create_bad_number(self, invoke):
        result = invoke("create", "billings", "-s", "total_value=lots")

        assert result.exit_code == 2
        assert "expects a number" in result.output

    def test_create_denied(self, invoke, fake_api):
        """Test that a read-only grant blocks creating restaurants."""
        result = invoke("create", "restaurants", "-s", "name=Corner Cafe")

        assert result.exit_code == 1
        assert "not authorized" in result.output
        assert "redirected to /" in result.output
        assert fake_api.requests == []

    def test_create_read_only_field(self, invoke):
        result = invoke("create", "billings", "-s", "created_at=2024-01-01")

        assert result.exit_code == 1
        assert "read-only" in result.output


class TestEditCommand:
    """Tests for the edit command."""

    def test_edit_sends_changed_fields(self, invoke, fake_api, billings):
        import json

        result = invoke("edit", "billings", billings[1]["id"], "-s", "total_value=14")

        assert result.exit_code == 0
        assert f"Updated Billings: {billings[1]['id']}" in result.output
        assert json.loads(fake_api.mutations("PUT")[0].content) == {"total_value": 14.0}

    def test_edit_clear_reference(self, invoke, fake_api, billings):
        result = invoke("edit", "billings", billings[0]["id"], "-s", "restaurant_id=")

        assert result.exit_code == 0
        assert fake_api.store["billings"][billings[0]["id"]]["restaurant_id"] is None

    def test_edit_missing_record(self, invoke, fake_api):
        result = invoke("edit", "billings", "bil_missing", "-s", "total_value=1")

        assert result.exit_code == 1
        assert fake_api.mutations() == []


class TestDeleteCommand:
    """Tests for the delete command."""

    def test_delete_with_confirmation(self, invoke, fake_api, billings):
        result = invoke("delete", "billings", billings[0]["id"], input="y\n")

        assert result.exit_code == 0
        assert f"Deleted Billings: {billings[0]['id']}" in result.output
        assert billings[0]["id"] not in fake_api.store["billings"]

    def test_delete_aborted(self, invoke, fake_api, billings):
        result = invoke("delete", "billings", billings[0]["id"], input="n\n")

        assert result.exit_code == 1
        assert billings[0]["id"] in fake_api.store["billings"]

    def test_delete_denied(self, invoke, fake_api, seeded_restaurants):
        result = invoke("delete", "restaurants", seeded_restaurants[0]["id"], "--yes")

        assert result.exit_code == 1
        assert "not authorized" in result.output
        assert fake_api.mutations() == []

    def test_delete_missing(self, invoke):
        result = invoke("delete", "billings", "bil_missing", "--yes")

        assert result.exit_code == 1
        assert "not found" in result.output.lower()


class TestLookupCommand:
    """Tests for the lookup command."""

    def test_lookup_by_text(self, invoke, seeded_restaurants):
        result = invoke("lookup", "billings", "restaurant_id", "sushi")

        assert result.exit_code == 0
        assert f"{seeded_restaurants[1]['id']}  Luna Sushi" in result.output

    def test_lookup_without_text_uses_limit(self, invoke, seeded_restaurants, fake_api):
        fake_api.seed("restaurants", name="Zeno's")

        result = invoke("lookup", "billings", "restaurant_id")

        assert result.exit_code == 0
        lines = [line for line in result.output.splitlines() if line.startswith("res_")]
        assert [line.split("  ", 1)[1] for line in lines] == [
            "Blue Door Bistro",
            "Luigi's Trattoria",
            "Luna Sushi",
        ]

    def test_lookup_no_match(self, invoke, seeded_restaurants):
        result = invoke("lookup", "billings", "restaurant_id", "pizza")

        assert result.exit_code == 0
        assert "No restaurants match 'pizza'." in result.output

    def test_lookup_non_reference_field(self, invoke):
        result = invoke("lookup", "billings", "order_summary", "x")

        assert result.exit_code == 2
