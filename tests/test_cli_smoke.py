"""Smoke tests for the CLI entry point."""
from __future__ import annotations

import json
from datetime import date, timedelta

import pandas as pd
import pytest

from order_desk import __main__
from order_desk.cli import main
from order_desk.models import OrderStatus
from order_desk.repository import LeadRepository, ModeratorRepository, OrderRepository, ProductRepository
from order_desk.storage import JsonFileStore


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "desk.json"
    path.write_text(json.dumps({"storage": {"path": "desk-data.json"}}), encoding="utf-8")
    return path


@pytest.fixture
def leads_csv(tmp_path):
    path = tmp_path / "leads.csv"
    path.write_text(
        "Name,Phone,Address\nAda,01711000001,Gulshan\nGrace,+8801711000002,Banani\nNobody,12,\n",
        encoding="utf-8",
    )
    return path


def _store(tmp_path) -> JsonFileStore:
    return JsonFileStore(tmp_path / "desk-data.json")


def test_cli_imports_lists_and_assigns_leads(tmp_path, config_path, leads_csv, capsys) -> None:
    assert main(["--config", str(config_path), "import-leads", str(leads_csv)]) == 0
    assert "Imported 2 leads (1 rows skipped)" in capsys.readouterr().out

    output_path = tmp_path / "contacts.csv"
    assert main(["--config", str(config_path), "contacts", "--status", "unassigned", "--output", str(output_path)]) == 0
    exported = pd.read_csv(output_path, dtype={"phone": str})
    assert sorted(exported["phone"]) == ["01711000001", "01711000002"]

    exit_code = main(
        [
            "--config",
            str(config_path),
            "assign",
            "--moderator",
            "7",
            "--date",
            "2026-10-20",
            "--status",
            "unassigned",
            "--range",
            "1",
            "1",
        ]
    )

    assert exit_code == 0
    assigned = LeadRepository(_store(tmp_path)).for_moderator("7")
    assert len(assigned) == 1
    assert assigned[0].assigned_date.isoformat() == "2026-10-20"


def test_cli_creates_order_and_reports_dispatch_errors(tmp_path, config_path, capsys) -> None:
    assert main(
        ["--config", str(config_path), "product-add", "--sku", "TSH-01", "--name", "T-shirt", "--price", "550", "--stock", "10"]
    ) == 0
    capsys.readouterr()

    exit_code = main(
        [
            "--config",
            str(config_path),
            "create-order",
            "--name",
            "Rahim",
            "--phone",
            "01711000000",
            "--address",
            "Mirpur",
            "--region",
            "outside",
            "--item",
            "TSH-01:2",
            "--advance",
            "200",
        ]
    )
    assert exit_code == 0
    assert "amount to collect 1030.00" in capsys.readouterr().out

    order = OrderRepository(_store(tmp_path)).list()[0]
    assert main(["--config", str(config_path), "dispatch", order.id]) == 1
    assert "API keys are missing" in capsys.readouterr().err
    assert not OrderRepository(_store(tmp_path)).get(order.id).is_dispatched


def test_cli_rejects_invalid_order_without_writing(tmp_path, config_path, capsys) -> None:
    exit_code = main(
        ["--config", str(config_path), "create-order", "--name", "Rahim", "--phone", "01711000000", "--address", " "]
    )

    assert exit_code == 1
    assert "error:" in capsys.readouterr().err
    assert OrderRepository(_store(tmp_path)).list() == []


def test_module_entry_point_delegates_to_cli(tmp_path, config_path, leads_csv) -> None:
    exit_code = __main__.main(["--config", str(config_path), "import-leads", str(leads_csv)])

    assert exit_code == 0
    assert len(LeadRepository(_store(tmp_path)).list()) == 2


def test_module_entry_point_without_arguments_shows_help(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = __main__.main([])

    captured = capsys.readouterr()
    assert "python -m order_desk" in captured.out
    assert exit_code == 2


def _create_shirt_order(config_path, capsys) -> None:
    main(["--config", str(config_path), "product-add", "--sku", "TSH-01", "--name", "T-shirt", "--price", "550", "--stock", "3"])
    main(
        [
            "--config",
            str(config_path),
            "create-order",
            "--name",
            "Rahim",
            "--phone",
            "01711000000",
            "--address",
            "Mirpur",
            "--item",
            "TSH-01:1",
        ]
    )
    capsys.readouterr()


def test_cli_order_status_overrides_orders(tmp_path, config_path, capsys) -> None:
    _create_shirt_order(config_path, capsys)
    order = OrderRepository(_store(tmp_path)).list()[0]

    assert main(["--config", str(config_path), "order-status", order.id, "cancelled"]) == 0

    assert f"{order.id}: status cancelled" in capsys.readouterr().out
    assert OrderRepository(_store(tmp_path)).get(order.id).status is OrderStatus.CANCELLED


def test_cli_order_status_reports_unknown_orders(tmp_path, config_path, capsys) -> None:
    _create_shirt_order(config_path, capsys)
    order = OrderRepository(_store(tmp_path)).list()[0]

    exit_code = main(["--config", str(config_path), "order-status", order.id, "ORD-1", "delivered"])

    assert exit_code == 1
    assert "error:" in capsys.readouterr().err
    assert OrderRepository(_store(tmp_path)).get(order.id).status is OrderStatus.PENDING


def test_cli_rejects_order_above_stock(tmp_path, config_path, capsys) -> None:
    main(["--config", str(config_path), "product-add", "--sku", "CAP-01", "--name", "Cap", "--price", "300", "--stock", "1"])

    exit_code = main(
        [
            "--config",
            str(config_path),
            "create-order",
            "--name",
            "Rahim",
            "--phone",
            "01711000000",
            "--address",
            "Mirpur",
            "--item",
            "CAP-01:2",
        ]
    )

    assert exit_code == 1
    assert "Only 1 units available for Cap" in capsys.readouterr().err
    assert OrderRepository(_store(tmp_path)).list() == []


def test_cli_my_leads_filters_by_assignment_day(tmp_path, config_path, leads_csv, capsys) -> None:
    main(["--config", str(config_path), "import-leads", str(leads_csv)])
    today = date.today()
    for lead_range, day in (("1", today), ("2", today + timedelta(days=1))):
        main(
            [
                "--config",
                str(config_path),
                "assign",
                "--moderator",
                "7",
                "--date",
                day.isoformat(),
                "--status",
                "unassigned",
                "--range",
                "1",
                "1",
            ]
        )
    capsys.readouterr()

    assert main(["--config", str(config_path), "my-leads", "--moderator", "7"]) == 0
    assert "1 leads (1 pending)" in capsys.readouterr().out

    assert main(["--config", str(config_path), "my-leads", "--moderator", "7", "--day", "tomorrow"]) == 0
    assert f"assigned={(today + timedelta(days=1)).isoformat()}" in capsys.readouterr().out

    assert main(["--config", str(config_path), "my-leads", "--moderator", "7", "--day", "all"]) == 0
    assert "2 leads (2 pending)" in capsys.readouterr().out


def test_cli_manages_product_catalog(tmp_path, config_path, capsys) -> None:
    base = ["--config", str(config_path)]
    assert main(base + ["product-add", "--sku", "MUG-01", "--name", "Mug", "--price", "250", "--stock", "4"]) == 0
    assert "Added product 1: MUG-01 Mug @ 250.00 (4 in stock)" in capsys.readouterr().out

    assert main(base + ["product-update", "1", "--price", "275"]) == 0
    assert main(base + ["product-list"]) == 0
    out = capsys.readouterr().out
    assert "275.00" in out
    assert "1 products" in out

    assert main(base + ["product-update", "1"]) == 1
    assert "Nothing to update" in capsys.readouterr().err

    assert main(base + ["product-delete", "1"]) == 0
    assert ProductRepository(_store(tmp_path)).list() == []


def test_cli_assign_requires_an_active_moderator(tmp_path, config_path, leads_csv, capsys) -> None:
    base = ["--config", str(config_path)]
    assert main(base + ["moderator-add", "--name", "Rina", "--email", "rina@example.com"]) == 0
    assert main(base + ["moderator-add", "--name", "Tanvir"]) == 0
    main(base + ["import-leads", str(leads_csv)])
    assert main(base + ["moderator-status", "1", "inactive"]) == 0
    capsys.readouterr()

    assert main(base + ["assign", "--moderator", "1", "--status", "unassigned"]) == 1
    assert "not an active moderator" in capsys.readouterr().err

    assert main(base + ["assign", "--moderator", "2", "--status", "unassigned"]) == 0
    assert len(LeadRepository(_store(tmp_path)).for_moderator("2")) == 2

    assert main(base + ["moderator-list", "--active"]) == 0
    assert "1 moderators" in capsys.readouterr().out
    assert sorted(moderator.name for moderator in ModeratorRepository(_store(tmp_path)).list()) == ["Rina", "Tanvir"]
