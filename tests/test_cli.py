"""
CLI tests: commands run against an injected in-memory service container.

Usage:
    pytest tests/test_cli.py -v
"""

import json
from unittest.mock import MagicMock

from shopsignal.data.data_models import FunnelEvent, utcnow
from shopsignal.orchestrator.cli import main
from shopsignal.orchestrator.recalculation import RecalculationError

from tests.factories import make_event


class TestCommands:

    def test_no_command_prints_help(self, memory_services, capsys):
        assert main([], services=memory_services) == 1
        assert "usage" in capsys.readouterr().out

    def test_recalculate_json(self, memory_services, capsys):
        """The command scores against the wall clock, so the event is fresh."""
        memory_services.catalog.add_product("lamp", "Desk Lamp")
        memory_services.event_store.append(make_event("add_to_cart", 1, product_id="lamp", now=utcnow()))

        assert main(["recalculate", "--json"], services=memory_services) == 0

        payload = json.loads(capsys.readouterr().out)
        assert payload["status"] == "completed"
        assert payload["summary"]["cool"] == 1

    def test_recalculate_aborted(self, memory_services, capsys):
        memory_services.pipeline = MagicMock()
        memory_services.pipeline.run.side_effect = RecalculationError("events unavailable")

        assert main(["recalculate"], services=memory_services) == 1
        assert "ERROR" in capsys.readouterr().out

    def test_scores_empty(self, memory_services, capsys):
        assert main(["scores"], services=memory_services) == 0
        assert "No interest scores found" in capsys.readouterr().out

    def test_scores_after_run(self, memory_services, capsys):
        memory_services.catalog.add_product("lamp", "Desk Lamp")
        memory_services.pipeline.run()
        capsys.readouterr()

        assert main(["scores", "--level", "cold"], services=memory_services) == 0
        assert "Desk Lamp" in capsys.readouterr().out

    def test_viability_missing_product(self, memory_services):
        assert main(["viability", "--product-id", "ghost"], services=memory_services) == 1

    def test_viability_json(self, memory_services, capsys):
        memory_services.counter.record("lamp", FunnelEvent.IMPRESSION)

        assert main(["viability", "--json"], services=memory_services) == 0

        payload = json.loads(capsys.readouterr().out)
        assert payload[0]["product_id"] == "lamp"
        assert payload[0]["recommendation"] == "kill"

    def test_insights(self, memory_services, capsys):
        assert main(["insights"], services=memory_services) == 0
        assert "Getting started" in capsys.readouterr().out

    def test_schedule_once(self, memory_services, capsys):
        assert main(["schedule", "--once"], services=memory_services) == 0
        assert "Recalculation completed: completed" in capsys.readouterr().out

    def test_cron_entry(self, memory_services, capsys):
        assert main(["schedule", "--cron-entry"], services=memory_services) == 0
        assert "0 * * * * python scripts/cron_recalculate.py" in capsys.readouterr().out
