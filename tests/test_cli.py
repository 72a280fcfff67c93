"""
Tests for the command line interface
"""

import asyncio
import json
from datetime import datetime, timezone

from click.testing import CliRunner

from fleetrelay.cli.main import cli
from fleetrelay.core.schemas import RecordByName
from fleetrelay.stores import DatabaseRecordStore


CATALOG_YAML = """
notifications:
  - name: DiskPressure
    summary: Disk pressure on ${node}
    message: Node ${node} is running out of disk space
    resendWaitMinutes: 60
  - name: StorageExhausted
    summary: Storage exhausted
    message: Cluster storage is exhausted
    limitedSupport: true
"""


def seed_database(database_url):
    async def _seed():
        store = DatabaseRecordStore.from_url(database_url)
        await store.initialize()
        record, token = await store.create("mc-1")
        entry = record.add_record_by_name(RecordByName(notification_name="DiskPressure", resend_wait_minutes=60))
        item = entry.add_item("hc-1")
        item.last_sent_at = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        item.sent_count = 3
        await store.update("mc-1", record, token)
        await store.close()

    asyncio.run(_seed())


class TestCatalogCommands:
    """Test catalog commands"""

    def test_catalog_list_table(self, tmp_path):
        path = tmp_path / "notifications.yaml"
        path.write_text(CATALOG_YAML)

        result = CliRunner().invoke(cli, ["catalog", "list", "--notifications", str(path)])

        assert result.exit_code == 0
        assert "DiskPressure" in result.output
        assert "StorageExhausted" in result.output

    def test_catalog_list_json(self, tmp_path):
        path = tmp_path / "notifications.yaml"
        path.write_text(CATALOG_YAML)

        result = CliRunner().invoke(cli, ["catalog", "list", "--notifications", str(path), "--format", "json"])

        assert result.exit_code == 0
        names = [entry["name"] for entry in json.loads(result.output)]
        assert names == ["DiskPressure", "StorageExhausted"]

    def test_catalog_path_required(self, monkeypatch):
        monkeypatch.delenv("FLEETRELAY_NOTIFICATIONS_PATH", raising=False)

        result = CliRunner().invoke(cli, ["catalog", "list"])

        assert result.exit_code != 0


class TestRecordCommands:
    """Test record commands"""

    def test_records_show_json(self, tmp_path):
        database_url = f"sqlite+aiosqlite:///{tmp_path}/records.db"
        seed_database(database_url)

        result = CliRunner().invoke(
            cli, ["records", "show", "mc-1", "--database-url", database_url, "--format", "json"]
        )

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["version"] == 2
        assert data["records_by_name"][0]["items"][0]["sent_count"] == 3

    def test_records_show_missing(self, tmp_path):
        database_url = f"sqlite+aiosqlite:///{tmp_path}/records.db"

        result = CliRunner().invoke(cli, ["records", "show", "mc-404", "--database-url", database_url])

        assert result.exit_code == 0
        assert "No notification record" in result.output
