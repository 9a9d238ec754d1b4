"""Tests for CLI commands."""

from datetime import datetime
from pathlib import Path

import pytest
import yaml

from schedule4d import cli, config_commands, link_commands, rule_commands
from schedule4d.config import Config
from schedule4d.models import LinkType, RuleType
from schedule4d.stores import YamlStore

SCHEDULE_XML = """<Project>
  <Name>Bridge</Name>
  <Tasks>
    <Task>
      <UID>1</UID><Name>Piers</Name>
      <Start>2024-01-01T00:00:00</Start><Finish>2024-01-11T00:00:00</Finish>
      <OutlineLevel>1</OutlineLevel><OutlineNumber>1</OutlineNumber>
    </Task>
    <Task>
      <UID>2</UID><Name>Deck</Name>
      <Start>2024-01-11T00:00:00</Start><Finish>2024-01-21T00:00:00</Finish>
      <OutlineLevel>1</OutlineLevel><OutlineNumber>2</OutlineNumber>
    </Task>
  </Tasks>
</Project>"""


@pytest.fixture
def store(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> YamlStore:
    """Route commands to a temporary YAML store and config."""
    monkeypatch.setattr(Path, "home", lambda: tmp_path / "home")
    store = YamlStore(root=tmp_path / "store")
    config = Config(config_dir=tmp_path / "config")
    monkeypatch.setattr(cli, "get_store", lambda: store)
    monkeypatch.setattr(link_commands, "get_config", lambda: config)
    monkeypatch.setattr(config_commands, "get_config", lambda use_global=False: config)
    monkeypatch.setattr(cli, "get_config", lambda use_global=False: config)
    return store


@pytest.fixture
def schedule_file(tmp_path: Path) -> Path:
    """Write a schedule file."""
    path = tmp_path / "bridge.xml"
    path.write_text(SCHEDULE_XML)
    return path


def test_parse(schedule_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Test printing a task tree."""
    cli.parse(schedule_file)
    out = capsys.readouterr().out
    assert "Project: Bridge" in out
    assert "Tasks: 2" in out
    assert "1 Piers [1]" in out


def test_active(schedule_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Test listing tasks active on a date."""
    cli.active(schedule_file, datetime(2024, 1, 11))
    out = capsys.readouterr().out
    assert "Found 2 active task(s)" in out


def test_status(schedule_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Test printing task statuses."""
    cli.status(schedule_file, datetime(2024, 1, 11))
    out = capsys.readouterr().out
    assert "1: Piers - completed" in out
    assert "2: Deck - in_progress" in out


def test_simulate_stops_at_end(
    store: YamlStore, schedule_file: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """Test headless playback reaches the end of the schedule."""
    cli.simulate(schedule_file, speed=5, steps=10)
    out = capsys.readouterr().out
    assert "2024-01-21 00:00" in out
    assert "Reached end of schedule" in out


def test_import(store: YamlStore, schedule_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Test importing a schedule into the store."""
    cli.import_schedule(schedule_file, "bridge")
    assert "Imported 2 task(s)" in capsys.readouterr().out
    assert [task.task_id for task in store.get_tasks("bridge").data] == ["1", "2"]


def test_link_add_and_remove(store: YamlStore, capsys: pytest.CaptureFixture[str]) -> None:
    """Test managing links from the command line."""
    link_commands.add("bridge", "1", 10, 11, type="IfcColumn")
    link_commands.add("bridge", "1", 10, type="IfcColumn")
    links = store.get_task_links("bridge").data
    assert [link.entity_express_id for link in links] == [10, 11]
    assert all(link.link_type == LinkType.MANUAL for link in links)

    link_commands.remove("bridge", "1", 10)
    assert [link.entity_express_id for link in store.get_task_links("bridge").data] == [11]

    capsys.readouterr()
    link_commands.list_links("bridge")
    assert "1 --[manual]--> 11 IfcColumn" in capsys.readouterr().out


def test_rule_add_and_apply(store: YamlStore, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Test adding a rule and applying it to an entity file."""
    rule_commands.add("bridge", "2", "type_filter", types="IfcSlab, IfcBeam")
    rules = store.get_link_rules("bridge").data
    assert len(rules) == 1
    assert rules[0].rule_type == RuleType.TYPE_FILTER
    assert rules[0].rule_config.ifc_types == ["IfcSlab", "IfcBeam"]

    entities_file = tmp_path / "entities.yaml"
    entities_file.write_text(
        yaml.safe_dump(
            [
                {"express_id": 1, "global_id": "g-1", "type": "IfcSlab", "name": "Deck slab"},
                {"express_id": 2, "type": "IfcColumn"},
            ]
        )
    )
    rule_commands.apply("bridge", "2", entities_file)

    links = store.get_task_links("bridge").data
    assert [(link.entity_global_id, link.link_type) for link in links] == [("g-1", LinkType.RULE)]
    assert "Linked 1 entity(ies)" in capsys.readouterr().out

    rule_commands.remove("bridge", rules[0].id)
    assert store.get_link_rules("bridge").data == []


def test_config_set_validates(store: YamlStore) -> None:
    """Test numeric settings are validated."""
    with pytest.raises(ValueError, match="must be positive"):
        config_commands.set("playback.speed", "0")
    with pytest.raises(ValueError, match="must be a number"):
        config_commands.set("playback.speed", "fast")


def test_config_get_default(store: YamlStore, capsys: pytest.CaptureFixture[str]) -> None:
    """Test defaults are shown as such."""
    config_commands.get("store.type")
    assert "store.type = yaml (default)" in capsys.readouterr().out
    config_commands.set("store.type", "yaml")
    capsys.readouterr()
    config_commands.get("store.type")
    assert capsys.readouterr().out.strip() == "store.type = yaml"
